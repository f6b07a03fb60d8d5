"""
Tests del motor de envío concurrente (DispatchEngine).

El transporte se reemplaza por funciones que devuelven respuestas ya
reconciliadas, de modo que solo se prueba la orquestación.
"""
import logging
import random
import threading
import time

import pytest

from app.core.errors import UpstreamError
from app.services.numrot.circuit_breaker import CircuitBreaker
from app.services.numrot.dispatch import (
    MSG_BREAKER_OPEN,
    MSG_EMPTY_RESPONSE,
    MSG_INCOMPLETE,
    MSG_NO_RESPONSE,
    DispatchEngine,
)
from app.services.numrot.limiter import ConcurrencyLimiter, RateLimiter
from app.services.numrot.models import FailedDocument, ProcessedDocument, RegistrationResponse
from app.services.numrot.reconciler import MSG_ALL_FAILED, MSG_ALL_PROCESSED, MSG_COMPLETED, MSG_PARTIAL

from fakes import build_document


def _processed(doc, lote="track-1"):
    return RegistrationResponse(
        message=MSG_ALL_PROCESSED,
        lote=lote,
        documentos_procesados=[ProcessedDocument(
            cdo_id=int(doc.cdo_consecutivo),
            rfa_prefijo=doc.rfa_prefijo,
            cdo_consecutivo=doc.cdo_consecutivo,
            fecha_procesamiento="2025-01-15",
            hora_procesamiento="10:00:00",
        )],
    )


def _failed(doc, error):
    return RegistrationResponse(
        message=MSG_ALL_FAILED,
        lote="track-2",
        documentos_fallidos=[FailedDocument(
            documento="FC",
            consecutivo=doc.cdo_consecutivo,
            prefijo=doc.rfa_prefijo,
            errors=[error],
            fecha_procesamiento="2025-01-15",
            hora_procesamiento="10:00:00",
        )],
    )


def _docs(n):
    return [build_document(consecutivo=str(i)) for i in range(1, n + 1)]


def ok_transport(doc, kind, cancel):
    return _processed(doc)


class TestRegistroSimple:

    def test_lote_vacio(self):
        """Test: sin documentos no se llama al transporte"""
        resp = DispatchEngine(transport=ok_transport).register([], "FC")
        assert resp.message == MSG_COMPLETED
        assert resp.lote.startswith("lote-")

    def test_sin_transporte(self):
        """Test: registrar sin transporte es un error de programación"""
        with pytest.raises(ValueError):
            DispatchEngine().register(_docs(1), "FC")

    def test_un_documento_usa_lote_del_proveedor(self):
        """Test: con un documento se conserva el lote de la respuesta"""
        resp = DispatchEngine(transport=ok_transport).register(_docs(1), "FC")
        assert resp.message == MSG_ALL_PROCESSED
        assert resp.lote == "track-1"
        assert resp.documentos_procesados[0].cdo_consecutivo == "1"

    def test_transporte_sin_respuesta(self):
        """Test: transporte que devuelve None"""
        resp = DispatchEngine(transport=lambda d, k, c: None).register(_docs(1), "FC")
        assert resp.documentos_fallidos[0].errors == [MSG_NO_RESPONSE]

    def test_respuesta_vacia(self):
        """Test: respuesta sin procesados ni fallidos"""
        empty = RegistrationResponse(message="", lote="")
        resp = DispatchEngine(transport=lambda d, k, c: empty).register(_docs(1), "FC")
        assert resp.documentos_fallidos[0].errors == [MSG_EMPTY_RESPONSE]

    def test_excepcion_del_transporte(self):
        """Test: un error del proveedor se convierte en documento fallido"""
        def failing(doc, kind, cancel):
            raise UpstreamError("unexpected status code 500")

        resp = DispatchEngine(transport=failing).register(_docs(1), "FC")
        assert resp.message == MSG_ALL_FAILED
        failed = resp.documentos_fallidos[0]
        assert failed.errors == ["unexpected status code 500"]
        assert (failed.prefijo, failed.consecutivo) == ("SETT", "1")

    def test_selecciona_el_resultado_del_documento(self):
        """Test: si la respuesta trae varios documentos se usa el de igual número"""
        other = build_document(consecutivo="99")

        def mixed(doc, kind, cancel):
            resp = _processed(other)
            resp.documentos_fallidos.extend(_failed(doc, "rechazado").documentos_fallidos)
            return resp

        resp = DispatchEngine(transport=mixed).register(_docs(1), "FC")
        assert resp.documentos_procesados == []
        assert resp.documentos_fallidos[0].errors == ["rechazado"]


class TestRegistroConcurrente:

    def test_un_resultado_por_documento_en_orden(self):
        """Test: 30 documentos con latencias distintas conservan el orden de entrada"""
        def jittery(doc, kind, cancel):
            time.sleep(random.uniform(0, 0.02))
            return _processed(doc)

        engine = DispatchEngine(transport=jittery, concurrency_limiter=ConcurrencyLimiter(8))
        resp = engine.register(_docs(30), "FC")

        assert resp.message == MSG_ALL_PROCESSED
        assert [d.cdo_consecutivo for d in resp.documentos_procesados] == [str(i) for i in range(1, 31)]
        assert resp.lote == "lote-2025-01-15-10:00:00"

    def test_resultados_mixtos(self):
        """Test: pares procesados, impares fallidos"""
        def alternate(doc, kind, cancel):
            if int(doc.cdo_consecutivo) % 2:
                return _failed(doc, "rechazado")
            return _processed(doc)

        resp = DispatchEngine(transport=alternate, concurrency_limiter=ConcurrencyLimiter(4)).register(_docs(10), "FC")

        assert resp.message == MSG_PARTIAL
        assert len(resp.documentos_procesados) == 5
        assert len(resp.documentos_fallidos) == 5
        assert [d.consecutivo for d in resp.documentos_fallidos] == ["1", "3", "5", "7", "9"]

    def test_respeta_limite_de_concurrencia(self):
        """Test: nunca hay más envíos simultáneos que el límite"""
        lock = threading.Lock()
        state = {"active": 0, "peak": 0}

        def tracked(doc, kind, cancel):
            with lock:
                state["active"] += 1
                state["peak"] = max(state["peak"], state["active"])
            time.sleep(0.01)
            with lock:
                state["active"] -= 1
            return _processed(doc)

        limiter = ConcurrencyLimiter(3)
        resp = DispatchEngine(transport=tracked, concurrency_limiter=limiter).register(_docs(15), "FC")

        assert len(resp.documentos_procesados) == 15
        assert state["peak"] <= 3
        assert limiter.stats()["active"] == 0

    def test_pico_de_concurrencia_por_lote(self, caplog):
        """Test: un lote simultáneo no altera el pico reportado por otro lote"""
        caplog.set_level(logging.INFO, logger="app.services.numrot.dispatch")
        engine = DispatchEngine(concurrency_limiter=ConcurrencyLimiter(10))
        gate = threading.Event()
        entered = threading.Semaphore(0)

        def blocked(doc, kind, cancel):
            entered.release()
            gate.wait(5)
            return _processed(doc)

        def quick(doc, kind, cancel):
            return _processed(doc)

        first = threading.Thread(target=engine.register, args=(_docs(3), "FC", blocked))
        first.start()
        for _ in range(3):
            assert entered.acquire(timeout=5)

        # Los 3 slots del primer lote siguen ocupados durante el segundo
        engine.register(_docs(2), "NC", quick)
        gate.set()
        first.join(5)

        peaks = {r.document_type: r.peak_active for r in caplog.records if hasattr(r, "peak_active")}
        assert peaks["FC"] == 3
        assert peaks["NC"] >= 4

    def test_con_rate_limiter(self):
        """Test: el rate limiter entrega tokens a todos los documentos"""
        rate = RateLimiter(100)
        try:
            engine = DispatchEngine(transport=ok_transport, concurrency_limiter=ConcurrencyLimiter(5),
                                    rate_limiter=rate)
            resp = engine.register(_docs(20), "FC")
        finally:
            rate.close()
        assert len(resp.documentos_procesados) == 20

    def test_circuit_breaker_abierto(self):
        """Test: tras abrir el circuito los demás documentos fallan sin llamar al proveedor"""
        calls = []
        lock = threading.Lock()

        def server_error(doc, kind, cancel):
            with lock:
                calls.append(doc.cdo_consecutivo)
            time.sleep(0.01)
            raise UpstreamError("unexpected status code 500")

        breaker = CircuitBreaker(max_failures=10, cooldown=30)
        engine = DispatchEngine(transport=server_error, concurrency_limiter=ConcurrencyLimiter(5),
                                circuit_breaker=breaker)
        started = time.monotonic()
        resp = engine.register(_docs(20), "FC")
        elapsed = time.monotonic() - started

        assert resp.documentos_procesados == []
        assert len(resp.documentos_fallidos) == 20
        assert len(calls) <= 10
        open_errors = [d for d in resp.documentos_fallidos if d.errors == [MSG_BREAKER_OPEN]]
        assert len(open_errors) == 20 - len(calls)
        assert elapsed < 20 * 0.01 * 5

    def test_cancelacion_completa_con_incompletos(self):
        """Test: lote cancelado devuelve un resultado por documento"""
        cancel = threading.Event()
        cancel.set()

        def waiting(doc, kind, cancel_event):
            cancel_event.wait(1)
            return _processed(doc)

        engine = DispatchEngine(transport=waiting, concurrency_limiter=ConcurrencyLimiter(2))
        resp = engine.register(_docs(4), "FC", cancel=cancel)

        assert len(resp.documentos_procesados) + len(resp.documentos_fallidos) == 4
        assert all(d.errors == [MSG_INCOMPLETE] for d in resp.documentos_fallidos)

    def test_tiempo_maximo_de_espera(self):
        """Test: documentos sin resultado al vencer la espera quedan incompletos"""
        def slow_last(doc, kind, cancel):
            if doc.cdo_consecutivo == "3":
                time.sleep(1)
            return _processed(doc)

        engine = DispatchEngine(transport=slow_last, concurrency_limiter=ConcurrencyLimiter(3),
                                drain_timeout=0.3)
        resp = engine.register(_docs(3), "FC")

        assert [d.cdo_consecutivo for d in resp.documentos_procesados] == ["1", "2"]
        assert resp.documentos_fallidos[0].consecutivo == "3"
        assert resp.documentos_fallidos[0].errors == [MSG_INCOMPLETE]
