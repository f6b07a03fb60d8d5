# app/services/numrot/dispatch.py
"""
Motor de envío concurrente de documentos a Numrot.

Numrot acepta un documento por petición, así que un lote se reparte entre
un pool de workers. Cada documento pasa por: rate limiter -> semáforo de
concurrencia -> circuit breaker -> transporte. Cada documento produce
exactamente un resultado (procesado o fallido), incluso ante excepciones o
si el lote excede el tiempo máximo de espera.
"""
from __future__ import annotations
import logging
import queue
import threading
import time
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Sequence, Union

from app.core.errors import CircuitBreakerOpenError
from app.schemas.documento import OpenETLDocument
from app.services.numrot.circuit_breaker import CircuitBreaker
from app.services.numrot.limiter import ConcurrencyLimiter, RateLimiter
from app.services.numrot.models import FailedDocument, ProcessedDocument, RegistrationResponse
from app.services.numrot.reconciler import batch_message, generate_lote, lote_name, processing_timestamp

logger = logging.getLogger(__name__)

DEFAULT_WORKERS = 10
DRAIN_TIMEOUT_SECONDS = 10 * 60
_POLL_INTERVAL = 0.05

MSG_BREAKER_OPEN = "Circuit breaker is open - too many failures detected"
MSG_EMPTY_RESPONSE = "Response received but no processed or failed documents"
MSG_NO_RESPONSE = "No response received from document processing"
MSG_INCOMPLETE = "Document processing incomplete - no result received"

Outcome = Union[ProcessedDocument, FailedDocument]

# (documento, tipo, cancelación) -> respuesta reconciliada de Numrot
Transport = Callable[[OpenETLDocument, str, Optional[threading.Event]], Optional[RegistrationResponse]]


@dataclass
class _Result:
    index: int
    outcome: Outcome


class _PeakTracker:
    """Máximo de slots activos observado durante un único lote."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self.value = 0

    def sample(self, active: int) -> None:
        with self._lock:
            if active > self.value:
                self.value = active


def failed_outcome(doc: OpenETLDocument, kind: str, message: str) -> FailedDocument:
    fecha, hora = processing_timestamp()
    return FailedDocument(
        documento=kind,
        consecutivo=doc.cdo_consecutivo,
        prefijo=doc.rfa_prefijo,
        errors=[message],
        fecha_procesamiento=fecha,
        hora_procesamiento=hora,
    )


class DispatchEngine:
    """Reparte un lote de documentos de un mismo tipo sobre el transporte."""

    def __init__(
        self,
        transport: Optional[Transport] = None,
        concurrency_limiter: Optional[ConcurrencyLimiter] = None,
        rate_limiter: Optional[RateLimiter] = None,
        circuit_breaker: Optional[CircuitBreaker] = None,
        drain_timeout: float = DRAIN_TIMEOUT_SECONDS,
    ):
        self.transport = transport
        self.concurrency_limiter = concurrency_limiter
        self.rate_limiter = rate_limiter
        self.circuit_breaker = circuit_breaker
        self.drain_timeout = drain_timeout

    # ------------------------------------------------------------------
    # Entrada
    # ------------------------------------------------------------------

    def register(self, documents: Sequence[OpenETLDocument], kind: str,
                 transport: Optional[Transport] = None,
                 cancel: Optional[threading.Event] = None) -> RegistrationResponse:
        if not documents:
            return RegistrationResponse(message=batch_message(0, 0), lote=generate_lote())

        send = transport or self.transport
        if send is None:
            raise ValueError("transport is required")

        if len(documents) == 1:
            return self._register_single(documents[0], kind, send, cancel)
        return self._register_concurrent(documents, kind, send, cancel)

    def _register_single(self, doc: OpenETLDocument, kind: str, send: Transport,
                         cancel: Optional[threading.Event]) -> RegistrationResponse:
        response: Dict[str, Optional[RegistrationResponse]] = {"value": None}

        def keep_response(resp: Optional[RegistrationResponse]) -> None:
            response["value"] = resp

        outcome = self._process_document(doc, kind, send, cancel, keep_response)
        resp = response["value"]
        lote = resp.lote if resp is not None and resp.lote else generate_lote()

        if isinstance(outcome, ProcessedDocument):
            return RegistrationResponse(
                message=batch_message(1, 0), lote=lote, documentos_procesados=[outcome],
            )
        return RegistrationResponse(
            message=batch_message(0, 1), lote=lote, documentos_fallidos=[outcome],
        )

    # ------------------------------------------------------------------
    # Pool de workers
    # ------------------------------------------------------------------

    def _register_concurrent(self, documents: Sequence[OpenETLDocument], kind: str, send: Transport,
                             cancel: Optional[threading.Event]) -> RegistrationResponse:
        started = time.monotonic()
        total = len(documents)
        peak = _PeakTracker()

        workers = DEFAULT_WORKERS
        if self.concurrency_limiter is not None:
            workers = self.concurrency_limiter.max_concurrent or DEFAULT_WORKERS
        workers = min(workers, total)

        logger.info(
            "Procesando %d documentos %s con %d workers (un documento por petición)",
            total, kind, workers,
        )

        work: "queue.Queue" = queue.Queue()
        for index, doc in enumerate(documents):
            work.put((index, doc))

        results: "queue.Queue[_Result]" = queue.Queue()
        threads = [
            threading.Thread(
                target=self._worker, args=(work, results, kind, send, cancel, peak),
                name=f"numrot-worker-{w}", daemon=True,
            )
            for w in range(workers)
        ]
        for t in threads:
            t.start()

        outcomes = self._drain(results, threads, total, cancel)

        procesados: List[ProcessedDocument] = []
        fallidos: List[FailedDocument] = []
        for index, doc in enumerate(documents):
            outcome = outcomes.get(index)
            if outcome is None:
                outcome = failed_outcome(doc, kind, MSG_INCOMPLETE)
            if isinstance(outcome, ProcessedDocument):
                procesados.append(outcome)
            else:
                fallidos.append(outcome)

        lote = ""
        if procesados:
            lote = lote_name(procesados[0].fecha_procesamiento, procesados[0].hora_procesamiento)

        self._log_metrics(kind, total, len(procesados), len(fallidos), time.monotonic() - started, peak.value)
        return RegistrationResponse(
            message=batch_message(len(procesados), len(fallidos)),
            lote=lote or generate_lote(),
            documentos_procesados=procesados,
            documentos_fallidos=fallidos,
        )

    def _worker(self, work: "queue.Queue", results: "queue.Queue[_Result]", kind: str, send: Transport,
                cancel: Optional[threading.Event], peak: _PeakTracker) -> None:
        while True:
            try:
                index, doc = work.get_nowait()
            except queue.Empty:
                return
            results.put(_Result(index, self._process_document(doc, kind, send, cancel, peak=peak)))

    def _drain(self, results: "queue.Queue[_Result]", threads: List[threading.Thread],
               expected: int, cancel: Optional[threading.Event]) -> Dict[int, Outcome]:
        """Recoge resultados hasta completar, cancelar o agotar el tiempo máximo."""
        deadline = time.monotonic() + self.drain_timeout
        outcomes: Dict[int, Outcome] = {}

        while len(outcomes) < expected:
            if cancel is not None and cancel.is_set():
                logger.warning(
                    "Lote cancelado mientras se procesaban documentos",
                    extra={"received": len(outcomes), "expected": expected},
                )
                break
            if time.monotonic() >= deadline:
                logger.error(
                    "Tiempo máximo de espera agotado para el lote",
                    extra={"received": len(outcomes), "expected": expected},
                )
                break
            try:
                result = results.get(timeout=_POLL_INTERVAL)
            except queue.Empty:
                if not any(t.is_alive() for t in threads) and results.empty():
                    logger.warning(
                        "Workers finalizados antes de recibir todos los resultados",
                        extra={"received": len(outcomes), "expected": expected},
                    )
                    break
                continue
            outcomes[result.index] = result.outcome

        return outcomes

    # ------------------------------------------------------------------
    # Procedimiento por documento
    # ------------------------------------------------------------------

    def _process_document(self, doc: OpenETLDocument, kind: str, send: Transport,
                          cancel: Optional[threading.Event],
                          on_response: Optional[Callable[[Optional[RegistrationResponse]], None]] = None,
                          peak: Optional[_PeakTracker] = None) -> Outcome:
        try:
            return self._send_with_flow_control(doc, kind, send, cancel, on_response, peak)
        except Exception as e:
            logger.exception(
                "Error inesperado procesando documento",
                extra={"prefijo": doc.rfa_prefijo, "consecutivo": doc.cdo_consecutivo},
            )
            return failed_outcome(doc, kind, str(e) or e.__class__.__name__)

    def _send_with_flow_control(self, doc: OpenETLDocument, kind: str, send: Transport,
                                cancel: Optional[threading.Event],
                                on_response, peak: Optional[_PeakTracker] = None) -> Outcome:
        if self.rate_limiter is not None:
            try:
                self.rate_limiter.acquire(cancel)
            except Exception as e:
                return failed_outcome(doc, kind, f"Failed to acquire rate limit token: {e}")

        if self.concurrency_limiter is None:
            return self._call(doc, kind, send, cancel, on_response)

        try:
            self.concurrency_limiter.acquire(cancel)
        except Exception as e:
            return failed_outcome(doc, kind, f"Failed to acquire concurrency slot: {e}")
        try:
            if peak is not None:
                peak.sample(self.concurrency_limiter.stats()["active"])
            return self._call(doc, kind, send, cancel, on_response)
        finally:
            # Liberación por documento, no por worker
            self.concurrency_limiter.release()

    def _call(self, doc: OpenETLDocument, kind: str, send: Transport, cancel: Optional[threading.Event],
              on_response) -> Outcome:
        def call() -> Optional[RegistrationResponse]:
            return send(doc, kind, cancel)

        try:
            if self.circuit_breaker is not None:
                response = self.circuit_breaker.execute(call)
            else:
                response = call()
        except CircuitBreakerOpenError:
            return failed_outcome(doc, kind, MSG_BREAKER_OPEN)
        except Exception as e:
            logger.warning(
                "Fallo enviando documento a Numrot: %s", e,
                extra={"prefijo": doc.rfa_prefijo, "consecutivo": doc.cdo_consecutivo},
            )
            return failed_outcome(doc, kind, str(e))

        if on_response is not None:
            on_response(response)
        if response is None:
            return failed_outcome(doc, kind, MSG_NO_RESPONSE)
        return self._select_outcome(doc, kind, response)

    @staticmethod
    def _select_outcome(doc: OpenETLDocument, kind: str, response: RegistrationResponse) -> Outcome:
        """
        Resultado que corresponde al documento enviado. Si la respuesta trae
        varios documentos se prefiere el de igual número; si ninguno coincide,
        el primero procesado y luego el primero fallido.
        """
        numero = doc.numero_completo
        for processed in response.documentos_procesados:
            if processed.rfa_prefijo + processed.cdo_consecutivo == numero:
                return processed
        for failed in response.documentos_fallidos:
            if failed.prefijo + failed.consecutivo == numero:
                return failed
        if response.documentos_procesados:
            return response.documentos_procesados[0]
        if response.documentos_fallidos:
            return response.documentos_fallidos[0]
        return failed_outcome(doc, kind, MSG_EMPTY_RESPONSE)

    # ------------------------------------------------------------------
    # Métricas
    # ------------------------------------------------------------------

    def _log_metrics(self, kind: str, total: int, processed: int, failed: int, duration: float,
                     peak: int = 0) -> None:
        throughput = processed / duration if duration > 0 else 0.0
        success_rate = processed / total * 100 if total else 0.0
        metrics = {
            "document_type": kind,
            "total_documents": total,
            "processed": processed,
            "failed": failed,
            "duration_seconds": round(duration, 3),
            "throughput_docs_per_sec": round(throughput, 2),
            "success_rate_percent": round(success_rate, 2),
        }
        if self.concurrency_limiter is not None:
            max_concurrent = self.concurrency_limiter.max_concurrent
            metrics["peak_active"] = peak
            metrics["max_concurrent"] = max_concurrent
            metrics["utilization_percent"] = round(peak / max_concurrent * 100, 2) if max_concurrent else 0.0
        if self.rate_limiter is not None:
            metrics["rate_limit_rps"] = self.rate_limiter.rate
        if self.circuit_breaker is not None:
            cb = self.circuit_breaker.stats()
            metrics["circuit_breaker_state"] = cb["state"]
            metrics["circuit_breaker_failure_rate"] = round(cb["failure_rate"] * 100, 2)

        logger.info(
            "Procesamiento concurrente completado: %d/%d procesados en %.2fs (%.2f docs/s, %.1f%% éxito)",
            processed, total, duration, throughput, success_rate,
            extra=metrics,
        )
