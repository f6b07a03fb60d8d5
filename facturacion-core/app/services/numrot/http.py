# app/services/numrot/http.py
"""
Transporte HTTP hacia Numrot.

Una sola sesión `requests` compartida por todos los workers (thread-safe para
peticiones independientes). Los reintentos de la API de envío se hacen aquí y
SOLO ante timeouts: 1s, 2s, 4s (máximo 3 reintentos). Errores de conexión
distintos a timeout y respuestas no-200 no se reintentan.
"""
from __future__ import annotations
import gzip
import json
import logging
import threading
import time
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Protocol, Sequence

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from app.core.errors import UpstreamError, UpstreamTimeoutError

logger = logging.getLogger(__name__)

PROVIDER_NAME = "numrot"
DEFAULT_RETRY_DELAYS: Sequence[float] = (1.0, 2.0, 4.0)
TIMEOUT_SIGNATURES = ("timeout", "deadline exceeded", "Client.Timeout")
GZIP_MAGIC = b"\x1f\x8b"


def build_session(pool_size: int = 100) -> requests.Session:
    """
    Sesión con pool de conexiones dimensionado para el worker pool.

    El adaptador no reintenta nada: toda la política de reintentos vive en
    `exchange`, así un timeout de conexión cuenta como un solo intento.
    """
    session = requests.Session()
    retry_strategy = Retry(total=0, connect=0, read=0, redirect=0, status=0, other=0, raise_on_status=False)
    adapter = HTTPAdapter(
        pool_connections=10,
        pool_maxsize=max(pool_size, 10),
        max_retries=retry_strategy,
    )
    session.mount("https://", adapter)
    session.mount("http://", adapter)
    return session


def is_timeout_error(exc: BaseException) -> bool:
    if isinstance(exc, requests.exceptions.Timeout):
        return True
    text = str(exc)
    return any(sig.lower() in text.lower() for sig in TIMEOUT_SIGNATURES)


def decode_body(content: bytes) -> bytes:
    """requests ya descomprime gzip con Content-Encoding; esto cubre cuerpos sin el header."""
    if content[:2] == GZIP_MAGIC:
        return gzip.decompress(content)
    return content


class AuditSink(Protocol):
    def record(self, entry: Dict[str, Any]) -> None:
        ...


@dataclass
class Exchange:
    status_code: int
    body: bytes
    headers: Dict[str, str] = field(default_factory=dict)
    duration_ms: int = 0

    @property
    def text(self) -> str:
        return self.body.decode("utf-8", errors="replace")

    def json(self) -> Any:
        return json.loads(self.body)


class CancelledError(Exception):
    """La operación se canceló antes de completarse."""


def exchange(
    session: requests.Session,
    method: str,
    url: str,
    *,
    operation: str,
    headers: Optional[Dict[str, str]] = None,
    json_body: Any = None,
    timeout: float = 300,
    retry_on_timeout: bool = False,
    retry_delays: Sequence[float] = DEFAULT_RETRY_DELAYS,
    cancel: Optional[threading.Event] = None,
    audit: Optional[AuditSink] = None,
    correlation_id: str = "",
) -> Exchange:
    """
    Ejecuta una petición HTTP y devuelve estado + cuerpo ya descomprimido.

    Raises:
        UpstreamTimeoutError: timeout tras agotar reintentos
        UpstreamError: cualquier otro error de transporte
        CancelledError: `cancel` se activó durante la espera entre intentos
    """
    headers = dict(headers or {})
    payload = json.dumps(json_body, ensure_ascii=False).encode("utf-8") if json_body is not None else None
    max_attempts = len(retry_delays) + 1 if retry_on_timeout else 1

    attempt = 0
    while True:
        attempt += 1
        started = time.monotonic()
        try:
            # El cuerpo se serializa una vez y se reenvía íntegro en cada intento
            resp = session.request(method, url, data=payload, headers=headers, timeout=timeout)
        except requests.exceptions.RequestException as e:
            duration_ms = int((time.monotonic() - started) * 1000)
            _record(audit, correlation_id, operation, method, url, headers, json_body,
                    None, None, None, duration_ms, str(e))
            if is_timeout_error(e) and attempt < max_attempts:
                delay = retry_delays[attempt - 1]
                logger.warning(
                    "Timeout en %s (intento %d/%d), esperando %.0fs antes de reintentar",
                    operation, attempt, max_attempts, delay,
                    extra={"url": url, "correlation_id": correlation_id},
                )
                if cancel is not None:
                    if cancel.wait(delay):
                        raise CancelledError(f"{operation} cancelled while waiting to retry")
                else:
                    time.sleep(delay)
                continue
            if is_timeout_error(e):
                raise UpstreamTimeoutError(f"execute request: {e}") from e
            raise UpstreamError(f"execute request: {e}") from e

        duration_ms = int((time.monotonic() - started) * 1000)
        try:
            body = decode_body(resp.content)
        except (OSError, EOFError) as e:
            raise UpstreamError(f"read response body: {e}") from e

        resp_headers = dict(resp.headers)
        _record(audit, correlation_id, operation, method, url, headers, json_body,
                resp.status_code, resp_headers, body, duration_ms, "")
        return Exchange(status_code=resp.status_code, body=body, headers=resp_headers, duration_ms=duration_ms)


def _record(audit, correlation_id, operation, method, url, req_headers, req_body,
            status, resp_headers, resp_body, duration_ms, error_message) -> None:
    if audit is None:
        return
    try:
        audit.record({
            "correlation_id": correlation_id,
            "provider": PROVIDER_NAME,
            "operation": operation,
            "request_method": method,
            "request_url": url,
            "request_headers": req_headers,
            "request_body": req_body,
            "response_status": status,
            "response_headers": resp_headers,
            "response_body": resp_body,
            "duration_ms": duration_ms,
            "error_message": error_message,
        })
    except Exception as e:
        # La auditoría nunca debe afectar la llamada al proveedor
        logger.error("Error registrando auditoría de %s: %s", operation, e)
