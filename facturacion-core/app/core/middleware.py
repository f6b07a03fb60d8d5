# app/core/middleware.py
"""
ID de correlación y log de acceso de cada petición.

El ID se toma de X-Request-ID o X-Correlation-ID; si no llega se genera uno.
Queda disponible vía app.core.context durante la petición (el cliente Numrot
lo propaga a la auditoría) y se devuelve en X-Correlation-ID.
"""
import logging
import time
import uuid

from fastapi import FastAPI, Request

from app.core.context import reset_correlation_id, set_correlation_id
from app.utils.logger import logger

CORRELATION_HEADER = "X-Correlation-ID"
REQUEST_ID_HEADER = "X-Request-ID"


def _log_level(status_code: int) -> int:
    if status_code >= 500:
        return logging.ERROR
    if status_code >= 400:
        return logging.WARNING
    return logging.INFO


def register_request_middleware(app: FastAPI) -> None:

    @app.middleware("http")
    async def correlation_and_access_log(request: Request, call_next):
        correlation_id = (
            request.headers.get(REQUEST_ID_HEADER)
            or request.headers.get(CORRELATION_HEADER)
            or str(uuid.uuid4())
        )
        token = set_correlation_id(correlation_id)
        start = time.perf_counter()
        try:
            response = await call_next(request)
        finally:
            reset_correlation_id(token)

        response.headers[CORRELATION_HEADER] = correlation_id
        extra = {
            "method": request.method,
            "path": request.url.path,
            "status": response.status_code,
            "duration_ms": round((time.perf_counter() - start) * 1000, 2),
            "bytes": int(response.headers.get("content-length", 0)),
            "correlation_id": correlation_id,
        }
        user_agent = request.headers.get("user-agent")
        if user_agent:
            extra["user_agent"] = user_agent
        logger.log(_log_level(response.status_code), "HTTP request", extra=extra)
        return response
