# app/utils/cors.py
"""
CORS de la pasarela.

Los clientes habituales son servicios (OpenETL, integradores), no navegadores;
CORS solo importa para consolas web que consultan documentos o eventos.
"""
from typing import List

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.core.config import Settings, settings as default_settings
from app.utils.logger import logger

CORRELATION_HEADERS = ["X-Correlation-ID", "X-Request-ID"]


def parse_origins(value) -> List[str]:
    """BACKEND_CORS_ORIGINS admite lista JSON o texto separado por comas."""
    if not value:
        return []
    if isinstance(value, str):
        return [o.strip().rstrip("/") for o in value.split(",") if o.strip()]
    return [str(o).strip().rstrip("/") for o in value if str(o).strip()]


def resolve_origins(settings: Settings) -> List[str]:
    """
    Orígenes permitidos según el ambiente.

    Fuera de producción, sin orígenes configurados se acepta cualquiera. En
    producción solo los configurados y nunca "*".
    """
    origins = parse_origins(settings.backend_cors_origins)
    if settings.environment == "production":
        if "*" in origins:
            logger.warning("BACKEND_CORS_ORIGINS='*' se ignora en producción")
        return [o for o in origins if o != "*"]
    return origins or ["*"]


def setup_cors(app: FastAPI, settings: Settings = default_settings) -> None:
    origins = resolve_origins(settings)
    if not origins:
        logger.info("CORS deshabilitado: sin orígenes permitidos en %s", settings.environment)
        return

    wildcard = origins == ["*"]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_methods=["GET", "POST", "PUT", "OPTIONS"],
        allow_headers=["Authorization", "Content-Type", *CORRELATION_HEADERS],
        expose_headers=CORRELATION_HEADERS,
        # Los navegadores rechazan credenciales con origen comodín
        allow_credentials=not wildcard,
    )
    logger.info("CORS habilitado", extra={"origins": origins, "environment": settings.environment})
