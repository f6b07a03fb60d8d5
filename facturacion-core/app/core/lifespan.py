from contextlib import asynccontextmanager
from fastapi import FastAPI

from app.db.base import Base
from app.db.session import engine
from app.core.config import settings, validate_concurrency_config
from app.core.dependencies import close_numrot_client, init_numrot_client
from app.core.security import get_token_verifier
from app.utils.logger import logger
from app import models  # noqa: F401  registra las tablas en Base.metadata


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Maneja startup/shutdown de la app.

    Startup: valida la configuración de concurrencia, crea tablas en desarrollo,
    inicializa el cliente Numrot compartido y valida la configuración JWT cuando AUTH_ENABLED=true.
    Shutdown: detiene el rate limiter y cierra el pool HTTP.
    """
    logger.info("Iniciando %s v%s...", settings.app_name, settings.app_version)

    validate_concurrency_config(settings.numrot_max_concurrent, settings.numrot_batch_size)

    if settings.environment == "development":
        Base.metadata.create_all(bind=engine)

    init_numrot_client()

    if settings.auth_enabled:
        # Falla al arrancar si falta JWT_ISSUER_URI o JWT_JWK_SET_URI
        get_token_verifier()

    try:
        yield
    finally:
        logger.info("Deteniendo aplicación...")
        close_numrot_client()
