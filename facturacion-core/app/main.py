from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.api.v1 import api_router
from app.core.config import settings
from app.core.errors import FacturacionError
from app.core.lifespan import lifespan
from app.core.middleware import register_request_middleware
from app.utils.cors import setup_cors
from app.utils.logger import logger

# Título del cuerpo de error según código HTTP
ERROR_TITLES = {
    status.HTTP_400_BAD_REQUEST: "Error de Validación",
    status.HTTP_401_UNAUTHORIZED: "No Autorizado",
    status.HTTP_404_NOT_FOUND: "No Encontrado",
    status.HTTP_405_METHOD_NOT_ALLOWED: "Método No Permitido",
    status.HTTP_409_CONFLICT: "Conflicto",
    status.HTTP_500_INTERNAL_SERVER_ERROR: "Error Interno del Servidor",
    status.HTTP_502_BAD_GATEWAY: "Error del Proveedor",
    status.HTTP_503_SERVICE_UNAVAILABLE: "Servicio No Disponible",
    status.HTTP_504_GATEWAY_TIMEOUT: "Tiempo de Espera Agotado",
}


def error_body(status_code: int, errors: list[str], title: str | None = None) -> dict:
    return {"message": title or ERROR_TITLES.get(status_code, "Error"), "errors": errors}


def register_exception_handlers(app: FastAPI) -> None:
    """Todas las respuestas de error usan el formato {message, errors}."""

    @app.exception_handler(FacturacionError)
    async def facturacion_error_handler(request: Request, exc: FacturacionError):
        if exc.status_code >= 500:
            logger.error("%s %s -> %s: %s", request.method, request.url.path, exc.status_code, exc.message)
        return JSONResponse(status_code=exc.status_code, content=error_body(exc.status_code, exc.errors, exc.title))

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        detail = exc.detail if isinstance(exc.detail, list) else [str(exc.detail)]
        return JSONResponse(status_code=exc.status_code, content=error_body(exc.status_code, detail),
                            headers=getattr(exc, "headers", None))

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        errors = [
            f"{'.'.join(str(p) for p in err.get('loc', ()) if p != 'body')}: {err.get('msg')}"
            for err in exc.errors()
        ]
        return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST,
                            content=error_body(status.HTTP_400_BAD_REQUEST, errors))


def create_app() -> FastAPI:
    """
    Factory function que crea y configura la aplicación FastAPI.
    """
    app = FastAPI(
        title="Facturación Core",
        version=settings.app_version,
        description="Pasarela de facturación electrónica DIAN sobre el proveedor tecnológico Numrot",
        lifespan=lifespan,
    )

    # --- Configuración CORS ---
    setup_cors(app)

    # --- Correlación y log de acceso ---
    register_request_middleware(app)

    # --- Manejo de errores ---
    register_exception_handlers(app)

    # --- Rutas centralizadas ---
    app.include_router(api_router)

    return app


app = create_app()
