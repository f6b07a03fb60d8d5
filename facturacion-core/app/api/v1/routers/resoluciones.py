"""
Resoluciones de facturación del emisor configurado.
"""
import logging

from fastapi import APIRouter, Depends

from app.core.config import settings
from app.core.dependencies import get_resolution_service
from app.core.errors import AuthenticationError, UpstreamError, ValidationError
from app.schemas.common import ErrorResponse
from app.schemas.resolucion import ResolucionesResponse
from app.services.resolution_service import ResolutionService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Configuración"])


@router.get(
    "/lista-resoluciones-facturacion",
    response_model=ResolucionesResponse,
    summary="Listar resoluciones de facturación",
    description="Consulta en Numrot las resoluciones vigentes del NIT configurado en NUMROT_EMISOR_NIT.",
    responses={400: {"model": ErrorResponse}, 502: {"model": ErrorResponse}},
)
def listar_resoluciones(service: ResolutionService = Depends(get_resolution_service)):
    nit = settings.numrot_emisor_nit
    if not nit:
        raise ValidationError("El NIT del emisor no está configurado. Configure NUMROT_EMISOR_NIT")

    try:
        resoluciones = service.get_resolutions(nit)
    except ValidationError as e:
        if e.message == "nit is required":
            raise ValidationError("El parámetro NIT es requerido")
        raise ValidationError("Formato de NIT inválido")
    except AuthenticationError as e:
        logger.error("Autenticación con Numrot fallida: %s", e.message)
        raise AuthenticationError("Error de autenticación con el proveedor")
    except UpstreamError as e:
        logger.error("Error consultando resoluciones: %s", e.message, extra={"nit": nit})
        if e.message.startswith("numrot API error"):
            raise
        if e.message.startswith("unmarshal response"):
            raise UpstreamError("Error en el formato de respuesta del proveedor")
        raise UpstreamError("Servicio del proveedor no disponible")

    return {"resolutions": [r.to_dict() for r in resoluciones]}
