"""
Registro de eventos Radian sobre documentos recibidos.
"""
import logging
from datetime import datetime

from fastapi import APIRouter, Depends

from app.core.config import settings
from app.core.dependencies import get_event_service
from app.core.errors import AuthenticationError, ConfigurationError, UpstreamError, ValidationError
from app.schemas.common import ErrorResponse
from app.schemas.evento import EventRegistrationRequest, EventRegistrationResponse
from app.services.event_service import EventService
from app.services.numrot.events import EVENT_DATE_FORMAT, RadianEvent, is_valid_event_type, is_valid_rejection_code

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Eventos"])


def _con_generador(payload: EventRegistrationRequest) -> EventRegistrationRequest:
    """Completa los datos del generador con los configurados si no vienen en la petición."""
    return payload.model_copy(update={
        "NombreGenerador": payload.NombreGenerador or settings.numrot_generator_nombre,
        "ApellidoGenerador": payload.ApellidoGenerador or settings.numrot_generator_apellido,
        "IdentificacionGenerador": payload.IdentificacionGenerador or settings.numrot_generator_identificacion,
    })


def _to_event(payload: EventRegistrationRequest) -> RadianEvent:
    for campo in (
        "EventType",
        "DocumentoNumeroCompleto",
        "NombreGenerador",
        "ApellidoGenerador",
        "IdentificacionGenerador",
        "FechaGeneracionEvento",
    ):
        if not getattr(payload, campo):
            raise ValidationError(f"{campo} es requerido")

    if not is_valid_event_type(payload.EventType):
        raise ValidationError("EventType inválido. Debe ser uno de: ACUSE, RECIBOBIEN, ACEPTACION, RECLAMO")

    try:
        fecha = datetime.strptime(payload.FechaGeneracionEvento, EVENT_DATE_FORMAT)
    except ValueError:
        raise ValidationError("FechaGeneracionEvento debe tener el formato YYYY-MM-DD HH:MM:SS")

    codigo_rechazo = payload.CodigoRechazo or None
    if codigo_rechazo is not None and not is_valid_rejection_code(codigo_rechazo):
        raise ValidationError("CodigoRechazo inválido. Debe ser uno de: 01, 02, 03, 04")

    return RadianEvent(
        event_type=payload.EventType,
        document_number=payload.DocumentoNumeroCompleto,
        nombre_generador=payload.NombreGenerador,
        apellido_generador=payload.ApellidoGenerador,
        identificacion_generador=payload.IdentificacionGenerador,
        event_generation_date=fecha,
        rejection_code=codigo_rechazo,
    )


@router.post(
    "",
    response_model=EventRegistrationResponse,
    summary="Registrar evento Radian",
    description="Registra ACUSE, RECIBOBIEN, ACEPTACION o RECLAMO (este último requiere CodigoRechazo).",
    responses={
        400: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
        502: {"model": ErrorResponse},
    },
)
def registrar_evento(
    payload: EventRegistrationRequest,
    service: EventService = Depends(get_event_service),
):
    event = _to_event(_con_generador(payload))
    try:
        result = service.register_event(event)
    except ConfigurationError as e:
        logger.error("Servicio de eventos sin configurar: %s", e.message)
        raise ConfigurationError("Error de configuración del servicio")
    except AuthenticationError:
        raise
    except UpstreamError as e:
        logger.error("Error del proveedor registrando evento: %s", e.message,
                     extra={"documento": event.document_number})
        raise UpstreamError("Servicio del proveedor no disponible")

    return {"status": "200", "message": "Exitoso", "data": result.to_dict()}
