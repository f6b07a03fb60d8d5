# app/services/event_service.py
"""Registro de eventos Radian (acuse, recibo, aceptación, reclamo) en Numrot."""
import logging

from app.core.errors import ConfigurationError
from app.services.numrot.client import NumrotClient
from app.services.numrot.events import RadianEvent
from app.services.numrot.models import EventRegistrationResult

logger = logging.getLogger(__name__)


class EventService:
    def __init__(self, client: NumrotClient, emisor_nit: str, razon_social: str):
        self.client = client
        self.emisor_nit = emisor_nit
        self.razon_social = razon_social

    def register_event(self, event: RadianEvent) -> EventRegistrationResult:
        """
        Valida el evento y lo registra a nombre del emisor configurado.

        Raises:
            ValidationError: evento inválido o Key/Secret sin configurar
            ConfigurationError: NIT o razón social del emisor sin configurar
            DocumentNotFoundError: Numrot no encuentra el documento
        """
        event.validate()

        if not self.emisor_nit:
            raise ConfigurationError("emisor nit is not configured")
        if not self.razon_social:
            raise ConfigurationError("razon social is not configured")

        logger.info(
            "Registrando evento %s", event.event_type,
            extra={"documento": event.document_number, "emisor": self.emisor_nit},
        )
        return self.client.register_event(event, self.emisor_nit, self.razon_social)
