# app/core/dependencies.py
"""
Dependencias compartidas por los routers.

El cliente Numrot es único por proceso: sus limitadores, circuit breaker y
caché de token deben ser compartidos por todas las peticiones.
"""
import threading
from typing import Optional

from fastapi import Depends

from app.core.config import settings
from app.db.session import SessionLocal
from app.services.acquirer_lookup import SqlAcquirerLookup, SqlProviderLookup
from app.services.audit_service import ProviderAuditSink
from app.services.dane_client import DaneClient
from app.services.event_service import EventService
from app.services.invoice_service import InvoiceService
from app.services.numrot import NumrotClient
from app.services.reception_service import ReceptionService
from app.services.resolution_service import ResolutionService
from app.utils.logger import logger

_client: Optional[NumrotClient] = None
_client_lock = threading.Lock()
_dane: Optional[DaneClient] = None


def get_acquirer_lookup() -> SqlAcquirerLookup:
    return SqlAcquirerLookup(SessionLocal)


def get_provider_lookup() -> SqlProviderLookup:
    return SqlProviderLookup(SessionLocal)


def get_dane_client() -> DaneClient:
    global _dane
    with _client_lock:
        if _dane is None:
            _dane = DaneClient(settings.dane_base_url)
        return _dane


def init_numrot_client() -> NumrotClient:
    global _client
    with _client_lock:
        if _client is None:
            audit = ProviderAuditSink.from_settings(settings, SessionLocal) if settings.audit_enabled else None
            _client = NumrotClient.from_settings(settings, acquirers=get_acquirer_lookup(), audit=audit)
            logger.info("Cliente Numrot inicializado", extra={"audit": settings.audit_enabled})
        return _client


def close_numrot_client() -> None:
    global _client, _dane
    with _client_lock:
        if _client is not None:
            _client.close()
            _client = None
        if _dane is not None:
            _dane.close()
            _dane = None


def get_numrot_client() -> NumrotClient:
    return init_numrot_client()


def get_invoice_service(
    client: NumrotClient = Depends(get_numrot_client),
    acquirers: SqlAcquirerLookup = Depends(get_acquirer_lookup),
    providers: SqlProviderLookup = Depends(get_provider_lookup),
) -> InvoiceService:
    return InvoiceService(client, acquirers=acquirers, settings=settings, providers=providers)


def get_event_service(client: NumrotClient = Depends(get_numrot_client)) -> EventService:
    return EventService(client, settings.numrot_emisor_nit, settings.numrot_razon_social)


def get_resolution_service(client: NumrotClient = Depends(get_numrot_client)) -> ResolutionService:
    return ResolutionService(client)


def get_reception_service(client: NumrotClient = Depends(get_numrot_client)) -> ReceptionService:
    return ReceptionService(
        client,
        settings.numrot_emisor_nit,
        generator_nombre=settings.numrot_generator_nombre,
        generator_apellido=settings.numrot_generator_apellido,
        generator_identificacion=settings.numrot_generator_identificacion,
    )
