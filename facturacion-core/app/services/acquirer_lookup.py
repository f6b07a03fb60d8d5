# app/services/acquirer_lookup.py
"""
Búsqueda de adquirientes y proveedores para el transformador y el servicio de
facturas.

Se usa desde los hilos del motor de envío, por eso cada búsqueda abre y cierra
su propia sesión en lugar de compartir la del request.
"""
import logging
from typing import Callable, Optional

from sqlalchemy.orm import Session

from app.crud.acquirer import get_acquirer
from app.crud.provider import get_provider
from app.models.acquirer import Acquirer
from app.models.provider import Provider

logger = logging.getLogger(__name__)


class SqlAcquirerLookup:
    def __init__(self, session_factory: Callable[[], Session]):
        self.session_factory = session_factory

    def find(self, ofe_identificacion: str, adq_identificacion: str) -> Optional[Acquirer]:
        db = self.session_factory()
        try:
            acquirer = get_acquirer(db, ofe_identificacion, adq_identificacion)
            if acquirer is not None:
                # contactos se carga con selectin; se fuerza antes de cerrar la sesión
                _ = list(acquirer.contactos)
                db.expunge(acquirer)
            return acquirer
        finally:
            db.close()


class SqlProviderLookup:
    def __init__(self, session_factory: Callable[[], Session]):
        self.session_factory = session_factory

    def find(self, ofe_identificacion: str, pro_identificacion: str) -> Optional[Provider]:
        db = self.session_factory()
        try:
            provider = get_provider(db, ofe_identificacion, pro_identificacion)
            if provider is not None:
                db.expunge(provider)
            return provider
        finally:
            db.close()
