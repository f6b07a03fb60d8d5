from app.db.base import Base

# Importa modelos para que se registren en Base.metadata
from .acquirer import Acquirer, AcquirerContact
from .provider import Provider
from .provider_audit_log import ProviderAuditLog

__all__ = [
    "Acquirer",
    "AcquirerContact",
    "Provider",
    "ProviderAuditLog",
    "Base",
]
