# app/core/errors.py
"""
Jerarquía de excepciones del servicio de facturación.

Cada excepción lleva el código HTTP con el que la API la expone. Los errores
por documento NO se lanzan: se convierten en documentos fallidos dentro del
lote (ver services/numrot/dispatch.py).
"""
from fastapi import status


class FacturacionError(Exception):
    """Excepción base del servicio."""
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    title = "Error Interno del Servidor"

    def __init__(self, message: str, errors: list[str] | None = None, title: str | None = None):
        super().__init__(message)
        self.message = message
        self.errors = errors if errors is not None else [message]
        if title:
            self.title = title


class ValidationError(FacturacionError):
    status_code = status.HTTP_400_BAD_REQUEST
    title = "Error de Validación"


class ConfigurationError(FacturacionError):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    title = "Error de Configuración"


class AuthenticationError(FacturacionError):
    """El endpoint de token rechazó las credenciales o devolvió cuerpo vacío."""
    status_code = status.HTTP_502_BAD_GATEWAY
    title = "Error de Autenticación"


class UpstreamError(FacturacionError):
    status_code = status.HTTP_502_BAD_GATEWAY
    title = "Error del Proveedor"


class UpstreamTimeoutError(UpstreamError):
    status_code = status.HTTP_504_GATEWAY_TIMEOUT


class DocumentNotFoundError(FacturacionError):
    status_code = status.HTTP_404_NOT_FOUND
    title = "Documento No Encontrado"


class PdfNotFoundError(DocumentNotFoundError):
    title = "PDF No Encontrado"


class ConflictError(FacturacionError):
    status_code = status.HTTP_409_CONFLICT
    title = "Conflicto"


class UnauthorizedError(FacturacionError):
    """Token del cliente ausente, inválido o expirado."""
    status_code = status.HTTP_401_UNAUTHORIZED
    title = "Error de Autenticación"


class CircuitBreakerOpenError(FacturacionError):
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    title = "Proveedor No Disponible"

    def __init__(self, message: str = "circuit breaker is open"):
        super().__init__(message)
