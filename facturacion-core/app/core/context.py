# app/core/context.py
"""ID de correlación de la petición HTTP en curso."""
import uuid
from contextvars import ContextVar
from typing import Optional

_correlation_id: ContextVar[Optional[str]] = ContextVar("correlation_id", default=None)


def get_correlation_id() -> Optional[str]:
    return _correlation_id.get()


def set_correlation_id(value: str):
    """Fija el ID y devuelve el token para restaurar el valor anterior."""
    return _correlation_id.set(value)


def reset_correlation_id(token) -> None:
    _correlation_id.reset(token)


def correlation_id_or_new() -> str:
    return _correlation_id.get() or str(uuid.uuid4())
