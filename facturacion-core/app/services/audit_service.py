# app/services/audit_service.py
"""
Auditoría de las llamadas al proveedor tecnológico.

Cada intercambio HTTP con Numrot se guarda en provider_audit_log con los
secretos enmascarados. Un fallo al auditar solo se registra en el log.
"""
import json
import logging
from typing import Any, Callable, Dict, Optional

from sqlalchemy.orm import Session

from app.core.config import Settings
from app.crud.provider_audit import create_provider_audit

logger = logging.getLogger(__name__)

REDACTED = "***"
SENSITIVE_HEADERS = {"authorization"}
SENSITIVE_FIELDS = {"password", "key", "secret", "token", "access_token"}
# La respuesta de estas operaciones es el bearer token en texto plano
TOKEN_OPERATIONS = {"token"}


def redact_headers(headers: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    if headers is None:
        return None
    return {k: (REDACTED if k.lower() in SENSITIVE_HEADERS else v) for k, v in headers.items()}


def redact_body(body: Any) -> Any:
    """Enmascara valores sensibles en cuerpos JSON (dict/list anidados)."""
    if isinstance(body, dict):
        return {
            k: (REDACTED if str(k).lower() in SENSITIVE_FIELDS else redact_body(v))
            for k, v in body.items()
        }
    if isinstance(body, list):
        return [redact_body(v) for v in body]
    return body


def _to_json_value(body: Any, max_size: int) -> Any:
    """
    Normaliza el cuerpo para la columna JSON: bytes -> JSON o texto,
    truncando el texto a max_size caracteres.
    """
    if body is None:
        return None
    if isinstance(body, (bytes, bytearray)):
        text = bytes(body).decode("utf-8", errors="replace")
        try:
            body = json.loads(text)
        except ValueError:
            return {"raw": text[:max_size], "truncated": len(text) > max_size}

    body = redact_body(body)
    serialized = json.dumps(body, ensure_ascii=False, default=str)
    if len(serialized) > max_size:
        return {"raw": serialized[:max_size], "truncated": True}
    return body


class ProviderAuditSink:
    """Implementa AuditSink persistiendo en provider_audit_log."""

    def __init__(
        self,
        session_factory: Callable[[], Session],
        log_request_body: bool = True,
        log_response_body: bool = True,
        max_body_size: int = 102400,
    ):
        self.session_factory = session_factory
        self.log_request_body = log_request_body
        self.log_response_body = log_response_body
        self.max_body_size = max_body_size

    @classmethod
    def from_settings(cls, settings: Settings, session_factory: Callable[[], Session]) -> "ProviderAuditSink":
        return cls(
            session_factory,
            log_request_body=settings.audit_log_request_body,
            log_response_body=settings.audit_log_response_body,
            max_body_size=settings.audit_max_body_size,
        )

    def build_entry(self, entry: Dict[str, Any]) -> Dict[str, Any]:
        data = dict(entry)
        data["request_headers"] = redact_headers(entry.get("request_headers"))
        data["response_headers"] = redact_headers(entry.get("response_headers"))
        data["request_body"] = (
            _to_json_value(entry.get("request_body"), self.max_body_size) if self.log_request_body else None
        )
        data["response_body"] = (
            _to_json_value(entry.get("response_body"), self.max_body_size) if self.log_response_body else None
        )
        if data["response_body"] is not None and entry.get("operation") in TOKEN_OPERATIONS:
            data["response_body"] = {"raw": REDACTED, "truncated": False}
        data["error_message"] = entry.get("error_message") or None
        return data

    def record(self, entry: Dict[str, Any]) -> None:
        db = self.session_factory()
        try:
            create_provider_audit(db, self.build_entry(entry))
        except Exception as e:
            db.rollback()
            logger.error(
                "No se pudo guardar la auditoría del proveedor: %s", e,
                extra={"operation": entry.get("operation"), "correlation_id": entry.get("correlation_id")},
            )
        finally:
            db.close()
