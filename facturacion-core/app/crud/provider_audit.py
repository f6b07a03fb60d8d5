# app/crud/provider_audit.py
from sqlalchemy.orm import Session
from app.models.provider_audit_log import ProviderAuditLog
from typing import Any, Dict, List


def create_provider_audit(db: Session, entry: Dict[str, Any]) -> ProviderAuditLog:
    log = ProviderAuditLog(**entry)
    db.add(log)
    db.commit()
    db.refresh(log)
    return log


def list_provider_audits_by_correlation(db: Session, correlation_id: str) -> List[ProviderAuditLog]:
    return (
        db.query(ProviderAuditLog)
        .filter(ProviderAuditLog.correlation_id == correlation_id)
        .order_by(ProviderAuditLog.id)
        .all()
    )
