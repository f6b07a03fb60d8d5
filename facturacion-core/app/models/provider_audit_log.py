# app/models/provider_audit_log.py
from sqlalchemy import Column, BigInteger, Integer, String, Text, DateTime, JSON, Index
from sqlalchemy.sql import func
from app.db.base import Base


class ProviderAuditLog(Base):
    """Traza de cada petición a un proveedor externo (Numrot) y su respuesta."""
    __tablename__ = "provider_audit_log"
    __table_args__ = (
        Index("idx_provider_operation", "provider", "operation"),
    )

    id = Column(BigInteger().with_variant(Integer, "sqlite"), primary_key=True, autoincrement=True)
    correlation_id = Column(String(255), nullable=False, index=True)
    provider = Column(String(100), nullable=False)
    operation = Column(String(100), nullable=False)
    request_method = Column(String(10), nullable=False)
    request_url = Column(Text, nullable=False)
    request_headers = Column(JSON, nullable=True)
    request_body = Column(JSON, nullable=True)
    response_status = Column(Integer, nullable=True, index=True)
    response_headers = Column(JSON, nullable=True)
    response_body = Column(JSON, nullable=True)
    duration_ms = Column(BigInteger, nullable=False, default=0)
    error_message = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), index=True)
