# app/models/acquirer.py
"""
Modelo Adquiriente (formato OpenETL).

El transformador de documentos lo consulta para completar el bloque
AccountingCustomerParty (tipo de documento, organización jurídica, contacto
y correos) cuando el documento no trae esos datos.
"""

from sqlalchemy import Column, BigInteger, Integer, String, Text, DateTime, JSON, ForeignKey, UniqueConstraint, Index
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from app.db.base import Base


class Acquirer(Base):
    __tablename__ = "acquirer"
    __table_args__ = (
        UniqueConstraint(
            "ofe_identificacion", "adq_identificacion", "adq_id_personalizado",
            name="uq_acquirer_ofe_adq_personalizado",
        ),
        Index("idx_acquirer_ofe_adq", "ofe_identificacion", "adq_identificacion"),
    )

    id = Column(BigInteger().with_variant(Integer, "sqlite"), primary_key=True, autoincrement=True)

    # ==================== IDENTIFICACIÓN ====================
    ofe_identificacion = Column(String(20), nullable=False, index=True, comment="NIT del OFE sin DV")
    adq_identificacion = Column(String(20), nullable=False, index=True, comment="NIT del adquiriente sin DV")
    adq_id_personalizado = Column(String(100), nullable=True)
    adq_razon_social = Column(String(255), nullable=False)
    adq_nombre_comercial = Column(String(255), nullable=True)

    tdo_codigo = Column(String(10), nullable=False, comment="Tipo de documento (31 = NIT)")
    toj_codigo = Column(String(10), nullable=False, comment="Tipo de organización jurídica (1 jurídica, 2 natural)")

    # ==================== UBICACIÓN ====================
    pai_codigo = Column(String(10), nullable=False)
    dep_codigo = Column(String(10), nullable=True)
    dep_nombre = Column(String(255), nullable=True)
    mun_codigo = Column(String(10), nullable=True)
    mun_nombre = Column(String(255), nullable=True)
    cpo_codigo = Column(String(10), nullable=True)
    adq_direccion = Column(String(255), nullable=True)
    adq_telefono = Column(String(20), nullable=True)

    # Domicilio fiscal (tiene prioridad al completar documentos)
    pai_codigo_domicilio_fiscal = Column(String(10), nullable=True)
    dep_codigo_domicilio_fiscal = Column(String(10), nullable=True)
    dep_nombre_domicilio_fiscal = Column(String(255), nullable=True)
    mun_codigo_domicilio_fiscal = Column(String(10), nullable=True)
    mun_nombre_domicilio_fiscal = Column(String(255), nullable=True)
    cpo_codigo_domicilio_fiscal = Column(String(10), nullable=True)
    adq_direccion_domicilio_fiscal = Column(String(255), nullable=True)

    # ==================== CONTACTO ====================
    adq_nombre_contacto = Column(String(255), nullable=True)
    adq_fax = Column(String(20), nullable=True)
    adq_notas = Column(Text, nullable=True)
    adq_correo = Column(String(255), nullable=True)
    adq_correos_notificacion = Column(Text, nullable=True, comment="Correos separados por coma")
    adq_matricula_mercantil = Column(String(50), nullable=True)

    # ==================== TRIBUTARIO ====================
    rfi_codigo = Column(String(10), nullable=True)
    ref_codigo = Column(JSON, nullable=True, comment="Responsabilidades fiscales")
    responsable_tributos = Column(JSON, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    contactos = relationship(
        "AcquirerContact",
        back_populates="acquirer",
        cascade="all, delete-orphan",
        lazy="selectin",
    )


class AcquirerContact(Base):
    __tablename__ = "acquirer_contact"

    id = Column(BigInteger().with_variant(Integer, "sqlite"), primary_key=True, autoincrement=True)
    acquirer_id = Column(BigInteger, ForeignKey("acquirer.id", ondelete="CASCADE"), nullable=False, index=True)
    con_nombre = Column(String(255), nullable=False)
    con_direccion = Column(String(255), nullable=True)
    con_telefono = Column(String(20), nullable=True)
    con_correo = Column(String(255), nullable=True)
    con_observaciones = Column(Text, nullable=True)
    con_tipo = Column(String(50), nullable=False, comment="AccountingContact | DeliveryContact | BuyerContact")
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    acquirer = relationship("Acquirer", back_populates="contactos")
