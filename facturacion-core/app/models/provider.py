# app/models/provider.py
"""
Modelo Proveedor (formato OpenETL).

En Documento Soporte (DS) el OFE compra a un proveedor no obligado a
facturar; el servicio de facturas completa los datos del proveedor desde
esta tabla.
"""

from sqlalchemy import Column, BigInteger, Integer, String, Text, DateTime, JSON, UniqueConstraint, Index
from sqlalchemy.sql import func
from app.db.base import Base

ESTADOS = ("ACTIVO", "INACTIVO")


class Provider(Base):
    __tablename__ = "provider"
    __table_args__ = (
        UniqueConstraint(
            "ofe_identificacion", "pro_identificacion", "pro_id_personalizado",
            name="uq_provider_ofe_pro_personalizado",
        ),
        Index("idx_provider_ofe_pro", "ofe_identificacion", "pro_identificacion"),
    )

    id = Column(BigInteger().with_variant(Integer, "sqlite"), primary_key=True, autoincrement=True)

    # ==================== IDENTIFICACIÓN ====================
    ofe_identificacion = Column(String(20), nullable=False, index=True, comment="NIT del OFE sin DV")
    pro_identificacion = Column(String(20), nullable=False, index=True, comment="NIT del proveedor sin DV")
    pro_id_personalizado = Column(String(100), nullable=True)
    pro_razon_social = Column(String(255), nullable=True, index=True)
    pro_nombre_comercial = Column(String(255), nullable=True, index=True)
    pro_primer_apellido = Column(String(100), nullable=True)
    pro_segundo_apellido = Column(String(100), nullable=True)
    pro_primer_nombre = Column(String(100), nullable=True)
    pro_otros_nombres = Column(String(100), nullable=True)

    tdo_codigo = Column(String(10), nullable=False)
    toj_codigo = Column(String(10), nullable=False, comment="1 persona jurídica, 2 persona natural")

    # ==================== UBICACIÓN ====================
    pai_codigo = Column(String(10), nullable=True)
    dep_codigo = Column(String(10), nullable=True)
    mun_codigo = Column(String(10), nullable=True)
    cpo_codigo = Column(String(10), nullable=True)
    pro_direccion = Column(String(255), nullable=True)
    pro_telefono = Column(String(50), nullable=True)

    pai_codigo_domicilio_fiscal = Column(String(10), nullable=True)
    dep_codigo_domicilio_fiscal = Column(String(10), nullable=True)
    mun_codigo_domicilio_fiscal = Column(String(10), nullable=True)
    cpo_codigo_domicilio_fiscal = Column(String(10), nullable=True)
    pro_direccion_domicilio_fiscal = Column(String(255), nullable=True)

    # ==================== CONTACTO ====================
    pro_correo = Column(String(255), nullable=False)
    pro_correos_notificacion = Column(Text, nullable=True, comment="Correos separados por coma")
    pro_matricula_mercantil = Column(String(100), nullable=True)
    pro_usuarios_recepcion = Column(JSON, nullable=True, comment="Usuarios que reciben sus documentos")

    # ==================== TRIBUTARIO ====================
    rfi_codigo = Column(String(10), nullable=True)
    ref_codigo = Column(JSON, nullable=True, comment="Responsabilidades fiscales")

    estado = Column(String(20), nullable=False, default="ACTIVO", server_default="ACTIVO", index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    @property
    def nombre_completo(self) -> str:
        """Nombre comercial, razón social o nombres y apellidos de la persona natural."""
        if self.pro_nombre_comercial:
            return self.pro_nombre_comercial
        if self.pro_razon_social:
            return self.pro_razon_social
        partes = [self.pro_primer_nombre, self.pro_otros_nombres,
                  self.pro_primer_apellido, self.pro_segundo_apellido]
        return " ".join(p for p in partes if p)
