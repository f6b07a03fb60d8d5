# app/schemas/adquiriente.py
from datetime import datetime
from pydantic import BaseModel, Field, field_validator
from typing import List, Optional

from app.utils.nit_validator import NitValidator

CONTACT_TYPES = ("AccountingContact", "DeliveryContact", "BuyerContact")


def _validar_correo(email: str, campo: str) -> str:
    email = email.strip()
    if "@" not in email or "." not in email.split("@")[-1]:
        raise ValueError(f"{campo} no es un correo válido: {email}")
    return email


class ContactoBase(BaseModel):
    con_nombre: str = Field(..., max_length=255)
    con_direccion: Optional[str] = Field(None, max_length=255)
    con_telefono: Optional[str] = Field(None, max_length=20)
    con_correo: Optional[str] = Field(None, max_length=255)
    con_observaciones: Optional[str] = None
    con_tipo: str = Field(..., description="AccountingContact | DeliveryContact | BuyerContact")

    @field_validator("con_tipo")
    @classmethod
    def validar_tipo(cls, v: str) -> str:
        if v not in CONTACT_TYPES:
            raise ValueError(f"con_tipo debe ser uno de: {', '.join(CONTACT_TYPES)}")
        return v

    @field_validator("con_correo")
    @classmethod
    def validar_correo(cls, v: Optional[str]) -> Optional[str]:
        return _validar_correo(v, "con_correo") if v else v


class ContactoRead(ContactoBase):
    class Config:
        from_attributes = True


class AdquirienteBase(BaseModel):
    adq_razon_social: str = Field(..., min_length=1, max_length=255)
    adq_nombre_comercial: Optional[str] = Field(None, max_length=255)
    tdo_codigo: str = Field(..., max_length=10)
    toj_codigo: str = Field(..., max_length=10)
    pai_codigo: str = Field(..., max_length=10)
    dep_codigo: Optional[str] = Field(None, max_length=10)
    dep_nombre: Optional[str] = Field(None, max_length=255)
    mun_codigo: Optional[str] = Field(None, max_length=10)
    mun_nombre: Optional[str] = Field(None, max_length=255)
    cpo_codigo: Optional[str] = Field(None, max_length=10)
    adq_direccion: Optional[str] = Field(None, max_length=255)
    adq_telefono: Optional[str] = Field(None, max_length=20)
    pai_codigo_domicilio_fiscal: Optional[str] = Field(None, max_length=10)
    dep_codigo_domicilio_fiscal: Optional[str] = Field(None, max_length=10)
    dep_nombre_domicilio_fiscal: Optional[str] = Field(None, max_length=255)
    mun_codigo_domicilio_fiscal: Optional[str] = Field(None, max_length=10)
    mun_nombre_domicilio_fiscal: Optional[str] = Field(None, max_length=255)
    cpo_codigo_domicilio_fiscal: Optional[str] = Field(None, max_length=10)
    adq_direccion_domicilio_fiscal: Optional[str] = Field(None, max_length=255)
    adq_nombre_contacto: Optional[str] = Field(None, max_length=255)
    adq_fax: Optional[str] = Field(None, max_length=20)
    adq_notas: Optional[str] = None
    adq_correo: Optional[str] = Field(None, max_length=255)
    adq_correos_notificacion: Optional[str] = None
    adq_matricula_mercantil: Optional[str] = Field(None, max_length=50)
    rfi_codigo: Optional[str] = Field(None, max_length=10)
    ref_codigo: Optional[List[str]] = None
    responsable_tributos: Optional[List[str]] = None
    contactos: List[ContactoBase] = Field(default_factory=list)

    @field_validator("adq_correo")
    @classmethod
    def validar_correo(cls, v: Optional[str]) -> Optional[str]:
        return _validar_correo(v, "adq_correo") if v else v

    @field_validator("adq_correos_notificacion")
    @classmethod
    def validar_correos_notificacion(cls, v: Optional[str]) -> Optional[str]:
        if not v:
            return v
        return ",".join(_validar_correo(e, "adq_correos_notificacion") for e in v.split(",") if e.strip())


class AdquirienteCreate(AdquirienteBase):
    ofe_identificacion: str = Field(..., min_length=1, max_length=20)
    adq_identificacion: str = Field(..., min_length=1, max_length=20)
    adq_id_personalizado: Optional[str] = Field(None, max_length=100)

    @field_validator("ofe_identificacion", "adq_identificacion")
    @classmethod
    def validar_dv(cls, v: str, info) -> str:
        if not NitValidator.dv_valido(v):
            raise ValueError(f"{info.field_name} tiene un dígito de verificación inválido: {v}")
        return v


class AdquirienteUpdate(AdquirienteBase):
    pass


class AdquirienteRead(AdquirienteBase):
    id: int
    ofe_identificacion: str
    adq_identificacion: str
    adq_id_personalizado: Optional[str] = None
    contactos: List[ContactoRead] = Field(default_factory=list)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True
