# app/schemas/proveedor.py
from datetime import datetime
from pydantic import BaseModel, Field
from typing import List, Optional


class ProveedorPayload(BaseModel):
    """
    Cuerpo de creación y actualización (formato OpenETL).

    Todo es opcional a nivel de esquema: ProviderService valida y responde con
    los mensajes que esperan los integradores OpenETL.
    """
    ofe_identificacion: str = ""
    pro_identificacion: str = ""
    pro_id_personalizado: Optional[str] = None
    pro_razon_social: Optional[str] = None
    pro_nombre_comercial: Optional[str] = None
    pro_primer_apellido: Optional[str] = None
    pro_segundo_apellido: Optional[str] = None
    pro_primer_nombre: Optional[str] = None
    pro_otros_nombres: Optional[str] = None
    tdo_codigo: str = ""
    toj_codigo: str = ""
    pai_codigo: Optional[str] = None
    dep_codigo: Optional[str] = None
    mun_codigo: Optional[str] = None
    cpo_codigo: Optional[str] = None
    pro_direccion: Optional[str] = None
    pro_telefono: Optional[str] = None
    pai_codigo_domicilio_fiscal: Optional[str] = None
    dep_codigo_domicilio_fiscal: Optional[str] = None
    mun_codigo_domicilio_fiscal: Optional[str] = None
    cpo_codigo_domicilio_fiscal: Optional[str] = None
    pro_direccion_domicilio_fiscal: Optional[str] = None
    pro_correo: str = ""
    pro_correos_notificacion: Optional[str] = None
    pro_matricula_mercantil: Optional[str] = None
    pro_usuarios_recepcion: Optional[List[str]] = None
    rfi_codigo: Optional[str] = None
    ref_codigo: Optional[List[str]] = None
    estado: Optional[str] = None


class ProveedorRead(ProveedorPayload):
    pro_id: int = Field(validation_alias="id")
    estado: str = "ACTIVO"
    fecha_creacion: Optional[datetime] = Field(None, validation_alias="created_at")
    fecha_modificacion: Optional[datetime] = Field(None, validation_alias="updated_at")

    class Config:
        from_attributes = True


class ProveedorCreado(BaseModel):
    success: bool = True
    pro_id: int


class ProveedorActualizado(BaseModel):
    success: bool = True


class ListaProveedores(BaseModel):
    total: int
    filtrados: int
    data: List[ProveedorRead]


class BusquedaProveedores(BaseModel):
    data: List[ProveedorRead]
