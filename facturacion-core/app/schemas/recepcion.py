# app/schemas/recepcion.py
from pydantic import BaseModel, Field
from typing import Any, Dict, List, Optional


class DocumentoEvento(BaseModel):
    cdo_cufe: str = ""
    cdo_fecha: str = ""
    cdo_observacion: str = ""
    cre_codigo: str = ""


class RegistrarEventoRequest(BaseModel):
    """Evento sobre uno o varios documentos recibidos, identificados por CUFE."""
    evento: str = ""
    documentos: List[DocumentoEvento] = Field(default_factory=list)

    class Config:
        json_schema_extra = {
            "example": {
                "evento": "ACUSE",
                "documentos": [{"cdo_cufe": "a1b2c3", "cdo_fecha": "2025-01-15", "cdo_observacion": ""}]
            }
        }


class RegistrarEventoResponse(BaseModel):
    message: str
    exitosos: List[str] = Field(default_factory=list)
    fallidos: List[str] = Field(default_factory=list)


class EstadoDocumento(BaseModel):
    estado: str
    resultado: str
    mensaje_resultado: Optional[str] = None
    archivo: str = ""
    xml: str = ""
    fecha: str = ""


class DocumentoRecibido(BaseModel):
    id: Optional[int] = None
    ofe_identificacion: str
    pro_identificacion: str
    cdo_clasificacion: str
    resolucion: Optional[str] = None
    prefijo: str
    consecutivo: str
    fecha_documento: str
    hora_documento: Optional[str] = None
    estado: str
    cufe: str
    qr: Optional[str] = None
    signaturevalue: Optional[str] = None
    ultimo_estado: Optional[EstadoDocumento] = None
    historico_estados: List[EstadoDocumento] = Field(default_factory=list)


class ConsultaDocumentosResponse(BaseModel):
    data: List[DocumentoRecibido] = Field(default_factory=list)


class ListarDocumentosResponse(BaseModel):
    status: str
    message: str
    documents: List[Dict[str, Any]] = Field(default_factory=list)
