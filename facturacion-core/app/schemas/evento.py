# app/schemas/evento.py
from pydantic import BaseModel, Field
from typing import List, Optional


class EventRegistrationRequest(BaseModel):
    """
    Registro de un evento Radian. Los campos se validan en el router para
    responder con los mensajes de la API (400 "X es requerido").
    """
    EventType: str = ""
    DocumentoNumeroCompleto: str = ""
    NombreGenerador: str = ""
    ApellidoGenerador: str = ""
    IdentificacionGenerador: str = ""
    CodigoRechazo: Optional[str] = None
    FechaGeneracionEvento: str = ""

    class Config:
        json_schema_extra = {
            "example": {
                "EventType": "ACUSE",
                "DocumentoNumeroCompleto": "SETT5604",
                "NombreGenerador": "Ana",
                "ApellidoGenerador": "Pérez",
                "IdentificacionGenerador": "1020304050",
                "FechaGeneracionEvento": "2025-01-15 10:30:00"
            }
        }


class EventResultOut(BaseModel):
    TipoEvento: str = ""
    Mensaje: str = ""
    MensajeError: str = ""
    CodigoRespuesta: str = ""


class EventRegistrationData(BaseModel):
    Code: str = ""
    NumeroDocumento: str = ""
    Resultado: List[EventResultOut] = Field(default_factory=list)
    MensajeError: str = ""


class EventRegistrationResponse(BaseModel):
    status: str
    message: str
    data: Optional[EventRegistrationData] = None
