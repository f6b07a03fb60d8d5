# app/services/numrot/events.py
"""Eventos Radian (acuse, recibo del bien, aceptación y reclamo)."""
from __future__ import annotations
import enum
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from app.core.errors import ValidationError

EVENT_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


class EventType(str, enum.Enum):
    ACUSE = "ACUSE"
    RECIBOBIEN = "RECIBOBIEN"
    ACEPTACION = "ACEPTACION"
    RECLAMO = "RECLAMO"


RADIAN_CODES = {
    EventType.ACUSE: "030",
    EventType.RECLAMO: "031",
    EventType.RECIBOBIEN: "032",
    EventType.ACEPTACION: "033",
}

# Códigos de rechazo válidos para RECLAMO
REJECTION_CODES = {
    "01": "Documento con inconsistencias",
    "02": "Mercancía no entregada totalmente",
    "03": "Mercancía no entregada parcialmente",
    "04": "Servicio no prestado",
}


def to_radian_code(event_type: str) -> str:
    try:
        return RADIAN_CODES[EventType(event_type)]
    except ValueError:
        raise ValidationError(f"invalid event type: {event_type}")


def is_valid_event_type(event_type: str) -> bool:
    return event_type in EventType._value2member_map_


def is_valid_rejection_code(code: str) -> bool:
    return code in REJECTION_CODES


@dataclass
class RadianEvent:
    event_type: str
    document_number: str
    nombre_generador: str
    apellido_generador: str
    identificacion_generador: str
    event_generation_date: datetime
    rejection_code: Optional[str] = None

    def validate(self) -> None:
        if not is_valid_event_type(self.event_type):
            raise ValidationError(f"invalid event type: {self.event_type}")
        if not self.document_number:
            raise ValidationError("document number is required")
        if not self.nombre_generador:
            raise ValidationError("nombre generador is required")
        if not self.apellido_generador:
            raise ValidationError("apellido generador is required")
        if not self.identificacion_generador:
            raise ValidationError("identificacion generador is required")

        if self.event_type == EventType.RECLAMO.value:
            if self.rejection_code is None:
                raise ValidationError("rejection code is required for RECLAMO events")
            if not is_valid_rejection_code(self.rejection_code):
                raise ValidationError(f"invalid rejection code: {self.rejection_code}")

    @property
    def fecha_generacion(self) -> str:
        return self.event_generation_date.strftime(EVENT_DATE_FORMAT)
