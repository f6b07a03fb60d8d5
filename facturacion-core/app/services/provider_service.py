# app/services/provider_service.py
"""
Casos de uso de Proveedores: crear, actualizar, listar y buscar.

Los mensajes de validación son los del formato OpenETL, que los integradores
muestran tal cual.
"""
import re
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from app.core.errors import ConflictError, DocumentNotFoundError, ValidationError
from app.crud.provider import (
    SEARCH_FIELDS,
    create_provider,
    get_provider,
    list_providers,
    provider_exists,
    search_providers,
    update_provider,
)
from app.models.provider import ESTADOS, Provider
from app.schemas.proveedor import ProveedorPayload
from app.utils.nit_validator import NitValidator

EMAIL_RE = re.compile(r"^[a-zA-Z0-9._%+\-]+@[a-zA-Z0-9.\-]+\.[a-zA-Z]{2,}$")

REQUIRED = ("ofe_identificacion", "pro_identificacion", "tdo_codigo", "toj_codigo", "pro_correo")

MAX_LENGTHS = {
    "ofe_identificacion": 20,
    "pro_identificacion": 20,
    "tdo_codigo": 10,
    "toj_codigo": 10,
    "pro_telefono": 50,
    "pro_direccion_domicilio_fiscal": 255,
    "pro_correo": 255,
    "pro_id_personalizado": 100,
    "pro_razon_social": 255,
    "pro_nombre_comercial": 255,
    "pro_primer_apellido": 100,
    "pro_segundo_apellido": 100,
    "pro_primer_nombre": 100,
    "pro_otros_nombres": 100,
    "pai_codigo": 10,
    "dep_codigo": 10,
    "mun_codigo": 10,
    "cpo_codigo": 10,
    "pai_codigo_domicilio_fiscal": 10,
    "dep_codigo_domicilio_fiscal": 10,
    "mun_codigo_domicilio_fiscal": 10,
    "cpo_codigo_domicilio_fiscal": 10,
    "pro_matricula_mercantil": 100,
    "rfi_codigo": 10,
    "estado": 20,
    "pro_direccion": 255,
}

# Vacíos que se guardan como NULL
BLANK_TO_NONE = ("pro_id_personalizado", "pro_razon_social", "pro_nombre_comercial",
                 "pro_telefono", "pro_direccion_domicilio_fiscal")

TITLE_CREATE = "Errores al crear el Proveedor"
TITLE_UPDATE = "Errores al actualizar el Proveedor"
MSG_NOT_FOUND = "el Id del proveedor no existe"


def _blank(value: Optional[str]) -> bool:
    return value is None or not value.strip()


def validate_payload(payload: ProveedorPayload) -> None:
    """Lanza ValidationError con el primer problema encontrado."""
    data = payload.model_dump()
    for field in REQUIRED:
        if not data[field]:
            raise ValidationError(f"{field} es requerido")

    for field, max_len in MAX_LENGTHS.items():
        value = data.get(field)
        if value and len(value) > max_len:
            raise ValidationError(f"{field} excede la longitud máxima de {max_len} caracteres")

    for field in ("ofe_identificacion", "pro_identificacion"):
        if not NitValidator.dv_valido(data[field]):
            raise ValidationError(f"{field} tiene un dígito de verificación inválido: {data[field]}")

    if not EMAIL_RE.match(payload.pro_correo):
        raise ValidationError("pro_correo tiene un formato de correo inválido")
    if payload.pro_correos_notificacion:
        correos = [c.strip() for c in payload.pro_correos_notificacion.split(",")]
        for i, correo in enumerate(correos, start=1):
            if correo and not EMAIL_RE.match(correo):
                raise ValidationError(f"pro_correos_notificacion (email {i}) tiene un formato de correo inválido")

    if payload.estado and payload.estado.upper() not in ESTADOS:
        raise ValidationError("estado debe ser 'ACTIVO' o 'INACTIVO'")

    if payload.toj_codigo == "1":
        if _blank(payload.pro_razon_social) and _blank(payload.pro_nombre_comercial):
            raise ValidationError("para persona jurídica, pro_razon_social o pro_nombre_comercial es requerido")
    elif payload.toj_codigo == "2":
        if _blank(payload.pro_primer_nombre):
            raise ValidationError("para persona natural, pro_primer_nombre es requerido")
        if _blank(payload.pro_primer_apellido):
            raise ValidationError("para persona natural, pro_primer_apellido es requerido")


def to_row(payload: ProveedorPayload) -> Dict[str, Any]:
    data = payload.model_dump()
    data["ofe_identificacion"] = NitValidator.nit_sin_dv(payload.ofe_identificacion)
    data["pro_identificacion"] = NitValidator.nit_sin_dv(payload.pro_identificacion)
    data["estado"] = (payload.estado or "ACTIVO").upper()
    for field in BLANK_TO_NONE:
        if _blank(data[field]):
            data[field] = None
    return data


class ProviderService:
    def __init__(self, db: Session):
        self.db = db

    def create(self, payload: ProveedorPayload) -> Provider:
        validate_payload(payload)
        if provider_exists(self.db, payload.ofe_identificacion, payload.pro_identificacion):
            raise ConflictError(
                f"ya existe un Proveedor con el numero de identificacion [{payload.pro_identificacion}] "
                f"para el OFE [{payload.ofe_identificacion}]",
                title=TITLE_CREATE,
            )
        return create_provider(self.db, to_row(payload))

    def update(self, ofe_identificacion: str, pro_identificacion: str, payload: ProveedorPayload) -> Provider:
        validate_payload(payload)
        provider = get_provider(self.db, ofe_identificacion, pro_identificacion)
        if provider is None:
            raise DocumentNotFoundError(MSG_NOT_FOUND, title=TITLE_UPDATE)
        return update_provider(self.db, provider, to_row(payload))

    def list(self, start: int, length: int, buscar: Optional[str], columna_orden: str, orden_direccion: str):
        """Devuelve (proveedores, total, filtrados)."""
        providers, total = list_providers(
            self.db, start=start, length=length, buscar=buscar,
            columna_orden=columna_orden or "codigo", orden_direccion=orden_direccion or "asc",
        )
        filtrados = total if (buscar or length == -1) else len(providers)
        return providers, total, filtrados

    def search(self, campo: str, valor: str, ofe: str, filtro: str) -> List[Provider]:
        if not campo:
            raise ValidationError("campoBuscar es requerido")
        if not valor:
            raise ValidationError("valorBuscar es requerido")
        if not ofe:
            raise ValidationError("valorOfe es requerido")
        if filtro not in ("exacto", "basico"):
            raise ValidationError("filtroColumnas debe ser 'exacto' o 'basico'")
        if campo not in SEARCH_FIELDS:
            raise ValidationError(f"campo de búsqueda no permitido: {campo}")

        if campo == "pro_identificacion":
            valor = NitValidator.nit_sin_dv(valor)
        return search_providers(self.db, campo, valor, ofe, exacto=filtro == "exacto")
