from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from typing import Optional

from app.core.errors import ValidationError
from app.db.session import get_db
from app.schemas.common import ErrorResponse
from app.schemas.proveedor import (
    BusquedaProveedores,
    ListaProveedores,
    ProveedorActualizado,
    ProveedorCreado,
    ProveedorPayload,
    ProveedorRead,
)
from app.services.provider_service import ProviderService
from app.utils.logger import logger

router = APIRouter(tags=["Proveedores"])


def get_provider_service(db: Session = Depends(get_db)) -> ProviderService:
    return ProviderService(db)


def _entero(value: Optional[str], default: int, mensaje: str, minimo: int) -> int:
    if value is None or value == "":
        return default
    try:
        numero = int(value)
    except ValueError:
        raise ValidationError(mensaje) from None
    if numero < minimo:
        raise ValidationError(mensaje)
    return numero


@router.get(
    "",
    response_model=ListaProveedores,
    summary="Listar proveedores",
    description="Paginado estilo DataTables: start, length (-1 trae todos), buscar, columnaOrden, ordenDireccion.",
)
def list_all(
    start: Optional[str] = Query(None),
    length: Optional[str] = Query(None),
    buscar: Optional[str] = Query(None, description="NIT, razón social, nombre comercial o nombre"),
    columnaOrden: str = Query("codigo"),
    ordenDireccion: str = Query("asc"),
    service: ProviderService = Depends(get_provider_service),
):
    inicio = _entero(start, 0, "start debe ser un número entero no negativo", 0)
    cantidad = _entero(length, 10, "length debe ser un número entero (-1 para traer todos)", -1)
    proveedores, total, filtrados = service.list(inicio, cantidad, buscar, columnaOrden, ordenDireccion)
    logger.info("Consulta de proveedores", extra={"total": total, "buscar": buscar})
    return ListaProveedores(
        total=total,
        filtrados=filtrados,
        data=[ProveedorRead.model_validate(p) for p in proveedores],
    )


@router.get(
    "/busqueda/{campo_buscar}/valor/{valor_buscar}/ofe/{valor_ofe}/filtro/{filtro_columnas}",
    response_model=BusquedaProveedores,
    summary="Buscar proveedores de un OFE",
    description="filtro 'exacto' compara igualdad; 'basico' busca el valor contenido, sin distinguir mayúsculas.",
    responses={400: {"model": ErrorResponse}},
)
def search(
    campo_buscar: str,
    valor_buscar: str,
    valor_ofe: str,
    filtro_columnas: str,
    service: ProviderService = Depends(get_provider_service),
):
    proveedores = service.search(campo_buscar, valor_buscar, valor_ofe, filtro_columnas)
    return BusquedaProveedores(data=[ProveedorRead.model_validate(p) for p in proveedores])


@router.post(
    "",
    response_model=ProveedorCreado,
    summary="Crear proveedor",
    description="Registra un proveedor de Documento Soporte para un OFE. Los NITs se guardan sin DV.",
    responses={400: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)
def create(payload: ProveedorPayload, service: ProviderService = Depends(get_provider_service)):
    proveedor = service.create(payload)
    return ProveedorCreado(pro_id=proveedor.id)


@router.put(
    "/{ofe_identificacion}/{pro_identificacion}",
    response_model=ProveedorActualizado,
    summary="Actualizar proveedor",
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
)
def update(
    ofe_identificacion: str,
    pro_identificacion: str,
    payload: ProveedorPayload,
    service: ProviderService = Depends(get_provider_service),
):
    service.update(ofe_identificacion, pro_identificacion, payload)
    return ProveedorActualizado()
