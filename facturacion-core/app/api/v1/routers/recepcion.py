"""
Recepción de documentos de proveedores con el contrato del sistema anterior:
consulta por CUFE, por fecha o por datos del proveedor, listado y registro
de eventos sobre varios CUFE.
"""
from typing import Dict

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from app.core.dependencies import get_reception_service
from app.schemas.common import ErrorResponse
from app.schemas.recepcion import (
    ConsultaDocumentosResponse,
    ListarDocumentosResponse,
    RegistrarEventoRequest,
    RegistrarEventoResponse,
)
from app.services.reception_service import ReceptionService

router = APIRouter(tags=["Recepción"])

FORM_TYPES = ("application/x-www-form-urlencoded", "multipart/form-data")


async def legacy_params(request: Request) -> Dict[str, str]:
    """Parámetros por query string con respaldo en el formulario."""
    params: Dict[str, str] = {}
    if request.headers.get("content-type", "").startswith(FORM_TYPES):
        form = await request.form()
        params.update({k: v for k, v in form.items() if isinstance(v, str)})
    params.update({k: v for k, v in request.query_params.items() if v})
    return params


@router.post(
    "/consulta-documentos",
    response_model=ConsultaDocumentosResponse,
    summary="Consultar documentos recibidos",
    description=(
        "Con cufe consulta un documento; con fecha (o fecha_desde y fecha_hasta) los recibidos "
        "en el rango; en otro caso requiere proveedor, consecutivo, prefijo y ofe."
    ),
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}, 502: {"model": ErrorResponse}},
)
def consulta_documentos(
    params: Dict[str, str] = Depends(legacy_params),
    service: ReceptionService = Depends(get_reception_service),
):
    if params.get("cufe"):
        return {"data": service.consulta_por_cufe(params["cufe"])}

    fecha = params.get("fecha", "")
    desde, hasta = params.get("fecha_desde", ""), params.get("fecha_hasta", "")
    if fecha or (desde and hasta):
        return {"data": service.consulta_por_fecha(fecha, desde, hasta)}

    return {"data": service.consulta_por_proveedor(
        params.get("proveedor", ""), params.get("consecutivo", ""),
        params.get("prefijo", ""), params.get("ofe", ""),
    )}


@router.post(
    "/listar-documentos",
    response_model=ListarDocumentosResponse,
    summary="Listar documentos recibidos",
    responses={400: {"model": ErrorResponse}, 502: {"model": ErrorResponse}},
)
def listar_documentos(
    params: Dict[str, str] = Depends(legacy_params),
    service: ReceptionService = Depends(get_reception_service),
):
    documents = service.listar_documentos(params.get("fecha_desde", ""), params.get("fecha_hasta", ""))
    return {"status": "200", "message": "Exitoso", "documents": documents}


@router.post(
    "/registrar-evento",
    response_model=RegistrarEventoResponse,
    summary="Registrar evento sobre documentos recibidos",
    description=(
        "Registra ACUSE, RECIBOBIEN, ACEPTACION o RECLAMO para cada CUFE. Responde 200 si algún "
        "documento se agendó, 409 si todos estaban procesados y 400 ante datos inválidos."
    ),
    responses={400: {"model": RegistrarEventoResponse}, 409: {"model": RegistrarEventoResponse}},
)
def registrar_evento(
    payload: RegistrarEventoRequest,
    service: ReceptionService = Depends(get_reception_service),
):
    status_code, body = service.registrar_evento(
        payload.evento, [d.model_dump() for d in payload.documentos],
    )
    return JSONResponse(status_code=status_code, content=body)
