"""
Registro y consulta de documentos electrónicos (FC, NC, ND, DS).
"""
import logging
from typing import Optional

from fastapi import APIRouter, Body, Depends, Form, Query, status
from fastapi.responses import JSONResponse

from app.core.dependencies import get_invoice_service, get_numrot_client
from app.core.errors import (
    AuthenticationError,
    DocumentNotFoundError,
    FacturacionError,
    PdfNotFoundError,
    UpstreamError,
    ValidationError,
)
from app.schemas.common import ErrorResponse
from app.schemas.documento import (
    DocumentByNumberRequest,
    DocumentDownloadRequest,
    DocumentLinksResponse,
    DocumentQueryRequest,
    DocumentQueryResponse,
    DocumentRegistrationRequest,
    DocumentRegistrationResponse,
)
from app.services.invoice_service import InvoiceService
from app.services.numrot import NumrotClient

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Documentos"])


@router.post(
    "",
    response_model=DocumentRegistrationResponse,
    status_code=status.HTTP_200_OK,
    summary="Registrar documentos",
    description=(
        "Registra documentos de un único tipo (FC, NC, ND o DS). Cada documento se envía "
        "a Numrot por separado; los que fallan se reportan en documentos_fallidos."
    ),
    responses={400: {"model": ErrorResponse}, 502: {"model": ErrorResponse}},
)
def registrar_documentos(
    payload: DocumentRegistrationRequest,
    service: InvoiceService = Depends(get_invoice_service),
):
    return service.register_documents(payload).to_dict()


@router.post(
    "/consulta",
    response_model=DocumentQueryResponse,
    summary="Consultar documentos emitidos",
    description="Documentos emitidos por la empresa entre InitialDate y FinalDate (inclusive).",
    responses={400: {"model": ErrorResponse}, 502: {"model": ErrorResponse}},
)
def consultar_documentos(
    payload: DocumentQueryRequest,
    service: InvoiceService = Depends(get_invoice_service),
):
    documentos = service.get_documents(payload)
    return {
        "status": "200",
        "message": "Exitoso",
        "total": len(documentos),
        "data": [d.to_dict() for d in documentos],
    }


def _listado(documentos) -> dict:
    return {
        "status": "200",
        "message": "Exitoso",
        "total": len(documentos),
        "data": [d.to_dict() for d in documentos],
    }


def _sin_enlaces(status_code: int) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={
        "mensaje": "Error en la peticion", "status": status_code, "urlPDF": None, "urlXML": None,
    })


def _enlaces(documento) -> dict:
    return {
        "mensaje": "Exitoso",
        "status": status.HTTP_200_OK,
        "urlPDF": documento.url_pdf,
        "urlXML": documento.url_xml,
        "cufe": documento.cufe,
    }


@router.post(
    "/consulta/numero",
    response_model=DocumentQueryResponse,
    summary="Consultar documento recibido por número",
    responses={400: {"model": ErrorResponse}, 502: {"model": ErrorResponse}},
)
def consultar_por_numero(
    payload: DocumentByNumberRequest,
    service: InvoiceService = Depends(get_invoice_service),
):
    return _listado(service.get_document_by_number(payload))


@router.post(
    "/recibidos",
    response_model=None,
    summary="Consultar documentos recibidos",
    description=(
        "Documentos recibidos de proveedores entre InitialDate y FinalDate. Con download=1 "
        "devuelve los enlaces de PDF y XML del primer documento."
    ),
    responses={400: {"model": ErrorResponse}, 502: {"model": ErrorResponse}},
)
def consultar_recibidos(
    payload: DocumentQueryRequest,
    download: Optional[str] = Query(None),
    service: InvoiceService = Depends(get_invoice_service),
):
    documentos = service.get_received_documents(payload)
    if download == "1":
        if not documentos:
            raise ValidationError("No hay documentos para descargar")
        return _enlaces(documentos[0])
    return _listado(documentos)


@router.api_route(
    "/descarga",
    methods=["GET", "POST"],
    response_model=DocumentLinksResponse,
    summary="Enlaces de PDF y XML de un documento recibido",
    description="Busca el CUFE entre los documentos recibidos por el NIT en la fecha indicada.",
)
def descargar_por_cufe(
    cufe: str = Query(""),
    nit: str = Query(""),
    fecha: str = Query(""),
    payload: Optional[DocumentDownloadRequest] = Body(None),
    service: InvoiceService = Depends(get_invoice_service),
):
    cufe = (payload.id if payload else "") or cufe
    if not cufe:
        raise ValidationError("id (cufe) es requerido")
    try:
        documento = service.find_received_document(nit, cufe, fecha)
    except ValidationError as e:
        logger.warning("Consulta de recibidos inválida para descarga: %s", e.message)
        return _sin_enlaces(status.HTTP_404_NOT_FOUND)
    except FacturacionError as e:
        logger.error("Error consultando recibidos para descarga: %s", e.message)
        return _sin_enlaces(status.HTTP_502_BAD_GATEWAY)
    if documento is None:
        return _sin_enlaces(status.HTTP_404_NOT_FOUND)
    return _enlaces(documento)


@router.post(
    "/pdf",
    summary="PDF de un documento desde Numrot",
    description="Consulta searchestadosdian con prefijo + consecutivo y devuelve el PDF en base64.",
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}, 502: {"model": ErrorResponse}},
)
def descargar_pdf(
    ofe_identificacion: str = Form(""),
    prefijo: str = Form(""),
    consecutivo: str = Form(""),
    client: NumrotClient = Depends(get_numrot_client),
):
    for campo, valor in (("ofe_identificacion", ofe_identificacion), ("prefijo", prefijo),
                         ("consecutivo", consecutivo)):
        if not valor:
            raise ValidationError(f"{campo} es requerido")

    documento = prefijo.strip() + consecutivo.strip()
    try:
        estado = client.search_estados_dian(ofe_identificacion, documento)
    except DocumentNotFoundError as e:
        raise DocumentNotFoundError(e.message, ["No se encontró el documento en Numrot"]) from e
    except (AuthenticationError, UpstreamError) as e:
        logger.error("Error consultando PDF en Numrot: %s", e.message, extra={"documento": documento})
        raise UpstreamError(e.message, ["Error al consultar documento en Numrot"]) from e

    if not estado.document:
        raise PdfNotFoundError(f"pdf not found: {documento}", ["El documento no contiene un PDF"])
    return {"data": {"pdf": estado.document}}


@router.get(
    "/info/{nit}/{cufe}",
    summary="Detalle de un documento por CUFE",
    responses={404: {"model": ErrorResponse}, 502: {"model": ErrorResponse}},
)
def informacion_documento(nit: str, cufe: str, client: NumrotClient = Depends(get_numrot_client)):
    return client.get_document_info(nit, cufe).to_dict()


@router.get(
    "/estados/{nit}/{documento}",
    summary="Estado DIAN de un documento por número",
    responses={404: {"model": ErrorResponse}, 502: {"model": ErrorResponse}},
)
def estados_dian(nit: str, documento: str, client: NumrotClient = Depends(get_numrot_client)):
    return client.search_estados_dian(nit, documento).to_dict()
