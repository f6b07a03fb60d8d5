# app/services/reception_service.py
"""
Recepción de documentos de proveedores en el formato del sistema anterior.

Las consultas combinan DocumentsReceived / GetDocumentByNumber (listado y
enlaces) con DocumentInfo (detalle, estado y eventos) y devuelven cada
documento con ultimo_estado e historico_estados. El registro de eventos
procesa varios CUFE y resume el resultado en mensajes exitosos/fallidos.
"""
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional, Tuple

from fastapi import status

from app.core.errors import (
    AuthenticationError,
    ConfigurationError,
    DocumentNotFoundError,
    FacturacionError,
    UpstreamError,
    ValidationError,
)
from app.services.numrot.client import NumrotClient
from app.services.numrot.events import RadianEvent, is_valid_event_type, is_valid_rejection_code
from app.services.numrot.models import DocumentInfo, EventRegistrationResult
from app.services.numrot.reconciler import colombia_tz

logger = logging.getLogger(__name__)

DATE_FORMAT = "%Y-%m-%d"

CLASIFICACIONES = {"01": "FC", "02": "FC", "03": "NC", "04": "ND", "05": "DS"}
EVENT_STATES = {"030": "ACUSE", "031": "RECLAMO", "032": "RECIBOBIEN", "033": "ACEPTACION"}

MSG_AUTH = "Error de autenticación con el proveedor"
MSG_INVALID_EVENT = "Error al procesar el evento: Datos inválidos"
MSG_ALL_SCHEDULED = "Documentos agendados con exito."
MSG_DUPLICATE = "El documento ya fue procesado anteriormente"
DUPLICATE_MARKERS = ("ya", "already", "duplicado", "duplicate", "procesado anteriormente")

# Resultado de Numrot por evento
CODE_OK = "1000"
CODE_REJECTED = "1001"
CODE_INVALID_EVENT = "1004"


# ==================== FORMATO ANTERIOR ====================

def clasificacion(document_type_id: str) -> str:
    return CLASIFICACIONES.get(document_type_id, "FC")


def _estado_resultado(estado: Dict[str, str]) -> Tuple[str, str]:
    return (estado.get("Estado") or estado.get("estado") or "",
            estado.get("Resultado") or estado.get("resultado") or "")


def _event_state(evento: Dict[str, Any], archivo: str, xml: str) -> Dict[str, Any]:
    numero = evento.get("NumeroDocumento") if isinstance(evento.get("NumeroDocumento"), dict) else {}
    validaciones = evento.get("ValidacionesDoc") if isinstance(evento.get("ValidacionesDoc"), list) else []
    invalid = any(isinstance(v, dict) and v.get("IsValida") is False for v in validaciones)
    codigo = evento.get("Codigo")
    return {
        "estado": EVENT_STATES.get(codigo, codigo) if isinstance(codigo, str) else "",
        "resultado": "FALLIDO" if invalid else "EXITOSO",
        "mensaje_resultado": evento.get("Descripcion") or None,
        "archivo": archivo,
        "xml": xml,
        "fecha": numero.get("FechaFirma") or numero.get("FechaEmision") or "",
    }


def to_legacy(document: DocumentInfo, archivo: str = "", xml: str = "") -> Dict[str, Any]:
    """
    Documento en el formato de consulta-documentos.

    `archivo` y `xml` son el PDF y el XML en base64 cuando se conocen sus
    enlaces; se repiten en cada estado.
    """
    estado, resultado = _estado_resultado(document.estado)
    estado = estado or "ACTIVO"

    historico = [_event_state(e, archivo, xml) for e in document.eventos if isinstance(e, dict)]
    if historico:
        ultimo = dict(historico[-1], mensaje_resultado=historico[-1]["mensaje_resultado"] or "")
    else:
        ultimo = {"estado": estado, "resultado": resultado, "mensaje_resultado": "",
                  "archivo": archivo, "xml": xml, "fecha": ""}

    return {
        "id": None,
        "ofe_identificacion": document.receptor_nit,
        "pro_identificacion": document.emisor_nit,
        "cdo_clasificacion": clasificacion(document.document_type_id),
        "resolucion": document.resolucion or None,
        "prefijo": document.serie,
        "consecutivo": document.folio,
        "fecha_documento": document.fecha_emision,
        "hora_documento": document.hora_documento or None,
        "estado": estado,
        "cufe": document.uuid,
        "qr": document.qr or None,
        "signaturevalue": document.signature_value or None,
        "ultimo_estado": ultimo,
        "historico_estados": historico,
    }


# ==================== REGISTRO DE EVENTOS ====================

@dataclass
class DocumentEventResult:
    cufe: str
    status: str  # success, partial, duplicate, error
    document_number: str = ""
    event_result: Optional[EventRegistrationResult] = None
    stage: str = ""
    error_code: str = ""
    description: str = ""
    not_found: bool = False
    invalid_event: bool = False

    @property
    def label(self) -> str:
        return self.document_number or self.cufe


def _error(cufe: str, stage: str, description: str, error_code: str = "", **extra) -> DocumentEventResult:
    return DocumentEventResult(cufe=cufe, status="error", stage=stage, error_code=error_code,
                               description=description, **extra)


def analyze_event_result(result: EventRegistrationResult) -> Tuple[str, bool]:
    """Estado del documento según la respuesta de SetEvent: (status, evento_invalido)."""
    if any(r.codigo_respuesta == CODE_INVALID_EVENT for r in result.resultado):
        return "error", True
    if result.codigo == CODE_OK:
        if all(r.codigo_respuesta == CODE_OK for r in result.resultado):
            return "success", False
        return "partial", False
    for r in result.resultado:
        message = r.mensaje_error.lower()
        if any(marker in message for marker in DUPLICATE_MARKERS):
            return "duplicate", False
    if result.codigo == CODE_REJECTED:
        return "partial", False
    return "error", False


def build_messages(results: List[DocumentEventResult]) -> Tuple[List[str], List[str]]:
    by_status: Dict[str, List[str]] = {"success": [], "partial": [], "duplicate": [], "error": []}
    for r in results:
        by_status.get(r.status, by_status["error"]).append(r.label)

    success, partial = by_status["success"], by_status["partial"]
    failed, duplicates = by_status["error"], by_status["duplicate"]

    if success and not partial and not failed and not duplicates:
        return [MSG_ALL_SCHEDULED], []

    if success or partial:
        motivos: List[str] = []
        for r in results:
            if r.event_result is None or r.status not in ("partial", "error"):
                continue
            for item in r.event_result.resultado:
                if item.mensaje_error and (r.status == "error" or item.codigo_respuesta != CODE_OK):
                    motivos.append(item.mensaje_error)
        message = ("Algunos documento no fueron agendados. .  - Documentos eventos DIAN en línea: "
                   f"[{', '.join(success + partial)}].")
        if motivos:
            message += f" Motivos: [{', '.join(motivos)}]"
        return [message], []

    motivos = []
    for r in results:
        if r.status == "error":
            if r.not_found:
                motivos.append("Documento no encontrado")
            elif r.description:
                motivos.append(r.description)
            elif r.event_result is not None:
                for item in r.event_result.resultado:
                    if item.mensaje_error:
                        motivos.append(item.mensaje_error)
                    elif item.codigo_respuesta != CODE_OK and item.mensaje:
                        motivos.append(item.mensaje)
        elif r.status == "duplicate":
            if r.event_result is not None:
                motivos.extend(i.mensaje_error for i in r.event_result.resultado if i.mensaje_error)
            if not motivos or "procesado" not in " ".join(motivos).lower():
                motivos.append(MSG_DUPLICATE)

    message = f"No se agendó ningún documento. Documentos no agendados: [{', '.join(failed + duplicates)}]."
    if motivos:
        message += f" Motivos: [{', '.join(motivos)}]"
    return [], [message]


def http_status(results: List[DocumentEventResult]) -> int:
    statuses = {r.status for r in results}
    if "success" in statuses or "partial" in statuses:
        return status.HTTP_200_OK
    if "duplicate" in statuses:
        return status.HTTP_409_CONFLICT
    errors = [r for r in results if r.status == "error"]
    if any(r.not_found or r.invalid_event or r.stage == "validation" for r in errors):
        return status.HTTP_400_BAD_REQUEST
    return status.HTTP_500_INTERNAL_SERVER_ERROR


# ==================== SERVICIO ====================

class ReceptionService:
    def __init__(
        self,
        client: NumrotClient,
        emisor_nit: str,
        generator_nombre: str = "",
        generator_apellido: str = "",
        generator_identificacion: str = "",
    ):
        self.client = client
        self.emisor_nit = emisor_nit
        self.generator_nombre = generator_nombre
        self.generator_apellido = generator_apellido
        self.generator_identificacion = generator_identificacion

    def _require_emisor(self) -> None:
        if not self.emisor_nit:
            logger.error("NUMROT_EMISOR_NIT sin configurar para recepción")
            raise ConfigurationError("emisor nit is not configured", ["Configuración del servicio inválida"])

    @staticmethod
    def _provider_error(e: FacturacionError, not_found: str, other: str) -> FacturacionError:
        if isinstance(e, DocumentNotFoundError):
            return DocumentNotFoundError(e.message, [not_found])
        if isinstance(e, AuthenticationError):
            return AuthenticationError(e.message, [MSG_AUTH])
        return UpstreamError(e.message, [other])

    # ---------------- consultas ----------------

    def consulta_por_cufe(self, cufe: str) -> List[Dict[str, Any]]:
        self._require_emisor()
        try:
            info = self.client.get_document_info(self.emisor_nit, cufe)
        except FacturacionError as e:
            logger.warning("DocumentInfo falló para %s: %s", cufe, e.message)
            raise self._provider_error(e, "No existe documento con ese CUFE", "Error al consultar documento") from e
        return [to_legacy(info.documents[0])]

    def consulta_por_fecha(self, fecha: str = "", fecha_desde: str = "",
                           fecha_hasta: str = "") -> List[Dict[str, Any]]:
        """
        Documentos recibidos por el emisor en una fecha o rango.

        Con una sola fecha el rango termina el día siguiente. Los documentos
        cuyo detalle no se puede obtener se omiten.
        """
        self._require_emisor()
        if fecha:
            initial = fecha
            try:
                final = (datetime.strptime(fecha, DATE_FORMAT) + timedelta(days=1)).strftime(DATE_FORMAT)
            except ValueError:
                final = fecha
        else:
            initial, final = fecha_desde, fecha_hasta
        for value in (initial, final):
            try:
                datetime.strptime(value, DATE_FORMAT)
            except ValueError:
                raise ValidationError("Formato de fecha inválido. Debe ser YYYY-MM-DD")

        try:
            received = self.client.get_received_documents(self.emisor_nit, initial, final)
        except DocumentNotFoundError:
            return []
        except FacturacionError as e:
            logger.error("DocumentsReceived falló: %s", e.message, extra={"initial": initial, "final": final})
            raise self._provider_error(e, "", "Error al consultar documentos por fecha") from e

        documents: List[Dict[str, Any]] = []
        for doc in received:
            if not doc.cufe or not doc.proveedor:
                continue
            try:
                # El detalle se consulta con el NIT del proveedor que emitió el documento
                info = self.client.get_document_info(doc.proveedor, doc.cufe)
            except FacturacionError as e:
                logger.warning("Detalle no disponible para %s: %s", doc.cufe, e.message)
                continue
            documents.append(to_legacy(info.documents[0]))
        logger.info(
            "Consulta de recepción por fecha",
            extra={"initial": initial, "final": final, "received": len(received), "documents": len(documents)},
        )
        return documents

    def consulta_por_proveedor(self, proveedor: str, consecutivo: str, prefijo: str,
                               ofe: str) -> List[Dict[str, Any]]:
        if not (proveedor and consecutivo and prefijo and ofe):
            raise ValidationError(
                "proveedor, consecutivo, prefijo y ofe son requeridos, "
                "o se debe proporcionar fecha para consultar por fecha"
            )

        document_number = prefijo + consecutivo
        try:
            found = self.client.get_document_by_number(ofe, document_number, proveedor)
        except FacturacionError as e:
            raise self._provider_error(
                e, "No existe documento con los parámetros proporcionados", "Error al consultar documento",
            ) from e
        if not found:
            raise DocumentNotFoundError(
                f"document not found: {document_number}",
                ["No se encontraron documentos con los parámetros proporcionados"],
            )
        document = found[0]
        if not document.cufe:
            raise UpstreamError("document without cufe", ["El documento encontrado no tiene CUFE válido"])

        self._require_emisor()
        try:
            info = self.client.get_document_info(self.emisor_nit, document.cufe)
        except FacturacionError as e:
            raise self._provider_error(
                e, "No se pudo obtener información completa del documento",
                "Error al obtener información completa del documento",
            ) from e

        archivo = self.client.download_base64(document.url_pdf or "")
        xml = self.client.download_base64(document.url_xml or "")
        return [to_legacy(info.documents[0], archivo, xml)]

    def listar_documentos(self, fecha_desde: str, fecha_hasta: str) -> List[Dict[str, Any]]:
        """Documentos recibidos por el emisor en el rango, sin detalle."""
        if not fecha_desde or not fecha_hasta:
            raise ValidationError("fecha_desde y fecha_hasta son requeridos")
        self._require_emisor()
        try:
            received = self.client.get_received_documents(self.emisor_nit, fecha_desde, fecha_hasta)
        except DocumentNotFoundError:
            return []
        except FacturacionError as e:
            raise self._provider_error(e, "", "Error al consultar documentos por fecha") from e
        return [d.to_dict() for d in received]

    # ---------------- eventos ----------------

    def registrar_evento(self, evento: str, documentos: List[Dict[str, str]]) -> Tuple[int, Dict[str, Any]]:
        """
        Registra el evento para cada CUFE y devuelve (código HTTP, cuerpo).

        Raises:
            ValidationError: evento o documentos vacíos, o tipo de evento inválido
            ConfigurationError: datos del generador sin configurar
        """
        if not evento or not documentos:
            raise ValidationError("evento y documentos son requeridos", title=MSG_INVALID_EVENT)
        if not (self.generator_nombre and self.generator_apellido and self.generator_identificacion):
            logger.error("Datos del generador de eventos sin configurar")
            raise ConfigurationError(
                "generator not configured", ["Información del generador no configurada"],
                title="Error interno del servidor al procesar el evento",
            )

        event_type = evento.upper()
        if not is_valid_event_type(event_type):
            raise ValidationError(
                f"Tipo de evento inválido: {evento}. Valores válidos: ACUSE, RECIBOBIEN, ACEPTACION, RECLAMO",
                title=MSG_INVALID_EVENT,
            )

        logger.info("Registrando evento %s", event_type, extra={"document_count": len(documentos)})
        results = [self._process_document(doc, event_type) for doc in documentos]

        exitosos, fallidos = build_messages(results)
        return http_status(results), {"message": "Solicitud Procesada", "exitosos": exitosos, "fallidos": fallidos}

    def _process_document(self, doc: Dict[str, str], event_type: str) -> DocumentEventResult:
        cufe = doc.get("cdo_cufe") or ""
        if not cufe:
            return _error(cufe, "validation", "El campo cdo_cufe está vacío")

        try:
            info = self.client.get_document_info(self.emisor_nit, cufe)
        except FacturacionError as e:
            not_found = isinstance(e, DocumentNotFoundError)
            code = "DOCUMENT_NOT_FOUND" if not_found else "AUTH_FAILED" if isinstance(e, AuthenticationError) else ""
            logger.error("DocumentInfo falló para %s: %s", cufe, e.message)
            return _error(cufe, "document_info", e.message, code, not_found=not_found)

        data = info.documents[0]
        if not data.emisor_nit or not data.emisor_nombre:
            return _error(cufe, "document_info",
                          f"EmisorNit: '{data.emisor_nit}', RazonSocial: '{data.emisor_nombre}'",
                          "INCOMPLETE_EMISOR_DATA")

        document_number = (data.serie + data.folio) or cufe
        rejection_code = None
        if event_type == "RECLAMO":
            rejection_code = doc.get("cre_codigo") or ""
            if not rejection_code:
                return _error(cufe, "validation", "El campo cre_codigo es obligatorio para eventos tipo RECLAMO",
                              "MISSING_REJECTION_CODE")
            if not is_valid_rejection_code(rejection_code):
                return _error(cufe, "validation",
                              f"El código de rechazo '{rejection_code}' no es válido. Valores válidos: 01, 02, 03, 04",
                              "INVALID_REJECTION_CODE")

        event = RadianEvent(
            event_type=event_type,
            document_number=document_number,
            nombre_generador=self.generator_nombre,
            apellido_generador=self.generator_apellido,
            identificacion_generador=self.generator_identificacion,
            event_generation_date=datetime.now(colombia_tz()),
            rejection_code=rejection_code,
        )
        try:
            event.validate()
        except ValidationError as e:
            return _error(cufe, "validation", e.message, "EVENT_VALIDATION_FAILED")

        try:
            result = self.client.register_event(event, data.emisor_nit, data.emisor_nombre)
        except FacturacionError as e:
            not_found = isinstance(e, DocumentNotFoundError)
            logger.error("SetEvent falló para %s: %s", cufe, e.message)
            return _error(cufe, "event_registration", e.message,
                          "DOCUMENT_NOT_FOUND_RADIAN" if not_found else "REGISTRATION_FAILED",
                          document_number=document_number, not_found=not_found)

        outcome, invalid_event = analyze_event_result(result)
        logger.info(
            "Evento %s registrado", event_type,
            extra={"cufe": cufe, "document_number": document_number, "status": outcome},
        )
        return DocumentEventResult(
            cufe=cufe,
            status=outcome,
            document_number=result.numero_documento,
            event_result=result,
            invalid_event=invalid_event,
        )
