# app/services/numrot/client.py
"""
Cliente de Numrot (proveedor tecnológico de facturación electrónica).

Agrupa la autenticación, el transformador OpenETL -> Numrot, el motor de
envío concurrente y las consultas auxiliares (resoluciones, eventos Radian
y documentos emitidos o recibidos).
"""
from __future__ import annotations
import base64
import logging
import threading
from datetime import date, datetime
from typing import Any, Dict, List, Optional, Sequence

import requests

from app.core.config import Settings
from app.core.context import correlation_id_or_new
from app.core.errors import (
    AuthenticationError,
    DocumentNotFoundError,
    UpstreamError,
    ValidationError,
)
from app.schemas.documento import OpenETLDocument
from app.services.numrot.auth import AuthManager
from app.services.numrot.circuit_breaker import CircuitBreaker
from app.services.numrot.dispatch import DispatchEngine
from app.services.numrot.events import RadianEvent, to_radian_code
from app.services.numrot.http import DEFAULT_RETRY_DELAYS, AuditSink, build_session, exchange
from app.services.numrot.limiter import ConcurrencyLimiter, RateLimiter
from app.services.numrot.models import (
    DianStatus,
    DocumentInfo,
    DocumentInfoResponse,
    EmittedDocument,
    EventRegistrationResult,
    EventResultItem,
    QrData,
    RegistrationResponse,
    Resolution,
)
from app.services.numrot.reconciler import ResponseReconciler
from app.services.numrot.transformer import (
    AcquirerLookup,
    DocumentTransformer,
    TransformerConfig,
    build_document_sinc_url,
)

logger = logging.getLogger(__name__)

DATE_FORMAT = "%Y-%m-%d"
DEFAULT_RESOLUTION_FROM = 1
DEFAULT_RESOLUTION_TO = 5000000
DEFAULT_RESOLUTION_START = date(2019, 1, 19)
DEFAULT_RESOLUTION_END = date(2030, 1, 19)
DOWNLOAD_TIMEOUT = 10

RECEIVED_REQUIRED_FIELDS = ("ofe", "proveedor", "tipo", "consecutivo", "cufe", "fecha", "hora", "valor")


def _parse_date(value: str) -> date:
    return datetime.strptime(value or "", DATE_FORMAT).date()


def _parse_int(value: str, default: int) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def _received_document(nd: Any) -> EmittedDocument:
    """Convierte una entrada de DocumentsReceived; ValueError si está incompleta."""
    if not isinstance(nd, dict):
        raise ValueError("unexpected entry")
    for name in RECEIVED_REQUIRED_FIELDS:
        if not nd.get(name):
            raise ValueError(f"missing required field: {name}")
    if not nd.get("UrlPDF"):
        raise ValueError("missing required field: urlPDF")
    if not nd.get("UrlXML"):
        raise ValueError("missing required field: urlXML")

    try:
        fecha = _parse_date(str(nd["fecha"]))
    except ValueError:
        raise ValueError(f"parse fecha [{nd['fecha']}]: expected format YYYY-MM-DD")
    try:
        valor = float(nd["valor"])
    except (TypeError, ValueError):
        raise ValueError(f"parse valor [{nd['valor']}]: invalid numeric format")

    return EmittedDocument(
        ofe=str(nd["ofe"]),
        proveedor=str(nd["proveedor"]),
        tipo=str(nd["tipo"]),
        prefijo=str(nd.get("prefijo") or ""),
        consecutivo=str(nd["consecutivo"]),
        cufe=str(nd["cufe"]),
        fecha=fecha.isoformat(),
        hora=str(nd["hora"]),
        valor=valor,
        url_pdf=str(nd["UrlPDF"]),
        url_xml=str(nd["UrlXML"]),
    )


def parse_qr_text(qr_text: str) -> QrData:
    """
    Extrae los datos del texto del QR de la DIAN.

    Formato: "NumFac: SETT56046 FecFac: 2025-12-23 HorFac: 14:37:00-05:00
    NitFac: 860011153 DocAdq: 38858 ValTolFac: 210000.00 ValIva: 33529.00 ..."
    """
    data = QrData()
    parts = (qr_text or "").split()
    for key, value in zip(parts, parts[1:]):
        key = key[:-1] if key.endswith(":") else key
        if key == "NumFac":
            digits = next((i for i, c in enumerate(value) if c.isdigit()), None)
            if digits:
                data.prefijo, data.consecutivo = value[:digits], value[digits:]
            else:
                data.consecutivo = value
        elif key == "FecFac":
            data.fecha = value
        elif key == "HorFac":
            data.hora = value
        elif key == "NitFac":
            data.emisor_nit = value
        elif key == "DocAdq":
            data.receptor_nit = value
        elif key in ("ValTolFac", "ValIva"):
            try:
                amount = float(value)
            except ValueError:
                continue
            if key == "ValTolFac":
                data.valor_total = amount
            else:
                data.valor_iva = amount
    return data


class NumrotClient:
    """
    Fachada sobre la API de Numrot.

    Todas las llamadas son bloqueantes; el envío de lotes reparte los
    documentos en hilos del DispatchEngine.
    """

    def __init__(
        self,
        base_url: str,
        auth: AuthManager,
        session: requests.Session,
        *,
        ds_base_url: str = "",
        radian_url: str = "",
        key: str = "",
        secret: str = "",
        transformer: Optional[DocumentTransformer] = None,
        reconciler: Optional[ResponseReconciler] = None,
        engine: Optional[DispatchEngine] = None,
        timeout: float = 300,
        retry_delays: Sequence[float] = DEFAULT_RETRY_DELAYS,
        audit: Optional[AuditSink] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.ds_base_url = (ds_base_url or base_url).rstrip("/")
        self.radian_url = (radian_url or base_url).rstrip("/")
        self.auth = auth
        self.session = session
        self.key = key
        self.secret = secret
        self.transformer = transformer or DocumentTransformer()
        self.reconciler = reconciler or ResponseReconciler()
        self.engine = engine or DispatchEngine()
        self.timeout = timeout
        self.retry_delays = tuple(retry_delays)
        self.audit = audit

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        acquirers: Optional[AcquirerLookup] = None,
        audit: Optional[AuditSink] = None,
        session: Optional[requests.Session] = None,
    ) -> "NumrotClient":
        session = session or build_session(pool_size=settings.numrot_max_concurrent)
        auth = AuthManager(
            base_url=settings.numrot_base_url,
            username=settings.numrot_username,
            password=settings.numrot_password,
            ttl=settings.numrot_token_ttl,
            session=session,
            audit=audit,
        )
        transformer = DocumentTransformer(
            config=TransformerConfig(
                resolutions_enabled=settings.numrot_resolutions_enabled,
                hardcoded_invoice_auth=settings.numrot_hardcoded_invoice_auth,
                hardcoded_start_date=settings.numrot_hardcoded_start_date,
                hardcoded_end_date=settings.numrot_hardcoded_end_date,
                hardcoded_prefix=settings.numrot_hardcoded_prefix,
                hardcoded_from=settings.numrot_hardcoded_from,
                hardcoded_to=settings.numrot_hardcoded_to,
                nc_invoice_period_start_date=settings.numrot_nc_invoice_period_start_date,
                nc_invoice_period_start_time=settings.numrot_nc_invoice_period_start_time,
                nc_invoice_period_end_date=settings.numrot_nc_invoice_period_end_date,
                nc_invoice_period_end_time=settings.numrot_nc_invoice_period_end_time,
            ),
            acquirers=acquirers,
        )
        engine = DispatchEngine(
            concurrency_limiter=ConcurrencyLimiter(settings.numrot_max_concurrent),
            rate_limiter=RateLimiter(settings.numrot_rate_limit_rps),
            circuit_breaker=CircuitBreaker(
                max_failures=settings.numrot_cb_max_failures,
                failure_threshold=settings.numrot_cb_failure_threshold,
                cooldown=settings.numrot_cb_cooldown,
                success_threshold=settings.numrot_cb_success_threshold,
            ),
        )
        logger.info(
            "Cliente Numrot configurado",
            extra={
                "base_url": settings.numrot_base_url,
                "max_concurrent": settings.numrot_max_concurrent,
                "rate_limit_rps": settings.numrot_rate_limit_rps,
                "resolutions_enabled": settings.numrot_resolutions_enabled,
            },
        )
        return cls(
            base_url=settings.numrot_base_url,
            auth=auth,
            session=session,
            ds_base_url=settings.numrot_ds_base_url,
            radian_url=settings.numrot_radian_url,
            key=settings.numrot_key,
            secret=settings.numrot_secret,
            transformer=transformer,
            engine=engine,
            timeout=settings.numrot_api_timeout,
            audit=audit,
        )

    # ------------------------------------------------------------------
    # Registro de documentos
    # ------------------------------------------------------------------

    def register_documents(self, documents: Sequence[OpenETLDocument], kind: str,
                           cancel: Optional[threading.Event] = None) -> RegistrationResponse:
        """Envía un lote de documentos del mismo tipo; un documento por petición."""
        correlation_id = correlation_id_or_new()

        def transport(doc: OpenETLDocument, doc_kind: str,
                      doc_cancel: Optional[threading.Event]) -> RegistrationResponse:
            return self.send_document(doc, doc_kind, cancel=doc_cancel, correlation_id=correlation_id)

        logger.info(
            "Registrando %d documentos %s en Numrot", len(documents), kind,
            extra={"correlation_id": correlation_id},
        )
        return self.engine.register(documents, kind, transport=transport, cancel=cancel)

    def send_document(self, doc: OpenETLDocument, kind: str,
                      cancel: Optional[threading.Event] = None,
                      correlation_id: str = "") -> RegistrationResponse:
        """
        Envía un único documento a SendDIAN (FC/NC/ND) o documentSinc (DS).

        Raises:
            AuthenticationError: token inválido (401) o fallo al obtenerlo
            UpstreamError: error de transporte o estado distinto de 200
            ValidationError: el documento no se puede transformar
        """
        token = self.auth.get_token(correlation_id)
        payload = self.transformer.transform(doc, kind)

        if kind == "DS":
            # En DS adq_identificacion trae el NIT real del OFE
            url = build_document_sinc_url(
                self.ds_base_url, doc.adq_identificacion, doc.rfa_prefijo, doc.cdo_consecutivo,
            )
            operation = "documentSinc"
        else:
            url = f"{self.base_url}/api/SendDIAN/Json/Pdf"
            operation = "SendDIAN"

        resp = exchange(
            self.session, "POST", url,
            operation=operation,
            headers={
                "Content-Type": "application/json",
                "Authorization": f"Bearer {token}",
                "Accept-Encoding": "gzip",
            },
            json_body=payload,
            timeout=self.timeout,
            retry_on_timeout=True,
            retry_delays=self.retry_delays,
            cancel=cancel,
            audit=self.audit,
            correlation_id=correlation_id,
        )
        logger.debug(
            "Respuesta de %s", operation,
            extra={"status": resp.status_code, "duration_ms": resp.duration_ms,
                   "documento": doc.numero_completo},
        )

        self._check_auth(resp.status_code)
        if resp.status_code != 200:
            raise UpstreamError(f"unexpected status code {resp.status_code}")

        return self.reconciler.reconcile(resp.body, [doc], kind)

    def _check_auth(self, status_code: int) -> None:
        if status_code == 401:
            self.auth.clear_token()
            logger.warning("Token de Numrot vencido o inválido; se limpia el caché")
            raise AuthenticationError("authentication failed: token expired or invalid")

    # ------------------------------------------------------------------
    # Resoluciones
    # ------------------------------------------------------------------

    def get_resolutions(self, nit: str) -> List[Resolution]:
        config = self.transformer.config
        if not config.resolutions_enabled:
            return self._hardcoded_resolutions(nit, config)

        correlation_id = correlation_id_or_new()
        token = self.auth.get_token(correlation_id)
        url = f"{self.base_url}/api/Resoluciones/{nit}"
        resp = exchange(
            self.session, "GET", url,
            operation="Resoluciones",
            headers={"Accept-Encoding": "gzip", "Authorization": f"Bearer {token}"},
            timeout=self.timeout,
            audit=self.audit,
            correlation_id=correlation_id,
        )

        self._check_auth(resp.status_code)
        if resp.status_code != 200:
            logger.error("Numrot devolvió estado inesperado consultando resoluciones",
                         extra={"status": resp.status_code})
            raise UpstreamError(f"unexpected status code {resp.status_code}: {resp.text}")

        data = self._json(resp)
        operation_code = str(data.get("OperationCode") or "")
        if operation_code != "100":
            description = data.get("OperationDescription") or ""
            raise UpstreamError(f"numrot API error: {description} (code: {operation_code})")

        resolutions: List[Resolution] = []
        for nr in data.get("NumberRangeResponse") or []:
            try:
                resolutions.append(Resolution(
                    resolution_number=str(nr.get("ResolutionNumber") or ""),
                    resolution_date=_parse_date(nr.get("ResolutionDate")),
                    prefix=str(nr.get("Prefix") or ""),
                    from_number=int(nr.get("FromNumber") or 0),
                    to_number=int(nr.get("ToNumber") or 0),
                    valid_date_from=_parse_date(nr.get("ValidDateFrom")),
                    valid_date_to=_parse_date(nr.get("ValidDateTo")),
                ))
            except (TypeError, ValueError, AttributeError) as e:
                logger.warning(
                    "Resolución inválida ignorada: %s", e,
                    extra={"resolution": nr.get("ResolutionNumber") if isinstance(nr, dict) else None},
                )
        return resolutions

    @staticmethod
    def _hardcoded_resolutions(nit: str, config: TransformerConfig) -> List[Resolution]:
        if not config.hardcoded_invoice_auth or not config.hardcoded_prefix:
            logger.warning("Resoluciones deshabilitadas sin valores configurados", extra={"nit": nit})
            return []

        try:
            valid_from = _parse_date(config.hardcoded_start_date)
        except ValueError:
            valid_from = DEFAULT_RESOLUTION_START
        try:
            valid_to = _parse_date(config.hardcoded_end_date)
        except ValueError:
            valid_to = DEFAULT_RESOLUTION_END

        return [Resolution(
            resolution_number=config.hardcoded_invoice_auth,
            resolution_date=None,
            prefix=config.hardcoded_prefix,
            from_number=_parse_int(config.hardcoded_from, DEFAULT_RESOLUTION_FROM),
            to_number=_parse_int(config.hardcoded_to, DEFAULT_RESOLUTION_TO),
            valid_date_from=valid_from,
            valid_date_to=valid_to,
        )]

    # ------------------------------------------------------------------
    # Radian
    # ------------------------------------------------------------------

    def register_event(self, event: RadianEvent, emisor_nit: str, razon_social: str) -> EventRegistrationResult:
        if not self.key or not self.secret:
            raise ValidationError("key and secret are required for event registration")

        body: Dict[str, Any] = {
            "Key": self.key,
            "Secret": self.secret,
            "EmisorNit": emisor_nit,
            "RazonSocial": razon_social,
            "DocumentoNumeroCompleto": event.document_number,
            "CodigoRadian": [to_radian_code(event.event_type)],
            "FechaGeneracionEvento": event.fecha_generacion,
            "NombreGenerador": event.nombre_generador,
            "ApellidoGenerador": event.apellido_generador,
            "IdentificacionGenerador": event.identificacion_generador,
        }
        if event.rejection_code:
            body["CodigoRechazo"] = event.rejection_code

        resp = exchange(
            self.session, "POST", f"{self.radian_url}/api/Radian/SetEvent",
            operation="SetEvent",
            headers={"Content-Type": "application/json"},
            json_body=body,
            timeout=self.timeout,
            audit=self.audit,
            correlation_id=correlation_id_or_new(),
        )

        if resp.status_code == 400:
            try:
                detail = resp.json().get("error") or resp.text
            except (ValueError, AttributeError):
                detail = resp.text
            logger.warning("Numrot no encontró el documento del evento",
                           extra={"documento": event.document_number})
            raise DocumentNotFoundError(f"document not found: {detail}")
        if resp.status_code != 200:
            raise UpstreamError(f"unexpected status code {resp.status_code}: {resp.text}")

        data = self._json(resp)
        return EventRegistrationResult(
            codigo=str(data.get("Codigo") or ""),
            numero_documento=str(data.get("NumeroDocumento") or ""),
            resultado=[
                EventResultItem(
                    tipo_evento=str(r.get("TipoEvento") or ""),
                    mensaje=str(r.get("Mensaje") or ""),
                    mensaje_error=str(r.get("MensajeError") or ""),
                    codigo_respuesta=str(r.get("CodigoRespuesta") or ""),
                )
                for r in data.get("Resultado") or []
                if isinstance(r, dict)
            ],
            mensaje_error=str(data.get("MensajeError") or ""),
        )

    def get_documents(self, company_nit: str, initial_date: str, final_date: str) -> List[EmittedDocument]:
        """Documentos emitidos por la empresa en el rango de fechas (GetInfoDocument)."""
        return self._radian_documents("GetInfoDocument", {
            "CompanyNit": company_nit,
            "InitialDate": initial_date,
            "FinalDate": final_date,
        })

    def get_document_by_number(self, company_nit: str, document_number: str,
                               supplier_nit: str) -> List[EmittedDocument]:
        """Documento recibido de un proveedor por su número completo (GetDocumentByNumber)."""
        return self._radian_documents("GetDocumentByNumber", {
            "CompanyNit": company_nit,
            "DocumentNumber": document_number,
            "SupplierNit": supplier_nit,
        })

    def _radian_documents(self, operation: str, query: Dict[str, str]) -> List[EmittedDocument]:
        if not self.key or not self.secret:
            raise ValidationError("key and secret are required for document queries")

        resp = exchange(
            self.session, "POST", f"{self.radian_url}/api/Radian/{operation}",
            operation=operation,
            headers={"Content-Type": "application/json"},
            json_body={"Key": self.key, "Secret": self.secret, **query},
            timeout=self.timeout,
            audit=self.audit,
            correlation_id=correlation_id_or_new(),
        )

        if resp.status_code == 204:
            return []
        if resp.status_code != 200:
            raise UpstreamError(f"unexpected status code {resp.status_code}: {resp.text}")

        data = self._json(resp)
        code = data.get("Code")
        if code == 204:
            return []
        if code != 200:
            raise UpstreamError(f"numrot API error: {data.get('Message') or ''} (code: {code})")

        documents: List[EmittedDocument] = []
        for nd in data.get("Data") or []:
            if not isinstance(nd, dict):
                continue
            if not nd.get("CUFE"):
                logger.warning("Documento sin CUFE ignorado", extra={"numero": nd.get("NumeroFactura")})
                continue
            try:
                fecha = _parse_date(nd.get("FechaEmision"))
            except (TypeError, ValueError):
                logger.warning("Documento con fecha de emisión inválida ignorado",
                               extra={"numero": nd.get("NumeroFactura")})
                continue
            documents.append(EmittedDocument(
                ofe=str(nd.get("EmisorNit") or ""),
                proveedor=str(nd.get("EmisorNombre") or ""),
                tipo=str(nd.get("TipoFactura") or ""),
                prefijo="",
                consecutivo=str(nd.get("NumeroFactura") or ""),
                cufe=str(nd["CUFE"]),
                fecha=fecha.isoformat(),
                hora=str(nd.get("HoraEmision") or ""),
                valor=float(nd.get("TotalFactura") or 0),
                url_pdf=nd.get("UrlPDF") or None,
                url_xml=nd.get("UrlXML") or None,
            ))
        return documents

    def get_received_documents(self, company_nit: str, initial_date: str, final_date: str) -> List[EmittedDocument]:
        """
        Documentos recibidos de proveedores en el rango de fechas (DocumentsReceived).

        Las entradas incompletas se descartan; si ninguna se puede convertir
        la respuesta se considera inválida.
        """
        if not self.key or not self.secret:
            raise ValidationError("key and secret are required for document queries")

        resp = exchange(
            self.session, "POST", f"{self.radian_url}/api/Radian/DocumentsReceived",
            operation="DocumentsReceived",
            headers={"Content-Type": "application/json"},
            json_body={
                "Key": self.key,
                "Secret": self.secret,
                "CompanyNit": company_nit,
                "InitialDate": initial_date,
                "FinalDate": final_date,
            },
            timeout=self.timeout,
            audit=self.audit,
            correlation_id=correlation_id_or_new(),
        )

        if resp.status_code == 204:
            return []
        if resp.status_code != 200:
            raise UpstreamError(f"unexpected status code {resp.status_code}: {resp.text}")

        entries = self._json(resp).get("Data")
        if not isinstance(entries, list):
            return []

        documents: List[EmittedDocument] = []
        for index, nd in enumerate(entries):
            try:
                documents.append(_received_document(nd))
            except ValueError as e:
                logger.warning(
                    "Documento recibido inválido ignorado: %s", e,
                    extra={"index": index, "consecutivo": nd.get("consecutivo") if isinstance(nd, dict) else None},
                )
        logger.info(
            "Documentos recibidos convertidos",
            extra={"total": len(entries), "validos": len(documents)},
        )
        if entries and not documents:
            raise UpstreamError(f"all {len(entries)} documents failed transformation")
        return documents

    def get_document_info(self, nit: str, cufe: str) -> DocumentInfoResponse:
        """
        Detalle de un documento por CUFE (DocumentInfo), con eventos y validaciones.

        Raises:
            AuthenticationError: token vencido (401)
            DocumentNotFoundError: 404 o respuesta sin documentos
            UpstreamError: estado HTTP o StatusCode de Numrot inesperado
        """
        data = self._get_bearer(f"{self.base_url}/api/DocumentInfo/{nit}/{cufe}", "DocumentInfo", cufe)
        status_code = str(data.get("StatusCode") or "")
        if status_code != "200":
            raise UpstreamError(f"numrot error: {data.get('StatusDescription') or ''} (code: {status_code})")

        documents = [DocumentInfo.from_numrot(d) for d in data.get("DocumentInfo") or [] if isinstance(d, dict)]
        if not documents:
            raise DocumentNotFoundError(f"no document found for CUFE: {cufe}")
        return DocumentInfoResponse(
            status_code=status_code,
            status_description=str(data.get("StatusDescription") or ""),
            documents=documents,
        )

    def search_estados_dian(self, nit: str, documento: str) -> DianStatus:
        """Estado DIAN de un documento por su número completo, con XML y PDF."""
        url = f"{self.base_url}/api/searchestadosdian/{nit}/{documento}?includeXml=true&includePdf=true"
        data = self._get_bearer(url, "searchestadosdian", documento)
        status_code = str(data.get("StatusCode") or "")
        if status_code != "200":
            logger.warning(
                "searchestadosdian devolvió error",
                extra={"status_code": status_code, "error_message": data.get("ErrorMessage")},
            )
            raise UpstreamError(f"numrot error: {data.get('StatusDescription') or ''} (code: {status_code})")

        status = DianStatus(
            uuid=str(data.get("Uuid") or ""),
            qr_text=str(data.get("QrText") or ""),
            track_id=str(data.get("TrackId") or ""),
            warnings=[str(w) for w in data.get("Warnings") or []],
            status_code=status_code,
            error_reason=[str(r) for r in data.get("ErrorReason") or []],
            error_message=str(data.get("ErrorMessage") or ""),
            status_message=str(data.get("StatusMessage") or ""),
            status_description=str(data.get("StatusDescription") or ""),
            document=str(data.get("Document") or ""),
            documents=[DocumentInfo.from_numrot(d) for d in data.get("DocumentInfo") or [] if isinstance(d, dict)],
        )
        # Dos formatos: plano (Uuid + QrText) o estructurado (DocumentInfo)
        if not status.uuid and not status.documents:
            raise DocumentNotFoundError(f"no document found: {documento}")
        return status

    def get_document_by_provider_params(self, proveedor: str, consecutivo: str, prefijo: str,
                                        ofe: str, tipo: str = "") -> DocumentInfoResponse:
        """
        Documento en formato DocumentInfo a partir de searchestadosdian.

        Si Numrot responde en formato plano el documento se arma con los datos
        del QR y, en su defecto, con los parámetros recibidos.
        """
        document_number = prefijo + consecutivo
        status = self.search_estados_dian(ofe or proveedor, document_number)

        if status.documents:
            document = status.documents[0]
        elif status.uuid:
            qr = parse_qr_text(status.qr_text)
            document = DocumentInfo(
                document_type_id=tipo,
                emisor_nit=qr.emisor_nit or ofe,
                estado={"Estado": status.status_message, "Resultado": status.status_code},
                fecha_emision=qr.fecha,
                folio=qr.consecutivo or consecutivo,
                serie=qr.prefijo or prefijo,
                receptor_nit=qr.receptor_nit or proveedor,
                iva=qr.valor_iva,
                total=qr.valor_total,
                uuid=status.uuid,
                qr=status.qr_text,
                hora_documento=qr.hora,
            )
        else:
            raise DocumentNotFoundError(f"document not found: {document_number}")

        return DocumentInfoResponse(
            status_code=status.status_code,
            status_description=status.status_description,
            documents=[document],
        )

    def download_base64(self, url: str) -> str:
        """Descarga un archivo (PDF/XML de Numrot) en base64; cadena vacía si falla."""
        if not url:
            return ""
        try:
            resp = self.session.request("GET", url, timeout=DOWNLOAD_TIMEOUT)
        except requests.RequestException as e:
            logger.debug("No se pudo descargar %s: %s", url, e)
            return ""
        if resp.status_code != 200:
            return ""
        return base64.b64encode(resp.content).decode("ascii")

    def _get_bearer(self, url: str, operation: str, reference: str) -> Dict[str, Any]:
        correlation_id = correlation_id_or_new()
        token = self.auth.get_token(correlation_id)
        resp = exchange(
            self.session, "GET", url,
            operation=operation,
            headers={"Accept-Encoding": "gzip", "Authorization": f"Bearer {token}"},
            timeout=self.timeout,
            audit=self.audit,
            correlation_id=correlation_id,
        )
        if resp.status_code == 401:
            self.auth.clear_token()
            logger.warning("Token de Numrot vencido o inválido; se limpia el caché")
            raise AuthenticationError("authentication failed: token expired")
        if resp.status_code == 404:
            raise DocumentNotFoundError(f"document not found: {reference}")
        if resp.status_code != 200:
            raise UpstreamError(f"unexpected status {resp.status_code}: {resp.text}")
        return self._json(resp)

    # ------------------------------------------------------------------

    @staticmethod
    def _json(resp) -> Dict[str, Any]:
        try:
            data = resp.json()
        except ValueError as e:
            raise UpstreamError(f"unmarshal response: {e}") from e
        if not isinstance(data, dict):
            raise UpstreamError("unmarshal response: unexpected JSON value")
        return data

    def stats(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {}
        if self.engine.circuit_breaker is not None:
            data["circuit_breaker"] = self.engine.circuit_breaker.stats()
        if self.engine.concurrency_limiter is not None:
            data["concurrency"] = self.engine.concurrency_limiter.stats()
        if self.engine.rate_limiter is not None:
            data["rate_limiter"] = self.engine.rate_limiter.stats()
        return data

    def close(self) -> None:
        if self.engine.rate_limiter is not None:
            self.engine.rate_limiter.close()
        self.session.close()
