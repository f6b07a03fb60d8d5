# app/services/invoice_service.py
"""
Servicio de registro de documentos electrónicos.

Valida la solicitud, completa los documentos con los datos del adquiriente y
del OFE, y los envía a Numrot por lotes de NUMROT_BATCH_SIZE a través del
motor de envío. Los documentos que fallan el enriquecimiento se devuelven en
documentos_fallidos junto con los rechazados por el proveedor.
"""
import logging
import threading
from datetime import date, datetime, timezone
from typing import Any, Dict, List, Optional, Protocol, Tuple

from app.core.config import Settings, settings as default_settings
from app.core.errors import ValidationError
from app.schemas.documento import (
    DocumentByNumberRequest,
    DocumentQueryRequest,
    DocumentRegistrationRequest,
    OpenETLDocument,
)
from app.services.numrot.client import NumrotClient
from app.services.numrot.limiter import batch_splitter
from app.services.numrot.models import EmittedDocument, FailedDocument, RegistrationResponse
from app.services.numrot.reconciler import batch_message, colombia_tz, generate_lote, processing_timestamp
from app.services.numrot.transformer import AcquirerLookup
from app.utils.nit_validator import NitValidator

logger = logging.getLogger(__name__)

DOCUMENT_KINDS = ("FC", "NC", "ND", "DS")

EXPECTED_TDE_CODES = {
    "FC": ["01"],
    "NC": ["03", "91"],
    "ND": ["04", "92"],
    "DS": ["05"],
}

REQUIRED_FIELDS = (
    "tde_codigo",
    "ofe_identificacion",
    "adq_identificacion",
    "rfa_resolucion",
    "cdo_consecutivo",
    "cdo_fecha",
    "cdo_hora",
    "mon_codigo",
    "cdo_valor_sin_impuestos",
    "cdo_impuestos",
    "cdo_total",
)

# Datos fijos del OFE emisor
OFE_DATA = {
    "ofe_razon_social": "Positiva SAS",
    "ofe_direccion": "CLL 50 - 96",
    "ofe_municipio_codigo": "05380",
    "ofe_municipio_nombre": "LA ESTRELLA",
    "ofe_departamento_codigo": "05",
    "ofe_departamento_nombre": "ANTIOQUIA",
}

MSG_ALL_INVALID = "Todos los documentos fallaron la validación"

DATE_FORMAT = "%Y-%m-%d"
TIME_FORMAT = "%H:%M:%S"


def _parse_date(value: str) -> Optional[date]:
    try:
        return datetime.strptime(value, DATE_FORMAT).date()
    except (TypeError, ValueError):
        return None


class ProviderLookup(Protocol):
    """Busca el proveedor de Documento Soporte registrado para un OFE (None si no existe)."""

    def find(self, ofe_identificacion: str, pro_identificacion: str) -> Any:
        ...


def _first(*values: Optional[str]) -> Optional[str]:
    for value in values:
        if value:
            return value
    return None


class InvoiceService:
    def __init__(
        self,
        client: NumrotClient,
        acquirers: Optional[AcquirerLookup] = None,
        settings: Settings = default_settings,
        providers: Optional[ProviderLookup] = None,
    ):
        self.client = client
        self.acquirers = acquirers
        self.providers = providers
        self.settings = settings

    # ==================== REGISTRO ====================

    def register_documents(self, request: DocumentRegistrationRequest,
                           cancel: Optional[threading.Event] = None) -> RegistrationResponse:
        """
        Registra los documentos de un único tipo (FC, NC, ND o DS).

        Raises:
            ValidationError: solicitud vacía, varios tipos, o un documento inválido
        """
        kind, documents = self._select_kind(request)

        for index, doc in enumerate(documents):
            self.validate_document(doc, kind, index)

        valid, invalid = self._enrich_documents(documents, kind)
        logger.info(
            "Documentos listos para envío",
            extra={"kind": kind, "valid": len(valid), "invalid": len(invalid)},
        )

        if not valid:
            return RegistrationResponse(
                message=MSG_ALL_INVALID,
                lote=generate_lote(),
                documentos_fallidos=invalid,
            )

        response = self._dispatch(valid, kind, cancel)
        response.documentos_fallidos.extend(invalid)
        if invalid:
            response.message = batch_message(len(response.documentos_procesados), len(response.documentos_fallidos))
        return response

    @staticmethod
    def _select_kind(request: DocumentRegistrationRequest) -> Tuple[str, List[OpenETLDocument]]:
        present = [k for k in DOCUMENT_KINDS if getattr(request.documentos, k)]
        if not present:
            raise ValidationError("no documents provided")
        if len(present) > 1:
            raise ValidationError("only one document type (FC, NC, ND, or DS) can be provided per request")
        kind = present[0]
        return kind, list(getattr(request.documentos, kind))

    def _dispatch(self, documents: List[OpenETLDocument], kind: str,
                  cancel: Optional[threading.Event]) -> RegistrationResponse:
        chunks = batch_splitter(documents, self.settings.numrot_batch_size)
        if len(chunks) == 1:
            return self.client.register_documents(chunks[0], kind, cancel=cancel)

        merged = RegistrationResponse(message="", lote="")
        for number, chunk in enumerate(chunks, start=1):
            logger.info("Enviando lote %d/%d (%d documentos)", number, len(chunks), len(chunk))
            resp = self.client.register_documents(chunk, kind, cancel=cancel)
            if not merged.lote:
                merged.lote = resp.lote
            merged.documentos_procesados.extend(resp.documentos_procesados)
            merged.documentos_fallidos.extend(resp.documentos_fallidos)
        merged.message = batch_message(len(merged.documentos_procesados), len(merged.documentos_fallidos))
        return merged

    # ==================== VALIDACIÓN ====================

    def validate_document(self, doc: OpenETLDocument, kind: str, index: int) -> None:
        n = index + 1
        for field in REQUIRED_FIELDS:
            # NC y ND pueden llegar sin resolución
            if field == "rfa_resolucion" and kind in ("NC", "ND"):
                continue
            if not getattr(doc, field):
                raise ValidationError(f"document {n}: {field} is required")

        fecha = _parse_date(doc.cdo_fecha)
        if fecha is None:
            raise ValidationError(f"document {n}: invalid cdo_fecha format: must be YYYY-MM-DD")

        if self.settings.numrot_enforce_issue_date_today:
            today = datetime.now(timezone.utc).astimezone(colombia_tz()).date()
            if fecha != today:
                raise ValidationError(
                    f"document {n}: cdo_fecha must be today's date ({today.isoformat()}) "
                    f"for DIAN FAD09e compliance. Provided: {doc.cdo_fecha}"
                )

        try:
            datetime.strptime(doc.cdo_hora, TIME_FORMAT)
        except ValueError:
            raise ValidationError(f"document {n}: invalid cdo_hora format: must be HH:mm:ss")

        if not doc.items:
            raise ValidationError(f"document {n}: at least one item is required")

        if doc.cdo_vencimiento:
            vencimiento = _parse_date(doc.cdo_vencimiento)
            if vencimiento is None:
                raise ValidationError(f"document {n}: invalid cdo_vencimiento format: must be YYYY-MM-DD")
            if vencimiento < fecha:
                raise ValidationError(
                    f"document {n}: cdo_vencimiento ({doc.cdo_vencimiento}) "
                    f"must be on or after cdo_fecha ({doc.cdo_fecha})"
                )

        expected = EXPECTED_TDE_CODES[kind]
        if doc.tde_codigo not in expected:
            raise ValidationError(
                f"document {n}: tde_codigo {doc.tde_codigo} does not match document type {kind} "
                f"(expected: [{' '.join(expected)}])"
            )

        if kind == "DS":
            if not doc.top_codigo:
                raise ValidationError(f"document {n}: top_codigo is required for DS documents")
            if doc.top_codigo != "10":
                raise ValidationError(f'document {n}: top_codigo must be "10" for DS documents, got: {doc.top_codigo}')

    # ==================== ENRIQUECIMIENTO ====================

    def _enrich_documents(self, documents: List[OpenETLDocument],
                          kind: str) -> Tuple[List[OpenETLDocument], List[FailedDocument]]:
        fecha, hora = processing_timestamp()
        valid: List[OpenETLDocument] = []
        invalid: List[FailedDocument] = []
        providers_seen: Dict[Tuple[str, str], Any] = {}

        for doc in documents:
            doc = doc.model_copy(deep=True)
            if not doc.cdo_ambiente:
                doc.cdo_ambiente = self.settings.cdo_ambiente_default

            error = None
            if kind == "DS" and self.providers is not None:
                error = self._enrich_with_provider(doc, providers_seen)
            elif kind != "DS" and self.acquirers is not None:
                error = self._enrich_with_acquirer(doc)
            if error:
                invalid.append(FailedDocument(
                    documento=kind,
                    consecutivo=doc.cdo_consecutivo,
                    prefijo=doc.rfa_prefijo,
                    errors=[error],
                    fecha_procesamiento=fecha,
                    hora_procesamiento=hora,
                ))
                logger.warning(
                    "Documento descartado antes del envío: %s", error,
                    extra={"prefijo": doc.rfa_prefijo, "consecutivo": doc.cdo_consecutivo},
                )
                continue

            self._enrich_with_ofe(doc)
            valid.append(doc)

        return valid, invalid

    def _enrich_with_acquirer(self, doc: OpenETLDocument) -> Optional[str]:
        """Completa los adq_* vacíos. Devuelve el mensaje de error si no se puede."""
        ofe = NitValidator.nit_sin_dv(doc.ofe_identificacion)
        adq = NitValidator.nit_sin_dv(doc.adq_identificacion)
        try:
            acq = self.acquirers.find(ofe, adq)
        except Exception as e:
            logger.error("Error consultando adquiriente %s del OFE %s: %s", adq, ofe, e)
            return f"Error al buscar adquiriente: {e}"

        if acq is None:
            return (
                f"Adquiriente [{adq}] (normalizado desde {doc.adq_identificacion}) no encontrado "
                f"para el OFE [{ofe}] (normalizado desde {doc.ofe_identificacion})"
            )

        pai_codigo = _first(acq.pai_codigo_domicilio_fiscal, acq.pai_codigo)
        fallback = {
            "adq_razon_social": acq.adq_razon_social,
            "adq_direccion": _first(acq.adq_direccion_domicilio_fiscal, acq.adq_direccion),
            "adq_municipio_codigo": _first(acq.mun_codigo_domicilio_fiscal, acq.mun_codigo),
            "adq_municipio_nombre": _first(acq.mun_nombre_domicilio_fiscal, acq.mun_nombre),
            "adq_departamento_codigo": _first(acq.dep_codigo_domicilio_fiscal, acq.dep_codigo),
            "adq_departamento_nombre": _first(acq.dep_nombre_domicilio_fiscal, acq.dep_nombre),
            "adq_pais_codigo": pai_codigo,
            "adq_cpo_codigo": _first(acq.cpo_codigo_domicilio_fiscal, acq.cpo_codigo),
        }
        for field, value in fallback.items():
            if not getattr(doc, field):
                setattr(doc, field, value)

        if not doc.adq_pais_nombre and pai_codigo == "CO":
            doc.adq_pais_nombre = "Colombia"
        return None

    def _enrich_with_provider(self, doc: OpenETLDocument, seen: Dict[Tuple[str, str], Any]) -> Optional[str]:
        """
        DS: completa los adq_* vacíos con los datos del proveedor.

        En DS los roles se invierten: adq_identificacion es el OFE dueño del
        proveedor y ofe_identificacion es el proveedor.
        """
        ofe = NitValidator.nit_sin_dv(doc.adq_identificacion)
        pro = NitValidator.nit_sin_dv(doc.ofe_identificacion)
        prov = seen.get((ofe, pro))
        if prov is None:
            try:
                prov = self.providers.find(ofe, pro)
            except Exception as e:
                logger.error("Error consultando proveedor %s del OFE %s: %s", pro, ofe, e)
                return f"Error al buscar proveedor: {e}"
            if prov is None:
                return (
                    f"Proveedor no encontrado: ofe_identificacion={ofe} (BD, normalizado desde "
                    f"{doc.adq_identificacion}) y pro_identificacion={pro} (BD, normalizado desde "
                    f"{doc.ofe_identificacion}) - mapeado desde adq_identificacion={doc.adq_identificacion} "
                    f"y ofe_identificacion={doc.ofe_identificacion} del request"
                )
            seen[(ofe, pro)] = prov

        pai_codigo = _first(prov.pai_codigo_domicilio_fiscal, prov.pai_codigo)
        fallback = {
            "adq_razon_social": _first(prov.pro_razon_social, prov.pro_nombre_comercial),
            "adq_direccion": _first(prov.pro_direccion_domicilio_fiscal, prov.pro_direccion),
            "adq_municipio_codigo": _first(prov.mun_codigo_domicilio_fiscal, prov.mun_codigo),
            "adq_departamento_codigo": _first(prov.dep_codigo_domicilio_fiscal, prov.dep_codigo),
            "adq_pais_codigo": pai_codigo,
            "adq_cpo_codigo": _first(prov.cpo_codigo_domicilio_fiscal, prov.cpo_codigo),
        }
        for field, value in fallback.items():
            if not getattr(doc, field):
                setattr(doc, field, value)

        if not doc.adq_pais_nombre and pai_codigo == "CO":
            doc.adq_pais_nombre = "Colombia"
        return None

    @staticmethod
    def _enrich_with_ofe(doc: OpenETLDocument) -> None:
        for field, value in OFE_DATA.items():
            setattr(doc, field, value)

    # ==================== CONSULTA ====================

    def get_documents(self, query: DocumentQueryRequest) -> List[EmittedDocument]:
        """Documentos emitidos por la empresa entre dos fechas (inclusive)."""
        self._validate_range(query)
        return self.client.get_documents(query.company_nit, query.initial_date, query.final_date)

    def get_received_documents(self, query: DocumentQueryRequest) -> List[EmittedDocument]:
        """Documentos recibidos de proveedores entre dos fechas (inclusive)."""
        self._validate_range(query)
        return self.client.get_received_documents(query.company_nit, query.initial_date, query.final_date)

    def get_document_by_number(self, query: DocumentByNumberRequest) -> List[EmittedDocument]:
        self._validate_nit(query.company_nit, "company")
        if not query.document_number:
            raise ValidationError("document number is required")
        self._validate_nit(query.supplier_nit, "supplier")
        return self.client.get_document_by_number(query.company_nit, query.document_number, query.supplier_nit)

    @staticmethod
    def _validate_nit(nit: str, role: str) -> None:
        if not nit:
            raise ValidationError(f"{role} nit is required")
        if not 9 <= len(nit) <= 15:
            raise ValidationError(f"invalid {role} nit format: must be between 9 and 15 characters")

    def _validate_range(self, query: DocumentQueryRequest) -> None:
        self._validate_nit(query.company_nit, "company")
        if not query.initial_date:
            raise ValidationError("initial date is required")
        if not query.final_date:
            raise ValidationError("final date is required")

        initial = _parse_date(query.initial_date)
        if initial is None:
            raise ValidationError("invalid initial date format: must be YYYY-MM-DD")
        final = _parse_date(query.final_date)
        if final is None:
            raise ValidationError("invalid final date format: must be YYYY-MM-DD")
        if initial > final:
            raise ValidationError("initial date must be before or equal to final date")

    def find_received_document(self, nit: str, cufe: str, fecha: str) -> Optional[EmittedDocument]:
        """Busca un CUFE entre los documentos recibidos por el NIT en la fecha indicada."""
        query = DocumentQueryRequest(CompanyNit=nit, InitialDate=fecha, FinalDate=fecha)
        documentos = self.get_received_documents(query)
        for documento in documentos:
            if documento.cufe == cufe:
                return documento
        logger.warning(
            "CUFE no encontrado entre los documentos recibidos",
            extra={"cufe": cufe, "fecha": fecha, "nit": nit, "docs_count": len(documentos)},
        )
        return None
