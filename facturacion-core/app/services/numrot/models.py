# app/services/numrot/models.py
"""Resultados del motor de envío a Numrot y de las consultas Radian."""
from __future__ import annotations
from dataclasses import asdict, dataclass, field
from datetime import date
from typing import Any, Dict, List, Optional


@dataclass
class ProcessedDocument:
    cdo_id: int
    rfa_prefijo: str
    cdo_consecutivo: str
    fecha_procesamiento: str
    hora_procesamiento: str
    xml_base64: str = ""
    pdf_base64: str = ""

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        # xml/pdf solo viajan cuando Numrot los devuelve
        if not data["xml_base64"]:
            data.pop("xml_base64")
        if not data["pdf_base64"]:
            data.pop("pdf_base64")
        return data


@dataclass
class FailedDocument:
    documento: str
    consecutivo: str
    prefijo: str
    errors: List[str]
    fecha_procesamiento: str
    hora_procesamiento: str

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class RegistrationResponse:
    message: str
    lote: str
    documentos_procesados: List[ProcessedDocument] = field(default_factory=list)
    documentos_fallidos: List[FailedDocument] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "message": self.message,
            "lote": self.lote,
            "documentos_procesados": [d.to_dict() for d in self.documentos_procesados],
            "documentos_fallidos": [d.to_dict() for d in self.documentos_fallidos],
        }


@dataclass
class Resolution:
    resolution_number: str
    resolution_date: Optional[date]
    prefix: str
    from_number: int
    to_number: int
    valid_date_from: date
    valid_date_to: date

    def to_dict(self) -> Dict[str, Any]:
        return {
            "resolutionNumber": self.resolution_number,
            "resolutionDate": self.resolution_date.isoformat() if self.resolution_date else None,
            "prefix": self.prefix,
            "fromNumber": self.from_number,
            "toNumber": self.to_number,
            "validDateFrom": self.valid_date_from.isoformat(),
            "validDateTo": self.valid_date_to.isoformat(),
        }


@dataclass
class EventResultItem:
    tipo_evento: str = ""
    mensaje: str = ""
    mensaje_error: str = ""
    codigo_respuesta: str = ""


@dataclass
class EventRegistrationResult:
    codigo: str
    numero_documento: str
    resultado: List[EventResultItem] = field(default_factory=list)
    mensaje_error: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "Code": self.codigo,
            "NumeroDocumento": self.numero_documento,
            "Resultado": [
                {
                    "TipoEvento": r.tipo_evento,
                    "Mensaje": r.mensaje,
                    "MensajeError": r.mensaje_error,
                    "CodigoRespuesta": r.codigo_respuesta,
                }
                for r in self.resultado
            ],
            "MensajeError": self.mensaje_error,
        }


@dataclass
class EmittedDocument:
    """Documento emitido o recibido (GetInfoDocument, GetDocumentByNumber, DocumentsReceived)."""
    ofe: str
    proveedor: str
    tipo: str
    prefijo: str
    consecutivo: str
    cufe: str
    fecha: str
    hora: str
    valor: float
    marca: bool = False
    url_pdf: Optional[str] = None
    url_xml: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "ofe": self.ofe,
            "proveedor": self.proveedor,
            "tipo": self.tipo,
            "prefijo": self.prefijo,
            "consecutivo": self.consecutivo,
            "cufe": self.cufe,
            "fecha": self.fecha,
            "hora": self.hora,
            "valor": self.valor,
            "marca": self.marca,
        }
        if self.url_pdf:
            data["urlPDF"] = self.url_pdf
        if self.url_xml:
            data["urlXML"] = self.url_xml
        return data


def _text(value: Any) -> str:
    return "" if value is None else str(value)


def _amount(value: Any) -> float:
    try:
        return float(value or 0)
    except (TypeError, ValueError):
        return 0.0


def _items(value: Any) -> List[Any]:
    return list(value) if isinstance(value, list) else []


@dataclass
class DocumentInfo:
    """
    Un documento de DocumentInfo / searchestadosdian.

    Conserva la estructura de Numrot (Emisor, Receptor, NumeroDocumento...)
    aplanada en atributos; `to_dict` la devuelve con las claves originales.
    """
    document_type_id: str = ""
    document_type_name: str = ""
    emisor_nombre: str = ""
    emisor_nit: str = ""
    estado: Dict[str, str] = field(default_factory=dict)
    fecha_emision: str = ""
    folio: str = ""
    serie: str = ""
    receptor_nombre: str = ""
    receptor_nit: str = ""
    receptor_tipo_doc: str = ""
    iva: float = 0.0
    total: float = 0.0
    uuid: str = ""
    qr: str = ""
    signature_value: str = ""
    resolucion: str = ""
    hora_documento: str = ""
    eventos: List[Any] = field(default_factory=list)
    document_tags: List[Any] = field(default_factory=list)
    referencias: List[Any] = field(default_factory=list)
    validaciones_doc: List[Any] = field(default_factory=list)
    legitimo_tenedor: str = ""

    @classmethod
    def from_numrot(cls, data: Dict[str, Any]) -> "DocumentInfo":
        emisor = data.get("Emisor") or {}
        receptor = data.get("Receptor") or {}
        numero = data.get("NumeroDocumento") or {}
        totales = data.get("TotalEImpuestos") or {}
        estado = data.get("Estado") or {}
        return cls(
            document_type_id=_text(data.get("DocumentTypeId")),
            document_type_name=_text(data.get("DocumentTypeName")),
            emisor_nombre=_text(emisor.get("Nombre")),
            emisor_nit=_text(emisor.get("NumeroDoc")),
            estado={str(k): _text(v) for k, v in estado.items()} if isinstance(estado, dict) else {},
            fecha_emision=_text(numero.get("FechaEmision")),
            folio=_text(numero.get("Folio")),
            serie=_text(numero.get("Serie")),
            receptor_nombre=_text(receptor.get("Nombre")),
            receptor_nit=_text(receptor.get("NumeroDoc")),
            receptor_tipo_doc=_text(receptor.get("TipoDoc")),
            iva=_amount(totales.get("Iva")),
            total=_amount(totales.get("Total")),
            uuid=_text(data.get("UUID")),
            qr=_text(data.get("QR")),
            signature_value=_text(data.get("SignatureValue")),
            resolucion=_text(data.get("Resolucion")),
            hora_documento=_text(data.get("HoraDocumento")),
            eventos=_items(data.get("Eventos")),
            document_tags=_items(data.get("DocumentTags")),
            referencias=_items(data.get("Referencias")),
            validaciones_doc=_items(data.get("ValidacionesDoc")),
            legitimo_tenedor=_text((data.get("LegitimoTenedor") or {}).get("Nombre")),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "DocumentTypeId": self.document_type_id,
            "DocumentTypeName": self.document_type_name,
            "Emisor": {"Nombre": self.emisor_nombre, "NumeroDoc": self.emisor_nit},
            "Estado": dict(self.estado),
            "NumeroDocumento": {"FechaEmision": self.fecha_emision, "Folio": self.folio, "Serie": self.serie},
            "Receptor": {"Nombre": self.receptor_nombre, "NumeroDoc": self.receptor_nit,
                         "TipoDoc": self.receptor_tipo_doc},
            "TotalEImpuestos": {"Iva": self.iva, "Total": self.total},
            "UUID": self.uuid,
            "QR": self.qr,
            "SignatureValue": self.signature_value,
            "Resolucion": self.resolucion,
            "HoraDocumento": self.hora_documento,
            "Eventos": list(self.eventos),
            "DocumentTags": list(self.document_tags),
            "Referencias": list(self.referencias),
            "ValidacionesDoc": list(self.validaciones_doc),
            "LegitimoTenedor": {"Nombre": self.legitimo_tenedor},
        }


@dataclass
class DocumentInfoResponse:
    status_code: str
    status_description: str
    documents: List[DocumentInfo] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "StatusCode": self.status_code,
            "StatusDescription": self.status_description,
            "DocumentInfo": [d.to_dict() for d in self.documents],
        }


@dataclass
class DianStatus:
    """Respuesta de searchestadosdian: validación DIAN con PDF en base64."""
    uuid: str = ""
    qr_text: str = ""
    track_id: str = ""
    warnings: List[str] = field(default_factory=list)
    status_code: str = ""
    error_reason: List[str] = field(default_factory=list)
    error_message: str = ""
    status_message: str = ""
    status_description: str = ""
    document: str = ""
    documents: List[DocumentInfo] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "Uuid": self.uuid,
            "QrText": self.qr_text,
            "TrackId": self.track_id,
            "Warnings": list(self.warnings),
            "StatusCode": self.status_code,
            "ErrorReason": list(self.error_reason),
            "ErrorMessage": self.error_message,
            "StatusMessage": self.status_message,
            "StatusDescription": self.status_description,
            "Document": self.document,
        }
        if self.documents:
            data["DocumentInfo"] = [d.to_dict() for d in self.documents]
        return data


@dataclass
class QrData:
    prefijo: str = ""
    consecutivo: str = ""
    fecha: str = ""
    hora: str = ""
    emisor_nit: str = ""
    receptor_nit: str = ""
    valor_total: float = 0.0
    valor_iva: float = 0.0
