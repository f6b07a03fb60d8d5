# app/services/numrot/reconciler.py
"""
Interpretación de las respuestas de SendDIAN / documentSinc.

Numrot responde en varios formatos; se prueban en orden y se usa el primero
que produce un StatusCode:

1. Objeto plano de un documento: {"StatusCode": "200", "DocumentNumber": ...}
2. Arreglo de objetos planos.
3. Envoltorio {"_size": n, "_preview": "<JSON como string>"}; el _preview
   contiene el formato 1 o 2.
4. Formato legado {message, lote, documentos_procesados, documentos_fallidos}.
"""
from __future__ import annotations
import json
import logging
from datetime import datetime, timedelta, timezone, tzinfo
from typing import Any, Dict, List, Optional, Sequence, Tuple
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from app.core.errors import UpstreamError
from app.schemas.documento import OpenETLDocument
from app.services.numrot.models import FailedDocument, ProcessedDocument, RegistrationResponse

logger = logging.getLogger(__name__)

MSG_ALL_PROCESSED = "Documentos procesados exitosamente"
MSG_ALL_FAILED = "Error al procesar documentos"
MSG_PARTIAL = "Algunos documentos fueron procesados, otros fallaron"
MSG_COMPLETED = "Procesamiento completado"
UNKNOWN_ERROR = "Error desconocido"


def colombia_tz() -> tzinfo:
    try:
        return ZoneInfo("America/Bogota")
    except ZoneInfoNotFoundError:
        # Sin base de zonas horarias: offset fijo UTC-5
        return timezone(timedelta(hours=-5), "America/Bogota")


def processing_timestamp(now: Optional[datetime] = None) -> Tuple[str, str]:
    """Fecha y hora de procesamiento en hora de Colombia."""
    now = (now or datetime.now(timezone.utc)).astimezone(colombia_tz())
    return now.strftime("%Y-%m-%d"), now.strftime("%H:%M:%S")


def lote_name(fecha: str, hora: str) -> str:
    return f"lote-{fecha}-{hora}"


def generate_lote(now: Optional[datetime] = None) -> str:
    """Identificador de lote con la fecha y hora de procesamiento en Bogotá."""
    return lote_name(*processing_timestamp(now))


def batch_message(processed: int, failed: int) -> str:
    if processed and not failed:
        return MSG_ALL_PROCESSED
    if failed and not processed:
        return MSG_ALL_FAILED
    if processed and failed:
        return MSG_PARTIAL
    return MSG_COMPLETED


def extract_prefix_and_consecutive(document_number: str) -> Tuple[str, str]:
    """
    Separa el número de documento en el primer dígito.

    "SETT5608" -> ("SETT", "5608"); sin dígitos todo es prefijo.
    """
    for i, ch in enumerate(document_number or ""):
        if ch.isdigit():
            return document_number[:i], document_number[i:]
    return document_number or "", ""


def _status_code(entry: Any) -> str:
    if not isinstance(entry, dict):
        return ""
    value = entry.get("StatusCode")
    return "" if value is None else str(value).strip()


def _as_int(value: Any) -> int:
    try:
        return int(str(value).strip())
    except (TypeError, ValueError):
        return 0


def _as_list(value: Any) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    if isinstance(value, list):
        return [v if isinstance(v, str) else str(v) for v in value]
    return [str(value)]


def _load(raw: Any) -> Any:
    if isinstance(raw, (bytes, bytearray)):
        raw = raw.decode("utf-8")
    return json.loads(raw)


def _document_entries(data: Any) -> Optional[List[Dict[str, Any]]]:
    """Formatos 1 a 3. None si `data` no corresponde a ninguno."""
    if isinstance(data, dict) and _status_code(data):
        return [data]

    if isinstance(data, list) and data and all(isinstance(e, dict) for e in data):
        return data

    if isinstance(data, dict) and data.get("_preview"):
        try:
            preview = _load(data["_preview"])
        except (TypeError, ValueError) as e:
            raise UpstreamError(f"unmarshal _preview: {e}") from e
        if isinstance(preview, list) and preview:
            return [e for e in preview if isinstance(e, dict)]
        if isinstance(preview, dict):
            return [preview]
        raise UpstreamError("unmarshal _preview: unexpected JSON value")

    return None


class ResponseReconciler:
    """
    Convierte la respuesta de Numrot en documentos procesados y fallidos
    asociados a los documentos enviados.
    """

    def __init__(self, clock=None):
        self._clock = clock

    def _now(self) -> datetime:
        return self._clock() if self._clock else datetime.now(timezone.utc)

    def reconcile(self, body: bytes, documents: Sequence[OpenETLDocument], kind: str) -> RegistrationResponse:
        try:
            data = _load(body)
        except ValueError as e:
            raise UpstreamError(f"unmarshal response: {e}") from e

        entries = _document_entries(data)
        if entries is not None:
            return self._from_entries(entries, documents, kind)

        if isinstance(data, dict):
            logger.info("Respuesta de Numrot en formato legado")
            return self._from_legacy(data)

        raise UpstreamError("unmarshal response: unexpected JSON value")

    # --- Formatos de documento ----------------------------------------------

    def _from_entries(self, entries: List[Dict[str, Any]], documents: Sequence[OpenETLDocument],
                      kind: str) -> RegistrationResponse:
        fecha, hora = processing_timestamp(self._now())
        procesados: List[ProcessedDocument] = []
        fallidos: List[FailedDocument] = []
        lote = ""

        for index, entry in enumerate(entries):
            if not lote:
                lote = str(entry.get("TrackId") or entry.get("Uuid") or "")

            prefijo, consecutivo = self._resolve_identity(str(entry.get("DocumentNumber") or ""), index, documents)

            if _as_int(_status_code(entry)) != 200:
                errors = []
                if entry.get("ErrorMessage"):
                    errors.append(str(entry["ErrorMessage"]))
                errors.extend(_as_list(entry.get("ErrorReason")))
                errors.extend(_as_list(entry.get("Warnings")))
                fallidos.append(FailedDocument(
                    documento=kind,
                    consecutivo=consecutivo,
                    prefijo=prefijo,
                    errors=errors or [UNKNOWN_ERROR],
                    fecha_procesamiento=fecha,
                    hora_procesamiento=hora,
                ))
                logger.warning(
                    "Documento rechazado por Numrot",
                    extra={"prefijo": prefijo, "consecutivo": consecutivo, "status_code": _status_code(entry)},
                )
                continue

            procesados.append(ProcessedDocument(
                cdo_id=self._cdo_id(entry, consecutivo),
                rfa_prefijo=prefijo,
                cdo_consecutivo=consecutivo,
                fecha_procesamiento=fecha,
                hora_procesamiento=hora,
                xml_base64=str(entry.get("Document") or ""),
                pdf_base64=str(entry.get("Pdfdocument") or ""),
            ))
            logger.info("Documento procesado por Numrot", extra={"prefijo": prefijo, "consecutivo": consecutivo})

        return RegistrationResponse(
            message=batch_message(len(procesados), len(fallidos)),
            lote=lote or generate_lote(),
            documentos_procesados=procesados,
            documentos_fallidos=fallidos,
        )

    @staticmethod
    def _resolve_identity(document_number: str, index: int,
                          documents: Sequence[OpenETLDocument]) -> Tuple[str, str]:
        """
        Asocia la respuesta a un documento enviado: primero por número completo,
        luego separando el número en el primer dígito y por último por posición.
        """
        for doc in documents:
            if document_number and document_number == doc.rfa_prefijo + doc.cdo_consecutivo:
                return doc.rfa_prefijo, doc.cdo_consecutivo

        prefijo, consecutivo = extract_prefix_and_consecutive(document_number)
        if prefijo and consecutivo:
            return prefijo, consecutivo

        if 0 <= index < len(documents):
            return documents[index].rfa_prefijo, documents[index].cdo_consecutivo
        if documents:
            return documents[0].rfa_prefijo, documents[0].cdo_consecutivo
        return document_number, ""

    @staticmethod
    def _cdo_id(entry: Dict[str, Any], consecutivo: str) -> int:
        # cdo_id explícito -> TrackId numérico -> consecutivo -> 0
        cdo_id = _as_int(entry.get("cdo_id"))
        if not cdo_id:
            cdo_id = _as_int(entry.get("TrackId"))
        if not cdo_id and consecutivo:
            cdo_id = _as_int(consecutivo)
        return cdo_id

    # --- Formato legado -----------------------------------------------------

    @staticmethod
    def _from_legacy(data: Dict[str, Any]) -> RegistrationResponse:
        procesados = [
            ProcessedDocument(
                cdo_id=_as_int(pd.get("cdo_id")),
                rfa_prefijo=str(pd.get("rfa_prefijo") or ""),
                cdo_consecutivo=str(pd.get("cdo_consecutivo") or ""),
                fecha_procesamiento=str(pd.get("fecha_procesamiento") or ""),
                hora_procesamiento=str(pd.get("hora_procesamiento") or ""),
            )
            for pd in data.get("documentos_procesados") or []
            if isinstance(pd, dict)
        ]
        fallidos = [
            FailedDocument(
                documento=str(fd.get("documento") or ""),
                consecutivo=str(fd.get("consecutivo") or ""),
                prefijo=str(fd.get("prefijo") or ""),
                errors=_as_list(fd.get("errors")),
                fecha_procesamiento=str(fd.get("fecha_procesamiento") or ""),
                hora_procesamiento=str(fd.get("hora_procesamiento") or ""),
            )
            for fd in data.get("documentos_fallidos") or []
            if isinstance(fd, dict)
        ]
        return RegistrationResponse(
            message=str(data.get("message") or "") or batch_message(len(procesados), len(fallidos)),
            lote=str(data.get("lote") or ""),
            documentos_procesados=procesados,
            documentos_fallidos=fallidos,
        )
