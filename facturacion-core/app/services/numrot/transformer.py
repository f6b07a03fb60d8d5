# app/services/numrot/transformer.py
"""
Transformación del documento canónico (OpenETL) al JSON que recibe Numrot
en /api/SendDIAN/Json/Pdf y /api/documentSinc.

Reglas principales por tipo de documento:
- FC y DS usan la resolución del documento; con resoluciones deshabilitadas
  se completan los campos vacíos con los valores NUMROT_HARDCODED_*.
- NC y ND envían InvoiceControl vacío salvo el prefijo ("NC"/"ND").
- DS no lleva impuestos, siempre lleva PaymentExchangeRate y usa datos fijos
  del OFE como ubicación del proveedor.
- Los campos opcionales ausentes NO se envían (equivalente a omitempty).
"""
from __future__ import annotations
import logging
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, List, Optional, Protocol, Tuple

from app.core.errors import ValidationError
from app.schemas.documento import Item, OpenETLDocument

logger = logging.getLogger(__name__)

DOCUMENT_KINDS = ("FC", "NC", "ND", "DS")

DEFAULT_CUSTOMIZATION = {"FC": "10", "NC": "22", "ND": "32", "DS": "10"}
DS_INVOICE_TYPE_CODE = "05"

# Zona horaria de Colombia para IssueTime sin offset
COLOMBIA_OFFSET = "-05:00"

SUPPLIER_CONTACT_EMAIL = "fact.electronica.positiva@3tcapital.co"
DS_CUSTOMER_NAME = "Positiva"
DEFAULT_TAX_LEVEL_CODE = "R-99-PN"

# Dirección fija del OFE usada como ubicación del proveedor en DS
DS_SUPPLIER_LOCATION = {
    "ID": "05380",
    "CityName": "LA ESTRELLA",
    "PostalZone": "55468",
    "CountrySubentity": "ANTIOQUIA",
    "CountrySubentityCode": "05",
    "Line": "CLL 50 - 96",
    "IdentificationCode": "CO",
    "Name": "Colombia",
}

TAX_NAMES = {
    "01": "IVA",
    "02": "Consumo",
    "03": "ICA",
    "04": "INC",
    "05": "ReteIVA",
    "06": "ReteFuente",
    "07": "ReteICA",
}

UNIT_CODES = {
    "UN": "94",
    "KG": "KGM",
    "GR": "GRM",
    "LT": "LTR",
    "MT": "MTR",
    "M2": "MTK",
    "M3": "MTQ",
    "HR": "HUR",
    "MIN": "MIN",
    "DIA": "DAY",
    "PAR": "PR",
    "DOC": "DZN",
    "CM": "CMT",
    "MM": "MMT",
}

DS_ITEM_SCHEME_ID = "999"
DS_ITEM_SCHEME_NAME = "Estándar de adopción del contribuyente"

_ZERO_VALUES = ("", "0", "0.00")


class AcquirerLookup(Protocol):
    """Busca el adquiriente registrado para un OFE (None si no existe)."""

    def find(self, ofe_identificacion: str, adq_identificacion: str) -> Any:
        ...


@dataclass
class TransformerConfig:
    resolutions_enabled: bool = True
    hardcoded_invoice_auth: str = ""
    hardcoded_start_date: str = ""
    hardcoded_end_date: str = ""
    hardcoded_prefix: str = ""
    hardcoded_from: str = ""
    hardcoded_to: str = ""
    nc_invoice_period_start_date: str = ""
    nc_invoice_period_start_time: str = ""
    nc_invoice_period_end_date: str = ""
    nc_invoice_period_end_time: str = ""


# ---------------------------------------------------------------------------
# Utilidades
# ---------------------------------------------------------------------------

def parse_nit_with_dv(nit: str) -> Tuple[str, str]:
    """
    Separa un NIT de su dígito de verificación.

    "860011153-1" -> ("860011153", "1"); "860011153" -> ("860011153", "").
    Con varios guiones se toma la primera parte como NIT y la última como DV.
    """
    if not nit:
        return "", ""
    parts = nit.split("-")
    if len(parts) == 1:
        return nit, ""
    return parts[0].strip(), parts[-1].strip()


def map_unit_code(code: str) -> str:
    """Código de unidad OpenETL -> UBL. Los desconocidos pasan sin cambio."""
    return UNIT_CODES.get(code, code)


def tax_name(code: str) -> str:
    return TAX_NAMES.get(code, "Impuesto")


def combine_acquirer_emails(contact_email: str = "",
                            adq_correo: Optional[str] = None,
                            adq_correos_notificacion: Optional[str] = None) -> str:
    """
    Une los correos del adquiriente separados por ';' sin duplicados.

    Orden: correo del AccountingContact, correo principal y luego los correos
    de notificación (separados por coma).
    """
    candidates = [contact_email or "", adq_correo or ""]
    candidates.extend((adq_correos_notificacion or "").split(","))

    emails: List[str] = []
    for email in candidates:
        email = email.strip()
        if email and email not in emails:
            emails.append(email)
    return ";".join(emails)


def normalize_monetary_value(value: str) -> str:
    return "0.00" if value in _ZERO_VALUES else value


def _to_decimal(value: Optional[str]) -> Optional[Decimal]:
    """None si el texto no es numérico; NaN e Infinity son un error del documento."""
    try:
        amount = Decimal((value or "").strip())
    except InvalidOperation:
        return None
    if not amount.is_finite():
        raise ValidationError(f"invalid monetary value: {value}")
    return amount


def _is_positive(value: Optional[str]) -> bool:
    amount = _to_decimal(value)
    return amount is not None and amount > 0


def _compact(data: Dict[str, Any]) -> Dict[str, Any]:
    """Elimina las claves con valor None (campos opcionales ausentes)."""
    return {k: v for k, v in data.items() if v is not None}


def _location(id_: str, city: str, postal_zone: str, subentity: str,
              subentity_code: str, line: str, country_code: str = "CO",
              country_name: str = "Colombia") -> Dict[str, str]:
    return {
        "ID": id_,
        "CityName": city,
        "PostalZone": postal_zone,
        "CountrySubentity": subentity,
        "CountrySubentityCode": subentity_code,
        "Line": line,
        "IdentificationCode": country_code,
        "Name": country_name,
    }


def build_customer_location(doc: OpenETLDocument) -> Dict[str, str]:
    """
    Ubicación del adquiriente. El ID es el código DIVIPOLA (departamento +
    municipio); PostalZone usa el código postal y si no el del municipio.
    """
    dep = doc.adq_departamento_codigo or ""
    mun = doc.adq_municipio_codigo or ""
    return _location(
        dep + mun,
        doc.adq_municipio_nombre or "",
        doc.adq_cpo_codigo or mun,
        doc.adq_departamento_nombre or "",
        dep,
        doc.adq_direccion or "",
        doc.adq_pais_codigo or "CO",
        doc.adq_pais_nombre or "Colombia",
    )


def build_supplier_location(doc: OpenETLDocument) -> Dict[str, str]:
    mun = doc.ofe_municipio_codigo or ""
    return _location(
        mun,
        doc.ofe_municipio_nombre or "",
        mun,
        doc.ofe_departamento_nombre or "",
        doc.ofe_departamento_codigo or "",
        doc.ofe_direccion or "",
    )


def build_document_sinc_url(base_url: str, ofe_identificacion: str, prefijo: str, consecutivo: str) -> str:
    """
    URL de envío de DS: {base}/api/documentSinc/{nit sin DV}/{prefijo+consecutivo}.

    Si la URL base ya termina en /api no se duplica el segmento.
    """
    base_nit, _ = parse_nit_with_dv(ofe_identificacion)
    base_url = base_url.rstrip("/")
    if base_url.endswith("/api"):
        return f"{base_url}/documentSinc/{base_nit}/{prefijo}{consecutivo}"
    return f"{base_url}/api/documentSinc/{base_nit}/{prefijo}{consecutivo}"


# ---------------------------------------------------------------------------
# Transformador
# ---------------------------------------------------------------------------

class DocumentTransformer:
    """Construye el payload de Numrot para un documento FC, NC, ND o DS."""

    def __init__(self, config: Optional[TransformerConfig] = None,
                 acquirers: Optional[AcquirerLookup] = None):
        self.config = config or TransformerConfig()
        self.acquirers = acquirers

    def transform(self, doc: OpenETLDocument, kind: str) -> Dict[str, Any]:
        if kind not in DOCUMENT_KINDS:
            raise ValidationError(f"unsupported document type: {kind}")
        if not doc.ofe_identificacion:
            raise ValidationError("ofe_identificacion is required")

        customization_id = doc.top_codigo or DEFAULT_CUSTOMIZATION[kind]
        invoice_type_code = DS_INVOICE_TYPE_CODE if kind == "DS" else doc.tde_codigo

        issue_time = doc.cdo_hora
        if "-" not in issue_time and "+" not in issue_time:
            issue_time += COLOMBIA_OFFSET

        tax_totals: List[Dict[str, Any]] = []
        if kind != "DS":
            tax_totals = self.build_tax_totals(doc)

        payload = {
            "InvoiceControl": self._invoice_control(doc, kind),
            "CustomizationID": customization_id,
            "ProfileExecutionID": "1" if doc.cdo_ambiente == "1" else "2",
            "ID": doc.rfa_prefijo + doc.cdo_consecutivo,
            "IssueDate": doc.cdo_fecha,
            "IssueTime": issue_time,
            "DueDate": doc.cdo_vencimiento,
            "InvoiceTypeCode": invoice_type_code,
            "Note": list(doc.note) if doc.note else None,
            "DocumentCurrencyCode": doc.mon_codigo,
            "LineCountNumeric": str(len(doc.items)),
            "OrderReference": (
                {"ID": doc.order_reference.id}
                if doc.order_reference and doc.order_reference.id else None
            ),
        }
        payload.update(self._discrepancy(doc, customization_id))
        payload["AccountingSupplierParty"] = self._supplier_party(doc, kind)
        payload["AccountingCustomerParty"] = self._customer_party(doc, kind)
        payload["PaymentMeans"] = self._payment_means(doc) or None
        payload["PrePaidPayment"] = self._prepaid_payments(doc)
        payload["PaymentExchangeRate"] = self._payment_exchange_rate(doc) if kind == "DS" else None
        payload["InvoicePeriod"] = self._document_invoice_period(customization_id)
        payload["TaxTotal"] = tax_totals or None
        payload["LegalMonetaryTotal"] = self._legal_monetary_total(doc, kind, tax_totals)
        payload["InvoiceLine"] = [
            self.build_invoice_line(item, doc, kind, str(i))
            for i, item in enumerate(doc.items, start=1)
        ]
        return _compact(payload)

    # --- Bloques de cabecera ------------------------------------------------

    def _invoice_control(self, doc: OpenETLDocument, kind: str) -> Dict[str, str]:
        if kind in ("NC", "ND"):
            return {
                "InvoiceAuthorization": "",
                "StartDate": "",
                "EndDate": "",
                "Prefix": doc.rfa_prefijo or kind,
                "From": "",
                "To": "",
            }

        control = {
            "InvoiceAuthorization": doc.rfa_resolucion,
            "StartDate": doc.rfa_fecha_inicio or "",
            "EndDate": doc.rfa_fecha_fin or "",
            "Prefix": doc.rfa_prefijo,
            "From": doc.rfa_numero_inicio or "",
            "To": doc.rfa_numero_fin or "",
        }
        if not self.config.resolutions_enabled:
            cfg = self.config
            fallbacks = {
                "InvoiceAuthorization": cfg.hardcoded_invoice_auth,
                "StartDate": cfg.hardcoded_start_date,
                "EndDate": cfg.hardcoded_end_date,
                "Prefix": cfg.hardcoded_prefix,
                "From": cfg.hardcoded_from,
                "To": cfg.hardcoded_to,
            }
            for key, value in fallbacks.items():
                if not control[key] and value:
                    control[key] = value
        return control

    @staticmethod
    def _discrepancy(doc: OpenETLDocument, customization_id: str) -> Dict[str, Any]:
        # Solo NC/ND con referencia (20/30); 22 y 32 nunca llevan estos campos
        if customization_id not in ("20", "30"):
            return {}
        ref = doc.factura_referencia
        concepto = doc.cdo_conceptos_correccion
        if ref is None or concepto is None:
            return {}
        reference_id = ref.prefijo_fc + ref.numero_factura_fc
        if not (reference_id and concepto.cco_codigo and concepto.cdo_observacion_correccion):
            return {}
        return {
            "DiscrepancyResponse": [{
                "ReferenceID": reference_id,
                "ResponseCode": concepto.cco_codigo,
                "Description": [concepto.cdo_observacion_correccion],
            }],
            "InvoiceDocumentReference": {"ID": reference_id},
        }

    def _document_invoice_period(self, customization_id: str) -> Optional[Dict[str, str]]:
        cfg = self.config
        if customization_id != "22" or not (cfg.nc_invoice_period_start_date and cfg.nc_invoice_period_end_date):
            return None
        return {
            "StartDate": cfg.nc_invoice_period_start_date,
            "StartTime": cfg.nc_invoice_period_start_time,
            "EndDate": cfg.nc_invoice_period_end_date,
            "EndTime": cfg.nc_invoice_period_end_time,
        }

    # --- Partes ---------------------------------------------------------------

    def _supplier_party(self, doc: OpenETLDocument, kind: str) -> Dict[str, Any]:
        base_nit, dv = parse_nit_with_dv(doc.ofe_identificacion)
        company_id = base_nit or doc.ofe_identificacion

        if kind == "DS":
            # En DS ofe_identificacion trae el NIT del proveedor; sus datos
            # llegan en los campos adq_* luego del enriquecimiento
            name = doc.adq_razon_social or doc.ofe_identificacion
            location = dict(DS_SUPPLIER_LOCATION)
            return {
                "AdditionalAccountID": "1",
                "Name": name,
                "schemeName": "31",
                "PhysicalLocation": location,
                "PartyTaxScheme": {
                    "RegistrationName": name,
                    "CompanyID": company_id,
                    "schemeName": "31",
                    "TaxLevelCode": DEFAULT_TAX_LEVEL_CODE,
                    "RegistrationAddress": dict(DS_SUPPLIER_LOCATION),
                    "TaxScheme": {"ID": "01", "Name": "IVA"},
                },
                "PartyLegalEntity": {"ID": "SEDS"},
            }

        if dv:
            scheme_id = dv
        else:
            scheme_id = "6" if doc.cdo_ambiente == "1" else "2"

        name = doc.ofe_razon_social or company_id
        location = build_supplier_location(doc)
        return {
            "AdditionalAccountID": "1",
            "Name": name,
            "schemeName": "31",
            "PhysicalLocation": location,
            "PartyTaxScheme": {
                "RegistrationName": name,
                "CompanyID": company_id,
                "schemeID": scheme_id,
                "schemeName": "31",
                "TaxLevelCode": DEFAULT_TAX_LEVEL_CODE,
                "RegistrationAddress": dict(location),
                "TaxScheme": {"ID": "01", "Name": "IVA"},
            },
            "PartyLegalEntity": {
                "RegistrationName": name,
                "CompanyID": company_id,
                "schemeID": scheme_id,
                "schemeName": "31",
                "ID": doc.rfa_prefijo,
            },
            "Contact": {
                "Name": "",
                "Telephone": "",
                "Telefax": "",
                "ElectronicMail": SUPPLIER_CONTACT_EMAIL,
            },
        }

    def _customer_party(self, doc: OpenETLDocument, kind: str) -> Dict[str, Any]:
        if kind == "DS":
            # En DS adq_identificacion trae el NIT del OFE
            base_nit, dv = parse_nit_with_dv(doc.adq_identificacion)
            return {
                "AdditionalAccountID": "1",
                "Name": DS_CUSTOMER_NAME,
                "schemeName": "31",
                "PartyTaxScheme": {
                    "RegistrationName": DS_CUSTOMER_NAME,
                    "CompanyID": base_nit or doc.adq_identificacion,
                    "schemeID": dv or "6",
                    "schemeName": "31",
                    "TaxLevelCode": DEFAULT_TAX_LEVEL_CODE,
                    "TaxScheme": {"ID": "ZZ", "Name": "No aplica"},
                },
            }

        name = doc.adq_razon_social or doc.adq_identificacion
        location = build_customer_location(doc)
        scheme_name = "13"
        additional_account_id = "2"
        contact = None

        acquirer = self._find_acquirer(doc)
        if acquirer is not None:
            scheme_name = acquirer.tdo_codigo
            additional_account_id = acquirer.toj_codigo
            contact = self._customer_contact(acquirer)

        return _compact({
            "AdditionalAccountID": additional_account_id,
            "ID": doc.adq_identificacion,
            "Name": name,
            "schemeName": scheme_name,
            "PhysicalLocation": location,
            "PartyTaxScheme": {
                "RegistrationName": name,
                "CompanyID": doc.adq_identificacion,
                "schemeName": scheme_name,
                "TaxLevelCode": DEFAULT_TAX_LEVEL_CODE,
                "RegistrationAddress": dict(location),
                "TaxScheme": {"ID": "ZZ", "Name": "No aplica"},
            },
            "PartyLegalEntity": [{
                "RegistrationName": name,
                "CompanyID": doc.adq_identificacion,
                "schemeName": scheme_name,
            }],
            "Contact": contact,
        })

    def _find_acquirer(self, doc: OpenETLDocument):
        if self.acquirers is None:
            return None
        try:
            return self.acquirers.find(doc.ofe_identificacion, doc.adq_identificacion)
        except Exception as e:
            logger.warning(
                "No fue posible consultar el adquiriente; se usan valores por defecto",
                extra={"ofe": doc.ofe_identificacion, "adq": doc.adq_identificacion, "error": str(e)},
            )
            return None

    @staticmethod
    def _customer_contact(acquirer) -> Optional[Dict[str, str]]:
        name = telephone = email = ""
        for contacto in getattr(acquirer, "contactos", None) or []:
            if contacto.con_tipo == "AccountingContact":
                name = contacto.con_nombre or ""
                telephone = contacto.con_telefono or ""
                email = contacto.con_correo or ""
                break

        if not name:
            if acquirer.adq_nombre_contacto is not None:
                name = acquirer.adq_nombre_contacto
            else:
                name = acquirer.adq_razon_social or ""
        if not telephone and acquirer.adq_telefono:
            telephone = acquirer.adq_telefono

        # Sin teléfono no se envía Contact
        if not telephone:
            return None
        return {
            "Name": name,
            "Telephone": telephone,
            "Telefax": acquirer.adq_fax or "",
            "ElectronicMail": combine_acquirer_emails(
                email, acquirer.adq_correo, acquirer.adq_correos_notificacion
            ),
        }

    # --- Pagos y totales -----------------------------------------------------

    @staticmethod
    def _payment_means(doc: OpenETLDocument) -> List[Dict[str, Any]]:
        return [
            _compact({
                "ID": mp.fpa_codigo or "1",
                "PaymentMeansCode": mp.mpa_codigo,
                "PaymentDueDate": mp.men_fecha_vencimiento,
                "PaymentID": [mp.mpa_codigo],
            })
            for mp in doc.cdo_medios_pago
        ]

    @staticmethod
    def _prepaid_payments(doc: OpenETLDocument) -> Optional[List[Dict[str, str]]]:
        if doc.cdo_anticipo in _ZERO_VALUES or not _is_positive(doc.cdo_anticipo):
            return None
        return [{
            "ID": "1",
            "PaidAmount": doc.cdo_anticipo,
            "currencyID": doc.mon_codigo,
            "ReceivedDate": doc.cdo_fecha,
        }]

    @staticmethod
    def _payment_exchange_rate(doc: OpenETLDocument) -> Dict[str, str]:
        exchange_date = doc.cdo_fecha
        if doc.items and doc.items[0].ddo_fecha_compra and doc.items[0].ddo_fecha_compra.fecha_compra:
            exchange_date = doc.items[0].ddo_fecha_compra.fecha_compra
        return {
            "SourceCurrencyCode": doc.mon_codigo,
            "SourceCurrencyBaseRate": "1.00",
            "TargetCurrencyCode": doc.mon_codigo,
            "TargetCurrencyBaseRate": "1.00",
            "CalculationRate": "1",
            "Date": exchange_date,
        }

    @staticmethod
    def _legal_monetary_total(doc: OpenETLDocument, kind: str,
                              tax_totals: List[Dict[str, Any]]) -> Dict[str, str]:
        if kind == "DS" or not tax_totals:
            tax_exclusive = "0.00"
        else:
            tax_exclusive = doc.cdo_valor_sin_impuestos
        return {
            "LineExtensionAmount": doc.cdo_valor_sin_impuestos,
            "TaxExclusiveAmount": tax_exclusive,
            "TaxInclusiveAmount": doc.cdo_total,
            "AllowanceTotalAmount": "0.00",
            # DS acepta el anticipo tal cual (incluso vacío)
            "PrePaidAmount": doc.cdo_anticipo if kind == "DS" else normalize_monetary_value(doc.cdo_anticipo),
            "PayableAmount": doc.cdo_total,
            "currencyID": doc.mon_codigo,
        }

    def build_tax_totals(self, doc: OpenETLDocument) -> List[Dict[str, Any]]:
        """
        Agrupa los tributos por código de impuesto. Cada grupo suma sus
        subtotales; los grupos con total cero se omiten. Sin tributos pero con
        cdo_impuestos distinto de cero se emite un único grupo IVA con los
        valores agregados del documento.
        """
        rounding = None
        if doc.cdo_redondeo not in _ZERO_VALUES:
            rounding = normalize_monetary_value(doc.cdo_redondeo)

        groups: Dict[str, List[Dict[str, str]]] = {}
        for tributo in doc.tributos:
            code = tributo.tri_codigo or "01"
            percent, taxable = "0.00", "0.00"
            if tributo.iid_porcentaje is not None:
                percent = tributo.iid_porcentaje.iid_porcentaje
                taxable = tributo.iid_porcentaje.iid_base
            groups.setdefault(code, []).append({
                "TaxableAmount": taxable,
                "TaxAmount": tributo.iid_valor,
                "Percent": percent,
                "currencyID": doc.mon_codigo,
                "ID": code,
                "Name": tax_name(code),
            })

        totals = []
        for subtotals in groups.values():
            total = sum((_to_decimal(s["TaxAmount"]) or Decimal("0") for s in subtotals), Decimal("0"))
            if total > 0:
                totals.append(_compact({
                    "TaxAmount": f"{total:.2f}",
                    "RoundingAmount": rounding,
                    "currencyID": doc.mon_codigo,
                    "TaxSubtotal": subtotals,
                }))
        if totals:
            return totals

        if doc.cdo_impuestos in _ZERO_VALUES:
            return []
        return [_compact({
            "TaxAmount": doc.cdo_impuestos,
            "RoundingAmount": rounding,
            "currencyID": doc.mon_codigo,
            "TaxSubtotal": [{
                "TaxableAmount": doc.cdo_valor_sin_impuestos,
                "TaxAmount": doc.cdo_impuestos,
                "Percent": "0.00",
                "currencyID": doc.mon_codigo,
                "ID": "01",
                "Name": "IVA",
            }],
        })]

    def build_invoice_line(self, item: Item, doc: OpenETLDocument, kind: str, line_id: str) -> Dict[str, Any]:
        item_taxes = []
        if kind != "DS":
            for tributo in doc.tributos:
                if tributo.ddo_secuencia != item.ddo_secuencia or not _is_positive(tributo.iid_valor):
                    continue
                percent, taxable = "0.00", item.ddo_total
                if tributo.iid_porcentaje is not None:
                    percent = tributo.iid_porcentaje.iid_porcentaje
                    taxable = tributo.iid_porcentaje.iid_base
                item_taxes.append({
                    "TaxAmount": tributo.iid_valor,
                    "RoundingAmount": "0.00",
                    "currencyID": doc.mon_codigo,
                    "TaxSubtotal": [{
                        "TaxableAmount": taxable,
                        "TaxAmount": tributo.iid_valor,
                        "Percent": percent,
                        "currencyID": doc.mon_codigo,
                        "ID": tributo.tri_codigo,
                        "Name": tax_name(tributo.tri_codigo),
                    }],
                })

        sellers_id = standard_id = None
        if item.ddo_codigo:
            sellers_id = {"ID": item.ddo_codigo}
            if kind == "DS":
                standard_id = {
                    "ID": item.ddo_codigo,
                    "schemeID": DS_ITEM_SCHEME_ID,
                    "schemeName": DS_ITEM_SCHEME_NAME,
                }
            else:
                standard_id = {"ID": item.ddo_codigo}

        invoice_period = None
        compra = item.ddo_fecha_compra
        if compra is not None and compra.fecha_compra:
            invoice_period = {
                "StartDate": compra.fecha_compra,
                "DescriptionCode": compra.codigo,
                "Description": "Por operación" if compra.codigo == "1" else compra.codigo,
            }

        unit_code = map_unit_code(item.und_codigo)
        return _compact({
            "ID": line_id,
            "Note": ["", ""] if kind == "DS" else None,
            "InvoicedQuantity": item.ddo_cantidad,
            "unitCode": unit_code or None,
            "LineExtensionAmount": item.ddo_valor_unitario,
            "currencyID": doc.mon_codigo,
            "InvoicePeriod": invoice_period,
            "TaxTotal": item_taxes or None,
            "Item": _compact({
                "Description": item.ddo_descripcion_uno,
                "SellersItemIdentification": sellers_id,
                "StandardItemIdentification": standard_id,
            }),
            "Price": _compact({
                "PriceAmount": item.ddo_valor_unitario,
                "currencyID": doc.mon_codigo,
                "BaseQuantity": item.ddo_cantidad,
                "unitCode": unit_code or None,
            }),
        })
