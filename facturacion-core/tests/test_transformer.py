"""
Tests del transformador OpenETL -> Numrot (FC, NC, ND y DS).
"""
from types import SimpleNamespace

import pytest

from app.core.errors import ValidationError
from app.services.numrot.transformer import (
    DS_SUPPLIER_LOCATION,
    DocumentTransformer,
    TransformerConfig,
    build_document_sinc_url,
    combine_acquirer_emails,
    map_unit_code,
    parse_nit_with_dv,
)

from fakes import build_document


def _acquirer(**overrides):
    data = dict(
        tdo_codigo="31",
        toj_codigo="1",
        adq_razon_social="Cliente SAS",
        adq_nombre_contacto=None,
        adq_telefono="6041234567",
        adq_fax=None,
        adq_correo="facturas@cliente.co",
        adq_correos_notificacion="notif@cliente.co, facturas@cliente.co",
        contactos=[],
    )
    data.update(overrides)
    return SimpleNamespace(**data)


class StaticLookup:
    def __init__(self, acquirer):
        self.acquirer = acquirer
        self.calls = []

    def find(self, ofe_identificacion, adq_identificacion):
        self.calls.append((ofe_identificacion, adq_identificacion))
        return self.acquirer


class TestUtilidades:

    def test_parse_nit_with_dv(self):
        """Test: separación de NIT y DV"""
        assert parse_nit_with_dv("860011153-6") == ("860011153", "6")
        assert parse_nit_with_dv("860011153") == ("860011153", "")
        assert parse_nit_with_dv("") == ("", "")
        assert parse_nit_with_dv("1-2-3") == ("1", "3")

    def test_map_unit_code(self):
        """Test: unidades conocidas se traducen, desconocidas pasan igual"""
        assert map_unit_code("UN") == "94"
        assert map_unit_code("KG") == "KGM"
        assert map_unit_code("XYZ") == "XYZ"

    def test_combine_acquirer_emails_sin_duplicados(self):
        """Test: correos unidos con ';' preservando el orden"""
        result = combine_acquirer_emails("conta@cliente.co", "facturas@cliente.co",
                                         "notif@cliente.co, facturas@cliente.co")
        assert result == "conta@cliente.co;facturas@cliente.co;notif@cliente.co"

    def test_build_document_sinc_url(self):
        """Test: URL de DS sin DV y sin duplicar /api"""
        assert build_document_sinc_url("http://x/", "860011153-6", "DS", "10") == \
            "http://x/api/documentSinc/860011153/DS10"
        assert build_document_sinc_url("http://x/api", "860011153", "DS", "10") == \
            "http://x/api/documentSinc/860011153/DS10"


class TestFacturaVenta:

    def test_payload_basico(self):
        """Test: cabecera, totales y línea de una FC"""
        payload = DocumentTransformer().transform(build_document(cdo_ambiente="2"), "FC")

        assert payload["ID"] == "SETT5604"
        assert payload["CustomizationID"] == "10"
        assert payload["InvoiceTypeCode"] == "01"
        assert payload["ProfileExecutionID"] == "2"
        assert payload["IssueTime"] == "10:30:00-05:00"
        assert payload["LineCountNumeric"] == "1"
        assert payload["InvoiceControl"]["InvoiceAuthorization"] == "18760000001"
        assert payload["InvoiceControl"]["Prefix"] == "SETT"

        totals = payload["LegalMonetaryTotal"]
        assert totals["LineExtensionAmount"] == "176471.00"
        assert totals["TaxExclusiveAmount"] == "176471.00"
        assert totals["TaxInclusiveAmount"] == "210000.00"
        assert totals["PrePaidAmount"] == "0.00"

        assert payload["TaxTotal"][0]["TaxAmount"] == "33529.00"
        assert payload["TaxTotal"][0]["TaxSubtotal"][0]["Name"] == "IVA"

        line = payload["InvoiceLine"][0]
        assert line["unitCode"] == "94"
        assert line["TaxTotal"][0]["TaxSubtotal"][0]["Percent"] == "19.00"
        assert line["Item"]["StandardItemIdentification"] == {"ID": "SRV-01"}

    def test_campos_opcionales_ausentes_no_se_envian(self):
        """Test: DueDate, Note y PaymentMeans se omiten si no vienen"""
        payload = DocumentTransformer().transform(build_document(), "FC")
        for key in ("DueDate", "Note", "PaymentMeans", "PrePaidPayment", "OrderReference",
                    "PaymentExchangeRate", "DiscrepancyResponse", "InvoicePeriod"):
            assert key not in payload

    def test_supplier_usa_dv_del_nit(self):
        """Test: el DV del OFE va como schemeID"""
        payload = DocumentTransformer().transform(build_document(), "FC")
        tax_scheme = payload["AccountingSupplierParty"]["PartyTaxScheme"]
        assert tax_scheme["CompanyID"] == "860011153"
        assert tax_scheme["schemeID"] == "6"

    def test_resolucion_hardcoded_si_deshabilitada(self):
        """Test: con resoluciones deshabilitadas se completan los vacíos"""
        config = TransformerConfig(
            resolutions_enabled=False,
            hardcoded_invoice_auth="18760000001",
            hardcoded_start_date="2019-01-19",
            hardcoded_end_date="2030-01-19",
            hardcoded_prefix="SETP",
            hardcoded_from="990000000",
            hardcoded_to="995000000",
        )
        doc = build_document(rfa_resolucion="", rfa_fecha_inicio=None, rfa_numero_inicio=None)
        control = DocumentTransformer(config=config).transform(doc, "FC")["InvoiceControl"]

        assert control["InvoiceAuthorization"] == "18760000001"
        assert control["StartDate"] == "2019-01-19"
        assert control["From"] == "990000000"
        assert control["Prefix"] == "SETT"

    def test_agrupa_tributos_y_omite_grupos_en_cero(self):
        """Test: un TaxTotal por código de impuesto con total positivo"""
        doc = build_document(tributos=[
            {"ddo_secuencia": "1", "tri_codigo": "01", "iid_valor": "100.00",
             "iid_porcentaje": {"iid_base": "526.32", "iid_porcentaje": "19.00"}},
            {"ddo_secuencia": "2", "tri_codigo": "01", "iid_valor": "50.50",
             "iid_porcentaje": {"iid_base": "265.79", "iid_porcentaje": "19.00"}},
            {"ddo_secuencia": "1", "tri_codigo": "04", "iid_valor": "0.00"},
        ])
        totals = DocumentTransformer().build_tax_totals(doc)

        assert len(totals) == 1
        assert totals[0]["TaxAmount"] == "150.50"
        assert len(totals[0]["TaxSubtotal"]) == 2

    def test_impuesto_agregado_sin_tributos(self):
        """Test: sin tributos pero con cdo_impuestos se emite un grupo IVA"""
        doc = build_document(tributos=[])
        totals = DocumentTransformer().build_tax_totals(doc)
        assert totals[0]["TaxAmount"] == "33529.00"
        assert totals[0]["TaxSubtotal"][0]["TaxableAmount"] == "176471.00"

    def test_valores_no_finitos_son_error_de_validacion(self):
        """Test: NaN o Infinity en montos no rompen con InvalidOperation"""
        doc = build_document(tributos=[
            {"ddo_secuencia": "1", "tri_codigo": "01", "iid_valor": "NaN",
             "iid_porcentaje": {"iid_base": "526.32", "iid_porcentaje": "19.00"}},
        ])
        with pytest.raises(ValidationError, match="invalid monetary value: NaN"):
            DocumentTransformer().build_tax_totals(doc)

        with pytest.raises(ValidationError, match="invalid monetary value: sNaN"):
            DocumentTransformer().transform(build_document(cdo_anticipo="sNaN"), "FC")

    def test_contacto_del_adquiriente(self):
        """Test: AccountingContact y tipos del adquiriente registrado"""
        contacto = SimpleNamespace(con_tipo="AccountingContact", con_nombre="Ana",
                                   con_telefono="3001234567", con_correo="conta@cliente.co")
        lookup = StaticLookup(_acquirer(contactos=[contacto]))
        payload = DocumentTransformer(acquirers=lookup).transform(build_document(), "FC")

        customer = payload["AccountingCustomerParty"]
        assert customer["schemeName"] == "31"
        assert customer["AdditionalAccountID"] == "1"
        assert customer["Contact"]["Name"] == "Ana"
        assert customer["Contact"]["Telephone"] == "3001234567"
        assert customer["Contact"]["ElectronicMail"] == \
            "conta@cliente.co;facturas@cliente.co;notif@cliente.co"
        assert lookup.calls == [("860011153-6", "900123456")]

    def test_sin_telefono_no_hay_contacto(self):
        """Test: adquiriente sin teléfono no envía Contact"""
        lookup = StaticLookup(_acquirer(adq_telefono=None))
        customer = DocumentTransformer(acquirers=lookup).transform(build_document(), "FC")["AccountingCustomerParty"]
        assert "Contact" not in customer

    def test_error_de_consulta_usa_valores_por_defecto(self):
        """Test: un fallo del lookup no impide transformar"""
        class BrokenLookup:
            def find(self, ofe, adq):
                raise RuntimeError("db down")

        customer = DocumentTransformer(acquirers=BrokenLookup()).transform(build_document(), "FC")["AccountingCustomerParty"]
        assert customer["schemeName"] == "13"
        assert customer["AdditionalAccountID"] == "2"

    def test_tipo_no_soportado(self):
        """Test: tipo de documento desconocido"""
        with pytest.raises(ValidationError):
            DocumentTransformer().transform(build_document(), "XX")


class TestNotas:

    def test_nc_sin_referencia_ni_iva(self):
        """Test: NC sin tributos ni impuestos no lleva TaxTotal"""
        doc = build_document(
            prefijo="NC", consecutivo="77", tde_codigo="91", top_codigo="22",
            tributos=[], cdo_impuestos="0.00", cdo_valor_sin_impuestos="50000.00",
            cdo_total="50000.00",
        )
        payload = DocumentTransformer().transform(doc, "NC")

        assert "TaxTotal" not in payload
        assert payload["LegalMonetaryTotal"]["TaxExclusiveAmount"] == "0.00"
        assert payload["LegalMonetaryTotal"]["TaxInclusiveAmount"] == "50000.00"
        assert payload["InvoiceControl"] == {
            "InvoiceAuthorization": "",
            "StartDate": "",
            "EndDate": "",
            "Prefix": "NC",
            "From": "",
            "To": "",
        }
        assert "DiscrepancyResponse" not in payload

    def test_prefijo_por_defecto_es_el_tipo(self):
        """Test: ND sin prefijo usa 'ND' en InvoiceControl"""
        doc = build_document(prefijo="", tde_codigo="92", top_codigo="32")
        assert DocumentTransformer().transform(doc, "ND")["InvoiceControl"]["Prefix"] == "ND"

    def test_nc_con_referencia(self):
        """Test: NC con CustomizationID 20 lleva la referencia a la factura"""
        doc = build_document(
            prefijo="NC", consecutivo="78", tde_codigo="91", top_codigo="20",
            factura_referencia={"prefijo_fc": "SETT", "numero_factura_fc": "5604"},
            cdo_conceptos_correccion={"cco_codigo": "2", "cdo_observacion_correccion": "Anulación"},
        )
        payload = DocumentTransformer().transform(doc, "NC")

        assert payload["DiscrepancyResponse"] == [{
            "ReferenceID": "SETT5604", "ResponseCode": "2", "Description": ["Anulación"],
        }]
        assert payload["InvoiceDocumentReference"] == {"ID": "SETT5604"}

    def test_invoice_period_para_nc_22(self):
        """Test: NC 22 lleva InvoicePeriod configurado"""
        config = TransformerConfig(
            nc_invoice_period_start_date="2025-01-01", nc_invoice_period_start_time="00:00:00",
            nc_invoice_period_end_date="2025-01-31", nc_invoice_period_end_time="23:59:59",
        )
        doc = build_document(prefijo="NC", tde_codigo="91", top_codigo="22")
        period = DocumentTransformer(config=config).transform(doc, "NC")["InvoicePeriod"]
        assert period["StartDate"] == "2025-01-01"
        assert period["EndTime"] == "23:59:59"


class TestDocumentoSoporte:

    def _ds(self, **overrides):
        data = dict(
            prefijo="DS", consecutivo="10", tde_codigo="05", top_codigo="10",
            ofe_identificacion="900555666-1", adq_identificacion="860011153-6",
            adq_razon_social="Proveedor Persona Natural",
            items=[{
                "ddo_secuencia": "1", "ddo_codigo": "HON-01", "ddo_descripcion_uno": "Honorarios",
                "ddo_cantidad": "1", "und_codigo": "UN", "ddo_valor_unitario": "176471.00",
                "ddo_total": "176471.00",
                "ddo_fecha_compra": {"fecha_compra": "2025-01-14", "codigo": "1"},
            }],
        )
        data.update(overrides)
        return build_document(**data)

    def test_payload_ds(self):
        """Test: reglas fijas del documento soporte"""
        payload = DocumentTransformer().transform(self._ds(), "DS")

        assert payload["InvoiceTypeCode"] == "05"
        assert payload["CustomizationID"] == "10"
        assert "TaxTotal" not in payload
        assert payload["PaymentExchangeRate"]["CalculationRate"] == "1"
        assert payload["PaymentExchangeRate"]["Date"] == "2025-01-14"
        assert payload["LegalMonetaryTotal"]["TaxExclusiveAmount"] == "0.00"

        supplier = payload["AccountingSupplierParty"]
        assert supplier["PhysicalLocation"] == DS_SUPPLIER_LOCATION
        assert supplier["Name"] == "Proveedor Persona Natural"
        assert supplier["PartyTaxScheme"]["CompanyID"] == "900555666"

        customer = payload["AccountingCustomerParty"]
        assert customer["Name"] == "Positiva"
        assert customer["PartyTaxScheme"]["CompanyID"] == "860011153"
        assert customer["PartyTaxScheme"]["schemeID"] == "6"

        line = payload["InvoiceLine"][0]
        assert line["Note"] == ["", ""]
        assert line["Item"]["StandardItemIdentification"]["schemeID"] == "999"
        assert line["InvoicePeriod"]["Description"] == "Por operación"
        assert "TaxTotal" not in line

    def test_ds_ignora_tributos(self):
        """Test: DS nunca lleva impuestos aunque vengan tributos"""
        payload = DocumentTransformer().transform(self._ds(), "DS")
        assert "TaxTotal" not in payload
        assert "TaxTotal" not in payload["InvoiceLine"][0]
