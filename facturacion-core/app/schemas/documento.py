# app/schemas/documento.py
"""
Esquemas del documento canónico (formato OpenETL) y de la respuesta de lote.

Los campos obligatorios se declaran con valor por defecto "" para que la
validación de negocio (services/invoice_service.py) reporte el campo faltante
por documento en lugar de rechazar el lote completo con un 422.
"""
from pydantic import BaseModel, Field
from typing import Any, Dict, List, Optional


class OrderReference(BaseModel):
    id: str = ""


class ConceptoCorreccion(BaseModel):
    cco_codigo: str = ""
    cdo_observacion_correccion: str = ""


class FacturaReferencia(BaseModel):
    prefijo_fc: str = ""
    numero_factura_fc: str = ""


class MedioPago(BaseModel):
    fpa_codigo: str = ""
    mpa_codigo: str = ""
    men_fecha_vencimiento: Optional[str] = None


class ValorMonedaNacional(BaseModel):
    base: str = ""
    valor: str = ""


class Retencion(BaseModel):
    tipo: str = ""
    razon: str = ""
    porcentaje: str = ""
    valor_moneda_nacional: ValorMonedaNacional = Field(default_factory=ValorMonedaNacional)


class FechaCompra(BaseModel):
    """Fecha de compra por ítem (solo DS)."""
    fecha_compra: str = ""
    codigo: str = ""


class Item(BaseModel):
    ddo_tipo_item: str = ""
    ddo_secuencia: str = ""
    cpr_codigo: str = ""
    ddo_codigo: str = ""
    ddo_descripcion_uno: str = ""
    ddo_cantidad: str = ""
    und_codigo: str = ""
    ddo_valor_unitario: str = ""
    ddo_total: str = ""
    ddo_fecha_compra: Optional[FechaCompra] = None
    ddo_informacion_adicional: List[Any] = Field(default_factory=list)


class TributoPorcentaje(BaseModel):
    iid_base: str = ""
    iid_porcentaje: str = ""


class Tributo(BaseModel):
    ddo_secuencia: str = ""
    tri_codigo: str = ""
    iid_valor: str = ""
    iid_motivo_exencion: Optional[str] = None
    iid_porcentaje: Optional[TributoPorcentaje] = None


class OpenETLDocument(BaseModel):
    tde_codigo: str = ""
    top_codigo: str = ""
    ofe_identificacion: str = ""
    adq_identificacion: str = ""
    adq_identificacion_autorizado: Optional[str] = None

    # Resolución de facturación
    rfa_prefijo: str = ""
    rfa_resolucion: str = ""
    rfa_fecha_inicio: Optional[str] = None
    rfa_fecha_fin: Optional[str] = None
    rfa_numero_inicio: Optional[str] = None
    rfa_numero_fin: Optional[str] = None

    cdo_ambiente: Optional[str] = None
    cdo_consecutivo: str = ""
    cdo_fecha: str = ""
    cdo_hora: str = ""
    cdo_vencimiento: Optional[str] = None
    cdo_representacion_grafica_documento: Optional[str] = None
    cdo_representacion_grafica_acuse: Optional[str] = None
    cdo_medios_pago: List[MedioPago] = Field(default_factory=list)
    cdo_informacion_adicional: Optional[Dict[str, Any]] = None

    # Totales (decimales como string)
    mon_codigo: str = ""
    cdo_valor_sin_impuestos: str = ""
    cdo_impuestos: str = ""
    cdo_total: str = ""
    cdo_retenciones_sugeridas: str = ""
    cdo_retenciones: str = ""
    cdo_cargos: str = ""
    cdo_descuentos: str = ""
    cdo_anticipo: str = ""
    cdo_redondeo: str = ""
    cdo_detalle_anticipos: List[Any] = Field(default_factory=list)
    cdo_detalle_retenciones_sugeridas: List[Retencion] = Field(default_factory=list)

    items: List[Item] = Field(default_factory=list)
    tributos: List[Tributo] = Field(default_factory=list)

    # Adquiriente (se completa desde la base de datos si viene vacío)
    adq_razon_social: Optional[str] = None
    adq_direccion: Optional[str] = None
    adq_municipio_codigo: Optional[str] = None
    adq_municipio_nombre: Optional[str] = None
    adq_departamento_codigo: Optional[str] = None
    adq_departamento_nombre: Optional[str] = None
    adq_pais_codigo: Optional[str] = None
    adq_pais_nombre: Optional[str] = None
    adq_cpo_codigo: Optional[str] = None

    # Oferente
    ofe_razon_social: Optional[str] = None
    ofe_direccion: Optional[str] = None
    ofe_municipio_codigo: Optional[str] = None
    ofe_municipio_nombre: Optional[str] = None
    ofe_departamento_codigo: Optional[str] = None
    ofe_departamento_nombre: Optional[str] = None

    note: List[str] = Field(default_factory=list)
    order_reference: Optional[OrderReference] = None

    # Referencia a la factura original y concepto de corrección (NC/ND)
    factura_referencia: Optional[FacturaReferencia] = None
    cdo_conceptos_correccion: Optional[ConceptoCorreccion] = None

    @property
    def numero_completo(self) -> str:
        return self.rfa_prefijo + self.cdo_consecutivo


class DocumentosPorTipo(BaseModel):
    FC: List[OpenETLDocument] = Field(default_factory=list)
    NC: List[OpenETLDocument] = Field(default_factory=list)
    ND: List[OpenETLDocument] = Field(default_factory=list)
    DS: List[OpenETLDocument] = Field(default_factory=list)


class DocumentRegistrationRequest(BaseModel):
    documentos: DocumentosPorTipo = Field(default_factory=DocumentosPorTipo)

    class Config:
        json_schema_extra = {
            "example": {
                "documentos": {
                    "FC": [{
                        "tde_codigo": "01",
                        "top_codigo": "10",
                        "ofe_identificacion": "860011153-6",
                        "adq_identificacion": "900123456",
                        "rfa_prefijo": "SETT",
                        "rfa_resolucion": "18760000001",
                        "cdo_consecutivo": "5604",
                        "cdo_fecha": "2025-01-15",
                        "cdo_hora": "10:30:00",
                        "mon_codigo": "COP",
                        "cdo_valor_sin_impuestos": "176471.00",
                        "cdo_impuestos": "33529.00",
                        "cdo_total": "210000.00",
                        "items": [{"ddo_secuencia": "1", "ddo_descripcion_uno": "Servicio",
                                   "ddo_cantidad": "1", "und_codigo": "UN",
                                   "ddo_valor_unitario": "176471.00", "ddo_total": "176471.00"}]
                    }]
                }
            }
        }


class ProcessedDocumentOut(BaseModel):
    cdo_id: int
    rfa_prefijo: str
    cdo_consecutivo: str
    fecha_procesamiento: str
    hora_procesamiento: str
    xml_base64: Optional[str] = None
    pdf_base64: Optional[str] = None


class FailedDocumentOut(BaseModel):
    documento: str
    consecutivo: str
    prefijo: str
    errors: List[str]
    fecha_procesamiento: str
    hora_procesamiento: str


class DocumentRegistrationResponse(BaseModel):
    message: str
    lote: str
    documentos_procesados: List[ProcessedDocumentOut] = Field(default_factory=list)
    documentos_fallidos: List[FailedDocumentOut] = Field(default_factory=list)


class DocumentQueryRequest(BaseModel):
    """Consulta de documentos emitidos por rango de fechas (GetInfoDocument)."""
    company_nit: str = Field("", alias="CompanyNit", description="NIT de la empresa emisora")
    initial_date: str = Field("", alias="InitialDate", description="Fecha inicial YYYY-MM-DD")
    final_date: str = Field("", alias="FinalDate", description="Fecha final YYYY-MM-DD")

    class Config:
        populate_by_name = True
        json_schema_extra = {
            "example": {"CompanyNit": "860011153", "InitialDate": "2025-01-01", "FinalDate": "2025-01-31"}
        }


class DocumentOut(BaseModel):
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
    urlPDF: Optional[str] = None
    urlXML: Optional[str] = None


class DocumentQueryResponse(BaseModel):
    status: str
    message: str
    total: int
    data: List[DocumentOut] = Field(default_factory=list)


class DocumentByNumberRequest(BaseModel):
    """Consulta de un documento recibido por número (GetDocumentByNumber)."""
    company_nit: str = Field("", alias="CompanyNit", description="NIT de la empresa receptora")
    document_number: str = Field("", alias="DocumentNumber", description="Prefijo + consecutivo")
    supplier_nit: str = Field("", alias="SupplierNit", description="NIT del proveedor emisor")

    class Config:
        populate_by_name = True
        json_schema_extra = {
            "example": {"CompanyNit": "860011153", "DocumentNumber": "FE101", "SupplierNit": "900123456"}
        }


class DocumentDownloadRequest(BaseModel):
    id: str = Field("", description="CUFE del documento")


class DocumentLinksResponse(BaseModel):
    mensaje: str
    status: int
    urlPDF: Optional[str] = None
    urlXML: Optional[str] = None
    cufe: Optional[str] = None
