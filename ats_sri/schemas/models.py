"""
ATS-SRI Pydantic Schemas
Transaction rows, request/response models for the API.
"""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Annotated, Optional

from pydantic import BaseModel, BeforeValidator, Field

from ats_sri.utils.formatters import format_autorizacion


def _texto(value):
    """Accept numbers where the SRI expects digit strings."""
    if value is None:
        return None
    if isinstance(value, (int, float, Decimal)) and not isinstance(value, bool):
        return format_autorizacion(value)
    return str(value).strip()


Texto = Annotated[str, BeforeValidator(_texto)]
TextoOpcional = Annotated[Optional[str], BeforeValidator(_texto)]
# Secuenciales se escriben y agrupan como enteros de hasta 9 dígitos
Secuencial = Annotated[str, BeforeValidator(_texto), Field(pattern=r"^\d{1,9}$")]
# Nombre del directorio de salida del informante: sin separadores de ruta
Identificacion = Annotated[str, BeforeValidator(_texto), Field(pattern=r"^[0-9A-Za-z]{1,20}$")]


# ─────────────────────────────────────────────────────────────
# ENUMS
# ─────────────────────────────────────────────────────────────

class TipoImpuesto(str, Enum):
    IVA = "IVA"
    RENTA = "RENTA"


class TipoEmision(str, Enum):
    ELECTRONICA = "E"
    FISICA = "F"


class EstadoRegistro(str, Enum):
    PENDIENTE = "PENDIENTE"
    VALIDADO = "VALIDADO"
    INCLUIDO_ATS = "INCLUIDO_ATS"
    ANULADO = "ANULADO"


class EstadoAts(str, Enum):
    GENERADO = "GENERADO"
    GENERADO_CON_ADVERTENCIAS = "GENERADO_CON_ADVERTENCIAS"
    DESCARGADO = "DESCARGADO"


ESTADOS_REPORTABLES = (EstadoRegistro.VALIDADO, EstadoRegistro.INCLUIDO_ATS)


# ─────────────────────────────────────────────────────────────
# INFORMANTE
# ─────────────────────────────────────────────────────────────

class Empresa(BaseModel):
    """Contribuyente que presenta el anexo."""
    ruc: Identificacion = Field(..., description="RUC (13), cédula (10) o pasaporte del informante")
    razon_social: str = Field(..., min_length=1)


# ─────────────────────────────────────────────────────────────
# TRANSACCIONES
# ─────────────────────────────────────────────────────────────

class DocumentoModificado(BaseModel):
    """Comprobante afectado por una nota de crédito o débito."""
    tipo_comprobante: Texto = "01"
    establecimiento: Texto
    punto_emision: Texto
    secuencial: Secuencial
    numero_autorizacion: Texto


class Compra(BaseModel):
    id: TextoOpcional = None
    periodo: Optional[str] = Field(None, description="MM/AAAA; por defecto el de fecha_registro")
    estado: EstadoRegistro = EstadoRegistro.VALIDADO

    codigo_sustento: Texto = "01"
    tipo_comprobante: Texto = "01"
    tipo_identificacion: Texto = Field("01", description="Tabla 2: 01=RUC, 02=Cédula, 03=Pasaporte")
    identificacion_proveedor: Texto
    tipo_proveedor: TextoOpcional = Field(None, description="01=Persona natural, 02=Sociedad")
    razon_social_proveedor: Optional[str] = None
    parte_relacionada: bool = False

    fecha_emision: date
    fecha_registro: Optional[date] = None
    establecimiento: Texto
    punto_emision: Texto
    secuencial: Secuencial
    numero_autorizacion: Texto

    base_no_objeto_iva: Decimal = Decimal("0")
    base_imponible_0: Decimal = Decimal("0")
    base_imponible_iva: Decimal = Decimal("0")
    base_exenta_iva: Decimal = Decimal("0")
    monto_iva: Decimal = Decimal("0")
    monto_ice: Decimal = Decimal("0")
    total_compra: Decimal = Decimal("0")

    forma_pago: TextoOpcional = None
    pais_efect_pago: TextoOpcional = Field(None, description="Código de país; presente = pago al exterior")
    aplica_convenio_doble_imposicion: bool = False
    pago_sujeto_retencion: bool = False

    documento_modificado: Optional[DocumentoModificado] = None


class Venta(BaseModel):
    id: TextoOpcional = None
    periodo: Optional[str] = None
    estado: EstadoRegistro = EstadoRegistro.VALIDADO

    tipo_comprobante: Texto = "01"
    tipo_identificacion_cliente: Texto = Field("04", description="Tabla 2: 04=RUC, 05=Cédula, 06=Pasaporte, 07=Consumidor final")
    identificacion_cliente: Texto
    razon_social_cliente: Optional[str] = None
    parte_relacionada: bool = False

    fecha_emision: date
    establecimiento: Texto = "001"
    punto_emision: Texto = "001"
    secuencial: Optional[Secuencial] = None
    numero_autorizacion: TextoOpcional = None

    base_no_objeto_iva: Decimal = Decimal("0")
    base_imponible_0: Decimal = Decimal("0")
    base_imponible_iva: Decimal = Decimal("0")
    monto_iva: Decimal = Decimal("0")
    monto_ice: Decimal = Decimal("0")
    valor_retencion_iva: Decimal = Decimal("0")
    valor_retencion_renta: Decimal = Decimal("0")
    total_venta: Decimal = Decimal("0")

    forma_pago: TextoOpcional = None
    tipo_emision: TipoEmision = TipoEmision.ELECTRONICA


class Exportacion(BaseModel):
    id: TextoOpcional = None
    periodo: Optional[str] = None
    estado: EstadoRegistro = EstadoRegistro.VALIDADO

    tipo_comprobante: Texto = "01"
    tipo_identificacion: Texto = "08"
    identificacion_cliente: Texto
    parte_relacionada: bool = False
    tipo_emision: TipoEmision = TipoEmision.ELECTRONICA

    tipo_regimen_fiscal: Texto = Field("01", description="01=Régimen general, 02=Paraíso fiscal, 03=Preferente")
    pais_destino: Texto
    pais_efect_pago: TextoOpcional = None
    exportacion_de: Texto = Field("01", description="01=Bienes con refrendo, 02=Bienes sin refrendo, 03=Servicios")

    # Refrendo aduanero
    distrito_exportacion: TextoOpcional = None
    anio_exportacion: TextoOpcional = None
    regimen_exportacion: TextoOpcional = None
    correlativo_exportacion: TextoOpcional = None
    verificador_exportacion: TextoOpcional = None

    valor_fob_comprobante: Decimal = Decimal("0")

    fecha_emision: date
    establecimiento: Texto
    punto_emision: Texto
    secuencial: Secuencial
    numero_autorizacion: Texto


class Retencion(BaseModel):
    id: TextoOpcional = None
    compra_id: TextoOpcional = Field(None, description="Compra a la que se aplicó la retención")
    periodo: Optional[str] = None
    estado: EstadoRegistro = EstadoRegistro.VALIDADO

    tipo_impuesto: TipoImpuesto
    codigo_retencion: Texto
    base_imponible: Decimal = Decimal("0")
    porcentaje_retencion: Decimal = Decimal("0")
    valor_retenido: Decimal = Decimal("0")

    establecimiento: Texto
    punto_emision: Texto
    secuencial: Secuencial
    numero_autorizacion: Texto
    fecha_emision: date


class DocumentoAnulado(BaseModel):
    tipo_comprobante: Texto
    establecimiento: Texto
    punto_emision: Texto
    secuencial: Secuencial
    numero_autorizacion: Texto


# ─────────────────────────────────────────────────────────────
# ATS
# ─────────────────────────────────────────────────────────────

class AtsRequest(BaseModel):
    """Datos de un periodo para generar el anexo."""
    empresa: Empresa
    periodo: str = Field(..., description="Periodo MM/AAAA", examples=["01/2025"])
    usuario: Optional[str] = Field(None, description="Usuario que solicita la generación")
    compras: list[Compra] = Field(default_factory=list)
    ventas: list[Venta] = Field(default_factory=list)
    exportaciones: list[Exportacion] = Field(default_factory=list)
    retenciones: list[Retencion] = Field(default_factory=list)
    anulados: list[DocumentoAnulado] = Field(default_factory=list)


class ValidationIssue(BaseModel):
    tipo: str
    mensaje: str
    ruta: Optional[str] = None
    valor: Optional[str] = None
    detalle: Optional[str] = None
    linea: Optional[int] = None
    columna: Optional[int] = None
    nivel: Optional[str] = None


class ValidationResult(BaseModel):
    valido: bool
    errores: list[ValidationIssue] = Field(default_factory=list)
    advertencias: list[ValidationIssue] = Field(default_factory=list)
    metodo: str = "básica"
    mensaje: str = ""
    xsd_disponible: bool = False


class AtsEstadisticas(BaseModel):
    total_compras: int = 0
    total_ventas: int = 0
    total_exportaciones: int = 0
    total_retenciones: int = 0
    total_anulados: int = 0


class HistorialAts(BaseModel):
    id: str
    ruc: str
    periodo: str
    usuario: Optional[str] = None
    nombre_archivo: str
    ruta_archivo_xml: str
    ruta_archivo_zip: str
    estadisticas: AtsEstadisticas
    validacion_xsd: bool
    estado: EstadoAts
    fecha_generacion: datetime


class AtsResponse(BaseModel):
    mensaje: str
    id: str
    archivo_xml: str
    archivo_zip: str
    ruta_descarga_xml: str
    ruta_descarga_zip: str
    estadisticas: AtsEstadisticas
    validacion: ValidationResult


class VentaAgrupada(BaseModel):
    tipo_identificacion_cliente: str
    identificacion_cliente: str
    parte_relacionada: bool = False
    tipo_comprobante: str
    tipo_emision: str
    numero_comprobantes: int = 0
    base_no_objeto_iva: Decimal = Decimal("0")
    base_imponible_0: Decimal = Decimal("0")
    base_imponible_iva: Decimal = Decimal("0")
    monto_iva: Decimal = Decimal("0")
    monto_ice: Decimal = Decimal("0")
    valor_retencion_iva: Decimal = Decimal("0")
    valor_retencion_renta: Decimal = Decimal("0")
    formas_pago: list[str] = Field(default_factory=list)


class AtsResumen(BaseModel):
    total_compras: int
    total_ventas: int
    total_ventas_agrupadas: int
    total_exportaciones: int
    valor_total_compras: str
    valor_total_ventas: str
    valor_total_exportaciones: str
    iva_compras: str
    iva_ventas: str
    retenciones_iva_recibidas: str
    retenciones_renta_recibidas: str


class AtsPreview(BaseModel):
    periodo: str
    empresa: Empresa
    resumen: AtsResumen
    ventas_agrupadas: list[VentaAgrupada] = Field(default_factory=list)


# ─────────────────────────────────────────────────────────────
# IMPORTACIÓN DE COMPROBANTES
# ─────────────────────────────────────────────────────────────

class ComprobanteImportado(BaseModel):
    """Datos de compra extraídos de una factura electrónica."""
    tipo_proveedor: str
    tipo_identificacion: str = "01"
    identificacion_proveedor: str
    razon_social_proveedor: str
    nombre_comercial: Optional[str] = None
    tipo_comprobante: str = "01"
    establecimiento: str
    punto_emision: str
    secuencial: str
    numero_autorizacion: str
    fecha_emision: Optional[date] = None
    fecha_registro: Optional[date] = None
    periodo: Optional[str] = None
    codigo_sustento: str = "01"
    base_imponible_iva: Decimal = Decimal("0")
    base_imponible_0: Decimal = Decimal("0")
    base_no_objeto_iva: Decimal = Decimal("0")
    base_exenta_iva: Decimal = Decimal("0")
    monto_iva: Decimal = Decimal("0")
    monto_ice: Decimal = Decimal("0")
    total_compra: Decimal = Decimal("0")
    propina: Decimal = Decimal("0")
    forma_pago: Optional[str] = None
    total_sin_impuestos: Decimal = Decimal("0")
    total_descuento: Decimal = Decimal("0")


class RetencionImportada(BaseModel):
    """Comprobante de retención emitido a un proveedor: una fila por impuesto retenido."""
    tipo_identificacion_sujeto: Optional[str] = None
    identificacion_sujeto_retenido: str
    razon_social_sujeto_retenido: str = ""
    periodo: str
    cod_documento_sustento: Optional[str] = None
    numero_documento_sustento: Optional[str] = None
    fecha_emision_documento_sustento: Optional[date] = None
    retenciones: list[Retencion] = Field(default_factory=list)


class RucRequest(BaseModel):
    ruc: str
    solo_empresa: bool = Field(False, description="Aceptar solo sociedades privadas o entidades públicas")


class RucResponse(BaseModel):
    ruc: str
    valido: bool
    mensaje: str
    tipo: str


# ─────────────────────────────────────────────────────────────
# GENERIC
# ─────────────────────────────────────────────────────────────

class ErrorResponse(BaseModel):
    """Standard error response."""
    error: str
    detail: str
    code: Optional[str] = None


class HealthResponse(BaseModel):
    """Health check."""
    status: str = "ok"
    version: str
    xsd_disponible: bool
