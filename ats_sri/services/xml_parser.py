"""
ATS-SRI — Importación de comprobantes electrónicos
Extracts ATS rows from SRI electronic vouchers.

Supported vouchers:
- factura (v2.x), read as a purchase (issuer = supplier) or as a sale
  (buyer = client)
- comprobanteRetencion (v1.0.0 <impuestos> and v2.0.0 <docsSustento>),
  one Retencion per withheld tax

Accepted inputs:
- a bare voucher document
- an SRI <autorizacion> response whose <comprobante> carries the voucher
  as CDATA (possibly nested in <RespuestaAutorizacionComprobante>)
"""

import logging
from datetime import date
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional, Union

from lxml import etree
from pydantic import ValidationError

from ats_sri.core.catalogos import FACTURA, TIPOS_ID_CLIENTE
from ats_sri.schemas.models import (
    ComprobanteImportado,
    EstadoRegistro,
    Retencion,
    RetencionImportada,
    TipoEmision,
    TipoImpuesto,
    ValidationIssue,
    ValidationResult,
    Venta,
)
from ats_sri.utils.formatters import (
    PERIODO_RE,
    format_establecimiento,
    format_punto_emision,
    format_secuencial,
    periodo_de,
    to_decimal,
)
from ats_sri.utils.ruc_validator import obtener_tipo_ruc

logger = logging.getLogger(__name__)

IMPUESTO_IVA = "2"
IMPUESTO_ICE = "3"

# codigoPorcentaje de IVA
IVA_CERO = {"0"}
IVA_GRAVADO = {"2", "3", "4", "5", "8"}
IVA_NO_OBJETO = {"6"}
IVA_EXENTO = {"7"}

# codigo de impuesto en comprobantes de retención
RETENCION_IMPUESTOS = {"1": TipoImpuesto.RENTA, "2": TipoImpuesto.IVA}

TIPO_FACTURA = "FACTURA"
TIPO_RETENCION = "RETENCION"
TIPO_DESCONOCIDO = "DESCONOCIDO"
TIPOS_POR_RAIZ = {"factura": TIPO_FACTURA, "comprobanteRetencion": TIPO_RETENCION}

_CENTAVOS = Decimal("0.01")


class XmlParserError(Exception):
    def __init__(self, message: str, status_code: int = 400):
        self.message = message
        self.status_code = status_code
        super().__init__(self.message)


def _parser() -> etree.XMLParser:
    return etree.XMLParser(
        resolve_entities=False, no_network=True, remove_blank_text=True, strip_cdata=True,
    )


def _parse(contenido: Union[str, bytes]):
    if isinstance(contenido, str):
        contenido = contenido.strip().encode("utf-8")
    return etree.fromstring(contenido, _parser())


def _text(element, path: str) -> str:
    if element is None:
        return ""
    return (element.findtext(path) or "").strip()


def _convertir_fecha(fecha: str) -> Optional[date]:
    """'15/01/2025' → date(2025, 1, 15). None when not DD/MM/YYYY."""
    partes = fecha.split("/") if fecha else []
    if len(partes) != 3:
        return None
    dia, mes, anio = partes
    try:
        return date(int(anio), int(mes), int(dia))
    except ValueError:
        return None


def _tipo_proveedor(ruc: str) -> str:
    """01 = persona natural, 02 = sociedad."""
    return "01" if obtener_tipo_ruc(ruc) == "PERSONA_NATURAL" else "02"


def _forma_pago(factura, info_factura) -> Optional[str]:
    forma = _text(info_factura, "pagos/pago/formaPago") or _text(factura, "pagos/pago/formaPago")
    return forma.zfill(2) if forma else None


def _crear(modelo, **datos):
    try:
        return modelo(**datos)
    except ValidationError as e:
        error = e.errors()[0]
        campo = ".".join(str(p) for p in error["loc"])
        raise XmlParserError(f"Dato no válido en el comprobante ({campo}): {error['msg']}")


class XmlParser:
    """SRI electronic vouchers → purchase, sale and withholding rows."""

    def extraer_comprobante(self, contenido: Union[str, bytes]):
        """Return the voucher element, unwrapping an authorization response."""
        try:
            raiz = _parse(contenido)
        except etree.XMLSyntaxError as e:
            raise XmlParserError(f"Error al parsear XML: {e.msg}")

        if raiz.tag in TIPOS_POR_RAIZ:
            return raiz

        autorizacion = raiz if raiz.tag == "autorizacion" else raiz.find(".//autorizacion")
        if autorizacion is None:
            return raiz

        comprobante = autorizacion.find("comprobante")
        if comprobante is None:
            raise XmlParserError("El XML de autorización no contiene un comprobante")

        embebido = next(comprobante.iterchildren(tag=etree.Element), None)
        if embebido is not None:
            return embebido

        contenido_cdata = (comprobante.text or "").strip()
        if not contenido_cdata:
            raise XmlParserError("El XML de autorización no contiene un comprobante")
        try:
            return _parse(contenido_cdata)
        except etree.XMLSyntaxError as e:
            raise XmlParserError(f"Error al parsear el comprobante de la autorización: {e.msg}")

    def detectar_tipo(self, contenido: Union[str, bytes]) -> str:
        """FACTURA, RETENCION or DESCONOCIDO. Malformed XML raises XmlParserError."""
        return TIPOS_POR_RAIZ.get(self.extraer_comprobante(contenido).tag, TIPO_DESCONOCIDO)

    def extraer_factura(self, contenido: Union[str, bytes]):
        factura = self.extraer_comprobante(contenido)
        if factura.tag != "factura":
            raise XmlParserError("El XML no contiene una factura válida")
        return factura

    def _secciones_factura(self, contenido: Union[str, bytes]):
        factura = self.extraer_factura(contenido)
        info_tributaria = factura.find("infoTributaria")
        info_factura = factura.find("infoFactura")
        if info_tributaria is None or info_factura is None:
            raise XmlParserError("XML de factura incompleto: faltan datos tributarios o de factura")
        return factura, info_tributaria, info_factura

    # ── Facturas ──

    def parsear_factura(self, contenido: Union[str, bytes]) -> ComprobanteImportado:
        """Purchase invoice: the issuer is the supplier."""
        factura, info_tributaria, info_factura = self._secciones_factura(contenido)

        ruc = _text(info_tributaria, "ruc").zfill(13)
        fecha_emision = _convertir_fecha(_text(info_factura, "fechaEmision"))
        totales = self.calcular_totales(info_factura)

        comprobante = ComprobanteImportado(
            tipo_proveedor=_tipo_proveedor(ruc),
            identificacion_proveedor=ruc,
            razon_social_proveedor=_text(info_tributaria, "razonSocial"),
            nombre_comercial=_text(info_tributaria, "nombreComercial") or None,
            establecimiento=format_establecimiento(_text(info_tributaria, "estab")),
            punto_emision=format_punto_emision(_text(info_tributaria, "ptoEmi")),
            secuencial=format_secuencial(_text(info_tributaria, "secuencial")),
            # the access key is already the 49-digit authorization number
            numero_autorizacion=_text(info_tributaria, "claveAcceso"),
            fecha_emision=fecha_emision,
            fecha_registro=fecha_emision,
            periodo=periodo_de(fecha_emision) if fecha_emision else None,
            total_compra=self._monto(_text(info_factura, "importeTotal")),
            propina=self._monto(_text(info_factura, "propina")),
            forma_pago=_forma_pago(factura, info_factura),
            total_sin_impuestos=self._monto(_text(info_factura, "totalSinImpuestos")),
            total_descuento=self._monto(_text(info_factura, "totalDescuento")),
            **totales,
        )
        logger.info(
            f"Factura importada: {comprobante.identificacion_proveedor} "
            f"{comprobante.establecimiento}-{comprobante.punto_emision}-{comprobante.secuencial}"
        )
        return comprobante

    def parsear_factura_venta(self, contenido: Union[str, bytes]) -> Venta:
        """
        Sales invoice: the buyer is the client. The row is created PENDIENTE
        and enters the report once it is validated.
        """
        factura, info_tributaria, info_factura = self._secciones_factura(contenido)

        fecha_emision = _convertir_fecha(_text(info_factura, "fechaEmision"))
        if fecha_emision is None:
            raise XmlParserError("Fecha de emisión de la factura inválida")

        tipo_id = _text(info_factura, "tipoIdentificacionComprador")
        if tipo_id not in TIPOS_ID_CLIENTE:
            logger.warning(f"tipoIdentificacionComprador desconocido ({tipo_id}), se usa RUC")
            tipo_id = "04"

        totales = self.calcular_totales(info_factura)
        venta = _crear(
            Venta,
            estado=EstadoRegistro.PENDIENTE,
            periodo=periodo_de(fecha_emision),
            tipo_comprobante=FACTURA,
            tipo_identificacion_cliente=tipo_id,
            identificacion_cliente=_text(info_factura, "identificacionComprador"),
            razon_social_cliente=_text(info_factura, "razonSocialComprador") or None,
            fecha_emision=fecha_emision,
            establecimiento=format_establecimiento(_text(info_tributaria, "estab")),
            punto_emision=format_punto_emision(_text(info_tributaria, "ptoEmi")),
            secuencial=format_secuencial(_text(info_tributaria, "secuencial")),
            numero_autorizacion=_text(info_tributaria, "claveAcceso"),
            # detalleVentas has no exempt base
            base_no_objeto_iva=totales["base_no_objeto_iva"] + totales["base_exenta_iva"],
            base_imponible_0=totales["base_imponible_0"],
            base_imponible_iva=totales["base_imponible_iva"],
            monto_iva=totales["monto_iva"],
            monto_ice=totales["monto_ice"],
            total_venta=self._monto(_text(info_factura, "importeTotal")),
            forma_pago=_forma_pago(factura, info_factura),
            tipo_emision=TipoEmision.ELECTRONICA,
        )
        logger.info(
            f"Factura de venta importada: {venta.identificacion_cliente} "
            f"{venta.establecimiento}-{venta.punto_emision}-{venta.secuencial}"
        )
        return venta

    @staticmethod
    def _monto(valor) -> Decimal:
        return to_decimal(valor).quantize(_CENTAVOS, rounding=ROUND_HALF_UP)

    def calcular_totales(self, info_factura) -> dict[str, Decimal]:
        """Tax bases and taxes from infoFactura/totalConImpuestos."""
        totales = {
            "base_imponible_iva": Decimal("0"),
            "base_imponible_0": Decimal("0"),
            "base_no_objeto_iva": Decimal("0"),
            "base_exenta_iva": Decimal("0"),
            "monto_iva": Decimal("0"),
            "monto_ice": Decimal("0"),
        }
        for impuesto in info_factura.findall("totalConImpuestos/totalImpuesto"):
            codigo = _text(impuesto, "codigo")
            porcentaje = _text(impuesto, "codigoPorcentaje")
            base = to_decimal(_text(impuesto, "baseImponible"))
            valor = to_decimal(_text(impuesto, "valor"))

            if codigo == IMPUESTO_IVA:
                if porcentaje in IVA_CERO:
                    totales["base_imponible_0"] += base
                elif porcentaje in IVA_GRAVADO:
                    totales["base_imponible_iva"] += base
                    totales["monto_iva"] += valor
                elif porcentaje in IVA_NO_OBJETO:
                    totales["base_no_objeto_iva"] += base
                elif porcentaje in IVA_EXENTO:
                    totales["base_exenta_iva"] += base
                else:
                    logger.warning(f"codigoPorcentaje de IVA desconocido: {porcentaje}")
            elif codigo == IMPUESTO_ICE:
                totales["monto_ice"] += valor

        return {k: self._monto(v) for k, v in totales.items()}

    # ── Retenciones ──

    def parsear_retencion(
        self, contenido: Union[str, bytes], compra_id: Optional[str] = None
    ) -> RetencionImportada:
        """Withholding voucher issued to a supplier, one Retencion per withheld tax."""
        retencion = self.extraer_comprobante(contenido)
        if retencion.tag != "comprobanteRetencion":
            raise XmlParserError("El XML no contiene un comprobante de retención válido")

        info_tributaria = retencion.find("infoTributaria")
        info_retencion = retencion.find("infoCompRetencion")
        if info_tributaria is None or info_retencion is None:
            raise XmlParserError("XML de retención incompleto: faltan datos tributarios o de retención")

        fecha_emision = _convertir_fecha(_text(info_retencion, "fechaEmision"))
        if fecha_emision is None:
            raise XmlParserError("Fecha de emisión de la retención inválida")
        periodo_fiscal = _text(info_retencion, "periodoFiscal")
        periodo = periodo_fiscal if PERIODO_RE.match(periodo_fiscal) else periodo_de(fecha_emision)

        # v1.0.0 carries the supporting document on each <impuesto>,
        # v2.0.0 groups <retencion> lines under each <docSustento>
        lineas = [(impuesto, impuesto) for impuesto in retencion.findall("impuestos/impuesto")]
        for sustento in retencion.findall("docsSustento/docSustento"):
            lineas.extend((linea, sustento) for linea in sustento.findall("retenciones/retencion"))
        if not lineas:
            raise XmlParserError("El comprobante de retención no contiene impuestos retenidos")

        comun = dict(
            compra_id=compra_id,
            periodo=periodo,
            establecimiento=format_establecimiento(_text(info_tributaria, "estab")),
            punto_emision=format_punto_emision(_text(info_tributaria, "ptoEmi")),
            secuencial=format_secuencial(_text(info_tributaria, "secuencial")),
            numero_autorizacion=_text(info_tributaria, "claveAcceso"),
            fecha_emision=fecha_emision,
        )
        retenciones = []
        for linea, _ in lineas:
            codigo = _text(linea, "codigo")
            tipo = RETENCION_IMPUESTOS.get(codigo)
            if tipo is None:
                logger.warning(f"Impuesto retenido no reportable en el ATS (codigo {codigo}), omitido")
                continue
            retenciones.append(_crear(
                Retencion,
                tipo_impuesto=tipo,
                codigo_retencion=_text(linea, "codigoRetencion"),
                base_imponible=self._monto(_text(linea, "baseImponible")),
                porcentaje_retencion=to_decimal(_text(linea, "porcentajeRetener")),
                valor_retenido=self._monto(_text(linea, "valorRetenido")),
                **comun,
            ))

        _, sustento = lineas[0]
        importada = RetencionImportada(
            tipo_identificacion_sujeto=_text(info_retencion, "tipoIdentificacionSujetoRetenido") or None,
            identificacion_sujeto_retenido=_text(info_retencion, "identificacionSujetoRetenido"),
            razon_social_sujeto_retenido=_text(info_retencion, "razonSocialSujetoRetenido"),
            periodo=periodo,
            cod_documento_sustento=_text(sustento, "codDocSustento") or None,
            numero_documento_sustento=_text(sustento, "numDocSustento") or None,
            fecha_emision_documento_sustento=_convertir_fecha(_text(sustento, "fechaEmisionDocSustento")),
            retenciones=retenciones,
        )
        logger.info(
            f"Retención importada: {importada.identificacion_sujeto_retenido} "
            f"{comun['establecimiento']}-{comun['punto_emision']}-{comun['secuencial']} "
            f"({len(retenciones)} impuestos)"
        )
        return importada

    # ── Estructura ──

    def validar_estructura(self, contenido: Union[str, bytes]) -> ValidationResult:
        """Check the invoice sections without importing it."""
        errores: list[ValidationIssue] = []
        advertencias: list[ValidationIssue] = []

        try:
            factura = self.extraer_factura(contenido)
        except XmlParserError as e:
            errores.append(ValidationIssue(tipo="ESTRUCTURA", mensaje=e.message))
            return ValidationResult(valido=False, errores=errores, mensaje=e.message)

        info_tributaria = factura.find("infoTributaria")
        info_factura = factura.find("infoFactura")
        if info_tributaria is None:
            errores.append(ValidationIssue(tipo="ESTRUCTURA", mensaje="Falta sección <infoTributaria>"))
        else:
            if not _text(info_tributaria, "ruc"):
                advertencias.append(ValidationIssue(tipo="CAMPO", mensaje="Falta RUC del emisor"))
            if not _text(info_tributaria, "razonSocial"):
                advertencias.append(ValidationIssue(tipo="CAMPO", mensaje="Falta razón social del emisor"))

        if info_factura is None:
            errores.append(ValidationIssue(tipo="ESTRUCTURA", mensaje="Falta sección <infoFactura>"))
        else:
            if not _text(info_factura, "fechaEmision"):
                errores.append(ValidationIssue(tipo="CAMPO_OBLIGATORIO", mensaje="Falta fecha de emisión"))
            if not _text(info_factura, "importeTotal"):
                advertencias.append(ValidationIssue(tipo="CAMPO", mensaje="Falta importe total"))

        return ValidationResult(
            valido=not errores,
            errores=errores,
            advertencias=advertencias,
            mensaje="Estructura de factura válida" if not errores else "Estructura de factura inválida",
        )


xml_parser = XmlParser()
