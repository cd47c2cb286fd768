"""
ATS-SRI — Generador del Anexo Transaccional Simplificado
Builds the monthly ATS XML (root <iva>) from the period's transactions.

Sections, omitted when empty, in schema order:
- compras: one detalleCompras per purchase, with IVA retention slots,
  pagoExterior, formasDePago, air (renta withholdings) and retention vouchers
- ventas: sales grouped by client, voucher type and emission type
- ventasEstablecimiento: non-electronic sales per establishment
- exportaciones: one detalleExportaciones per export
- anulados: voided documents merged into consecutive ranges

Every value is written as text: authorization numbers and amounts never
reach the serializer as numbers.
"""

import logging
import zipfile
from collections import defaultdict
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Optional

from lxml import etree

from ats_sri.core.catalogos import (
    CONSUMIDOR_FINAL,
    FACTURA,
    FACTURA_VENTAS_ATS,
    NOTA_CREDITO,
    NOTA_DEBITO,
    PASAPORTE_PROVEEDOR,
    RETENCION_IVA_SLOTS,
)
from ats_sri.core.config import get_ats_dir
from ats_sri.schemas.models import (
    ESTADOS_REPORTABLES,
    AtsEstadisticas,
    AtsPreview,
    AtsRequest,
    AtsResponse,
    AtsResumen,
    Compra,
    DocumentoAnulado,
    EstadoRegistro,
    Exportacion,
    Retencion,
    TipoEmision,
    TipoImpuesto,
    Venta,
    VentaAgrupada,
)
from ats_sri.services.historial_service import HistorialService, historial_service
from ats_sri.services.xsd_validator import XsdValidator, xsd_validator
from ats_sri.utils.formatters import (
    format_autorizacion,
    format_decimal,
    format_entero,
    format_establecimiento,
    format_fecha,
    format_punto_emision,
    format_razon_social,
    parse_periodo,
    periodo_de,
    to_decimal,
)

logger = logging.getLogger(__name__)

XML_DECLARATION = b'<?xml version="1.0" encoding="UTF-8" standalone="no"?>'
CODIGO_OPERATIVO = "IVA"
MAX_COMPROBANTES_RETENCION = 2


class AtsError(Exception):
    def __init__(self, message: str, status_code: int = 500, code: str = "ATS_FAILED"):
        self.message = message
        self.status_code = status_code
        self.code = code
        super().__init__(self.message)


@dataclass
class DatosPeriodo:
    """Records of one period that go into the report."""
    compras: list[Compra] = field(default_factory=list)
    ventas: list[Venta] = field(default_factory=list)
    exportaciones: list[Exportacion] = field(default_factory=list)
    retenciones: list[Retencion] = field(default_factory=list)
    anulados: list[DocumentoAnulado] = field(default_factory=list)


# ─────────────────────────────────────────────────────────────
# HELPERS
# ─────────────────────────────────────────────────────────────

def _sub(parent, tag: str, text: Optional[str] = None):
    element = etree.SubElement(parent, tag)
    if text is not None:
        element.text = text
    return element


def _si_no(value: bool) -> str:
    return "SI" if value else "NO"


def _tipo_id_informante(ruc: str) -> str:
    if len(ruc) == 13:
        return "R"
    if len(ruc) == 10:
        return "C"
    return "P"


def _tipo_comprobante_ventas(tipo: str) -> str:
    return FACTURA_VENTAS_ATS if tipo == FACTURA else tipo


def _reportable(estado: EstadoRegistro) -> bool:
    return estado in ESTADOS_REPORTABLES


def _del_periodo(registro, periodo: str, fecha) -> bool:
    return (registro.periodo or periodo_de(fecha)) == periodo


def _porcentaje_entero(porcentaje: Decimal) -> Optional[int]:
    if porcentaje != porcentaje.to_integral_value():
        return None
    return int(porcentaje)


# ─────────────────────────────────────────────────────────────
# GENERATOR
# ─────────────────────────────────────────────────────────────

class AtsGenerator:
    """
    Usage:
        generator = AtsGenerator()
        response = generator.generar(request)
    """

    def __init__(
        self,
        validator: Optional[XsdValidator] = None,
        historial: Optional[HistorialService] = None,
    ):
        self.validator = validator or xsd_validator
        self.historial = historial or historial_service

    # ── Selection ──

    def seleccionar(self, request: AtsRequest) -> DatosPeriodo:
        """
        Reportable records of the requested period. Without an explicit
        periodo, purchases fall in the month of fecha_registro (fecha_emision
        when unset) and every other record in the month of fecha_emision.
        """
        periodo = request.periodo
        datos = DatosPeriodo()

        for compra in request.compras:
            fecha = compra.fecha_registro or compra.fecha_emision
            if not _del_periodo(compra, periodo, fecha):
                continue
            if compra.estado == EstadoRegistro.ANULADO:
                datos.anulados.append(DocumentoAnulado(
                    tipo_comprobante=compra.tipo_comprobante,
                    establecimiento=compra.establecimiento,
                    punto_emision=compra.punto_emision,
                    secuencial=compra.secuencial,
                    numero_autorizacion=compra.numero_autorizacion,
                ))
            elif _reportable(compra.estado):
                datos.compras.append(compra)

        for venta in request.ventas:
            if not _del_periodo(venta, periodo, venta.fecha_emision):
                continue
            if venta.estado == EstadoRegistro.ANULADO:
                if not venta.secuencial:
                    logger.warning(f"Venta anulada sin secuencial omitida: {venta.id}")
                    continue
                datos.anulados.append(DocumentoAnulado(
                    tipo_comprobante=venta.tipo_comprobante,
                    establecimiento=venta.establecimiento,
                    punto_emision=venta.punto_emision,
                    secuencial=venta.secuencial,
                    numero_autorizacion=venta.numero_autorizacion or "",
                ))
            elif _reportable(venta.estado):
                datos.ventas.append(venta)

        datos.exportaciones = [
            e for e in request.exportaciones
            if _reportable(e.estado) and _del_periodo(e, periodo, e.fecha_emision)
        ]
        datos.retenciones = [
            r for r in request.retenciones
            if _reportable(r.estado) and _del_periodo(r, periodo, r.fecha_emision)
        ]
        datos.anulados.extend(request.anulados)

        datos.compras.sort(key=lambda c: c.fecha_emision)
        datos.ventas.sort(key=lambda v: v.fecha_emision)
        datos.exportaciones.sort(key=lambda e: e.fecha_emision)
        datos.retenciones.sort(key=lambda r: r.fecha_emision)
        return datos

    # ── Aggregations ──

    @staticmethod
    def contar_establecimientos(ventas: list[Venta]) -> int:
        return len({format_establecimiento(v.establecimiento) for v in ventas})

    @staticmethod
    def calcular_total_ventas(ventas: list[Venta], exportaciones: list[Exportacion]) -> Decimal:
        """Only non-electronic documents count towards totalVentas."""
        total = sum(
            (to_decimal(v.total_venta) for v in ventas if v.tipo_emision != TipoEmision.ELECTRONICA),
            Decimal("0"),
        )
        total += sum(
            (to_decimal(e.valor_fob_comprobante) for e in exportaciones
             if e.tipo_emision != TipoEmision.ELECTRONICA),
            Decimal("0"),
        )
        return total

    @staticmethod
    def agrupar_ventas(ventas: list[Venta]) -> list[VentaAgrupada]:
        """One entry per (id type, client, voucher type, emission type), first-seen order."""
        grupos: dict[tuple, VentaAgrupada] = {}
        for venta in ventas:
            tipo_comprobante = _tipo_comprobante_ventas(venta.tipo_comprobante)
            clave = (
                venta.tipo_identificacion_cliente,
                venta.identificacion_cliente,
                tipo_comprobante,
                venta.tipo_emision.value,
            )
            grupo = grupos.get(clave)
            if grupo is None:
                grupo = VentaAgrupada(
                    tipo_identificacion_cliente=venta.tipo_identificacion_cliente,
                    identificacion_cliente=venta.identificacion_cliente,
                    tipo_comprobante=tipo_comprobante,
                    tipo_emision=venta.tipo_emision.value,
                )
                grupos[clave] = grupo

            grupo.numero_comprobantes += 1
            grupo.parte_relacionada = grupo.parte_relacionada or venta.parte_relacionada
            grupo.base_no_objeto_iva += to_decimal(venta.base_no_objeto_iva)
            grupo.base_imponible_0 += to_decimal(venta.base_imponible_0)
            grupo.base_imponible_iva += to_decimal(venta.base_imponible_iva)
            grupo.monto_iva += to_decimal(venta.monto_iva)
            grupo.monto_ice += to_decimal(venta.monto_ice)
            grupo.valor_retencion_iva += to_decimal(venta.valor_retencion_iva)
            grupo.valor_retencion_renta += to_decimal(venta.valor_retencion_renta)
            if venta.forma_pago and venta.forma_pago not in grupo.formas_pago:
                grupo.formas_pago.append(venta.forma_pago)
        return list(grupos.values())

    @staticmethod
    def ventas_por_establecimiento(ventas: list[Venta]) -> list[tuple[str, Decimal]]:
        """(codEstab, non-electronic total) for each sales establishment, sorted."""
        totales: dict[str, Decimal] = {}
        for venta in ventas:
            codigo = format_establecimiento(venta.establecimiento)
            totales.setdefault(codigo, Decimal("0"))
            if venta.tipo_emision != TipoEmision.ELECTRONICA:
                totales[codigo] += to_decimal(venta.total_venta)
        return sorted(totales.items())

    @staticmethod
    def agrupar_anulados(anulados: list[DocumentoAnulado]) -> list[dict]:
        """Merge voided documents with consecutive sequentials into ranges."""

        def clave(doc: DocumentoAnulado) -> tuple:
            return (
                doc.tipo_comprobante,
                format_establecimiento(doc.establecimiento),
                format_punto_emision(doc.punto_emision),
                int(format_entero(doc.secuencial)),
            )

        rangos: list[dict] = []
        for doc in sorted(anulados, key=clave):
            tipo, estab, pto, secuencial = clave(doc)
            actual = rangos[-1] if rangos else None
            if (
                actual
                and (actual["tipo_comprobante"], actual["establecimiento"], actual["punto_emision"]) == (tipo, estab, pto)
                and secuencial <= actual["_fin"] + 1
            ):
                actual["_fin"] = max(actual["_fin"], secuencial)
                continue
            rangos.append({
                "tipo_comprobante": tipo,
                "establecimiento": estab,
                "punto_emision": pto,
                "_inicio": secuencial,
                "_fin": secuencial,
                "autorizacion": format_autorizacion(doc.numero_autorizacion),
            })

        return [
            {
                "tipo_comprobante": r["tipo_comprobante"],
                "establecimiento": r["establecimiento"],
                "punto_emision": r["punto_emision"],
                "secuencial_inicio": str(r["_inicio"]),
                "secuencial_fin": str(r["_fin"]),
                "autorizacion": r["autorizacion"],
            }
            for r in rangos
        ]

    # ── XML ──

    def construir_xml(self, request: AtsRequest, datos: Optional[DatosPeriodo] = None):
        mes, anio = self._periodo(request.periodo)
        if datos is None:
            datos = self.seleccionar(request)

        ruc = request.empresa.ruc
        iva = etree.Element("iva")
        _sub(iva, "TipoIDInformante", _tipo_id_informante(ruc))
        _sub(iva, "IdInformante", ruc)
        _sub(iva, "razonSocial", format_razon_social(request.empresa.razon_social))
        _sub(iva, "Anio", anio)
        _sub(iva, "Mes", mes)
        _sub(iva, "numEstabRuc", f"{self.contar_establecimientos(datos.ventas):03d}")
        _sub(iva, "totalVentas", format_decimal(
            self.calcular_total_ventas(datos.ventas, datos.exportaciones)
        ))
        _sub(iva, "codigoOperativo", CODIGO_OPERATIVO)

        if datos.compras:
            retenciones_por_compra: dict[str, list[Retencion]] = defaultdict(list)
            for retencion in datos.retenciones:
                if retencion.compra_id:
                    retenciones_por_compra[retencion.compra_id].append(retencion)

            compras = _sub(iva, "compras")
            for compra in datos.compras:
                self._detalle_compra(
                    compras, compra, retenciones_por_compra.get(compra.id, []) if compra.id else []
                )

        if datos.ventas:
            ventas = _sub(iva, "ventas")
            for grupo in self.agrupar_ventas(datos.ventas):
                self._detalle_venta(ventas, grupo)

            establecimientos = _sub(iva, "ventasEstablecimiento")
            for codigo, total in self.ventas_por_establecimiento(datos.ventas):
                venta_est = _sub(establecimientos, "ventaEst")
                _sub(venta_est, "codEstab", codigo)
                _sub(venta_est, "ventasEstab", format_decimal(total))

        if datos.exportaciones:
            exportaciones = _sub(iva, "exportaciones")
            for exportacion in datos.exportaciones:
                self._detalle_exportacion(exportaciones, exportacion)

        if datos.anulados:
            anulados = _sub(iva, "anulados")
            for rango in self.agrupar_anulados(datos.anulados):
                detalle = _sub(anulados, "detalleAnulados")
                _sub(detalle, "tipoComprobante", rango["tipo_comprobante"])
                _sub(detalle, "establecimiento", rango["establecimiento"])
                _sub(detalle, "puntoEmision", rango["punto_emision"])
                _sub(detalle, "secuencialInicio", rango["secuencial_inicio"])
                _sub(detalle, "secuencialFin", rango["secuencial_fin"])
                _sub(detalle, "autorizacion", rango["autorizacion"])

        return iva

    def _detalle_compra(self, parent, compra: Compra, retenciones: list[Retencion]) -> None:
        detalle = _sub(parent, "detalleCompras")
        _sub(detalle, "codSustento", compra.codigo_sustento)
        _sub(detalle, "tpIdProv", compra.tipo_identificacion)
        _sub(detalle, "idProv", compra.identificacion_proveedor)
        _sub(detalle, "tipoComprobante", compra.tipo_comprobante)
        if compra.tipo_identificacion == PASAPORTE_PROVEEDOR:
            _sub(detalle, "tipoProv", compra.tipo_proveedor or "01")
            _sub(detalle, "denoProv", format_razon_social(compra.razon_social_proveedor))
        _sub(detalle, "parteRel", _si_no(compra.parte_relacionada))
        _sub(detalle, "fechaRegistro", format_fecha(compra.fecha_registro or compra.fecha_emision))
        _sub(detalle, "establecimiento", format_establecimiento(compra.establecimiento))
        _sub(detalle, "puntoEmision", format_punto_emision(compra.punto_emision))
        _sub(detalle, "secuencial", format_entero(compra.secuencial))
        _sub(detalle, "fechaEmision", format_fecha(compra.fecha_emision))
        _sub(detalle, "autorizacion", format_autorizacion(compra.numero_autorizacion))
        _sub(detalle, "baseNoGraIva", format_decimal(compra.base_no_objeto_iva))
        _sub(detalle, "baseImponible", format_decimal(compra.base_imponible_0))
        _sub(detalle, "baseImpGrav", format_decimal(compra.base_imponible_iva))
        _sub(detalle, "baseImpExe", format_decimal(compra.base_exenta_iva))
        _sub(detalle, "montoIce", format_decimal(compra.monto_ice))
        _sub(detalle, "montoIva", format_decimal(compra.monto_iva))

        slots = {tag: Decimal("0") for tag in RETENCION_IVA_SLOTS.values()}
        for retencion in retenciones:
            if retencion.tipo_impuesto != TipoImpuesto.IVA:
                continue
            tag = RETENCION_IVA_SLOTS.get(_porcentaje_entero(retencion.porcentaje_retencion))
            if tag is None:
                logger.warning(
                    f"Porcentaje de retención IVA no soportado ({retencion.porcentaje_retencion}) "
                    f"en compra {compra.id}"
                )
                continue
            slots[tag] += to_decimal(retencion.valor_retenido)
        for tag in RETENCION_IVA_SLOTS.values():
            _sub(detalle, tag, format_decimal(slots[tag]))

        _sub(detalle, "totbasesImpReemb", "0.00")

        pago = _sub(detalle, "pagoExterior")
        if compra.pais_efect_pago:
            _sub(pago, "pagoLocExt", "02")
            _sub(pago, "paisEfecPago", compra.pais_efect_pago)
            _sub(pago, "aplicConvDobTrib", _si_no(compra.aplica_convenio_doble_imposicion))
            _sub(pago, "pagExtSujRetNorLeg", _si_no(compra.pago_sujeto_retencion))
        else:
            _sub(pago, "pagoLocExt", "01")
            _sub(pago, "paisEfecPago", "NA")
            _sub(pago, "aplicConvDobTrib", "NA")
            _sub(pago, "pagExtSujRetNorLeg", "NA")

        if compra.forma_pago:
            formas = _sub(detalle, "formasDePago")
            _sub(formas, "formaPago", compra.forma_pago)

        renta = [r for r in retenciones if r.tipo_impuesto == TipoImpuesto.RENTA]
        if renta:
            air = _sub(detalle, "air")
            for retencion in renta:
                detalle_air = _sub(air, "detalleAir")
                _sub(detalle_air, "codRetAir", retencion.codigo_retencion)
                _sub(detalle_air, "baseImpAir", format_decimal(retencion.base_imponible))
                _sub(detalle_air, "porcentajeAir", format_decimal(retencion.porcentaje_retencion))
                _sub(detalle_air, "valRetAir", format_decimal(retencion.valor_retenido))

        comprobantes: list[Retencion] = []
        vistos: set[tuple] = set()
        for retencion in retenciones:
            clave = (
                format_establecimiento(retencion.establecimiento),
                format_punto_emision(retencion.punto_emision),
                format_entero(retencion.secuencial),
            )
            if clave not in vistos:
                vistos.add(clave)
                comprobantes.append(retencion)
        for n, retencion in enumerate(comprobantes[:MAX_COMPROBANTES_RETENCION], 1):
            _sub(detalle, f"estabRetencion{n}", format_establecimiento(retencion.establecimiento))
            _sub(detalle, f"ptoEmiRetencion{n}", format_punto_emision(retencion.punto_emision))
            _sub(detalle, f"secRetencion{n}", format_entero(retencion.secuencial))
            _sub(detalle, f"autRetencion{n}", format_autorizacion(retencion.numero_autorizacion))
            _sub(detalle, f"fechaEmiRet{n}", format_fecha(retencion.fecha_emision))

        modificado = compra.documento_modificado
        if compra.tipo_comprobante in (NOTA_CREDITO, NOTA_DEBITO) and modificado:
            _sub(detalle, "docModificado", modificado.tipo_comprobante)
            _sub(detalle, "estabModificado", format_establecimiento(modificado.establecimiento))
            _sub(detalle, "ptoEmiModificado", format_punto_emision(modificado.punto_emision))
            _sub(detalle, "secModificado", format_entero(modificado.secuencial))
            _sub(detalle, "autModificado", format_autorizacion(modificado.numero_autorizacion))

    @staticmethod
    def _detalle_venta(parent, grupo: VentaAgrupada) -> None:
        detalle = _sub(parent, "detalleVentas")
        _sub(detalle, "tpIdCliente", grupo.tipo_identificacion_cliente)
        _sub(detalle, "idCliente", grupo.identificacion_cliente)
        if grupo.tipo_identificacion_cliente != CONSUMIDOR_FINAL:
            _sub(detalle, "parteRelVtas", _si_no(grupo.parte_relacionada))
        _sub(detalle, "tipoComprobante", grupo.tipo_comprobante)
        _sub(detalle, "tipoEmision", grupo.tipo_emision)
        _sub(detalle, "numeroComprobantes", str(grupo.numero_comprobantes))
        _sub(detalle, "baseNoGraIva", format_decimal(grupo.base_no_objeto_iva))
        _sub(detalle, "baseImponible", format_decimal(grupo.base_imponible_0))
        _sub(detalle, "baseImpGrav", format_decimal(grupo.base_imponible_iva))
        _sub(detalle, "montoIva", format_decimal(grupo.monto_iva))
        _sub(detalle, "montoIce", format_decimal(grupo.monto_ice))
        _sub(detalle, "valorRetIva", format_decimal(grupo.valor_retencion_iva))
        _sub(detalle, "valorRetRenta", format_decimal(grupo.valor_retencion_renta))
        if grupo.tipo_comprobante != NOTA_CREDITO and grupo.formas_pago:
            formas = _sub(detalle, "formasDePago")
            for forma in grupo.formas_pago:
                _sub(formas, "formaPago", forma)

    @staticmethod
    def _detalle_exportacion(parent, exportacion: Exportacion) -> None:
        detalle = _sub(parent, "detalleExportaciones")
        _sub(detalle, "tpIdClienteEx", exportacion.tipo_identificacion)
        _sub(detalle, "idClienteEx", exportacion.identificacion_cliente)
        _sub(detalle, "parteRelExp", _si_no(exportacion.parte_relacionada))
        _sub(detalle, "tipoRegi", exportacion.tipo_regimen_fiscal)
        if exportacion.pais_efect_pago:
            _sub(detalle, "paisEfecPagoParFis", exportacion.pais_efect_pago)
        _sub(detalle, "paisEfecExp", exportacion.pais_destino)
        _sub(detalle, "exportacionDe", exportacion.exportacion_de)
        _sub(detalle, "tipoComprobante", _tipo_comprobante_ventas(exportacion.tipo_comprobante))

        refrendo = [
            ("distAduanero", exportacion.distrito_exportacion),
            ("anio", exportacion.anio_exportacion),
            ("regimen", exportacion.regimen_exportacion),
            ("correlativo", exportacion.correlativo_exportacion),
            ("verificador", exportacion.verificador_exportacion),
        ]
        for tag, valor in refrendo:
            if valor:
                _sub(detalle, tag, valor)

        fob = format_decimal(exportacion.valor_fob_comprobante)
        _sub(detalle, "valorFOB", fob)
        _sub(detalle, "valorFOBComprobante", fob)
        _sub(detalle, "establecimiento", format_establecimiento(exportacion.establecimiento))
        _sub(detalle, "puntoEmision", format_punto_emision(exportacion.punto_emision))
        _sub(detalle, "secuencial", format_entero(exportacion.secuencial))
        _sub(detalle, "autorizacion", format_autorizacion(exportacion.numero_autorizacion))
        _sub(detalle, "fechaEmision", format_fecha(exportacion.fecha_emision))

    @staticmethod
    def serializar(iva) -> bytes:
        return XML_DECLARATION + etree.tostring(iva, encoding="UTF-8", xml_declaration=False)

    # ── Operations ──

    @staticmethod
    def _periodo(periodo: str) -> tuple[str, str]:
        try:
            return parse_periodo(periodo)
        except ValueError as e:
            raise AtsError(str(e), status_code=400, code="PERIODO_INVALIDO")

    def generar(self, request: AtsRequest) -> AtsResponse:
        """Build, write (XML + ZIP), validate and record the report of a period."""
        mes, anio = self._periodo(request.periodo)
        ruc = request.empresa.ruc
        try:
            directorio = get_ats_dir(ruc)
        except ValueError as e:
            raise AtsError(str(e), status_code=400, code="INFORMANTE_INVALIDO")

        try:
            datos = self.seleccionar(request)
            xml = self.serializar(self.construir_xml(request, datos))

            directorio.mkdir(parents=True, exist_ok=True)
            nombre_xml = f"ATS{mes}{anio}.xml"
            ruta_xml = directorio / nombre_xml
            ruta_zip = directorio / f"AT{mes}{anio}.zip"

            ruta_xml.write_bytes(xml)
            with zipfile.ZipFile(ruta_zip, "w", zipfile.ZIP_DEFLATED) as zf:
                zf.writestr(nombre_xml, xml)

            validacion = self.validator.validar(xml)
            if validacion.valido:
                logger.info(f"ATS {nombre_xml} generado para {ruc}: validación OK ({validacion.metodo})")
            else:
                logger.warning(
                    f"ATS {nombre_xml} generado para {ruc} con {len(validacion.errores)} errores de validación"
                )

            estadisticas = AtsEstadisticas(
                total_compras=len(datos.compras),
                total_ventas=len(datos.ventas),
                total_exportaciones=len(datos.exportaciones),
                total_retenciones=len(datos.retenciones),
                total_anulados=len(datos.anulados),
            )
            entrada = self.historial.registrar(
                ruc=ruc,
                periodo=request.periodo,
                nombre_archivo=nombre_xml,
                ruta_archivo_xml=str(ruta_xml),
                ruta_archivo_zip=str(ruta_zip),
                estadisticas=estadisticas,
                validacion_xsd=validacion.valido,
                usuario=request.usuario,
            )
        except AtsError:
            raise
        except Exception as e:
            logger.exception(f"Error generando ATS {request.periodo} para {ruc}")
            raise AtsError(f"Error al generar ATS: {e}", status_code=500) from e

        return AtsResponse(
            mensaje=(
                "ATS generado exitosamente" if validacion.valido
                else "ATS generado con advertencias de validación"
            ),
            id=entrada.id,
            archivo_xml=nombre_xml,
            archivo_zip=ruta_zip.name,
            ruta_descarga_xml=f"/api/v1/ats/descargar/{entrada.id}?tipo=xml",
            ruta_descarga_zip=f"/api/v1/ats/descargar/{entrada.id}?tipo=zip",
            estadisticas=estadisticas,
            validacion=validacion,
        )

    def vista_previa(self, request: AtsRequest) -> AtsPreview:
        """Counts and totals of the period; nothing is written."""
        self._periodo(request.periodo)

        def total(registros, campo: str) -> str:
            return format_decimal(sum((to_decimal(getattr(r, campo)) for r in registros), Decimal("0")))

        try:
            datos = self.seleccionar(request)
            agrupadas = self.agrupar_ventas(datos.ventas)
            return AtsPreview(
                periodo=request.periodo,
                empresa=request.empresa,
                resumen=AtsResumen(
                    total_compras=len(datos.compras),
                    total_ventas=len(datos.ventas),
                    total_ventas_agrupadas=len(agrupadas),
                    total_exportaciones=len(datos.exportaciones),
                    valor_total_compras=total(datos.compras, "total_compra"),
                    valor_total_ventas=total(datos.ventas, "total_venta"),
                    valor_total_exportaciones=total(datos.exportaciones, "valor_fob_comprobante"),
                    iva_compras=total(datos.compras, "monto_iva"),
                    iva_ventas=total(datos.ventas, "monto_iva"),
                    retenciones_iva_recibidas=total(datos.ventas, "valor_retencion_iva"),
                    retenciones_renta_recibidas=total(datos.ventas, "valor_retencion_renta"),
                ),
                ventas_agrupadas=agrupadas,
            )
        except Exception as e:
            logger.exception(f"Error en vista previa ATS {request.periodo} para {request.empresa.ruc}")
            raise AtsError(f"Error al obtener vista previa: {e}", status_code=500) from e


ats_generator = AtsGenerator()
