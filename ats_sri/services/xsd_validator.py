"""
ATS-SRI — XSD Validator
Validates ATS documents against the SRI schema (at.xsd).

Steps:
  1. Well-formedness (a syntax error stops here)
  2. Full XSD validation with lxml, when the schema file is configured
  3. Structural checks of the <iva> document (mandatory fields, formats)

Without a schema file only steps 1 and 3 run and the result says so.
"""

import logging
import re
from pathlib import Path
from typing import Optional, Union

from lxml import etree

from ats_sri.core.config import settings
from ats_sri.schemas.models import ValidationIssue, ValidationResult

logger = logging.getLogger(__name__)

CAMPOS_INFORMANTE = [
    "TipoIDInformante", "IdInformante", "razonSocial", "Anio", "Mes",
    "numEstabRuc", "totalVentas", "codigoOperativo",
]
CAMPOS_COMPRA = [
    "codSustento", "tpIdProv", "idProv", "tipoComprobante", "fechaRegistro",
    "establecimiento", "puntoEmision", "secuencial", "fechaEmision", "autorizacion",
]
CAMPOS_VENTA = ["tpIdCliente", "idCliente", "tipoComprobante", "numeroComprobantes"]
CAMPOS_EXPORTACION = [
    "tpIdClienteEx", "idClienteEx", "tipoComprobante", "valorFOB",
    "establecimiento", "puntoEmision", "secuencial", "fechaEmision",
]

FECHA_RE = re.compile(r"^(0[1-9]|[12][0-9]|3[01])/(0[1-9]|1[012])/(19|20)\d\d$")
MES_RE = re.compile(r"^(0[1-9]|1[012])$")
RUC_RE = re.compile(r"^\d{10}001$")

_MENSAJES_XSD = [
    (re.compile(r"Element\s+'(\w+)':"), r"Elemento <\1>:"),
    (re.compile(r"This element is not expected\."), "Este elemento no es esperado."),
    (re.compile(r"Expected is \("), "Se esperaba: ("),
    (re.compile(r"Missing child element\(s\)\."), "Faltan elementos hijos requeridos."),
]


def _xml_parser() -> etree.XMLParser:
    return etree.XMLParser(resolve_entities=False, no_network=True, huge_tree=False)


def _to_bytes(xml: Union[str, bytes]) -> bytes:
    return xml.encode("utf-8") if isinstance(xml, str) else xml


class XsdValidator:
    """
    Usage:
        validator = XsdValidator("/path/to/at.xsd")
        result = validator.validar(xml_bytes)
        print(validator.generar_reporte(result))
    """

    def __init__(self, xsd_path: Optional[str] = None, max_errors: int = 20):
        self.xsd_path = Path(xsd_path) if xsd_path else None
        self.max_errors = max_errors
        self._schema: Optional[etree.XMLSchema] = None

    @property
    def xsd_disponible(self) -> bool:
        return self.xsd_path is not None and self.xsd_path.is_file()

    def cargar_esquema(self) -> Optional[etree.XMLSchema]:
        """Load and cache the schema. None if unavailable or invalid."""
        if self._schema is not None:
            return self._schema
        if not self.xsd_disponible:
            return None
        try:
            xsd_doc = etree.parse(str(self.xsd_path), _xml_parser())
            self._schema = etree.XMLSchema(xsd_doc)
        except (etree.XMLSyntaxError, etree.XMLSchemaParseError, OSError) as e:
            logger.error(f"Error al cargar esquema XSD {self.xsd_path}: {e}")
            return None
        return self._schema

    # ─────────────────────────────────────────────────────────
    # VALIDATION
    # ─────────────────────────────────────────────────────────

    def validar(self, xml: Union[str, bytes]) -> ValidationResult:
        errores: list[ValidationIssue] = []
        advertencias: list[ValidationIssue] = []
        metodo = "básica"

        try:
            doc = etree.fromstring(_to_bytes(xml), _xml_parser())
        except etree.XMLSyntaxError as e:
            errores.append(ValidationIssue(
                tipo="SINTAXIS", mensaje="XML mal formado",
                detalle=e.msg, linea=e.lineno,
            ))
            return ValidationResult(
                valido=False, errores=errores, metodo=metodo,
                mensaje="XML con errores de sintaxis",
                xsd_disponible=self.xsd_disponible,
            )

        if self.xsd_disponible:
            schema = self.cargar_esquema()
            if schema is not None:
                metodo = "XSD completa (lxml)"
                xsd_errores, xsd_advertencias = self._validar_contra_xsd(schema, doc)
                errores.extend(xsd_errores)
                advertencias.extend(xsd_advertencias)
                if errores:
                    return ValidationResult(
                        valido=False, errores=errores, advertencias=advertencias,
                        metodo=metodo, mensaje="XML con errores de validación XSD",
                        xsd_disponible=True,
                    )
            else:
                advertencias.append(ValidationIssue(
                    tipo="INFO",
                    mensaje="Validación XSD no disponible, usando validación básica",
                ))

        estructura_err, estructura_adv = self.validar_estructura(doc)
        errores.extend(estructura_err)
        advertencias.extend(estructura_adv)
        errores.extend(self.validar_tipos_datos(doc))

        base = "XML válido" if not errores else "XML con errores de validación"
        return ValidationResult(
            valido=not errores, errores=errores, advertencias=advertencias,
            metodo=metodo, mensaje=f"{base} (método: {metodo})",
            xsd_disponible=self.xsd_disponible,
        )

    def _validar_contra_xsd(self, schema: etree.XMLSchema, doc) -> tuple[list, list]:
        errores: list[ValidationIssue] = []
        advertencias: list[ValidationIssue] = []

        if schema.validate(doc):
            return errores, advertencias

        for error in schema.error_log:
            errores.append(ValidationIssue(
                tipo="XSD_VALIDATION",
                mensaje=self.limpiar_mensaje(error.message),
                linea=error.line,
                columna=error.column,
                nivel="ERROR" if error.level >= etree.ErrorLevels.ERROR else "ADVERTENCIA",
            ))

        if len(errores) > self.max_errors:
            omitidos = len(errores) - self.max_errors
            del errores[self.max_errors:]
            advertencias.append(ValidationIssue(
                tipo="INFO",
                mensaje=f"Se omitieron {omitidos} errores adicionales de validación XSD",
            ))
        return errores, advertencias

    @staticmethod
    def limpiar_mensaje(mensaje: str) -> str:
        for patron, reemplazo in _MENSAJES_XSD:
            mensaje = patron.sub(reemplazo, mensaje)
        return mensaje.strip()

    def validar_estructura(self, doc) -> tuple[list, list]:
        errores: list[ValidationIssue] = []
        advertencias: list[ValidationIssue] = []

        if doc.tag != "iva":
            errores.append(ValidationIssue(
                tipo="ESTRUCTURA", mensaje="Falta nodo raíz <iva>", ruta="/",
            ))
            return errores, advertencias

        for campo in CAMPOS_INFORMANTE:
            if not (doc.findtext(campo) or "").strip():
                errores.append(ValidationIssue(
                    tipo="CAMPO_OBLIGATORIO",
                    mensaje=f"Falta campo obligatorio: {campo}",
                    ruta=f"/iva/{campo}",
                ))

        self._validar_seccion(doc, "compras", "detalleCompras", CAMPOS_COMPRA,
                              "Compra", errores, advertencias)
        self._validar_seccion(doc, "ventas", "detalleVentas", CAMPOS_VENTA,
                              "Venta", errores, advertencias)
        self._validar_seccion(doc, "exportaciones", "detalleExportaciones",
                              CAMPOS_EXPORTACION, "Exportación", errores, advertencias)

        for index, detalle in enumerate(doc.findall("compras/detalleCompras")):
            fecha = detalle.findtext("fechaEmision")
            if fecha and not FECHA_RE.match(fecha):
                errores.append(ValidationIssue(
                    tipo="FORMATO",
                    mensaje=f"Compra {index + 1}: Formato de fecha inválido (debe ser DD/MM/YYYY)",
                    ruta=f"/iva/compras/detalleCompras[{index}]/fechaEmision",
                    valor=fecha,
                ))

        return errores, advertencias

    @staticmethod
    def _validar_seccion(doc, seccion: str, detalle_tag: str, campos: list[str],
                         etiqueta: str, errores: list, advertencias: list) -> None:
        nodo = doc.find(seccion)
        if nodo is None:
            return
        detalles = nodo.findall(detalle_tag)
        if not detalles:
            advertencias.append(ValidationIssue(
                tipo="ESTRUCTURA",
                mensaje=f"Sección {seccion} sin {detalle_tag}",
                ruta=f"/iva/{seccion}",
            ))
            return
        for index, detalle in enumerate(detalles):
            for campo in campos:
                if not (detalle.findtext(campo) or "").strip():
                    errores.append(ValidationIssue(
                        tipo="CAMPO_OBLIGATORIO",
                        mensaje=f"{etiqueta} {index + 1}: Falta campo {campo}",
                        ruta=f"/iva/{seccion}/{detalle_tag}[{index}]/{campo}",
                    ))

    def validar_tipos_datos(self, doc) -> list[ValidationIssue]:
        errores: list[ValidationIssue] = []
        if doc.tag != "iva":
            return errores

        id_informante = doc.findtext("IdInformante")
        if id_informante and not RUC_RE.match(id_informante):
            errores.append(ValidationIssue(
                tipo="TIPO_DATO",
                mensaje="RUC del informante inválido (debe tener 13 dígitos y terminar en 001)",
                ruta="/iva/IdInformante", valor=id_informante,
            ))

        anio = doc.findtext("Anio")
        if anio and not (anio.isdigit() and len(anio) == 4 and 2000 <= int(anio) <= 9999):
            errores.append(ValidationIssue(
                tipo="TIPO_DATO",
                mensaje="Año inválido (debe estar entre 2000 y 9999)",
                ruta="/iva/Anio", valor=anio,
            ))

        mes = doc.findtext("Mes")
        if mes and not MES_RE.match(mes):
            errores.append(ValidationIssue(
                tipo="TIPO_DATO",
                mensaje="Mes inválido (debe estar entre 01 y 12)",
                ruta="/iva/Mes", valor=mes,
            ))
        return errores

    # ─────────────────────────────────────────────────────────
    # REPORT
    # ─────────────────────────────────────────────────────────

    @staticmethod
    def generar_reporte(resultado: ValidationResult) -> str:
        lineas = ["", "=== REPORTE DE VALIDACIÓN XML ATS ===", ""]
        lineas.append(f"Estado: {'✓ VÁLIDO' if resultado.valido else '✗ INVÁLIDO'}")
        lineas.append(f"Método: {resultado.metodo}")
        lineas.append(f"Mensaje: {resultado.mensaje}")

        if resultado.errores:
            lineas.append("")
            lineas.append(f"ERRORES ({len(resultado.errores)}):")
            for i, error in enumerate(resultado.errores, 1):
                lineas.append(f"{i}. [{error.tipo}] {error.mensaje}")
                if error.linea:
                    columna = f", Columna: {error.columna}" if error.columna else ""
                    lineas.append(f"   Línea: {error.linea}{columna}")
                if error.ruta:
                    lineas.append(f"   Ruta: {error.ruta}")
                if error.valor:
                    lineas.append(f"   Valor: {error.valor}")
                if error.detalle:
                    lineas.append(f"   Detalle: {error.detalle}")

        if resultado.advertencias:
            lineas.append("")
            lineas.append(f"ADVERTENCIAS ({len(resultado.advertencias)}):")
            for i, adv in enumerate(resultado.advertencias, 1):
                lineas.append(f"{i}. [{adv.tipo}] {adv.mensaje}")
                if adv.ruta:
                    lineas.append(f"   Ruta: {adv.ruta}")

        if resultado.valido and not resultado.errores and not resultado.advertencias:
            lineas.append("")
            lineas.append("✓ No se encontraron errores ni advertencias.")

        lineas.append("")
        lineas.append("=" * 38)
        return "\n".join(lineas) + "\n"


xsd_validator = XsdValidator(settings.ats_xsd_path, settings.max_xsd_errors)
