"""
ATS-SRI — Command line

Usage:
    ats-sri generar datos.json [--storage-dir DIR] [--xsd at.xsd]
    ats-sri validar ATS012025.xml [--xsd at.xsd]
    ats-sri importar factura.xml [--venta]
    ats-sri importar retencion.xml [--compra-id ID]
"""

import argparse
import logging
import sys
from pathlib import Path

from pydantic import ValidationError

from ats_sri.core.config import settings
from ats_sri.schemas.models import AtsRequest
from ats_sri.services.ats_generator import AtsError, AtsGenerator
from ats_sri.services.xml_parser import TIPO_FACTURA, TIPO_RETENCION, XmlParserError, xml_parser
from ats_sri.services.xsd_validator import XsdValidator


def _validator(args) -> XsdValidator:
    return XsdValidator(args.xsd or settings.ats_xsd_path, settings.max_xsd_errors)


def _leer(ruta: str) -> bytes:
    return Path(ruta).read_bytes()


def cmd_generar(args) -> int:
    try:
        request = AtsRequest.model_validate_json(_leer(args.datos))
    except OSError as e:
        print(f"✗ No se pudo leer {args.datos}: {e.strerror or e}", file=sys.stderr)
        return 2
    except ValidationError as e:
        print(f"✗ Datos inválidos en {args.datos}:\n{e}", file=sys.stderr)
        return 2

    if args.storage_dir:
        settings.storage_dir = args.storage_dir

    validator = _validator(args)
    try:
        response = AtsGenerator(validator=validator).generar(request)
    except AtsError as e:
        print(f"✗ {e.message}", file=sys.stderr)
        return 2

    print(f"{'✓' if response.validacion.valido else '⚠'} {response.mensaje}")
    print(f"  XML: {Path(settings.storage_dir) / 'ats' / request.empresa.ruc / response.archivo_xml}")
    print(f"  ZIP: {Path(settings.storage_dir) / 'ats' / request.empresa.ruc / response.archivo_zip}")
    e = response.estadisticas
    print(
        f"  Compras: {e.total_compras} | Ventas: {e.total_ventas} | "
        f"Exportaciones: {e.total_exportaciones} | Retenciones: {e.total_retenciones} | "
        f"Anulados: {e.total_anulados}"
    )
    print(validator.generar_reporte(response.validacion))
    return 0 if response.validacion.valido else 1


def cmd_validar(args) -> int:
    try:
        contenido = _leer(args.archivo)
    except OSError as e:
        print(f"✗ No se pudo leer {args.archivo}: {e.strerror or e}", file=sys.stderr)
        return 2
    validator = _validator(args)
    resultado = validator.validar(contenido)
    print(validator.generar_reporte(resultado))
    return 0 if resultado.valido else 1


def cmd_importar(args) -> int:
    try:
        contenido = _leer(args.archivo)
        tipo = xml_parser.detectar_tipo(contenido)
        if tipo == TIPO_FACTURA:
            importado = (
                xml_parser.parsear_factura_venta(contenido) if args.venta
                else xml_parser.parsear_factura(contenido)
            )
        elif tipo == TIPO_RETENCION:
            importado = xml_parser.parsear_retencion(contenido, compra_id=args.compra_id)
        else:
            raise XmlParserError("El XML no corresponde a una factura ni a un comprobante de retención")
    except OSError as e:
        print(f"✗ No se pudo leer {args.archivo}: {e.strerror or e}", file=sys.stderr)
        return 2
    except XmlParserError as e:
        print(f"✗ {e.message}", file=sys.stderr)
        return 2
    print(importado.model_dump_json(indent=2))
    return 0


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(prog="ats-sri", description="Anexo Transaccional Simplificado (SRI)")
    parser.add_argument("-v", "--verbose", action="store_true", help="Mostrar logs de depuración")
    sub = parser.add_subparsers(dest="comando", required=True)

    p_generar = sub.add_parser("generar", help="Generar el ATS de un periodo desde un JSON")
    p_generar.add_argument("datos", help="JSON con empresa, periodo, compras, ventas, ...")
    p_generar.add_argument("--storage-dir", help="Directorio de salida (por defecto el configurado)")
    p_generar.add_argument("--xsd", help="Ruta al at.xsd del SRI")
    p_generar.set_defaults(func=cmd_generar)

    p_validar = sub.add_parser("validar", help="Validar un XML de ATS")
    p_validar.add_argument("archivo", help="Archivo XML")
    p_validar.add_argument("--xsd", help="Ruta al at.xsd del SRI")
    p_validar.set_defaults(func=cmd_validar)

    p_importar = sub.add_parser("importar", help="Extraer datos de una factura o retención electrónica")
    p_importar.add_argument("archivo", help="XML del comprobante o de su autorización del SRI")
    p_importar.add_argument("--venta", action="store_true", help="Leer la factura como venta (cliente = comprador)")
    p_importar.add_argument("--compra-id", help="Compra a la que se aplica la retención")
    p_importar.set_defaults(func=cmd_importar)

    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
