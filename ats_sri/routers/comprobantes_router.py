"""
ATS-SRI: Comprobantes y catálogos
Importación de facturas electrónicas, validación de RUC y tablas del SRI.
"""

from typing import Literal, Optional, Union

from fastapi import APIRouter, File, HTTPException, Query, UploadFile

from ats_sri.core import catalogos
from ats_sri.schemas.models import (
    ComprobanteImportado,
    RetencionImportada,
    RucRequest,
    RucResponse,
    ValidationResult,
    Venta,
)
from ats_sri.services.xml_parser import TIPO_FACTURA, TIPO_RETENCION, XmlParserError, xml_parser
from ats_sri.utils.ruc_validator import obtener_tipo_ruc, validar_ruc, validar_ruc_empresa

router = APIRouter(prefix="/api/v1", tags=["Comprobantes"])

MAX_XML_BYTES = 2_000_000


async def _leer_xml(file: UploadFile) -> bytes:
    if not file.filename or not file.filename.lower().endswith(".xml"):
        raise HTTPException(400, "Archivo debe ser .xml")
    content = await file.read()
    if not content:
        raise HTTPException(400, "Archivo XML vacío")
    if len(content) > MAX_XML_BYTES:
        raise HTTPException(413, "Archivo XML demasiado grande")
    return content


@router.post(
    "/comprobantes/importar",
    response_model=Union[ComprobanteImportado, Venta, RetencionImportada],
)
async def importar_comprobante(
    file: UploadFile = File(...),
    tipo: Literal["compra", "venta"] = Query("compra", description="Cómo leer una factura"),
    compra_id: Optional[str] = Query(None, description="Compra a la que se aplica una retención"),
):
    """
    Importar un comprobante electrónico del SRI según su tipo:
    factura → compra (por defecto) o venta, comprobante de retención → retenciones.
    """
    content = await _leer_xml(file)
    detectado = xml_parser.detectar_tipo(content)
    if detectado == TIPO_FACTURA:
        if tipo == "venta":
            return xml_parser.parsear_factura_venta(content)
        return xml_parser.parsear_factura(content)
    if detectado == TIPO_RETENCION:
        return xml_parser.parsear_retencion(content, compra_id=compra_id)
    raise XmlParserError("El XML no corresponde a una factura ni a un comprobante de retención")


@router.post("/comprobantes/validar-estructura", response_model=ValidationResult)
async def validar_estructura_comprobante(file: UploadFile = File(...)):
    return xml_parser.validar_estructura(await _leer_xml(file))


@router.post("/comprobantes/validar-ruc", response_model=RucResponse)
async def validar_ruc_endpoint(body: RucRequest):
    ruc = body.ruc.strip()
    valido, mensaje = validar_ruc_empresa(ruc) if body.solo_empresa else validar_ruc(ruc)
    return RucResponse(ruc=ruc, valido=valido, mensaje=mensaje, tipo=obtener_tipo_ruc(ruc))


@router.get("/catalogos")
async def listar_catalogos(nombre: Optional[str] = Query(None, description="Devolver solo un catálogo")):
    tablas = catalogos.as_dict()
    if nombre is None:
        return tablas
    if nombre not in tablas:
        raise HTTPException(404, f"Catálogo no encontrado: {nombre}")
    return {nombre: tablas[nombre]}
