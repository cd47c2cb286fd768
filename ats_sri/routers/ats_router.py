"""
ATS-SRI: Router del Anexo Transaccional Simplificado
=====================================================
Generación, vista previa, validación, historial y descarga del ATS.
"""

from pathlib import Path
from typing import Optional

from fastapi import APIRouter, File, HTTPException, Query, UploadFile
from fastapi.responses import FileResponse, PlainTextResponse

from ats_sri.schemas.models import AtsPreview, AtsRequest, AtsResponse, HistorialAts, ValidationResult
from ats_sri.services.ats_generator import ats_generator
from ats_sri.services.historial_service import historial_service
from ats_sri.services.xsd_validator import xsd_validator

router = APIRouter(prefix="/api/v1/ats", tags=["ATS"])

MAX_XML_BYTES = 20_000_000


@router.post("/generar", response_model=AtsResponse)
async def generar_ats(body: AtsRequest):
    """Generar el XML y ZIP del ATS de un periodo."""
    return ats_generator.generar(body)


@router.post("/vista-previa", response_model=AtsPreview)
async def vista_previa_ats(body: AtsRequest):
    """Resumen del periodo sin generar archivos."""
    return ats_generator.vista_previa(body)


@router.post("/validar", response_model=ValidationResult)
async def validar_ats(
    file: UploadFile = File(...),
    reporte: bool = Query(False, description="Devolver el reporte en texto plano"),
):
    """Validar un XML de ATS ya generado."""
    content = await file.read()
    if not content:
        raise HTTPException(400, "Archivo XML vacío")
    if len(content) > MAX_XML_BYTES:
        raise HTTPException(413, "Archivo XML demasiado grande")

    resultado = xsd_validator.validar(content)
    if reporte:
        return PlainTextResponse(xsd_validator.generar_reporte(resultado))
    return resultado


@router.get("/historial")
async def listar_historial(
    ruc: Optional[str] = None,
    periodo: Optional[str] = None,
    pagina: int = Query(1, ge=1),
    limite: int = Query(20, ge=1, le=100),
):
    return historial_service.listar(ruc=ruc, periodo=periodo, pagina=pagina, limite=limite)


@router.get("/historial/{historial_id}", response_model=HistorialAts)
async def obtener_historial(historial_id: str):
    entrada = historial_service.obtener(historial_id)
    if not entrada:
        raise HTTPException(404, "Registro de historial no encontrado")
    return entrada


@router.get("/descargar/{historial_id}")
async def descargar_ats(historial_id: str, tipo: str = Query("xml", pattern="^(xml|zip)$")):
    """Descargar el XML o ZIP generado; marca el registro como descargado."""
    entrada = historial_service.obtener(historial_id)
    if not entrada:
        raise HTTPException(404, "Registro de historial no encontrado")

    ruta = Path(entrada.ruta_archivo_zip if tipo == "zip" else entrada.ruta_archivo_xml)
    if not ruta.is_file():
        raise HTTPException(404, "Archivo no encontrado")

    historial_service.marcar_descargado(historial_id)
    return FileResponse(
        ruta,
        media_type="application/zip" if tipo == "zip" else "application/xml",
        filename=ruta.name,
    )
