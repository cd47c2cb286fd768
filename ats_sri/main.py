"""
ATS-SRI — Main API Application
FastAPI backend for the SRI Anexo Transaccional Simplificado (Ecuador).

Flow:
  1. POST /api/v1/ats/vista-previa   → Review the period's totals
  2. POST /api/v1/ats/generar        → Build ATS<MM><AAAA>.xml + AT<MM><AAAA>.zip
  3. GET  /api/v1/ats/descargar/{id} → Download the file to upload to the SRI
  4. POST /api/v1/ats/validar        → Validate an existing ATS file

Supporting endpoints import SRI electronic invoices as purchases, validate
RUC numbers and expose the SRI catalogs.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from slowapi.util import get_remote_address

from ats_sri.core.config import settings
from ats_sri.routers.ats_router import router as ats_router
from ats_sri.routers.comprobantes_router import router as comprobantes_router
from ats_sri.schemas.models import ErrorResponse, HealthResponse
from ats_sri.services.ats_generator import AtsError
from ats_sri.services.xml_parser import XmlParserError
from ats_sri.services.xsd_validator import xsd_validator

# ─────────────────────────────────────────────────────────────
# LOGGING
# ─────────────────────────────────────────────────────────────

logging.basicConfig(
    level=logging.DEBUG if settings.debug else logging.INFO,
    format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("ats-sri")


# ─────────────────────────────────────────────────────────────
# APP LIFECYCLE
# ─────────────────────────────────────────────────────────────

@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(f"🚀 ATS-SRI v{settings.app_version} starting...")
    logger.info(f"   Storage: {settings.storage_dir}")
    if xsd_validator.xsd_disponible:
        logger.info(f"   XSD: {xsd_validator.xsd_path}")
    else:
        logger.warning("   XSD no configurado: solo validación estructural")
    yield
    logger.info("ATS-SRI shutdown complete.")


# ─────────────────────────────────────────────────────────────
# FASTAPI APP
# ─────────────────────────────────────────────────────────────

limiter = Limiter(key_func=get_remote_address, default_limits=[settings.rate_limit])

app = FastAPI(
    title="ATS-SRI API",
    description=(
        "Backend API para generar el Anexo Transaccional Simplificado (ATS) "
        "del Servicio de Rentas Internas del Ecuador a partir de las compras, "
        "ventas, exportaciones, retenciones y anulados de un periodo."
    ),
    version=settings.app_version,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"] if settings.debug else [],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
app.add_middleware(SlowAPIMiddleware)


# ─────────────────────────────────────────────────────────────
# GLOBAL EXCEPTION HANDLERS
# ─────────────────────────────────────────────────────────────

@app.exception_handler(AtsError)
async def ats_error_handler(request: Request, exc: AtsError):
    return JSONResponse(
        status_code=exc.status_code,
        content=ErrorResponse(
            error="ATS_ERROR", detail=exc.message,
            code=exc.code,
        ).model_dump(),
    )


@app.exception_handler(XmlParserError)
async def xml_parser_error_handler(request: Request, exc: XmlParserError):
    return JSONResponse(
        status_code=exc.status_code,
        content=ErrorResponse(
            error="XML_ERROR", detail=exc.message, code="XML_INVALIDO",
        ).model_dump(),
    )


# ─────────────────────────────────────────────────────────────
# HEALTH CHECK
# ─────────────────────────────────────────────────────────────

@app.get("/health", response_model=HealthResponse, tags=["Sistema"])
async def health_check():
    """Verificar estado del servicio."""
    return HealthResponse(
        version=settings.app_version,
        xsd_disponible=xsd_validator.xsd_disponible,
    )


app.include_router(ats_router)
app.include_router(comprobantes_router)


# ENTRYPOINT
# ─────────────────────────────────────────────────────────────

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "ats_sri.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
    )
