"""
ATS-SRI — Historial de generación
Registro en memoria de los anexos generados, por id.
"""

import logging
import math
import threading
import uuid
from datetime import datetime
from typing import Optional

from ats_sri.schemas.models import AtsEstadisticas, EstadoAts, HistorialAts

logger = logging.getLogger(__name__)


class HistorialService:

    def __init__(self):
        self._items: dict[str, HistorialAts] = {}
        self._lock = threading.Lock()

    def registrar(
        self,
        ruc: str,
        periodo: str,
        nombre_archivo: str,
        ruta_archivo_xml: str,
        ruta_archivo_zip: str,
        estadisticas: AtsEstadisticas,
        validacion_xsd: bool,
        usuario: Optional[str] = None,
    ) -> HistorialAts:
        entrada = HistorialAts(
            id=str(uuid.uuid4()),
            ruc=ruc,
            periodo=periodo,
            usuario=usuario,
            nombre_archivo=nombre_archivo,
            ruta_archivo_xml=ruta_archivo_xml,
            ruta_archivo_zip=ruta_archivo_zip,
            estadisticas=estadisticas,
            validacion_xsd=validacion_xsd,
            estado=EstadoAts.GENERADO if validacion_xsd else EstadoAts.GENERADO_CON_ADVERTENCIAS,
            fecha_generacion=datetime.now(),
        )
        with self._lock:
            self._items[entrada.id] = entrada
        logger.debug(f"Historial ATS registrado: {entrada.id} ({ruc} {periodo})")
        return entrada

    def obtener(self, historial_id: str) -> Optional[HistorialAts]:
        return self._items.get(historial_id)

    def listar(
        self,
        ruc: Optional[str] = None,
        periodo: Optional[str] = None,
        pagina: int = 1,
        limite: int = 20,
    ) -> dict:
        """Most recent first, filtered by ruc/periodo when given."""
        with self._lock:
            items = list(self._items.values())
        if ruc:
            items = [i for i in items if i.ruc == ruc]
        if periodo:
            items = [i for i in items if i.periodo == periodo]
        items.sort(key=lambda i: i.fecha_generacion, reverse=True)

        pagina = max(pagina, 1)
        limite = max(limite, 1)
        inicio = (pagina - 1) * limite
        total = len(items)
        return {
            "items": items[inicio:inicio + limite],
            "total": total,
            "pagina": pagina,
            "limite": limite,
            "paginas": math.ceil(total / limite) if total else 0,
        }

    def marcar_descargado(self, historial_id: str) -> Optional[HistorialAts]:
        with self._lock:
            entrada = self._items.get(historial_id)
            if entrada is None:
                return None
            entrada = entrada.model_copy(update={"estado": EstadoAts.DESCARGADO})
            self._items[historial_id] = entrada
        return entrada

    def limpiar(self) -> None:
        with self._lock:
            self._items.clear()


historial_service = HistorialService()
