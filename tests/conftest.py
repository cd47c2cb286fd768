"""
Shared fixtures: sample period data and an isolated storage directory.
"""

from datetime import date
from decimal import Decimal

import pytest

from ats_sri.core.config import settings
from ats_sri.schemas.models import AtsRequest, Compra, Empresa, Retencion, Venta

RUC_SOCIEDAD = "1790011674001"
RUC_PUBLICO = "1760001550001"
CEDULA = "1710034065"
CLAVE_ACCESO = "1001202501179001167400120010020000001231234567813"


@pytest.fixture
def storage(tmp_path, monkeypatch):
    monkeypatch.setattr(settings, "storage_dir", str(tmp_path))
    return tmp_path


def make_compra(**overrides) -> Compra:
    data = dict(
        id="c1",
        identificacion_proveedor=RUC_PUBLICO,
        razon_social_proveedor="Proveedor Uno",
        fecha_emision=date(2025, 1, 10),
        establecimiento="1",
        punto_emision="2",
        secuencial="123",
        numero_autorizacion=CLAVE_ACCESO,
        base_imponible_iva=Decimal("100.00"),
        monto_iva=Decimal("15.00"),
        total_compra=Decimal("115.00"),
    )
    data.update(overrides)
    return Compra(**data)


def make_venta(**overrides) -> Venta:
    data = dict(
        identificacion_cliente=RUC_PUBLICO,
        fecha_emision=date(2025, 1, 15),
        secuencial="10",
        base_imponible_iva=Decimal("200.00"),
        monto_iva=Decimal("30.00"),
        total_venta=Decimal("230.00"),
        forma_pago="20",
    )
    data.update(overrides)
    return Venta(**data)


def make_retencion(**overrides) -> Retencion:
    data = dict(
        compra_id="c1",
        tipo_impuesto="IVA",
        codigo_retencion="1",
        base_imponible=Decimal("15.00"),
        porcentaje_retencion=Decimal("30"),
        valor_retenido=Decimal("4.50"),
        establecimiento="1",
        punto_emision="1",
        secuencial="45",
        numero_autorizacion="2" * 49,
        fecha_emision=date(2025, 1, 12),
    )
    data.update(overrides)
    return Retencion(**data)


def make_request(**overrides) -> AtsRequest:
    data = dict(
        empresa=Empresa(ruc=RUC_SOCIEDAD, razon_social="Comercial Andina S.A."),
        periodo="01/2025",
    )
    data.update(overrides)
    return AtsRequest(**data)
