"""
ATS-SRI — Formatter and RUC tests

Run: pytest tests/ -v
"""

from datetime import date, datetime
from decimal import Decimal

import pytest

from ats_sri.utils.formatters import (
    format_autorizacion,
    format_decimal,
    format_entero,
    format_establecimiento,
    format_fecha,
    format_numero_comprobante,
    format_razon_social,
    format_secuencial,
    pad_with_zeros,
    parse_periodo,
    periodo_de,
)
from ats_sri.utils.ruc_validator import obtener_tipo_ruc, validar_ruc, validar_ruc_empresa

from conftest import CEDULA, RUC_PUBLICO, RUC_SOCIEDAD


# ─────────────────────────────────────────────────────────────
# FORMATTERS
# ─────────────────────────────────────────────────────────────

class TestPadding:
    def test_establecimiento(self):
        assert format_establecimiento(1) == "001"
        assert format_establecimiento("10") == "010"

    def test_secuencial(self):
        assert format_secuencial(10) == "000000010"

    def test_empty_values(self):
        assert pad_with_zeros(None, 3) == ""
        assert pad_with_zeros("  ", 3) == ""

    def test_numero_comprobante(self):
        assert format_numero_comprobante(1, 2, 345) == "001-002-000000345"
        assert format_numero_comprobante(1, None, 345) == ""


class TestFormatDecimal:
    def test_two_decimals(self):
        assert format_decimal(Decimal("10")) == "10.00"
        assert format_decimal(3.5) == "3.50"

    def test_rounds_half_up(self):
        assert format_decimal(Decimal("2.345")) == "2.35"
        assert format_decimal("0.005") == "0.01"

    def test_none_and_invalid(self):
        assert format_decimal(None) == "0.00"
        assert format_decimal("") == "0.00"
        assert format_decimal("abc") == "0.00"


class TestFormatFecha:
    def test_date(self):
        assert format_fecha(date(2025, 1, 5)) == "05/01/2025"

    def test_datetime_and_iso(self):
        assert format_fecha(datetime(2025, 12, 31, 23, 59)) == "31/12/2025"
        assert format_fecha("2025-03-07T10:00:00") == "07/03/2025"

    def test_empty(self):
        assert format_fecha(None) == ""


class TestFormatAutorizacion:
    def test_large_int_stays_digits(self):
        clave = int("1" * 49)
        assert format_autorizacion(clave) == "1" * 49

    def test_scientific_notation_string(self):
        assert format_autorizacion("1.5E+3") == "1500"
        assert format_autorizacion("1.2345e+10") == "12345000000"

    def test_float_never_scientific(self):
        text = format_autorizacion(1.2345678901234567e48)
        assert "e" not in text.lower()
        assert len(text) == 49
        assert text.isdigit()

    def test_plain_string(self):
        assert format_autorizacion(" 0102030405 ") == "0102030405"
        assert format_autorizacion(None) == ""


class TestFormatEntero:
    def test_strips_leading_zeros(self):
        assert format_entero("000000123") == "123"
        assert format_entero(45) == "45"

    def test_empty_is_zero(self):
        assert format_entero("") == "0"
        assert format_entero(None) == "0"


class TestFormatRazonSocial:
    def test_transliterates_and_cleans(self):
        assert format_razon_social("Compañía Ñandú S.A.") == "Compania Nandu SA"

    def test_collapses_whitespace(self):
        assert format_razon_social("  ACME   Cía.  Ltda ") == "ACME Cia Ltda"

    def test_minimum_and_maximum_length(self):
        assert format_razon_social("AB") == "AB   "
        assert len(format_razon_social("X" * 600)) == 500

    def test_empty(self):
        assert format_razon_social(None) == ""


class TestPeriodo:
    def test_parse(self):
        assert parse_periodo("01/2025") == ("01", "2025")

    @pytest.mark.parametrize("periodo", ["13/2025", "1/2025", "2025-01", "", None])
    def test_parse_invalid(self, periodo):
        with pytest.raises(ValueError):
            parse_periodo(periodo)

    def test_periodo_de(self):
        assert periodo_de(date(2025, 3, 31)) == "03/2025"
        assert periodo_de("2024-11-02") == "11/2024"


# ─────────────────────────────────────────────────────────────
# RUC VALIDATOR
# ─────────────────────────────────────────────────────────────

class TestValidarRuc:
    def test_sociedad_privada(self):
        assert validar_ruc(RUC_SOCIEDAD) == (True, "RUC válido")

    def test_entidad_publica(self):
        assert validar_ruc(RUC_PUBLICO)[0] is True

    def test_cedula(self):
        assert validar_ruc(CEDULA)[0] is True

    def test_persona_natural_13_digitos(self):
        assert validar_ruc(CEDULA + "001")[0] is True
        valido, mensaje = validar_ruc(CEDULA + "002")
        assert not valido
        assert "001" in mensaje

    def test_digito_verificador(self):
        valido, mensaje = validar_ruc("1790011675001")
        assert not valido
        assert "verificador" in mensaje

    def test_provincia(self):
        valido, mensaje = validar_ruc("2590011674001")
        assert not valido
        assert "provincia" in mensaje

    def test_formato(self):
        assert validar_ruc("")[0] is False
        assert validar_ruc("123")[0] is False
        assert validar_ruc("17900116740AB")[0] is False

    def test_tercer_digito_invalido(self):
        assert validar_ruc("1780011674001") == (False, "Tipo de RUC no válido")


class TestValidarRucEmpresa:
    def test_acepta_sociedad_y_publico(self):
        assert validar_ruc_empresa(RUC_SOCIEDAD)[0] is True
        assert validar_ruc_empresa(RUC_PUBLICO)[0] is True

    def test_rechaza_persona_natural(self):
        valido, mensaje = validar_ruc_empresa(CEDULA + "001")
        assert not valido
        assert "persona natural" in mensaje

    def test_rechaza_cedula(self):
        assert validar_ruc_empresa(CEDULA)[0] is False


class TestObtenerTipoRuc:
    def test_tipos(self):
        assert obtener_tipo_ruc(RUC_SOCIEDAD) == "SOCIEDAD_PRIVADA"
        assert obtener_tipo_ruc(RUC_PUBLICO) == "ENTIDAD_PUBLICA"
        assert obtener_tipo_ruc(CEDULA) == "PERSONA_NATURAL"
        assert obtener_tipo_ruc("17") == "DESCONOCIDO"
