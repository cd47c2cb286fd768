"""
ATS-SRI — Formatters
Formatting helpers for values written into SRI documents.
"""

import re
import unicodedata
from datetime import date, datetime
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any

PERIODO_RE = re.compile(r"^(0[1-9]|1[0-2])/(\d{4})$")

_CENTAVOS = Decimal("0.01")


def pad_with_zeros(value: Any, length: int) -> str:
    """Left-pad with zeros. None/empty → ''."""
    if value is None:
        return ""
    text = str(value).strip()
    if not text:
        return ""
    return text.zfill(length)


def format_establecimiento(value: Any) -> str:
    """10 → '010'"""
    return pad_with_zeros(value, 3)


def format_punto_emision(value: Any) -> str:
    return pad_with_zeros(value, 3)


def format_secuencial(value: Any) -> str:
    """10 → '000000010'"""
    return pad_with_zeros(value, 9)


def format_numero_comprobante(establecimiento: Any, punto_emision: Any, secuencial: Any) -> str:
    """Número completo EEE-PPP-SSSSSSSSS, '' si falta alguna parte."""
    est = format_establecimiento(establecimiento)
    pto = format_punto_emision(punto_emision)
    sec = format_secuencial(secuencial)
    if not est or not pto or not sec:
        return ""
    return f"{est}-{pto}-{sec}"


def to_decimal(value: Any) -> Decimal:
    """None/empty/invalid → Decimal('0')."""
    if value is None or value == "":
        return Decimal("0")
    if isinstance(value, Decimal):
        return value
    try:
        return Decimal(str(value))
    except (InvalidOperation, ValueError):
        return Decimal("0")


def format_decimal(value: Any) -> str:
    """Monto a 2 decimales (ROUND_HALF_UP). None → '0.00'."""
    return f"{to_decimal(value).quantize(_CENTAVOS, rounding=ROUND_HALF_UP):.2f}"


def format_fecha(value: Any) -> str:
    """date/datetime/ISO string → DD/MM/YYYY. None → ''."""
    if not value:
        return ""
    if isinstance(value, str):
        value = date.fromisoformat(value[:10])
    if isinstance(value, datetime):
        value = value.date()
    return value.strftime("%d/%m/%Y")


def format_autorizacion(value: Any) -> str:
    """
    Número de autorización como texto de dígitos.
    Claves de acceso de 49 dígitos pueden llegar como número; nunca deben
    escribirse en notación científica.
    """
    if value is None:
        return ""
    if isinstance(value, int) and not isinstance(value, bool):
        return str(value)
    if isinstance(value, float):
        return f"{Decimal(repr(value)).to_integral_value():f}"
    if isinstance(value, Decimal):
        return f"{value.to_integral_value():f}" if value == value.to_integral_value() else f"{value:f}"
    text = str(value).strip()
    if re.fullmatch(r"[+-]?\d+(\.\d+)?[eE][+-]?\d+", text):
        return f"{Decimal(text).to_integral_value():f}"
    return text


def format_entero(value: Any) -> str:
    """Texto de un entero sin ceros a la izquierda ('000000123' → '123')."""
    text = format_autorizacion(value)
    if not text:
        return "0"
    try:
        return str(int(text))
    except ValueError:
        return text


def format_razon_social(value: Any) -> str:
    """
    Razón social según el patrón del XSD: solo letras, dígitos y espacios,
    entre 5 y 500 caracteres. Las tildes se transliteran (Ñ → N).
    """
    if not value:
        return ""
    text = unicodedata.normalize("NFKD", str(value))
    text = "".join(c for c in text if not unicodedata.combining(c))
    text = re.sub(r"[^a-zA-Z0-9\s]", "", text)
    text = re.sub(r"\s+", " ", text).strip()
    if len(text) < 5:
        text = text.ljust(5)
    return text[:500]


def parse_periodo(periodo: str) -> tuple[str, str]:
    """'01/2025' → ('01', '2025'). Raises ValueError on bad format."""
    match = PERIODO_RE.match(periodo or "")
    if not match:
        raise ValueError("Formato de periodo inválido. Use MM/AAAA")
    return match.group(1), match.group(2)


def periodo_de(fecha: Any) -> str:
    """Periodo MM/AAAA de una fecha."""
    if isinstance(fecha, str):
        fecha = date.fromisoformat(fecha[:10])
    return f"{fecha.month:02d}/{fecha.year}"
