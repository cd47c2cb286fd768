"""
ATS-SRI — RUC Utilities
Check-digit validation for Ecuadorian RUC and cédula numbers.

Every validator returns (valido, mensaje).
"""

PROVINCIA_EXTERIOR = 30

COEF_CEDULA = [2, 1, 2, 1, 2, 1, 2, 1, 2]
COEF_SOCIEDAD = [4, 3, 2, 7, 6, 5, 4, 3, 2]
COEF_PUBLICO = [3, 2, 7, 6, 5, 4, 3, 2]


def _provincia_valida(ruc: str) -> bool:
    provincia = int(ruc[:2])
    return 1 <= provincia <= 24 or provincia == PROVINCIA_EXTERIOR


def _validar_cedula(ruc: str) -> tuple[bool, str]:
    """Módulo 10 sobre los 9 primeros dígitos."""
    suma = 0
    for digito, coef in zip(ruc[:9], COEF_CEDULA):
        valor = int(digito) * coef
        if valor >= 10:
            valor -= 9
        suma += valor
    residuo = suma % 10
    verificador = 0 if residuo == 0 else 10 - residuo
    if verificador == int(ruc[9]):
        return True, "RUC válido"
    return False, "Dígito verificador de RUC incorrecto"


def _validar_modulo_11(ruc: str, coeficientes: list[int]) -> tuple[bool, str]:
    """Módulo 11; el verificador sigue a los dígitos ponderados."""
    n = len(coeficientes)
    suma = sum(int(d) * c for d, c in zip(ruc[:n], coeficientes))
    residuo = suma % 11
    verificador = 0 if residuo == 0 else 11 - residuo
    if verificador == int(ruc[n]):
        return True, "RUC válido"
    return False, "Dígito verificador de RUC incorrecto"


def validar_ruc(ruc: str) -> tuple[bool, str]:
    """
    Validate a RUC or cédula.
    - Third digit < 6: natural person, cédula (10) or cédula + 001 (13)
    - Third digit 9: private company, 13 digits ending in 001
    - Third digit 6: public entity, 13 digits ending in 001
    """
    if not ruc:
        return False, "El RUC es requerido"
    ruc = ruc.strip()

    if len(ruc) < 10 or len(ruc) > 13:
        return False, "El RUC debe tener entre 10 y 13 dígitos"
    if not ruc.isdigit():
        return False, "El RUC debe contener solo números"
    if not _provincia_valida(ruc):
        return False, "Código de provincia inválido en el RUC"

    tercer = int(ruc[2])

    if tercer < 6:
        # cédula, or cédula + 001 for a natural person's RUC
        if len(ruc) == 13 and ruc[10:] != "001":
            return False, "RUC de persona natural debe terminar en 001"
        if len(ruc) not in (10, 13):
            return False, "RUC de persona natural debe tener 10 o 13 dígitos"
        return _validar_cedula(ruc)

    if tercer == 9:
        if len(ruc) != 13:
            return False, "RUC de sociedad debe tener 13 dígitos"
        if ruc[10:] != "001":
            return False, "RUC de sociedad debe terminar en 001"
        return _validar_modulo_11(ruc, COEF_SOCIEDAD)

    if tercer == 6:
        if len(ruc) != 13:
            return False, "RUC de entidad pública debe tener 13 dígitos"
        if ruc[10:] != "001":
            return False, "RUC de entidad pública debe terminar en 001"
        return _validar_modulo_11(ruc, COEF_PUBLICO)

    return False, "Tipo de RUC no válido"


def validar_ruc_empresa(ruc: str) -> tuple[bool, str]:
    """Only private companies (9) and public entities (6) are accepted."""
    if not ruc:
        return False, "El RUC es requerido"
    ruc = ruc.strip()

    if len(ruc) != 13:
        return False, "El RUC de empresa debe tener 13 dígitos"
    if not ruc.isdigit():
        return False, "El RUC debe contener solo números"
    if not _provincia_valida(ruc):
        return False, "Código de provincia inválido en el RUC"

    tercer = int(ruc[2])
    if tercer < 6:
        return False, (
            "El RUC proporcionado corresponde a una persona natural. "
            "Para empresas debe usar RUC de 13 dígitos"
        )
    if ruc[10:] != "001":
        return False, "El RUC de empresa debe terminar en 001"
    if tercer == 9:
        return _validar_modulo_11(ruc, COEF_SOCIEDAD)
    if tercer == 6:
        return _validar_modulo_11(ruc, COEF_PUBLICO)

    return False, (
        "Tipo de RUC no válido para empresa. El tercer dígito debe ser "
        "6 (entidad pública) o 9 (sociedad privada)"
    )


def obtener_tipo_ruc(ruc: str) -> str:
    if not ruc or len(ruc) < 3 or not ruc[2].isdigit():
        return "DESCONOCIDO"
    tercer = int(ruc[2])
    if tercer < 6:
        return "PERSONA_NATURAL"
    if tercer == 6:
        return "ENTIDAD_PUBLICA"
    if tercer == 9:
        return "SOCIEDAD_PRIVADA"
    return "DESCONOCIDO"
