"""
ATS-SRI — Catálogos del SRI
Tablas de referencia usadas al construir y validar el ATS.

Fuente: Ficha técnica del Anexo Transaccional Simplificado (SRI),
tablas 2 (identificación), 3 (sustento), 4 (comprobantes),
13 (formas de pago) y tabla de retenciones en la fuente.
"""

# Tabla 2: tipo de identificación del proveedor (compras)
TIPOS_ID_PROVEEDOR: dict[str, str] = {
    "01": "RUC",
    "02": "Cédula",
    "03": "Pasaporte / identificación tributaria del exterior",
}

# Tabla 2: tipo de identificación del cliente (ventas)
TIPOS_ID_CLIENTE: dict[str, str] = {
    "04": "RUC",
    "05": "Cédula",
    "06": "Pasaporte",
    "07": "Consumidor final",
    "08": "Identificación del exterior",
}

CONSUMIDOR_FINAL = "07"
PASAPORTE_PROVEEDOR = "03"

TIPOS_PROVEEDOR: dict[str, str] = {
    "01": "Persona natural",
    "02": "Sociedad",
}

# Tabla 4: tipos de comprobante
TIPOS_COMPROBANTE: dict[str, str] = {
    "01": "Factura",
    "02": "Nota de venta",
    "03": "Liquidación de compra de bienes y prestación de servicios",
    "04": "Nota de crédito",
    "05": "Nota de débito",
    "07": "Comprobante de retención",
    "11": "Pasajes expedidos por empresas de aviación",
    "12": "Documentos emitidos por instituciones financieras",
    "15": "Comprobante de venta emitido en el exterior",
    "18": "Documentos autorizados utilizados en ventas",
    "19": "Comprobantes de pago de cuotas o aportes",
    "20": "Documentos por servicios administrativos del Estado",
    "21": "Carta de porte aéreo",
    "41": "Comprobante de venta emitido por reembolso",
}

FACTURA = "01"
NOTA_CREDITO = "04"
NOTA_DEBITO = "05"
# En ventas y exportaciones la factura se reporta con el código 18
FACTURA_VENTAS_ATS = "18"

# Tabla 3: códigos de sustento tributario
CODIGOS_SUSTENTO: dict[str, str] = {
    "01": "Crédito tributario para declaración de IVA",
    "02": "Costo o gasto para declaración de IR",
    "03": "Activo fijo - crédito tributario para declaración de IVA",
    "04": "Activo fijo - costo o gasto para declaración de IR",
    "05": "Liquidación gastos de viaje, hospedaje y alimentación",
    "06": "Inventario - crédito tributario para declaración de IVA",
    "07": "Inventario - costo o gasto para declaración de IR",
    "08": "Valor pagado para solicitar reembolso de gasto",
    "09": "Reembolso por siniestros",
    "10": "Distribución de dividendos, beneficios o utilidades",
    "00": "Casos especiales cuyo sustento no aplica",
}

# Tabla 13: formas de pago
FORMAS_PAGO: dict[str, str] = {
    "01": "Sin utilización del sistema financiero",
    "02": "Cheque propio",
    "03": "Cheque certificado",
    "04": "Cheque de gerencia",
    "05": "Cheque del exterior",
    "06": "Débito de cuenta",
    "07": "Transferencia propio banco",
    "08": "Transferencia otro banco nacional",
    "09": "Transferencia banco exterior",
    "10": "Tarjeta de crédito nacional",
    "11": "Tarjeta de crédito internacional",
    "12": "Giro",
    "13": "Depósito en cuenta",
    "14": "Endoso de inversión",
    "15": "Compensación de deudas",
    "16": "Tarjeta de débito",
    "17": "Dinero electrónico",
    "18": "Tarjeta prepago",
    "19": "Tarjeta de crédito",
    "20": "Otros con utilización del sistema financiero",
    "21": "Endoso de títulos",
}

# Porcentaje de retención de IVA → etiqueta de detalleCompras que lo recibe.
# El orden es el del esquema.
RETENCION_IVA_SLOTS: dict[int, str] = {
    10: "valRetBien10",
    20: "valRetServ20",
    30: "valorRetBienes",
    50: "valRetServ50",
    70: "valorRetServicios",
    100: "valRetServ100",
}

# Retenciones en la fuente de impuesto a la renta (porcentaje por defecto)
CODIGOS_RETENCION_RENTA: dict[str, dict] = {
    "303": {"descripcion": "Honorarios profesionales", "porcentaje": "10"},
    "303A": {"descripcion": "Servicios profesionales prestados por sociedades residentes", "porcentaje": "3"},
    "304": {"descripcion": "Servicios predomina el intelecto", "porcentaje": "10"},
    "304A": {"descripcion": "Comisiones por servicios predomina el intelecto", "porcentaje": "10"},
    "304B": {"descripcion": "Pagos a notarios y registradores", "porcentaje": "10"},
    "304E": {"descripcion": "Servicios de docencia", "porcentaje": "10"},
    "307": {"descripcion": "Servicios predomina la mano de obra", "porcentaje": "2"},
    "308": {"descripcion": "Utilización o aprovechamiento de la imagen o renombre", "porcentaje": "10"},
    "309": {"descripcion": "Servicios prestados por medios de comunicación y agencias de publicidad", "porcentaje": "1.75"},
    "310": {"descripcion": "Servicio de transporte privado de pasajeros o carga", "porcentaje": "1"},
    "312": {"descripcion": "Transferencia de bienes muebles de naturaleza corporal", "porcentaje": "1.75"},
    "320": {"descripcion": "Arrendamiento de bienes inmuebles", "porcentaje": "10"},
    "322": {"descripcion": "Seguros y reaseguros", "porcentaje": "1.75"},
    "332": {"descripcion": "Otras compras de bienes y servicios no sujetas a retención", "porcentaje": "0"},
    "343": {"descripcion": "Otras retenciones aplicables el 1%", "porcentaje": "1"},
    "344": {"descripcion": "Otras retenciones aplicables el 2%", "porcentaje": "2"},
}


def as_dict() -> dict:
    """All catalogs keyed by name, for the API."""
    return {
        "tipos_id_proveedor": TIPOS_ID_PROVEEDOR,
        "tipos_id_cliente": TIPOS_ID_CLIENTE,
        "tipos_proveedor": TIPOS_PROVEEDOR,
        "tipos_comprobante": TIPOS_COMPROBANTE,
        "codigos_sustento": CODIGOS_SUSTENTO,
        "formas_pago": FORMAS_PAGO,
        "retencion_iva": {str(k): v for k, v in RETENCION_IVA_SLOTS.items()},
        "codigos_retencion_renta": CODIGOS_RETENCION_RENTA,
    }
