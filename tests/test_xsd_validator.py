"""
ATS-SRI — XSD validator tests
Syntax, schema and structural checks plus the text report.

Run: pytest tests/ -v
"""

import pytest

from ats_sri.services.xsd_validator import XsdValidator

HEADER_OK = (
    "<TipoIDInformante>R</TipoIDInformante>"
    "<IdInformante>1790011674001</IdInformante>"
    "<razonSocial>Comercial Andina SA</razonSocial>"
    "<Anio>2025</Anio><Mes>01</Mes>"
    "<numEstabRuc>001</numEstabRuc>"
    "<totalVentas>0.00</totalVentas>"
    "<codigoOperativo>IVA</codigoOperativo>"
)

HEADER_XSD = """<?xml version="1.0" encoding="UTF-8"?>
<xs:schema xmlns:xs="http://www.w3.org/2001/XMLSchema">
  <xs:element name="iva">
    <xs:complexType>
      <xs:sequence>
        <xs:element name="TipoIDInformante" type="xs:string"/>
        <xs:element name="IdInformante" type="xs:string"/>
        <xs:element name="razonSocial" type="xs:string"/>
        <xs:element name="Anio" type="xs:gYear"/>
        <xs:element name="Mes" type="xs:string"/>
        <xs:element name="numEstabRuc" type="xs:string"/>
        <xs:element name="totalVentas" type="xs:decimal"/>
        <xs:element name="codigoOperativo" type="xs:string"/>
      </xs:sequence>
    </xs:complexType>
  </xs:element>
</xs:schema>
"""

LISTA_XSD = """<?xml version="1.0" encoding="UTF-8"?>
<xs:schema xmlns:xs="http://www.w3.org/2001/XMLSchema">
  <xs:element name="lista">
    <xs:complexType>
      <xs:sequence>
        <xs:element name="n" type="xs:int" maxOccurs="unbounded"/>
      </xs:sequence>
    </xs:complexType>
  </xs:element>
</xs:schema>
"""


def iva(body: str = "") -> str:
    return f'<?xml version="1.0" encoding="UTF-8"?><iva>{HEADER_OK}{body}</iva>'


@pytest.fixture
def header_xsd(tmp_path):
    path = tmp_path / "at.xsd"
    path.write_text(HEADER_XSD, encoding="utf-8")
    return path


class TestSintaxis:
    def test_malformed_xml(self):
        result = XsdValidator().validar("<iva><Mes>01</iva>")
        assert not result.valido
        assert result.errores[0].tipo == "SINTAXIS"
        assert result.errores[0].linea == 1
        assert result.mensaje == "XML con errores de sintaxis"

    def test_accepts_str_and_bytes(self):
        validator = XsdValidator()
        assert validator.validar(iva()).valido
        assert validator.validar(iva().encode("utf-8")).valido


class TestValidacionXsd:
    def test_valid_document(self, header_xsd):
        result = XsdValidator(str(header_xsd)).validar(iva())
        assert result.valido
        assert result.xsd_disponible
        assert result.metodo == "XSD completa (lxml)"

    def test_schema_errors(self, header_xsd):
        xml = iva().replace("<Mes>01</Mes>", "")
        result = XsdValidator(str(header_xsd)).validar(xml)
        assert not result.valido
        error = result.errores[0]
        assert error.tipo == "XSD_VALIDATION"
        assert error.linea == 1
        assert error.mensaje.startswith("Elemento <numEstabRuc>:")
        assert result.mensaje == "XML con errores de validación XSD"

    def test_errors_are_capped(self, tmp_path):
        path = tmp_path / "lista.xsd"
        path.write_text(LISTA_XSD, encoding="utf-8")
        xml = "<lista>" + "<n>x</n>" * 5 + "</lista>"
        result = XsdValidator(str(path), max_errors=2).validar(xml)
        assert len(result.errores) == 2
        assert result.advertencias[0].tipo == "INFO"
        assert "3 errores adicionales" in result.advertencias[0].mensaje

    def test_broken_schema_falls_back(self, tmp_path):
        path = tmp_path / "roto.xsd"
        path.write_text("<xs:schema", encoding="utf-8")
        result = XsdValidator(str(path)).validar(iva())
        assert result.valido
        assert result.metodo == "básica"
        assert result.advertencias[0].tipo == "INFO"

    def test_missing_schema_file(self, tmp_path):
        validator = XsdValidator(str(tmp_path / "no-existe.xsd"))
        assert not validator.xsd_disponible
        assert validator.validar(iva()).metodo == "básica"

    def test_limpiar_mensaje(self):
        mensaje = XsdValidator.limpiar_mensaje(
            "Element 'Mes': This element is not expected. Expected is ( Anio )."
        )
        assert mensaje == "Elemento <Mes>: Este elemento no es esperado. Se esperaba: ( Anio )."


class TestEstructura:
    def test_root_must_be_iva(self):
        result = XsdValidator().validar("<ats/>")
        assert not result.valido
        assert result.errores[0].tipo == "ESTRUCTURA"

    def test_missing_header_field(self):
        result = XsdValidator().validar(iva().replace("<razonSocial>Comercial Andina SA</razonSocial>", ""))
        assert not result.valido
        assert [e.ruta for e in result.errores] == ["/iva/razonSocial"]

    def test_detalle_compras_fields_and_date(self):
        detalle = (
            "<compras><detalleCompras>"
            "<codSustento>01</codSustento><tpIdProv>01</tpIdProv>"
            "<idProv>1760001550001</idProv><tipoComprobante>01</tipoComprobante>"
            "<fechaRegistro>10/01/2025</fechaRegistro><establecimiento>001</establecimiento>"
            "<puntoEmision>001</puntoEmision><secuencial>1</secuencial>"
            "<fechaEmision>2025-01-10</fechaEmision>"
            "</detalleCompras></compras>"
        )
        result = XsdValidator().validar(iva(detalle))
        tipos = {(e.tipo, e.ruta) for e in result.errores}
        assert ("CAMPO_OBLIGATORIO", "/iva/compras/detalleCompras[0]/autorizacion") in tipos
        assert ("FORMATO", "/iva/compras/detalleCompras[0]/fechaEmision") in tipos

    def test_empty_section_is_warning(self):
        result = XsdValidator().validar(iva("<ventas/>"))
        assert result.valido
        assert result.advertencias[0].ruta == "/iva/ventas"

    def test_tipos_de_datos(self):
        xml = (
            iva()
            .replace("1790011674001", "1790011674")
            .replace("<Anio>2025</Anio>", "<Anio>1999</Anio>")
            .replace("<Mes>01</Mes>", "<Mes>13</Mes>")
        )
        result = XsdValidator().validar(xml)
        assert [e.ruta for e in result.errores] == ["/iva/IdInformante", "/iva/Anio", "/iva/Mes"]
        assert all(e.tipo == "TIPO_DATO" for e in result.errores)


class TestReporte:
    def test_valid_report(self):
        validator = XsdValidator()
        reporte = validator.generar_reporte(validator.validar(iva()))
        assert "Estado: ✓ VÁLIDO" in reporte
        assert "No se encontraron errores ni advertencias" in reporte

    def test_invalid_report(self):
        validator = XsdValidator()
        reporte = validator.generar_reporte(validator.validar(iva().replace("<Mes>01</Mes>", "<Mes>13</Mes>")))
        assert "Estado: ✗ INVÁLIDO" in reporte
        assert "ERRORES (1):" in reporte
        assert "Ruta: /iva/Mes" in reporte
        assert "Valor: 13" in reporte
