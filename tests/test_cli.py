"""
ATS-SRI — CLI tests

Run: pytest tests/ -v
"""

import json

from ats_sri.cli import main

from conftest import RUC_SOCIEDAD
from test_api import payload
from test_xml_parser import COMPRADOR, factura_xml, retencion_v1_xml


class TestGenerar:
    def test_generar_desde_json(self, storage, tmp_path, capsys):
        datos = tmp_path / "datos.json"
        datos.write_text(json.dumps(payload()), encoding="utf-8")
        salida = tmp_path / "salida"

        code = main(["generar", str(datos), "--storage-dir", str(salida)])

        assert code == 0
        assert (salida / "ats" / RUC_SOCIEDAD / "ATS012025.xml").is_file()
        out = capsys.readouterr().out
        assert "ATS generado exitosamente" in out
        assert "Compras: 1 | Ventas: 1" in out
        assert "✓ VÁLIDO" in out

    def test_datos_invalidos(self, storage, tmp_path, capsys):
        datos = tmp_path / "datos.json"
        datos.write_text(json.dumps({"periodo": "01/2025"}), encoding="utf-8")
        assert main(["generar", str(datos)]) == 2
        assert "Datos inválidos" in capsys.readouterr().err

    def test_archivo_inexistente(self, tmp_path, capsys):
        assert main(["generar", str(tmp_path / "no-existe.json")]) == 2
        assert "No se pudo leer" in capsys.readouterr().err

    def test_periodo_invalido(self, storage, tmp_path, capsys):
        datos = tmp_path / "datos.json"
        datos.write_text(json.dumps(payload(periodo="1/2025")), encoding="utf-8")
        assert main(["generar", str(datos)]) == 2
        assert "Formato de periodo inválido" in capsys.readouterr().err


class TestValidar:
    def test_xml_invalido(self, tmp_path, capsys):
        archivo = tmp_path / "ATS012025.xml"
        archivo.write_text("<iva><Mes>01</iva>", encoding="utf-8")
        assert main(["validar", str(archivo)]) == 1
        assert "✗ INVÁLIDO" in capsys.readouterr().out

    def test_archivo_inexistente(self, tmp_path, capsys):
        assert main(["validar", str(tmp_path / "ATS012025.xml")]) == 2
        assert capsys.readouterr().err.startswith("✗ No se pudo leer")


class TestImportar:
    def test_importar_factura(self, tmp_path, capsys):
        archivo = tmp_path / "factura.xml"
        archivo.write_text(factura_xml(), encoding="utf-8")
        assert main(["importar", str(archivo)]) == 0
        data = json.loads(capsys.readouterr().out)
        assert data["secuencial"] == "000000123"

    def test_importar_error(self, tmp_path, capsys):
        archivo = tmp_path / "otro.xml"
        archivo.write_text("<otro/>", encoding="utf-8")
        assert main(["importar", str(archivo)]) == 2

    def test_importar_venta(self, tmp_path, capsys):
        archivo = tmp_path / "factura.xml"
        archivo.write_text(factura_xml(extra_info=COMPRADOR), encoding="utf-8")
        assert main(["importar", str(archivo), "--venta"]) == 0
        data = json.loads(capsys.readouterr().out)
        assert data["tipo_identificacion_cliente"] == "05"
        assert data["estado"] == "PENDIENTE"

    def test_importar_retencion(self, tmp_path, capsys):
        archivo = tmp_path / "retencion.xml"
        archivo.write_text(retencion_v1_xml(), encoding="utf-8")
        assert main(["importar", str(archivo), "--compra-id", "c1"]) == 0
        data = json.loads(capsys.readouterr().out)
        assert len(data["retenciones"]) == 2
        assert data["retenciones"][0]["compra_id"] == "c1"

    def test_importar_inexistente(self, tmp_path, capsys):
        assert main(["importar", str(tmp_path / "nada.xml")]) == 2
        assert "No se pudo leer" in capsys.readouterr().err
