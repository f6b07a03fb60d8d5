"""
Tests del cliente DANE (DIVIPOLA) y del completado de nombres de municipio y
departamento al crear adquirientes.
"""
import pytest
import requests

from app.core.errors import UpstreamError, ValidationError
from app.services.dane_client import divipola_code

from fakes import DANE_URL

MEDELLIN = [{"cod_dpto": "05", "dpto": "ANTIOQUIA", "cod_mpio": "05001", "nom_mpio": "MEDELLÍN"}]


def _acquirer_payload(**overrides):
    data = {
        "ofe_identificacion": "860011153-6",
        "adq_identificacion": "900123456",
        "adq_razon_social": "Cliente SAS",
        "tdo_codigo": "31",
        "toj_codigo": "1",
        "pai_codigo": "CO",
        "dep_codigo": "05",
        "mun_codigo": "1",
        "adq_direccion": "CRA 1 # 2-3",
        "adq_correo": "facturas@cliente.co",
    }
    data.update(overrides)
    return data


@pytest.mark.unit
class TestDaneClient:

    def test_codigo_divipola(self):
        """Test: municipio completado a tres dígitos"""
        assert divipola_code("05", "1") == "05001"
        assert divipola_code(" 11 ", "001") == "11001"

    def test_municipio(self, dane_client, fake_session):
        """Test: consulta por cod_mpio"""
        fake_session.add("GET", "cod_mpio=05001", body=MEDELLIN)
        municipio = dane_client.municipality("05001")

        assert municipio.nombre == "MEDELLÍN"
        assert municipio.dep_nombre == "ANTIOQUIA"
        assert fake_session.calls_to(DANE_URL)[0].headers["Accept"] == "application/json"

    def test_codigo_vacio(self, dane_client):
        """Test: código vacío es error de validación"""
        with pytest.raises(ValidationError, match="código DIVIPOLA no puede estar vacío"):
            dane_client.municipality("")

    @pytest.mark.parametrize("status,body,error", [
        (500, b"", "DANE API returned status 500"),
        (200, b"{no-json", "parse DANE API response"),
        (200, [], "municipio con código DIVIPOLA 05001 no encontrado en DANE"),
        (200, [{"cod_mpio": "05001", "nom_mpio": "MEDELLÍN"}],
         "respuesta de DANE API incompleta para código DIVIPOLA 05001"),
    ])
    def test_respuestas_invalidas(self, dane_client, fake_session, status, body, error):
        """Test: errores del DANE como UpstreamError"""
        fake_session.add("GET", "cod_mpio=05001", status=status, body=body)
        with pytest.raises(UpstreamError) as exc:
            dane_client.municipality("05001")
        assert exc.value.message.startswith(error)

    def test_sin_conexion(self, dane_client, fake_session):
        """Test: error de red"""
        def fail(request):
            raise requests.ConnectionError("connection refused")

        fake_session.add("GET", "cod_mpio=05001", fail)
        with pytest.raises(UpstreamError, match="DANE API request failed"):
            dane_client.municipality("05001")

    def test_completar_nombres(self, dane_client, fake_session):
        """Test: completa ubicación y domicilio fiscal; sin códigos no consulta"""
        fake_session.add("GET", "cod_mpio=05001", body=MEDELLIN)
        data = {"dep_codigo": "05", "mun_codigo": "001",
                "dep_codigo_domicilio_fiscal": "05", "mun_codigo_domicilio_fiscal": "1"}

        dane_client.completar_nombres(data)

        assert data["mun_nombre"] == "MEDELLÍN"
        assert data["dep_nombre_domicilio_fiscal"] == "ANTIOQUIA"
        assert data["mun_codigo_domicilio_fiscal"] == "1"
        assert len(fake_session.calls_to(DANE_URL)) == 2

        assert dane_client.completar_nombres({"dep_codigo": "05"}) == {"dep_codigo": "05"}
        assert len(fake_session.calls_to(DANE_URL)) == 2

    def test_completar_sin_dane(self, dane_client):
        """Test: si el DANE falla los nombres quedan como venían"""
        data = {"dep_codigo": "05", "mun_codigo": "001", "mun_nombre": "Medellín"}
        dane_client.completar_nombres(data)
        assert data["mun_nombre"] == "Medellín"


@pytest.mark.integration
class TestAdquirientesConDane:

    def test_crear_completa_nombres(self, client, fake_session):
        """Test: al crear un adquiriente los nombres vienen del DANE"""
        fake_session.add("GET", "cod_mpio=05001", body=MEDELLIN)
        response = client.post("/api/v1/adquirientes", json=_acquirer_payload())

        assert response.status_code == 201
        data = response.json()
        assert data["mun_nombre"] == "MEDELLÍN"
        assert data["dep_nombre"] == "ANTIOQUIA"
        assert data["mun_codigo"] == "1"

    def test_crear_sin_dane(self, client):
        """Test: el adquiriente se crea aunque el DANE no responda"""
        response = client.post("/api/v1/adquirientes", json=_acquirer_payload(mun_nombre="MEDELLIN"))
        assert response.status_code == 201
        assert response.json()["mun_nombre"] == "MEDELLIN"
