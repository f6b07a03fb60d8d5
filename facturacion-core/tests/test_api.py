"""
Tests de integración de la API: documentos, eventos Radian, resoluciones,
adquirientes, health check y formato de los errores.
"""
import pytest

from app.core.config import Settings, settings
from app.utils.cors import resolve_origins

from fakes import FakeResponse, echo_send_dian, numrot_ok

pytestmark = pytest.mark.integration


def _acquirer_payload(**overrides):
    data = {
        "ofe_identificacion": "860011153-6",
        "adq_identificacion": "900123456",
        "adq_razon_social": "Cliente SAS",
        "tdo_codigo": "31",
        "toj_codigo": "1",
        "pai_codigo": "CO",
        "dep_codigo": "05",
        "dep_nombre": "ANTIOQUIA",
        "mun_codigo": "001",
        "mun_nombre": "MEDELLÍN",
        "adq_direccion": "CRA 1 # 2-3",
        "adq_telefono": "6041234567",
        "adq_correo": "facturas@cliente.co",
        "contactos": [{
            "con_nombre": "Ana",
            "con_telefono": "3001234567",
            "con_correo": "conta@cliente.co",
            "con_tipo": "AccountingContact",
        }],
    }
    data.update(overrides)
    return data


def _event_payload(**overrides):
    data = {
        "EventType": "ACUSE",
        "DocumentoNumeroCompleto": "SETT5604",
        "NombreGenerador": "Ana",
        "ApellidoGenerador": "Pérez",
        "IdentificacionGenerador": "1020304050",
        "FechaGeneracionEvento": "2025-01-15 10:30:00",
    }
    data.update(overrides)
    return data


@pytest.fixture
def emisor(monkeypatch):
    monkeypatch.setattr(settings, "numrot_emisor_nit", "860011153")
    monkeypatch.setattr(settings, "numrot_razon_social", "Positiva SAS")


class TestGeneral:

    def test_raiz(self, client):
        """Test: endpoint raíz de la v1"""
        response = client.get("/api/v1/")
        assert response.status_code == 200
        assert response.json() == {"message": "Bienvenido a la API v1 de Facturación Core"}

    def test_health(self, client):
        """Test: health expone los limitadores del cliente Numrot"""
        response = client.get("/api/v1/health")
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["numrot"]["concurrency"]["max_concurrent"] == 5

    def test_ruta_inexistente(self, client):
        """Test: 404 con el formato de error de la API"""
        response = client.get("/api/v1/no-existe")
        assert response.status_code == 404
        assert response.json() == {"message": "No Encontrado", "errors": ["Not Found"]}

    def test_openapi(self, client):
        """Test: el esquema OpenAPI se genera"""
        assert client.get("/openapi.json").status_code == 200


class TestCors:

    def test_preflight_fuera_de_produccion(self, client):
        """Test: sin orígenes configurados se acepta cualquiera, sin credenciales"""
        response = client.options("/api/v1/health", headers={
            "Origin": "https://consola.example.co",
            "Access-Control-Request-Method": "GET",
        })
        assert response.status_code == 200
        assert response.headers["access-control-allow-origin"] == "*"
        assert "access-control-allow-credentials" not in response.headers

    @pytest.mark.parametrize("environment,origins,expected", [
        ("development", "", ["*"]),
        ("test", "https://a.co/, https://b.co", ["https://a.co", "https://b.co"]),
        ("production", "https://a.co,*", ["https://a.co"]),
        ("production", "", []),
        ("production", ["https://a.co"], ["https://a.co"]),
    ])
    def test_origenes_por_ambiente(self, environment, origins, expected):
        """Test: en producción nunca se permite el comodín"""
        config = Settings(environment=environment, backend_cors_origins=origins)
        assert resolve_origins(config) == expected


class TestDocumentos:

    def test_registro_exitoso(self, client, fake_session, make_document):
        """Test: FC de un adquiriente registrado es aceptada"""
        assert client.post("/api/v1/adquirientes", json=_acquirer_payload()).status_code == 201
        fake_session.add("POST", "/api/SendDIAN/Json/Pdf", body=numrot_ok("SETT5604", Document="PFhNTD4="))

        response = client.post("/api/v1/documentos", json={"documentos": {"FC": [make_document().model_dump()]}})

        assert response.status_code == 200
        data = response.json()
        assert data["message"] == "Documentos procesados exitosamente"
        assert data["documentos_fallidos"] == []
        procesado = data["documentos_procesados"][0]
        assert procesado["rfa_prefijo"] == "SETT"
        assert procesado["cdo_consecutivo"] == "5604"
        assert procesado["xml_base64"] == "PFhNTD4="

        payload = fake_session.calls_to("/api/SendDIAN/Json/Pdf")[0].json
        customer = payload["AccountingCustomerParty"]
        assert customer["Name"] == "Cliente SAS"
        assert customer["schemeName"] == "31"
        assert customer["Contact"]["Name"] == "Ana"

    def test_adquiriente_no_registrado(self, client, fake_session, make_document):
        """Test: documento sin adquiriente queda en fallidos"""
        fake_session.add("POST", "/api/SendDIAN/Json/Pdf", echo_send_dian)
        response = client.post("/api/v1/documentos", json={"documentos": {"FC": [make_document().model_dump()]}})

        assert response.status_code == 200
        data = response.json()
        assert data["message"] == "Todos los documentos fallaron la validación"
        assert "no encontrado" in data["documentos_fallidos"][0]["errors"][0]

    def test_error_de_validacion(self, client, make_document):
        """Test: 400 con el mensaje del documento inválido"""
        doc = make_document(cdo_consecutivo="").model_dump()
        response = client.post("/api/v1/documentos", json={"documentos": {"FC": [doc]}})

        assert response.status_code == 400
        assert response.json() == {
            "message": "Error de Validación",
            "errors": ["document 1: cdo_consecutivo is required"],
        }

    def test_cuerpo_malformado(self, client):
        """Test: errores de esquema se responden como 400"""
        response = client.post("/api/v1/documentos", json={"documentos": {"FC": "no-es-lista"}})
        assert response.status_code == 400
        data = response.json()
        assert data["message"] == "Error de Validación"
        assert data["errors"][0].startswith("documentos.FC")

    def test_consulta(self, client, fake_session):
        """Test: consulta de documentos emitidos"""
        fake_session.add("POST", "/api/Radian/GetInfoDocument", body={"Code": 200, "Data": [
            {"EmisorNit": "860011153", "EmisorNombre": "Positiva", "TipoFactura": "01",
             "NumeroFactura": "SETT5604", "CUFE": "cufe-1", "FechaEmision": "2025-01-15",
             "HoraEmision": "10:30:00", "TotalFactura": 210000},
        ]})
        response = client.post("/api/v1/documentos/consulta", json={
            "CompanyNit": "860011153", "InitialDate": "2025-01-01", "FinalDate": "2025-01-31",
        })

        assert response.status_code == 200
        data = response.json()
        assert data["total"] == 1
        assert data["data"][0]["cufe"] == "cufe-1"

    def test_consulta_invalida(self, client):
        """Test: rango de fechas invertido"""
        response = client.post("/api/v1/documentos/consulta", json={
            "CompanyNit": "860011153", "InitialDate": "2025-02-01", "FinalDate": "2025-01-01",
        })
        assert response.status_code == 400
        assert response.json()["errors"] == ["initial date must be before or equal to final date"]


class TestEventos:

    @pytest.mark.parametrize("overrides,error", [
        ({"EventType": ""}, "EventType es requerido"),
        ({"DocumentoNumeroCompleto": ""}, "DocumentoNumeroCompleto es requerido"),
        ({"EventType": "OTRO"}, "EventType inválido. Debe ser uno de: ACUSE, RECIBOBIEN, ACEPTACION, RECLAMO"),
        ({"FechaGeneracionEvento": "2025-01-15"}, "FechaGeneracionEvento debe tener el formato YYYY-MM-DD HH:MM:SS"),
        ({"EventType": "RECLAMO", "CodigoRechazo": "09"}, "CodigoRechazo inválido. Debe ser uno de: 01, 02, 03, 04"),
        ({"EventType": "RECLAMO"}, "rejection code is required for RECLAMO events"),
    ])
    def test_validaciones(self, client, emisor, overrides, error):
        """Test: mensajes de validación del evento"""
        response = client.post("/api/v1/eventos", json=_event_payload(**overrides))
        assert response.status_code == 400
        assert response.json()["errors"] == [error]

    def test_registro_exitoso(self, client, emisor, fake_session):
        """Test: evento registrado en Numrot"""
        fake_session.add("POST", "/api/Radian/SetEvent", body={
            "Codigo": "200", "NumeroDocumento": "SETT5604",
            "Resultado": [{"TipoEvento": "030", "Mensaje": "OK", "MensajeError": "", "CodigoRespuesta": "00"}],
        })
        response = client.post("/api/v1/eventos", json=_event_payload())

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "200"
        assert data["message"] == "Exitoso"
        assert data["data"]["Resultado"][0]["TipoEvento"] == "030"
        body = fake_session.calls_to("/api/Radian/SetEvent")[0].json
        assert body["EmisorNit"] == "860011153"
        assert body["RazonSocial"] == "Positiva SAS"

    def test_generador_por_defecto(self, client, emisor, fake_session, monkeypatch):
        """Test: datos del generador tomados de la configuración"""
        monkeypatch.setattr(settings, "numrot_generator_nombre", "Sistema")
        monkeypatch.setattr(settings, "numrot_generator_apellido", "Facturación")
        monkeypatch.setattr(settings, "numrot_generator_identificacion", "860011153")
        fake_session.add("POST", "/api/Radian/SetEvent", body={"Codigo": "200", "NumeroDocumento": "SETT5604"})

        payload = _event_payload(NombreGenerador="", ApellidoGenerador="", IdentificacionGenerador="")
        response = client.post("/api/v1/eventos", json=payload)

        assert response.status_code == 200
        body = fake_session.calls_to("/api/Radian/SetEvent")[0].json
        assert body["NombreGenerador"] == "Sistema"
        assert body["IdentificacionGenerador"] == "860011153"

    def test_emisor_sin_configurar(self, client, monkeypatch):
        """Test: sin NIT del emisor responde 500 genérico"""
        monkeypatch.setattr(settings, "numrot_emisor_nit", "")
        response = client.post("/api/v1/eventos", json=_event_payload())
        assert response.status_code == 500
        assert response.json() == {
            "message": "Error de Configuración",
            "errors": ["Error de configuración del servicio"],
        }

    def test_documento_no_encontrado(self, client, emisor, fake_session):
        """Test: 404 cuando Numrot no conoce el documento"""
        fake_session.add("POST", "/api/Radian/SetEvent", status=400, body={"error": "Documento no existe"})
        response = client.post("/api/v1/eventos", json=_event_payload())
        assert response.status_code == 404
        assert response.json()["message"] == "Documento No Encontrado"

    def test_proveedor_no_disponible(self, client, emisor, fake_session):
        """Test: error del proveedor se oculta tras un mensaje genérico"""
        fake_session.add("POST", "/api/Radian/SetEvent", status=503, body="down")
        response = client.post("/api/v1/eventos", json=_event_payload())
        assert response.status_code == 502
        assert response.json()["errors"] == ["Servicio del proveedor no disponible"]


class TestResoluciones:

    URL = "/api/v1/configuracion/lista-resoluciones-facturacion"

    def test_emisor_sin_configurar(self, client, monkeypatch):
        """Test: NUMROT_EMISOR_NIT vacío"""
        monkeypatch.setattr(settings, "numrot_emisor_nit", "")
        response = client.get(self.URL)
        assert response.status_code == 400
        assert response.json()["errors"] == ["El NIT del emisor no está configurado. Configure NUMROT_EMISOR_NIT"]

    def test_nit_invalido(self, client, monkeypatch):
        """Test: NIT con menos de 9 caracteres"""
        monkeypatch.setattr(settings, "numrot_emisor_nit", "12345")
        response = client.get(self.URL)
        assert response.status_code == 400
        assert response.json()["errors"] == ["Formato de NIT inválido"]

    def test_lista_resoluciones(self, client, emisor, fake_session):
        """Test: resoluciones vigentes del emisor"""
        fake_session.add("GET", "/api/Resoluciones/860011153", body={
            "OperationCode": "100",
            "NumberRangeResponse": [{
                "ResolutionNumber": "18760000001", "ResolutionDate": "2019-01-19", "Prefix": "SETT",
                "FromNumber": 1, "ToNumber": 5000000, "ValidDateFrom": "2019-01-19", "ValidDateTo": "2030-01-19",
            }],
        })
        response = client.get(self.URL)

        assert response.status_code == 200
        resolution = response.json()["resolutions"][0]
        assert resolution["resolutionNumber"] == "18760000001"
        assert resolution["prefix"] == "SETT"
        assert resolution["toNumber"] == 5000000

    def test_error_de_autenticacion(self, client, emisor, fake_session):
        """Test: token rechazado"""
        fake_session.add("GET", "/api/Resoluciones/", status=401)
        response = client.get(self.URL)
        assert response.status_code == 502
        assert response.json() == {
            "message": "Error de Autenticación",
            "errors": ["Error de autenticación con el proveedor"],
        }

    def test_error_de_operacion(self, client, emisor, fake_session):
        """Test: OperationCode de error se devuelve tal cual"""
        fake_session.add("GET", "/api/Resoluciones/", body={"OperationCode": "300", "OperationDescription": "NIT no existe"})
        response = client.get(self.URL)
        assert response.status_code == 502
        assert response.json()["errors"] == ["numrot API error: NIT no existe (code: 300)"]

    def test_respuesta_ilegible(self, client, emisor, fake_session):
        """Test: cuerpo que no es JSON"""
        fake_session.add("GET", "/api/Resoluciones/", body="<html>")
        response = client.get(self.URL)
        assert response.status_code == 502
        assert response.json()["errors"] == ["Error en el formato de respuesta del proveedor"]


class TestAdquirientes:

    def test_crear_normaliza_nits(self, client):
        """Test: los NITs se guardan sin DV"""
        response = client.post("/api/v1/adquirientes", json=_acquirer_payload())
        assert response.status_code == 201
        data = response.json()
        assert data["ofe_identificacion"] == "860011153"
        assert data["adq_identificacion"] == "900123456"
        assert data["contactos"][0]["con_tipo"] == "AccountingContact"

    def test_duplicado(self, client):
        """Test: 409 para el mismo OFE y adquiriente"""
        client.post("/api/v1/adquirientes", json=_acquirer_payload())
        response = client.post("/api/v1/adquirientes", json=_acquirer_payload(ofe_identificacion="860011153"))
        assert response.status_code == 409
        assert response.json()["message"] == "Conflicto"

    def test_id_personalizado_distingue(self, client):
        """Test: mismo NIT con id personalizado distinto es otro adquiriente"""
        client.post("/api/v1/adquirientes", json=_acquirer_payload())
        response = client.post("/api/v1/adquirientes", json=_acquirer_payload(adq_id_personalizado="SUC-2"))
        assert response.status_code == 201

        found = client.get("/api/v1/adquirientes/860011153/900123456", params={"adq_id_personalizado": "SUC-2"})
        assert found.status_code == 200
        assert found.json()["adq_id_personalizado"] == "SUC-2"

    def test_obtener(self, client):
        """Test: búsqueda por NIT con o sin DV"""
        client.post("/api/v1/adquirientes", json=_acquirer_payload())
        response = client.get("/api/v1/adquirientes/860011153-6/900123456")
        assert response.status_code == 200
        assert response.json()["adq_razon_social"] == "Cliente SAS"

    def test_no_encontrado(self, client):
        """Test: 404 con el formato de error"""
        response = client.get("/api/v1/adquirientes/860011153/111111111")
        assert response.status_code == 404
        assert response.json() == {"message": "No Encontrado", "errors": ["Adquiriente no encontrado"]}

    def test_listar_y_buscar(self, client):
        """Test: listado con filtro por razón social"""
        client.post("/api/v1/adquirientes", json=_acquirer_payload())
        client.post("/api/v1/adquirientes", json=_acquirer_payload(
            adq_identificacion="800185449", adq_razon_social="Otra Empresa", contactos=[],
        ))

        assert len(client.get("/api/v1/adquirientes").json()) == 2
        found = client.get("/api/v1/adquirientes", params={"buscar": "otra"}).json()
        assert [a["adq_identificacion"] for a in found] == ["800185449"]

    def test_actualizar_reemplaza_contactos(self, client):
        """Test: PUT reemplaza datos y contactos"""
        client.post("/api/v1/adquirientes", json=_acquirer_payload())
        update = _acquirer_payload(adq_razon_social="Cliente Renombrado", contactos=[{
            "con_nombre": "Luis", "con_tipo": "DeliveryContact",
        }])
        for key in ("ofe_identificacion", "adq_identificacion"):
            update.pop(key)

        response = client.put("/api/v1/adquirientes/860011153/900123456", json=update)

        assert response.status_code == 200
        data = response.json()
        assert data["adq_razon_social"] == "Cliente Renombrado"
        assert [c["con_nombre"] for c in data["contactos"]] == ["Luis"]

    def test_tipo_de_contacto_invalido(self, client):
        """Test: con_tipo fuera de la lista permitida"""
        payload = _acquirer_payload(contactos=[{"con_nombre": "Ana", "con_tipo": "Otro"}])
        response = client.post("/api/v1/adquirientes", json=payload)
        assert response.status_code == 400
        assert response.json()["message"] == "Error de Validación"

    def test_correo_invalido(self, client):
        """Test: adq_correo debe ser un correo"""
        response = client.post("/api/v1/adquirientes", json=_acquirer_payload(adq_correo="no-es-correo"))
        assert response.status_code == 400

    def test_digito_de_verificacion_invalido(self, client):
        """Test: un NIT con DV incorrecto se rechaza antes de guardarse"""
        response = client.post("/api/v1/adquirientes", json=_acquirer_payload(ofe_identificacion="860011153-1"))
        assert response.status_code == 400
        assert "ofe_identificacion tiene un dígito de verificación inválido: 860011153-1" in \
            response.json()["errors"][0]

        response = client.post("/api/v1/adquirientes", json=_acquirer_payload(adq_identificacion="800.185.449-9"))
        assert response.status_code == 201
        assert response.json()["adq_identificacion"] == "800185449"
