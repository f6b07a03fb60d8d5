"""
Tests de integración de las consultas de documentos recibidos: por número,
por rango de fechas, enlaces de descarga, PDF desde searchestadosdian y
detalle por CUFE.
"""
import pytest

pytestmark = pytest.mark.integration


def received_entry(**overrides):
    data = {
        "ofe": "860011153", "proveedor": "900123456", "tipo": "01", "prefijo": "FE",
        "consecutivo": "101", "cufe": "cufe-101", "fecha": "2025-01-15", "hora": "10:30:00",
        "valor": "210000", "UrlPDF": "http://numrot.test/pdf/101", "UrlXML": "http://numrot.test/xml/101",
    }
    data.update(overrides)
    return data


def document_info(**overrides):
    data = {
        "DocumentTypeId": "01",
        "Emisor": {"Nombre": "Proveedor SAS", "NumeroDoc": "900123456"},
        "Estado": {"Estado": "ACTIVO", "Resultado": "EXITOSO"},
        "NumeroDocumento": {"FechaEmision": "2025-01-15", "Folio": "101", "Serie": "FE"},
        "Receptor": {"Nombre": "Positiva SAS", "NumeroDoc": "860011153", "TipoDoc": "31"},
        "UUID": "cufe-101",
        "Eventos": [],
    }
    data.update(overrides)
    return data


class TestConsultaPorNumero:

    def test_consulta(self, client, fake_session):
        """Test: documento recibido por número"""
        fake_session.add("POST", "/api/Radian/GetDocumentByNumber", body={"Code": 200, "Data": [
            {"EmisorNit": "900123456", "NumeroFactura": "FE101", "CUFE": "cufe-101",
             "FechaEmision": "2025-01-15", "TotalFactura": 1000},
        ]})
        response = client.post("/api/v1/documentos/consulta/numero", json={
            "CompanyNit": "860011153", "DocumentNumber": "FE101", "SupplierNit": "900123456",
        })

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "200"
        assert data["total"] == 1
        assert data["data"][0]["cufe"] == "cufe-101"

    def test_proveedor_requerido(self, client):
        """Test: SupplierNit vacío es error de validación"""
        response = client.post("/api/v1/documentos/consulta/numero", json={
            "CompanyNit": "860011153", "DocumentNumber": "FE101",
        })
        assert response.status_code == 400
        assert response.json()["errors"] == ["supplier nit is required"]


class TestRecibidos:

    QUERY = {"CompanyNit": "860011153", "InitialDate": "2025-01-01", "FinalDate": "2025-01-31"}

    def test_listado(self, client, fake_session):
        """Test: documentos recibidos con enlaces"""
        fake_session.add("POST", "/api/Radian/DocumentsReceived", body={"Data": [received_entry()]})
        response = client.post("/api/v1/documentos/recibidos", json=self.QUERY)

        assert response.status_code == 200
        data = response.json()
        assert data["total"] == 1
        assert data["data"][0]["urlXML"] == "http://numrot.test/xml/101"

    def test_descarga_del_primero(self, client, fake_session):
        """Test: download=1 devuelve los enlaces del primer documento"""
        fake_session.add("POST", "/api/Radian/DocumentsReceived", body={"Data": [received_entry()]})
        response = client.post("/api/v1/documentos/recibidos?download=1", json=self.QUERY)

        assert response.status_code == 200
        assert response.json() == {
            "mensaje": "Exitoso", "status": 200, "cufe": "cufe-101",
            "urlPDF": "http://numrot.test/pdf/101", "urlXML": "http://numrot.test/xml/101",
        }

    def test_descarga_sin_documentos(self, client, fake_session):
        """Test: download=1 sin documentos"""
        fake_session.add("POST", "/api/Radian/DocumentsReceived", status=204)
        response = client.post("/api/v1/documentos/recibidos?download=1", json=self.QUERY)
        assert response.status_code == 400
        assert response.json()["errors"] == ["No hay documentos para descargar"]


class TestDescargaPorCufe:

    def test_encontrado(self, client, fake_session):
        """Test: el CUFE se busca entre los recibidos de la fecha"""
        fake_session.add("POST", "/api/Radian/DocumentsReceived", body={"Data": [
            received_entry(cufe="otro"), received_entry(),
        ]})
        response = client.get("/api/v1/documentos/descarga",
                              params={"cufe": "cufe-101", "nit": "860011153", "fecha": "2025-01-15"})

        assert response.status_code == 200
        assert response.json()["urlPDF"] == "http://numrot.test/pdf/101"
        body = fake_session.calls_to("DocumentsReceived")[0].json
        assert body["InitialDate"] == body["FinalDate"] == "2025-01-15"

    def test_por_post(self, client, fake_session):
        """Test: POST con {"id": cufe}"""
        fake_session.add("POST", "/api/Radian/DocumentsReceived", body={"Data": [received_entry()]})
        response = client.post("/api/v1/documentos/descarga?nit=860011153&fecha=2025-01-15",
                               json={"id": "cufe-101"})
        assert response.status_code == 200
        assert response.json()["cufe"] == "cufe-101"

    def test_no_encontrado(self, client, fake_session):
        """Test: CUFE ausente devuelve 404 sin enlaces"""
        fake_session.add("POST", "/api/Radian/DocumentsReceived", body={"Data": [received_entry()]})
        response = client.get("/api/v1/documentos/descarga",
                              params={"cufe": "cufe-x", "nit": "860011153", "fecha": "2025-01-15"})
        assert response.status_code == 404
        assert response.json() == {"mensaje": "Error en la peticion", "status": 404,
                                   "urlPDF": None, "urlXML": None}

    def test_sin_fecha(self, client):
        """Test: sin fecha la consulta de recibidos no es posible"""
        response = client.get("/api/v1/documentos/descarga", params={"cufe": "cufe-101", "nit": "860011153"})
        assert response.status_code == 404

    def test_error_del_proveedor(self, client, fake_session):
        """Test: fallo de DocumentsReceived es 502"""
        fake_session.add("POST", "/api/Radian/DocumentsReceived", status=500, body="caído")
        response = client.get("/api/v1/documentos/descarga",
                              params={"cufe": "cufe-101", "nit": "860011153", "fecha": "2025-01-15"})
        assert response.status_code == 502
        assert response.json()["status"] == 502

    def test_cufe_requerido(self, client):
        """Test: sin cufe ni id"""
        response = client.get("/api/v1/documentos/descarga")
        assert response.status_code == 400
        assert response.json()["errors"] == ["id (cufe) es requerido"]


class TestPdfNumrot:

    FORM = {"ofe_identificacion": "860011153", "prefijo": "SETT", "consecutivo": "56046"}

    def test_pdf_en_base64(self, client, fake_session):
        """Test: el PDF de searchestadosdian se devuelve en data.pdf"""
        fake_session.add("GET", "/api/searchestadosdian/860011153/SETT56046", body={
            "Uuid": "cufe-1", "StatusCode": "200", "Document": "JVBERi0=",
        })
        response = client.post("/api/v1/documentos/pdf", data=self.FORM)

        assert response.status_code == 200
        assert response.json() == {"data": {"pdf": "JVBERi0="}}

    @pytest.mark.parametrize("campo", ["ofe_identificacion", "prefijo", "consecutivo"])
    def test_campos_requeridos(self, client, campo):
        """Test: los tres campos del formulario son obligatorios"""
        form = dict(self.FORM, **{campo: ""})
        response = client.post("/api/v1/documentos/pdf", data=form)
        assert response.status_code == 400
        assert response.json()["errors"] == [f"{campo} es requerido"]

    def test_documento_inexistente(self, client, fake_session):
        """Test: 404 de Numrot"""
        fake_session.add("GET", "/api/searchestadosdian/", status=404)
        response = client.post("/api/v1/documentos/pdf", data=self.FORM)
        assert response.status_code == 404
        assert response.json() == {"message": "Documento No Encontrado",
                                   "errors": ["No se encontró el documento en Numrot"]}

    def test_sin_pdf(self, client, fake_session):
        """Test: respuesta sin Document"""
        fake_session.add("GET", "/api/searchestadosdian/", body={"Uuid": "cufe-1", "StatusCode": "200"})
        response = client.post("/api/v1/documentos/pdf", data=self.FORM)
        assert response.status_code == 404
        assert response.json()["message"] == "PDF No Encontrado"

    def test_error_del_proveedor(self, client, fake_session):
        """Test: estado inesperado se oculta tras un mensaje genérico"""
        fake_session.add("GET", "/api/searchestadosdian/", status=500, body="caído")
        response = client.post("/api/v1/documentos/pdf", data=self.FORM)
        assert response.status_code == 502
        assert response.json()["errors"] == ["Error al consultar documento en Numrot"]


class TestDetalleDocumento:

    def test_info_por_cufe(self, client, fake_session):
        """Test: DocumentInfo con la estructura de Numrot"""
        fake_session.add("GET", "/api/DocumentInfo/860011153/cufe-101", body={
            "StatusCode": "200", "StatusDescription": "OK", "DocumentInfo": [document_info()],
        })
        response = client.get("/api/v1/documentos/info/860011153/cufe-101")

        assert response.status_code == 200
        data = response.json()
        assert data["StatusCode"] == "200"
        assert data["DocumentInfo"][0]["NumeroDocumento"]["Serie"] == "FE"

    def test_info_no_encontrada(self, client, fake_session):
        """Test: 404 de DocumentInfo"""
        fake_session.add("GET", "/api/DocumentInfo/", status=404)
        response = client.get("/api/v1/documentos/info/860011153/cufe-x")
        assert response.status_code == 404

    def test_estados_dian(self, client, fake_session):
        """Test: searchestadosdian en formato plano"""
        fake_session.add("GET", "/api/searchestadosdian/860011153/SETT1", body={
            "Uuid": "cufe-1", "StatusCode": "200", "StatusMessage": "Procesado",
        })
        response = client.get("/api/v1/documentos/estados/860011153/SETT1")

        assert response.status_code == 200
        data = response.json()
        assert data["Uuid"] == "cufe-1"
        assert "DocumentInfo" not in data
