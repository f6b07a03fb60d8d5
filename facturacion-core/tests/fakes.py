"""
Dobles de prueba para la API de Numrot y datos de ejemplo.

FakeSession reemplaza a requests.Session dentro de NumrotClient: registra
cada petición y responde según las rutas configuradas en cada test.
"""
import json
import threading
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

from app.schemas.documento import OpenETLDocument

BASE_URL = "http://numrot.test"
DANE_URL = "http://dane.test/resource/gdxc-w37w.json"


@dataclass
class FakeRequest:
    method: str
    url: str
    json: Any
    headers: Dict[str, str] = field(default_factory=dict)


class FakeResponse:
    """Respuesta compatible con requests.Response (status_code, content, headers)."""

    def __init__(self, status_code: int = 200, body: Any = b"", headers: Optional[Dict[str, str]] = None):
        if isinstance(body, (dict, list)):
            body = json.dumps(body).encode("utf-8")
        elif isinstance(body, str):
            body = body.encode("utf-8")
        self.status_code = status_code
        self.content = body
        self.headers = headers or {}


class FakeSession:
    """
    Sustituto de requests.Session. Las rutas se buscan por método y fragmento
    de URL; la última registrada gana. Un handler recibe el FakeRequest y
    devuelve un FakeResponse o lanza una excepción de requests.
    """

    def __init__(self):
        self.routes: List[tuple] = []
        self.calls: List[FakeRequest] = []
        self.closed = False
        self._lock = threading.Lock()

    def add(self, method: str, fragment: str, handler: Optional[Callable[[FakeRequest], FakeResponse]] = None,
            *, status: int = 200, body: Any = b""):
        if handler is None:
            response = FakeResponse(status, body)

            def handler(request: FakeRequest) -> FakeResponse:
                return response
        self.routes.append((method, fragment, handler))

    def request(self, method, url, data=None, headers=None, timeout=None):
        payload = json.loads(data.decode("utf-8")) if data else None
        request = FakeRequest(method, url, payload, dict(headers or {}))
        with self._lock:
            self.calls.append(request)
        for route_method, fragment, handler in reversed(self.routes):
            if route_method == method and fragment in url:
                return handler(request)
        return FakeResponse(404, b"not found")

    def calls_to(self, fragment: str) -> List[FakeRequest]:
        with self._lock:
            return [c for c in self.calls if fragment in c.url]

    def close(self):
        self.closed = True


def numrot_ok(document_number: str, **extra) -> Dict[str, Any]:
    """Respuesta plana de un documento aceptado."""
    body = {"StatusCode": "200", "DocumentNumber": document_number, "TrackId": "", "Uuid": "cufe-" + document_number}
    body.update(extra)
    return body


def echo_send_dian(request: FakeRequest) -> FakeResponse:
    """Acepta cualquier documento devolviendo su mismo número."""
    return FakeResponse(200, numrot_ok(request.json["ID"]))


def build_document(prefijo: str = "SETT", consecutivo: str = "5604", **overrides) -> OpenETLDocument:
    data = {
        "tde_codigo": "01",
        "top_codigo": "10",
        "ofe_identificacion": "860011153-6",
        "adq_identificacion": "900123456",
        "rfa_prefijo": prefijo,
        "rfa_resolucion": "18760000001",
        "rfa_fecha_inicio": "2019-01-19",
        "rfa_fecha_fin": "2030-01-19",
        "rfa_numero_inicio": "1",
        "rfa_numero_fin": "5000000",
        "cdo_consecutivo": consecutivo,
        "cdo_fecha": "2025-01-15",
        "cdo_hora": "10:30:00",
        "mon_codigo": "COP",
        "cdo_valor_sin_impuestos": "176471.00",
        "cdo_impuestos": "33529.00",
        "cdo_total": "210000.00",
        "items": [{
            "ddo_secuencia": "1",
            "ddo_codigo": "SRV-01",
            "ddo_descripcion_uno": "Servicio de consultoría",
            "ddo_cantidad": "1",
            "und_codigo": "UN",
            "ddo_valor_unitario": "176471.00",
            "ddo_total": "176471.00",
        }],
        "tributos": [{
            "ddo_secuencia": "1",
            "tri_codigo": "01",
            "iid_valor": "33529.00",
            "iid_porcentaje": {"iid_base": "176471.00", "iid_porcentaje": "19.00"},
        }],
    }
    data.update(overrides)
    return OpenETLDocument(**data)
