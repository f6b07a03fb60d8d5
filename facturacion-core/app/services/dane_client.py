# app/services/dane_client.py
"""
Consulta de municipios DIVIPOLA en datos.gov.co (DANE).

Se usa para completar los nombres de municipio y departamento de los
adquirientes a partir de sus códigos. Si el DANE no responde el registro se
guarda igual, sin nombres.
"""
import json
import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional
from urllib.parse import urlencode

import requests

from app.core.errors import UpstreamError, ValidationError

logger = logging.getLogger(__name__)

DANE_BASE_URL = "https://www.datos.gov.co/resource/gdxc-w37w.json"
DANE_TIMEOUT = 10

# (código de departamento, código de municipio, nombre de municipio, nombre de departamento)
LOCATION_FIELDS = (
    ("dep_codigo", "mun_codigo", "mun_nombre", "dep_nombre"),
    ("dep_codigo_domicilio_fiscal", "mun_codigo_domicilio_fiscal",
     "mun_nombre_domicilio_fiscal", "dep_nombre_domicilio_fiscal"),
)


@dataclass
class Municipality:
    codigo: str
    nombre: str
    dep_codigo: str
    dep_nombre: str


def divipola_code(dep_codigo: str, mun_codigo: str) -> str:
    """Departamento (2 dígitos) + municipio completado a 3 dígitos: ("05", "1") -> "05001"."""
    return dep_codigo.strip() + mun_codigo.strip().zfill(3)


class DaneClient:
    def __init__(self, base_url: str = DANE_BASE_URL, session: Optional[requests.Session] = None,
                 timeout: float = DANE_TIMEOUT):
        self.base_url = base_url or DANE_BASE_URL
        self.session = session or requests.Session()
        self.timeout = timeout

    def municipality(self, codigo_divipola: str) -> Municipality:
        if not codigo_divipola:
            raise ValidationError("código DIVIPOLA no puede estar vacío")

        url = f"{self.base_url}?{urlencode({'cod_mpio': codigo_divipola})}"
        logger.debug("Consultando DANE", extra={"codigo_divipola": codigo_divipola})
        try:
            response = self.session.request("GET", url, headers={"Accept": "application/json"},
                                            timeout=self.timeout)
        except requests.RequestException as e:
            raise UpstreamError(f"DANE API request failed: {e}") from e

        if response.status_code != 200:
            raise UpstreamError(f"DANE API returned status {response.status_code}")

        try:
            results = json.loads(response.content or b"null")
        except ValueError as e:
            raise UpstreamError(f"parse DANE API response: {e}") from e

        if not isinstance(results, list) or not results:
            raise UpstreamError(f"municipio con código DIVIPOLA {codigo_divipola} no encontrado en DANE")

        first = results[0] if isinstance(results[0], dict) else {}
        values = [first.get(k) or "" for k in ("cod_mpio", "nom_mpio", "cod_dpto", "dpto")]
        if not all(values):
            raise UpstreamError(f"respuesta de DANE API incompleta para código DIVIPOLA {codigo_divipola}")
        return Municipality(*values)

    def completar_nombres(self, data: Dict[str, Any]) -> Dict[str, Any]:
        """
        Completa in situ los nombres de municipio y departamento (ubicación y
        domicilio fiscal) cuando vienen ambos códigos. Los códigos no se tocan.
        """
        for dep_field, mun_field, mun_nombre, dep_nombre in LOCATION_FIELDS:
            dep, mun = data.get(dep_field), data.get(mun_field)
            if not dep or not mun:
                continue
            codigo = divipola_code(dep, mun)
            try:
                municipio = self.municipality(codigo)
            except (UpstreamError, ValidationError) as e:
                logger.warning("No se pudo obtener el municipio %s del DANE: %s", codigo, e.message)
                continue
            data[mun_nombre] = municipio.nombre
            data[dep_nombre] = municipio.dep_nombre
        return data

    def close(self) -> None:
        self.session.close()
