# app/core/security.py
"""
Validación de los JWT con que los clientes llaman a la API.

Los tokens los emite un proveedor de identidad externo (JWT_ISSUER_URI) y se
verifican con sus llaves públicas (JWT_JWK_SET_URI). Con AUTH_ENABLED=false
no se valida nada.
"""
import json
import threading
import time
from typing import Any, Dict, List, Optional

import requests
from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt

from app.core.config import Settings, settings
from app.core.errors import ConfigurationError, UnauthorizedError
from app.utils.logger import logger

ALLOWED_ALGORITHMS = ["RS256", "RS384", "RS512", "PS256", "ES256"]
JWKS_TIMEOUT = 10

MSG_MISSING_CREDENTIALS = "Credenciales de acceso no válidas"
MSG_INVALID_TOKEN = "Token inválido o expirado"

bearer_scheme = HTTPBearer(auto_error=False)


def bypass_paths(value) -> List[str]:
    """AUTH_BYPASS_PATHS admite lista JSON o texto separado por comas."""
    if not value:
        return []
    if isinstance(value, str):
        value = value.split(",")
    return [p.strip() for p in value if p and p.strip()]


class JwksCache:
    """Llaves públicas del emisor, recargadas cada ttl segundos."""

    def __init__(self, url: str, ttl: float = 21600, session: Optional[requests.Session] = None):
        self.url = url
        self.ttl = ttl
        self.session = session or requests.Session()
        self._keys: Optional[Dict[str, Any]] = None
        self._loaded_at = 0.0
        self._lock = threading.Lock()

    def get(self) -> Dict[str, Any]:
        with self._lock:
            if self._keys is None or time.monotonic() - self._loaded_at >= self.ttl:
                self._keys = self._fetch()
                self._loaded_at = time.monotonic()
            return self._keys

    def _fetch(self) -> Dict[str, Any]:
        try:
            response = self.session.request("GET", self.url, timeout=JWKS_TIMEOUT)
        except requests.RequestException as e:
            raise UnauthorizedError(f"unable to load JWKS: {e}", errors=[MSG_INVALID_TOKEN]) from e
        if response.status_code != 200:
            raise UnauthorizedError(f"unable to load JWKS: status {response.status_code}",
                                    errors=[MSG_INVALID_TOKEN])
        try:
            keys = json.loads(response.content)
        except ValueError as e:
            raise UnauthorizedError(f"unable to load JWKS: {e}", errors=[MSG_INVALID_TOKEN]) from e
        logger.info("JWKS cargado", extra={"keys": len(keys.get("keys", []))})
        return keys


class TokenVerifier:
    def __init__(self, issuer: str, jwks: JwksCache, clock_skew: int = 120):
        self.issuer = issuer
        self.jwks = jwks
        self.clock_skew = clock_skew

    @classmethod
    def from_settings(cls, config: Settings) -> "TokenVerifier":
        if not config.jwt_issuer_uri:
            raise ConfigurationError("invalid config: JWT_ISSUER_URI is required when AUTH_ENABLED=true")
        if not config.jwt_jwk_set_uri:
            raise ConfigurationError("invalid config: JWT_JWK_SET_URI is required when AUTH_ENABLED=true")
        return cls(
            config.jwt_issuer_uri,
            JwksCache(config.jwt_jwk_set_uri, ttl=config.auth_jwks_cache_ttl),
            clock_skew=config.auth_clock_skew,
        )

    def verify(self, token: str) -> Dict[str, Any]:
        """Devuelve los claims del token o lanza UnauthorizedError."""
        try:
            return jwt.decode(
                token,
                self.jwks.get(),
                algorithms=ALLOWED_ALGORITHMS,
                issuer=self.issuer,
                options={"verify_aud": False, "leeway": self.clock_skew},
            )
        except JWTError as e:
            logger.warning("Validación de token fallida: %s", e)
            raise UnauthorizedError(str(e), errors=[MSG_INVALID_TOKEN]) from e


_verifier: Optional[TokenVerifier] = None
_verifier_lock = threading.Lock()


def get_token_verifier() -> Optional[TokenVerifier]:
    global _verifier
    if not settings.auth_enabled:
        return None
    with _verifier_lock:
        if _verifier is None:
            _verifier = TokenVerifier.from_settings(settings)
        return _verifier


def require_token(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    verifier: Optional[TokenVerifier] = Depends(get_token_verifier),
) -> Optional[Dict[str, Any]]:
    """Dependencia global de la API: exige un Bearer válido salvo en las rutas excluidas."""
    if verifier is None or request.url.path in bypass_paths(settings.auth_bypass_paths):
        return None
    if credentials is None or not credentials.credentials:
        raise UnauthorizedError("missing bearer token", errors=[MSG_MISSING_CREDENTIALS])

    claims = verifier.verify(credentials.credentials)
    request.state.token_claims = claims
    return claims
