# app/services/numrot/auth.py
from __future__ import annotations
import logging
import threading
from typing import Optional

import requests

from app.core.errors import AuthenticationError
from app.services.numrot.http import AuditSink, exchange
from app.services.numrot.token_cache import TokenCache

logger = logging.getLogger(__name__)


class AuthManager:
    """
    Obtiene y cachea el token bearer de Numrot.

    Un único refresco en vuelo: los hilos que encuentran el caché vencido
    esperan el lock de refresco y vuelven a consultar el caché antes de
    pedir un token nuevo.
    """

    def __init__(
        self,
        base_url: str,
        username: str,
        password: str,
        ttl: float,
        session: requests.Session,
        timeout: float = 30,
        cache: Optional[TokenCache] = None,
        audit: Optional[AuditSink] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.username = username
        self.password = password
        self.ttl = ttl
        self.timeout = timeout
        self._session = session
        self._audit = audit
        self._cache = cache or TokenCache()
        self._refresh_lock = threading.Lock()

    def get_token(self, correlation_id: str = "") -> str:
        token, fresh = self._cache.get()
        if fresh:
            return token

        with self._refresh_lock:
            token, fresh = self._cache.get()
            if fresh:
                return token

            url = f"{self.base_url}/v2/api/Token"
            logger.debug("Solicitando nuevo token a Numrot", extra={"url": url})
            resp = exchange(
                self._session, "POST", url,
                operation="token",
                headers={"Content-Type": "application/json"},
                json_body={"username": self.username, "password": self.password},
                timeout=self.timeout,
                audit=self._audit,
                correlation_id=correlation_id,
            )

            if resp.status_code != 200:
                logger.error("Autenticación con Numrot falló", extra={"status": resp.status_code})
                raise AuthenticationError(
                    f"authentication failed with status {resp.status_code}: {resp.text}"
                )

            token = resp.text.strip()
            if not token:
                raise AuthenticationError("empty token in response")

            self._cache.set(token, self.ttl)
            logger.info("Token Numrot obtenido; expira en %s segundos", self.ttl)
            return token

    def clear_token(self) -> None:
        self._cache.clear()
        logger.info("Caché de token Numrot invalidado")
