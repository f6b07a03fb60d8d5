# app/services/numrot/token_cache.py
from __future__ import annotations
import threading
import time
from typing import Callable, Optional, Tuple


class TokenCache:
    """
    Caché de un solo token bearer con expiración (TTL).

    No hay expiración en segundo plano: la vigencia se evalúa al leer.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self._lock = threading.Lock()
        self._token: str = ""
        self._expires_at: float = 0.0

    def get(self) -> Tuple[str, bool]:
        with self._lock:
            if not self._token or self._clock() >= self._expires_at:
                return "", False
            return self._token, True

    def set(self, token: str, ttl: float) -> None:
        with self._lock:
            self._token = token
            self._expires_at = self._clock() + ttl

    def clear(self) -> None:
        with self._lock:
            self._token = ""
            self._expires_at = 0.0

    def is_expired(self) -> bool:
        with self._lock:
            return not self._token or self._clock() >= self._expires_at

    @property
    def expires_at(self) -> Optional[float]:
        with self._lock:
            return self._expires_at if self._token else None
