# app/services/numrot/limiter.py
"""
Control de flujo hacia Numrot: semáforo de concurrencia y token bucket.

Ambos bloquean en esperas cortas para poder atender la cancelación
(`threading.Event`) y un timeout opcional sin hilos adicionales.
"""
from __future__ import annotations
import logging
import queue
import threading
import time
from typing import Any, Dict, List, Optional, Sequence, TypeVar

from app.services.numrot.http import CancelledError

logger = logging.getLogger(__name__)

MAX_CONCURRENT_LIMIT = 1000
DEFAULT_RATE_RPS = 100
DEFAULT_BATCH_SIZE = 50
_POLL_INTERVAL = 0.05

T = TypeVar("T")


def _check_cancel(cancel: Optional[threading.Event], deadline: Optional[float], what: str) -> None:
    if cancel is not None and cancel.is_set():
        raise CancelledError(f"{what}: context cancelled")
    if deadline is not None and time.monotonic() >= deadline:
        raise TimeoutError(f"{what}: deadline exceeded")


class ConcurrencyLimiter:
    """Semáforo contable que limita las peticiones simultáneas (1..1000)."""

    def __init__(self, max_concurrent: int):
        if max_concurrent <= 0 or max_concurrent > MAX_CONCURRENT_LIMIT:
            max_concurrent = MAX_CONCURRENT_LIMIT
        self.max_concurrent = max_concurrent
        self._semaphore = threading.BoundedSemaphore(max_concurrent)
        self._lock = threading.Lock()
        self._active = 0
        self._waiting = 0
        self._total_acquired = 0
        self._peak_active = 0

    def acquire(self, cancel: Optional[threading.Event] = None, timeout: Optional[float] = None) -> None:
        deadline = time.monotonic() + timeout if timeout is not None else None
        with self._lock:
            self._waiting += 1
        try:
            while not self._semaphore.acquire(timeout=_POLL_INTERVAL):
                _check_cancel(cancel, deadline, "acquire concurrency slot")
        finally:
            with self._lock:
                self._waiting -= 1

        with self._lock:
            self._active += 1
            self._total_acquired += 1
            if self._active > self._peak_active:
                self._peak_active = self._active

    def release(self) -> None:
        with self._lock:
            self._active -= 1
        self._semaphore.release()

    @property
    def peak_active(self) -> int:
        with self._lock:
            return self._peak_active

    def stats(self) -> Dict[str, Any]:
        with self._lock:
            return {
                "max_concurrent": self.max_concurrent,
                "active": self._active,
                "waiting": self._waiting,
                "total_acquired": self._total_acquired,
                "peak_active": self._peak_active,
                "available": self.max_concurrent - self._active,
            }


class RateLimiter:
    """
    Token bucket: capacidad = tasa = `rate` peticiones por segundo.

    El balde arranca lleno y un hilo recarga un token cada 1/rate segundos;
    si el balde está lleno el token se descarta (no hay ráfagas mayores a la
    capacidad).
    """

    def __init__(self, rate: int):
        if rate <= 0:
            rate = DEFAULT_RATE_RPS
        self.rate = rate
        self._bucket: "queue.Queue[None]" = queue.Queue(maxsize=rate)
        for _ in range(rate):
            self._bucket.put_nowait(None)
        self._stop = threading.Event()
        self._closed = False
        self._close_lock = threading.Lock()
        self._ticker = threading.Thread(target=self._refill, name="numrot-rate-limiter", daemon=True)
        self._ticker.start()

    def _refill(self) -> None:
        interval = 1.0 / self.rate
        while not self._stop.wait(interval):
            try:
                self._bucket.put_nowait(None)
            except queue.Full:
                pass

    def acquire(self, cancel: Optional[threading.Event] = None, timeout: Optional[float] = None) -> None:
        deadline = time.monotonic() + timeout if timeout is not None else None
        while True:
            try:
                self._bucket.get(timeout=_POLL_INTERVAL)
                return
            except queue.Empty:
                _check_cancel(cancel, deadline, "acquire rate limit token")

    def close(self) -> None:
        with self._close_lock:
            if self._closed:
                return
            self._closed = True
        self._stop.set()
        logger.debug("Rate limiter detenido")

    def stats(self) -> Dict[str, Any]:
        return {"rate": self.rate, "available": self._bucket.qsize(), "closed": self._closed}


def batch_splitter(documents: Sequence[T], batch_size: int) -> List[List[T]]:
    """Divide `documents` en lotes de `batch_size` (50 si no es positivo)."""
    if batch_size <= 0:
        batch_size = DEFAULT_BATCH_SIZE
    return [list(documents[i:i + batch_size]) for i in range(0, len(documents), batch_size)]
