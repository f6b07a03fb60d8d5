# app/services/numrot/circuit_breaker.py
from __future__ import annotations
import enum
import logging
import threading
import time
from typing import Any, Callable, Dict, TypeVar

from app.core.errors import CircuitBreakerOpenError

logger = logging.getLogger(__name__)

T = TypeVar("T")


class CircuitState(str, enum.Enum):
    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half-open"


class CircuitBreaker:
    """
    Circuit breaker de tres estados para las llamadas a Numrot.

    - CLOSED: las llamadas pasan. Abre al llegar a `max_failures` fallos o
      cuando fallos/total >= `failure_threshold`.
    - OPEN: falla de inmediato con CircuitBreakerOpenError hasta que pase
      `cooldown`; luego la siguiente llamada pasa a HALF_OPEN.
    - HALF_OPEN: un fallo reabre; `success_threshold` éxitos cierran y
      reinician contadores.

    Valores inválidos toman el valor por defecto: max_failures <= 0 -> 10,
    failure_threshold fuera de (0, 1] -> 0.5, cooldown <= 0 -> 30s y
    success_threshold <= 0 -> 3.

    `fn` se ejecuta fuera del lock; solo la contabilidad es exclusiva.
    """

    def __init__(
        self,
        max_failures: int = 10,
        failure_threshold: float = 0.5,
        cooldown: float = 30.0,
        success_threshold: int = 3,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.max_failures = max_failures if max_failures > 0 else 10
        self.failure_threshold = failure_threshold if 0 < failure_threshold <= 1 else 0.5
        self.cooldown = cooldown if cooldown > 0 else 30.0
        self.success_threshold = success_threshold if success_threshold > 0 else 3
        self._clock = clock
        self._lock = threading.Lock()
        self._state = CircuitState.CLOSED
        self._failure_count = 0
        self._success_count = 0
        self._total_requests = 0
        self._last_failure_time: float | None = None
        self._last_state_change = clock()

    @property
    def state(self) -> CircuitState:
        with self._lock:
            return self._state

    def _set_state(self, state: CircuitState) -> None:
        if state != self._state:
            logger.warning("Circuit breaker %s -> %s", self._state.value, state.value)
        self._state = state
        self._last_state_change = self._clock()

    def execute(self, fn: Callable[[], T]) -> T:
        with self._lock:
            if self._state == CircuitState.OPEN:
                if self._clock() - self._last_state_change < self.cooldown:
                    raise CircuitBreakerOpenError()
                self._set_state(CircuitState.HALF_OPEN)
                self._success_count = 0

        try:
            result = fn()
        except Exception:
            self._on_failure()
            raise
        self._on_success()
        return result

    def _on_failure(self) -> None:
        with self._lock:
            self._total_requests += 1
            self._failure_count += 1
            self._last_failure_time = self._clock()
            if self._state == CircuitState.HALF_OPEN:
                self._set_state(CircuitState.OPEN)
            elif self._state == CircuitState.CLOSED:
                rate = self._failure_count / self._total_requests
                if self._failure_count >= self.max_failures or rate >= self.failure_threshold:
                    self._set_state(CircuitState.OPEN)

    def _on_success(self) -> None:
        with self._lock:
            self._total_requests += 1
            self._success_count += 1
            if self._state == CircuitState.HALF_OPEN:
                if self._success_count >= self.success_threshold:
                    self._set_state(CircuitState.CLOSED)
                    self._failure_count = 0
                    self._success_count = 0
                    self._total_requests = 0
            elif self._state == CircuitState.CLOSED and self._success_count > self._failure_count:
                self._failure_count = 0

    def failure_rate(self) -> float:
        with self._lock:
            return self._failure_count / self._total_requests if self._total_requests else 0.0

    def stats(self) -> Dict[str, Any]:
        with self._lock:
            total = self._total_requests
            return {
                "state": self._state.value,
                "failure_count": self._failure_count,
                "success_count": self._success_count,
                "total_requests": total,
                "failure_rate": self._failure_count / total if total else 0.0,
            }

    def reset(self) -> None:
        with self._lock:
            self._set_state(CircuitState.CLOSED)
            self._failure_count = 0
            self._success_count = 0
            self._total_requests = 0
            self._last_failure_time = None
