"""Circuit breaker for the transcription provider.

  CLOSED    - requests go to the provider
  OPEN      - the provider failed repeatedly; requests fail fast
  HALF_OPEN - cooldown elapsed, the next request is let through as a probe

Async-safe via asyncio.Lock.
"""

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable
from enum import Enum
from typing import TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class CircuitState(str, Enum):
    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"


class CircuitBreakerOpen(Exception):
    """Raised when the circuit is open and calls are being rejected."""

    def __init__(self, name: str, retry_after: float):
        super().__init__(f"Circuit breaker '{name}' is OPEN, retry in {retry_after:.0f}s")
        self.breaker_name = name
        self.retry_after = retry_after


class CircuitBreaker:
    """Wraps calls to an external service and stops calling it while it is down."""

    def __init__(
        self,
        name: str,
        failure_threshold: int = 3,
        cooldown_seconds: float = 60,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.name = name
        self.failure_threshold = failure_threshold
        self.cooldown_seconds = cooldown_seconds

        self._clock = clock
        self._state = CircuitState.CLOSED
        self._failure_count = 0
        self._opened_at: float = 0.0
        self._lock = asyncio.Lock()

    @property
    def state(self) -> CircuitState:
        """Current circuit state (reads as HALF_OPEN once the cooldown has elapsed)."""
        if self._state == CircuitState.OPEN and self._remaining_cooldown() <= 0:
            return CircuitState.HALF_OPEN
        return self._state

    async def call(self, func: Callable[[], Awaitable[T]]) -> T:
        """Run ``func()`` through the breaker.

        Takes a factory rather than a coroutine so nothing is created when
        the call is rejected. Raises CircuitBreakerOpen while OPEN.
        """
        async with self._lock:
            current = self.state
            if current == CircuitState.OPEN:
                raise CircuitBreakerOpen(self.name, self._remaining_cooldown())
            if current == CircuitState.HALF_OPEN:
                logger.info("Circuit '%s' HALF_OPEN, sending probe request", self.name)

        try:
            result = await func()
        except Exception:
            await self._on_failure()
            raise

        await self._on_success()
        return result

    def snapshot(self) -> dict[str, object]:
        """State summary for the readiness endpoint."""
        return {
            "name": self.name,
            "state": self.state.value,
            "failures": self._failure_count,
        }

    def reset(self) -> None:
        self._state = CircuitState.CLOSED
        self._failure_count = 0
        self._opened_at = 0.0

    def _remaining_cooldown(self) -> float:
        return self.cooldown_seconds - (self._clock() - self._opened_at)

    async def _on_success(self) -> None:
        async with self._lock:
            if self._state != CircuitState.CLOSED:
                logger.info("Circuit '%s' recovered, CLOSED", self.name)
            self._state = CircuitState.CLOSED
            self._failure_count = 0

    async def _on_failure(self) -> None:
        async with self._lock:
            self._failure_count += 1
            was_probe = self.state == CircuitState.HALF_OPEN

            if was_probe or self._failure_count >= self.failure_threshold:
                self._state = CircuitState.OPEN
                self._opened_at = self._clock()
                logger.warning(
                    "Circuit '%s' OPEN after %d failures (cooldown %ds)",
                    self.name, self._failure_count, self.cooldown_seconds,
                )
