"""Per-source circuit breakers for catalog scraping.

A breaker counts consecutive exhausted fetches for one catalog. It is open
while ``consecutive_failures >= failure_threshold`` and the last failure is
younger than ``reset_seconds``; once the window elapses it closes on its own,
without a probe. Any success resets the count immediately.
"""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from typing import Callable, Mapping

from config.settings import DEFAULT_BREAKER_FAILURE_THRESHOLD, DEFAULT_BREAKER_RESET_SECONDS

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BreakerPolicy:
    failure_threshold: int = DEFAULT_BREAKER_FAILURE_THRESHOLD
    reset_seconds: float = DEFAULT_BREAKER_RESET_SECONDS


class CircuitBreaker:
    def __init__(
        self,
        source: str,
        policy: BreakerPolicy | None = None,
        *,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.source = source
        self.policy = policy or BreakerPolicy()
        self._clock = clock
        self._lock = threading.Lock()
        self._consecutive_failures = 0
        self._last_failure_at: float | None = None

    @property
    def consecutive_failures(self) -> int:
        with self._lock:
            return self._consecutive_failures

    def _open_locked(self, now: float) -> bool:
        if self._consecutive_failures < self.policy.failure_threshold:
            return False
        if self._last_failure_at is None:
            return False
        return (now - self._last_failure_at) < self.policy.reset_seconds

    def is_open(self) -> bool:
        with self._lock:
            return self._open_locked(self._clock())

    def retry_after(self) -> float:
        """Seconds until the breaker closes by itself, ``0.0`` when closed."""
        with self._lock:
            now = self._clock()
            if not self._open_locked(now):
                return 0.0
            return max(0.0, self.policy.reset_seconds - (now - self._last_failure_at))

    def record_success(self) -> None:
        with self._lock:
            if self._consecutive_failures:
                logger.info("[BREAKER] source=%s reset after %s failures", self.source, self._consecutive_failures)
            self._consecutive_failures = 0
            self._last_failure_at = None

    def record_failure(self) -> None:
        with self._lock:
            self._consecutive_failures += 1
            self._last_failure_at = self._clock()
            failures = self._consecutive_failures
        if failures == self.policy.failure_threshold:
            logger.warning(
                "[BREAKER] source=%s opened failures=%s cooldown=%.0fs",
                self.source,
                failures,
                self.policy.reset_seconds,
            )

    def snapshot(self) -> dict:
        with self._lock:
            now = self._clock()
            is_open = self._open_locked(now)
            retry_after = 0.0
            if is_open:
                retry_after = max(0.0, self.policy.reset_seconds - (now - self._last_failure_at))
            return {
                "source": self.source,
                "consecutive_failures": self._consecutive_failures,
                "failure_threshold": self.policy.failure_threshold,
                "reset_seconds": self.policy.reset_seconds,
                "open": is_open,
                "retry_after_seconds": round(retry_after, 3),
            }


class BreakerRegistry:
    """Owns one breaker per source; built once at startup and injected into adapters."""

    def __init__(
        self,
        policies: Mapping[str, BreakerPolicy] | None = None,
        *,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._policies = dict(policies or {})
        self._clock = clock
        self._lock = threading.Lock()
        self._breakers: dict[str, CircuitBreaker] = {}

    def get(self, source: str, policy: BreakerPolicy | None = None) -> CircuitBreaker:
        with self._lock:
            breaker = self._breakers.get(source)
            if breaker is None:
                effective = policy or self._policies.get(source) or BreakerPolicy()
                breaker = CircuitBreaker(source, effective, clock=self._clock)
                self._breakers[source] = breaker
            return breaker

    def snapshot(self) -> dict[str, dict]:
        with self._lock:
            breakers = list(self._breakers.values())
        return {breaker.source: breaker.snapshot() for breaker in breakers}
