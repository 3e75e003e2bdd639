"""HTTP GET with timeout, retry/backoff, and per-source circuit breaking."""

from __future__ import annotations

import asyncio
import logging
import random
from dataclasses import dataclass
from typing import Awaitable, Callable, Mapping, Protocol

import requests

from config.settings import (
    DEFAULT_ACCEPT,
    DEFAULT_INITIAL_DELAY_MS,
    DEFAULT_RETRIES,
    DEFAULT_TIMEOUT_MS,
    DEFAULT_USER_AGENT,
)
from engine.circuit_breaker import CircuitBreaker

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class HttpResponse:
    status: int
    text: str
    url: str
    content: bytes = b""

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300


@dataclass(frozen=True)
class RetryPolicy:
    retries: int = DEFAULT_RETRIES
    initial_delay_ms: int = DEFAULT_INITIAL_DELAY_MS
    timeout_ms: int = DEFAULT_TIMEOUT_MS


class HttpClient(Protocol):
    async def get(self, url: str, *, headers: Mapping[str, str] | None = None, timeout: float | None = None) -> HttpResponse:
        raise NotImplementedError


class SourceUnavailable(Exception):
    """The catalog cannot be reached right now; callers treat this as "no result"."""

    def __init__(self, source: str, message: str) -> None:
        super().__init__(message)
        self.source = source


class CircuitOpenError(SourceUnavailable):
    def __init__(self, source: str, retry_after: float) -> None:
        super().__init__(source, f"circuit open for {source} (retry in {retry_after:.1f}s)")
        self.retry_after = retry_after


class FetchExhausted(SourceUnavailable):
    def __init__(self, source: str, url: str, last_error: BaseException | None, attempts: int) -> None:
        super().__init__(source, f"failed to fetch {url} after {attempts} attempt(s): {last_error}")
        self.url = url
        self.last_error = last_error
        self.attempts = attempts


class HttpStatusError(Exception):
    def __init__(self, status: int, url: str) -> None:
        super().__init__(f"HTTP {status} for {url}")
        self.status = status
        self.url = url

    @property
    def retryable(self) -> bool:
        return not (400 <= self.status < 500)


class RequestsHttpClient:
    """Default fetch primitive: a shared ``requests.Session`` driven from a worker thread."""

    def __init__(self, *, session: requests.Session | None = None) -> None:
        self._session = session or requests.Session()

    async def get(self, url, *, headers=None, timeout=None):
        def _request():
            resp = self._session.get(url, headers=dict(headers or {}), timeout=timeout)
            return HttpResponse(
                status=int(resp.status_code),
                text=resp.text or "",
                url=str(resp.url or url),
                content=resp.content or b"",
            )

        return await asyncio.to_thread(_request)


def backoff_delay_ms(attempt: int, initial_delay_ms: float, *, rand: Callable[[], float] = random.random) -> float:
    """Delay after failed ``attempt`` (1-based): exponential, with multiplicative jitter in [0.5, 1.5)."""
    return initial_delay_ms * (2 ** (attempt - 1)) * (0.5 + rand())


def default_headers(user_agent: str | None = None) -> dict[str, str]:
    return {
        "Accept": DEFAULT_ACCEPT,
        "User-Agent": user_agent or DEFAULT_USER_AGENT,
    }


class ResilientFetcher:
    def __init__(
        self,
        source: str,
        *,
        http: HttpClient | None = None,
        breaker: CircuitBreaker | None = None,
        policy: RetryPolicy | None = None,
        headers: Mapping[str, str] | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        rand: Callable[[], float] = random.random,
    ) -> None:
        self.source = source
        self.http = http or RequestsHttpClient()
        self.breaker = breaker or CircuitBreaker(source)
        self.policy = policy or RetryPolicy()
        self.headers = dict(headers or default_headers())
        self._sleep = sleep
        self._rand = rand

    async def fetch(self, url: str, *, policy: RetryPolicy | None = None) -> HttpResponse:
        policy = policy or self.policy
        if self.breaker.is_open():
            retry_after = self.breaker.retry_after()
            logger.warning("[%s] circuit open, skipping url=%s retry_after=%.1fs", self.source.upper(), url, retry_after)
            raise CircuitOpenError(self.source, retry_after)

        timeout_s = policy.timeout_ms / 1000.0
        attempts = max(1, int(policy.retries))
        last_error: BaseException | None = None
        attempt = 0
        for attempt in range(1, attempts + 1):
            try:
                response = await asyncio.wait_for(
                    self.http.get(url, headers=self.headers, timeout=timeout_s),
                    timeout=timeout_s,
                )
            except asyncio.TimeoutError as exc:
                last_error = exc
                logger.info("[%s] attempt %s/%s timed out url=%s", self.source.upper(), attempt, attempts, url)
            except Exception as exc:
                last_error = exc
                logger.info("[%s] attempt %s/%s failed url=%s error=%s", self.source.upper(), attempt, attempts, url, exc)
            else:
                if response.ok:
                    self.breaker.record_success()
                    return response
                last_error = HttpStatusError(response.status, url)
                logger.info(
                    "[%s] attempt %s/%s status=%s url=%s",
                    self.source.upper(),
                    attempt,
                    attempts,
                    response.status,
                    url,
                )
                if not last_error.retryable:
                    break
            if attempt < attempts:
                delay_ms = backoff_delay_ms(attempt, policy.initial_delay_ms, rand=self._rand)
                logger.debug("[%s] retry attempt=%s delay=%.0fms", self.source.upper(), attempt, delay_ms)
                await self._sleep(delay_ms / 1000.0)

        self.breaker.record_failure()
        raise FetchExhausted(self.source, url, last_error, attempt)
