import sys
from pathlib import Path

import pytest


# Ensure tests can import project packages regardless of how pytest is invoked.
ROOT = Path(__file__).resolve().parents[1]
ROOT_STR = str(ROOT)
if ROOT_STR not in sys.path:
    sys.path.insert(0, ROOT_STR)

from engine.fetcher import HttpResponse  # noqa: E402


class FakeHttpClient:
    """Serves canned responses per URL and counts every call.

    A route value may be a body string (status 200), an int status, an
    ``HttpResponse``, an exception instance to raise, or a list of those
    consumed in order (the last one repeats).
    """

    def __init__(self, routes=None, default=404):
        self.routes = dict(routes or {})
        self.default = default
        self.calls = []

    async def get(self, url, *, headers=None, timeout=None):
        self.calls.append(url)
        entry = self.routes.get(url, self.default)
        if isinstance(entry, list):
            entry = entry.pop(0) if len(entry) > 1 else entry[0]
        if isinstance(entry, BaseException):
            raise entry
        if isinstance(entry, HttpResponse):
            return entry
        if isinstance(entry, int):
            return HttpResponse(status=entry, text="", url=url)
        return HttpResponse(status=200, text=str(entry), url=url)


class MemoryScoreStore:
    """In-memory stand-in for the record store."""

    def __init__(self, rows=None):
        self.rows = list(rows or [])
        self.inserted = []
        self.fail_reads = False
        self.fail_writes = False

    async def find_one(self, table, filters):
        if self.fail_reads:
            raise RuntimeError("store offline")
        for row in self.rows:
            if all(row.get(key) == value for key, value in filters.items()):
                return dict(row)
        return None

    async def insert(self, table, record):
        if self.fail_writes:
            raise RuntimeError("store offline")
        row = dict(record)
        row.setdefault("id", f"row-{len(self.rows) + 1}")
        self.rows.append(row)
        self.inserted.append(row)
        return dict(row)


class FakeClock:
    def __init__(self, now=1000.0):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


async def no_sleep(_seconds):
    return None


@pytest.fixture
def fake_http():
    return FakeHttpClient


@pytest.fixture
def memory_store():
    return MemoryScoreStore()


@pytest.fixture
def fake_clock():
    return FakeClock()


@pytest.fixture
def make_adapter():
    """Build a source adapter whose fetcher never really sleeps between retries."""
    from engine.circuit_breaker import CircuitBreaker
    from engine.fetcher import ResilientFetcher
    from scores.sources.base import ScoreSourceAdapter

    def _make(config, http, *, store=None, breaker=None, clock=None):
        if breaker is None:
            kwargs = {"clock": clock} if clock is not None else {}
            breaker = CircuitBreaker(config.name, config.breaker_policy, **kwargs)
        fetcher = ResilientFetcher(
            config.name,
            http=http,
            breaker=breaker,
            policy=config.retry_policy,
            sleep=no_sleep,
            rand=lambda: 0.5,
        )
        return ScoreSourceAdapter(config, store=store, fetcher=fetcher)

    return _make
