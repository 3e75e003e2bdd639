import asyncio
import logging
import time
from dataclasses import dataclass, field, replace

from config.settings import DEFAULT_RESOLUTION_DEADLINE_SECONDS, DEFAULT_SOURCE_PRIORITY
from engine.circuit_breaker import BreakerPolicy, BreakerRegistry
from engine.fetcher import RequestsHttpClient, RetryPolicy
from scores.sources import SCORES_TABLE, SOURCE_CONFIGS, ScoreSourceAdapter
from scores.types import MatchQuery, ResolutionOutcome, ResolutionState, ResolvedScore

logger = logging.getLogger(__name__)


@dataclass
class ResolutionReport:
    query: MatchQuery
    score: ResolvedScore | None = None
    outcomes: list = field(default_factory=list)

    @property
    def found(self):
        return self.score is not None

    def to_dict(self):
        return {
            "found": self.found,
            "score": self.score.to_dict() if self.score else None,
            "outcomes": [outcome.to_dict() for outcome in self.outcomes],
        }


def _section(config):
    if not isinstance(config, dict):
        return {}
    section = config.get("score_sources") or {}
    return section if isinstance(section, dict) else {}


def _deadline(section, default):
    value = section.get("deadline_seconds")
    if value is None:
        return default
    try:
        return float(value)
    except Exception:
        return default


def _priority(section):
    priority = section.get("priority")
    if not isinstance(priority, list) or not priority:
        return list(DEFAULT_SOURCE_PRIORITY)
    return [name for name in priority if name in SOURCE_CONFIGS]


def _apply_overrides(source_config, overrides):
    """Return ``source_config`` with the JSON per-source settings applied."""
    if not isinstance(overrides, dict) or not overrides:
        return source_config
    retry = source_config.retry_policy
    breaker = source_config.breaker_policy
    changes = {}
    if overrides.get("enabled") is not None:
        changes["enabled"] = bool(overrides["enabled"])
    if overrides.get("match_threshold") is not None:
        changes["match_threshold"] = float(overrides["match_threshold"])
    changes["retry_policy"] = RetryPolicy(
        retries=int(overrides.get("retries", retry.retries)),
        initial_delay_ms=float(overrides.get("initial_delay_ms", retry.initial_delay_ms)),
        timeout_ms=float(overrides.get("timeout_ms", retry.timeout_ms)),
    )
    changes["breaker_policy"] = BreakerPolicy(
        failure_threshold=int(overrides.get("failure_threshold", breaker.failure_threshold)),
        reset_seconds=float(overrides.get("reset_seconds", breaker.reset_seconds)),
    )
    return replace(source_config, **changes)


class ScoreProvenanceResolver:
    """Walks the catalogs in priority order and returns the first match."""

    def __init__(
        self,
        adapters,
        *,
        store=None,
        deadline_seconds=DEFAULT_RESOLUTION_DEADLINE_SECONDS,
        check_store_first=True,
        breakers=None,
        clock=time.monotonic,
    ):
        self.adapters = list(adapters)
        self.store = store
        self.deadline_seconds = deadline_seconds
        self.check_store_first = check_store_first
        self.breakers = breakers
        self._clock = clock

    async def resolve(self, title, composer):
        report = await self.resolve_with_report(title, composer)
        return report.score

    async def resolve_with_report(self, title, composer):
        query = MatchQuery.create(title, composer)
        report = ResolutionReport(query=query)

        if self.check_store_first and self.store is not None:
            stored = await self._lookup_any_source(query)
            if stored is not None:
                report.score = stored
                report.outcomes.append(
                    ResolutionOutcome(source=stored.source, state=ResolutionState.FOUND, reason="cache_hit", score=stored)
                )
                return report

        started = self._clock()
        for index, adapter in enumerate(self.adapters):
            remaining = None
            if self.deadline_seconds:
                remaining = self.deadline_seconds - (self._clock() - started)
                if remaining <= 0:
                    self._record_deadline(report, self.adapters[index:])
                    break
            try:
                outcome = await asyncio.wait_for(adapter.resolve_with_outcome(query.title, query.composer), remaining)
            except asyncio.TimeoutError:
                logger.warning(
                    "[SCORES] deadline of %.1fs reached during source=%s title=%s",
                    self.deadline_seconds,
                    adapter.name,
                    query.title,
                )
                self._record_deadline(report, self.adapters[index:])
                break
            except Exception:
                logger.exception("[SCORES] source=%s failed unexpectedly title=%s", adapter.name, query.title)
                outcome = ResolutionOutcome(
                    source=adapter.name, state=ResolutionState.SOURCE_UNAVAILABLE, reason="adapter_error"
                )
            report.outcomes.append(outcome)
            if outcome.score is not None:
                report.score = outcome.score
                logger.info(
                    "[SCORES] resolved title=%s composer=%s source=%s reason=%s",
                    query.title,
                    query.composer,
                    adapter.name,
                    outcome.reason,
                )
                return report

        logger.info("[SCORES] no score found title=%s composer=%s", query.title, query.composer)
        return report

    async def _lookup_any_source(self, query):
        try:
            row = await self.store.find_one(SCORES_TABLE, {"title": query.title, "composer": query.composer})
        except Exception:
            logger.exception("[SCORES] store lookup failed title=%s", query.title)
            return None
        if not row:
            return None
        return ResolvedScore.from_record(row)

    @staticmethod
    def _record_deadline(report, adapters):
        for adapter in adapters:
            report.outcomes.append(
                ResolutionOutcome(
                    source=adapter.name,
                    state=ResolutionState.SOURCE_UNAVAILABLE,
                    reason="deadline_exceeded",
                )
            )

    def breaker_snapshot(self):
        if self.breakers is not None:
            return self.breakers.snapshot()
        return {adapter.name: adapter.breaker.snapshot() for adapter in self.adapters}


def build_score_resolver(config=None, *, store=None, http=None, clock=time.monotonic):
    """Build the resolver from the ``score_sources`` config section."""
    section = _section(config)
    overrides = section.get("sources") or {}
    http = http or RequestsHttpClient()
    breakers = BreakerRegistry(clock=clock)
    user_agent = section.get("user_agent")

    adapters = []
    for name in _priority(section):
        source_config = _apply_overrides(SOURCE_CONFIGS[name], overrides.get(name))
        if not source_config.enabled:
            logger.info("[SCORES] source=%s disabled by config", name)
            continue
        if user_agent:
            source_config = replace(source_config, headers={**source_config.headers, "User-Agent": user_agent})
        adapters.append(
            ScoreSourceAdapter(
                source_config,
                store=store,
                http=http,
                breaker=breakers.get(name, source_config.breaker_policy),
            )
        )

    check_store_first = section.get("check_store_first")
    return ScoreProvenanceResolver(
        adapters,
        store=store,
        deadline_seconds=_deadline(section, DEFAULT_RESOLUTION_DEADLINE_SECONDS),
        check_store_first=True if check_store_first is None else bool(check_store_first),
        breakers=breakers,
        clock=clock,
    )
