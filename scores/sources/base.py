"""Generic catalog adapter: search, parse, score, fetch notation, persist.

Every catalog is described by a :class:`SourceConfig` (URLs, selectors,
extractors, policies). :class:`ScoreSourceAdapter` runs the same pipeline
for all of them and never raises for upstream trouble: an unreachable
catalog, a changed page layout or a weak match all end in ``None``.
"""

from __future__ import annotations

import io
import logging
import zipfile
from dataclasses import dataclass, field
from typing import Any, Callable, Mapping, Protocol
from urllib.parse import quote, urljoin

from bs4 import BeautifulSoup

from config.settings import DEFAULT_MATCH_THRESHOLD
from engine.circuit_breaker import BreakerPolicy, CircuitBreaker
from engine.fetcher import (
    CircuitOpenError,
    HttpClient,
    HttpResponse,
    ResilientFetcher,
    RetryPolicy,
    SourceUnavailable,
    default_headers,
)
from engine.similarity import match_score, similarity
from scores.types import (
    CandidateRecord,
    MatchQuery,
    NotationLink,
    ResolutionOutcome,
    ResolutionState,
    ResolvedScore,
)

logger = logging.getLogger(__name__)

SCORES_TABLE = "scores"

ZIP_MAGIC = b"PK\x03\x04"
MXL_CONTAINER = "META-INF/container.xml"


class ScoreRecordStore(Protocol):
    async def find_one(self, table: str, filters: Mapping[str, Any]) -> dict[str, Any] | None:
        raise NotImplementedError

    async def insert(self, table: str, record: Mapping[str, Any]) -> dict[str, Any]:
        raise NotImplementedError


CandidateExtractor = Callable[[Any, str], CandidateRecord | None]
NotationExtractor = Callable[[CandidateRecord, BeautifulSoup | None], NotationLink | None]


@dataclass(frozen=True)
class SourceConfig:
    name: str
    base_url: str
    search_url: str
    card_selector: str
    extract_candidate: CandidateExtractor
    extract_notation: NotationExtractor | None = None
    fetch_detail_page: bool = False
    match_threshold: float = DEFAULT_MATCH_THRESHOLD
    retry_policy: RetryPolicy = field(default_factory=RetryPolicy)
    breaker_policy: BreakerPolicy = field(default_factory=BreakerPolicy)
    headers: Mapping[str, str] = field(default_factory=dict)
    composer_scorer: Callable[[str | None, str | None], float] = similarity
    enabled: bool = True

    @property
    def tag(self) -> str:
        return f"[{self.name.upper()}]"

    def build_search_url(self, title: str, composer: str) -> str:
        return self.search_url.format(query=quote(f"{title} {composer}", safe=""))


def text_of(node, selector: str) -> str | None:
    """Whitespace-collapsed text of the first match, ``None`` when missing or blank."""
    found = node.select_one(selector) if node is not None else None
    if found is None:
        return None
    text = " ".join(found.get_text(" ", strip=True).split())
    return text or None


def attr_of(node, selector: str | None, name: str) -> str | None:
    found = node if selector is None else (node.select_one(selector) if node is not None else None)
    if found is None:
        return None
    value = found.get(name)
    if isinstance(value, list):
        value = " ".join(value)
    value = str(value or "").strip()
    return value or None


def absolute_url(base_url: str, href: str | None) -> str | None:
    if not href:
        return None
    return urljoin(base_url, href)


def _mxl_rootfile(archive: zipfile.ZipFile) -> str | None:
    names = archive.namelist()
    if MXL_CONTAINER in names:
        container = BeautifulSoup(archive.read(MXL_CONTAINER), "html.parser")
        path = attr_of(container, "rootfile", "full-path")
        if path in names:
            return path
    for name in names:
        if not name.startswith("META-INF/") and name.lower().endswith((".xml", ".musicxml")):
            return name
    return None


def notation_text(response: HttpResponse) -> str | None:
    """MusicXML text of a notation download, unpacking compressed .mxl archives."""
    if not response.content.startswith(ZIP_MAGIC):
        return response.text or None
    with zipfile.ZipFile(io.BytesIO(response.content)) as archive:
        rootfile = _mxl_rootfile(archive)
        if rootfile is None:
            raise ValueError("mxl archive has no MusicXML rootfile")
        return archive.read(rootfile).decode("utf-8-sig")


def score_candidates(config: SourceConfig, candidates, query: MatchQuery) -> list[tuple[CandidateRecord, float]]:
    scored = []
    for candidate in candidates:
        value = match_score(
            candidate.title,
            candidate.composer,
            query.title,
            query.composer,
            composer_scorer=config.composer_scorer,
        )
        scored.append((candidate, value))
    return scored


def select_best(scored, threshold: float) -> tuple[CandidateRecord, float] | None:
    """Highest score strictly above ``threshold``; the first candidate wins ties."""
    best: tuple[CandidateRecord, float] | None = None
    for candidate, value in scored:
        if best is None or value > best[1]:
            best = (candidate, value)
    if best is None or not best[1] > threshold:
        return None
    return best


class ScoreSourceAdapter:
    def __init__(
        self,
        config: SourceConfig,
        *,
        store: ScoreRecordStore | None = None,
        fetcher: ResilientFetcher | None = None,
        http: HttpClient | None = None,
        breaker: CircuitBreaker | None = None,
    ) -> None:
        self.config = config
        self.store = store
        if fetcher is None:
            headers = default_headers()
            headers.update(config.headers)
            fetcher = ResilientFetcher(
                config.name,
                http=http,
                breaker=breaker or CircuitBreaker(config.name, config.breaker_policy),
                policy=config.retry_policy,
                headers=headers,
            )
        self.fetcher = fetcher

    @property
    def name(self) -> str:
        return self.config.name

    @property
    def breaker(self) -> CircuitBreaker:
        return self.fetcher.breaker

    async def resolve(self, title, composer) -> ResolvedScore | None:
        outcome = await self.resolve_with_outcome(title, composer)
        return outcome.score

    async def resolve_with_outcome(self, title, composer) -> ResolutionOutcome:
        query = MatchQuery.create(title, composer)
        tag = self.config.tag

        cached = await self._lookup_store(query)
        if cached is not None:
            logger.debug("%s cache hit title=%s composer=%s", tag, query.title, query.composer)
            return self._outcome(ResolutionState.FOUND, "cache_hit", cached)

        url = self.config.build_search_url(query.title, query.composer)
        logger.info("%s search url=%s", tag, url)
        try:
            response = await self.fetcher.fetch(url)
        except CircuitOpenError:
            return self._outcome(ResolutionState.SOURCE_UNAVAILABLE, "circuit_open")
        except SourceUnavailable as exc:
            logger.warning("%s unavailable: %s", tag, exc)
            return self._outcome(ResolutionState.SOURCE_UNAVAILABLE, "fetch_exhausted")

        if not response.text.strip():
            logger.warning("%s empty search response url=%s", tag, url)
            return self._outcome(ResolutionState.NOT_FOUND, "empty_response")

        soup = BeautifulSoup(response.text, "html.parser")
        cards = soup.select(self.config.card_selector)
        if not cards:
            logger.warning(
                "%s no result cards matched selector=%r url=%s; page structure may have changed",
                tag,
                self.config.card_selector,
                url,
            )
            return self._outcome(ResolutionState.NOT_FOUND, "structure_changed")

        candidates = self._parse_cards(cards)
        if not candidates:
            logger.info("%s no usable candidates in %s cards", tag, len(cards))
            return self._outcome(ResolutionState.NOT_FOUND, "no_candidates")

        best = select_best(score_candidates(self.config, candidates, query), self.config.match_threshold)
        if best is None:
            logger.info(
                "%s no candidate above threshold=%.2f title=%s composer=%s",
                tag,
                self.config.match_threshold,
                query.title,
                query.composer,
            )
            return self._outcome(ResolutionState.NOT_FOUND, "below_threshold")

        candidate, value = best
        logger.info("%s matched title=%s composer=%s score=%.3f", tag, candidate.title, candidate.composer, value)
        resolved = await self._build_resolved(query, candidate, value)
        return self._outcome(ResolutionState.FOUND, "matched", await self._persist(resolved))

    def _outcome(self, state, reason, score=None) -> ResolutionOutcome:
        return ResolutionOutcome(source=self.name, state=state, reason=reason, score=score)

    async def _lookup_store(self, query: MatchQuery) -> ResolvedScore | None:
        if self.store is None:
            return None
        try:
            row = await self.store.find_one(
                SCORES_TABLE,
                {"title": query.title, "composer": query.composer, "source": self.name},
            )
        except Exception:
            logger.exception("%s store lookup failed; continuing with search", self.config.tag)
            return None
        if not row:
            return None
        return ResolvedScore.from_record(row)

    def _parse_cards(self, cards) -> list[CandidateRecord]:
        candidates = []
        for index, card in enumerate(cards):
            try:
                candidate = self.config.extract_candidate(card, self.config.base_url)
            except Exception as exc:
                logger.debug("%s skipped card %s: %s", self.config.tag, index, exc)
                continue
            if candidate is None:
                logger.debug("%s skipped card %s: missing required fields", self.config.tag, index)
                continue
            candidates.append(candidate)
        return candidates

    async def _build_resolved(self, query: MatchQuery, candidate: CandidateRecord, value: float) -> ResolvedScore:
        details = candidate.details
        notation_url = None
        payload = None
        if self.config.extract_notation is not None:
            link = await self._locate_notation(candidate)
            if link is not None:
                details = details.merged(link.details)
                notation_url = link.url
            if notation_url:
                payload = await self._fetch_notation(notation_url)
        return ResolvedScore(
            title=query.title,
            composer=query.composer,
            source=self.name,
            notation_payload=payload,
            metadata=details,
            catalog_title=candidate.title,
            catalog_composer=candidate.composer,
            download_url=candidate.download_ref,
            notation_url=notation_url,
            match_score=value,
        )

    async def _locate_notation(self, candidate: CandidateRecord) -> NotationLink | None:
        detail_soup = None
        if self.config.fetch_detail_page:
            try:
                response = await self.fetcher.fetch(candidate.download_ref)
            except SourceUnavailable as exc:
                logger.warning("%s detail page unavailable url=%s: %s", self.config.tag, candidate.download_ref, exc)
                return None
            detail_soup = BeautifulSoup(response.text, "html.parser")
        try:
            return self.config.extract_notation(candidate, detail_soup)
        except Exception:
            logger.exception("%s notation lookup failed url=%s", self.config.tag, candidate.download_ref)
            return None

    async def _fetch_notation(self, url: str) -> str | None:
        try:
            response = await self.fetcher.fetch(url)
        except SourceUnavailable as exc:
            logger.warning("%s notation download failed url=%s: %s", self.config.tag, url, exc)
            return None
        try:
            return notation_text(response)
        except (zipfile.BadZipFile, ValueError) as exc:
            logger.warning("%s unreadable notation archive url=%s: %s", self.config.tag, url, exc)
            return None

    async def _persist(self, resolved: ResolvedScore) -> ResolvedScore:
        if self.store is None:
            return resolved
        try:
            row = await self.store.insert(SCORES_TABLE, resolved.to_record())
        except Exception:
            logger.exception("%s failed to store score title=%s", self.config.tag, resolved.title)
            return resolved
        if isinstance(row, Mapping) and row.get("id") is not None:
            return ResolvedScore.from_record(row)
        return resolved
