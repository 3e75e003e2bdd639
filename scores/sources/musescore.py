"""MuseScore community scores; MusicXML lives behind each score page."""

from engine.circuit_breaker import BreakerPolicy
from engine.fetcher import RetryPolicy
from scores.sources.base import SourceConfig, absolute_url, attr_of, text_of
from scores.types import CandidateRecord, NotationLink, ScoreDetails

BASE_URL = "https://musescore.com"


def extract_candidate(card, base_url):
    title = text_of(card, ".score-title")
    composer = text_of(card, ".score-composer")
    href = attr_of(card, "a", "href")
    if not (title and composer and href):
        return None
    return CandidateRecord(
        source_id=href,
        title=title,
        composer=composer,
        download_ref=absolute_url(base_url, href),
    )


def extract_notation(candidate, detail):
    if detail is None:
        return None
    details = ScoreDetails(
        key=text_of(detail, ".key-signature"),
        time_signature=text_of(detail, ".time-signature"),
        year_composed=text_of(detail, ".composition-year"),
        about=text_of(detail, ".score-description"),
    )
    href = attr_of(detail, ".download-xml", "href")
    return NotationLink(url=absolute_url(candidate.download_ref, href), details=details)


CONFIG = SourceConfig(
    name="musescore",
    base_url=BASE_URL,
    search_url=BASE_URL + "/sheetmusic?text={query}",
    card_selector=".score-card",
    extract_candidate=extract_candidate,
    extract_notation=extract_notation,
    fetch_detail_page=True,
    retry_policy=RetryPolicy(timeout_ms=10000),
    breaker_policy=BreakerPolicy(failure_threshold=3, reset_seconds=60.0),
    headers={"Referer": BASE_URL},
)
