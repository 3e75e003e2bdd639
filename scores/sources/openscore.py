"""OpenScore public-domain editions. Result cards link the MusicXML file directly."""

from engine.circuit_breaker import BreakerPolicy
from engine.fetcher import RetryPolicy
from scores.sources.base import SourceConfig, absolute_url, attr_of, text_of
from scores.types import CandidateRecord, NotationLink, ScoreDetails

BASE_URL = "https://openscore.cc"


def extract_candidate(card, base_url):
    title = text_of(card, ".score-title")
    composer = text_of(card, ".score-composer")
    xml_href = attr_of(card, 'a[href$=".xml"]', "href")
    if not (title and composer and xml_href):
        return None
    return CandidateRecord(
        source_id=xml_href,
        title=title,
        composer=composer,
        download_ref=absolute_url(base_url, xml_href),
        details=ScoreDetails(
            key=text_of(card, ".key"),
            time_signature=text_of(card, ".time-signature"),
        ),
    )


def extract_notation(candidate, detail):
    return NotationLink(url=candidate.download_ref)


CONFIG = SourceConfig(
    name="openscore",
    base_url=BASE_URL,
    search_url=BASE_URL + "/search?q={query}",
    card_selector=".score-item",
    extract_candidate=extract_candidate,
    extract_notation=extract_notation,
    retry_policy=RetryPolicy(timeout_ms=15000),
    breaker_policy=BreakerPolicy(failure_threshold=3, reset_seconds=60.0),
)
