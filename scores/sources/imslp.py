"""IMSLP (Petrucci Music Library) search results and work pages."""

from engine.circuit_breaker import BreakerPolicy
from engine.fetcher import RetryPolicy
from scores.sources.base import SourceConfig, absolute_url, attr_of, text_of
from scores.types import CandidateRecord, NotationLink, ScoreDetails

BASE_URL = "https://imslp.org"


def extract_candidate(card, base_url):
    title = text_of(card, ".mw-search-result-heading a")
    composer = text_of(card, ".mw-search-result-data")
    href = attr_of(card, "a", "href")
    if not (title and composer and href):
        return None
    return CandidateRecord(
        source_id=href,
        title=title,
        composer=composer,
        download_ref=absolute_url(base_url, href),
        details=ScoreDetails(year_composed=text_of(card, ".published-year")),
    )


def extract_notation(candidate, detail):
    if detail is None:
        return None
    url = None
    for link in detail.select(".we_file_download"):
        href = attr_of(link, None, "href")
        if href and ".xml" in href.lower():
            url = absolute_url(candidate.download_ref, href)
            break
    details = ScoreDetails(
        key=text_of(detail, ".key_signature"),
        time_signature=text_of(detail, ".time_signature"),
    )
    return NotationLink(url=url, details=details)


CONFIG = SourceConfig(
    name="imslp",
    base_url=BASE_URL,
    search_url=BASE_URL + "/wiki/Special:Search?search={query}",
    card_selector=".mw-search-result",
    extract_candidate=extract_candidate,
    extract_notation=extract_notation,
    fetch_detail_page=True,
    retry_policy=RetryPolicy(timeout_ms=30000),
    # IMSLP throttles aggressively; back off for five minutes.
    breaker_policy=BreakerPolicy(failure_threshold=5, reset_seconds=300.0),
)
