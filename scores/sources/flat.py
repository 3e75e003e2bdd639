"""Flat.io community scores (metadata only)."""

from engine.circuit_breaker import BreakerPolicy
from engine.fetcher import RetryPolicy
from engine.similarity import composer_similarity
from scores.sources.base import SourceConfig, absolute_url, attr_of, text_of
from scores.types import CandidateRecord, ScoreDetails

BASE_URL = "https://flat.io"


def extract_candidate(card, base_url):
    score_id = attr_of(card, None, "data-score-id")
    title = text_of(card, ".score-title")
    composer = text_of(card, ".score-composer")
    href = attr_of(card, "a", "href")
    if not (score_id and title and composer and href):
        return None
    instruments = text_of(card, ".score-instruments")
    return CandidateRecord(
        source_id=score_id,
        title=title,
        composer=composer,
        download_ref=absolute_url(base_url, href),
        details=ScoreDetails.from_dict(
            {
                "key": text_of(card, ".score-key"),
                "time_signature": text_of(card, ".score-time-signature"),
                "tempo": text_of(card, ".score-tempo"),
                "instruments": instruments or (),
            }
        ),
    )


CONFIG = SourceConfig(
    name="flat",
    base_url=BASE_URL,
    search_url=BASE_URL + "/discover/scores?q={query}",
    card_selector=".score-card",
    extract_candidate=extract_candidate,
    retry_policy=RetryPolicy(timeout_ms=10000),
    breaker_policy=BreakerPolicy(failure_threshold=3, reset_seconds=60.0),
    # Flat credits arrangers by initials often enough to matter.
    composer_scorer=composer_similarity,
)
