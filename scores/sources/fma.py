"""Free Music Archive recordings: an audio link plus track metadata, no notation."""

from engine.circuit_breaker import BreakerPolicy
from engine.fetcher import RetryPolicy
from scores.sources.base import SourceConfig, absolute_url, attr_of, text_of
from scores.types import CandidateRecord, ScoreDetails

BASE_URL = "https://freemusicarchive.org"


def _audio_url(card):
    return attr_of(card, "a[data-url], .play-button[data-url], audio source[data-url]", "data-url") or attr_of(
        card, "audio", "src"
    )


def extract_candidate(card, base_url):
    title = text_of(card, ".track-title, .title")
    artist = text_of(card, ".track-artist, .artist")
    audio = _audio_url(card)
    if not (title and artist and audio):
        return None
    return CandidateRecord(
        source_id=audio,
        title=title,
        composer=artist,
        download_ref=absolute_url(base_url, audio),
        details=ScoreDetails(
            duration=text_of(card, ".track-duration, .duration"),
            license=text_of(card, ".track-license, .license"),
            about=text_of(card, ".track-description, .description"),
        ),
    )


CONFIG = SourceConfig(
    name="fma",
    base_url=BASE_URL,
    search_url=BASE_URL + "/search/?quicksearch={query}",
    card_selector=".play-item, .track-item, .music-item",
    extract_candidate=extract_candidate,
    retry_policy=RetryPolicy(timeout_ms=10000),
    breaker_policy=BreakerPolicy(failure_threshold=2, reset_seconds=30.0),
)
