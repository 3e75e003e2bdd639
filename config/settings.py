"""Application settings constants."""

from __future__ import annotations

# Weights for the combined title/composer match score.
TITLE_WEIGHT = 0.6
COMPOSER_WEIGHT = 0.4

# A candidate is accepted only when its combined score is strictly above this.
DEFAULT_MATCH_THRESHOLD = 0.7

# Total budget for one resolution across every catalog, in seconds.
DEFAULT_RESOLUTION_DEADLINE_SECONDS = 45.0

DEFAULT_SOURCE_PRIORITY = ("imslp", "musescore", "openscore", "flat", "fma")

DEFAULT_USER_AGENT = "Mozilla/5.0 (compatible; ClassroomMusicBot/1.0)"

DEFAULT_ACCEPT = "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8"

# Retry defaults shared by every catalog unless overridden per source.
DEFAULT_RETRIES = 3
DEFAULT_INITIAL_DELAY_MS = 1000
DEFAULT_TIMEOUT_MS = 10000

# Circuit breaker defaults for catalogs without a tuned policy.
DEFAULT_BREAKER_FAILURE_THRESHOLD = 3
DEFAULT_BREAKER_RESET_SECONDS = 60.0
