"""Fuzzy title/composer similarity used to rank catalog search results.

All functions are pure. Scores fall in ``[0, 1]``:

- ``1.0`` when the normalized strings are identical,
- ``0.9`` when one normalized string contains the other,
- ``0.9`` for composers whose initials match ("J S B" vs "Johann Sebastian Bach"),
- otherwise the share of words in common, divided by the longer word count.

The containment check makes ``similarity`` order-sensitive only superficially
(containment is tested both ways); the word-overlap fallback is symmetric
whenever neither string carries repeated words.
"""

from __future__ import annotations

import re

from config.settings import COMPOSER_WEIGHT, TITLE_WEIGHT

_NON_WORD_RE = re.compile(r"[^\w\s]")
_WS_RE = re.compile(r"\s+")

EXACT_SCORE = 1.0
CONTAINMENT_SCORE = 0.9
INITIALS_SCORE = 0.9


def normalize(value: str | None) -> str:
    text = str(value or "").lower()
    text = _NON_WORD_RE.sub("", text)
    return _WS_RE.sub(" ", text).strip()


def tokenize(value: str | None) -> list[str]:
    normalized = normalize(value)
    if not normalized:
        return []
    return normalized.split(" ")


def initials(value: str | None) -> str:
    return "".join(token[0] for token in tokenize(value))


def word_overlap(a_tokens: list[str], b_tokens: list[str]) -> float:
    denominator = max(len(a_tokens), len(b_tokens))
    if denominator == 0:
        return 0.0
    b_words = set(b_tokens)
    common = sum(1 for token in a_tokens if token in b_words)
    return common / denominator


def _exact_or_containment(a: str, b: str) -> float | None:
    if a == b:
        return EXACT_SCORE
    if a in b or b in a:
        return CONTAINMENT_SCORE
    return None


def similarity(a: str | None, b: str | None) -> float:
    """Generic similarity for titles (and any free-text identifier)."""
    norm_a = normalize(a)
    norm_b = normalize(b)
    if not norm_a or not norm_b:
        return 0.0
    shortcut = _exact_or_containment(norm_a, norm_b)
    if shortcut is not None:
        return shortcut
    return word_overlap(norm_a.split(" "), norm_b.split(" "))


def composer_similarity(a: str | None, b: str | None) -> float:
    """Like :func:`similarity`, with an initials check before the word-overlap fallback."""
    norm_a = normalize(a)
    norm_b = normalize(b)
    if not norm_a or not norm_b:
        return 0.0
    shortcut = _exact_or_containment(norm_a, norm_b)
    if shortcut is not None:
        return shortcut
    initials_a = initials(norm_a)
    initials_b = initials(norm_b)
    if initials_a and initials_b and initials_a == initials_b:
        return INITIALS_SCORE
    return word_overlap(norm_a.split(" "), norm_b.split(" "))


def match_score(candidate_title, candidate_composer, query_title, query_composer, *, composer_scorer=composer_similarity):
    title_part = similarity(candidate_title, query_title)
    composer_part = composer_scorer(candidate_composer, query_composer)
    # Rounded so a score sitting on the acceptance threshold compares stably.
    return round(TITLE_WEIGHT * title_part + COMPOSER_WEIGHT * composer_part, 6)
