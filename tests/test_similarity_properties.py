"""Property-based checks for the match scorer and retry backoff."""

from __future__ import annotations

from hypothesis import assume, given
from hypothesis import strategies as st

from engine.fetcher import backoff_delay_ms
from engine.similarity import composer_similarity, initials, match_score, normalize, similarity

WORD = st.text(alphabet="abcdefghijklmnopqrstuvwxyz", min_size=1, max_size=8)
DISTINCT_WORDS = st.lists(WORD, min_size=1, max_size=6, unique=True)


@given(st.text())
def test_identical_text_scores_one(value) -> None:
    assume(normalize(value))
    assert similarity(value, value) == 1.0
    assert composer_similarity(value, value) == 1.0


@given(st.text(), st.text())
def test_scores_stay_in_unit_interval(a, b) -> None:
    assert 0.0 <= similarity(a, b) <= 1.0
    assert 0.0 <= composer_similarity(a, b) <= 1.0


@given(st.text(), st.text(), st.text(), st.text())
def test_match_score_stays_in_unit_interval(title, composer, query_title, query_composer) -> None:
    assert 0.0 <= match_score(title, composer, query_title, query_composer) <= 1.0
    assert 0.0 <= match_score(title, composer, query_title, query_composer, composer_scorer=similarity) <= 1.0


@given(DISTINCT_WORDS, DISTINCT_WORDS)
def test_word_overlap_is_symmetric_without_repeated_words(a_words, b_words) -> None:
    a = " ".join(a_words)
    b = " ".join(b_words)
    assume(a != b and a not in b and b not in a)
    assume(initials(a) != initials(b))
    assert similarity(a, b) == similarity(b, a)
    assert composer_similarity(a, b) == composer_similarity(b, a)


@given(
    st.integers(min_value=1, max_value=6),
    st.floats(min_value=1.0, max_value=5000.0, allow_nan=False),
    st.floats(min_value=0.0, max_value=0.999999, allow_nan=False),
)
def test_backoff_delay_stays_within_jitter_band(attempt, initial_delay_ms, jitter) -> None:
    base = initial_delay_ms * (2 ** (attempt - 1))
    delay = backoff_delay_ms(attempt, initial_delay_ms, rand=lambda: jitter)
    assert base * 0.5 <= delay < base * 1.5
