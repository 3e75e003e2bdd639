import pytest

from engine.similarity import composer_similarity, initials, match_score, normalize, similarity


def test_normalize_strips_punctuation_and_collapses_whitespace() -> None:
    assert normalize("  Holst,   Gustav!! ") == "holst gustav"
    assert normalize("Dvořák") == "dvořák"
    assert normalize(None) == ""


@pytest.mark.parametrize("value", ["Jupiter", "The Planets, Op. 32", "Dvořák"])
def test_similarity_identity(value) -> None:
    assert similarity(value, value) == 1.0


def test_similarity_of_empty_strings_is_zero() -> None:
    assert similarity("", "") == 0.0
    assert similarity("!!!", "Jupiter") == 0.0


def test_punctuation_only_text_normalizes_to_nothing() -> None:
    # Empty after normalization, so even identical input has nothing to match on.
    assert similarity("!!!", "!!!") == 0.0
    assert composer_similarity("...", "...") == 0.0
    assert match_score("!!!", "???", "!!!", "???") == 0.0


def test_similarity_ignores_case_and_punctuation() -> None:
    assert similarity("Jupiter Symphony", "jupiter symphony!!") == 1.0


def test_similarity_containment_scores_point_nine() -> None:
    assert similarity("Jupiter", "Jupiter, the Bringer of Jollity") == 0.9
    assert similarity("Jupiter, the Bringer of Jollity", "Jupiter") == 0.9


def test_similarity_word_overlap_tolerates_word_order() -> None:
    assert similarity("Holst, Gustav", "Gustav Holst") == 1.0
    assert similarity("Jupiter from The Planets", "Jupiter, the Bringer of Jollity") == pytest.approx(0.4)


def test_word_overlap_is_symmetric() -> None:
    a = "The Planets Suite"
    b = "Planets of Holst"
    assert similarity(a, b) == similarity(b, a) == pytest.approx(1 / 3)


def test_composer_variant_handles_initials_and_containment() -> None:
    assert composer_similarity("Bach", "J.S. Bach") >= 0.9
    assert initials("Johann Sebastian Bach") == "jsb"
    assert composer_similarity("J S B", "Johann Sebastian Bach") == 0.9
    assert similarity("J S B", "Johann Sebastian Bach") == 0.0


def test_match_score_weights_title_and_composer() -> None:
    value = match_score("Jupiter from The Planets", "Holst, Gustav", "Jupiter, the Bringer of Jollity", "Gustav Holst")
    assert value == pytest.approx(0.6 * 0.4 + 0.4 * 1.0)


def test_match_score_lands_exactly_on_threshold() -> None:
    # Half the title words plus an identical composer: 0.6 * 0.5 + 0.4 * 1.0.
    assert match_score("Moonlight Sonata", "Beethoven", "Moonlight Serenade", "Beethoven") == 0.7


def test_match_score_accepts_custom_composer_scorer() -> None:
    plain = match_score("Minuet in G Major", "Johann Sebastian Bach", "Minuet in G", "J S Bach", composer_scorer=similarity)
    with_initials = match_score("Minuet in G Major", "Johann Sebastian Bach", "Minuet in G", "J S Bach")
    assert plain == pytest.approx(0.673333)
    assert with_initials == pytest.approx(0.9)
