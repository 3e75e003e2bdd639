import pytest

from scores.types import MatchQuery, ResolutionOutcome, ResolutionState, ResolvedScore, ScoreDetails


def test_match_query_strips_and_requires_both_fields() -> None:
    query = MatchQuery.create("  Jupiter ", " Gustav Holst")
    assert query == MatchQuery(title="Jupiter", composer="Gustav Holst")

    with pytest.raises(ValueError, match="title is required"):
        MatchQuery.create("   ", "Holst")
    with pytest.raises(ValueError, match="composer is required"):
        MatchQuery.create("Jupiter", None)
    with pytest.raises(ValueError, match="title must be a string"):
        MatchQuery.create(42, "Holst")


def test_score_details_accepts_camel_case_and_instrument_lists() -> None:
    details = ScoreDetails.from_dict(
        {"timeSignature": " 2/4 ", "yearComposed": "1916", "instruments": "Flute, Oboe ,", "unknown": "x"}
    )

    assert details.time_signature == "2/4"
    assert details.year_composed == "1916"
    assert details.instruments == ("Flute", "Oboe")
    assert details.key is None
    assert details.to_dict() == {"time_signature": "2/4", "year_composed": "1916", "instruments": ["Flute", "Oboe"]}


def test_merged_fills_only_missing_fields() -> None:
    base = ScoreDetails(key="C major")
    merged = base.merged(ScoreDetails(key="D minor", time_signature="3/4"))

    assert merged == ScoreDetails(key="C major", time_signature="3/4")


def test_resolved_score_record_round_trip_keeps_provenance() -> None:
    resolved = ResolvedScore(
        title="Jupiter",
        composer="Gustav Holst",
        source="imslp",
        notation_payload="<score-partwise/>",
        metadata=ScoreDetails(key="C major"),
        catalog_title="The Planets, Op.32",
        download_url="https://imslp.org/wiki/The_Planets",
        match_score=0.94,
    )

    record = resolved.to_record()
    assert "id" not in record
    assert record["metadata"]["catalog_title"] == "The Planets, Op.32"

    restored = ResolvedScore.from_record({**record, "id": "abc"})
    assert restored.id == "abc"
    assert restored.metadata == ScoreDetails(key="C major")
    assert restored.catalog_title == "The Planets, Op.32"
    assert restored.match_score == 0.94
    assert restored.has_notation is True


def test_from_record_reads_legacy_pdf_url() -> None:
    restored = ResolvedScore.from_record(
        {"id": 7, "title": "Jupiter", "composer": "Holst", "source": "imslp", "metadata": {"pdfUrl": "https://imslp.org/x"}}
    )

    assert restored.id == "7"
    assert restored.download_url == "https://imslp.org/x"
    assert restored.has_notation is False


def test_outcome_serializes_state_value() -> None:
    outcome = ResolutionOutcome(source="fma", state=ResolutionState.NOT_FOUND, reason="below_threshold")
    assert outcome.to_dict() == {"source": "fma", "state": "not_found", "reason": "below_threshold"}
