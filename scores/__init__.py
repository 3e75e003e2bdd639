"""Score provenance resolution across public music catalogs."""

from scores.resolver import ResolutionReport, ScoreProvenanceResolver, build_score_resolver
from scores.types import MatchQuery, ResolutionOutcome, ResolutionState, ResolvedScore, ScoreDetails

__all__ = [
    "MatchQuery",
    "ResolutionReport",
    "ResolutionOutcome",
    "ResolutionState",
    "ResolvedScore",
    "ScoreDetails",
    "ScoreProvenanceResolver",
    "build_score_resolver",
]
