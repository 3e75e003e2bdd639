"""Catalog source configurations, keyed by source name."""

from scores.sources import flat, fma, imslp, musescore, openscore
from scores.sources.base import SCORES_TABLE, ScoreSourceAdapter, SourceConfig

SOURCE_CONFIGS = {
    config.name: config
    for config in (imslp.CONFIG, musescore.CONFIG, openscore.CONFIG, flat.CONFIG, fma.CONFIG)
}

__all__ = ["SCORES_TABLE", "SOURCE_CONFIGS", "ScoreSourceAdapter", "SourceConfig"]
