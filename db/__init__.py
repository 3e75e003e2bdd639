"""Database helpers for resolved score storage."""

from db.score_store import SCORES_TABLE, ScoreStore

__all__ = ["SCORES_TABLE", "ScoreStore"]
