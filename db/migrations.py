"""SQLite migrations for resolved score storage."""

from __future__ import annotations

import sqlite3


def ensure_scores_table(conn: sqlite3.Connection) -> None:
    """Ensure the scores table and its lookup index exist."""
    cur = conn.cursor()
    cur.execute(
        """
        CREATE TABLE IF NOT EXISTS scores (
            id TEXT PRIMARY KEY,
            title TEXT NOT NULL,
            composer TEXT NOT NULL,
            source TEXT NOT NULL,
            music_xml TEXT,
            metadata TEXT NOT NULL DEFAULT '{}',
            created_at TEXT NOT NULL,
            updated_at TEXT NOT NULL,
            UNIQUE (title, composer, source)
        )
        """
    )
    cur.execute(
        "CREATE INDEX IF NOT EXISTS idx_scores_title_composer "
        "ON scores (title, composer)"
    )
    conn.commit()
