"""Persistence for resolved scores.

Exposes the generic record-store contract the resolvers consume
(``find_one`` / ``insert`` / ``update`` / ``query``) over a SQLite file. The
async methods run the blocking SQLite work in a worker thread.
"""

from __future__ import annotations

import functools
import json
import os
import sqlite3
from datetime import datetime, timezone
from typing import Any, Mapping
from uuid import uuid4

import anyio

from db.migrations import ensure_scores_table

_DEFAULT_DB_ENV_KEY = "SOMI_DB_PATH"

SCORES_TABLE = "scores"

_TABLE_COLUMNS = {
    SCORES_TABLE: ("id", "title", "composer", "source", "music_xml", "metadata", "created_at", "updated_at"),
}
_JSON_COLUMNS = {"metadata"}
_WRITABLE_COLUMNS = {
    SCORES_TABLE: ("title", "composer", "source", "music_xml", "metadata"),
}
_REQUIRED_COLUMNS = {
    SCORES_TABLE: ("title", "composer", "source"),
}


def _resolve_db_path() -> str:
    from engine.paths import DB_PATH

    return os.environ.get(_DEFAULT_DB_ENV_KEY, str(DB_PATH))


def _utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _columns_for(table: str) -> tuple[str, ...]:
    columns = _TABLE_COLUMNS.get(table)
    if columns is None:
        raise ValueError(f"unknown table: {table}")
    return columns


def _check_filter_columns(table: str, filters: Mapping[str, Any] | None) -> list[tuple[str, Any]]:
    columns = _columns_for(table)
    pairs = []
    for name, value in (filters or {}).items():
        if name not in columns:
            raise ValueError(f"unknown column for {table}: {name}")
        pairs.append((name, value))
    return pairs


def _encode(name: str, value: Any) -> Any:
    if name in _JSON_COLUMNS:
        return json.dumps(value if value is not None else {}, sort_keys=True)
    return value


def _row_to_record(row: sqlite3.Row) -> dict[str, Any]:
    record = dict(row)
    for name in _JSON_COLUMNS:
        if name not in record:
            continue
        raw = record.get(name)
        try:
            record[name] = json.loads(raw) if raw else {}
        except ValueError:
            record[name] = {}
    return record


class ScoreStore:
    """SQLite-backed record store for resolved scores."""

    def __init__(self, db_path: str | None = None) -> None:
        self.db_path = str(db_path or _resolve_db_path())
        directory = os.path.dirname(self.db_path)
        if directory:
            os.makedirs(directory, exist_ok=True)

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self.db_path, check_same_thread=False, timeout=30)
        conn.row_factory = sqlite3.Row
        ensure_scores_table(conn)
        return conn

    def ensure_schema(self) -> None:
        """Ensure the scores schema exists."""
        conn = self._connect()
        conn.close()

    def find_one_sync(self, table: str, filters: Mapping[str, Any]) -> dict[str, Any] | None:
        rows = self.query_sync(table, filters, limit=1)
        return rows[0] if rows else None

    def query_sync(
        self,
        table: str,
        filters: Mapping[str, Any] | None = None,
        *,
        limit: int = 50,
    ) -> list[dict[str, Any]]:
        pairs = _check_filter_columns(table, filters)
        where = " AND ".join(f"{name}=?" for name, _value in pairs)
        sql = f"SELECT * FROM {table}"
        if where:
            sql += f" WHERE {where}"
        sql += " ORDER BY updated_at DESC LIMIT ?"
        params = [value for _name, value in pairs] + [max(1, int(limit))]
        conn = self._connect()
        try:
            cur = conn.cursor()
            cur.execute(sql, params)
            return [_row_to_record(row) for row in cur.fetchall()]
        finally:
            conn.close()

    def insert_sync(self, table: str, record: Mapping[str, Any]) -> dict[str, Any]:
        """Insert a record; an existing (title, composer, source) row is updated in place."""
        _columns_for(table)
        for name in _REQUIRED_COLUMNS[table]:
            if not str(record.get(name) or "").strip():
                raise ValueError(f"{name} is required")
        unknown = set(record) - set(_WRITABLE_COLUMNS[table]) - {"id"}
        if unknown:
            raise ValueError(f"unknown column for {table}: {sorted(unknown)[0]}")

        now = _utc_now()
        record_id = str(record.get("id") or uuid4().hex)
        conn = self._connect()
        try:
            cur = conn.cursor()
            cur.execute(
                """
                INSERT INTO scores (id, title, composer, source, music_xml, metadata, created_at, updated_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT (title, composer, source) DO UPDATE SET
                    music_xml=COALESCE(excluded.music_xml, scores.music_xml),
                    metadata=excluded.metadata,
                    updated_at=excluded.updated_at
                """,
                (
                    record_id,
                    record["title"],
                    record["composer"],
                    record["source"],
                    record.get("music_xml"),
                    _encode("metadata", record.get("metadata")),
                    now,
                    now,
                ),
            )
            conn.commit()
            cur.execute(
                "SELECT * FROM scores WHERE title=? AND composer=? AND source=? LIMIT 1",
                (record["title"], record["composer"], record["source"]),
            )
            return _row_to_record(cur.fetchone())
        finally:
            conn.close()

    def update_sync(self, table: str, record_id: str, changes: Mapping[str, Any]) -> dict[str, Any] | None:
        _columns_for(table)
        writable = _WRITABLE_COLUMNS[table]
        pairs = []
        for name, value in (changes or {}).items():
            if name not in writable:
                raise ValueError(f"column is not writable for {table}: {name}")
            pairs.append((name, _encode(name, value)))
        if not pairs:
            return self.find_one_sync(table, {"id": record_id})

        assignments = ", ".join(f"{name}=?" for name, _value in pairs)
        params = [value for _name, value in pairs] + [_utc_now(), str(record_id)]
        conn = self._connect()
        try:
            cur = conn.cursor()
            cur.execute(f"UPDATE {table} SET {assignments}, updated_at=? WHERE id=?", params)
            conn.commit()
            if cur.rowcount == 0:
                return None
            cur.execute(f"SELECT * FROM {table} WHERE id=? LIMIT 1", (str(record_id),))
            row = cur.fetchone()
            return _row_to_record(row) if row else None
        finally:
            conn.close()

    async def find_one(self, table: str, filters: Mapping[str, Any]) -> dict[str, Any] | None:
        return await anyio.to_thread.run_sync(functools.partial(self.find_one_sync, table, filters))

    async def query(self, table: str, filters: Mapping[str, Any] | None = None, *, limit: int = 50) -> list[dict[str, Any]]:
        return await anyio.to_thread.run_sync(functools.partial(self.query_sync, table, filters, limit=limit))

    async def insert(self, table: str, record: Mapping[str, Any]) -> dict[str, Any]:
        return await anyio.to_thread.run_sync(functools.partial(self.insert_sync, table, record))

    async def update(self, table: str, record_id: str, changes: Mapping[str, Any]) -> dict[str, Any] | None:
        return await anyio.to_thread.run_sync(functools.partial(self.update_sync, table, record_id, changes))
