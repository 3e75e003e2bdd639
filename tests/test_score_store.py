import asyncio
import sqlite3

import pytest

from db.score_store import ScoreStore


def _record(**overrides):
    record = {
        "title": "Jupiter, the Bringer of Jollity",
        "composer": "Gustav Holst",
        "source": "imslp",
        "music_xml": "<score-partwise/>",
        "metadata": {"key": "C major", "catalog_title": "The Planets, Op.32"},
    }
    record.update(overrides)
    return record


def test_insert_returns_row_with_decoded_metadata(tmp_path) -> None:
    store = ScoreStore(str(tmp_path / "scores.sqlite"))

    row = store.insert_sync("scores", _record())

    assert len(row["id"]) == 32
    assert row["metadata"] == {"key": "C major", "catalog_title": "The Planets, Op.32"}
    found = store.find_one_sync(
        "scores",
        {"title": "Jupiter, the Bringer of Jollity", "composer": "Gustav Holst", "source": "imslp"},
    )
    assert found == row


def test_insert_upserts_on_title_composer_source(tmp_path) -> None:
    store = ScoreStore(str(tmp_path / "scores.sqlite"))
    first = store.insert_sync("scores", _record())

    second = store.insert_sync("scores", _record(music_xml=None, metadata={"key": "C major", "time_signature": "2/4"}))

    assert second["id"] == first["id"]
    assert second["music_xml"] == "<score-partwise/>"
    assert second["metadata"] == {"key": "C major", "time_signature": "2/4"}
    with sqlite3.connect(store.db_path) as conn:
        assert conn.execute("SELECT COUNT(*) FROM scores").fetchone()[0] == 1


def test_same_piece_from_two_sources_is_two_rows(tmp_path) -> None:
    store = ScoreStore(str(tmp_path / "scores.sqlite"))
    store.insert_sync("scores", _record())
    store.insert_sync("scores", _record(source="musescore"))

    rows = store.query_sync("scores", {"title": "Jupiter, the Bringer of Jollity", "composer": "Gustav Holst"})

    assert sorted(row["source"] for row in rows) == ["imslp", "musescore"]


def test_update_changes_columns_and_missing_id_returns_none(tmp_path) -> None:
    store = ScoreStore(str(tmp_path / "scores.sqlite"))
    row = store.insert_sync("scores", _record(music_xml=None))

    updated = store.update_sync("scores", row["id"], {"music_xml": "<xml/>", "metadata": {"about": "Fourth movement"}})

    assert updated["music_xml"] == "<xml/>"
    assert updated["metadata"] == {"about": "Fourth movement"}
    assert store.update_sync("scores", "missing", {"music_xml": "<xml/>"}) is None


def test_unknown_table_or_column_is_rejected(tmp_path) -> None:
    store = ScoreStore(str(tmp_path / "scores.sqlite"))

    with pytest.raises(ValueError):
        store.find_one_sync("lessons", {"title": "x"})
    with pytest.raises(ValueError):
        store.query_sync("scores", {"title; DROP TABLE scores": "x"})
    with pytest.raises(ValueError):
        store.insert_sync("scores", _record(pdf_url="https://imslp.org"))
    with pytest.raises(ValueError):
        store.update_sync("scores", "abc", {"created_at": "now"})


def test_insert_requires_title_composer_and_source(tmp_path) -> None:
    store = ScoreStore(str(tmp_path / "scores.sqlite"))

    with pytest.raises(ValueError, match="composer is required"):
        store.insert_sync("scores", _record(composer="  "))


def test_async_methods_run_in_worker_thread(tmp_path) -> None:
    store = ScoreStore(str(tmp_path / "scores.sqlite"))

    async def _run():
        row = await store.insert("scores", _record())
        found = await store.find_one("scores", {"source": "imslp"})
        rows = await store.query("scores", {"composer": "Gustav Holst"}, limit=5)
        updated = await store.update("scores", row["id"], {"music_xml": "<new/>"})
        return row, found, rows, updated

    row, found, rows, updated = asyncio.run(_run())

    assert found["id"] == row["id"]
    assert [r["id"] for r in rows] == [row["id"]]
    assert updated["music_xml"] == "<new/>"


def test_db_path_defaults_to_environment(tmp_path, monkeypatch) -> None:
    target = tmp_path / "nested" / "env.sqlite"
    monkeypatch.setenv("SOMI_DB_PATH", str(target))

    store = ScoreStore()
    store.ensure_schema()

    assert store.db_path == str(target)
    assert target.exists()
