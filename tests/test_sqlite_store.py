"""Tests for SQLite store schema handling."""

import sqlite3
import tempfile
from pathlib import Path

import pytest

from fixup_slugs.adapters.sqlite_store import SCHEMA_VERSION, SQLiteStore
from fixup_slugs.core.manager import SlugManager


@pytest.fixture
def db_path():
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir) / "data" / "records.sqlite"


def _schema_version(db_path: Path) -> str:
    conn = sqlite3.connect(str(db_path))
    try:
        return conn.execute("SELECT value FROM meta WHERE key = 'schema_version'").fetchone()[0]
    finally:
        conn.close()


@pytest.mark.asyncio
async def test_creates_schema(db_path):
    store = SQLiteStore(db_path=db_path)
    assert await store.list_records("service") == []
    assert db_path.exists()
    assert _schema_version(db_path) == SCHEMA_VERSION


@pytest.mark.asyncio
async def test_records_survive_reopen(db_path):
    manager = SlugManager(SQLiteStore(db_path=db_path), kind="service")
    await manager.create("Oil Change")
    await manager.update_slug(1, "engine-oil")

    reopened = SlugManager(SQLiteStore(db_path=db_path), kind="service")
    found = await reopened.find_by_slug("engine-oil")
    assert found.record.display_name == "Oil Change"
    assert await reopened.is_slug_manual(found.record.id) is True


@pytest.mark.asyncio
async def test_migrates_v1_store(db_path):
    db_path.parent.mkdir(parents=True)
    conn = sqlite3.connect(str(db_path))
    conn.executescript(
        """
        CREATE TABLE meta (key TEXT PRIMARY KEY, value TEXT NOT NULL);
        INSERT INTO meta VALUES ('schema_version', '1');
        CREATE TABLE records (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            kind TEXT NOT NULL,
            display_name TEXT NOT NULL,
            slug TEXT NOT NULL,
            updated_at TEXT,
            UNIQUE (kind, slug)
        );
        INSERT INTO records (kind, display_name, slug) VALUES ('service', 'Oil Change', 'oil-change');
        """
    )
    conn.commit()
    conn.close()

    store = SQLiteStore(db_path=db_path)
    record = await store.get("service", 1)
    assert record.slug == "oil-change"
    assert record.slug_is_manual is False
    assert _schema_version(db_path) == SCHEMA_VERSION

    manager = SlugManager(store, kind="service")
    assert (await manager.update_slug(1, "engine-oil")).record.slug_is_manual is True


@pytest.mark.asyncio
async def test_corrupt_db_is_backed_up(db_path):
    db_path.parent.mkdir(parents=True)
    db_path.write_bytes(b"this is not a sqlite database\n" * 100)

    store = SQLiteStore(db_path=db_path)
    assert await store.list_records("service") == []

    backups = list(db_path.parent.glob("records.bad-*.sqlite"))
    assert len(backups) == 1
    assert backups[0].read_bytes().startswith(b"this is not")
