"""SQLite-backed record store with a (kind, slug) uniqueness constraint."""

import asyncio
import logging
import sqlite3
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from ..core.errors import PersistConflict, RecordNotFound, StoreLookupError
from ..core.model import MAX_RECORD_ID, RecordId, SluggedRecord
from ..core.ports import RecordStore

logger = logging.getLogger(__name__)

SCHEMA_VERSION = "2"

_COLUMNS = "id, kind, display_name, slug, slug_is_manual, updated_at"


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _row_to_record(row: tuple | None) -> SluggedRecord | None:
    if row is None:
        return None
    rid, kind, display_name, slug, manual, updated_at = row
    return SluggedRecord(
        id=rid,
        kind=kind,
        display_name=display_name,
        slug=slug,
        slug_is_manual=bool(manual),
        updated_at=updated_at,
    )


def _storable(id: RecordId | None) -> bool:
    return id is None or -MAX_RECORD_ID - 1 <= id <= MAX_RECORD_ID


def _is_slug_violation(exc: sqlite3.IntegrityError) -> bool:
    return "records.kind, records.slug" in str(exc)


@dataclass
class SQLiteStore(RecordStore):
    """
    Durable record store.

    Blocking sqlite3 calls run in a worker thread, one short-lived
    connection per call. The unique index is the authority on slug
    uniqueness; a violated write surfaces as PersistConflict.
    """

    db_path: Path
    _ready: bool = field(default=False, init=False, repr=False)

    def _conn(self) -> sqlite3.Connection:
        """Get a connection to the SQLite database."""
        conn = sqlite3.connect(str(self.db_path), check_same_thread=False)
        conn.execute("PRAGMA journal_mode=WAL")
        conn.execute("PRAGMA synchronous=NORMAL")
        return conn

    def _init_schema(self, conn: sqlite3.Connection) -> None:
        """Create tables if they don't exist."""
        conn.execute("""
            CREATE TABLE IF NOT EXISTS meta (
                key TEXT PRIMARY KEY,
                value TEXT NOT NULL
            )
        """)
        conn.execute("""
            CREATE TABLE IF NOT EXISTS records (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                kind TEXT NOT NULL,
                display_name TEXT NOT NULL,
                slug TEXT NOT NULL,
                slug_is_manual INTEGER NOT NULL DEFAULT 0,
                updated_at TEXT,
                UNIQUE (kind, slug)
            )
        """)
        conn.execute("CREATE INDEX IF NOT EXISTS records_kind_idx ON records(kind, id)")
        conn.commit()

    def _migrate_schema(self, conn: sqlite3.Connection) -> None:
        """Migrate schema from older versions."""
        row = conn.execute(
            "SELECT value FROM meta WHERE key = 'schema_version'"
        ).fetchone()
        current_version = int(row[0]) if row else 0

        # v1 stores predate manual overrides: every existing slug is auto
        if current_version == 1:
            columns = {r[1] for r in conn.execute("PRAGMA table_info(records)")}
            if "slug_is_manual" not in columns:
                conn.execute(
                    "ALTER TABLE records ADD COLUMN slug_is_manual INTEGER NOT NULL DEFAULT 0"
                )
            logger.info("Migrated %s from schema v1 to v%s", self.db_path, SCHEMA_VERSION)

        conn.execute(
            """
            INSERT INTO meta(key, value) VALUES('schema_version', ?)
            ON CONFLICT(key) DO UPDATE SET value=excluded.value
            """,
            (SCHEMA_VERSION,),
        )
        conn.commit()

    def _ensure_schema(self) -> None:
        """Ensure DB exists and schema is initialized."""
        if self._ready:
            return
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

        if self.db_path.exists():
            try:
                conn = self._conn()
                try:
                    conn.execute("SELECT 1").fetchone()
                finally:
                    conn.close()
            except sqlite3.DatabaseError:
                # DB is corrupt, back up and recreate
                timestamp = int(time.time())
                backup_path = self.db_path.with_suffix(f".bad-{timestamp}.sqlite")
                self.db_path.rename(backup_path)
                logger.warning("Corrupt DB backed up to %s", backup_path)

        conn = self._conn()
        try:
            self._init_schema(conn)
            self._migrate_schema(conn)
        finally:
            conn.close()
        self._ready = True

    def _call(self, fn: Callable[..., Any], *args: Any) -> Any:
        try:
            self._ensure_schema()
            conn = self._conn()
        except sqlite3.Error as exc:
            raise StoreLookupError(f"Cannot open {self.db_path}: {exc}") from exc
        try:
            result = fn(conn, *args)
            conn.commit()
            return result
        except sqlite3.Error as exc:
            conn.rollback()
            raise StoreLookupError(f"SQLite error on {self.db_path}: {exc}") from exc
        finally:
            conn.close()

    async def _run(self, fn: Callable[..., Any], *args: Any) -> Any:
        return await asyncio.to_thread(self._call, fn, *args)

    # queries, executed on the worker thread

    @staticmethod
    def _q_get(conn: sqlite3.Connection, kind: str, id: RecordId) -> SluggedRecord | None:
        row = conn.execute(
            f"SELECT {_COLUMNS} FROM records WHERE kind = ? AND id = ?", (kind, id)
        ).fetchone()
        return _row_to_record(row)

    @staticmethod
    def _q_get_by_slug(conn: sqlite3.Connection, kind: str, slug: str) -> SluggedRecord | None:
        row = conn.execute(
            f"SELECT {_COLUMNS} FROM records WHERE kind = ? AND slug = ?", (kind, slug)
        ).fetchone()
        return _row_to_record(row)

    @staticmethod
    def _q_slug_exists(
        conn: sqlite3.Connection, kind: str, slug: str, exclude_id: RecordId | None
    ) -> bool:
        if exclude_id is None:
            row = conn.execute(
                "SELECT 1 FROM records WHERE kind = ? AND slug = ? LIMIT 1", (kind, slug)
            ).fetchone()
        else:
            row = conn.execute(
                "SELECT 1 FROM records WHERE kind = ? AND slug = ? AND id != ? LIMIT 1",
                (kind, slug, exclude_id),
            ).fetchone()
        return row is not None

    def _q_insert(
        self,
        conn: sqlite3.Connection,
        kind: str,
        display_name: str,
        slug: str,
        slug_is_manual: bool,
        id: RecordId | None,
    ) -> SluggedRecord:
        try:
            cur = conn.execute(
                """
                INSERT INTO records (id, kind, display_name, slug, slug_is_manual, updated_at)
                VALUES (?, ?, ?, ?, ?, ?)
                """,
                (id, kind, display_name, slug, int(slug_is_manual), _now()),
            )
        except sqlite3.IntegrityError as exc:
            if _is_slug_violation(exc):
                raise PersistConflict(kind, slug) from exc
            raise ValueError(f"Record id {id} already in use") from exc
        return self._q_get(conn, kind, cur.lastrowid)

    def _q_update_slug(
        self,
        conn: sqlite3.Connection,
        kind: str,
        id: RecordId,
        slug: str,
        slug_is_manual: bool,
    ) -> SluggedRecord:
        try:
            cur = conn.execute(
                """
                UPDATE records SET slug = ?, slug_is_manual = ?, updated_at = ?
                WHERE kind = ? AND id = ?
                """,
                (slug, int(slug_is_manual), _now(), kind, id),
            )
        except sqlite3.IntegrityError as exc:
            raise PersistConflict(kind, slug) from exc
        if cur.rowcount == 0:
            raise RecordNotFound(kind, id)
        return self._q_get(conn, kind, id)

    def _q_update_display_name(
        self, conn: sqlite3.Connection, kind: str, id: RecordId, display_name: str
    ) -> SluggedRecord:
        cur = conn.execute(
            "UPDATE records SET display_name = ?, updated_at = ? WHERE kind = ? AND id = ?",
            (display_name, _now(), kind, id),
        )
        if cur.rowcount == 0:
            raise RecordNotFound(kind, id)
        return self._q_get(conn, kind, id)

    @staticmethod
    def _q_delete(conn: sqlite3.Connection, kind: str, id: RecordId) -> None:
        cur = conn.execute("DELETE FROM records WHERE kind = ? AND id = ?", (kind, id))
        if cur.rowcount == 0:
            raise RecordNotFound(kind, id)

    @staticmethod
    def _q_list(conn: sqlite3.Connection, kind: str) -> list[SluggedRecord]:
        rows = conn.execute(
            f"SELECT {_COLUMNS} FROM records WHERE kind = ? ORDER BY id", (kind,)
        ).fetchall()
        return [_row_to_record(row) for row in rows]

    @staticmethod
    def _q_kinds(conn: sqlite3.Connection) -> list[str]:
        rows = conn.execute("SELECT DISTINCT kind FROM records ORDER BY kind").fetchall()
        return [row[0] for row in rows]

    # RecordStore

    async def get(self, kind: str, id: RecordId) -> SluggedRecord | None:
        if not _storable(id):
            return None
        return await self._run(self._q_get, kind, id)

    async def get_by_slug(self, kind: str, slug: str) -> SluggedRecord | None:
        return await self._run(self._q_get_by_slug, kind, slug)

    async def slug_exists(
        self, kind: str, slug: str, exclude_id: RecordId | None = None
    ) -> bool:
        if not _storable(exclude_id):
            exclude_id = None
        return await self._run(self._q_slug_exists, kind, slug, exclude_id)

    async def insert(
        self,
        kind: str,
        display_name: str,
        slug: str,
        slug_is_manual: bool = False,
        id: RecordId | None = None,
    ) -> SluggedRecord:
        if not _storable(id):
            raise ValueError(f"Record id {id} out of range")
        return await self._run(self._q_insert, kind, display_name, slug, slug_is_manual, id)

    async def update_slug(
        self, kind: str, id: RecordId, slug: str, slug_is_manual: bool
    ) -> SluggedRecord:
        if not _storable(id):
            raise RecordNotFound(kind, id)
        return await self._run(self._q_update_slug, kind, id, slug, slug_is_manual)

    async def update_display_name(
        self, kind: str, id: RecordId, display_name: str
    ) -> SluggedRecord:
        if not _storable(id):
            raise RecordNotFound(kind, id)
        return await self._run(self._q_update_display_name, kind, id, display_name)

    async def delete(self, kind: str, id: RecordId) -> None:
        if not _storable(id):
            raise RecordNotFound(kind, id)
        await self._run(self._q_delete, kind, id)

    async def list_records(self, kind: str) -> list[SluggedRecord]:
        return await self._run(self._q_list, kind)

    async def list_kinds(self) -> list[str]:
        return await self._run(self._q_kinds)
