"""SQLite-backed history store. Durable across restarts."""

from __future__ import annotations

import json
import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncIterator, List, Optional, Sequence, Union

import aiosqlite

from ..errors import StoreUnavailable
from ..models import ResumeVersion, TimelineEntry, utc_now_iso
from .store import STATUS_ACTIVE, STATUS_DISCARDED

logger = logging.getLogger(__name__)

_SCHEMA_SQL = """\
CREATE TABLE IF NOT EXISTS timeline_entries (
    seq INTEGER PRIMARY KEY AUTOINCREMENT,
    id TEXT NOT NULL UNIQUE,
    user_id TEXT NOT NULL,
    resume_version_id TEXT NOT NULL,
    ats_score INTEGER,
    notes TEXT,
    created_at TEXT NOT NULL,
    job_json TEXT,
    artifacts_json TEXT NOT NULL DEFAULT '[]',
    applied_at TEXT,
    status TEXT NOT NULL DEFAULT 'active'
);
CREATE INDEX IF NOT EXISTS idx_timeline_user ON timeline_entries(user_id, status, seq);

CREATE TABLE IF NOT EXISTS timeline_cursors (
    user_id TEXT PRIMARY KEY,
    entry_id TEXT,
    updated_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS resume_versions (
    id TEXT PRIMARY KEY,
    user_id TEXT NOT NULL,
    resume_json TEXT NOT NULL,
    created_at TEXT NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_versions_user ON resume_versions(user_id);
"""

_ENTRY_COLUMNS = "id, user_id, resume_version_id, ats_score, notes, created_at, job_json, artifacts_json, applied_at"

# ---------------------------------------------------------------------------
# Helper: row → record
# ---------------------------------------------------------------------------


def _row_to_entry(row: aiosqlite.Row) -> TimelineEntry:
    return TimelineEntry(
        id=row["id"],
        user_id=row["user_id"],
        resume_version_id=row["resume_version_id"],
        ats_score=row["ats_score"],
        notes=row["notes"],
        created_at=row["created_at"],
        job=json.loads(row["job_json"]) if row["job_json"] else None,
        artifacts=json.loads(row["artifacts_json"]) if row["artifacts_json"] else [],
        applied_at=row["applied_at"],
    )


def _row_to_version(row: aiosqlite.Row) -> ResumeVersion:
    return ResumeVersion(
        id=row["id"],
        user_id=row["user_id"],
        resume_json=json.loads(row["resume_json"]),
        created_at=row["created_at"],
    )


class SQLiteHistoryStore:
    """SQLite-backed timeline and version store. Survives process restarts."""

    def __init__(self, db_path: Union[str, Path]) -> None:
        self._db_path = Path(db_path)
        self._db: Optional[aiosqlite.Connection] = None

    async def start(self) -> None:
        if self._db is not None:
            return
        try:
            if str(self._db_path) != ":memory:":
                self._db_path.parent.mkdir(parents=True, exist_ok=True)
            self._db = await aiosqlite.connect(str(self._db_path))
            self._db.row_factory = aiosqlite.Row
            await self._db.execute("PRAGMA journal_mode=WAL")
            await self._db.executescript(_SCHEMA_SQL)
            await self._db.commit()
        except (aiosqlite.Error, OSError) as e:
            logger.error("Could not open history store at %s: %s", self._db_path, e)
            raise StoreUnavailable("History store could not be opened", {"db_path": str(self._db_path)}) from e

    async def stop(self) -> None:
        if self._db is not None:
            await self._db.close()
            self._db = None

    # -- timeline ---------------------------------------------------------

    async def append_entry(self, entry: TimelineEntry, discard_ids: Sequence[str]) -> None:
        async with self._transaction("append_entry") as db:
            if discard_ids:
                placeholders = ", ".join("?" for _ in discard_ids)
                await db.execute(
                    f"UPDATE timeline_entries SET status = ? WHERE id IN ({placeholders})",
                    (STATUS_DISCARDED, *discard_ids),
                )
            await db.execute(
                f"INSERT INTO timeline_entries ({_ENTRY_COLUMNS}, status) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
                (
                    entry.id,
                    entry.user_id,
                    entry.resume_version_id,
                    entry.ats_score,
                    entry.notes,
                    entry.created_at,
                    json.dumps(entry.job) if entry.job is not None else None,
                    json.dumps(entry.artifacts),
                    entry.applied_at,
                    STATUS_ACTIVE,
                ),
            )
            await self._write_cursor(db, entry.user_id, entry.id)

    async def set_cursor(self, user_id: str, entry_id: Optional[str]) -> None:
        async with self._transaction("set_cursor") as db:
            await self._write_cursor(db, user_id, entry_id)

    async def get_cursor(self, user_id: str) -> Optional[str]:
        async with self._operation("get_cursor") as db:
            async with db.execute("SELECT entry_id FROM timeline_cursors WHERE user_id = ?", (user_id,)) as cur:
                row = await cur.fetchone()
        return row["entry_id"] if row else None

    async def list_active_entries(self, user_id: str) -> List[TimelineEntry]:
        async with self._operation("list_active_entries") as db:
            async with db.execute(
                f"SELECT {_ENTRY_COLUMNS} FROM timeline_entries WHERE user_id = ? AND status = ? ORDER BY seq",
                (user_id, STATUS_ACTIVE),
            ) as cur:
                rows = await cur.fetchall()
        return [_row_to_entry(row) for row in rows]

    async def latest_entry(self, user_id: str) -> Optional[TimelineEntry]:
        async with self._operation("latest_entry") as db:
            async with db.execute(
                f"SELECT {_ENTRY_COLUMNS} FROM timeline_entries "
                "WHERE user_id = ? AND status = ? ORDER BY seq DESC LIMIT 1",
                (user_id, STATUS_ACTIVE),
            ) as cur:
                row = await cur.fetchone()
        return _row_to_entry(row) if row else None

    async def link_apply(self, entry_id: str, applied_at: str) -> Optional[TimelineEntry]:
        async with self._transaction("link_apply") as db:
            await db.execute("UPDATE timeline_entries SET applied_at = ? WHERE id = ?", (applied_at, entry_id))
            async with db.execute(f"SELECT {_ENTRY_COLUMNS} FROM timeline_entries WHERE id = ?", (entry_id,)) as cur:
                row = await cur.fetchone()
        return _row_to_entry(row) if row else None

    async def clear_user(self, user_id: str) -> None:
        async with self._transaction("clear_user") as db:
            await db.execute("DELETE FROM timeline_entries WHERE user_id = ?", (user_id,))
            await db.execute("DELETE FROM timeline_cursors WHERE user_id = ?", (user_id,))

    # -- versions ---------------------------------------------------------

    async def save_version(self, version: ResumeVersion) -> None:
        async with self._transaction("save_version") as db:
            await db.execute(
                "INSERT OR REPLACE INTO resume_versions (id, user_id, resume_json, created_at) VALUES (?, ?, ?, ?)",
                (version.id, version.user_id, json.dumps(version.resume_json, ensure_ascii=False), version.created_at),
            )

    async def get_version(self, version_id: str) -> Optional[ResumeVersion]:
        async with self._operation("get_version") as db:
            async with db.execute(
                "SELECT id, user_id, resume_json, created_at FROM resume_versions WHERE id = ?", (version_id,)
            ) as cur:
                row = await cur.fetchone()
        return _row_to_version(row) if row else None

    # -- helpers ----------------------------------------------------------

    @staticmethod
    async def _write_cursor(db: aiosqlite.Connection, user_id: str, entry_id: Optional[str]) -> None:
        await db.execute(
            "INSERT INTO timeline_cursors (user_id, entry_id, updated_at) VALUES (?, ?, ?) "
            "ON CONFLICT(user_id) DO UPDATE SET entry_id = excluded.entry_id, updated_at = excluded.updated_at",
            (user_id, entry_id, utc_now_iso()),
        )

    @asynccontextmanager
    async def _operation(self, label: str) -> AsyncIterator[aiosqlite.Connection]:
        if self._db is None:
            raise StoreUnavailable("History store is not started", {"operation": label})
        try:
            yield self._db
        except aiosqlite.Error as e:
            logger.error("History store %s failed: %s", label, e)
            raise StoreUnavailable(f"History store {label} failed", {"operation": label, "error": str(e)}) from e

    @asynccontextmanager
    async def _transaction(self, label: str) -> AsyncIterator[aiosqlite.Connection]:
        async with self._operation(label) as db:
            try:
                yield db
            except aiosqlite.Error:
                await db.rollback()
                raise
            await db.commit()
