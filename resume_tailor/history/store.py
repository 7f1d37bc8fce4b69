"""Durable history store contract plus an in-process implementation."""

from __future__ import annotations

import asyncio
import copy
import dataclasses
from typing import Dict, List, Optional, Protocol, Sequence

from ..models import ResumeVersion, TimelineEntry

STATUS_ACTIVE = "active"
STATUS_DISCARDED = "discarded"


class HistoryStore(Protocol):
    """Persists timeline entries, the per-user cursor, and resume versions.

    Implementations raise :class:`~resume_tailor.errors.StoreUnavailable`
    on any storage failure. Entries are returned in creation order.
    """

    async def start(self) -> None: ...

    async def stop(self) -> None: ...

    async def append_entry(self, entry: TimelineEntry, discard_ids: Sequence[str]) -> None:
        """Insert *entry*, discard *discard_ids* and point the cursor at *entry*, atomically."""
        ...

    async def set_cursor(self, user_id: str, entry_id: Optional[str]) -> None: ...

    async def get_cursor(self, user_id: str) -> Optional[str]: ...

    async def list_active_entries(self, user_id: str) -> List[TimelineEntry]: ...

    async def latest_entry(self, user_id: str) -> Optional[TimelineEntry]: ...

    async def link_apply(self, entry_id: str, applied_at: str) -> Optional[TimelineEntry]: ...

    async def clear_user(self, user_id: str) -> None: ...

    async def save_version(self, version: ResumeVersion) -> None: ...

    async def get_version(self, version_id: str) -> Optional[ResumeVersion]: ...


class InMemoryHistoryStore:
    """Process-local store. Nothing survives a restart of the process."""

    def __init__(self):
        self._entries: List[TimelineEntry] = []
        self._status: Dict[str, str] = {}
        self._cursors: Dict[str, Optional[str]] = {}
        self._versions: Dict[str, ResumeVersion] = {}
        self._lock = asyncio.Lock()

    async def start(self) -> None:
        return None

    async def stop(self) -> None:
        return None

    async def append_entry(self, entry: TimelineEntry, discard_ids: Sequence[str]) -> None:
        async with self._lock:
            for entry_id in discard_ids:
                self._status[entry_id] = STATUS_DISCARDED
            self._entries.append(entry)
            self._status[entry.id] = STATUS_ACTIVE
            self._cursors[entry.user_id] = entry.id

    async def set_cursor(self, user_id: str, entry_id: Optional[str]) -> None:
        async with self._lock:
            self._cursors[user_id] = entry_id

    async def get_cursor(self, user_id: str) -> Optional[str]:
        return self._cursors.get(user_id)

    async def list_active_entries(self, user_id: str) -> List[TimelineEntry]:
        return [e for e in self._entries if e.user_id == user_id and self._status.get(e.id) == STATUS_ACTIVE]

    async def latest_entry(self, user_id: str) -> Optional[TimelineEntry]:
        entries = await self.list_active_entries(user_id)
        return entries[-1] if entries else None

    async def link_apply(self, entry_id: str, applied_at: str) -> Optional[TimelineEntry]:
        async with self._lock:
            for i, entry in enumerate(self._entries):
                if entry.id == entry_id:
                    updated = dataclasses.replace(entry, applied_at=applied_at)
                    self._entries[i] = updated
                    return updated
        return None

    async def clear_user(self, user_id: str) -> None:
        async with self._lock:
            self._entries = [e for e in self._entries if e.user_id != user_id]
            self._cursors.pop(user_id, None)

    async def save_version(self, version: ResumeVersion) -> None:
        self._versions[version.id] = dataclasses.replace(version, resume_json=copy.deepcopy(version.resume_json))

    async def get_version(self, version_id: str) -> Optional[ResumeVersion]:
        version = self._versions.get(version_id)
        if version is None:
            return None
        return dataclasses.replace(version, resume_json=copy.deepcopy(version.resume_json))
