"""Per-user undo/redo timeline backed by a durable history store.

The in-memory timeline is a mirror of the store. It is rebuilt lazily from
durable records the first time a user is touched, and every mutation is
written to the store before the mirror changes, so a store failure leaves
the mirror exactly as it was.
"""

from __future__ import annotations

import asyncio
import copy
import logging
import weakref
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from ..errors import StoreUnavailable, TailorError, ValidationError
from ..models import ResumeVersion, TimelineEntry, make_id, utc_now_iso
from .store import HistoryStore

logger = logging.getLogger(__name__)

NOTHING_TO_UNDO = "nothing_to_undo"
NOTHING_TO_REDO = "nothing_to_redo"


@dataclass
class Timeline:
    """Mutable per-user state. Only the service touches it, under the user's lock."""

    past: List[TimelineEntry] = field(default_factory=list)
    current: Optional[TimelineEntry] = None
    future: List[TimelineEntry] = field(default_factory=list)

    def snapshot(self) -> "TimelineSnapshot":
        return TimelineSnapshot(past=tuple(self.past), current=self.current, future=tuple(self.future))


@dataclass(frozen=True)
class TimelineSnapshot:
    """Read-only view: ``past`` oldest first, ``future`` most recently undone first."""

    past: tuple = ()
    current: Optional[TimelineEntry] = None
    future: tuple = ()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "past": [e.to_dict() for e in self.past],
            "current": self.current.to_dict() if self.current else None,
            "future": [e.to_dict() for e in self.future],
        }


@dataclass(frozen=True)
class TimelineTransition:
    """Outcome of undo/redo. ``changed=False`` carries the boundary reason."""

    changed: bool
    current: Optional[TimelineEntry] = None
    moved: Optional[TimelineEntry] = None
    reason: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "changed": self.changed,
            "reason": self.reason,
            "moved": self.moved.to_dict() if self.moved else None,
            "current": self.current.to_dict() if self.current else None,
        }


class TimelineService:
    """Explicit owner of every user's timeline.

    Mutations for one user are serialized by a per-user ``asyncio.Lock``;
    different users proceed independently. A lock lives only while some call
    holds or awaits it, and clearing a user also drops their mirror.
    """

    def __init__(self, store: HistoryStore):
        self.store = store
        self._timelines: Dict[str, Timeline] = {}
        self._locks: "weakref.WeakValueDictionary[str, asyncio.Lock]" = weakref.WeakValueDictionary()

    async def start(self) -> None:
        await self._durable("start", self.store.start())

    async def stop(self) -> None:
        await self.store.stop()
        self._timelines.clear()

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def save(self, entry: TimelineEntry) -> TimelineEntry:
        """Make *entry* current. The previous current joins ``past``; ``future`` is discarded."""
        _require_user(entry.user_id)
        async with self._lock(entry.user_id):
            timeline = await self._load(entry.user_id)
            discard_ids = [e.id for e in timeline.future]
            await self._durable("save", self.store.append_entry(entry, discard_ids))

            if timeline.current is not None:
                timeline.past.append(timeline.current)
            timeline.current = entry
            timeline.future = []
            logger.debug("Saved %s for %s (%d discarded)", entry.id, entry.user_id, len(discard_ids))
            return entry

    async def undo(self, user_id: str) -> TimelineTransition:
        _require_user(user_id)
        async with self._lock(user_id):
            timeline = await self._load(user_id)
            if not timeline.past:
                return TimelineTransition(changed=False, current=timeline.current, reason=NOTHING_TO_UNDO)

            target = timeline.past[-1]
            await self._durable("undo", self.store.set_cursor(user_id, target.id))

            moved = timeline.current
            timeline.past.pop()
            if moved is not None:
                timeline.future.insert(0, moved)
            timeline.current = target
            return TimelineTransition(changed=True, current=target, moved=moved)

    async def redo(self, user_id: str) -> TimelineTransition:
        _require_user(user_id)
        async with self._lock(user_id):
            timeline = await self._load(user_id)
            if not timeline.future:
                return TimelineTransition(changed=False, current=timeline.current, reason=NOTHING_TO_REDO)

            target = timeline.future[0]
            await self._durable("redo", self.store.set_cursor(user_id, target.id))

            previous = timeline.current
            timeline.future.pop(0)
            if previous is not None:
                timeline.past.append(previous)
            timeline.current = target
            return TimelineTransition(changed=True, current=target, moved=previous)

    async def undo_to(self, user_id: str, current_version_id: Optional[str]) -> TimelineTransition:
        """Undo repeatedly until the current entry holds *current_version_id*.

        Raises:
            ValidationError: when the id is empty or not found in ``past``.
        """
        _require_user(user_id)
        if not current_version_id:
            raise ValidationError("current_version_id is required", {"user_id": user_id})

        async with self._lock(user_id):
            timeline = await self._load(user_id)
            if timeline.current is not None and timeline.current.resume_version_id == current_version_id:
                return TimelineTransition(changed=False, current=timeline.current, reason="already_current")

            index = _rfind_version(timeline.past, current_version_id)
            if index is None:
                raise ValidationError(
                    "Version is not in the undo history",
                    {"user_id": user_id, "current_version_id": current_version_id},
                )

            target = timeline.past[index]
            await self._durable("undo_to", self.store.set_cursor(user_id, target.id))

            moved = timeline.current
            undone = timeline.past[index + 1:]
            if moved is not None:
                undone.append(moved)
            timeline.past = timeline.past[:index]
            timeline.future = undone + timeline.future
            timeline.current = target
            return TimelineTransition(changed=True, current=target, moved=moved)

    async def get_timeline(self, user_id: str) -> TimelineSnapshot:
        _require_user(user_id)
        async with self._lock(user_id):
            timeline = await self._load(user_id)
            return timeline.snapshot()

    async def clear_timeline(self, user_id: str) -> None:
        _require_user(user_id)
        async with self._lock(user_id):
            await self._durable("clear_timeline", self.store.clear_user(user_id))
            self._timelines.pop(user_id, None)

    async def link_apply(self, entry_id: str, applied_at: Optional[str] = None) -> TimelineEntry:
        """Stamp the entry as applied to a job and refresh any loaded mirror."""
        if not entry_id:
            raise ValidationError("entry_id is required")
        updated = await self._durable("link_apply", self.store.link_apply(entry_id, applied_at or utc_now_iso()))
        if updated is None:
            raise ValidationError("Unknown timeline entry", {"entry_id": entry_id})

        timeline = self._timelines.get(updated.user_id)
        if timeline is not None:
            async with self._lock(updated.user_id):
                _replace_entry(timeline, updated)
        return updated

    async def commit_version(self, user_id: str, resume_json: Dict[str, Any]) -> ResumeVersion:
        """Persist a copy of *resume_json* as a new immutable version."""
        _require_user(user_id)
        version = ResumeVersion(id=make_id("ver"), user_id=user_id, resume_json=copy.deepcopy(resume_json))
        await self._durable("commit_version", self.store.save_version(version))
        return version

    async def get_version(self, version_id: str) -> Optional[ResumeVersion]:
        return await self._durable("get_version", self.store.get_version(version_id))

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _lock(self, user_id: str) -> asyncio.Lock:
        lock = self._locks.get(user_id)
        if lock is None:
            lock = self._locks[user_id] = asyncio.Lock()
        return lock

    async def _load(self, user_id: str) -> Timeline:
        """Return the mirror for *user_id*, rebuilding it from the store on first access."""
        timeline = self._timelines.get(user_id)
        if timeline is not None:
            return timeline

        entries = await self._durable("rebuild", self.store.list_active_entries(user_id))
        cursor = await self._durable("rebuild", self.store.get_cursor(user_id))
        timeline = _rebuild(entries, cursor)
        self._timelines[user_id] = timeline
        logger.debug(
            "Rebuilt timeline for %s: %d past, current=%s, %d future",
            user_id,
            len(timeline.past),
            timeline.current.id if timeline.current else None,
            len(timeline.future),
        )
        return timeline

    @staticmethod
    async def _durable(label: str, awaitable):
        try:
            return await awaitable
        except TailorError:
            raise
        except (OSError, RuntimeError) as e:
            logger.error("History store %s failed: %s", label, e)
            raise StoreUnavailable(f"History store {label} failed", {"operation": label, "error": str(e)}) from e


def _require_user(user_id: str) -> None:
    if not user_id or not str(user_id).strip():
        raise ValidationError("user_id is required")


def _rebuild(entries: List[TimelineEntry], cursor: Optional[str]) -> Timeline:
    """Split creation-ordered entries around the cursor.

    Entries after the cursor are the undone ones; in creation order the
    first of them is the most recently undone. A missing or unknown cursor
    makes the newest entry current.
    """
    if not entries:
        return Timeline()
    ids = [e.id for e in entries]
    index = ids.index(cursor) if cursor in ids else len(entries) - 1
    return Timeline(past=list(entries[:index]), current=entries[index], future=list(entries[index + 1:]))


def _rfind_version(entries: List[TimelineEntry], version_id: str) -> Optional[int]:
    for i in range(len(entries) - 1, -1, -1):
        if entries[i].resume_version_id == version_id:
            return i
    return None


def _replace_entry(timeline: Timeline, updated: TimelineEntry) -> None:
    if timeline.current is not None and timeline.current.id == updated.id:
        timeline.current = updated
    timeline.past = [updated if e.id == updated.id else e for e in timeline.past]
    timeline.future = [updated if e.id == updated.id else e for e in timeline.future]
