"""Undo/redo timeline and resume version history."""

from .service import (
    NOTHING_TO_REDO,
    NOTHING_TO_UNDO,
    TimelineService,
    TimelineSnapshot,
    TimelineTransition,
)
from .sqlite_store import SQLiteHistoryStore
from .store import HistoryStore, InMemoryHistoryStore

__all__ = [
    "TimelineService",
    "TimelineSnapshot",
    "TimelineTransition",
    "NOTHING_TO_UNDO",
    "NOTHING_TO_REDO",
    "HistoryStore",
    "InMemoryHistoryStore",
    "SQLiteHistoryStore",
]
