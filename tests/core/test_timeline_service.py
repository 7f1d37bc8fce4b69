"""Tests for the per-user undo/redo timeline."""

from __future__ import annotations

import asyncio
import gc

import pytest
import pytest_asyncio

from resume_tailor.errors import StoreUnavailable, ValidationError
from resume_tailor.history import (
    NOTHING_TO_REDO,
    NOTHING_TO_UNDO,
    InMemoryHistoryStore,
    SQLiteHistoryStore,
    TimelineService,
)
from resume_tailor.models import TimelineEntry


def entry(entry_id: str, version_id: str, user_id: str = "u1", **kwargs) -> TimelineEntry:
    return TimelineEntry(id=entry_id, user_id=user_id, resume_version_id=version_id, **kwargs)


class FlakyStore(InMemoryHistoryStore):
    """In-memory store that fails on demand."""

    def __init__(self):
        super().__init__()
        self.fail = False

    async def append_entry(self, entry, discard_ids):
        if self.fail:
            raise StoreUnavailable("disk full")
        await super().append_entry(entry, discard_ids)

    async def set_cursor(self, user_id, entry_id):
        if self.fail:
            raise OSError("connection reset")
        await super().set_cursor(user_id, entry_id)


@pytest_asyncio.fixture
async def service():
    svc = TimelineService(InMemoryHistoryStore())
    await svc.start()
    yield svc
    await svc.stop()


# ---------------------------------------------------------------------------
# Save / undo / redo
# ---------------------------------------------------------------------------


class TestUndoRedo:
    @pytest.mark.asyncio
    async def test_save_undo_redo_end_to_end(self, service):
        await service.save(entry("e1", "v1"))
        await service.save(entry("e2", "v2"))

        undone = await service.undo("u1")
        assert undone.changed
        assert undone.current.resume_version_id == "v1"
        snapshot = await service.get_timeline("u1")
        assert [e.resume_version_id for e in snapshot.future] == ["v2"]

        redone = await service.redo("u1")
        assert redone.current.resume_version_id == "v2"
        snapshot = await service.get_timeline("u1")
        assert snapshot.future == ()
        assert [e.resume_version_id for e in snapshot.past] == ["v1"]

    @pytest.mark.asyncio
    async def test_undo_then_redo_restores_exact_current(self, service):
        for i in range(1, 4):
            await service.save(entry(f"e{i}", f"v{i}", notes=f"run {i}"))
        before = (await service.get_timeline("u1")).current

        await service.undo("u1")
        after = (await service.redo("u1")).current
        assert after == before

    @pytest.mark.asyncio
    async def test_boundaries_are_no_ops(self, service):
        result = await service.undo("u1")
        assert not result.changed
        assert result.reason == NOTHING_TO_UNDO

        await service.save(entry("e1", "v1"))
        assert (await service.undo("u1")).reason == NOTHING_TO_UNDO
        result = await service.redo("u1")
        assert result.reason == NOTHING_TO_REDO
        assert result.current.id == "e1"

    @pytest.mark.asyncio
    async def test_save_discards_future(self, service):
        await service.save(entry("e1", "v1"))
        await service.save(entry("e2", "v2"))
        await service.undo("u1")
        await service.save(entry("e3", "v3"))

        snapshot = await service.get_timeline("u1")
        assert snapshot.future == ()
        assert [e.id for e in snapshot.past] == ["e1"]
        assert snapshot.current.id == "e3"
        assert (await service.redo("u1")).reason == NOTHING_TO_REDO

    @pytest.mark.asyncio
    async def test_future_is_most_recently_undone_first(self, service):
        for i in range(1, 4):
            await service.save(entry(f"e{i}", f"v{i}"))
        await service.undo("u1")
        await service.undo("u1")
        snapshot = await service.get_timeline("u1")
        assert [e.id for e in snapshot.future] == ["e2", "e3"]
        assert snapshot.current.id == "e1"

    @pytest.mark.asyncio
    async def test_users_are_independent(self, service):
        await service.save(entry("a1", "va1", user_id="alice"))
        await service.save(entry("a2", "va2", user_id="alice"))
        await service.save(entry("b1", "vb1", user_id="bob"))

        await service.undo("alice")
        assert (await service.get_timeline("bob")).current.id == "b1"
        assert (await service.get_timeline("alice")).current.id == "a1"

    @pytest.mark.asyncio
    async def test_blank_user_is_rejected(self, service):
        with pytest.raises(ValidationError):
            await service.undo("  ")


class TestUndoTo:
    @pytest.mark.asyncio
    async def test_undo_to_version(self, service):
        for i in range(1, 5):
            await service.save(entry(f"e{i}", f"v{i}"))

        result = await service.undo_to("u1", "v2")
        assert result.changed
        assert result.current.resume_version_id == "v2"
        snapshot = await service.get_timeline("u1")
        assert [e.id for e in snapshot.past] == ["e1"]
        assert [e.id for e in snapshot.future] == ["e3", "e4"]

    @pytest.mark.asyncio
    async def test_undo_to_matches_sequential_undos(self, service):
        other = TimelineService(InMemoryHistoryStore())
        entries = [entry(f"e{i}", f"v{i}") for i in range(1, 5)]
        for svc in (service, other):
            for item in entries:
                await svc.save(item)
        await service.undo_to("u1", "v1")
        for _ in range(3):
            await other.undo("u1")
        assert (await service.get_timeline("u1")) == (await other.get_timeline("u1"))

    @pytest.mark.asyncio
    async def test_missing_id_is_a_validation_error(self, service):
        await service.save(entry("e1", "v1"))
        with pytest.raises(ValidationError):
            await service.undo_to("u1", None)
        with pytest.raises(ValidationError):
            await service.undo_to("u1", "")

    @pytest.mark.asyncio
    async def test_unknown_id_is_a_validation_error(self, service):
        await service.save(entry("e1", "v1"))
        await service.save(entry("e2", "v2"))
        with pytest.raises(ValidationError):
            await service.undo_to("u1", "v9")
        assert (await service.get_timeline("u1")).current.id == "e2"

    @pytest.mark.asyncio
    async def test_already_current(self, service):
        await service.save(entry("e1", "v1"))
        result = await service.undo_to("u1", "v1")
        assert not result.changed
        assert result.reason == "already_current"


# ---------------------------------------------------------------------------
# Durability
# ---------------------------------------------------------------------------


class TestDurability:
    @pytest.mark.asyncio
    async def test_store_failure_leaves_mirror_intact(self):
        store = FlakyStore()
        service = TimelineService(store)
        await service.save(entry("e1", "v1"))
        await service.save(entry("e2", "v2"))

        store.fail = True
        with pytest.raises(StoreUnavailable):
            await service.save(entry("e3", "v3"))
        with pytest.raises(StoreUnavailable):
            await service.undo("u1")

        snapshot = await service.get_timeline("u1")
        assert snapshot.current.id == "e2"
        assert [e.id for e in snapshot.past] == ["e1"]

        store.fail = False
        assert (await service.undo("u1")).current.id == "e1"

    @pytest.mark.asyncio
    async def test_rebuild_from_store_after_restart(self):
        store = InMemoryHistoryStore()
        first = TimelineService(store)
        for i in range(1, 4):
            await first.save(entry(f"e{i}", f"v{i}"))
        await first.undo("u1")

        second = TimelineService(store)
        snapshot = await second.get_timeline("u1")
        assert snapshot.current.id == "e2"
        assert [e.id for e in snapshot.past] == ["e1"]
        assert [e.id for e in snapshot.future] == ["e3"]
        assert (await second.redo("u1")).current.id == "e3"

    @pytest.mark.asyncio
    async def test_rebuild_ignores_discarded_entries(self):
        store = InMemoryHistoryStore()
        first = TimelineService(store)
        await first.save(entry("e1", "v1"))
        await first.save(entry("e2", "v2"))
        await first.undo("u1")
        await first.save(entry("e3", "v3"))

        snapshot = await TimelineService(store).get_timeline("u1")
        assert [e.id for e in snapshot.past] == ["e1"]
        assert snapshot.current.id == "e3"
        assert snapshot.future == ()

    @pytest.mark.asyncio
    async def test_clear_timeline(self, service):
        await service.save(entry("e1", "v1"))
        await service.clear_timeline("u1")
        snapshot = await service.get_timeline("u1")
        assert snapshot.current is None
        assert (await TimelineService(service.store).get_timeline("u1")).current is None

    @pytest.mark.asyncio
    async def test_idle_users_leave_no_state_behind(self, service):
        for i in range(50):
            user = f"user{i}"
            await service.save(entry(f"e{i}", f"v{i}", user_id=user))
            await service.clear_timeline(user)
        gc.collect()
        assert len(service._locks) == 0
        assert service._timelines == {}
        assert (await service.get_timeline("user0")).current is None


# ---------------------------------------------------------------------------
# Concurrency
# ---------------------------------------------------------------------------


class TestConcurrency:
    @pytest.mark.asyncio
    async def test_concurrent_saves_for_one_user_are_serialized(self, service):
        await asyncio.gather(*(service.save(entry(f"e{i}", f"v{i}")) for i in range(20)))
        snapshot = await service.get_timeline("u1")
        assert len(snapshot.past) == 19
        assert len({e.id for e in snapshot.past} | {snapshot.current.id}) == 20

    @pytest.mark.asyncio
    async def test_concurrent_undos_never_lose_entries(self, service):
        for i in range(10):
            await service.save(entry(f"e{i}", f"v{i}"))
        await asyncio.gather(*(service.undo("u1") for _ in range(5)))
        snapshot = await service.get_timeline("u1")
        assert len(snapshot.past) == 4
        assert snapshot.current.id == "e4"
        assert [e.id for e in snapshot.future] == ["e5", "e6", "e7", "e8", "e9"]


# ---------------------------------------------------------------------------
# Versions and apply links
# ---------------------------------------------------------------------------


class TestVersions:
    @pytest.mark.asyncio
    async def test_commit_version_copies_content(self, service):
        resume = {"summary": "v1"}
        version = await service.commit_version("u1", resume)
        resume["summary"] = "mutated"
        stored = await service.get_version(version.id)
        assert stored.resume_json == {"summary": "v1"}
        assert version.id.startswith("ver_")

    @pytest.mark.asyncio
    async def test_unknown_version(self, service):
        assert await service.get_version("ver_missing") is None

    @pytest.mark.asyncio
    async def test_link_apply_updates_current(self, service):
        await service.save(entry("e1", "v1"))
        updated = await service.link_apply("e1", "2026-01-01T00:00:00+00:00")
        assert updated.applied_at == "2026-01-01T00:00:00+00:00"
        assert (await service.get_timeline("u1")).current.applied_at == updated.applied_at

    @pytest.mark.asyncio
    async def test_link_apply_unknown_entry(self, service):
        with pytest.raises(ValidationError):
            await service.link_apply("nope")


@pytest.mark.asyncio
async def test_sqlite_backed_service_survives_restart(tmp_path):
    db_path = tmp_path / "history.db"
    first = TimelineService(SQLiteHistoryStore(db_path))
    await first.start()
    await first.save(entry("e1", "v1"))
    await first.save(entry("e2", "v2"))
    await first.undo("u1")
    await first.stop()

    second = TimelineService(SQLiteHistoryStore(db_path))
    await second.start()
    try:
        snapshot = await second.get_timeline("u1")
        assert snapshot.current.id == "e1"
        assert [e.id for e in snapshot.future] == ["e2"]
    finally:
        await second.stop()
