"""Shared fixtures for time tracking tests."""

from __future__ import annotations

import uuid
from datetime import datetime, timedelta, timezone

import pytest

from taskery.time_tracking.errors import NotFound, StoreError
from taskery.time_tracking.store import TimeEntryStore
from taskery.time_tracking.types import TaskRef, TimeEntry

T0 = datetime(2025, 3, 10, 9, 0, 0, tzinfo=timezone.utc)


class FakeClock:
    """Settable wall clock."""

    def __init__(self, now: datetime = T0) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now = self.now + timedelta(seconds=seconds)


class MemoryTimeEntryStore(TimeEntryStore):
    """In-memory store that records calls and can be told to fail."""

    def __init__(self, user_id: str | None = "user-1") -> None:
        self.user_id = user_id
        self.entries: dict[str, TimeEntry] = {}
        self.tasks: dict[str, TaskRef] = {}
        self.fail_on: set[str] = set()
        self.calls: list[tuple[str, tuple]] = []

    def _call(self, name: str, *args) -> None:
        self.calls.append((name, args))
        if name in self.fail_on:
            raise StoreError(f"{name} failed")

    def calls_to(self, name: str) -> list[tuple]:
        return [args for call, args in self.calls if call == name]

    def add_task(self, task_id: str, title: str, project_id: str | None = "p1") -> TaskRef:
        task = TaskRef(id=task_id, title=title, project_id=project_id)
        self.tasks[task_id] = task
        return task

    def add_entry(self, **fields) -> TimeEntry:
        fields.setdefault("id", str(uuid.uuid4()))
        fields.setdefault("user_id", "user-1")
        entry = TimeEntry(**fields)
        self.entries[entry.id] = entry
        return entry

    async def get_user_id(self) -> str | None:
        self._call("get_user_id")
        return self.user_id

    async def create_open_entry(self, task_id, user_id, started_at):
        self._call("create_open_entry", task_id, user_id, started_at)
        return self.add_entry(task_id=task_id, user_id=user_id, started_at=started_at)

    async def close_entry(self, entry_id, ended_at, duration):
        self._call("close_entry", entry_id, ended_at, duration)
        if entry_id not in self.entries:
            raise NotFound(entry_id)
        self.entries[entry_id] = self.entries[entry_id].model_copy(
            update={"ended_at": ended_at, "duration": duration}
        )

    async def find_open_entries_for_user(self, user_id):
        self._call("find_open_entries_for_user", user_id)
        open_entries = [e for e in self.entries.values() if e.user_id == user_id and e.is_open]
        return sorted(open_entries, key=lambda e: e.started_at, reverse=True)

    async def sum_durations_for_task(self, task_id):
        self._call("sum_durations_for_task", task_id)
        return sum(e.duration or 0 for e in self.entries.values() if e.task_id == task_id)

    async def insert_closed_entry(self, task_id, user_id, started_at, ended_at, duration):
        self._call("insert_closed_entry", task_id, user_id, started_at, ended_at, duration)
        return self.add_entry(
            task_id=task_id,
            user_id=user_id,
            started_at=started_at,
            ended_at=ended_at,
            duration=duration,
        )

    async def update_duration(self, entry_id, duration):
        self._call("update_duration", entry_id, duration)
        if entry_id not in self.entries:
            raise NotFound(entry_id)
        self.entries[entry_id] = self.entries[entry_id].model_copy(update={"duration": duration})

    async def get_task(self, task_id):
        self._call("get_task", task_id)
        return self.tasks.get(task_id)

    async def list_entries_for_task(self, task_id):
        self._call("list_entries_for_task", task_id)
        entries = [e for e in self.entries.values() if e.task_id == task_id]
        return sorted(entries, key=lambda e: e.started_at, reverse=True)

    async def list_entries_for_user(self, user_id, limit=100):
        self._call("list_entries_for_user", user_id, limit)
        entries = [e for e in self.entries.values() if e.user_id == user_id]
        return sorted(entries, key=lambda e: e.started_at, reverse=True)[:limit]


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def store() -> MemoryTimeEntryStore:
    store = MemoryTimeEntryStore()
    store.add_task("t1", "Write docs")
    store.add_task("t2", "Review PR")
    return store
