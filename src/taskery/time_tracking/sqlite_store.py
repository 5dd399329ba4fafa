"""SQLite storage for time tracking.

Local single-user store for time entries and the tasks they belong to.
"""

import logging
import sqlite3
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from taskery.time_tracking.errors import NotFound, StoreError
from taskery.time_tracking.store import TimeEntryStore
from taskery.time_tracking.types import TaskRef, TimeEntry

logger = logging.getLogger(__name__)


def _to_text(value: datetime | None) -> str | None:
    if value is None:
        return None
    return value.astimezone(timezone.utc).isoformat(timespec="microseconds")


def _from_text(value: str | None) -> datetime | None:
    if value is None:
        return None
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _row_to_entry(row: sqlite3.Row) -> TimeEntry:
    return TimeEntry(
        id=row["id"],
        task_id=row["task_id"],
        user_id=row["user_id"],
        started_at=_from_text(row["started_at"]),
        ended_at=_from_text(row["ended_at"]),
        duration=row["duration"],
    )


class SQLiteTimeEntryStore(TimeEntryStore):
    """SQLite storage for time tracking data."""

    def __init__(self, db_path: Path | str, user_id: str | None = "local-user"):
        """Initialize the time tracking database.

        Args:
            db_path: Path to SQLite database file
            user_id: User recorded as signed in. None simulates a signed-out session.
        """
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self.user_id = user_id

        self._init_db()

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        return conn

    def _init_db(self) -> None:
        """Initialize database schema."""
        with self._connect() as conn:
            conn.executescript("""
                CREATE TABLE IF NOT EXISTS tasks (
                    id TEXT PRIMARY KEY,
                    title TEXT NOT NULL,
                    project_id TEXT,
                    created_at TEXT DEFAULT CURRENT_TIMESTAMP
                );

                -- Open entries have NULL ended_at and duration
                CREATE TABLE IF NOT EXISTS time_entries (
                    id TEXT PRIMARY KEY,
                    task_id TEXT NOT NULL,
                    user_id TEXT NOT NULL,
                    started_at TEXT NOT NULL,
                    ended_at TEXT,
                    duration INTEGER
                );
                CREATE INDEX IF NOT EXISTS idx_entries_task ON time_entries(task_id);
                CREATE INDEX IF NOT EXISTS idx_entries_user ON time_entries(user_id, ended_at);
            """)

    def _execute(self, query: str, params: tuple[Any, ...] = ()) -> list[sqlite3.Row]:
        try:
            with self._connect() as conn:
                return conn.execute(query, params).fetchall()
        except sqlite3.Error as e:
            logger.error(f"SQLite error: {e}")
            raise StoreError(f"Database error: {e}") from e

    def _update(self, query: str, params: tuple[Any, ...]) -> int:
        """Run an UPDATE and return the number of rows it matched."""
        try:
            with self._connect() as conn:
                return conn.execute(query, params).rowcount
        except sqlite3.Error as e:
            logger.error(f"SQLite error: {e}")
            raise StoreError(f"Database error: {e}") from e

    async def get_user_id(self) -> str | None:
        return self.user_id

    def add_task(self, title: str, project_id: str | None = None, task_id: str | None = None) -> TaskRef:
        """Register a task so timers can show its title.

        Args:
            title: Task title
            project_id: Optional project the task belongs to
            task_id: Explicit id (a uuid4 is generated when omitted)

        Returns:
            The stored task
        """
        task = TaskRef(id=task_id or str(uuid.uuid4()), title=title, project_id=project_id)
        self._execute(
            "INSERT OR REPLACE INTO tasks (id, title, project_id) VALUES (?, ?, ?)",
            (task.id, task.title, task.project_id),
        )
        return task

    async def get_task(self, task_id: str) -> TaskRef | None:
        rows = self._execute("SELECT id, title, project_id FROM tasks WHERE id = ?", (task_id,))
        if not rows:
            return None
        return TaskRef(**dict(rows[0]))

    async def create_open_entry(self, task_id: str, user_id: str, started_at: datetime) -> TimeEntry:
        entry = TimeEntry(
            id=str(uuid.uuid4()),
            task_id=task_id,
            user_id=user_id,
            started_at=started_at,
        )
        self._execute(
            "INSERT INTO time_entries (id, task_id, user_id, started_at) VALUES (?, ?, ?, ?)",
            (entry.id, entry.task_id, entry.user_id, _to_text(entry.started_at)),
        )
        return entry

    async def close_entry(self, entry_id: str, ended_at: datetime, duration: int) -> None:
        matched = self._update(
            "UPDATE time_entries SET ended_at = ?, duration = ? WHERE id = ?",
            (_to_text(ended_at), duration, entry_id),
        )
        if not matched:
            raise NotFound(entry_id)

    async def find_open_entries_for_user(self, user_id: str) -> list[TimeEntry]:
        rows = self._execute(
            """SELECT * FROM time_entries
               WHERE user_id = ? AND ended_at IS NULL
               ORDER BY started_at DESC""",
            (user_id,),
        )
        return [_row_to_entry(row) for row in rows]

    async def sum_durations_for_task(self, task_id: str) -> int:
        rows = self._execute(
            "SELECT COALESCE(SUM(duration), 0) AS total FROM time_entries "
            "WHERE task_id = ? AND duration IS NOT NULL",
            (task_id,),
        )
        return int(rows[0]["total"])

    async def insert_closed_entry(
        self,
        task_id: str,
        user_id: str,
        started_at: datetime,
        ended_at: datetime,
        duration: int,
    ) -> TimeEntry:
        entry = TimeEntry(
            id=str(uuid.uuid4()),
            task_id=task_id,
            user_id=user_id,
            started_at=started_at,
            ended_at=ended_at,
            duration=duration,
        )
        self._execute(
            """INSERT INTO time_entries (id, task_id, user_id, started_at, ended_at, duration)
               VALUES (?, ?, ?, ?, ?, ?)""",
            (
                entry.id,
                entry.task_id,
                entry.user_id,
                _to_text(entry.started_at),
                _to_text(entry.ended_at),
                entry.duration,
            ),
        )
        return entry

    async def update_duration(self, entry_id: str, duration: int) -> None:
        matched = self._update(
            "UPDATE time_entries SET duration = ? WHERE id = ?",
            (duration, entry_id),
        )
        if not matched:
            raise NotFound(entry_id)

    async def list_entries_for_task(self, task_id: str) -> list[TimeEntry]:
        rows = self._execute(
            "SELECT * FROM time_entries WHERE task_id = ? ORDER BY started_at DESC",
            (task_id,),
        )
        return [_row_to_entry(row) for row in rows]

    async def list_entries_for_user(self, user_id: str, limit: int = 100) -> list[TimeEntry]:
        rows = self._execute(
            "SELECT * FROM time_entries WHERE user_id = ? ORDER BY started_at DESC LIMIT ?",
            (user_id, limit),
        )
        return [_row_to_entry(row) for row in rows]
