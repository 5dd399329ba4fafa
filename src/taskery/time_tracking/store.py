"""Time entry store interface."""

from abc import ABC, abstractmethod
from datetime import datetime

from taskery.time_tracking.types import TaskRef, TimeEntry


class TimeEntryStore(ABC):
    """Abstract base class for time entry persistence.

    Implementations should:
    - Raise Unauthenticated when a call needs a user and none is signed in
    - Raise NotFound for unknown entry ids
    - Raise StoreError for any other backend failure
    """

    @abstractmethod
    async def get_user_id(self) -> str | None:
        """Get the signed-in user's id, or None when there is no session."""
        ...

    @abstractmethod
    async def create_open_entry(
        self,
        task_id: str,
        user_id: str,
        started_at: datetime,
    ) -> TimeEntry:
        """Create an open entry (no end, no duration).

        Args:
            task_id: Task being timed
            user_id: User starting the timer
            started_at: Start instant

        Returns:
            The created entry with its store-assigned id
        """
        ...

    @abstractmethod
    async def close_entry(self, entry_id: str, ended_at: datetime, duration: int) -> None:
        """Close an open entry.

        Args:
            entry_id: Entry to close
            ended_at: End instant
            duration: Seconds to record
        """
        ...

    @abstractmethod
    async def find_open_entries_for_user(self, user_id: str) -> list[TimeEntry]:
        """Get the user's open entries, most recently started first.

        There should be at most one; callers handle the corrupt case.
        """
        ...

    @abstractmethod
    async def sum_durations_for_task(self, task_id: str) -> int:
        """Sum the recorded durations of a task's entries."""
        ...

    @abstractmethod
    async def insert_closed_entry(
        self,
        task_id: str,
        user_id: str,
        started_at: datetime,
        ended_at: datetime,
        duration: int,
    ) -> TimeEntry:
        """Insert an already-closed entry (used for manual corrections)."""
        ...

    @abstractmethod
    async def update_duration(self, entry_id: str, duration: int) -> None:
        """Overwrite the duration of a single entry."""
        ...

    @abstractmethod
    async def get_task(self, task_id: str) -> TaskRef | None:
        """Get display details for a task, or None if it does not exist."""
        ...

    @abstractmethod
    async def list_entries_for_task(self, task_id: str) -> list[TimeEntry]:
        """Get all entries of a task, most recently started first."""
        ...

    @abstractmethod
    async def list_entries_for_user(self, user_id: str, limit: int = 100) -> list[TimeEntry]:
        """Get a user's entries, most recently started first."""
        ...

    async def aclose(self) -> None:
        """Release any resources held by the store."""
        return None
