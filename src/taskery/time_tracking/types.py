"""Type definitions for time tracking.

This module defines the Pydantic models shared by the stores, the timer
engine and the reporting helpers.
"""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field, field_validator


class TimeEntry(BaseModel):
    """A persisted interval of work on a task.

    An entry is open while ``ended_at`` is unset. ``ended_at`` and
    ``duration`` are set together, exactly once, when the entry is closed.

    Attributes:
        id: Identifier assigned by the store.
        task_id: Task being timed.
        user_id: User who started the entry.
        started_at: When timing began.
        ended_at: When timing ended, if closed.
        duration: Seconds recorded for the entry, if closed.
    """

    id: str = Field(..., description="Store-assigned entry identifier")
    task_id: str = Field(..., description="Task being timed")
    user_id: str = Field(..., description="User who started the entry")
    started_at: datetime = Field(..., description="Start instant (timezone-aware)")
    ended_at: datetime | None = Field(default=None, description="End instant")
    duration: int | None = Field(default=None, description="Recorded seconds")

    @field_validator("started_at", "ended_at")
    @classmethod
    def _require_timezone(cls, value: datetime | None) -> datetime | None:
        if value is not None and value.tzinfo is None:
            raise ValueError("timestamps must be timezone-aware")
        return value

    @property
    def is_open(self) -> bool:
        """Check if the entry is still being timed."""
        return self.ended_at is None


class TaskRef(BaseModel):
    """The task details the timer needs for display."""

    id: str
    title: str
    project_id: str | None = None


class ActiveTimerTask(BaseModel):
    """Descriptor of the task a timer runs for.

    Attributes:
        id: Task identifier.
        title: Task title for display.
        project_id: Project the task belongs to.
        total_time: Seconds already accumulated on the task before this session.
    """

    id: str
    title: str
    project_id: str | None = None
    total_time: int = 0


class StoppedTimer(BaseModel):
    """Result of stopping a timer.

    Attributes:
        task_id: Task the timer ran for.
        elapsed_seconds: Seconds timed in the stopped session.
        new_total_time: Baseline plus the session's elapsed seconds.
        persisted: False when closing the entry in the store failed.
    """

    task_id: str
    elapsed_seconds: int
    new_total_time: int
    persisted: bool = True


class TimerSnapshot(BaseModel):
    """Read-only view of the timer engine's state."""

    active_task: ActiveTimerTask | None = None
    active_entry_id: str | None = None
    elapsed_seconds: int = 0
    total_elapsed: int = 0
    running: bool = False
    restoring: bool = False


class Notice(BaseModel):
    """A transient message for the user (toast-equivalent)."""

    level: Literal["info", "success", "error"]
    message: str
