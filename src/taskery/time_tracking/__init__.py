"""Time tracking for Taskery.

This package provides:
- The TimerEngine single-active-timer state machine
- The TimeEntryStore persistence contract with SQLite and REST adapters
- Per-day reports and duration formatting

Example:
    from taskery.time_tracking import ActiveTimerTask, TimerEngine, build_store

    engine = TimerEngine(build_store())
    await engine.reconcile()
    await engine.start(ActiveTimerTask(id="t1", title="Write docs"))
"""

from taskery.time_tracking.engine import TimerEngine, utc_now
from taskery.time_tracking.errors import (
    NotFound,
    StoreError,
    TimeTrackingError,
    Unauthenticated,
)
from taskery.time_tracking.factory import build_store
from taskery.time_tracking.report import (
    DayGroup,
    TimeReport,
    build_report,
    format_clock,
    format_duration,
    format_time,
    group_entries_by_day,
)
from taskery.time_tracking.rest_store import RestTimeEntryStore
from taskery.time_tracking.sqlite_store import SQLiteTimeEntryStore
from taskery.time_tracking.store import TimeEntryStore
from taskery.time_tracking.types import (
    ActiveTimerTask,
    Notice,
    StoppedTimer,
    TaskRef,
    TimeEntry,
    TimerSnapshot,
)

__all__ = [
    # Engine
    "TimerEngine",
    "utc_now",
    # Stores
    "TimeEntryStore",
    "SQLiteTimeEntryStore",
    "RestTimeEntryStore",
    "build_store",
    # Types
    "ActiveTimerTask",
    "Notice",
    "StoppedTimer",
    "TaskRef",
    "TimeEntry",
    "TimerSnapshot",
    # Errors
    "TimeTrackingError",
    "Unauthenticated",
    "StoreError",
    "NotFound",
    # Reports
    "DayGroup",
    "TimeReport",
    "build_report",
    "group_entries_by_day",
    "format_clock",
    "format_duration",
    "format_time",
]
