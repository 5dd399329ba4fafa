"""Taskery - time tracking for the Taskery project-management app."""

from importlib.metadata import version, PackageNotFoundError

try:
    __version__ = version("taskery")
except PackageNotFoundError:
    __version__ = "0.0.0-dev"

from taskery.time_tracking import TimerEngine, TimeEntryStore

__all__ = ["TimerEngine", "TimeEntryStore"]
