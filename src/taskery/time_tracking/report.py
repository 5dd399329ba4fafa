"""Time tracking reports and duration formatting."""

from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import date, tzinfo

from taskery.time_tracking.types import TimeEntry


def format_time(seconds: int) -> str:
    """Format seconds as a stopwatch reading.

    Returns:
        "MM:SS", or "HH:MM:SS" once at least an hour has passed
    """
    hours = seconds // 3600
    minutes = (seconds % 3600) // 60
    secs = seconds % 60
    if hours > 0:
        return f"{hours:02d}:{minutes:02d}:{secs:02d}"
    return f"{minutes:02d}:{secs:02d}"


def format_clock(seconds: int) -> str:
    """Format seconds as "HH:MM:SS"."""
    hours = seconds // 3600
    minutes = (seconds % 3600) // 60
    secs = seconds % 60
    return f"{hours:02d}:{minutes:02d}:{secs:02d}"


def format_duration(seconds: int) -> str:
    """Compact duration for summaries: "1h 23m", "45m 12s" or "2h".

    Seconds are dropped from an hour upwards. Negative input reads as "0s".
    """
    hours, rest = divmod(max(seconds, 0), 3600)
    minutes, secs = divmod(rest, 60)
    units = [(hours, "h"), (minutes, "m")] if hours else [(minutes, "m"), (secs, "s")]
    return " ".join(f"{value}{unit}" for value, unit in units if value) or "0s"


@dataclass
class DayGroup:
    """Entries started on one calendar day."""

    day: date
    entries: list[TimeEntry] = field(default_factory=list)

    @property
    def total_seconds(self) -> int:
        return sum(entry.duration or 0 for entry in self.entries)


@dataclass
class TimeReport:
    """Entries grouped per day, newest day first."""

    days: list[DayGroup]

    @property
    def total_seconds(self) -> int:
        return sum(day.total_seconds for day in self.days)

    @property
    def entry_count(self) -> int:
        return sum(len(day.entries) for day in self.days)


def group_entries_by_day(entries: Iterable[TimeEntry], tz: tzinfo) -> list[DayGroup]:
    """Group entries by the local calendar day they started on.

    Args:
        entries: Time entries in display order
        tz: Timezone that defines day boundaries

    Returns:
        Groups ordered newest day first; entry order is kept within a day
    """
    groups: dict[date, DayGroup] = {}
    for entry in entries:
        day = entry.started_at.astimezone(tz).date()
        groups.setdefault(day, DayGroup(day=day)).entries.append(entry)
    return sorted(groups.values(), key=lambda g: g.day, reverse=True)


def build_report(entries: Iterable[TimeEntry], tz: tzinfo) -> TimeReport:
    """Build the per-day time report for a list of entries."""
    return TimeReport(days=group_entries_by_day(entries, tz))
