"""Tests for time reports and duration formatting."""

from datetime import datetime, timedelta, timezone

import pytest

from taskery.time_tracking.report import (
    build_report,
    format_clock,
    format_duration,
    format_time,
    group_entries_by_day,
)
from taskery.time_tracking.types import TimeEntry

UTC = timezone.utc


def _entry(entry_id: str, started_at: datetime, duration: int | None) -> TimeEntry:
    ended_at = started_at + timedelta(seconds=duration) if duration is not None else None
    return TimeEntry(
        id=entry_id,
        task_id="t1",
        user_id="u1",
        started_at=started_at,
        ended_at=ended_at,
        duration=duration,
    )


class TestFormatting:
    @pytest.mark.parametrize("seconds, expected", [
        (0, "00:00"),
        (75, "01:15"),
        (3599, "59:59"),
        (3600, "01:00:00"),
        (7290, "02:01:30"),
    ])
    def test_format_time(self, seconds, expected) -> None:
        assert format_time(seconds) == expected

    def test_format_clock_always_has_hours(self) -> None:
        assert format_clock(75) == "00:01:15"
        assert format_clock(36000) == "10:00:00"

    @pytest.mark.parametrize("seconds, expected", [
        (-5, "0s"),
        (0, "0s"),
        (45, "45s"),
        (2712, "45m 12s"),
        (4980, "1h 23m"),
        (7200, "2h"),
        (3661, "1h 1m"),
    ])
    def test_format_duration(self, seconds, expected) -> None:
        assert format_duration(seconds) == expected


class TestGrouping:
    def test_groups_newest_day_first(self) -> None:
        entries = [
            _entry("c", datetime(2025, 3, 11, 15, 0, tzinfo=UTC), 600),
            _entry("b", datetime(2025, 3, 10, 16, 0, tzinfo=UTC), 300),
            _entry("a", datetime(2025, 3, 10, 9, 0, tzinfo=UTC), 120),
        ]

        groups = group_entries_by_day(entries, UTC)

        assert [g.day.isoformat() for g in groups] == ["2025-03-11", "2025-03-10"]
        assert [e.id for e in groups[1].entries] == ["b", "a"]
        assert groups[1].total_seconds == 420

    def test_day_boundaries_follow_timezone(self) -> None:
        late = _entry("late", datetime(2025, 3, 10, 23, 30, tzinfo=UTC), 60)
        tokyo = timezone(timedelta(hours=9))

        assert group_entries_by_day([late], UTC)[0].day.isoformat() == "2025-03-10"
        assert group_entries_by_day([late], tokyo)[0].day.isoformat() == "2025-03-11"

    def test_report_totals(self) -> None:
        entries = [
            _entry("open", datetime(2025, 3, 11, 8, 0, tzinfo=UTC), None),
            _entry("manual", datetime(2025, 3, 11, 7, 0, tzinfo=UTC), -600),
            _entry("a", datetime(2025, 3, 10, 9, 0, tzinfo=UTC), 3600),
        ]

        report = build_report(entries, UTC)

        assert report.total_seconds == 3000
        assert report.entry_count == 3
        assert report.days[0].total_seconds == -600

    def test_empty_report(self) -> None:
        report = build_report([], UTC)
        assert report.days == []
        assert report.total_seconds == 0
