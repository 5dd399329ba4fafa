"""Tests for the taskery command line."""

import asyncio
from datetime import datetime, timedelta, timezone

import pytest

from taskery import cli
from taskery.config import Settings
from taskery.time_tracking.sqlite_store import SQLiteTimeEntryStore


@pytest.fixture
def local_settings(tmp_path, monkeypatch) -> Settings:
    config = Settings(_env_file=None, database_path=tmp_path / "time.db", local_user_id="me")
    monkeypatch.setattr(cli, "settings", config)
    return config


def _run(argv: list[str]) -> int:
    with pytest.raises(SystemExit) as exc_info:
        cli.main(argv)
    return exc_info.value.code


def _db(config: Settings) -> SQLiteTimeEntryStore:
    return SQLiteTimeEntryStore(config.get_database_path(), user_id="me")


class TestCommands:
    def test_no_command_shows_welcome(self, local_settings, capsys) -> None:
        assert _run([]) == 0
        assert "Quick Start" in capsys.readouterr().out

    def test_task_add(self, local_settings, capsys) -> None:
        assert _run(["task", "add", "Write docs", "--id", "docs", "--project", "p1"]) == 0

        assert "Added task" in capsys.readouterr().out
        task = asyncio.run(_db(local_settings).get_task("docs"))
        assert task.title == "Write docs"
        assert task.project_id == "p1"

    def test_start_unknown_task_fails(self, local_settings, capsys) -> None:
        assert _run(["start", "nope"]) == 1
        assert "Task not found" in capsys.readouterr().out

    def test_start_opens_entry(self, local_settings, capsys) -> None:
        _db(local_settings).add_task("Write docs", task_id="docs")

        assert _run(["start", "docs"]) == 0

        assert "Started timer" in capsys.readouterr().out
        open_entries = asyncio.run(_db(local_settings).find_open_entries_for_user("me"))
        assert [e.task_id for e in open_entries] == ["docs"]

    def test_status_and_stop_resume_open_entry(self, local_settings, capsys) -> None:
        db = _db(local_settings)
        db.add_task("Write docs", task_id="docs")
        started = datetime.now(timezone.utc) - timedelta(seconds=90)
        entry = asyncio.run(db.create_open_entry("docs", "me", started))

        assert _run(["status"]) == 0
        assert "Write docs" in capsys.readouterr().out

        assert _run(["stop"]) == 0
        out = capsys.readouterr().out
        assert "Stopped timer for 'Write docs'" in out

        closed = asyncio.run(db.list_entries_for_task("docs"))
        assert closed[0].id == entry.id
        assert closed[0].duration >= 90

    def test_stop_right_after_start_closes_entry(self, local_settings, capsys) -> None:
        db = _db(local_settings)
        db.add_task("Write docs", task_id="docs")

        assert _run(["start", "docs"]) == 0
        assert _run(["stop"]) == 0

        assert asyncio.run(db.find_open_entries_for_user("me")) == []
        capsys.readouterr()
        assert _run(["status"]) == 0
        assert "No timer running" in capsys.readouterr().out

    def test_restart_same_task_reports_updated_total(self, local_settings, capsys) -> None:
        db = _db(local_settings)
        db.add_task("Write docs", task_id="docs")
        started = datetime.now(timezone.utc) - timedelta(minutes=5)
        asyncio.run(db.create_open_entry("docs", "me", started))

        assert _run(["start", "docs"]) == 0

        out = capsys.readouterr().out
        assert "Stopped timer for 'Write docs' after 5m" in out
        assert "Task total so far: 5m" in out
        open_entries = asyncio.run(db.find_open_entries_for_user("me"))
        assert len(open_entries) == 1

    def test_stop_without_timer(self, local_settings, capsys) -> None:
        assert _run(["stop"]) == 0
        assert "No timer was running" in capsys.readouterr().out

    def test_edit_sets_total(self, local_settings, capsys) -> None:
        db = _db(local_settings)
        db.add_task("Write docs", task_id="docs")

        assert _run(["edit", "docs", "--hours", "1", "--minutes", "30"]) == 0
        assert asyncio.run(db.sum_durations_for_task("docs")) == 5400

        assert _run(["edit", "docs", "--hours", "1"]) == 0
        assert asyncio.run(db.sum_durations_for_task("docs")) == 3600

        assert _run(["edit", "docs", "--hours", "1"]) == 0
        assert "Total unchanged" in capsys.readouterr().out

    def test_edit_rejects_negative(self, local_settings) -> None:
        assert _run(["edit", "docs", "--hours", "-1"]) == 1

    def test_log(self, local_settings, capsys) -> None:
        db = _db(local_settings)
        db.add_task("Write docs", task_id="docs")
        end = datetime.now(timezone.utc)
        asyncio.run(db.insert_closed_entry("docs", "me", end - timedelta(hours=1), end, 3600))

        assert _run(["log"]) == 0

        out = capsys.readouterr().out
        assert "Write docs" in out
        assert "01:00:00" in out

    def test_log_empty(self, local_settings, capsys) -> None:
        assert _run(["log"]) == 0
        assert "No tracked time yet" in capsys.readouterr().out
