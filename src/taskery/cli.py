"""Command-line interface for Taskery time tracking.

CONCEPTS:
---------
- TASK:  Something you work on. Time is tracked per task.

- TIMER: At most one timer runs at a time. Starting a timer on another
         task stops the running one first.

- ENTRY: One tracked interval. An entry is opened when a timer starts and
         closed when it stops. An open entry survives the process exiting:
         the next command picks it up again, so `taskery start` and
         `taskery stop` can run in different shells.
"""

import argparse
import asyncio
import logging
import sys
from datetime import datetime
from typing import NoReturn

from rich.console import Console
from rich.live import Live
from rich.logging import RichHandler
from rich.markdown import Markdown
from rich.table import Table

from taskery import __version__
from taskery.config import settings
from taskery.time_tracking import (
    ActiveTimerTask,
    Notice,
    SQLiteTimeEntryStore,
    TimeEntryStore,
    TimerEngine,
    TimerSnapshot,
    build_report,
    build_store,
    format_clock,
    format_duration,
    format_time,
)

console = Console()

NOTICE_STYLES = {
    "info": "blue",
    "success": "green",
    "error": "red",
}

# Help text shown when no command is given
WELCOME_TEXT = f"""
# Taskery v{__version__}

Time tracking for Taskery tasks.

## Quick Start

```bash
taskery task add "Write docs" --id docs    # Register a task (local store)
taskery start docs                         # Start timing it
taskery status                             # What is running?
taskery stop                               # Stop and save the time
taskery log                                # Daily history
```

Set `TASKERY_STORE_BACKEND=rest` with `TASKERY_STORE_URL`, `TASKERY_STORE_API_KEY`
and `TASKERY_ACCESS_TOKEN` to track against the hosted backend.
"""


def setup_logging(verbose: bool = False) -> None:
    """Configure logging."""
    level = logging.DEBUG if verbose else logging.WARNING
    fmt = "%(name)s: %(message)s" if verbose else "%(message)s"
    logging.basicConfig(
        level=level,
        format=fmt,
        handlers=[RichHandler(rich_tracebacks=True, console=console, show_path=verbose)],
    )


def print_notice(notice: Notice) -> None:
    """Print an engine notice."""
    style = NOTICE_STYLES.get(notice.level, "white")
    console.print(f"[{style}]{notice.message}[/{style}]")


def _make_engine(store: TimeEntryStore) -> TimerEngine:
    engine = TimerEngine(store, tick_interval=settings.tick_interval_seconds)
    engine.set_on_notice(print_notice)
    return engine


def _open_store() -> TimeEntryStore:
    try:
        return build_store(settings)
    except ValueError as e:
        console.print(f"[red]Error:[/red] {e}")
        sys.exit(1)


def _render_snapshot(snapshot: TimerSnapshot) -> str:
    if snapshot.active_task is None:
        return "[yellow]No timer running.[/yellow]"
    state = "[green]running[/green]" if snapshot.running else "[yellow]paused[/yellow]"
    return (
        f"[bold]{snapshot.active_task.title}[/bold] ({state})\n"
        f"  Session: {format_time(snapshot.elapsed_seconds)}\n"
        f"  Task total: {format_clock(snapshot.total_elapsed)}"
    )


def cmd_task_add(args: argparse.Namespace) -> None:
    """Register a task in the local store."""
    store = _open_store()
    if not isinstance(store, SQLiteTimeEntryStore):
        console.print("[red]Error:[/red] Tasks can only be added to the local store")
        sys.exit(1)

    task = store.add_task(args.title, project_id=args.project, task_id=args.id)
    console.print(f"[green]Added task:[/green] {task.title}")
    console.print(f"  ID: {task.id}")


def cmd_start(args: argparse.Namespace) -> None:
    """Start a timer on a task."""

    async def _run() -> bool:
        store = _open_store()
        try:
            task = await store.get_task(args.task_id)
            if task is None:
                console.print(f"[red]Task not found:[/red] {args.task_id}")
                return False
            async with _make_engine(store) as engine:
                await engine.reconcile()
                if engine.active_task is not None:
                    previous = engine.active_task.title
                    result = await engine.stop(close_empty=True)
                    console.print(f"Stopped timer for '{previous}' after {format_duration(result.elapsed_seconds)}.")
                total = await store.sum_durations_for_task(task.id)

                entry = await engine.start(ActiveTimerTask(
                    id=task.id,
                    title=task.title,
                    project_id=task.project_id,
                    total_time=total,
                ))
                if entry is None:
                    return False
                console.print(f"[green]Started timer:[/green] {task.title}")
                console.print(f"  Task total so far: {format_duration(total)}")
                return True
        finally:
            await store.aclose()

    if not asyncio.run(_run()):
        sys.exit(1)


def cmd_stop(args: argparse.Namespace) -> None:
    """Stop the running timer."""

    async def _run() -> bool:
        store = _open_store()
        try:
            async with _make_engine(store) as engine:
                await engine.reconcile()
                title = engine.active_task.title if engine.active_task else None
                # Timer state does not outlive this process
                result = await engine.stop(close_empty=True)
                if result is None:
                    console.print("[yellow]No timer was running.[/yellow]")
                    return True
                console.print(f"Stopped timer for '{title}' after {format_duration(result.elapsed_seconds)}.")
                console.print(f"  Task total: {format_duration(result.new_total_time)}")
                return result.persisted
        finally:
            await store.aclose()

    if not asyncio.run(_run()):
        sys.exit(1)


def cmd_status(args: argparse.Namespace) -> None:
    """Show the running timer."""

    async def _run() -> None:
        store = _open_store()
        try:
            async with _make_engine(store) as engine:
                engine.set_on_notice(lambda notice: None)
                await engine.reconcile()
                console.print(_render_snapshot(engine.snapshot()))
        finally:
            await store.aclose()

    asyncio.run(_run())


def cmd_watch(args: argparse.Namespace) -> None:
    """Show the running timer live until interrupted."""

    async def _run() -> None:
        store = _open_store()
        try:
            async with _make_engine(store) as engine:
                engine.set_on_notice(lambda notice: None)
                await engine.reconcile()
                if engine.active_task is None:
                    console.print(_render_snapshot(engine.snapshot()))
                    return

                stopped = asyncio.Event()
                with Live(_render_snapshot(engine.snapshot()), console=console) as live:
                    engine.set_on_tick(lambda snap: live.update(_render_snapshot(snap)))
                    await stopped.wait()
        finally:
            await store.aclose()

    try:
        asyncio.run(_run())
    except KeyboardInterrupt:
        console.print("[dim]Stopped watching. The timer keeps running.[/dim]")


def cmd_edit(args: argparse.Namespace) -> None:
    """Set a task's total tracked time."""

    async def _run() -> bool:
        store = _open_store()
        try:
            current = await store.sum_durations_for_task(args.task_id)
            if current == args.hours * 3600 + args.minutes * 60:
                console.print("[yellow]Total unchanged.[/yellow]")
                return True
            async with _make_engine(store) as engine:
                entry = await engine.set_task_total(
                    args.task_id,
                    current_total=current,
                    hours=args.hours,
                    minutes=args.minutes,
                )
            return entry is not None
        finally:
            await store.aclose()

    if args.hours < 0 or args.minutes < 0:
        console.print("[red]Error:[/red] Hours and minutes must not be negative")
        sys.exit(1)
    if not asyncio.run(_run()):
        sys.exit(1)


def cmd_log(args: argparse.Namespace) -> None:
    """Show tracked time grouped by day."""

    async def _run() -> bool:
        store = _open_store()
        try:
            user_id = await store.get_user_id()
            if user_id is None:
                console.print("[red]Error:[/red] Not signed in")
                return False
            entries = await store.list_entries_for_user(user_id, limit=args.limit)
            titles: dict[str, str] = {}
            for entry in entries:
                if entry.task_id not in titles:
                    task = await store.get_task(entry.task_id)
                    titles[entry.task_id] = task.title if task else "Deleted task"
        finally:
            await store.aclose()

        if not entries:
            console.print("[yellow]No tracked time yet.[/yellow]")
            return True

        local_tz = datetime.now().astimezone().tzinfo
        report = build_report(entries, local_tz)

        table = Table(title=f"Time Tracking - Total {format_clock(report.total_seconds)}")
        table.add_column("Day", style="cyan")
        table.add_column("Task", style="white")
        table.add_column("From", style="blue")
        table.add_column("To", style="blue")
        table.add_column("Duration", style="magenta", justify="right")

        for day in report.days:
            table.add_row(
                f"[bold]{day.day.strftime('%A, %d %B %Y')}[/bold]",
                "",
                "",
                "",
                f"[bold]{format_clock(day.total_seconds)}[/bold]",
            )
            for entry in day.entries:
                ended = (
                    entry.ended_at.astimezone(local_tz).strftime("%H:%M")
                    if entry.ended_at
                    else "running..."
                )
                table.add_row(
                    "",
                    titles[entry.task_id],
                    entry.started_at.astimezone(local_tz).strftime("%H:%M"),
                    ended,
                    format_clock(entry.duration or 0),
                )

        console.print(table)
        return True

    if not asyncio.run(_run()):
        sys.exit(1)


def cmd_version(args: argparse.Namespace) -> None:
    """Show version information."""
    console.print(f"taskery v{__version__}")


def build_parser() -> tuple[argparse.ArgumentParser, argparse.ArgumentParser]:
    """Build the argument parser.

    Returns:
        The top-level parser and the "task" subcommand parser
    """
    parser = argparse.ArgumentParser(
        prog="taskery",
        description="Taskery - time tracking for tasks",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Show detailed output")

    subparsers = parser.add_subparsers(dest="command")

    # Task commands
    task_parser = subparsers.add_parser("task", help="Manage local tasks")
    task_subparsers = task_parser.add_subparsers(dest="task_command")

    task_add = task_subparsers.add_parser("add", help="Register a task in the local store")
    task_add.add_argument("title", help="Task title")
    task_add.add_argument("--project", default=None, help="Project ID")
    task_add.add_argument("--id", default=None, help="Task ID (generated if omitted)")
    task_add.set_defaults(func=cmd_task_add)

    # Timer commands
    start_parser = subparsers.add_parser(
        "start",
        help="Start a timer on a task",
        epilog="A running timer on another task is stopped and saved first.",
    )
    start_parser.add_argument("task_id", help="Task ID")
    start_parser.set_defaults(func=cmd_start)

    stop_parser = subparsers.add_parser("stop", help="Stop the running timer and save the time")
    stop_parser.set_defaults(func=cmd_stop)

    status_parser = subparsers.add_parser("status", help="Show the running timer")
    status_parser.set_defaults(func=cmd_status)

    watch_parser = subparsers.add_parser("watch", help="Show the running timer live (Ctrl+C to exit)")
    watch_parser.set_defaults(func=cmd_watch)

    edit_parser = subparsers.add_parser(
        "edit",
        help="Set a task's total tracked time",
        epilog="""Examples:
  taskery edit docs --hours 2 --minutes 30   Set the total to 2h 30m
  taskery edit docs --hours 0                Clear the total""",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    edit_parser.add_argument("task_id", help="Task ID")
    edit_parser.add_argument("--hours", type=int, default=0, help="Hours (default: 0)")
    edit_parser.add_argument("--minutes", type=int, default=0, help="Minutes (default: 0)")
    edit_parser.set_defaults(func=cmd_edit)

    log_parser = subparsers.add_parser("log", help="Show tracked time grouped by day")
    log_parser.add_argument(
        "--limit", type=int, default=100,
        help="Maximum number of entries to show (default: 100)"
    )
    log_parser.set_defaults(func=cmd_log)

    version_parser = subparsers.add_parser("version", help="Show version information")
    version_parser.set_defaults(func=cmd_version)

    return parser, task_parser


def main(argv: list[str] | None = None) -> NoReturn:
    """Main entry point for the Taskery CLI."""
    parser, task_parser = build_parser()
    args = parser.parse_args(argv)
    setup_logging(args.verbose)

    # No command given - show welcome
    if args.command is None:
        console.print(Markdown(WELCOME_TEXT))
        sys.exit(0)

    # Handle task subcommands
    if args.command == "task" and args.task_command is None:
        task_parser.print_help()
        sys.exit(0)

    args.func(args)
    sys.exit(0)


if __name__ == "__main__":
    main()
