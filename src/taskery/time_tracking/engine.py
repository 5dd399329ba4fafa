"""Timer engine for tracking time on tasks.

This module provides the TimerEngine class: a single-active-timer state
machine that persists each start/stop cycle as a time entry and resumes
an entry left open by a previous process.
"""

import asyncio
import logging
import math
from datetime import datetime, timedelta, timezone
from typing import Callable, Literal

from taskery.time_tracking.errors import TimeTrackingError, Unauthenticated
from taskery.time_tracking.report import format_time
from taskery.time_tracking.store import TimeEntryStore
from taskery.time_tracking.types import (
    ActiveTimerTask,
    Notice,
    StoppedTimer,
    TimeEntry,
    TimerSnapshot,
)

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]
SnapshotListener = Callable[[TimerSnapshot], None]
NoticeListener = Callable[[Notice], None]


def utc_now() -> datetime:
    """Get the current wall-clock time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


class TimerEngine:
    """Single-active-timer engine.

    The engine handles:
    - Starting and stopping a timer, persisting one time entry per cycle
    - Local pause/resume (not reflected in the store)
    - Resuming an entry left open by a previous session (reconcile)
    - A cancellable display tick while the timer runs
    - Manual corrections of a task's tracked total

    Elapsed time is always recomputed from the wall clock against an anchor
    instant, so a resumed timer includes time the process was not running.
    Store failures are caught here and reported through notices.

    Example:
        engine = TimerEngine(store)
        engine.set_on_tick(render)
        await engine.reconcile()

        await engine.start(ActiveTimerTask(id="t1", title="Write docs", total_time=7200))
        ...
        result = await engine.stop()
    """

    def __init__(
        self,
        store: TimeEntryStore,
        clock: Clock | None = None,
        tick_interval: float = 1.0,
    ) -> None:
        """Initialize the engine.

        Args:
            store: Persistence for time entries.
            clock: Source of the current time (aware datetimes).
            tick_interval: Seconds between display ticks while running.
        """
        self._store = store
        self._clock = clock or utc_now
        self._tick_interval = tick_interval

        self._active_task: ActiveTimerTask | None = None
        self._active_entry_id: str | None = None
        self._anchor: datetime | None = None
        self._accumulated = 0
        self._baseline = 0
        self._running = False
        self._restoring = True

        self._reconcile_task: asyncio.Task | None = None
        self._tick_task: asyncio.Task | None = None

        self.last_stopped: StoppedTimer | None = None

        self._on_tick: SnapshotListener | None = None
        self._on_state_change: SnapshotListener | None = None
        self._on_notice: NoticeListener | None = None

    async def __aenter__(self) -> "TimerEngine":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    # ----- Listeners -----
    def set_on_tick(self, fn: SnapshotListener) -> None:
        self._on_tick = fn

    def set_on_state_change(self, fn: SnapshotListener) -> None:
        self._on_state_change = fn

    def set_on_notice(self, fn: NoticeListener) -> None:
        self._on_notice = fn

    def _emit(self, fn: Callable | None, value: TimerSnapshot | Notice) -> None:
        if fn is None:
            return
        try:
            fn(value)
        except Exception as e:
            logger.exception(f"Timer listener failed: {e}")

    def _emit_state_change(self) -> None:
        self._emit(self._on_state_change, self.snapshot())

    def _notify(self, level: Literal["info", "success", "error"], message: str) -> None:
        self._emit(self._on_notice, Notice(level=level, message=message))

    # ----- State -----
    @property
    def active_task(self) -> ActiveTimerTask | None:
        return self._active_task

    @property
    def active_entry_id(self) -> str | None:
        return self._active_entry_id

    @property
    def running(self) -> bool:
        return self._running

    @property
    def restoring(self) -> bool:
        """True until the startup reconciliation has finished."""
        return self._restoring

    def _elapsed_at(self, now: datetime) -> int:
        if not self._running or self._anchor is None:
            return self._accumulated
        # A clock set backwards must not produce negative time
        segment = max(0, math.floor((now - self._anchor).total_seconds()))
        return self._accumulated + segment

    @property
    def elapsed_seconds(self) -> int:
        """Seconds timed in the current start/stop cycle."""
        return self._elapsed_at(self._clock())

    @property
    def total_elapsed(self) -> int:
        """Task baseline plus the current cycle's elapsed seconds."""
        return self._baseline + self.elapsed_seconds

    def snapshot(self) -> TimerSnapshot:
        elapsed = self.elapsed_seconds
        return TimerSnapshot(
            active_task=self._active_task,
            active_entry_id=self._active_entry_id,
            elapsed_seconds=elapsed,
            total_elapsed=self._baseline + elapsed,
            running=self._running,
            restoring=self._restoring,
        )

    def _reset(self) -> None:
        self._stop_ticking()
        self._active_task = None
        self._active_entry_id = None
        self._anchor = None
        self._accumulated = 0
        self._baseline = 0
        self._running = False

    # ----- Tick -----
    def _start_ticking(self) -> None:
        self._stop_ticking()
        self._tick_task = asyncio.create_task(self._tick_loop(), name="timer_tick")

    def _stop_ticking(self) -> None:
        if self._tick_task is not None:
            self._tick_task.cancel()
            self._tick_task = None

    @property
    def is_ticking(self) -> bool:
        return self._tick_task is not None and not self._tick_task.done()

    async def _tick_loop(self) -> None:
        while self._running:
            await asyncio.sleep(self._tick_interval)
            if not self._running:
                break
            self._emit(self._on_tick, self.snapshot())

    # ----- Operations -----
    async def reconcile(self) -> None:
        """Resume the current user's open entry, if any.

        Runs once per engine; later or concurrent calls wait for the same run.
        """
        if self._reconcile_task is None:
            self._reconcile_task = asyncio.create_task(self._restore(), name="timer_reconcile")
        await self._reconcile_task

    async def _restore(self) -> None:
        try:
            user_id = await self._store.get_user_id()
            if user_id is None:
                logger.debug("No signed-in user; nothing to restore")
                return

            entries = await self._store.find_open_entries_for_user(user_id)
            if not entries:
                return
            if len(entries) > 1:
                logger.warning(
                    f"Found {len(entries)} open time entries for user {user_id}; "
                    "resuming the most recently started one"
                )
            entry = max(entries, key=lambda e: e.started_at)

            task = await self._store.get_task(entry.task_id)
            if task is None:
                logger.warning(f"Open time entry {entry.id} references missing task {entry.task_id}")
                return
            # The open entry has no duration yet, so it is not part of the sum
            baseline = await self._store.sum_durations_for_task(task.id)

            self._active_task = ActiveTimerTask(
                id=task.id,
                title=task.title,
                project_id=task.project_id,
                total_time=baseline,
            )
            self._active_entry_id = entry.id
            self._baseline = baseline
            self._anchor = entry.started_at
            self._accumulated = 0
            self._running = True
            self._start_ticking()

            logger.info(f"Restored timer for task {task.id} (entry {entry.id})")
            self._notify("info", "Timer restored")
        except TimeTrackingError as e:
            logger.error(f"Error restoring timer: {e}")
        except Exception as e:
            logger.exception(f"Unexpected error restoring timer: {e}")
        finally:
            self._restoring = False
            self._emit_state_change()

    async def start(self, task: ActiveTimerTask) -> TimeEntry | None:
        """Start timing a task.

        A timer that is already active is stopped first, so its entry is
        closed rather than left open.

        Args:
            task: The task to time, with its previously accumulated total.

        Returns:
            The open time entry, or None if it could not be created.
        """
        await self.reconcile()

        if self._active_task is not None:
            logger.info(
                f"Stopping timer for task {self._active_task.id} before starting {task.id}"
            )
            await self.stop(close_empty=True)

        now = self._clock()
        try:
            user_id = await self._store.get_user_id()
            if user_id is None:
                raise Unauthenticated()
            entry = await self._store.create_open_entry(task.id, user_id, now)
        except TimeTrackingError as e:
            logger.error(f"Error starting timer for task {task.id}: {e}")
            self._notify("error", f"Could not start the timer: {e}")
            return None

        self._active_task = task
        self._active_entry_id = entry.id
        self._baseline = task.total_time or 0
        self._anchor = now
        self._accumulated = 0
        self._running = True
        self._start_ticking()

        logger.info(f"Started timer for task {task.id} (entry {entry.id})")
        self._emit_state_change()
        return entry

    async def stop(self, close_empty: bool = False) -> StoppedTimer | None:
        """Stop the active timer and persist its elapsed time.

        Local state is cleared even when persisting fails. A cycle shorter
        than one second leaves the entry open unless close_empty is set.

        Args:
            close_empty: Close the entry with a zero duration when no whole
                second has elapsed.

        Returns:
            The stopped timer's totals, or None if no timer was active.
        """
        if self._active_task is None:
            return None

        now = self._clock()
        elapsed = self._elapsed_at(now)
        task = self._active_task
        entry_id = self._active_entry_id
        baseline = self._baseline
        self._reset()

        persisted = True
        if entry_id is not None and (elapsed > 0 or close_empty):
            try:
                await self._store.close_entry(entry_id, ended_at=now, duration=elapsed)
                if elapsed > 0:
                    self._notify("success", f"Time saved: {format_time(elapsed)}")
            except TimeTrackingError as e:
                persisted = False
                logger.error(f"Error closing time entry {entry_id}: {e}")
                self._notify("error", f"Could not save the tracked time: {e}")

        result = StoppedTimer(
            task_id=task.id,
            elapsed_seconds=elapsed,
            new_total_time=baseline + elapsed,
            persisted=persisted,
        )
        self.last_stopped = result

        logger.info(f"Stopped timer for task {task.id} after {elapsed}s")
        self._emit_state_change()
        return result

    def pause(self) -> None:
        """Freeze the elapsed time locally. The open entry stays open."""
        if not self._running:
            return
        self._accumulated = self._elapsed_at(self._clock())
        self._anchor = None
        self._running = False
        self._stop_ticking()
        self._emit_state_change()

    def resume(self) -> None:
        """Continue a paused timer from now."""
        if self._active_task is None or self._running:
            return
        self._anchor = self._clock()
        self._running = True
        self._start_ticking()
        self._emit_state_change()

    # ----- Manual corrections -----
    async def apply_manual_delta(self, task_id: str, delta_seconds: int) -> TimeEntry | None:
        """Add (or subtract) time on a task with a synthetic closed entry.

        Positive deltas are placed in the past, ending now. Negative deltas
        become a zero-length entry at now carrying the negative duration.

        Args:
            task_id: Task to correct.
            delta_seconds: Seconds to add; negative to subtract.

        Returns:
            The inserted entry, or None when nothing was written.
        """
        if delta_seconds == 0:
            return None

        now = self._clock()
        started_at = now - timedelta(seconds=delta_seconds) if delta_seconds > 0 else now
        try:
            user_id = await self._store.get_user_id()
            if user_id is None:
                raise Unauthenticated()
            entry = await self._store.insert_closed_entry(
                task_id,
                user_id,
                started_at=started_at,
                ended_at=now,
                duration=delta_seconds,
            )
        except TimeTrackingError as e:
            logger.error(f"Error adding manual time entry for task {task_id}: {e}")
            self._notify("error", f"Could not update the time: {e}")
            return None

        self._notify("success", "Time updated")
        return entry

    async def set_task_total(
        self,
        task_id: str,
        current_total: int,
        hours: int,
        minutes: int,
    ) -> TimeEntry | None:
        """Set a task's tracked total to hours:minutes.

        Args:
            task_id: Task to correct.
            current_total: The task's total as currently displayed, in seconds.
            hours: Desired whole hours.
            minutes: Desired minutes.

        Returns:
            The correcting entry, or None when the total was already right
            or the write failed.
        """
        if hours < 0 or minutes < 0:
            raise ValueError("hours and minutes must not be negative")
        new_total = hours * 3600 + minutes * 60
        return await self.apply_manual_delta(task_id, new_total - current_total)

    async def correct_entry_duration(self, entry_id: str, duration: int) -> bool:
        """Overwrite the recorded duration of one entry.

        Returns:
            True if the entry was updated.
        """
        try:
            await self._store.update_duration(entry_id, duration)
        except TimeTrackingError as e:
            logger.error(f"Error updating duration of time entry {entry_id}: {e}")
            self._notify("error", f"Could not update the time entry: {e}")
            return False
        return True

    async def aclose(self) -> None:
        """Cancel the tick. Local timer state is left as is."""
        task = self._tick_task
        self._tick_task = None
        if task is not None:
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
