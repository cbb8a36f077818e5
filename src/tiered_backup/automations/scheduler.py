"""
Backup Scheduler - fixed-interval automatic backups.

The scheduler runs as a background thread that:
1. Fires a backup immediately on start (configurable)
2. Fires again every interval, measured from the previous start
3. Publishes the next due time for status queries
4. Stops promptly when asked

Overlapping runs are prevented by the orchestrator's guard, not here.
"""

import logging
import threading
import time
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any, Callable

logger = logging.getLogger(__name__)

ScheduleListener = Callable[[datetime | None], Any]


class SchedulerStatus(Enum):
    """Status of the scheduler."""

    STOPPED = "stopped"
    RUNNING = "running"
    STOPPING = "stopping"
    DISABLED = "disabled"


class BackupScheduler:
    """
    Background scheduler that triggers backups at a fixed interval.

    An interval of zero or less disables automatic backups; manual runs
    are still possible through the orchestrator.
    """

    def __init__(
        self,
        run_callback: Callable[[], Any],
        interval_seconds: int,
        run_immediately: bool = True,
        on_schedule: ScheduleListener | None = None,
    ):
        """
        Initialize scheduler.

        Args:
            run_callback: Called on each tick, typically BackupOrchestrator.run_now
            interval_seconds: Seconds between backup starts
            run_immediately: Fire once as soon as the scheduler starts
            on_schedule: Receives every new next-run time, and None when
                the scheduler stops, typically BackupState.set_next_run
        """
        self._run_callback = run_callback
        self._interval = interval_seconds
        self._run_immediately = run_immediately
        self._on_schedule = on_schedule

        self._status = SchedulerStatus.STOPPED
        self._thread: threading.Thread | None = None
        self._shutdown_event = threading.Event()
        self._next_run_at: datetime | None = None

    @property
    def status(self) -> SchedulerStatus:
        """Get current scheduler status."""
        return self._status

    @property
    def interval_seconds(self) -> int:
        return self._interval

    @property
    def next_run_at(self) -> datetime | None:
        """When the next automatic backup is due, or None when not scheduled."""
        return self._next_run_at

    def seconds_until_next_run(self) -> float | None:
        if self._next_run_at is None:
            return None
        remaining = (self._next_run_at - datetime.now(timezone.utc)).total_seconds()
        return max(0.0, remaining)

    def start(self, run_immediately: bool | None = None) -> bool:
        """
        Start the scheduler.

        Args:
            run_immediately: Override the constructor setting for this start

        Returns:
            True if started (or already running), False if disabled
        """
        if self._status == SchedulerStatus.RUNNING:
            return True

        if self._interval <= 0:
            logger.warning("Automatic backup is disabled (interval is 0); run backups manually")
            self._status = SchedulerStatus.DISABLED
            self._set_next_run(None)
            return False

        if run_immediately is None:
            run_immediately = self._run_immediately
        first_delay = 0.0 if run_immediately else float(self._interval)

        # Each thread gets its own event so a slow old loop cannot outlive a restart
        self._shutdown_event = threading.Event()
        self._thread = threading.Thread(
            target=self._scheduler_loop,
            args=(self._shutdown_event, first_delay),
            name="BackupScheduler",
            daemon=True,
        )
        self._status = SchedulerStatus.RUNNING
        self._thread.start()
        logger.info(f"Scheduled automatic backup every {self._interval} seconds")
        return True

    def stop(self, timeout: float = 30.0) -> None:
        """Stop the scheduler, waiting up to ``timeout`` for the thread."""
        if self._status not in (SchedulerStatus.RUNNING, SchedulerStatus.STOPPING):
            self._status = SchedulerStatus.STOPPED
            return

        self._status = SchedulerStatus.STOPPING
        self._shutdown_event.set()

        if self._thread and self._thread.is_alive() and self._thread is not threading.current_thread():
            self._thread.join(timeout=timeout)

        self._thread = None
        self._set_next_run(None)
        self._status = SchedulerStatus.STOPPED

    def reschedule(self, interval_seconds: int) -> bool:
        """
        Apply a new interval.

        The first backup under the new interval is one full interval
        away; rescheduling never fires a backup by itself.
        """
        self.stop()
        self._interval = interval_seconds
        return self.start(run_immediately=False)

    def _set_next_run(self, when: datetime | None) -> None:
        self._next_run_at = when
        if self._on_schedule is None:
            return
        try:
            self._on_schedule(when)
        except Exception as e:
            logger.warning(f"Schedule listener failed: {e}")

    def _scheduler_loop(self, shutdown: threading.Event, first_delay: float) -> None:
        """Main scheduler loop."""
        interval = self._interval
        next_due = time.monotonic() + first_delay
        self._set_next_run(datetime.now(timezone.utc) + timedelta(seconds=first_delay))

        while not shutdown.wait(max(0.0, next_due - time.monotonic())):
            next_due += interval
            self._set_next_run(
                datetime.now(timezone.utc)
                + timedelta(seconds=max(0.0, next_due - time.monotonic()))
            )
            try:
                self._run_callback()
            except Exception as e:
                logger.error(f"Scheduled backup raised: {e}")

            if shutdown.is_set():
                break

            # A run longer than the interval skips the missed slots
            now = time.monotonic()
            if next_due < now:
                missed = int((now - next_due) // interval) + 1
                next_due += missed * interval
                self._set_next_run(datetime.now(timezone.utc) + timedelta(seconds=next_due - now))
