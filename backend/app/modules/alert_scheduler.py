"""Background scheduler driving the detection cycle on a fixed cadence.

State machine::

    IDLE → RUNNING → SLEEPING → RUNNING → … → STOPPING → STOPPED

- Cycles start every ``interval`` (sleep = interval − cycle duration).
- An exception escaping the cycle is logged and followed by ``backoff``
  instead of the normal interval; the scheduler keeps going.
- ``stop()`` sets a stop event.  It is checked before each cycle and
  interrupts the sleep immediately; an in-flight cycle always finishes.
"""
from __future__ import annotations

import enum
import logging
import threading
import time
from datetime import timedelta
from typing import Callable, Optional

from sqlalchemy.orm import Session

from app.config import settings
from app.modules.detection_cycle import run_detection_cycle

logger = logging.getLogger(__name__)


class SchedulerState(str, enum.Enum):
    IDLE = "idle"
    RUNNING = "running"
    SLEEPING = "sleeping"
    STOPPING = "stopping"
    STOPPED = "stopped"


class AlertScheduler:
    def __init__(
        self,
        session_factory: Optional[Callable[[], Session]] = None,
        cycle: Callable[[Session], dict] = run_detection_cycle,
        interval: Optional[timedelta] = None,
        backoff: Optional[timedelta] = None,
        stop_event: Optional[threading.Event] = None,
    ):
        if session_factory is None:
            from app.database import SessionLocal
            session_factory = SessionLocal
        self.session_factory = session_factory
        self.cycle = cycle
        self.interval = interval or timedelta(minutes=settings.ALERT_CYCLE_INTERVAL_MINUTES)
        self.backoff = backoff or timedelta(minutes=settings.ALERT_CYCLE_BACKOFF_MINUTES)
        self._stop_event = stop_event or threading.Event()
        self._state = SchedulerState.IDLE
        self._state_lock = threading.Lock()
        self._thread: Optional[threading.Thread] = None
        self.cycles_completed = 0
        self.consecutive_failures = 0
        self.last_result: Optional[dict] = None

    @property
    def state(self) -> SchedulerState:
        return self._state

    @property
    def stop_requested(self) -> bool:
        return self._stop_event.is_set()

    def _set_state(self, state: SchedulerState) -> None:
        with self._state_lock:
            # Once stopping, only STOPPED may follow
            if self._state == SchedulerState.STOPPING and state in (
                SchedulerState.RUNNING, SchedulerState.SLEEPING,
            ):
                return
            if self._state != state:
                logger.debug("Scheduler state %s → %s", self._state.value, state.value)
            self._state = state

    def run_once(self) -> dict:
        """Run one cycle in a fresh session; exceptions propagate."""
        db = self.session_factory()
        try:
            return self.cycle(db)
        finally:
            db.close()

    def run_forever(self) -> None:
        """Blocking loop until ``stop()`` is called."""
        logger.info(
            "Alert scheduler started (interval %s, backoff %s)", self.interval, self.backoff,
        )
        while not self._stop_event.is_set():
            self._set_state(SchedulerState.RUNNING)
            started = time.monotonic()
            try:
                self.last_result = self.run_once()
                self.cycles_completed += 1
                self.consecutive_failures = 0
                delay = max(self.interval.total_seconds() - (time.monotonic() - started), 0.0)
            except Exception:
                self.consecutive_failures += 1
                logger.exception(
                    "Detection cycle failed (%d consecutive); retrying in %s",
                    self.consecutive_failures, self.backoff,
                )
                delay = self.backoff.total_seconds()

            if self._stop_event.is_set():
                break
            self._set_state(SchedulerState.SLEEPING)
            self._stop_event.wait(delay)

        self._set_state(SchedulerState.STOPPED)
        logger.info("Alert scheduler stopped after %d cycles", self.cycles_completed)

    def start(self) -> None:
        """Run the loop on a daemon thread."""
        if self._thread is not None and self._thread.is_alive():
            return
        self._stop_event.clear()
        self._thread = threading.Thread(
            target=self.run_forever, name="alert-scheduler", daemon=True,
        )
        self._thread.start()

    def stop(self, timeout: Optional[float] = 30.0) -> None:
        """Signal the loop to exit and wait for an in-flight cycle to finish."""
        if self._state not in (SchedulerState.IDLE, SchedulerState.STOPPED):
            self._set_state(SchedulerState.STOPPING)
        self._stop_event.set()
        if self._thread is not None:
            self._thread.join(timeout=timeout)
            if self._thread.is_alive():
                logger.warning("Alert scheduler did not stop within %ss", timeout)
                return
            self._thread = None
        # Never started, or the foreground loop was interrupted
        self._set_state(SchedulerState.STOPPED)
