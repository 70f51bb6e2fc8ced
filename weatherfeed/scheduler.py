"""Run the pipeline once or at a fixed rate without overlapping passes."""

from __future__ import annotations

import enum
import logging
import threading
from typing import Callable, Optional

logger = logging.getLogger(__name__)

DEFAULT_INTERVAL_SECONDS = 300.0


class SchedulerState(enum.Enum):
    IDLE = "idle"
    RUNNING = "running"


class Scheduler:
    """
    Two-state wrapper around a pipeline pass.

    Ticks are armed on a fixed period with :class:`threading.Timer`. A tick
    that fires while a pass is still running is skipped and logged.
    """

    def __init__(self, job: Callable[[], object], interval_seconds: float = DEFAULT_INTERVAL_SECONDS) -> None:
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be positive")
        self.job = job
        self.interval_seconds = interval_seconds
        self.state = SchedulerState.IDLE
        self.runs = 0
        self.skipped_ticks = 0
        self._state_lock = threading.Lock()
        self._timer_lock = threading.Lock()
        self._timer: Optional[threading.Timer] = None
        self._stopped = threading.Event()

    def tick(self) -> bool:
        """Run one pass if idle. Returns ``False`` when the tick was skipped."""
        with self._state_lock:
            if self.state is SchedulerState.RUNNING:
                self.skipped_ticks += 1
                logger.warning("Previous run still in progress; skipping this tick")
                return False
            self.state = SchedulerState.RUNNING

        try:
            self.job()
        except Exception as exc:  # pylint: disable=broad-except
            logger.exception(f"Error during pipeline run: {exc}")
        finally:
            with self._state_lock:
                self.state = SchedulerState.IDLE
                self.runs += 1
        return True

    def _arm(self) -> None:
        with self._timer_lock:
            if self._stopped.is_set():
                return
            timer = threading.Timer(self.interval_seconds, self._on_timer)
            timer.daemon = True
            self._timer = timer
            timer.start()

    def _on_timer(self) -> None:
        # Re-arm first so the period does not drift with run duration.
        self._arm()
        self.tick()

    def start(self, periodic: bool = True) -> None:
        """Run the first pass now; in periodic mode keep firing every interval."""
        self._stopped.clear()
        self.tick()
        if periodic:
            logger.info(f"Next run in {self.interval_seconds:g} seconds")
            self._arm()
        else:
            self._stopped.set()

    def stop(self) -> None:
        """Cancel the pending timer; a pass already running is left to finish."""
        with self._timer_lock:
            self._stopped.set()
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None

    def wait(self, timeout: Optional[float] = None) -> bool:
        return self._stopped.wait(timeout)

    def run_forever(self, periodic: bool = True) -> None:
        """Start and block until :meth:`stop` or ``KeyboardInterrupt``."""
        try:
            self.start(periodic=periodic)
            while not self._stopped.wait(1.0):
                pass
        except KeyboardInterrupt:
            logger.info("Interrupted, shutting down")
        finally:
            self.stop()
