import logging
import threading
from typing import Callable, Optional

from lending_library.config import settings
from lending_library.lending import DailyReport, LendingEngine

logger = logging.getLogger(__name__)


class Scheduler:
    """Runs the daily fine/notification pass on a background thread.

    The first tick runs as soon as the thread starts, then once per
    ``interval`` seconds until :meth:`stop` is called. Stopping sets the stop
    event and joins the thread: a tick that already started finishes, no new
    tick starts afterwards.
    """

    def __init__(self, engine: LendingEngine, report: Callable[[DailyReport], None],
                 interval: Optional[float] = None) -> None:
        self.engine = engine
        self.report = report
        self.interval = settings.scheduler_interval_seconds if interval is None else interval
        if self.interval <= 0:
            raise ValueError("Scheduler interval must be positive.")
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._state_lock = threading.Lock()
        self._tick_count = 0

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    @property
    def tick_count(self) -> int:
        return self._tick_count

    def start(self) -> None:
        with self._state_lock:
            if self._thread is not None:
                raise RuntimeError("Scheduler already started.")
            self._stop_event.clear()
            self._thread = threading.Thread(target=self._run, name="lending-scheduler", daemon=True)
            self._thread.start()
        logger.info(f"Scheduler started (interval={self.interval}s)")

    def stop(self, timeout: Optional[float] = None) -> None:
        with self._state_lock:
            thread = self._thread
            if thread is None:
                return
            self._stop_event.set()
        thread.join(timeout)
        if thread.is_alive():
            logger.warning("Scheduler thread did not finish its tick before the timeout")
        else:
            logger.info(f"Scheduler stopped after {self._tick_count} ticks")

    def run_once(self) -> DailyReport:
        """Execute a single tick in the calling thread."""
        report = self.engine.run_daily_pass()
        self._tick_count += 1
        self.report(report)
        return report

    def _run(self) -> None:
        while not self._stop_event.is_set():
            try:
                self.run_once()
            except Exception:
                logger.exception("Scheduled fine/notification pass failed")
            if self._stop_event.wait(self.interval):
                break

    def __enter__(self) -> "Scheduler":
        self.start()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.stop()
