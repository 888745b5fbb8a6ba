"""
Periodic trigger for price schedule sweeps.

Runs ``engine.sweep_all()`` on a background thread at a fixed interval,
alongside the threads serving requests. The engine is injected; nothing
here is global.
"""

import logging
import threading
from typing import Optional

from pricing.engine import PriceScheduleEngine, SweepReport

logger = logging.getLogger("price_schedule_trigger")


class ScheduleTrigger:
    """
    Fires a sweep every ``interval`` seconds until stopped.

    Example:
        trigger = ScheduleTrigger(engine, interval=30)
        trigger.start()
        ...
        trigger.stop()
    """

    def __init__(self, engine: PriceScheduleEngine, interval: float = 30.0):
        if interval <= 0:
            raise ValueError(f"Sweep interval must be positive, got {interval}")
        self.engine = engine
        self.interval = interval
        self.sweeps_run = 0
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        """Start the background thread. Calling start twice is a no-op."""
        if self.running:
            return
        self._stop.clear()
        self._thread = threading.Thread(
            target=self._run, name="price-schedule-trigger", daemon=True
        )
        self._thread.start()
        logger.info(f"Price schedule trigger started (every {self.interval:g}s)")

    def stop(self, timeout: Optional[float] = None) -> None:
        """Signal the thread to stop and wait for the current sweep to finish."""
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None
        logger.info("Price schedule trigger stopped")

    def run_once(self) -> Optional[SweepReport]:
        """
        Run a single sweep now.

        Returns:
            The sweep report, or None if the sweep itself could not run
        """
        try:
            report = self.engine.sweep_all()
        except Exception:
            logger.exception("Price schedule sweep failed")
            return None
        finally:
            self.sweeps_run += 1
        return report

    def _run(self) -> None:
        # First sweep happens right away, then on every tick
        while not self._stop.is_set():
            self.run_once()
            self._stop.wait(self.interval)
