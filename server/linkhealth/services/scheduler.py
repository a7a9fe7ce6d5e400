# server/linkhealth/services/scheduler.py

import logging
import threading
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from flask import Flask

from linkhealth.services.health_service import HealthService

logger = logging.getLogger(__name__)


@dataclass
class CycleSummary:
    found: int = 0
    succeeded: int = 0
    errored: int = 0
    skipped: int = 0


class HealthScheduler:
    """Periodically checks every monitored link whose interval has elapsed.

    The tick interval is only the polling granularity; each record's own
    ``check_interval_minutes`` decides whether it is due. Nothing is cached
    between ticks.
    """

    def __init__(
        self,
        app: Flask,
        service: HealthService,
        interval_minutes: int = 15,
        max_workers: int = 5,
    ):
        self.app = app
        self.service = service
        self.interval_minutes = interval_minutes
        self.max_workers = max(1, max_workers)
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        if self.running:
            return

        self._stop_event.clear()
        self._thread = threading.Thread(target=self._run, name="link-health-scheduler", daemon=True)
        self._thread.start()
        logger.info(f"Link health scheduler started (every {self.interval_minutes} minutes)")

    def stop(self, timeout: float = 10) -> None:
        self._stop_event.set()
        if self._thread is not None:
            self._thread.join(timeout=timeout)
            self._thread = None
        logger.info("Link health scheduler stopped")

    def _run(self) -> None:
        while not self._stop_event.is_set():
            try:
                self.tick()
            except Exception as e:
                logger.error(f"Health check cycle failed: {e}", exc_info=True)
            self._stop_event.wait(self.interval_minutes * 60)

    def tick(self, now: Optional[datetime] = None) -> CycleSummary:
        now = now or datetime.utcnow()

        with self.app.app_context():
            link_ids = self.service.get_due_link_ids(now)

        summary = CycleSummary(found=len(link_ids))
        logger.info(f"Starting health check cycle: {summary.found} links due")

        if self.max_workers == 1 or len(link_ids) <= 1:
            for link_id in link_ids:
                self._tally(summary, self._check_one(link_id))
        else:
            with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
                futures = [executor.submit(self._check_one, link_id) for link_id in link_ids]
                for future in as_completed(futures):
                    self._tally(summary, future.result())

        logger.info(
            f"Health check cycle completed: found={summary.found} "
            f"succeeded={summary.succeeded} errored={summary.errored} skipped={summary.skipped}"
        )
        return summary

    @staticmethod
    def _tally(summary: CycleSummary, outcome: str) -> None:
        setattr(summary, outcome, getattr(summary, outcome) + 1)

    def _check_one(self, link_id: str) -> str:
        with self.app.app_context():
            try:
                result = self.service.run_scheduled_check(link_id)
            except Exception as e:
                logger.error(f"Health check failed for link {link_id}: {e}", exc_info=True)
                return "errored"

        if result is None:
            return "skipped"
        return "succeeded"
