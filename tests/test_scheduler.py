# tests/test_scheduler.py

"""Tests for due-link selection and the periodic check cycle."""

import threading
import unittest
from datetime import datetime, timedelta
from unittest.mock import MagicMock

from flask import Flask

from linkhealth.extensions import db
from linkhealth.services.scheduler import CycleSummary, HealthScheduler
from tests.support import AppTestCase, make_result

NOW = datetime(2026, 6, 1, 12, 0)


class TestDueSelection(AppTestCase):

    def _monitor(self, link_id: str, last_checked_minutes_ago=None, **settings) -> None:
        self.add_link(link_id, url=f"https://{link_id}.example.com")
        self.service.enable_monitoring(link_id, settings=settings or None)
        if last_checked_minutes_ago is not None:
            checked_at = NOW - timedelta(minutes=last_checked_minutes_ago)
            self.service.record_result(link_id, make_result(True, checked_at=checked_at))

    def test_interval_is_respected(self) -> None:
        self._monitor("recent", last_checked_minutes_ago=30, check_interval_minutes=60)
        self._monitor("stale", last_checked_minutes_ago=61, check_interval_minutes=60)
        self._monitor("exact", last_checked_minutes_ago=60, check_interval_minutes=60)
        self._monitor("fresh")

        due = self.service.get_due_link_ids(NOW)

        self.assertEqual(set(due), {"stale", "exact", "fresh"})

    def test_disabled_records_are_never_due(self) -> None:
        self._monitor("off", last_checked_minutes_ago=500)
        self.service.disable_monitoring("off")

        self.assertEqual(self.service.get_due_link_ids(NOW), [])

    def test_short_interval(self) -> None:
        self._monitor("fast", last_checked_minutes_ago=2, check_interval_minutes=1)
        self.assertEqual(self.service.get_due_link_ids(NOW), ["fast"])


class TestCheckCycle(AppTestCase):

    def setUp(self) -> None:
        super().setUp()
        self.scheduler = self.app.extensions["link_health_scheduler"]
        for link_id in ("a", "b", "c"):
            self.add_link(link_id, url=f"https://{link_id}.example.com")
            self.service.enable_monitoring(link_id)

    def test_tick_checks_every_due_link(self) -> None:
        summary = self.scheduler.tick()

        self.assertEqual(summary.found, 3)
        self.assertEqual(summary.succeeded, 3)
        self.assertEqual(summary.errored, 0)
        self.assertEqual(sorted(self.prober.calls), [
            "https://a.example.com",
            "https://b.example.com",
            "https://c.example.com",
        ])

        db.session.expire_all()
        for link_id in ("a", "b", "c"):
            self.assertEqual(self.service.get_record(link_id).total_checks, 1)

    def test_second_tick_finds_nothing_due(self) -> None:
        self.scheduler.tick()
        summary = self.scheduler.tick()

        self.assertEqual(summary.found, 0)
        self.assertEqual(len(self.prober.calls), 3)

    def test_one_failing_link_does_not_stop_the_cycle(self) -> None:
        self.prober.failing_urls.add("https://b.example.com")

        summary = self.scheduler.tick()

        self.assertEqual(summary.found, 3)
        self.assertEqual(summary.succeeded, 2)
        self.assertEqual(summary.errored, 1)

        db.session.expire_all()
        self.assertEqual(self.service.get_record("a").total_checks, 1)
        self.assertEqual(self.service.get_record("b").total_checks, 0)
        self.assertEqual(self.service.get_record("c").total_checks, 1)

    def test_failed_probe_is_retried_next_tick(self) -> None:
        self.prober.failing_urls.add("https://b.example.com")
        self.scheduler.tick()

        self.prober.failing_urls.clear()
        summary = self.scheduler.tick()

        self.assertEqual(summary.found, 1)
        self.assertEqual(summary.succeeded, 1)

    def test_link_disabled_after_selection_is_skipped(self) -> None:
        service = MagicMock()
        service.get_due_link_ids.return_value = ["a"]
        service.run_scheduled_check.return_value = None
        scheduler = HealthScheduler(self.app, service, max_workers=1)

        summary = scheduler.tick(NOW)

        self.assertEqual(summary.skipped, 1)
        service.get_due_link_ids.assert_called_once_with(NOW)


class TestPooledCycle(unittest.TestCase):
    """Ticks with several workers fan checks out over the thread pool."""

    def setUp(self) -> None:
        self.app = Flask(__name__)
        self.service = MagicMock()
        self.service.get_due_link_ids.return_value = ["ok-1", "ok-2", "gone", "broken", "ok-3"]
        self.threads = set()

        def run_scheduled_check(link_id):
            self.threads.add(threading.get_ident())
            if link_id == "gone":
                return None
            if link_id == "broken":
                raise RuntimeError("database is locked")
            return make_result(True)

        self.service.run_scheduled_check.side_effect = run_scheduled_check

    def test_pool_tallies_every_outcome(self) -> None:
        scheduler = HealthScheduler(self.app, self.service, max_workers=3)

        summary = scheduler.tick(NOW)

        self.assertEqual(summary, CycleSummary(found=5, succeeded=3, errored=1, skipped=1))
        self.assertEqual(
            sorted(call.args[0] for call in self.service.run_scheduled_check.call_args_list),
            ["broken", "gone", "ok-1", "ok-2", "ok-3"],
        )
        self.assertNotIn(threading.get_ident(), self.threads)

    def test_empty_cycle(self) -> None:
        self.service.get_due_link_ids.return_value = []
        scheduler = HealthScheduler(self.app, self.service, max_workers=3)

        self.assertEqual(scheduler.tick(NOW), CycleSummary())
        self.service.run_scheduled_check.assert_not_called()


class TestSchedulerLifecycle(unittest.TestCase):

    def test_start_and_stop(self) -> None:
        service = MagicMock()
        service.get_due_link_ids.return_value = []
        app = MagicMock()
        scheduler = HealthScheduler(app, service, interval_minutes=60)

        scheduler.start()
        self.assertTrue(scheduler.running)
        scheduler.start()

        scheduler.stop(timeout=5)

        self.assertFalse(scheduler.running)

    def test_worker_count_is_at_least_one(self) -> None:
        scheduler = HealthScheduler(MagicMock(), MagicMock(), max_workers=0)
        self.assertEqual(scheduler.max_workers, 1)


if __name__ == "__main__":
    unittest.main()
