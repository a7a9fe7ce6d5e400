# tests/support.py

"""Builders and collaborator doubles shared by the test modules."""

import unittest
from collections import deque
from datetime import datetime
from typing import Optional

from linkhealth import create_app
from linkhealth.config import TestingConfig
from linkhealth.extensions import db
from linkhealth.models.link import Link
from linkhealth.models.link_health import LinkHealth
from linkhealth.services.health_service import HealthService
from linkhealth.services.link_registry import LinkRegistry
from linkhealth.services.locks import RecordLockManager
from linkhealth.services.probe_service import CheckResult


def make_result(
    healthy: bool = True,
    status_code: Optional[int] = None,
    response_time_ms: int = 100,
    checked_at: Optional[datetime] = None,
    error_message: Optional[str] = None,
) -> CheckResult:
    """Build a CheckResult with sensible defaults for each outcome."""
    if status_code is None:
        status_code = 200 if healthy else 503
    if error_message is None and not healthy:
        error_message = f"HTTP {status_code}" if status_code else "timeout"
    return CheckResult(
        status_code=status_code,
        response_time_ms=response_time_ms,
        is_healthy=healthy,
        error_message=error_message,
        checked_at=checked_at or datetime.utcnow(),
    )


def make_record(link_id: str = "link-1", **settings) -> LinkHealth:
    return LinkHealth(link_id=link_id, destination_url="https://example.com", **settings)


class StubProber:
    """Returns queued results in order, then healthy 200s."""

    def __init__(self):
        self.results = deque()
        self.calls = []
        self.failing_urls = set()

    def queue(self, *results: CheckResult) -> None:
        self.results.extend(results)

    def check_url(self, url: str, timeout: Optional[int] = None) -> CheckResult:
        self.calls.append(url)
        if url in self.failing_urls:
            raise RuntimeError(f"probe crashed for {url}")
        if self.results:
            return self.results.popleft()
        return make_result()


class RecordingSink:

    def __init__(self):
        self.notifications = []

    def notify(self, recipient, alert, record) -> None:
        self.notifications.append((recipient, alert.alert_type.value, record.link_id))


class AppTestCase(unittest.TestCase):
    """Runs each test against a fresh in-memory database."""

    def setUp(self) -> None:
        self.prober = StubProber()
        self.sink = RecordingSink()
        self.service = HealthService(
            resolver=LinkRegistry(),
            notifier=self.sink,
            prober=self.prober,
            locks=RecordLockManager(timeout=5, blocking_timeout=1),
        )
        self.app = create_app(TestingConfig, health_service=self.service)
        self.ctx = self.app.app_context()
        self.ctx.push()

    def tearDown(self) -> None:
        db.session.remove()
        db.drop_all()
        self.ctx.pop()

    def add_link(
        self,
        link_id: str,
        url: str = "https://example.com",
        user_id: str = "user-1",
    ) -> Link:
        link = Link(user_id=user_id, original_url=url, id=link_id, slug=link_id)
        db.session.add(link)
        db.session.commit()
        return link
