# server/linkhealth/services/__init__.py

from linkhealth.services.redis_service import RedisService
from linkhealth.services.probe_service import CheckResult, ProbeService
from linkhealth.services.ingestion import ingest
from linkhealth.services.locks import RecordLockManager
from linkhealth.services.link_registry import LinkRegistry, LinkResolver
from linkhealth.services.notifications import LogNotificationSink, NotificationSink
from linkhealth.services.health_service import HealthFilter, HealthService
from linkhealth.services.scheduler import CycleSummary, HealthScheduler

__all__ = [
    "RedisService",
    "CheckResult",
    "ProbeService",
    "ingest",
    "RecordLockManager",
    "LinkRegistry",
    "LinkResolver",
    "LogNotificationSink",
    "NotificationSink",
    "HealthFilter",
    "HealthService",
    "CycleSummary",
    "HealthScheduler",
]
