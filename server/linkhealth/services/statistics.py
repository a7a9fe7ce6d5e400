# server/linkhealth/services/statistics.py

from datetime import datetime, timedelta
from typing import Iterable, List, Optional

from linkhealth.models.link_health import LinkHealth, LinkHealthCheck


def lifetime_uptime(record: LinkHealth) -> float:
    if record.total_checks == 0:
        return 100.0
    return record.successful_checks * 100 / record.total_checks


def uptime_percentage(record: LinkHealth, days: int = 7, now: Optional[datetime] = None) -> float:
    """Share of healthy checks among retained history newer than ``days``.

    A window with no checks reports 100.
    """
    now = now or datetime.utcnow()
    cutoff = now - timedelta(days=days)

    window = [check for check in record.checks if check.checked_at >= cutoff]
    if not window:
        return 100.0

    successful = sum(1 for check in window if check.is_healthy)
    return successful * 100 / len(window)


def recent_checks(record: LinkHealth, limit: int = 10) -> List[LinkHealthCheck]:
    if limit <= 0:
        return []
    return list(reversed(record.checks[-limit:]))


def summarize(records: Iterable[LinkHealth]) -> dict:
    records = list(records)
    total = len(records)
    healthy = sum(1 for r in records if r.is_healthy)

    summary = {
        "total_monitored": total,
        "healthy": healthy,
        "unhealthy": total - healthy,
        "average_uptime": 100.0,
        "average_response_time_ms": 0,
        "unacknowledged_alerts": 0,
    }

    if total > 0:
        summary["average_uptime"] = round(sum(r.uptime_percent for r in records) / total, 2)
        summary["average_response_time_ms"] = round(sum(r.average_response_time_ms for r in records) / total)
        summary["unacknowledged_alerts"] = sum(r.unacknowledged_alert_count for r in records)

    return summary
