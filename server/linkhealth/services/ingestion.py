# server/linkhealth/services/ingestion.py

"""Applies probe results to a health record.

``ingest`` is the single place where a record's status, counters, history and
alert ledger change in response to a check. It works purely in memory; the
caller owns locking and the commit.

A result older than the record's last check (a probe that finished late) is
still counted and kept in history, but never moves the current status.
"""

import logging
import math
from datetime import datetime
from typing import Optional

from linkhealth.models.link_health import (
    AlertType,
    LinkHealth,
    LinkHealthAlert,
    LinkHealthCheck,
)
from linkhealth.services.probe_service import CheckResult
from linkhealth.services.statistics import lifetime_uptime

logger = logging.getLogger(__name__)

HISTORY_LIMIT = 100
LATENCY_WINDOW = 20
SLOW_RESPONSE_MS = 5000


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def _append_alert(record: LinkHealth, alert_type: AlertType, message: str, now: datetime) -> LinkHealthAlert:
    record.alerts_raised += 1
    alert = LinkHealthAlert(
        sequence=record.alerts_raised,
        alert_type=alert_type,
        message=message,
        timestamp=now,
    )
    record.alerts.append(alert)
    logger.info(f"Link {record.link_id}: {alert_type.value} alert - {message}")
    return alert


def _append_history(record: LinkHealth, result: CheckResult) -> None:
    check = LinkHealthCheck(
        sequence=record.total_checks + 1,
        is_healthy=result.is_healthy,
        status_code=result.status_code,
        response_time_ms=result.response_time_ms,
        checked_at=result.checked_at,
        error_message=result.error_message,
        redirect_count=result.redirect_count,
    )

    # History stays ordered by checked_at; late results slot in behind newer ones
    position = len(record.checks)
    while position > 0 and record.checks[position - 1].checked_at > check.checked_at:
        position -= 1
    record.checks.insert(position, check)

    overflow = len(record.checks) - HISTORY_LIMIT
    if overflow > 0:
        del record.checks[:overflow]


def _update_statistics(record: LinkHealth, result: CheckResult) -> None:
    record.total_checks += 1
    if result.is_healthy:
        record.successful_checks += 1
    else:
        record.failed_checks += 1

    record.uptime_percent = lifetime_uptime(record)

    window = record.checks[-LATENCY_WINDOW:]
    record.average_response_time_ms = _round_half_up(
        sum(check.response_time_ms for check in window) / len(window)
    )


def ingest(record: LinkHealth, result: CheckResult, now: Optional[datetime] = None) -> LinkHealth:
    now = now or datetime.utcnow()
    is_late = record.last_checked_at is not None and result.checked_at < record.last_checked_at

    _append_history(record, result)
    _update_statistics(record, result)

    if is_late:
        # A newer result already set the status; this one only counts
        logger.info(
            f"Link {record.link_id}: late result from {result.checked_at.isoformat()} "
            f"recorded without a status change"
        )
        return record

    record.last_checked_at = result.checked_at
    record.last_status_code = result.status_code
    record.last_response_time_ms = result.response_time_ms

    if result.is_healthy:
        record.consecutive_failures = 0

        if not record.is_healthy:
            record.is_healthy = True
            if record.last_downtime_at is not None:
                downtime = (now - record.last_downtime_at).total_seconds() / 60
                record.total_downtime_minutes += max(0, int(downtime))
            _append_alert(
                record,
                AlertType.RECOVERED,
                f"Link recovered and is now accessible (Status: {result.status_code})",
                now,
            )
    else:
        record.consecutive_failures += 1

        if record.consecutive_failures >= record.failure_threshold and record.is_healthy:
            record.is_healthy = False
            record.last_downtime_at = now

            if record.notify_on_failure:
                _append_alert(
                    record,
                    AlertType.DOWN,
                    f"Link is down after {record.failure_threshold} consecutive failures "
                    f"(Status: {result.status_code})",
                    now,
                )

    # Not deduplicated: sustained latency raises one alert per slow check
    if result.is_healthy and result.response_time_ms > SLOW_RESPONSE_MS and record.notify_on_failure:
        _append_alert(
            record,
            AlertType.SLOW,
            f"Link is responding slowly ({result.response_time_ms}ms)",
            now,
        )

    return record
