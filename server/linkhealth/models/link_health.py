# server/linkhealth/models/link_health.py

import enum
import uuid
from dataclasses import asdict, dataclass
from datetime import datetime
from typing import Optional

from linkhealth.extensions import db

DEFAULT_CHECK_INTERVAL_MINUTES = 60
DEFAULT_FAILURE_THRESHOLD = 3


class AlertType(enum.Enum):
    DOWN = "down"
    SLOW = "slow"
    RECOVERED = "recovered"


@dataclass
class MonitorSettings:
    """Partial settings update; ``None`` fields keep the record's current value."""

    check_interval_minutes: Optional[int] = None
    enabled: Optional[bool] = None
    notify_on_failure: Optional[bool] = None
    failure_threshold: Optional[int] = None

    def apply_to(self, record: "LinkHealth") -> None:
        for name, value in asdict(self).items():
            if value is not None:
                setattr(record, name, value)


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


class LinkHealth(db.Model):
    __tablename__ = "link_health"

    id = db.Column(db.String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    link_id = db.Column(db.String(36), nullable=False, unique=True, index=True)
    destination_url = db.Column(db.Text, nullable=False)

    # Current status
    is_healthy = db.Column(db.Boolean, default=True, nullable=False, index=True)
    last_checked_at = db.Column(db.DateTime, nullable=True, index=True)
    last_status_code = db.Column(db.Integer, nullable=True)
    last_response_time_ms = db.Column(db.Integer, nullable=True)
    consecutive_failures = db.Column(db.Integer, default=0, nullable=False)

    # Statistics
    total_checks = db.Column(db.Integer, default=0, nullable=False)
    successful_checks = db.Column(db.Integer, default=0, nullable=False)
    failed_checks = db.Column(db.Integer, default=0, nullable=False)
    uptime_percent = db.Column(db.Float, default=100.0, nullable=False)
    average_response_time_ms = db.Column(db.Integer, default=0, nullable=False)
    last_downtime_at = db.Column(db.DateTime, nullable=True)
    total_downtime_minutes = db.Column(db.Integer, default=0, nullable=False)
    alerts_raised = db.Column(db.Integer, default=0, nullable=False)

    # Settings
    check_interval_minutes = db.Column(db.Integer, default=DEFAULT_CHECK_INTERVAL_MINUTES, nullable=False)
    enabled = db.Column(db.Boolean, default=True, nullable=False, index=True)
    notify_on_failure = db.Column(db.Boolean, default=True, nullable=False)
    failure_threshold = db.Column(db.Integer, default=DEFAULT_FAILURE_THRESHOLD, nullable=False)

    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    checks = db.relationship(
        "LinkHealthCheck",
        back_populates="record",
        order_by=lambda: [LinkHealthCheck.checked_at, LinkHealthCheck.sequence],
        cascade="all, delete-orphan",
    )
    alerts = db.relationship(
        "LinkHealthAlert",
        back_populates="record",
        order_by="LinkHealthAlert.sequence",
        cascade="all, delete-orphan",
    )

    def __init__(
        self,
        link_id: str,
        destination_url: str,
        check_interval_minutes: int = DEFAULT_CHECK_INTERVAL_MINUTES,
        enabled: bool = True,
        notify_on_failure: bool = True,
        failure_threshold: int = DEFAULT_FAILURE_THRESHOLD,
    ):
        self.id = str(uuid.uuid4())
        self.link_id = link_id
        self.destination_url = destination_url.strip()

        self.is_healthy = True
        self.last_checked_at = None
        self.last_status_code = None
        self.last_response_time_ms = None
        self.consecutive_failures = 0

        self.total_checks = 0
        self.successful_checks = 0
        self.failed_checks = 0
        self.uptime_percent = 100.0
        self.average_response_time_ms = 0
        self.last_downtime_at = None
        self.total_downtime_minutes = 0
        self.alerts_raised = 0

        self.check_interval_minutes = check_interval_minutes
        self.enabled = enabled
        self.notify_on_failure = notify_on_failure
        self.failure_threshold = failure_threshold

    def is_due(self, now: datetime) -> bool:
        if not self.enabled:
            return False
        if self.last_checked_at is None:
            return True
        elapsed_minutes = (now - self.last_checked_at).total_seconds() / 60
        return elapsed_minutes >= self.check_interval_minutes

    def find_alert(self, alert_id: str) -> Optional["LinkHealthAlert"]:
        for alert in self.alerts:
            if alert.id == alert_id:
                return alert
        return None

    @property
    def unacknowledged_alert_count(self) -> int:
        return sum(1 for alert in self.alerts if not alert.acknowledged)

    def current_status_dict(self) -> dict:
        return {
            "is_healthy": self.is_healthy,
            "last_checked_at": _iso(self.last_checked_at),
            "last_status_code": self.last_status_code,
            "last_response_time_ms": self.last_response_time_ms,
            "consecutive_failures": self.consecutive_failures,
        }

    def statistics_dict(self) -> dict:
        return {
            "total_checks": self.total_checks,
            "successful_checks": self.successful_checks,
            "failed_checks": self.failed_checks,
            "uptime_percent": round(self.uptime_percent, 2),
            "average_response_time_ms": self.average_response_time_ms,
            "last_downtime_at": _iso(self.last_downtime_at),
            "total_downtime_minutes": self.total_downtime_minutes,
        }

    def settings_dict(self) -> dict:
        return {
            "check_interval_minutes": self.check_interval_minutes,
            "enabled": self.enabled,
            "notify_on_failure": self.notify_on_failure,
            "failure_threshold": self.failure_threshold,
        }

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "link_id": self.link_id,
            "destination_url": self.destination_url,
            "current_status": self.current_status_dict(),
            "statistics": self.statistics_dict(),
            "settings": self.settings_dict(),
            "unacknowledged_alerts": self.unacknowledged_alert_count,
        }

    def __repr__(self) -> str:
        return f"<LinkHealth {self.link_id[:8]} {'UP' if self.is_healthy else 'DOWN'}>"


class LinkHealthCheck(db.Model):
    __tablename__ = "link_health_checks"

    id = db.Column(db.String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    record_id = db.Column(db.String(36), db.ForeignKey("link_health.id", ondelete="CASCADE"), nullable=False, index=True)
    sequence = db.Column(db.Integer, nullable=False)

    status_code = db.Column(db.Integer, nullable=False, default=0)
    response_time_ms = db.Column(db.Integer, nullable=False, default=0)
    is_healthy = db.Column(db.Boolean, nullable=False)
    error_message = db.Column(db.String(255), nullable=True)
    redirect_count = db.Column(db.Integer, nullable=False, default=0)

    checked_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False, index=True)

    record = db.relationship("LinkHealth", back_populates="checks")

    __table_args__ = (
        db.UniqueConstraint("record_id", "sequence", name="uq_health_check_sequence"),
        db.Index("idx_health_record_date", "record_id", "checked_at"),
    )

    def __init__(
        self,
        sequence: int,
        is_healthy: bool,
        status_code: int,
        response_time_ms: int,
        checked_at: datetime,
        error_message: Optional[str] = None,
        redirect_count: int = 0,
    ):
        self.id = str(uuid.uuid4())
        self.sequence = sequence
        self.is_healthy = is_healthy
        self.status_code = status_code
        self.response_time_ms = response_time_ms
        self.checked_at = checked_at
        self.error_message = error_message[:255] if error_message else None
        self.redirect_count = redirect_count

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "status_code": self.status_code,
            "response_time_ms": self.response_time_ms,
            "is_healthy": self.is_healthy,
            "error_message": self.error_message,
            "redirect_count": self.redirect_count,
            "checked_at": self.checked_at.isoformat(),
        }

    def __repr__(self) -> str:
        return f"<LinkHealthCheck #{self.sequence} {'OK' if self.is_healthy else 'FAIL'}>"


class LinkHealthAlert(db.Model):
    __tablename__ = "link_health_alerts"

    id = db.Column(db.String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    record_id = db.Column(db.String(36), db.ForeignKey("link_health.id", ondelete="CASCADE"), nullable=False, index=True)
    sequence = db.Column(db.Integer, nullable=False)

    alert_type = db.Column(db.Enum(AlertType), nullable=False)
    message = db.Column(db.String(512), nullable=False)
    timestamp = db.Column(db.DateTime, default=datetime.utcnow, nullable=False, index=True)

    acknowledged = db.Column(db.Boolean, default=False, nullable=False, index=True)
    acknowledged_at = db.Column(db.DateTime, nullable=True)

    record = db.relationship("LinkHealth", back_populates="alerts")

    def __init__(self, sequence: int, alert_type: AlertType, message: str, timestamp: datetime):
        self.id = str(uuid.uuid4())
        self.sequence = sequence
        self.alert_type = alert_type
        self.message = message
        self.timestamp = timestamp
        self.acknowledged = False
        self.acknowledged_at = None

    def acknowledge(self, now: Optional[datetime] = None) -> None:
        self.acknowledged = True
        self.acknowledged_at = now or datetime.utcnow()

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "type": self.alert_type.value,
            "message": self.message,
            "timestamp": self.timestamp.isoformat(),
            "acknowledged": self.acknowledged,
            "acknowledged_at": _iso(self.acknowledged_at),
        }

    def __repr__(self) -> str:
        return f"<LinkHealthAlert {self.alert_type.value} #{self.sequence}>"
