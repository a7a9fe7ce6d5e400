# server/linkhealth/services/health_service.py

import enum
import logging
from dataclasses import asdict
from datetime import datetime, timedelta
from typing import Iterable, List, Optional, Union

from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from linkhealth.errors import (
    AlertNotFoundError,
    InvalidSettingsError,
    InvalidURLError,
    LinkNotFoundError,
    MonitoringDisabledError,
    NotMonitoredError,
    PersistenceError,
)
from linkhealth.extensions import db
from linkhealth.models.link_health import LinkHealth, LinkHealthAlert, MonitorSettings
from linkhealth.services.ingestion import ingest
from linkhealth.services.link_registry import LinkRegistry, LinkResolver
from linkhealth.services.locks import RecordLockManager
from linkhealth.services.notifications import LogNotificationSink, NotificationSink
from linkhealth.services.probe_service import CheckResult, ProbeService
from linkhealth.services.statistics import recent_checks, summarize, uptime_percentage
from linkhealth.utils.validators import SettingsValidator, URLValidator

logger = logging.getLogger(__name__)

RECENT_CHECKS_LIMIT = 10


class HealthFilter(enum.Enum):
    ALL = "all"
    HEALTHY = "healthy"
    UNHEALTHY = "unhealthy"


class HealthService:

    def __init__(
        self,
        resolver: Optional[LinkResolver] = None,
        notifier: Optional[NotificationSink] = None,
        prober: Optional[ProbeService] = None,
        locks: Optional[RecordLockManager] = None,
    ):
        self.resolver = resolver or LinkRegistry()
        self.notifier = notifier or LogNotificationSink()
        self.prober = prober or ProbeService()
        self.locks = locks or RecordLockManager()

    @classmethod
    def from_config(cls, config, **overrides) -> "HealthService":
        overrides.setdefault("prober", ProbeService.from_config(config))
        overrides.setdefault("locks", RecordLockManager.from_config(config))
        return cls(**overrides)

    # Lookups

    @staticmethod
    def get_record(link_id: str) -> Optional[LinkHealth]:
        return LinkHealth.query.filter_by(link_id=link_id).first()

    def _require_record(self, link_id: str) -> LinkHealth:
        record = self.get_record(link_id)
        if record is None:
            raise NotMonitoredError(link_id)
        return record

    @staticmethod
    def _locked_record(link_id: str) -> Optional[LinkHealth]:
        # Drop anything read before the lock was taken
        db.session.expire_all()
        return LinkHealth.query.filter_by(link_id=link_id).with_for_update().first()

    @staticmethod
    def _validate_link_id(link_id: str) -> None:
        if not link_id or not isinstance(link_id, str):
            raise ValueError("link_id must be a non-empty string")

    @staticmethod
    def _commit(link_id: str, action: str) -> None:
        try:
            db.session.commit()
        except SQLAlchemyError as e:
            db.session.rollback()
            logger.error(f"Failed to {action} for link {link_id}: {e}")
            raise PersistenceError(f"Failed to {action} for link {link_id}") from e

    # Monitoring lifecycle

    def enable_monitoring(
        self,
        link_id: str,
        destination_url: Optional[str] = None,
        settings: Union[MonitorSettings, dict, None] = None,
        run_initial_check: bool = False,
    ) -> LinkHealth:
        self._validate_link_id(link_id)

        if isinstance(settings, MonitorSettings):
            settings = {k: v for k, v in asdict(settings).items() if v is not None}
        is_valid, parsed, error = SettingsValidator.validate(settings)
        if not is_valid:
            raise InvalidSettingsError(error)
        if parsed.enabled is False:
            raise InvalidSettingsError("enabled cannot be false when enabling monitoring, disable it instead")

        if destination_url is None:
            destination_url = self.resolver.resolve(link_id)
            if destination_url is None:
                raise LinkNotFoundError(link_id)

        is_valid, destination_url, error = URLValidator.validate(destination_url)
        if not is_valid:
            raise InvalidURLError(error)

        def configure(record: LinkHealth) -> None:
            record.destination_url = destination_url
            parsed.apply_to(record)
            record.enabled = True

        with self.locks.hold(link_id):
            record = self._locked_record(link_id)
            created = record is None
            if created:
                record = LinkHealth(link_id=link_id, destination_url=destination_url)
                db.session.add(record)
            configure(record)

            try:
                db.session.commit()
            except IntegrityError:
                # Another writer created the record first; update theirs
                db.session.rollback()
                record = self._locked_record(link_id)
                if record is None:
                    raise PersistenceError(f"Failed to enable monitoring for link {link_id}")
                configure(record)
                self._commit(link_id, "enable monitoring")
            except SQLAlchemyError as e:
                db.session.rollback()
                logger.error(f"Failed to enable monitoring for link {link_id}: {e}")
                raise PersistenceError(f"Failed to enable monitoring for link {link_id}") from e

        logger.info(f"Health monitoring {'enabled' if created else 'updated'} for link {link_id}")

        if run_initial_check:
            self.run_check(link_id)

        return self._require_record(link_id)

    def disable_monitoring(self, link_id: str) -> LinkHealth:
        self._validate_link_id(link_id)

        with self.locks.hold(link_id):
            record = self._locked_record(link_id)
            if record is None:
                raise NotMonitoredError(link_id)

            record.enabled = False
            self._commit(link_id, "disable monitoring")

        logger.info(f"Health monitoring disabled for link {link_id}")
        return record

    # Checks

    def trigger_check(self, link_id: str) -> CheckResult:
        """Probe one link now, outside the schedule.

        Links that were never monitored get a record with default settings
        first; links with monitoring switched off are rejected.
        """
        self._validate_link_id(link_id)

        record = self.get_record(link_id)
        if record is None:
            self.enable_monitoring(link_id)
        elif not record.enabled:
            raise MonitoringDisabledError(link_id)

        return self.run_check(link_id)

    def run_check(self, link_id: str) -> CheckResult:
        record = self._require_record(link_id)
        result = self.prober.check_url(record.destination_url)
        self.record_result(link_id, result)
        return result

    def run_scheduled_check(self, link_id: str) -> Optional[CheckResult]:
        record = self.get_record(link_id)
        if record is None or not record.enabled:
            logger.info(f"Skipping scheduled check for {link_id}: monitoring no longer enabled")
            return None
        return self.run_check(link_id)

    def record_result(self, link_id: str, result: CheckResult) -> LinkHealth:
        with self.locks.hold(link_id):
            record = self._locked_record(link_id)
            if record is None:
                logger.error(f"Check result for link {link_id} dropped: no health record")
                raise NotMonitoredError(link_id)

            alerts_before = record.alerts_raised
            ingest(record, result)
            new_alerts = [alert for alert in record.alerts if alert.sequence > alerts_before]

            self._commit(link_id, "persist health check")

        logger.debug(
            f"Health check for link {link_id}: "
            f"{'healthy' if result.is_healthy else 'unhealthy'} ({result.status_code})"
        )

        if new_alerts:
            self._dispatch_alerts(record, new_alerts)

        return record

    def _dispatch_alerts(self, record: LinkHealth, alerts: List[LinkHealthAlert]) -> None:
        recipient = self.resolver.owner_of(record.link_id)
        if recipient is None:
            logger.warning(f"No alert recipient for link {record.link_id}")
            return

        for alert in alerts:
            try:
                self.notifier.notify(recipient, alert, record)
            except Exception as e:
                logger.error(f"Alert delivery failed for link {record.link_id}: {e}")

    def get_due_link_ids(self, now: Optional[datetime] = None) -> List[str]:
        now = now or datetime.utcnow()

        candidates = LinkHealth.query.filter(
            LinkHealth.enabled.is_(True),
            db.or_(
                LinkHealth.last_checked_at.is_(None),
                LinkHealth.last_checked_at <= now - timedelta(minutes=SettingsValidator.MIN_CHECK_INTERVAL),
            )
        ).order_by(LinkHealth.last_checked_at.asc()).all()

        return [record.link_id for record in candidates if record.is_due(now)]

    # Reporting

    def get_status(self, link_id: str, now: Optional[datetime] = None) -> dict:
        record = self._require_record(link_id)
        now = now or datetime.utcnow()

        return {
            "link_id": record.link_id,
            "destination_url": record.destination_url,
            "current_status": record.current_status_dict(),
            "statistics": record.statistics_dict(),
            "settings": record.settings_dict(),
            "recent_checks": [check.to_dict() for check in recent_checks(record, RECENT_CHECKS_LIMIT)],
            "uptime_7d": round(uptime_percentage(record, days=7, now=now), 2),
            "uptime_30d": round(uptime_percentage(record, days=30, now=now), 2),
            "unacknowledged_alert_count": record.unacknowledged_alert_count,
        }

    @staticmethod
    def list_monitored(link_ids: Iterable[str], status: str = "all") -> List[LinkHealth]:
        try:
            health_filter = HealthFilter(status)
        except ValueError:
            raise ValueError(f"Unknown status filter: {status}") from None

        link_ids = list(link_ids)
        if not link_ids:
            return []

        query = LinkHealth.query.filter(
            LinkHealth.link_id.in_(link_ids),
            LinkHealth.enabled.is_(True),
        )

        if health_filter == HealthFilter.HEALTHY:
            query = query.filter(LinkHealth.is_healthy.is_(True))
        elif health_filter == HealthFilter.UNHEALTHY:
            query = query.filter(LinkHealth.is_healthy.is_(False))

        return query.order_by(LinkHealth.last_checked_at.desc()).all()

    def get_health_summary(self, link_ids: Iterable[str]) -> dict:
        return summarize(self.list_monitored(link_ids))

    @staticmethod
    def get_alerts(link_ids: Iterable[str], acknowledged: Optional[bool] = None) -> List[dict]:
        link_ids = list(link_ids)
        if not link_ids:
            return []

        query = LinkHealthAlert.query.join(LinkHealth).filter(
            LinkHealth.link_id.in_(link_ids),
            LinkHealth.enabled.is_(True),
        )

        if acknowledged is not None:
            query = query.filter(LinkHealthAlert.acknowledged.is_(acknowledged))

        alerts = query.order_by(
            LinkHealthAlert.timestamp.desc(),
            LinkHealthAlert.sequence.desc(),
        ).all()

        return [{**alert.to_dict(), "link_id": alert.record.link_id} for alert in alerts]

    # Alert ledger

    def acknowledge_alert(self, link_id: str, alert_id: str) -> LinkHealthAlert:
        self._validate_link_id(link_id)

        with self.locks.hold(link_id):
            record = self._locked_record(link_id)
            if record is None:
                raise NotMonitoredError(link_id)

            alert = record.find_alert(alert_id)
            if alert is None:
                raise AlertNotFoundError(link_id, alert_id)

            if not alert.acknowledged:
                alert.acknowledge()
                self._commit(link_id, "acknowledge alert")

        return alert
