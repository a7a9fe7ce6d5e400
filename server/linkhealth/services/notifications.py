# server/linkhealth/services/notifications.py

import logging
from typing import Protocol

from linkhealth.models.link_health import LinkHealth, LinkHealthAlert

logger = logging.getLogger(__name__)


class NotificationSink(Protocol):
    def notify(self, recipient: str, alert: LinkHealthAlert, record: LinkHealth) -> None:
        ...


class LogNotificationSink:
    """Default sink: writes alerts to the application log.

    Email or SMS delivery is provided by replacing this sink on the service.
    """

    def notify(self, recipient: str, alert: LinkHealthAlert, record: LinkHealth) -> None:
        logger.warning(
            f"[{alert.alert_type.value}] link {record.link_id} ({record.destination_url}) "
            f"for user {recipient}: {alert.message}"
        )
