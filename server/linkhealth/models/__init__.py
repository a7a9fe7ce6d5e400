# server/linkhealth/models/__init__.py

from linkhealth.models.link import Link
from linkhealth.models.link_health import (
    AlertType,
    LinkHealth,
    LinkHealthAlert,
    LinkHealthCheck,
    MonitorSettings,
)

__all__ = [
    "Link",
    "AlertType",
    "LinkHealth",
    "LinkHealthAlert",
    "LinkHealthCheck",
    "MonitorSettings",
]
