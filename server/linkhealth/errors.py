# server/linkhealth/errors.py


class LinkHealthError(Exception):
    """Base class for link health monitoring errors."""


class NotMonitoredError(LinkHealthError):
    """The link has no health record, or monitoring is switched off for it."""

    def __init__(self, link_id: str, message: str = None):
        self.link_id = link_id
        super().__init__(message or f"Health monitoring not enabled for link {link_id}")


class MonitoringDisabledError(NotMonitoredError):

    def __init__(self, link_id: str):
        super().__init__(link_id, f"Health monitoring is disabled for link {link_id}")


class LinkNotFoundError(LinkHealthError):

    def __init__(self, link_id: str):
        self.link_id = link_id
        super().__init__(f"Link {link_id} not found")


class AlertNotFoundError(LinkHealthError):

    def __init__(self, link_id: str, alert_id: str):
        self.link_id = link_id
        self.alert_id = alert_id
        super().__init__(f"Alert {alert_id} not found for link {link_id}")


class PersistenceError(LinkHealthError):
    """A health record could not be written. Retried on the next scheduler tick."""


class LockTimeoutError(PersistenceError):

    def __init__(self, link_id: str):
        self.link_id = link_id
        super().__init__(f"Timed out waiting for health record lock on link {link_id}")


class InvalidURLError(ValueError):
    pass


class InvalidSettingsError(ValueError):
    pass
