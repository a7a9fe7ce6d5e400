# server/linkhealth/utils/validators.py

from typing import Optional, Tuple
from urllib.parse import urlparse

from linkhealth.models.link_health import MonitorSettings


class URLValidator:
    ALLOWED_SCHEMES = {"http", "https"}
    MAX_URL_LENGTH = 2048

    @classmethod
    def validate(cls, url: str) -> Tuple[bool, Optional[str], Optional[str]]:
        if not url or not isinstance(url, str):
            return False, None, "URL is required"

        url = url.strip()

        if len(url) > cls.MAX_URL_LENGTH:
            return False, None, f"URL is too long (max {cls.MAX_URL_LENGTH} characters)"

        try:
            parsed = urlparse(url)
        except ValueError:
            return False, None, "Invalid URL format"

        if parsed.scheme.lower() not in cls.ALLOWED_SCHEMES:
            return False, None, "URL must start with http:// or https://"

        if not parsed.netloc:
            return False, None, "URL must include a domain"

        return True, url, None


class SettingsValidator:
    MIN_CHECK_INTERVAL = 1
    MAX_CHECK_INTERVAL = 7 * 24 * 60
    MIN_FAILURE_THRESHOLD = 1
    MAX_FAILURE_THRESHOLD = 100

    FIELD_ALIASES = {
        "check_interval_minutes": "check_interval_minutes",
        "checkInterval": "check_interval_minutes",
        "check_interval": "check_interval_minutes",
        "enabled": "enabled",
        "notify_on_failure": "notify_on_failure",
        "notifyOnFailure": "notify_on_failure",
        "failure_threshold": "failure_threshold",
        "failureThreshold": "failure_threshold",
    }

    @classmethod
    def validate(cls, data: Optional[dict]) -> Tuple[bool, Optional[MonitorSettings], Optional[str]]:
        if data is None:
            return True, MonitorSettings(), None

        if not isinstance(data, dict):
            return False, None, "Settings must be an object"

        values = {}
        for key, value in data.items():
            field_name = cls.FIELD_ALIASES.get(key)
            if field_name is None:
                return False, None, f"Unknown setting: {key}"
            if value is not None:
                values[field_name] = value

        interval = values.get("check_interval_minutes")
        if interval is not None:
            if not cls._is_int(interval):
                return False, None, "check_interval_minutes must be an integer"
            if not cls.MIN_CHECK_INTERVAL <= interval <= cls.MAX_CHECK_INTERVAL:
                return False, None, (
                    f"check_interval_minutes must be between "
                    f"{cls.MIN_CHECK_INTERVAL} and {cls.MAX_CHECK_INTERVAL}"
                )

        threshold = values.get("failure_threshold")
        if threshold is not None:
            if not cls._is_int(threshold):
                return False, None, "failure_threshold must be an integer"
            if not cls.MIN_FAILURE_THRESHOLD <= threshold <= cls.MAX_FAILURE_THRESHOLD:
                return False, None, (
                    f"failure_threshold must be between "
                    f"{cls.MIN_FAILURE_THRESHOLD} and {cls.MAX_FAILURE_THRESHOLD}"
                )

        for flag in ("enabled", "notify_on_failure"):
            if flag in values and not isinstance(values[flag], bool):
                return False, None, f"{flag} must be a boolean"

        return True, MonitorSettings(**values), None

    @staticmethod
    def _is_int(value) -> bool:
        return isinstance(value, int) and not isinstance(value, bool)
