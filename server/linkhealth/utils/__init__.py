# server/linkhealth/utils/__init__.py

from linkhealth.utils.validators import SettingsValidator, URLValidator

__all__ = [
    "SettingsValidator",
    "URLValidator",
]
