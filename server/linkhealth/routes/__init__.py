# server/linkhealth/routes/__init__.py

from linkhealth.routes.health import health_bp

__all__ = [
    "health_bp",
]
