# server/linkhealth/config.py

import os
from datetime import timedelta


def _env_bool(name: str, default: bool = False) -> bool:
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def _env_int(name: str, default: int) -> int:
    value = os.environ.get(name)
    if not value:
        return default
    return int(value)


class Config:
    FLASK_ENV = os.environ.get("FLASK_ENV", "production")
    SECRET_KEY = os.environ.get("SECRET_KEY", "change-me")

    SQLALCHEMY_DATABASE_URI = os.environ.get("DATABASE_URL", "sqlite:///savlink_health.db")
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_ENGINE_OPTIONS = {"pool_pre_ping": True}

    REDIS_URL = os.environ.get("REDIS_URL")

    JWT_SECRET_KEY = os.environ.get("JWT_SECRET_KEY", SECRET_KEY)
    JWT_ACCESS_TOKEN_EXPIRES = timedelta(hours=1)

    BASE_URL = os.environ.get("BASE_URL", "https://savlink.vercel.app")
    CORS_ORIGINS = [
        "http://localhost:3000",
        "http://localhost:5173",
        "https://savlink.vercel.app",
    ]

    # Link health monitoring
    HEALTH_SCHEDULER_ENABLED = _env_bool("HEALTH_SCHEDULER_ENABLED", True)
    HEALTH_TICK_MINUTES = _env_int("HEALTH_TICK_MINUTES", 15)
    HEALTH_REQUEST_TIMEOUT = _env_int("HEALTH_REQUEST_TIMEOUT", 10)
    HEALTH_MAX_REDIRECTS = _env_int("HEALTH_MAX_REDIRECTS", 5)
    HEALTH_MAX_WORKERS = _env_int("HEALTH_MAX_WORKERS", 5)
    HEALTH_LOCK_TIMEOUT = _env_int("HEALTH_LOCK_TIMEOUT", 60)
    HEALTH_LOCK_BLOCKING_TIMEOUT = _env_int("HEALTH_LOCK_BLOCKING_TIMEOUT", 30)
    HEALTH_USER_AGENT = os.environ.get("HEALTH_USER_AGENT", "Savlink Health Checker/1.0")


class DevelopmentConfig(Config):
    FLASK_ENV = "development"
    HEALTH_SCHEDULER_ENABLED = _env_bool("HEALTH_SCHEDULER_ENABLED", False)


class TestingConfig(Config):
    FLASK_ENV = "testing"
    TESTING = True
    SQLALCHEMY_DATABASE_URI = "sqlite://"
    SQLALCHEMY_ENGINE_OPTIONS = {}
    REDIS_URL = None
    JWT_SECRET_KEY = "testing-secret-key-with-enough-length"
    HEALTH_SCHEDULER_ENABLED = False
    HEALTH_MAX_WORKERS = 1
    HEALTH_LOCK_BLOCKING_TIMEOUT = 2


class ProductionConfig(Config):
    FLASK_ENV = "production"


config_by_name = {
    "development": DevelopmentConfig,
    "testing": TestingConfig,
    "production": ProductionConfig,
}
