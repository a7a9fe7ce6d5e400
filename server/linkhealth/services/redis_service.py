# server/linkhealth/services/redis_service.py

import logging
from typing import Optional

import redis
from flask import current_app
from redis.lock import Lock

logger = logging.getLogger(__name__)

KEY_PREFIX = "savlink"


class RedisService:
    _client: Optional[redis.Redis] = None
    _initialized: bool = False

    def __init__(self):
        if not RedisService._initialized:
            self._connect()
        self.client = RedisService._client

    def _connect(self) -> None:
        RedisService._initialized = True

        redis_url = current_app.config.get("REDIS_URL")

        if not redis_url:
            logger.info("Redis not configured, using in-process locks")
            return

        try:
            if "upstash.io" in redis_url and redis_url.startswith("redis://"):
                redis_url = redis_url.replace("redis://", "rediss://", 1)

            RedisService._client = redis.from_url(
                redis_url,
                decode_responses=True,
                socket_timeout=10,
                socket_connect_timeout=10,
                retry_on_timeout=True,
                health_check_interval=30
            )

            RedisService._client.ping()
            logger.info("Redis connected")

        except redis.RedisError as e:
            logger.warning(f"Redis connection failed: {e}")
            RedisService._client = None

    @classmethod
    def reset(cls) -> None:
        cls._client = None
        cls._initialized = False

    def available(self) -> bool:
        if self.client is None:
            return False
        try:
            self.client.ping()
            return True
        except redis.RedisError:
            return False

    def _key(self, *parts) -> str:
        return f"{KEY_PREFIX}:{':'.join(str(p) for p in parts)}"

    # Per-record locks
    def lock(self, name: str, timeout: int, blocking_timeout: int) -> Optional[Lock]:
        if not self.available():
            return None

        return self.client.lock(
            self._key("health-lock", name),
            timeout=timeout,
            blocking_timeout=blocking_timeout,
        )
