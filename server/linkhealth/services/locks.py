# server/linkhealth/services/locks.py

import logging
import threading
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Dict, Iterator

from redis.exceptions import LockError, RedisError

from linkhealth.errors import LockTimeoutError
from linkhealth.services.redis_service import RedisService

logger = logging.getLogger(__name__)


@dataclass
class _LocalLock:
    lock: threading.Lock = field(default_factory=threading.Lock)
    users: int = 0


class RecordLockManager:
    """Serializes ingestion per link id.

    Uses a Redis lock when Redis is reachable so the scheduler and request
    workers in other processes are covered, and falls back to one
    ``threading.Lock`` per link id inside this process otherwise. A local lock
    is dropped once no thread holds or waits on it.
    """

    def __init__(self, timeout: int = 60, blocking_timeout: int = 30):
        self.timeout = timeout
        self.blocking_timeout = blocking_timeout
        self._local_locks: Dict[str, _LocalLock] = {}
        self._registry_lock = threading.Lock()

    @classmethod
    def from_config(cls, config) -> "RecordLockManager":
        return cls(
            timeout=config.get("HEALTH_LOCK_TIMEOUT", 60),
            blocking_timeout=config.get("HEALTH_LOCK_BLOCKING_TIMEOUT", 30),
        )

    @contextmanager
    def _hold_local(self, link_id: str) -> Iterator[None]:
        with self._registry_lock:
            entry = self._local_locks.setdefault(link_id, _LocalLock())
            entry.users += 1

        try:
            if not entry.lock.acquire(timeout=self.blocking_timeout):
                raise LockTimeoutError(link_id)
            try:
                yield
            finally:
                entry.lock.release()
        finally:
            with self._registry_lock:
                entry.users -= 1
                if entry.users == 0:
                    del self._local_locks[link_id]

    @contextmanager
    def hold(self, link_id: str) -> Iterator[None]:
        try:
            redis_lock = RedisService().lock(link_id, self.timeout, self.blocking_timeout)
        except RedisError as e:
            logger.warning(f"Redis lock unavailable for {link_id}, using local lock: {e}")
            redis_lock = None

        if redis_lock is None:
            with self._hold_local(link_id):
                yield
            return

        try:
            acquired = redis_lock.acquire()
        except RedisError as e:
            raise LockTimeoutError(link_id) from e
        if not acquired:
            raise LockTimeoutError(link_id)

        try:
            yield
        finally:
            try:
                redis_lock.release()
            except LockError as e:
                logger.warning(f"Health record lock for {link_id} expired before release: {e}")
