# tests/conftest.py

"""Shared pytest fixtures for the link health tests."""

from collections.abc import Generator

import pytest

from linkhealth.services.redis_service import RedisService


@pytest.fixture(autouse=True)
def reset_redis_service() -> Generator[None, None, None]:
    """Make every test start without a cached Redis connection."""
    RedisService.reset()
    yield
    RedisService.reset()
