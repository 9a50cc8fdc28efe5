"""Shared Redis client for the candidate queue store and readiness probes.

Modules import ``redis_client`` once; the proxy lets the lifespan and the test
suite swap the connection underneath without re-importing anything.
"""

from __future__ import annotations

import logging

import redis.asyncio as redis
from redis.exceptions import RedisError

from hackmatch.settings import settings

logger = logging.getLogger(__name__)


def _connect() -> redis.Redis:
    return redis.from_url(settings.redis_url, decode_responses=True)


class RedisProxy:
    """Forwards attribute access to the currently installed client."""

    def __init__(self, client: redis.Redis) -> None:
        self._client: redis.Redis = client

    @property
    def client(self) -> redis.Redis:
        return self._client

    def set_client(self, client: redis.Redis) -> None:
        self._client = client

    def __getattr__(self, item):
        return getattr(self._client, item)


redis_client: RedisProxy = RedisProxy(_connect())


def set_redis_client(client: redis.Redis) -> None:
    redis_client.set_client(client)


async def close_redis() -> None:
    """Close the installed client's connections; a later command reconnects."""
    try:
        await redis_client.client.aclose()
    except RedisError:
        logger.warning("redis.close_failed", exc_info=True)
