"""AsyncPG pool management for the backend."""

from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

import asyncpg

from hackmatch.domain.matchmaking.exceptions import DependencyUnavailable
from hackmatch.obs import metrics as obs_metrics
from hackmatch.settings import settings

_pool: Optional[asyncpg.pool.Pool] = None

STORAGE_ERRORS = (
	asyncpg.PostgresError,
	asyncpg.InterfaceError,
	asyncio.TimeoutError,
	OSError,
)


async def init_pool() -> asyncpg.pool.Pool:
	global _pool
	if _pool is None:
		dsn = settings.postgres_url.replace("localhost", "127.0.0.1")
		_pool = await asyncpg.create_pool(
			dsn=dsn,
			min_size=settings.postgres_min_pool_size,
			max_size=settings.postgres_max_pool_size,
			command_timeout=settings.postgres_command_timeout_seconds,
		)
	return _pool


def set_pool(pool: Optional[asyncpg.pool.Pool]) -> None:
	global _pool
	_pool = pool


async def get_pool() -> asyncpg.pool.Pool:
	if _pool is None:
		await init_pool()
	assert _pool is not None
	return _pool


async def close_pool() -> None:
	global _pool
	if _pool is not None:
		await _pool.close()
		_pool = None


@asynccontextmanager
async def storage_errors(dependency: str) -> AsyncIterator[None]:
	"""Surface database failures as ``DependencyUnavailable``."""
	try:
		yield
	except STORAGE_ERRORS as exc:
		obs_metrics.inc_dependency_error(dependency)
		raise DependencyUnavailable(dependency) from exc
