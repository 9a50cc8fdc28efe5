"""Lightweight service container shared by the matchmaking modules."""

from __future__ import annotations

from typing import Optional

import asyncpg
from redis.asyncio import Redis

from hackmatch.domain.matchmaking.ledger import InMemorySwipeLedger, SwipeLedger
from hackmatch.domain.matchmaking.preferences import InMemoryPreferencesRepository, PreferencesRepository
from hackmatch.domain.matchmaking.processor import Clock, utcnow
from hackmatch.domain.matchmaking.profiles import InMemoryProfileStore, ProfileStore
from hackmatch.domain.matchmaking.queue import InMemoryQueueStore, QueueStore, RedisQueueStore
from hackmatch.domain.matchmaking.ranking import CandidateRanker
from hackmatch.domain.matchmaking.service import MatchmakingService
from hackmatch.domain.matchmaking.sockets import MatchNotifier, SocketMatchNotifier
from hackmatch.infra.ledger_repo import PostgresSwipeLedger
from hackmatch.infra.preferences_repo import PostgresPreferencesRepository
from hackmatch.infra.profile_repo import PostgresProfileStore
from hackmatch.infra.redis import RedisProxy, redis_client
from hackmatch.settings import settings


def _default_ranker() -> CandidateRanker:
	return CandidateRanker(settings.ranking_weights, tie_epsilon=settings.ranking_tie_epsilon)


def _queue_store_from_settings(redis_conn: Redis | RedisProxy | None = None) -> QueueStore:
	if settings.matchmaking_queue_backend == "redis":
		proxy = redis_conn if isinstance(redis_conn, RedisProxy) else (RedisProxy(redis_conn) if redis_conn else redis_client)
		return RedisQueueStore(proxy, ttl_seconds=settings.matchmaking_queue_ttl_seconds)
	return InMemoryQueueStore()


_profiles: ProfileStore = InMemoryProfileStore()
_ledger: SwipeLedger = InMemorySwipeLedger()
_preferences: PreferencesRepository = InMemoryPreferencesRepository()
_queue_store: QueueStore = InMemoryQueueStore()
_notifier: Optional[MatchNotifier] = SocketMatchNotifier()
_ranker: CandidateRanker = _default_ranker()
_require_serving: bool = settings.matchmaking_require_serving
_undo_window_seconds: int = settings.matchmaking_undo_window_seconds
_clock: Clock = utcnow
_service: Optional[MatchmakingService] = None


def _build() -> MatchmakingService:
	return MatchmakingService(
		profiles=_profiles,
		ledger=_ledger,
		preferences=_preferences,
		queue_store=_queue_store,
		ranker=_ranker,
		notifier=_notifier,
		require_serving=_require_serving,
		undo_window_seconds=_undo_window_seconds,
		clock=_clock,
	)


def configure(
	*,
	profiles: Optional[ProfileStore] = None,
	ledger: Optional[SwipeLedger] = None,
	preferences: Optional[PreferencesRepository] = None,
	queue_store: Optional[QueueStore] = None,
	notifier: Optional[MatchNotifier] = None,
	ranker: Optional[CandidateRanker] = None,
	require_serving: Optional[bool] = None,
	undo_window_seconds: Optional[int] = None,
	clock: Optional[Clock] = None,
) -> MatchmakingService:
	global _profiles, _ledger, _preferences, _queue_store, _notifier, _ranker
	global _require_serving, _undo_window_seconds, _clock, _service
	if profiles is not None:
		_profiles = profiles
	if ledger is not None:
		_ledger = ledger
	if preferences is not None:
		_preferences = preferences
	if queue_store is not None:
		_queue_store = queue_store
	if notifier is not None:
		_notifier = notifier
	if ranker is not None:
		_ranker = ranker
	if require_serving is not None:
		_require_serving = require_serving
	if undo_window_seconds is not None:
		_undo_window_seconds = undo_window_seconds
	if clock is not None:
		_clock = clock
	_service = _build()
	return _service


def configure_postgres(pool: asyncpg.Pool, redis_conn: Redis | RedisProxy | None = None) -> MatchmakingService:
	return configure(
		profiles=PostgresProfileStore(pool),
		ledger=PostgresSwipeLedger(pool),
		preferences=PostgresPreferencesRepository(pool),
		queue_store=_queue_store_from_settings(redis_conn),
	)


def configure_memory(*, profiles: Optional[ProfileStore] = None) -> MatchmakingService:
	"""Fresh in-memory stores; the queue store still follows settings."""
	return configure(
		profiles=profiles or InMemoryProfileStore(),
		ledger=InMemorySwipeLedger(),
		preferences=InMemoryPreferencesRepository(),
		queue_store=_queue_store_from_settings(),
	)


def reset() -> None:
	global _profiles, _ledger, _preferences, _queue_store, _notifier, _ranker
	global _require_serving, _undo_window_seconds, _clock, _service
	_profiles = InMemoryProfileStore()
	_ledger = InMemorySwipeLedger()
	_preferences = InMemoryPreferencesRepository()
	_queue_store = InMemoryQueueStore()
	_notifier = SocketMatchNotifier()
	_ranker = _default_ranker()
	_require_serving = settings.matchmaking_require_serving
	_undo_window_seconds = settings.matchmaking_undo_window_seconds
	_clock = utcnow
	_service = None


def get_service() -> MatchmakingService:
	global _service
	if _service is None:
		_service = _build()
	return _service


def get_profile_store() -> ProfileStore:
	return _profiles


def get_ledger() -> SwipeLedger:
	return _ledger


def get_preferences_repository() -> PreferencesRepository:
	return _preferences


def get_queue_store() -> QueueStore:
	return _queue_store
