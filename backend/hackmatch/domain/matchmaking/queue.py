"""Per-hacker candidate queues and the manager that serves them one at a time.

Queue state is ephemeral: it can always be rebuilt from the profile store and the
swipe ledger, so the stores here are plain keyed caches (process memory or Redis)
and a lost queue only costs a re-rank. All mutation for one hacker happens while
holding that hacker's entry in a ``KeyedLock``; no lock spans more than one user.
"""

from __future__ import annotations

import asyncio
import json
import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import AsyncIterator, Optional, Protocol

from redis.exceptions import RedisError

from hackmatch.domain.matchmaking import preferences as prefs
from hackmatch.domain.matchmaking.exceptions import CandidateNotFound, DependencyUnavailable
from hackmatch.domain.matchmaking.ledger import SwipeLedger
from hackmatch.domain.matchmaking.locks import KeyedLock
from hackmatch.domain.matchmaking.models import HackerProfile, MatchCandidateQueue, QueueEntry
from hackmatch.domain.matchmaking.preferences import PreferencesRepository
from hackmatch.domain.matchmaking.profiles import ProfileStore
from hackmatch.domain.matchmaking.ranking import CandidateRanker, ScoredCandidate
from hackmatch.infra.redis import RedisProxy, redis_client
from hackmatch.obs import metrics as obs_metrics

logger = logging.getLogger(__name__)


class QueueStore(Protocol):
	async def load(self, user_id: str) -> Optional[MatchCandidateQueue]:
		...

	async def save(self, queue: MatchCandidateQueue) -> None:
		...

	async def delete(self, user_id: str) -> None:
		...


class InMemoryQueueStore(QueueStore):
	"""Keeps serialised queues so callers never share mutable state."""

	def __init__(self) -> None:
		self._lock = asyncio.Lock()
		self._queues: dict[str, dict] = {}

	async def load(self, user_id: str) -> Optional[MatchCandidateQueue]:
		async with self._lock:
			raw = self._queues.get(user_id)
		return MatchCandidateQueue.from_dict(raw) if raw is not None else None

	async def save(self, queue: MatchCandidateQueue) -> None:
		async with self._lock:
			self._queues[queue.user_id] = queue.to_dict()

	async def delete(self, user_id: str) -> None:
		async with self._lock:
			self._queues.pop(user_id, None)


class RedisQueueStore(QueueStore):
	"""JSON queues in Redis with a sliding TTL."""

	def __init__(
		self,
		redis: RedisProxy | None = None,
		*,
		ttl_seconds: int = 3600,
		namespace: str = "hackmatch:queue:",
	) -> None:
		self.redis = redis or redis_client
		self.ttl_seconds = ttl_seconds
		self.namespace = namespace

	def _key(self, user_id: str) -> str:
		return f"{self.namespace}{user_id}"

	async def load(self, user_id: str) -> Optional[MatchCandidateQueue]:
		try:
			raw = await self.redis.get(self._key(user_id))
		except RedisError as exc:
			obs_metrics.inc_dependency_error("redis")
			raise DependencyUnavailable("queue_store") from exc
		if not raw:
			return None
		try:
			decoded = raw.decode("utf-8") if isinstance(raw, bytes) else str(raw)
			return MatchCandidateQueue.from_dict(json.loads(decoded))
		except (json.JSONDecodeError, KeyError, TypeError, ValueError):
			logger.warning("queue.decode_failed", extra={"queue_user_id": user_id})
			return None

	async def save(self, queue: MatchCandidateQueue) -> None:
		payload = json.dumps(queue.to_dict()).encode("utf-8")
		try:
			await self.redis.set(self._key(queue.user_id), payload, ex=self.ttl_seconds)
		except RedisError as exc:
			obs_metrics.inc_dependency_error("redis")
			raise DependencyUnavailable("queue_store") from exc

	async def delete(self, user_id: str) -> None:
		try:
			await self.redis.delete(self._key(user_id))
		except RedisError as exc:
			obs_metrics.inc_dependency_error("redis")
			raise DependencyUnavailable("queue_store") from exc


@dataclass(slots=True)
class ServedCandidate:
	entry: QueueEntry
	profile: HackerProfile


class MatchQueueManager:
	"""Serves exactly one outstanding candidate per hacker.

	``get_next_match`` takes the hacker's lock itself. The remaining mutators
	(``advance``, ``present_again``, ``invalidate``) expect the caller to already
	hold ``locked(user_id)`` so a swipe or undo can update the ledger and the
	queue as one serialised step.
	"""

	def __init__(
		self,
		*,
		profiles: ProfileStore,
		ledger: SwipeLedger,
		preferences: PreferencesRepository,
		ranker: CandidateRanker,
		store: QueueStore,
		locks: KeyedLock | None = None,
	) -> None:
		self.profiles = profiles
		self.ledger = ledger
		self.preferences = preferences
		self.ranker = ranker
		self.store = store
		self.locks = locks or KeyedLock()

	@asynccontextmanager
	async def locked(self, user_id: str) -> AsyncIterator[None]:
		async with self.locks.hold(user_id):
			yield

	async def _requester(self, user_id: str) -> HackerProfile:
		requester = await self.profiles.get_profile(user_id)
		if requester is None:
			raise CandidateNotFound("requester_not_found")
		return requester

	async def _eligible_pool(self, requester: HackerProfile) -> list[HackerProfile]:
		excluded = await self.ledger.swiped_target_ids(requester.user_id)
		excluded |= await self.ledger.blocked_by(requester.user_id)
		pool = await self.profiles.get_eligible_profiles(requester.user_id, excluded)
		hidden = await self.preferences.hidden_user_ids([profile.user_id for profile in pool])
		requester_prefs = await self.preferences.get(requester.user_id)
		return prefs.filter_pool(requester_prefs, requester, pool, hidden)

	async def rank_for(self, user_id: str) -> list[ScoredCandidate]:
		"""Fresh ranking of the hacker's eligible pool."""
		requester = await self._requester(user_id)
		return self.ranker.rank(requester, await self._eligible_pool(requester))

	async def score_candidate(self, requester: HackerProfile, candidate: HackerProfile) -> ScoredCandidate:
		"""Score one candidate against the requester's current pool."""
		pool = await self.profiles.get_eligible_profiles(requester.user_id, ())
		if all(profile.user_id != candidate.user_id for profile in pool):
			pool = [*pool, candidate]
		return self.ranker.score_pair(requester, candidate, pool)

	async def _load(self, user_id: str) -> MatchCandidateQueue:
		return await self.store.load(user_id) or MatchCandidateQueue(user_id=user_id)

	async def current(self, user_id: str) -> Optional[QueueEntry]:
		queue = await self.store.load(user_id)
		return queue.serving if queue else None

	async def _servable(self, user_id: str, profile: HackerProfile) -> bool:
		"""Re-check a cached entry against state that may have changed after ranking."""
		if not profile.matching_enabled:
			return False
		if await self.ledger.has_swiped(user_id, profile.user_id):
			return False
		if profile.user_id in await self.ledger.blocked_by(user_id):
			return False
		return not await self.preferences.hidden_user_ids([profile.user_id])

	async def get_next_match(self, user_id: str) -> Optional[ServedCandidate]:
		"""Return the served candidate, refilling once when the queue is empty.

		Returns ``None`` when the pool is exhausted. Nothing is persisted unless
		every read succeeded, so a failing dependency leaves the queue as it was.
		"""
		async with self.locked(user_id):
			queue = await self._load(user_id)
			kind = "repeat" if queue.serving is not None else "fresh"
			refilled = False
			while True:
				if queue.serving is None:
					if not queue.candidates:
						if refilled:
							break
						ranked = await self.rank_for(user_id)
						queue.candidates = [item.to_queue_entry() for item in ranked]
						refilled = True
						obs_metrics.inc_queue_refill("loaded" if ranked else "empty")
						if not queue.candidates:
							break
					queue.serving = queue.candidates.pop(0)
				profile = await self.profiles.get_profile(queue.serving.candidate_id)
				if profile is not None and await self._servable(user_id, profile):
					await self.store.save(queue)
					obs_metrics.inc_queue_serve(kind)
					return ServedCandidate(entry=queue.serving, profile=profile)
				# Served candidate went stale since the queue was ranked.
				queue.serving = None
				kind = "fresh"
			await self.store.save(queue)
			obs_metrics.inc_queue_serve("exhausted")
			return None

	async def advance(self, user_id: str, target_id: str) -> None:
		"""Consume ``target_id`` after a committed swipe."""
		queue = await self._load(user_id)
		consumed: Optional[QueueEntry] = None
		if queue.serving is not None and queue.serving.candidate_id == target_id:
			consumed = queue.serving
			queue.serving = None
		else:
			consumed = next((entry for entry in queue.candidates if entry.candidate_id == target_id), None)
			queue.discard(target_id)
		queue.last_consumed = consumed
		await self.store.save(queue)

	async def drop(self, user_id: str, target_id: str) -> None:
		"""Remove ``target_id`` from the queue without recording it as consumed."""
		queue = await self.store.load(user_id)
		if queue is None:
			return
		if queue.serving is not None and queue.serving.candidate_id == target_id:
			queue.serving = None
		queue.discard(target_id)
		if queue.last_consumed is not None and queue.last_consumed.candidate_id == target_id:
			queue.last_consumed = None
		await self.store.save(queue)

	async def present_again(self, user_id: str, entry: QueueEntry) -> None:
		"""Put ``entry`` back at the front and serve it."""
		queue = await self._load(user_id)
		queue.discard(entry.candidate_id)
		if queue.serving is not None and queue.serving.candidate_id != entry.candidate_id:
			queue.candidates.insert(0, queue.serving)
		queue.serving = entry
		queue.last_consumed = None
		await self.store.save(queue)

	async def last_consumed(self, user_id: str) -> Optional[QueueEntry]:
		queue = await self.store.load(user_id)
		return queue.last_consumed if queue else None

	async def invalidate(self, user_id: str) -> None:
		"""Drop unserved candidates so the next request re-ranks; the served one stays."""
		queue = await self.store.load(user_id)
		if queue is None:
			return
		queue.candidates = []
		await self.store.save(queue)
