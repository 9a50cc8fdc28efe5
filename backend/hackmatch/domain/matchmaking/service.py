"""Matching engine facade consumed by the HTTP layer."""

from __future__ import annotations

import logging
from typing import Union

from hackmatch.domain.matchmaking import preferences as prefs
from hackmatch.domain.matchmaking.exceptions import CandidateNotFound, InvalidTarget
from hackmatch.domain.matchmaking.ledger import SwipeLedger
from hackmatch.domain.matchmaking.locks import KeyedLock
from hackmatch.domain.matchmaking.models import HackerProfile, SwipeDirection
from hackmatch.domain.matchmaking.preferences import PreferencesRepository
from hackmatch.domain.matchmaking.processor import Clock, SwipeProcessor, utcnow
from hackmatch.domain.matchmaking.profiles import ProfileStore
from hackmatch.domain.matchmaking.queue import MatchQueueManager, QueueStore
from hackmatch.domain.matchmaking.ranking import CandidateRanker
from hackmatch.domain.matchmaking.schemas import (
	BlockResult,
	CandidateProfile,
	MatchInsight,
	MatchSummary,
	NoMoreCandidates,
	PreferencesPayload,
	PreferencesResponse,
	SwipeResult,
)
from hackmatch.domain.matchmaking.sockets import MatchNotifier
from hackmatch.domain.matchmaking.undo import UndoCoordinator

logger = logging.getLogger(__name__)


class MatchmakingService:
	"""Wires the queue manager, swipe processor and undo coordinator together."""

	def __init__(
		self,
		*,
		profiles: ProfileStore,
		ledger: SwipeLedger,
		preferences: PreferencesRepository,
		queue_store: QueueStore,
		ranker: CandidateRanker | None = None,
		notifier: MatchNotifier | None = None,
		require_serving: bool = False,
		undo_window_seconds: int = 0,
		clock: Clock = utcnow,
	) -> None:
		self.profiles = profiles
		self.ledger = ledger
		self.preferences = preferences
		self.ranker = ranker or CandidateRanker()
		self.queue = MatchQueueManager(
			profiles=profiles,
			ledger=ledger,
			preferences=preferences,
			ranker=self.ranker,
			store=queue_store,
			locks=KeyedLock(),
		)
		self.processor = SwipeProcessor(
			profiles=profiles,
			ledger=ledger,
			queue=self.queue,
			notifier=notifier,
			require_serving=require_serving,
			clock=clock,
		)
		self.undo = UndoCoordinator(
			profiles=profiles,
			ledger=ledger,
			queue=self.queue,
			notifier=notifier,
			window_seconds=undo_window_seconds,
			clock=clock,
		)

	async def _profile(self, user_id: str, *, reason: str | None = None) -> HackerProfile:
		profile = await self.profiles.get_profile(str(user_id))
		if profile is None:
			raise CandidateNotFound(reason)
		return profile

	async def get_next_match(self, user_id: str) -> Union[CandidateProfile, NoMoreCandidates]:
		user_id = str(user_id)
		served = await self.queue.get_next_match(user_id)
		if served is None:
			return NoMoreCandidates()
		requester = await self._profile(user_id, reason="requester_not_found")
		return CandidateProfile.build(requester, served.profile, served.entry)

	async def swipe_right(self, user_id: str, target_id: str) -> SwipeResult:
		outcome = await self.processor.swipe(user_id, target_id, SwipeDirection.RIGHT)
		return SwipeResult(accepted=outcome.accepted, matched=outcome.matched, match_id=outcome.match_id)

	async def swipe_left(self, user_id: str, target_id: str) -> SwipeResult:
		outcome = await self.processor.swipe(user_id, target_id, SwipeDirection.LEFT)
		return SwipeResult(accepted=outcome.accepted)

	async def undo_last_swipe(self, user_id: str) -> CandidateProfile:
		result = await self.undo.undo_last_swipe(user_id)
		requester = await self._profile(user_id, reason="requester_not_found")
		return CandidateProfile.build(requester, result.candidate.profile, result.candidate.entry)

	async def block_user(self, user_id: str, target_id: str) -> BlockResult:
		outcome = await self.processor.block(user_id, target_id)
		retracted = outcome.retracted_match
		return BlockResult(blocked=True, retracted_match_id=retracted.match_id if retracted else None)

	async def list_matches(self, user_id: str) -> list[MatchSummary]:
		user_id = str(user_id)
		matches = await self.ledger.list_matches(user_id)
		if not matches:
			return []
		requester = await self.profiles.get_profile(user_id)
		peers = await self.profiles.get_profiles([match.peer_of(user_id) for match in matches])
		summaries: list[MatchSummary] = []
		for match in matches:
			peer = peers.get(match.peer_of(user_id))
			card = None
			if requester is not None and peer is not None:
				scored = self.ranker.score_pair(requester, peer, list(peers.values()))
				card = CandidateProfile.build(requester, peer, scored.to_queue_entry())
			summaries.append(MatchSummary.build(user_id, match, card))
		return summaries

	async def get_match_insight(self, user_id: str, target_id: str) -> MatchInsight:
		user_id = str(user_id)
		target_id = str(target_id)
		if user_id == target_id:
			raise InvalidTarget("self_insight")
		requester = await self._profile(user_id, reason="requester_not_found")
		target = await self._profile(target_id)
		scored = await self.queue.score_candidate(requester, target)
		card = CandidateProfile.build(requester, target, scored.to_queue_entry())
		return MatchInsight(
			user_id=user_id,
			target_id=target_id,
			compatibility_score=card.compatibility_score,
			score_breakdown=card.score_breakdown,
			matching_factors=card.matching_factors,
		)

	async def get_preferences(self, user_id: str) -> PreferencesResponse:
		user_id = str(user_id)
		current = await self.preferences.get(user_id) or prefs.defaults_for(user_id)
		return PreferencesResponse.from_domain(current)

	async def update_preferences(self, user_id: str, payload: PreferencesPayload) -> PreferencesResponse:
		"""Persist preference changes and drop the unserved part of the queue."""
		user_id = str(user_id)
		async with self.queue.locked(user_id):
			current = await self.preferences.get(user_id) or prefs.defaults_for(user_id)
			updated = prefs.apply_update(current, payload.model_dump(exclude_none=True))
			stored = await self.preferences.upsert(updated)
			await self.queue.invalidate(user_id)
		logger.info("matchmaking.preferences_updated", extra={"pref_user_id": user_id})
		return PreferencesResponse.from_domain(stored)
