"""Single-level undo of a hacker's most recent swipe."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import timedelta
from typing import Optional

from hackmatch.domain.matchmaking.exceptions import (
	CandidateNotFound,
	DependencyUnavailable,
	MatchmakingError,
	NothingToUndo,
	UndoWindowExpired,
)
from hackmatch.domain.matchmaking.ledger import SwipeLedger
from hackmatch.domain.matchmaking.models import MatchRecord, SwipeRecord
from hackmatch.domain.matchmaking.processor import Clock, utcnow
from hackmatch.domain.matchmaking.profiles import ProfileStore
from hackmatch.domain.matchmaking.queue import MatchQueueManager, ServedCandidate
from hackmatch.domain.matchmaking.sockets import MatchNotifier
from hackmatch.obs import metrics as obs_metrics

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class UndoResult:
	candidate: ServedCandidate
	record: SwipeRecord
	retracted_match: Optional[MatchRecord] = None


class UndoCoordinator:
	"""Reverts the swipe held in a hacker's undo slot and re-serves its target.

	The slot holds one swipe; undo clears it and only a new swipe re-arms it, so
	there is never more than one level to go back. A swipe that completed a match
	takes the match with it.
	"""

	def __init__(
		self,
		*,
		profiles: ProfileStore,
		ledger: SwipeLedger,
		queue: MatchQueueManager,
		notifier: MatchNotifier | None = None,
		window_seconds: int = 0,
		clock: Clock = utcnow,
	) -> None:
		self.profiles = profiles
		self.ledger = ledger
		self.queue = queue
		self.notifier = notifier
		self.window = timedelta(seconds=window_seconds) if window_seconds > 0 else None
		self.clock = clock

	async def _entry_for(self, user_id: str, record: SwipeRecord) -> ServedCandidate:
		target = await self.profiles.get_profile(record.target_id)
		if target is None:
			raise CandidateNotFound()
		consumed = await self.queue.last_consumed(user_id)
		if consumed is not None and consumed.candidate_id == target.user_id:
			return ServedCandidate(entry=consumed, profile=target)
		requester = await self.profiles.get_profile(user_id)
		if requester is None:
			raise CandidateNotFound("requester_not_found")
		scored = await self.queue.score_candidate(requester, target)
		return ServedCandidate(entry=scored.to_queue_entry(), profile=target)

	async def undo_last_swipe(self, user_id: str) -> UndoResult:
		user_id = str(user_id)
		try:
			async with self.queue.locked(user_id):
				record = await self.ledger.peek_undoable(user_id)
				if record is None:
					raise NothingToUndo()
				if self.window is not None and self.clock() - record.created_at > self.window:
					raise UndoWindowExpired()
				# Resolve everything the re-serve needs before touching the ledger.
				served = await self._entry_for(user_id, record)
				outcome = await self.ledger.undo_swipe(record)
				try:
					await self.queue.present_again(user_id, served.entry)
				except DependencyUnavailable:
					logger.warning(
						"matchmaking.queue_restore_failed",
						extra={"swiper_id": user_id, "target_id": record.target_id},
					)
		except MatchmakingError as exc:
			obs_metrics.inc_undo(exc.reason)
			raise
		obs_metrics.inc_undo("undone")
		logger.info(
			"matchmaking.undo",
			extra={
				"swiper_id": user_id,
				"target_id": record.target_id,
				"direction": record.direction.value,
				"retracted": outcome.retracted_match is not None,
			},
		)
		if outcome.retracted_match is not None:
			obs_metrics.inc_match_retracted()
			await self._notify_removed(outcome.retracted_match)
		return UndoResult(candidate=served, record=outcome.record, retracted_match=outcome.retracted_match)

	async def _notify_removed(self, match: MatchRecord) -> None:
		if self.notifier is None:
			return
		try:
			await self.notifier.match_removed(match)
		except Exception:
			obs_metrics.inc_match_event_failure("match:removed")
			logger.exception("Failed to emit match removed event for %s", match.match_id)
