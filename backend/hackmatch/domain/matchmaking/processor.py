"""Swipe processor: validates a decision, commits it and detects mutual matches."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Optional

from hackmatch.domain.matchmaking.exceptions import (
	CandidateNotFound,
	DependencyUnavailable,
	DuplicateSwipe,
	InvalidTarget,
	MatchmakingError,
)
from hackmatch.domain.matchmaking.ledger import SwipeLedger
from hackmatch.domain.matchmaking.models import BlockOutcome, MatchRecord, SwipeDirection, SwipeRecord
from hackmatch.domain.matchmaking.profiles import ProfileStore
from hackmatch.domain.matchmaking.queue import MatchQueueManager
from hackmatch.domain.matchmaking.sockets import MatchNotifier
from hackmatch.obs import metrics as obs_metrics

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def utcnow() -> datetime:
	return datetime.now(timezone.utc)


@dataclass(slots=True)
class SwipeOutcome:
	accepted: bool
	matched: bool = False
	match: Optional[MatchRecord] = None

	@property
	def match_id(self) -> Optional[str]:
		return self.match.match_id if self.match else None


class SwipeProcessor:
	def __init__(
		self,
		*,
		profiles: ProfileStore,
		ledger: SwipeLedger,
		queue: MatchQueueManager,
		notifier: MatchNotifier | None = None,
		require_serving: bool = False,
		clock: Clock = utcnow,
	) -> None:
		self.profiles = profiles
		self.ledger = ledger
		self.queue = queue
		self.notifier = notifier
		self.require_serving = require_serving
		self.clock = clock

	async def _validate(self, swiper_id: str, target_id: str) -> None:
		if await self.profiles.get_profile(swiper_id) is None:
			raise CandidateNotFound("requester_not_found")
		if await self.profiles.get_profile(target_id) is None:
			raise CandidateNotFound()
		# A retry of a committed swipe is a duplicate even after the queue moved on.
		if await self.ledger.has_swiped(swiper_id, target_id):
			raise DuplicateSwipe()
		# Blocked hackers see the blocker as missing rather than as blocked.
		if target_id in await self.ledger.blocked_by(swiper_id):
			raise CandidateNotFound()
		if self.require_serving:
			serving = await self.queue.current(swiper_id)
			if serving is None or serving.candidate_id != target_id:
				raise InvalidTarget("not_serving")

	async def swipe(self, swiper_id: str, target_id: str, direction: SwipeDirection) -> SwipeOutcome:
		"""Commit one swipe; a right swipe that completes a pair also commits the match.

		Every validation runs before the ledger write. The ledger commits the swipe
		and any resulting match in one transaction, so a failure there leaves neither.
		"""
		swiper_id = str(swiper_id)
		target_id = str(target_id)
		direction = SwipeDirection(direction)
		if direction is SwipeDirection.BLOCK:
			obs_metrics.inc_swipe(direction.value, InvalidTarget.reason)
			raise InvalidTarget("block_via_swipe")
		if swiper_id == target_id:
			obs_metrics.inc_swipe(direction.value, InvalidTarget.reason)
			raise InvalidTarget("self_swipe")
		try:
			async with self.queue.locked(swiper_id):
				await self._validate(swiper_id, target_id)
				record = SwipeRecord(
					swiper_id=swiper_id,
					target_id=target_id,
					direction=direction,
					created_at=self.clock(),
				)
				commit = await self.ledger.commit_swipe(record)
				try:
					await self.queue.advance(swiper_id, target_id)
				except DependencyUnavailable:
					# The ledger already excludes the target, so the queue heals on the next serve.
					logger.warning(
						"matchmaking.queue_advance_failed",
						extra={"swiper_id": swiper_id, "target_id": target_id},
					)
		except MatchmakingError as exc:
			obs_metrics.inc_swipe(direction.value, exc.reason)
			raise
		outcome = SwipeOutcome(accepted=True, matched=commit.match is not None, match=commit.match)
		obs_metrics.inc_swipe(direction.value, "matched" if outcome.matched else "accepted")
		logger.info(
			"matchmaking.swipe",
			extra={
				"swiper_id": swiper_id,
				"target_id": target_id,
				"direction": direction.value,
				"matched": outcome.matched,
			},
		)
		if commit.match is not None and commit.match_created:
			obs_metrics.inc_match_created()
			await self._notify_created(commit.match)
		return outcome

	async def block(self, user_id: str, target_id: str) -> BlockOutcome:
		"""Block ``target_id`` for ``user_id``; neither is served to the other again.

		Any earlier swipe on the target is replaced and any match between the two
		is retracted. Blocking twice is accepted and changes nothing.
		"""
		user_id = str(user_id)
		target_id = str(target_id)
		if user_id == target_id:
			obs_metrics.inc_block(InvalidTarget.reason)
			raise InvalidTarget("self_block")
		try:
			async with self.queue.locked(user_id):
				if await self.profiles.get_profile(user_id) is None:
					raise CandidateNotFound("requester_not_found")
				if await self.profiles.get_profile(target_id) is None:
					raise CandidateNotFound()
				record = SwipeRecord(
					swiper_id=user_id,
					target_id=target_id,
					direction=SwipeDirection.BLOCK,
					created_at=self.clock(),
				)
				outcome = await self.ledger.block(record)
				try:
					await self.queue.drop(user_id, target_id)
				except DependencyUnavailable:
					logger.warning(
						"matchmaking.queue_drop_failed",
						extra={"swiper_id": user_id, "target_id": target_id},
					)
		except MatchmakingError as exc:
			obs_metrics.inc_block(exc.reason)
			raise
		obs_metrics.inc_block("blocked")
		logger.info(
			"matchmaking.block",
			extra={
				"swiper_id": user_id,
				"target_id": target_id,
				"replaced": outcome.replaced.direction.value if outcome.replaced else None,
				"retracted": outcome.retracted_match is not None,
			},
		)
		if outcome.retracted_match is not None:
			obs_metrics.inc_match_retracted()
			await self._notify_removed(outcome.retracted_match)
		return outcome

	async def _notify_removed(self, match: MatchRecord) -> None:
		if self.notifier is None:
			return
		try:
			await self.notifier.match_removed(match)
		except Exception:
			obs_metrics.inc_match_event_failure("match:removed")
			logger.exception("Failed to emit match removed event for %s", match.match_id)

	async def _notify_created(self, match: MatchRecord) -> None:
		if self.notifier is None:
			return
		try:
			await self.notifier.match_created(match)
		except Exception:
			obs_metrics.inc_match_event_failure("match:created")
			logger.exception("Failed to emit match created event for %s", match.match_id)
