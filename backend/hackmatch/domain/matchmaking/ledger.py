"""Swipe ledger: the append-only record of swipe decisions and the matches they produce.

The ledger is the source of truth for exclusion (who a hacker has already swiped),
reciprocity (who swiped right on whom) and undo. Every multi-row write is atomic:
a swipe and the match it triggers are committed together, and an undo removes the
swipe together with any match that depended on it.

Undo is a single slot per swiper. Committing a swipe arms the slot with that swipe;
undoing it clears the slot, so a second undo without an intervening swipe finds
nothing even though older swipes are still in the ledger.
"""

from __future__ import annotations

import asyncio
from typing import Optional, Protocol, Sequence
from uuid import uuid4

from hackmatch.domain.matchmaking.exceptions import DuplicateSwipe, NothingToUndo
from hackmatch.domain.matchmaking.models import (
	BlockOutcome,
	MatchRecord,
	SwipeCommit,
	SwipeDirection,
	SwipeRecord,
	UndoOutcome,
	canonical_pair,
)


class SwipeLedger(Protocol):
	"""Storage contract for swipe records, match records and undo slots."""

	async def commit_swipe(self, record: SwipeRecord) -> SwipeCommit:
		"""Insert ``record``; on a right swipe resolve reciprocity and create the match.

		Raises ``DuplicateSwipe`` when the swiper already has a record for the target.
		"""
		...

	async def swiped_target_ids(self, swiper_id: str) -> set[str]:
		...

	async def has_swiped(self, swiper_id: str, target_id: str) -> bool:
		...

	async def get_swipe(self, swiper_id: str, target_id: str) -> Optional[SwipeRecord]:
		...

	async def peek_undoable(self, swiper_id: str) -> Optional[SwipeRecord]:
		"""The swipe currently held in the swiper's undo slot, if any."""
		...

	async def undo_swipe(self, record: SwipeRecord) -> UndoOutcome:
		"""Delete ``record`` and any match depending on it, then clear the undo slot.

		Raises ``NothingToUndo`` when ``record`` is no longer the armed slot.
		"""
		...

	async def block(self, record: SwipeRecord) -> BlockOutcome:
		"""Replace any swipe for the pair with a block and end any match between them.

		A block is never undoable; it disarms the undo slot if the slot held the
		replaced swipe.
		"""
		...

	async def blocked_by(self, user_id: str) -> set[str]:
		"""Ids of hackers who blocked ``user_id``."""
		...

	async def get_match(self, user_a: str, user_b: str) -> Optional[MatchRecord]:
		...

	async def list_matches(self, user_id: str) -> Sequence[MatchRecord]:
		"""Matches involving ``user_id``, newest first."""
		...


class InMemorySwipeLedger(SwipeLedger):
	"""Process-local ledger; one lock makes every operation a transaction."""

	def __init__(self) -> None:
		self._lock = asyncio.Lock()
		self.swipes: dict[tuple[str, str], SwipeRecord] = {}
		self.matches: dict[tuple[str, str], MatchRecord] = {}
		self.undo_slots: dict[str, tuple[str, str]] = {}

	async def _reciprocal_exists(self, record: SwipeRecord) -> bool:
		reciprocal = self.swipes.get((record.target_id, record.swiper_id))
		return reciprocal is not None and reciprocal.direction is SwipeDirection.RIGHT

	async def commit_swipe(self, record: SwipeRecord) -> SwipeCommit:
		key = (record.swiper_id, record.target_id)
		async with self._lock:
			if key in self.swipes:
				raise DuplicateSwipe()
			mutual = record.direction is SwipeDirection.RIGHT and await self._reciprocal_exists(record)
			# Nothing is written until every read has succeeded.
			self.swipes[key] = record
			self.undo_slots[record.swiper_id] = key
			if not mutual:
				return SwipeCommit(record=record)
			pair = canonical_pair(record.swiper_id, record.target_id)
			existing = self.matches.get(pair)
			if existing is not None:
				return SwipeCommit(record=record, match=existing, match_created=False)
			match = MatchRecord(
				match_id=str(uuid4()),
				user_a_id=pair[0],
				user_b_id=pair[1],
				created_at=record.created_at,
			)
			self.matches[pair] = match
			return SwipeCommit(record=record, match=match, match_created=True)

	async def swiped_target_ids(self, swiper_id: str) -> set[str]:
		async with self._lock:
			return {target for swiper, target in self.swipes if swiper == swiper_id}

	async def has_swiped(self, swiper_id: str, target_id: str) -> bool:
		async with self._lock:
			return (swiper_id, target_id) in self.swipes

	async def get_swipe(self, swiper_id: str, target_id: str) -> Optional[SwipeRecord]:
		async with self._lock:
			return self.swipes.get((swiper_id, target_id))

	async def peek_undoable(self, swiper_id: str) -> Optional[SwipeRecord]:
		async with self._lock:
			key = self.undo_slots.get(swiper_id)
			return self.swipes.get(key) if key else None

	async def undo_swipe(self, record: SwipeRecord) -> UndoOutcome:
		key = (record.swiper_id, record.target_id)
		async with self._lock:
			if self.undo_slots.get(record.swiper_id) != key or key not in self.swipes:
				raise NothingToUndo()
			removed = self.swipes.pop(key)
			del self.undo_slots[record.swiper_id]
			retracted: Optional[MatchRecord] = None
			if removed.direction is SwipeDirection.RIGHT:
				retracted = self.matches.pop(canonical_pair(record.swiper_id, record.target_id), None)
			return UndoOutcome(record=removed, retracted_match=retracted)

	async def get_match(self, user_a: str, user_b: str) -> Optional[MatchRecord]:
		async with self._lock:
			return self.matches.get(canonical_pair(user_a, user_b))

	async def list_matches(self, user_id: str) -> Sequence[MatchRecord]:
		async with self._lock:
			found = [match for pair, match in self.matches.items() if user_id in pair]
		return sorted(found, key=lambda match: (match.created_at, match.match_id), reverse=True)

	async def block(self, record: SwipeRecord) -> BlockOutcome:
		key = (record.swiper_id, record.target_id)
		async with self._lock:
			replaced = self.swipes.get(key)
			self.swipes[key] = record
			if self.undo_slots.get(record.swiper_id) == key:
				del self.undo_slots[record.swiper_id]
			retracted = self.matches.pop(canonical_pair(record.swiper_id, record.target_id), None)
			return BlockOutcome(record=record, replaced=replaced, retracted_match=retracted)

	async def blocked_by(self, user_id: str) -> set[str]:
		async with self._lock:
			return {
				swiper
				for (swiper, target), record in self.swipes.items()
				if target == user_id and record.direction is SwipeDirection.BLOCK
			}
