import itertools
import random

import pytest

from conftest import build_engine, make_profile
from hackmatch.domain.matchmaking.exceptions import MatchmakingError
from hackmatch.domain.matchmaking.models import SwipeDirection, canonical_pair

USERS = ("ana", "ben", "cai", "dee")


def _assert_ledger_consistent(engine):
	for left, right in itertools.combinations(USERS, 2):
		forward = engine.ledger.swipes.get((left, right))
		backward = engine.ledger.swipes.get((right, left))
		mutual = (
			forward is not None
			and backward is not None
			and forward.direction is SwipeDirection.RIGHT
			and backward.direction is SwipeDirection.RIGHT
		)
		assert (canonical_pair(left, right) in engine.ledger.matches) == mutual
	for swiper, target in engine.ledger.swipes:
		assert swiper != target


@pytest.mark.asyncio
@pytest.mark.parametrize("seed", [1, 7, 42, 2024])
async def test_match_exists_iff_both_swiped_right(seed):
	rng = random.Random(seed)
	engine = build_engine()
	await engine.add(*(make_profile(user) for user in USERS))

	for _ in range(120):
		user = rng.choice(USERS)
		action = rng.random()
		try:
			if action < 0.2:
				await engine.service.undo_last_swipe(user)
			elif action < 0.35:
				await engine.service.get_next_match(user)
			else:
				target = rng.choice(USERS)
				if action < 0.7:
					await engine.service.swipe_right(user, target)
				else:
					await engine.service.swipe_left(user, target)
		except MatchmakingError:
			pass
		_assert_ledger_consistent(engine)

	created = len(engine.notifier.created)
	removed = len(engine.notifier.removed)
	assert created - removed == len(engine.ledger.matches)
