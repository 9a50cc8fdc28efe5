import pytest

from conftest import make_profile
from hackmatch.domain.matchmaking.exceptions import CandidateNotFound, DuplicateSwipe, InvalidTarget, NothingToUndo
from hackmatch.domain.matchmaking.models import SwipeDirection
from hackmatch.domain.matchmaking.schemas import NoMoreCandidates


@pytest.mark.asyncio
async def test_block_hides_both_sides_from_each_other(engine):
	await engine.add(make_profile("me"), make_profile("pest"), make_profile("other"))

	result = await engine.service.block_user("me", "pest")

	assert result.blocked is True
	assert result.retracted_match_id is None
	assert engine.ledger.swipes[("me", "pest")].direction is SwipeDirection.BLOCK
	assert (await engine.service.get_next_match("me")).user_id == "other"
	assert (await engine.service.get_next_match("pest")).user_id == "other"
	await engine.service.swipe_left("pest", "other")
	assert isinstance(await engine.service.get_next_match("pest"), NoMoreCandidates)


@pytest.mark.asyncio
async def test_block_retracts_existing_match(engine):
	await engine.add(make_profile("alice"), make_profile("bob"))
	await engine.service.swipe_right("alice", "bob")
	matched = await engine.service.swipe_right("bob", "alice")

	result = await engine.service.block_user("alice", "bob")

	assert result.retracted_match_id == matched.match_id
	assert engine.ledger.matches == {}
	assert [match.match_id for match in engine.notifier.removed] == [matched.match_id]
	assert await engine.service.list_matches("bob") == []


@pytest.mark.asyncio
async def test_blocked_hacker_cannot_swipe_or_match(engine):
	await engine.add(make_profile("alice"), make_profile("bob"))
	await engine.service.swipe_right("alice", "bob")
	await engine.service.block_user("alice", "bob")

	with pytest.raises(CandidateNotFound):
		await engine.service.swipe_right("bob", "alice")
	with pytest.raises(DuplicateSwipe):
		await engine.service.swipe_right("alice", "bob")
	assert engine.ledger.matches == {}
	assert ("bob", "alice") not in engine.ledger.swipes


@pytest.mark.asyncio
async def test_block_disarms_undo_of_the_replaced_swipe(engine):
	await engine.add(make_profile("me"), make_profile("a"))
	await engine.service.swipe_right("me", "a")

	await engine.service.block_user("me", "a")

	with pytest.raises(NothingToUndo):
		await engine.service.undo_last_swipe("me")
	assert engine.ledger.swipes[("me", "a")].direction is SwipeDirection.BLOCK


@pytest.mark.asyncio
async def test_block_leaves_undo_slot_of_another_swipe(engine):
	await engine.add(make_profile("me"), make_profile("a"), make_profile("b"))
	await engine.service.swipe_left("me", "a")

	await engine.service.block_user("me", "b")

	undone = await engine.service.undo_last_swipe("me")
	assert undone.user_id == "a"


@pytest.mark.asyncio
async def test_block_drops_served_candidate(engine):
	await engine.add(make_profile("me"), make_profile("a"), make_profile("b"))
	served = await engine.service.get_next_match("me")
	assert served.user_id == "a"

	await engine.service.block_user("me", "a")

	queue = await engine.queue_store.load("me")
	assert queue.serving is None
	assert queue.last_consumed is None
	assert (await engine.service.get_next_match("me")).user_id == "b"


@pytest.mark.asyncio
async def test_block_is_idempotent(engine):
	await engine.add(make_profile("me"), make_profile("a"))
	await engine.service.block_user("me", "a")
	again = await engine.service.block_user("me", "a")
	assert again.blocked is True
	assert len(engine.ledger.swipes) == 1


@pytest.mark.asyncio
async def test_block_validation(engine):
	await engine.add(make_profile("me"))
	with pytest.raises(InvalidTarget) as excinfo:
		await engine.service.block_user("me", "me")
	assert excinfo.value.reason == "self_block"
	with pytest.raises(CandidateNotFound):
		await engine.service.block_user("me", "ghost")
	assert engine.ledger.swipes == {}
