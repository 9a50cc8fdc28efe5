import asyncio

import pytest

from conftest import build_engine, make_profile
from hackmatch.domain.matchmaking.exceptions import (
	CandidateNotFound,
	DependencyUnavailable,
	DuplicateSwipe,
	InvalidTarget,
)
from hackmatch.domain.matchmaking.models import SwipeDirection


@pytest.mark.asyncio
async def test_mutual_right_swipes_create_exactly_one_match(engine):
	await engine.add(make_profile("alice"), make_profile("bob"))

	first = await engine.service.swipe_right("alice", "bob")
	second = await engine.service.swipe_right("bob", "alice")

	assert first.accepted and not first.matched and first.match_id is None
	assert second.accepted and second.matched and second.match_id
	assert len(engine.ledger.matches) == 1
	match = engine.ledger.matches[("alice", "bob")]
	assert match.match_id == second.match_id
	assert engine.notifier.created == [match]

	with pytest.raises(DuplicateSwipe):
		await engine.service.swipe_right("alice", "bob")
	with pytest.raises(DuplicateSwipe):
		await engine.service.swipe_left("bob", "alice")
	assert len(engine.ledger.matches) == 1


@pytest.mark.asyncio
async def test_left_swipe_never_matches(engine):
	await engine.add(make_profile("alice"), make_profile("bob"))
	await engine.service.swipe_right("bob", "alice")

	result = await engine.service.swipe_left("alice", "bob")

	assert result.accepted is True
	assert result.matched is False
	assert engine.ledger.matches == {}


@pytest.mark.asyncio
async def test_self_swipe_is_invalid(engine):
	await engine.add(make_profile("alice"))
	with pytest.raises(InvalidTarget) as excinfo:
		await engine.service.swipe_right("alice", "alice")
	assert excinfo.value.reason == "self_swipe"
	assert engine.ledger.swipes == {}


@pytest.mark.asyncio
async def test_unknown_target_is_not_found(engine):
	await engine.add(make_profile("alice"))
	with pytest.raises(CandidateNotFound):
		await engine.service.swipe_left("alice", "ghost")
	assert engine.ledger.swipes == {}


@pytest.mark.asyncio
async def test_concurrent_swipes_on_same_target_commit_once(engine):
	await engine.add(make_profile("alice"), make_profile("bob"))

	results = await asyncio.gather(
		engine.service.swipe_right("alice", "bob"),
		engine.service.swipe_right("alice", "bob"),
		return_exceptions=True,
	)

	accepted = [item for item in results if not isinstance(item, Exception)]
	rejected = [item for item in results if isinstance(item, DuplicateSwipe)]
	assert len(accepted) == 1
	assert len(rejected) == 1
	assert list(engine.ledger.swipes) == [("alice", "bob")]


@pytest.mark.asyncio
async def test_simultaneous_mutual_swipes_produce_one_match(engine):
	await engine.add(make_profile("alice"), make_profile("bob"))

	results = await asyncio.gather(
		engine.service.swipe_right("alice", "bob"),
		engine.service.swipe_right("bob", "alice"),
	)

	assert sum(1 for item in results if item.matched) == 1
	assert len(engine.ledger.matches) == 1
	assert len(engine.notifier.created) == 1


@pytest.mark.asyncio
async def test_failed_reciprocity_check_rolls_back_swipe(engine, monkeypatch):
	await engine.add(make_profile("alice"), make_profile("bob"))
	await engine.service.swipe_right("bob", "alice")

	async def broken(record):
		raise DependencyUnavailable("swipe_ledger")

	monkeypatch.setattr(engine.ledger, "_reciprocal_exists", broken)

	with pytest.raises(DependencyUnavailable):
		await engine.service.swipe_right("alice", "bob")
	assert ("alice", "bob") not in engine.ledger.swipes
	assert engine.ledger.matches == {}


@pytest.mark.asyncio
async def test_notification_failure_keeps_match(engine):
	await engine.add(make_profile("alice"), make_profile("bob"))

	async def explode(match):
		raise RuntimeError("socket down")

	engine.notifier.match_created = explode
	await engine.service.swipe_right("alice", "bob")

	result = await engine.service.swipe_right("bob", "alice")

	assert result.matched is True
	assert ("alice", "bob") in engine.ledger.matches


@pytest.mark.asyncio
async def test_strict_serving_rejects_other_targets():
	engine = build_engine(require_serving=True)
	await engine.add(make_profile("me"), make_profile("a"), make_profile("b"))

	with pytest.raises(InvalidTarget) as excinfo:
		await engine.service.swipe_left("me", "a")
	assert excinfo.value.reason == "not_serving"

	served = await engine.service.get_next_match("me")
	with pytest.raises(InvalidTarget):
		await engine.service.swipe_left("me", "b")
	result = await engine.service.swipe_left("me", served.user_id)
	assert result.accepted


@pytest.mark.asyncio
async def test_strict_serving_retry_is_duplicate():
	engine = build_engine(require_serving=True)
	await engine.add(make_profile("me"), make_profile("a"), make_profile("b"))

	served = await engine.service.get_next_match("me")
	first = await engine.service.swipe_right("me", served.user_id)
	assert first.accepted

	with pytest.raises(DuplicateSwipe):
		await engine.service.swipe_right("me", served.user_id)
	assert len([key for key in engine.ledger.swipes if key[0] == "me"]) == 1


@pytest.mark.asyncio
async def test_swipe_on_unserved_candidate_drops_it_from_queue(engine):
	await engine.add(make_profile("me"), make_profile("a"), make_profile("b"), make_profile("c"))
	served = await engine.service.get_next_match("me")
	assert served.user_id == "a"

	await engine.service.swipe_left("me", "b")

	queue = await engine.queue_store.load("me")
	assert queue.serving.candidate_id == "a"
	assert [entry.candidate_id for entry in queue.candidates] == ["c"]


@pytest.mark.asyncio
async def test_processor_accepts_plain_direction_values(engine):
	await engine.add(make_profile("alice"), make_profile("bob"))
	outcome = await engine.service.processor.swipe("alice", "bob", "right")
	assert outcome.accepted
	assert engine.ledger.swipes[("alice", "bob")].direction is SwipeDirection.RIGHT


@pytest.mark.asyncio
async def test_block_is_not_a_swipe_direction(engine):
	await engine.add(make_profile("alice"), make_profile("bob"))
	with pytest.raises(InvalidTarget) as excinfo:
		await engine.service.processor.swipe("alice", "bob", SwipeDirection.BLOCK)
	assert excinfo.value.reason == "block_via_swipe"
	assert engine.ledger.swipes == {}
