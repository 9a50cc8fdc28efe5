import pytest

from conftest import make_profile


def _as(user_id: str) -> dict[str, str]:
	return {"X-User-Id": user_id}


@pytest.mark.asyncio
async def test_requests_without_user_are_rejected(api_client):
	resp = await api_client.get("/matchmaking/next")
	assert resp.status_code == 401
	body = resp.json()
	assert body["detail"] == "missing_user"
	assert "request_id" in body


@pytest.mark.asyncio
async def test_next_candidate_and_exhaustion(api_client, api_engine):
	await api_engine.add(make_profile("me"), make_profile("a"))

	resp = await api_client.get("/matchmaking/next", headers=_as("me"))
	assert resp.status_code == 200
	body = resp.json()
	assert body["kind"] == "candidate"
	assert body["user_id"] == "a"
	assert 0.0 <= body["compatibility_score"] <= 1.0
	assert set(body["score_breakdown"]) >= {"skill_overlap", "experience_proximity"}

	swipe = await api_client.post("/matchmaking/swipe/left", json={"target_id": "a"}, headers=_as("me"))
	assert swipe.status_code == 200
	assert swipe.json() == {"accepted": True, "matched": False, "match_id": None}

	resp = await api_client.get("/matchmaking/next", headers=_as("me"))
	assert resp.status_code == 200
	assert resp.json()["kind"] == "exhausted"


@pytest.mark.asyncio
async def test_mutual_swipe_flow_and_matches_listing(api_client, api_engine):
	await api_engine.add(make_profile("alice"), make_profile("bob"))

	first = await api_client.post("/matchmaking/swipe/right", json={"target_id": "bob"}, headers=_as("alice"))
	assert first.json()["matched"] is False
	second = await api_client.post("/matchmaking/swipe/right", json={"target_id": "alice"}, headers=_as("bob"))
	body = second.json()
	assert body["matched"] is True
	assert body["match_id"]

	dup = await api_client.post("/matchmaking/swipe/right", json={"target_id": "alice"}, headers=_as("bob"))
	assert dup.status_code == 409
	assert dup.json()["detail"] == "duplicate_swipe"

	listing = await api_client.get("/matchmaking/matches", headers=_as("alice"))
	assert listing.status_code == 200
	matches = listing.json()
	assert len(matches) == 1
	assert matches[0]["peer_id"] == "bob"
	assert matches[0]["match_id"] == body["match_id"]
	assert len(api_engine.notifier.created) == 1


@pytest.mark.asyncio
async def test_swipe_errors_map_to_status_codes(api_client, api_engine):
	await api_engine.add(make_profile("me"))

	self_swipe = await api_client.post("/matchmaking/swipe/right", json={"target_id": "me"}, headers=_as("me"))
	assert self_swipe.status_code == 400
	missing = await api_client.post("/matchmaking/swipe/left", json={"target_id": "ghost"}, headers=_as("me"))
	assert missing.status_code == 404
	invalid = await api_client.post("/matchmaking/swipe/left", json={"target_id": ""}, headers=_as("me"))
	assert invalid.status_code == 422
	assert invalid.json()["detail"] == "validation_error"


@pytest.mark.asyncio
async def test_undo_endpoint(api_client, api_engine):
	await api_engine.add(make_profile("me"), make_profile("a"))

	nothing = await api_client.post("/matchmaking/undo", headers=_as("me"))
	assert nothing.status_code == 409

	await api_client.post("/matchmaking/swipe/right", json={"target_id": "a"}, headers=_as("me"))
	undone = await api_client.post("/matchmaking/undo", headers=_as("me"))
	assert undone.status_code == 200
	assert undone.json()["user_id"] == "a"

	await api_client.post("/matchmaking/swipe/left", json={"target_id": "a"}, headers=_as("me"))
	api_engine.clock.advance(60)
	expired = await api_client.post("/matchmaking/undo", headers=_as("me"))
	assert expired.status_code == 410
	assert expired.json()["detail"] == "undo_expired"


@pytest.mark.asyncio
async def test_block_endpoint(api_client, api_engine):
	await api_engine.add(make_profile("alice"), make_profile("bob"))
	await api_client.post("/matchmaking/swipe/right", json={"target_id": "bob"}, headers=_as("alice"))
	matched = await api_client.post("/matchmaking/swipe/right", json={"target_id": "alice"}, headers=_as("bob"))

	resp = await api_client.post("/matchmaking/block", json={"target_id": "bob"}, headers=_as("alice"))
	assert resp.status_code == 200
	assert resp.json() == {"blocked": True, "retracted_match_id": matched.json()["match_id"]}

	listing = await api_client.get("/matchmaking/matches", headers=_as("bob"))
	assert listing.json() == []
	nxt = await api_client.get("/matchmaking/next", headers=_as("bob"))
	assert nxt.json()["kind"] == "exhausted"

	self_block = await api_client.post("/matchmaking/block", json={"target_id": "alice"}, headers=_as("alice"))
	assert self_block.status_code == 400
	assert self_block.json()["detail"] == "self_block"
	missing = await api_client.post("/matchmaking/block", json={"target_id": "ghost"}, headers=_as("alice"))
	assert missing.status_code == 404


@pytest.mark.asyncio
async def test_preferences_round_trip(api_client, api_engine):
	await api_engine.add(make_profile("me"))

	resp = await api_client.get("/matchmaking/preferences", headers=_as("me"))
	assert resp.status_code == 200
	assert resp.json()["location_preference"] == "any"

	resp = await api_client.put(
		"/matchmaking/preferences",
		json={"location_preference": "same_state", "preferred_team_size": 3},
		headers=_as("me"),
	)
	assert resp.status_code == 200
	body = resp.json()
	assert body["location_preference"] == "same_state"
	assert body["preferred_team_size"] == 3

	bad = await api_client.put("/matchmaking/preferences", json={"preferred_team_size": 10}, headers=_as("me"))
	assert bad.status_code == 422


@pytest.mark.asyncio
async def test_insight_endpoint(api_client, api_engine):
	await api_engine.add(make_profile("me"), make_profile("you"))
	resp = await api_client.get("/matchmaking/insights/you", headers=_as("me"))
	assert resp.status_code == 200
	assert resp.json()["target_id"] == "you"
	self_resp = await api_client.get("/matchmaking/insights/me", headers=_as("me"))
	assert self_resp.status_code == 400


@pytest.mark.asyncio
async def test_health_and_metrics(api_client, api_engine):
	live = await api_client.get("/health/live")
	assert live.status_code == 200
	assert live.json() == {"status": "ok"}

	ready = await api_client.get("/health/ready")
	assert ready.status_code == 200

	await api_engine.add(make_profile("me"), make_profile("a"))
	await api_client.post("/matchmaking/swipe/left", json={"target_id": "a"}, headers=_as("me"))
	metrics = await api_client.get("/metrics")
	assert metrics.status_code == 200
	assert "hackmatch_swipes_total" in metrics.text
