import pytest

from conftest import github, hackathon, make_profile
from hackmatch.domain.matchmaking import preferences as prefs
from hackmatch.domain.matchmaking.models import LocationPreference, MatchPreferences
from hackmatch.domain.matchmaking.schemas import NoMoreCandidates, PreferencesPayload


def _ids(profiles):
	return [profile.user_id for profile in profiles]


def test_defaults_accept_everyone():
	requester = make_profile("me")
	pool = [make_profile("a"), make_profile("b", city="Paris")]
	assert _ids(prefs.filter_pool(None, requester, pool)) == ["a", "b"]


def test_same_city_filter():
	requester = make_profile("me", city="Austin", state="TX")
	pool = [
		make_profile("a", city="austin", state="TX"),
		make_profile("b", city="Dallas", state="TX"),
		make_profile("c"),
	]
	chosen = MatchPreferences(user_id="me", location_preference=LocationPreference.SAME_CITY)
	assert _ids(prefs.filter_pool(chosen, requester, pool)) == ["a"]


def test_location_filter_skipped_when_requester_field_blank():
	requester = make_profile("me", country=None)
	pool = [make_profile("a", country="US"), make_profile("b")]
	chosen = MatchPreferences(user_id="me", location_preference=LocationPreference.SAME_COUNTRY)
	assert _ids(prefs.filter_pool(chosen, requester, pool)) == ["a", "b"]


def test_minimum_thresholds():
	requester = make_profile("me")
	veteran = make_profile(
		"vet",
		hackathons=(hackathon("h1", won=True), hackathon("h2")),
		github=github(contributions=400),
	)
	newcomer = make_profile("new", hackathons=(hackathon("h1"),))
	chosen = MatchPreferences(
		user_id="me",
		min_hackathons_participated=2,
		min_hackathons_won=1,
		min_github_contributions=100,
	)
	assert _ids(prefs.filter_pool(chosen, requester, [veteran, newcomer])) == ["vet"]


def test_prefer_active_github_requires_connection():
	requester = make_profile("me")
	pool = [make_profile("a", github=github()), make_profile("b")]
	chosen = MatchPreferences(user_id="me", prefer_active_github=True)
	assert _ids(prefs.filter_pool(chosen, requester, pool)) == ["a"]


def test_hidden_ids_are_removed():
	requester = make_profile("me")
	pool = [make_profile("a"), make_profile("b")]
	assert _ids(prefs.filter_pool(None, requester, pool, hidden_ids={"a"})) == ["b"]


def test_apply_update_clamps_and_ignores_unknown_fields():
	current = prefs.defaults_for("me")
	updated = prefs.apply_update(
		current,
		{"preferred_team_size": 12, "min_hackathons_won": -3, "location_preference": "same_state", "bogus": 1},
	)
	assert updated.preferred_team_size == prefs.MAX_TEAM_SIZE
	assert updated.min_hackathons_won == 0
	assert updated.location_preference is LocationPreference.SAME_STATE
	assert updated.updated_at is not None
	assert current.updated_at is None


@pytest.mark.asyncio
async def test_hidden_repository_ids():
	repo = prefs.InMemoryPreferencesRepository()
	await repo.upsert(MatchPreferences(user_id="a", hide_profile=True))
	await repo.upsert(MatchPreferences(user_id="b", looking_for_team=False))
	await repo.upsert(MatchPreferences(user_id="c"))
	assert await repo.hidden_user_ids(["a", "b", "c", "d"]) == {"a", "b"}


@pytest.mark.asyncio
async def test_update_preferences_reranks_unserved_candidates(engine):
	await engine.add(
		make_profile("me", city="Austin"),
		make_profile("a", city="Austin"),
		make_profile("b", city="Boston"),
		make_profile("c", city="Austin"),
	)
	served = await engine.service.get_next_match("me")
	assert served.user_id == "a"

	response = await engine.service.update_preferences(
		"me", PreferencesPayload(location_preference=LocationPreference.SAME_CITY)
	)
	assert response.location_preference is LocationPreference.SAME_CITY

	queue = await engine.queue_store.load("me")
	assert queue.serving.candidate_id == "a"
	assert queue.candidates == []

	await engine.service.swipe_left("me", "a")
	nxt = await engine.service.get_next_match("me")
	assert nxt.user_id == "c"
	await engine.service.swipe_left("me", "c")
	assert isinstance(await engine.service.get_next_match("me"), NoMoreCandidates)


@pytest.mark.asyncio
async def test_get_preferences_returns_defaults(engine):
	response = await engine.service.get_preferences("nobody")
	assert response.user_id == "nobody"
	assert response.preferred_team_size == 4
	assert response.looking_for_team is True
	assert response.updated_at is None
