"""Per-hacker match preferences: pool filters and visibility switches."""

from __future__ import annotations

import asyncio
from dataclasses import replace
from datetime import datetime, timezone
from typing import Any, Collection, Iterable, Mapping, Optional, Protocol

from hackmatch.domain.matchmaking.models import HackerProfile, LocationPreference, MatchPreferences

MIN_TEAM_SIZE = 2
MAX_TEAM_SIZE = 6

_UPDATABLE_FIELDS = (
	"looking_for_team",
	"hide_profile",
	"location_preference",
	"min_hackathons_participated",
	"min_hackathons_won",
	"min_github_contributions",
	"prefer_active_github",
	"preferred_team_size",
)


class PreferencesRepository(Protocol):
	async def get(self, user_id: str) -> Optional[MatchPreferences]:
		...

	async def upsert(self, preferences: MatchPreferences) -> MatchPreferences:
		...

	async def hidden_user_ids(self, user_ids: Collection[str]) -> set[str]:
		"""Subset of ``user_ids`` that opted out of appearing in other pools."""
		...


class InMemoryPreferencesRepository(PreferencesRepository):
	def __init__(self) -> None:
		self._lock = asyncio.Lock()
		self.rows: dict[str, MatchPreferences] = {}

	async def get(self, user_id: str) -> Optional[MatchPreferences]:
		async with self._lock:
			row = self.rows.get(user_id)
			return replace(row) if row else None

	async def upsert(self, preferences: MatchPreferences) -> MatchPreferences:
		async with self._lock:
			self.rows[preferences.user_id] = replace(preferences)
			return replace(preferences)

	async def hidden_user_ids(self, user_ids: Collection[str]) -> set[str]:
		async with self._lock:
			return {
				uid
				for uid in user_ids
				if uid in self.rows and not self.rows[uid].discoverable
			}


def defaults_for(user_id: str) -> MatchPreferences:
	return MatchPreferences(user_id=user_id)


def apply_update(current: MatchPreferences, changes: Mapping[str, Any]) -> MatchPreferences:
	"""Return ``current`` with the known, non-null fields of ``changes`` applied."""
	updated = replace(current)
	for name in _UPDATABLE_FIELDS:
		value = changes.get(name)
		if value is None:
			continue
		if name == "location_preference":
			value = LocationPreference(value)
		elif name == "preferred_team_size":
			value = max(MIN_TEAM_SIZE, min(MAX_TEAM_SIZE, int(value)))
		elif name.startswith("min_"):
			value = max(0, int(value))
		setattr(updated, name, value)
	updated.updated_at = datetime.now(timezone.utc)
	return updated


def _same(left: Optional[str], right: Optional[str]) -> bool:
	return (left or "").strip().lower() == (right or "").strip().lower()


def _location_ok(preferences: MatchPreferences, requester: HackerProfile, candidate: HackerProfile) -> bool:
	choice = preferences.location_preference
	if choice is LocationPreference.ANY:
		return True
	attr = {
		LocationPreference.SAME_CITY: "city",
		LocationPreference.SAME_STATE: "state",
		LocationPreference.SAME_COUNTRY: "country",
	}[choice]
	mine = getattr(requester, attr)
	# A requester who has not filled the field is not filtered on it.
	if not (mine or "").strip():
		return True
	return _same(mine, getattr(candidate, attr))


def accepts(preferences: MatchPreferences, requester: HackerProfile, candidate: HackerProfile) -> bool:
	"""Whether ``candidate`` passes the requester's own filters."""
	if not _location_ok(preferences, requester, candidate):
		return False
	participated = len(candidate.hackathons)
	won = sum(1 for item in candidate.hackathons if item.won)
	if participated < preferences.min_hackathons_participated:
		return False
	if won < preferences.min_hackathons_won:
		return False
	contributions = candidate.github.contributions if candidate.github else 0
	if contributions < preferences.min_github_contributions:
		return False
	if preferences.prefer_active_github and candidate.github is None:
		return False
	return True


def filter_pool(
	preferences: Optional[MatchPreferences],
	requester: HackerProfile,
	pool: Iterable[HackerProfile],
	hidden_ids: Collection[str] = (),
) -> list[HackerProfile]:
	hidden = set(hidden_ids)
	prefs = preferences or defaults_for(requester.user_id)
	return [
		candidate
		for candidate in pool
		if candidate.user_id not in hidden and accepts(prefs, requester, candidate)
	]
