"""Profile store contract consumed by the matching engine.

Profiles are owned by the surrounding application; the engine only reads them.
Implementations raise ``DependencyUnavailable`` when the backing store cannot be
reached so callers can leave their own state untouched.
"""

from __future__ import annotations

import asyncio
import json
from pathlib import Path
from typing import Collection, Iterable, Mapping, Optional, Protocol, Sequence

from hackmatch.domain.matchmaking.models import HackerProfile


class ProfileStore(Protocol):
	"""Read-only access to hacker profiles."""

	async def get_profile(self, user_id: str) -> Optional[HackerProfile]:
		...

	async def get_profiles(self, user_ids: Sequence[str]) -> Mapping[str, HackerProfile]:
		...

	async def get_eligible_profiles(
		self,
		exclude_user_id: str,
		exclude_target_ids: Collection[str],
	) -> list[HackerProfile]:
		"""Every profile with matching enabled except the requester and the excluded ids."""
		...


class InMemoryProfileStore(ProfileStore):
	def __init__(self, profiles: Iterable[HackerProfile] | None = None) -> None:
		self._lock = asyncio.Lock()
		self.profiles: dict[str, HackerProfile] = {}
		for profile in profiles or ():
			self.profiles[profile.user_id] = profile

	async def upsert(self, profile: HackerProfile) -> None:
		async with self._lock:
			self.profiles[profile.user_id] = profile

	async def remove(self, user_id: str) -> None:
		async with self._lock:
			self.profiles.pop(user_id, None)

	async def get_profile(self, user_id: str) -> Optional[HackerProfile]:
		async with self._lock:
			return self.profiles.get(str(user_id))

	async def get_profiles(self, user_ids: Sequence[str]) -> Mapping[str, HackerProfile]:
		async with self._lock:
			return {uid: self.profiles[uid] for uid in user_ids if uid in self.profiles}

	async def get_eligible_profiles(
		self,
		exclude_user_id: str,
		exclude_target_ids: Collection[str],
	) -> list[HackerProfile]:
		excluded = set(exclude_target_ids)
		excluded.add(str(exclude_user_id))
		async with self._lock:
			return [
				profile
				for uid, profile in sorted(self.profiles.items())
				if uid not in excluded and profile.matching_enabled
			]


def load_profiles_file(path: str | Path) -> list[HackerProfile]:
	"""Read a JSON array of profile mappings, as used to seed the in-memory store."""
	with open(path, "r", encoding="utf-8") as fh:
		raw = json.load(fh)
	if not isinstance(raw, list):
		raise ValueError(f"{path}: expected a JSON array of profiles")
	return [HackerProfile.from_mapping(item) for item in raw]
