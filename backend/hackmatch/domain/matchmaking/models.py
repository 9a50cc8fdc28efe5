"""Domain models for the teammate matching engine."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Mapping, Optional


class ExperienceLevel(str, Enum):
	"""Self-declared experience of a hacker, ordered from least to most."""

	BEGINNER = "beginner"
	INTERMEDIATE = "intermediate"
	ADVANCED = "advanced"

	@property
	def rank(self) -> int:
		return _EXPERIENCE_RANKS[self]

	@classmethod
	def parse(cls, value: object) -> "ExperienceLevel":
		"""Map free-form profile values onto a level; unknown values are beginners."""
		if isinstance(value, ExperienceLevel):
			return value
		text = str(value or "").strip().lower()
		if "intermediate" in text or "mid" in text:
			return cls.INTERMEDIATE
		if "advanced" in text or "expert" in text or "senior" in text:
			return cls.ADVANCED
		return cls.BEGINNER


_EXPERIENCE_RANKS = {
	ExperienceLevel.BEGINNER: 0,
	ExperienceLevel.INTERMEDIATE: 1,
	ExperienceLevel.ADVANCED: 2,
}


class SwipeDirection(str, Enum):
	"""Decision recorded in the ledger; ``BLOCK`` is only written by ``block_user``."""

	RIGHT = "right"
	LEFT = "left"
	BLOCK = "block"


class QueueState(str, Enum):
	"""Lifecycle of a user's candidate queue."""

	EMPTY = "empty"
	LOADED = "loaded"
	SERVING = "serving"


class LocationPreference(str, Enum):
	ANY = "any"
	SAME_CITY = "same_city"
	SAME_STATE = "same_state"
	SAME_COUNTRY = "same_country"


@dataclass(frozen=True, slots=True)
class GitHubStats:
	"""Aggregate GitHub activity imported for a hacker."""

	username: str
	stars: int = 0
	contributions: int = 0
	current_streak: int = 0
	repositories: int = 0


@dataclass(frozen=True, slots=True)
class HackathonParticipation:
	hackathon_id: str
	title: str = ""
	categories: tuple[str, ...] = ()
	won: bool = False
	participated_at: Optional[datetime] = None


def _parse_datetime(value: object) -> Optional[datetime]:
	if value is None or isinstance(value, datetime):
		return value
	return datetime.fromisoformat(str(value).replace("Z", "+00:00"))


@dataclass(frozen=True, slots=True)
class HackerProfile:
	"""Read-only snapshot of a hacker as served by the profile store."""

	user_id: str
	full_name: str = ""
	bio: Optional[str] = None
	programming_languages: tuple[str, ...] = ()
	frameworks: tuple[str, ...] = ()
	experience_level: ExperienceLevel = ExperienceLevel.BEGINNER
	city: Optional[str] = None
	state: Optional[str] = None
	country: Optional[str] = None
	open_to_recruitment: bool = False
	matching_enabled: bool = True
	github: Optional[GitHubStats] = None
	hackathons: tuple[HackathonParticipation, ...] = ()
	updated_at: Optional[datetime] = None

	@property
	def has_github(self) -> bool:
		return self.github is not None

	@classmethod
	def from_mapping(cls, data: Mapping[str, Any]) -> "HackerProfile":
		github_data = data.get("github")
		github: Optional[GitHubStats] = None
		if isinstance(github_data, GitHubStats):
			github = github_data
		elif github_data:
			github = GitHubStats(
				username=str(github_data.get("username") or ""),
				stars=int(github_data.get("stars") or 0),
				contributions=int(github_data.get("contributions") or 0),
				current_streak=int(github_data.get("current_streak") or 0),
				repositories=int(github_data.get("repositories") or 0),
			)
		hackathons = tuple(
			item
			if isinstance(item, HackathonParticipation)
			else HackathonParticipation(
				hackathon_id=str(item.get("hackathon_id") or ""),
				title=str(item.get("title") or ""),
				categories=tuple(item.get("categories") or ()),
				won=bool(item.get("won")),
				participated_at=_parse_datetime(item.get("participated_at")),
			)
			for item in data.get("hackathons") or ()
		)
		return cls(
			user_id=str(data["user_id"]),
			full_name=str(data.get("full_name") or ""),
			bio=data.get("bio"),
			programming_languages=tuple(data.get("programming_languages") or ()),
			frameworks=tuple(data.get("frameworks") or ()),
			experience_level=ExperienceLevel.parse(data.get("experience_level")),
			city=data.get("city"),
			state=data.get("state"),
			country=data.get("country"),
			open_to_recruitment=bool(data.get("open_to_recruitment", False)),
			matching_enabled=bool(data.get("matching_enabled", True)),
			github=github,
			hackathons=hackathons,
			updated_at=_parse_datetime(data.get("updated_at")),
		)


@dataclass(frozen=True, slots=True)
class SwipeRecord:
	"""Directional decision by one hacker about another."""

	swiper_id: str
	target_id: str
	direction: SwipeDirection
	created_at: datetime


@dataclass(frozen=True, slots=True)
class MatchRecord:
	"""Mutual right swipe between two hackers, stored as a canonical pair."""

	match_id: str
	user_a_id: str
	user_b_id: str
	created_at: datetime

	def peer_of(self, user_id: str) -> str:
		return self.user_b_id if user_id == self.user_a_id else self.user_a_id


def canonical_pair(user_a: str, user_b: str) -> tuple[str, str]:
	"""Order a pair so that each unordered pair has exactly one representation."""
	first, second = sorted((str(user_a), str(user_b)))
	return first, second


@dataclass(slots=True)
class SwipeCommit:
	"""Outcome of a committed swipe as reported by the ledger."""

	record: SwipeRecord
	match: Optional[MatchRecord] = None
	match_created: bool = False


@dataclass(slots=True)
class BlockOutcome:
	"""Result of a block; any swipe it replaced and any match it ended."""

	record: SwipeRecord
	replaced: Optional[SwipeRecord] = None
	retracted_match: Optional[MatchRecord] = None


@dataclass(slots=True)
class UndoOutcome:
	"""Rows removed by an undo."""

	record: SwipeRecord
	retracted_match: Optional[MatchRecord] = None


@dataclass(slots=True)
class MatchPreferences:
	"""Per-hacker matching filters and visibility switches."""

	user_id: str
	looking_for_team: bool = True
	hide_profile: bool = False
	location_preference: LocationPreference = LocationPreference.ANY
	min_hackathons_participated: int = 0
	min_hackathons_won: int = 0
	min_github_contributions: int = 0
	prefer_active_github: bool = False
	preferred_team_size: int = 4
	updated_at: Optional[datetime] = None

	@property
	def discoverable(self) -> bool:
		return self.looking_for_team and not self.hide_profile


@dataclass(slots=True)
class QueueEntry:
	"""A ranked candidate held in a user's queue."""

	candidate_id: str
	score: float
	components: dict[str, float] = field(default_factory=dict)

	def to_dict(self) -> dict[str, Any]:
		return {"candidate_id": self.candidate_id, "score": self.score, "components": dict(self.components)}

	@classmethod
	def from_dict(cls, data: Mapping[str, Any]) -> "QueueEntry":
		return cls(
			candidate_id=str(data["candidate_id"]),
			score=float(data.get("score", 0.0)),
			components={str(k): float(v) for k, v in (data.get("components") or {}).items()},
		)


@dataclass(slots=True)
class MatchCandidateQueue:
	"""Session-scoped queue of ranked candidates for one requester."""

	user_id: str
	candidates: list[QueueEntry] = field(default_factory=list)
	serving: Optional[QueueEntry] = None
	last_consumed: Optional[QueueEntry] = None

	@property
	def state(self) -> QueueState:
		if self.serving is not None:
			return QueueState.SERVING
		if self.candidates:
			return QueueState.LOADED
		return QueueState.EMPTY

	def discard(self, candidate_id: str) -> None:
		self.candidates = [entry for entry in self.candidates if entry.candidate_id != candidate_id]

	def to_dict(self) -> dict[str, Any]:
		return {
			"user_id": self.user_id,
			"candidates": [entry.to_dict() for entry in self.candidates],
			"serving": self.serving.to_dict() if self.serving else None,
			"last_consumed": self.last_consumed.to_dict() if self.last_consumed else None,
		}

	@classmethod
	def from_dict(cls, data: Mapping[str, Any]) -> "MatchCandidateQueue":
		serving = data.get("serving")
		last_consumed = data.get("last_consumed")
		return cls(
			user_id=str(data["user_id"]),
			candidates=[QueueEntry.from_dict(item) for item in data.get("candidates") or []],
			serving=QueueEntry.from_dict(serving) if serving else None,
			last_consumed=QueueEntry.from_dict(last_consumed) if last_consumed else None,
		)
