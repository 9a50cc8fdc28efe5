"""Schemas for the teammate swipe feed, swipes, matches and preferences."""

from __future__ import annotations

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, Field

from hackmatch.domain.matchmaking import insights
from hackmatch.domain.matchmaking.models import (
	HackerProfile,
	LocationPreference,
	MatchPreferences,
	MatchRecord,
	QueueEntry,
)


class GitHubSummary(BaseModel):
	username: str
	stars: int = 0
	contributions: int = 0
	current_streak: int = 0
	repositories: int = 0


class HackathonSummary(BaseModel):
	participated: int = 0
	won: int = 0
	win_rate: float = 0.0
	recent_hackathon: Optional[str] = None
	favorite_categories: list[str] = Field(default_factory=list)


class MatchingFactorsModel(BaseModel):
	shared_languages: list[str] = Field(default_factory=list)
	shared_frameworks: list[str] = Field(default_factory=list)
	user_unique_skills: list[str] = Field(default_factory=list)
	target_unique_skills: list[str] = Field(default_factory=list)
	experience_gap: int = 0
	location_match: str = "different"
	github_activity_level: str = "both_inactive"
	shared_interests: list[str] = Field(default_factory=list)
	strength_areas: list[str] = Field(default_factory=list)
	why_great_together: list[str] = Field(default_factory=list)


class CandidateProfile(BaseModel):
	"""Card for the candidate currently served to the requester."""

	kind: Literal["candidate"] = "candidate"
	user_id: str
	full_name: str = ""
	bio: Optional[str] = None
	programming_languages: list[str] = Field(default_factory=list)
	frameworks: list[str] = Field(default_factory=list)
	experience_level: str
	city: Optional[str] = None
	state: Optional[str] = None
	country: Optional[str] = None
	open_to_recruitment: bool = False
	github: Optional[GitHubSummary] = None
	hackathon_stats: HackathonSummary = Field(default_factory=HackathonSummary)
	compatibility_score: float = Field(ge=0.0, le=1.0)
	score_breakdown: dict[str, float] = Field(default_factory=dict)
	matching_factors: MatchingFactorsModel = Field(default_factory=MatchingFactorsModel)

	@classmethod
	def build(cls, requester: HackerProfile, candidate: HackerProfile, entry: QueueEntry) -> "CandidateProfile":
		stats = insights.hackathon_stats(candidate)
		factors = insights.matching_factors(requester, candidate, entry.components)
		github = candidate.github
		return cls(
			user_id=candidate.user_id,
			full_name=candidate.full_name,
			bio=candidate.bio,
			programming_languages=list(candidate.programming_languages),
			frameworks=list(candidate.frameworks),
			experience_level=candidate.experience_level.value,
			city=candidate.city,
			state=candidate.state,
			country=candidate.country,
			open_to_recruitment=candidate.open_to_recruitment,
			github=GitHubSummary(
				username=github.username,
				stars=github.stars,
				contributions=github.contributions,
				current_streak=github.current_streak,
				repositories=github.repositories,
			)
			if github
			else None,
			hackathon_stats=HackathonSummary(
				participated=stats.participated,
				won=stats.won,
				win_rate=stats.win_rate,
				recent_hackathon=stats.recent_hackathon,
				favorite_categories=list(stats.favorite_categories),
			),
			compatibility_score=min(1.0, max(0.0, entry.score)),
			score_breakdown=dict(entry.components),
			matching_factors=MatchingFactorsModel(
				shared_languages=factors.shared_languages,
				shared_frameworks=factors.shared_frameworks,
				user_unique_skills=factors.user_unique_skills,
				target_unique_skills=factors.target_unique_skills,
				experience_gap=factors.experience_gap,
				location_match=factors.location_match,
				github_activity_level=factors.github_activity_level,
				shared_interests=factors.shared_interests,
				strength_areas=factors.strength_areas,
				why_great_together=factors.why_great_together,
			),
		)


class NoMoreCandidates(BaseModel):
	"""Terminal state: the requester's eligible pool is exhausted for now."""

	kind: Literal["exhausted"] = "exhausted"
	message: str = "No more profiles to show"


class SwipePayload(BaseModel):
	target_id: str = Field(min_length=1, max_length=128)


class SwipeResult(BaseModel):
	accepted: bool
	matched: bool = False
	match_id: Optional[str] = None


class BlockResult(BaseModel):
	blocked: bool = True
	retracted_match_id: Optional[str] = None


class MatchSummary(BaseModel):
	match_id: str
	peer_id: str
	matched_at: datetime
	peer: Optional[CandidateProfile] = None

	@classmethod
	def build(
		cls,
		user_id: str,
		match: MatchRecord,
		peer: Optional[CandidateProfile] = None,
	) -> "MatchSummary":
		return cls(match_id=match.match_id, peer_id=match.peer_of(user_id), matched_at=match.created_at, peer=peer)


class MatchInsight(BaseModel):
	user_id: str
	target_id: str
	compatibility_score: float
	score_breakdown: dict[str, float] = Field(default_factory=dict)
	matching_factors: MatchingFactorsModel


class PreferencesPayload(BaseModel):
	looking_for_team: Optional[bool] = None
	hide_profile: Optional[bool] = None
	location_preference: Optional[LocationPreference] = None
	min_hackathons_participated: Optional[int] = Field(default=None, ge=0, le=100)
	min_hackathons_won: Optional[int] = Field(default=None, ge=0, le=100)
	min_github_contributions: Optional[int] = Field(default=None, ge=0)
	prefer_active_github: Optional[bool] = None
	preferred_team_size: Optional[int] = Field(default=None, ge=2, le=6)


class PreferencesResponse(BaseModel):
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

	@classmethod
	def from_domain(cls, prefs: MatchPreferences) -> "PreferencesResponse":
		return cls(
			user_id=prefs.user_id,
			looking_for_team=prefs.looking_for_team,
			hide_profile=prefs.hide_profile,
			location_preference=prefs.location_preference,
			min_hackathons_participated=prefs.min_hackathons_participated,
			min_hackathons_won=prefs.min_hackathons_won,
			min_github_contributions=prefs.min_github_contributions,
			prefer_active_github=prefs.prefer_active_github,
			preferred_team_size=prefs.preferred_team_size,
			updated_at=prefs.updated_at,
		)
