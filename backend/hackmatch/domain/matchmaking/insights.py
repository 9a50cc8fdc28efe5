"""Human-readable explanations of why two hackers were paired."""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from typing import Iterable, Optional, Sequence

from hackmatch.domain.matchmaking.models import HackerProfile

ACTIVE_CONTRIBUTIONS = 500
MODERATE_CONTRIBUTIONS = 100
MAX_INSIGHTS = 5
FAVOURITE_CATEGORY_LIMIT = 3

_FRONTEND_FRAMEWORKS = ("react", "vue", "angular", "next.js", "svelte")
_BACKEND_FRAMEWORKS = ("node.js", "express", "django", "flask", "spring", "fastapi", "nestjs")


@dataclass(slots=True)
class HackathonStats:
	participated: int = 0
	won: int = 0
	win_rate: float = 0.0
	recent_hackathon: Optional[str] = None
	favorite_categories: list[str] = field(default_factory=list)


@dataclass(slots=True)
class MatchingFactors:
	shared_languages: list[str] = field(default_factory=list)
	shared_frameworks: list[str] = field(default_factory=list)
	user_unique_skills: list[str] = field(default_factory=list)
	target_unique_skills: list[str] = field(default_factory=list)
	experience_gap: int = 0
	location_match: str = "different"
	github_activity_level: str = "both_inactive"
	shared_interests: list[str] = field(default_factory=list)
	strength_areas: list[str] = field(default_factory=list)
	why_great_together: list[str] = field(default_factory=list)


def intersection(left: Iterable[str], right: Iterable[str]) -> list[str]:
	"""Items of ``left`` also present in ``right``, compared case-insensitively."""
	lowered = {item.lower() for item in right}
	return [item for item in left if item.lower() in lowered]


def difference(left: Iterable[str], right: Iterable[str]) -> list[str]:
	lowered = {item.lower() for item in right}
	return [item for item in left if item.lower() not in lowered]


def hackathon_stats(profile: HackerProfile) -> HackathonStats:
	history = list(profile.hackathons)
	participated = len(history)
	won = sum(1 for item in history if item.won)
	win_rate = (won / participated) * 100 if participated else 0.0
	dated = [item for item in history if item.participated_at is not None]
	recent = max(dated, key=lambda item: item.participated_at).title if dated else None
	counts: Counter[str] = Counter()
	for item in history:
		counts.update(item.categories)
	favourites = [name for name, _ in sorted(counts.items(), key=lambda kv: (-kv[1], kv[0]))[:FAVOURITE_CATEGORY_LIMIT]]
	return HackathonStats(
		participated=participated,
		won=won,
		win_rate=round(win_rate, 2),
		recent_hackathon=recent or None,
		favorite_categories=favourites,
	)


def location_match(user: HackerProfile, target: HackerProfile) -> str:
	for attr, label in (("city", "same_city"), ("state", "same_state"), ("country", "same_country")):
		mine = (getattr(user, attr) or "").strip().lower()
		theirs = (getattr(target, attr) or "").strip().lower()
		if mine and mine == theirs:
			return label
	return "different"


def github_activity_level(user: HackerProfile, target: HackerProfile) -> str:
	mine = user.github.contributions if user.github else 0
	theirs = target.github.contributions if target.github else 0
	if mine > ACTIVE_CONTRIBUTIONS and theirs > ACTIVE_CONTRIBUTIONS:
		return "both_active"
	if mine > ACTIVE_CONTRIBUTIONS or theirs > ACTIVE_CONTRIBUTIONS:
		return "one_active"
	if mine > MODERATE_CONTRIBUTIONS and theirs > MODERATE_CONTRIBUTIONS:
		return "both_moderate"
	return "both_inactive"


def _uses_any(frameworks: Sequence[str], family: Sequence[str]) -> bool:
	return any(known in framework.lower() for framework in frameworks for known in family)


def _insights(
	user: HackerProfile,
	target: HackerProfile,
	user_stats: HackathonStats,
	target_stats: HackathonStats,
	components: dict[str, float],
) -> list[str]:
	lines: list[str] = []
	shared_languages = intersection(user.programming_languages, target.programming_languages)
	if shared_languages and components.get("skill_overlap", 0.0) >= 0.5:
		lines.append(f"You both excel in {' and '.join(shared_languages[:2])}")
	user_front = _uses_any(user.frameworks, _FRONTEND_FRAMEWORKS)
	user_back = _uses_any(user.frameworks, _BACKEND_FRAMEWORKS)
	target_front = _uses_any(target.frameworks, _FRONTEND_FRAMEWORKS)
	target_back = _uses_any(target.frameworks, _BACKEND_FRAMEWORKS)
	if (user_front and target_back) or (target_front and user_back):
		lines.append("Complementary backend/frontend skills")
	if components.get("experience_proximity", 0.0) >= 1.0:
		lines.append("Similar hackathon experience level")
	shared_categories = intersection(user_stats.favorite_categories, target_stats.favorite_categories)
	if shared_categories:
		lines.append(f"Shared interest in {shared_categories[0]}")
	if github_activity_level(user, target) == "both_active":
		lines.append("Both actively contributing on GitHub")
	if location_match(user, target) == "same_city" and user.city:
		lines.append(f"Both based in {user.city.strip()}")
	if user_stats.won > 0 and target_stats.won > 0:
		lines.append("Both have won hackathons before")
	return lines[:MAX_INSIGHTS]


def matching_factors(
	user: HackerProfile,
	target: HackerProfile,
	components: dict[str, float],
) -> MatchingFactors:
	"""Describe what two profiles have in common and where they complement each other."""
	user_stats = hackathon_stats(user)
	target_stats = hackathon_stats(target)
	shared_languages = intersection(user.programming_languages, target.programming_languages)
	return MatchingFactors(
		shared_languages=shared_languages,
		shared_frameworks=intersection(user.frameworks, target.frameworks),
		user_unique_skills=difference(user.programming_languages, target.programming_languages),
		target_unique_skills=difference(target.programming_languages, user.programming_languages),
		experience_gap=abs(user_stats.participated - target_stats.participated),
		location_match=location_match(user, target),
		github_activity_level=github_activity_level(user, target),
		shared_interests=intersection(user_stats.favorite_categories, target_stats.favorite_categories),
		strength_areas=shared_languages[:3],
		why_great_together=_insights(user, target, user_stats, target_stats, components),
	)
