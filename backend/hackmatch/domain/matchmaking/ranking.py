"""Candidate ranking for the teammate swipe feed.

The compatibility score of a candidate is a weighted sum of five terms, each in
``[0, 1]``:

- ``skill_overlap``: Jaccard similarity of programming languages
- ``framework_overlap``: Jaccard similarity of frameworks
- ``experience_proximity``: 1.0 equal level, 0.5 adjacent, 0.0 otherwise
- ``github_activity``: min-max normalised stars and current streak across the pool
- ``location_proximity``: 1.0 same city, 0.5 same state, 0.0 otherwise

Scores that differ by no more than the tie epsilon are ordered by candidate id
so the same snapshot always yields the same ordering.
"""

from __future__ import annotations

import functools
import time
from dataclasses import dataclass, field
from typing import Iterable, Optional, Sequence

from hackmatch.domain.matchmaking.models import ExperienceLevel, HackerProfile, QueueEntry
from hackmatch.obs import metrics as obs_metrics
from hackmatch.settings import RankingWeights

DEFAULT_WEIGHTS = RankingWeights()
DEFAULT_TIE_EPSILON = 1e-6

SKILL_OVERLAP = "skill_overlap"
FRAMEWORK_OVERLAP = "framework_overlap"
EXPERIENCE_PROXIMITY = "experience_proximity"
GITHUB_ACTIVITY = "github_activity"
LOCATION_PROXIMITY = "location_proximity"

TERMS = (SKILL_OVERLAP, FRAMEWORK_OVERLAP, EXPERIENCE_PROXIMITY, GITHUB_ACTIVITY, LOCATION_PROXIMITY)


@dataclass(slots=True)
class ScoredCandidate:
	"""A candidate together with its compatibility score and per-term breakdown."""

	profile: HackerProfile
	score: float
	components: dict[str, float] = field(default_factory=dict)

	@property
	def candidate_id(self) -> str:
		return self.profile.user_id

	def to_queue_entry(self) -> QueueEntry:
		return QueueEntry(candidate_id=self.candidate_id, score=self.score, components=dict(self.components))


def normalise_terms(values: Optional[Iterable[str]]) -> frozenset[str]:
	if not values:
		return frozenset()
	return frozenset(value.strip().lower() for value in values if value and value.strip())


def jaccard(left: Optional[Iterable[str]], right: Optional[Iterable[str]]) -> float:
	"""Jaccard similarity of two term sets; two empty sets have similarity 0."""
	a = normalise_terms(left)
	b = normalise_terms(right)
	union = a | b
	if not union:
		return 0.0
	return len(a & b) / len(union)


def experience_proximity(left: ExperienceLevel, right: ExperienceLevel) -> float:
	gap = abs(left.rank - right.rank)
	if gap == 0:
		return 1.0
	if gap == 1:
		return 0.5
	return 0.0


def _norm_place(value: Optional[str]) -> str:
	return (value or "").strip().lower()


def location_proximity(requester: HackerProfile, candidate: HackerProfile) -> float:
	city = _norm_place(requester.city)
	if city and city == _norm_place(candidate.city):
		return 1.0
	state = _norm_place(requester.state)
	if state and state == _norm_place(candidate.state):
		return 0.5
	return 0.0


@dataclass(frozen=True, slots=True)
class _Range:
	low: float
	high: float

	def normalise(self, value: float) -> float:
		if self.high <= self.low:
			# Degenerate pool: any positive activity counts as the top of the range.
			return 1.0 if value > 0 else 0.0
		return (value - self.low) / (self.high - self.low)


def _range(values: Sequence[float]) -> _Range:
	if not values:
		return _Range(0.0, 0.0)
	return _Range(min(values), max(values))


class GitHubActivityScale:
	"""Min-max scale for GitHub stars and streaks over one eligible pool."""

	def __init__(self, pool: Iterable[HackerProfile]) -> None:
		connected = [profile.github for profile in pool if profile.github is not None]
		self._stars = _range([float(stats.stars) for stats in connected])
		self._streak = _range([float(stats.current_streak) for stats in connected])

	def score(self, candidate: HackerProfile) -> float:
		stats = candidate.github
		if stats is None:
			return 0.0
		stars = self._stars.normalise(float(stats.stars))
		streak = self._streak.normalise(float(stats.current_streak))
		return (stars + streak) / 2.0


def score_components(
	requester: HackerProfile,
	candidate: HackerProfile,
	github_scale: GitHubActivityScale,
) -> dict[str, float]:
	return {
		SKILL_OVERLAP: jaccard(requester.programming_languages, candidate.programming_languages),
		FRAMEWORK_OVERLAP: jaccard(requester.frameworks, candidate.frameworks),
		EXPERIENCE_PROXIMITY: experience_proximity(requester.experience_level, candidate.experience_level),
		GITHUB_ACTIVITY: github_scale.score(candidate),
		LOCATION_PROXIMITY: location_proximity(requester, candidate),
	}


def weighted_score(components: dict[str, float], weights: RankingWeights = DEFAULT_WEIGHTS) -> float:
	weight_map = weights.as_dict()
	return sum(weight_map[term] * components.get(term, 0.0) for term in TERMS)


class CandidateRanker:
	"""Pure ranking of an eligible pool against a requesting hacker."""

	def __init__(
		self,
		weights: RankingWeights = DEFAULT_WEIGHTS,
		*,
		tie_epsilon: float = DEFAULT_TIE_EPSILON,
	) -> None:
		self.weights = weights
		self.tie_epsilon = tie_epsilon

	def _compare(self, left: ScoredCandidate, right: ScoredCandidate) -> int:
		if abs(left.score - right.score) > self.tie_epsilon:
			return -1 if left.score > right.score else 1
		if left.candidate_id == right.candidate_id:
			return 0
		return -1 if left.candidate_id < right.candidate_id else 1

	def rank(self, requester: HackerProfile, pool: Sequence[HackerProfile]) -> list[ScoredCandidate]:
		"""Return the pool ordered by descending compatibility with the requester."""
		started = time.perf_counter()
		eligible = [
			profile
			for profile in pool
			if profile.user_id != requester.user_id
		]
		github_scale = GitHubActivityScale(eligible)
		scored = []
		for candidate in eligible:
			components = score_components(requester, candidate, github_scale)
			scored.append(
				ScoredCandidate(
					profile=candidate,
					score=weighted_score(components, self.weights),
					components=components,
				)
			)
		# Pre-sorting by id keeps ties stable even when epsilon-ties chain.
		scored.sort(key=lambda item: item.candidate_id)
		scored.sort(key=functools.cmp_to_key(self._compare))
		obs_metrics.observe_ranking(time.perf_counter() - started, len(eligible))
		return scored

	def score_pair(
		self,
		requester: HackerProfile,
		candidate: HackerProfile,
		pool: Optional[Sequence[HackerProfile]] = None,
	) -> ScoredCandidate:
		"""Score one candidate, normalising GitHub activity over ``pool`` when given."""
		github_scale = GitHubActivityScale(pool if pool else [candidate])
		components = score_components(requester, candidate, github_scale)
		return ScoredCandidate(
			profile=candidate,
			score=weighted_score(components, self.weights),
			components=components,
		)
