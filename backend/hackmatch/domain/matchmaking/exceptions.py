"""Domain-level exceptions for the matching engine."""

from __future__ import annotations


class MatchmakingError(Exception):
	"""Base class for matching engine errors."""

	reason: str = "unknown"
	retryable: bool = False

	def __init__(self, reason: str | None = None) -> None:
		super().__init__(reason or self.reason)
		if reason:
			self.reason = reason


class DependencyUnavailable(MatchmakingError):
	"""Profile store or ledger storage could not be reached; safe to retry with backoff."""

	reason = "dependency_unavailable"
	retryable = True

	def __init__(self, dependency: str = "storage", reason: str | None = None) -> None:
		super().__init__(reason)
		self.dependency = dependency


class DuplicateSwipe(MatchmakingError):
	reason = "duplicate_swipe"


class CandidateNotFound(MatchmakingError):
	reason = "candidate_not_found"


class InvalidTarget(MatchmakingError):
	reason = "invalid_target"


class NothingToUndo(MatchmakingError):
	reason = "nothing_to_undo"


class UndoWindowExpired(NothingToUndo):
	reason = "undo_expired"
