"""Teammate matching domain exports."""

from .exceptions import (  # noqa: F401
	CandidateNotFound,
	DependencyUnavailable,
	DuplicateSwipe,
	InvalidTarget,
	MatchmakingError,
	NothingToUndo,
	UndoWindowExpired,
)
from .models import (  # noqa: F401
	ExperienceLevel,
	HackerProfile,
	MatchRecord,
	SwipeDirection,
	SwipeRecord,
)
