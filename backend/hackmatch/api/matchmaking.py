"""Teammate swipe feed endpoints."""

from __future__ import annotations

from typing import Union

from fastapi import APIRouter, Depends, HTTPException, status

from hackmatch.domain.matchmaking import container
from hackmatch.domain.matchmaking.exceptions import (
	CandidateNotFound,
	DependencyUnavailable,
	DuplicateSwipe,
	InvalidTarget,
	MatchmakingError,
	NothingToUndo,
	UndoWindowExpired,
)
from hackmatch.domain.matchmaking.schemas import (
	BlockResult,
	CandidateProfile,
	MatchInsight,
	MatchSummary,
	NoMoreCandidates,
	PreferencesPayload,
	PreferencesResponse,
	SwipePayload,
	SwipeResult,
)
from hackmatch.domain.matchmaking.service import MatchmakingService
from hackmatch.infra.auth import AuthenticatedUser, get_current_user

router = APIRouter(prefix="/matchmaking", tags=["matchmaking"])


def get_service() -> MatchmakingService:
	return container.get_service()


def _map_error(exc: MatchmakingError) -> HTTPException:
	if isinstance(exc, DependencyUnavailable):
		return HTTPException(status.HTTP_503_SERVICE_UNAVAILABLE, detail=exc.reason, headers={"Retry-After": "1"})
	if isinstance(exc, UndoWindowExpired):
		return HTTPException(status.HTTP_410_GONE, detail=exc.reason)
	if isinstance(exc, (DuplicateSwipe, NothingToUndo)):
		return HTTPException(status.HTTP_409_CONFLICT, detail=exc.reason)
	if isinstance(exc, CandidateNotFound):
		return HTTPException(status.HTTP_404_NOT_FOUND, detail=exc.reason)
	if isinstance(exc, InvalidTarget):
		return HTTPException(status.HTTP_400_BAD_REQUEST, detail=exc.reason)
	return HTTPException(status.HTTP_400_BAD_REQUEST, detail=getattr(exc, "reason", str(exc)))


@router.get("/next", response_model=Union[CandidateProfile, NoMoreCandidates])
async def next_candidate(
	auth_user: AuthenticatedUser = Depends(get_current_user),
	service: MatchmakingService = Depends(get_service),
) -> Union[CandidateProfile, NoMoreCandidates]:
	try:
		return await service.get_next_match(auth_user.id)
	except MatchmakingError as exc:
		raise _map_error(exc) from None


@router.post("/swipe/right", response_model=SwipeResult, status_code=status.HTTP_200_OK)
async def swipe_right(
	payload: SwipePayload,
	auth_user: AuthenticatedUser = Depends(get_current_user),
	service: MatchmakingService = Depends(get_service),
) -> SwipeResult:
	try:
		return await service.swipe_right(auth_user.id, payload.target_id)
	except MatchmakingError as exc:
		raise _map_error(exc) from None


@router.post("/swipe/left", response_model=SwipeResult, status_code=status.HTTP_200_OK)
async def swipe_left(
	payload: SwipePayload,
	auth_user: AuthenticatedUser = Depends(get_current_user),
	service: MatchmakingService = Depends(get_service),
) -> SwipeResult:
	try:
		return await service.swipe_left(auth_user.id, payload.target_id)
	except MatchmakingError as exc:
		raise _map_error(exc) from None


@router.post("/undo", response_model=CandidateProfile, status_code=status.HTTP_200_OK)
async def undo_last_swipe(
	auth_user: AuthenticatedUser = Depends(get_current_user),
	service: MatchmakingService = Depends(get_service),
) -> CandidateProfile:
	try:
		return await service.undo_last_swipe(auth_user.id)
	except MatchmakingError as exc:
		raise _map_error(exc) from None


@router.post("/block", response_model=BlockResult, status_code=status.HTTP_200_OK)
async def block_user(
	payload: SwipePayload,
	auth_user: AuthenticatedUser = Depends(get_current_user),
	service: MatchmakingService = Depends(get_service),
) -> BlockResult:
	try:
		return await service.block_user(auth_user.id, payload.target_id)
	except MatchmakingError as exc:
		raise _map_error(exc) from None


@router.get("/matches", response_model=list[MatchSummary])
async def list_matches(
	auth_user: AuthenticatedUser = Depends(get_current_user),
	service: MatchmakingService = Depends(get_service),
) -> list[MatchSummary]:
	try:
		return await service.list_matches(auth_user.id)
	except MatchmakingError as exc:
		raise _map_error(exc) from None


@router.get("/insights/{target_id}", response_model=MatchInsight)
async def match_insight(
	target_id: str,
	auth_user: AuthenticatedUser = Depends(get_current_user),
	service: MatchmakingService = Depends(get_service),
) -> MatchInsight:
	try:
		return await service.get_match_insight(auth_user.id, target_id)
	except MatchmakingError as exc:
		raise _map_error(exc) from None


@router.get("/preferences", response_model=PreferencesResponse)
async def get_preferences(
	auth_user: AuthenticatedUser = Depends(get_current_user),
	service: MatchmakingService = Depends(get_service),
) -> PreferencesResponse:
	try:
		return await service.get_preferences(auth_user.id)
	except MatchmakingError as exc:
		raise _map_error(exc) from None


@router.put("/preferences", response_model=PreferencesResponse)
async def update_preferences(
	payload: PreferencesPayload,
	auth_user: AuthenticatedUser = Depends(get_current_user),
	service: MatchmakingService = Depends(get_service),
) -> PreferencesResponse:
	try:
		return await service.update_preferences(auth_user.id, payload)
	except MatchmakingError as exc:
		raise _map_error(exc) from None
