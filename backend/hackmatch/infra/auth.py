"""Caller identity for FastAPI endpoints.

Authentication lives in front of this service; the gateway forwards the
authenticated hacker's id in ``X-User-Id``.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from fastapi import Header, HTTPException, status

_MAX_USER_ID_LENGTH = 128


@dataclass(slots=True)
class AuthenticatedUser:
	id: str


async def get_current_user(
	x_user_id: Optional[str] = Header(default=None, alias="X-User-Id"),
) -> AuthenticatedUser:
	user_id = (x_user_id or "").strip()
	if not user_id or len(user_id) > _MAX_USER_ID_LENGTH:
		raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="missing_user")
	return AuthenticatedUser(id=user_id)
