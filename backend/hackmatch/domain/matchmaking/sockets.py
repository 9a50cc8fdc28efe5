"""Socket.IO namespace delivering match events to both hackers of a pair."""

from __future__ import annotations

from typing import Optional, Protocol

import socketio

from hackmatch.domain.matchmaking.models import MatchRecord
from hackmatch.obs import metrics as obs_metrics

_namespace: "MatchmakingNamespace" | None = None

MATCH_CREATED = "match:created"
MATCH_REMOVED = "match:removed"


def _header(scope: dict, name: str) -> Optional[str]:
	target = name.encode().lower()
	for key, value in scope.get("headers", []):
		if key.lower() == target:
			return value.decode()
	return None


class MatchmakingNamespace(socketio.AsyncNamespace):
	"""Namespace that keeps each client in their personal room."""

	def __init__(self) -> None:
		super().__init__("/matchmaking")
		self._sessions: dict[str, str] = {}

	async def on_connect(self, sid: str, environ: dict, auth: Optional[dict] = None) -> None:
		obs_metrics.socket_connected(self.namespace)
		scope = environ.get("asgi.scope", environ)
		auth_payload = auth or environ.get("auth") or scope.get("auth") or {}
		user_id = auth_payload.get("userId") or _header(scope, "x-user-id")
		if not user_id:
			obs_metrics.socket_disconnected(self.namespace)
			raise ConnectionRefusedError("missing user id")
		self._sessions[sid] = user_id
		await self.enter_room(sid, self.user_room(user_id))
		await self.emit("matchmaking:ack", {"ok": True}, room=sid)

	async def on_disconnect(self, sid: str) -> None:
		obs_metrics.socket_disconnected(self.namespace)
		user_id = self._sessions.pop(sid, None)
		if user_id:
			await self.leave_room(sid, self.user_room(user_id))

	@staticmethod
	def user_room(user_id: str) -> str:
		return f"user:{user_id}"


def set_namespace(ns: MatchmakingNamespace | None) -> None:
	global _namespace
	_namespace = ns


def match_payload(match: MatchRecord) -> dict:
	return {
		"match_id": match.match_id,
		"user_a_id": match.user_a_id,
		"user_b_id": match.user_b_id,
		"created_at": match.created_at.isoformat(),
	}


async def _emit_pair(event: str, match: MatchRecord) -> None:
	if _namespace is None:
		return
	payload = match_payload(match)
	for user_id in (match.user_a_id, match.user_b_id):
		obs_metrics.socket_event(_namespace.namespace, event)
		await _namespace.emit(event, payload, room=MatchmakingNamespace.user_room(user_id))


async def emit_match_created(match: MatchRecord) -> None:
	await _emit_pair(MATCH_CREATED, match)


async def emit_match_removed(match: MatchRecord) -> None:
	await _emit_pair(MATCH_REMOVED, match)


class MatchNotifier(Protocol):
	async def match_created(self, match: MatchRecord) -> None:
		...

	async def match_removed(self, match: MatchRecord) -> None:
		...


class SocketMatchNotifier(MatchNotifier):
	async def match_created(self, match: MatchRecord) -> None:
		await emit_match_created(match)

	async def match_removed(self, match: MatchRecord) -> None:
		await emit_match_removed(match)
