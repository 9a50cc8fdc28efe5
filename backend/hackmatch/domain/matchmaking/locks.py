"""Per-key asyncio locks that are dropped once nobody holds or waits on them."""

from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from typing import AsyncIterator


class _Slot:
	__slots__ = ("lock", "users")

	def __init__(self) -> None:
		self.lock = asyncio.Lock()
		self.users = 0


class KeyedLock:
	"""Serialises work per key while letting different keys run in parallel."""

	def __init__(self) -> None:
		self._slots: dict[str, _Slot] = {}

	@asynccontextmanager
	async def hold(self, key: str) -> AsyncIterator[None]:
		slot = self._slots.get(key)
		if slot is None:
			slot = self._slots[key] = _Slot()
		slot.users += 1
		try:
			async with slot.lock:
				yield
		finally:
			slot.users -= 1
			if slot.users == 0 and self._slots.get(key) is slot:
				del self._slots[key]

	def __len__(self) -> int:
		return len(self._slots)

	def locked(self, key: str) -> bool:
		slot = self._slots.get(key)
		return slot is not None and slot.lock.locked()
