"""PostgreSQL-backed swipe ledger.

Each multi-row write runs in one transaction. Right swipes and their undos take a
transaction-scoped advisory lock keyed on the canonical pair, so two hackers
swiping right on each other at the same instant serialise on the reciprocity
check and exactly one of them creates the match. ``hacker_matches`` carries a
unique constraint on the pair as the last line of defence; a losing insert is
read back as "already matched".

Every write also takes an advisory lock on the swiper before it touches the
undo slot, so two concurrent swipes by one hacker cannot both hold an
``undoable`` row and trip ``uq_hacker_swipes_undo_slot``.
"""

from __future__ import annotations

from typing import Optional, Sequence
from uuid import uuid4

import asyncpg

from hackmatch.domain.matchmaking.exceptions import DuplicateSwipe, NothingToUndo
from hackmatch.domain.matchmaking.ledger import SwipeLedger
from hackmatch.domain.matchmaking.models import (
    BlockOutcome,
    MatchRecord,
    SwipeCommit,
    SwipeDirection,
    SwipeRecord,
    UndoOutcome,
    canonical_pair,
)
from hackmatch.infra.postgres import storage_errors

_DEPENDENCY = "swipe_ledger"


def _row_to_swipe(row: asyncpg.Record) -> SwipeRecord:
    return SwipeRecord(
        swiper_id=str(row["swiper_id"]),
        target_id=str(row["target_id"]),
        direction=SwipeDirection(str(row["direction"])),
        created_at=row["created_at"],
    )


def _row_to_match(row: asyncpg.Record) -> MatchRecord:
    return MatchRecord(
        match_id=str(row["match_id"]),
        user_a_id=str(row["user_a_id"]),
        user_b_id=str(row["user_b_id"]),
        created_at=row["created_at"],
    )


async def _lock_swiper(conn: asyncpg.Connection, swiper_id: str) -> None:
    await conn.execute("SELECT pg_advisory_xact_lock(hashtextextended($1, 0))", f"swiper:{swiper_id}")


async def _lock_pair(conn: asyncpg.Connection, user_a: str, user_b: str) -> None:
    first, second = canonical_pair(user_a, user_b)
    await conn.execute("SELECT pg_advisory_xact_lock(hashtextextended($1, 0))", f"match:{first}:{second}")


class PostgresSwipeLedger(SwipeLedger):
    """Persists swipes and matches; the undo slot is the single ``undoable`` row per swiper."""

    def __init__(self, pool: asyncpg.Pool) -> None:
        self._pool = pool

    async def commit_swipe(self, record: SwipeRecord) -> SwipeCommit:
        right = record.direction is SwipeDirection.RIGHT
        async with storage_errors(_DEPENDENCY):
            async with self._pool.acquire() as conn:
                async with conn.transaction():
                    await _lock_swiper(conn, record.swiper_id)
                    if right:
                        await _lock_pair(conn, record.swiper_id, record.target_id)
                    await conn.execute(
                        "UPDATE hacker_swipes SET undoable = FALSE WHERE swiper_id = $1 AND undoable",
                        record.swiper_id,
                    )
                    inserted = await conn.fetchval(
                        """
                        INSERT INTO hacker_swipes (swiper_id, target_id, direction, created_at, undoable)
                        VALUES ($1, $2, $3, $4, TRUE)
                        ON CONFLICT (swiper_id, target_id) DO NOTHING
                        RETURNING swiper_id
                        """,
                        record.swiper_id,
                        record.target_id,
                        record.direction.value,
                        record.created_at,
                    )
                    if inserted is None:
                        # Raising rolls back the cleared undo slot as well.
                        raise DuplicateSwipe()
                    if not right:
                        return SwipeCommit(record=record)
                    reciprocal = await conn.fetchval(
                        """
                        SELECT 1 FROM hacker_swipes
                        WHERE swiper_id = $1 AND target_id = $2 AND direction = 'right'
                        """,
                        record.target_id,
                        record.swiper_id,
                    )
                    if reciprocal is None:
                        return SwipeCommit(record=record)
                    user_a, user_b = canonical_pair(record.swiper_id, record.target_id)
                    row = await conn.fetchrow(
                        """
                        INSERT INTO hacker_matches (match_id, user_a_id, user_b_id, created_at)
                        VALUES ($1, $2, $3, $4)
                        ON CONFLICT (user_a_id, user_b_id) DO NOTHING
                        RETURNING match_id, user_a_id, user_b_id, created_at
                        """,
                        uuid4(),
                        user_a,
                        user_b,
                        record.created_at,
                    )
                    if row is not None:
                        return SwipeCommit(record=record, match=_row_to_match(row), match_created=True)
                    existing = await conn.fetchrow(
                        """
                        SELECT match_id, user_a_id, user_b_id, created_at
                        FROM hacker_matches WHERE user_a_id = $1 AND user_b_id = $2
                        """,
                        user_a,
                        user_b,
                    )
                    return SwipeCommit(
                        record=record,
                        match=_row_to_match(existing) if existing else None,
                        match_created=False,
                    )

    async def swiped_target_ids(self, swiper_id: str) -> set[str]:
        async with storage_errors(_DEPENDENCY):
            rows = await self._pool.fetch(
                "SELECT target_id FROM hacker_swipes WHERE swiper_id = $1",
                swiper_id,
            )
        return {str(row["target_id"]) for row in rows}

    async def has_swiped(self, swiper_id: str, target_id: str) -> bool:
        async with storage_errors(_DEPENDENCY):
            found = await self._pool.fetchval(
                "SELECT 1 FROM hacker_swipes WHERE swiper_id = $1 AND target_id = $2",
                swiper_id,
                target_id,
            )
        return found is not None

    async def get_swipe(self, swiper_id: str, target_id: str) -> Optional[SwipeRecord]:
        async with storage_errors(_DEPENDENCY):
            row = await self._pool.fetchrow(
                """
                SELECT swiper_id, target_id, direction, created_at
                FROM hacker_swipes WHERE swiper_id = $1 AND target_id = $2
                """,
                swiper_id,
                target_id,
            )
        return _row_to_swipe(row) if row else None

    async def peek_undoable(self, swiper_id: str) -> Optional[SwipeRecord]:
        async with storage_errors(_DEPENDENCY):
            row = await self._pool.fetchrow(
                """
                SELECT swiper_id, target_id, direction, created_at
                FROM hacker_swipes WHERE swiper_id = $1 AND undoable
                """,
                swiper_id,
            )
        return _row_to_swipe(row) if row else None

    async def undo_swipe(self, record: SwipeRecord) -> UndoOutcome:
        right = record.direction is SwipeDirection.RIGHT
        async with storage_errors(_DEPENDENCY):
            async with self._pool.acquire() as conn:
                async with conn.transaction():
                    await _lock_swiper(conn, record.swiper_id)
                    if right:
                        await _lock_pair(conn, record.swiper_id, record.target_id)
                    row = await conn.fetchrow(
                        """
                        DELETE FROM hacker_swipes
                        WHERE swiper_id = $1 AND target_id = $2 AND undoable
                        RETURNING swiper_id, target_id, direction, created_at
                        """,
                        record.swiper_id,
                        record.target_id,
                    )
                    if row is None:
                        raise NothingToUndo()
                    removed = _row_to_swipe(row)
                    if removed.direction is not SwipeDirection.RIGHT:
                        return UndoOutcome(record=removed)
                    user_a, user_b = canonical_pair(record.swiper_id, record.target_id)
                    match_row = await conn.fetchrow(
                        """
                        DELETE FROM hacker_matches WHERE user_a_id = $1 AND user_b_id = $2
                        RETURNING match_id, user_a_id, user_b_id, created_at
                        """,
                        user_a,
                        user_b,
                    )
                    return UndoOutcome(
                        record=removed,
                        retracted_match=_row_to_match(match_row) if match_row else None,
                    )

    async def block(self, record: SwipeRecord) -> BlockOutcome:
        user_a, user_b = canonical_pair(record.swiper_id, record.target_id)
        async with storage_errors(_DEPENDENCY):
            async with self._pool.acquire() as conn:
                async with conn.transaction():
                    await _lock_swiper(conn, record.swiper_id)
                    await _lock_pair(conn, record.swiper_id, record.target_id)
                    previous = await conn.fetchrow(
                        """
                        SELECT swiper_id, target_id, direction, created_at
                        FROM hacker_swipes WHERE swiper_id = $1 AND target_id = $2
                        """,
                        record.swiper_id,
                        record.target_id,
                    )
                    await conn.execute(
                        """
                        INSERT INTO hacker_swipes (swiper_id, target_id, direction, created_at, undoable)
                        VALUES ($1, $2, 'block', $3, FALSE)
                        ON CONFLICT (swiper_id, target_id)
                        DO UPDATE SET direction = 'block', created_at = EXCLUDED.created_at, undoable = FALSE
                        """,
                        record.swiper_id,
                        record.target_id,
                        record.created_at,
                    )
                    match_row = await conn.fetchrow(
                        """
                        DELETE FROM hacker_matches WHERE user_a_id = $1 AND user_b_id = $2
                        RETURNING match_id, user_a_id, user_b_id, created_at
                        """,
                        user_a,
                        user_b,
                    )
                    return BlockOutcome(
                        record=record,
                        replaced=_row_to_swipe(previous) if previous else None,
                        retracted_match=_row_to_match(match_row) if match_row else None,
                    )

    async def blocked_by(self, user_id: str) -> set[str]:
        async with storage_errors(_DEPENDENCY):
            rows = await self._pool.fetch(
                "SELECT swiper_id FROM hacker_swipes WHERE target_id = $1 AND direction = 'block'",
                user_id,
            )
        return {str(row["swiper_id"]) for row in rows}

    async def get_match(self, user_a: str, user_b: str) -> Optional[MatchRecord]:
        first, second = canonical_pair(user_a, user_b)
        async with storage_errors(_DEPENDENCY):
            row = await self._pool.fetchrow(
                """
                SELECT match_id, user_a_id, user_b_id, created_at
                FROM hacker_matches WHERE user_a_id = $1 AND user_b_id = $2
                """,
                first,
                second,
            )
        return _row_to_match(row) if row else None

    async def list_matches(self, user_id: str) -> Sequence[MatchRecord]:
        async with storage_errors(_DEPENDENCY):
            rows = await self._pool.fetch(
                """
                SELECT match_id, user_a_id, user_b_id, created_at
                FROM hacker_matches
                WHERE user_a_id = $1 OR user_b_id = $1
                ORDER BY created_at DESC, match_id DESC
                """,
                user_id,
            )
        return [_row_to_match(row) for row in rows]
