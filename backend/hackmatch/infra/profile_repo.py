"""PostgreSQL read model for hacker profiles."""

from __future__ import annotations

from collections import defaultdict
from typing import Collection, Mapping, Optional, Sequence

import asyncpg

from hackmatch.domain.matchmaking.models import (
    ExperienceLevel,
    GitHubStats,
    HackathonParticipation,
    HackerProfile,
)
from hackmatch.domain.matchmaking.profiles import ProfileStore
from hackmatch.infra.postgres import storage_errors

_PROFILE_COLUMNS = """
    p.user_id, p.full_name, p.bio, p.programming_languages, p.frameworks,
    p.experience_level, p.city, p.state, p.country, p.open_to_recruitment,
    p.matching_enabled, p.updated_at,
    g.username AS github_username, g.stars, g.contributions, g.current_streak, g.repositories
"""

_PROFILE_FROM = """
    FROM hacker_profiles p
    LEFT JOIN hacker_github_stats g ON g.user_id = p.user_id
"""


def _row_to_github(row: asyncpg.Record) -> Optional[GitHubStats]:
    if row["github_username"] is None:
        return None
    return GitHubStats(
        username=str(row["github_username"]),
        stars=int(row["stars"] or 0),
        contributions=int(row["contributions"] or 0),
        current_streak=int(row["current_streak"] or 0),
        repositories=int(row["repositories"] or 0),
    )


def _row_to_hackathon(row: asyncpg.Record) -> HackathonParticipation:
    return HackathonParticipation(
        hackathon_id=str(row["hackathon_id"]),
        title=str(row["title"] or ""),
        categories=tuple(row["categories"] or ()),
        won=bool(row["won"]),
        participated_at=row["participated_at"],
    )


def _row_to_profile(row: asyncpg.Record, hackathons: Sequence[HackathonParticipation]) -> HackerProfile:
    return HackerProfile(
        user_id=str(row["user_id"]),
        full_name=str(row["full_name"] or ""),
        bio=row["bio"],
        programming_languages=tuple(row["programming_languages"] or ()),
        frameworks=tuple(row["frameworks"] or ()),
        experience_level=ExperienceLevel.parse(row["experience_level"]),
        city=row["city"],
        state=row["state"],
        country=row["country"],
        open_to_recruitment=bool(row["open_to_recruitment"]),
        matching_enabled=bool(row["matching_enabled"]),
        github=_row_to_github(row),
        hackathons=tuple(hackathons),
        updated_at=row["updated_at"],
    )


class PostgresProfileStore(ProfileStore):
    """Reads profile snapshots; each call runs in one read-only transaction."""

    def __init__(self, pool: asyncpg.Pool) -> None:
        self._pool = pool

    async def _hydrate(self, conn: asyncpg.Connection, rows: Sequence[asyncpg.Record]) -> list[HackerProfile]:
        if not rows:
            return []
        ids = [str(row["user_id"]) for row in rows]
        history_rows = await conn.fetch(
            """
            SELECT user_id, hackathon_id, title, categories, won, participated_at
            FROM hacker_hackathons
            WHERE user_id = ANY($1::text[])
            ORDER BY user_id, participated_at DESC NULLS LAST, hackathon_id
            """,
            ids,
        )
        history: dict[str, list[HackathonParticipation]] = defaultdict(list)
        for row in history_rows:
            history[str(row["user_id"])].append(_row_to_hackathon(row))
        return [_row_to_profile(row, history.get(str(row["user_id"]), [])) for row in rows]

    async def get_profile(self, user_id: str) -> Optional[HackerProfile]:
        found = await self.get_profiles([user_id])
        return found.get(str(user_id))

    async def get_profiles(self, user_ids: Sequence[str]) -> Mapping[str, HackerProfile]:
        ids = [str(uid) for uid in user_ids]
        if not ids:
            return {}
        async with storage_errors("profile_store"):
            async with self._pool.acquire() as conn:
                async with conn.transaction(readonly=True):
                    rows = await conn.fetch(
                        f"SELECT {_PROFILE_COLUMNS} {_PROFILE_FROM} WHERE p.user_id = ANY($1::text[])",
                        ids,
                    )
                    profiles = await self._hydrate(conn, rows)
        return {profile.user_id: profile for profile in profiles}

    async def get_eligible_profiles(
        self,
        exclude_user_id: str,
        exclude_target_ids: Collection[str],
    ) -> list[HackerProfile]:
        async with storage_errors("profile_store"):
            async with self._pool.acquire() as conn:
                async with conn.transaction(readonly=True):
                    rows = await conn.fetch(
                        f"""
                        SELECT {_PROFILE_COLUMNS} {_PROFILE_FROM}
                        WHERE p.matching_enabled
                          AND p.user_id <> $1
                          AND NOT (p.user_id = ANY($2::text[]))
                        ORDER BY p.user_id
                        """,
                        str(exclude_user_id),
                        [str(uid) for uid in exclude_target_ids],
                    )
                    return await self._hydrate(conn, rows)
