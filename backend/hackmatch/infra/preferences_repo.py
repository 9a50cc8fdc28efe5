"""PostgreSQL persistence for match preferences."""

from __future__ import annotations

from typing import Collection, Optional

import asyncpg

from hackmatch.domain.matchmaking.models import LocationPreference, MatchPreferences
from hackmatch.domain.matchmaking.preferences import PreferencesRepository
from hackmatch.infra.postgres import storage_errors

_COLUMNS = """
    user_id, looking_for_team, hide_profile, location_preference,
    min_hackathons_participated, min_hackathons_won, min_github_contributions,
    prefer_active_github, preferred_team_size, updated_at
"""


def _row_to_preferences(row: asyncpg.Record) -> MatchPreferences:
    return MatchPreferences(
        user_id=str(row["user_id"]),
        looking_for_team=bool(row["looking_for_team"]),
        hide_profile=bool(row["hide_profile"]),
        location_preference=LocationPreference(str(row["location_preference"])),
        min_hackathons_participated=int(row["min_hackathons_participated"]),
        min_hackathons_won=int(row["min_hackathons_won"]),
        min_github_contributions=int(row["min_github_contributions"]),
        prefer_active_github=bool(row["prefer_active_github"]),
        preferred_team_size=int(row["preferred_team_size"]),
        updated_at=row["updated_at"],
    )


class PostgresPreferencesRepository(PreferencesRepository):
    def __init__(self, pool: asyncpg.Pool) -> None:
        self._pool = pool

    async def get(self, user_id: str) -> Optional[MatchPreferences]:
        async with storage_errors("preferences"):
            row = await self._pool.fetchrow(
                f"SELECT {_COLUMNS} FROM match_preferences WHERE user_id = $1",
                user_id,
            )
        return _row_to_preferences(row) if row else None

    async def upsert(self, preferences: MatchPreferences) -> MatchPreferences:
        async with storage_errors("preferences"):
            row = await self._pool.fetchrow(
                f"""
                INSERT INTO match_preferences ({_COLUMNS})
                VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9, COALESCE($10, NOW()))
                ON CONFLICT (user_id) DO UPDATE SET
                    looking_for_team = EXCLUDED.looking_for_team,
                    hide_profile = EXCLUDED.hide_profile,
                    location_preference = EXCLUDED.location_preference,
                    min_hackathons_participated = EXCLUDED.min_hackathons_participated,
                    min_hackathons_won = EXCLUDED.min_hackathons_won,
                    min_github_contributions = EXCLUDED.min_github_contributions,
                    prefer_active_github = EXCLUDED.prefer_active_github,
                    preferred_team_size = EXCLUDED.preferred_team_size,
                    updated_at = EXCLUDED.updated_at
                RETURNING {_COLUMNS}
                """,
                preferences.user_id,
                preferences.looking_for_team,
                preferences.hide_profile,
                preferences.location_preference.value,
                preferences.min_hackathons_participated,
                preferences.min_hackathons_won,
                preferences.min_github_contributions,
                preferences.prefer_active_github,
                preferences.preferred_team_size,
                preferences.updated_at,
            )
        if row is None:  # pragma: no cover - asyncpg always returns a row for RETURNING
            raise RuntimeError("Failed to upsert match_preferences")
        return _row_to_preferences(row)

    async def hidden_user_ids(self, user_ids: Collection[str]) -> set[str]:
        ids = [str(uid) for uid in user_ids]
        if not ids:
            return set()
        async with storage_errors("preferences"):
            rows = await self._pool.fetch(
                """
                SELECT user_id FROM match_preferences
                WHERE user_id = ANY($1::text[])
                  AND (hide_profile OR NOT looking_for_team)
                """,
                ids,
            )
        return {str(row["user_id"]) for row in rows}
