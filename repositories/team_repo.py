# repositories/team_repo.py
from __future__ import annotations

from typing import Any, Mapping, Sequence

from repositories.base_repo import BaseRepo, placeholders

_TEAM_COLUMNS = "team_id, season_id, name, player_a_id, player_b_id, player_a_name, player_b_name"


class TeamRepo(BaseRepo):
    async def create_team(
        self,
        *,
        season_id: int,
        name: str,
        player_ids: Sequence[int],
        player_names: Sequence[str],
    ) -> int:
        return await self.insert_returning_id(
            """
            INSERT INTO league_team
              (season_id, name, player_a_id, player_b_id, player_a_name, player_b_name)
            VALUES
              (%s, %s, %s, %s, %s, %s);
            """,
            (season_id, name, player_ids[0], player_ids[1], player_names[0], player_names[1]),
        )

    async def get_team(self, *, team_id: int) -> Mapping[str, Any] | None:
        return await self.fetch_one(
            f"SELECT {_TEAM_COLUMNS} FROM league_team WHERE team_id=%s;",
            (team_id,),
        )

    async def get_team_by_name(self, *, season_id: int, name: str) -> Mapping[str, Any] | None:
        return await self.fetch_one(
            f"SELECT {_TEAM_COLUMNS} FROM league_team WHERE season_id=%s AND name=%s;",
            (season_id, name),
        )

    async def find_team_with_players(self, *, season_id: int, player_ids: Sequence[int]) -> Mapping[str, Any] | None:
        ids = [int(p) for p in player_ids]
        if not ids:
            return None
        marks = placeholders(len(ids))
        return await self.fetch_one(
            f"""
            SELECT {_TEAM_COLUMNS}
            FROM league_team
            WHERE season_id=%s
              AND (player_a_id IN ({marks}) OR player_b_id IN ({marks}))
            LIMIT 1;
            """,
            (season_id, *ids, *ids),
        )

    async def list_teams(self, *, season_id: int) -> list[Mapping[str, Any]]:
        return await self.fetch_all(
            f"SELECT {_TEAM_COLUMNS} FROM league_team WHERE season_id=%s ORDER BY name, team_id;",
            (season_id,),
        )

    async def count_teams(self, *, season_id: int) -> int:
        return await self.fetch_count(
            "SELECT COUNT(*) FROM league_team WHERE season_id=%s;",
            (season_id,),
        )
