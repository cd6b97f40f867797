# repositories/player_repo.py
from __future__ import annotations

from typing import Any, Mapping

from repositories.base_repo import BaseRepo


class PlayerRepo(BaseRepo):
    async def get_player(self, *, player_id: int) -> Mapping[str, Any] | None:
        return await self.fetch_one(
            "SELECT player_id, name, rating, discord_user_id FROM league_player WHERE player_id=%s;",
            (player_id,),
        )

    async def create_player(self, *, name: str, rating: int = 1000, discord_user_id: int | None = None) -> int:
        return await self.insert_returning_id(
            "INSERT INTO league_player (name, rating, discord_user_id) VALUES (%s, %s, %s);",
            (name, rating, discord_user_id),
        )

    async def ensure_discord_player(self, *, discord_user_id: int, display_name: str) -> int:
        """
        Upsert keyed on the Discord snowflake; keeps the display name fresh.
        """
        await self.execute(
            """
            INSERT INTO league_player (name, rating, discord_user_id)
            VALUES (%s, 1000, %s)
            ON DUPLICATE KEY UPDATE name = VALUES(name);
            """,
            (display_name, discord_user_id),
        )
        row = await self.fetch_one(
            "SELECT player_id FROM league_player WHERE discord_user_id=%s;",
            (discord_user_id,),
        )
        if not row:
            raise RuntimeError("Failed to resolve player_id after ensure_discord_player()")
        return int(row["player_id"])
