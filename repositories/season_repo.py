# repositories/season_repo.py
from __future__ import annotations

from datetime import date
from typing import Any, Mapping, Sequence

from repositories.base_repo import BaseRepo, placeholders

_SEASON_COLUMNS = """
    season_id, year, period, status, regular_weeks, regular_rounds,
    playoffs_generated, season_name, start_date, days_between_weeks
"""


class SeasonRepo(BaseRepo):
    async def get_season(self, *, season_id: int) -> Mapping[str, Any] | None:
        return await self.fetch_one(
            f"SELECT {_SEASON_COLUMNS} FROM league_season WHERE season_id=%s;",
            (season_id,),
        )

    async def find_season(self, *, year: int, period: str) -> Mapping[str, Any] | None:
        return await self.fetch_one(
            f"SELECT {_SEASON_COLUMNS} FROM league_season WHERE year=%s AND period=%s;",
            (year, period),
        )

    async def list_seasons(self) -> list[Mapping[str, Any]]:
        return await self.fetch_all(
            f"SELECT {_SEASON_COLUMNS} FROM league_season ORDER BY year DESC, period DESC;"
        )

    async def create_season(
        self,
        *,
        year: int,
        period: str,
        status: str,
        regular_weeks: int,
        regular_rounds: int,
        season_name: str | None = None,
        start_date: date | None = None,
        days_between_weeks: int | None = None,
    ) -> int:
        return await self.insert_returning_id(
            """
            INSERT INTO league_season
              (year, period, status, regular_weeks, regular_rounds,
               playoffs_generated, season_name, start_date, days_between_weeks)
            VALUES
              (%s, %s, %s, %s, %s,
               0, %s, %s, %s);
            """,
            (year, period, status, regular_weeks, regular_rounds, season_name, start_date, days_between_weeks),
        )

    async def set_status(
        self,
        *,
        season_id: int,
        status: str,
        expected: Sequence[str] | None = None,
    ) -> int:
        """
        Compare-and-set on status. With `expected`, only rows currently in one of
        those statuses move; the returned rowcount tells the caller whether it won.
        """
        if expected:
            return await self.execute(
                f"""
                UPDATE league_season
                SET status=%s, updated_at=NOW(6)
                WHERE season_id=%s AND status IN ({placeholders(len(expected))});
                """,
                (status, season_id, *expected),
            )
        return await self.execute(
            "UPDATE league_season SET status=%s, updated_at=NOW(6) WHERE season_id=%s;",
            (status, season_id),
        )

    async def mark_playoffs_generated(self, *, season_id: int, status: str) -> int:
        return await self.execute(
            """
            UPDATE league_season
            SET playoffs_generated=1, status=%s, updated_at=NOW(6)
            WHERE season_id=%s AND playoffs_generated=0;
            """,
            (status, season_id),
        )
