# repositories/match_repo.py
from __future__ import annotations

from datetime import datetime
from typing import Any, Mapping, Sequence

from repositories.base_repo import BaseRepo

_MATCH_COLUMNS = """
    match_id, season_id, phase, week, round_no,
    team_a_id, team_b_id, team_a_name, team_b_name,
    status, scheduled_at, location,
    team_a_score, team_b_score, winner_team_id, loser_team_id, completed_at,
    playoff_round, series_key, best_of, game_number, created_at
"""

_INSERT_COLUMNS = (
    "season_id",
    "phase",
    "week",
    "round_no",
    "team_a_id",
    "team_b_id",
    "team_a_name",
    "team_b_name",
    "status",
    "playoff_round",
    "series_key",
    "best_of",
    "game_number",
)


def _insert_sql() -> str:
    cols = ", ".join(_INSERT_COLUMNS)
    marks = ", ".join(["%s"] * len(_INSERT_COLUMNS))
    return f"INSERT INTO league_match ({cols}) VALUES ({marks});"


def _insert_params(row: Mapping[str, Any]) -> tuple[Any, ...]:
    return tuple(row.get(c) if c != "status" else (row.get("status") or "TBD") for c in _INSERT_COLUMNS)


class MatchRepo(BaseRepo):
    async def get_match(self, *, match_id: int) -> Mapping[str, Any] | None:
        return await self.fetch_one(
            f"SELECT {_MATCH_COLUMNS} FROM league_match WHERE match_id=%s;",
            (match_id,),
        )

    async def list_matches(
        self,
        *,
        season_id: int,
        phase: str | None = None,
        status: str | None = None,
        week: int | None = None,
        team_id: int | None = None,
        series_key: str | None = None,
    ) -> list[Mapping[str, Any]]:
        where = ["season_id=%s"]
        params: list[Any] = [season_id]
        if phase is not None:
            where.append("phase=%s")
            params.append(phase)
        if status is not None:
            where.append("status=%s")
            params.append(status)
        if week is not None:
            where.append("week=%s")
            params.append(week)
        if team_id is not None:
            where.append("(team_a_id=%s OR team_b_id=%s)")
            params.extend([team_id, team_id])
        if series_key is not None:
            where.append("series_key=%s")
            params.append(series_key)

        return await self.fetch_all(
            f"""
            SELECT {_MATCH_COLUMNS}
            FROM league_match
            WHERE {" AND ".join(where)}
            ORDER BY round_no IS NULL, round_no, series_key, game_number, match_id;
            """,
            params,
        )

    async def count_matches(self, *, season_id: int, phase: str | None = None, status: str | None = None) -> int:
        where = ["season_id=%s"]
        params: list[Any] = [season_id]
        if phase is not None:
            where.append("phase=%s")
            params.append(phase)
        if status is not None:
            where.append("status=%s")
            params.append(status)
        return await self.fetch_count(
            f"SELECT COUNT(*) FROM league_match WHERE {' AND '.join(where)};",
            params,
        )

    async def create_match(self, **fields: Any) -> int:
        return await self.insert_returning_id(_insert_sql(), _insert_params(fields))

    async def insert_matches(self, rows: Sequence[Mapping[str, Any]]) -> int:
        return await self.execute_many(_insert_sql(), [_insert_params(r) for r in rows])

    async def complete_match(
        self,
        *,
        match_id: int,
        team_a_score: int,
        team_b_score: int,
        winner_team_id: int,
        loser_team_id: int,
        completed_at: datetime,
    ) -> int:
        """
        Records a result once. Returns 0 when the match was already COMPLETE.
        An unscheduled match gets scheduled_at = completed_at.
        """
        return await self.execute(
            """
            UPDATE league_match
            SET
              status='COMPLETE',
              team_a_score=%s,
              team_b_score=%s,
              winner_team_id=%s,
              loser_team_id=%s,
              completed_at=%s,
              scheduled_at=COALESCE(scheduled_at, %s),
              updated_at=NOW(6)
            WHERE match_id=%s
              AND status <> 'COMPLETE';
            """,
            (team_a_score, team_b_score, winner_team_id, loser_team_id, completed_at, completed_at, match_id),
        )

    async def update_schedule(
        self,
        *,
        match_id: int,
        scheduled_at: datetime | None,
        location: str | None,
        status: str,
    ) -> int:
        return await self.execute(
            """
            UPDATE league_match
            SET scheduled_at=%s, location=%s, status=%s, updated_at=NOW(6)
            WHERE match_id=%s;
            """,
            (scheduled_at, location, status, match_id),
        )

    async def reset_series(
        self,
        *,
        season_id: int,
        series_key: str,
        team_a_id: int,
        team_b_id: int,
        team_a_name: str,
        team_b_name: str,
    ) -> int:
        """
        Rewrites every game row of a playoff series in one statement:
        new teams, results cleared, status back to SCHEDULED/TBD.
        """
        return await self.execute(
            """
            UPDATE league_match
            SET
              team_a_id=%s,
              team_b_id=%s,
              team_a_name=%s,
              team_b_name=%s,
              team_a_score=NULL,
              team_b_score=NULL,
              winner_team_id=NULL,
              loser_team_id=NULL,
              completed_at=NULL,
              status=CASE
                WHEN scheduled_at IS NOT NULL OR location IS NOT NULL THEN 'SCHEDULED'
                ELSE 'TBD'
              END,
              updated_at=NOW(6)
            WHERE season_id=%s AND phase='PLAYOFFS' AND series_key=%s;
            """,
            (team_a_id, team_b_id, team_a_name, team_b_name, season_id, series_key),
        )
