"""In-memory stand-ins for the aiomysql repositories.

Same async method names and keyword arguments as repositories/*, returning
plain dict rows so services run unchanged against them.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Mapping, Optional, Sequence

import aiomysql


class FakeSeasonRepo:
    def __init__(self) -> None:
        self.rows: dict[int, dict[str, Any]] = {}
        self._next = 1

    async def get_season(self, *, season_id: int) -> Optional[dict[str, Any]]:
        row = self.rows.get(int(season_id))
        return dict(row) if row else None

    async def find_season(self, *, year: int, period: str) -> Optional[dict[str, Any]]:
        for row in self.rows.values():
            if row["year"] == int(year) and row["period"] == period:
                return dict(row)
        return None

    async def list_seasons(self) -> list[dict[str, Any]]:
        rows = sorted(self.rows.values(), key=lambda r: (r["year"], r["period"]), reverse=True)
        return [dict(r) for r in rows]

    async def create_season(
        self,
        *,
        year: int,
        period: str,
        status: str,
        regular_weeks: int,
        regular_rounds: int,
        season_name: str | None = None,
        start_date: Any = None,
        days_between_weeks: int | None = None,
    ) -> int:
        if any(r["year"] == int(year) and r["period"] == period for r in self.rows.values()):
            raise aiomysql.IntegrityError(1062, "Duplicate entry for key 'uq_season_descriptor'")
        season_id = self._next
        self._next += 1
        self.rows[season_id] = {
            "season_id": season_id,
            "year": int(year),
            "period": period,
            "status": status,
            "regular_weeks": regular_weeks,
            "regular_rounds": regular_rounds,
            "playoffs_generated": 0,
            "season_name": season_name,
            "start_date": start_date,
            "days_between_weeks": days_between_weeks,
        }
        return season_id

    async def set_status(self, *, season_id: int, status: str, expected: Sequence[str] | None = None) -> int:
        row = self.rows.get(int(season_id))
        if not row:
            return 0
        if expected and row["status"] not in expected:
            return 0
        row["status"] = status
        return 1

    async def mark_playoffs_generated(self, *, season_id: int, status: str) -> int:
        row = self.rows.get(int(season_id))
        if not row or row["playoffs_generated"]:
            return 0
        row["playoffs_generated"] = 1
        row["status"] = status
        return 1


class FakePlayerRepo:
    def __init__(self) -> None:
        self.rows: dict[int, dict[str, Any]] = {}
        self._next = 1

    async def get_player(self, *, player_id: int) -> Optional[dict[str, Any]]:
        row = self.rows.get(int(player_id))
        return dict(row) if row else None

    async def create_player(self, *, name: str, rating: int = 1000, discord_user_id: int | None = None) -> int:
        player_id = self._next
        self._next += 1
        self.rows[player_id] = {
            "player_id": player_id,
            "name": name,
            "rating": rating,
            "discord_user_id": discord_user_id,
        }
        return player_id

    async def ensure_discord_player(self, *, discord_user_id: int, display_name: str) -> int:
        for row in self.rows.values():
            if row["discord_user_id"] == int(discord_user_id):
                row["name"] = display_name
                return row["player_id"]
        return await self.create_player(name=display_name, discord_user_id=int(discord_user_id))


class FakeTeamRepo:
    def __init__(self) -> None:
        self.rows: dict[int, dict[str, Any]] = {}
        self._next = 1

    async def create_team(
        self,
        *,
        season_id: int,
        name: str,
        player_ids: Sequence[int],
        player_names: Sequence[str],
    ) -> int:
        team_id = self._next
        self._next += 1
        self.rows[team_id] = {
            "team_id": team_id,
            "season_id": int(season_id),
            "name": name,
            "player_a_id": int(player_ids[0]),
            "player_b_id": int(player_ids[1]),
            "player_a_name": player_names[0],
            "player_b_name": player_names[1],
        }
        return team_id

    async def get_team(self, *, team_id: int) -> Optional[dict[str, Any]]:
        row = self.rows.get(int(team_id))
        return dict(row) if row else None

    async def get_team_by_name(self, *, season_id: int, name: str) -> Optional[dict[str, Any]]:
        for row in self.rows.values():
            if row["season_id"] == int(season_id) and row["name"] == name:
                return dict(row)
        return None

    async def find_team_with_players(self, *, season_id: int, player_ids: Sequence[int]) -> Optional[dict[str, Any]]:
        ids = {int(p) for p in player_ids}
        for row in self.rows.values():
            if row["season_id"] == int(season_id) and ({row["player_a_id"], row["player_b_id"]} & ids):
                return dict(row)
        return None

    async def list_teams(self, *, season_id: int) -> list[dict[str, Any]]:
        rows = [r for r in self.rows.values() if r["season_id"] == int(season_id)]
        return [dict(r) for r in sorted(rows, key=lambda r: (r["name"], r["team_id"]))]

    async def count_teams(self, *, season_id: int) -> int:
        return sum(1 for r in self.rows.values() if r["season_id"] == int(season_id))


_MATCH_DEFAULTS: dict[str, Any] = {
    "week": None,
    "round_no": None,
    "status": "TBD",
    "scheduled_at": None,
    "location": None,
    "team_a_score": None,
    "team_b_score": None,
    "winner_team_id": None,
    "loser_team_id": None,
    "completed_at": None,
    "playoff_round": None,
    "series_key": None,
    "best_of": None,
    "game_number": None,
}


class FakeMatchRepo:
    def __init__(self) -> None:
        self.rows: dict[int, dict[str, Any]] = {}
        self._next = 1

    def _select(
        self,
        *,
        season_id: int,
        phase: str | None = None,
        status: str | None = None,
        week: int | None = None,
        team_id: int | None = None,
        series_key: str | None = None,
    ) -> list[dict[str, Any]]:
        out = []
        for r in self.rows.values():
            if r["season_id"] != int(season_id):
                continue
            if phase is not None and r["phase"] != phase:
                continue
            if status is not None and r["status"] != status:
                continue
            if week is not None and r["week"] != int(week):
                continue
            if team_id is not None and int(team_id) not in (r["team_a_id"], r["team_b_id"]):
                continue
            if series_key is not None and r["series_key"] != series_key:
                continue
            out.append(r)
        return out

    async def get_match(self, *, match_id: int) -> Optional[dict[str, Any]]:
        row = self.rows.get(int(match_id))
        return dict(row) if row else None

    async def list_matches(self, **filters: Any) -> list[dict[str, Any]]:
        rows = self._select(**filters)
        rows.sort(
            key=lambda r: (
                r["round_no"] is None,
                r["round_no"] or 0,
                r["series_key"] or "",
                r["game_number"] or 0,
                r["match_id"],
            )
        )
        return [dict(r) for r in rows]

    async def count_matches(self, *, season_id: int, phase: str | None = None, status: str | None = None) -> int:
        return len(self._select(season_id=season_id, phase=phase, status=status))

    async def create_match(self, **fields: Any) -> int:
        key = fields.get("series_key")
        if key is not None:
            for r in self.rows.values():
                if (r["season_id"], r["series_key"], r["game_number"]) == (
                    fields["season_id"],
                    key,
                    fields.get("game_number"),
                ):
                    raise aiomysql.IntegrityError(1062, "Duplicate entry for key 'uq_series_game'")
        match_id = self._next
        self._next += 1
        row = dict(_MATCH_DEFAULTS)
        row.update(fields)
        row["status"] = row.get("status") or "TBD"
        row["match_id"] = match_id
        self.rows[match_id] = row
        return match_id

    async def insert_matches(self, rows: Sequence[Mapping[str, Any]]) -> int:
        for r in rows:
            await self.create_match(**dict(r))
        return len(rows)

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
        row = self.rows.get(int(match_id))
        if not row or row["status"] == "COMPLETE":
            return 0
        row.update(
            status="COMPLETE",
            team_a_score=team_a_score,
            team_b_score=team_b_score,
            winner_team_id=winner_team_id,
            loser_team_id=loser_team_id,
            completed_at=completed_at,
            scheduled_at=row["scheduled_at"] or completed_at,
        )
        return 1

    async def update_schedule(self, *, match_id: int, scheduled_at: Any, location: Any, status: str) -> int:
        row = self.rows.get(int(match_id))
        if not row:
            return 0
        row.update(scheduled_at=scheduled_at, location=location, status=status)
        return 1

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
        n = 0
        for r in self._select(season_id=season_id, phase="PLAYOFFS", series_key=series_key):
            r.update(
                team_a_id=team_a_id,
                team_b_id=team_b_id,
                team_a_name=team_a_name,
                team_b_name=team_b_name,
                team_a_score=None,
                team_b_score=None,
                winner_team_id=None,
                loser_team_id=None,
                completed_at=None,
                status="SCHEDULED" if (r["scheduled_at"] is not None or r["location"] is not None) else "TBD",
            )
            n += 1
        return n
