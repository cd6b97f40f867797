# services/standings_service.py
from __future__ import annotations

from functools import cmp_to_key
from typing import Iterable, Sequence

from domain.enums import MatchPhase, MatchStatus
from domain.models import Match, Standing, Team
from repositories.match_repo import MatchRepo
from repositories.team_repo import TeamRepo


def _regular_results(matches: Iterable[Match]) -> list[Match]:
    return [m for m in matches if m.phase == MatchPhase.REGULAR and m.is_complete and m.winner_team_id is not None]


def head_to_head_wins(matches: Iterable[Match], team_id: int, opponent_id: int) -> int:
    """Completed regular games team_id won against opponent_id."""
    pair = {int(team_id), int(opponent_id)}
    return sum(
        1
        for m in _regular_results(matches)
        if {m.team_a_id, m.team_b_id} == pair and m.winner_team_id == int(team_id)
    )


def _cmp_desc(a: float, b: float) -> int:
    if a > b:
        return -1
    if a < b:
        return 1
    return 0


def rank_teams(teams: Sequence[Team], matches: Iterable[Match]) -> list[Standing]:
    """
    Pure standings computation. Only COMPLETE regular-season matches count.

    Order: win pct, wins, head-to-head wins, point differential, points for,
    then team name ascending.
    """
    results = _regular_results(matches)

    table: dict[int, Standing] = {}
    for t in sorted(teams, key=lambda t: (t.name, t.team_id)):
        table[t.team_id] = Standing(team_id=t.team_id, team_name=t.name, players=tuple(t.player_names))

    for m in results:
        a = table.get(m.team_a_id)
        b = table.get(m.team_b_id)
        if a is None or b is None:
            continue
        a_pts = int(m.team_a_score or 0)
        b_pts = int(m.team_b_score or 0)

        a.points_for += a_pts
        a.points_against += b_pts
        b.points_for += b_pts
        b.points_against += a_pts

        if m.winner_team_id == a.team_id:
            a.wins += 1
            b.losses += 1
        else:
            b.wins += 1
            a.losses += 1

    for s in table.values():
        s.point_differential = s.points_for - s.points_against
        s.win_pct = (s.wins / s.played) if s.played else 0.0

    def compare(x: Standing, y: Standing) -> int:
        c = _cmp_desc(x.win_pct, y.win_pct)
        if c:
            return c
        c = _cmp_desc(x.wins, y.wins)
        if c:
            return c
        c = _cmp_desc(
            head_to_head_wins(results, x.team_id, y.team_id),
            head_to_head_wins(results, y.team_id, x.team_id),
        )
        if c:
            return c
        c = _cmp_desc(x.point_differential, y.point_differential)
        if c:
            return c
        c = _cmp_desc(x.points_for, y.points_for)
        if c:
            return c
        if x.team_name != y.team_name:
            return -1 if x.team_name < y.team_name else 1
        return _cmp_desc(y.team_id, x.team_id)

    ordered = sorted(table.values(), key=cmp_to_key(compare))
    for i, s in enumerate(ordered, start=1):
        s.rank = i
    return ordered


class StandingsService:
    """Read-only: standings are recomputed from stored results on every call."""

    def __init__(self, team_repo: TeamRepo, match_repo: MatchRepo) -> None:
        self._teams = team_repo
        self._matches = match_repo

    async def compute_standings(self, *, season_id: int) -> list[Standing]:
        teams = [Team.from_row(r) for r in await self._teams.list_teams(season_id=season_id)]
        rows = await self._matches.list_matches(
            season_id=season_id,
            phase=MatchPhase.REGULAR.value,
            status=MatchStatus.COMPLETE.value,
        )
        return rank_teams(teams, [Match.from_row(r) for r in rows])
