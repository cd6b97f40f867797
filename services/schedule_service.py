# services/schedule_service.py
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Optional, Sequence

from domain.enums import MatchPhase, MatchStatus, SeasonStatus
from domain.models import (
    ROUNDS_PER_WEEK,
    Match,
    ScheduleResult,
    Season,
    Team,
    week_for_round,
)
from repositories.match_repo import MatchRepo
from repositories.season_repo import SeasonRepo
from repositories.team_repo import TeamRepo
from services.errors import InvalidStateError, NotFoundError, ValidationError
from services.season_locks import SeasonLocks

log = logging.getLogger(__name__)

MIN_TEAMS = 4

_PLAYOFF_ROUND_ORDER = {"F": 1, "SF": 2, "QF": 3}


@dataclass(frozen=True)
class RoundPairings:
    round_no: int
    pairings: list[tuple[Team, Team]]

    @property
    def week(self) -> int:
        return week_for_round(self.round_no)


def build_round_pairings(teams: Sequence[Team], total_rounds: int) -> list[RoundPairings]:
    """
    Circle method: teams[0] stays put, the rest rotate one seat per round.
    Seat i plays seat n-1-i. Team A/B slots swap on odd rounds.

    Every team plays once per round; the first n-1 rounds never repeat a pairing.
    Rounds past n-1 cycle through the same pairings again.
    """
    n = len(teams)
    if n < 2 or n % 2 != 0:
        raise ValidationError("An even number of teams is required to generate the schedule.")

    fixed = teams[0]
    rest = list(teams[1:])
    m = len(rest)

    rounds: list[RoundPairings] = []
    for r in range(int(total_rounds)):
        k = r % m
        seats = [fixed] + rest[m - k:] + rest[: m - k]

        pairs: list[tuple[Team, Team]] = []
        for i in range(n // 2):
            a, b = seats[i], seats[n - 1 - i]
            if r % 2 == 1:
                a, b = b, a
            pairs.append((a, b))
        rounds.append(RoundPairings(round_no=r + 1, pairings=pairs))

    return rounds


class ScheduleService:
    """
    Regular-season schedule: generation (once, at the end of signup) plus
    the read paths used to browse weeks, playoff games and history.
    """

    def __init__(
        self,
        season_repo: SeasonRepo,
        team_repo: TeamRepo,
        match_repo: MatchRepo,
        *,
        locks: SeasonLocks,
    ) -> None:
        self._seasons = season_repo
        self._teams = team_repo
        self._matches = match_repo
        self._locks = locks

    # -------------------------
    # Generation
    # -------------------------

    async def generate_regular_schedule(self, *, season_id: int) -> ScheduleResult:
        async with self._locks.hold(season_id):
            row = await self._seasons.get_season(season_id=season_id)
            if not row:
                raise NotFoundError(f"Season not found: {season_id}")
            season = Season.from_row(row)

            existing = await self._matches.count_matches(season_id=season_id, phase=MatchPhase.REGULAR.value)
            if existing > 0:
                return ScheduleResult(created=0, message="Regular season schedule already exists.")

            if season.status != SeasonStatus.SIGNUP:
                raise InvalidStateError("Regular season has already started for this season.")

            teams = [Team.from_row(t) for t in await self._teams.list_teams(season_id=season_id)]
            if len(teams) < MIN_TEAMS:
                raise ValidationError(f"At least {MIN_TEAMS} teams are required before generating the regular season.")
            if len(teams) % 2 != 0:
                raise ValidationError("Team count must be even before generating the schedule.")

            rounds = build_round_pairings(teams, season.regular_rounds)
            rows: list[dict[str, Any]] = []
            for rnd in rounds:
                for team_a, team_b in rnd.pairings:
                    rows.append(
                        {
                            "season_id": season_id,
                            "phase": MatchPhase.REGULAR.value,
                            "week": rnd.week,
                            "round_no": rnd.round_no,
                            "team_a_id": team_a.team_id,
                            "team_b_id": team_b.team_id,
                            "team_a_name": team_a.name,
                            "team_b_name": team_b.name,
                            "status": MatchStatus.TBD.value,
                        }
                    )

            await self._matches.insert_matches(rows)
            moved = await self._seasons.set_status(
                season_id=season_id,
                status=SeasonStatus.REGULAR.value,
                expected=[SeasonStatus.SIGNUP.value],
            )
            if moved == 0:
                log.warning("Season %s left SIGNUP while its schedule was being generated", season_id)

            log.info(
                "Generated regular schedule for season %s: %d teams, %d rounds, %d matches",
                season_id,
                len(teams),
                len(rounds),
                len(rows),
            )
            return ScheduleResult(created=len(rows), message="Regular season schedule generated.")

    # -------------------------
    # Browsing
    # -------------------------

    async def current_week(self, *, season: Season) -> int:
        """
        First week that still has unfinished rounds, capped at the last regular week.
        """
        team_count = await self._teams.count_teams(season_id=season.season_id)
        per_round = team_count // 2 if team_count >= 2 else 1
        completed = await self._matches.count_matches(
            season_id=season.season_id,
            phase=MatchPhase.REGULAR.value,
            status=MatchStatus.COMPLETE.value,
        )
        rounds_finished = completed // per_round
        return min(season.regular_weeks, rounds_finished // ROUNDS_PER_WEEK + 1)

    async def list_week_matches(self, *, season_id: int, week: int, team_id: Optional[int] = None) -> list[Match]:
        rows = await self._matches.list_matches(
            season_id=season_id,
            phase=MatchPhase.REGULAR.value,
            week=week,
            team_id=team_id,
        )
        return [Match.from_row(r) for r in rows]

    async def list_regular_matches(self, *, season_id: int, team_id: Optional[int] = None) -> list[Match]:
        rows = await self._matches.list_matches(season_id=season_id, phase=MatchPhase.REGULAR.value, team_id=team_id)
        return [Match.from_row(r) for r in rows]

    async def list_playoff_games(self, *, season_id: int, team_id: Optional[int] = None) -> list[Match]:
        """
        Finals first, then semis, then quarters; open games ahead of finished ones.
        """
        rows = await self._matches.list_matches(season_id=season_id, phase=MatchPhase.PLAYOFFS.value, team_id=team_id)
        games = [Match.from_row(r) for r in rows]
        games.sort(
            key=lambda g: (
                _PLAYOFF_ROUND_ORDER.get(g.playoff_round.value if g.playoff_round else "", 99),
                1 if g.is_complete else 0,
                g.series_key or "",
                g.game_number or 0,
            )
        )
        return games

    async def list_match_history(self, *, season_id: int, team_id: Optional[int] = None) -> list[Match]:
        rows = await self._matches.list_matches(
            season_id=season_id,
            status=MatchStatus.COMPLETE.value,
            team_id=team_id,
        )
        history = [Match.from_row(r) for r in rows]
        history.sort(key=lambda m: (m.completed_at is not None, m.completed_at, m.match_id), reverse=True)
        return history
