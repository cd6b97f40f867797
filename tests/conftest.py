"""Shared fixtures: a fully wired league over in-memory repositories."""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import Callable, Optional

import pytest

from domain.enums import CompletionRule, MatchPhase
from domain.models import Match, Season, Team
from services.match_service import MatchService
from services.playoff_service import PlayoffService
from services.schedule_service import ScheduleService
from services.season_locks import SeasonLocks
from services.season_service import SeasonService
from services.standings_service import StandingsService
from services.team_service import TeamService
from tests.fakes import FakeMatchRepo, FakePlayerRepo, FakeSeasonRepo, FakeTeamRepo


class TickClock:
    """Deterministic clock: every call is one minute after the previous one."""

    def __init__(self, start: datetime) -> None:
        self._now = start

    def __call__(self) -> datetime:
        current = self._now
        self._now = self._now + timedelta(minutes=1)
        return current


class League:
    """All league services wired the way main.py wires them."""

    def __init__(
        self,
        *,
        regular_weeks: int = 4,
        completion_rule: CompletionRule = CompletionRule.ALL_MATCHES,
        start: datetime = datetime(2026, 3, 10, 19, 0),
    ) -> None:
        self.clock = TickClock(start)
        self.locks = SeasonLocks()

        self.season_repo = FakeSeasonRepo()
        self.player_repo = FakePlayerRepo()
        self.team_repo = FakeTeamRepo()
        self.match_repo = FakeMatchRepo()

        self.seasons = SeasonService(self.season_repo, regular_weeks=regular_weeks, clock=self.clock)
        self.teams = TeamService(self.season_repo, self.team_repo, self.player_repo, locks=self.locks)
        self.schedule = ScheduleService(self.season_repo, self.team_repo, self.match_repo, locks=self.locks)
        self.standings = StandingsService(self.team_repo, self.match_repo)
        self.playoffs = PlayoffService(
            self.season_repo,
            self.team_repo,
            self.match_repo,
            self.standings,
            locks=self.locks,
            completion_rule=completion_rule,
        )
        self.matches = MatchService(
            self.season_repo,
            self.match_repo,
            self.playoffs,
            locks=self.locks,
            clock=self.clock,
        )

    async def season(self) -> Season:
        return await self.seasons.get_or_create_current_season()

    async def refresh(self, season: Season) -> Season:
        return await self.seasons.get_season(season_id=season.season_id)

    async def add_teams(self, season: Season, count: int) -> list[Team]:
        """Teams named "Team 01".."Team NN", players "P01a"/"P01b" and so on."""
        out = []
        for i in range(1, count + 1):
            a = await self.player_repo.create_player(name=f"P{i:02d}a")
            b = await self.player_repo.create_player(name=f"P{i:02d}b")
            out.append(
                await self.teams.create_team(
                    season_id=season.season_id,
                    player_a_id=a,
                    player_b_id=b,
                    requested_name=f"Team {i:02d}",
                )
            )
        return out

    async def start_regular_season(self, team_count: int = 8) -> tuple[Season, list[Team]]:
        season = await self.season()
        teams = await self.add_teams(season, team_count)
        await self.schedule.generate_regular_schedule(season_id=season.season_id)
        return await self.refresh(season), teams

    async def open_regular_matches(self, season: Season) -> list[Match]:
        rows = await self.match_repo.list_matches(season_id=season.season_id, phase=MatchPhase.REGULAR.value)
        return [m for m in (Match.from_row(r) for r in rows) if not m.is_complete]

    async def play_regular(
        self,
        season: Season,
        pick_winner: Optional[Callable[[Match], str]] = None,
        limit: Optional[int] = None,
    ) -> int:
        """Plays open regular matches in schedule order; default winner is the lower team name."""
        pick = pick_winner or (lambda m: min(m.team_a_name, m.team_b_name))
        played = 0
        for m in await self.open_regular_matches(season):
            if limit is not None and played >= limit:
                break
            await self.matches.submit_match_score(match_id=m.match_id, winner_team_name=pick(m))
            played += 1
        return played

    async def win_series(self, season: Season, series_key: str, winner_name: str) -> None:
        """Plays games of one series until winner_name has taken it."""
        while True:
            state = await self.playoffs.get_series_state(season_id=season.season_id, series_key=series_key)
            if state.is_decided:
                return
            game = state.open_games[0]
            await self.matches.submit_match_score(match_id=game.match_id, winner_team_name=winner_name)


@pytest.fixture
def league() -> League:
    return League()


@pytest.fixture
def make_league() -> Callable[..., League]:
    return League
