# services/playoff_service.py
from __future__ import annotations

import logging
from typing import Optional

from domain.enums import (
    CompletionRule,
    MatchPhase,
    MatchStatus,
    PlayoffRound,
    SeasonStatus,
    SeriesTransition,
)
from domain.models import (
    BEST_OF,
    FINAL_SERIES_KEY,
    NEXT_ROUND_FEEDS,
    PLAYOFF_TEAMS,
    QUARTERFINAL_SEEDS,
    Match,
    ProgressionResult,
    Season,
    SeedResult,
    SeriesState,
    plan_series_transition,
)
from repositories.match_repo import MatchRepo
from repositories.season_repo import SeasonRepo
from repositories.team_repo import TeamRepo
from services.errors import InvalidStateError, NotFoundError, ValidationError
from services.season_locks import SeasonLocks
from services.standings_service import StandingsService

log = logging.getLogger(__name__)

SERIES_ORDER: tuple[str, ...] = tuple(k for k, _, _ in QUARTERFINAL_SEEDS) + tuple(k for k, _, _, _ in NEXT_ROUND_FEEDS)

_FEEDERS: dict[str, tuple[str, str]] = {key: (left, right) for key, _, left, right in NEXT_ROUND_FEEDS}


def downstream_series(series_key: str) -> list[str]:
    """Every later-round series fed (directly or not) by series_key, nearest first."""
    out: list[str] = []
    for key, _, left, right in NEXT_ROUND_FEEDS:
        if series_key in (left, right):
            out.append(key)
            out.extend(downstream_series(key))
    return out


class PlayoffService:
    """
    8-team single elimination.

    Series are stored as one league_match row per game sharing series_key.
    Game 1 exists from the moment the series is created; later games are
    opened one at a time while the series is undecided.
    """

    def __init__(
        self,
        season_repo: SeasonRepo,
        team_repo: TeamRepo,
        match_repo: MatchRepo,
        standings: StandingsService,
        *,
        locks: SeasonLocks,
        completion_rule: CompletionRule = CompletionRule.ALL_MATCHES,
    ) -> None:
        self._seasons = season_repo
        self._teams = team_repo
        self._matches = match_repo
        self._standings = standings
        self._locks = locks
        self._completion_rule = CompletionRule(completion_rule)

    # -------------------------
    # Regular season completion
    # -------------------------

    async def is_regular_season_complete(self, *, season_id: int) -> bool:
        row = await self._seasons.get_season(season_id=season_id)
        if not row:
            return False
        season = Season.from_row(row)

        team_count = await self._teams.count_teams(season_id=season_id)
        if team_count < 2:
            return False

        completed = await self._matches.count_matches(
            season_id=season_id,
            phase=MatchPhase.REGULAR.value,
            status=MatchStatus.COMPLETE.value,
        )

        if self._completion_rule == CompletionRule.ROUNDS:
            return completed >= season.regular_rounds * (team_count // 2)

        total = await self._matches.count_matches(season_id=season_id, phase=MatchPhase.REGULAR.value)
        return total > 0 and completed >= total

    async def maybe_seed_playoffs(self, *, season_id: int) -> bool:
        """
        Called after every regular result. Seeds once the regular season is done;
        never raises for a bracket that cannot be filled.
        """
        async with self._locks.hold(season_id):
            row = await self._seasons.get_season(season_id=season_id)
            if not row:
                return False
            season = Season.from_row(row)
            if season.playoffs_generated or season.status != SeasonStatus.REGULAR:
                return False

            if not await self.is_regular_season_complete(season_id=season_id):
                return False

            team_count = await self._teams.count_teams(season_id=season_id)
            if team_count < PLAYOFF_TEAMS:
                log.warning(
                    "Season %s regular season complete but only %d teams; playoffs not seeded",
                    season_id,
                    team_count,
                )
                return False

            result = await self.seed_playoffs(season_id=season_id)
            return result.created

    # -------------------------
    # Seeding
    # -------------------------

    async def seed_playoffs(self, *, season_id: int) -> SeedResult:
        async with self._locks.hold(season_id):
            row = await self._seasons.get_season(season_id=season_id)
            if not row:
                raise NotFoundError(f"Season not found: {season_id}")
            season = Season.from_row(row)

            if season.playoffs_generated:
                return SeedResult(created=False, message="Playoffs already generated.")
            if season.status == SeasonStatus.SIGNUP:
                raise InvalidStateError("Regular season has not started yet.")

            standings = await self._standings.compute_standings(season_id=season_id)
            if len(standings) < PLAYOFF_TEAMS:
                raise ValidationError(f"At least {PLAYOFF_TEAMS} teams are required to seed the playoffs.")

            seeds = {s.rank: s for s in standings[:PLAYOFF_TEAMS]}
            for key, high, low in QUARTERFINAL_SEEDS:
                if await self._load_series(season_id, key):
                    continue
                a, b = seeds[high], seeds[low]
                await self._create_series(
                    season_id=season_id,
                    series_key=key,
                    playoff_round=PlayoffRound.QF,
                    team_a=(a.team_id, a.team_name),
                    team_b=(b.team_id, b.team_name),
                )

            await self._seasons.mark_playoffs_generated(season_id=season_id, status=SeasonStatus.PLAYOFFS.value)
            log.info(
                "Seeded playoffs for season %s: %s",
                season_id,
                ", ".join(f"{s.rank}. {s.team_name}" for s in standings[:PLAYOFF_TEAMS]),
            )
            return SeedResult(created=True, message="Playoffs seeded.")

    # -------------------------
    # Series
    # -------------------------

    async def _load_series(self, season_id: int, series_key: str) -> Optional[SeriesState]:
        rows = await self._matches.list_matches(
            season_id=season_id,
            phase=MatchPhase.PLAYOFFS.value,
            series_key=series_key,
        )
        if not rows:
            return None
        return SeriesState.from_games([Match.from_row(r) for r in rows])

    async def _create_series(
        self,
        *,
        season_id: int,
        series_key: str,
        playoff_round: PlayoffRound,
        team_a: tuple[int, str],
        team_b: tuple[int, str],
    ) -> int:
        match_id = await self._matches.create_match(
            season_id=season_id,
            phase=MatchPhase.PLAYOFFS.value,
            team_a_id=team_a[0],
            team_b_id=team_b[0],
            team_a_name=team_a[1],
            team_b_name=team_b[1],
            status=MatchStatus.TBD.value,
            playoff_round=playoff_round.value,
            series_key=series_key,
            best_of=BEST_OF[playoff_round],
            game_number=1,
        )
        log.info("Created series %s for season %s: %s vs %s", series_key, season_id, team_a[1], team_b[1])
        return match_id

    async def open_next_game(self, series: SeriesState) -> Optional[int]:
        """
        Adds the next game row of an undecided series when none is open.
        Returns the new match id, or None when nothing was needed.
        """
        if series.is_decided or series.open_games or series.last_game_number >= series.best_of:
            return None
        return await self._matches.create_match(
            season_id=series.season_id,
            phase=MatchPhase.PLAYOFFS.value,
            team_a_id=series.team_a_id,
            team_b_id=series.team_b_id,
            team_a_name=series.team_a_name,
            team_b_name=series.team_b_name,
            status=MatchStatus.TBD.value,
            playoff_round=series.playoff_round.value if series.playoff_round else None,
            series_key=series.series_key,
            best_of=series.best_of,
            game_number=series.last_game_number + 1,
        )

    async def check_feeders(self, series: SeriesState) -> None:
        """
        A later-round series is playable only while both feeders are decided
        and their winners are the two teams it holds.
        """
        feeders = _FEEDERS.get(series.series_key)
        if feeders is None:
            return
        winners = []
        for key in feeders:
            feeder = await self._load_series(series.season_id, key)
            if feeder is None or not feeder.is_decided:
                raise InvalidStateError(f"Waiting on {key} to finish.")
            winners.append(feeder.winner_team_id)
        if tuple(winners) != (series.team_a_id, series.team_b_id):
            raise InvalidStateError(f"{series.series_key} is waiting for its teams to be updated.")

    async def get_series_state(self, *, season_id: int, series_key: str) -> Optional[SeriesState]:
        return await self._load_series(season_id, series_key)

    async def list_series(self, *, season_id: int) -> list[SeriesState]:
        rows = await self._matches.list_matches(season_id=season_id, phase=MatchPhase.PLAYOFFS.value)
        grouped: dict[str, list[Match]] = {}
        for r in rows:
            m = Match.from_row(r)
            grouped.setdefault(str(m.series_key), []).append(m)

        order = {k: i for i, k in enumerate(SERIES_ORDER)}
        keys = sorted(grouped, key=lambda k: (order.get(k, len(order)), k))
        return [SeriesState.from_games(grouped[k]) for k in keys]

    # -------------------------
    # Progression
    # -------------------------

    async def update_playoff_progression(self, *, season_id: int) -> ProgressionResult:
        async with self._locks.hold(season_id):
            row = await self._seasons.get_season(season_id=season_id)
            if not row:
                raise NotFoundError(f"Season not found: {season_id}")
            season = Season.from_row(row)
            if not season.playoffs_generated:
                return ProgressionResult(transitions={}, season_status=season.status)

            transitions: dict[str, SeriesTransition] = {}
            for key, playoff_round, left_key, right_key in NEXT_ROUND_FEEDS:
                left = await self._load_series(season_id, left_key)
                right = await self._load_series(season_id, right_key)
                existing = await self._load_series(season_id, key)

                step = plan_series_transition(left, right, existing)
                transitions[key] = step
                if step == SeriesTransition.NOOP:
                    continue

                # plan_series_transition only returns CREATE/RESET with both feeders decided
                team_a = (int(left.winner_team_id), str(left.winner_name))
                team_b = (int(right.winner_team_id), str(right.winner_name))

                if step == SeriesTransition.CREATE:
                    await self._create_series(
                        season_id=season_id,
                        series_key=key,
                        playoff_round=playoff_round,
                        team_a=team_a,
                        team_b=team_b,
                    )
                else:
                    await self._matches.reset_series(
                        season_id=season_id,
                        series_key=key,
                        team_a_id=team_a[0],
                        team_b_id=team_b[0],
                        team_a_name=team_a[1],
                        team_b_name=team_b[1],
                    )
                    log.info(
                        "Reset series %s for season %s: feeders now %s vs %s",
                        key,
                        season_id,
                        team_a[1],
                        team_b[1],
                    )

            final = await self._load_series(season_id, FINAL_SERIES_KEY)
            champion = final.winner_team_id if final else None

            status = season.status
            if champion is not None:
                if status != SeasonStatus.COMPLETE:
                    await self._seasons.set_status(
                        season_id=season_id,
                        status=SeasonStatus.COMPLETE.value,
                        expected=[SeasonStatus.PLAYOFFS.value],
                    )
                    status = SeasonStatus.COMPLETE
                    log.info("Season %s complete; champion %s", season_id, final.winner_name)
            elif status == SeasonStatus.COMPLETE:
                await self._seasons.set_status(
                    season_id=season_id,
                    status=SeasonStatus.PLAYOFFS.value,
                    expected=[SeasonStatus.COMPLETE.value],
                )
                status = SeasonStatus.PLAYOFFS
                log.warning("Season %s reopened: finals no longer decided", season_id)

            return ProgressionResult(transitions=transitions, champion_team_id=champion, season_status=status)

    async def reset_series(self, *, season_id: int, series_key: str) -> ProgressionResult:
        """
        Admin correction: clears the results of one series and of every series
        it feeds, keeping their teams, then re-runs progression.
        """
        async with self._locks.hold(season_id):
            row = await self._seasons.get_season(season_id=season_id)
            if not row:
                raise NotFoundError(f"Season not found: {season_id}")
            season = Season.from_row(row)
            if season.status not in (SeasonStatus.PLAYOFFS, SeasonStatus.COMPLETE):
                raise InvalidStateError("Playoffs are not running for this season.")

            series = await self._load_series(season_id, series_key)
            if series is None:
                raise NotFoundError(f"Series not found: {series_key}")

            for key in [series_key] + downstream_series(series_key):
                current = series if key == series_key else await self._load_series(season_id, key)
                if current is None:
                    continue
                await self._matches.reset_series(
                    season_id=season_id,
                    series_key=key,
                    team_a_id=current.team_a_id,
                    team_b_id=current.team_b_id,
                    team_a_name=current.team_a_name,
                    team_b_name=current.team_b_name,
                )
                log.info("Cleared results of series %s in season %s", key, season_id)

            return await self.update_playoff_progression(season_id=season_id)
