# services/match_service.py
from __future__ import annotations

import logging
import random
from datetime import datetime, timezone
from typing import Any, Callable, Optional

from domain.enums import MatchPhase, MatchStatus
from domain.models import Match, ScoreResult, SeriesState, utc_now
from repositories.match_repo import MatchRepo
from repositories.season_repo import SeasonRepo
from services.errors import InvalidStateError, NotFoundError, ValidationError
from services.playoff_service import PlayoffService
from services.season_locks import SeasonLocks

log = logging.getLogger(__name__)

MAX_LOCATION = 128


def parse_score(value: Any, label: str = "Score") -> Optional[int]:
    """None passes through; anything else must be a non-negative whole number."""
    if value is None:
        return None
    if isinstance(value, bool):
        raise ValidationError(f"{label} must be a whole number.")
    if isinstance(value, int):
        n = value
    elif isinstance(value, float):
        if not value.is_integer():
            raise ValidationError(f"{label} must be a whole number.")
        n = int(value)
    else:
        text = str(value).strip()
        if not text:
            return None
        try:
            n = int(text)
        except ValueError as e:
            raise ValidationError(f"{label} must be a whole number.") from e
    if n < 0:
        raise ValidationError(f"{label} cannot be negative.")
    return n


def parse_schedule_time(value: Any) -> Optional[datetime]:
    """
    Accepts a datetime or an ISO-8601 string (trailing 'Z' allowed).
    Aware values are converted to naive UTC.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        dt = value
    else:
        text = str(value).strip()
        if not text:
            return None
        if text.endswith(("Z", "z")):
            text = text[:-1] + "+00:00"
        try:
            dt = datetime.fromisoformat(text)
        except ValueError as e:
            raise ValidationError(f"Invalid date/time: {value!r}. Use YYYY-MM-DD HH:MM.") from e
    if dt.tzinfo is not None:
        dt = dt.astimezone(timezone.utc).replace(tzinfo=None)
    return dt


def resolve_result(
    match: Match,
    *,
    winner_team_name: Optional[str] = None,
    team_a_score: Any = None,
    team_b_score: Any = None,
) -> tuple[int, int, int, int]:
    """
    Returns (team_a_score, team_b_score, winner_team_id, loser_team_id).

    Either a winner name (recorded 1-0) or both scores. When both are given
    the named winner must be the higher scorer.
    """
    a = parse_score(team_a_score, f"{match.team_a_name} score")
    b = parse_score(team_b_score, f"{match.team_b_name} score")
    if (a is None) != (b is None):
        raise ValidationError("Enter a score for both teams.")

    name = (winner_team_name or "").strip()
    named: Optional[int] = None
    if name:
        if name == match.team_a_name:
            named = match.team_a_id
        elif name == match.team_b_name:
            named = match.team_b_id
        else:
            raise ValidationError("Invalid team selected.")

    if a is None or b is None:
        if named is None:
            raise ValidationError("Please select a winner.")
        a, b = (1, 0) if named == match.team_a_id else (0, 1)

    if a == b:
        raise ValidationError("Scores cannot be tied. One team must win.")

    winner, loser = (match.team_a_id, match.team_b_id) if a > b else (match.team_b_id, match.team_a_id)
    if named is not None and named != winner:
        raise ValidationError("Winner must have the higher score.")
    return a, b, winner, loser


class MatchService:
    """
    Result recording and match scheduling.

    Every write runs under the season lock and triggers the downstream
    transitions: playoff seeding after a regular result, series progression
    after a playoff result.
    """

    def __init__(
        self,
        season_repo: SeasonRepo,
        match_repo: MatchRepo,
        playoffs: PlayoffService,
        *,
        locks: SeasonLocks,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._seasons = season_repo
        self._repo = match_repo
        self._playoffs = playoffs
        self._locks = locks
        self._clock = clock

    async def get_match(self, *, match_id: int) -> Match:
        row = await self._repo.get_match(match_id=match_id)
        if not row:
            raise NotFoundError(f"Match not found: {match_id}")
        return Match.from_row(row)

    # -------------------------
    # Scores
    # -------------------------

    async def submit_match_score(
        self,
        *,
        match_id: int,
        winner_team_name: Optional[str] = None,
        team_a_score: Any = None,
        team_b_score: Any = None,
    ) -> ScoreResult:
        first = await self.get_match(match_id=match_id)

        async with self._locks.hold(first.season_id):
            match = await self.get_match(match_id=match_id)
            if match.is_complete:
                raise InvalidStateError(f"Match {match.code} already has a result.")

            series: Optional[SeriesState] = None
            if match.phase == MatchPhase.PLAYOFFS:
                series = await self._playoffs.get_series_state(
                    season_id=match.season_id,
                    series_key=str(match.series_key),
                )
                if series is not None and series.is_decided:
                    raise ValidationError("Series is already decided.")
                if series is not None:
                    await self._playoffs.check_feeders(series)

            a, b, winner, loser = resolve_result(
                match,
                winner_team_name=winner_team_name,
                team_a_score=team_a_score,
                team_b_score=team_b_score,
            )
            await self._record(match, a, b, winner, loser)
            match = await self.get_match(match_id=match_id)

            if match.phase == MatchPhase.REGULAR:
                seeded = await self._playoffs.maybe_seed_playoffs(season_id=match.season_id)
                return ScoreResult(match=match, playoffs_seeded=seeded)

            series = await self._playoffs.get_series_state(season_id=match.season_id, series_key=str(match.series_key))
            if series is not None:
                await self._playoffs.open_next_game(series)
            progression = await self._playoffs.update_playoff_progression(season_id=match.season_id)
            series = await self._playoffs.get_series_state(season_id=match.season_id, series_key=str(match.series_key))
            return ScoreResult(match=match, series=series, progression=progression)

    async def _record(self, match: Match, a: int, b: int, winner: int, loser: int) -> None:
        updated = await self._repo.complete_match(
            match_id=match.match_id,
            team_a_score=a,
            team_b_score=b,
            winner_team_id=winner,
            loser_team_id=loser,
            completed_at=self._clock(),
        )
        if updated == 0:
            raise InvalidStateError(f"Match {match.code} already has a result.")
        log.info(
            "Recorded %s (match_id=%s) season %s: %s %d - %d %s",
            match.code,
            match.match_id,
            match.season_id,
            match.team_a_name,
            a,
            b,
            match.team_b_name,
        )

    async def submit_series_score(
        self,
        *,
        season_id: int,
        series_key: str,
        team_a_wins: Any,
        team_b_wins: Any,
    ) -> ScoreResult:
        """
        Records a final series score in one go. Missing games are written as
        1-0 results, the loser's wins first, so the series is only decided by
        the last game.
        """
        async with self._locks.hold(season_id):
            if not await self._seasons.get_season(season_id=season_id):
                raise NotFoundError(f"Season not found: {season_id}")

            series = await self._playoffs.get_series_state(season_id=season_id, series_key=series_key)
            if series is None:
                raise NotFoundError(f"Series not found: {series_key}")

            a = parse_score(team_a_wins, f"{series.team_a_name} wins")
            b = parse_score(team_b_wins, f"{series.team_b_name} wins")
            if a is None or b is None:
                raise ValidationError("Enter the games won by both teams.")
            if a == b:
                raise ValidationError("Series cannot be tied. One team must win.")
            if series.is_decided:
                raise ValidationError("Series is already decided.")
            await self._playoffs.check_feeders(series)

            need = series.needed_wins
            if max(a, b) != need:
                raise ValidationError(f"A best-of-{series.best_of} series ends when one team reaches {need} wins.")
            if a < series.team_a_wins or b < series.team_b_wins:
                raise ValidationError(
                    f"Series already stands at {series.score_line}; the final score cannot be lower."
                )

            if a > b:
                winner, loser = series.team_a_id, series.team_b_id
                winner_games, loser_games = a - series.team_a_wins, b - series.team_b_wins
            else:
                winner, loser = series.team_b_id, series.team_a_id
                winner_games, loser_games = b - series.team_b_wins, a - series.team_a_wins

            last: Optional[Match] = None
            for game_winner in [loser] * loser_games + [winner] * winner_games:
                series = await self._playoffs.get_series_state(season_id=season_id, series_key=series_key)
                await self._playoffs.open_next_game(series)
                series = await self._playoffs.get_series_state(season_id=season_id, series_key=series_key)
                game = series.open_games[0]

                if game_winner == game.team_a_id:
                    score_a, score_b, game_loser = 1, 0, game.team_b_id
                else:
                    score_a, score_b, game_loser = 0, 1, game.team_a_id
                await self._record(game, score_a, score_b, game_winner, game_loser)
                last = await self.get_match(match_id=game.match_id)

            progression = await self._playoffs.update_playoff_progression(season_id=season_id)
            series = await self._playoffs.get_series_state(season_id=season_id, series_key=series_key)
            log.info("Series %s in season %s finished %s", series_key, season_id, series.score_line)
            return ScoreResult(match=last, series=series, progression=progression)

    # -------------------------
    # Scheduling
    # -------------------------

    async def update_match_schedule(
        self,
        *,
        match_id: int,
        scheduled_at: Any,
        location: Optional[str] = None,
    ) -> Match:
        """
        scheduled_at=None clears the time. location=None keeps the stored
        location; an empty string clears it.
        """
        first = await self.get_match(match_id=match_id)
        when = parse_schedule_time(scheduled_at)

        async with self._locks.hold(first.season_id):
            match = await self.get_match(match_id=match_id)

            where = match.location
            if location is not None:
                where = location.strip() or None
                if where and len(where) > MAX_LOCATION:
                    raise ValidationError(f"Location must be at most {MAX_LOCATION} characters.")

            if match.is_complete:
                status = MatchStatus.COMPLETE
            elif when is not None or where:
                status = MatchStatus.SCHEDULED
            else:
                status = MatchStatus.TBD

            await self._repo.update_schedule(
                match_id=match_id,
                scheduled_at=when,
                location=where,
                status=status.value,
            )
            log.info("Scheduled %s (match_id=%s): %s @ %s", match.code, match_id, when, where or "-")
            return await self.get_match(match_id=match_id)

    # -------------------------
    # Dev helpers
    # -------------------------

    async def fill_random_results(self, *, season_id: int, rng: Optional[random.Random] = None) -> int:
        """Random winner for every open regular match. Returns how many were filled."""
        rng = rng or random.Random()
        filled = 0
        async with self._locks.hold(season_id):
            if not await self._seasons.get_season(season_id=season_id):
                raise NotFoundError(f"Season not found: {season_id}")

            rows = await self._repo.list_matches(season_id=season_id, phase=MatchPhase.REGULAR.value)
            for m in (Match.from_row(r) for r in rows):
                if m.is_complete:
                    continue
                await self.submit_match_score(
                    match_id=m.match_id,
                    winner_team_name=rng.choice([m.team_a_name, m.team_b_name]),
                )
                filled += 1

        log.info("Filled %d random results in season %s", filled, season_id)
        return filled
