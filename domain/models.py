# domain/models.py
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, timedelta, timezone
from typing import Any, Mapping, Optional, Sequence

from domain.enums import (
    MatchPhase,
    MatchStatus,
    PlayoffRound,
    SeasonPeriod,
    SeasonStatus,
    SeriesTransition,
)

DEFAULT_REGULAR_WEEKS = 4
ROUNDS_PER_WEEK = 2
TEAM_NAME_SEPARATOR = " | "

PLAYOFF_TEAMS = 8
FINAL_SERIES_KEY = "F-1"

BEST_OF: dict[PlayoffRound, int] = {
    PlayoffRound.QF: 3,
    PlayoffRound.SF: 3,
    PlayoffRound.F: 5,
}

# (series_key, higher seed, lower seed)
QUARTERFINAL_SEEDS: tuple[tuple[str, int, int], ...] = (
    ("QF-1", 1, 8),
    ("QF-2", 4, 5),
    ("QF-3", 3, 6),
    ("QF-4", 2, 7),
)

# (series_key, round, left feeder, right feeder)
NEXT_ROUND_FEEDS: tuple[tuple[str, PlayoffRound, str, str], ...] = (
    ("SF-1", PlayoffRound.SF, "QF-1", "QF-2"),
    ("SF-2", PlayoffRound.SF, "QF-3", "QF-4"),
    (FINAL_SERIES_KEY, PlayoffRound.F, "SF-1", "SF-2"),
)

_PERIOD_LABELS = {SeasonPeriod.A: "Spring", SeasonPeriod.B: "Fall"}


def utc_now() -> datetime:
    """Naive UTC timestamp (matches MySQL DATETIME columns)."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def needed_wins(best_of: int) -> int:
    return int(best_of) // 2 + 1


def week_for_round(round_no: int) -> int:
    return (int(round_no) + ROUNDS_PER_WEEK - 1) // ROUNDS_PER_WEEK


def _opt_int(v: Any) -> Optional[int]:
    return int(v) if v is not None else None


def _opt_str(v: Any) -> Optional[str]:
    return str(v) if v is not None else None


@dataclass(frozen=True)
class SeasonDescriptor:
    year: int
    period: SeasonPeriod

    @classmethod
    def from_datetime(cls, dt: datetime | date) -> "SeasonDescriptor":
        period = SeasonPeriod.A if dt.month < 7 else SeasonPeriod.B
        return cls(year=int(dt.year), period=period)


@dataclass(frozen=True)
class Season:
    season_id: int
    year: int
    period: SeasonPeriod
    status: SeasonStatus
    regular_weeks: int = DEFAULT_REGULAR_WEEKS
    regular_rounds: int = DEFAULT_REGULAR_WEEKS * ROUNDS_PER_WEEK
    playoffs_generated: bool = False
    season_name: Optional[str] = None
    start_date: Optional[date] = None
    days_between_weeks: Optional[int] = None

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "Season":
        weeks = int(row.get("regular_weeks") or DEFAULT_REGULAR_WEEKS)
        start = row.get("start_date")
        if isinstance(start, datetime):
            start = start.date()
        return cls(
            season_id=int(row["season_id"]),
            year=int(row["year"]),
            period=SeasonPeriod(str(row["period"])),
            status=SeasonStatus(str(row["status"])),
            regular_weeks=weeks,
            regular_rounds=int(row.get("regular_rounds") or weeks * ROUNDS_PER_WEEK),
            playoffs_generated=bool(row.get("playoffs_generated")),
            season_name=row.get("season_name") or None,
            start_date=start,
            days_between_weeks=_opt_int(row.get("days_between_weeks")),
        )

    @property
    def descriptor(self) -> SeasonDescriptor:
        return SeasonDescriptor(year=self.year, period=self.period)

    @property
    def label(self) -> str:
        if self.season_name:
            return self.season_name
        return f"{_PERIOD_LABELS[self.period]} {self.year}"

    def week_starts_on(self, week: int) -> Optional[date]:
        if self.start_date is None or not self.days_between_weeks:
            return None
        return self.start_date + timedelta(days=(int(week) - 1) * int(self.days_between_weeks))


@dataclass(frozen=True)
class Player:
    player_id: int
    name: str
    rating: int = 1000
    discord_user_id: Optional[int] = None

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "Player":
        return cls(
            player_id=int(row["player_id"]),
            name=str(row["name"]),
            rating=int(row.get("rating") or 1000),
            discord_user_id=_opt_int(row.get("discord_user_id")),
        )


@dataclass(frozen=True)
class Team:
    team_id: int
    season_id: int
    name: str
    player_ids: tuple[int, int]
    player_names: tuple[str, str]

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "Team":
        return cls(
            team_id=int(row["team_id"]),
            season_id=int(row["season_id"]),
            name=str(row["name"]),
            player_ids=(int(row["player_a_id"]), int(row["player_b_id"])),
            player_names=(str(row["player_a_name"]), str(row["player_b_name"])),
        )


@dataclass(frozen=True)
class Match:
    match_id: int
    season_id: int
    phase: MatchPhase
    team_a_id: int
    team_b_id: int
    team_a_name: str
    team_b_name: str
    status: MatchStatus = MatchStatus.TBD
    week: Optional[int] = None
    round_no: Optional[int] = None
    scheduled_at: Optional[datetime] = None
    location: Optional[str] = None
    team_a_score: Optional[int] = None
    team_b_score: Optional[int] = None
    winner_team_id: Optional[int] = None
    loser_team_id: Optional[int] = None
    completed_at: Optional[datetime] = None
    playoff_round: Optional[PlayoffRound] = None
    series_key: Optional[str] = None
    best_of: Optional[int] = None
    game_number: Optional[int] = None

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "Match":
        pr = row.get("playoff_round")
        return cls(
            match_id=int(row["match_id"]),
            season_id=int(row["season_id"]),
            phase=MatchPhase(str(row["phase"])),
            team_a_id=int(row["team_a_id"]),
            team_b_id=int(row["team_b_id"]),
            team_a_name=str(row["team_a_name"]),
            team_b_name=str(row["team_b_name"]),
            status=MatchStatus(str(row.get("status") or MatchStatus.TBD.value)),
            week=_opt_int(row.get("week")),
            round_no=_opt_int(row.get("round_no")),
            scheduled_at=row.get("scheduled_at"),
            location=_opt_str(row.get("location")) or None,
            team_a_score=_opt_int(row.get("team_a_score")),
            team_b_score=_opt_int(row.get("team_b_score")),
            winner_team_id=_opt_int(row.get("winner_team_id")),
            loser_team_id=_opt_int(row.get("loser_team_id")),
            completed_at=row.get("completed_at"),
            playoff_round=PlayoffRound(str(pr)) if pr else None,
            series_key=_opt_str(row.get("series_key")),
            best_of=_opt_int(row.get("best_of")),
            game_number=_opt_int(row.get("game_number")),
        )

    @property
    def is_complete(self) -> bool:
        return self.status == MatchStatus.COMPLETE

    @property
    def status_label(self) -> str:
        if self.is_complete:
            return "Complete"
        if self.scheduled_at is not None or self.status == MatchStatus.SCHEDULED:
            return "Scheduled"
        return "TBD"

    @property
    def code(self) -> str:
        if self.phase == MatchPhase.PLAYOFFS:
            return f"{self.series_key} G{self.game_number or 1}"
        return f"W{self.week}-R{self.round_no}"

    @property
    def winner_name(self) -> Optional[str]:
        if self.winner_team_id is None:
            return None
        return self.team_a_name if self.winner_team_id == self.team_a_id else self.team_b_name

    def involves(self, team_id: int) -> bool:
        return int(team_id) in (self.team_a_id, self.team_b_id)


@dataclass
class Standing:
    team_id: int
    team_name: str
    players: tuple[str, ...] = ()
    wins: int = 0
    losses: int = 0
    points_for: int = 0
    points_against: int = 0
    point_differential: int = 0
    win_pct: float = 0.0
    rank: int = 0

    @property
    def played(self) -> int:
        return self.wins + self.losses


@dataclass(frozen=True)
class SeriesState:
    season_id: int
    series_key: str
    playoff_round: Optional[PlayoffRound]
    best_of: int
    team_a_id: int
    team_b_id: int
    team_a_name: str
    team_b_name: str
    team_a_wins: int
    team_b_wins: int
    games: tuple[Match, ...] = field(default_factory=tuple)

    @classmethod
    def from_games(cls, games: Sequence[Match]) -> "SeriesState":
        if not games:
            raise ValueError("A series needs at least one game row.")
        ordered = sorted(games, key=lambda g: (g.game_number or 0, g.match_id))
        first = ordered[0]
        done = [g for g in ordered if g.is_complete]
        return cls(
            season_id=first.season_id,
            series_key=str(first.series_key),
            playoff_round=first.playoff_round,
            best_of=int(first.best_of or 1),
            team_a_id=first.team_a_id,
            team_b_id=first.team_b_id,
            team_a_name=first.team_a_name,
            team_b_name=first.team_b_name,
            team_a_wins=sum(1 for g in done if g.winner_team_id == first.team_a_id),
            team_b_wins=sum(1 for g in done if g.winner_team_id == first.team_b_id),
            games=tuple(ordered),
        )

    @property
    def needed_wins(self) -> int:
        return needed_wins(self.best_of)

    @property
    def winner_team_id(self) -> Optional[int]:
        if self.team_a_wins >= self.needed_wins:
            return self.team_a_id
        if self.team_b_wins >= self.needed_wins:
            return self.team_b_id
        return None

    @property
    def loser_team_id(self) -> Optional[int]:
        w = self.winner_team_id
        if w is None:
            return None
        return self.team_b_id if w == self.team_a_id else self.team_a_id

    @property
    def winner_name(self) -> Optional[str]:
        w = self.winner_team_id
        if w is None:
            return None
        return self.team_a_name if w == self.team_a_id else self.team_b_name

    @property
    def is_decided(self) -> bool:
        return self.winner_team_id is not None

    @property
    def open_games(self) -> list[Match]:
        return [g for g in self.games if not g.is_complete]

    @property
    def last_game_number(self) -> int:
        return max((g.game_number or 0) for g in self.games) if self.games else 0

    @property
    def score_line(self) -> str:
        return f"{self.team_a_wins}-{self.team_b_wins}"


def plan_series_transition(
    left: Optional[SeriesState],
    right: Optional[SeriesState],
    existing: Optional[SeriesState],
) -> SeriesTransition:
    """
    Decide what to do with a next-round series given its two feeder series.

    - NOOP   feeders undecided, or the existing series already holds both winners
    - CREATE both feeders decided and the next series does not exist yet
    - RESET  the next series exists but its teams no longer match the feeder winners
    """
    if left is None or right is None or not left.is_decided or not right.is_decided:
        return SeriesTransition.NOOP
    if existing is None:
        return SeriesTransition.CREATE
    if (existing.team_a_id, existing.team_b_id) == (left.winner_team_id, right.winner_team_id):
        return SeriesTransition.NOOP
    return SeriesTransition.RESET


@dataclass(frozen=True)
class ScheduleResult:
    created: int
    message: str


@dataclass(frozen=True)
class SeedResult:
    created: bool
    message: str


@dataclass(frozen=True)
class ProgressionResult:
    transitions: Mapping[str, SeriesTransition]
    champion_team_id: Optional[int] = None
    season_status: Optional[SeasonStatus] = None


@dataclass(frozen=True)
class ScoreResult:
    match: Match
    series: Optional[SeriesState] = None
    playoffs_seeded: bool = False
    progression: Optional[ProgressionResult] = None
