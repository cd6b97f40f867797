# domain/enums.py
from __future__ import annotations

from enum import Enum


class SeasonPeriod(str, Enum):
    A = "A"     # January..June
    B = "B"     # July..December


class SeasonStatus(str, Enum):
    SIGNUP = "SIGNUP"
    REGULAR = "REGULAR"
    PLAYOFFS = "PLAYOFFS"
    COMPLETE = "COMPLETE"


class MatchPhase(str, Enum):
    REGULAR = "REGULAR"
    PLAYOFFS = "PLAYOFFS"


class MatchStatus(str, Enum):
    TBD = "TBD"
    SCHEDULED = "SCHEDULED"
    COMPLETE = "COMPLETE"


class PlayoffRound(str, Enum):
    QF = "QF"
    SF = "SF"
    F = "F"


class CompletionRule(str, Enum):
    ALL_MATCHES = "all_matches"
    ROUNDS = "rounds"


class SeriesTransition(str, Enum):
    NOOP = "noop"
    CREATE = "create"
    RESET = "reset"
