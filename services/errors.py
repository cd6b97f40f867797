# services/errors.py
from __future__ import annotations


class LeagueError(Exception):
    """Base for every user-displayable league failure."""


class NotFoundError(LeagueError):
    pass


class ValidationError(LeagueError):
    pass


class InvalidStateError(LeagueError):
    pass


class ConflictError(LeagueError):
    pass
