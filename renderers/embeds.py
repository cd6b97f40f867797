# renderers/embeds.py
from __future__ import annotations

from dataclasses import dataclass

import discord

from services.errors import (
    ConflictError,
    InvalidStateError,
    LeagueError,
    NotFoundError,
    ValidationError,
)

_ERROR_TITLES: tuple[tuple[type[LeagueError], str], ...] = (
    (NotFoundError, "Not found"),
    (ValidationError, "Invalid input"),
    (InvalidStateError, "Not allowed right now"),
    (ConflictError, "Already taken"),
)


@dataclass(frozen=True)
class EmbedTheme:
    primary: int = 0x0B6623   # felt green
    success: int = 0x2ECC71
    warning: int = 0xF1C40F
    danger: int = 0xE74C3C
    neutral: int = 0x5865F2


class Embeds:
    """
    Centralized embed styling so every league command looks the same.
    """

    def __init__(self, *, theme: EmbedTheme | None = None, footer: str = "Pool League") -> None:
        self._theme = theme or EmbedTheme()
        self._footer = footer

    def base(
        self,
        *,
        title: str,
        description: str | None = None,
        color: int | None = None,
    ) -> discord.Embed:
        e = discord.Embed(
            title=title,
            description=description,
            color=color if color is not None else self._theme.primary,
        )
        e.set_footer(text=self._footer)
        return e

    def info(self, *, title: str, description: str | None = None) -> discord.Embed:
        return self.base(title=title, description=description, color=self._theme.neutral)

    def success(self, *, title: str, description: str | None = None) -> discord.Embed:
        return self.base(title=title, description=description, color=self._theme.success)

    def warning(self, *, title: str, description: str | None = None) -> discord.Embed:
        return self.base(title=title, description=description, color=self._theme.warning)

    def error(self, *, title: str, description: str | None = None) -> discord.Embed:
        return self.base(title=title, description=description, color=self._theme.danger)

    def league_error(self, exc: LeagueError) -> discord.Embed:
        """Maps the league error taxonomy to a titled embed; state/conflict issues are warnings."""
        title = "League error"
        for cls, label in _ERROR_TITLES:
            if isinstance(exc, cls):
                title = label
                break
        if isinstance(exc, (InvalidStateError, ConflictError)):
            return self.warning(title=title, description=str(exc))
        return self.error(title=title, description=str(exc))

