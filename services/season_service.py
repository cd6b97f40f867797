# services/season_service.py
from __future__ import annotations

import logging
from datetime import date, datetime
from typing import Callable, Optional

import aiomysql

from domain.enums import SeasonPeriod, SeasonStatus
from domain.models import (
    DEFAULT_REGULAR_WEEKS,
    ROUNDS_PER_WEEK,
    Season,
    SeasonDescriptor,
    utc_now,
)
from repositories.season_repo import SeasonRepo
from services.errors import ConflictError, NotFoundError, ValidationError

log = logging.getLogger(__name__)


class SeasonService:
    """
    Season registry: resolves "the current season" for a (year, period) descriptor
    and creates it on first access.

    The clock is injected; callers compute the descriptor once per request
    (current_descriptor()) and pass it down.
    """

    def __init__(
        self,
        season_repo: SeasonRepo,
        *,
        regular_weeks: int = DEFAULT_REGULAR_WEEKS,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._repo = season_repo
        self._regular_weeks = int(regular_weeks)
        self._clock = clock

        if self._regular_weeks < 1:
            raise ValueError("regular_weeks must be >= 1")

    def current_descriptor(self) -> SeasonDescriptor:
        return SeasonDescriptor.from_datetime(self._clock())

    async def get_or_create_current_season(self, *, descriptor: Optional[SeasonDescriptor] = None) -> Season:
        d = descriptor or self.current_descriptor()

        row = await self._repo.find_season(year=d.year, period=d.period.value)
        if row:
            return Season.from_row(row)

        try:
            season_id = await self._repo.create_season(
                year=d.year,
                period=d.period.value,
                status=SeasonStatus.SIGNUP.value,
                regular_weeks=self._regular_weeks,
                regular_rounds=self._regular_weeks * ROUNDS_PER_WEEK,
            )
        except aiomysql.IntegrityError:
            # Unique (year, period) hit: another request created it first.
            row = await self._repo.find_season(year=d.year, period=d.period.value)
            if not row:
                raise
            return Season.from_row(row)

        log.info("Created season %s %s (season_id=%s)", d.year, d.period.value, season_id)
        return await self.get_season(season_id=season_id)

    async def get_season(self, *, season_id: int) -> Season:
        row = await self._repo.get_season(season_id=season_id)
        if not row:
            raise NotFoundError(f"Season not found: {season_id}")
        return Season.from_row(row)

    async def list_seasons(self) -> list[Season]:
        return [Season.from_row(r) for r in await self._repo.list_seasons()]

    async def create_season(
        self,
        *,
        year: int,
        period: SeasonPeriod | str,
        regular_weeks: int | None = None,
        season_name: str | None = None,
        start_date: date | None = None,
        days_between_weeks: int | None = None,
    ) -> Season:
        """
        Explicit season creation (league admin / seeding collaborator).
        """
        try:
            p = SeasonPeriod(str(getattr(period, "value", period)).upper())
        except ValueError as e:
            raise ValidationError("Season period must be 'A' or 'B'.") from e

        weeks = int(regular_weeks if regular_weeks is not None else self._regular_weeks)
        if weeks < 1:
            raise ValidationError("A season needs at least one regular week.")
        if days_between_weeks is not None and int(days_between_weeks) < 1:
            raise ValidationError("days_between_weeks must be >= 1.")

        if await self._repo.find_season(year=int(year), period=p.value):
            raise ConflictError(f"A season already exists for {year} {p.value}.")

        name = (season_name or "").strip() or None
        season_id = await self._repo.create_season(
            year=int(year),
            period=p.value,
            status=SeasonStatus.SIGNUP.value,
            regular_weeks=weeks,
            regular_rounds=weeks * ROUNDS_PER_WEEK,
            season_name=name,
            start_date=start_date,
            days_between_weeks=int(days_between_weeks) if days_between_weeks is not None else None,
        )
        log.info("Created season %s %s (season_id=%s, weeks=%s)", year, p.value, season_id, weeks)
        return await self.get_season(season_id=season_id)
