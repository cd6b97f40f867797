# services/team_service.py
from __future__ import annotations

import logging
from typing import Optional

from domain.enums import SeasonStatus
from domain.models import TEAM_NAME_SEPARATOR, Player, Team
from repositories.player_repo import PlayerRepo
from repositories.season_repo import SeasonRepo
from repositories.team_repo import TeamRepo
from services.errors import ConflictError, InvalidStateError, NotFoundError, ValidationError
from services.season_locks import SeasonLocks

log = logging.getLogger(__name__)

MAX_TEAM_NAME = 128


class TeamService:
    """
    Two-player teams inside a season.

    Enforces:
      - registration only while the season is in SIGNUP
      - two distinct, existing players
      - a player sits on at most one team per season
      - team names unique per season (default: sorted player names joined by " | ")
    """

    def __init__(
        self,
        season_repo: SeasonRepo,
        team_repo: TeamRepo,
        player_repo: PlayerRepo,
        *,
        locks: SeasonLocks,
    ) -> None:
        self._seasons = season_repo
        self._repo = team_repo
        self._players = player_repo
        self._locks = locks

    async def create_team(
        self,
        *,
        season_id: int,
        player_a_id: int,
        player_b_id: int,
        requested_name: Optional[str] = None,
    ) -> Team:
        async with self._locks.hold(season_id):
            season = await self._seasons.get_season(season_id=season_id)
            if not season:
                raise NotFoundError(f"Season not found: {season_id}")

            a = await self._players.get_player(player_id=player_a_id)
            b = await self._players.get_player(player_id=player_b_id)
            if not a or not b:
                raise NotFoundError("One or more selected players were not found.")

            if str(season["status"]) != SeasonStatus.SIGNUP.value:
                raise InvalidStateError("Team registration is closed for this season.")

            if int(player_a_id) == int(player_b_id):
                raise ValidationError("A team must contain two different players.")

            clash = await self._repo.find_team_with_players(season_id=season_id, player_ids=[player_a_id, player_b_id])
            if clash:
                raise ConflictError(f"One of these players is already on team '{clash['name']}'.")

            # players stored in name order; ids follow their names
            players = sorted((Player.from_row(a), Player.from_row(b)), key=lambda p: (p.name, p.player_id))
            names = (players[0].name, players[1].name)
            ids = (players[0].player_id, players[1].player_id)

            name = (requested_name or "").strip() or TEAM_NAME_SEPARATOR.join(names)
            if len(name) > MAX_TEAM_NAME:
                raise ValidationError(f"Team name must be at most {MAX_TEAM_NAME} characters.")

            if await self._repo.get_team_by_name(season_id=season_id, name=name):
                raise ConflictError(f"Team name '{name}' already exists for this season.")

            team_id = await self._repo.create_team(
                season_id=season_id,
                name=name,
                player_ids=ids,
                player_names=names,
            )
            log.info("Registered team '%s' (team_id=%s) in season %s", name, team_id, season_id)

        return await self.get_team(team_id=team_id)

    async def get_team(self, *, team_id: int) -> Team:
        row = await self._repo.get_team(team_id=team_id)
        if not row:
            raise NotFoundError(f"Team not found: {team_id}")
        return Team.from_row(row)

    async def get_team_by_name(self, *, season_id: int, name: str) -> Team:
        row = await self._repo.get_team_by_name(season_id=season_id, name=name)
        if not row:
            raise NotFoundError(f"Team not found: {name}")
        return Team.from_row(row)

    async def list_teams(self, *, season_id: int) -> list[Team]:
        return [Team.from_row(r) for r in await self._repo.list_teams(season_id=season_id)]
