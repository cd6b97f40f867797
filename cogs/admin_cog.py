# cogs/admin_cog.py
from __future__ import annotations

from datetime import date
from typing import Optional

import discord
from discord import app_commands
from discord.ext import commands

from repositories.player_repo import PlayerRepo
from services.errors import LeagueError
from services.season_service import SeasonService
from services.team_service import TeamService
from renderers.embeds import Embeds


def _parse_date(v: Optional[str]) -> Optional[date]:
    if not v or not v.strip():
        return None
    return date.fromisoformat(v.strip())


class AdminCog(commands.Cog):
    admin = app_commands.Group(
        name="league_admin",
        description="League administration.",
        default_permissions=discord.Permissions(manage_guild=True),
    )

    def __init__(
        self,
        bot: commands.Bot,
        *,
        player_repo: PlayerRepo,
        season_service: SeasonService,
        team_service: TeamService,
        embeds: Embeds,
    ) -> None:
        self.bot = bot
        self.players = player_repo
        self.seasons = season_service
        self.teams = team_service
        self.embeds = embeds

    async def _ensure_player_id(self, member: discord.abc.User) -> int:
        return await self.players.ensure_discord_player(
            discord_user_id=member.id,
            display_name=getattr(member, "display_name", None) or member.name,
        )

    @admin.command(name="create_season", description="Create a season ahead of time.")
    @app_commands.describe(
        year="Year, e.g. 2026",
        period="A = first half of the year, B = second half",
        weeks="Regular-season weeks (2 rounds each)",
        name="Display name (default: Spring/Fall <year>)",
        start_date="First week start, YYYY-MM-DD",
        days_between_weeks="Days between weeks",
    )
    @app_commands.choices(
        period=[
            app_commands.Choice(name="A (Spring)", value="A"),
            app_commands.Choice(name="B (Fall)", value="B"),
        ]
    )
    async def create_season(
        self,
        interaction: discord.Interaction,
        year: app_commands.Range[int, 2000, 2100],
        period: app_commands.Choice[str],
        weeks: Optional[app_commands.Range[int, 1, 26]] = None,
        name: Optional[str] = None,
        start_date: Optional[str] = None,
        days_between_weeks: Optional[app_commands.Range[int, 1, 31]] = None,
    ) -> None:
        await interaction.response.defer(ephemeral=True)

        try:
            start = _parse_date(start_date)
        except ValueError:
            await interaction.followup.send(
                embed=self.embeds.error(title="Invalid input", description="start_date must look like 2026-03-02."),
                ephemeral=True,
            )
            return

        try:
            season = await self.seasons.create_season(
                year=int(year),
                period=period.value,
                regular_weeks=weeks,
                season_name=name,
                start_date=start,
                days_between_weeks=days_between_weeks,
            )
        except LeagueError as ex:
            await interaction.followup.send(embed=self.embeds.league_error(ex), ephemeral=True)
            return

        e = self.embeds.success(
            title="Season created",
            description=f"**{season.label}** (`{season.season_id}`)\n**Weeks:** {season.regular_weeks}\n**Status:** {season.status.value}",
        )
        await interaction.followup.send(embed=e, ephemeral=True)

    @admin.command(name="seasons", description="List all seasons.")
    async def seasons_list(self, interaction: discord.Interaction) -> None:
        await interaction.response.defer(ephemeral=True)
        rows = await self.seasons.list_seasons()
        if not rows:
            await interaction.followup.send(embed=self.embeds.warning(title="No seasons", description="Nothing yet."), ephemeral=True)
            return
        desc = "\n".join(f"`{s.season_id}` **{s.label}** ({s.year}{s.period.value}): {s.status.value}" for s in rows)
        await interaction.followup.send(embed=self.embeds.info(title="Seasons", description=desc), ephemeral=True)

    @admin.command(name="register_pair", description="Register a team for two members.")
    @app_commands.describe(player_a="First player", player_b="Second player", name="Team name (optional)")
    async def register_pair(
        self,
        interaction: discord.Interaction,
        player_a: discord.Member,
        player_b: discord.Member,
        name: Optional[str] = None,
    ) -> None:
        if not interaction.guild:
            await interaction.response.send_message("This command must be used in a server.", ephemeral=True)
            return
        await interaction.response.defer(ephemeral=True)

        season = await self.seasons.get_or_create_current_season(descriptor=self.seasons.current_descriptor())
        a = await self._ensure_player_id(player_a)
        b = await self._ensure_player_id(player_b)
        try:
            team = await self.teams.create_team(season_id=season.season_id, player_a_id=a, player_b_id=b, requested_name=name)
        except LeagueError as ex:
            await interaction.followup.send(embed=self.embeds.league_error(ex), ephemeral=True)
            return

        await interaction.followup.send(
            embed=self.embeds.success(title="Team registered", description=f"**{team.name}** joined {season.label}."),
            ephemeral=True,
        )


async def setup(
    bot: commands.Bot,
    *,
    player_repo: PlayerRepo,
    season_service: SeasonService,
    team_service: TeamService,
    embeds: Embeds,
) -> None:
    await bot.add_cog(
        AdminCog(
            bot,
            player_repo=player_repo,
            season_service=season_service,
            team_service=team_service,
            embeds=embeds,
        )
    )
