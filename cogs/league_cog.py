# cogs/league_cog.py
from __future__ import annotations

import logging
import random
from typing import Optional

import discord
from discord import app_commands
from discord.ext import commands

from domain.enums import SeasonStatus
from domain.models import Season
from repositories.player_repo import PlayerRepo
from services.errors import LeagueError
from services.match_service import MatchService
from services.playoff_service import SERIES_ORDER, PlayoffService
from services.schedule_service import ScheduleService
from services.season_service import SeasonService
from services.standings_service import StandingsService
from services.team_service import TeamService
from renderers.embeds import Embeds
from renderers.bracket_view import BracketView
from renderers.match_view import MatchView
from renderers.standings_view import StandingsOptions, StandingsView

log = logging.getLogger(__name__)

_SERIES_CHOICES = [app_commands.Choice(name=k, value=k) for k in SERIES_ORDER]


class LeagueCog(commands.Cog):
    league = app_commands.Group(name="league", description="Pool league: teams, schedule, results, playoffs.")

    def __init__(
        self,
        bot: commands.Bot,
        *,
        player_repo: PlayerRepo,
        season_service: SeasonService,
        team_service: TeamService,
        schedule_service: ScheduleService,
        standings_service: StandingsService,
        playoff_service: PlayoffService,
        match_service: MatchService,
        embeds: Embeds,
        standings_view: StandingsView,
        bracket_view: BracketView,
        match_view: MatchView,
    ) -> None:
        self.bot = bot
        self.players = player_repo
        self.seasons = season_service
        self.teams = team_service
        self.schedule = schedule_service
        self.standings = standings_service
        self.playoffs = playoff_service
        self.matches = match_service
        self.embeds = embeds
        self.standings_view = standings_view
        self.bracket_view = bracket_view
        self.match_view = match_view

    # -----------------------------
    # Helpers
    # -----------------------------

    async def _current_season(self) -> Season:
        return await self.seasons.get_or_create_current_season(descriptor=self.seasons.current_descriptor())

    async def _ensure_player_id(self, member: discord.abc.User) -> int:
        return await self.players.ensure_discord_player(
            discord_user_id=member.id,
            display_name=getattr(member, "display_name", None) or member.name,
        )

    async def _can_manage(self, interaction: discord.Interaction) -> bool:
        if not interaction.guild:
            return False
        if isinstance(interaction.user, discord.Member):
            return interaction.user.guild_permissions.manage_guild
        return False

    async def _deny(self, interaction: discord.Interaction) -> None:
        await interaction.response.send_message("Missing permission to manage the league here.", ephemeral=True)

    async def _fail(self, interaction: discord.Interaction, exc: LeagueError, *, ephemeral: bool = True) -> None:
        await interaction.followup.send(embed=self.embeds.league_error(exc), ephemeral=ephemeral)

    async def cog_app_command_error(self, interaction: discord.Interaction, error: app_commands.AppCommandError) -> None:
        log.exception("League command failed: %s", getattr(interaction.command, "qualified_name", "?"), exc_info=error)
        e = self.embeds.error(title="Something went wrong", description="The command failed. Try again later.")
        if interaction.response.is_done():
            await interaction.followup.send(embed=e, ephemeral=True)
        else:
            await interaction.response.send_message(embed=e, ephemeral=True)

    # -----------------------------
    # Season / teams
    # -----------------------------

    @league.command(name="season", description="Show the current season.")
    async def season(self, interaction: discord.Interaction) -> None:
        await interaction.response.defer(ephemeral=True)
        s = await self._current_season()
        teams = await self.teams.list_teams(season_id=s.season_id)

        e = self.embeds.info(title=f"Season: {s.label}")
        e.add_field(name="Status", value=s.status.value, inline=True)
        e.add_field(name="Teams", value=str(len(teams)), inline=True)
        e.add_field(name="Regular weeks", value=str(s.regular_weeks), inline=True)
        if s.status == SeasonStatus.REGULAR:
            week = await self.schedule.current_week(season=s)
            starts = s.week_starts_on(week)
            e.add_field(
                name="Current week",
                value=f"{week}" + (f" (from {starts.isoformat()})" if starts else ""),
                inline=True,
            )
        await interaction.followup.send(embed=e, ephemeral=True)

    @league.command(name="teams", description="List the teams registered this season.")
    async def teams_list(self, interaction: discord.Interaction) -> None:
        await interaction.response.defer(ephemeral=False)
        s = await self._current_season()
        teams = await self.teams.list_teams(season_id=s.season_id)
        if not teams:
            await interaction.followup.send(embed=self.embeds.warning(title="No teams", description="No teams registered yet."))
            return
        lines = [f"`{i:>2}` {t.name}" for i, t in enumerate(teams, start=1)]
        await interaction.followup.send(embed=self.embeds.info(title=f"Teams: {s.label}", description="\n".join(lines)))

    @league.command(name="register_team", description="Register a two-player team with a partner.")
    @app_commands.describe(partner="Your teammate", name="Team name (default: both player names)")
    async def register_team(
        self,
        interaction: discord.Interaction,
        partner: discord.Member,
        name: Optional[str] = None,
    ) -> None:
        if not interaction.guild:
            await interaction.response.send_message("Use this in a server.", ephemeral=True)
            return
        await interaction.response.defer(ephemeral=False)

        s = await self._current_season()
        me = await self._ensure_player_id(interaction.user)
        other = await self._ensure_player_id(partner)
        try:
            team = await self.teams.create_team(
                season_id=s.season_id,
                player_a_id=me,
                player_b_id=other,
                requested_name=name,
            )
        except LeagueError as ex:
            await self._fail(interaction, ex)
            return

        e = self.embeds.success(
            title="Team registered",
            description=f"**{team.name}** is in for {s.label}.\nPlayers: {', '.join(team.player_names)}",
        )
        await interaction.followup.send(embed=e)

    # -----------------------------
    # Schedule
    # -----------------------------

    @league.command(name="generate_schedule", description="Close signup and generate the regular season.")
    async def generate_schedule(self, interaction: discord.Interaction) -> None:
        if not await self._can_manage(interaction):
            await self._deny(interaction)
            return
        await interaction.response.defer(ephemeral=False)

        s = await self._current_season()
        try:
            result = await self.schedule.generate_regular_schedule(season_id=s.season_id)
        except LeagueError as ex:
            await self._fail(interaction, ex)
            return

        if result.created == 0:
            await interaction.followup.send(embed=self.embeds.warning(title="No change", description=result.message))
            return
        e = self.embeds.success(
            title="Regular season started",
            description=f"{result.message}\nCreated **{result.created}** matches. Next: `/league week`",
        )
        await interaction.followup.send(embed=e)

    @league.command(name="week", description="Show the matches of a regular-season week.")
    @app_commands.describe(week="Week number (default: current week)", team="Only this team's matches")
    async def week(
        self,
        interaction: discord.Interaction,
        week: Optional[app_commands.Range[int, 1, 52]] = None,
        team: Optional[str] = None,
    ) -> None:
        await interaction.response.defer(ephemeral=False)
        s = await self._current_season()

        team_id: Optional[int] = None
        if team:
            try:
                team_id = (await self.teams.get_team_by_name(season_id=s.season_id, name=team.strip())).team_id
            except LeagueError as ex:
                await self._fail(interaction, ex)
                return

        wk = int(week) if week else await self.schedule.current_week(season=s)
        matches = await self.schedule.list_week_matches(season_id=s.season_id, week=wk, team_id=team_id)
        text = self.match_view.render_week(matches, week=wk, title=s.label, starts_on=s.week_starts_on(wk))
        await interaction.followup.send(content=text)

    @league.command(name="schedule", description="Set the time and place of a match.")
    @app_commands.describe(
        match_id="Match id shown in /league week",
        when="Date and time, e.g. 2026-03-14 19:30 (empty clears it)",
        location="Venue (leave out to keep, '-' to clear)",
    )
    async def schedule_match(
        self,
        interaction: discord.Interaction,
        match_id: int,
        when: Optional[str] = None,
        location: Optional[str] = None,
    ) -> None:
        await interaction.response.defer(ephemeral=True)
        where = "" if location is not None and location.strip() == "-" else location
        try:
            m = await self.matches.update_match_schedule(match_id=match_id, scheduled_at=when, location=where)
        except LeagueError as ex:
            await self._fail(interaction, ex)
            return

        when_txt = m.scheduled_at.strftime("%Y-%m-%d %H:%M") if m.scheduled_at else "TBD"
        e = self.embeds.success(
            title=f"Match {m.code} updated",
            description=f"{m.team_a_name} vs {m.team_b_name}\n**When:** {when_txt}\n**Where:** {m.location or '-'}\n**Status:** {m.status_label}",
        )
        await interaction.followup.send(embed=e, ephemeral=True)

    # -----------------------------
    # Results
    # -----------------------------

    @league.command(name="report", description="Report a match result (winner or both scores).")
    @app_commands.describe(
        match_id="Match id shown in /league week or /league playoffs",
        winner="Winning team name (exactly as shown)",
        team_a_score="Score of the first team listed",
        team_b_score="Score of the second team listed",
    )
    async def report(
        self,
        interaction: discord.Interaction,
        match_id: int,
        winner: Optional[str] = None,
        team_a_score: Optional[app_commands.Range[int, 0, 999]] = None,
        team_b_score: Optional[app_commands.Range[int, 0, 999]] = None,
    ) -> None:
        await interaction.response.defer(ephemeral=False)
        try:
            result = await self.matches.submit_match_score(
                match_id=match_id,
                winner_team_name=winner,
                team_a_score=team_a_score,
                team_b_score=team_b_score,
            )
        except LeagueError as ex:
            await self._fail(interaction, ex)
            return

        m = result.match
        desc = f"{m.team_a_name} **{m.team_a_score}** - **{m.team_b_score}** {m.team_b_name}\nWinner: **{m.winner_name}**"
        if result.series is not None:
            desc += f"\nSeries {result.series.series_key}: {result.series.score_line}"
            if result.series.is_decided:
                desc += f" (**{result.series.winner_name}** advances)"
        await interaction.followup.send(embed=self.embeds.success(title=f"Result recorded: {m.code}", description=desc))
        await self._announce_transitions(interaction, result.playoffs_seeded, result.progression)

    @league.command(name="series_score", description="Record the final score of a playoff series.")
    @app_commands.describe(series="Series key", team_a_wins="Games won by the first team", team_b_wins="Games won by the second team")
    @app_commands.choices(series=_SERIES_CHOICES)
    async def series_score(
        self,
        interaction: discord.Interaction,
        series: app_commands.Choice[str],
        team_a_wins: app_commands.Range[int, 0, 5],
        team_b_wins: app_commands.Range[int, 0, 5],
    ) -> None:
        if not await self._can_manage(interaction):
            await self._deny(interaction)
            return
        await interaction.response.defer(ephemeral=False)

        s = await self._current_season()
        try:
            result = await self.matches.submit_series_score(
                season_id=s.season_id,
                series_key=series.value,
                team_a_wins=team_a_wins,
                team_b_wins=team_b_wins,
            )
        except LeagueError as ex:
            await self._fail(interaction, ex)
            return

        st = result.series
        e = self.embeds.success(
            title=f"Series {st.series_key} final",
            description=f"{st.team_a_name} **{st.team_a_wins}** - **{st.team_b_wins}** {st.team_b_name}\n**{st.winner_name}** advances.",
        )
        await interaction.followup.send(embed=e)
        await self._announce_transitions(interaction, False, result.progression)

    async def _announce_transitions(self, interaction: discord.Interaction, seeded: bool, progression) -> None:
        if seeded:
            await interaction.followup.send(
                embed=self.embeds.success(
                    title="Playoffs seeded",
                    description="The regular season is complete. See `/league playoffs`.",
                )
            )
        if progression is not None and progression.champion_team_id is not None and progression.season_status == SeasonStatus.COMPLETE:
            team = await self.teams.get_team(team_id=progression.champion_team_id)
            await interaction.followup.send(
                embed=self.embeds.success(title="🏆 Champions", description=f"**{team.name}** win the league!")
            )

    # -----------------------------
    # Views
    # -----------------------------

    @league.command(name="standings", description="Show the regular-season standings.")
    async def standings_cmd(self, interaction: discord.Interaction) -> None:
        await interaction.response.defer(ephemeral=False)
        s = await self._current_season()
        rows = await self.standings.compute_standings(season_id=s.season_id)
        text = self.standings_view.render(rows, opts=StandingsOptions(title=f"{s.label} Standings"))
        await interaction.followup.send(content=text)

    @league.command(name="playoffs", description="Show the playoff bracket and open games.")
    async def playoffs_cmd(self, interaction: discord.Interaction) -> None:
        await interaction.response.defer(ephemeral=False)
        s = await self._current_season()
        series = await self.playoffs.list_series(season_id=s.season_id)
        if not series:
            await interaction.followup.send(
                embed=self.embeds.warning(title="No playoffs yet", description="Playoffs are seeded when the regular season ends.")
            )
            return

        final = next((x for x in series if x.series_key == SERIES_ORDER[-1]), None)
        champion = final.winner_name if final is not None else None
        await interaction.followup.send(content=self.bracket_view.render(series=series, title=f"{s.label} Playoffs", champion=champion))

        decided = {x.series_key for x in series if x.is_decided}
        games = await self.schedule.list_playoff_games(season_id=s.season_id)
        open_games = [g for g in games if not g.is_complete and g.series_key not in decided]
        if open_games:
            await interaction.followup.send(content=self.match_view.render_playoff_games(open_games, title="Games to play", max_lines=15))

    @league.command(name="history", description="Show recent results.")
    @app_commands.describe(team="Only this team's results")
    async def history(self, interaction: discord.Interaction, team: Optional[str] = None) -> None:
        await interaction.response.defer(ephemeral=False)
        s = await self._current_season()

        team_id: Optional[int] = None
        if team:
            try:
                team_id = (await self.teams.get_team_by_name(season_id=s.season_id, name=team.strip())).team_id
            except LeagueError as ex:
                await self._fail(interaction, ex)
                return

        rows = await self.schedule.list_match_history(season_id=s.season_id, team_id=team_id)
        await interaction.followup.send(content=self.match_view.render_history(rows, title=f"{s.label} Results", max_lines=15))

    # -----------------------------
    # Admin
    # -----------------------------

    @league.command(name="force_playoffs", description="Seed the playoffs now from the current standings.")
    async def force_playoffs(self, interaction: discord.Interaction) -> None:
        if not await self._can_manage(interaction):
            await self._deny(interaction)
            return
        await interaction.response.defer(ephemeral=False)

        s = await self._current_season()
        try:
            result = await self.playoffs.seed_playoffs(season_id=s.season_id)
        except LeagueError as ex:
            await self._fail(interaction, ex)
            return

        if not result.created:
            await interaction.followup.send(embed=self.embeds.warning(title="No change", description=result.message))
            return
        await interaction.followup.send(embed=self.embeds.success(title="Playoffs seeded", description=result.message))

    @league.command(name="reset_series", description="Clear the results of a playoff series (and later rounds).")
    @app_commands.choices(series=_SERIES_CHOICES)
    async def reset_series(self, interaction: discord.Interaction, series: app_commands.Choice[str]) -> None:
        if not await self._can_manage(interaction):
            await self._deny(interaction)
            return
        await interaction.response.defer(ephemeral=True)

        s = await self._current_season()
        try:
            progression = await self.playoffs.reset_series(season_id=s.season_id, series_key=series.value)
        except LeagueError as ex:
            await self._fail(interaction, ex)
            return

        e = self.embeds.success(
            title=f"Series {series.value} reset",
            description=f"Results cleared. Season status: {progression.season_status.value if progression.season_status else '-'}",
        )
        await interaction.followup.send(embed=e, ephemeral=True)

    @league.command(name="fill_random", description="(Testing) Give every open regular match a random winner.")
    async def fill_random(self, interaction: discord.Interaction) -> None:
        if not await self._can_manage(interaction):
            await self._deny(interaction)
            return
        await interaction.response.defer(ephemeral=True)

        s = await self._current_season()
        try:
            n = await self.matches.fill_random_results(season_id=s.season_id, rng=random.Random())
        except LeagueError as ex:
            await self._fail(interaction, ex)
            return
        await interaction.followup.send(
            embed=self.embeds.success(title="Random results", description=f"Filled **{n}** matches."),
            ephemeral=True,
        )


async def setup(
    bot: commands.Bot,
    *,
    player_repo: PlayerRepo,
    season_service: SeasonService,
    team_service: TeamService,
    schedule_service: ScheduleService,
    standings_service: StandingsService,
    playoff_service: PlayoffService,
    match_service: MatchService,
    embeds: Embeds,
    standings_view: StandingsView,
    bracket_view: BracketView,
    match_view: MatchView,
) -> None:
    await bot.add_cog(
        LeagueCog(
            bot,
            player_repo=player_repo,
            season_service=season_service,
            team_service=team_service,
            schedule_service=schedule_service,
            standings_service=standings_service,
            playoff_service=playoff_service,
            match_service=match_service,
            embeds=embeds,
            standings_view=standings_view,
            bracket_view=bracket_view,
            match_view=match_view,
        )
    )
