# main.py
from __future__ import annotations

import asyncio
import logging
import signal
from dataclasses import asdict
from typing import Optional

import discord
from discord.ext import commands

from config import load_config
from db.pool import DbPool, MySqlPoolConfig

from repositories.match_repo import MatchRepo
from repositories.player_repo import PlayerRepo
from repositories.season_repo import SeasonRepo
from repositories.team_repo import TeamRepo

from services.match_service import MatchService
from services.playoff_service import PlayoffService
from services.schedule_service import ScheduleService
from services.season_locks import SeasonLocks
from services.season_service import SeasonService
from services.standings_service import StandingsService
from services.team_service import TeamService

from renderers.embeds import Embeds
from renderers.bracket_view import BracketView
from renderers.match_view import MatchView
from renderers.standings_view import StandingsView

from cogs.admin_cog import setup as setup_admin_cog
from cogs.league_cog import setup as setup_league_cog


class PoolLeagueBot(commands.Bot):
    def __init__(self) -> None:
        self.cfg = load_config()

        intents = discord.Intents.default()
        super().__init__(
            command_prefix=self.cfg.command_prefix,
            intents=intents,
            allowed_mentions=discord.AllowedMentions.none(),
        )

        self.db: Optional[DbPool] = None

    async def setup_hook(self) -> None:
        logging.info("Starting setup_hook...")

        # --- DB ---
        self.db = DbPool()
        await self.db.start(MySqlPoolConfig(**asdict(self.cfg.mysql)))
        await self.db.apply_schema()

        # --- Repos ---
        player_repo = PlayerRepo(self.db)
        season_repo = SeasonRepo(self.db)
        team_repo = TeamRepo(self.db)
        match_repo = MatchRepo(self.db)

        # --- Services ---
        # one lock registry shared by every service that writes season state
        locks = SeasonLocks()
        league = self.cfg.league

        season_service = SeasonService(season_repo, regular_weeks=league.regular_weeks)
        team_service = TeamService(season_repo, team_repo, player_repo, locks=locks)
        schedule_service = ScheduleService(season_repo, team_repo, match_repo, locks=locks)
        standings_service = StandingsService(team_repo, match_repo)
        playoff_service = PlayoffService(
            season_repo,
            team_repo,
            match_repo,
            standings_service,
            locks=locks,
            completion_rule=league.completion_rule,
        )
        match_service = MatchService(season_repo, match_repo, playoff_service, locks=locks)

        # --- Renderers ---
        embeds = Embeds()
        standings_view = StandingsView()
        bracket_view = BracketView()
        match_view = MatchView()

        # --- Cogs ---
        await setup_admin_cog(
            self,
            player_repo=player_repo,
            season_service=season_service,
            team_service=team_service,
            embeds=embeds,
        )
        await setup_league_cog(
            self,
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

        # --- Slash sync ---
        if self.cfg.dev_guild_id:
            guild = discord.Object(id=self.cfg.dev_guild_id)
            self.tree.copy_global_to(guild=guild)
            await self.tree.sync(guild=guild)
            logging.info("Slash commands synced to DEV guild %s", self.cfg.dev_guild_id)
        else:
            await self.tree.sync()
            logging.info("Slash commands synced globally")

        logging.info(
            "setup_hook complete (regular_weeks=%s, completion_rule=%s).",
            league.regular_weeks,
            league.completion_rule.value,
        )

    async def close(self) -> None:
        try:
            await super().close()
        finally:
            if self.db:
                await self.db.close()
                self.db = None


async def run_until_stopped(bot: commands.Bot, token: str, stop_event: asyncio.Event) -> None:
    """
    Runs the bot until a stop signal arrives or bot.start() ends on its own.
    Errors from login or setup_hook are re-raised here.
    """
    runner = asyncio.create_task(bot.start(token))
    stopper = asyncio.create_task(stop_event.wait())
    await asyncio.wait({runner, stopper}, return_when=asyncio.FIRST_COMPLETED)
    stopper.cancel()
    await bot.close()
    await runner


async def _run_bot() -> None:
    cfg = load_config()

    logging.basicConfig(
        level=getattr(logging, cfg.log_level, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    bot = PoolLeagueBot()

    loop = asyncio.get_running_loop()
    stop_event = asyncio.Event()

    def _request_stop(*_args) -> None:
        stop_event.set()

    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, _request_stop)
        except NotImplementedError:
            pass

    async with bot:
        await run_until_stopped(bot, cfg.token, stop_event)


def main() -> None:
    asyncio.run(_run_bot())


if __name__ == "__main__":
    main()
