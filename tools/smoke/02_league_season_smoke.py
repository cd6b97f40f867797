from __future__ import annotations

import os, sys
import random
from dataclasses import asdict
from uuid import uuid4

HERE = os.path.dirname(__file__)
ROOT = os.path.abspath(os.path.join(HERE, "..", ".."))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

import asyncio
from config import load_config
from db.pool import DbPool, MySqlPoolConfig
from domain.enums import SeasonStatus
from repositories.match_repo import MatchRepo
from repositories.player_repo import PlayerRepo
from repositories.season_repo import SeasonRepo
from repositories.team_repo import TeamRepo
from services.match_service import MatchService
from services.playoff_service import SERIES_ORDER, PlayoffService
from services.schedule_service import ScheduleService
from services.season_locks import SeasonLocks
from services.season_service import SeasonService
from services.standings_service import StandingsService
from services.team_service import TeamService

# Runs one full season (8 teams) against the configured database.
# Uses a far-future (year, period) so it never touches a real season; clean up with 99_cleanup_smoke.py.

async def main() -> None:
    cfg = load_config(require_token=False)

    run_id = os.getenv("SMOKE_RUN_ID") or f"smk_{uuid4().hex[:10]}"
    year = int(os.getenv("SMOKE_YEAR") or "2099")

    db = DbPool()
    await db.start(MySqlPoolConfig(**asdict(cfg.mysql)))
    await db.apply_schema()

    players = PlayerRepo(db)
    season_repo = SeasonRepo(db)
    team_repo = TeamRepo(db)
    match_repo = MatchRepo(db)

    locks = SeasonLocks()
    seasons = SeasonService(season_repo, regular_weeks=cfg.league.regular_weeks)
    teams = TeamService(season_repo, team_repo, players, locks=locks)
    schedule = ScheduleService(season_repo, team_repo, match_repo, locks=locks)
    standings = StandingsService(team_repo, match_repo)
    playoffs = PlayoffService(season_repo, team_repo, match_repo, standings, locks=locks, completion_rule=cfg.league.completion_rule)
    matches = MatchService(season_repo, match_repo, playoffs, locks=locks)

    season = await seasons.create_season(year=year, period="B", season_name=f"SMOKE {run_id}")

    ids = [await players.create_player(name=f"SMOKE_P{i:02d}_{run_id}") for i in range(16)]
    for i in range(0, 16, 2):
        await teams.create_team(season_id=season.season_id, player_a_id=ids[i], player_b_id=ids[i + 1])

    result = await schedule.generate_regular_schedule(season_id=season.season_id)
    assert result.created == season.regular_rounds * 4, result

    filled = await matches.fill_random_results(season_id=season.season_id, rng=random.Random(7))
    season = await seasons.get_season(season_id=season.season_id)
    assert season.status == SeasonStatus.PLAYOFFS, season.status

    for key in SERIES_ORDER:
        st = await playoffs.get_series_state(season_id=season.season_id, series_key=key)
        assert st is not None, key
        need = st.needed_wins
        await matches.submit_series_score(season_id=season.season_id, series_key=key, team_a_wins=need, team_b_wins=need - 1)

    season = await seasons.get_season(season_id=season.season_id)
    assert season.status == SeasonStatus.COMPLETE, season.status
    final = await playoffs.get_series_state(season_id=season.season_id, series_key=SERIES_ORDER[-1])

    await db.close()
    print(f"OK: league season smoke passed. run_id={run_id} season_id={season.season_id} regular_results={filled} champion={final.winner_name}")

if __name__ == "__main__":
    asyncio.run(main())
