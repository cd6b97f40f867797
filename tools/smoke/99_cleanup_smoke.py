from __future__ import annotations

import os, sys
from dataclasses import asdict

HERE = os.path.dirname(__file__)
ROOT = os.path.abspath(os.path.join(HERE, "..", ".."))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

import asyncio
from config import load_config
from db.pool import DbPool, MySqlPoolConfig
from db.tx import get_cursor

async def main() -> None:
    cfg = load_config(require_token=False)

    run_id = os.getenv("SMOKE_RUN_ID")
    if not run_id:
        raise RuntimeError("Set SMOKE_RUN_ID to the run_id you want to clean up.")

    db = DbPool()
    await db.start(MySqlPoolConfig(**asdict(cfg.mysql)))

    season_name = f"SMOKE {run_id}"
    player_like = f"SMOKE\\_P%\\_{run_id}"

    # Delete in FK-safe order
    statements = [
        ("DELETE m FROM league_match m JOIN league_season s ON s.season_id=m.season_id WHERE s.season_name=%s;", (season_name,)),
        ("DELETE t FROM league_team t JOIN league_season s ON s.season_id=t.season_id WHERE s.season_name=%s;", (season_name,)),
        ("DELETE FROM league_season WHERE season_name=%s;", (season_name,)),
        ("DELETE FROM league_player WHERE name LIKE %s;", (player_like,)),
    ]

    async with get_cursor(db.pool, dict_rows=False) as cur:
        for sql, params in statements:
            await cur.execute(sql, params)
            print(f"OK: {cur.rowcount} rows affected")

    await db.close()
    print(f"OK: cleanup done for run_id={run_id}")

if __name__ == "__main__":
    asyncio.run(main())
