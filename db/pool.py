# db/pool.py
from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import aiomysql

from db.tx import split_sql_script, transaction

log = logging.getLogger(__name__)

SCHEMA_PATH = Path(__file__).resolve().parent / "schema.sql"


@dataclass(frozen=True)
class MySqlPoolConfig:
    host: str
    port: int
    user: str
    password: str
    database: str
    minsize: int = 1
    maxsize: int = 5
    connect_timeout: int = 10


class DbPool:
    """
    Owns the aiomysql pool for the league.
    - start() once at boot, shared by every repository
    - close() on shutdown
    """

    def __init__(self) -> None:
        self._pool: Optional[aiomysql.Pool] = None

    @property
    def pool(self) -> aiomysql.Pool:
        if self._pool is None:
            raise RuntimeError("DB pool is not initialized. Call await DbPool.start() first.")
        return self._pool

    async def start(self, cfg: MySqlPoolConfig) -> None:
        if self._pool is not None:
            return

        self._pool = await aiomysql.create_pool(
            host=cfg.host,
            port=cfg.port,
            user=cfg.user,
            password=cfg.password,
            db=cfg.database,
            minsize=cfg.minsize,
            maxsize=cfg.maxsize,
            connect_timeout=cfg.connect_timeout,
            autocommit=True,
            charset="utf8mb4",
        )
        await self.ping()
        log.info("DB pool ready (%s@%s:%s/%s)", cfg.user, cfg.host, cfg.port, cfg.database)

    async def ping(self) -> None:
        async with self.pool.acquire() as conn:
            async with conn.cursor() as cur:
                await cur.execute("SELECT 1;")
                await cur.fetchone()

    async def apply_schema(self, path: Path = SCHEMA_PATH) -> int:
        """
        Runs every statement of the schema file in one transaction.
        Statements are CREATE TABLE IF NOT EXISTS, so this is safe to repeat.
        Returns the number of statements executed.
        """
        statements = split_sql_script(path.read_text(encoding="utf-8"))
        async with transaction(self.pool, dict_rows=False) as (_conn, cur):
            for stmt in statements:
                await cur.execute(stmt)
        log.info("Applied %d schema statements from %s", len(statements), path.name)
        return len(statements)

    async def close(self) -> None:
        if self._pool is None:
            return
        self._pool.close()
        await self._pool.wait_closed()
        self._pool = None
