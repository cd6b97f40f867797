# config.py
from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

from dotenv import load_dotenv

from domain.enums import CompletionRule
from domain.models import DEFAULT_REGULAR_WEEKS


def _maybe_load_env_file() -> None:
    """
    Load .env from the project root (same folder as this config.py).
    Never overwrites already-set environment variables.
    """
    dotenv_path = Path(__file__).resolve().parent / ".env"
    if dotenv_path.exists():
        load_dotenv(dotenv_path=dotenv_path, override=False)


@dataclass(frozen=True)
class MySqlConfig:
    host: str
    port: int
    user: str
    password: str
    database: str
    minsize: int = 1
    maxsize: int = 5
    connect_timeout: int = 10


@dataclass(frozen=True)
class LeagueConfig:
    regular_weeks: int = DEFAULT_REGULAR_WEEKS
    completion_rule: CompletionRule = CompletionRule.ALL_MATCHES


@dataclass(frozen=True)
class BotConfig:
    token: str
    dev_guild_id: int | None
    command_prefix: str
    log_level: str
    mysql: MySqlConfig
    league: LeagueConfig = field(default_factory=LeagueConfig)


def _getenv(name: str, default: str | None = None) -> str | None:
    v = os.getenv(name)
    if v is None:
        return default
    v = v.strip()
    return v if v else default


def _int_or_none(value: str | None, var_name: str) -> int | None:
    if value is None:
        return None
    try:
        return int(value)
    except ValueError as e:
        raise ValueError(f"{var_name} must be an integer, got: {value!r}") from e


def _int(value: str | None, var_name: str, default: int) -> int:
    if value is None:
        return default
    try:
        return int(value)
    except ValueError as e:
        raise ValueError(f"{var_name} must be an integer, got: {value!r}") from e


def load_league_config() -> LeagueConfig:
    weeks = _int(_getenv("LEAGUE_REGULAR_WEEKS"), "LEAGUE_REGULAR_WEEKS", DEFAULT_REGULAR_WEEKS)
    if weeks < 1:
        raise ValueError("LEAGUE_REGULAR_WEEKS must be >= 1")

    raw_rule = (_getenv("LEAGUE_COMPLETION_RULE", CompletionRule.ALL_MATCHES.value) or "").lower()
    try:
        rule = CompletionRule(raw_rule)
    except ValueError as e:
        allowed = ", ".join(r.value for r in CompletionRule)
        raise ValueError(f"LEAGUE_COMPLETION_RULE must be one of: {allowed}; got: {raw_rule!r}") from e

    return LeagueConfig(regular_weeks=weeks, completion_rule=rule)


def load_mysql_config() -> MySqlConfig:
    minsize = _int(_getenv("DB_POOL_MIN"), "DB_POOL_MIN", 1)
    maxsize = _int(_getenv("DB_POOL_MAX"), "DB_POOL_MAX", 5)
    if minsize < 1:
        raise ValueError("DB_POOL_MIN must be >= 1")
    if maxsize < minsize:
        raise ValueError("DB_POOL_MAX must be >= DB_POOL_MIN")

    return MySqlConfig(
        host=_getenv("DB_HOST", "127.0.0.1") or "127.0.0.1",
        port=_int(_getenv("DB_PORT"), "DB_PORT", 3306),
        user=_getenv("DB_USER", "root") or "root",
        password=_getenv("DB_PASSWORD", "") or "",
        database=_getenv("DB_NAME", "pool_league") or "pool_league",
        minsize=minsize,
        maxsize=maxsize,
        connect_timeout=_int(_getenv("DB_CONNECT_TIMEOUT"), "DB_CONNECT_TIMEOUT", 10),
    )


def load_config(*, require_token: bool = True) -> BotConfig:
    _maybe_load_env_file()

    token = (_getenv("DISCORD_TOKEN") or "").strip()
    if require_token and not token:
        raise RuntimeError("Missing DISCORD_TOKEN environment variable.")

    return BotConfig(
        token=token,
        dev_guild_id=_int_or_none(_getenv("DEV_GUILD_ID"), "DEV_GUILD_ID"),
        command_prefix=_getenv("COMMAND_PREFIX", "!") or "!",
        log_level=(_getenv("LOG_LEVEL", "INFO") or "INFO").upper(),
        mysql=load_mysql_config(),
        league=load_league_config(),
    )
