from __future__ import annotations

import os
from dataclasses import dataclass
from typing import FrozenSet

# ============================================================
# DEFAULTS
# ============================================================

PUMP_FUN_SOURCE = "PUMP_FUN"
PUMP_FUN_AUTHORITY = "6EF8rrecthR5Dkzon8Nwu78hRvfCKubJ14M5uBEwF6P"

PUMP_AMM_PROGRAM = "pAMMBay6oceH9fJKBRHGP5D4bD4sWpmSwMn52FMfXEA"
METEORA_DLMM_PROGRAM = "LBUZKhRxPF3XUpBCjp4YzTKgLccjZhTSDM9YuVaPwxo"
JUPITER_V6_PROGRAM = "JUP6LkbZbjS1jKKwapdHNy74zcZ3tLUZoi5QNyVTaV4"

DEFAULT_RPC_ENDPOINT = "https://api.mainnet-beta.solana.com"
DEFAULT_DATABASE_URL = "sqlite:///txs.db"


def _get_env(name: str, default: str) -> str:
    v = os.getenv(name, "").strip()
    return v if v else default


def _get_int(name: str, default: int) -> int:
    v = _get_env(name, str(default))
    try:
        return int(v)
    except ValueError as e:
        raise RuntimeError(f"{name} must be an integer.") from e


def _get_float(name: str, default: float) -> float:
    v = _get_env(name, str(default))
    try:
        return float(v)
    except ValueError as e:
        raise RuntimeError(f"{name} must be a number.") from e


def _get_set(name: str, default: str) -> FrozenSet[str]:
    v = _get_env(name, default)
    return frozenset(p.strip() for p in v.split(",") if p.strip())


@dataclass(frozen=True)
class Settings:
    helius_api_key: str
    helius_auth_header: str
    webhook_url: str
    shyft_api_key: str
    rpc_endpoint: str

    telegram_bot_token: str
    telegram_chat_id: str

    database_url: str

    http_timeout_sec: float
    http_retries: int
    http_backoff: float

    sol_price_ttl_sec: int
    symbol_cache_ttl_days: float

    alert_min_liquidity_usd: float
    alert_min_market_cap_usd: float
    alert_max_market_cap_usd: float     # 0 = no cap
    alert_max_age_hours: float          # 0 = no limit

    launch_pool_sources: FrozenSet[str]
    transfer_deny_accounts: FrozenSet[str]
    transfer_allow_programs: FrozenSet[str]

    log_level: str
    log_format: str

    @property
    def telegram_enabled(self) -> bool:
        return bool(self.telegram_bot_token and self.telegram_chat_id)


def load_settings() -> Settings:
    helius_api_key = _get_env("HELIUS_API_KEY", "")
    auth_default = f"Bearer {helius_api_key}" if helius_api_key else ""

    return Settings(
        helius_api_key=helius_api_key,
        helius_auth_header=_get_env("HELIUS_AUTH_HEADER", auth_default),
        webhook_url=_get_env("WEBHOOK_URL", ""),
        shyft_api_key=_get_env("SHYFT_API_KEY", ""),
        rpc_endpoint=_get_env("RPC_ENDPOINT", DEFAULT_RPC_ENDPOINT),
        telegram_bot_token=_get_env("TELEGRAM_BOT_TOKEN", ""),
        telegram_chat_id=_get_env("TELEGRAM_CHAT_ID", ""),
        database_url=_get_env("DATABASE_URL", DEFAULT_DATABASE_URL),
        http_timeout_sec=_get_float("HTTP_TIMEOUT_SEC", 10.0),
        http_retries=_get_int("HTTP_RETRIES", 3),
        http_backoff=_get_float("HTTP_BACKOFF", 0.5),
        sol_price_ttl_sec=_get_int("SOL_PRICE_TTL_SEC", 600),
        symbol_cache_ttl_days=_get_float("SYMBOL_CACHE_TTL_DAYS", 3.0),
        alert_min_liquidity_usd=_get_float("ALERT_MIN_LIQUIDITY_USD", 10000.0),
        alert_min_market_cap_usd=_get_float("ALERT_MIN_MARKET_CAP_USD", 0.0),
        alert_max_market_cap_usd=_get_float("ALERT_MAX_MARKET_CAP_USD", 0.0),
        alert_max_age_hours=_get_float("ALERT_MAX_AGE_HOURS", 0.0),
        launch_pool_sources=_get_set("LAUNCH_POOL_SOURCES", PUMP_FUN_SOURCE),
        transfer_deny_accounts=_get_set("TRANSFER_DENY_ACCOUNTS", PUMP_FUN_AUTHORITY),
        transfer_allow_programs=_get_set(
            "TRANSFER_ALLOW_PROGRAMS",
            ",".join((PUMP_AMM_PROGRAM, METEORA_DLMM_PROGRAM, JUPITER_V6_PROGRAM)),
        ),
        log_level=_get_env("LOG_LEVEL", "INFO").upper(),
        log_format=_get_env("LOG_FORMAT", "json").lower(),
    )
