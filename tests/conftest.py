"""
Pytest fixtures for the swap tracker. Storage tests use a temporary SQLite file.
"""

from __future__ import annotations

from dataclasses import replace
from typing import Any, Dict, Optional

import pytest

from core.config import load_settings
from core.store import TradeStore

WALLET = "Wa11etAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAA"
WALLET_B = "Wa11etBBBBBBBBBBBBBBBBBBBBBBBBBBBBBBBBBBBBB"
TOKEN = "MemeTokenMintxxxxxxxxxxxxxxxxxxxxxxxxxxxpump"

ENV_VARS = (
    "HELIUS_API_KEY",
    "HELIUS_AUTH_HEADER",
    "WEBHOOK_URL",
    "SHYFT_API_KEY",
    "RPC_ENDPOINT",
    "TELEGRAM_BOT_TOKEN",
    "TELEGRAM_CHAT_ID",
    "DATABASE_URL",
    "HTTP_TIMEOUT_SEC",
    "HTTP_RETRIES",
    "HTTP_BACKOFF",
    "SOL_PRICE_TTL_SEC",
    "SYMBOL_CACHE_TTL_DAYS",
    "ALERT_MIN_LIQUIDITY_USD",
    "ALERT_MIN_MARKET_CAP_USD",
    "ALERT_MAX_MARKET_CAP_USD",
    "ALERT_MAX_AGE_HOURS",
    "LAUNCH_POOL_SOURCES",
    "TRANSFER_DENY_ACCOUNTS",
    "TRANSFER_ALLOW_PROGRAMS",
    "LOG_LEVEL",
    "LOG_FORMAT",
)


class FakeClock:
    def __init__(self, t: float = 1_700_000_000.0):
        self.t = t

    def __call__(self) -> float:
        return self.t

    def advance(self, seconds: float) -> None:
        self.t += seconds


@pytest.fixture
def clean_env(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


@pytest.fixture
def settings(clean_env, tmp_path):
    return replace(load_settings(), database_url=f"sqlite:///{tmp_path / 'txs.db'}")


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store(tmp_path):
    s = TradeStore(f"sqlite:///{tmp_path / 'store.db'}")
    s.init_db()
    yield s
    s.dispose()


def helius_tx(
    signature: str = "sig-1",
    fee_payer: str = WALLET,
    swap: Optional[Dict[str, Any]] = None,
    timestamp: int = 1_700_000_000,
    **fields: Any,
) -> Dict[str, Any]:
    tx: Dict[str, Any] = {
        "signature": signature,
        "feePayer": fee_payer,
        "timestamp": timestamp,
        "type": "SWAP",
        "source": "JUPITER",
        "description": f"{fee_payer} swapped",
        "accountData": [{"account": fee_payer}],
        "events": {"swap": swap} if swap is not None else {},
    }
    tx.update(fields)
    return tx


def sol_buy_swap(lamports: str = "1000000000", token: str = TOKEN, raw: str = "5000000000", decimals: int = 6):
    return {
        "nativeInput": {"account": WALLET, "amount": lamports},
        "nativeOutput": None,
        "tokenInputs": [],
        "tokenOutputs": [{"mint": token, "rawTokenAmount": {"tokenAmount": raw, "decimals": decimals}}],
    }


def token_sell_swap(raw: str = "2000000000", decimals: int = 6, lamports: str = "500000000", token: str = TOKEN):
    return {
        "nativeInput": None,
        "nativeOutput": {"account": WALLET, "amount": lamports},
        "tokenInputs": [{"mint": token, "rawTokenAmount": {"tokenAmount": raw, "decimals": decimals}}],
        "tokenOutputs": [],
    }


@pytest.fixture
def make_tx():
    return helius_tx


@pytest.fixture
def buy_swap():
    return sol_buy_swap


@pytest.fixture
def sell_swap():
    return token_sell_swap
