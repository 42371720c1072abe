import threading
from decimal import Decimal
from unittest.mock import MagicMock

import pytest
import requests

from conftest import TOKEN, FakeClock
from core.errors import EnrichmentFailure, TokenNotFound
from core.models import SOL_ADDRESS, USDC_ADDRESS
from enrich.dexscreener import DexscreenerClient, snapshot_from_pair
from enrich.prices import PriceOracle
from enrich.sol_price import SolPriceCache
from enrich.supply import DEFAULT_SUPPLY, SolanaSupplyClient


def pair(base=TOKEN, liquidity=1000, price="0.01", **extra):
    p = {
        "chainId": "solana",
        "url": f"https://dexscreener.com/solana/{base}-{liquidity}",
        "baseToken": {"address": base, "name": "Meme Coin", "symbol": "MEME"},
        "quoteToken": {"address": SOL_ADDRESS, "symbol": "SOL"},
        "priceUsd": price,
        "liquidity": {"usd": liquidity},
        "volume": {"h24": 5000, "h6": 1000, "h1": 200},
        "priceChange": {"h6": -4.5},
        "marketCap": 250000,
        "pairCreatedAt": 1_700_000_000_123,
    }
    p.update(extra)
    return p


def dex_session(status=200, body=None):
    session = MagicMock()
    session.get.return_value.status_code = status
    session.get.return_value.json.return_value = body
    return session


# -------- dexscreener --------

def test_best_pair_prefers_token_as_base_then_liquidity():
    body = [pair(liquidity=1000), pair(base="Other", liquidity=10**9), pair(liquidity=5000)]
    client = DexscreenerClient(session=dex_session(body=body))
    assert client.get_best_pair("solana", TOKEN)["liquidity"]["usd"] == 5000


def test_best_pair_is_cached():
    session = dex_session(body=[pair()])
    client = DexscreenerClient(session=session)
    client.get_best_pair("solana", TOKEN)
    client.get_best_pair("solana", TOKEN)
    assert session.get.call_count == 1
    assert session.get.call_args[0][0] == f"https://api.dexscreener.com/tokens/v1/solana/{TOKEN}"


def test_no_pairs_is_token_not_found():
    client = DexscreenerClient(session=dex_session(body=[]))
    with pytest.raises(TokenNotFound):
        client.get_token_snapshot("solana", TOKEN)


@pytest.mark.parametrize("status", [429, 500])
def test_http_errors_are_enrichment_failures(status):
    client = DexscreenerClient(session=dex_session(status=status))
    with pytest.raises(EnrichmentFailure):
        client.get_best_pair("solana", TOKEN)


def test_invalid_json_is_enrichment_failure():
    session = dex_session()
    session.get.return_value.json.side_effect = ValueError("not json")
    with pytest.raises(EnrichmentFailure):
        DexscreenerClient(session=session).get_best_pair("solana", TOKEN)


def test_snapshot_from_pair():
    info = {
        "websites": [{"label": "Website", "url": "https://meme.example"}],
        "socials": [{"type": "telegram", "url": "https://t.me/meme"}, {"type": "twitter", "url": "https://x.com/meme"}],
    }
    snap = snapshot_from_pair(pair(info=info), TOKEN)
    assert snap.symbol == "MEME"
    assert snap.price_usd == Decimal("0.01")
    assert snap.market_cap_usd == Decimal(250000)
    assert snap.liquidity_usd == Decimal(1000)
    assert snap.change_h6 == Decimal("-4.5")
    assert snap.created_at == 1_700_000_000
    assert snap.website == "https://meme.example"
    assert snap.twitter == "https://x.com/meme"


def test_snapshot_falls_back_to_fdv():
    p = pair(fdv=99000)
    del p["marketCap"]
    assert snapshot_from_pair(p, TOKEN).market_cap_usd == Decimal(99000)


# -------- sol price --------

class FlakyDex:
    def __init__(self, prices):
        self.prices = list(prices)
        self.calls = 0

    def get_price_usd(self, token_address, chain_id="solana"):
        assert token_address == SOL_ADDRESS
        self.calls += 1
        p = self.prices.pop(0)
        if isinstance(p, Exception):
            raise p
        return p


def test_sol_price_cached_within_ttl():
    clock = FakeClock()
    dex = FlakyDex([Decimal(150), Decimal(160)])
    cache = SolPriceCache(dex, ttl_seconds=600, clock=clock)

    assert cache.get_price() == Decimal(150)
    clock.advance(599)
    assert cache.get_price() == Decimal(150)
    clock.advance(2)
    assert cache.get_price() == Decimal(160)
    assert dex.calls == 2


def test_sol_price_stale_on_refresh_failure():
    clock = FakeClock()
    dex = FlakyDex([Decimal(150), EnrichmentFailure("down")])
    cache = SolPriceCache(dex, ttl_seconds=600, clock=clock)
    cache.get_price()
    clock.advance(601)
    assert cache.get_price() == Decimal(150)


def test_sol_price_failure_without_cache_propagates():
    cache = SolPriceCache(FlakyDex([EnrichmentFailure("down")]), clock=FakeClock())
    with pytest.raises(EnrichmentFailure):
        cache.get_price()


class BlockingDex:
    def __init__(self):
        self.entered = threading.Event()
        self.release = threading.Event()

    def get_price_usd(self, token_address, chain_id="solana"):
        self.entered.set()
        self.release.wait(5)
        return Decimal(170)


def test_sol_price_refresh_does_not_hold_lock():
    dex = BlockingDex()
    cache = SolPriceCache(dex, clock=FakeClock())
    refresher = threading.Thread(target=cache.get_price)
    refresher.start()
    assert dex.entered.wait(5)

    acquired = cache._lock.acquire(timeout=1)
    if acquired:
        cache._lock.release()
    dex.release.set()
    refresher.join(timeout=5)

    assert acquired
    assert cache.get_price() == Decimal(170)


# -------- oracle --------

class StaticNative:
    def get_price(self):
        return Decimal(150)


class FailingMarket:
    def get_price_usd(self, token_address):
        raise TokenNotFound("no pair")


def test_oracle_routes_by_asset():
    market = MagicMock()
    market.get_price_usd.return_value = Decimal("0.02")
    oracle = PriceOracle(StaticNative(), market)

    assert oracle.spot_price_usd(SOL_ADDRESS) == Decimal(150)
    assert oracle.spot_price_usd(USDC_ADDRESS) == Decimal(1)
    assert oracle.spot_price_usd(TOKEN) == Decimal("0.02")
    market.get_price_usd.assert_called_once_with(TOKEN)


def test_oracle_lookup_failure_is_zero():
    assert PriceOracle(StaticNative(), FailingMarket()).spot_price_usd(TOKEN) == Decimal(0)


# -------- supply --------

def test_supply_from_rpc():
    session = MagicMock()
    session.post.return_value.json.return_value = {
        "jsonrpc": "2.0",
        "result": {"value": {"amount": "999999999500000", "decimals": 6, "uiAmountString": "999999999.5"}},
    }
    client = SolanaSupplyClient("https://rpc.example", session=session)

    assert client.total_supply(TOKEN) == Decimal("999999999.5")
    body = session.post.call_args[1]["json"]
    assert body["method"] == "getTokenSupply"
    assert body["params"][0] == TOKEN


def test_supply_defaults_on_failure():
    session = MagicMock()
    session.post.side_effect = requests.ConnectionError("down")
    assert SolanaSupplyClient("https://rpc.example", session=session).total_supply(TOKEN) == DEFAULT_SUPPLY


def test_supply_defaults_on_rpc_error_body():
    session = MagicMock()
    session.post.return_value.json.return_value = {"error": {"code": -32602, "message": "Invalid param"}}
    assert SolanaSupplyClient("https://rpc.example", session=session).total_supply(TOKEN) == DEFAULT_SUPPLY


@pytest.mark.parametrize(
    "body",
    ["Too many requests", {"result": {"value": 5}}, {"result": "oops"}, [], None],
)
def test_supply_defaults_on_malformed_body(body):
    session = MagicMock()
    session.post.return_value.json.return_value = body
    assert SolanaSupplyClient("https://rpc.example", session=session).total_supply(TOKEN) == DEFAULT_SUPPLY


def test_supply_without_endpoint_skips_request():
    session = MagicMock()
    assert SolanaSupplyClient("", session=session).total_supply(TOKEN) == Decimal(1_000_000_000)
    session.post.assert_not_called()
