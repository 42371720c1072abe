from __future__ import annotations

import logging
import time
from collections import OrderedDict
from dataclasses import replace
from decimal import Decimal
from typing import Callable, Dict, Iterable, List, Protocol

from sqlalchemy.exc import SQLAlchemyError

from core.amounts import ZERO
from core.models import CanonicalTrade, WalletAggregate

logger = logging.getLogger(__name__)

UNKNOWN_WALLET = "Unknown"


class TradeSource(Protocol):
    def query_by_token(self, token_address: str) -> List[CanonicalTrade]: ...

    def query_wallet_names(self, addresses: Iterable[str]) -> Dict[str, str]: ...


class PriceSource(Protocol):
    def spot_price_usd(self, asset_address: str) -> Decimal: ...


class SupplySource(Protocol):
    def total_supply(self, token_address: str) -> Decimal: ...


def format_time_ago(timestamp: int, now: int) -> str:
    diff = max(0, int(now) - int(timestamp))
    minute = 60
    hour = minute * 60
    day = hour * 24

    if diff < minute:
        return f"{diff}s ago"
    if diff < hour:
        return f"{diff // minute}m ago"
    if diff < day:
        return f"{diff // hour}h ago"
    return f"{diff // day}d ago"


def group_by_account(trades: Iterable[CanonicalTrade]) -> "OrderedDict[str, List[CanonicalTrade]]":
    grouped: "OrderedDict[str, List[CanonicalTrade]]" = OrderedDict()
    for tx in trades:
        grouped.setdefault(tx.account, []).append(tx)
    return grouped


class WalletActivityAnalyzer:
    """
    Per-wallet buy/sell/hold stats for every tracked wallet that bought a token.

    A buy is a trade whose output leg is the token, a sell one whose input leg is.
    Cost of a buy is price(input asset) * input amount, priced now.
    """

    def __init__(
        self,
        trades: TradeSource,
        prices: PriceSource,
        supply: SupplySource,
        clock: Callable[[], float] = time.time,
    ):
        self.trades = trades
        self.prices = prices
        self.supply = supply
        self.clock = clock

    def analyze_token(self, token_address: str) -> "OrderedDict[str, WalletAggregate]":
        trades = self.trades.query_by_token(token_address)
        return self.analyze_trades(trades, token_address)

    def analyze_trades(
        self,
        trades: Iterable[CanonicalTrade],
        token_address: str,
    ) -> "OrderedDict[str, WalletAggregate]":
        ordered = sorted(trades, key=lambda t: t.timestamp)
        by_account = group_by_account(ordered)

        # wallets in the order their first buy appears
        first_buy: Dict[str, int] = {}
        for i, tx in enumerate(ordered):
            if tx.token_out_address == token_address:
                first_buy.setdefault(tx.account, i)
        accounts = sorted(first_buy, key=first_buy.__getitem__)

        if not accounts:
            return OrderedDict()

        total_supply = self.supply.total_supply(token_address)
        now = int(self.clock())
        result: "OrderedDict[str, WalletAggregate]" = OrderedDict()

        for account in accounts:
            txs = by_account[account]
            buys = [tx for tx in txs if tx.token_out_address == token_address]
            sells = [tx for tx in txs if tx.token_in_address == token_address]

            cost = ZERO
            bought = ZERO
            last_buy = 0
            for tx in buys:
                price = self.prices.spot_price_usd(tx.token_in_address)
                cost += price * tx.token_in_amount
                bought += tx.token_out_amount
                last_buy = max(last_buy, tx.timestamp)

            sold = sum((tx.token_in_amount for tx in sells), ZERO)

            remaining = max(ZERO, bought - sold)
            holds_pct = remaining / bought * 100 if bought else ZERO
            avg_price = cost / bought if bought else ZERO

            result[account] = WalletAggregate(
                account=account,
                total_buy_cost=cost,
                total_buy_amount=bought,
                total_sell_amount=sold,
                average_buy_price=avg_price,
                average_market_cap=avg_price * total_supply,
                holds_percentage=holds_pct,
                last_buy_timestamp=last_buy,
                buy_time=format_time_ago(last_buy, now),
            )

        names = self._wallet_names(list(result))
        for account, agg in result.items():
            result[account] = replace(agg, wallet_name=names.get(account) or UNKNOWN_WALLET)
        return result

    def _wallet_names(self, addresses: List[str]) -> Dict[str, str]:
        try:
            return self.trades.query_wallet_names(addresses)
        except SQLAlchemyError as e:
            logger.warning("Wallet name lookup failed: %s", e)
            return {}
