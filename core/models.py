from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Optional

from core.amounts import to_decimal
from core.errors import IncompleteSwapData

SOL_ADDRESS = "So11111111111111111111111111111111111111112"   # wSOL, stands in for native SOL
USDC_ADDRESS = "EPjFWdd5AufqSSqeM2qN1xzybapC8G4wEGGkZwyTDt1v"
USDT_ADDRESS = "Es9vMFrzaCERmJfrF4H2FYD4KCoNkY11McCe8BenwNYB"

STABLE_ADDRESSES = frozenset({USDC_ADDRESS, USDT_ADDRESS})
QUOTE_ADDRESSES = frozenset({SOL_ADDRESS}) | STABLE_ADDRESSES

# must be non-empty / non-zero on every stored trade; amounts also > 0
REQUIRED_FIELDS = (
    "account",
    "token_in_address",
    "token_in_amount",
    "token_out_address",
    "token_out_amount",
)
AMOUNT_FIELDS = ("token_in_amount", "token_out_amount")


@dataclass(frozen=True)
class CanonicalTrade:
    """One wallet swapping token_in for token_out. Amounts are UI units."""
    account: str
    token_in_address: str
    token_in_amount: Decimal
    token_out_address: str
    token_out_amount: Decimal
    timestamp: int              # unix seconds
    signature: str = ""
    description: Optional[str] = None

    def __post_init__(self) -> None:
        missing = [name for name in REQUIRED_FIELDS if not getattr(self, name)]
        # amounts must be finite and strictly positive
        missing += [
            name for name in AMOUNT_FIELDS
            if name not in missing and to_decimal(getattr(self, name)) <= 0
        ]
        if missing:
            raise IncompleteSwapData(
                "data is incomplete",
                details={"signature": self.signature, "missing": missing},
            )

    @property
    def is_buy(self) -> bool:
        # bought something that is not SOL or a stable
        return self.token_out_address not in QUOTE_ADDRESSES


@dataclass(frozen=True)
class WalletAggregate:
    account: str
    total_buy_cost: Decimal         # USD
    total_buy_amount: Decimal
    total_sell_amount: Decimal
    average_buy_price: Decimal
    average_market_cap: Decimal
    holds_percentage: Decimal       # 0..100
    last_buy_timestamp: int
    buy_time: str                   # "5m ago"
    wallet_name: str = "Unknown"


@dataclass(frozen=True)
class TokenSnapshot:
    """Best pair for a token as reported by the market data provider."""
    address: str
    name: str
    symbol: str
    chain: str
    price_usd: Decimal
    market_cap_usd: Decimal
    liquidity_usd: Decimal
    volume_h24: Decimal
    volume_h6: Decimal
    volume_h1: Decimal
    change_h6: Decimal
    created_at: int             # unix seconds, 0 if unknown
    pair_url: str = ""
    website: Optional[str] = None
    twitter: Optional[str] = None
