from __future__ import annotations

import logging
from decimal import Decimal
from typing import FrozenSet, Protocol

from core.amounts import ZERO
from core.errors import EnrichmentFailure
from core.models import SOL_ADDRESS, STABLE_ADDRESSES

logger = logging.getLogger(__name__)


class NativePriceFeed(Protocol):
    def get_price(self) -> Decimal: ...


class TokenPriceSource(Protocol):
    def get_price_usd(self, token_address: str) -> Decimal: ...


class PriceOracle:
    """
    spot_price_usd(asset):
      SOL    -> cached native feed
      stable -> 1
      other  -> market data, 0 when the lookup fails
    """

    def __init__(
        self,
        native: NativePriceFeed,
        market: TokenPriceSource,
        stable_addresses: FrozenSet[str] = STABLE_ADDRESSES,
    ):
        self.native = native
        self.market = market
        self.stables = stable_addresses

    def spot_price_usd(self, asset_address: str) -> Decimal:
        try:
            if asset_address == SOL_ADDRESS:
                return self.native.get_price()
            if asset_address in self.stables:
                return Decimal(1)
            return self.market.get_price_usd(asset_address)
        except EnrichmentFailure as e:
            logger.warning("Price lookup failed for %s: %s", asset_address, e.message, extra={"token": asset_address})
            return ZERO
