from __future__ import annotations

import logging
import threading
import time
from decimal import Decimal
from typing import Callable, Optional

from core.errors import EnrichmentFailure
from core.models import SOL_ADDRESS
from enrich.dexscreener import DexscreenerClient

logger = logging.getLogger(__name__)


class SolPriceCache:
    """
    SOL/USD with a TTL. When a refresh fails the last known price is returned;
    with no price at all the failure propagates.
    """

    def __init__(
        self,
        dexscreener: DexscreenerClient,
        ttl_seconds: int = 600,
        clock: Callable[[], float] = time.time,
    ):
        self.dex = dexscreener
        self.ttl = ttl_seconds
        self.clock = clock
        self.price: Optional[Decimal] = None
        self.last_update = 0.0
        self._lock = threading.Lock()

    def get_price(self) -> Decimal:
        now = self.clock()
        with self._lock:
            cached, updated = self.price, self.last_update
        if cached and (now - updated) < self.ttl:
            return cached

        # network call happens outside the lock; the newest fetch wins
        try:
            price = self.dex.get_price_usd(SOL_ADDRESS)
            if not price:
                raise EnrichmentFailure("dexscreener returned no SOL price")
        except EnrichmentFailure as e:
            if cached:
                logger.warning("SOL price refresh failed, using cached %s: %s", cached, e.message)
                return cached
            raise

        with self._lock:
            if now >= self.last_update:
                self.price = price
                self.last_update = now
        return price
