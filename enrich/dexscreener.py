from __future__ import annotations

import logging
import threading
import time
from decimal import Decimal
from typing import Any, Dict, List, Optional

import requests

from core.amounts import to_decimal
from core.errors import EnrichmentFailure, TokenNotFound
from core.models import TokenSnapshot

logger = logging.getLogger(__name__)


class DexscreenerClient:
    """
    Official endpoints (docs):
      - GET https://api.dexscreener.com/tokens/v1/{chainId}/{tokenAddresses}
      - Rate limit for pairs endpoints: 300 req/min
    """
    BASE = "https://api.dexscreener.com"

    def __init__(
        self,
        session: Optional[requests.Session] = None,
        ttl_seconds: int = 45,
        timeout_sec: float = 10.0,
    ):
        self.ttl = ttl_seconds
        self.timeout = timeout_sec
        self.cache: Dict[str, tuple[float, Any]] = {}
        self._lock = threading.Lock()
        self.session = session or requests.Session()

    def _cache_get(self, key: str) -> Optional[Any]:
        with self._lock:
            item = self.cache.get(key)
            if not item:
                return None
            ts, val = item
            if (time.time() - ts) > self.ttl:
                self.cache.pop(key, None)
                return None
            return val

    def _cache_set(self, key: str, val: Any) -> None:
        with self._lock:
            self.cache[key] = (time.time(), val)

    def _fetch_pairs(self, chain_id: str, token_address: str) -> List[Dict[str, Any]]:
        url = f"{self.BASE}/tokens/v1/{chain_id}/{token_address}"
        try:
            r = self.session.get(url, timeout=self.timeout)
        except requests.RequestException as e:
            raise EnrichmentFailure(f"dexscreener request failed: {e}", {"token": token_address}) from e
        if r.status_code == 429:
            raise EnrichmentFailure("dexscreener rate limited", {"token": token_address})
        if r.status_code >= 400:
            raise EnrichmentFailure(
                f"dexscreener HTTP {r.status_code}",
                {"token": token_address, "status": r.status_code},
            )
        try:
            pairs = r.json() or []
        except ValueError as e:
            raise EnrichmentFailure("dexscreener returned invalid JSON", {"token": token_address}) from e
        return [p for p in pairs if isinstance(p, dict)] if isinstance(pairs, list) else []

    def get_best_pair(self, chain_id: str, token_address: str) -> Dict[str, Any]:
        """
        Returns the pair with highest liquidity.usd where the token is the base token
        (any pair if none). Raises TokenNotFound when no pair exists.
        """
        token_address = token_address.strip()
        if not token_address:
            raise TokenNotFound("empty token address")

        key = f"pairs:{chain_id}:{token_address}"
        cached = self._cache_get(key)
        if cached is not None:
            return cached

        pairs = self._fetch_pairs(chain_id, token_address)
        if not pairs:
            raise TokenNotFound("token info not found", {"token": token_address})

        def liq_usd(p: Dict[str, Any]) -> Decimal:
            return to_decimal((p.get("liquidity") or {}).get("usd"))

        as_base = [p for p in pairs if (p.get("baseToken") or {}).get("address") == token_address]
        best = max(as_base or pairs, key=liq_usd)
        self._cache_set(key, best)
        return best

    def get_token_snapshot(self, chain_id: str, token_address: str) -> TokenSnapshot:
        return snapshot_from_pair(self.get_best_pair(chain_id, token_address), token_address)

    def get_price_usd(self, token_address: str, chain_id: str = "solana") -> Decimal:
        pair = self.get_best_pair(chain_id, token_address)
        return to_decimal(pair.get("priceUsd"))


def snapshot_from_pair(pair: Dict[str, Any], token_address: str = "") -> TokenSnapshot:
    base = pair.get("baseToken") or {}
    volume = pair.get("volume") or {}
    change = pair.get("priceChange") or {}
    info = pair.get("info") or {}

    website = None
    websites = info.get("websites") or []
    if websites and isinstance(websites[0], dict):
        website = websites[0].get("url")

    twitter = None
    for s in (info.get("socials") or []):
        if isinstance(s, dict) and s.get("type") == "twitter":
            twitter = s.get("url")
            break

    created_ms = to_decimal(pair.get("pairCreatedAt"))

    return TokenSnapshot(
        address=base.get("address") or token_address,
        name=base.get("name") or "Unknown",
        symbol=base.get("symbol") or "",
        chain=pair.get("chainId") or "solana",
        price_usd=to_decimal(pair.get("priceUsd")),
        market_cap_usd=to_decimal(pair.get("marketCap") or pair.get("fdv")),
        liquidity_usd=to_decimal((pair.get("liquidity") or {}).get("usd")),
        volume_h24=to_decimal(volume.get("h24")),
        volume_h6=to_decimal(volume.get("h6")),
        volume_h1=to_decimal(volume.get("h1")),
        change_h6=to_decimal(change.get("h6")),
        created_at=int(created_ms // 1000),
        pair_url=pair.get("url") or "",
        website=website,
        twitter=twitter,
    )
