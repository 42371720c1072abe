from __future__ import annotations

import logging
from decimal import Decimal
from typing import Optional

import requests

from core.amounts import to_decimal

logger = logging.getLogger(__name__)

DEFAULT_SUPPLY = Decimal(1_000_000_000)


class SolanaSupplyClient:
    """Token total supply via JSON-RPC getTokenSupply. Falls back to 1B on any failure."""

    def __init__(
        self,
        rpc_endpoint: str,
        session: Optional[requests.Session] = None,
        timeout_sec: float = 10.0,
        default: Decimal = DEFAULT_SUPPLY,
    ):
        self.rpc_endpoint = rpc_endpoint
        self.session = session or requests.Session()
        self.timeout = timeout_sec
        self.default = default
        self._request_id = 0

    def total_supply(self, token_address: str) -> Decimal:
        if not self.rpc_endpoint:
            logger.warning("RPC endpoint missing, using default supply", extra={"token": token_address})
            return self.default

        self._request_id += 1
        body = {
            "jsonrpc": "2.0",
            "id": self._request_id,
            "method": "getTokenSupply",
            "params": [token_address, {"commitment": "confirmed"}],
        }
        try:
            r = self.session.post(self.rpc_endpoint, json=body, timeout=self.timeout)
            r.raise_for_status()
            data = r.json()
        except (requests.RequestException, ValueError) as e:
            logger.warning("getTokenSupply failed for %s: %s", token_address, e, extra={"token": token_address})
            return self.default

        result = data.get("result") if isinstance(data, dict) else None
        value = result.get("value") if isinstance(result, dict) else None
        if not isinstance(value, dict):
            logger.warning("getTokenSupply returned no value for %s", token_address, extra={"token": token_address})
            return self.default

        supply = to_decimal(value.get("uiAmountString"))
        return supply if supply > 0 else self.default
