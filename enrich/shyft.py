from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Dict, Optional

import requests

from core.amounts import to_decimal
from core.errors import NoSwapAction, ParseUnavailable
from core.models import CanonicalTrade

logger = logging.getLogger(__name__)


def iso_to_epoch(value: str) -> int:
    """'2024-05-01T12:00:00.000Z' -> unix seconds."""
    v = value.strip()
    if v.endswith("Z"):
        v = v[:-1] + "+00:00"
    return int(datetime.fromisoformat(v).timestamp())


def find_swap_action(result: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    for action in (result.get("actions") or []):
        if not isinstance(action, dict):
            continue
        info = action.get("info")
        if isinstance(info, dict) and isinstance(info.get("tokens_swapped"), dict):
            return action
    return None


class ShyftParser:
    """
    Re-parses a transaction by signature when the webhook carried no swap event.
      - GET https://api.shyft.to/sol/v1/transaction/parsed
    Amounts in tokens_swapped are already decimals-adjusted.
    """
    BASE = "https://api.shyft.to/sol/v1"

    def __init__(
        self,
        api_key: str,
        session: Optional[requests.Session] = None,
        timeout_sec: float = 10.0,
        network: str = "mainnet-beta",
    ):
        self.api_key = api_key.strip()
        self.session = session or requests.Session()
        self.timeout = timeout_sec
        self.network = network

    def fetch(self, signature: str) -> Dict[str, Any]:
        try:
            r = self.session.get(
                f"{self.BASE}/transaction/parsed",
                params={"network": self.network, "txn_signature": signature},
                headers={"x-api-key": self.api_key},
                timeout=self.timeout,
            )
            r.raise_for_status()
            data = r.json()
        except (requests.RequestException, ValueError) as e:
            raise ParseUnavailable(f"shyft request failed: {e}", {"signature": signature}) from e

        if not isinstance(data, dict) or not data.get("success") or not isinstance(data.get("result"), dict):
            raise ParseUnavailable("shyft returned no result", {"signature": signature})
        return data["result"]

    def parse(self, signature: str) -> CanonicalTrade:
        result = self.fetch(signature)
        return trade_from_parsed(result, signature)


def trade_from_parsed(result: Dict[str, Any], signature: str) -> CanonicalTrade:
    action = find_swap_action(result)
    if action is None:
        raise NoSwapAction("no swap action in parsed transaction", {"signature": signature})

    info = action["info"]
    swapped = info["tokens_swapped"]
    tin = swapped.get("in") or {}
    tout = swapped.get("out") or {}

    try:
        ts = iso_to_epoch(result.get("timestamp") or "")
    except ValueError as e:
        raise ParseUnavailable("unparseable timestamp", {"signature": signature}) from e

    return CanonicalTrade(
        account=info.get("swapper") or "",
        token_in_address=tin.get("token_address") or "",
        token_in_amount=to_decimal(tin.get("amount")),
        token_out_address=tout.get("token_address") or "",
        token_out_amount=to_decimal(tout.get("amount")),
        timestamp=ts,
        signature=signature,
        description=None,
    )
