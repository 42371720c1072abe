from __future__ import annotations

import logging
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Iterable, List, Optional, Tuple

import requests

from core.amounts import LAMPORTS_DECIMALS, ZERO, normalize_amount, to_decimal
from core.errors import IncompleteSwapData
from core.models import SOL_ADDRESS, CanonicalTrade

logger = logging.getLogger(__name__)

HELIUS_API = "https://api.helius.xyz"


def first_transaction(payload: Any) -> Optional[Dict[str, Any]]:
    """
    Helius POSTs a JSON array of enhanced transactions. Only the first one is used.
    """
    if not isinstance(payload, list) or not payload:
        return None
    tx = payload[0]
    return tx if isinstance(tx, dict) else None


def swap_event(tx: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    events = tx.get("events") or {}
    if not isinstance(events, dict):
        return None
    swap = events.get("swap")
    return swap if isinstance(swap, dict) and swap else None


def _scaled(raw: Any, decimals: Any) -> Decimal:
    try:
        return normalize_amount(raw, int(decimals))
    except (InvalidOperation, ValueError, TypeError):
        return ZERO


def _native_leg(native: Any) -> Decimal:
    if not isinstance(native, dict) or not native.get("amount"):
        return ZERO
    return _scaled(native.get("amount"), LAMPORTS_DECIMALS)


def _token_leg(legs: Any) -> Tuple[str, Decimal]:
    if not isinstance(legs, list) or not legs or not isinstance(legs[0], dict):
        return "", ZERO
    first = legs[0]
    raw = first.get("rawTokenAmount") or {}
    return (first.get("mint") or ""), _scaled(raw.get("tokenAmount"), raw.get("decimals", 0))


def extract_swap_trade(tx: Dict[str, Any]) -> CanonicalTrade:
    """
    Build a CanonicalTrade from an enhanced transaction carrying events.swap.

    Only the first input leg and the first output leg are used; routed swaps
    collapse to that pair. Raises IncompleteSwapData if any required field is
    empty, zero or negative.
    """
    swap = swap_event(tx) or {}
    fee_payer = tx.get("feePayer") or ""
    signature = tx.get("signature") or ""

    account = ""
    in_addr, in_amt = "", ZERO
    native_in = _native_leg(swap.get("nativeInput"))
    if native_in:
        account, in_addr, in_amt = fee_payer, SOL_ADDRESS, native_in
    else:
        mint, amt = _token_leg(swap.get("tokenInputs"))
        if mint or amt:
            account, in_addr, in_amt = fee_payer, mint, amt

    out_addr, out_amt = "", ZERO
    native_out = _native_leg(swap.get("nativeOutput"))
    if native_out:
        out_addr, out_amt = SOL_ADDRESS, native_out
    else:
        out_addr, out_amt = _token_leg(swap.get("tokenOutputs"))

    timestamp = int(to_decimal(tx.get("timestamp")))
    if timestamp <= 0:
        logger.warning("Missing block time, storing timestamp 0", extra={"signature": signature})

    try:
        return CanonicalTrade(
            account=account,
            token_in_address=in_addr,
            token_in_amount=in_amt,
            token_out_address=out_addr,
            token_out_amount=out_amt,
            timestamp=max(timestamp, 0),
            signature=signature,
            description=tx.get("description"),
        )
    except IncompleteSwapData as e:
        logger.info("Incomplete swap data: %s", e.details.get("missing"), extra={"signature": signature})
        raise


# ============================================================
# WEBHOOK REGISTRATION
# ============================================================

class HeliusWebhookClient:
    """
    Registers the enhanced SWAP/TRANSFER webhook for the tracked wallets.
      - POST /v0/webhooks
      - PUT  /v0/webhooks/{webhookID}
    """

    def __init__(
        self,
        api_key: str,
        webhook_url: str,
        session: Optional[requests.Session] = None,
        timeout_sec: float = 10.0,
    ):
        self.api_key = api_key.strip()
        self.webhook_url = webhook_url.strip()
        self.session = session or requests.Session()
        self.timeout = timeout_sec

    def _config(self, addresses: Iterable[str]) -> Dict[str, Any]:
        account_addresses: List[str] = [a.strip() for a in addresses if a and a.strip()]
        if not account_addresses:
            raise ValueError("No valid wallet addresses to register.")
        if not self.webhook_url:
            raise ValueError("WEBHOOK_URL is not configured.")
        return {
            "webhookURL": self.webhook_url,
            "transactionTypes": ["SWAP", "TRANSFER"],
            "accountAddresses": account_addresses,
            "webhookType": "enhanced",
            "authHeader": f"Bearer {self.api_key}",
            "txnStatus": "success",
        }

    def create_swap_webhook(self, addresses: Iterable[str]) -> Dict[str, Any]:
        body = self._config(addresses)
        r = self.session.post(
            f"{HELIUS_API}/v0/webhooks",
            params={"api-key": self.api_key},
            json=body,
            timeout=self.timeout,
        )
        r.raise_for_status()
        logger.info("Webhook created for %d wallets", len(body["accountAddresses"]))
        return r.json()

    def update_swap_webhook(self, webhook_id: str, addresses: Iterable[str]) -> Dict[str, Any]:
        body = self._config(addresses)
        r = self.session.put(
            f"{HELIUS_API}/v0/webhooks/{webhook_id}",
            params={"api-key": self.api_key},
            json=body,
            timeout=self.timeout,
        )
        r.raise_for_status()
        logger.info("Webhook %s updated for %d wallets", webhook_id, len(body["accountAddresses"]))
        return r.json()
