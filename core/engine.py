from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Callable, Dict, Mapping, Optional, Protocol

from chains.solana_helius import extract_swap_trade, swap_event
from chains.tx_filter import TransactionFilter
from core.analyzer import WalletActivityAnalyzer
from core.composer import compose_alert
from core.config import Settings
from core.errors import EnrichmentFailure, NotificationFailure, ParseUnavailable, SkipTransaction
from core.models import CanonicalTrade, TokenSnapshot, WalletAggregate
from core.symbol_cache import SymbolCache

logger = logging.getLogger(__name__)


class TradeWriter(Protocol):
    def insert(self, trade: CanonicalTrade) -> bool: ...


class TransactionParser(Protocol):
    def parse(self, signature: str) -> CanonicalTrade: ...


class SnapshotProvider(Protocol):
    def get_token_snapshot(self, chain_id: str, token_address: str) -> TokenSnapshot: ...


class Notifier(Protocol):
    def send(self, text: str, reply_to: Optional[int] = None) -> Dict[str, Any]: ...


@dataclass(frozen=True)
class AlertThresholds:
    min_liquidity_usd: Decimal = Decimal(0)
    min_market_cap_usd: Decimal = Decimal(0)
    max_market_cap_usd: Decimal = Decimal(0)    # 0 = no cap
    max_age_hours: Decimal = Decimal(0)         # 0 = no limit

    @classmethod
    def from_settings(cls, settings: Settings) -> "AlertThresholds":
        return cls(
            min_liquidity_usd=Decimal(str(settings.alert_min_liquidity_usd)),
            min_market_cap_usd=Decimal(str(settings.alert_min_market_cap_usd)),
            max_market_cap_usd=Decimal(str(settings.alert_max_market_cap_usd)),
            max_age_hours=Decimal(str(settings.alert_max_age_hours)),
        )

    def rejection(self, snapshot: TokenSnapshot, now: int) -> Optional[str]:
        if snapshot.liquidity_usd < self.min_liquidity_usd:
            return "liquidity"
        if snapshot.market_cap_usd < self.min_market_cap_usd:
            return "market_cap_low"
        if self.max_market_cap_usd > 0 and snapshot.market_cap_usd > self.max_market_cap_usd:
            return "market_cap_high"
        if self.max_age_hours > 0 and snapshot.created_at > 0:
            age_hours = Decimal(now - snapshot.created_at) / 3600
            if age_hours > self.max_age_hours:
                return "too_old"
        return None


@dataclass
class PipelineResult:
    status: str                         # "stored" | "duplicate" | "skipped"
    signature: str = ""
    reason: Optional[str] = None
    trade: Optional[CanonicalTrade] = None
    alerted: bool = False
    message_id: Optional[int] = None

    def to_response(self) -> Dict[str, Any]:
        if self.status == "skipped":
            return {"skipped": True, "reason": self.reason}
        return {
            "success": True,
            "signature": self.signature,
            "duplicate": self.status == "duplicate",
            "alerted": self.alerted,
        }


class TradePipeline:
    """
    One webhook transaction in, at most one stored trade and one alert out.

      filter -> extract (swap event | external parser) -> store -> gate -> analyze -> compose -> send

    Skips end with a result, storage errors propagate, enrichment and
    notification errors are logged and only cost the alert.
    """

    def __init__(
        self,
        tx_filter: TransactionFilter,
        store: TradeWriter,
        analyzer: WalletActivityAnalyzer,
        market: SnapshotProvider,
        symbol_cache: SymbolCache,
        thresholds: AlertThresholds,
        parser: Optional[TransactionParser] = None,
        notifier: Optional[Notifier] = None,
        chain_id: str = "solana",
        clock: Callable[[], float] = time.time,
    ):
        self.tx_filter = tx_filter
        self.store = store
        self.analyzer = analyzer
        self.market = market
        self.symbol_cache = symbol_cache
        self.thresholds = thresholds
        self.parser = parser
        self.notifier = notifier
        self.chain_id = chain_id
        self.clock = clock

        self._summary_lock = threading.Lock()
        self.summary = {
            "received": 0,
            "stored": 0,
            "duplicate": 0,
            "skipped": 0,
            "alerted": 0,
            "alert_failed": 0,
        }

    def _count(self, key: str) -> None:
        with self._summary_lock:
            self.summary[key] += 1

    # -------- ingest --------
    def handle_transaction(self, tx: Dict[str, Any]) -> PipelineResult:
        self._count("received")
        signature = tx.get("signature") or ""

        reason = self.tx_filter.check(tx)
        if reason:
            logger.info("Skipped transaction: %s", reason, extra={"signature": signature, "event": "skip"})
            self._count("skipped")
            return PipelineResult(status="skipped", signature=signature, reason=reason)

        try:
            trade = self.extract(tx)
        except SkipTransaction as e:
            logger.info("Skipped transaction: %s", e.message, extra={"signature": signature, "event": "skip"})
            self._count("skipped")
            return PipelineResult(status="skipped", signature=signature, reason=type(e).__name__)

        if not self.store.insert(trade):
            self._count("duplicate")
            return PipelineResult(status="duplicate", signature=trade.signature, trade=trade)

        self._count("stored")
        logger.info(
            "Stored trade %s -> %s",
            trade.token_in_address,
            trade.token_out_address,
            extra={"signature": trade.signature, "account": trade.account, "event": "stored"},
        )

        result = PipelineResult(status="stored", signature=trade.signature, trade=trade)
        # the trade is committed; from here a failure only costs the alert
        try:
            sent = self.maybe_alert(trade)
        except Exception:
            self._count("alert_failed")
            logger.exception("Alert stage failed", extra={"signature": trade.signature, "event": "alert_error"})
            return result
        if sent is not None:
            result.alerted = True
            result.message_id = sent.get("message_id")
        return result

    def extract(self, tx: Dict[str, Any]) -> CanonicalTrade:
        if swap_event(tx):
            return extract_swap_trade(tx)

        signature = tx.get("signature") or ""
        if not signature:
            raise SkipTransaction("no swap data")
        if self.parser is None:
            raise ParseUnavailable("no transaction parser configured", {"signature": signature})
        return self.parser.parse(signature)

    # -------- alert --------
    def maybe_alert(self, trade: CanonicalTrade) -> Optional[Dict[str, Any]]:
        """Notifier response when an alert went out, None otherwise."""
        if not trade.is_buy:
            return None

        token = trade.token_out_address
        now = int(self.clock())
        try:
            snapshot = self.market.get_token_snapshot(self.chain_id, token)
        except EnrichmentFailure as e:
            logger.warning("No market data, alert skipped: %s", e.message, extra={"token": token})
            return None

        rejection = self.thresholds.rejection(snapshot, now)
        if rejection:
            logger.info("Alert criteria not met: %s", rejection, extra={"token": token, "symbol": snapshot.symbol})
            return None

        if self.symbol_cache.is_exist(snapshot.symbol or token):
            logger.info("Symbol alerted recently", extra={"token": token, "symbol": snapshot.symbol})
            return None

        aggregates = self.analyzer.analyze_token(token)
        if not aggregates:
            return None

        message = compose_alert(snapshot, aggregates, now=now, trade=trade)
        return self._send(message, token)

    def _send(self, message: str, token: str) -> Optional[Dict[str, Any]]:
        if self.notifier is None:
            logger.info("Notifier not configured, alert not sent", extra={"token": token})
            return None
        try:
            res = self.notifier.send(message)
        except NotificationFailure as e:
            self._count("alert_failed")
            logger.error("Alert send failed: %s", e.message, extra={"token": token})
            return None
        self._count("alerted")
        return res

    # -------- manual --------
    def report(self, token: str) -> str:
        """Composed alert text for a token, no gating and no send."""
        snapshot = self.market.get_token_snapshot(self.chain_id, token)
        aggregates: Mapping[str, WalletAggregate] = self.analyzer.analyze_token(token)
        return compose_alert(snapshot, aggregates, now=int(self.clock()))
