"""
Telegram (HTML parse mode) alert text for a token bought by tracked wallets.

Formatting never raises on bad numbers: anything that is not a finite number
renders as 0 (amounts, market caps, percentages) or "N/A" (age).
"""

from __future__ import annotations

import html
import time
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any, Mapping, Optional

from core.amounts import to_decimal
from core.analyzer import format_time_ago
from core.models import CanonicalTrade, TokenSnapshot, WalletAggregate
from links import (
    dexscreener_token_link,
    explorer_account_link,
    explorer_token_link,
    explorer_tx_link,
    phantom_swap_link_solana,
)

_SUFFIXES = ((Decimal("1e9"), "B"), (Decimal("1e6"), "M"), (Decimal("1e3"), "K"))


def format_usd(value: Any) -> str:
    """$1.23M, $45.6K, $789"""
    d = to_decimal(value)
    sign = "-" if d < 0 else ""
    d = abs(d)
    try:
        for threshold, suffix in _SUFFIXES:
            if d >= threshold:
                return f"{sign}${(d / threshold).quantize(Decimal('0.01'), ROUND_HALF_UP).normalize():f}{suffix}"
        return f"{sign}${d.quantize(Decimal('1'), ROUND_HALF_UP):,}"
    except InvalidOperation:
        return f"{sign}${d:.2E}"


def format_price(value: Any) -> str:
    d = to_decimal(value)
    if d >= 1:
        try:
            return f"${d.quantize(Decimal('0.0001'), ROUND_HALF_UP):,}"
        except InvalidOperation:
            return f"${d:.4E}"
    if d <= 0:
        return "$0"
    # keep 4 significant digits for sub-dollar memecoin prices
    q = Decimal(1).scaleb(d.adjusted() - 3)
    return f"${d.quantize(q, ROUND_HALF_UP):f}"


def format_pct(value: Any, signed: bool = False) -> str:
    try:
        d = to_decimal(value).quantize(Decimal("0.01"), ROUND_HALF_UP)
    except InvalidOperation:
        return "0%"
    if signed and d > 0:
        return f"+{d}%"
    return f"{d}%"


def format_age(created_at: Any, now: int) -> str:
    ts = to_decimal(created_at)
    if ts <= 0:
        return "N/A"
    return format_time_ago(int(ts), now)


def _wallet_line(agg: WalletAggregate) -> str:
    name = html.escape(agg.wallet_name or "Unknown")
    return (
        f"• <a href=\"{explorer_account_link(agg.account)}\">{name}</a> "
        f"spent {format_usd(agg.total_buy_cost)} "
        f"@ MC {format_usd(agg.average_market_cap)} | "
        f"{agg.buy_time} | holds {format_pct(agg.holds_percentage)}"
    )


def compose_alert(
    snapshot: TokenSnapshot,
    aggregates: Mapping[str, WalletAggregate],
    now: Optional[int] = None,
    trade: Optional[CanonicalTrade] = None,
) -> str:
    now = int(time.time()) if now is None else int(now)
    name = html.escape(snapshot.name or "Unknown")
    symbol = html.escape(snapshot.symbol or "")
    mint = snapshot.address

    lines = []
    lines.append(f"🟢 <b>{name} (${symbol})</b>")
    lines.append(f"<code>{html.escape(mint)}</code>")
    lines.append("")
    lines.append(f"💰 MC: {format_usd(snapshot.market_cap_usd)} | 💧 Liq: {format_usd(snapshot.liquidity_usd)}")
    lines.append(f"📊 Vol 24h: {format_usd(snapshot.volume_h24)} | 1h: {format_usd(snapshot.volume_h1)}")
    lines.append(f"💵 Price: {format_price(snapshot.price_usd)} | 6h: {format_pct(snapshot.change_h6, signed=True)}")
    lines.append(f"⏰ Created: {format_age(snapshot.created_at, now)}")

    socials = []
    if snapshot.website:
        socials.append(f"<a href=\"{html.escape(snapshot.website)}\">Web</a>")
    if snapshot.twitter:
        socials.append(f"<a href=\"{html.escape(snapshot.twitter)}\">X</a>")
    if socials:
        lines.append("🌐 " + " | ".join(socials))

    lines.append("")
    lines.append(f"👛 <b>Wallets ({len(aggregates)})</b>")
    for agg in aggregates.values():
        lines.append(_wallet_line(agg))

    lines.append("")
    chart = snapshot.pair_url or dexscreener_token_link(mint)
    links = [
        f"<a href=\"{html.escape(chart)}\">Chart</a>",
        f"<a href=\"{explorer_token_link(mint)}\">Solscan</a>",
        f"<a href=\"{html.escape(phantom_swap_link_solana(mint))}\">Phantom</a>",
    ]
    if trade is not None and trade.signature:
        links.append(f"<a href=\"{explorer_tx_link(trade.signature)}\">Tx</a>")
    lines.append(" | ".join(links))

    return "\n".join(lines)
