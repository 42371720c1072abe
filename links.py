from __future__ import annotations

import urllib.parse


def explorer_tx_link(tx_hash: str) -> str:
    return f"https://solscan.io/tx/{tx_hash}" if tx_hash else ""


def explorer_token_link(mint: str) -> str:
    return f"https://solscan.io/token/{mint}"


def explorer_account_link(address: str) -> str:
    return f"https://solscan.io/account/{address}"


def dexscreener_token_link(mint: str, chain: str = "solana") -> str:
    return f"https://dexscreener.com/{chain}/{mint}"


def phantom_caip19_solana(mint: str) -> str:
    # CAIP-19 format used by Phantom deeplinks
    return f"solana:101/address:{mint}"


def phantom_swap_link_solana(buy_mint: str, sell_mint: str = "") -> str:
    buy = urllib.parse.quote(phantom_caip19_solana(buy_mint), safe="")
    sell = urllib.parse.quote(phantom_caip19_solana(sell_mint), safe="") if sell_mint else ""
    return f"https://phantom.app/ul/v1/swap?buy={buy}&sell={sell}"
