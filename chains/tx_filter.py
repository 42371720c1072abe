from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, FrozenSet, Iterable, Optional, Set

from core.config import Settings

TRANSFER_TYPE = "TRANSFER"


@dataclass(frozen=True)
class FilterConfig:
    """
    Address tables for the in-scope check.

    launch_pool_sources: source tags whose trades are always dropped.
    transfer_deny_accounts: a TRANSFER touching any of these is dropped.
    transfer_allow_programs: a TRANSFER touching none of these is dropped.
    """
    launch_pool_sources: FrozenSet[str] = field(default_factory=frozenset)
    transfer_deny_accounts: FrozenSet[str] = field(default_factory=frozenset)
    transfer_allow_programs: FrozenSet[str] = field(default_factory=frozenset)

    @classmethod
    def from_settings(cls, settings: Settings) -> "FilterConfig":
        return cls(
            launch_pool_sources=settings.launch_pool_sources,
            transfer_deny_accounts=settings.transfer_deny_accounts,
            transfer_allow_programs=settings.transfer_allow_programs,
        )


def touched_accounts(tx: Dict[str, Any]) -> Set[str]:
    out: Set[str] = set()
    for acc in (tx.get("accountData") or []):
        if isinstance(acc, dict) and acc.get("account"):
            out.add(acc["account"])
    return out


class TransactionFilter:
    def __init__(self, config: FilterConfig):
        self.config = config

    def exclusion_reason(
        self,
        source: Optional[str],
        tx_type: Optional[str],
        accounts: Iterable[str],
    ) -> Optional[str]:
        """None if in scope, otherwise a short reason tag."""
        if source and source in self.config.launch_pool_sources:
            return "launch_pool"

        if tx_type == TRANSFER_TYPE:
            touched = set(accounts)
            if touched & self.config.transfer_deny_accounts:
                return "denylisted_transfer"
            if not touched & self.config.transfer_allow_programs:
                return "transfer_without_dex"

        return None

    def is_in_scope(self, source: Optional[str], tx_type: Optional[str], accounts: Iterable[str]) -> bool:
        return self.exclusion_reason(source, tx_type, accounts) is None

    def check(self, tx: Dict[str, Any]) -> Optional[str]:
        return self.exclusion_reason(tx.get("source"), tx.get("type"), touched_accounts(tx))
