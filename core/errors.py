"""
Error hierarchy for the swap pipeline.

SkipTransaction and its subclasses end processing of one transaction only.
EnrichmentFailure is caught where a default value can stand in.
NotificationFailure never undoes a stored trade.
"""

from __future__ import annotations

from typing import Any, Dict, Optional


class TrackerError(Exception):
    """Base exception for the tracker."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None) -> None:
        self.message = message
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "details": self.details,
        }


class SkipTransaction(TrackerError):
    """Transaction is acknowledged but not stored."""


class IncompleteSwapData(SkipTransaction):
    """Extraction produced a partial trade."""


class ParseUnavailable(SkipTransaction):
    """External parser errored or returned nothing."""


class NoSwapAction(SkipTransaction):
    """External parser result has no swap action."""


class EnrichmentFailure(TrackerError):
    """Price, supply or market data lookup failed."""


class TokenNotFound(EnrichmentFailure):
    """No trading pair exists for the token."""


class NotificationFailure(TrackerError):
    """Alert could not be delivered."""
