from __future__ import annotations

from decimal import Decimal, InvalidOperation
from typing import Any, Union

ZERO = Decimal(0)

LAMPORTS_DECIMALS = 9


def normalize_amount(raw: Union[str, int], decimals: int) -> Decimal:
    """raw integer amount / 10**decimals, exact (no float)."""
    return Decimal(str(raw)).scaleb(-int(decimals))


def to_decimal(value: Any, default: Decimal = ZERO) -> Decimal:
    """
    Best-effort Decimal conversion for provider numbers (str/int/float/None).
    Floats go through str() so 0.1 stays 0.1.
    """
    if value is None or isinstance(value, bool):
        return default
    if isinstance(value, Decimal):
        return value if value.is_finite() else default
    try:
        d = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        return default
    return d if d.is_finite() else default
