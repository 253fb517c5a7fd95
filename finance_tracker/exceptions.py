"""Exception types raised by the tracking and allocation engine."""

from __future__ import annotations

import math
import numbers
from typing import Any, Optional


class TrackerError(Exception):
    """Base class for engine errors."""


class AllocationValidationError(TrackerError, ValueError):
    """An allocation rule set was rejected before persistence."""

    def __init__(self, bucket: Optional[str], message: str):
        self.bucket = bucket
        prefix = f"{bucket}: " if bucket else ""
        super().__init__(f"{prefix}{message}")


class InvalidAmountError(TrackerError, ValueError):
    """An expense or income amount was zero, negative or not a number."""


def require_positive_amount(amount: Any, kind: str) -> float:
    """Return ``amount`` as a float, or raise ``InvalidAmountError``.

    Booleans, non-numeric values, NaN and infinities are rejected along with
    zero and negative amounts.
    """
    if isinstance(amount, bool) or not isinstance(amount, numbers.Real):
        raise InvalidAmountError(f"{kind} amount must be a number, got {amount!r}")
    value = float(amount)
    if not math.isfinite(value) or value <= 0:
        raise InvalidAmountError(f"{kind} amount must be positive and finite, got {amount!r}")
    return value
