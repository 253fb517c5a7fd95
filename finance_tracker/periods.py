"""Tracking periods: one calendar month of one year.

The current period is always derived from an explicit clock so callers (and
tests) can simulate month boundaries. A clock is any zero-argument callable
returning a ``datetime``; production code uses ``datetime.now``.
"""

from __future__ import annotations

import calendar
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Dict, Optional, Tuple

Clock = Callable[[], datetime]


@dataclass(frozen=True, order=True)
class Period:
    """A month+year window. Field order gives (year, month) ordering."""

    year: int
    month: int

    def __post_init__(self) -> None:
        if not 1 <= self.month <= 12:
            raise ValueError(f"Month must be in 1..12, got {self.month}")

    @classmethod
    def from_datetime(cls, ts: datetime) -> 'Period':
        return cls(year=ts.year, month=ts.month)

    def previous(self) -> 'Period':
        if self.month == 1:
            return Period(self.year - 1, 12)
        return Period(self.year, self.month - 1)

    def next(self) -> 'Period':
        if self.month == 12:
            return Period(self.year + 1, 1)
        return Period(self.year, self.month + 1)

    def bounds(self) -> Tuple[datetime, datetime]:
        """Return the first and last instant of the month."""
        last_day = calendar.monthrange(self.year, self.month)[1]
        start = datetime(self.year, self.month, 1)
        end = datetime(self.year, self.month, last_day, 23, 59, 59, 999999)
        return start, end

    def contains(self, ts: datetime) -> bool:
        return ts.year == self.year and ts.month == self.month

    @property
    def label(self) -> str:
        """Short display label, e.g. ``Oct 2026``."""
        return f"{calendar.month_abbr[self.month]} {self.year}"

    def to_dict(self) -> Dict[str, int]:
        return {'month': self.month, 'year': self.year}


def current_period(clock: Optional[Clock] = None) -> Period:
    """Return the period containing ``clock()`` (wall clock when omitted)."""
    now = (clock or datetime.now)()
    return Period.from_datetime(now)


def fixed_clock(ts: datetime) -> Clock:
    """Return a clock that always reports ``ts``."""
    return lambda: ts
