"""Per-period category balances.

Balances are materialized lazily: the first request in a new month creates a
zeroed row for each active category, later requests find the rows and write
nothing. Rows from earlier months are never touched again, so reading the
current month is all it takes to "roll over".
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List, Optional

import pandas as pd

from . import db
from .categories import list_active_categories
from .exceptions import require_positive_amount
from .periods import Clock, Period, current_period

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EnrichedBalance:
    """A stored balance plus the derived remaining/over-budget values."""

    user_id: str
    category_id: int
    category_name: Optional[str]
    bucket: Optional[str]
    period: Period
    spent: float
    limit: float
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    @property
    def remaining(self) -> float:
        return self.limit - self.spent

    @property
    def over_budget(self) -> bool:
        return self.spent > self.limit

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> 'EnrichedBalance':
        return cls(
            user_id=row['user_id'],
            category_id=int(row['category_id']),
            category_name=row.get('category_name'),
            bucket=row.get('bucket'),
            period=Period(year=int(row['year']), month=int(row['month'])),
            spent=float(row['spent']),
            limit=float(row['limit_amount']),
            created_at=row.get('created_at'),
            updated_at=row.get('updated_at'),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'categoryId': self.category_id,
            'category': self.category_name,
            'bucket': self.bucket,
            'month': self.period.month,
            'year': self.period.year,
            'spent': self.spent,
            'limit': self.limit,
            'remaining': self.remaining,
            'overBudget': self.over_budget,
            'createdAt': self.created_at,
            'updatedAt': self.updated_at,
        }


def ensure_balances_for_period(user_id: str, period: Period, db_path: db.PathLike = None) -> int:
    """Create any missing balance rows for ``period``.

    Returns the number of rows this call created. Rows created concurrently by
    another caller count as already present, not as failures.
    """
    categories = list_active_categories(user_id, db_path=db_path)
    if not categories:
        return 0

    category_ids = [c.id for c in categories]
    created = db.insert_balances_if_absent(user_id, category_ids, period.month, period.year, db_path=db_path)
    skipped = len(category_ids) - created
    if created:
        logger.info("Materialized %d balances for user %s in %s", created, user_id, period.label)
    if skipped:
        logger.debug("%d balances for user %s in %s already present or category gone", skipped, user_id, period.label)
    return created


def ensure_balances(user_id: str, clock: Optional[Clock] = None, db_path: db.PathLike = None) -> int:
    return ensure_balances_for_period(user_id, current_period(clock), db_path=db_path)


def balances_for_period(user_id: str, period: Period, db_path: db.PathLike = None) -> List[EnrichedBalance]:
    rows = db.fetch_balances(user_id, period.month, period.year, db_path=db_path)
    return [EnrichedBalance.from_row(row) for row in rows]


def current_balances(user_id: str, clock: Optional[Clock] = None, db_path: db.PathLike = None) -> List[EnrichedBalance]:
    """Balances of the current period only, in category display order.

    Missing rows are not created here; call :func:`ensure_balances` first.
    """
    return balances_for_period(user_id, current_period(clock), db_path=db_path)


def needs_materialization(user_id: str, clock: Optional[Clock] = None, db_path: db.PathLike = None) -> bool:
    """True when the current period has no balance rows for ``user_id``."""
    period = current_period(clock)
    return db.count_balances(user_id, period.month, period.year, db_path=db_path) == 0


def balances_frame(user_id: str, period: Period, db_path: db.PathLike = None) -> pd.DataFrame:
    """Balances for ``period`` as a DataFrame with the derived columns added."""
    df = db.fetch_balances_frame(user_id, period.month, period.year, db_path=db_path)
    columns = ['Category ID', 'Category', 'Bucket', 'Spent', 'Limit', 'Remaining', 'Over Budget']
    if df.empty:
        return pd.DataFrame(columns=columns)

    frame = pd.DataFrame({
        'Category ID': df['category_id'].astype(int),
        'Category': df['category_name'],
        'Bucket': df['bucket'],
        'Spent': df['spent'].astype(float),
        'Limit': df['limit_amount'].astype(float),
    })
    frame['Remaining'] = frame['Limit'] - frame['Spent']
    frame['Over Budget'] = frame['Spent'] > frame['Limit']
    return frame[columns].reset_index(drop=True)


def record_expense(
    user_id: str,
    category_id: int,
    amount: float,
    when: Optional[datetime] = None,
    clock: Optional[Clock] = None,
    db_path: db.PathLike = None,
) -> bool:
    """Add ``amount`` to the category's spend for the period containing ``when``.

    Returns False when the category has no balance in that period (for example
    it was deactivated before the period started).
    """
    amount = require_positive_amount(amount, "Expense")

    period = Period.from_datetime(when) if when is not None else current_period(clock)
    ensure_balances_for_period(user_id, period, db_path=db_path)
    updated = db.increment_spent(user_id, category_id, period.month, period.year, amount, db_path=db_path)
    if not updated:
        logger.warning("No %s balance for category %s of user %s; expense not recorded", period.label, category_id, user_id)
    return updated
