"""Income entries feeding the allocation calculator."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Optional

from . import db
from .exceptions import require_positive_amount
from .periods import Clock, Period, current_period

logger = logging.getLogger(__name__)


def record_income(
    user_id: str,
    amount: float,
    description: Optional[str] = None,
    when: Optional[datetime] = None,
    exclude_from_allocation: bool = False,
    clock: Optional[Clock] = None,
    db_path: db.PathLike = None,
) -> int:
    """Store an income entry and return its id.

    Entries flagged ``exclude_from_allocation`` (cash put straight into an
    account, for instance) are kept but ignored by :func:`period_income`.
    """
    amount = require_positive_amount(amount, "Income")
    received_at = when or (clock or datetime.now)()
    entry_id = db.insert_income(
        user_id,
        amount,
        received_at,
        description=description,
        exclude_from_allocation=exclude_from_allocation,
        db_path=db_path,
    )
    logger.debug("Recorded income %s of %.2f for user %s", entry_id, amount, user_id)
    return entry_id


def period_income(user_id: str, period: Period, db_path: db.PathLike = None) -> float:
    return db.sum_income(user_id, period.month, period.year, db_path=db_path)


def current_income(user_id: str, clock: Optional[Clock] = None, db_path: db.PathLike = None) -> float:
    return period_income(user_id, current_period(clock), db_path=db_path)
