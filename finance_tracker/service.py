"""Entry points used by the dashboard and any request-handling layer.

The caller is expected to have authenticated the user; the user id passed in
here is trusted as-is. Every operation is a short, independent unit of work
with its own database connection.
"""

from __future__ import annotations

import logging
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Union

import pandas as pd

from . import allocation as alloc
from . import balances as bal
from . import db
from . import income as inc
from .categories import seed_default_categories
from .defaults import get_default_value
from .periods import Clock, Period, current_period
from .tracking import bucket_summary, category_tracking

logger = logging.getLogger(__name__)


class BudgetTracker:
    """Monthly balance tracking and fund allocation for one database."""

    def __init__(self, db_path: Optional[Union[str, Path]] = None, clock: Optional[Clock] = None):
        """Initialize the tracker.

        Args:
            db_path: Optional database file. Defaults to ``db.DB_PATH``.
            clock: Optional time source for period resolution. Defaults to
                the wall clock.
        """
        self.db_path = db_path
        self.clock = clock or datetime.now
        db.init_db(self.db_path)

    @staticmethod
    def _require_user(user_id: str) -> str:
        if not user_id or not str(user_id).strip():
            raise ValueError("A user id is required")
        return str(user_id)

    def get_current_period(self) -> Period:
        return current_period(self.clock)

    # Balances -------------------------------------------------------------

    def ensure_balances(self, user_id: str) -> int:
        """Materialize the current period's balances; safe to call on every request."""
        return bal.ensure_balances(self._require_user(user_id), self.clock, db_path=self.db_path)

    def current_balances(self, user_id: str) -> List[bal.EnrichedBalance]:
        return bal.current_balances(self._require_user(user_id), self.clock, db_path=self.db_path)

    def needs_materialization(self, user_id: str) -> bool:
        return bal.needs_materialization(self._require_user(user_id), self.clock, db_path=self.db_path)

    def record_expense(self, user_id: str, category_id: int, amount: float, when: Optional[datetime] = None) -> bool:
        return bal.record_expense(
            self._require_user(user_id), category_id, amount, when=when, clock=self.clock, db_path=self.db_path
        )

    def seed_categories(self, user_id: str) -> int:
        return seed_default_categories(self._require_user(user_id), db_path=self.db_path)

    # Allocation -----------------------------------------------------------

    def get_allocation(self, user_id: str) -> alloc.FundAllocation:
        return alloc.get_allocation(self._require_user(user_id), db_path=self.db_path)

    def update_allocation(self, user_id: str, rules: Mapping[str, Any]) -> alloc.FundAllocation:
        return alloc.update_allocation(self._require_user(user_id), rules, db_path=self.db_path)

    def record_income(
        self,
        user_id: str,
        amount: float,
        description: Optional[str] = None,
        when: Optional[datetime] = None,
        exclude_from_allocation: bool = False,
    ) -> int:
        return inc.record_income(
            self._require_user(user_id),
            amount,
            description=description,
            when=when,
            exclude_from_allocation=exclude_from_allocation,
            clock=self.clock,
            db_path=self.db_path,
        )

    def allocation_breakdown(
        self,
        user_id: str,
        income: Optional[float] = None,
        redirect_excess: bool = False,
    ) -> Dict[str, float]:
        """Bucket amounts for ``income``, or for this period's recorded income.

        With ``redirect_excess`` the amounts clamped by caps go to the bucket
        named by ``tracking.excess_bucket`` in the defaults file.
        """
        user_id = self._require_user(user_id)
        if income is None:
            income = inc.current_income(user_id, self.clock, db_path=self.db_path)
        target = get_default_value('tracking', 'excess_bucket', default='savings') if redirect_excess else None
        return self.get_allocation(user_id).compute(income, redirect_excess_to=target)

    # Reconciliation -------------------------------------------------------

    def tracking_summary(self, user_id: str) -> pd.DataFrame:
        """Current balances with the previous period's carryover applied."""
        user_id = self._require_user(user_id)
        period = self.get_current_period()
        current = bal.balances_for_period(user_id, period, db_path=self.db_path)
        previous = bal.balances_for_period(user_id, period.previous(), db_path=self.db_path)
        return category_tracking(current, previous)

    def bucket_summary(self, user_id: str, income: Optional[float] = None) -> pd.DataFrame:
        amounts = self.allocation_breakdown(user_id, income=income)
        return bucket_summary(amounts, self.current_balances(user_id))

    def dashboard_snapshot(self, user_id: str) -> Dict[str, Any]:
        """Materialize then read, as two separately committed steps."""
        self.ensure_balances(user_id)
        period = self.get_current_period()
        return {
            'period': period.to_dict(),
            'balances': [b.to_dict() for b in self.current_balances(user_id)],
        }


# Convenience functions using a lazily created default tracker
_default_tracker: Optional[BudgetTracker] = None


def get_tracker() -> BudgetTracker:
    global _default_tracker
    if _default_tracker is None:
        _default_tracker = BudgetTracker()
    return _default_tracker


def ensure_balances(user_id: str) -> int:
    return get_tracker().ensure_balances(user_id)


def current_balances(user_id: str) -> List[bal.EnrichedBalance]:
    return get_tracker().current_balances(user_id)


def get_current_period() -> Dict[str, int]:
    """Current ``{month, year}`` for display and diagnostics."""
    return get_tracker().get_current_period().to_dict()


def get_allocation(user_id: str) -> alloc.FundAllocation:
    return get_tracker().get_allocation(user_id)


def update_allocation(user_id: str, rules: Mapping[str, Any]) -> alloc.FundAllocation:
    return get_tracker().update_allocation(user_id, rules)


def allocation_breakdown(user_id: str, income: Optional[float] = None, redirect_excess: bool = False) -> Dict[str, float]:
    return get_tracker().allocation_breakdown(user_id, income=income, redirect_excess=redirect_excess)


def record_expense(user_id: str, category_id: int, amount: float, when: Optional[datetime] = None) -> bool:
    return get_tracker().record_expense(user_id, category_id, amount, when=when)


def record_income(
    user_id: str,
    amount: float,
    description: Optional[str] = None,
    when: Optional[datetime] = None,
    exclude_from_allocation: bool = False,
) -> int:
    return get_tracker().record_income(
        user_id, amount, description=description, when=when, exclude_from_allocation=exclude_from_allocation
    )


def tracking_summary(user_id: str) -> pd.DataFrame:
    return get_tracker().tracking_summary(user_id)
