#!/usr/bin/env python3
"""Print a user's current-period balances and allocation breakdown."""

from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import Optional

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from finance_tracker import config
from finance_tracker.balances import balances_frame
from finance_tracker.service import BudgetTracker


def main(user_id: str, income: Optional[float] = None, db_path: Optional[str] = None) -> int:
    tracker = BudgetTracker(db_path=db_path)
    created = tracker.ensure_balances(user_id)
    period = tracker.get_current_period()
    print(f"Period: {period.label} ({created} balances created)")

    frame = balances_frame(user_id, period, db_path=tracker.db_path)
    if frame.empty:
        print("No active categories for this user.")
    else:
        print(frame.to_string(index=False))

    print("\nAllocation:")
    for bucket, amount in tracker.allocation_breakdown(user_id, income=income).items():
        print(f"  {bucket:<18} {amount:>12,.2f}")
    return 0


if __name__ == '__main__':
    parser = argparse.ArgumentParser(description='Show current-period balances for a user.')
    parser.add_argument('user_id', help='User whose balances to show')
    parser.add_argument('--income', type=float, default=None, help='Income to allocate (defaults to recorded income)')
    parser.add_argument('--db', default=None, help='Database path (defaults to FINTRACK_DB_PATH)')
    args = parser.parse_args()
    config.configure_logging()
    raise SystemExit(main(args.user_id, income=args.income, db_path=args.db))
