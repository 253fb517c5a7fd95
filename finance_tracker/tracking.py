"""Reconcile allocations and limits against actual spending.

Two views are produced, both as DataFrames for the dashboard:

* ``bucket_summary`` – allocated amount per bucket against the spend of the
  categories mapped to that bucket.
* ``category_tracking`` – each category's current limit adjusted by what was
  left over (or overspent) in the immediately preceding period.
"""

from __future__ import annotations

from typing import Dict, List, Sequence

import numpy as np
import pandas as pd

from .balances import EnrichedBalance
from .db import BUCKETS

BUCKET_SUMMARY_COLUMNS = ['Bucket', 'Allocated', 'Spent', 'Remaining', 'Over Budget']
TRACKING_COLUMNS = [
    'Category ID',
    'Category',
    'Limit',
    'Spent',
    'Carryover',
    'Overspending',
    'Available',
    'Remaining',
    'Over Budget',
]


def _balances_to_frame(balances: Sequence[EnrichedBalance]) -> pd.DataFrame:
    records: List[Dict[str, object]] = [
        {
            'Category ID': b.category_id,
            'Category': b.category_name,
            'Bucket': b.bucket,
            'Spent': b.spent,
            'Limit': b.limit,
        }
        for b in balances
    ]
    frame = pd.DataFrame(records, columns=['Category ID', 'Category', 'Bucket', 'Spent', 'Limit'])
    # Empty frames default to object columns, which pandas refuses to merge with ints
    return frame.astype({'Category ID': 'int64', 'Spent': 'float64', 'Limit': 'float64'})


def bucket_summary(amounts: Dict[str, float], balances: Sequence[EnrichedBalance]) -> pd.DataFrame:
    """Allocated vs spent per bucket.

    Categories without a bucket are left out. A bucket is over budget only when
    spend strictly exceeds its allocation.
    """
    frame = _balances_to_frame(balances)
    spent_by_bucket = (
        frame.dropna(subset=['Bucket']).groupby('Bucket')['Spent'].sum()
        if not frame.empty
        else pd.Series(dtype=float)
    )

    summary = pd.DataFrame({
        'Bucket': list(BUCKETS),
        'Allocated': [float(amounts.get(bucket, 0.0)) for bucket in BUCKETS],
        'Spent': [float(spent_by_bucket.get(bucket, 0.0)) for bucket in BUCKETS],
    })
    summary['Remaining'] = summary['Allocated'] - summary['Spent']
    summary['Over Budget'] = summary['Spent'] > summary['Allocated']
    return summary[BUCKET_SUMMARY_COLUMNS]


def category_tracking(
    current: Sequence[EnrichedBalance],
    previous: Sequence[EnrichedBalance],
) -> pd.DataFrame:
    """Current-period balances with last period's surplus or deficit applied.

    A positive remainder last period is carried over; a negative one is
    deducted from this period's available amount.
    """
    now = _balances_to_frame(current)
    if now.empty:
        return pd.DataFrame(columns=TRACKING_COLUMNS)

    before = _balances_to_frame(previous)
    before['Previous Remaining'] = before['Limit'] - before['Spent']
    merged = now.merge(
        before[['Category ID', 'Previous Remaining']],
        on='Category ID',
        how='left',
    )
    prev_remaining = merged['Previous Remaining'].fillna(0.0).astype(float)

    merged['Carryover'] = np.where(prev_remaining > 0, prev_remaining, 0.0)
    merged['Overspending'] = np.where(prev_remaining < 0, -prev_remaining, 0.0)
    merged['Available'] = merged['Limit'] + merged['Carryover'] - merged['Overspending']
    merged['Remaining'] = merged['Available'] - merged['Spent']
    merged['Over Budget'] = merged['Spent'] > merged['Available']
    return merged[TRACKING_COLUMNS].reset_index(drop=True)
