"""Per-user budget categories.

The tracking engine only reads categories; these helpers exist so the
dashboard and tests can set them up.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from . import db
from .defaults import load_defaults

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Category:
    id: int
    user_id: str
    name: str
    limit_amount: float
    display_order: Optional[int] = None
    bucket: Optional[str] = None

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> 'Category':
        return cls(
            id=int(row['id']),
            user_id=row['user_id'],
            name=row['name'],
            limit_amount=float(row['limit_amount']),
            display_order=row.get('display_order'),
            bucket=row.get('bucket'),
        )


def _check_bucket(bucket: Optional[str]) -> None:
    if bucket is not None and bucket not in db.BUCKETS:
        raise ValueError(f"Unknown bucket '{bucket}'. Expected one of {', '.join(db.BUCKETS)}")


def add_category(
    user_id: str,
    name: str,
    limit_amount: float,
    display_order: Optional[int] = None,
    bucket: Optional[str] = None,
    db_path: db.PathLike = None,
) -> Optional[int]:
    """Create a category; returns None if the user already has that name."""
    if not name or not name.strip():
        raise ValueError("Category name cannot be empty")
    if limit_amount < 0:
        raise ValueError("Category limit cannot be negative")
    _check_bucket(bucket)
    return db.insert_category(user_id, name.strip(), limit_amount, display_order, bucket, db_path=db_path)


def update_category_limit(user_id: str, category_id: int, limit_amount: float, db_path: db.PathLike = None) -> bool:
    """Change a category's limit.

    Only balances materialized afterwards pick up the new value; existing
    rows keep the limit they were created with.
    """
    if limit_amount < 0:
        raise ValueError("Category limit cannot be negative")
    return db.update_category(category_id, user_id, limit_amount=limit_amount, db_path=db_path)


def deactivate_category(user_id: str, category_id: int, db_path: db.PathLike = None) -> bool:
    return db.update_category(category_id, user_id, active=False, db_path=db_path)


def list_active_categories(user_id: str, db_path: db.PathLike = None) -> List[Category]:
    return [Category.from_row(row) for row in db.fetch_active_categories(user_id, db_path=db_path)]


def seed_default_categories(user_id: str, db_path: db.PathLike = None) -> int:
    """Create one category per allocation bucket from the defaults file.

    Returns the number of categories created.
    """
    created = 0
    for entry in load_defaults().get('categories', []):
        new_id = add_category(
            user_id,
            entry['name'],
            float(entry.get('limit', 0.0)),
            display_order=entry.get('display_order'),
            bucket=entry.get('bucket'),
            db_path=db_path,
        )
        if new_id is not None:
            created += 1
    if created:
        logger.info("Seeded %d default categories for user %s", created, user_id)
    return created
