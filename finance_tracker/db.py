from __future__ import annotations

import logging
import sqlite3
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, Sequence, Tuple, Union

import pandas as pd

from . import config

logger = logging.getLogger(__name__)

# Module-level so tests can point the engine at a temporary database
DB_PATH: Union[str, Path] = config.get_db_path()

BUCKETS: Tuple[str, ...] = ('fixedCosts', 'savings', 'investment', 'guiltFreeSpending')

# Column prefix used for each bucket in fund_allocations
BUCKET_COLUMNS: Dict[str, str] = {
    'fixedCosts': 'fixed_costs',
    'savings': 'savings',
    'investment': 'investment',
    'guiltFreeSpending': 'guilt_free_spending',
}

SCHEMA_SQL = """
PRAGMA journal_mode=WAL;
PRAGMA synchronous=NORMAL;

CREATE TABLE IF NOT EXISTS categories (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    user_id TEXT NOT NULL,
    name TEXT NOT NULL,
    limit_amount REAL NOT NULL DEFAULT 0,
    display_order INTEGER,
    bucket TEXT,
    active INTEGER NOT NULL DEFAULT 1,
    created_at TEXT
);

CREATE UNIQUE INDEX IF NOT EXISTS ux_category_name
ON categories (user_id, name);

CREATE TABLE IF NOT EXISTS category_balances (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    user_id TEXT NOT NULL,
    category_id INTEGER NOT NULL,
    month INTEGER NOT NULL,
    year INTEGER NOT NULL,
    spent REAL NOT NULL DEFAULT 0,
    limit_amount REAL NOT NULL DEFAULT 0,
    created_at TEXT,
    updated_at TEXT
);

CREATE UNIQUE INDEX IF NOT EXISTS ux_balance_period
ON category_balances (user_id, category_id, month, year);

CREATE INDEX IF NOT EXISTS ix_balance_user_period ON category_balances (user_id, year, month);

CREATE TABLE IF NOT EXISTS fund_allocations (
    user_id TEXT PRIMARY KEY,
    fixed_costs_type TEXT NOT NULL,
    fixed_costs_value REAL NOT NULL,
    fixed_costs_cap REAL,
    savings_type TEXT NOT NULL,
    savings_value REAL NOT NULL,
    savings_cap REAL,
    investment_type TEXT NOT NULL,
    investment_value REAL NOT NULL,
    investment_cap REAL,
    guilt_free_spending_type TEXT NOT NULL,
    guilt_free_spending_value REAL NOT NULL,
    guilt_free_spending_cap REAL,
    is_custom INTEGER NOT NULL DEFAULT 0,
    created_at TEXT,
    updated_at TEXT
);

CREATE TABLE IF NOT EXISTS income_entries (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    user_id TEXT NOT NULL,
    amount REAL NOT NULL,
    description TEXT,
    received_at TEXT NOT NULL,
    month INTEGER NOT NULL,
    year INTEGER NOT NULL,
    exclude_from_allocation INTEGER NOT NULL DEFAULT 0
);

CREATE INDEX IF NOT EXISTS ix_income_user_period ON income_entries (user_id, year, month);
"""

BALANCE_SELECT = """
SELECT b.id, b.user_id, b.category_id, c.name AS category_name, c.bucket,
       c.display_order, b.month, b.year, b.spent, b.limit_amount,
       b.created_at, b.updated_at
FROM category_balances b
LEFT JOIN categories c ON c.id = b.category_id
WHERE b.user_id = ? AND b.month = ? AND b.year = ?
ORDER BY c.display_order IS NULL, c.display_order, b.category_id
"""

PathLike = Union[str, Path, None]


def _now() -> str:
    return datetime.utcnow().isoformat()


def _resolve(db_path: PathLike) -> Path:
    return Path(db_path if db_path is not None else DB_PATH)


@contextmanager
def connect(db_path: PathLike = None) -> Iterator[sqlite3.Connection]:
    target = _resolve(db_path)
    target.parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(str(target), timeout=config.DB_TIMEOUT)
    conn.row_factory = sqlite3.Row
    try:
        yield conn
    finally:
        conn.close()


def init_db(db_path: PathLike = None) -> None:
    with connect(db_path) as conn:
        conn.executescript(SCHEMA_SQL)
        conn.commit()
    logger.debug("Schema ready at %s", _resolve(db_path))


# ---------------------------------------------------------------------------
# Categories
# ---------------------------------------------------------------------------


def insert_category(
    user_id: str,
    name: str,
    limit_amount: float,
    display_order: Optional[int] = None,
    bucket: Optional[str] = None,
    db_path: PathLike = None,
) -> Optional[int]:
    """Insert a category unless one with the same name exists.

    Returns the new id, or None when the name was already taken.
    """
    with connect(db_path) as conn:
        cur = conn.execute(
            "INSERT OR IGNORE INTO categories (user_id, name, limit_amount, display_order, bucket, active, created_at) "
            "VALUES (?, ?, ?, ?, ?, 1, ?)",
            (user_id, name, float(limit_amount), display_order, bucket, _now()),
        )
        conn.commit()
        return cur.lastrowid if cur.rowcount else None


def fetch_active_categories(user_id: str, db_path: PathLike = None) -> List[Dict[str, Any]]:
    sql = (
        "SELECT id, user_id, name, limit_amount, display_order, bucket FROM categories "
        "WHERE user_id = ? AND active = 1 "
        "ORDER BY display_order IS NULL, display_order, id"
    )
    with connect(db_path) as conn:
        rows = conn.execute(sql, (user_id,)).fetchall()
    return [dict(r) for r in rows]


def update_category(
    category_id: int,
    user_id: str,
    limit_amount: Optional[float] = None,
    display_order: Optional[int] = None,
    bucket: Optional[str] = None,
    active: Optional[bool] = None,
    db_path: PathLike = None,
) -> bool:
    """Update a category in the database.

    Returns True if a row was changed, False otherwise.
    """
    updates = []
    params: List[Any] = []

    if limit_amount is not None:
        updates.append("limit_amount = ?")
        params.append(float(limit_amount))

    if display_order is not None:
        updates.append("display_order = ?")
        params.append(display_order)

    if bucket is not None:
        updates.append("bucket = ?")
        params.append(bucket)

    if active is not None:
        updates.append("active = ?")
        params.append(1 if active else 0)

    if not updates:
        return False

    params.extend([category_id, user_id])
    sql = f"UPDATE categories SET {', '.join(updates)} WHERE id = ? AND user_id = ?"

    with connect(db_path) as conn:
        cursor = conn.cursor()
        cursor.execute(sql, params)
        conn.commit()
        return cursor.rowcount > 0


# ---------------------------------------------------------------------------
# Category balances
# ---------------------------------------------------------------------------


def insert_balances_if_absent(
    user_id: str,
    category_ids: Sequence[int],
    month: int,
    year: int,
    db_path: PathLike = None,
) -> int:
    """Create missing balance rows for the given categories and period.

    The limit is copied from the category row at insert time. Categories that
    vanished or were deactivated since they were listed insert nothing, and
    rows that already exist are left alone by the unique index.

    Returns the number of rows created.
    """
    if not category_ids:
        return 0

    now = _now()
    insert_sql = (
        "INSERT OR IGNORE INTO category_balances "
        "(user_id, category_id, month, year, spent, limit_amount, created_at, updated_at) "
        "SELECT user_id, id, ?, ?, 0, limit_amount, ?, ? FROM categories "
        "WHERE id = ? AND user_id = ? AND active = 1"
    )
    records = [(month, year, now, now, category_id, user_id) for category_id in category_ids]

    with connect(db_path) as conn:
        cur = conn.cursor()
        before_changes = conn.total_changes
        cur.executemany(insert_sql, records)
        conn.commit()
        inserted = conn.total_changes - before_changes
    return inserted


def fetch_balances(user_id: str, month: int, year: int, db_path: PathLike = None) -> List[Dict[str, Any]]:
    with connect(db_path) as conn:
        rows = conn.execute(BALANCE_SELECT, (user_id, month, year)).fetchall()
    return [dict(r) for r in rows]


def fetch_balances_frame(user_id: str, month: int, year: int, db_path: PathLike = None) -> pd.DataFrame:
    with connect(db_path) as conn:
        conn.row_factory = None
        df = pd.read_sql_query(BALANCE_SELECT, conn, params=[user_id, month, year])
    return df


def count_balances(user_id: str, month: int, year: int, db_path: PathLike = None) -> int:
    with connect(db_path) as conn:
        row = conn.execute(
            "SELECT COUNT(*) FROM category_balances WHERE user_id = ? AND month = ? AND year = ?",
            (user_id, month, year),
        ).fetchone()
    return int(row[0])


def increment_spent(
    user_id: str,
    category_id: int,
    month: int,
    year: int,
    amount: float,
    db_path: PathLike = None,
) -> bool:
    with connect(db_path) as conn:
        cursor = conn.execute(
            "UPDATE category_balances SET spent = spent + ?, updated_at = ? "
            "WHERE user_id = ? AND category_id = ? AND month = ? AND year = ?",
            (float(amount), _now(), user_id, category_id, month, year),
        )
        conn.commit()
        return cursor.rowcount > 0


# ---------------------------------------------------------------------------
# Fund allocations
# ---------------------------------------------------------------------------


def _allocation_columns() -> List[str]:
    columns = []
    for bucket in BUCKETS:
        prefix = BUCKET_COLUMNS[bucket]
        columns.extend([f"{prefix}_type", f"{prefix}_value", f"{prefix}_cap"])
    return columns


def _allocation_values(rules: Dict[str, Dict[str, Any]]) -> List[Any]:
    values: List[Any] = []
    for bucket in BUCKETS:
        rule = rules[bucket]
        values.extend([rule['type'], float(rule['value']), rule.get('cap')])
    return values


def fetch_allocation(user_id: str, db_path: PathLike = None) -> Optional[Dict[str, Any]]:
    with connect(db_path) as conn:
        row = conn.execute("SELECT * FROM fund_allocations WHERE user_id = ?", (user_id,)).fetchone()
    return dict(row) if row else None


def insert_allocation_if_absent(user_id: str, rules: Dict[str, Dict[str, Any]], db_path: PathLike = None) -> bool:
    """Create the default row for ``user_id``; a concurrent winner is kept.

    Returns True when this call created the row.
    """
    columns = _allocation_columns()
    now = _now()
    sql = (
        f"INSERT OR IGNORE INTO fund_allocations (user_id, {', '.join(columns)}, is_custom, created_at, updated_at) "
        f"VALUES (?, {', '.join('?' for _ in columns)}, 0, ?, ?)"
    )
    with connect(db_path) as conn:
        cur = conn.execute(sql, [user_id, *_allocation_values(rules), now, now])
        conn.commit()
        return cur.rowcount > 0


def upsert_allocation(user_id: str, rules: Dict[str, Dict[str, Any]], db_path: PathLike = None) -> None:
    """Replace all four bucket definitions for ``user_id``."""
    columns = _allocation_columns()
    now = _now()
    assignments = ', '.join(f"{col} = excluded.{col}" for col in columns)
    sql = (
        f"INSERT INTO fund_allocations (user_id, {', '.join(columns)}, is_custom, created_at, updated_at) "
        f"VALUES (?, {', '.join('?' for _ in columns)}, 1, ?, ?) "
        f"ON CONFLICT(user_id) DO UPDATE SET {assignments}, is_custom = 1, updated_at = excluded.updated_at"
    )
    with connect(db_path) as conn:
        conn.execute(sql, [user_id, *_allocation_values(rules), now, now])
        conn.commit()


# ---------------------------------------------------------------------------
# Income entries
# ---------------------------------------------------------------------------


def insert_income(
    user_id: str,
    amount: float,
    received_at: datetime,
    description: Optional[str] = None,
    exclude_from_allocation: bool = False,
    db_path: PathLike = None,
) -> int:
    with connect(db_path) as conn:
        cur = conn.execute(
            "INSERT INTO income_entries (user_id, amount, description, received_at, month, year, exclude_from_allocation) "
            "VALUES (?, ?, ?, ?, ?, ?, ?)",
            (
                user_id,
                float(amount),
                description,
                received_at.isoformat(),
                received_at.month,
                received_at.year,
                1 if exclude_from_allocation else 0,
            ),
        )
        conn.commit()
        return int(cur.lastrowid)


def sum_income(user_id: str, month: int, year: int, db_path: PathLike = None) -> float:
    with connect(db_path) as conn:
        row = conn.execute(
            "SELECT COALESCE(SUM(amount), 0) FROM income_entries "
            "WHERE user_id = ? AND month = ? AND year = ? AND exclude_from_allocation = 0",
            (user_id, month, year),
        ).fetchone()
    return float(row[0])
