"""Tests for lazy per-period balance materialization and reading.

Each test gets its own SQLite file under ``tmp_path`` and a clock it can move
across month boundaries.
"""

from __future__ import annotations

from datetime import datetime

import pytest

from finance_tracker import db as db_mod
from finance_tracker.balances import (
    EnrichedBalance,
    balances_frame,
    current_balances,
    ensure_balances,
    needs_materialization,
    record_expense,
)
from finance_tracker.categories import add_category, deactivate_category, update_category_limit
from finance_tracker.exceptions import InvalidAmountError
from finance_tracker.periods import Period

USER = 'user-1'


@pytest.fixture
def clock():
    state = {'now': datetime(2026, 10, 15, 12, 0)}

    def _clock():
        return state['now']

    _clock.state = state
    return _clock


@pytest.fixture
def database(tmp_path, monkeypatch: pytest.MonkeyPatch):
    db_path = tmp_path / "finance.db"
    monkeypatch.setattr(db_mod, "DB_PATH", str(db_path))
    db_mod.init_db()
    return db_path


def _add_categories():
    rent = add_category(USER, 'Rent', 1200.0, display_order=2, bucket='fixedCosts')
    food = add_category(USER, 'Groceries', 400.0, display_order=1, bucket='guiltFreeSpending')
    misc = add_category(USER, 'Misc', 100.0)
    return rent, food, misc


def _row_count():
    with db_mod.connect() as conn:
        return conn.execute("SELECT COUNT(*) FROM category_balances").fetchone()[0]


def test_ensure_balances_is_idempotent(database, clock):
    _add_categories()

    assert ensure_balances(USER, clock) == 3
    for _ in range(5):
        assert ensure_balances(USER, clock) == 0

    assert _row_count() == 3
    assert all(b.spent == 0 for b in current_balances(USER, clock))


def test_new_balances_start_zeroed_with_limit_snapshot(database, clock):
    rent, _, _ = _add_categories()
    ensure_balances(USER, clock)

    update_category_limit(USER, rent, 1500.0)
    ensure_balances(USER, clock)
    october = {b.category_id: b for b in current_balances(USER, clock)}
    assert october[rent].limit == 1200.0

    clock.state['now'] = datetime(2026, 11, 2)
    ensure_balances(USER, clock)
    november = {b.category_id: b for b in current_balances(USER, clock)}
    assert november[rent].limit == 1500.0
    assert november[rent].spent == 0


def test_period_isolation_after_month_change(database, clock):
    rent, _, _ = _add_categories()
    ensure_balances(USER, clock)
    record_expense(USER, rent, 1200.0, clock=clock)

    clock.state['now'] = datetime(2026, 11, 1, 0, 0, 1)
    assert current_balances(USER, clock) == []
    assert needs_materialization(USER, clock)

    ensure_balances(USER, clock)
    balances = current_balances(USER, clock)
    assert {b.period for b in balances} == {Period(2026, 11)}
    assert all(b.spent == 0 for b in balances)
    # October rows are still stored
    assert _row_count() == 6


def test_reader_does_not_create_rows(database, clock):
    _add_categories()
    assert current_balances(USER, clock) == []
    assert _row_count() == 0


def test_reader_orders_by_display_order_then_id(database, clock):
    rent, food, misc = _add_categories()
    ensure_balances(USER, clock)
    ids = [b.category_id for b in current_balances(USER, clock)]
    assert ids == [food, rent, misc]
    assert ids == [b.category_id for b in current_balances(USER, clock)]


def test_deactivated_category_is_skipped(database, clock):
    rent, food, misc = _add_categories()
    deactivate_category(USER, misc)
    assert ensure_balances(USER, clock) == 2
    assert misc not in {b.category_id for b in current_balances(USER, clock)}


def test_category_gone_between_listing_and_insert_is_skipped(database):
    rent = add_category(USER, 'Rent', 1200.0)
    created = db_mod.insert_balances_if_absent(USER, [rent, 9999], 10, 2026)
    assert created == 1


def test_balances_are_scoped_to_user(database, clock):
    _add_categories()
    add_category('user-2', 'Rent', 900.0)
    ensure_balances(USER, clock)
    ensure_balances('user-2', clock)
    assert len(current_balances(USER, clock)) == 3
    assert [b.limit for b in current_balances('user-2', clock)] == [900.0]


def test_remaining_and_over_budget_derivation():
    over = EnrichedBalance('u', 1, 'Food', None, Period(2026, 10), spent=450.0, limit=400.0)
    assert over.remaining == -50.0
    assert over.over_budget is True

    exact = EnrichedBalance('u', 1, 'Food', None, Period(2026, 10), spent=400.0, limit=400.0)
    assert exact.remaining == 0.0
    assert exact.over_budget is False


def test_record_expense_accumulates(database, clock):
    rent, food, _ = _add_categories()
    ensure_balances(USER, clock)
    record_expense(USER, food, 300.0, clock=clock)
    record_expense(USER, food, 150.0, clock=clock)

    balance = {b.category_id: b for b in current_balances(USER, clock)}[food]
    assert balance.spent == 450.0
    assert balance.remaining == -50.0
    assert balance.over_budget


def test_record_expense_materializes_missing_period(database, clock):
    rent, _, _ = _add_categories()
    assert record_expense(USER, rent, 50.0, when=datetime(2026, 9, 30, 18, 0)) is True
    assert _row_count() == 3
    assert current_balances(USER, clock) == []


def test_record_expense_rejects_non_positive(database, clock):
    rent, _, _ = _add_categories()
    with pytest.raises(InvalidAmountError):
        record_expense(USER, rent, 0, clock=clock)
    with pytest.raises(ValueError):
        record_expense(USER, rent, -5.0, clock=clock)


def test_balances_carry_row_timestamps(database, clock):
    _, food, _ = _add_categories()
    ensure_balances(USER, clock)
    created = next(b for b in current_balances(USER, clock) if b.category_id == food)
    assert created.created_at is not None
    assert created.updated_at == created.created_at

    record_expense(USER, food, 20.0, clock=clock)
    updated = next(b for b in current_balances(USER, clock) if b.category_id == food)
    assert updated.created_at == created.created_at
    assert updated.updated_at >= created.updated_at
    assert updated.to_dict()['createdAt'] == created.created_at


@pytest.mark.parametrize('amount', [float('inf'), float('nan'), '25', None, True])
def test_record_expense_rejects_non_finite_and_non_numeric(database, clock, amount):
    rent, _, _ = _add_categories()
    with pytest.raises(InvalidAmountError):
        record_expense(USER, rent, amount, clock=clock)
    assert _row_count() == 0


def test_balances_frame_columns(database, clock):
    _, food, _ = _add_categories()
    ensure_balances(USER, clock)
    record_expense(USER, food, 410.0, clock=clock)

    frame = balances_frame(USER, Period(2026, 10))
    assert list(frame.columns) == ['Category ID', 'Category', 'Bucket', 'Spent', 'Limit', 'Remaining', 'Over Budget']
    row = frame[frame['Category ID'] == food].iloc[0]
    assert row['Remaining'] == -10.0
    assert bool(row['Over Budget'])


def test_balances_frame_empty_period(database):
    frame = balances_frame(USER, Period(2026, 1))
    assert frame.empty
    assert 'Remaining' in frame.columns
