"""End-to-end tests through ``BudgetTracker``, including concurrent first access."""

from __future__ import annotations

import sqlite3
import threading
from datetime import datetime

import pytest

from finance_tracker import db, service
from finance_tracker.categories import add_category
from finance_tracker.periods import fixed_clock
from finance_tracker.service import BudgetTracker

USER = 'user-1'


@pytest.fixture
def tracker(tmp_path):
    return BudgetTracker(db_path=tmp_path / "finance.db", clock=fixed_clock(datetime(2026, 10, 19, 9, 30)))


def _run_concurrently(count, target):
    barrier = threading.Barrier(count)
    errors = []

    def worker():
        try:
            barrier.wait()
            target()
        except Exception as exc:  # collected for the assertion below
            errors.append(exc)

    threads = [threading.Thread(target=worker) for _ in range(count)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()
    return errors


def test_concurrent_first_access_creates_one_row_per_category(tracker):
    for i in range(5):
        add_category(USER, f"Category {i}", 100.0 * (i + 1), db_path=tracker.db_path)

    errors = _run_concurrently(8, lambda: tracker.ensure_balances(USER))

    assert errors == []
    balances = tracker.current_balances(USER)
    assert len(balances) == 5
    assert len({b.category_id for b in balances}) == 5


def test_concurrent_default_allocation_creates_one_row(tracker):
    results = []
    errors = _run_concurrently(8, lambda: results.append(tracker.get_allocation(USER)))

    assert errors == []
    assert len(results) == 8
    assert all(r.rules == results[0].rules for r in results)
    with db.connect(tracker.db_path) as conn:
        assert conn.execute("SELECT COUNT(*) FROM fund_allocations").fetchone()[0] == 1


def test_get_current_period(tracker):
    assert tracker.get_current_period().to_dict() == {'month': 10, 'year': 2026}


def test_dashboard_snapshot_materializes_then_reads(tracker):
    tracker.seed_categories(USER)
    snapshot = tracker.dashboard_snapshot(USER)
    assert snapshot['period'] == {'month': 10, 'year': 2026}
    assert [b['bucket'] for b in snapshot['balances']] == [
        'fixedCosts',
        'savings',
        'investment',
        'guiltFreeSpending',
    ]
    assert all(b['remaining'] == 0 and not b['overBudget'] for b in snapshot['balances'])


def test_seed_categories_is_idempotent(tracker):
    assert tracker.seed_categories(USER) == 4
    assert tracker.seed_categories(USER) == 0


def test_allocation_breakdown_uses_supplied_income(tracker):
    amounts = tracker.allocation_breakdown(USER, income=2000)
    assert amounts == {'fixedCosts': 1000.0, 'savings': 400.0, 'investment': 200.0, 'guiltFreeSpending': 400.0}


def test_allocation_breakdown_uses_recorded_income(tracker):
    tracker.record_income(USER, 1500.0, description='Salary')
    tracker.record_income(USER, 500.0, description='Bonus')
    tracker.record_income(USER, 999.0, description='Cash', exclude_from_allocation=True)
    tracker.record_income(USER, 700.0, when=datetime(2026, 9, 30, 12, 0))

    amounts = tracker.allocation_breakdown(USER)
    assert amounts['fixedCosts'] == 1000.0
    assert amounts['guiltFreeSpending'] == 400.0


def test_allocation_breakdown_redirects_excess_to_savings(tracker):
    tracker.update_allocation(USER, {
        'fixedCosts': {'type': 'percentage', 'value': 50, 'cap': 500},
        'savings': {'type': 'percentage', 'value': 20},
        'investment': {'type': 'percentage', 'value': 10},
        'guiltFreeSpending': {'type': 'percentage', 'value': 20},
    })
    plain = tracker.allocation_breakdown(USER, income=2000)
    redirected = tracker.allocation_breakdown(USER, income=2000, redirect_excess=True)
    assert plain['savings'] == 400.0
    assert redirected['savings'] == 900.0
    assert redirected['fixedCosts'] == 500.0


def test_tracking_summary_carries_over_previous_month(tmp_path):
    state = {'now': datetime(2026, 9, 10)}
    tracker = BudgetTracker(db_path=tmp_path / "finance.db", clock=lambda: state['now'])
    food = add_category(USER, 'Groceries', 400.0, db_path=tracker.db_path)
    tracker.ensure_balances(USER)
    tracker.record_expense(USER, food, 250.0)

    state['now'] = datetime(2026, 10, 3)
    tracker.ensure_balances(USER)
    tracker.record_expense(USER, food, 100.0)

    summary = tracker.tracking_summary(USER)
    row = summary.iloc[0]
    assert row['Carryover'] == 150.0
    assert row['Available'] == 550.0
    assert row['Remaining'] == 450.0


def test_bucket_summary_reconciles_spend(tracker):
    tracker.seed_categories(USER)
    tracker.ensure_balances(USER)
    fixed = next(b for b in tracker.current_balances(USER) if b.bucket == 'fixedCosts')
    tracker.record_expense(USER, fixed.category_id, 1200.0)

    summary = tracker.bucket_summary(USER, income=2000).set_index('Bucket')
    assert summary.loc['fixedCosts', 'Allocated'] == 1000.0
    assert summary.loc['fixedCosts', 'Remaining'] == -200.0
    assert bool(summary.loc['fixedCosts', 'Over Budget'])


def test_blank_user_id_rejected(tracker):
    with pytest.raises(ValueError):
        tracker.ensure_balances('')


def test_module_level_functions_use_default_tracker(tmp_path, monkeypatch: pytest.MonkeyPatch):
    tracker = BudgetTracker(db_path=tmp_path / "finance.db", clock=fixed_clock(datetime(2026, 2, 1)))
    monkeypatch.setattr(service, "_default_tracker", tracker)
    add_category(USER, 'Rent', 1000.0, db_path=tracker.db_path)

    assert service.get_current_period() == {'month': 2, 'year': 2026}
    assert service.ensure_balances(USER) == 1
    assert service.ensure_balances(USER) == 0
    assert [b.limit for b in service.current_balances(USER)] == [1000.0]
    assert not service.get_allocation(USER).is_custom
    updated = service.update_allocation(USER, {
        'fixedCosts': {'type': 'fixed', 'value': 900},
        'savings': {'type': 'percentage', 'value': 20},
        'investment': {'type': 'percentage', 'value': 10},
        'guiltFreeSpending': {'type': 'percentage', 'value': 20},
    })
    assert updated.is_custom


def test_module_level_recording_and_summaries(tmp_path, monkeypatch: pytest.MonkeyPatch):
    tracker = BudgetTracker(db_path=tmp_path / "finance.db", clock=fixed_clock(datetime(2026, 10, 19)))
    monkeypatch.setattr(service, "_default_tracker", tracker)
    food = add_category(USER, 'Groceries', 400.0, db_path=tracker.db_path)

    assert service.record_expense(USER, food, 125.0)
    service.record_income(USER, 3000.0, description='Salary')
    service.record_income(USER, 50.0, exclude_from_allocation=True)

    assert service.allocation_breakdown(USER) == {
        'fixedCosts': 1500.0,
        'savings': 600.0,
        'investment': 300.0,
        'guiltFreeSpending': 600.0,
    }
    assert service.allocation_breakdown(USER, income=1000)['savings'] == 200.0
    row = service.tracking_summary(USER).iloc[0]
    assert row['Spent'] == 125.0
    assert row['Remaining'] == 275.0


def test_unusable_database_path_raises_sqlite_error(tmp_path):
    with pytest.raises(sqlite3.Error):
        BudgetTracker(db_path=tmp_path)


def test_storage_errors_reach_the_caller(tmp_path):
    tracker = BudgetTracker(db_path=tmp_path / "finance.db")
    tracker.db_path = tmp_path
    with pytest.raises(sqlite3.Error):
        tracker.ensure_balances(USER)
    with pytest.raises(sqlite3.Error):
        tracker.get_allocation(USER)
