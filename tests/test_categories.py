import pytest

from finance_tracker import db as db_mod
from finance_tracker.categories import (
    add_category,
    deactivate_category,
    list_active_categories,
    seed_default_categories,
)

USER = 'user-1'


@pytest.fixture
def database(tmp_path, monkeypatch: pytest.MonkeyPatch):
    db_path = tmp_path / "finance.db"
    monkeypatch.setattr(db_mod, "DB_PATH", str(db_path))
    db_mod.init_db()
    return db_path


def test_duplicate_name_returns_none(database):
    assert add_category(USER, 'Rent', 1000.0) is not None
    assert add_category(USER, 'Rent', 900.0) is None
    assert add_category('user-2', 'Rent', 900.0) is not None


def test_invalid_category_input(database):
    with pytest.raises(ValueError):
        add_category(USER, ' ', 10.0)
    with pytest.raises(ValueError):
        add_category(USER, 'Rent', -1.0)
    with pytest.raises(ValueError):
        add_category(USER, 'Rent', 10.0, bucket='rainyDay')


def test_deactivated_categories_not_listed(database):
    rent = add_category(USER, 'Rent', 1000.0)
    add_category(USER, 'Food', 300.0)
    assert deactivate_category(USER, rent)
    assert [c.name for c in list_active_categories(USER)] == ['Food']


def test_seed_default_categories_cover_buckets(database):
    assert seed_default_categories(USER) == 4
    assert [c.bucket for c in list_active_categories(USER)] == [
        'fixedCosts',
        'savings',
        'investment',
        'guiltFreeSpending',
    ]
