from __future__ import annotations

import pytest

from app.services.preferences_store import (
    ensure_preferences,
    get_preferences,
    merge_budgets,
    set_preferences,
)


def test_defaults_before_first_save(db, user) -> None:
    prefs = get_preferences(db, user.id)
    assert prefs.currency == "USD"
    assert prefs.budgets == {}
    assert prefs.avatar is None


def test_ensure_preferences_is_idempotent(db, user) -> None:
    first = ensure_preferences(db, user.id)
    second = ensure_preferences(db, user.id)
    assert first is second


def test_merge_budgets_keeps_untouched_categories() -> None:
    merged = merge_budgets({"Housing": 1000, "Food & Drinks": 400}, {"Food & Drinks": 450, "Education": 100})
    assert merged == {"Housing": 1000, "Food & Drinks": 450, "Education": 100}


def test_merge_budgets_zero_removes_category() -> None:
    assert merge_budgets({"Housing": 1000, "Shopping": 200}, {"Shopping": 0}) == {"Housing": 1000}


def test_merge_budgets_rejects_negative() -> None:
    with pytest.raises(ValueError):
        merge_budgets({}, {"Housing": -1})


@pytest.mark.parametrize("cap", [float("inf"), float("nan")])
def test_merge_budgets_rejects_non_finite(cap) -> None:
    with pytest.raises(ValueError, match="finite"):
        merge_budgets({"Housing": 1000}, {"Housing": cap})


def test_set_preferences_merges_fields(db, user) -> None:
    assert set_preferences(db, user.id, budgets={"Housing": 1200}).ok
    result = set_preferences(db, user.id, currency="EUR")

    assert result.ok
    prefs = get_preferences(db, user.id)
    assert prefs.currency == "EUR"
    assert prefs.budgets == {"Housing": 1200}

    set_preferences(db, user.id, budgets={"Shopping": 300})
    assert get_preferences(db, user.id).budgets == {"Housing": 1200, "Shopping": 300}


def test_set_preferences_unknown_field(db, user) -> None:
    result = set_preferences(db, user.id, theme="dark")
    assert not result.ok
    assert "theme" in result.error


def test_negative_budget_leaves_row_unchanged(db, user) -> None:
    set_preferences(db, user.id, budgets={"Housing": 1200})
    result = set_preferences(db, user.id, budgets={"Housing": -5})
    assert not result.ok
    assert get_preferences(db, user.id).budgets == {"Housing": 1200}
