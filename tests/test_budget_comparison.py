from __future__ import annotations

import pytest

from app.services.analytics import budget_comparison, classify_budget_status


def expense(category: str, amount: float, when: str = "2026-10-12") -> dict:
    return {"type": "expense", "category": category, "amount": amount, "date": when}


def test_over_budget_row() -> None:
    result = budget_comparison([expense("Food & Drinks", 550)], {"Food & Drinks": 500}, 2026, 10)
    row = result.rows[0]
    assert row.status == "over"
    assert row.difference == -50
    assert row.percent_used == pytest.approx(110)


def test_warning_above_ninety_percent() -> None:
    result = budget_comparison([expense("Shopping", 460)], {"Shopping": 500}, 2026, 10)
    assert result.rows[0].status == "warning"


@pytest.mark.parametrize(
    "actual, budget, status",
    [
        (450, 500, "good"),
        (450.01, 500, "warning"),
        (500, 500, "warning"),
        (500.01, 500, "over"),
        (10, None, "noBudget"),
        (10, 0, "noBudget"),
    ],
)
def test_classify_budget_status(actual: float, budget: float | None, status: str) -> None:
    assert classify_budget_status(actual, budget) == status


def test_rows_without_budget_sort_last() -> None:
    items = [
        expense("Entertainment", 900),
        expense("Food & Drinks", 300),
        expense("Housing", 1150),
        expense("Shopping", 100),
    ]
    budgets = {"Food & Drinks": 400, "Housing": 1000, "Shopping": 500}
    result = budget_comparison(items, budgets, 2026, 10)

    assert [r.category for r in result.rows] == ["Housing", "Food & Drinks", "Shopping", "Entertainment"]
    last = result.rows[-1]
    assert last.budget is None
    assert last.status == "noBudget"
    assert last.difference == 0


def test_only_selected_month_counts() -> None:
    items = [expense("Housing", 1000, "2026-09-30T23:00:00"), expense("Housing", 200, "2026-10-01T00:00:00")]
    result = budget_comparison(items, {"Housing": 1000}, 2026, 10)
    assert result.month == "2026-10"
    assert result.rows[0].actual == 200


def test_totals_row() -> None:
    items = [expense("Food & Drinks", 300), expense("Housing", 1150), expense("Entertainment", 50)]
    result = budget_comparison(items, {"Food & Drinks": 400, "Housing": 1000}, 2026, 10)
    totals = result.totals
    assert totals.actual == 1500
    assert totals.budget == 1400
    assert totals.difference == -100
    assert totals.status == "over"


def test_budget_with_no_spend_is_not_listed() -> None:
    result = budget_comparison([expense("Housing", 100)], {"Housing": 500, "Education": 200}, 2026, 10)
    assert [r.category for r in result.rows] == ["Housing"]


def test_empty_month() -> None:
    result = budget_comparison([], {"Housing": 500}, 2026, 10)
    assert result.rows == []
    assert result.totals.budget is None
