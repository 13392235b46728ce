# app/services/analytics.py
#
# Dashboard Analytics
# Pure aggregation functions over a user's transactions: period totals,
# category breakdowns, budget comparison, the financial health score and
# the smaller chart series shown on the dashboard.

"""
Analytics for the budget tracker dashboard.

Every function here is pure: it takes a sequence of transaction-like
objects (ORM rows, dicts, or anything with `type`, `category`, `date`
and `amount`), optionally the user's budgets map and a reference date,
and returns plain dataclasses. Nothing is read from or written to the
database, so the same inputs always give the same outputs.

Dates may be datetime/date objects or ISO 8601 strings; timezone-aware
values are converted to naive UTC.
"""

from __future__ import annotations

import calendar
import math
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta, timezone
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

import numpy as np
import pandas as pd

from app.services.categories import category_color
from app.services.periods import month_bounds, shift_month, year_bounds

COLUMNS = ["type", "category", "date", "amount"]

# Weights of the four sub-metrics in the overall health score
HEALTH_WEIGHTS = {
    "savings_rate": 0.4,
    "budget_adherence": 0.3,
    "expense_diversity": 0.1,
    "income_stability": 0.2,
}

DRILLDOWN_TIMEFRAMES = ("thisMonth", "3months", "6months", "1year", "all")
TREND_RANGES = {"3months": 3, "6months": 6, "1year": 12}


# -------------------------------------------------------------------
# Result types
# -------------------------------------------------------------------

@dataclass
class PeriodTotals:
    total_income: float = 0.0
    total_expenses: float = 0.0
    net_balance: float = 0.0
    transaction_count: int = 0


@dataclass
class CategoryTotal:
    category: str
    total: float
    count: int
    color: str


@dataclass
class BudgetRow:
    category: str
    actual: float
    budget: Optional[float]
    difference: float
    percent_used: float
    status: str


@dataclass
class BudgetComparison:
    month: str
    rows: List[BudgetRow]
    totals: BudgetRow


@dataclass
class FinancialHealth:
    current_income: float
    current_expenses: float
    previous_income: float
    previous_expenses: float
    current_savings_rate: float
    previous_savings_rate: float
    savings_rate_change: float
    income_change: float
    expense_change: float
    budgeted_categories: int
    categories_within_budget: int
    budget_adherence: float
    expense_diversity: float
    income_stability: float
    overall_score: int
    rating: str = ""
    rating_color: str = ""
    advice: List[str] = field(default_factory=list)


@dataclass
class DailyTotals:
    day: int
    income: float
    expenses: float


@dataclass
class TrendPoint:
    month: str
    label: str
    totals: Dict[str, float]
    total: float


@dataclass
class SpendingTrends:
    categories: List[str]
    points: List[TrendPoint]


@dataclass
class DrilldownDay:
    date: str
    label: str
    total: float
    transactions: List[Dict[str, Any]]


@dataclass
class QuickInsights:
    income: float
    expenses: float
    savings_rate: float
    top_category: str
    top_category_amount: float
    spending_trend: float


@dataclass
class Summary:
    total_income: float
    total_expenses: float
    balance: float
    expenses_by_category: Dict[str, float]
    income_by_category: Dict[str, float]


# -------------------------------------------------------------------
# Frame helpers
# -------------------------------------------------------------------

def to_datetime(value: Any) -> datetime:
    """Normalize a datetime/date/ISO string into a naive (UTC) datetime."""
    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, date):
        dt = datetime(value.year, value.month, value.day)
    else:
        dt = datetime.fromisoformat(str(value).strip().replace("Z", "+00:00"))
    if dt.tzinfo is not None:
        dt = dt.astimezone(timezone.utc).replace(tzinfo=None)
    return dt


def _field(tx: Any, name: str) -> Any:
    if isinstance(tx, Mapping):
        return tx.get(name)
    return getattr(tx, name, None)


def to_frame(transactions: Iterable[Any]) -> pd.DataFrame:
    """
    Build a DataFrame with columns type / category / date / amount.

    An existing frame is passed through untouched.
    """
    if isinstance(transactions, pd.DataFrame):
        return transactions

    rows = [
        {
            "type": str(_field(t, "type") or ""),
            "category": str(_field(t, "category") or ""),
            "date": to_datetime(_field(t, "date")),
            "amount": float(_field(t, "amount") or 0.0),
        }
        for t in transactions
    ]
    df = pd.DataFrame(rows, columns=COLUMNS)
    df["date"] = pd.to_datetime(df["date"])
    df["amount"] = df["amount"].astype(float)
    return df


def _in_range(df: pd.DataFrame, start: Optional[date], end: Optional[date]) -> pd.Series:
    """Boolean mask for start <= date < end (either bound may be None)."""
    mask = pd.Series(True, index=df.index)
    if start is not None:
        mask &= df["date"] >= pd.Timestamp(start)
    if end is not None:
        mask &= df["date"] < pd.Timestamp(end)
    return mask


def _category_sums(df: pd.DataFrame, kind: str = "expense") -> pd.Series:
    # Insertion order = first time a category is seen
    rows = df[df["type"] == kind]
    if rows.empty:
        return pd.Series(dtype=float)
    return rows.groupby("category", sort=False)["amount"].sum()


def _sum(df: pd.DataFrame, kind: str) -> float:
    return float(df.loc[df["type"] == kind, "amount"].sum())


def _pct_change(current: float, previous: float) -> float:
    return (current - previous) / previous * 100 if previous > 0 else 0.0


def _savings_rate(income: float, expenses: float) -> float:
    return (income - expenses) / income * 100 if income > 0 else 0.0


def _js_round(x: float) -> int:
    # Half-up rounding, as the score has always been displayed
    return int(math.floor(x + 0.5))


# -------------------------------------------------------------------
# Monthly / YTD totals
# -------------------------------------------------------------------

def period_totals(transactions: Iterable[Any], start: Optional[date], end: Optional[date]) -> PeriodTotals:
    """
    Sum income and expenses over [start, end).

    Empty input yields all zeros.
    """
    df = to_frame(transactions)
    df = df[_in_range(df, start, end)]

    income = _sum(df, "income")
    expenses = _sum(df, "expense")
    return PeriodTotals(
        total_income=income,
        total_expenses=expenses,
        net_balance=income - expenses,
        transaction_count=int(len(df)),
    )


def monthly_overview(transactions: Iterable[Any], today: date) -> PeriodTotals:
    start, end = month_bounds(today.year, today.month)
    return period_totals(transactions, start, end)


def ytd_overview(transactions: Iterable[Any], today: date) -> PeriodTotals:
    start, end = year_bounds(today.year)
    return period_totals(transactions, start, end)


# -------------------------------------------------------------------
# Category breakdown
# -------------------------------------------------------------------

def category_breakdown(
    transactions: Iterable[Any],
    start: Optional[date] = None,
    end: Optional[date] = None,
    kind: str = "expense",
) -> List[CategoryTotal]:
    """
    Group `kind` transactions in [start, end) by category.

    Sorted by total descending; equal totals keep first-encountered order.
    """
    df = to_frame(transactions)
    df = df[_in_range(df, start, end) & (df["type"] == kind)]
    if df.empty:
        return []

    grouped = df.groupby("category", sort=False)["amount"].agg(["sum", "count"])
    grouped = grouped.sort_values("sum", ascending=False, kind="stable")

    return [
        CategoryTotal(
            category=str(category),
            total=float(row["sum"]),
            count=int(row["count"]),
            color=category_color(str(category)),
        )
        for category, row in grouped.iterrows()
    ]


def expense_categories(transactions: Iterable[Any]) -> List[str]:
    df = to_frame(transactions)
    return sorted(df.loc[df["type"] == "expense", "category"].unique().tolist())


# -------------------------------------------------------------------
# Budget comparison
# -------------------------------------------------------------------

def _budget_for(budgets: Optional[Mapping[str, Any]], category: str) -> Optional[float]:
    """A positive budget for the category, or None when unset."""
    if not budgets:
        return None
    raw = budgets.get(category)
    try:
        value = float(raw)
    except (TypeError, ValueError):
        return None
    return value if value > 0 else None


def classify_budget_status(actual: float, budget: Optional[float]) -> str:
    """over / warning / good, or noBudget when no cap is set."""
    if budget is None or budget <= 0:
        return "noBudget"
    if actual > budget:
        return "over"
    if actual > budget * 0.9:
        return "warning"
    return "good"


def _budget_row(category: str, actual: float, budget: Optional[float]) -> BudgetRow:
    if budget is not None:
        difference = budget - actual
        percent_used = actual / budget * 100
    else:
        # No cap: sorts as fully used, never displayed as a percentage
        difference = 0.0
        percent_used = 100.0
    return BudgetRow(
        category=category,
        actual=actual,
        budget=budget,
        difference=difference,
        percent_used=percent_used,
        status=classify_budget_status(actual, budget),
    )


def budget_comparison(
    transactions: Iterable[Any],
    budgets: Optional[Mapping[str, Any]],
    year: int,
    month: int,
) -> BudgetComparison:
    """
    Compare a month's spending per category against the user's budgets.

    Rows with a budget come first; within each group rows are ordered by
    percent used, highest first.
    """
    start, end = month_bounds(year, month)
    df = to_frame(transactions)
    sums = _category_sums(df[_in_range(df, start, end)])

    rows = [
        _budget_row(str(category), float(actual), _budget_for(budgets, str(category)))
        for category, actual in sums.items()
    ]
    rows.sort(key=lambda r: (r.budget is None, -r.percent_used))

    total_budget = sum(r.budget or 0.0 for r in rows)
    total_actual = sum(r.actual for r in rows)
    totals = BudgetRow(
        category="Total",
        actual=total_actual,
        budget=total_budget if total_budget > 0 else None,
        difference=total_budget - total_actual,
        percent_used=total_actual / total_budget * 100 if total_budget > 0 else 100.0,
        status=classify_budget_status(total_actual, total_budget if total_budget > 0 else None),
    )
    return BudgetComparison(month=f"{year:04d}-{month:02d}", rows=rows, totals=totals)


# -------------------------------------------------------------------
# Financial health score
# -------------------------------------------------------------------

def expense_diversity(category_amounts: Iterable[float]) -> float:
    """
    Normalized Shannon entropy of the spend distribution, 0..100.

    0 when fewer than two categories have spend or the total is 0.
    """
    amounts = np.asarray(list(category_amounts), dtype=float)
    amounts = amounts[amounts > 0]
    total = float(amounts.sum()) if amounts.size else 0.0
    if amounts.size < 2 or total <= 0:
        return 0.0

    p = amounts / total
    entropy = float(-(p * np.log2(p)).sum())
    return entropy / math.log2(amounts.size) * 100


def income_stability(monthly_incomes: Iterable[float]) -> float:
    """
    (1 - coefficient of variation) * 100, clamped to 0..100.

    0 when every month is 0 or the mean is not positive.
    """
    incomes = np.asarray(list(monthly_incomes), dtype=float)
    if incomes.size == 0 or not (incomes > 0).any():
        return 0.0
    mean = float(incomes.mean())
    if mean <= 0:
        return 0.0
    cv = float(incomes.std()) / mean
    return max(0.0, min(100.0, (1 - cv) * 100))


def budget_adherence(category_amounts: Mapping[str, float], budgets: Optional[Mapping[str, Any]]) -> Tuple[float, int, int]:
    """
    Returns (adherence %, budgeted categories, categories within budget).

    Only categories that have spend and a positive budget count.
    """
    budgeted = 0
    within = 0
    for category, amount in category_amounts.items():
        budget = _budget_for(budgets, str(category))
        if budget is None:
            continue
        budgeted += 1
        if amount <= budget:
            within += 1
    adherence = within / budgeted * 100 if budgeted > 0 else 0.0
    return adherence, budgeted, within


def health_rating(score: float) -> Tuple[str, str]:
    """Display band for a score: (label, colour token)."""
    if score >= 80:
        return "Excellent", "green"
    if score >= 60:
        return "Good", "emerald"
    if score >= 40:
        return "Fair", "amber"
    if score >= 20:
        return "Needs Improvement", "orange"
    return "Poor", "red"


def health_advice(health: FinancialHealth) -> List[str]:
    advice = []
    if health.current_savings_rate < 20:
        advice.append("Try to increase your savings rate by reducing non-essential expenses.")
    if health.budget_adherence < 70:
        advice.append(
            f"{health.categories_within_budget} of {health.budgeted_categories} categories are within budget. "
            "Review your spending in over-budget categories."
        )
    if health.income_stability < 50:
        advice.append(
            "Your income shows significant variation. Consider building an emergency fund "
            "to cover expenses during lower income periods."
        )
    if health.expense_diversity < 40:
        advice.append(
            "Your spending is concentrated in few categories. "
            "Review if this aligns with your financial priorities."
        )
    return advice


def financial_health(
    transactions: Iterable[Any],
    budgets: Optional[Mapping[str, Any]],
    today: date,
) -> FinancialHealth:
    """
    Compute the financial health score for the calendar month of `today`.

    Sub-metrics (each 0..100):
      - savings rate of the current month (negative rates count as 0)
      - budget adherence over budgeted categories with spend
      - expense diversity (normalized entropy of category spend)
      - income stability over the current and two prior months

    The overall score is their weighted sum, rounded half-up and clamped
    to 0..100.
    """
    df = to_frame(transactions)

    cur_start, cur_end = month_bounds(today.year, today.month)
    prev_year, prev_month = shift_month(today.year, today.month, -1)
    prev_start, prev_end = month_bounds(prev_year, prev_month)

    current = df[_in_range(df, cur_start, cur_end)]
    previous = df[_in_range(df, prev_start, prev_end)]

    current_income = _sum(current, "income")
    current_expenses = _sum(current, "expense")
    previous_income = _sum(previous, "income")
    previous_expenses = _sum(previous, "expense")

    current_rate = _savings_rate(current_income, current_expenses)
    previous_rate = _savings_rate(previous_income, previous_expenses)

    by_category = _category_sums(current)
    adherence, budgeted, within = budget_adherence(by_category.to_dict(), budgets)
    diversity = expense_diversity(by_category.tolist())

    incomes = []
    for i in range(3):
        year, month = shift_month(today.year, today.month, -i)
        start, end = month_bounds(year, month)
        incomes.append(_sum(df[_in_range(df, start, end)], "income"))
    stability = income_stability(incomes)

    weighted = (
        max(0.0, current_rate) * HEALTH_WEIGHTS["savings_rate"]
        + adherence * HEALTH_WEIGHTS["budget_adherence"]
        + diversity * HEALTH_WEIGHTS["expense_diversity"]
        + stability * HEALTH_WEIGHTS["income_stability"]
    )
    overall = max(0, min(100, _js_round(weighted)))

    health = FinancialHealth(
        current_income=current_income,
        current_expenses=current_expenses,
        previous_income=previous_income,
        previous_expenses=previous_expenses,
        current_savings_rate=current_rate,
        previous_savings_rate=previous_rate,
        savings_rate_change=current_rate - previous_rate,
        income_change=_pct_change(current_income, previous_income),
        expense_change=_pct_change(current_expenses, previous_expenses),
        budgeted_categories=budgeted,
        categories_within_budget=within,
        budget_adherence=adherence,
        expense_diversity=diversity,
        income_stability=stability,
        overall_score=overall,
    )
    health.rating, health.rating_color = health_rating(overall)
    health.advice = health_advice(health)
    return health


def radar_metrics(health: FinancialHealth) -> List[Dict[str, Any]]:
    return [
        {"metric": "Savings Rate", "value": max(0.0, min(100.0, health.current_savings_rate)), "full_mark": 100},
        {"metric": "Budget Adherence", "value": health.budget_adherence, "full_mark": 100},
        {"metric": "Expense Diversity", "value": health.expense_diversity, "full_mark": 100},
        {"metric": "Income Stability", "value": health.income_stability, "full_mark": 100},
    ]


# -------------------------------------------------------------------
# Chart series
# -------------------------------------------------------------------

def daily_income_expenses(transactions: Iterable[Any], today: date) -> List[DailyTotals]:
    """One entry per day of the current month, days with no activity included."""
    start, end = month_bounds(today.year, today.month)
    df = to_frame(transactions)
    df = df[_in_range(df, start, end)]

    days_in_month = calendar.monthrange(today.year, today.month)[1]
    income_rows = df[df["type"] == "income"]
    expense_rows = df[df["type"] == "expense"]
    income = income_rows.groupby(income_rows["date"].dt.day)["amount"].sum()
    expenses = expense_rows.groupby(expense_rows["date"].dt.day)["amount"].sum()

    return [
        DailyTotals(day=day, income=float(income.get(day, 0.0)), expenses=float(expenses.get(day, 0.0)))
        for day in range(1, days_in_month + 1)
    ]


def spending_trends(
    transactions: Iterable[Any],
    today: date,
    months: int = 3,
    categories: Optional[List[str]] = None,
) -> SpendingTrends:
    """
    Monthly expense totals per category for the last `months` months.

    Without explicit categories the three biggest expense categories
    (all time) are tracked.
    """
    df = to_frame(transactions)
    expenses = df[df["type"] == "expense"]

    if not categories:
        ranked = category_breakdown(expenses)
        categories = [c.category for c in ranked[:3]]

    points = []
    for i in range(months - 1, -1, -1):
        year, month = shift_month(today.year, today.month, -i)
        start, end = month_bounds(year, month)
        in_month = expenses[_in_range(expenses, start, end)]
        sums = in_month.groupby("category", sort=False)["amount"].sum()
        points.append(
            TrendPoint(
                month=f"{year:04d}-{month:02d}",
                label=start.strftime("%b %Y"),
                totals={c: float(sums.get(c, 0.0)) for c in categories},
                total=float(in_month["amount"].sum()),
            )
        )
    return SpendingTrends(categories=list(categories), points=points)


def timeframe_start(today: date, timeframe: str) -> Optional[date]:
    """First day covered by a drill-down timeframe (None = all time)."""
    back = {"thisMonth": 0, "3months": 2, "6months": 5, "1year": 11}
    if timeframe not in back:
        return None
    year, month = shift_month(today.year, today.month, -back[timeframe])
    return date(year, month, 1)


def category_drilldown(
    transactions: Iterable[Any],
    category: str,
    today: date,
    timeframe: str = "thisMonth",
) -> List[DrilldownDay]:
    """
    Transactions of one category grouped by day, newest day first.
    """
    start = timeframe_start(today, timeframe)
    window = None
    if start is not None:
        window = (to_datetime(start), to_datetime(month_bounds(today.year, today.month)[1]))

    days: Dict[str, DrilldownDay] = {}
    for t in transactions:
        if _field(t, "category") != category:
            continue
        when = to_datetime(_field(t, "date"))
        if window is not None and not (window[0] <= when < window[1]):
            continue
        key = when.strftime("%Y-%m-%d")
        if key not in days:
            days[key] = DrilldownDay(date=key, label=when.strftime("%b %d, %Y"), total=0.0, transactions=[])
        days[key].total += float(_field(t, "amount"))
        days[key].transactions.append(
            {
                "id": _field(t, "id"),
                "type": _field(t, "type"),
                "amount": float(_field(t, "amount")),
                "notes": _field(t, "notes"),
                "date": when.isoformat(),
            }
        )
    for day in days.values():
        day.transactions.sort(key=lambda x: x["date"], reverse=True)
    return sorted(days.values(), key=lambda d: d.date, reverse=True)


def quick_insights(transactions: Iterable[Any], now: datetime) -> QuickInsights:
    """
    Last-30-days snapshot: income, expenses, savings rate, top expense
    category, and spending of the last 15 days vs the 15 days before.
    """
    now = to_datetime(now)
    window_start = now - timedelta(days=30)
    half = now - timedelta(days=15)

    df = to_frame(transactions)
    recent = df[df["date"] >= pd.Timestamp(window_start)]

    income = _sum(recent, "income")
    expenses = _sum(recent, "expense")

    top_name, top_amount = "None", 0.0
    for category, amount in _category_sums(recent).items():
        if amount > top_amount:
            top_name, top_amount = str(category), float(amount)

    recent_expenses = recent[recent["type"] == "expense"]
    last_half = float(recent_expenses.loc[recent_expenses["date"] >= pd.Timestamp(half), "amount"].sum())
    first_half = float(recent_expenses.loc[recent_expenses["date"] < pd.Timestamp(half), "amount"].sum())

    return QuickInsights(
        income=income,
        expenses=expenses,
        savings_rate=_savings_rate(income, expenses),
        top_category=top_name,
        top_category_amount=top_amount,
        spending_trend=_pct_change(last_half, first_half),
    )


def summarize(transactions: Iterable[Any]) -> Summary:
    """All-time totals with per-category income and expense maps (largest first)."""
    df = to_frame(transactions)
    income = _sum(df, "income")
    expenses = _sum(df, "expense")
    return Summary(
        total_income=income,
        total_expenses=expenses,
        balance=income - expenses,
        expenses_by_category={c.category: c.total for c in category_breakdown(df, kind="expense")},
        income_by_category={c.category: c.total for c in category_breakdown(df, kind="income")},
    )
