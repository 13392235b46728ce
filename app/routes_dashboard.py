# app/routes_dashboard.py

from dataclasses import asdict
from datetime import date, datetime

from fastapi import APIRouter, Request, Depends, Query
from sqlalchemy.orm import Session

from .deps import get_db, require_user, require_api_user, render
from app.services import analytics
from app.services.auth import CurrentUser
from app.services.periods import month_bounds, month_options, parse_month
from app.services.preferences_store import get_preferences
from app.services.transaction_store import list_transactions

router = APIRouter()


def _selected_month(month: str | None, today: date) -> tuple[int, int]:
    return parse_month(month) or (today.year, today.month)


@router.get("/dashboard")
def dashboard_page(
    request: Request,
    month: str | None = Query(None),
    user: CurrentUser = Depends(require_user),
    db: Session = Depends(get_db),
):
    today = date.today()
    transactions = list_transactions(db, user.uid)
    prefs = get_preferences(db, user.uid)
    budgets = prefs.budgets or {}

    # One frame shared by every aggregation below
    frame = analytics.to_frame(transactions)

    year, month_num = _selected_month(month, today)
    month_start = date(year, month_num, 1)

    health = analytics.financial_health(frame, budgets, today)

    return render(
        request,
        "dashboard.html",
        {
            "today": today,
            "currency": prefs.currency,
            "monthly": analytics.monthly_overview(frame, today),
            "ytd": analytics.ytd_overview(frame, today),
            "month_label": today.strftime("%B %Y"),
            "spending_by_category": analytics.category_breakdown(frame, *month_bounds(today.year, today.month)),
            "comparison": analytics.budget_comparison(frame, budgets, year, month_num),
            "comparison_label": month_start.strftime("%B %Y"),
            "selected_month": f"{year:04d}-{month_num:02d}",
            "month_options": month_options(today),
            "health": health,
            "radar": analytics.radar_metrics(health),
            "daily": analytics.daily_income_expenses(frame, today),
            "trends": analytics.spending_trends(frame, today),
            "insights": analytics.quick_insights(frame, datetime.now()),
            "recent_transactions": transactions[:10],
        },
        user=user,
    )


# -------------------------------------------------------------------
# JSON endpoints for charts
# -------------------------------------------------------------------

@router.get("/api/dashboard/health")
def api_health(
    user: CurrentUser = Depends(require_api_user),
    db: Session = Depends(get_db),
):
    prefs = get_preferences(db, user.uid)
    health = analytics.financial_health(list_transactions(db, user.uid), prefs.budgets or {}, date.today())
    payload = asdict(health)
    payload["radar"] = analytics.radar_metrics(health)
    return payload


@router.get("/api/dashboard/budget-comparison")
def api_budget_comparison(
    month: str | None = Query(None),
    user: CurrentUser = Depends(require_api_user),
    db: Session = Depends(get_db),
):
    year, month_num = _selected_month(month, date.today())
    prefs = get_preferences(db, user.uid)
    return asdict(analytics.budget_comparison(list_transactions(db, user.uid), prefs.budgets or {}, year, month_num))


@router.get("/api/dashboard/trends")
def api_trends(
    time_range: str = Query("3months", alias="range"),
    category: list[str] = Query(default=[]),
    user: CurrentUser = Depends(require_api_user),
    db: Session = Depends(get_db),
):
    months = analytics.TREND_RANGES.get(time_range, 3)
    trends = analytics.spending_trends(list_transactions(db, user.uid), date.today(), months, category or None)
    return asdict(trends)


@router.get("/api/dashboard/drilldown")
def api_drilldown(
    category: str | None = Query(None),
    timeframe: str = Query("thisMonth"),
    user: CurrentUser = Depends(require_api_user),
    db: Session = Depends(get_db),
):
    today = date.today()
    if timeframe not in analytics.DRILLDOWN_TIMEFRAMES:
        timeframe = "thisMonth"
    transactions = list_transactions(db, user.uid)
    if category:
        days = analytics.category_drilldown(transactions, category, today, timeframe)
        return {"category": category, "timeframe": timeframe, "days": [asdict(d) for d in days]}

    start = analytics.timeframe_start(today, timeframe)
    end = month_bounds(today.year, today.month)[1] if start is not None else None
    breakdown = analytics.category_breakdown(transactions, start, end)
    return {
        "category": None,
        "timeframe": timeframe,
        "categories": [asdict(c) for c in breakdown],
        "all_categories": analytics.expense_categories(transactions),
    }


@router.get("/api/dashboard/daily")
def api_daily(
    user: CurrentUser = Depends(require_api_user),
    db: Session = Depends(get_db),
):
    daily = analytics.daily_income_expenses(list_transactions(db, user.uid), date.today())
    return {"days": [asdict(d) for d in daily]}
