# routes_advisor.py
"""
AI budget advisor: turns the current month into suggestions.
"""

from datetime import date
from typing import Any, Optional

from fastapi import APIRouter, Request, Depends, Form
from fastapi.responses import JSONResponse, RedirectResponse
from pydantic import ValidationError
from sqlalchemy.orm import Session

from app.deps import get_db, require_user, require_api_user, flash, render
from app.schemas import AdvisorRequest, errors_by_field
from app.services.auth import CurrentUser
from app.services.budget_advisor import (
    BudgetAdvisorError,
    NotEnoughDataError,
    build_advisor_input,
    get_budget_advice,
)
from app.services.preferences_store import get_preferences
from app.services.transaction_store import list_transactions

router = APIRouter()


def get_advisor_client() -> Optional[Any]:
    """
    Model client dependency; None lets the advisor build the default
    OpenAI client. Tests override this.
    """
    return None


@router.post("/advisor")
def advisor_submit(
    request: Request,
    financial_goals: str = Form(""),
    user: CurrentUser = Depends(require_user),
    db: Session = Depends(get_db),
    client: Optional[Any] = Depends(get_advisor_client),
):
    try:
        req = AdvisorRequest(financial_goals=financial_goals)
    except ValidationError as e:
        flash(request, errors_by_field(e).get("financial_goals", "Invalid goals."), "error")
        return RedirectResponse(url="/dashboard", status_code=303)

    prefs = get_preferences(db, user.uid)
    try:
        advisor_input = build_advisor_input(
            list_transactions(db, user.uid),
            date.today(),
            req.financial_goals,
            prefs.currency,
        )
    except NotEnoughDataError as e:
        flash(request, f"Not Enough Data: {e}", "error")
        return RedirectResponse(url="/dashboard", status_code=303)

    try:
        advice = get_budget_advice(advisor_input, client=client)
    except BudgetAdvisorError as e:
        flash(request, str(e), "error")
        return RedirectResponse(url="/dashboard", status_code=303)

    return render(
        request,
        "advisor.html",
        {"advice": advice, "advisor_input": advisor_input},
        user=user,
    )


@router.post("/api/advisor")
def api_advisor(
    req: AdvisorRequest,
    user: CurrentUser = Depends(require_api_user),
    db: Session = Depends(get_db),
    client: Optional[Any] = Depends(get_advisor_client),
):
    prefs = get_preferences(db, user.uid)
    try:
        advisor_input = build_advisor_input(
            list_transactions(db, user.uid),
            date.today(),
            req.financial_goals,
            prefs.currency,
        )
    except NotEnoughDataError as e:
        return JSONResponse({"error": str(e)}, status_code=400)

    try:
        advice = get_budget_advice(advisor_input, client=client)
    except BudgetAdvisorError as e:
        return JSONResponse({"error": str(e)}, status_code=502)

    return advice.model_dump()
