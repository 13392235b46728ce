# routes_profile.py
"""
Routes for the profile page: display name, currency, category budgets
and the avatar image.
"""

import base64
import re
from typing import Dict

from fastapi import APIRouter, Request, Depends, Form, UploadFile, File
from fastapi.responses import HTMLResponse, RedirectResponse
from pydantic import ValidationError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

import config
from models import User
from app.deps import get_db, require_user, flash, render
from app.schemas import BudgetsInput, DisplayNameInput, PreferencesInput, errors_by_field
from app.services.auth import CurrentUser
from app.services.categories import EXPENSE_CATEGORIES
from app.services.currency import COMMON_CURRENCIES
from app.services.preferences_store import get_preferences, set_preferences

router = APIRouter()

# Flattened form keys like: budgets[Food & Drinks]
BUDGET_KEY_RE = re.compile(r"^budgets\[(?P<category>.+?)\]$")


def _profile_context(db: Session, user: CurrentUser, errors: Dict[str, str] = None) -> dict:
    prefs = get_preferences(db, user.uid)
    return {
        "prefs": prefs,
        "budgets": prefs.budgets or {},
        "currencies": COMMON_CURRENCIES,
        "expense_categories": EXPENSE_CATEGORIES,
        "max_avatar_kb": config.MAX_AVATAR_BYTES // 1024,
        "errors": errors or {},
    }


@router.get("/profile", response_class=HTMLResponse)
def profile_page(
    request: Request,
    user: CurrentUser = Depends(require_user),
    db: Session = Depends(get_db),
):
    return render(request, "profile.html", _profile_context(db, user), user=user)


@router.post("/profile/name")
def update_display_name(
    request: Request,
    display_name: str = Form(""),
    user: CurrentUser = Depends(require_user),
    db: Session = Depends(get_db),
):
    try:
        data = DisplayNameInput(display_name=display_name.strip())
    except ValidationError as e:
        return render(request, "profile.html", _profile_context(db, user, errors_by_field(e)), user=user, status_code=400)

    try:
        db_user = db.get(User, user.uid)
        db_user.display_name = data.display_name
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        flash(request, "Could not update display name.", "error")
        return RedirectResponse(url="/profile", status_code=303)

    flash(request, "Your display name has been updated.", "success")
    return RedirectResponse(url="/profile", status_code=303)


@router.post("/profile/preferences")
def update_preferences(
    request: Request,
    currency: str = Form(""),
    user: CurrentUser = Depends(require_user),
    db: Session = Depends(get_db),
):
    try:
        data = PreferencesInput(currency=currency)
    except ValidationError as e:
        return render(request, "profile.html", _profile_context(db, user, errors_by_field(e)), user=user, status_code=400)

    result = set_preferences(db, user.uid, currency=data.currency)
    if result.ok:
        flash(request, f"Currency set to {data.currency}.", "success")
    else:
        flash(request, result.error, "error")
    return RedirectResponse(url="/profile", status_code=303)


@router.post("/profile/budgets")
async def update_budgets(
    request: Request,
    user: CurrentUser = Depends(require_user),
    db: Session = Depends(get_db),
):
    """
    Read every budgets[<category>] field; empty fields clear the budget.
    """
    form = await request.form()

    raw: Dict[str, object] = {}
    for key, value in form.items():
        match = BUDGET_KEY_RE.match(key)
        if not match:
            continue
        value = str(value).strip()
        raw[match.group("category")] = value if value else 0

    try:
        data = BudgetsInput(budgets=raw)
    except ValidationError as e:
        return render(request, "profile.html", _profile_context(db, user, errors_by_field(e)), user=user, status_code=400)

    result = set_preferences(db, user.uid, budgets=data.budgets)
    if result.ok:
        flash(request, "Budgets saved.", "success")
    else:
        flash(request, result.error, "error")
    return RedirectResponse(url="/profile", status_code=303)


@router.post("/profile/avatar")
async def update_avatar(
    request: Request,
    avatar: UploadFile = File(...),
    user: CurrentUser = Depends(require_user),
    db: Session = Depends(get_db),
):
    """
    Store the uploaded image as a data URI. On any failure the previous
    avatar stays in place.
    """
    content = await avatar.read()
    content_type = avatar.content_type or ""

    if not content_type.startswith("image/"):
        flash(request, "Profile picture must be an image.", "error")
        return RedirectResponse(url="/profile", status_code=303)

    if len(content) > config.MAX_AVATAR_BYTES:
        flash(request, f"Profile picture cannot exceed {config.MAX_AVATAR_BYTES // 1024}KB.", "error")
        return RedirectResponse(url="/profile", status_code=303)

    data_uri = f"data:{content_type};base64,{base64.b64encode(content).decode('ascii')}"
    result = set_preferences(db, user.uid, avatar=data_uri)
    if result.ok:
        flash(request, "Your new profile picture is set.", "success")
    else:
        flash(request, f"Image update failed: {result.error}", "error")
    return RedirectResponse(url="/profile", status_code=303)
