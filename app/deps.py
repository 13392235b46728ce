# app/deps.py
# Role: Shared application-level dependencies and globals.
#       Provides the Jinja2 templates loader, the standard SQLAlchemy database
#       session dependency, the signed-in user dependencies, and flash messages.

"""
Shared dependencies and globals for the budget tracker app.
"""

from typing import Any, Dict, Generator, List, Optional

from fastapi import Depends, HTTPException, Request
from fastapi.templating import Jinja2Templates
from sqlalchemy.orm import Session

import config
from db import SessionLocal
from models import User
from app.services.auth import CurrentUser, to_current_user
from app.services.categories import category_color, category_icon
from app.services.currency import format_currency

# -------------------------------------------------------------------
# Templates
# -------------------------------------------------------------------

# Jinja2 templates loader (used by all HTML-rendering routes)
templates = Jinja2Templates(directory=config.TEMPLATES_DIR)
templates.env.filters["currency"] = format_currency
templates.env.globals["category_icon"] = category_icon
templates.env.globals["category_color"] = category_color

# -------------------------------------------------------------------
# Database dependency
# -------------------------------------------------------------------

def get_db() -> Generator[Session, None, None]:
    """
    FastAPI dependency that yields a database session and ensures it is closed.

    Typical usage in routes:
        db: Session = Depends(get_db)
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


# -------------------------------------------------------------------
# Auth dependencies
# -------------------------------------------------------------------

class LoginRequired(Exception):
    """Raised for HTML pages when nobody is signed in; handled as a redirect to /login."""


def get_optional_user(request: Request, db: Session = Depends(get_db)) -> Optional[CurrentUser]:
    user_id = request.session.get("user_id")
    if user_id is None:
        return None
    user = db.get(User, user_id)
    if user is None:
        # Account vanished under an old cookie
        request.session.pop("user_id", None)
        return None
    return to_current_user(db, user)


def require_user(user: Optional[CurrentUser] = Depends(get_optional_user)) -> CurrentUser:
    if user is None:
        raise LoginRequired()
    return user


def require_api_user(user: Optional[CurrentUser] = Depends(get_optional_user)) -> CurrentUser:
    if user is None:
        raise HTTPException(status_code=401, detail="Not authenticated")
    return user


# -------------------------------------------------------------------
# Flash messages (transient notifications)
# -------------------------------------------------------------------

def flash(request: Request, message: str, category: str = "info") -> None:
    request.session.setdefault("flash", [])
    # Re-assign so the session middleware sees the change
    request.session["flash"] = request.session["flash"] + [{"category": category, "message": message}]


def pop_flashes(request: Request) -> List[Dict[str, str]]:
    return request.session.pop("flash", [])


def render(
    request: Request,
    name: str,
    context: Optional[Dict[str, Any]] = None,
    user: Optional[CurrentUser] = None,
    status_code: int = 200,
):
    """TemplateResponse with the signed-in user and pending flash messages filled in."""
    ctx: Dict[str, Any] = {
        "current_user": user,
        "flashes": pop_flashes(request),
    }
    ctx.update(context or {})
    return templates.TemplateResponse(request, name, ctx, status_code=status_code)
