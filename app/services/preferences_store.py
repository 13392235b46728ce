# app/services/preferences_store.py
#
# Preferences Store
# Per-user singleton with currency, category budgets and avatar.
# Reads fall back to defaults; writes merge the given fields.

import logging
import math
from datetime import datetime
from typing import Any, Dict, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

import config
from models import UserPreferences
from app.services.transaction_store import WriteResult

logger = logging.getLogger(__name__)

_FIELDS = ("currency", "budgets", "avatar")


def default_preferences(user_id: int) -> UserPreferences:
    """Unsaved preferences object with defaults."""
    return UserPreferences(user_id=user_id, currency=config.DEFAULT_CURRENCY, budgets={}, avatar=None)


def get_preferences(db: Session, user_id: int) -> UserPreferences:
    prefs = db.get(UserPreferences, user_id)
    return prefs if prefs is not None else default_preferences(user_id)


def ensure_preferences(db: Session, user_id: int) -> UserPreferences:
    """Create the preferences row with defaults if it does not exist yet."""
    prefs = db.get(UserPreferences, user_id)
    if prefs is not None:
        return prefs
    prefs = default_preferences(user_id)
    db.add(prefs)
    db.commit()
    db.refresh(prefs)
    logger.info("[preferences] created defaults for user=%s", user_id)
    return prefs


def merge_budgets(current: Optional[Dict[str, Any]], updates: Dict[str, float]) -> Dict[str, float]:
    """
    Merge budget caps into the stored map.

    A cap of 0 removes the category; negative or non-finite caps are rejected.
    """
    merged = {k: float(v) for k, v in (current or {}).items()}
    for category, cap in updates.items():
        if not math.isfinite(cap):
            raise ValueError(f"Budget for {category} must be a finite number.")
        if cap < 0:
            raise ValueError(f"Budget for {category} cannot be negative.")
        if cap == 0:
            merged.pop(category, None)
        else:
            merged[category] = float(cap)
    return merged


def set_preferences(db: Session, user_id: int, **partial: Any) -> WriteResult:
    """
    Merge `partial` (currency / budgets / avatar) into the stored preferences.

    Budgets are merged per category rather than replaced. Returns the
    updated preferences in WriteResult.value; on failure the stored row
    is left as it was.
    """
    unknown = set(partial) - set(_FIELDS)
    if unknown:
        return WriteResult.failure(f"Unknown preference field(s): {', '.join(sorted(unknown))}")

    try:
        prefs = db.get(UserPreferences, user_id)
        if prefs is None:
            prefs = default_preferences(user_id)
            db.add(prefs)

        if "currency" in partial:
            prefs.currency = partial["currency"]
        if "budgets" in partial:
            # Assign a new dict so the JSON column is flagged as changed
            prefs.budgets = merge_budgets(prefs.budgets, partial["budgets"] or {})
        if "avatar" in partial:
            prefs.avatar = partial["avatar"]
        prefs.updated_at = datetime.utcnow()

        db.commit()
        db.refresh(prefs)
    except ValueError as e:
        db.rollback()
        return WriteResult.failure(str(e))
    except SQLAlchemyError as e:
        db.rollback()
        logger.exception("[preferences] update failed for user=%s", user_id)
        return WriteResult.failure(f"Could not save preferences: {e.__class__.__name__}")

    logger.info("[preferences] updated %s for user=%s", ", ".join(sorted(partial)), user_id)
    return WriteResult.success(prefs)
