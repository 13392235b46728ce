# app/schemas.py
# Role: Declarative input validation (pydantic) for forms and JSON bodies.
#       Routes validate here and turn ValidationError into per-field messages.

"""
Request schemas for the budget tracker.
"""

import math
from datetime import datetime, date, timezone
from typing import Dict, Literal, Optional

from pydantic import BaseModel, EmailStr, Field, ValidationError, field_validator

from app.services.currency import CURRENCY_CODES


def errors_by_field(exc: ValidationError) -> Dict[str, str]:
    """
    Flatten a ValidationError into {field_name: message}.

    Only the first message per field is kept; model-level errors go under "__all__".
    """
    errors: Dict[str, str] = {}
    for err in exc.errors():
        loc = err.get("loc") or ()
        key = str(loc[0]) if loc else "__all__"
        if err.get("type") == "value_error" and err.get("ctx", {}).get("error"):
            msg = str(err["ctx"]["error"])
        else:
            msg = err.get("msg", "Invalid value.")
        errors.setdefault(key, msg)
    return errors


# -------------------------------------------------------------------
# Transactions
# -------------------------------------------------------------------

class TransactionInput(BaseModel):
    type: Literal["income", "expense"]
    category: str
    date: datetime = Field(default_factory=datetime.utcnow)
    amount: float
    notes: Optional[str] = None

    @field_validator("category")
    @classmethod
    def category_required(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Category is required.")
        return v

    @field_validator("amount")
    @classmethod
    def amount_positive(cls, v: float) -> float:
        if not math.isfinite(v):
            raise ValueError("Amount must be a finite number.")
        if not v > 0:
            raise ValueError("Amount must be positive.")
        return v

    @field_validator("date", mode="before")
    @classmethod
    def parse_date(cls, v):
        if v is None or (isinstance(v, str) and not v.strip()):
            return datetime.utcnow()
        if isinstance(v, str):
            s = v.strip().replace("Z", "+00:00")
            try:
                v = datetime.fromisoformat(s)
            except ValueError:
                raise ValueError("Date is required.")
        elif isinstance(v, date) and not isinstance(v, datetime):
            v = datetime(v.year, v.month, v.day)
        if isinstance(v, datetime) and v.tzinfo is not None:
            v = v.astimezone(timezone.utc).replace(tzinfo=None)
        return v

    @field_validator("notes")
    @classmethod
    def empty_notes_to_none(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        v = v.strip()
        return v or None


# -------------------------------------------------------------------
# Auth
# -------------------------------------------------------------------

class LoginInput(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=1)


class RegisterInput(BaseModel):
    display_name: str = Field(..., min_length=2, max_length=50)
    email: EmailStr
    password: str = Field(..., min_length=6)
    confirm_password: str

    @field_validator("confirm_password")
    @classmethod
    def passwords_match(cls, v: str, info) -> str:
        if "password" in info.data and v != info.data["password"]:
            raise ValueError("Passwords don't match.")
        return v


# -------------------------------------------------------------------
# Profile / preferences
# -------------------------------------------------------------------

class DisplayNameInput(BaseModel):
    display_name: str = Field(..., min_length=2, max_length=50)


class PreferencesInput(BaseModel):
    currency: str

    @field_validator("currency")
    @classmethod
    def known_currency(cls, v: str) -> str:
        code = v.strip().upper()
        if code not in CURRENCY_CODES:
            raise ValueError(f"Unsupported currency: {v}")
        return code


class BudgetsInput(BaseModel):
    budgets: Dict[str, float]

    @field_validator("budgets")
    @classmethod
    def non_negative(cls, v: Dict[str, float]) -> Dict[str, float]:
        for category, cap in v.items():
            if not math.isfinite(cap):
                raise ValueError(f"Budget for {category} must be a finite number.")
            if cap < 0:
                raise ValueError(f"Budget for {category} cannot be negative.")
        return v


# -------------------------------------------------------------------
# AI advisor
# -------------------------------------------------------------------

class AdvisorRequest(BaseModel):
    financial_goals: str = Field("", max_length=1000)
