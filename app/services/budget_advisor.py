# filename: app/services/budget_advisor.py
"""
AI budget advisor.

Shapes the current month's transactions into a templated prompt, sends it
to a hosted language model once, and parses the suggestions back.

Public API:
    build_advisor_input(transactions, today, financial_goals, currency_code)
        -> AdvisorInput   (raises NotEnoughDataError when the month is empty)
    get_budget_advice(advisor_input, client=None)
        -> BudgetAdvice   (raises BudgetAdvisorError on any model failure)

No retry, no caching: each user request is exactly one model call.
"""

from __future__ import annotations

import json
import logging
import os
import re
from datetime import date
from typing import Any, Dict, Iterable, List, Optional

from pydantic import BaseModel, Field, ValidationError

import config
from app.services.analytics import to_datetime
from app.services.currency import DEFAULT_CURRENCY

logger = logging.getLogger(__name__)

_JSON_FENCE_RE = re.compile(r"^\s*```(?:json)?\s*|\s*```\s*$", re.IGNORECASE)

DEFAULT_GOALS = "General financial health improvement."


class NotEnoughDataError(Exception):
    """The current month has no income and no expenses."""


class BudgetAdvisorError(Exception):
    """The model call failed or returned something unusable."""


class ExpenseItem(BaseModel):
    category: str
    amount: float


class AdvisorInput(BaseModel):
    income: float
    expenses: List[ExpenseItem]
    financial_goals: str
    currency_code: str = DEFAULT_CURRENCY


class BudgetAdvice(BaseModel):
    suggestions: List[str] = Field(default_factory=list)


def _field(tx: Any, name: str) -> Any:
    if isinstance(tx, dict):
        return tx.get(name)
    return getattr(tx, name, None)


def build_advisor_input(
    transactions: Iterable[Any],
    today: date,
    financial_goals: str = "",
    currency_code: str = DEFAULT_CURRENCY,
) -> AdvisorInput:
    """
    Current-month income summed to a scalar, expenses kept as
    (category, amount) pairs in input order.
    """
    income = 0.0
    expenses: List[ExpenseItem] = []
    for t in transactions:
        when = to_datetime(_field(t, "date"))
        if when.year != today.year or when.month != today.month:
            continue
        if _field(t, "type") == "income":
            income += float(_field(t, "amount"))
        elif _field(t, "type") == "expense":
            expenses.append(ExpenseItem(category=str(_field(t, "category")), amount=float(_field(t, "amount"))))

    if income == 0 and not expenses:
        raise NotEnoughDataError(
            "Please add some income and expenses for the current month to get advice."
        )

    return AdvisorInput(
        income=income,
        expenses=expenses,
        financial_goals=(financial_goals or "").strip() or DEFAULT_GOALS,
        currency_code=currency_code or DEFAULT_CURRENCY,
    )


def build_prompt(advisor_input: AdvisorInput) -> List[Dict[str, str]]:
    developer = (
        "You are a personal finance advisor. Analyze the user's income, expenses, and financial goals "
        "to provide personalized budget adjustment suggestions.\n"
        "Return ONLY valid JSON (no markdown, no extra text).\n"
        "Output schema:\n"
        '{ "suggestions": [string, ...] }\n'
        "Focus on areas where they can reduce spending or allocate funds more effectively.\n"
    )

    lines = [
        f"The financial figures are in {advisor_input.currency_code}.",
        "",
        f"Income: {advisor_input.income}",
        "Expenses:",
    ]
    lines.extend(f"  - Category: {e.category}, Amount: {e.amount}" for e in advisor_input.expenses)
    lines.append(f"Financial Goals: {advisor_input.financial_goals}")
    lines.append("")
    lines.append("Based on this information, provide a list of actionable suggestions to optimize their budget.")

    return [
        {"role": "developer", "content": developer},
        {"role": "user", "content": "\n".join(lines)},
    ]


def _strip_json_fences(s: str) -> str:
    # Removes leading/trailing ```json fences if the model includes them.
    return _JSON_FENCE_RE.sub("", s).strip()


def parse_advice(text: str) -> BudgetAdvice:
    """Parse the model's JSON answer; anything else is a BudgetAdvisorError."""
    cleaned = _strip_json_fences(text or "")
    if not cleaned:
        raise BudgetAdvisorError("Empty response from the model.")
    try:
        data = json.loads(cleaned)
    except json.JSONDecodeError as e:
        raise BudgetAdvisorError("Model response was not valid JSON.") from e

    # A bare list of strings is accepted as the suggestions themselves
    if isinstance(data, list):
        data = {"suggestions": data}
    try:
        advice = BudgetAdvice.model_validate(data)
    except ValidationError as e:
        raise BudgetAdvisorError("Model response did not match the expected schema.") from e

    advice.suggestions = [s.strip() for s in advice.suggestions if s and s.strip()]
    return advice


def _openai_client():
    """
    Lazily import and create an OpenAI client.
    """
    from openai import OpenAI

    # The OpenAI SDK reads OPENAI_API_KEY from env by default.
    return OpenAI()


def get_budget_advice(advisor_input: AdvisorInput, client: Optional[Any] = None) -> BudgetAdvice:
    """
    Ask the model for budget suggestions.

    Raises BudgetAdvisorError when the key is missing, the call fails,
    or the answer cannot be parsed.
    """
    if client is None:
        if not (os.getenv("OPENAI_API_KEY") or "").strip():
            raise BudgetAdvisorError("AI advisor is not configured (missing OPENAI_API_KEY).")
        try:
            client = _openai_client()
        except Exception as e:
            logger.exception("[advisor] could not create OpenAI client")
            raise BudgetAdvisorError("Could not reach the AI service.") from e

    prompt = build_prompt(advisor_input)
    try:
        resp = client.responses.create(
            model=config.BUDGET_ADVISOR_MODEL,
            input=prompt,
        )
    except Exception as e:
        logger.warning("[advisor] model call failed: %r", e)
        raise BudgetAdvisorError("Could not generate budget advice. Please try again.") from e

    text = (getattr(resp, "output_text", "") or "").strip()
    advice = parse_advice(text)
    logger.info("[advisor] %d suggestion(s) generated", len(advice.suggestions))
    return advice
