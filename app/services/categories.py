# app/services/categories.py
#
# Category Enumeration
# Fixed income/expense categories and their visual tokens (icon + colour).

from typing import Dict, List

INCOME_CATEGORIES: List[str] = [
    "Salary",
    "Bonus",
    "Gifts",
    "Investments",
    "Freelance",
    "Other Income",
]

EXPENSE_CATEGORIES: List[str] = [
    "Food & Drinks",
    "Housing",
    "Transportation",
    "Utilities",
    "Healthcare",
    "Entertainment",
    "Shopping",
    "Education",
    "Personal Care",
    "Other Expense",
]

ALL_CATEGORIES: Dict[str, List[str]] = {
    "income": INCOME_CATEGORIES,
    "expense": EXPENSE_CATEGORIES,
}

TRANSACTION_TYPES = ("income", "expense")


# ---- Visual tokens ----

DEFAULT_ICON = "circle-help"
DEFAULT_COLOR = "#2d3748"

_ICONS = {
    # Income
    "Salary": "briefcase",
    "Bonus": "sparkles",
    "Gifts": "gift",
    "Investments": "trending-up",
    "Freelance": "dollar-sign",
    "Other Income": "dollar-sign",
    # Expenses
    "Food & Drinks": "utensils",
    "Housing": "home",
    "Transportation": "car",
    "Utilities": "zap",
    "Healthcare": "pill",
    "Entertainment": "clapperboard",
    "Shopping": "shirt",
    "Education": "book-open",
    "Personal Care": "palette",
    "Other Expense": DEFAULT_ICON,
}

_COLORS = {
    "Salary": "#276749",
    "Bonus": "#38a169",
    "Gifts": "#d53f8c",
    "Investments": "#3182ce",
    "Freelance": "#319795",
    "Other Income": "#48bb78",
    "Food & Drinks": "#dd6b20",
    "Housing": "#975a16",
    "Transportation": "#319795",
    "Utilities": "#718096",
    "Healthcare": "#48bb78",
    "Entertainment": "#d53f8c",
    "Shopping": "#3182ce",
    "Education": "#4299e1",
    "Personal Care": "#ed64a6",
    "Other Expense": DEFAULT_COLOR,
}


def category_icon(category: str) -> str:
    return _ICONS.get(category, DEFAULT_ICON)


def category_color(category: str) -> str:
    return _COLORS.get(category, DEFAULT_COLOR)

