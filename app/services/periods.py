# app/services/periods.py
#
# Date Range Utilities
# Calendar month / year ranges used by the dashboard, the transaction
# list filters and the analytics functions.

from datetime import date
from typing import List, Optional, Tuple


def shift_month(year: int, month: int, delta: int) -> Tuple[int, int]:
    """Move (year, month) by `delta` months (negative goes back)."""
    index = year * 12 + (month - 1) + delta
    return index // 12, index % 12 + 1


def month_bounds(year: int, month: int) -> Tuple[date, date]:
    """
    Returns (start_date, end_date_exclusive) for a calendar month.
    """
    start_date = date(year, month, 1)
    next_year, next_month = shift_month(year, month, 1)
    return start_date, date(next_year, next_month, 1)


def year_bounds(year: int) -> Tuple[date, date]:
    return date(year, 1, 1), date(year + 1, 1, 1)


def parse_month(month_str: Optional[str]) -> Optional[Tuple[int, int]]:
    """'YYYY-MM' -> (year, month), or None when missing/invalid."""
    if not month_str:
        return None
    try:
        year_str, month_only_str = month_str.strip().split("-")
        year = int(year_str)
        month = int(month_only_str)
    except ValueError:
        return None
    if not (1 <= month <= 12) or year < 1:
        return None
    return year, month


def get_month_range(month_str: Optional[str], today: Optional[date] = None):
    """
    month_str: 'YYYY-MM' or None.
    Returns (start_date, end_date_exclusive, normalized_month_str).
    If month_str is None or invalid, uses the CURRENT month.
    """
    today = today or date.today()
    parsed = parse_month(month_str)
    year, month = parsed if parsed else (today.year, today.month)

    start_date, end_date_exclusive = month_bounds(year, month)
    normalized = f"{year:04d}-{month:02d}"
    return start_date, end_date_exclusive, normalized


def month_options(today: Optional[date] = None, count: int = 12) -> List[Tuple[str, str]]:
    """
    The last `count` months including the current one, newest first,
    as (value 'YYYY-MM', label 'October 2026') pairs.
    """
    today = today or date.today()
    options = []
    for i in range(count):
        year, month = shift_month(today.year, today.month, -i)
        d = date(year, month, 1)
        options.append((d.strftime("%Y-%m"), d.strftime("%B %Y")))
    return options

