from __future__ import annotations

from datetime import datetime
from types import SimpleNamespace

import pytest

from app.services.currency import format_amount_rounded
from app.services.export import NoTransactionsError, generate_pdf_report


def tx(type_: str, category: str, amount: float, notes: str | None = None) -> SimpleNamespace:
    return SimpleNamespace(type=type_, category=category, amount=amount, date=datetime(2026, 10, 5), notes=notes)


def test_pdf_report_needs_transactions() -> None:
    with pytest.raises(NoTransactionsError, match="No transactions to export."):
        generate_pdf_report([], "Sam", "USD")


@pytest.mark.parametrize("include_transactions,include_summary", [(True, True), (True, False), (False, True), (False, False)])
def test_pdf_report_sections_are_optional(include_transactions: bool, include_summary: bool) -> None:
    body = generate_pdf_report(
        [tx("income", "Salary", 3000), tx("expense", "Housing", 1200, "rent <October>")],
        "Sam & Co",
        "EUR",
        include_transactions=include_transactions,
        include_summary=include_summary,
    )
    assert body.startswith(b"%PDF")
    assert body.rstrip().endswith(b"%%EOF")


def test_amounts_rounded_to_whole_units() -> None:
    assert format_amount_rounded(1234.5, "USD") == "USD 1,235"
    assert format_amount_rounded(99.49, "EUR") == "EUR 99"
    assert format_amount_rounded(None, "GBP") == "GBP 0"
