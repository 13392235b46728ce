# app/services/export.py
#
# Export
# Tabular transaction dump (CSV), a plain-text financial summary and the
# PDF report, all built from the in-memory transaction list.

import io
from typing import Any, Iterable, List
from xml.sax.saxutils import escape

import pandas as pd
from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import getSampleStyleSheet
from reportlab.lib.units import mm
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

from app.services.analytics import summarize, to_datetime
from app.services.currency import format_amount_rounded, format_currency

EXPORT_COLUMNS = ["Date", "Type", "Category", "Notes", "Amount"]

REPORT_TITLE = "Budget Tracker"
HEADER_BLUE = colors.Color(41 / 255, 128 / 255, 185 / 255)


class NoTransactionsError(ValueError):
    """Raised when a report is requested for an empty transaction list."""


def transactions_frame(transactions: Iterable[Any]) -> pd.DataFrame:
    rows: List[dict] = []
    for t in transactions:
        rows.append(
            {
                "Date": to_datetime(t.date).strftime("%Y-%m-%d"),
                "Type": t.type,
                "Category": t.category,
                "Notes": t.notes or "",
                "Amount": round(float(t.amount), 2),
            }
        )
    return pd.DataFrame(rows, columns=EXPORT_COLUMNS)


def export_transactions_csv(transactions: Iterable[Any]) -> str:
    buf = io.StringIO()
    transactions_frame(transactions).to_csv(buf, index=False)
    return buf.getvalue()


def generate_summary_text(transactions: Iterable[Any], currency: str) -> str:
    """
    FINANCIAL SUMMARY report: totals, then expenses and income by
    category, largest first.
    """
    summary = summarize(list(transactions))

    lines = [
        "FINANCIAL SUMMARY",
        "",
        f"Total Income: {format_currency(summary.total_income, currency)}",
        f"Total Expenses: {format_currency(summary.total_expenses, currency)}",
        f"Balance: {format_currency(summary.balance, currency)}",
        "",
        "EXPENSES BY CATEGORY",
    ]
    lines.extend(f"{c}: {format_currency(a, currency)}" for c, a in summary.expenses_by_category.items())
    lines.append("")
    lines.append("INCOME BY CATEGORY")
    lines.extend(f"{c}: {format_currency(a, currency)}" for c, a in summary.income_by_category.items())
    return "\n".join(lines) + "\n"


# -------------------------------------------------------------------
# PDF report
# -------------------------------------------------------------------

def _report_table(rows: List[list], col_widths: List[float]) -> Table:
    table = Table(rows, colWidths=col_widths, repeatRows=1)
    table.setStyle(
        TableStyle(
            [
                ("BACKGROUND", (0, 0), (-1, 0), HEADER_BLUE),
                ("TEXTCOLOR", (0, 0), (-1, 0), colors.white),
                ("FONTNAME", (0, 0), (-1, 0), "Helvetica-Bold"),
                ("ROWBACKGROUNDS", (0, 1), (-1, -1), [colors.white, colors.whitesmoke]),
                ("ALIGN", (-1, 1), (-1, -1), "RIGHT"),
                ("VALIGN", (0, 0), (-1, -1), "TOP"),
                ("GRID", (0, 0), (-1, -1), 0.25, colors.lightgrey),
            ]
        )
    )
    return table


def generate_pdf_report(
    transactions: Iterable[Any],
    user_name: str,
    currency: str,
    include_transactions: bool = True,
    include_summary: bool = True,
) -> bytes:
    """
    One PDF document: a user / currency header, then the transaction
    history table and the financial summary table, each optional.

    Amounts are shown in whole units of the user's currency.
    Raises NoTransactionsError for an empty list.
    """
    transactions = list(transactions)
    if not transactions:
        raise NoTransactionsError("No transactions to export.")

    styles = getSampleStyleSheet()
    story = [
        Paragraph(REPORT_TITLE, styles["Title"]),
        Paragraph(f"User: {escape(user_name)}", styles["Normal"]),
        Paragraph(f"Currency: {escape(currency)}", styles["Normal"]),
        Spacer(1, 6 * mm),
    ]

    if include_transactions:
        rows = [["Date", "Type", "Category", "Description", "Amount"]]
        for t in transactions:
            rows.append(
                [
                    to_datetime(t.date).strftime("%Y-%m-%d"),
                    t.type,
                    t.category,
                    Paragraph(escape(t.notes or ""), styles["BodyText"]),
                    format_amount_rounded(t.amount, currency),
                ]
            )
        story.append(Paragraph("Transaction History", styles["Heading2"]))
        story.append(_report_table(rows, [24 * mm, 20 * mm, 34 * mm, 60 * mm, 32 * mm]))
        story.append(Spacer(1, 6 * mm))

    if include_summary:
        summary = summarize(transactions)
        rows = [
            ["Type", "Amount"],
            ["Total Income", format_amount_rounded(summary.total_income, currency)],
            ["Total Expenses", format_amount_rounded(summary.total_expenses, currency)],
            ["Balance", format_amount_rounded(summary.balance, currency)],
        ]
        story.append(Paragraph("Financial Summary", styles["Heading2"]))
        story.append(_report_table(rows, [85 * mm, 85 * mm]))

    buf = io.BytesIO()
    doc = SimpleDocTemplate(
        buf,
        pagesize=A4,
        leftMargin=20 * mm,
        rightMargin=20 * mm,
        topMargin=15 * mm,
        bottomMargin=15 * mm,
        title=f"{REPORT_TITLE} report",
    )
    doc.build(story)
    return buf.getvalue()
