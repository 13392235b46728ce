# routes_export.py
"""
Downloads: transaction dump (CSV), text summary and the PDF report.
"""

from datetime import date

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import RedirectResponse, Response
from sqlalchemy.orm import Session

from app.deps import get_db, require_user, flash
from app.services.auth import CurrentUser
from app.services.export import (
    NoTransactionsError,
    export_transactions_csv,
    generate_pdf_report,
    generate_summary_text,
)
from app.services.preferences_store import get_preferences
from app.services.transaction_store import list_transactions

router = APIRouter()


def _attachment(filename: str) -> dict:
    return {"Content-Disposition": f'attachment; filename="{filename}"'}


@router.get("/export/transactions.csv")
def export_csv(
    user: CurrentUser = Depends(require_user),
    db: Session = Depends(get_db),
):
    body = export_transactions_csv(list_transactions(db, user.uid))
    filename = f"transactions_{date.today().isoformat()}.csv"
    return Response(content=body, media_type="text/csv", headers=_attachment(filename))


@router.get("/export/summary.txt")
def export_summary(
    user: CurrentUser = Depends(require_user),
    db: Session = Depends(get_db),
):
    prefs = get_preferences(db, user.uid)
    body = generate_summary_text(list_transactions(db, user.uid), prefs.currency)
    return Response(content=body, media_type="text/plain", headers=_attachment("financial_summary.txt"))


@router.get("/export/report.pdf")
def export_report(
    request: Request,
    transactions: bool = Query(True),
    summary: bool = Query(True),
    user: CurrentUser = Depends(require_user),
    db: Session = Depends(get_db),
):
    """
    PDF report with the transaction table and/or the summary table.
    """
    prefs = get_preferences(db, user.uid)
    try:
        body = generate_pdf_report(
            list_transactions(db, user.uid),
            user.display_name or user.email,
            prefs.currency,
            include_transactions=transactions,
            include_summary=summary,
        )
    except NoTransactionsError as e:
        flash(request, str(e), "error")
        return RedirectResponse(url="/dashboard", status_code=303)

    filename = f"budget_report_{date.today().isoformat()}.pdf"
    return Response(content=body, media_type="application/pdf", headers=_attachment(filename))
