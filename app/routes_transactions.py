# routes_transactions.py
"""
Routes for the transactions list, the add / edit / delete forms,
the JSON API and the live snapshot stream.
"""

import asyncio
import json
from datetime import datetime, time
from typing import AsyncIterator, Awaitable, Callable, List, Optional
from urllib.parse import urlencode

from fastapi import APIRouter, Request, Depends, Form, Query, HTTPException
from fastapi.responses import HTMLResponse, JSONResponse, RedirectResponse, StreamingResponse
from pydantic import ValidationError
from sqlalchemy import case, func, or_
from sqlalchemy.orm import Session

from models import Transaction
from app.deps import get_db, require_user, require_api_user, flash, render
from app.schemas import TransactionInput, errors_by_field
from app.services.auth import CurrentUser
from app.services.categories import ALL_CATEGORIES, TRANSACTION_TYPES
from app.services.periods import get_month_range
from app.services.preferences_store import get_preferences
from app.services import transaction_store as store

router = APIRouter()

# Seconds between keep-alive comments on the snapshot stream
STREAM_KEEPALIVE = 15.0


def _form_context(form: dict, errors: dict, action: str, title: str) -> dict:
    return {
        "form": form,
        "errors": errors,
        "action": action,
        "title": title,
        "categories": ALL_CATEGORIES,
        "types": TRANSACTION_TYPES,
    }


def _raw_form(type_: str, category: str, date: str, amount: str, notes: str) -> dict:
    return {"type": type_, "category": category, "date": date, "amount": amount, "notes": notes}


# -------------------------------------------------------------------
# List
# -------------------------------------------------------------------

@router.get("/transactions", response_class=HTMLResponse)
def transactions_page(
    request: Request,
    month: Optional[str] = Query(None),
    search: Optional[str] = Query(None),
    type: Optional[str] = Query(None),
    category: List[str] = Query(default=[]),
    sort: str = Query("date"),
    dir: str = Query("desc"),
    user: CurrentUser = Depends(require_user),
    db: Session = Depends(get_db),
):
    if month == "all":
        range_start = range_end_exclusive = None
        normalized_month = "all"
    else:
        range_start, range_end_exclusive, normalized_month = get_month_range(month)

    conditions = [Transaction.user_id == user.uid]
    if range_start is not None:
        conditions.append(Transaction.date >= datetime.combine(range_start, time.min))
        conditions.append(Transaction.date < datetime.combine(range_end_exclusive, time.min))

    # Search in notes and category
    if search:
        pattern = f"%{search}%"
        conditions.append(
            or_(
                Transaction.notes.ilike(pattern),
                Transaction.category.ilike(pattern),
            )
        )

    if type in TRANSACTION_TYPES:
        conditions.append(Transaction.type == type)

    if category:
        conditions.append(Transaction.category.in_(category))

    # Base query (NO order_by here)
    query = db.query(Transaction).filter(*conditions)

    # Totals for filtered view (before sorting)
    income_sum, expense_sum = db.query(
        func.coalesce(func.sum(case((Transaction.type == "income", Transaction.amount), else_=0.0)), 0.0),
        func.coalesce(func.sum(case((Transaction.type == "expense", Transaction.amount), else_=0.0)), 0.0),
    ).select_from(Transaction).filter(*conditions).one()

    # Sorting (single order_by applied once)
    sort_key = sort if sort in {"date", "amount"} else "date"
    sort_dir = dir if dir in {"asc", "desc"} else "desc"
    sort_col = Transaction.amount if sort_key == "amount" else Transaction.date
    query = query.order_by(sort_col.asc() if sort_dir == "asc" else sort_col.desc(), Transaction.id.desc())

    def build_sort_url(column: str) -> str:
        next_dir = "asc" if (sort_key == column and sort_dir == "desc") else "desc"

        # Keep ALL existing params, including repeated ones (category)
        items = [(k, v) for (k, v) in request.query_params.multi_items() if k not in ("sort", "dir")]
        items.append(("sort", column))
        items.append(("dir", next_dir))
        return "/transactions?" + urlencode(items, doseq=True)

    all_categories_rows = (
        db.query(Transaction.category)
        .filter(Transaction.user_id == user.uid)
        .distinct()
        .order_by(Transaction.category)
        .all()
    )

    return render(
        request,
        "transactions.html",
        {
            "transactions": query.all(),
            "currency": get_preferences(db, user.uid).currency,
            "current_month": normalized_month,
            "search": search or "",
            "selected_type": type or "",
            "all_categories": [row[0] for row in all_categories_rows],
            "selected_categories": category,
            "income_sum": float(income_sum),
            "expense_sum": float(expense_sum),
            "net_sum": float(income_sum) - float(expense_sum),
            "sort": sort_key,
            "dir": sort_dir,
            "date_sort_url": build_sort_url("date"),
            "amount_sort_url": build_sort_url("amount"),
        },
        user=user,
    )


# -------------------------------------------------------------------
# Create / edit / delete (HTML forms)
# -------------------------------------------------------------------

@router.get("/transactions/new", response_class=HTMLResponse)
def new_transaction_page(
    request: Request,
    type: str = Query("expense"),
    user: CurrentUser = Depends(require_user),
):
    form = _raw_form(type if type in TRANSACTION_TYPES else "expense", "", "", "", "")
    return render(request, "transaction_form.html", _form_context(form, {}, "/transactions/new", "Add Transaction"), user=user)


@router.post("/transactions/new")
def create_transaction_submit(
    request: Request,
    type: str = Form(""),
    category: str = Form(""),
    date: str = Form(""),
    amount: str = Form(""),
    notes: str = Form(""),
    user: CurrentUser = Depends(require_user),
    db: Session = Depends(get_db),
):
    form = _raw_form(type, category, date, amount, notes)
    ctx = _form_context(form, {}, "/transactions/new", "Add Transaction")
    try:
        data = TransactionInput(type=type, category=category, date=date, amount=amount, notes=notes)
    except ValidationError as e:
        ctx["errors"] = errors_by_field(e)
        return render(request, "transaction_form.html", ctx, user=user, status_code=422)

    result = store.create_transaction(db, user.uid, data)
    if not result.ok:
        flash(request, result.error, "error")
        return render(request, "transaction_form.html", ctx, user=user, status_code=500)

    flash(request, f"{data.type.capitalize()} of {data.amount:.2f} added to {data.category}.", "success")
    return RedirectResponse(url="/transactions", status_code=303)


@router.get("/transactions/{tx_id}/edit", response_class=HTMLResponse)
def edit_transaction_page(
    request: Request,
    tx_id: int,
    user: CurrentUser = Depends(require_user),
    db: Session = Depends(get_db),
):
    tx = store.get_transaction(db, user.uid, tx_id)
    if tx is None:
        raise HTTPException(status_code=404, detail="Transaction not found")

    form = _raw_form(tx.type, tx.category, tx.date.strftime("%Y-%m-%dT%H:%M"), f"{tx.amount:.2f}", tx.notes or "")
    ctx = _form_context(form, {}, f"/transactions/{tx_id}/edit", "Edit Transaction")
    return render(request, "transaction_form.html", ctx, user=user)


@router.post("/transactions/{tx_id}/edit")
def edit_transaction_submit(
    request: Request,
    tx_id: int,
    type: str = Form(""),
    category: str = Form(""),
    date: str = Form(""),
    amount: str = Form(""),
    notes: str = Form(""),
    user: CurrentUser = Depends(require_user),
    db: Session = Depends(get_db),
):
    form = _raw_form(type, category, date, amount, notes)
    ctx = _form_context(form, {}, f"/transactions/{tx_id}/edit", "Edit Transaction")
    try:
        data = TransactionInput(type=type, category=category, date=date, amount=amount, notes=notes)
    except ValidationError as e:
        ctx["errors"] = errors_by_field(e)
        return render(request, "transaction_form.html", ctx, user=user, status_code=422)

    result = store.update_transaction(db, user.uid, tx_id, data)
    if not result.ok:
        flash(request, result.error, "error")
        return RedirectResponse(url="/transactions", status_code=303)

    flash(request, "Transaction updated.", "success")
    return RedirectResponse(url="/transactions", status_code=303)


@router.post("/transactions/{tx_id}/delete")
def delete_transaction_submit(
    request: Request,
    tx_id: int,
    user: CurrentUser = Depends(require_user),
    db: Session = Depends(get_db),
):
    result = store.delete_transaction(db, user.uid, tx_id)
    if result.ok:
        flash(request, "Transaction deleted.", "success")
    else:
        flash(request, result.error, "error")
    return RedirectResponse(url="/transactions", status_code=303)


# -------------------------------------------------------------------
# JSON API
# -------------------------------------------------------------------

@router.get("/api/transactions")
def api_list_transactions(
    user: CurrentUser = Depends(require_api_user),
    db: Session = Depends(get_db),
):
    return {"transactions": store.snapshot(db, user.uid)}


@router.post("/api/transactions", status_code=201)
def api_create_transaction(
    data: TransactionInput,
    user: CurrentUser = Depends(require_api_user),
    db: Session = Depends(get_db),
):
    result = store.create_transaction(db, user.uid, data)
    if not result.ok:
        return JSONResponse({"error": result.error}, status_code=500)
    return {"id": result.value}


# -------------------------------------------------------------------
# Live snapshots (server-sent events)
# -------------------------------------------------------------------

def _sse(snapshot: list) -> str:
    return f"event: snapshot\ndata: {json.dumps(snapshot)}\n\n"


async def snapshot_events(
    user_id: int,
    load_snapshot: Callable[[], list],
    is_disconnected: Callable[[], Awaitable[bool]],
    active_feed: store.TransactionFeed = store.feed,
    keepalive: float = STREAM_KEEPALIVE,
) -> AsyncIterator[str]:
    """
    Server-sent events for one user: the current snapshot first, then a
    new one after every write, until the client goes away.

    The subscription is taken on the first step, before the initial read,
    so no write falls in between and an unstarted stream holds no queue.
    """
    sub = active_feed.subscribe(user_id)
    try:
        yield _sse(load_snapshot())
        while not await is_disconnected():
            try:
                snapshot = await asyncio.wait_for(sub.next_snapshot(), timeout=keepalive)
            except asyncio.TimeoutError:
                yield ": keep-alive\n\n"
                continue
            yield _sse(snapshot)
    finally:
        active_feed.unsubscribe(sub)


@router.get("/transactions/stream")
async def transactions_stream(
    request: Request,
    user: CurrentUser = Depends(require_api_user),
    db: Session = Depends(get_db),
):
    events = snapshot_events(
        user.uid,
        lambda: store.snapshot(db, user.uid),
        request.is_disconnected,
    )
    return StreamingResponse(events, media_type="text/event-stream")
