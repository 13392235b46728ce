from __future__ import annotations

import asyncio
from datetime import datetime

import pytest
from sqlalchemy.exc import OperationalError

from app.schemas import TransactionInput
from app.services import transaction_store as store
from app.services.transaction_store import TransactionFeed, WriteResult


def make_input(type_: str, category: str, amount: float, when: datetime, notes: str | None = None) -> TransactionInput:
    return TransactionInput(type=type_, category=category, amount=amount, date=when, notes=notes)


def test_create_and_list_newest_first(db, user) -> None:
    first = store.create_transaction(db, user.id, make_input("income", "Salary", 3000, datetime(2026, 10, 1, 9)), TransactionFeed())
    second = store.create_transaction(db, user.id, make_input("expense", "Housing", 1200, datetime(2026, 10, 5, 8)), TransactionFeed())

    assert first.ok and second.ok
    listed = store.list_transactions(db, user.id)
    assert [t.id for t in listed] == [second.value, first.value]
    assert listed[0].category == "Housing"


def test_snapshot_is_serializable(db, user) -> None:
    store.create_transaction(db, user.id, make_input("expense", "Utilities", 75.5, datetime(2026, 10, 2, 10), "Power bill"), TransactionFeed())
    snap = store.snapshot(db, user.id)
    assert snap[0]["amount"] == 75.5
    assert snap[0]["notes"] == "Power bill"
    assert snap[0]["date"] == "2026-10-02T10:00:00"


def test_update_overwrites_fields(db, user) -> None:
    created = store.create_transaction(db, user.id, make_input("expense", "Shopping", 40, datetime(2026, 10, 3)), TransactionFeed())
    result = store.update_transaction(
        db, user.id, created.value, make_input("expense", "Education", 45, datetime(2026, 10, 4)), TransactionFeed()
    )
    assert result.ok
    tx = store.get_transaction(db, user.id, created.value)
    assert (tx.category, tx.amount) == ("Education", 45)


def test_delete_and_missing_ids(db, user) -> None:
    created = store.create_transaction(db, user.id, make_input("expense", "Shopping", 40, datetime(2026, 10, 3)), TransactionFeed())
    assert store.delete_transaction(db, user.id, created.value, TransactionFeed()).ok
    assert store.list_transactions(db, user.id) == []

    missing = store.delete_transaction(db, user.id, created.value, TransactionFeed())
    assert not missing.ok
    assert missing.error


def test_other_users_rows_are_invisible(db, user) -> None:
    created = store.create_transaction(db, user.id, make_input("expense", "Shopping", 40, datetime(2026, 10, 3)), TransactionFeed())
    assert store.get_transaction(db, user.id + 1, created.value) is None
    assert store.list_transactions(db, user.id + 1) == []


def test_database_error_becomes_failed_result(db, user, monkeypatch) -> None:
    def broken_commit():
        raise OperationalError("INSERT", {}, Exception("disk I/O error"))

    monkeypatch.setattr(db, "commit", broken_commit)
    result = store.create_transaction(db, user.id, make_input("expense", "Housing", 10, datetime(2026, 10, 3)), TransactionFeed())
    assert result == WriteResult(ok=False, error="Could not save transaction: OperationalError")


@pytest.mark.asyncio
async def test_subscriber_receives_latest_snapshot() -> None:
    feed = TransactionFeed()
    sub = feed.subscribe(7)

    assert feed.publish(7, [{"id": 1}]) == 1
    feed.publish(7, [{"id": 1}, {"id": 2}])
    assert feed.publish(8, [{"id": 99}]) == 0

    snapshot = await asyncio.wait_for(sub.next_snapshot(), timeout=1)
    assert [t["id"] for t in snapshot] == [1, 2]

    feed.unsubscribe(sub)
    assert not feed.has_subscribers(7)


@pytest.mark.asyncio
async def test_write_publishes_full_list(db, user) -> None:
    feed = TransactionFeed()
    sub = feed.subscribe(user.id)

    store.create_transaction(db, user.id, make_input("income", "Salary", 3000, datetime(2026, 10, 1)), feed)
    store.create_transaction(db, user.id, make_input("expense", "Housing", 1200, datetime(2026, 10, 5)), feed)

    snapshot = await asyncio.wait_for(sub.next_snapshot(), timeout=1)
    assert [t["category"] for t in snapshot] == ["Housing", "Salary"]


def test_round_trip_keeps_every_field(db, user) -> None:
    data = make_input("expense", "Personal Care", 23.45, datetime(2026, 10, 7, 14, 30), "Haircut")
    created = store.create_transaction(db, user.id, data, TransactionFeed())

    tx = store.list_transactions(db, user.id)[0]
    assert tx.id == created.value
    assert (tx.type, tx.category, tx.date, tx.amount, tx.notes) == (
        "expense", "Personal Care", datetime(2026, 10, 7, 14, 30), 23.45, "Haircut"
    )
