# app/services/transaction_store.py
#
# Transaction Store
# Per-user list / create / update / delete over the ORM, plus the
# snapshot feed that pushes the full transaction list to live subscribers.

"""
Transaction store and snapshot feed.

Writes never raise database errors to callers: they return a WriteResult
so the route can decide what to show. A successful write publishes the
user's complete, date-descending transaction list to every subscriber;
subscribers replace their working set with each snapshot, they never
patch it.
"""

from __future__ import annotations

import asyncio
import logging
import threading
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from models import Transaction
from app.schemas import TransactionInput

logger = logging.getLogger(__name__)


@dataclass
class WriteResult:
    ok: bool
    value: Any = None
    error: Optional[str] = None

    @classmethod
    def success(cls, value: Any = None) -> "WriteResult":
        return cls(ok=True, value=value)

    @classmethod
    def failure(cls, error: str) -> "WriteResult":
        return cls(ok=False, error=error)


# -------------------------------------------------------------------
# Snapshot feed
# -------------------------------------------------------------------

class Subscription:
    """
    Single-consumer channel of full snapshots for one user.

    The queue belongs to the event loop that created the subscription;
    publishers on other threads hand snapshots over with call_soon_threadsafe.
    """

    def __init__(self, user_id: int, loop: asyncio.AbstractEventLoop):
        self.user_id = user_id
        self.loop = loop
        self.queue: asyncio.Queue = asyncio.Queue()

    def push(self, snapshot: List[Dict[str, Any]]) -> None:
        self.loop.call_soon_threadsafe(self.queue.put_nowait, snapshot)

    async def next_snapshot(self) -> List[Dict[str, Any]]:
        """Wait for a snapshot and return the most recent one queued."""
        snapshot = await self.queue.get()
        while not self.queue.empty():
            snapshot = self.queue.get_nowait()
        return snapshot


class TransactionFeed:
    def __init__(self):
        self._lock = threading.Lock()
        self._subscribers: Dict[int, List[Subscription]] = {}

    def subscribe(self, user_id: int) -> Subscription:
        sub = Subscription(user_id, asyncio.get_running_loop())
        with self._lock:
            self._subscribers.setdefault(user_id, []).append(sub)
        logger.debug("[feed] subscribe user=%s", user_id)
        return sub

    def unsubscribe(self, sub: Subscription) -> None:
        with self._lock:
            subs = self._subscribers.get(sub.user_id, [])
            if sub in subs:
                subs.remove(sub)
            if not subs:
                self._subscribers.pop(sub.user_id, None)
        logger.debug("[feed] unsubscribe user=%s", sub.user_id)

    def has_subscribers(self, user_id: int) -> bool:
        with self._lock:
            return bool(self._subscribers.get(user_id))

    def publish(self, user_id: int, snapshot: List[Dict[str, Any]]) -> int:
        """Push a snapshot to every subscriber of the user; returns how many got it."""
        with self._lock:
            subs = list(self._subscribers.get(user_id, []))
        for sub in subs:
            try:
                sub.push(snapshot)
            except RuntimeError:
                # Event loop already closed: the consumer is gone
                self.unsubscribe(sub)
        return len(subs)


# Shared feed used by the routes
feed = TransactionFeed()


# -------------------------------------------------------------------
# Store operations
# -------------------------------------------------------------------

def list_transactions(db: Session, user_id: int) -> List[Transaction]:
    """All of a user's transactions, newest first."""
    return (
        db.query(Transaction)
        .filter(Transaction.user_id == user_id)
        .order_by(Transaction.date.desc(), Transaction.id.desc())
        .all()
    )


def get_transaction(db: Session, user_id: int, tx_id: int) -> Optional[Transaction]:
    return (
        db.query(Transaction)
        .filter(Transaction.user_id == user_id, Transaction.id == tx_id)
        .first()
    )


def snapshot(db: Session, user_id: int) -> List[Dict[str, Any]]:
    return [t.to_dict() for t in list_transactions(db, user_id)]


def _publish(db: Session, user_id: int, active_feed: TransactionFeed) -> None:
    if active_feed.has_subscribers(user_id):
        active_feed.publish(user_id, snapshot(db, user_id))


def build_transaction(user_id: int, data: TransactionInput) -> Transaction:
    """Convert validated input into a Transaction ORM object."""
    return Transaction(
        user_id=user_id,
        type=data.type,
        category=data.category,
        date=data.date,
        amount=float(data.amount),
        notes=data.notes,
    )


def create_transaction(
    db: Session,
    user_id: int,
    data: TransactionInput,
    active_feed: TransactionFeed = feed,
) -> WriteResult:
    """Insert one transaction; WriteResult.value is the new id."""
    tx = build_transaction(user_id, data)
    try:
        db.add(tx)
        db.commit()
        db.refresh(tx)
    except SQLAlchemyError as e:
        db.rollback()
        logger.exception("[transactions] create failed for user=%s", user_id)
        return WriteResult.failure(f"Could not save transaction: {e.__class__.__name__}")

    logger.info("[transactions] created id=%s user=%s %s %s %.2f", tx.id, user_id, tx.type, tx.category, tx.amount)
    _publish(db, user_id, active_feed)
    return WriteResult.success(tx.id)


def update_transaction(
    db: Session,
    user_id: int,
    tx_id: int,
    data: TransactionInput,
    active_feed: TransactionFeed = feed,
) -> WriteResult:
    """Overwrite every field of a transaction (last write wins)."""
    tx = get_transaction(db, user_id, tx_id)
    if tx is None:
        return WriteResult.failure("Transaction not found.")

    tx.type = data.type
    tx.category = data.category
    tx.date = data.date
    tx.amount = float(data.amount)
    tx.notes = data.notes
    try:
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.exception("[transactions] update failed id=%s user=%s", tx_id, user_id)
        return WriteResult.failure(f"Could not update transaction: {e.__class__.__name__}")

    logger.info("[transactions] updated id=%s user=%s", tx_id, user_id)
    _publish(db, user_id, active_feed)
    return WriteResult.success(tx_id)


def delete_transaction(
    db: Session,
    user_id: int,
    tx_id: int,
    active_feed: TransactionFeed = feed,
) -> WriteResult:
    tx = get_transaction(db, user_id, tx_id)
    if tx is None:
        return WriteResult.failure("Transaction not found.")
    try:
        db.delete(tx)
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.exception("[transactions] delete failed id=%s user=%s", tx_id, user_id)
        return WriteResult.failure(f"Could not delete transaction: {e.__class__.__name__}")

    logger.info("[transactions] deleted id=%s user=%s", tx_id, user_id)
    _publish(db, user_id, active_feed)
    return WriteResult.success(tx_id)
