# Overview: Change feed over the ledger collections; snapshot plus ordered deltas.

"""
Change Feed

Each mutation appends a ChangeEvent in the same transaction as the write it
describes, so a subscriber never sees a change that was rolled back.

A subscriber takes a snapshot (documents + cursor), then asks for the events
after its cursor. Event ids are strictly increasing; the cursor is the last
event id the subscriber has seen.
"""

from __future__ import annotations

import time

from flask import current_app
from sqlalchemy import func

from ..extensions import db
from ..models import (
    ChangeEvent,
    Customer,
    Debtor,
    OtherExpense,
    Purchase,
    Sale,
    StockItem,
)
from .errors import DocumentNotFoundError, SubscriptionClosedError

CHANGE_ADDED = "added"
CHANGE_MODIFIED = "modified"
CHANGE_REMOVED = "removed"
CHANGE_TYPES = (CHANGE_ADDED, CHANGE_MODIFIED, CHANGE_REMOVED)

# collection -> (model, snapshot ordering)
COLLECTIONS = {
    "stock": (StockItem, (StockItem.created_at.desc(), StockItem.id.desc())),
    "sales": (Sale, (Sale.sale_date.desc(), Sale.id.desc())),
    "debtors": (Debtor, (Debtor.sale_date.desc(), Debtor.id.desc())),
    "purchases": (Purchase, (Purchase.purchase_date.desc(), Purchase.id.desc())),
    "customers": (Customer, (Customer.created_at.desc(), Customer.id.desc())),
    "expenses": (OtherExpense, (OtherExpense.expense_date.desc(), OtherExpense.id.desc())),
}

DEFAULT_LIMIT = 500


class UnknownCollectionError(DocumentNotFoundError):
    """Raised when a feed is requested for a collection that does not exist."""


def _require_collection(collection: str):
    if collection not in COLLECTIONS:
        raise UnknownCollectionError(
            f"Unknown collection: {collection}",
            details={"collections": sorted(COLLECTIONS)},
            operation="change_feed",
        )
    return COLLECTIONS[collection]


def record_change(collection: str, document_id: int, change_type: str, document=None) -> ChangeEvent:
    """Append a change event to the current transaction (caller commits)."""
    _require_collection(collection)
    if change_type not in CHANGE_TYPES:
        raise ValueError(f"invalid change_type: {change_type}")

    if change_type == CHANGE_REMOVED or document is None:
        payload = {"id": document_id}
    elif hasattr(document, "to_dict"):
        payload = document.to_dict()
    else:
        payload = dict(document)

    event = ChangeEvent(
        collection=collection,
        document_id=document_id,
        change_type=change_type,
        payload=payload,
    )
    db.session.add(event)
    return event


def record_stock_changes(stock_item_ids) -> None:
    """Record a 'modified' event for each stock item, reloaded from the database."""
    ids = sorted(set(stock_item_ids))
    if not ids:
        return
    items = (
        db.session.query(StockItem)
        .filter(StockItem.id.in_(ids))
        .order_by(StockItem.id)
        .populate_existing()
        .all()
    )
    for item in items:
        record_change("stock", item.id, CHANGE_MODIFIED, item)


def latest_cursor(collection: str) -> int:
    _require_collection(collection)
    return (
        db.session.query(func.max(ChangeEvent.id))
        .filter(ChangeEvent.collection == collection)
        .scalar()
    ) or 0


def snapshot(collection: str) -> dict:
    """Full ordered document list plus the cursor it is consistent with."""
    model, ordering = _require_collection(collection)
    # Cursor first: an event committed after this point is replayed as a delta.
    cursor = latest_cursor(collection)
    documents = db.session.query(model).order_by(*ordering).all()
    return {
        "collection": collection,
        "cursor": cursor,
        "documents": [doc.to_dict() for doc in documents],
    }


def changes_since(collection: str, cursor: int, limit: int = DEFAULT_LIMIT) -> dict:
    """Ordered deltas after cursor; the returned cursor is the last one delivered."""
    _require_collection(collection)
    cursor = max(0, int(cursor or 0))
    limit = max(1, min(int(limit), DEFAULT_LIMIT))
    events = (
        db.session.query(ChangeEvent)
        .filter(ChangeEvent.collection == collection, ChangeEvent.id > cursor)
        .order_by(ChangeEvent.id.asc())
        .limit(limit)
        .all()
    )
    return {
        "collection": collection,
        "cursor": events[-1].id if events else cursor,
        "changes": [event.to_dict() for event in events],
    }


def wait_for_changes(collection: str, cursor: int, wait: float = 0, limit: int = DEFAULT_LIMIT) -> dict:
    """
    Long-poll variant of changes_since.

    Returns as soon as at least one change exists, or after `wait` seconds
    (capped by FEED_MAX_WAIT_SECONDS) with an empty change list.
    """
    config = current_app.config
    wait = max(0.0, min(float(wait or 0), float(config.get("FEED_MAX_WAIT_SECONDS", 25))))
    interval = float(config.get("FEED_POLL_INTERVAL_SECONDS", 0.5))
    deadline = time.monotonic() + wait

    while True:
        result = changes_since(collection, cursor, limit)
        if result["changes"] or time.monotonic() >= deadline:
            return result
        # End the read transaction so the next poll sees new commits
        db.session.rollback()
        time.sleep(interval)


class Subscription:
    """
    In-process subscriber to one collection.

    The callback first receives {"type": "snapshot", ...}, then one
    {"type": "changes", ...} message per poll() that found new events.
    """

    def __init__(self, collection: str, callback):
        _require_collection(collection)
        self.collection = collection
        self.callback = callback
        self.cursor = 0
        self.closed = False

    def start(self) -> "Subscription":
        snap = snapshot(self.collection)
        self.cursor = snap["cursor"]
        self.callback({"type": "snapshot", **snap})
        return self

    def poll(self) -> int:
        """Deliver pending deltas; returns how many were delivered."""
        if self.closed:
            raise SubscriptionClosedError(f"subscription to {self.collection} is closed")
        result = changes_since(self.collection, self.cursor)
        if not result["changes"]:
            return 0
        self.cursor = result["cursor"]
        self.callback({"type": "changes", **result})
        return len(result["changes"])

    def close(self) -> None:
        self.closed = True


def subscribe(collection: str, callback) -> Subscription:
    return Subscription(collection, callback).start()
