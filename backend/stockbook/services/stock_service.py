# Overview: Service-layer operations for the stock ledger; encapsulates business logic and database work.

from __future__ import annotations

from flask import current_app
from sqlalchemy import func, or_
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import StockItem
from ..validation import ConflictError, ModelValidationPolicy, ValidationError, coerce_int, validate_payload
from .change_feed import CHANGE_ADDED, CHANGE_MODIFIED, CHANGE_REMOVED, record_change
from .concurrency import run_atomic
from .errors import ConcurrencyError, DocumentNotFoundError

STOCK_ITEM_POLICY = ModelValidationPolicy(
    writable_fields={
        "product_code",
        "product_name",
        "category",
        "quantity",
        "sell_price",
        "wholesale_price",
        "cost_price",
    },
    required_on_create={"product_code", "product_name"},
    non_negative_fields={"quantity", "sell_price", "wholesale_price", "cost_price"},
)

SEED_CODE_PREFIX = "P"


def _not_found(stock_item_id, operation: str) -> DocumentNotFoundError:
    return DocumentNotFoundError(
        f"Stock item with id {stock_item_id} not found.",
        details={"stock_item_id": stock_item_id},
        operation=operation,
    )


def _code_taken(product_code: str, *, exclude_id: int | None = None) -> bool:
    q = db.session.query(StockItem.id).filter(StockItem.product_code == product_code)
    if exclude_id is not None:
        q = q.filter(StockItem.id != exclude_id)
    return db.session.query(q.exists()).scalar()


def list_stock_items(*, search: str | None = None, category: str | None = None) -> list[StockItem]:
    """Stock items newest first, optionally filtered by code/name substring and category."""
    q = db.session.query(StockItem)
    if search:
        pattern = f"%{search.strip().lower()}%"
        q = q.filter(or_(
            func.lower(StockItem.product_code).like(pattern),
            func.lower(StockItem.product_name).like(pattern),
        ))
    if category:
        q = q.filter(StockItem.category == category)
    return q.order_by(StockItem.created_at.desc(), StockItem.id.desc()).all()


def get_stock_item(stock_item_id: int) -> StockItem:
    item = db.session.get(StockItem, stock_item_id)
    if item is None:
        raise _not_found(stock_item_id, "get_stock_item")
    return item


def add_stock_item(payload: dict) -> StockItem:
    patch = validate_payload(model=StockItem, payload=payload, policy=STOCK_ITEM_POLICY, partial=False)

    if _code_taken(patch["product_code"]):
        raise ConflictError(f"Product code {patch['product_code']} already exists")

    item = StockItem(**patch)
    db.session.add(item)
    try:
        db.session.flush()
        record_change("stock", item.id, CHANGE_ADDED, item)
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise ConflictError(f"Product code {patch['product_code']} already exists")

    current_app.logger.info("Stock item %s added (%s)", item.id, item.product_code)
    return item


def update_stock_item(stock_item_id: int, payload: dict) -> StockItem:
    """
    Manual edit of any writable field, quantity included.

    An optional "version_id" in the payload must match the stored version;
    a stale edit raises ConcurrencyError instead of overwriting.
    """
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")
    payload = dict(payload)
    expected_version = payload.pop("version_id", None)
    if expected_version is not None:
        expected_version = coerce_int("version_id", expected_version)

    patch = validate_payload(model=StockItem, payload=payload, policy=STOCK_ITEM_POLICY, partial=True)

    def _op(unit):
        item = unit.get(StockItem, stock_item_id)
        if item is None:
            raise _not_found(stock_item_id, "update_stock_item")
        if expected_version is not None and item.version_id != expected_version:
            raise ConcurrencyError(
                "Stock item was changed by someone else. Reload and try again.",
                details={"expected_version": expected_version, "current_version": item.version_id},
                operation="update_stock_item",
            )
        if "product_code" in patch and _code_taken(patch["product_code"], exclude_id=item.id):
            raise ConflictError(f"Product code {patch['product_code']} already exists")

        unit.update(item, **patch)
        unit.on_flush(lambda: record_change("stock", item.id, CHANGE_MODIFIED, item))
        return item

    try:
        item = run_atomic(_op, operation="update_stock_item")
    except IntegrityError:
        raise ConflictError(f"Product code {patch.get('product_code')} already exists")

    current_app.logger.info("Stock item %s updated: %s", item.id, sorted(patch))
    return item


def delete_stock_item(stock_item_id: int) -> None:
    """Delete a stock item; sale and debtor lines keep their reference to its id."""
    def _op(unit):
        item = unit.get(StockItem, stock_item_id)
        if item is None:
            raise _not_found(stock_item_id, "delete_stock_item")
        unit.delete(item)
        unit.on_flush(lambda: record_change("stock", stock_item_id, CHANGE_REMOVED))

    run_atomic(_op, operation="delete_stock_item")
    current_app.logger.info("Stock item %s deleted", stock_item_id)


def seed_stock_items(names) -> list[StockItem]:
    """
    Create one zeroed stock item per unique name, coded P001, P002, ...

    Only runs against an empty ledger; otherwise nothing is created.
    """
    if db.session.query(StockItem.id).first() is not None:
        current_app.logger.info("Stock ledger is not empty; seed skipped")
        return []

    unique_names = []
    seen = set()
    for name in names or []:
        cleaned = str(name).strip()
        if cleaned and cleaned not in seen:
            seen.add(cleaned)
            unique_names.append(cleaned)

    items = []
    for index, name in enumerate(unique_names, start=1):
        item = StockItem(
            product_code=f"{SEED_CODE_PREFIX}{index:03d}",
            product_name=name,
            quantity=0,
            sell_price=0,
            wholesale_price=0,
            cost_price=0,
        )
        db.session.add(item)
        items.append(item)

    db.session.flush()
    for item in items:
        record_change("stock", item.id, CHANGE_ADDED, item)
    db.session.commit()

    current_app.logger.info("Seeded %d stock items", len(items))
    return items
