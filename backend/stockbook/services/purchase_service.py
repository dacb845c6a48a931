# Overview: Service-layer operations for stock purchases; encapsulates business logic and database work.

"""
Purchase Service

Posting a purchase, in one unit:
- insert the purchase with its lines
- per line, quantity += line quantity
- per line, cost_price = line unit cost (last purchase price wins)

A line referencing a missing stock item aborts the whole purchase.
Purchases are permanent: there is no deletion path.
"""

from __future__ import annotations

from flask import current_app

from ..extensions import db
from ..models import Purchase, PurchaseLine, StockItem
from ..validation import MAX_AMOUNT, ValidationError, coerce_int
from .checkout import optional_text
from .change_feed import CHANGE_ADDED, record_change, record_stock_changes
from .concurrency import run_atomic
from .errors import CartValidationError, DocumentNotFoundError
from .reporting_service import filter_period
from stockbook.time_utils import to_timestamp


def _int_field(key: str, value, *, index: int, positive: bool) -> int:
    try:
        parsed = coerce_int(key, value)
    except ValidationError as exc:
        raise CartValidationError(str(exc), details={"line": index}, operation="record_purchase")
    if parsed < (1 if positive else 0) or parsed > MAX_AMOUNT:
        qualifier = "a positive integer" if positive else "a non-negative integer"
        raise CartValidationError(f"{key} must be {qualifier}", details={"line": index}, operation="record_purchase")
    return parsed


def _parse_purchase(payload: dict) -> dict:
    if not isinstance(payload, dict):
        raise CartValidationError("Invalid JSON payload", operation="record_purchase")

    raw_items = payload.get("items")
    if not isinstance(raw_items, list) or not raw_items:
        raise CartValidationError("Purchase has no items", operation="record_purchase")

    lines = []
    for index, raw in enumerate(raw_items):
        if not isinstance(raw, dict) or raw.get("stock_item_id") in (None, ""):
            raise CartValidationError(
                f"Purchase item {index + 1} is missing an ID.",
                details={"line": index},
                operation="record_purchase",
            )
        lines.append({
            "stock_item_id": _int_field("stock_item_id", raw["stock_item_id"], index=index, positive=True),
            "quantity": _int_field("quantity", raw.get("quantity"), index=index, positive=True),
            "unit_cost": _int_field("unit_cost", raw.get("unit_cost"), index=index, positive=False),
        })

    try:
        purchase_date = to_timestamp(payload.get("purchase_date"))
    except ValueError:
        raise CartValidationError("purchase_date must be an ISO-8601 datetime", operation="record_purchase")

    return {
        "supplier_name": optional_text(payload.get("supplier_name")),
        "note": optional_text(payload.get("note")),
        "purchase_date": purchase_date,
        "lines": lines,
    }


def list_purchases(*, year: int | None = None, month: int | None = None) -> list[Purchase]:
    q = filter_period(db.session.query(Purchase), Purchase.purchase_date, year=year, month=month)
    return q.order_by(Purchase.purchase_date.desc(), Purchase.id.desc()).all()


def get_purchase(purchase_id: int) -> Purchase:
    purchase = db.session.get(Purchase, purchase_id)
    if purchase is None:
        raise DocumentNotFoundError(
            "document does not exist",
            details={"purchase_id": purchase_id},
            operation="get_purchase",
        )
    return purchase


def record_purchase(payload: dict) -> Purchase:
    """Record a supplier purchase and post it to the stock ledger."""
    data = _parse_purchase(payload)

    def _op(unit):
        items = unit.get_many(StockItem, [line["stock_item_id"] for line in data["lines"]])

        rows = []
        for position, line in enumerate(data["lines"]):
            item = items.get(line["stock_item_id"])
            if item is None:
                raise DocumentNotFoundError(
                    f"Stock item with id {line['stock_item_id']} not found.",
                    details={"stock_item_id": line["stock_item_id"]},
                    operation="record_purchase",
                )
            rows.append(PurchaseLine(
                position=position,
                stock_item_id=item.id,
                product_name=item.product_name,
                quantity=line["quantity"],
                unit_cost=line["unit_cost"],
            ))

        purchase = Purchase(
            supplier_name=data["supplier_name"],
            note=data["note"],
            purchase_date=data["purchase_date"],
            total_amount=sum(row.quantity * row.unit_cost for row in rows),
        )
        purchase.lines = rows
        unit.add(purchase)

        for row in rows:
            item = items[row.stock_item_id]
            unit.increment(item, "quantity", row.quantity)
            unit.update(item, cost_price=row.unit_cost)

        def _changes():
            record_change("purchases", purchase.id, CHANGE_ADDED, purchase)
            record_stock_changes(items)
        unit.on_flush(_changes)
        return purchase

    purchase = run_atomic(_op, operation="record_purchase")
    current_app.logger.info("Purchase %s recorded (%d lines, total %s)", purchase.id, len(purchase.lines), purchase.total_amount)
    return purchase
