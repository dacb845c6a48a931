# Overview: Service-layer operations for paid sales; encapsulates business logic and database work.

"""
Sales Service

Paid checkout runs in two steps:
1. Pre-read: resolve every referenced stock item (existence, name/code
   snapshots, captured cost price, list price for the price type)
2. One WriteBatch: insert the sale with its lines and decrement each stock
   item with a server-side increment

The pre-read is not part of the batch, so by default a sale may take an item
below zero (oversell is allowed at the till). With ENFORCE_SALE_STOCK_FLOOR
the sale instead runs as an atomic unit with the same floor check as the
debt path.
"""

from __future__ import annotations

from flask import current_app

from ..extensions import db
from ..models import Sale, SaleLine, StockItem
from ..models.transactions import STATUS_PAID
from .change_feed import CHANGE_ADDED, CHANGE_REMOVED, record_change, record_stock_changes
from .checkout import build_lines, check_stock_floor, parse_cart, quantities_by_item, resolve_total
from .concurrency import run_atomic, run_batch
from .document_service import next_invoice_number
from .errors import DocumentNotFoundError
from .reporting_service import filter_period


def list_sales(*, year: int | None = None, month: int | None = None) -> list[Sale]:
    """Sales newest first, optionally restricted to a year and/or month."""
    q = filter_period(db.session.query(Sale), Sale.sale_date, year=year, month=month)
    return q.order_by(Sale.sale_date.desc(), Sale.id.desc()).all()


def get_sale(sale_id: int) -> Sale:
    sale = db.session.get(Sale, sale_id)
    if sale is None:
        raise DocumentNotFoundError(
            "document does not exist",
            details={"sale_id": sale_id},
            operation="get_sale",
        )
    return sale


def _new_sale(cart, lines, total) -> Sale:
    sale = Sale(
        invoice_number=cart.invoice_number or "",
        customer_name=cart.customer_name,
        sale_date=cart.sale_date,
        total_amount=total,
        status=STATUS_PAID,
    )
    sale.lines = lines
    return sale


def _assign_invoice_number(record, cart) -> None:
    if not cart.invoice_number:
        record.invoice_number = next_invoice_number(cart.sale_date)


def record_sale(payload: dict) -> Sale:
    """Record a paid sale and deduct its quantities from the stock ledger."""
    cart = parse_cart(payload, operation="record_sale")

    if current_app.config.get("ENFORCE_SALE_STOCK_FLOOR"):
        return _record_sale_with_floor(cart)

    items = {
        item.id: item
        for item in db.session.query(StockItem).filter(StockItem.id.in_(cart.stock_item_ids)).all()
    }
    lines = build_lines(cart, items, SaleLine, operation="record_sale")
    total = resolve_total(cart, lines, operation="record_sale")
    sold = quantities_by_item(cart)
    # Line snapshots are built; release the read transaction before the batch.
    db.session.rollback()

    def _stage(batch):
        sale = _new_sale(cart, [SaleLine(**line.copy_fields()) for line in lines], total)
        batch.stage(lambda: _assign_invoice_number(sale, cart))
        batch.add(sale)
        for stock_item_id, quantity in sold.items():
            batch.increment(StockItem, stock_item_id, "quantity", -quantity)

        def _changes():
            record_change("sales", sale.id, CHANGE_ADDED, sale)
            record_stock_changes(sold)
        batch.on_flush(_changes)
        return sale

    sale = run_batch(_stage, operation="record_sale")
    current_app.logger.info("Sale %s recorded (%s, total %s)", sale.id, sale.invoice_number, sale.total_amount)
    return sale


def _record_sale_with_floor(cart) -> Sale:
    def _op(unit):
        items = unit.get_many(StockItem, cart.stock_item_ids)
        remaining = check_stock_floor(cart, items, operation="record_sale")
        lines = build_lines(cart, items, SaleLine, operation="record_sale")
        total = resolve_total(cart, lines, operation="record_sale")

        sale = _new_sale(cart, lines, total)
        unit.stage(lambda: _assign_invoice_number(sale, cart))
        unit.add(sale)
        for stock_item_id, new_quantity in remaining.items():
            unit.update(items[stock_item_id], quantity=new_quantity)

        def _changes():
            record_change("sales", sale.id, CHANGE_ADDED, sale)
            record_stock_changes(remaining)
        unit.on_flush(_changes)
        return sale

    sale = run_atomic(_op, operation="record_sale")
    current_app.logger.info("Sale %s recorded with stock floor check (%s)", sale.id, sale.invoice_number)
    return sale


def delete_sale(sale_id: int) -> None:
    """Delete a paid sale and return its quantities to stock."""
    def _op(unit):
        sale = unit.get(Sale, sale_id)
        if sale is None:
            raise DocumentNotFoundError(
                "document does not exist",
                details={"sale_id": sale_id},
                operation="delete_sale",
            )
        returned = {}
        for line in sale.lines:
            returned[line.stock_item_id] = returned.get(line.stock_item_id, 0) + line.quantity
        # Stock items deleted since the sale are skipped
        items = unit.get_many(StockItem, returned)

        for stock_item_id, item in items.items():
            unit.increment(item, "quantity", returned[stock_item_id])
        unit.delete(sale)

        def _changes():
            record_change("sales", sale_id, CHANGE_REMOVED)
            record_stock_changes(items)
        unit.on_flush(_changes)
        return sorted(items)

    restored = run_atomic(_op, operation="delete_sale")
    current_app.logger.info("Sale %s deleted; stock restored for items %s", sale_id, restored)
