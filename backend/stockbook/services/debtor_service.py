# Overview: Service-layer operations for unpaid invoices (debtors); encapsulates business logic and database work.

"""
Debtor Service

LIFECYCLE:
1. record_debtor: unpaid invoice created, stock deducted (floor-checked)
2. settle_debtor: the debtor becomes a paid sale with identical content;
   stock is not touched again
3. delete_debtor: invoice removed, stock returned

The customer directory entry written by record_debtor is a separate,
best-effort commit: it happens first and is never rolled back with the debt.
"""

from __future__ import annotations

from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from ..extensions import db
from ..models import Debtor, DebtorLine, Sale, SaleLine, StockItem
from ..models.transactions import STATUS_PAID, STATUS_UNPAID
from ..validation import ConflictError, ValidationError
from . import customer_service
from .change_feed import CHANGE_ADDED, CHANGE_REMOVED, record_change, record_stock_changes
from .checkout import build_lines, check_stock_floor, parse_cart, resolve_total
from .concurrency import run_atomic
from .document_service import next_invoice_number
from .errors import DocumentNotFoundError
from .reporting_service import filter_period


def _missing_debtor(debtor_id, operation: str) -> DocumentNotFoundError:
    return DocumentNotFoundError(
        "document does not exist",
        details={"debtor_id": debtor_id},
        operation=operation,
    )


def list_debtors(*, year: int | None = None, month: int | None = None) -> list[Debtor]:
    """Unpaid invoices newest first, optionally restricted to a year and/or month."""
    q = filter_period(db.session.query(Debtor), Debtor.sale_date, year=year, month=month)
    return q.order_by(Debtor.sale_date.desc(), Debtor.id.desc()).all()


def get_debtor(debtor_id: int) -> Debtor:
    debtor = db.session.get(Debtor, debtor_id)
    if debtor is None:
        raise _missing_debtor(debtor_id, "get_debtor")
    return debtor


def _ensure_customer_best_effort(name: str | None) -> None:
    if not name:
        return
    try:
        customer_service.ensure_customer(name)
    except (SQLAlchemyError, ValidationError, ConflictError):
        db.session.rollback()
        current_app.logger.warning("Could not add %r to the customer directory; continuing with the debt", name, exc_info=True)


def record_debtor(payload: dict) -> Debtor:
    """
    Record an unpaid invoice.

    Every referenced stock item is read inside the unit; if any would go
    below zero the whole invoice is refused and nothing is written.
    """
    cart = parse_cart(payload, operation="record_debtor")
    _ensure_customer_best_effort(cart.customer_name)

    def _op(unit):
        items = unit.get_many(StockItem, cart.stock_item_ids)
        remaining = check_stock_floor(cart, items, operation="record_debtor")
        lines = build_lines(cart, items, DebtorLine, operation="record_debtor")
        total = resolve_total(cart, lines, operation="record_debtor")

        debtor = Debtor(
            invoice_number=cart.invoice_number or "",
            customer_name=cart.customer_name,
            sale_date=cart.sale_date,
            total_amount=total,
            status=STATUS_UNPAID,
        )
        debtor.lines = lines

        if not cart.invoice_number:
            unit.stage(lambda: setattr(debtor, "invoice_number", next_invoice_number(cart.sale_date)))
        unit.add(debtor)
        for stock_item_id, new_quantity in remaining.items():
            unit.update(items[stock_item_id], quantity=new_quantity)

        def _changes():
            record_change("debtors", debtor.id, CHANGE_ADDED, debtor)
            record_stock_changes(remaining)
        unit.on_flush(_changes)
        return debtor

    try:
        debtor = run_atomic(_op, operation="record_debtor")
    except Exception as exc:
        current_app.logger.warning("Debt for %r refused: %s", cart.customer_name, exc)
        raise

    current_app.logger.info("Debtor %s recorded (%s, total %s)", debtor.id, debtor.invoice_number, debtor.total_amount)
    return debtor


def settle_debtor(debtor_id: int) -> Sale:
    """
    Mark an unpaid invoice as paid.

    Creates a sale with the same invoice number, customer, date, lines and
    total, then deletes the debtor, in one unit. Stock quantities are not
    touched. Settling an already-settled debtor raises DocumentNotFoundError.
    """
    def _op(unit):
        debtor = unit.get(Debtor, debtor_id)
        if debtor is None:
            raise _missing_debtor(debtor_id, "settle_debtor")
        lines = [SaleLine(**line.copy_fields()) for line in debtor.lines]

        sale = Sale(
            invoice_number=debtor.invoice_number,
            customer_name=debtor.customer_name,
            sale_date=debtor.sale_date,
            total_amount=debtor.total_amount,
            status=STATUS_PAID,
        )
        sale.lines = lines
        unit.add(sale)
        unit.delete(debtor)

        def _changes():
            record_change("sales", sale.id, CHANGE_ADDED, sale)
            record_change("debtors", debtor_id, CHANGE_REMOVED)
        unit.on_flush(_changes)
        return sale

    sale = run_atomic(_op, operation="settle_debtor")
    current_app.logger.info("Debtor %s settled as sale %s (%s)", debtor_id, sale.id, sale.invoice_number)
    return sale


def delete_debtor(debtor_id: int) -> None:
    """Delete an unpaid invoice and return its quantities to stock."""
    def _op(unit):
        debtor = unit.get(Debtor, debtor_id)
        if debtor is None:
            raise _missing_debtor(debtor_id, "delete_debtor")
        returned = {}
        for line in debtor.lines:
            returned[line.stock_item_id] = returned.get(line.stock_item_id, 0) + line.quantity
        # Stock items deleted since checkout are skipped
        items = unit.get_many(StockItem, returned)

        for stock_item_id, item in items.items():
            unit.increment(item, "quantity", returned[stock_item_id])
        unit.delete(debtor)

        def _changes():
            record_change("debtors", debtor_id, CHANGE_REMOVED)
            record_stock_changes(items)
        unit.on_flush(_changes)
        return sorted(items)

    restored = run_atomic(_op, operation="delete_debtor")
    current_app.logger.info("Debtor %s deleted; stock restored for items %s", debtor_id, restored)
