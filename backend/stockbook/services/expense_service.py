# Overview: Service-layer operations for other (non-stock) expenses.

from __future__ import annotations

from flask import current_app

from ..extensions import db
from ..models import OtherExpense
from ..validation import ModelValidationPolicy, validate_payload
from .change_feed import CHANGE_ADDED, CHANGE_REMOVED, record_change
from .errors import DocumentNotFoundError
from .reporting_service import filter_period
from stockbook.time_utils import utcnow

EXPENSE_POLICY = ModelValidationPolicy(
    writable_fields={"description", "amount", "expense_date"},
    required_on_create={"description", "amount"},
    non_negative_fields={"amount"},
)


def list_expenses(*, year: int | None = None, month: int | None = None) -> list[OtherExpense]:
    q = filter_period(db.session.query(OtherExpense), OtherExpense.expense_date, year=year, month=month)
    return q.order_by(OtherExpense.expense_date.desc(), OtherExpense.id.desc()).all()


def add_expense(payload: dict) -> OtherExpense:
    """Record an expense; expense_date defaults to now."""
    patch = validate_payload(model=OtherExpense, payload=payload, policy=EXPENSE_POLICY, partial=False)
    if patch.get("expense_date") is None:
        patch["expense_date"] = utcnow()

    expense = OtherExpense(**patch)
    db.session.add(expense)
    db.session.flush()
    record_change("expenses", expense.id, CHANGE_ADDED, expense)
    db.session.commit()

    current_app.logger.info("Expense %s added (%s)", expense.id, expense.amount)
    return expense


def delete_expense(expense_id: int) -> None:
    expense = db.session.get(OtherExpense, expense_id)
    if expense is None:
        raise DocumentNotFoundError(
            "document does not exist",
            details={"expense_id": expense_id},
            operation="delete_expense",
        )
    db.session.delete(expense)
    record_change("expenses", expense_id, CHANGE_REMOVED)
    db.session.commit()
