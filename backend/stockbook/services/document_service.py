# Overview: Service-layer operations for invoice numbering; encapsulates sequence allocation.

from __future__ import annotations

from sqlalchemy import func, update
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import DocumentSequence, Sale, Debtor
from .concurrency import RetryableConflict
from stockbook.time_utils import to_timestamp, day_bounds

INVOICE_PREFIX = "INV"
INVOICE_DOCUMENT_TYPE = "invoice"


class DocumentSequenceError(Exception):
    """Raised when document sequence operations fail."""
    pass


def next_document_number(
    *,
    scope_key: str,
    document_type: str,
    prefix: str,
    pad: int = 4,
) -> str:
    """
    Allocate the next document number for a scope/type.

    Runs inside the caller's transaction: the number is only consumed if the
    caller commits. A concurrent first insert of the sequence row surfaces as
    RetryableConflict so the caller's unit is retried from the start.
    """
    if not scope_key:
        raise DocumentSequenceError("scope_key is required")
    if not document_type:
        raise DocumentSequenceError("document_type is required")

    stmt = (
        update(DocumentSequence)
        .where(
            DocumentSequence.scope_key == scope_key,
            DocumentSequence.document_type == document_type,
        )
        .values(next_number=DocumentSequence.next_number + 1)
        .execution_options(synchronize_session=False)
    )

    result = db.session.execute(stmt)
    if result.rowcount:
        current = (
            db.session.query(DocumentSequence.next_number)
            .filter_by(scope_key=scope_key, document_type=document_type)
            .scalar()
        )
        next_num = current - 1
    else:
        seq = DocumentSequence(scope_key=scope_key, document_type=document_type, next_number=2)
        db.session.add(seq)
        try:
            db.session.flush()
        except IntegrityError as exc:
            raise RetryableConflict(f"sequence {document_type}/{scope_key} created concurrently") from exc
        next_num = 1

    return f"{prefix}-{scope_key}-{next_num:0{pad}d}"


def next_invoice_number(sale_date=None) -> str:
    """Date-scoped invoice number, e.g. INV-20240501-0001. Call inside a unit of work."""
    day = to_timestamp(sale_date)
    return next_document_number(
        scope_key=day.strftime("%Y%m%d"),
        document_type=INVOICE_DOCUMENT_TYPE,
        prefix=INVOICE_PREFIX,
    )


def daily_invoice_count(day=None) -> int:
    """Number of sales plus debtors dated on the given calendar day."""
    start, end = day_bounds(to_timestamp(day).date())
    total = 0
    for model in (Sale, Debtor):
        total += (
            db.session.query(func.count(model.id))
            .filter(model.sale_date >= start, model.sale_date < end)
            .scalar()
        ) or 0
    return total
