# Overview: Status-dispatched deletion of transaction records.

from __future__ import annotations

from flask import current_app

from ..models.transactions import STATUS_PAID, STATUS_UNPAID
from . import debtor_service, sales_service
from .errors import UnknownStatusError

DELETE_HANDLERS = {
    STATUS_PAID: sales_service.delete_sale,
    STATUS_UNPAID: debtor_service.delete_debtor,
}


def delete_transaction(record_id: int, status: str | None) -> None:
    """
    Delete a sale or debtor and return its quantities to stock.

    The status picks the collection: "paid" -> sales, "unpaid" -> debtors.
    Any other status is refused before anything is read or written.
    """
    handler = DELETE_HANDLERS.get(status) if isinstance(status, str) else None
    if handler is None:
        current_app.logger.warning("Refused to delete record %s with status %r", record_id, status)
        raise UnknownStatusError(
            f"Unknown transaction status: {status if status is not None else 'undefined'}",
            details={"id": record_id, "status": status, "allowed": sorted(DELETE_HANDLERS)},
            operation="delete_transaction",
        )
    handler(record_id)
