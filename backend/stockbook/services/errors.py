"""
Ledger error taxonomy.

Every rejected business operation raises a LedgerError subclass carrying a
human-readable message, a details dict and the name of the operation that
refused it. Routes translate these into JSON error responses.
"""

from __future__ import annotations


class LedgerError(Exception):
    """Base class for rejected ledger operations."""

    def __init__(self, message: str, *, details: dict | None = None, operation: str | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}
        self.operation = operation

    def to_dict(self) -> dict:
        return {
            "error": self.message,
            "operation": self.operation,
            "details": self.details,
        }


class CartValidationError(LedgerError):
    """Cart or purchase payload is malformed (empty, bad quantity, no stock id)."""


class InsufficientStockError(LedgerError):
    """A line would take a stock item below zero."""


class DocumentNotFoundError(LedgerError):
    """A referenced record or stock item does not exist."""


class ConcurrencyError(LedgerError):
    """Optimistic concurrency retries were exhausted."""


class UnknownStatusError(LedgerError):
    """Deletion was asked for a status outside {paid, unpaid}."""


class ReadAfterWriteError(RuntimeError):
    """An atomic unit read was issued after a write had been staged."""


class SubscriptionClosedError(RuntimeError):
    """A closed change-feed subscription was polled."""
