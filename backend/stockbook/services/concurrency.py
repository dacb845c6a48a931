# Overview: Atomic units of work, write batches and retry helpers for the stock ledger.

"""
Concurrency primitives

Two shapes of write exist against the ledger:

AtomicUnit (read-validate-write):
1. Read set: get / get_many, row-locked where the dialect supports it
2. Validate in Python against what was read
3. Write set: staged add / update / increment / delete
4. Commit; any exception rolls everything back

A read after a staged write is a programming error (ReadAfterWriteError).
StockItem, Sale and Debtor carry version_id_col, so a concurrent update to a
row that was read raises StaleDataError at flush and run_atomic retries the
whole unit from a fresh read.

WriteBatch (blind writes):
- No read phase
- Inserts plus server-side increments (quantity = quantity + delta)
- All-or-nothing; an increment matching no row aborts the batch
"""

from __future__ import annotations

import time

from flask import current_app
from sqlalchemy import update
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm.exc import StaleDataError

from ..extensions import db
from .errors import ConcurrencyError, DocumentNotFoundError, ReadAfterWriteError


class RetryableConflict(Exception):
    """Raised inside a unit when a concurrent writer won a race (e.g. sequence row insert)."""


RETRYABLE_ERRORS = (OperationalError, StaleDataError, RetryableConflict)


def lock_for_update(query):
    """
    Apply row-level locking for critical operations.

    NOTE: SQLite ignores SELECT ... FOR UPDATE, but other DBs will honor it.
    """
    return query.with_for_update()


def run_with_retry(func, *, attempts: int = 3, backoff_base: float = 0.1):
    """
    Execute a DB operation with retry on concurrency-related failures.

    Retries on OperationalError (deadlocks, locks), StaleDataError
    (optimistic locking conflicts) and RetryableConflict.
    """
    last_exc = None
    for attempt in range(attempts):
        try:
            return func()
        except RETRYABLE_ERRORS as exc:
            db.session.rollback()
            last_exc = exc
            if attempt >= attempts - 1:
                raise
            current_app.logger.info("Retrying after concurrency conflict (attempt %d): %s", attempt + 1, exc)
            time.sleep(backoff_base * (2 ** attempt))
    if last_exc:
        raise last_exc


def commit_with_retry(*, attempts: int = 3, backoff_base: float = 0.1):
    """Commit current session with retry handling."""
    def _op():
        db.session.commit()
    return run_with_retry(_op, attempts=attempts, backoff_base=backoff_base)


class _StagedWrites:
    """Ordered write set plus post-flush callbacks, applied at commit."""

    def __init__(self, session=None):
        self.session = session or db.session
        self._writes = []
        self._on_flush = []

    @property
    def has_writes(self) -> bool:
        return bool(self._writes)

    def stage(self, fn):
        """Stage an arbitrary write; fn runs at commit, in staging order."""
        self._writes.append(fn)

    def add(self, obj):
        self._writes.append(lambda: self.session.add(obj))
        return obj

    def on_flush(self, fn):
        """Run fn after the write set is flushed (ids assigned), before commit."""
        self._on_flush.append(fn)

    def commit(self):
        try:
            for write in self._writes:
                write()
            self.session.flush()
            for callback in self._on_flush:
                callback()
            self.session.commit()
        except Exception:
            self.session.rollback()
            raise

    def rollback(self):
        self._writes.clear()
        self._on_flush.clear()
        self.session.rollback()


class AtomicUnit(_StagedWrites):
    """Read-validate-write unit of work over the default session."""

    def _ensure_read_phase(self):
        if self.has_writes:
            raise ReadAfterWriteError("reads must happen before any write is staged")

    def get(self, model, ident):
        """Locked read of one row by primary key; None if missing."""
        self._ensure_read_phase()
        query = self.session.query(model).filter(model.id == ident)
        return lock_for_update(query).one_or_none()

    def get_many(self, model, idents) -> dict:
        """Locked read of several rows; returns {id: row} for the ones that exist."""
        self._ensure_read_phase()
        wanted = sorted(set(idents))
        if not wanted:
            return {}
        query = self.session.query(model).filter(model.id.in_(wanted)).order_by(model.id)
        return {row.id: row for row in lock_for_update(query).all()}

    def update(self, obj, **values):
        def _apply():
            for key, value in values.items():
                setattr(obj, key, value)
        self._writes.append(_apply)
        return obj

    def increment(self, obj, field: str, delta: int):
        """Stage field += delta, computed against the value read in this unit."""
        def _apply():
            setattr(obj, field, getattr(obj, field) + delta)
        self._writes.append(_apply)
        return obj

    def delete(self, obj):
        self._writes.append(lambda: self.session.delete(obj))


class WriteBatch(_StagedWrites):
    """Blind write batch: inserts and server-side increments, no reads."""

    def increment(self, model, ident, field: str, delta: int):
        """Stage UPDATE model SET field = field + delta WHERE id = ident."""
        def _apply():
            values = {field: getattr(model, field) + delta}
            version_col = model.__mapper__.version_id_col
            if version_col is not None:
                values[version_col.key] = version_col + 1
            stmt = (
                update(model)
                .where(model.id == ident)
                .values(**values)
                .execution_options(synchronize_session=False)
            )
            result = self.session.execute(stmt)
            if not result.rowcount:
                raise DocumentNotFoundError(
                    f"{model.__tablename__} row {ident} not found",
                    details={"table": model.__tablename__, "id": ident},
                    operation="write_batch",
                )
        self._writes.append(_apply)


def _retry_settings(attempts, backoff_base):
    config = current_app.config
    if attempts is None:
        attempts = config.get("TRANSACTION_RETRY_ATTEMPTS", 3)
    if backoff_base is None:
        backoff_base = config.get("TRANSACTION_RETRY_BACKOFF", 0.1)
    return max(1, int(attempts)), float(backoff_base)


def run_atomic(fn, *, attempts: int | None = None, backoff_base: float | None = None, operation: str | None = None):
    """
    Run fn(unit) in a fresh AtomicUnit and commit it.

    The whole unit (reads included) is retried on concurrency conflicts;
    once retries are exhausted a ConcurrencyError is raised. Any other
    exception rolls the unit back and propagates unchanged.
    """
    attempts, backoff_base = _retry_settings(attempts, backoff_base)

    def _op():
        unit = AtomicUnit()
        try:
            result = fn(unit)
        except Exception:
            unit.rollback()
            raise
        unit.commit()
        return result

    try:
        return run_with_retry(_op, attempts=attempts, backoff_base=backoff_base)
    except RETRYABLE_ERRORS as exc:
        current_app.logger.warning("%s gave up after %d attempts: %s", operation or "atomic unit", attempts, exc)
        raise ConcurrencyError(
            "The records changed while this operation was running. Please try again.",
            details={"attempts": attempts},
            operation=operation,
        ) from exc


def run_batch(fn, *, attempts: int | None = None, backoff_base: float | None = None, operation: str | None = None):
    """Run fn(batch) to stage a fresh WriteBatch and commit it, with the same retry policy as run_atomic."""
    attempts, backoff_base = _retry_settings(attempts, backoff_base)

    def _op():
        batch = WriteBatch()
        result = fn(batch)
        batch.commit()
        return result

    try:
        return run_with_retry(_op, attempts=attempts, backoff_base=backoff_base)
    except RETRYABLE_ERRORS as exc:
        current_app.logger.warning("%s gave up after %d attempts: %s", operation or "write batch", attempts, exc)
        raise ConcurrencyError(
            "The records changed while this operation was running. Please try again.",
            details={"attempts": attempts},
            operation=operation,
        ) from exc
