from __future__ import annotations

from ..extensions import db
from stockbook.time_utils import to_utc_z


class DocumentSequence(db.Model):
    """
    Atomic date-scoped document sequences.

    WHY: Invoice numbers restart every day ("INV-20240501-0001"); allocation
    happens inside the checkout transaction so an aborted checkout never
    consumes a number.
    """
    __tablename__ = "document_sequences"
    __table_args__ = (
        db.UniqueConstraint("scope_key", "document_type", name="uq_doc_sequences_scope_type"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    scope_key = db.Column(db.String(32), nullable=False, index=True)
    document_type = db.Column(db.String(32), nullable=False, index=True)
    next_number = db.Column(db.Integer, nullable=False, default=1)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "scope_key": self.scope_key,
            "document_type": self.document_type,
            "next_number": self.next_number,
            "updated_at": to_utc_z(self.updated_at),
        }


class ChangeEvent(db.Model):
    """
    Append-only change log backing snapshot + delta subscriptions.

    - Written in the same DB transaction as the mutation it records.
    - id is the subscription cursor (strictly increasing).
    - Removed documents carry only their id in the payload.
    """
    __tablename__ = "change_events"
    __table_args__ = (
        db.Index("ix_change_events_collection_id", "collection", "id"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    collection = db.Column(db.String(32), nullable=False)
    document_id = db.Column(db.Integer, nullable=False)
    change_type = db.Column(db.String(16), nullable=False)  # added, modified, removed
    payload = db.Column(db.JSON, nullable=True)

    occurred_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "collection": self.collection,
            "document_id": self.document_id,
            "change_type": self.change_type,
            "document": self.payload,
            "occurred_at": to_utc_z(self.occurred_at),
        }
