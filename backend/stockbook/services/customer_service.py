# Overview: Service-layer operations for the customer directory.

from __future__ import annotations

from flask import current_app
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import Customer
from ..validation import ConflictError, ModelValidationPolicy, validate_payload
from .change_feed import CHANGE_ADDED, CHANGE_REMOVED, record_change
from .errors import DocumentNotFoundError

CUSTOMER_POLICY = ModelValidationPolicy(
    writable_fields={"name", "phone", "address"},
    required_on_create={"name"},
)

DUPLICATE_NAME_MESSAGE = "customer name already exists"


def list_customers() -> list[Customer]:
    return db.session.query(Customer).order_by(Customer.created_at.desc(), Customer.id.desc()).all()


def find_customer(name: str) -> Customer | None:
    return db.session.query(Customer).filter(Customer.name == name.strip()).one_or_none()


def add_customer(payload: dict) -> Customer:
    """Create a customer; names are unique."""
    patch = validate_payload(model=Customer, payload=payload, policy=CUSTOMER_POLICY, partial=False)

    if find_customer(patch["name"]) is not None:
        raise ConflictError(DUPLICATE_NAME_MESSAGE)

    customer = Customer(**patch)
    db.session.add(customer)
    try:
        db.session.flush()
        record_change("customers", customer.id, CHANGE_ADDED, customer)
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise ConflictError(DUPLICATE_NAME_MESSAGE)

    current_app.logger.info("Customer %s added", customer.id)
    return customer


def ensure_customer(name: str) -> Customer | None:
    """
    Idempotently make sure a customer with this name exists.

    Commits on its own. A concurrent insert of the same name is treated as
    success.
    """
    name = (name or "").strip()
    if not name:
        return None

    existing = find_customer(name)
    if existing is not None:
        return existing

    try:
        return add_customer({"name": name})
    except ConflictError:
        return find_customer(name)


def delete_customer(customer_id: int) -> None:
    """Remove a directory entry; transaction records keep the name."""
    customer = db.session.get(Customer, customer_id)
    if customer is None:
        raise DocumentNotFoundError(
            "document does not exist",
            details={"customer_id": customer_id},
            operation="delete_customer",
        )
    db.session.delete(customer)
    record_change("customers", customer_id, CHANGE_REMOVED)
    db.session.commit()
    current_app.logger.info("Customer %s deleted", customer_id)
