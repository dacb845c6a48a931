# Overview: Shared helpers for blueprints; maps service errors to JSON responses.

from flask import jsonify, request

from ..services.errors import (
    CartValidationError,
    ConcurrencyError,
    DocumentNotFoundError,
    InsufficientStockError,
    LedgerError,
    UnknownStatusError,
)
from ..validation import ConflictError, ValidationError, coerce_int

# Exceptions a route turns into a 4xx response; anything else is a logged 500.
KNOWN_ERRORS = (LedgerError, ValidationError, ConflictError)

# First match wins
STATUS_BY_ERROR = (
    (CartValidationError, 400),
    (UnknownStatusError, 400),
    (ValidationError, 400),
    (DocumentNotFoundError, 404),
    (InsufficientStockError, 409),
    (ConcurrencyError, 409),
    (ConflictError, 409),
)


def error_response(exc: Exception, operation: str | None = None):
    status = 400
    for error_type, code in STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            status = code
            break

    if isinstance(exc, LedgerError):
        body = exc.to_dict()
        if body["operation"] is None:
            body["operation"] = operation
    else:
        body = {"error": str(exc), "operation": operation, "details": {}}
    return jsonify(body), status


def internal_error():
    return jsonify({"error": "Internal server error"}), 500


def json_body() -> dict:
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationError("Invalid JSON payload")
    return data


def period_args() -> dict:
    """?year=YYYY&month=M query filters (both optional, independent)."""
    period = {}
    for key in ("year", "month"):
        raw = request.args.get(key)
        if raw not in (None, "", "all"):
            period[key] = coerce_int(key, raw)
    return period
