# Overview: Flask API route for status-dispatched transaction deletion.

from flask import Blueprint, current_app, jsonify

from ..services import transaction_service
from ..validation import coerce_int
from .common import KNOWN_ERRORS, error_response, internal_error, json_body


transactions_bp = Blueprint("transactions", __name__, url_prefix="/api/transactions")


@transactions_bp.delete("")
def delete_transaction_route():
    """
    Delete a sale or debtor and return its stock.

    Request body: {"id": 12, "status": "paid" | "unpaid"}
    """
    try:
        data = json_body()
        if data.get("id") is None:
            return jsonify({"error": "id is required"}), 400
        record_id = coerce_int("id", data["id"])
        status = data.get("status")
        transaction_service.delete_transaction(record_id, status)
        return jsonify({"deleted": record_id, "status": status})
    except KNOWN_ERRORS as e:
        return error_response(e, "delete_transaction")
    except Exception:
        current_app.logger.exception("Failed to delete transaction")
        return internal_error()
