# Overview: Flask API routes for unpaid invoices; parses input and returns JSON responses.

from flask import Blueprint, current_app, jsonify

from ..services import debtor_service
from .common import KNOWN_ERRORS, error_response, internal_error, json_body, period_args


debtors_bp = Blueprint("debtors", __name__, url_prefix="/api/debtors")


@debtors_bp.get("")
def list_debtors_route():
    try:
        debtors = debtor_service.list_debtors(**period_args())
        return jsonify({
            "items": [debtor.to_dict() for debtor in debtors],
            "count": len(debtors),
            "total_amount": sum(debtor.total_amount for debtor in debtors),
        })
    except KNOWN_ERRORS as e:
        return error_response(e, "list_debtors")


@debtors_bp.get("/<int:debtor_id>")
def get_debtor_route(debtor_id: int):
    try:
        return jsonify({"debtor": debtor_service.get_debtor(debtor_id).to_dict()})
    except KNOWN_ERRORS as e:
        return error_response(e, "get_debtor")


@debtors_bp.post("")
def create_debtor_route():
    """
    Record an unpaid invoice. Same body as POST /api/sales.

    Refused with 409 when any item would go below zero; nothing is written.
    """
    try:
        debtor = debtor_service.record_debtor(json_body())
        return jsonify({"success": True, "message": "Debt recorded", "debtor": debtor.to_dict()}), 201
    except KNOWN_ERRORS as e:
        return error_response(e, "record_debtor")
    except Exception:
        current_app.logger.exception("Failed to record debtor")
        return internal_error()


@debtors_bp.post("/<int:debtor_id>/settle")
def settle_debtor_route(debtor_id: int):
    """Mark as paid: the debtor becomes a sale with the same invoice number."""
    try:
        sale = debtor_service.settle_debtor(debtor_id)
        return jsonify({"sale": sale.to_dict()})
    except KNOWN_ERRORS as e:
        return error_response(e, "settle_debtor")
    except Exception:
        current_app.logger.exception("Failed to settle debtor %s", debtor_id)
        return internal_error()


@debtors_bp.delete("/<int:debtor_id>")
def delete_debtor_route(debtor_id: int):
    try:
        debtor_service.delete_debtor(debtor_id)
        return jsonify({"deleted": debtor_id, "status": "unpaid"})
    except KNOWN_ERRORS as e:
        return error_response(e, "delete_debtor")
    except Exception:
        current_app.logger.exception("Failed to delete debtor %s", debtor_id)
        return internal_error()
