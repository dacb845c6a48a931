# Overview: Flask API routes for the customer directory.

from flask import Blueprint, current_app, jsonify

from ..services import customer_service, reporting_service
from .common import KNOWN_ERRORS, error_response, internal_error, json_body


customers_bp = Blueprint("customers", __name__, url_prefix="/api/customers")


@customers_bp.get("")
def list_customers_route():
    customers = customer_service.list_customers()
    return jsonify({"items": [c.to_dict() for c in customers], "count": len(customers)})


@customers_bp.post("")
def create_customer_route():
    """Request body: {"name": "...", "phone": "...", "address": "..."}; name must be unique."""
    try:
        customer = customer_service.add_customer(json_body())
        return jsonify({"customer": customer.to_dict()}), 201
    except KNOWN_ERRORS as e:
        return error_response(e, "add_customer")
    except Exception:
        current_app.logger.exception("Failed to add customer")
        return internal_error()


@customers_bp.delete("/<int:customer_id>")
def delete_customer_route(customer_id: int):
    try:
        customer_service.delete_customer(customer_id)
        return jsonify({"deleted": customer_id})
    except KNOWN_ERRORS as e:
        return error_response(e, "delete_customer")
    except Exception:
        current_app.logger.exception("Failed to delete customer %s", customer_id)
        return internal_error()


@customers_bp.get("/<path:name>/transactions")
def customer_transactions_route(name: str):
    """Sales and debtors recorded under a customer name."""
    return jsonify(reporting_service.customer_transactions(name))
