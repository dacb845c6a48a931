# Overview: Flask API routes for stock purchases; parses input and returns JSON responses.

from flask import Blueprint, current_app, jsonify

from ..services import purchase_service
from .common import KNOWN_ERRORS, error_response, internal_error, json_body, period_args


purchases_bp = Blueprint("purchases", __name__, url_prefix="/api/purchases")


@purchases_bp.get("")
def list_purchases_route():
    try:
        purchases = purchase_service.list_purchases(**period_args())
        return jsonify({"items": [p.to_dict() for p in purchases], "count": len(purchases)})
    except KNOWN_ERRORS as e:
        return error_response(e, "list_purchases")


@purchases_bp.get("/<int:purchase_id>")
def get_purchase_route(purchase_id: int):
    try:
        return jsonify({"purchase": purchase_service.get_purchase(purchase_id).to_dict()})
    except KNOWN_ERRORS as e:
        return error_response(e, "get_purchase")


@purchases_bp.post("")
def create_purchase_route():
    """
    Record a supplier purchase: adds quantities, overwrites cost prices.

    Request body:
    {
        "supplier_name": "...",
        "purchase_date": "...",   // optional ISO-8601
        "note": "...",
        "items": [{"stock_item_id": 1, "quantity": 10, "unit_cost": 200}]
    }
    """
    try:
        purchase = purchase_service.record_purchase(json_body())
        return jsonify({"purchase": purchase.to_dict()}), 201
    except KNOWN_ERRORS as e:
        return error_response(e, "record_purchase")
    except Exception:
        current_app.logger.exception("Failed to record purchase")
        return internal_error()
