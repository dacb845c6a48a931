# Overview: Flask API routes for the stock ledger; parses input and returns JSON responses.

from flask import Blueprint, current_app, jsonify, request

from ..services import stock_service
from .common import KNOWN_ERRORS, error_response, internal_error, json_body


stock_bp = Blueprint("stock", __name__, url_prefix="/api/stock")


@stock_bp.get("")
def list_stock_route():
    """
    List stock items, newest first.

    Query parameters:
    - search: substring of product code or name (case-insensitive)
    - category: exact category
    """
    items = stock_service.list_stock_items(
        search=request.args.get("search"),
        category=request.args.get("category"),
    )
    return jsonify({"items": [item.to_dict() for item in items], "count": len(items)})


@stock_bp.get("/<int:stock_item_id>")
def get_stock_route(stock_item_id: int):
    try:
        item = stock_service.get_stock_item(stock_item_id)
        return jsonify({"item": item.to_dict()})
    except KNOWN_ERRORS as e:
        return error_response(e, "get_stock_item")


@stock_bp.post("")
def create_stock_route():
    """
    Create a stock item.

    Request body:
    {
        "product_code": "P001",   // required, unique
        "product_name": "...",    // required
        "category": "...",
        "quantity": 0,
        "sell_price": 0,
        "wholesale_price": 0,
        "cost_price": 0
    }
    """
    try:
        item = stock_service.add_stock_item(json_body())
        return jsonify({"item": item.to_dict()}), 201
    except KNOWN_ERRORS as e:
        return error_response(e, "add_stock_item")
    except Exception:
        current_app.logger.exception("Failed to add stock item")
        return internal_error()


@stock_bp.route("/<int:stock_item_id>", methods=["PUT", "PATCH"])
def update_stock_route(stock_item_id: int):
    """Manual edit; pass the last seen version_id to refuse stale edits."""
    try:
        item = stock_service.update_stock_item(stock_item_id, json_body())
        return jsonify({"item": item.to_dict()})
    except KNOWN_ERRORS as e:
        return error_response(e, "update_stock_item")
    except Exception:
        current_app.logger.exception("Failed to update stock item %s", stock_item_id)
        return internal_error()


@stock_bp.delete("/<int:stock_item_id>")
def delete_stock_route(stock_item_id: int):
    try:
        stock_service.delete_stock_item(stock_item_id)
        return jsonify({"deleted": stock_item_id})
    except KNOWN_ERRORS as e:
        return error_response(e, "delete_stock_item")
    except Exception:
        current_app.logger.exception("Failed to delete stock item %s", stock_item_id)
        return internal_error()


@stock_bp.post("/seed")
def seed_stock_route():
    """
    Seed an empty ledger from a list of product names.

    Request body: {"names": ["Brake pad", "Oil filter", ...]}
    """
    try:
        data = json_body()
        names = data.get("names")
        if not isinstance(names, list):
            return jsonify({"error": "names must be a list"}), 400
        items = stock_service.seed_stock_items(names)
        return jsonify({"items": [item.to_dict() for item in items], "count": len(items)}), 201
    except KNOWN_ERRORS as e:
        return error_response(e, "seed_stock_items")
    except Exception:
        current_app.logger.exception("Failed to seed stock")
        return internal_error()
