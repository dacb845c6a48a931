# Overview: Flask API routes for paid sales; parses input and returns JSON responses.

from flask import Blueprint, current_app, jsonify, request

from ..services import sales_service
from ..services.document_service import daily_invoice_count
from .common import KNOWN_ERRORS, error_response, internal_error, json_body, period_args


sales_bp = Blueprint("sales", __name__, url_prefix="/api/sales")


@sales_bp.get("")
def list_sales_route():
    """List paid sales, newest first. Optional ?year=&month= filters."""
    try:
        sales = sales_service.list_sales(**period_args())
        return jsonify({"items": [sale.to_dict() for sale in sales], "count": len(sales)})
    except KNOWN_ERRORS as e:
        return error_response(e, "list_sales")


@sales_bp.get("/<int:sale_id>")
def get_sale_route(sale_id: int):
    try:
        return jsonify({"sale": sales_service.get_sale(sale_id).to_dict()})
    except KNOWN_ERRORS as e:
        return error_response(e, "get_sale")


@sales_bp.post("")
def create_sale_route():
    """
    Record a paid sale and deduct stock.

    Request body:
    {
        "items": [
            {"stock_item_id": 1, "quantity": 2, "price_type": "retail"},
            {"stock_item_id": 4, "quantity": 1, "price_type": "custom", "unit_price": 950}
        ],
        "customer_name": "...",   // optional
        "invoice_number": "...",  // optional, allocated when absent
        "sale_date": "...",       // optional ISO-8601
        "total_amount": 0         // optional, checked against the items
    }
    """
    try:
        sale = sales_service.record_sale(json_body())
        return jsonify({"sale": sale.to_dict()}), 201
    except KNOWN_ERRORS as e:
        return error_response(e, "record_sale")
    except Exception:
        current_app.logger.exception("Failed to record sale")
        return internal_error()


@sales_bp.delete("/<int:sale_id>")
def delete_sale_route(sale_id: int):
    """Delete a paid sale and return its quantities to stock."""
    try:
        sales_service.delete_sale(sale_id)
        return jsonify({"deleted": sale_id, "status": "paid"})
    except KNOWN_ERRORS as e:
        return error_response(e, "delete_sale")
    except Exception:
        current_app.logger.exception("Failed to delete sale %s", sale_id)
        return internal_error()


@sales_bp.get("/invoice-count")
def invoice_count_route():
    """Number of sales plus debtors on ?date=YYYY-MM-DD (default today)."""
    try:
        day = request.args.get("date")
        return jsonify({"date": day, "count": daily_invoice_count(day)})
    except ValueError:
        return jsonify({"error": "date must be YYYY-MM-DD"}), 400
