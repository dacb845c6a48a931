# Overview: Flask API routes for other expenses.

from flask import Blueprint, current_app, jsonify

from ..services import expense_service
from .common import KNOWN_ERRORS, error_response, internal_error, json_body, period_args


expenses_bp = Blueprint("expenses", __name__, url_prefix="/api/expenses")


@expenses_bp.get("")
def list_expenses_route():
    try:
        expenses = expense_service.list_expenses(**period_args())
        return jsonify({
            "items": [e.to_dict() for e in expenses],
            "count": len(expenses),
            "total_amount": sum(e.amount for e in expenses),
        })
    except KNOWN_ERRORS as e:
        return error_response(e, "list_expenses")


@expenses_bp.post("")
def create_expense_route():
    """Request body: {"description": "...", "amount": 100, "expense_date": "..." (optional)}"""
    try:
        expense = expense_service.add_expense(json_body())
        return jsonify({"expense": expense.to_dict()}), 201
    except KNOWN_ERRORS as e:
        return error_response(e, "add_expense")
    except Exception:
        current_app.logger.exception("Failed to add expense")
        return internal_error()


@expenses_bp.delete("/<int:expense_id>")
def delete_expense_route(expense_id: int):
    try:
        expense_service.delete_expense(expense_id)
        return jsonify({"deleted": expense_id})
    except KNOWN_ERRORS as e:
        return error_response(e, "delete_expense")
    except Exception:
        current_app.logger.exception("Failed to delete expense %s", expense_id)
        return internal_error()
