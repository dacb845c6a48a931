# Overview: Flask API routes for reports; read-only aggregations.

"""
Report Routes

All list reports accept ?year=YYYY and ?month=M. The two filters are
independent; "all" or an empty value means no filter.
"""

from flask import Blueprint, jsonify

from ..services import reporting_service
from .common import KNOWN_ERRORS, error_response, period_args


reports_bp = Blueprint("reports", __name__, url_prefix="/api/reports")


@reports_bp.get("/sales-summary")
def sales_summary_route():
    try:
        return jsonify(reporting_service.sales_summary(**period_args()))
    except KNOWN_ERRORS as e:
        return error_response(e, "sales_summary")


@reports_bp.get("/sales-by-day")
def sales_by_day_route():
    try:
        days = reporting_service.sales_by_day(**period_args())
        return jsonify({"days": days, "count": len(days)})
    except KNOWN_ERRORS as e:
        return error_response(e, "sales_by_day")


@reports_bp.get("/dashboard")
def dashboard_route():
    """Today / this month / this year revenue."""
    return jsonify(reporting_service.period_revenue())


@reports_bp.get("/debt")
def outstanding_debt_route():
    try:
        return jsonify(reporting_service.outstanding_debt(**period_args()))
    except KNOWN_ERRORS as e:
        return error_response(e, "outstanding_debt")


@reports_bp.get("/customers")
def customer_report_route():
    try:
        rows = reporting_service.customer_report(**period_args())
        return jsonify({"rows": rows, "count": len(rows)})
    except KNOWN_ERRORS as e:
        return error_response(e, "customer_report")


@reports_bp.get("/finance")
def finance_route():
    try:
        return jsonify(reporting_service.finance_summary(**period_args()))
    except KNOWN_ERRORS as e:
        return error_response(e, "finance_summary")


@reports_bp.get("/years")
def years_route():
    return jsonify({"years": reporting_service.available_years()})
