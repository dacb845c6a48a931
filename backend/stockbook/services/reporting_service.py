# Overview: Service-layer operations for reporting; read-only aggregation over the ledger.

from __future__ import annotations

from datetime import datetime

from sqlalchemy import extract, func, or_

from stockbook.extensions import db
from stockbook.models import Debtor, OtherExpense, Purchase, Sale
from stockbook.time_utils import day_bounds, utcnow
from stockbook.validation import ValidationError

UNNAMED_CUSTOMER = "Unnamed customer"


def filter_period(query, column, *, year: int | None = None, month: int | None = None):
    """
    Restrict a query to a year and/or month of `column`.

    The two filters are independent: month alone matches that month in every
    year.
    """
    if year is not None:
        query = query.filter(extract("year", column) == int(year))
    if month is not None:
        month = int(month)
        if not 1 <= month <= 12:
            raise ValidationError("month must be between 1 and 12")
        query = query.filter(extract("month", column) == month)
    return query


def _records(model, *, year=None, month=None) -> list:
    q = filter_period(db.session.query(model), model.sale_date, year=year, month=month)
    return q.order_by(model.sale_date.desc(), model.id.desc()).all()


def sale_profit(record) -> int:
    """Sum of (unit price - captured cost price) x quantity; missing cost counts as 0."""
    return sum(
        (line.unit_price - (line.cost_price or 0)) * line.quantity
        for line in record.lines
    )


def sales_summary(*, year: int | None = None, month: int | None = None) -> dict:
    sales = _records(Sale, year=year, month=month)
    return {
        "year": year,
        "month": month,
        "total_revenue": sum(sale.total_amount for sale in sales),
        "invoice_count": len(sales),
        "total_profit": sum(sale_profit(sale) for sale in sales),
    }


def sales_by_day(*, year: int | None = None, month: int | None = None) -> list[dict]:
    """Paid sales grouped by calendar day (YYYY-MM-DD), newest day first."""
    groups: dict[str, dict] = {}
    for sale in _records(Sale, year=year, month=month):
        key = sale.sale_date.strftime("%Y-%m-%d")
        group = groups.setdefault(key, {
            "date": key,
            "total_amount": 0,
            "profit": 0,
            "invoice_count": 0,
            "sales": [],
        })
        group["total_amount"] += sale.total_amount
        group["profit"] += sale_profit(sale)
        group["invoice_count"] += 1
        group["sales"].append(sale.to_dict())
    return [groups[key] for key in sorted(groups, reverse=True)]


def period_revenue(now: datetime | None = None) -> dict:
    """Dashboard figures: revenue today / this month / this year, and today's order count."""
    now = now or utcnow()
    today_start, today_end = day_bounds(now.date())
    month_start = datetime(now.year, now.month, 1)
    year_start = datetime(now.year, 1, 1)

    def _revenue(start, end):
        return (
            db.session.query(func.coalesce(func.sum(Sale.total_amount), 0))
            .filter(Sale.sale_date >= start, Sale.sale_date < end)
            .scalar()
        )

    today_orders = (
        db.session.query(func.count(Sale.id))
        .filter(Sale.sale_date >= today_start, Sale.sale_date < today_end)
        .scalar()
    )
    return {
        "today": _revenue(today_start, today_end),
        "this_month": _revenue(month_start, today_end),
        "this_year": _revenue(year_start, today_end),
        "today_orders": today_orders or 0,
    }


def outstanding_debt(*, year: int | None = None, month: int | None = None) -> dict:
    debtors = _records(Debtor, year=year, month=month)
    return {
        "total": sum(debtor.total_amount for debtor in debtors),
        "count": len(debtors),
    }


def _customer_key(name: str | None) -> str:
    name = (name or "").strip()
    return name or UNNAMED_CUSTOMER


def customer_report(*, year: int | None = None, month: int | None = None) -> list[dict]:
    """Per-customer totals across paid and unpaid records, sorted by name."""
    rows: dict[str, dict] = {}

    def _row(name):
        key = _customer_key(name)
        return rows.setdefault(key, {
            "customer_name": key,
            "total_spent": 0,
            "total_debt": 0,
            "paid_count": 0,
            "unpaid_count": 0,
        })

    for sale in _records(Sale, year=year, month=month):
        row = _row(sale.customer_name)
        row["total_spent"] += sale.total_amount
        row["paid_count"] += 1

    for debtor in _records(Debtor, year=year, month=month):
        row = _row(debtor.customer_name)
        row["total_debt"] += debtor.total_amount
        row["unpaid_count"] += 1

    return [rows[key] for key in sorted(rows, key=str.lower)]


def customer_transactions(name: str) -> dict:
    """All sales and debtors for one customer name, newest first."""
    key = _customer_key(name)

    def _for(model):
        q = db.session.query(model)
        if key == UNNAMED_CUSTOMER:
            q = q.filter(or_(model.customer_name.is_(None), model.customer_name == ""))
        else:
            q = q.filter(model.customer_name == key)
        return q.order_by(model.sale_date.desc(), model.id.desc()).all()

    sales = _for(Sale)
    debtors = _for(Debtor)
    return {
        "customer_name": key,
        "total_spent": sum(sale.total_amount for sale in sales),
        "total_debt": sum(debtor.total_amount for debtor in debtors),
        "sales": [sale.to_dict() for sale in sales],
        "debtors": [debtor.to_dict() for debtor in debtors],
    }


def _sum(column, date_column, *, year, month) -> int:
    q = db.session.query(func.coalesce(func.sum(column), 0))
    return filter_period(q, date_column, year=year, month=month).scalar() or 0


def finance_summary(*, year: int | None = None, month: int | None = None) -> dict:
    total_sales = _sum(Sale.total_amount, Sale.sale_date, year=year, month=month)
    total_purchases = _sum(Purchase.total_amount, Purchase.purchase_date, year=year, month=month)
    total_debt = _sum(Debtor.total_amount, Debtor.sale_date, year=year, month=month)
    other_expenses = _sum(OtherExpense.amount, OtherExpense.expense_date, year=year, month=month)
    return {
        "year": year,
        "month": month,
        "total_sales": total_sales,
        "total_purchases": total_purchases,
        "outstanding_debt": total_debt,
        "other_expenses": other_expenses,
        "net": total_sales - total_purchases - other_expenses,
    }


def available_years() -> list[int]:
    """Distinct years with sales or debtors, newest first."""
    years = set()
    for model in (Sale, Debtor):
        for (year,) in db.session.query(extract("year", model.sale_date)).distinct().all():
            if year is not None:
                years.add(int(year))
    return sorted(years, reverse=True)
