# Overview: Pytest coverage for paid checkout (sale path) and invoice numbering.

import re
from datetime import datetime

import pytest

from stockbook.models import Sale, SaleLine, ChangeEvent
from stockbook.services import sales_service
from stockbook.services.document_service import daily_invoice_count, next_invoice_number
from stockbook.services.errors import (
    CartValidationError,
    DocumentNotFoundError,
    InsufficientStockError,
)
from conftest import cart, quantity_of


class TestRecordSale:

    def test_sale_decrements_stock(self, db_session, item_a, item_b):
        sale = sales_service.record_sale(cart((item_a.id, 2), (item_b.id, 1), customer_name="Somchai"))

        assert sale.status == "paid"
        assert sale.total_amount == 2 * 1500 + 300
        assert [line.stock_item_id for line in sale.lines] == [item_a.id, item_b.id]
        assert quantity_of(item_a.id) == 3
        assert quantity_of(item_b.id) == 1

    def test_lines_capture_cost_and_snapshot_names(self, db_session, item_a):
        sale = sales_service.record_sale(cart((item_a.id, 1)))
        line = sale.lines[0]

        assert line.product_code == "BP-01"
        assert line.product_name == "Brake pad"
        assert line.cost_price == 1000
        assert line.unit_price == 1500
        assert line.price_type == "retail"

    def test_price_types(self, db_session, item_a):
        sale = sales_service.record_sale(cart(
            {"stock_item_id": item_a.id, "quantity": 1, "price_type": "wholesale"},
            {"stock_item_id": item_a.id, "quantity": 1, "price_type": "custom", "unit_price": 1400},
        ))

        assert [line.unit_price for line in sale.lines] == [1200, 1400]
        assert sale.total_amount == 2600
        assert quantity_of(item_a.id) == 3

    def test_oversell_allowed_without_floor_check(self, db_session, item_b):
        sales_service.record_sale(cart((item_b.id, 5)))

        assert quantity_of(item_b.id) == -3

    def test_oversell_refused_with_floor_check(self, db_session, floor_enforced, item_b):
        with pytest.raises(InsufficientStockError, match="Not enough stock for Oil filter. Only 2 left."):
            sales_service.record_sale(cart((item_b.id, 5)))

        assert quantity_of(item_b.id) == 2
        assert db_session.query(Sale).count() == 0

    def test_floor_check_allows_exact_quantity(self, db_session, floor_enforced, item_b):
        sales_service.record_sale(cart((item_b.id, 2)))

        assert quantity_of(item_b.id) == 0

    def test_missing_stock_item_aborts(self, db_session, item_a):
        with pytest.raises(DocumentNotFoundError):
            sales_service.record_sale(cart((item_a.id, 1), (9999, 1)))

        assert db_session.query(Sale).count() == 0
        assert quantity_of(item_a.id) == 5

    def test_sale_records_change_events(self, db_session, item_a):
        sale = sales_service.record_sale(cart((item_a.id, 1)))

        events = db_session.query(ChangeEvent).order_by(ChangeEvent.id).all()
        assert [(e.collection, e.change_type) for e in events] == [("sales", "added"), ("stock", "modified")]
        assert events[0].document_id == sale.id
        assert events[1].payload["quantity"] == 4


class TestCartValidation:

    @pytest.mark.parametrize("payload, message", [
        ({"items": []}, "Cart is empty"),
        ({}, "Cart is empty"),
        ({"items": [{"quantity": 1, "product_name": "Brake pad"}]}, "Invoice item Brake pad is missing an ID."),
        ({"items": [{"stock_item_id": 1, "quantity": 0}]}, "positive"),
        ({"items": [{"stock_item_id": 1, "quantity": 1.5}]}, "integer"),
        ({"items": [{"stock_item_id": 1, "quantity": 10**20}]}, "quantity must not exceed"),
        ({"items": [{"stock_item_id": 1, "quantity": 1, "price_type": "vip"}]}, "price_type"),
        ({"items": [{"stock_item_id": 1, "quantity": 1, "price_type": "custom"}]}, "unit_price"),
    ])
    def test_invalid_carts(self, db_session, payload, message):
        with pytest.raises(CartValidationError, match=re.escape(message)):
            sales_service.record_sale(payload)

    def test_total_must_match_items(self, db_session, item_a):
        with pytest.raises(CartValidationError, match="total_amount"):
            sales_service.record_sale(cart((item_a.id, 1), total_amount=999))
        assert quantity_of(item_a.id) == 5


class TestInvoiceNumbers:

    def test_allocated_per_day(self, db_session, item_a):
        first = sales_service.record_sale(cart((item_a.id, 1), sale_date="2024-05-01T10:00:00Z"))
        second = sales_service.record_sale(cart((item_a.id, 1), sale_date="2024-05-01T11:00:00Z"))
        other_day = sales_service.record_sale(cart((item_a.id, 1), sale_date="2024-05-02T09:00:00Z"))

        assert first.invoice_number == "INV-20240501-0001"
        assert second.invoice_number == "INV-20240501-0002"
        assert other_day.invoice_number == "INV-20240502-0001"

    def test_given_invoice_number_is_kept(self, db_session, item_a):
        sale = sales_service.record_sale(cart((item_a.id, 1), invoice_number="HAND-7"))

        assert sale.invoice_number == "HAND-7"

    def test_next_invoice_number_is_consumed_only_on_commit(self, db_session):
        assert next_invoice_number(datetime(2024, 5, 1)) == "INV-20240501-0001"
        db_session.rollback()
        assert next_invoice_number(datetime(2024, 5, 1)) == "INV-20240501-0001"
        db_session.commit()
        assert next_invoice_number(datetime(2024, 5, 1)) == "INV-20240501-0002"
        db_session.rollback()

    def test_daily_invoice_count_counts_sales_and_debtors(self, db_session, item_a):
        from stockbook.services import debtor_service

        sales_service.record_sale(cart((item_a.id, 1), sale_date="2024-05-01T10:00:00Z"))
        debtor_service.record_debtor(cart((item_a.id, 1), sale_date="2024-05-01T12:00:00Z"))
        sales_service.record_sale(cart((item_a.id, 1), sale_date="2024-05-02T10:00:00Z"))

        assert daily_invoice_count("2024-05-01") == 2
        assert daily_invoice_count("2024-05-02") == 1
        assert daily_invoice_count("2024-05-03") == 0


class TestListAndDelete:

    def test_list_filters_by_year_and_month(self, db_session, item_a):
        sales_service.record_sale(cart((item_a.id, 1), sale_date="2023-05-10"))
        sales_service.record_sale(cart((item_a.id, 1), sale_date="2024-05-10"))
        sales_service.record_sale(cart((item_a.id, 1), sale_date="2024-06-10"))

        assert len(sales_service.list_sales()) == 3
        assert len(sales_service.list_sales(year=2024)) == 2
        assert len(sales_service.list_sales(month=5)) == 2
        assert len(sales_service.list_sales(year=2024, month=5)) == 1

    def test_delete_sale_restores_stock(self, db_session, item_a, item_b):
        sale = sales_service.record_sale(cart((item_a.id, 2), (item_b.id, 1), (item_a.id, 1)))
        sale_id = sale.id
        assert quantity_of(item_a.id) == 2

        sales_service.delete_sale(sale_id)

        assert quantity_of(item_a.id) == 5
        assert quantity_of(item_b.id) == 2
        assert db_session.get(Sale, sale_id) is None
        assert db_session.query(SaleLine).count() == 0

    def test_delete_missing_sale(self, db_session):
        with pytest.raises(DocumentNotFoundError, match="document does not exist"):
            sales_service.delete_sale(404)
