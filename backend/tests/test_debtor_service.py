# Overview: Pytest coverage for unpaid invoices, settlement and the customer side channel.

"""
Debt path tests

Covers:
1. Floor-checked debt creation (abort leaves zero changes)
2. Settlement: same content moves to sales, stock untouched
3. Settling twice fails without duplicating the sale
4. Best-effort customer directory entry
"""

import pytest
from sqlalchemy.exc import SQLAlchemyError

from stockbook.models import Customer, Debtor, DebtorLine, Sale, ChangeEvent
from stockbook.services import customer_service, debtor_service
from stockbook.services.errors import DocumentNotFoundError, InsufficientStockError
from conftest import cart, quantity_of


def _without_ids(lines):
    return [{k: v for k, v in line.items() if k != "id"} for line in lines]


class TestRecordDebtor:

    def test_debt_of_full_quantity_then_one_more_aborts(self, db_session, item_a):
        """Stock 5: a debt of 5 leaves 0, a further debt of 1 is refused."""
        debtor = debtor_service.record_debtor(cart((item_a.id, 5), customer_name="Noy"))

        assert debtor.status == "unpaid"
        assert debtor.total_amount == 7500
        assert quantity_of(item_a.id) == 0

        with pytest.raises(InsufficientStockError, match="Not enough stock for Brake pad. Only 0 left."):
            debtor_service.record_debtor(cart((item_a.id, 1), customer_name="Noy"))

        assert quantity_of(item_a.id) == 0
        assert db_session.query(Debtor).count() == 1

    def test_abort_leaves_every_item_untouched(self, db_session, item_a, item_b):
        """One short line refuses the whole invoice, including lines that fit."""
        events_before = db_session.query(ChangeEvent).count()

        with pytest.raises(InsufficientStockError) as excinfo:
            debtor_service.record_debtor(cart((item_a.id, 1), (item_b.id, 3)))

        assert excinfo.value.details == {"stock_item_id": item_b.id, "requested": 3, "available": 2}
        assert quantity_of(item_a.id) == 5
        assert quantity_of(item_b.id) == 2
        assert db_session.query(Debtor).count() == 0
        assert db_session.query(DebtorLine).count() == 0
        assert db_session.query(ChangeEvent).count() == events_before

    def test_repeated_item_lines_are_summed_for_floor(self, db_session, item_b):
        with pytest.raises(InsufficientStockError):
            debtor_service.record_debtor(cart((item_b.id, 1), (item_b.id, 2)))
        assert quantity_of(item_b.id) == 2

    def test_missing_item_aborts(self, db_session, item_a):
        with pytest.raises(DocumentNotFoundError, match="Stock item with id 9999 not found."):
            debtor_service.record_debtor(cart((item_a.id, 1), (9999, 1)))
        assert quantity_of(item_a.id) == 5

    def test_customer_directory_entry_created_once(self, db_session, item_a):
        debtor_service.record_debtor(cart((item_a.id, 1), customer_name="Noy"))
        debtor_service.record_debtor(cart((item_a.id, 1), customer_name="Noy"))

        assert db_session.query(Customer).filter_by(name="Noy").count() == 1

    def test_customer_entry_survives_refused_debt(self, db_session, item_b):
        """The directory write is a separate commit made before the debt."""
        with pytest.raises(InsufficientStockError):
            debtor_service.record_debtor(cart((item_b.id, 10), customer_name="Kham"))

        assert db_session.query(Customer).filter_by(name="Kham").count() == 1

    def test_customer_directory_failure_does_not_block_debt(self, db_session, item_a, monkeypatch):
        def _broken(name):
            raise SQLAlchemyError("directory unavailable")

        monkeypatch.setattr(customer_service, "ensure_customer", _broken)

        debtor = debtor_service.record_debtor(cart((item_a.id, 2), customer_name="Kham"))

        assert debtor.id is not None
        assert quantity_of(item_a.id) == 3
        assert db_session.query(Customer).count() == 0

    def test_rejected_customer_name_does_not_block_debt(self, db_session, item_a):
        """A name the directory refuses (too long) still gets its debt."""
        debtor = debtor_service.record_debtor(cart((item_a.id, 1), customer_name="N" * 300))

        assert debtor.id is not None
        assert db_session.get(Debtor, debtor.id).customer_name == "N" * 300
        assert quantity_of(item_a.id) == 4
        assert db_session.query(Customer).count() == 0


class TestSettleDebtor:

    def test_settlement_moves_record_and_keeps_stock(self, db_session, item_a, item_b):
        debtor = debtor_service.record_debtor(cart(
            (item_a.id, 2),
            {"stock_item_id": item_b.id, "quantity": 1, "price_type": "wholesale"},
            customer_name="Noy",
            sale_date="2024-05-01T08:30:00Z",
        ))
        debtor_id = debtor.id
        before = debtor.to_dict()
        qty_a, qty_b = quantity_of(item_a.id), quantity_of(item_b.id)

        sale = debtor_service.settle_debtor(debtor_id)

        after = sale.to_dict()
        assert after["status"] == "paid"
        for key in ("invoice_number", "customer_name", "sale_date", "total_amount"):
            assert after[key] == before[key]
        assert _without_ids(after["items"]) == _without_ids(before["items"])

        assert db_session.get(Debtor, debtor_id) is None
        assert db_session.query(DebtorLine).count() == 0
        assert quantity_of(item_a.id) == qty_a
        assert quantity_of(item_b.id) == qty_b

    def test_settling_twice_fails_without_duplicate(self, db_session, item_a):
        debtor_id = debtor_service.record_debtor(cart((item_a.id, 1))).id
        debtor_service.settle_debtor(debtor_id)

        with pytest.raises(DocumentNotFoundError, match="document does not exist"):
            debtor_service.settle_debtor(debtor_id)

        assert db_session.query(Sale).count() == 1
        assert quantity_of(item_a.id) == 4

    def test_settle_records_change_events(self, db_session, item_a):
        debtor_id = debtor_service.record_debtor(cart((item_a.id, 1))).id
        last_id = db_session.query(ChangeEvent.id).order_by(ChangeEvent.id.desc()).first()[0]

        sale = debtor_service.settle_debtor(debtor_id)

        events = db_session.query(ChangeEvent).filter(ChangeEvent.id > last_id).order_by(ChangeEvent.id).all()
        assert [(e.collection, e.change_type, e.document_id) for e in events] == [
            ("sales", "added", sale.id),
            ("debtors", "removed", debtor_id),
        ]


class TestDeleteDebtor:

    def test_delete_restores_stock(self, db_session, item_a):
        debtor_id = debtor_service.record_debtor(cart((item_a.id, 3))).id
        assert quantity_of(item_a.id) == 2

        debtor_service.delete_debtor(debtor_id)

        assert quantity_of(item_a.id) == 5
        assert db_session.query(Debtor).count() == 0

    def test_delete_skips_items_removed_since(self, db_session, item_a, item_b):
        from stockbook.services import stock_service

        debtor_id = debtor_service.record_debtor(cart((item_a.id, 1), (item_b.id, 1))).id
        item_b_id = item_b.id
        stock_service.delete_stock_item(item_b_id)

        debtor_service.delete_debtor(debtor_id)

        assert quantity_of(item_a.id) == 5
        assert db_session.query(Debtor).count() == 0
