# Overview: Pytest coverage for the stock ledger service.

import pytest

from stockbook.models import StockItem, ChangeEvent
from stockbook.services import stock_service
from stockbook.services.errors import ConcurrencyError, DocumentNotFoundError
from stockbook.validation import ConflictError, ValidationError


class TestAddStockItem:

    def test_add_item_with_defaults(self, db_session):
        item = stock_service.add_stock_item({"product_code": "P100", "product_name": "Spark plug"})

        assert item.id is not None
        assert item.quantity == 0
        assert item.sell_price == 0
        assert item.cost_price == 0
        assert item.version_id == 1

    def test_duplicate_code_is_conflict(self, db_session, item_a):
        with pytest.raises(ConflictError):
            stock_service.add_stock_item({"product_code": "BP-01", "product_name": "Other"})
        assert db_session.query(StockItem).count() == 1

    def test_missing_required_fields(self, db_session):
        with pytest.raises(ValidationError, match="product_name"):
            stock_service.add_stock_item({"product_code": "P100"})

    @pytest.mark.parametrize("value", [1.5, "1e3", "12.0", -1, True])
    def test_quantity_rejects_non_integers_and_negatives(self, db_session, value):
        with pytest.raises(ValidationError):
            stock_service.add_stock_item({"product_code": "P100", "product_name": "X", "quantity": value})

    def test_unknown_field_rejected(self, db_session):
        with pytest.raises(ValidationError, match="Field not allowed"):
            stock_service.add_stock_item({"product_code": "P100", "product_name": "X", "version_id": 9})

    def test_add_records_change_event(self, db_session):
        item = stock_service.add_stock_item({"product_code": "P100", "product_name": "Spark plug"})

        event = db_session.query(ChangeEvent).filter_by(collection="stock").one()
        assert event.document_id == item.id
        assert event.change_type == "added"
        assert event.payload["product_code"] == "P100"


class TestListAndGet:

    def test_newest_first(self, db_session, make_item):
        first = make_item()
        second = make_item()
        third = make_item()

        ids = [item.id for item in stock_service.list_stock_items()]
        assert ids == [third.id, second.id, first.id]

    def test_search_matches_code_or_name(self, db_session, item_a, item_b):
        assert [i.product_code for i in stock_service.list_stock_items(search="brake")] == ["BP-01"]
        assert [i.product_code for i in stock_service.list_stock_items(search="of-")] == ["OF-01"]

    def test_get_missing_item(self, db_session):
        with pytest.raises(DocumentNotFoundError):
            stock_service.get_stock_item(404)


class TestUpdateStockItem:

    def test_manual_quantity_edit(self, db_session, item_a):
        item = stock_service.update_stock_item(item_a.id, {"quantity": 42})

        assert item.quantity == 42
        assert item.version_id == 2

    def test_update_to_existing_code_is_conflict(self, db_session, item_a, item_b):
        with pytest.raises(ConflictError):
            stock_service.update_stock_item(item_b.id, {"product_code": "BP-01"})

    def test_stale_version_is_refused(self, db_session, item_a):
        stock_service.update_stock_item(item_a.id, {"sell_price": 1600})

        with pytest.raises(ConcurrencyError):
            stock_service.update_stock_item(item_a.id, {"sell_price": 1700, "version_id": 1})

        db_session.expire_all()
        assert db_session.get(StockItem, item_a.id).sell_price == 1600

    def test_update_missing_item(self, db_session):
        with pytest.raises(DocumentNotFoundError):
            stock_service.update_stock_item(404, {"quantity": 1})


class TestDeleteAndSeed:

    def test_delete_item(self, db_session, item_a):
        item_id = item_a.id
        stock_service.delete_stock_item(item_id)

        assert db_session.get(StockItem, item_id) is None
        event = db_session.query(ChangeEvent).filter_by(change_type="removed").one()
        assert event.payload == {"id": item_id}

    def test_delete_missing_item(self, db_session):
        with pytest.raises(DocumentNotFoundError):
            stock_service.delete_stock_item(404)

    def test_seed_empty_ledger(self, db_session):
        items = stock_service.seed_stock_items(["Brake pad", " Oil filter ", "Brake pad", ""])

        assert [i.product_code for i in items] == ["P001", "P002"]
        assert [i.product_name for i in items] == ["Brake pad", "Oil filter"]
        assert all(i.quantity == 0 and i.sell_price == 0 and i.cost_price == 0 for i in items)

    def test_seed_skips_non_empty_ledger(self, db_session, item_a):
        assert stock_service.seed_stock_items(["Brake pad"]) == []
        assert db_session.query(StockItem).count() == 1
