# Overview: Pytest coverage for the change feed (snapshot, deltas, subscriptions).

import pytest

from stockbook.services import change_feed, customer_service, debtor_service, sales_service, stock_service
from stockbook.services.change_feed import UnknownCollectionError
from stockbook.services.errors import InsufficientStockError, SubscriptionClosedError
from conftest import cart


class TestSnapshotAndDeltas:

    def test_snapshot_is_ordered_with_cursor(self, db_session):
        stock_service.add_stock_item({"product_code": "A", "product_name": "First"})
        stock_service.add_stock_item({"product_code": "B", "product_name": "Second"})

        snap = change_feed.snapshot("stock")

        assert [doc["product_code"] for doc in snap["documents"]] == ["B", "A"]
        assert snap["cursor"] > 0
        assert change_feed.changes_since("stock", snap["cursor"])["changes"] == []

    def test_changes_after_cursor_in_order(self, db_session):
        item = stock_service.add_stock_item({"product_code": "A", "product_name": "First"})
        item_id = item.id
        cursor = change_feed.snapshot("stock")["cursor"]

        stock_service.update_stock_item(item_id, {"quantity": 7})
        stock_service.delete_stock_item(item_id)

        result = change_feed.changes_since("stock", cursor)
        assert [c["change_type"] for c in result["changes"]] == ["modified", "removed"]
        assert result["changes"][0]["document"]["quantity"] == 7
        assert result["changes"][1]["document"] == {"id": item_id}
        assert result["cursor"] == result["changes"][-1]["id"]

    def test_collections_are_separate(self, db_session):
        customer_service.add_customer({"name": "Noy"})

        assert change_feed.snapshot("stock")["cursor"] == 0
        assert change_feed.changes_since("stock", 0)["changes"] == []
        assert len(change_feed.changes_since("customers", 0)["changes"]) == 1

    def test_unknown_collection(self, db_session):
        with pytest.raises(UnknownCollectionError):
            change_feed.snapshot("tours")

    def test_refused_write_produces_no_event(self, db_session, item_b):
        cursor = change_feed.latest_cursor("debtors")
        with pytest.raises(InsufficientStockError):
            debtor_service.record_debtor(cart((item_b.id, 50)))

        assert change_feed.changes_since("debtors", cursor)["changes"] == []

    def test_wait_for_changes_returns_empty_after_timeout(self, db_session):
        result = change_feed.wait_for_changes("sales", 0, wait=5)

        assert result["changes"] == []
        assert result["cursor"] == 0


class TestSubscription:

    def test_snapshot_then_deltas(self, db_session, item_a):
        received = []
        sub = change_feed.subscribe("sales", received.append)

        assert received[0]["type"] == "snapshot"
        assert received[0]["documents"] == []

        assert sub.poll() == 0
        sales_service.record_sale(cart((item_a.id, 1)))
        assert sub.poll() == 1

        assert received[1]["type"] == "changes"
        assert received[1]["changes"][0]["change_type"] == "added"
        assert sub.poll() == 0

    def test_closed_subscription_cannot_poll(self, db_session):
        sub = change_feed.subscribe("stock", lambda message: None)
        sub.close()

        with pytest.raises(SubscriptionClosedError):
            sub.poll()
