"""
Pytest fixtures for stockbook backend tests.

Provides test database setup, stock item factories, and test client.
"""

import pytest
from stockbook import create_app
from stockbook.config import TestConfig
from stockbook.extensions import db
from stockbook.models import StockItem


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app(TestConfig)

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    """Create fresh database for each test."""
    with app.app_context():
        # Clear all data but keep schema
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()

        yield db.session

        # Cleanup after test
        db.session.rollback()


@pytest.fixture(scope='function')
def floor_enforced(app):
    """Turn on the sale stock floor check for one test."""
    app.config['ENFORCE_SALE_STOCK_FLOOR'] = True
    yield
    app.config['ENFORCE_SALE_STOCK_FLOOR'] = False


@pytest.fixture(scope='function')
def make_item(db_session):
    """Factory for committed stock items."""
    counter = {"n": 0}

    def _make(**overrides):
        counter["n"] += 1
        fields = {
            "product_code": f"T{counter['n']:03d}",
            "product_name": f"Test part {counter['n']}",
            "quantity": 10,
            "sell_price": 1500,
            "wholesale_price": 1200,
            "cost_price": 1000,
        }
        fields.update(overrides)
        item = StockItem(**fields)
        db_session.add(item)
        db_session.commit()
        return item

    return _make


@pytest.fixture(scope='function')
def item_a(make_item):
    """Brake pad: 5 in stock, sells at 1500, costs 1000."""
    return make_item(product_code="BP-01", product_name="Brake pad", quantity=5)


@pytest.fixture(scope='function')
def item_b(make_item):
    """Oil filter: 2 in stock, sells at 300, costs 150."""
    return make_item(
        product_code="OF-01",
        product_name="Oil filter",
        quantity=2,
        sell_price=300,
        wholesale_price=250,
        cost_price=150,
    )


def cart(*lines, **fields):
    """Build a checkout payload from (stock_item_id, quantity) pairs or line dicts."""
    items = []
    for line in lines:
        if isinstance(line, dict):
            items.append(line)
        else:
            stock_item_id, quantity = line
            items.append({"stock_item_id": stock_item_id, "quantity": quantity})
    payload = {"items": items}
    payload.update(fields)
    return payload


def quantity_of(item_id):
    """Current stock quantity read straight from the database."""
    db.session.expire_all()
    return db.session.get(StockItem, item_id).quantity
