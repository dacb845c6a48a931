from __future__ import annotations

from ..extensions import db
from stockbook.time_utils import to_utc_z

PRICE_RETAIL = "retail"
PRICE_WHOLESALE = "wholesale"
PRICE_CUSTOM = "custom"
PRICE_TYPES = (PRICE_RETAIL, PRICE_WHOLESALE, PRICE_CUSTOM)


class StockItem(db.Model):
    """
    One stock-keeping unit in the stock ledger.

    The ledger is the only resource mutated by more than one kind of
    transaction (sales, unpaid invoices, purchases, reversals, manual edits).
    version_id guards read-then-write units against concurrent updates.

    Money columns are integers in the store currency's smallest unit.
    """
    __tablename__ = "stock_items"
    __table_args__ = (
        db.UniqueConstraint("product_code", name="uq_stock_items_product_code"),
        db.Index("ix_stock_items_product_name", "product_name"),
        db.Index("ix_stock_items_created", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    product_code = db.Column(db.String(64), nullable=False)
    product_name = db.Column(db.String(255), nullable=False)
    category = db.Column(db.String(64), nullable=True)

    quantity = db.Column(db.Integer, nullable=False, default=0)

    sell_price = db.Column(db.Integer, nullable=False, default=0)
    wholesale_price = db.Column(db.Integer, nullable=False, default=0)
    # Last purchase price wins (overwritten on every purchase)
    cost_price = db.Column(db.Integer, nullable=False, default=0)

    version_id = db.Column(db.Integer, nullable=False, default=1)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<StockItem id={self.id} code={self.product_code!r} qty={self.quantity}>"

    def price_for(self, price_type: str) -> int | None:
        """List price for a price type; custom prices have no list price."""
        if price_type == PRICE_RETAIL:
            return self.sell_price
        if price_type == PRICE_WHOLESALE:
            return self.wholesale_price
        return None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "product_code": self.product_code,
            "product_name": self.product_name,
            "category": self.category,
            "quantity": self.quantity,
            "sell_price": self.sell_price,
            "wholesale_price": self.wholesale_price,
            "cost_price": self.cost_price,
            "version_id": self.version_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
