from __future__ import annotations

from ..extensions import db
from stockbook.time_utils import to_utc_z

STATUS_PAID = "paid"
STATUS_UNPAID = "unpaid"


class TransactionRecordMixin:
    """
    Columns shared by sales and unpaid invoices (debtors).

    A sale is a record with status "paid" in the sales table; a debtor is the
    same shape with status "unpaid" in the debtors table. Settlement moves a
    debtor into sales; nothing else mutates a record after checkout.
    """
    id = db.Column(db.Integer, primary_key=True)

    # Business-facing number, e.g. "INV-20240501-0003"
    invoice_number = db.Column(db.String(64), nullable=False, index=True)
    # Free text, not a foreign key to customers
    customer_name = db.Column(db.String(255), nullable=True, index=True)

    sale_date = db.Column(db.DateTime(timezone=True), nullable=False, index=True)
    total_amount = db.Column(db.Integer, nullable=False, default=0)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "invoice_number": self.invoice_number,
            "customer_name": self.customer_name,
            "sale_date": to_utc_z(self.sale_date),
            "total_amount": self.total_amount,
            "status": self.status,
            "items": [line.to_dict() for line in self.lines],
            "created_at": to_utc_z(self.created_at),
        }


class LineItemMixin:
    """One line of a sale or debtor, referencing a stock item by id only."""
    id = db.Column(db.Integer, primary_key=True)
    position = db.Column(db.Integer, nullable=False, default=0)

    # Weak reference: stock items may be deleted while history survives
    stock_item_id = db.Column(db.Integer, nullable=False, index=True)
    product_code = db.Column(db.String(64), nullable=True)
    product_name = db.Column(db.String(255), nullable=True)

    quantity = db.Column(db.Integer, nullable=False)
    unit_price = db.Column(db.Integer, nullable=False)
    price_type = db.Column(db.String(16), nullable=False, default="retail")
    # Captured at checkout for profit; never recomputed
    cost_price = db.Column(db.Integer, nullable=True)

    @property
    def line_total(self) -> int:
        return self.unit_price * self.quantity

    def copy_fields(self) -> dict:
        return {
            "position": self.position,
            "stock_item_id": self.stock_item_id,
            "product_code": self.product_code,
            "product_name": self.product_name,
            "quantity": self.quantity,
            "unit_price": self.unit_price,
            "price_type": self.price_type,
            "cost_price": self.cost_price,
        }

    def to_dict(self) -> dict:
        data = {"id": self.id}
        data.update(self.copy_fields())
        data["line_total"] = self.line_total
        return data


class Sale(TransactionRecordMixin, db.Model):
    """Paid transaction record ("sales" collection)."""
    __tablename__ = "sales"
    __table_args__ = {"sqlite_autoincrement": True}

    status = db.Column(db.String(16), nullable=False, default=STATUS_PAID)
    version_id = db.Column(db.Integer, nullable=False, default=1)

    lines = db.relationship(
        "SaleLine",
        backref="sale",
        order_by="SaleLine.position",
        cascade="all, delete-orphan",
        lazy=True,
    )
    __mapper_args__ = {"version_id_col": version_id}


class SaleLine(LineItemMixin, db.Model):
    __tablename__ = "sale_lines"
    __table_args__ = {"sqlite_autoincrement": True}

    sale_id = db.Column(db.Integer, db.ForeignKey("sales.id", ondelete="CASCADE"), nullable=False, index=True)


class Debtor(TransactionRecordMixin, db.Model):
    """Unpaid invoice ("debtors" collection); stock was already deducted."""
    __tablename__ = "debtors"
    __table_args__ = {"sqlite_autoincrement": True}

    status = db.Column(db.String(16), nullable=False, default=STATUS_UNPAID)
    version_id = db.Column(db.Integer, nullable=False, default=1)

    lines = db.relationship(
        "DebtorLine",
        backref="debtor",
        order_by="DebtorLine.position",
        cascade="all, delete-orphan",
        lazy=True,
    )
    __mapper_args__ = {"version_id_col": version_id}


class DebtorLine(LineItemMixin, db.Model):
    __tablename__ = "debtor_lines"
    __table_args__ = {"sqlite_autoincrement": True}

    debtor_id = db.Column(db.Integer, db.ForeignKey("debtors.id", ondelete="CASCADE"), nullable=False, index=True)
