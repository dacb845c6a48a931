# Overview: Cart parsing and line building shared by the sale and debt paths.

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime

from ..models import StockItem
from ..models.inventory import PRICE_CUSTOM, PRICE_RETAIL, PRICE_TYPES
from ..validation import MAX_AMOUNT, ValidationError, coerce_int
from .errors import CartValidationError, DocumentNotFoundError, InsufficientStockError
from stockbook.time_utils import to_timestamp


@dataclass
class CartLine:
    stock_item_id: int
    quantity: int
    price_type: str = PRICE_RETAIL
    unit_price: int | None = None
    cost_price: int | None = None
    product_name: str | None = None


@dataclass
class Cart:
    lines: list[CartLine]
    sale_date: datetime
    invoice_number: str | None = None
    customer_name: str | None = None
    total_amount: int | None = None
    stock_item_ids: list[int] = field(default_factory=list)


def _optional_int(key: str, value, operation: str) -> int | None:
    if value is None:
        return None
    try:
        parsed = coerce_int(key, value)
    except ValidationError as exc:
        raise CartValidationError(str(exc), details={"field": key}, operation=operation)
    if parsed < 0 or parsed > MAX_AMOUNT:
        raise CartValidationError(f"{key} must be between 0 and {MAX_AMOUNT}", details={"field": key}, operation=operation)
    return parsed


def optional_text(value) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def parse_cart(payload: dict, *, operation: str) -> Cart:
    """
    Validate a checkout payload into a Cart.

    Expected shape:
    {
        "items": [{"stock_item_id": 1, "quantity": 2, "price_type": "retail"}],
        "customer_name": "...",     // optional
        "invoice_number": "...",    // optional, allocated when absent
        "sale_date": "...",         // optional ISO-8601, defaults to now
        "total_amount": 123         // optional, must equal the line sum
    }
    """
    if not isinstance(payload, dict):
        raise CartValidationError("Invalid JSON payload", operation=operation)

    raw_items = payload.get("items")
    if not isinstance(raw_items, list) or not raw_items:
        raise CartValidationError("Cart is empty", operation=operation)

    lines = []
    for index, raw in enumerate(raw_items):
        if not isinstance(raw, dict):
            raise CartValidationError(f"Invoice item {index + 1} is not an object", operation=operation)
        name = optional_text(raw.get("product_name"))

        stock_item_id = raw.get("stock_item_id")
        if stock_item_id in (None, ""):
            label = name or index + 1
            raise CartValidationError(
                f"Invoice item {label} is missing an ID.",
                details={"line": index},
                operation=operation,
            )
        try:
            stock_item_id = coerce_int("stock_item_id", stock_item_id)
        except ValidationError as exc:
            raise CartValidationError(str(exc), details={"line": index}, operation=operation)

        try:
            quantity = coerce_int("quantity", raw.get("quantity"))
        except ValidationError as exc:
            raise CartValidationError(str(exc), details={"line": index}, operation=operation)
        if quantity <= 0:
            raise CartValidationError(
                "quantity must be a positive integer",
                details={"line": index, "quantity": quantity},
                operation=operation,
            )
        if quantity > MAX_AMOUNT:
            raise CartValidationError(
                f"quantity must not exceed {MAX_AMOUNT}",
                details={"line": index},
                operation=operation,
            )

        price_type = raw.get("price_type") or PRICE_RETAIL
        if price_type not in PRICE_TYPES:
            raise CartValidationError(
                f"price_type must be one of: {', '.join(PRICE_TYPES)}",
                details={"line": index, "price_type": price_type},
                operation=operation,
            )

        unit_price = _optional_int("unit_price", raw.get("unit_price"), operation)
        if price_type == PRICE_CUSTOM and unit_price is None:
            raise CartValidationError(
                "unit_price is required for custom prices",
                details={"line": index},
                operation=operation,
            )

        lines.append(CartLine(
            stock_item_id=stock_item_id,
            quantity=quantity,
            price_type=price_type,
            unit_price=unit_price,
            cost_price=_optional_int("cost_price", raw.get("cost_price"), operation),
            product_name=name,
        ))

    try:
        sale_date = to_timestamp(payload.get("sale_date"))
    except ValueError:
        raise CartValidationError("sale_date must be an ISO-8601 datetime", operation=operation)

    return Cart(
        lines=lines,
        sale_date=sale_date,
        invoice_number=optional_text(payload.get("invoice_number")),
        customer_name=optional_text(payload.get("customer_name")),
        total_amount=_optional_int("total_amount", payload.get("total_amount"), operation),
        stock_item_ids=[line.stock_item_id for line in lines],
    )


def build_lines(cart: Cart, items: dict, line_model, *, operation: str) -> list:
    """
    Turn cart lines into line-item rows using the stock items that were read.

    Prices resolve from price_type unless the line carries an explicit
    unit_price; cost_price is captured from the stock item at this moment.
    A missing stock item raises DocumentNotFoundError.
    """
    rows = []
    for position, line in enumerate(cart.lines):
        item: StockItem | None = items.get(line.stock_item_id)
        if item is None:
            raise DocumentNotFoundError(
                f"Stock item with id {line.stock_item_id} not found.",
                details={"stock_item_id": line.stock_item_id},
                operation=operation,
            )
        unit_price = line.unit_price
        if unit_price is None:
            unit_price = item.price_for(line.price_type)
        cost_price = line.cost_price if line.cost_price is not None else item.cost_price
        rows.append(line_model(
            position=position,
            stock_item_id=item.id,
            product_code=item.product_code,
            product_name=item.product_name,
            quantity=line.quantity,
            unit_price=unit_price,
            price_type=line.price_type,
            cost_price=cost_price,
        ))
    return rows


def resolve_total(cart: Cart, rows: list, *, operation: str) -> int:
    """Line sum; a caller-supplied total must agree with it."""
    computed = sum(row.unit_price * row.quantity for row in rows)
    if cart.total_amount is not None and cart.total_amount != computed:
        raise CartValidationError(
            "total_amount does not match the sum of the items",
            details={"total_amount": cart.total_amount, "computed": computed},
            operation=operation,
        )
    return computed


def quantities_by_item(cart: Cart) -> dict[int, int]:
    """Total quantity per stock item; one item may appear on several lines."""
    totals: dict[int, int] = {}
    for line in cart.lines:
        totals[line.stock_item_id] = totals.get(line.stock_item_id, 0) + line.quantity
    return totals


def check_stock_floor(cart: Cart, items: dict, *, operation: str) -> dict[int, int]:
    """
    Compute the post-sale quantity of every referenced item.

    Raises InsufficientStockError when any item would go below zero and
    DocumentNotFoundError when an item does not exist.
    """
    remaining = {}
    for stock_item_id, sold in quantities_by_item(cart).items():
        item = items.get(stock_item_id)
        if item is None:
            raise DocumentNotFoundError(
                f"Stock item with id {stock_item_id} not found.",
                details={"stock_item_id": stock_item_id},
                operation=operation,
            )
        new_quantity = item.quantity - sold
        if new_quantity < 0:
            raise InsufficientStockError(
                f"Not enough stock for {item.product_name}. Only {item.quantity} left.",
                details={
                    "stock_item_id": item.id,
                    "requested": sold,
                    "available": item.quantity,
                },
                operation=operation,
            )
        remaining[stock_item_id] = new_quantity
    return remaining
