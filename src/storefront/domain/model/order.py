"""Order aggregate.

An order is written once at checkout and never changed by this engine.
Line items are denormalized snapshots of the products as they were priced
at that moment, so later catalog edits do not affect placed orders.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Mapping

from storefront.domain.exceptions import MissingInputError, ValidationError
from storefront.domain.model.cart import CartLine
from storefront.domain.model.value_objects import (
    Money,
    Quantity,
    to_decimal,
    to_timestamp,
)
from storefront.domain.store.document_store import Document

ORDERS = "orders"

PENDING = "pending"
DEFAULT_PAYMENT_METHOD = "CASH"
MAX_LINE_ITEMS = 50


@dataclass
class OrderLineItem:
    """Captures the product as priced at order-creation time."""

    product_id: str
    product_name: str
    quantity: Quantity
    unit_price: Money  # list price, locked at order-creation time
    discount: Decimal = Decimal("0")
    description: str = ""
    image: str = ""
    category: str = ""

    @property
    def line_total(self) -> Money:
        return self.unit_price.discounted(self.discount) * self.quantity.value

    @staticmethod
    def snapshot(line: CartLine) -> OrderLineItem:
        product = line.product
        return OrderLineItem(
            product_id=product.id,
            product_name=product.name,
            quantity=Quantity(line.quantity),
            unit_price=product.price,
            discount=product.discount,
            description=product.description,
            image=product.image,
            category=product.category,
        )

    @staticmethod
    def from_fields(raw: Mapping[str, Any]) -> OrderLineItem:
        quantity = to_decimal(raw.get("quantity"))
        discount = to_decimal(raw.get("discount"))
        return OrderLineItem(
            product_id=str(raw.get("productId") or ""),
            product_name=str(raw.get("name") or ""),
            quantity=Quantity(max(int(quantity), 1) if quantity is not None else 1),
            unit_price=Money.lenient(raw.get("price")),
            discount=discount if discount is not None else Decimal("0"),
            description=str(raw.get("description") or ""),
            image=str(raw.get("image") or ""),
            category=str(raw.get("category") or ""),
        )

    def to_fields(self) -> dict[str, Any]:
        return {
            "productId": self.product_id,
            "name": self.product_name,
            "description": self.description,
            "price": float(self.unit_price),
            "discount": float(self.discount),
            "image": self.image,
            "category": self.category,
            "quantity": self.quantity.value,
        }


@dataclass
class Order:
    """Aggregate root for placed orders.

    Use ``Order.create()`` for orders priced from a cart, and
    ``Order.from_payload()`` for checkout payloads that carry their own
    totals.
    """

    id: str | None
    user_id: str
    items: list[OrderLineItem]
    shipping_fee: Money
    subtotal: Money
    total: Money
    address: dict[str, Any] | None = None
    payment_method: str = DEFAULT_PAYMENT_METHOD
    payment_details: Any = None
    status: str = PENDING
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    # --- Factories ------------------------------------------------------------

    @staticmethod
    def create(
        user_id: str,
        items: list[OrderLineItem],
        shipping_fee: Money,
        address: dict[str, Any] | None = None,
        payment_method: str | None = None,
        payment_details: Any = None,
    ) -> Order:
        """Create a new order, computing its totals from the line items."""
        if not user_id:
            raise MissingInputError("Missing userId", code="MISSING_USER")
        if not items:
            raise ValidationError("Order must contain at least one item", code="EMPTY_CART")
        if len(items) > MAX_LINE_ITEMS:
            raise ValidationError(f"Maximum {MAX_LINE_ITEMS} items per order")

        subtotal = Money.zero()
        for item in items:
            subtotal = subtotal + item.line_total

        return Order(
            id=None,
            user_id=user_id,
            items=list(items),
            shipping_fee=shipping_fee,
            subtotal=subtotal,
            total=subtotal + shipping_fee,
            address=address,
            payment_method=payment_method or DEFAULT_PAYMENT_METHOD,
            payment_details=payment_details,
        )

    @staticmethod
    def from_payload(payload: Mapping[str, Any]) -> Order:
        """Build an order from a checkout payload, normalizing loose values."""
        user_id = payload.get("userId")
        if not user_id:
            raise MissingInputError("Missing userId", code="MISSING_USER")

        raw_items = payload.get("items")
        items = [
            OrderLineItem.from_fields(raw)
            for raw in (raw_items if isinstance(raw_items, list) else [])
            if isinstance(raw, Mapping)
        ]
        address = payload.get("address")
        return Order(
            id=None,
            user_id=str(user_id),
            items=items,
            shipping_fee=Money.lenient(payload.get("shippingFee")),
            subtotal=Money.lenient(payload.get("subtotal")),
            total=Money.lenient(payload.get("total")),
            address=dict(address) if isinstance(address, Mapping) else None,
            payment_method=str(payload.get("paymentMethod") or DEFAULT_PAYMENT_METHOD),
            payment_details=payload.get("paymentDetails"),
        )

    # --- Document mapping -----------------------------------------------------

    @staticmethod
    def from_document(doc: Document) -> Order:
        raw_items = doc.get("items")
        address = doc.get("address")
        return Order(
            id=doc.id,
            user_id=str(doc.get("userId") or ""),
            items=[
                OrderLineItem.from_fields(raw)
                for raw in (raw_items if isinstance(raw_items, list) else [])
                if isinstance(raw, Mapping)
            ],
            shipping_fee=Money.lenient(doc.get("shippingFee")),
            subtotal=Money.lenient(doc.get("subtotal")),
            total=Money.lenient(doc.get("total")),
            address=dict(address) if isinstance(address, Mapping) else None,
            payment_method=str(doc.get("paymentMethod") or DEFAULT_PAYMENT_METHOD),
            payment_details=doc.get("paymentDetails"),
            status=str(doc.get("status") or PENDING),
            created_at=to_timestamp(doc.get("createdAt"))
            or datetime.now(timezone.utc),
        )

    def to_fields(self) -> dict[str, Any]:
        return {
            "userId": self.user_id,
            "items": [item.to_fields() for item in self.items],
            "address": self.address,
            "paymentMethod": self.payment_method,
            "paymentDetails": self.payment_details,
            "shippingFee": float(self.shipping_fee),
            "subtotal": float(self.subtotal),
            "total": float(self.total),
            "status": self.status,
            "createdAt": self.created_at,
        }
