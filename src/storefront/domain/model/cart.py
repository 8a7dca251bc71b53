"""Cart entries and purchase-quantity limits.

The purchasable quantity of a product is bounded by its stock and by its
per-order cap. Two different policies apply the bound:

* passive reconciliation clamps stored quantities silently
  (``clamp_quantity``);
* user-initiated edits are rejected with a reason
  (``check_quantity_change``, ``check_quantity_set``).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from storefront.domain.model.product import Product
from storefront.domain.model.value_objects import Money, to_decimal
from storefront.domain.store.document_store import Document

CART_ITEMS = "cart_items"

# Ceiling used when neither stock nor a per-order cap limits a product.
UNLIMITED_QUANTITY = 9999


def cart_entry_id(user_id: str, product_id: str) -> str:
    return f"{user_id}:{product_id}"


def effective_max_quantity(product: Product) -> int:
    """Largest quantity of ``product`` one order may hold."""
    limits = []
    if product.stock.limits_purchase:
        limits.append(product.stock.quantity)
    if product.per_order_cap is not None:
        limits.append(product.per_order_cap)
    if not limits:
        return UNLIMITED_QUANTITY
    return min(limits)


def clamp_quantity(quantity: int, maximum: int) -> int:
    return max(1, min(quantity, maximum))


class LimitReason(Enum):
    MINIMUM_REACHED = "MINIMUM_REACHED"
    STOCK_LIMIT = "STOCK_LIMIT"
    PER_ORDER_LIMIT = "PER_ORDER_LIMIT"


@dataclass(frozen=True)
class QuantityCheck:
    """Outcome of a user-initiated quantity edit.

    ``quantity`` is the new quantity when allowed, otherwise the unchanged
    current one.
    """

    allowed: bool
    quantity: int
    reason: LimitReason | None = None
    limit: int | None = None

    @property
    def message(self) -> str:
        if self.reason is LimitReason.MINIMUM_REACHED:
            return "Minimum quantity is 1"
        if self.reason is LimitReason.PER_ORDER_LIMIT:
            return f"Max per order is {self.limit}"
        if self.reason is LimitReason.STOCK_LIMIT:
            return f"Only {self.limit} in stock"
        return ""


def check_quantity_change(product: Product, current: int, delta: int) -> QuantityCheck:
    """Validate moving ``current`` by ``delta`` units.

    Growth past the limit is rejected. A decrease that still leaves the
    entry above the limit lands on the limit instead.
    """
    desired = current + delta
    if desired < 1:
        return QuantityCheck(False, current, LimitReason.MINIMUM_REACHED, 1)

    maximum = effective_max_quantity(product)
    if delta <= 0 and desired > maximum:
        return QuantityCheck(True, maximum)
    if desired > maximum:
        return QuantityCheck(False, current, _limit_reason(product, maximum), maximum)

    return QuantityCheck(True, desired)


def check_quantity_set(product: Product, current: int, quantity: int) -> QuantityCheck:
    """Validate replacing ``current`` with an absolute ``quantity``."""
    if quantity < 1:
        return QuantityCheck(False, current, LimitReason.MINIMUM_REACHED, 1)
    maximum = effective_max_quantity(product)
    if quantity > maximum:
        return QuantityCheck(False, current, _limit_reason(product, maximum), maximum)
    return QuantityCheck(True, quantity)


def _limit_reason(product: Product, maximum: int) -> LimitReason:
    if product.per_order_cap is not None and maximum == product.per_order_cap:
        return LimitReason.PER_ORDER_LIMIT
    return LimitReason.STOCK_LIMIT


@dataclass(frozen=True)
class CartEntry:
    """One stored cart entry.

    ``quantity`` is always at least 1. ``stored_valid`` is False when the
    stored value had to be coerced to get there (missing, junk, zero or
    negative), so the entry needs rewriting.
    """

    product_id: str
    quantity: int
    stored_valid: bool = field(default=True, compare=False)

    @staticmethod
    def from_document(doc: Document) -> CartEntry:
        raw = doc.get("quantity")
        parsed = to_decimal(raw)
        quantity = max(int(parsed), 1) if parsed is not None else 1
        stored_valid = (
            isinstance(raw, int) and not isinstance(raw, bool) and raw == quantity
        )
        return CartEntry(
            product_id=str(doc.get("productId") or ""),
            quantity=quantity,
            stored_valid=stored_valid,
        )

    def to_fields(self, user_id: str) -> dict[str, Any]:
        return {
            "userId": user_id,
            "productId": self.product_id,
            "quantity": self.quantity,
        }


@dataclass(frozen=True)
class CartLine:
    """A cart entry joined with its product."""

    product: Product
    quantity: int
    stored_valid: bool = field(default=True, compare=False)

    @property
    def product_id(self) -> str:
        return self.product.id

    @property
    def line_total(self) -> Money:
        return self.product.effective_price * self.quantity

    @property
    def max_quantity(self) -> int:
        return effective_max_quantity(self.product)
