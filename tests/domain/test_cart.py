"""Unit tests for purchase-quantity limits and cart entries."""

import pytest

from storefront.domain.model.cart import (
    UNLIMITED_QUANTITY,
    CartEntry,
    CartLine,
    LimitReason,
    cart_entry_id,
    check_quantity_change,
    check_quantity_set,
    clamp_quantity,
    effective_max_quantity,
)
from storefront.domain.model.product import Product
from storefront.domain.model.value_objects import Money, StockLevel
from storefront.domain.store.document_store import Document


def _product(stock=None, cap=None, price="10.00") -> Product:
    return Product(
        id="p1",
        name="Mug",
        price=Money.of(price),
        stock=StockLevel(stock),
        per_order_cap=cap,
    )


# ── effective_max_quantity ───────────────────────────────────────────────────


class TestEffectiveMaxQuantity:

    @pytest.mark.parametrize(
        "stock, cap, expected",
        [
            (5, 3, 3),
            (2, 10, 2),
            (7, None, 7),
            (None, 4, 4),
            (0, 4, 4),
            (None, None, UNLIMITED_QUANTITY),
            (0, None, UNLIMITED_QUANTITY),
        ],
    )
    def test_examples(self, stock, cap, expected):
        assert effective_max_quantity(_product(stock, cap)) == expected

    def test_stock_zero_cap_zero_is_unlimited(self):
        product = Product.from_document(
            Document("p", {"name": "x", "price": 1, "stockQuantity": 0, "perOrderCap": 0})
        )
        assert effective_max_quantity(product) == UNLIMITED_QUANTITY


# ── Passive clamping ─────────────────────────────────────────────────────────


class TestClampQuantity:

    def test_clamps_down(self):
        assert clamp_quantity(10, 4) == 4

    def test_never_below_one(self):
        assert clamp_quantity(0, 4) == 1
        assert clamp_quantity(-2, 4) == 1

    def test_within_limit_unchanged(self):
        assert clamp_quantity(3, 4) == 3


# ── User edits ───────────────────────────────────────────────────────────────


class TestCheckQuantityChange:

    def test_increment_allowed(self):
        check = check_quantity_change(_product(stock=5), 2, 1)
        assert check.allowed
        assert check.quantity == 3
        assert check.message == ""

    def test_decrement_below_one_rejected(self):
        check = check_quantity_change(_product(stock=5), 1, -1)
        assert not check.allowed
        assert check.quantity == 1
        assert check.reason is LimitReason.MINIMUM_REACHED
        assert check.message == "Minimum quantity is 1"

    def test_per_order_cap_rejection(self):
        check = check_quantity_change(_product(stock=10, cap=3), 3, 1)
        assert check.reason is LimitReason.PER_ORDER_LIMIT
        assert check.message == "Max per order is 3"

    def test_stock_rejection(self):
        check = check_quantity_change(_product(stock=2, cap=5), 2, 1)
        assert check.reason is LimitReason.STOCK_LIMIT
        assert check.message == "Only 2 in stock"

    def test_decrement_above_limit_lands_on_limit(self):
        check = check_quantity_change(_product(stock=2), 6, -1)
        assert check.allowed
        assert check.quantity == 2

    def test_decrement_within_limit_unchanged(self):
        check = check_quantity_change(_product(stock=5), 3, -1)
        assert check.quantity == 2


class TestCheckQuantitySet:

    def test_within_limit(self):
        check = check_quantity_set(_product(stock=5), 1, 4)
        assert check.allowed
        assert check.quantity == 4

    def test_above_cap_rejected(self):
        check = check_quantity_set(_product(stock=10, cap=3), 1, 4)
        assert not check.allowed
        assert check.quantity == 1
        assert check.message == "Max per order is 3"

    def test_above_stock_rejected(self):
        check = check_quantity_set(_product(stock=2), 1, 3)
        assert check.reason is LimitReason.STOCK_LIMIT

    def test_zero_rejected(self):
        check = check_quantity_set(_product(), 2, 0)
        assert check.reason is LimitReason.MINIMUM_REACHED


# ── Entries and lines ────────────────────────────────────────────────────────


class TestCartEntry:

    def test_entry_id(self):
        assert cart_entry_id("u1", "p1") == "u1:p1"

    def test_from_document_defaults_quantity(self):
        assert CartEntry.from_document(Document("u:p", {"productId": "p"})).quantity == 1
        assert CartEntry.from_document(Document("u:p", {"productId": "p", "quantity": 0})).quantity == 1

    def test_from_document_flags_coerced_quantity(self):
        for raw in (None, 0, -3, "two", 2.0, True):
            entry = CartEntry.from_document(Document("u:p", {"productId": "p", "quantity": raw}))
            assert not entry.stored_valid, raw
        assert CartEntry.from_document(Document("u:p", {"productId": "p", "quantity": 2})).stored_valid

    def test_to_fields(self):
        assert CartEntry("p1", 2).to_fields("u1") == {
            "userId": "u1",
            "productId": "p1",
            "quantity": 2,
        }

    def test_line_total_uses_discounted_price(self):
        product = _product(price="20.00")
        product.discount = product.discount + 10
        line = CartLine(product=product, quantity=3)
        assert line.line_total == Money.of("54.00")
        assert line.max_quantity == UNLIMITED_QUANTITY
