"""Application service: Orders.

Orders are created once at checkout, either from a payload that already
carries its totals (``create_order``) or priced here from the user's
reconciled cart (``place_order_from_cart``). They are never modified
afterwards by this engine.
"""

from __future__ import annotations

import logging
import re
from typing import Any, Mapping

from storefront.application.cart_reconciliation import CartReconciler
from storefront.application.dto import Failure, MutationResult, Page
from storefront.domain.exceptions import (
    DomainException,
    MissingInputError,
    ValidationError,
)
from storefront.domain.model.order import ORDERS, Order, OrderLineItem
from storefront.domain.model.value_objects import Money, to_decimal
from storefront.domain.store.document_store import (
    DESCENDING,
    DOCUMENT_ID,
    DocumentStore,
    FieldFilter,
    Ordering,
    StoreError,
)

logger = logging.getLogger(__name__)

# Store-wide settings; the first document holds the per-city fee table.
MANAGE = "manage"

_NON_NUMERIC_RE = re.compile(r"[^0-9.]")


def _parse_fee(value: Any) -> Money:
    if isinstance(value, str):
        value = _NON_NUMERIC_RE.sub("", value)
    return Money.lenient(value)


class OrderDesk:

    def __init__(self, store: DocumentStore, cart: CartReconciler | None = None) -> None:
        self._store = store
        self._cart = cart or CartReconciler(store)

    def create_order(self, payload: Mapping[str, Any]) -> MutationResult[str]:
        """Persist a checkout payload as a pending order; the value is its id."""
        try:
            if not isinstance(payload, Mapping):
                raise MissingInputError("Missing order payload")
            order = Order.from_payload(payload)
            order.id = self._store.create(ORDERS, order.to_fields())
        except DomainException as exc:
            return MutationResult.failed(Failure.from_exception(exc))
        except StoreError as exc:
            logger.warning("create_order failed: %s", exc)
            return MutationResult.failed(Failure.from_store_error(exc, "Failed to create order"))
        logger.info("order %s created for %s", order.id, order.user_id)
        return MutationResult.succeeded(order.id)

    def list_user_orders(self, user_id: str) -> Page[Order]:
        """All orders of a user, newest first."""
        try:
            if not user_id:
                raise MissingInputError("Missing userId", code="MISSING_USER")
            docs = self._store.query(
                ORDERS,
                filters=[FieldFilter("userId", "==", user_id)],
                orderings=[
                    Ordering("createdAt", DESCENDING),
                    Ordering(DOCUMENT_ID, DESCENDING),
                ],
            )
        except DomainException as exc:
            return Page.failed(Failure.from_exception(exc))
        except StoreError as exc:
            logger.warning("list_user_orders(%s) failed: %s", user_id, exc)
            return Page.failed(Failure.from_store_error(exc, "Failed to load user orders"))
        return Page(items=[Order.from_document(doc) for doc in docs])

    def shipping_fee_for_city(self, city: str | None) -> Money:
        """Fee from the region table; unknown cities and failures cost nothing."""
        key = (city or "").strip()
        if not key:
            return Money.zero()
        try:
            docs = self._store.query(MANAGE, limit=1)
        except StoreError as exc:
            logger.warning("shipping_fee_for_city(%s) failed: %s", key, exc)
            return Money.zero()
        if not docs:
            return Money.zero()

        table = docs[0].get("RegionFee") or docs[0].get("regionFee")
        if not isinstance(table, Mapping):
            return Money.zero()
        if key in table:
            return _parse_fee(table[key])
        for name, fee in table.items():
            if isinstance(name, str) and name.lower() == key.lower():
                return _parse_fee(fee)
        return Money.zero()

    def place_order_from_cart(
        self,
        user_id: str,
        address: Mapping[str, Any] | None = None,
        payment_method: str | None = None,
        payment_details: Any = None,
        shipping_fee: Any = None,
    ) -> MutationResult[Order]:
        """Turn the user's reconciled cart into an order and empty the cart.

        Without an explicit non-negative ``shipping_fee`` the fee is looked
        up from the address's ``City``.
        """
        if not user_id:
            return MutationResult.failed(
                Failure.from_exception(MissingInputError("Missing userId", code="MISSING_USER"))
            )

        view = self._cart.load_cart(user_id)
        if not view.lines:
            if view.error is not None:
                return MutationResult.failed(view.error)
            return MutationResult.failed(
                Failure.from_exception(ValidationError("Cart is empty", code="EMPTY_CART"))
            )

        snapshot = dict(address) if isinstance(address, Mapping) else None
        fee_value = to_decimal(shipping_fee)
        if fee_value is not None and fee_value >= 0:
            fee = Money(fee_value)
        else:
            city = (snapshot or {}).get("City") or (snapshot or {}).get("city")
            fee = self.shipping_fee_for_city(city)

        try:
            order = Order.create(
                user_id=user_id,
                items=[OrderLineItem.snapshot(line) for line in view.lines],
                shipping_fee=fee,
                address=snapshot,
                payment_method=payment_method,
                payment_details=payment_details,
            )
            order.id = self._store.create(ORDERS, order.to_fields())
        except DomainException as exc:
            return MutationResult.failed(Failure.from_exception(exc))
        except StoreError as exc:
            logger.warning("place_order_from_cart(%s) failed: %s", user_id, exc)
            return MutationResult.failed(Failure.from_store_error(exc, "Failed to place order"))

        logger.info("order %s placed from cart of %s (total %s)", order.id, user_id, order.total)
        cleared = self._cart.clear_cart(user_id)
        if not cleared.success:
            logger.warning("order %s placed but cart of %s not cleared", order.id, user_id)
        return MutationResult.succeeded(order)
