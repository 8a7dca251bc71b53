"""Application service: Cart Reconciliation.

Cart entries live in the ``cart_items`` collection, one document per
(user, product). Stock and per-order caps change underneath stored carts,
so every enriched read reconciles the entries against current limits:

* quantities above the limit are clamped down silently. Stored values
  that are not a positive integer are repaired too. Each corrected entry
  is written back on its own, one write after another. A failed write
  is reported but does not stop the others, and the next read retries it.
  Reconciling an already valid cart writes nothing.
* edits made by the user (``change_quantity``, ``set_quantity`` and
  ``add_to_cart``) that would raise a quantity past a limit are rejected
  with the reason. A decrease on an entry still above its limit lands on
  the limit.
"""

from __future__ import annotations

import logging
from typing import Sequence

from storefront.application.catalog_pager import CatalogPager
from storefront.application.dto import CartView, Failure, MutationResult
from storefront.domain.exceptions import (
    DomainException,
    EntityNotFoundError,
    MissingInputError,
    ValidationError,
)
from storefront.domain.model.cart import (
    CART_ITEMS,
    CartEntry,
    CartLine,
    QuantityCheck,
    cart_entry_id,
    check_quantity_change,
    check_quantity_set,
    clamp_quantity,
    effective_max_quantity,
)
from storefront.domain.model.product import PRODUCTS, Product
from storefront.domain.store.document_store import (
    DOCUMENT_ID,
    DocumentStore,
    FieldFilter,
    Ordering,
    StoreError,
)

logger = logging.getLogger(__name__)


def _require_user(user_id: str) -> None:
    if not user_id:
        raise MissingInputError("Missing userId", code="MISSING_USER")


def _require_product(product_id: str) -> None:
    if not product_id:
        raise MissingInputError("Missing productId", code="MISSING_PRODUCT")


class CartReconciler:

    def __init__(self, store: DocumentStore, catalog: CatalogPager | None = None) -> None:
        self._store = store
        self._catalog = catalog or CatalogPager(store)

    # --- Limits ---------------------------------------------------------------

    @staticmethod
    def effective_max_quantity(product: Product) -> int:
        return effective_max_quantity(product)

    @staticmethod
    def clamp_increment(product: Product, current_quantity: int, delta: int) -> QuantityCheck:
        """Check a +/- edit against the limits without touching the store."""
        return check_quantity_change(product, current_quantity, delta)

    # --- Reads ----------------------------------------------------------------

    def load_cart(self, user_id: str) -> CartView:
        """Read, enrich and reconcile the user's cart.

        Entries whose product no longer exists are left out of the view but
        stay in the store.
        """
        try:
            _require_user(user_id)
            entries = self._entries(user_id)
        except DomainException as exc:
            return CartView(error=Failure.from_exception(exc))
        except StoreError as exc:
            logger.warning("load_cart(%s) failed: %s", user_id, exc)
            return CartView(error=Failure.from_store_error(exc, "Failed to load cart"))

        products = self._catalog.get_by_ids([entry.product_id for entry in entries])
        if not products.ok:
            return CartView(error=products.error)

        by_id = {product.id: product for product in products.items}
        lines = [
            CartLine(
                product=by_id[entry.product_id],
                quantity=entry.quantity,
                stored_valid=entry.stored_valid,
            )
            for entry in entries
            if entry.product_id in by_id
        ]
        dropped = len(entries) - len(lines)
        if dropped:
            logger.debug("load_cart(%s): %d entries reference unknown products", user_id, dropped)
        return self.reconcile(user_id, lines)

    def reconcile(self, user_id: str, lines: Sequence[CartLine]) -> CartView:
        """Clamp each line to its product's limit and persist the changes."""
        if not user_id:
            return CartView(
                error=Failure.from_exception(
                    MissingInputError("Missing userId", code="MISSING_USER")
                )
            )

        adjusted_lines: list[CartLine] = []
        adjusted_ids: list[str] = []
        first_failure: Failure | None = None

        for line in lines:
            quantity = clamp_quantity(line.quantity, effective_max_quantity(line.product))
            if quantity != line.quantity or not line.stored_valid:
                try:
                    self._store.update(
                        CART_ITEMS,
                        cart_entry_id(user_id, line.product_id),
                        {"quantity": quantity},
                    )
                except StoreError as exc:
                    logger.warning(
                        "reconcile(%s): write for %s failed: %s",
                        user_id, line.product_id, exc,
                    )
                    if first_failure is None:
                        first_failure = Failure.from_store_error(
                            exc, "Failed to update cart quantity"
                        )
                else:
                    logger.info(
                        "reconcile(%s): %s clamped from %d to %d",
                        user_id, line.product_id, line.quantity, quantity,
                    )
                    adjusted_ids.append(line.product_id)
            adjusted_lines.append(CartLine(product=line.product, quantity=quantity))

        return CartView(lines=adjusted_lines, adjusted=adjusted_ids, error=first_failure)

    # --- Commands -------------------------------------------------------------

    def change_quantity(
        self, user_id: str, product_id: str, delta: int
    ) -> MutationResult[CartEntry]:
        """Apply a +/- edit to an entry already in the cart."""
        try:
            _require_user(user_id)
            _require_product(product_id)
            entry = self._entry(user_id, product_id)
            if entry is None:
                raise EntityNotFoundError(
                    f"Product '{product_id}' is not in the cart", code="NOT_IN_CART"
                )
            return self._apply(user_id, self._product(product_id), entry.quantity, delta)
        except DomainException as exc:
            return MutationResult.failed(Failure.from_exception(exc))
        except StoreError as exc:
            logger.warning("change_quantity(%s, %s) failed: %s", user_id, product_id, exc)
            return MutationResult.failed(Failure.from_store_error(exc, "Failed to update cart"))

    def set_quantity(
        self, user_id: str, product_id: str, quantity: int
    ) -> MutationResult[CartEntry]:
        """Replace the quantity of an entry already in the cart."""
        try:
            _require_user(user_id)
            _require_product(product_id)
            if not isinstance(quantity, int) or isinstance(quantity, bool):
                raise ValidationError("Quantity must be a whole number", code="INVALID_QUANTITY")
            entry = self._entry(user_id, product_id)
            if entry is None:
                raise EntityNotFoundError(
                    f"Product '{product_id}' is not in the cart", code="NOT_IN_CART"
                )
            check = check_quantity_set(self._product(product_id), entry.quantity, quantity)
            return self._write(user_id, product_id, check)
        except DomainException as exc:
            return MutationResult.failed(Failure.from_exception(exc))
        except StoreError as exc:
            logger.warning("set_quantity(%s, %s) failed: %s", user_id, product_id, exc)
            return MutationResult.failed(Failure.from_store_error(exc, "Failed to update cart"))

    def add_to_cart(
        self, user_id: str, product_id: str, quantity: int = 1
    ) -> MutationResult[CartEntry]:
        """Add ``quantity`` units, creating the entry when needed."""
        try:
            _require_user(user_id)
            _require_product(product_id)
            if not isinstance(quantity, int) or isinstance(quantity, bool) or quantity < 1:
                raise ValidationError("Quantity must be positive", code="INVALID_QUANTITY")
            entry = self._entry(user_id, product_id)
            current = entry.quantity if entry else 0
            return self._apply(user_id, self._product(product_id), current, quantity)
        except DomainException as exc:
            return MutationResult.failed(Failure.from_exception(exc))
        except StoreError as exc:
            logger.warning("add_to_cart(%s, %s) failed: %s", user_id, product_id, exc)
            return MutationResult.failed(Failure.from_store_error(exc, "Failed to update cart"))

    def remove_item(self, user_id: str, product_id: str) -> MutationResult[CartEntry]:
        """Delete one entry; the value is the removed entry, None if absent."""
        try:
            _require_user(user_id)
            _require_product(product_id)
            entry = self._entry(user_id, product_id)
            self._store.delete(CART_ITEMS, cart_entry_id(user_id, product_id))
        except DomainException as exc:
            return MutationResult.failed(Failure.from_exception(exc))
        except StoreError as exc:
            logger.warning("remove_item(%s, %s) failed: %s", user_id, product_id, exc)
            return MutationResult.failed(Failure.from_store_error(exc, "Failed to remove item"))
        return MutationResult.succeeded(entry)

    def clear_cart(self, user_id: str) -> MutationResult[int]:
        """Delete every entry of the user's cart; the value is how many."""
        try:
            _require_user(user_id)
            entries = self._entries(user_id)
            for entry in entries:
                self._store.delete(CART_ITEMS, cart_entry_id(user_id, entry.product_id))
        except DomainException as exc:
            return MutationResult.failed(Failure.from_exception(exc))
        except StoreError as exc:
            logger.warning("clear_cart(%s) failed: %s", user_id, exc)
            return MutationResult.failed(Failure.from_store_error(exc, "Failed to clear cart"))
        return MutationResult.succeeded(len(entries))

    # --- Internal helpers -----------------------------------------------------

    def _apply(
        self, user_id: str, product: Product, current: int, delta: int
    ) -> MutationResult[CartEntry]:
        return self._write(user_id, product.id, check_quantity_change(product, current, delta))

    def _write(
        self, user_id: str, product_id: str, check: QuantityCheck
    ) -> MutationResult[CartEntry]:
        if not check.allowed:
            raise ValidationError(check.message, code=check.reason.value)
        entry = CartEntry(product_id=product_id, quantity=check.quantity)
        self._store.set(CART_ITEMS, cart_entry_id(user_id, product_id), entry.to_fields(user_id))
        return MutationResult.succeeded(entry)

    def _product(self, product_id: str) -> Product:
        doc = self._store.get(PRODUCTS, product_id)
        if doc is None:
            raise EntityNotFoundError(f"Product with ID '{product_id}' not found")
        return Product.from_document(doc)

    def _entry(self, user_id: str, product_id: str) -> CartEntry | None:
        doc = self._store.get(CART_ITEMS, cart_entry_id(user_id, product_id))
        return CartEntry.from_document(doc) if doc else None

    def _entries(self, user_id: str) -> list[CartEntry]:
        docs = self._store.query(
            CART_ITEMS,
            filters=[FieldFilter("userId", "==", user_id)],
            orderings=[Ordering(DOCUMENT_ID)],
        )
        return [CartEntry.from_document(doc) for doc in docs]
