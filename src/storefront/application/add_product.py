"""Application service: Add Product use case.

Catalog tooling writes products through here so every stored product
carries the derived search fields (``searchTokens`` and ``nameSearch``)
the search engine reads.
"""

from __future__ import annotations

import logging
from typing import Any, Iterable

from storefront.application.dto import Failure, MutationResult
from storefront.domain.exceptions import DomainException, ValidationError
from storefront.domain.model.product import PRODUCTS, Product, tokenize
from storefront.domain.model.value_objects import Money, StockLevel, to_decimal
from storefront.domain.store.document_store import DocumentStore, StoreError

logger = logging.getLogger(__name__)


class AddProductHandler:

    def __init__(self, store: DocumentStore) -> None:
        self._store = store

    def handle(
        self,
        name: str,
        price: Any,
        category: str = "",
        discount: Any = 0,
        stock_quantity: int | None = None,
        per_order_cap: int | None = None,
        image: str = "",
        description: str = "",
        extra_tokens: Iterable[str] = (),
    ) -> MutationResult[Product]:
        """Add a new product to the catalog."""
        try:
            if not name or not name.strip():
                raise ValidationError("Product name is required")
            percent = to_decimal(discount)
            if percent is None or percent < 0 or percent > 100:
                raise ValidationError("Discount must be between 0 and 100")
            if per_order_cap is not None and per_order_cap < 0:
                raise ValidationError("Per-order cap cannot be negative")

            clean_name = name.strip()
            product = Product(
                id="",
                name=clean_name,
                price=Money.of(price),
                discount=percent,
                image=image,
                category=category.strip(),
                description=description,
                stock=StockLevel(stock_quantity),
                per_order_cap=per_order_cap or None,
                search_tokens=tokenize(clean_name, category, *extra_tokens),
                name_search=clean_name.lower(),
            )
            product.id = self._store.create(PRODUCTS, product.to_fields())
        except DomainException as exc:
            return MutationResult.failed(Failure.from_exception(exc))
        except StoreError as exc:
            logger.warning("add product %r failed: %s", name, exc)
            return MutationResult.failed(Failure.from_store_error(exc, "Failed to add product"))

        logger.info("product %s '%s' added", product.id, product.name)
        return MutationResult.succeeded(product)
