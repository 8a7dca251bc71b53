"""Application service: Catalog Pager.

Cursor-paginated product listings plus lookups by id.

Unfiltered listings order by (sort field, document id); the id tiebreaker
makes every position unique so a cursor resumes exactly where the previous
page ended. Filtered listings order by document id alone, which needs no
composite index whatever filters are combined.

``has_more`` is true whenever a page comes back full. When the catalog size
is an exact multiple of the page size this costs one extra request that
returns an empty page.
"""

from __future__ import annotations

import logging
from decimal import Decimal
from typing import Any, Sequence

from storefront.application.dto import Failure, MutationResult, Page
from storefront.domain.exceptions import (
    DomainException,
    EntityNotFoundError,
    MissingInputError,
    ValidationError,
)
from storefront.domain.model.cursor import BY_ID, SORTED, PageCursor
from storefront.domain.model.product import PRODUCTS, Product
from storefront.domain.model.value_objects import to_decimal
from storefront.domain.store.document_store import (
    ASCENDING,
    DESCENDING,
    DOCUMENT_ID,
    Document,
    DocumentStore,
    FieldFilter,
    Ordering,
    StoreError,
)

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 20


def resolve_page_size(page_size: Any, default: int = DEFAULT_PAGE_SIZE) -> int:
    if isinstance(page_size, int) and not isinstance(page_size, bool) and page_size > 0:
        return page_size
    return default


def build_page(
    docs: list[Document], page_size: int, next_cursor: PageCursor | None
) -> Page[Product]:
    return Page(
        items=[Product.from_document(doc) for doc in docs],
        next_cursor=next_cursor.encode() if next_cursor else None,
        has_more=len(docs) == page_size,
    )


def _price_bound(value: Any, name: str) -> Decimal | None:
    if value is None:
        return None
    number = to_decimal(value)
    if number is None:
        raise ValidationError(f"{name} must be a number")
    return number


class CatalogPager:

    def __init__(self, store: DocumentStore) -> None:
        self._store = store

    def list_products(
        self,
        page_size: int = DEFAULT_PAGE_SIZE,
        sort_field: str = "name",
        sort_direction: str = ASCENDING,
        cursor: str | None = None,
    ) -> Page[Product]:
        """List the catalog ordered by ``sort_field`` then document id."""
        size = resolve_page_size(page_size)
        try:
            if not sort_field:
                raise MissingInputError("Missing sort field")
            if sort_direction not in (ASCENDING, DESCENDING):
                raise ValidationError(f"Unknown sort direction {sort_direction!r}")

            scope = (sort_field, sort_direction)
            start_after = None
            if cursor:
                start_after = PageCursor.decode(cursor, SORTED, scope).position

            docs = self._store.query(
                PRODUCTS,
                orderings=[Ordering(sort_field, sort_direction), Ordering(DOCUMENT_ID)],
                start_after=start_after,
                limit=size,
            )
        except DomainException as exc:
            return Page.failed(Failure.from_exception(exc))
        except StoreError as exc:
            logger.warning("list_products failed: %s", exc)
            return Page.failed(Failure.from_store_error(exc, "Failed to load products"))

        next_cursor = None
        if docs:
            last = docs[-1]
            next_cursor = PageCursor(SORTED, scope, (last.get(sort_field), last.id))
        return build_page(docs, size, next_cursor)

    def list_filtered_products(
        self,
        page_size: int = DEFAULT_PAGE_SIZE,
        category: str | None = None,
        price_min: Any = None,
        price_max: Any = None,
        cursor: str | None = None,
    ) -> Page[Product]:
        """List products matching the filters, ordered by document id."""
        size = resolve_page_size(page_size)
        try:
            low = _price_bound(price_min, "priceMin")
            high = _price_bound(price_max, "priceMax")
            if low is not None and high is not None and low > high:
                raise ValidationError("priceMin cannot exceed priceMax")

            filters: list[FieldFilter] = []
            if category:
                filters.append(FieldFilter("category", "==", category))
            if low is not None:
                filters.append(FieldFilter("price", ">=", float(low)))
            if high is not None:
                filters.append(FieldFilter("price", "<=", float(high)))

            scope = (
                category or "",
                "" if low is None else str(low),
                "" if high is None else str(high),
            )
            start_after = None
            if cursor:
                start_after = PageCursor.decode(cursor, BY_ID, scope).position

            docs = self._store.query(
                PRODUCTS,
                filters=filters,
                orderings=[Ordering(DOCUMENT_ID)],
                start_after=start_after,
                limit=size,
            )
        except DomainException as exc:
            return Page.failed(Failure.from_exception(exc))
        except StoreError as exc:
            logger.warning("list_filtered_products failed: %s", exc)
            return Page.failed(Failure.from_store_error(exc, "Failed to load products"))

        next_cursor = PageCursor(BY_ID, scope, (docs[-1].id,)) if docs else None
        return build_page(docs, size, next_cursor)

    def get_by_id(self, product_id: str) -> MutationResult[Product]:
        try:
            if not product_id:
                raise MissingInputError("Missing productId", code="MISSING_PRODUCT")
            doc = self._store.get(PRODUCTS, product_id)
            if doc is None:
                raise EntityNotFoundError(f"Product with ID '{product_id}' not found")
        except DomainException as exc:
            return MutationResult.failed(Failure.from_exception(exc))
        except StoreError as exc:
            logger.warning("get_by_id(%s) failed: %s", product_id, exc)
            return MutationResult.failed(
                Failure.from_store_error(exc, "Failed to load product")
            )
        return MutationResult.succeeded(Product.from_document(doc))

    def get_by_ids(self, product_ids: Sequence[str]) -> Page[Product]:
        """Fetch many products, in the order their ids were given.

        Ids are queried in chunks no larger than the store's ``in`` limit,
        one chunk after another. Any chunk failure fails the whole lookup.
        Unknown ids are skipped.
        """
        wanted = list(dict.fromkeys(str(pid) for pid in product_ids if pid))
        if not wanted:
            return Page()

        chunk_size = max(self._store.max_in_list, 1)
        found: dict[str, Product] = {}
        for start in range(0, len(wanted), chunk_size):
            chunk = wanted[start:start + chunk_size]
            try:
                docs = self._store.query(
                    PRODUCTS, filters=[FieldFilter(DOCUMENT_ID, "in", chunk)]
                )
            except StoreError as exc:
                logger.warning(
                    "get_by_ids chunk %d failed: %s", start // chunk_size, exc
                )
                return Page.failed(Failure.from_store_error(exc, "Failed to load products"))
            for doc in docs:
                found[doc.id] = Product.from_document(doc)

        return Page(items=[found[pid] for pid in wanted if pid in found])
