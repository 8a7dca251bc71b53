"""Application service: Catalog Search Engine.

Two-phase lookup:

1. Token phase: products whose ``searchTokens`` contain the keyword,
   ordered by document id.
2. Prefix phase: products whose lowercase ``nameSearch`` starts with the
   keyword, ordered by (``nameSearch``, document id). Only tried when the
   first page of the token phase is empty.

The phase chosen by the first page is recorded in the cursor, and every
later page of the same search stays in that phase; a token-phase cursor
means nothing against the prefix ordering and vice versa.
"""

from __future__ import annotations

import logging

from storefront.application.catalog_pager import (
    DEFAULT_PAGE_SIZE,
    build_page,
    resolve_page_size,
)
from storefront.application.dto import Failure, Page
from storefront.domain.exceptions import DomainException, ValidationError
from storefront.domain.model.cursor import SEARCH, PageCursor
from storefront.domain.model.product import PRODUCTS, Product
from storefront.domain.store.document_store import (
    DOCUMENT_ID,
    Document,
    DocumentStore,
    FieldFilter,
    Ordering,
    StoreError,
)

logger = logging.getLogger(__name__)

TOKEN_PHASE = "token"
PREFIX_PHASE = "prefix"

# Sorts after every character a product name realistically contains, so
# [keyword, keyword + PREFIX_SENTINEL) spans every string starting with
# keyword.
PREFIX_SENTINEL = "\uf8ff"

DEFAULT_SUGGESTION_LIMIT = 8


def normalize_keyword(keyword: str | None) -> str:
    return (keyword or "").strip().lower()


class CatalogSearch:

    def __init__(self, store: DocumentStore) -> None:
        self._store = store

    def search(
        self,
        keyword: str,
        page_size: int = DEFAULT_PAGE_SIZE,
        cursor: str | None = None,
    ) -> Page[Product]:
        """Search the catalog. An empty keyword yields an empty page."""
        term = normalize_keyword(keyword)
        if not term:
            return Page()
        size = resolve_page_size(page_size)

        try:
            if cursor:
                resumed = self._decode(cursor, term)
                phase = resumed.scope[0]
                docs = self._run_phase(phase, term, size, resumed.position)
            else:
                phase = TOKEN_PHASE
                docs = self._run_phase(TOKEN_PHASE, term, size, None)
                if not docs:
                    phase = PREFIX_PHASE
                    docs = self._run_phase(PREFIX_PHASE, term, size, None)
        except DomainException as exc:
            return Page.failed(Failure.from_exception(exc))
        except StoreError as exc:
            logger.warning("search(%r) failed: %s", term, exc)
            return Page.failed(Failure.from_store_error(exc, "Search failed"))

        logger.debug("search(%r) served %d items by %s phase", term, len(docs), phase)
        next_cursor = self._cursor_after(phase, term, docs[-1]) if docs else None
        return build_page(docs, size, next_cursor)

    def suggest_names(
        self, keyword: str, limit: int = DEFAULT_SUGGESTION_LIMIT
    ) -> Page[str]:
        """Product names for an autocomplete list, token matches first.

        A single page without a cursor; a store failure comes back as an
        empty page carrying the error.
        """
        term = normalize_keyword(keyword)
        if not term:
            return Page()
        size = resolve_page_size(limit, DEFAULT_SUGGESTION_LIMIT)
        try:
            docs = self._run_phase(TOKEN_PHASE, term, size, None)
            if not docs:
                docs = self._run_phase(PREFIX_PHASE, term, size, None)
        except StoreError as exc:
            logger.warning("suggest_names(%r) failed: %s", term, exc)
            return Page.failed(Failure.from_store_error(exc, "Failed to load suggestions"))
        return Page(items=[Product.from_document(doc).name for doc in docs])

    # --- Phases ---------------------------------------------------------------

    def _run_phase(
        self, phase: str, term: str, size: int, start_after: tuple | None
    ) -> list[Document]:
        if phase == TOKEN_PHASE:
            return self._store.query(
                PRODUCTS,
                filters=[FieldFilter("searchTokens", "array_contains", term)],
                orderings=[Ordering(DOCUMENT_ID)],
                start_after=start_after,
                limit=size,
            )
        return self._store.query(
            PRODUCTS,
            filters=[
                FieldFilter("nameSearch", ">=", term),
                FieldFilter("nameSearch", "<", term + PREFIX_SENTINEL),
            ],
            orderings=[Ordering("nameSearch"), Ordering(DOCUMENT_ID)],
            start_after=start_after,
            limit=size,
        )

    # --- Cursor helpers -------------------------------------------------------

    @staticmethod
    def _cursor_after(phase: str, term: str, last: Document) -> PageCursor:
        if phase == TOKEN_PHASE:
            position = (last.id,)
        else:
            position = (last.get("nameSearch"), last.id)
        return PageCursor(SEARCH, (phase, term), position)

    @staticmethod
    def _decode(token: str, term: str) -> PageCursor:
        cursor = PageCursor.decode(token, SEARCH)
        if len(cursor.scope) != 2 or cursor.scope[1] != term:
            raise ValidationError(
                "Invalid page cursor: cursor belongs to a different search",
                code="INVALID_CURSOR",
            )
        expected = {TOKEN_PHASE: 1, PREFIX_PHASE: 2}.get(cursor.scope[0])
        if expected != len(cursor.position):
            raise ValidationError(
                "Invalid page cursor: unknown search phase", code="INVALID_CURSOR"
            )
        return cursor
