"""Application service: Review Ledger.

Per-product review pages (newest first) and owner-only review edits.

One review per (product, user): ``add_review`` first looks for an existing
review, then inserts under the deterministic id ``productId:userId`` with
the store's insert-if-absent primitive. Two concurrent submissions can both
pass the look-up, but only one insert succeeds; the other reports
``REVIEW_EXISTS`` exactly like the look-up would have.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Callable

from storefront.application.catalog_pager import resolve_page_size
from storefront.application.dto import Failure, MutationResult, Page
from storefront.domain.exceptions import (
    ConflictError,
    DomainException,
    EntityNotFoundError,
    MissingInputError,
)
from storefront.domain.model.cursor import REVIEWS as REVIEWS_CURSOR
from storefront.domain.model.cursor import PageCursor
from storefront.domain.model.review import (
    REVIEWS,
    Review,
    normalize_comment,
    normalize_rating,
)
from storefront.domain.store.document_store import (
    DESCENDING,
    DOCUMENT_ID,
    DocumentExistsError,
    DocumentNotFoundError,
    DocumentStore,
    FieldFilter,
    Ordering,
    StoreError,
)

logger = logging.getLogger(__name__)

DEFAULT_REVIEW_PAGE_SIZE = 10


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _review_not_found(review_id: str) -> EntityNotFoundError:
    return EntityNotFoundError(f"Review '{review_id}' not found", code="REVIEW_NOT_FOUND")


def _review_exists(existing: Review | None) -> ConflictError:
    return ConflictError(
        "You already reviewed this product", code="REVIEW_EXISTS", existing=existing
    )


class ReviewLedger:

    def __init__(
        self, store: DocumentStore, clock: Callable[[], datetime] = _utcnow
    ) -> None:
        self._store = store
        self._clock = clock

    # --- Queries --------------------------------------------------------------

    def list_reviews(
        self,
        product_id: str,
        cursor: str | None = None,
        page_size: int = DEFAULT_REVIEW_PAGE_SIZE,
    ) -> Page[Review]:
        """Reviews of a product, newest first."""
        size = resolve_page_size(page_size, DEFAULT_REVIEW_PAGE_SIZE)
        try:
            if not product_id:
                raise MissingInputError("Missing productId", code="MISSING_PRODUCT")
            scope = (product_id,)
            start_after = None
            if cursor:
                start_after = PageCursor.decode(cursor, REVIEWS_CURSOR, scope).position

            docs = self._store.query(
                REVIEWS,
                filters=[FieldFilter("productId", "==", product_id)],
                orderings=[
                    Ordering("createdAt", DESCENDING),
                    Ordering(DOCUMENT_ID, DESCENDING),
                ],
                start_after=start_after,
                limit=size,
            )
        except DomainException as exc:
            return Page.failed(Failure.from_exception(exc))
        except StoreError as exc:
            logger.warning("list_reviews(%s) failed: %s", product_id, exc)
            return Page.failed(Failure.from_store_error(exc, "Failed to load reviews"))

        next_cursor = None
        if docs:
            last = docs[-1]
            next_cursor = PageCursor(
                REVIEWS_CURSOR, scope, (last.get("createdAt"), last.id)
            ).encode()
        return Page(
            items=[Review.from_document(doc) for doc in docs],
            next_cursor=next_cursor,
            has_more=len(docs) == size,
        )

    # --- Commands -------------------------------------------------------------

    def add_review(
        self,
        product_id: str,
        user_id: str,
        rating: Any,
        comment: Any,
        display_name: str | None = None,
        user_image: str | None = None,
    ) -> MutationResult[Review]:
        """Add the user's review of a product.

        On ``REVIEW_EXISTS`` the result's ``value`` is the review already
        stored.
        """
        try:
            review = Review.create(
                product_id,
                user_id,
                rating,
                comment,
                display_name=display_name,
                user_image=user_image,
                now=self._clock(),
            )

            existing = self._find_existing(product_id, user_id)
            if existing is not None:
                raise _review_exists(existing)

            try:
                self._store.create(REVIEWS, review.to_fields(), doc_id=review.id)
            except DocumentExistsError:
                doc = self._store.get(REVIEWS, review.id)
                raise _review_exists(Review.from_document(doc) if doc else None)
        except ConflictError as exc:
            return MutationResult.failed(Failure.from_exception(exc), value=exc.existing)
        except DomainException as exc:
            return MutationResult.failed(Failure.from_exception(exc))
        except StoreError as exc:
            logger.warning("add_review(%s, %s) failed: %s", product_id, user_id, exc)
            return MutationResult.failed(Failure.from_store_error(exc, "Failed to add review"))

        logger.info("review %s added", review.id)
        return MutationResult.succeeded(review)

    def update_review(
        self,
        review_id: str,
        user_id: str,
        rating: Any = None,
        comment: Any = None,
    ) -> MutationResult[Review]:
        """Edit the caller's own review. Omitted fields keep their values."""
        try:
            if rating is not None:
                normalize_rating(rating)
            if comment is not None:
                normalize_comment(comment)
            review = self._load_owned(review_id, user_id, action="edit")
            review.revise(rating=rating, comment=comment, now=self._clock())
            try:
                self._store.update(
                    REVIEWS,
                    review.id,
                    {
                        "rating": review.rating,
                        "comment": review.comment,
                        "lastUpdatedAt": review.last_updated_at,
                    },
                )
            except DocumentNotFoundError:
                raise _review_not_found(review_id)
        except DomainException as exc:
            return MutationResult.failed(Failure.from_exception(exc))
        except StoreError as exc:
            logger.warning("update_review(%s) failed: %s", review_id, exc)
            return MutationResult.failed(
                Failure.from_store_error(exc, "Failed to update review")
            )
        return MutationResult.succeeded(review)

    def delete_review(self, review_id: str, user_id: str) -> MutationResult[Review]:
        """Delete the caller's own review; the result carries what was removed."""
        try:
            review = self._load_owned(review_id, user_id, action="delete")
            self._store.delete(REVIEWS, review.id)
        except DomainException as exc:
            return MutationResult.failed(Failure.from_exception(exc))
        except StoreError as exc:
            logger.warning("delete_review(%s) failed: %s", review_id, exc)
            return MutationResult.failed(
                Failure.from_store_error(exc, "Failed to delete review")
            )
        logger.info("review %s deleted", review.id)
        return MutationResult.succeeded(review)

    # --- Internal helpers -----------------------------------------------------

    def _find_existing(self, product_id: str, user_id: str) -> Review | None:
        docs = self._store.query(
            REVIEWS,
            filters=[
                FieldFilter("productId", "==", product_id),
                FieldFilter("userId", "==", user_id),
            ],
            limit=1,
        )
        return Review.from_document(docs[0]) if docs else None

    def _load_owned(self, review_id: str, user_id: str, action: str) -> Review:
        if not user_id:
            raise MissingInputError("Missing userId", code="MISSING_USER")
        if not review_id:
            raise MissingInputError("Missing reviewId", code="MISSING_REVIEW")

        doc = self._store.get(REVIEWS, review_id)
        if doc is None:
            raise _review_not_found(review_id)
        review = Review.from_document(doc)
        review.assert_owned_by(user_id, action=action)
        return review
