"""Review aggregate.

A user may review a product once. The review id is derived from the
(product, user) pair, so a second review for the same pair collides at the
store instead of relying on a read-then-write check.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import ROUND_HALF_UP, Decimal
from typing import Any

from storefront.domain.exceptions import (
    ForbiddenError,
    MissingInputError,
    ValidationError,
)
from storefront.domain.model.value_objects import to_decimal, to_timestamp
from storefront.domain.store.document_store import Document

REVIEWS = "reviews"

MIN_RATING = 1
MAX_RATING = 5
ANONYMOUS = "Anonymous"


def review_id_for(product_id: str, user_id: str) -> str:
    return f"{product_id}:{user_id}"


def normalize_rating(value: Any) -> int:
    """Round ``value`` to the nearest whole star, rejecting anything off-scale."""
    number = to_decimal(value)
    if number is None:
        raise ValidationError("Rating must be a number", code="INVALID_RATING")
    rounded = int(number.quantize(Decimal("1"), rounding=ROUND_HALF_UP))
    if rounded < MIN_RATING or rounded > MAX_RATING:
        raise ValidationError(
            f"Rating must be between {MIN_RATING} and {MAX_RATING}",
            code="INVALID_RATING",
        )
    return rounded


def normalize_comment(value: Any) -> str:
    comment = value.strip() if isinstance(value, str) else ""
    if not comment:
        raise ValidationError("Comment is required", code="INVALID_COMMENT")
    return comment


@dataclass
class Review:
    id: str
    product_id: str
    user_id: str
    display_name: str
    rating: int
    comment: str
    created_at: datetime
    last_updated_at: datetime | None = None
    user_image: str = ""

    # --- Factory (used for NEW reviews only) ----------------------------------

    @staticmethod
    def create(
        product_id: str,
        user_id: str,
        rating: Any,
        comment: Any,
        display_name: str | None = None,
        user_image: str | None = None,
        now: datetime | None = None,
    ) -> Review:
        """Create a new review, enforcing all invariants."""
        if not user_id:
            raise MissingInputError("Missing userId", code="MISSING_USER")
        if not product_id:
            raise MissingInputError("Missing productId", code="MISSING_PRODUCT")

        return Review(
            id=review_id_for(product_id, user_id),
            product_id=product_id,
            user_id=user_id,
            display_name=(display_name or "").strip() or ANONYMOUS,
            user_image=user_image or "",
            rating=normalize_rating(rating),
            comment=normalize_comment(comment),
            created_at=now or datetime.now(timezone.utc),
            last_updated_at=None,
        )

    # --- Ownership-gated mutations --------------------------------------------

    def assert_owned_by(self, user_id: str, action: str = "edit") -> None:
        if self.user_id != user_id:
            raise ForbiddenError(f"You can only {action} your own review")

    def revise(
        self,
        rating: Any = None,
        comment: Any = None,
        now: datetime | None = None,
    ) -> None:
        """Apply an edit. ``None`` leaves a field unchanged.

        Both fields are validated before either is assigned.
        """
        next_rating = normalize_rating(self.rating if rating is None else rating)
        next_comment = normalize_comment(self.comment if comment is None else comment)
        self.rating = next_rating
        self.comment = next_comment
        self.last_updated_at = now or datetime.now(timezone.utc)

    # --- Document mapping -----------------------------------------------------

    @staticmethod
    def from_document(doc: Document) -> Review:
        rating = to_decimal(doc.get("rating"))
        return Review(
            id=doc.id,
            product_id=str(doc.get("productId") or ""),
            user_id=str(doc.get("userId") or ""),
            display_name=doc.get("displayName") or ANONYMOUS,
            user_image=doc.get("userImage") or "",
            rating=int(rating) if rating is not None else 0,
            comment=doc.get("comment") or "",
            created_at=to_timestamp(doc.get("createdAt"))
            or datetime.now(timezone.utc),
            last_updated_at=to_timestamp(doc.get("lastUpdatedAt")),
        )

    def to_fields(self) -> dict[str, Any]:
        return {
            "productId": self.product_id,
            "userId": self.user_id,
            "displayName": self.display_name,
            "userImage": self.user_image,
            "rating": self.rating,
            "comment": self.comment,
            "createdAt": self.created_at,
            "lastUpdatedAt": self.last_updated_at,
        }
