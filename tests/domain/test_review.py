"""Unit tests for the Review record."""

from datetime import datetime, timezone

import pytest

from storefront.domain.exceptions import ForbiddenError, MissingInputError, ValidationError
from storefront.domain.model.review import (
    ANONYMOUS,
    Review,
    normalize_comment,
    normalize_rating,
    review_id_for,
)
from storefront.domain.store.document_store import Document

NOW = datetime(2024, 6, 1, 9, 0, tzinfo=timezone.utc)


def _review(**overrides) -> Review:
    kwargs = dict(
        product_id="p1", user_id="u1", rating=4, comment="Nice", display_name="Ann", now=NOW
    )
    kwargs.update(overrides)
    return Review.create(**kwargs)


class TestNormalizeRating:

    @pytest.mark.parametrize("value", [1, 3, 5])
    def test_whole_stars_kept(self, value):
        assert normalize_rating(value) == value

    def test_rounds_half_up(self):
        assert normalize_rating(4.5) == 5
        assert normalize_rating("2.4") == 2

    @pytest.mark.parametrize("value", [0, 5.6, -1, 6, "five", None])
    def test_off_scale_rejected(self, value):
        with pytest.raises(ValidationError) as info:
            normalize_rating(value)
        assert info.value.code == "INVALID_RATING"


class TestNormalizeComment:

    def test_trimmed(self):
        assert normalize_comment("  great  ") == "great"

    @pytest.mark.parametrize("value", ["", "   ", None, 12])
    def test_blank_rejected(self, value):
        with pytest.raises(ValidationError, match="Comment is required"):
            normalize_comment(value)


class TestCreate:

    def test_deterministic_id(self):
        review = _review()
        assert review.id == review_id_for("p1", "u1") == "p1:u1"
        assert review.created_at == NOW
        assert review.last_updated_at is None

    def test_blank_display_name_is_anonymous(self):
        assert _review(display_name="  ").display_name == ANONYMOUS

    def test_missing_user(self):
        with pytest.raises(MissingInputError) as info:
            _review(user_id="")
        assert info.value.code == "MISSING_USER"

    def test_missing_product(self):
        with pytest.raises(MissingInputError) as info:
            _review(product_id="")
        assert info.value.code == "MISSING_PRODUCT"


class TestRevise:

    def test_partial_edit_keeps_other_field(self):
        review = _review()
        later = datetime(2024, 6, 2, tzinfo=timezone.utc)
        review.revise(rating=2, now=later)
        assert review.rating == 2
        assert review.comment == "Nice"
        assert review.last_updated_at == later

    def test_invalid_edit_changes_nothing(self):
        review = _review()
        with pytest.raises(ValidationError):
            review.revise(rating=3, comment="   ")
        assert review.rating == 4
        assert review.comment == "Nice"

    def test_ownership(self):
        review = _review()
        review.assert_owned_by("u1")
        with pytest.raises(ForbiddenError, match="only delete your own"):
            review.assert_owned_by("u2", action="delete")


class TestDocumentMapping:

    def test_round_trip_fields(self):
        review = _review()
        restored = Review.from_document(Document(review.id, review.to_fields()))
        assert restored == review

    def test_loose_document(self):
        review = Review.from_document(Document("r", {"rating": "3", "createdAt": "2024-01-01T00:00:00"}))
        assert review.rating == 3
        assert review.display_name == ANONYMOUS
        assert review.created_at.tzinfo == timezone.utc
