"""Unit tests for opaque page cursors."""

import base64
import json
from datetime import datetime, timezone

import pytest

from storefront.domain.exceptions import ValidationError
from storefront.domain.model.cursor import BY_ID, REVIEWS, SEARCH, SORTED, PageCursor


def _raw_token(payload) -> str:
    raw = json.dumps(payload).encode("utf-8")
    return base64.urlsafe_b64encode(raw).decode("ascii")


class TestRoundTrip:

    def test_sorted_cursor(self):
        cursor = PageCursor(SORTED, ("price", "asc"), (12.5, "p7"))
        decoded = PageCursor.decode(cursor.encode(), SORTED, ("price", "asc"))
        assert decoded == cursor
        assert decoded.last_id == "p7"

    def test_datetime_position_survives(self):
        created = datetime(2024, 3, 1, 12, 30, tzinfo=timezone.utc)
        cursor = PageCursor(REVIEWS, ("p1",), (created, "p1:u1"))
        decoded = PageCursor.decode(cursor.encode(), REVIEWS, ("p1",))
        assert decoded.position == (created, "p1:u1")

    def test_token_is_url_safe(self):
        token = PageCursor(SEARCH, ("prefix", "café"), ("café au lait", "x")).encode()
        assert "=" not in token
        assert "+" not in token and "/" not in token


class TestRejection:

    def test_garbage(self):
        with pytest.raises(ValidationError, match="Invalid page cursor") as info:
            PageCursor.decode("not a cursor!!", BY_ID)
        assert info.value.code == "INVALID_CURSOR"

    def test_empty(self):
        with pytest.raises(ValidationError, match="empty token"):
            PageCursor.decode("", BY_ID)

    def test_wrong_kind(self):
        token = PageCursor(BY_ID, (), ("p1",)).encode()
        with pytest.raises(ValidationError, match="expected a sorted cursor"):
            PageCursor.decode(token, SORTED)

    def test_wrong_scope(self):
        token = PageCursor(SORTED, ("name", "asc"), ("Lamp", "p1")).encode()
        with pytest.raises(ValidationError, match="different query"):
            PageCursor.decode(token, SORTED, ("price", "asc"))

    def test_unknown_version(self):
        token = _raw_token({"v": 99, "k": BY_ID, "s": [], "p": ["p1"]})
        with pytest.raises(ValidationError, match="unsupported version"):
            PageCursor.decode(token, BY_ID)

    def test_position_must_end_with_id(self):
        token = _raw_token({"v": 1, "k": BY_ID, "s": [], "p": [42]})
        with pytest.raises(ValidationError, match="missing document id"):
            PageCursor.decode(token, BY_ID)
