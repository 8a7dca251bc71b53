"""Opaque page cursors.

A cursor records where the previous page ended: the sort-key values of its
last document, the last element always being the document id so the
position is unambiguous even when sort values repeat. It also records the
shape of the query it came from (``kind`` and ``scope``) so it can be
rejected when replayed against a different query.

Callers only ever see the encoded string.
"""

from __future__ import annotations

import base64
import binascii
import json
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from storefront.domain.exceptions import ValidationError

CURSOR_VERSION = 1

SORTED = "sorted"
BY_ID = "id"
SEARCH = "search"
REVIEWS = "reviews"

_KINDS = (SORTED, BY_ID, SEARCH, REVIEWS)


def _encode_value(value: Any) -> Any:
    if isinstance(value, datetime):
        return {"$dt": value.isoformat()}
    return value


def _decode_value(value: Any) -> Any:
    if isinstance(value, dict) and set(value) == {"$dt"}:
        return datetime.fromisoformat(value["$dt"])
    return value


def _invalid(reason: str) -> ValidationError:
    return ValidationError(f"Invalid page cursor: {reason}", code="INVALID_CURSOR")


@dataclass(frozen=True)
class PageCursor:
    kind: str
    scope: tuple[str, ...]
    position: tuple[Any, ...]
    version: int = CURSOR_VERSION

    @property
    def last_id(self) -> str:
        return self.position[-1]

    def encode(self) -> str:
        payload = {
            "v": self.version,
            "k": self.kind,
            "s": list(self.scope),
            "p": [_encode_value(v) for v in self.position],
        }
        raw = json.dumps(payload, separators=(",", ":"), sort_keys=True)
        return base64.urlsafe_b64encode(raw.encode("utf-8")).decode("ascii").rstrip("=")

    @staticmethod
    def decode(
        token: str, kind: str, scope: tuple[str, ...] | None = None
    ) -> PageCursor:
        """Parse ``token`` and check it belongs to a query of ``kind``/``scope``.

        ``scope=None`` skips the scope check; the caller validates it.
        """
        if not isinstance(token, str) or not token:
            raise _invalid("empty token")
        try:
            padded = token + "=" * (-len(token) % 4)
            payload = json.loads(base64.urlsafe_b64decode(padded.encode("ascii")))
        except (binascii.Error, UnicodeError, ValueError) as exc:
            raise _invalid("malformed token") from exc

        if not isinstance(payload, dict):
            raise _invalid("malformed token")
        if payload.get("v") != CURSOR_VERSION:
            raise _invalid(f"unsupported version {payload.get('v')!r}")
        if payload.get("k") not in _KINDS or payload.get("k") != kind:
            raise _invalid(f"expected a {kind} cursor")

        raw_scope = payload.get("s")
        raw_position = payload.get("p")
        if not isinstance(raw_scope, list) or not isinstance(raw_position, list):
            raise _invalid("malformed token")
        if not raw_position or not isinstance(raw_position[-1], str):
            raise _invalid("missing document id")

        try:
            position = tuple(_decode_value(v) for v in raw_position)
        except ValueError as exc:
            raise _invalid("malformed timestamp") from exc

        cursor = PageCursor(
            kind=kind,
            scope=tuple(str(s) for s in raw_scope),
            position=position,
        )
        if scope is not None and cursor.scope != tuple(scope):
            raise _invalid("cursor belongs to a different query")
        return cursor
