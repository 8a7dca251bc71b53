"""In-process evaluation of document store queries.

Used by stores that hold documents in memory (the JSON-file store and the
test fakes) so they answer queries with the same semantics as a remote
document database:

* a filter never matches a document that lacks the field;
* range filters only compare values of the same kind (numbers with
  numbers, strings with strings, ...);
* documents lacking an ordered field are left out of ordered queries;
* results always end with a document-id tiebreaker so ordering is total.
"""

from __future__ import annotations

import functools
from datetime import datetime, timezone
from typing import Any, Iterable, Sequence

from storefront.domain.store.document_store import (
    ASCENDING,
    DESCENDING,
    DOCUMENT_ID,
    Document,
    FieldFilter,
    Ordering,
    StoreError,
)


def _rank(value: Any) -> int:
    if value is None:
        return 0
    if isinstance(value, bool):
        return 1
    if isinstance(value, (int, float)):
        return 2
    if isinstance(value, str):
        return 3
    if isinstance(value, datetime):
        return 4
    return 5


def _comparable(value: Any) -> Any:
    if isinstance(value, datetime) and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    if _rank(value) == 5:
        return repr(value)
    return value


def compare_values(left: Any, right: Any) -> int:
    """Total order over stored values: by kind first, then by value."""
    left_rank, right_rank = _rank(left), _rank(right)
    if left_rank != right_rank:
        return -1 if left_rank < right_rank else 1
    a, b = _comparable(left), _comparable(right)
    if a == b:
        return 0
    return -1 if a < b else 1


def matches(doc: Document, flt: FieldFilter) -> bool:
    if not doc.has(flt.field):
        return False
    value = doc.get(flt.field)

    if flt.op == "array_contains":
        return isinstance(value, list) and flt.value in value
    if flt.op == "in":
        return any(_rank(value) == _rank(v) and compare_values(value, v) == 0 for v in flt.value)
    if _rank(value) != _rank(flt.value):
        return False

    order = compare_values(value, flt.value)
    if flt.op == "==":
        return order == 0
    if flt.op == "<":
        return order < 0
    if flt.op == "<=":
        return order <= 0
    if flt.op == ">":
        return order > 0
    return order >= 0


def _compare_keys(
    left: Sequence[Any], right: Sequence[Any], orderings: Sequence[Ordering]
) -> int:
    for a, b, ordering in zip(left, right, orderings):
        order = compare_values(a, b)
        if order:
            return -order if ordering.direction == DESCENDING else order
    return 0


def run_query(
    docs: Iterable[Document],
    filters: Sequence[FieldFilter] = (),
    orderings: Sequence[Ordering] = (),
    start_after: Sequence[Any] | None = None,
    limit: int | None = None,
) -> list[Document]:
    if start_after is not None and len(start_after) != len(orderings):
        raise StoreError(
            f"start_after needs {len(orderings)} values, got {len(start_after)}"
        )

    effective = list(orderings)
    if not any(o.field == DOCUMENT_ID for o in effective):
        effective.append(Ordering(DOCUMENT_ID, ASCENDING))

    selected = [
        doc
        for doc in docs
        if all(matches(doc, f) for f in filters)
        and all(doc.has(o.field) for o in orderings)
    ]

    def key_of(doc: Document) -> list[Any]:
        return [doc.get(o.field) for o in effective]

    selected.sort(
        key=functools.cmp_to_key(
            lambda a, b: _compare_keys(key_of(a), key_of(b), effective)
        )
    )

    if start_after is not None:
        position = list(start_after)
        selected = [
            doc
            for doc in selected
            if _compare_keys(key_of(doc)[: len(position)], position, orderings) > 0
        ]

    if limit is not None:
        selected = selected[:limit]
    return selected
