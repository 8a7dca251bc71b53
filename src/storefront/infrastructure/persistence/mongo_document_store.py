"""MongoDB implementation of DocumentStore.

Document ids are stored as string ``_id`` values so ids created here and
deterministic ids (reviews, cart entries) share one key space.
"""

from __future__ import annotations

import logging
from typing import Any, Mapping, Sequence

from bson import ObjectId
from pymongo import ASCENDING as MONGO_ASCENDING
from pymongo import DESCENDING as MONGO_DESCENDING
from pymongo import MongoClient
from pymongo.errors import DuplicateKeyError, PyMongoError

from storefront.domain.store.document_store import (
    DESCENDING,
    DOCUMENT_ID,
    Document,
    DocumentExistsError,
    DocumentNotFoundError,
    DocumentStore,
    FieldFilter,
    Ordering,
    StoreError,
)

logger = logging.getLogger(__name__)

_RANGE_OPERATORS = {"<": "$lt", "<=": "$lte", ">": "$gt", ">=": "$gte"}


def _key(field: str) -> str:
    return "_id" if field == DOCUMENT_ID else field


# --- Query translation --------------------------------------------------------


def _filter_clause(flt: FieldFilter) -> dict[str, Any]:
    if flt.op == "==":
        condition: Any = {"$eq": flt.value}
    elif flt.op == "in":
        condition = {"$in": list(flt.value)}
    elif flt.op == "array_contains":
        condition = {"$elemMatch": {"$eq": flt.value}}
    else:
        condition = {_RANGE_OPERATORS[flt.op]: flt.value}
    return {_key(flt.field): condition}


def effective_orderings(orderings: Sequence[Ordering]) -> list[Ordering]:
    """``orderings`` with the document-id tiebreaker appended when missing."""
    result = list(orderings)
    if not any(o.field == DOCUMENT_ID for o in result):
        result.append(Ordering(DOCUMENT_ID))
    return result


def _after_clause(orderings: Sequence[Ordering], position: Sequence[Any]) -> dict[str, Any]:
    # (a > x) or (a == x and b > y) or ...
    branches = []
    for i, ordering in enumerate(orderings):
        branch = {_key(o.field): {"$eq": v} for o, v in zip(orderings[:i], position[:i])}
        op = "$lt" if ordering.direction == DESCENDING else "$gt"
        branch[_key(ordering.field)] = {op: position[i]}
        branches.append(branch)
    return {"$or": branches}


def to_mongo_filter(
    filters: Sequence[FieldFilter] = (),
    orderings: Sequence[Ordering] = (),
    start_after: Sequence[Any] | None = None,
) -> dict[str, Any]:
    """Translate filters, ordered-field presence and a resume position."""
    if start_after is not None and len(start_after) != len(orderings):
        raise StoreError(
            f"start_after needs {len(orderings)} values, got {len(start_after)}"
        )

    clauses = [_filter_clause(f) for f in filters]
    present = {_key(f.field) for f in filters} | {_key(o.field) for o in orderings}
    present.discard("_id")
    clauses.extend({name: {"$exists": True}} for name in sorted(present))
    if start_after is not None and orderings:
        clauses.append(_after_clause(orderings, list(start_after)))

    if not clauses:
        return {}
    if len(clauses) == 1:
        return clauses[0]
    return {"$and": clauses}


def to_mongo_sort(orderings: Sequence[Ordering]) -> list[tuple[str, int]]:
    return [
        (_key(o.field), MONGO_DESCENDING if o.direction == DESCENDING else MONGO_ASCENDING)
        for o in effective_orderings(orderings)
    ]


def to_document(raw: Mapping[str, Any]) -> Document:
    fields = dict(raw)
    doc_id = fields.pop("_id")
    return Document(str(doc_id), fields)


# --- Store --------------------------------------------------------------------


class MongoDocumentStore(DocumentStore):

    def __init__(self, database_url: str, database_name: str) -> None:
        self._client: MongoClient = MongoClient(database_url, tz_aware=True)
        self._db = self._client[database_name]

    def get(self, collection: str, doc_id: str) -> Document | None:
        try:
            raw = self._db[collection].find_one({"_id": doc_id})
        except PyMongoError as exc:
            raise StoreError(f"get {collection}/{doc_id} failed: {exc}") from exc
        return to_document(raw) if raw is not None else None

    def query(
        self,
        collection: str,
        filters: Sequence[FieldFilter] = (),
        orderings: Sequence[Ordering] = (),
        start_after: Sequence[Any] | None = None,
        limit: int | None = None,
    ) -> list[Document]:
        criteria = to_mongo_filter(filters, orderings, start_after)
        if limit is not None and limit <= 0:
            return []
        logger.debug("query %s %s", collection, criteria)
        try:
            cursor = self._db[collection].find(criteria).sort(to_mongo_sort(orderings))
            if limit is not None:
                cursor = cursor.limit(limit)
            return [to_document(raw) for raw in cursor]
        except PyMongoError as exc:
            raise StoreError(f"query {collection} failed: {exc}") from exc

    def create(
        self,
        collection: str,
        fields: Mapping[str, Any],
        doc_id: str | None = None,
    ) -> str:
        new_id = doc_id if doc_id is not None else str(ObjectId())
        try:
            self._db[collection].insert_one({**fields, "_id": new_id})
        except DuplicateKeyError as exc:
            raise DocumentExistsError(f"{collection}/{new_id} already exists") from exc
        except PyMongoError as exc:
            raise StoreError(f"create in {collection} failed: {exc}") from exc
        return new_id

    def set(self, collection: str, doc_id: str, fields: Mapping[str, Any]) -> None:
        try:
            self._db[collection].replace_one({"_id": doc_id}, dict(fields), upsert=True)
        except PyMongoError as exc:
            raise StoreError(f"set {collection}/{doc_id} failed: {exc}") from exc

    def update(self, collection: str, doc_id: str, fields: Mapping[str, Any]) -> None:
        try:
            result = self._db[collection].update_one({"_id": doc_id}, {"$set": dict(fields)})
        except PyMongoError as exc:
            raise StoreError(f"update {collection}/{doc_id} failed: {exc}") from exc
        if result.matched_count == 0:
            raise DocumentNotFoundError(f"{collection}/{doc_id} does not exist")

    def delete(self, collection: str, doc_id: str) -> None:
        try:
            self._db[collection].delete_one({"_id": doc_id})
        except PyMongoError as exc:
            raise StoreError(f"delete {collection}/{doc_id} failed: {exc}") from exc
