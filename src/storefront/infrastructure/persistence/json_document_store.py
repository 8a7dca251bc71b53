"""JSON-file-backed implementation of DocumentStore.

One file per collection, ``<data_dir>/<collection>.json``, holding a list
of ``{"id": ..., "fields": {...}}`` records. Timestamps are stored as
``{"$date": "<iso-8601>"}``. Meant for local development and demos: every
call reads and rewrites the whole file.
"""

from __future__ import annotations

import json
import uuid
from datetime import datetime
from pathlib import Path
from typing import Any, Mapping, Sequence

from storefront.domain.store.document_store import (
    Document,
    DocumentExistsError,
    DocumentNotFoundError,
    DocumentStore,
    FieldFilter,
    Ordering,
    StoreError,
)
from storefront.infrastructure.persistence.document_matching import run_query


def _encode(value: Any) -> Any:
    if isinstance(value, datetime):
        return {"$date": value.isoformat()}
    raise TypeError(f"Cannot store {type(value).__name__} in a JSON document")


def _decode(raw: dict) -> Any:
    if set(raw) == {"$date"}:
        return datetime.fromisoformat(raw["$date"])
    return raw


def new_document_id() -> str:
    return uuid.uuid4().hex[:20]


class JsonDocumentStore(DocumentStore):

    def __init__(self, data_dir: Path) -> None:
        self._data_dir = data_dir

    # --- DocumentStore interface ----------------------------------------------

    def get(self, collection: str, doc_id: str) -> Document | None:
        return self._load(collection).get(doc_id)

    def query(
        self,
        collection: str,
        filters: Sequence[FieldFilter] = (),
        orderings: Sequence[Ordering] = (),
        start_after: Sequence[Any] | None = None,
        limit: int | None = None,
    ) -> list[Document]:
        return run_query(
            self._load(collection).values(), filters, orderings, start_after, limit
        )

    def create(
        self,
        collection: str,
        fields: Mapping[str, Any],
        doc_id: str | None = None,
    ) -> str:
        documents = self._load(collection)
        if doc_id is None:
            doc_id = new_document_id()
        elif doc_id in documents:
            raise DocumentExistsError(f"{collection}/{doc_id} already exists")
        documents[doc_id] = Document(doc_id, dict(fields))
        self._persist(collection, documents)
        return doc_id

    def set(self, collection: str, doc_id: str, fields: Mapping[str, Any]) -> None:
        documents = self._load(collection)
        documents[doc_id] = Document(doc_id, dict(fields))
        self._persist(collection, documents)

    def update(self, collection: str, doc_id: str, fields: Mapping[str, Any]) -> None:
        documents = self._load(collection)
        existing = documents.get(doc_id)
        if existing is None:
            raise DocumentNotFoundError(f"{collection}/{doc_id} does not exist")
        documents[doc_id] = Document(doc_id, {**existing.fields, **fields})
        self._persist(collection, documents)

    def delete(self, collection: str, doc_id: str) -> None:
        documents = self._load(collection)
        if documents.pop(doc_id, None) is not None:
            self._persist(collection, documents)

    # --- File helpers ---------------------------------------------------------

    def _path(self, collection: str) -> Path:
        return self._data_dir / f"{collection}.json"

    def _load(self, collection: str) -> dict[str, Document]:
        path = self._path(collection)
        if not path.exists():
            return {}
        try:
            raw = json.loads(path.read_text(encoding="utf-8"), object_hook=_decode)
        except (OSError, ValueError) as exc:
            raise StoreError(f"Cannot read {path}: {exc}") from exc
        return {item["id"]: Document(item["id"], item.get("fields", {})) for item in raw}

    def _persist(self, collection: str, documents: dict[str, Document]) -> None:
        raw = [{"id": doc.id, "fields": dict(doc.fields)} for doc in documents.values()]
        path = self._path(collection)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(
                json.dumps(raw, indent=2, default=_encode) + "\n", encoding="utf-8"
            )
        except (OSError, TypeError) as exc:
            raise StoreError(f"Cannot write {path}: {exc}") from exc
