"""Abstract Document Store Client.

Defined in the domain layer so the domain never depends on
infrastructure. Concrete implementations (JSON files, MongoDB, in-memory)
live in the infrastructure layer and in the test fakes.

Documents are schemaless, ordered field mappings addressed by a string id
within a named collection.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Mapping, Sequence

# Pseudo field name that addresses the document identifier in filters
# and orderings.
DOCUMENT_ID = "__id__"

ASCENDING = "asc"
DESCENDING = "desc"

FILTER_OPERATORS = ("==", "<", "<=", ">", ">=", "in", "array_contains")


class StoreError(Exception):
    """The underlying store or its transport failed."""


class DocumentExistsError(StoreError):
    """An insert-if-absent hit an existing document id."""


class DocumentNotFoundError(StoreError):
    """An update targeted a document that does not exist."""


@dataclass(frozen=True)
class Document:
    id: str
    fields: Mapping[str, Any] = field(default_factory=dict)

    def get(self, name: str, default: Any = None) -> Any:
        if name == DOCUMENT_ID:
            return self.id
        return self.fields.get(name, default)

    def has(self, name: str) -> bool:
        return name == DOCUMENT_ID or name in self.fields


@dataclass(frozen=True)
class FieldFilter:
    field: str
    op: str
    value: Any

    def __post_init__(self) -> None:
        if self.op not in FILTER_OPERATORS:
            raise ValueError(f"Unsupported filter operator {self.op!r}")


@dataclass(frozen=True)
class Ordering:
    field: str
    direction: str = ASCENDING

    def __post_init__(self) -> None:
        if self.direction not in (ASCENDING, DESCENDING):
            raise ValueError(f"Unsupported sort direction {self.direction!r}")


class DocumentStore(ABC):
    """Contract of the remote document store.

    Every method raises ``StoreError`` (or a subclass) when the store fails.
    """

    # Largest list accepted by an ``in`` filter.
    max_in_list: int = 10

    @abstractmethod
    def get(self, collection: str, doc_id: str) -> Document | None:
        """Return a document by id, or None if it does not exist."""

    @abstractmethod
    def query(
        self,
        collection: str,
        filters: Sequence[FieldFilter] = (),
        orderings: Sequence[Ordering] = (),
        start_after: Sequence[Any] | None = None,
        limit: int | None = None,
    ) -> list[Document]:
        """Return matching documents.

        Documents lacking a field named in ``orderings`` are excluded.
        ``start_after`` holds one value per ordering and resumes strictly
        after that position.
        """

    @abstractmethod
    def create(
        self,
        collection: str,
        fields: Mapping[str, Any],
        doc_id: str | None = None,
    ) -> str:
        """Insert a new document and return its id.

        With an explicit ``doc_id`` the insert is conditional: it raises
        ``DocumentExistsError`` when that id is already taken.
        """

    @abstractmethod
    def set(self, collection: str, doc_id: str, fields: Mapping[str, Any]) -> None:
        """Create or fully replace a document."""

    @abstractmethod
    def update(self, collection: str, doc_id: str, fields: Mapping[str, Any]) -> None:
        """Merge ``fields`` into an existing document.

        Raises ``DocumentNotFoundError`` when the document does not exist.
        """

    @abstractmethod
    def delete(self, collection: str, doc_id: str) -> None:
        """Delete a document. Deleting a missing document is not an error."""
