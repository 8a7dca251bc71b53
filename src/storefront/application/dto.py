"""Data Transfer Objects: plain containers that cross layer boundaries.

Every public application function returns one of these instead of raising,
so callers can render empty states and error messages without catching
anything. Read functions return a ``Page`` (never None in place of a list);
mutating functions return a ``MutationResult``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Generic, TypeVar

from storefront.domain.exceptions import DomainException, ErrorKind
from storefront.domain.model.cart import CartLine
from storefront.domain.model.value_objects import Money
from storefront.domain.store.document_store import StoreError

T = TypeVar("T")


@dataclass(frozen=True)
class Failure:
    kind: ErrorKind
    code: str
    message: str

    @staticmethod
    def from_exception(exc: DomainException) -> Failure:
        return Failure(kind=exc.kind, code=exc.code, message=exc.message)

    @staticmethod
    def from_store_error(exc: StoreError, fallback: str) -> Failure:
        return Failure(
            kind=ErrorKind.STORE_FAILURE,
            code=ErrorKind.STORE_FAILURE.value,
            message=str(exc) or fallback,
        )


@dataclass(frozen=True)
class Page(Generic[T]):
    """One page of results plus the cursor that continues it."""

    items: list[T] = field(default_factory=list)
    next_cursor: str | None = None
    has_more: bool = False
    error: Failure | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @staticmethod
    def failed(failure: Failure) -> Page:
        return Page(items=[], next_cursor=None, has_more=False, error=failure)


@dataclass(frozen=True)
class MutationResult(Generic[T]):
    """Outcome of a write (or single-entity read).

    On a conflict ``value`` holds the entity already in place.
    """

    success: bool
    value: T | None = None
    error: Failure | None = None

    @staticmethod
    def succeeded(value: T | None = None) -> MutationResult[T]:
        return MutationResult(success=True, value=value)

    @staticmethod
    def failed(failure: Failure, value: T | None = None) -> MutationResult[T]:
        return MutationResult(success=False, value=value, error=failure)


@dataclass(frozen=True)
class CartView:
    """A user's cart joined with products and reconciled against limits.

    ``adjusted`` lists the product ids whose stored quantity was corrected.
    ``error`` reports the first failed write, if any; the other lines are
    still reconciled.
    """

    lines: list[CartLine] = field(default_factory=list)
    adjusted: list[str] = field(default_factory=list)
    error: Failure | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def total_items(self) -> int:
        return sum(line.quantity for line in self.lines)

    @property
    def subtotal(self) -> Money:
        result = Money.zero()
        for line in self.lines:
            result = result + line.line_total
        return result
