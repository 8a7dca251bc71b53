"""Domain-level exceptions.

All business rule violations are expressed as subclasses of DomainException.
Each carries a taxonomy ``kind`` (what sort of failure it is) and a
specific ``code`` (which rule was broken) so the application layer can turn
them into structured failure results and the CLI can display them uniformly.
"""

from __future__ import annotations

from enum import Enum
from typing import Any


class ErrorKind(Enum):
    MISSING_INPUT = "MISSING_INPUT"
    INVALID_INPUT = "INVALID_INPUT"
    NOT_FOUND = "NOT_FOUND"
    FORBIDDEN = "FORBIDDEN"
    CONFLICT = "CONFLICT"
    STORE_FAILURE = "STORE_FAILURE"


class DomainException(Exception):
    """Base class for all domain errors."""

    kind = ErrorKind.INVALID_INPUT
    default_code = "INVALID_INPUT"

    def __init__(self, message: str, code: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.code = code or self.default_code


class MissingInputError(DomainException):
    """A required identifier or field was not supplied."""

    kind = ErrorKind.MISSING_INPUT
    default_code = "MISSING_INPUT"


class ValidationError(DomainException):
    """A business rule or invariant was violated."""


class EntityNotFoundError(DomainException):
    """A requested entity does not exist."""

    kind = ErrorKind.NOT_FOUND
    default_code = "NOT_FOUND"


class ForbiddenError(DomainException):
    """The caller does not own the entity it tried to change."""

    kind = ErrorKind.FORBIDDEN
    default_code = "FORBIDDEN"


class ConflictError(DomainException):
    """The entity already exists.

    ``existing`` holds the entity that caused the conflict, when known.
    """

    kind = ErrorKind.CONFLICT
    default_code = "CONFLICT"

    def __init__(
        self, message: str, code: str | None = None, existing: Any = None
    ) -> None:
        super().__init__(message, code)
        self.existing = existing
