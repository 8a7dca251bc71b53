"""Value Objects shared across the domain.

Value Objects are immutable and compared by value, not identity.
They encapsulate validation so invalid values can never exist.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any

from storefront.domain.exceptions import ValidationError

# Shown to callers when a product does not track stock at all.
DEFAULT_STOCK_QUANTITY = 100


def to_decimal(value: Any) -> Decimal | None:
    """Coerce a loosely typed document value to Decimal, or None."""
    if value is None or isinstance(value, bool):
        return None
    try:
        result = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        return None
    if not result.is_finite():
        return None
    return result


def to_timestamp(value: Any) -> datetime | None:
    """Read a stored timestamp; naive values are taken to be UTC."""
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str) and value:
        try:
            parsed = datetime.fromisoformat(value)
        except ValueError:
            return None
    else:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


@dataclass(frozen=True)
class Money:
    """Monetary amount with currency.

    Uses Decimal to avoid floating-point rounding errors that would be
    unacceptable in financial calculations.
    """

    amount: Decimal
    currency: str = "USD"

    def __post_init__(self) -> None:
        if not isinstance(self.amount, Decimal):
            raise ValidationError(
                f"Money amount must be a Decimal, got {type(self.amount).__name__}"
            )
        if self.amount < Decimal("0"):
            raise ValidationError(
                f"Money amount cannot be negative, got {self.amount}"
            )

    # --- Arithmetic helpers ---------------------------------------------------

    def __add__(self, other: Money) -> Money:
        self._assert_same_currency(other)
        return Money(self.amount + other.amount, self.currency)

    def __mul__(self, factor: int) -> Money:
        if not isinstance(factor, int):
            raise TypeError(f"Can only multiply Money by int, got {type(factor).__name__}")
        return Money(self.amount * factor, self.currency)

    def __lt__(self, other: Money) -> bool:
        self._assert_same_currency(other)
        return self.amount < other.amount

    def __le__(self, other: Money) -> bool:
        self._assert_same_currency(other)
        return self.amount <= other.amount

    def discounted(self, percent: Decimal) -> Money:
        """Price after a percentage discount, never below zero."""
        result = self.amount * (Decimal("1") - percent / Decimal("100"))
        result = result.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
        return Money(max(result, Decimal("0")), self.currency)

    # --- Display --------------------------------------------------------------

    def __str__(self) -> str:
        return f"${self.amount:.2f}"

    def __float__(self) -> float:
        return float(self.amount)

    # --- Internal helpers -----------------------------------------------------

    def _assert_same_currency(self, other: Money) -> None:
        if self.currency != other.currency:
            raise ValidationError(
                f"Cannot combine {self.currency} with {other.currency}"
            )

    # --- Factories ------------------------------------------------------------

    @staticmethod
    def of(amount: str | float | int | Decimal) -> Money:
        """Convenient factory that coerces to Decimal safely."""
        value = to_decimal(amount)
        if value is None:
            raise ValidationError(f"Invalid money amount: {amount!r}")
        return Money(value)

    @staticmethod
    def zero() -> Money:
        return Money(Decimal("0"))

    @staticmethod
    def lenient(amount: Any) -> Money:
        """Like ``of`` but maps missing, malformed or negative input to zero.

        Stored documents are schemaless; a bad price must not break a page.
        """
        value = to_decimal(amount)
        if value is None or value < 0:
            return Money.zero()
        return Money(value)


@dataclass(frozen=True)
class Quantity:
    """A positive integer quantity.

    Enforces the invariant that you cannot order zero or negative items.
    """

    value: int

    def __post_init__(self) -> None:
        if not isinstance(self.value, int) or isinstance(self.value, bool):
            raise ValidationError(
                f"Quantity must be an integer, got {type(self.value).__name__}"
            )
        if self.value <= 0:
            raise ValidationError("Quantity must be positive")

    def __str__(self) -> str:
        return str(self.value)


@dataclass(frozen=True)
class StockLevel:
    """How many units of a product are in stock.

    Three states: untracked (``quantity is None``), out of stock (zero) and
    an explicit count. Only a positive count limits purchases.
    """

    quantity: int | None = None

    def __post_init__(self) -> None:
        if self.quantity is not None and self.quantity < 0:
            raise ValidationError("Stock quantity cannot be negative")

    @property
    def is_tracked(self) -> bool:
        return self.quantity is not None

    @property
    def limits_purchase(self) -> bool:
        return self.quantity is not None and self.quantity > 0

    @property
    def display_quantity(self) -> int:
        if self.quantity is None:
            return DEFAULT_STOCK_QUANTITY
        return self.quantity

    @staticmethod
    def untracked() -> StockLevel:
        return StockLevel(None)

    @staticmethod
    def from_raw(value: Any) -> StockLevel:
        number = to_decimal(value)
        if number is None:
            return StockLevel.untracked()
        return StockLevel(max(int(number), 0))
