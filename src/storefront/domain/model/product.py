"""Product record.

Products are written by catalog tooling and read by the storefront. The
stored documents are schemaless, so ``Product.from_document`` is the single
place that decides how missing or malformed fields are defaulted.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any

from storefront.domain.model.value_objects import Money, StockLevel, to_decimal
from storefront.domain.store.document_store import Document

PRODUCTS = "products"

_TOKEN_RE = re.compile(r"[^\W_]+", re.UNICODE)


def tokenize(*texts: str) -> tuple[str, ...]:
    """Lowercase search terms of ``texts``, de-duplicated in order."""
    seen: dict[str, None] = {}
    for text in texts:
        for token in _TOKEN_RE.findall((text or "").lower()):
            seen.setdefault(token, None)
    return tuple(seen)


def _discount_percent(value: Any) -> Decimal:
    number = to_decimal(value)
    if number is None:
        return Decimal("0")
    return min(max(number, Decimal("0")), Decimal("100"))


def _per_order_cap(value: Any) -> int | None:
    number = to_decimal(value)
    if number is None or number <= 0:
        return None
    return int(number)


def _text(value: Any) -> str:
    return value if isinstance(value, str) else ""


@dataclass
class Product:
    """A product in the catalog.

    ``per_order_cap`` is None when a single order may hold any quantity.
    """

    id: str
    name: str
    price: Money
    discount: Decimal = Decimal("0")
    image: str = ""
    category: str = ""
    description: str = ""
    stock: StockLevel = field(default_factory=StockLevel.untracked)
    per_order_cap: int | None = None
    search_tokens: tuple[str, ...] = ()
    name_search: str = ""

    @property
    def effective_price(self) -> Money:
        return self.price.discounted(self.discount)

    @property
    def stock_quantity(self) -> int:
        return self.stock.display_quantity

    # --- Document mapping -----------------------------------------------------

    @staticmethod
    def from_document(doc: Document) -> Product:
        tokens = doc.get("searchTokens")
        return Product(
            id=doc.id,
            name=_text(doc.get("name")),
            price=Money.lenient(doc.get("price")),
            discount=_discount_percent(doc.get("discount")),
            image=_text(doc.get("image")),
            category=_text(doc.get("category")),
            description=_text(doc.get("description")),
            stock=StockLevel.from_raw(doc.get("stockQuantity")),
            per_order_cap=_per_order_cap(doc.get("perOrderCap")),
            search_tokens=tuple(t for t in tokens if isinstance(t, str))
            if isinstance(tokens, list)
            else (),
            name_search=_text(doc.get("nameSearch")),
        )

    def to_fields(self) -> dict[str, Any]:
        fields: dict[str, Any] = {
            "name": self.name,
            "description": self.description,
            "price": float(self.price),
            "discount": float(self.discount),
            "image": self.image,
            "category": self.category,
            "searchTokens": list(self.search_tokens),
            "nameSearch": self.name_search,
        }
        if self.stock.is_tracked:
            fields["stockQuantity"] = self.stock.quantity
        if self.per_order_cap is not None:
            fields["perOrderCap"] = self.per_order_cap
        return fields
