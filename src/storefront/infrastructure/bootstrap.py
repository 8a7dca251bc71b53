"""Composition root: wires a concrete document store into the components.

This is the only place in the codebase that knows about *all* layers.
Settings come from the environment and are read on every call:

* ``STOREFRONT_BACKEND``: ``json`` (default) or ``mongo``
* ``STOREFRONT_DATA_DIR``: directory of the JSON collections
* ``DATABASE_URL`` / ``DATABASE_NAME``: MongoDB connection
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

from storefront.application.add_product import AddProductHandler
from storefront.application.cart_reconciliation import CartReconciler
from storefront.application.catalog_pager import CatalogPager
from storefront.application.catalog_search import CatalogSearch
from storefront.application.orders import OrderDesk
from storefront.application.review_ledger import ReviewLedger
from storefront.domain.store.document_store import DocumentStore
from storefront.infrastructure.persistence.json_document_store import JsonDocumentStore
from storefront.infrastructure.persistence.mongo_document_store import MongoDocumentStore

logger = logging.getLogger(__name__)

# Resolve data directory relative to the project root.
# When installed in editable mode the project root is the repo root.
_DEFAULT_DATA_DIR = Path(__file__).resolve().parents[3] / "data"

JSON_BACKEND = "json"
MONGO_BACKEND = "mongo"


class ConfigurationError(Exception):
    """The environment does not describe a usable store."""


def data_dir() -> Path:
    configured = os.getenv("STOREFRONT_DATA_DIR")
    return Path(configured) if configured else _DEFAULT_DATA_DIR


def configured_backend() -> str:
    """The selected backend, once its settings are known to be complete."""
    backend = os.getenv("STOREFRONT_BACKEND", JSON_BACKEND).strip().lower()
    if backend not in (JSON_BACKEND, MONGO_BACKEND):
        raise ConfigurationError(f"Unknown STOREFRONT_BACKEND {backend!r}")
    if backend == MONGO_BACKEND and not (os.getenv("DATABASE_URL") and os.getenv("DATABASE_NAME")):
        raise ConfigurationError("DATABASE_URL and DATABASE_NAME must be set for mongo")
    return backend


def document_store() -> DocumentStore:
    if configured_backend() == MONGO_BACKEND:
        name = os.environ["DATABASE_NAME"]
        logger.debug("using MongoDB database %s", name)
        return MongoDocumentStore(os.environ["DATABASE_URL"], name)
    logger.debug("using JSON store in %s", data_dir())
    return JsonDocumentStore(data_dir())


def catalog_pager(store: DocumentStore | None = None) -> CatalogPager:
    return CatalogPager(store or document_store())


def catalog_search(store: DocumentStore | None = None) -> CatalogSearch:
    return CatalogSearch(store or document_store())


def review_ledger(store: DocumentStore | None = None) -> ReviewLedger:
    return ReviewLedger(store or document_store())


def cart_reconciler(store: DocumentStore | None = None) -> CartReconciler:
    store = store or document_store()
    return CartReconciler(store, catalog=CatalogPager(store))


def order_desk(store: DocumentStore | None = None) -> OrderDesk:
    store = store or document_store()
    return OrderDesk(store, cart=cart_reconciler(store))


def add_product_handler(store: DocumentStore | None = None) -> AddProductHandler:
    return AddProductHandler(store or document_store())
