"""Tests for translating store queries into MongoDB filters and sorts.

Only the pure translation is tested here; no MongoDB server is needed.
"""

import pytest
from pymongo import ASCENDING, DESCENDING

from storefront.domain.store.document_store import (
    DESCENDING as DESC,
    DOCUMENT_ID,
    FieldFilter,
    Ordering,
    StoreError,
)
from storefront.infrastructure.persistence.mongo_document_store import (
    to_document,
    to_mongo_filter,
    to_mongo_sort,
)


class TestFilters:

    def test_empty(self):
        assert to_mongo_filter() == {}

    def test_single_equality_needs_field_present(self):
        assert to_mongo_filter([FieldFilter("category", "==", "Tops")]) == {
            "$and": [
                {"category": {"$eq": "Tops"}},
                {"category": {"$exists": True}},
            ]
        }

    def test_document_id_maps_to_underscore_id(self):
        assert to_mongo_filter([FieldFilter(DOCUMENT_ID, "in", ["a", "b"])]) == {
            "_id": {"$in": ["a", "b"]}
        }

    def test_array_contains_and_ranges(self):
        criteria = to_mongo_filter([
            FieldFilter("searchTokens", "array_contains", "mug"),
            FieldFilter("price", ">=", 2.0),
            FieldFilter("price", "<", 9.0),
        ])
        clauses = criteria["$and"]
        assert {"searchTokens": {"$elemMatch": {"$eq": "mug"}}} in clauses
        assert {"price": {"$gte": 2.0}} in clauses
        assert {"price": {"$lt": 9.0}} in clauses
        assert {"price": {"$exists": True}} in clauses

    def test_ordered_fields_must_exist(self):
        criteria = to_mongo_filter(orderings=[Ordering("name"), Ordering(DOCUMENT_ID)])
        assert criteria == {"name": {"$exists": True}}


class TestStartAfter:

    def test_expands_to_or_of_prefixes(self):
        orderings = [Ordering("createdAt", DESC), Ordering(DOCUMENT_ID, DESC)]
        criteria = to_mongo_filter(orderings=orderings, start_after=("t1", "r9"))
        assert criteria["$and"][-1] == {
            "$or": [
                {"createdAt": {"$lt": "t1"}},
                {"createdAt": {"$eq": "t1"}, "_id": {"$lt": "r9"}},
            ]
        }

    def test_ascending_uses_gt(self):
        criteria = to_mongo_filter(orderings=[Ordering(DOCUMENT_ID)], start_after=("p5",))
        assert criteria == {"$or": [{"_id": {"$gt": "p5"}}]}

    def test_shape_checked(self):
        with pytest.raises(StoreError):
            to_mongo_filter(orderings=[Ordering("name")], start_after=("x", "y"))


class TestSort:

    def test_id_tiebreak_appended(self):
        assert to_mongo_sort([Ordering("price", DESC)]) == [
            ("price", DESCENDING),
            ("_id", ASCENDING),
        ]

    def test_explicit_id_kept(self):
        assert to_mongo_sort([Ordering(DOCUMENT_ID, DESC)]) == [("_id", DESCENDING)]


class TestToDocument:

    def test_id_split_from_fields(self):
        doc = to_document({"_id": "abc", "name": "Mug"})
        assert doc.id == "abc"
        assert doc.fields == {"name": "Mug"}
