"""Integration tests for the Catalog Search Engine."""

from storefront.application.catalog_pager import CatalogPager
from storefront.application.catalog_search import CatalogSearch
from storefront.domain.exceptions import ErrorKind
from storefront.domain.model.product import tokenize
from tests.fakes import FakeDocumentStore


def _add(store: FakeDocumentStore, doc_id: str, name: str, *extra: str) -> None:
    store.seed_product(doc_id, name, searchTokens=list(tokenize(name, *extra)))


def _setup() -> tuple[CatalogSearch, FakeDocumentStore]:
    store = FakeDocumentStore()
    _add(store, "a", "Blue Denim Jacket")
    _add(store, "b", "Denim Shorts")
    _add(store, "c", "Jacketed Mug")
    _add(store, "d", "Desk Lamp")
    _add(store, "e", "Floor Lamp")
    _add(store, "f", "Lampshade")
    return CatalogSearch(store), store


class TestPhaseSelection:

    def test_token_hit_served_by_token_phase(self):
        search, _ = _setup()
        page = search.search("jacket")
        assert [p.id for p in page.items] == ["a"]

    def test_prefix_only_hit_served_by_prefix_phase(self):
        search, _ = _setup()
        page = search.search("jack")
        assert [p.id for p in page.items] == ["c"]

    def test_keyword_is_normalized(self):
        search, _ = _setup()
        page = search.search("  DENIM ")
        assert [p.id for p in page.items] == ["a", "b"]

    def test_no_match(self):
        search, _ = _setup()
        page = search.search("zebra")
        assert page.ok
        assert page.items == []
        assert page.has_more is False

    def test_empty_keyword_does_not_query(self):
        search, store = _setup()
        page = search.search("   ")
        assert page.items == []
        assert page.has_more is False
        assert store.queries == []


class TestPaging:

    def test_token_phase_pages(self):
        store = FakeDocumentStore()
        for i in range(12):
            _add(store, f"s{i:02d}", f"Shirt {i:02d}")
        search = CatalogSearch(store)

        sizes, ids, cursor = [], [], None
        while True:
            page = search.search("shirt", page_size=5, cursor=cursor)
            sizes.append(len(page.items))
            ids += [p.id for p in page.items]
            if not page.has_more:
                break
            cursor = page.next_cursor
        assert sizes == [5, 5, 2]
        assert ids == sorted(ids)
        assert len(set(ids)) == 12

    def test_prefix_phase_pages(self):
        store = FakeDocumentStore()
        for i in range(7):
            store.seed_product(f"x{i}", f"Lantern {7 - i}")
        search = CatalogSearch(store)

        first = search.search("lan", page_size=3)
        second = search.search("lan", page_size=3, cursor=first.next_cursor)
        third = search.search("lan", page_size=3, cursor=second.next_cursor)
        names = [p.name for page in (first, second, third) for p in page.items]
        assert names == [f"Lantern {i}" for i in range(1, 8)]
        assert third.has_more is False

    def test_exhausted_token_phase_does_not_fall_back(self):
        search, _ = _setup()
        first = search.search("lamp", page_size=2)
        assert [p.id for p in first.items] == ["d", "e"]
        assert first.has_more is True

        second = search.search("lamp", page_size=2, cursor=first.next_cursor)
        assert second.ok
        assert second.items == []
        assert second.has_more is False


class TestCursorValidation:

    def test_cursor_for_other_keyword_rejected(self):
        search, _ = _setup()
        cursor = search.search("lamp", page_size=1).next_cursor
        page = search.search("denim", cursor=cursor)
        assert page.error.kind is ErrorKind.INVALID_INPUT
        assert page.error.code == "INVALID_CURSOR"

    def test_listing_cursor_rejected(self):
        search, store = _setup()
        cursor = CatalogPager(store).list_products(page_size=1).next_cursor
        page = search.search("lamp", cursor=cursor)
        assert page.error.code == "INVALID_CURSOR"


class TestFailures:

    def test_store_failure(self):
        search, store = _setup()
        store.fail_on.add("query")
        page = search.search("lamp")
        assert page.error.kind is ErrorKind.STORE_FAILURE
        assert page.items == []


class TestSuggestNames:

    def test_token_matches_first(self):
        search, _ = _setup()
        assert search.suggest_names("lamp").items == ["Desk Lamp", "Floor Lamp"]

    def test_prefix_fallback(self):
        search, _ = _setup()
        assert search.suggest_names("lampsh").items == ["Lampshade"]

    def test_limit(self):
        search, _ = _setup()
        assert search.suggest_names("denim", limit=1).items == ["Blue Denim Jacket"]

    def test_empty_keyword(self):
        search, store = _setup()
        page = search.suggest_names("  ")
        assert page.ok
        assert page.items == []
        assert store.queries == []

    def test_failure_reported(self):
        search, store = _setup()
        store.fail_on.add("query")
        page = search.suggest_names("lamp")
        assert page.items == []
        assert page.error.kind is ErrorKind.STORE_FAILURE
