"""End-to-end tests of the CLI against a JSON store in a temp directory."""

import json

import pytest
from click.testing import CliRunner

from storefront.infrastructure.cli.main import cli


@pytest.fixture
def runner(tmp_path, monkeypatch):
    monkeypatch.setenv("STOREFRONT_BACKEND", "json")
    monkeypatch.setenv("STOREFRONT_DATA_DIR", str(tmp_path))
    return CliRunner()


def _invoke(runner, *args):
    return runner.invoke(cli, list(args), catch_exceptions=False)


def _add_product(runner, name, price, *extra):
    result = _invoke(runner, "catalog", "add", "--name", name, "--price", price, *extra)
    assert result.exit_code == 0, result.output
    # "Product <id> '<name>' added at $x"
    return result.output.split()[1]


class TestCatalog:

    def test_add_list_and_show(self, runner):
        mug = _add_product(runner, "Mug", "8", "--category", "Kitchen", "--stock", "3")
        _add_product(runner, "Lamp", "30")

        listed = _invoke(runner, "catalog", "list")
        assert listed.exit_code == 0
        assert listed.output.index("Lamp") < listed.output.index("Mug")

        shown = _invoke(runner, "catalog", "show", "--id", mug)
        assert "Kitchen" in shown.output
        assert "Max/order: 3" in shown.output

    def test_paging_prints_cursor(self, runner):
        for name in ("A", "B", "C"):
            _add_product(runner, name, "1")
        result = _invoke(runner, "catalog", "list", "--size", "2")
        assert "Next cursor:" in result.output

    def test_search_and_suggest(self, runner):
        _add_product(runner, "Desk Lamp", "20", "--tag", "light")
        assert "Desk Lamp" in _invoke(runner, "catalog", "search", "light").output
        assert _invoke(runner, "catalog", "suggest", "des").output.strip() == "Desk Lamp"

    def test_unknown_product_is_an_error(self, runner):
        result = runner.invoke(cli, ["catalog", "show", "--id", "nope"])
        assert result.exit_code == 1
        assert "not found" in result.output

    def test_bad_cursor_is_an_error(self, runner):
        result = runner.invoke(cli, ["catalog", "list", "--cursor", "garbage"])
        assert result.exit_code == 1
        assert "Invalid page cursor" in result.output


class TestReviews:

    def test_add_conflict_and_list(self, runner):
        assert _invoke(runner, "review", "add", "--product", "p1", "--user", "u1",
                       "--rating", "5", "--comment", "Great").exit_code == 0
        again = runner.invoke(cli, ["review", "add", "--product", "p1", "--user", "u1",
                                    "--rating", "4", "--comment", "Again"])
        assert again.exit_code == 1
        assert "already reviewed" in again.output

        listed = _invoke(runner, "review", "list", "--product", "p1")
        assert "Great" in listed.output

    def test_edit_by_other_user_forbidden(self, runner):
        _invoke(runner, "review", "add", "--product", "p1", "--user", "u1",
                "--rating", "5", "--comment", "Great")
        result = runner.invoke(cli, ["review", "edit", "--id", "p1:u1", "--user", "u2",
                                     "--comment", "mine now"])
        assert result.exit_code == 1
        assert "your own review" in result.output


class TestCartAndOrders:

    def test_cart_to_order(self, runner):
        mug = _add_product(runner, "Mug", "8", "--stock", "2")
        assert _invoke(runner, "cart", "add", "--user", "u1", "--product", mug).exit_code == 0
        assert _invoke(runner, "cart", "inc", "--user", "u1", "--product", mug).exit_code == 0

        over = runner.invoke(cli, ["cart", "inc", "--user", "u1", "--product", mug])
        assert over.exit_code == 1
        assert "Only 2 in stock" in over.output

        shown = _invoke(runner, "cart", "show", "--user", "u1")
        assert "$16.00" in shown.output

        placed = _invoke(runner, "order", "place", "--user", "u1", "--shipping-fee", "4")
        assert placed.exit_code == 0, placed.output
        assert "$20.00" in placed.output
        assert "Cart is empty." in _invoke(runner, "cart", "show", "--user", "u1").output
        assert "pending" in _invoke(runner, "order", "list", "--user", "u1").output

    def test_create_from_payload(self, runner, tmp_path):
        payload = tmp_path / "order.json"
        payload.write_text(json.dumps({"userId": "u9", "items": [], "total": 12}))
        result = _invoke(runner, "order", "create", str(payload))
        assert result.exit_code == 0
        assert "created" in result.output

    def test_empty_cart_cannot_be_ordered(self, runner):
        result = runner.invoke(cli, ["order", "place", "--user", "u1"])
        assert result.exit_code == 1
        assert "Cart is empty" in result.output

    def test_set_and_remove(self, runner):
        lamp = _add_product(runner, "Lamp", "30", "--cap", "2")
        _invoke(runner, "cart", "add", "--user", "u1", "--product", lamp)

        assert "quantity 2" in _invoke(runner, "cart", "set", "--user", "u1",
                                       "--product", lamp, "--quantity", "2").output
        over = runner.invoke(cli, ["cart", "set", "--user", "u1", "--product", lamp,
                                   "--quantity", "3"])
        assert over.exit_code == 1
        assert "Max per order is 2" in over.output

        assert _invoke(runner, "cart", "remove", "--user", "u1", "--product", lamp).exit_code == 0


class TestConfiguration:

    def test_unknown_backend_is_a_clean_error(self, runner, monkeypatch):
        monkeypatch.setenv("STOREFRONT_BACKEND", "redis")
        result = runner.invoke(cli, ["catalog", "list"])
        assert result.exit_code == 1
        assert "Unknown STOREFRONT_BACKEND 'redis'" in result.output
        assert result.exception is None or isinstance(result.exception, SystemExit)

    def test_mongo_without_url(self, runner, monkeypatch):
        monkeypatch.setenv("STOREFRONT_BACKEND", "mongo")
        monkeypatch.delenv("DATABASE_URL", raising=False)
        result = runner.invoke(cli, ["catalog", "list"])
        assert result.exit_code == 1
        assert "DATABASE_URL and DATABASE_NAME" in result.output
