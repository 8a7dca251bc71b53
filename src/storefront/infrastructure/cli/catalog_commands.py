"""CLI commands for browsing and searching the catalog."""

from __future__ import annotations

from typing import Iterable

import click

from storefront.application.catalog_pager import DEFAULT_PAGE_SIZE
from storefront.application.catalog_search import DEFAULT_SUGGESTION_LIMIT
from storefront.application.dto import Page
from storefront.domain.model.cart import effective_max_quantity
from storefront.domain.model.product import Product
from storefront.domain.store.document_store import ASCENDING, DESCENDING
from storefront.infrastructure.bootstrap import (
    add_product_handler,
    catalog_pager,
    catalog_search,
)


def _display_products(products: Iterable[Product]) -> None:
    click.echo(f"{'ID':<22} {'Name':<24} {'Category':<14} {'Price':>10} {'Stock':>6}")
    click.echo("-" * 80)
    for p in products:
        click.echo(
            f"{p.id:<22} {p.name:<24} {p.category:<14} "
            f"{str(p.effective_price):>10} {p.stock_quantity:>6}"
        )


def _display_page(page: Page[Product]) -> None:
    if not page.ok:
        raise click.ClickException(page.error.message)
    if not page.items:
        click.echo("No products found.")
        return
    _display_products(page.items)
    if page.has_more:
        click.echo()
        click.echo(f"Next cursor: {page.next_cursor}")


@click.command("list")
@click.option("--size", default=DEFAULT_PAGE_SIZE, show_default=True, help="Page size.")
@click.option("--sort", "sort_field", default="name", show_default=True, help="Sort field.")
@click.option(
    "--direction",
    type=click.Choice([ASCENDING, DESCENDING]),
    default=ASCENDING,
    show_default=True,
)
@click.option("--cursor", default=None, help="Cursor returned by the previous page.")
def catalog_list(size: int, sort_field: str, direction: str, cursor: str | None) -> None:
    """List products, one page at a time."""
    page = catalog_pager().list_products(
        page_size=size, sort_field=sort_field, sort_direction=direction, cursor=cursor
    )
    _display_page(page)


@click.command("filter")
@click.option("--size", default=DEFAULT_PAGE_SIZE, show_default=True, help="Page size.")
@click.option("--category", default=None, help="Exact category.")
@click.option("--min-price", default=None, help="Lowest price (inclusive).")
@click.option("--max-price", default=None, help="Highest price (inclusive).")
@click.option("--cursor", default=None, help="Cursor returned by the previous page.")
def catalog_filter(
    size: int,
    category: str | None,
    min_price: str | None,
    max_price: str | None,
    cursor: str | None,
) -> None:
    """List products by category and price range."""
    page = catalog_pager().list_filtered_products(
        page_size=size,
        category=category,
        price_min=min_price,
        price_max=max_price,
        cursor=cursor,
    )
    _display_page(page)


@click.command("search")
@click.argument("keyword")
@click.option("--size", default=DEFAULT_PAGE_SIZE, show_default=True, help="Page size.")
@click.option("--cursor", default=None, help="Cursor returned by the previous page.")
def catalog_search_command(keyword: str, size: int, cursor: str | None) -> None:
    """Search products by keyword."""
    page = catalog_search().search(keyword, page_size=size, cursor=cursor)
    _display_page(page)


@click.command("suggest")
@click.argument("keyword")
@click.option("--limit", default=DEFAULT_SUGGESTION_LIMIT, show_default=True)
def catalog_suggest(keyword: str, limit: int) -> None:
    """Suggest product names for a partial keyword."""
    page = catalog_search().suggest_names(keyword, limit=limit)
    if not page.ok:
        raise click.ClickException(page.error.message)
    for name in page.items:
        click.echo(name)


@click.command("show")
@click.option("--id", "product_id", required=True, help="Product ID.")
def catalog_show(product_id: str) -> None:
    """Show one product."""
    result = catalog_pager().get_by_id(product_id)
    if not result.success:
        raise click.ClickException(result.error.message)

    p = result.value
    click.echo(f"Product {p.id}  '{p.name}'")
    click.echo(f"Category: {p.category or '-'}")
    click.echo(f"Price:    {p.effective_price}  (list {p.price}, discount {p.discount}%)")
    click.echo(f"Stock:    {p.stock_quantity}")
    click.echo(f"Max/order: {effective_max_quantity(p)}")
    if p.description:
        click.echo()
        click.echo(p.description)


@click.command("add")
@click.option("--name", required=True, help="Product name.")
@click.option("--price", required=True, help="Price (e.g. 15.00).")
@click.option("--category", default="", help="Category.")
@click.option("--discount", default="0", help="Discount percent, 0 to 100.")
@click.option("--stock", "stock_quantity", type=int, default=None, help="Units in stock.")
@click.option("--cap", "per_order_cap", type=int, default=None, help="Max units per order.")
@click.option("--description", default="", help="Description.")
@click.option("--image", default="", help="Image URL.")
@click.option("--tag", "tags", multiple=True, help="Extra search term (repeatable).")
def catalog_add(
    name: str,
    price: str,
    category: str,
    discount: str,
    stock_quantity: int | None,
    per_order_cap: int | None,
    description: str,
    image: str,
    tags: tuple[str, ...],
) -> None:
    """Add a new product to the catalog."""
    result = add_product_handler().handle(
        name=name,
        price=price,
        category=category,
        discount=discount,
        stock_quantity=stock_quantity,
        per_order_cap=per_order_cap,
        image=image,
        description=description,
        extra_tokens=tags,
    )
    if not result.success:
        raise click.ClickException(result.error.message)

    product = result.value
    click.echo(f"Product {product.id} '{product.name}' added at {product.price}")
