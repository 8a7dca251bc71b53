import logging

import click

from storefront.infrastructure.bootstrap import ConfigurationError, configured_backend
from storefront.infrastructure.cli.cart_commands import (
    cart_add,
    cart_clear,
    cart_decrement,
    cart_increment,
    cart_remove,
    cart_set,
    cart_show,
)
from storefront.infrastructure.cli.catalog_commands import (
    catalog_add,
    catalog_filter,
    catalog_list,
    catalog_search_command,
    catalog_show,
    catalog_suggest,
)
from storefront.infrastructure.cli.order_commands import (
    order_create,
    order_list,
    order_place,
)
from storefront.infrastructure.cli.review_commands import (
    review_add,
    review_delete,
    review_edit,
    review_list,
)

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


@click.group()
@click.option("-v", "--verbose", is_flag=True, help="Log debug output to stderr.")
def cli(verbose: bool) -> None:
    """Storefront catalog, reviews, cart and orders"""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format=LOG_FORMAT,
    )
    try:
        configured_backend()
    except ConfigurationError as exc:
        raise click.ClickException(str(exc)) from exc


@cli.group()
def catalog() -> None:
    """Browse and search products."""


@cli.group()
def review() -> None:
    """Manage product reviews."""


@cli.group()
def cart() -> None:
    """Manage a user's cart."""


@cli.group()
def order() -> None:
    """Place and list orders."""


# Register subcommands
catalog.add_command(catalog_add)
catalog.add_command(catalog_filter)
catalog.add_command(catalog_list)
catalog.add_command(catalog_search_command)
catalog.add_command(catalog_show)
catalog.add_command(catalog_suggest)
review.add_command(review_add)
review.add_command(review_delete)
review.add_command(review_edit)
review.add_command(review_list)
cart.add_command(cart_add)
cart.add_command(cart_clear)
cart.add_command(cart_decrement)
cart.add_command(cart_increment)
cart.add_command(cart_remove)
cart.add_command(cart_set)
cart.add_command(cart_show)
order.add_command(order_create)
order.add_command(order_list)
order.add_command(order_place)
