"""CLI commands for a user's cart."""

from __future__ import annotations

import click

from storefront.application.dto import MutationResult
from storefront.infrastructure.bootstrap import cart_reconciler

_user_option = click.option("--user", "user_id", required=True, help="User ID.")
_product_option = click.option("--product", "product_id", required=True, help="Product ID.")


def _report(result: MutationResult) -> None:
    if not result.success:
        raise click.ClickException(result.error.message)
    entry = result.value
    click.echo(f"{entry.product_id}: quantity {entry.quantity}")


@click.command("show")
@_user_option
def cart_show(user_id: str) -> None:
    """Show the cart, reconciled against current stock and limits."""
    view = cart_reconciler().load_cart(user_id)
    if not view.lines and view.error is not None:
        raise click.ClickException(view.error.message)
    if not view.lines:
        click.echo("Cart is empty.")
        return

    click.echo(f"  {'Product':<24} {'Qty':>5} {'Max':>5} {'Price':>10} {'Total':>10}")
    click.echo(f"  {'-'*58}")
    for line in view.lines:
        click.echo(
            f"  {line.product.name:<24} {line.quantity:>5} {line.max_quantity:>5} "
            f"{str(line.product.effective_price):>10} {str(line.line_total):>10}"
        )
    click.echo(f"  {'-'*58}")
    click.echo(f"  {'Subtotal':<24} {view.total_items:>5} {str(view.subtotal):>27}")

    if view.adjusted:
        click.echo()
        click.echo(f"Quantities adjusted: {', '.join(view.adjusted)}")
    if view.error is not None:
        click.echo(f"Warning: {view.error.message}", err=True)


@click.command("add")
@_user_option
@_product_option
@click.option("--quantity", type=int, default=1, show_default=True)
def cart_add(user_id: str, product_id: str, quantity: int) -> None:
    """Add units of a product to the cart."""
    _report(cart_reconciler().add_to_cart(user_id, product_id, quantity))


@click.command("inc")
@_user_option
@_product_option
def cart_increment(user_id: str, product_id: str) -> None:
    """Add one unit of a product already in the cart."""
    _report(cart_reconciler().change_quantity(user_id, product_id, 1))


@click.command("dec")
@_user_option
@_product_option
def cart_decrement(user_id: str, product_id: str) -> None:
    """Remove one unit of a product already in the cart."""
    _report(cart_reconciler().change_quantity(user_id, product_id, -1))


@click.command("remove")
@_user_option
@_product_option
def cart_remove(user_id: str, product_id: str) -> None:
    """Remove a product from the cart."""
    result = cart_reconciler().remove_item(user_id, product_id)
    if not result.success:
        raise click.ClickException(result.error.message)
    click.echo(f"{product_id} removed from cart.")


@click.command("clear")
@_user_option
def cart_clear(user_id: str) -> None:
    """Empty the cart."""
    result = cart_reconciler().clear_cart(user_id)
    if not result.success:
        raise click.ClickException(result.error.message)
    click.echo(f"Removed {result.value} item(s).")


@click.command("set")
@_user_option
@_product_option
@click.option("--quantity", type=int, required=True)
def cart_set(user_id: str, product_id: str, quantity: int) -> None:
    """Set the quantity of a product already in the cart."""
    _report(cart_reconciler().set_quantity(user_id, product_id, quantity))
