"""CLI commands for orders."""

from __future__ import annotations

import json
from typing import IO

import click

from storefront.domain.model.order import Order
from storefront.infrastructure.bootstrap import order_desk


def _display_order(order: Order) -> None:
    """Shared formatting for displaying an order."""
    click.echo(f"Order {order.id}  (status={order.status})")
    click.echo(f"Created:  {order.created_at:%Y-%m-%d %H:%M}")
    click.echo(f"Payment:  {order.payment_method}")
    click.echo()
    click.echo(f"  {'Product':<24} {'Qty':>5} {'Price':>10} {'Total':>10}")
    click.echo(f"  {'-'*51}")
    for item in order.items:
        click.echo(
            f"  {item.product_name:<24} {item.quantity.value:>5} "
            f"{str(item.unit_price):>10} {str(item.line_total):>10}"
        )
    click.echo(f"  {'-'*51}")
    click.echo(f"  {'Subtotal':<31} {str(order.subtotal):>20}")
    click.echo(f"  {'Shipping':<31} {str(order.shipping_fee):>20}")
    click.echo(f"  {'Order Total':<31} {str(order.total):>20}")


@click.command("place")
@click.option("--user", "user_id", required=True, help="User ID.")
@click.option("--city", default=None, help="Delivery city.")
@click.option("--street", default=None, help="Delivery street address.")
@click.option("--payment", "payment_method", default=None, help="Payment method (default CASH).")
@click.option("--shipping-fee", default=None, help="Override the regional shipping fee.")
def order_place(
    user_id: str,
    city: str | None,
    street: str | None,
    payment_method: str | None,
    shipping_fee: str | None,
) -> None:
    """Place an order from the user's cart."""
    address = {k: v for k, v in (("City", city), ("Street", street)) if v}
    result = order_desk().place_order_from_cart(
        user_id,
        address=address or None,
        payment_method=payment_method,
        shipping_fee=shipping_fee,
    )
    if not result.success:
        raise click.ClickException(result.error.message)
    _display_order(result.value)


@click.command("create")
@click.argument("payload", type=click.File("r"))
def order_create(payload: IO[str]) -> None:
    """Store a checkout payload (JSON file, '-' for stdin) as an order."""
    try:
        data = json.load(payload)
    except ValueError as exc:
        raise click.BadParameter(f"Invalid JSON payload: {exc}")

    result = order_desk().create_order(data)
    if not result.success:
        raise click.ClickException(result.error.message)
    click.echo(f"Order {result.value} created.")


@click.command("list")
@click.option("--user", "user_id", required=True, help="User ID.")
def order_list(user_id: str) -> None:
    """List a user's orders, newest first."""
    page = order_desk().list_user_orders(user_id)
    if not page.ok:
        raise click.ClickException(page.error.message)
    if not page.items:
        click.echo("No orders found.")
        return

    click.echo(f"{'ID':<26} {'Created':<17} {'Status':<10} {'Items':>5} {'Total':>10}")
    click.echo("-" * 72)
    for order in page.items:
        click.echo(
            f"{order.id:<26} {order.created_at:%Y-%m-%d %H:%M} {order.status:<10} "
            f"{len(order.items):>5} {str(order.total):>10}"
        )
