"""CLI commands for product reviews."""

from __future__ import annotations

import click

from storefront.application.review_ledger import DEFAULT_REVIEW_PAGE_SIZE
from storefront.domain.model.review import Review
from storefront.infrastructure.bootstrap import review_ledger


def _display_review(review: Review) -> None:
    stars = "*" * review.rating
    click.echo(f"[{review.id}] {stars:<5} {review.display_name}  ({review.created_at:%Y-%m-%d})")
    if review.comment:
        click.echo(f"    {review.comment}")


@click.command("list")
@click.option("--product", "product_id", required=True, help="Product ID.")
@click.option("--size", default=DEFAULT_REVIEW_PAGE_SIZE, show_default=True, help="Page size.")
@click.option("--cursor", default=None, help="Cursor returned by the previous page.")
def review_list(product_id: str, size: int, cursor: str | None) -> None:
    """List reviews of a product, newest first."""
    page = review_ledger().list_reviews(product_id, cursor=cursor, page_size=size)
    if not page.ok:
        raise click.ClickException(page.error.message)
    if not page.items:
        click.echo("No reviews yet.")
        return
    for review in page.items:
        _display_review(review)
    if page.has_more:
        click.echo()
        click.echo(f"Next cursor: {page.next_cursor}")


@click.command("add")
@click.option("--product", "product_id", required=True, help="Product ID.")
@click.option("--user", "user_id", required=True, help="Reviewer's user ID.")
@click.option("--rating", required=True, help="Rating from 1 to 5.")
@click.option("--comment", required=True, help="Review text.")
@click.option("--name", "display_name", default=None, help="Name shown with the review.")
def review_add(
    product_id: str, user_id: str, rating: str, comment: str, display_name: str | None
) -> None:
    """Review a product (one review per user)."""
    result = review_ledger().add_review(
        product_id, user_id, rating, comment, display_name=display_name
    )
    if not result.success:
        raise click.ClickException(result.error.message)
    click.echo(f"Review {result.value.id} added.")


@click.command("edit")
@click.option("--id", "review_id", required=True, help="Review ID.")
@click.option("--user", "user_id", required=True, help="Reviewer's user ID.")
@click.option("--rating", default=None, help="New rating from 1 to 5.")
@click.option("--comment", default=None, help="New review text.")
def review_edit(
    review_id: str, user_id: str, rating: str | None, comment: str | None
) -> None:
    """Edit your own review."""
    result = review_ledger().update_review(review_id, user_id, rating=rating, comment=comment)
    if not result.success:
        raise click.ClickException(result.error.message)
    click.echo(f"Review {review_id} updated.")


@click.command("delete")
@click.option("--id", "review_id", required=True, help="Review ID.")
@click.option("--user", "user_id", required=True, help="Reviewer's user ID.")
def review_delete(review_id: str, user_id: str) -> None:
    """Delete your own review."""
    result = review_ledger().delete_review(review_id, user_id)
    if not result.success:
        raise click.ClickException(result.error.message)
    click.echo(f"Review {review_id} deleted.")
