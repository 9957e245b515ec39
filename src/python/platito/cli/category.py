"""Category CLI commands."""

from __future__ import annotations

import click

from platito.cli.common import get_client
from platito.models import CategoryDTO, TransactionType

TYPE_CHOICES = [kind.value for kind in TransactionType]


@click.group()
def category() -> None:
    """Category commands."""


@category.command("list")
@click.option(
    "--type",
    "category_type",
    default=None,
    type=click.Choice(TYPE_CHOICES, case_sensitive=False),
    help="Only list categories of this type.",
)
@click.pass_context
def list_categories(ctx: click.Context, category_type: str | None) -> None:
    """List categories."""
    with get_client(ctx) as client:
        records = client.list_categories(category_type)
    for record in records:
        marker = "default" if record.is_default else ""
        click.echo(f"{record.key}\t{record.type.value}\t{record.name}\t{marker}".rstrip())


@category.command("add")
@click.option("--name", required=True, help="Category name.")
@click.option(
    "--type",
    "category_type",
    required=True,
    type=click.Choice(TYPE_CHOICES, case_sensitive=False),
    help="Category type.",
)
@click.option("--color", default="gray", help="Display color.")
@click.option("--icon", default="", help="Display icon.")
@click.pass_context
def add_category(
    ctx: click.Context,
    name: str,
    category_type: str,
    color: str,
    icon: str,
) -> None:
    """Add a category."""
    with get_client(ctx) as client:
        record = client.add_category(
            CategoryDTO(name=name, type=category_type, color=color, icon=icon)
        )
    click.echo(f"Added category {record.key}")


@category.command("rename")
@click.argument("key", type=int)
@click.argument("name")
@click.pass_context
def rename_category(ctx: click.Context, key: int, name: str) -> None:
    """Rename a category."""
    with get_client(ctx) as client:
        record = client.update_category(key, name=name)
    click.echo(f"Renamed category {record.key} to {record.name}")


@category.command("delete")
@click.argument("key", type=int)
@click.pass_context
def delete_category(ctx: click.Context, key: int) -> None:
    """Delete an unused user category."""
    with get_client(ctx) as client:
        client.delete_category(key)
    click.echo(f"Deleted category {key}")
