"""Tag CLI commands."""

from __future__ import annotations

import click

from platito.cli.common import get_client
from platito.models import TagDTO


@click.group()
def tag() -> None:
    """Tag commands."""


@tag.command("list")
@click.pass_context
def list_tags(ctx: click.Context) -> None:
    """List tags."""
    with get_client(ctx) as client:
        records = client.list_tags()
    for record in records:
        click.echo(f"{record.key}\t{record.name}")


@tag.command("add")
@click.argument("name")
@click.pass_context
def add_tag(ctx: click.Context, name: str) -> None:
    """Add a tag."""
    with get_client(ctx) as client:
        record = client.add_tag(TagDTO(name=name))
    click.echo(f"Added tag {record.key}")


@tag.command("delete")
@click.argument("key", type=int)
@click.pass_context
def delete_tag(ctx: click.Context, key: int) -> None:
    """Delete a tag and detach it from transactions."""
    with get_client(ctx) as client:
        client.delete_tag(key)
    click.echo(f"Deleted tag {key}")
