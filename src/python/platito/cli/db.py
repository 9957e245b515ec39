"""Database maintenance CLI commands."""

from __future__ import annotations

import json
from pathlib import Path

import click

from platito.backup import export_database, import_database, reset_database, seed_sample_data
from platito.cli.common import get_client


@click.group()
def db() -> None:
    """Export, import and reset commands."""


@db.command("export")
@click.option(
    "--output",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Write JSON to this file instead of stdout.",
)
@click.pass_context
def export_command(ctx: click.Context, output: Path | None) -> None:
    """Export all data as JSON."""
    with get_client(ctx) as client:
        payload = export_database(client)
    text = json.dumps(payload, indent=2)
    if output is None:
        click.echo(text)
        return
    output.write_text(text, encoding="utf-8")
    click.echo(f"Exported to {output}")


@db.command("import")
@click.argument("input_file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--yes", is_flag=True, help="Do not ask for confirmation.")
@click.pass_context
def import_command(ctx: click.Context, input_file: Path, yes: bool) -> None:
    """Replace all data with an exported JSON file."""
    try:
        payload = json.loads(input_file.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise click.ClickException(f"Invalid JSON in {input_file}: {exc}") from exc
    if not yes:
        click.confirm("This replaces all existing data. Continue?", abort=True)
    with get_client(ctx) as client:
        try:
            counts = import_database(client, payload)
        except ValueError as exc:
            raise click.ClickException(str(exc)) from exc
    for table, count in counts.items():
        click.echo(f"{table}\t{count}")


@db.command("reset")
@click.option("--yes", is_flag=True, help="Do not ask for confirmation.")
@click.pass_context
def reset_command(ctx: click.Context, yes: bool) -> None:
    """Delete all data and restore defaults."""
    if not yes:
        click.confirm("This deletes all data. Continue?", abort=True)
    with get_client(ctx) as client:
        reset_database(client)
    click.echo("Database reset.")


@db.command("seed")
@click.pass_context
def seed_command(ctx: click.Context) -> None:
    """Fill an empty database with sample data."""
    with get_client(ctx) as client:
        seeded = seed_sample_data(client)
    click.echo("Sample data added." if seeded else "Database is not empty; nothing added.")
