"""Platito CLI entry point."""

from __future__ import annotations

from pathlib import Path

import click

from platito.__version__ import __version__
from platito.cli.account import account
from platito.cli.category import category
from platito.cli.db import db
from platito.cli.rates import rates
from platito.cli.settings import settings
from platito.cli.tag import tag
from platito.cli.transaction import transaction
from platito.cli.transfer import transfer


@click.group(context_settings={"help_option_names": ["-h", "--help"]})
@click.version_option(version=__version__, prog_name="platito")
@click.option(
    "--db",
    "db_path",
    type=click.Path(path_type=Path),
    help="Path to the Platito database.",
)
@click.option("--testing", is_flag=True, help="Use the testing database and sample rates.")
@click.pass_context
def main(ctx: click.Context, db_path: Path | None, testing: bool) -> None:
    """Platito CLI entry point."""
    ctx.obj = {
        "db_path": db_path,
        "testing": testing,
    }


main.add_command(account)
main.add_command(category)
main.add_command(tag)
main.add_command(transaction)
main.add_command(transfer)
main.add_command(rates)
main.add_command(settings)
main.add_command(db)


if __name__ == "__main__":
    main()
