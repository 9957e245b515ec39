"""Account CLI commands."""

from __future__ import annotations

import click

from platito.cli.common import format_amount, get_client, parse_decimal
from platito.currency import SUPPORTED_CURRENCIES
from platito.models import AccountDTO, AccountRecord

CURRENCY_CHOICES = [currency.value for currency in SUPPORTED_CURRENCIES]


def _echo_account(record: AccountRecord) -> None:
    archived = "archived" if record.is_archived else ""
    click.echo(
        f"{record.key}\t{record.name}\t{record.currency.value}"
        f"\t{format_amount(record.initial_balance)}\t{archived}".rstrip()
    )


@click.group()
def account() -> None:
    """Account commands."""


@account.command("add")
@click.option("--name", required=True, help="Account name.")
@click.option(
    "--currency",
    required=True,
    type=click.Choice(CURRENCY_CHOICES, case_sensitive=False),
    help="Account currency.",
)
@click.option("--initial-balance", default="0", help="Opening balance in the account currency.")
@click.option("--color", default="blue", help="Display color.")
@click.option("--icon", default="wallet", help="Display icon.")
@click.pass_context
def add_account(
    ctx: click.Context,
    name: str,
    currency: str,
    initial_balance: str,
    color: str,
    icon: str,
) -> None:
    """Add an account."""
    balance = parse_decimal(initial_balance, "--initial-balance")
    with get_client(ctx) as client:
        record = client.add_account(
            AccountDTO(
                name=name,
                currency=currency,
                initial_balance=balance,
                color=color,
                icon=icon,
            )
        )
    click.echo(f"Added account {record.key}")


@account.command("list")
@click.option("--all", "include_archived", is_flag=True, help="Include archived accounts.")
@click.pass_context
def list_accounts(ctx: click.Context, include_archived: bool) -> None:
    """List accounts."""
    with get_client(ctx) as client:
        records = client.list_accounts(include_archived=include_archived)
    if not records:
        click.echo("No accounts found.")
        return
    for record in records:
        _echo_account(record)


@account.command("balance")
@click.argument("key", type=int)
@click.option(
    "--currency",
    default=None,
    type=click.Choice(CURRENCY_CHOICES, case_sensitive=False),
    help="Display currency (defaults to the account currency).",
)
@click.pass_context
def get_balance(ctx: click.Context, key: int, currency: str | None) -> None:
    """Show the current balance of an account.

    Examples:
        platito account balance 1
        platito account balance 3 --currency ARS
    """
    with get_client(ctx) as client:
        record = client.get_account(key)
        balance = client.get_account_balance(key, currency)
    click.echo(f"{record.name}: {format_amount(balance)} {currency or record.currency.value}")


@account.command("total")
@click.option(
    "--currency",
    default=None,
    type=click.Choice(CURRENCY_CHOICES, case_sensitive=False),
    help="Display currency (defaults to the settings display currency).",
)
@click.option("--all", "include_archived", is_flag=True, help="Include archived accounts.")
@click.pass_context
def get_total(ctx: click.Context, currency: str | None, include_archived: bool) -> None:
    """Show the total balance across accounts."""
    with get_client(ctx) as client:
        shown = currency or client.get_settings().display_currency.value
        total = client.get_total_balance(currency, include_archived=include_archived)
    click.echo(f"Total: {format_amount(total)} {shown}")


@account.command("archive")
@click.argument("key", type=int)
@click.pass_context
def archive_account(ctx: click.Context, key: int) -> None:
    """Hide an account from active views."""
    with get_client(ctx) as client:
        record = client.archive_account(key)
    click.echo(f"Archived account {record.key}")


@account.command("unarchive")
@click.argument("key", type=int)
@click.pass_context
def unarchive_account(ctx: click.Context, key: int) -> None:
    """Restore an archived account."""
    with get_client(ctx) as client:
        record = client.unarchive_account(key)
    click.echo(f"Restored account {record.key}")


@account.command("delete")
@click.argument("key", type=int)
@click.pass_context
def delete_account(ctx: click.Context, key: int) -> None:
    """Delete an account with no transactions or transfers."""
    with get_client(ctx) as client:
        client.delete_account(key)
    click.echo(f"Deleted account {key}")
