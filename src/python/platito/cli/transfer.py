"""Transfer CLI commands."""

from __future__ import annotations

import datetime as dt

import click

from platito.cli.common import format_amount, get_client, parse_date, parse_decimal
from platito.models import TransferDTO, TransferRecord


def _echo_transfer(record: TransferRecord) -> None:
    click.echo(
        f"{record.key}\t{record.date.isoformat()}\t{record.from_account_key}"
        f"\t{record.to_account_key}\t{format_amount(record.amount)}"
        f"\t{format_amount(record.converted_amount)}\t{record.exchange_rate}"
        f"\t{record.description}"
    )


@click.group()
def transfer() -> None:
    """Transfer commands."""


@transfer.command("add")
@click.option("--from-account", "from_account_key", type=int, required=True, help="Source account key.")
@click.option("--to-account", "to_account_key", type=int, required=True, help="Destination account key.")
@click.option("--amount", "amount_value", required=True, help="Amount in the source account currency.")
@click.option("--date", "date_value", default=None, help="Date in YYYY-MM-DD (defaults to today).")
@click.option("--description", default="", help="Free text description.")
@click.pass_context
def add_transfer(
    ctx: click.Context,
    from_account_key: int,
    to_account_key: int,
    amount_value: str,
    date_value: str | None,
    description: str,
) -> None:
    """Move money between two accounts.

    The credited amount is converted at the current exchange rates and kept
    with the transfer.
    """
    amount = parse_decimal(amount_value, "--amount")
    date = parse_date(date_value, "--date") or dt.date.today()
    with get_client(ctx) as client:
        record = client.add_transfer(
            TransferDTO(
                from_account_key=from_account_key,
                to_account_key=to_account_key,
                amount=amount,
                date=date,
                description=description,
            )
        )
    click.echo(
        f"Added transfer {record.key}: {format_amount(record.amount)} -> "
        f"{format_amount(record.converted_amount)}"
    )


@transfer.command("list")
@click.option("--start-date", default=None, help="Start date in YYYY-MM-DD.")
@click.option("--end-date", default=None, help="End date in YYYY-MM-DD.")
@click.option("--account", "account_key", type=int, default=None, help="Filter by account key.")
@click.option(
    "--direction",
    type=click.Choice(["both", "from", "to"]),
    default="both",
    help="With --account, only transfers leaving (from) or arriving (to).",
)
@click.pass_context
def list_transfers(
    ctx: click.Context,
    start_date: str | None,
    end_date: str | None,
    account_key: int | None,
    direction: str,
) -> None:
    """List transfers, newest first."""
    start = parse_date(start_date, "--start-date")
    end = parse_date(end_date, "--end-date")
    with get_client(ctx) as client:
        records = client.list_transfers(
            start_date=start,
            end_date=end,
            account_key=account_key,
            direction=direction,
        )
    for record in records:
        _echo_transfer(record)


@transfer.command("get")
@click.argument("key", type=int)
@click.pass_context
def get_transfer(ctx: click.Context, key: int) -> None:
    """Get a transfer by key."""
    with get_client(ctx) as client:
        record = client.get_transfer(key)
    _echo_transfer(record)


@transfer.command("update")
@click.argument("key", type=int)
@click.option("--from-account", "from_account_key", type=int, default=None, help="Updated source account key.")
@click.option("--to-account", "to_account_key", type=int, default=None, help="Updated destination account key.")
@click.option("--amount", "amount_value", default=None, help="Updated amount.")
@click.option("--date", "date_value", default=None, help="Updated date in YYYY-MM-DD.")
@click.option("--description", default=None, help="Updated description.")
@click.pass_context
def update_transfer(
    ctx: click.Context,
    key: int,
    from_account_key: int | None,
    to_account_key: int | None,
    amount_value: str | None,
    date_value: str | None,
    description: str | None,
) -> None:
    """Update a transfer; it is re-priced at the current exchange rates."""
    patch = {
        "from_account_key": from_account_key,
        "to_account_key": to_account_key,
        "amount": parse_decimal(amount_value, "--amount"),
        "date": parse_date(date_value, "--date"),
        "description": description,
    }
    with get_client(ctx) as client:
        record = client.update_transfer(key, **patch)
    _echo_transfer(record)


@transfer.command("delete")
@click.argument("key", type=int)
@click.pass_context
def delete_transfer(ctx: click.Context, key: int) -> None:
    """Delete a transfer."""
    with get_client(ctx) as client:
        client.delete_transfer(key)
    click.echo(f"Deleted transfer {key}")
