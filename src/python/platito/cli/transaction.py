"""Transaction CLI commands."""

from __future__ import annotations

import datetime as dt

import click

from platito.cli.common import format_amount, get_client, parse_date, parse_decimal
from platito.models import TransactionDTO, TransactionRecord


def _echo_transaction(record: TransactionRecord) -> None:
    tags = ",".join(str(key) for key in record.tag_keys)
    click.echo(
        f"{record.key}\t{record.date.isoformat()}\t{record.type.value}"
        f"\t{format_amount(record.amount)}\t{record.currency.value}"
        f"\t{record.account_key}\t{record.category_key}\t{record.description}\t{tags}"
    )


@click.group()
def transaction() -> None:
    """Income and expense commands."""


@transaction.command("add")
@click.option("--account", "account_key", type=int, required=True, help="Account key.")
@click.option("--category", "category_key", type=int, required=True, help="Category key.")
@click.option("--amount", "amount_value", required=True, help="Positive amount in the account currency.")
@click.option("--date", "date_value", default=None, help="Date in YYYY-MM-DD (defaults to today).")
@click.option("--description", default="", help="Free text description.")
@click.option("--tag", "tag_keys", type=int, multiple=True, help="Tag key; repeat for several tags.")
@click.pass_context
def add_transaction(
    ctx: click.Context,
    account_key: int,
    category_key: int,
    amount_value: str,
    date_value: str | None,
    description: str,
    tag_keys: tuple[int, ...],
) -> None:
    """Add an income or expense.

    The type comes from the category and the currency from the account.

    Examples:
        platito transaction add --account 1 --category 3 --amount 1500
        platito transaction add --account 2 --category 8 --amount 20 --tag 1 --tag 4
    """
    amount = parse_decimal(amount_value, "--amount")
    date = parse_date(date_value, "--date") or dt.date.today()
    with get_client(ctx) as client:
        record = client.add_transaction(
            TransactionDTO(
                account_key=account_key,
                category_key=category_key,
                amount=amount,
                date=date,
                description=description,
                tag_keys=tag_keys,
            )
        )
    click.echo(f"Added transaction {record.key}")


@transaction.command("list")
@click.option("--start-date", default=None, help="Start date in YYYY-MM-DD.")
@click.option("--end-date", default=None, help="End date in YYYY-MM-DD.")
@click.option("--account", "account_key", type=int, default=None, help="Filter by account key.")
@click.option("--limit", type=int, default=None, help="Limit results.")
@click.pass_context
def list_transactions(
    ctx: click.Context,
    start_date: str | None,
    end_date: str | None,
    account_key: int | None,
    limit: int | None,
) -> None:
    """List transactions, newest first."""
    start = parse_date(start_date, "--start-date")
    end = parse_date(end_date, "--end-date")
    with get_client(ctx) as client:
        records = client.list_transactions(
            start_date=start, end_date=end, account_key=account_key
        )
    if limit is not None:
        records = records[:limit]
    for record in records:
        _echo_transaction(record)


@transaction.command("update")
@click.argument("key", type=int)
@click.option("--account", "account_key", type=int, default=None, help="Updated account key.")
@click.option("--category", "category_key", type=int, default=None, help="Updated category key.")
@click.option("--amount", "amount_value", default=None, help="Updated amount.")
@click.option("--date", "date_value", default=None, help="Updated date in YYYY-MM-DD.")
@click.option("--description", default=None, help="Updated description.")
@click.option("--tag", "tag_keys", type=int, multiple=True, help="Replace tags; repeat for several.")
@click.option("--clear-tags", is_flag=True, help="Remove every tag.")
@click.pass_context
def update_transaction(
    ctx: click.Context,
    key: int,
    account_key: int | None,
    category_key: int | None,
    amount_value: str | None,
    date_value: str | None,
    description: str | None,
    tag_keys: tuple[int, ...],
    clear_tags: bool,
) -> None:
    """Update a transaction."""
    if clear_tags and tag_keys:
        raise click.UsageError("Use --tag or --clear-tags, not both.")
    patch = {
        "account_key": account_key,
        "category_key": category_key,
        "amount": parse_decimal(amount_value, "--amount"),
        "date": parse_date(date_value, "--date"),
        "description": description,
        "tag_keys": () if clear_tags else (tag_keys or None),
    }
    with get_client(ctx) as client:
        record = client.update_transaction(key, **patch)
    _echo_transaction(record)


@transaction.command("delete")
@click.argument("key", type=int)
@click.pass_context
def delete_transaction(ctx: click.Context, key: int) -> None:
    """Delete a transaction."""
    with get_client(ctx) as client:
        client.delete_transaction(key)
    click.echo(f"Deleted transaction {key}")
