"""Exchange rate CLI commands."""

from __future__ import annotations

import click

from platito.cli.common import get_client
from platito.currency import ExchangeRateTable


def _echo_rates(table: ExchangeRateTable) -> None:
    for currency, rate in table.items():
        click.echo(f"{currency.value}\t{rate}")


def _parse_pairs(pairs: tuple[str, ...]) -> dict[str, str]:
    """Parse ``CODE=VALUE`` arguments."""
    patch: dict[str, str] = {}
    for pair in pairs:
        code, sep, value = pair.partition("=")
        if not sep or not code.strip() or not value.strip():
            raise click.BadParameter(f"Expected CODE=VALUE, got {pair!r}.", param_hint="RATES")
        patch[code.strip().upper()] = value.strip()
    return patch


@click.group()
def rates() -> None:
    """Exchange rate commands."""


@rates.command("show")
@click.pass_context
def show_rates(ctx: click.Context) -> None:
    """Show the current rate table (units of ARS per unit)."""
    with get_client(ctx) as client:
        table = client.get_exchange_rates()
    _echo_rates(table)


@rates.command("set")
@click.argument("pairs", metavar="RATES", nargs=-1, required=True)
@click.pass_context
def set_rates(ctx: click.Context, pairs: tuple[str, ...]) -> None:
    """Edit rates, for example ``platito rates set USD_BLUE=1200 USDT=1180``."""
    patch = _parse_pairs(pairs)
    with get_client(ctx) as client:
        table = client.update_exchange_rates(patch)
    _echo_rates(table)


@rates.command("fetch")
@click.option("--force", is_flag=True, help="Ignore the refresh cooldown.")
@click.pass_context
def fetch_rates(ctx: click.Context, force: bool) -> None:
    """Refresh rates from the online quote source."""
    with get_client(ctx) as client:
        table = client.fetch_exchange_rates(force=force)
    _echo_rates(table)


@rates.command("auto")
@click.pass_context
def auto_update_rates(ctx: click.Context) -> None:
    """Refresh rates if the auto-update interval has elapsed."""
    with get_client(ctx) as client:
        table = client.auto_update_exchange_rates()
    if table is None:
        click.echo("Rates not updated.")
        return
    _echo_rates(table)
