"""Settings CLI commands."""

from __future__ import annotations

import click

from platito.cli.common import get_client
from platito.currency import SUPPORTED_CURRENCIES
from platito.models import AppSettings, AutoUpdateInterval, TimeWindow


def _echo_settings(record: AppSettings) -> None:
    last_update = record.last_fx_update.isoformat() if record.last_fx_update else "never"
    default_account = record.default_account_key if record.default_account_key is not None else "none"
    click.echo(f"default_account\t{default_account}")
    click.echo(f"default_time_window\t{record.default_time_window.value}")
    click.echo(f"display_currency\t{record.display_currency.value}")
    click.echo(f"auto_update_interval\t{record.auto_update_interval.value}")
    click.echo(f"last_fx_update\t{last_update}")
    click.echo(f"fx_update_count\t{record.fx_update_count}")


@click.group()
def settings() -> None:
    """Settings commands."""


@settings.command("show")
@click.pass_context
def show_settings(ctx: click.Context) -> None:
    """Show the current settings."""
    with get_client(ctx) as client:
        record = client.get_settings()
    _echo_settings(record)


@settings.command("set")
@click.option("--default-account", "default_account_key", type=int, default=None, help="Default account key.")
@click.option("--clear-default-account", is_flag=True, help="Unset the default account.")
@click.option(
    "--time-window",
    "default_time_window",
    type=click.Choice([window.value for window in TimeWindow]),
    default=None,
    help="Default dashboard window.",
)
@click.option(
    "--display-currency",
    type=click.Choice([currency.value for currency in SUPPORTED_CURRENCIES], case_sensitive=False),
    default=None,
    help="Currency used for totals.",
)
@click.option(
    "--auto-update",
    "auto_update_interval",
    type=click.Choice([interval.value for interval in AutoUpdateInterval]),
    default=None,
    help="Automatic rate refresh interval.",
)
@click.pass_context
def set_settings(
    ctx: click.Context,
    default_account_key: int | None,
    clear_default_account: bool,
    default_time_window: str | None,
    display_currency: str | None,
    auto_update_interval: str | None,
) -> None:
    """Update one or more settings."""
    if clear_default_account and default_account_key is not None:
        raise click.UsageError("Use --default-account or --clear-default-account, not both.")
    patch: dict[str, object] = {
        name: value
        for name, value in (
            ("default_account_key", default_account_key),
            ("default_time_window", default_time_window),
            ("display_currency", display_currency),
            ("auto_update_interval", auto_update_interval),
        )
        if value is not None
    }
    if clear_default_account:
        patch["default_account_key"] = None
    if not patch:
        raise click.UsageError("Nothing to update.")
    with get_client(ctx) as client:
        record = client.update_settings(**patch)
    _echo_settings(record)
