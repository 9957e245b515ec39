"""Shared CLI helpers."""

from __future__ import annotations

from contextlib import contextmanager
import datetime as dt
from decimal import Decimal, InvalidOperation
from typing import Iterator

import click

from platito.client import DatabaseProfile, PlatitoClient
from platito.exceptions import PlatitoError


def parse_date(value: str | None, field_name: str) -> dt.date | None:
    """Parse an ISO date string into a date."""
    if value is None:
        return None
    try:
        return dt.date.fromisoformat(value)
    except ValueError as exc:
        raise click.BadParameter("Use YYYY-MM-DD format.", param_hint=field_name) from exc


def parse_decimal(value: str | None, field_name: str) -> Decimal | None:
    """Parse a decimal string into a Decimal."""
    if value is None:
        return None
    try:
        return Decimal(value)
    except InvalidOperation as exc:
        raise click.BadParameter("Use a valid decimal value.", param_hint=field_name) from exc


def format_amount(value: Decimal) -> str:
    """Render an amount with two decimals."""
    return f"{value:.2f}"


@contextmanager
def get_client(ctx: click.Context) -> Iterator[PlatitoClient]:
    """Open an initialized Platito client from Click context.

    Domain errors raised inside the block are reported as Click errors so the
    command exits with a message instead of a traceback.
    """
    payload = ctx.obj or {}
    profile = DatabaseProfile.TESTING if payload.get("testing") else DatabaseProfile.MAIN
    with PlatitoClient(db_path=payload.get("db_path"), profile=profile) as client:
        try:
            client.initialize()
            yield client
        except PlatitoError as exc:
            raise click.ClickException(str(exc)) from exc
