"""Pytest configuration and fixtures.

Integration tests run the client against a throwaway SQLite file with a fake
quote source and a controllable clock, so no test touches the network or the
user's data directory.
"""
from __future__ import annotations

import datetime as dt
from decimal import Decimal
from pathlib import Path
import sys
from typing import Callable

import pytest

SRC_DIR = Path(__file__).resolve().parents[1] / "src" / "python"

if str(SRC_DIR) not in sys.path:
    sys.path.insert(0, str(SRC_DIR))

from platito.client import PlatitoClient  # noqa: E402
from platito.currency import Currency  # noqa: E402
from platito.models import AccountDTO, AccountRecord, CategoryRecord, TransactionType  # noqa: E402

START_TIME = dt.datetime(2026, 3, 10, 12, 0, tzinfo=dt.timezone.utc)
QUOTED_RATES = {
    Currency.ARS: Decimal("1"),
    Currency.USD_BLUE: Decimal("1300"),
    Currency.USD_MEP: Decimal("1250"),
    Currency.USDT: Decimal("1280"),
}


class FakeQuoteSource:
    """Quote source double that counts calls and can be told to fail."""

    def __init__(self, rates: dict[Currency, Decimal] | None = None) -> None:
        self.rates = dict(rates or QUOTED_RATES)
        self.error: Exception | None = None
        self.calls = 0

    def fetch_rates(self) -> dict[Currency, Decimal]:
        self.calls += 1
        if self.error is not None:
            raise self.error
        return dict(self.rates)


class FakeClock:
    """Callable clock that only moves when told to."""

    def __init__(self, now: dt.datetime = START_TIME) -> None:
        self.now = now

    def __call__(self) -> dt.datetime:
        return self.now

    def advance(self, **delta: float) -> None:
        self.now += dt.timedelta(**delta)


@pytest.fixture(autouse=True)
def isolated_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Point config lookup at a file that does not exist."""
    path = tmp_path / "missing-config.json"
    monkeypatch.setenv("PLATITO_CONFIG", str(path))
    return path


@pytest.fixture()
def db_path(tmp_path: Path) -> Path:
    return tmp_path / "platito.db"


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def quote_source() -> FakeQuoteSource:
    return FakeQuoteSource()


@pytest.fixture()
def client(db_path: Path, quote_source: FakeQuoteSource, clock: FakeClock) -> PlatitoClient:
    """Initialized client on an empty database."""
    with PlatitoClient(db_path=db_path, quote_source=quote_source, clock=clock) as client:
        client.initialize()
        yield client


@pytest.fixture()
def find_category(client: PlatitoClient) -> Callable[[str, str], CategoryRecord]:
    """Look up a seeded category by name and type."""
    def _find(name: str, category_type: str = "expense") -> CategoryRecord:
        for category in client.list_categories(TransactionType(category_type)):
            if category.name == name:
                return category
        raise LookupError(f"No {category_type} category named {name!r}")

    return _find


@pytest.fixture()
def peso_account(client: PlatitoClient) -> AccountRecord:
    return client.add_account(AccountDTO("Pesos", Currency.ARS, Decimal("1000")))


@pytest.fixture()
def mep_account(client: PlatitoClient) -> AccountRecord:
    return client.add_account(AccountDTO("MEP", Currency.USD_MEP, Decimal("0")))
