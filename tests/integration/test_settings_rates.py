"""System integration tests for settings and exchange rate refresh."""

from __future__ import annotations

from decimal import Decimal
import json
from pathlib import Path

import pytest

from platito import (
    ExternalFetchError,
    NotFoundError,
    PlatitoClient,
    RateLimitedError,
    ValidationError,
)
from platito.client import DatabaseProfile
from platito.currency import Currency
from platito.models import AutoUpdateInterval, TimeWindow


@pytest.mark.sit
def test_settings_created_with_defaults(client) -> None:
    settings = client.get_settings()

    assert settings.display_currency is Currency.ARS
    assert settings.default_time_window is TimeWindow.MONTH
    assert settings.auto_update_interval is AutoUpdateInterval.NONE
    assert settings.exchange_rates == {currency: Decimal("1") for currency in Currency}
    assert settings.fx_update_count == 0


@pytest.mark.sit
def test_testing_profile_uses_sample_rates(tmp_path: Path, quote_source, clock) -> None:
    with PlatitoClient(
        db_path=tmp_path / "sample.db",
        profile=DatabaseProfile.TESTING,
        quote_source=quote_source,
        clock=clock,
    ) as client:
        rates = client.get_exchange_rates()

    assert rates[Currency.USD_BLUE] == Decimal("1200")
    assert rates[Currency.USD_MEP] == Decimal("1150")
    assert rates[Currency.USDT] == Decimal("1180")


@pytest.mark.sit
def test_settings_survive_reconnect(db_path, quote_source, clock, client) -> None:
    client.update_settings(display_currency="usdt", default_time_window="week")
    client.close()

    with PlatitoClient(db_path=db_path, quote_source=quote_source, clock=clock) as reopened:
        settings = reopened.get_settings()

    assert settings.display_currency is Currency.USDT
    assert settings.default_time_window is TimeWindow.WEEK


@pytest.mark.sit
def test_update_settings_validation(client, peso_account) -> None:
    with pytest.raises(ValidationError):
        client.update_settings(display_currency="EUR")
    with pytest.raises(ValidationError):
        client.update_settings(auto_update_interval="1h")
    with pytest.raises(NotFoundError):
        client.update_settings(default_account_key=999)
    with pytest.raises(ValidationError, match="theme"):
        client.update_settings(theme="dark")

    updated = client.update_settings(default_account_key=peso_account.key)
    assert updated.default_account_key == peso_account.key
    assert client.update_settings(default_account_key=None).default_account_key is None


@pytest.mark.sit
def test_partial_rate_update_merges(client) -> None:
    client.update_exchange_rates({"USD_BLUE": "1210"})
    rates = client.update_exchange_rates({"USDT": {"toBase": "1190.5"}})

    assert rates[Currency.USD_BLUE] == Decimal("1210")
    assert rates[Currency.USDT] == Decimal("1190.5")
    assert rates[Currency.ARS] == Decimal("1")
    assert client.get_exchange_rates() == rates


@pytest.mark.sit
def test_invalid_rate_update_leaves_table_unchanged(client) -> None:
    client.update_exchange_rates({"USD_MEP": 1000})

    with pytest.raises(ValidationError, match="ARS"):
        client.update_exchange_rates({"ARS": 2})
    with pytest.raises(ValidationError, match="USD_BLUE"):
        client.update_exchange_rates({"USD_MEP": 1100, "USD_BLUE": -1})

    assert client.get_exchange_rates()[Currency.USD_MEP] == Decimal("1000")


@pytest.mark.sit
def test_rates_through_settings_update(client) -> None:
    settings = client.update_settings(exchange_rates={"USD_MEP": "1005"})

    assert settings.exchange_rates[Currency.USD_MEP] == Decimal("1005")
    assert settings.exchange_rates[Currency.USD_BLUE] == Decimal("1")


@pytest.mark.sit
def test_fetch_stores_quotes_and_stamps_update(client, quote_source, clock) -> None:
    rates = client.fetch_exchange_rates()

    settings = client.get_settings()
    assert rates[Currency.USD_BLUE] == Decimal("1300")
    assert settings.exchange_rates == rates
    assert settings.last_fx_update == clock.now
    assert settings.fx_update_count == 1
    assert quote_source.calls == 1


@pytest.mark.sit
def test_fetch_cooldown(client, quote_source, clock) -> None:
    client.fetch_exchange_rates()

    with pytest.raises(RateLimitedError) as excinfo:
        client.fetch_exchange_rates()
    assert excinfo.value.remaining_seconds == 10

    clock.advance(seconds=3.5)
    assert client.rates.remaining_cooldown() == 7
    with pytest.raises(RateLimitedError):
        client.fetch_exchange_rates()

    client.fetch_exchange_rates(force=True)
    clock.advance(seconds=10)
    client.fetch_exchange_rates()

    assert quote_source.calls == 3
    assert client.get_settings().fx_update_count == 3


@pytest.mark.sit
def test_fetch_failure_keeps_existing_rates(client, quote_source) -> None:
    client.update_exchange_rates({"USD_MEP": 1000})
    quote_source.error = ExternalFetchError("Failed to fetch exchange rates: timeout")

    with pytest.raises(ExternalFetchError):
        client.fetch_exchange_rates()

    settings = client.get_settings()
    assert settings.exchange_rates[Currency.USD_MEP] == Decimal("1000")
    assert settings.last_fx_update is None
    assert settings.fx_update_count == 0


@pytest.mark.sit
def test_auto_update_disabled_by_default(client, quote_source) -> None:
    assert client.auto_update_exchange_rates() is None
    assert quote_source.calls == 0


@pytest.mark.sit
def test_auto_update_follows_interval(client, quote_source, clock) -> None:
    client.update_settings(auto_update_interval="6h")

    assert client.auto_update_exchange_rates() is not None
    assert client.auto_update_exchange_rates() is None

    clock.advance(hours=5, minutes=59)
    assert client.rates.is_auto_update_due() is False
    clock.advance(minutes=1)
    assert client.auto_update_exchange_rates() is not None
    assert quote_source.calls == 2


@pytest.mark.sit
def test_auto_update_swallows_fetch_errors(client, quote_source, caplog) -> None:
    client.update_settings(auto_update_interval="24h")
    quote_source.error = ExternalFetchError("Failed to fetch exchange rates: offline")

    with caplog.at_level("WARNING", logger="platito.forex"):
        assert client.auto_update_exchange_rates() is None

    assert "offline" in caplog.text
    assert client.get_settings().fx_update_count == 0


@pytest.mark.sit
def test_config_file_sets_data_dir_and_cooldown(
    tmp_path: Path, isolated_config: Path, quote_source, clock
) -> None:
    data_dir = tmp_path / "data"
    isolated_config.write_text(
        json.dumps({"data_dir": str(data_dir), "forex": {"cooldown_seconds": 30, "timeout": 2}}),
        encoding="utf-8",
    )

    with PlatitoClient(profile="testing", quote_source=quote_source, clock=clock) as client:
        client.initialize()
        assert client.rates.cooldown_seconds == 30
        client.fetch_exchange_rates()
        clock.advance(seconds=20)
        with pytest.raises(RateLimitedError):
            client.fetch_exchange_rates()

    assert (data_dir / "platito_testing.db").exists()


@pytest.mark.sit
def test_default_quote_source_reads_timeout(tmp_path: Path, isolated_config: Path) -> None:
    isolated_config.write_text(json.dumps({"forex": {"timeout": 3}}), encoding="utf-8")

    client = PlatitoClient(db_path=tmp_path / "x.db")

    assert client.rates.quote_source.config.timeout_seconds == 3
    assert client.rates.cooldown_seconds == 10
