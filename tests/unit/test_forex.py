from __future__ import annotations

from decimal import Decimal

import pytest
import requests

from platito.currency import Currency
from platito.exceptions import ExternalFetchError, ValidationError
from platito.forex import (
    CriptoYaQuoteSource,
    RatesProfile,
    normalize_rates,
    validate_rates,
    validate_settings_patch,
)

QUOTE_PAYLOAD = {
    "blue": {"ask": 1220, "bid": 1200},
    "mep": {"al30": {"24hs": {"price": 1150.5}, "ci": {"price": 1149}}},
    "cripto": {"usdt": {"ask": 1190, "bid": 1170}},
    "oficial": {"price": 980},
}


def test_normalize_rates_live_defaults() -> None:
    rates = normalize_rates()

    assert rates == {currency: Decimal("1") for currency in Currency}


def test_normalize_rates_sample_defaults() -> None:
    rates = normalize_rates(profile=RatesProfile.SAMPLE)

    assert rates[Currency.ARS] == Decimal("1")
    assert rates[Currency.USD_BLUE] == Decimal("1200")
    assert rates[Currency.USD_MEP] == Decimal("1150")
    assert rates[Currency.USDT] == Decimal("1180")


def test_normalize_rates_skips_invalid_entries() -> None:
    rates = normalize_rates(
        {
            "ARS": 5,
            "USD_BLUE": "-5",
            "USD_MEP": "NaN",
            "USDT": {"toBase": "1180"},
            "EUR": 1100,
        }
    )

    assert rates == {
        Currency.ARS: Decimal("1"),
        Currency.USD_BLUE: Decimal("1"),
        Currency.USD_MEP: Decimal("1"),
        Currency.USDT: Decimal("1180"),
    }


def test_validate_rates_returns_typed_table() -> None:
    validated = validate_rates({"usd_blue": "1210.5", Currency.ARS: 1})

    assert validated == {Currency.USD_BLUE: Decimal("1210.5"), Currency.ARS: Decimal("1")}


@pytest.mark.parametrize(
    ("patch", "message"),
    [
        ({"ARS": 2}, "ARS"),
        ({"USD_MEP": 0}, "USD_MEP"),
        ({"USDT": "Infinity"}, "USDT"),
        ({"USD_BLUE": "abc"}, "USD_BLUE"),
        ({"USD_BLUE": True}, "USD_BLUE"),
        ({"EUR": 1000}, "EUR"),
    ],
)
def test_validate_rates_rejects_bad_entries(patch: dict, message: str) -> None:
    with pytest.raises(ValidationError, match=message):
        validate_rates(patch)


def test_validate_settings_patch_checks_display_currency() -> None:
    changes = validate_settings_patch(display_currency="usdt", exchange_rates={"USDT": 1000})

    assert changes == {
        "display_currency": Currency.USDT,
        "exchange_rates": {Currency.USDT: Decimal("1000")},
    }
    assert validate_settings_patch() == {}
    with pytest.raises(ValidationError):
        validate_settings_patch(display_currency="BTC")


def test_parse_quotes_maps_payload() -> None:
    rates = CriptoYaQuoteSource.parse_quotes(QUOTE_PAYLOAD)

    assert rates[Currency.ARS] == Decimal("1")
    assert rates[Currency.USD_BLUE] == Decimal("1210")
    assert rates[Currency.USD_MEP] == Decimal("1150.5")
    assert rates[Currency.USDT] == Decimal("1180")


def test_parse_quotes_rejects_missing_fields() -> None:
    payload = {"blue": {"ask": 1220, "bid": 1200}, "cripto": {"usdt": {"ask": 1, "bid": 1}}}

    with pytest.raises(ExternalFetchError):
        CriptoYaQuoteSource.parse_quotes(payload)


def test_parse_quotes_rejects_non_positive_rates() -> None:
    payload = {
        "blue": {"ask": 0, "bid": 0},
        "mep": {"al30": {"24hs": {"price": 1150}}},
        "cripto": {"usdt": {"ask": 1190, "bid": 1170}},
    }

    with pytest.raises(ExternalFetchError, match="USD_BLUE"):
        CriptoYaQuoteSource.parse_quotes(payload)


def test_fetch_rates_wraps_network_errors(monkeypatch: pytest.MonkeyPatch) -> None:
    source = CriptoYaQuoteSource()

    def _fail() -> dict:
        raise requests.ConnectionError("offline")

    monkeypatch.setattr(source, "_fetch_from_api", _fail)

    with pytest.raises(ExternalFetchError, match="offline"):
        source.fetch_rates()


def test_fetch_rates_uses_configured_url_and_timeout(monkeypatch: pytest.MonkeyPatch) -> None:
    calls: list[tuple[str, int]] = []

    class _Response:
        def raise_for_status(self) -> None:
            return None

        def json(self) -> dict:
            return QUOTE_PAYLOAD

    def _fake_get(url: str, timeout: int) -> _Response:
        calls.append((url, timeout))
        return _Response()

    monkeypatch.setattr(requests, "get", _fake_get)
    source = CriptoYaQuoteSource({"url": "https://example.test/dolar", "timeout": 2})

    rates = source.fetch_rates()

    assert calls == [("https://example.test/dolar", 2)]
    assert rates[Currency.USD_BLUE] == Decimal("1210")


def test_fetch_rates_wraps_http_errors(monkeypatch: pytest.MonkeyPatch) -> None:
    class _Response:
        def raise_for_status(self) -> None:
            raise requests.HTTPError("503 Server Error")

    monkeypatch.setattr(requests, "get", lambda url, timeout: _Response())

    with pytest.raises(ExternalFetchError, match="503"):
        CriptoYaQuoteSource().fetch_rates()
