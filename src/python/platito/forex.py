"""Exchange rate table validation, persistence and quote fetching."""

from __future__ import annotations

from dataclasses import dataclass, replace
import datetime as dt
from decimal import Decimal, InvalidOperation
from enum import Enum
import logging
import math
from typing import TYPE_CHECKING, Any, Callable, Mapping

import requests

from platito.currency import (
    BASE_CURRENCY,
    SUPPORTED_CURRENCIES,
    Currency,
    ExchangeRateTable,
    parse_currency,
)
from platito.exceptions import (
    ExternalFetchError,
    RateLimitedError,
    ValidationError,
)

if TYPE_CHECKING:
    from platito.settings import SettingsStore

logger = logging.getLogger(__name__)

DEFAULT_COOLDOWN_SECONDS = 10
DEFAULT_TIMEOUT_SECONDS = 5
ONE = Decimal("1")


class RatesProfile(str, Enum):
    """Which default table a database starts from."""

    LIVE = "live"
    SAMPLE = "sample"


DEFAULT_RATES: dict[RatesProfile, dict[Currency, Decimal]] = {
    RatesProfile.LIVE: {currency: ONE for currency in SUPPORTED_CURRENCIES},
    RatesProfile.SAMPLE: {
        Currency.ARS: ONE,
        Currency.USD_BLUE: Decimal("1200"),
        Currency.USD_MEP: Decimal("1150"),
        Currency.USDT: Decimal("1180"),
    },
}


def utc_now() -> dt.datetime:
    """Current time, timezone aware, second precision."""
    return dt.datetime.now(dt.timezone.utc).replace(microsecond=0)


def _coerce_rate(value: Any) -> Decimal | None:
    """Read a rate from a bare number or a ``{"toBase": value}`` entry."""
    if isinstance(value, Mapping):
        value = value.get("toBase", value.get("to_base"))
    if value is None or isinstance(value, bool):
        return None
    try:
        return value if isinstance(value, Decimal) else Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        return None


def _is_valid_quote(rate: Decimal | None) -> bool:
    return rate is not None and rate.is_finite() and rate > 0


def normalize_rates(
    table: Mapping[Any, Any] | None = None,
    profile: RatesProfile = RatesProfile.LIVE,
) -> ExchangeRateTable:
    """Build a complete table from profile defaults and the valid input entries.

    Invalid or unknown entries are skipped; the base currency is always 1.
    """
    rates = dict(DEFAULT_RATES[profile])
    for code, entry in (table or {}).items():
        try:
            currency = parse_currency(code)
        except ValidationError:
            continue
        if currency == BASE_CURRENCY:
            continue
        rate = _coerce_rate(entry)
        if _is_valid_quote(rate):
            rates[currency] = rate
    rates[BASE_CURRENCY] = ONE
    return rates


def validate_rates(patch: Mapping[Any, Any]) -> ExchangeRateTable:
    """Validate a rate patch and return it keyed by Currency.

    Raises:
        ValidationError: Naming the first offending currency
    """
    validated: ExchangeRateTable = {}
    for code, entry in patch.items():
        currency = parse_currency(code)
        rate = _coerce_rate(entry)
        if currency == BASE_CURRENCY:
            if rate is None or rate != ONE:
                raise ValidationError(f"{currency.value} must have a rate of exactly 1")
        elif not _is_valid_quote(rate):
            raise ValidationError(
                f"Invalid rate for {currency.value}: must be a finite number greater than 0"
            )
        validated[currency] = rate
    return validated


def validate_settings_patch(
    display_currency: Currency | str | None = None,
    exchange_rates: Mapping[Any, Any] | None = None,
) -> dict[str, Any]:
    """Validate the currency related part of a settings patch.

    Returns the coerced values for the fields that were given.
    """
    changes: dict[str, Any] = {}
    if display_currency is not None:
        changes["display_currency"] = parse_currency(display_currency)
    if exchange_rates is not None:
        changes["exchange_rates"] = validate_rates(exchange_rates)
    return changes


@dataclass(frozen=True)
class QuoteSourceConfig:
    """Configuration for the remote quote source."""

    url: str = "https://criptoya.com/api/dolar"
    timeout_seconds: int = DEFAULT_TIMEOUT_SECONDS


class CriptoYaQuoteSource:
    """Fetch dollar quotes from CriptoYa and map them onto the rate table."""

    def __init__(self, config: dict[str, Any] | None = None) -> None:
        config = config or {}
        self.config = QuoteSourceConfig(
            url=str(config.get("url", QuoteSourceConfig.url)),
            timeout_seconds=int(config.get("timeout", DEFAULT_TIMEOUT_SECONDS)),
        )

    def fetch_rates(self) -> ExchangeRateTable:
        """Fetch current quotes.

        Raises:
            ExternalFetchError: If the request fails or the payload is unusable
        """
        try:
            payload = self._fetch_from_api()
        except (requests.RequestException, ValueError) as exc:
            raise ExternalFetchError(f"Failed to fetch exchange rates: {exc}") from exc
        return self.parse_quotes(payload)

    def _fetch_from_api(self) -> dict[str, Any]:
        response = requests.get(self.config.url, timeout=self.config.timeout_seconds)
        response.raise_for_status()
        return response.json()

    @staticmethod
    def parse_quotes(payload: Any) -> ExchangeRateTable:
        """Map the quote payload onto the non-base currencies."""
        try:
            blue = payload["blue"]
            usdt = payload["cripto"]["usdt"]
            rates = {
                Currency.USD_BLUE: (Decimal(str(blue["ask"])) + Decimal(str(blue["bid"]))) / 2,
                Currency.USD_MEP: Decimal(str(payload["mep"]["al30"]["24hs"]["price"])),
                Currency.USDT: (Decimal(str(usdt["ask"])) + Decimal(str(usdt["bid"]))) / 2,
            }
        except (KeyError, TypeError, InvalidOperation) as exc:
            raise ExternalFetchError(f"Unexpected quote payload: {exc!r}") from exc
        for currency, rate in rates.items():
            if not _is_valid_quote(rate):
                raise ExternalFetchError(f"Quote source returned an invalid rate for {currency.value}")
        rates[BASE_CURRENCY] = ONE
        return rates


class ExchangeRateManager:
    """Own the persisted rate table: edits, remote refresh and auto-update."""

    def __init__(
        self,
        settings_store: SettingsStore,
        quote_source: CriptoYaQuoteSource | None = None,
        cooldown_seconds: int = DEFAULT_COOLDOWN_SECONDS,
        clock: Callable[[], dt.datetime] | None = None,
    ) -> None:
        self.settings_store = settings_store
        self.quote_source = quote_source or CriptoYaQuoteSource()
        self.cooldown_seconds = cooldown_seconds
        self.clock = clock or utc_now

    def get_rates(self) -> ExchangeRateTable:
        """Return the current normalized table."""
        return self.settings_store.load().exchange_rates

    def update_rates(self, patch: Mapping[Any, Any]) -> ExchangeRateTable:
        """Merge a partial table into the stored one after validating it."""
        validated = validate_rates(patch)
        settings = self.settings_store.load()
        merged = dict(settings.exchange_rates)
        merged.update(validated)
        rates = normalize_rates(merged, self.settings_store.profile)
        self.settings_store.save(replace(settings, exchange_rates=rates))
        return rates

    def remaining_cooldown(self, now: dt.datetime | None = None) -> int:
        """Seconds left before a non-forced fetch is allowed."""
        last_update = self.settings_store.load().last_fx_update
        if last_update is None:
            return 0
        now = now or self.clock()
        elapsed = (now - _as_utc(last_update)).total_seconds()
        remaining = self.cooldown_seconds - elapsed
        if remaining <= 0:
            return 0
        return math.ceil(remaining)

    def fetch_and_update(self, force: bool = False) -> ExchangeRateTable:
        """Fetch quotes and persist them as the new table.

        Raises:
            RateLimitedError: If the previous fetch is inside the cooldown window
            ExternalFetchError: If the quote source fails
        """
        now = self.clock()
        if not force:
            remaining = self.remaining_cooldown(now)
            if remaining > 0:
                raise RateLimitedError(remaining)

        fetched = self.quote_source.fetch_rates()
        settings = self.settings_store.load()
        rates = normalize_rates(fetched, self.settings_store.profile)
        self.settings_store.save(
            replace(
                settings,
                exchange_rates=rates,
                last_fx_update=now,
                fx_update_count=settings.fx_update_count + 1,
            )
        )
        logger.info(
            "Exchange rates updated (%s)",
            ", ".join(f"{currency.value}={rate}" for currency, rate in rates.items()),
        )
        return rates

    def is_auto_update_due(self, now: dt.datetime | None = None) -> bool:
        """Whether the configured auto-update interval has elapsed."""
        settings = self.settings_store.load()
        interval = settings.auto_update_interval.interval
        if interval is None:
            return False
        if settings.last_fx_update is None:
            return True
        now = now or self.clock()
        return now - _as_utc(settings.last_fx_update) >= interval

    def auto_update_if_due(self) -> ExchangeRateTable | None:
        """Refresh rates when due; fetch failures are logged, never raised."""
        if not self.is_auto_update_due():
            return None
        try:
            return self.fetch_and_update(force=True)
        except (RateLimitedError, ExternalFetchError) as exc:
            logger.warning("Automatic exchange rate update skipped: %s", exc)
            return None


def _as_utc(value: dt.datetime) -> dt.datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=dt.timezone.utc)
    return value
