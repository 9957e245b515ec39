"""Currency codes and the conversion primitive."""

from __future__ import annotations

from decimal import Decimal
from enum import Enum

from platito.exceptions import ValidationError


class Currency(str, Enum):
    """Supported currency codes."""

    ARS = "ARS"
    USD_BLUE = "USD_BLUE"
    USD_MEP = "USD_MEP"
    USDT = "USDT"

    def __str__(self) -> str:
        return self.value


BASE_CURRENCY = Currency.ARS
SUPPORTED_CURRENCIES: tuple[Currency, ...] = tuple(Currency)

# Currency -> units of base currency per one unit of that currency.
ExchangeRateTable = dict[Currency, Decimal]


def parse_currency(value: Currency | str) -> Currency:
    """Resolve a currency code, rejecting anything outside the supported set."""
    if isinstance(value, Currency):
        return value
    code = str(value or "").strip().upper()
    try:
        return Currency(code)
    except ValueError as exc:
        raise ValidationError(f"Unsupported currency: {value!r}") from exc


def convert_to_base(
    amount: Decimal,
    currency: Currency,
    rates: ExchangeRateTable,
) -> Decimal:
    """Convert an amount into base currency units."""
    return Decimal(amount) * rates[currency]


def convert_amount(
    amount: Decimal,
    from_currency: Currency,
    to_currency: Currency,
    rates: ExchangeRateTable,
) -> Decimal:
    """Convert an amount between two currencies through the base currency.

    The rate table is trusted as given; callers normalize it first.
    """
    if from_currency == to_currency:
        return amount

    amount_in_base = convert_to_base(amount, from_currency, rates)
    if to_currency == BASE_CURRENCY:
        return amount_in_base

    target_rate = rates[to_currency]
    if target_rate == 0:
        return amount_in_base
    return amount_in_base / target_rate
