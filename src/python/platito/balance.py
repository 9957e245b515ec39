"""Account balance and dashboard aggregation."""

from __future__ import annotations

from dataclasses import dataclass, field
import datetime as dt
from decimal import Decimal
from typing import Iterable

from platito.currency import (
    BASE_CURRENCY,
    Currency,
    ExchangeRateTable,
    convert_amount,
    convert_to_base,
)
from platito.models import AccountRecord, TransactionRecord, TransactionType, TransferRecord

ZERO = Decimal("0")


def compute_native_balance(
    account: AccountRecord,
    transactions: Iterable[TransactionRecord],
    transfers: Iterable[TransferRecord],
    rates: ExchangeRateTable,
) -> Decimal:
    """Balance of an account in its own currency.

    Outgoing transfers debit ``amount`` (source currency); incoming transfers
    credit the stored ``converted_amount`` rather than re-pricing at current
    rates. The counterpart account does not need to exist.
    """
    balance = account.initial_balance
    for transaction in transactions:
        if transaction.account_key != account.key:
            continue
        amount = convert_amount(
            transaction.amount, transaction.currency, account.currency, rates
        )
        if transaction.type == TransactionType.INCOME:
            balance += amount
        else:
            balance -= amount
    for transfer in transfers:
        if transfer.from_account_key == account.key:
            balance -= transfer.amount
        if transfer.to_account_key == account.key:
            balance += transfer.converted_amount
    return balance


def compute_account_balance(
    account: AccountRecord,
    transactions: Iterable[TransactionRecord],
    transfers: Iterable[TransferRecord],
    rates: ExchangeRateTable,
    display_currency: Currency,
) -> Decimal:
    """Balance of an account expressed in the display currency."""
    native = compute_native_balance(account, transactions, transfers, rates)
    return convert_amount(native, account.currency, display_currency, rates)


def compute_total_balance(
    accounts: Iterable[AccountRecord],
    transactions: Iterable[TransactionRecord],
    transfers: Iterable[TransferRecord],
    rates: ExchangeRateTable,
    display_currency: Currency,
) -> Decimal:
    """Sum of account balances, added up in base currency then converted once."""
    transactions = list(transactions)
    transfers = list(transfers)
    total_in_base = ZERO
    for account in accounts:
        native = compute_native_balance(account, transactions, transfers, rates)
        total_in_base += convert_to_base(native, account.currency, rates)
    return convert_amount(total_in_base, BASE_CURRENCY, display_currency, rates)


@dataclass(frozen=True)
class PeriodSummary:
    """Income and expense totals for a window, in the display currency.

    Attributes:
        income: Sum of income transactions
        expense: Sum of expense transactions, as a positive number
        net: income - expense
        by_category: Totals keyed by category key
    """
    income: Decimal = ZERO
    expense: Decimal = ZERO
    net: Decimal = ZERO
    by_category: dict[int, Decimal] = field(default_factory=dict)


def summarize_transactions(
    transactions: Iterable[TransactionRecord],
    rates: ExchangeRateTable,
    display_currency: Currency,
    start: dt.date | None = None,
    end: dt.date | None = None,
    account_keys: Iterable[int] | None = None,
) -> PeriodSummary:
    """Total transactions dated in ``[start, end)`` in the display currency."""
    allowed_accounts = set(account_keys) if account_keys is not None else None
    income = ZERO
    expense = ZERO
    by_category: dict[int, Decimal] = {}
    for transaction in transactions:
        if start is not None and transaction.date < start:
            continue
        if end is not None and transaction.date >= end:
            continue
        if allowed_accounts is not None and transaction.account_key not in allowed_accounts:
            continue
        amount = convert_amount(
            transaction.amount, transaction.currency, display_currency, rates
        )
        if transaction.type == TransactionType.INCOME:
            income += amount
        else:
            expense += amount
        by_category[transaction.category_key] = (
            by_category.get(transaction.category_key, ZERO) + amount
        )
    return PeriodSummary(
        income=income,
        expense=expense,
        net=income - expense,
        by_category=by_category,
    )
