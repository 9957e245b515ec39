"""Transfer pricing and write-time validation."""

from __future__ import annotations

from decimal import Decimal
import logging
from typing import Any

from platito.currency import ExchangeRateTable, convert_amount
from platito.exceptions import SameAccountError, ValidationError
from platito.models import (
    AccountRecord,
    TransferDTO,
    TransferRecord,
    ensure_positive_amount,
)

logger = logging.getLogger(__name__)

TRANSFER_PATCH_FIELDS = {
    "from_account_key",
    "to_account_key",
    "amount",
    "date",
    "description",
}


def ensure_distinct_accounts(from_account_key: int, to_account_key: int) -> None:
    """Reject transfers that start and end on the same account."""
    if from_account_key == to_account_key:
        raise SameAccountError("Cannot transfer to the same account")


def price_transfer(
    amount: Decimal,
    from_account: AccountRecord,
    to_account: AccountRecord,
    rates: ExchangeRateTable,
) -> tuple[Decimal, Decimal]:
    """Return ``(converted_amount, exchange_rate)`` at the given rates.

    The pair is stored with the transfer, so later rate edits do not change
    what the destination account was credited.
    """
    amount = ensure_positive_amount(amount)
    ensure_distinct_accounts(from_account.key, to_account.key)
    converted_amount = convert_amount(
        amount, from_account.currency, to_account.currency, rates
    )
    exchange_rate = converted_amount / amount
    logger.debug(
        "Priced transfer %s %s -> %s %s (rate %s)",
        amount,
        from_account.currency.value,
        converted_amount,
        to_account.currency.value,
        exchange_rate,
    )
    return converted_amount, exchange_rate


def merge_transfer_patch(current: TransferRecord, patch: dict[str, Any]) -> TransferDTO:
    """Overlay a partial update on a stored transfer and validate the result."""
    unknown = set(patch) - TRANSFER_PATCH_FIELDS
    if unknown:
        raise ValidationError(f"Unknown transfer fields: {', '.join(sorted(unknown))}")
    values = {
        "from_account_key": current.from_account_key,
        "to_account_key": current.to_account_key,
        "amount": current.amount,
        "date": current.date,
        "description": current.description,
    }
    values.update({name: value for name, value in patch.items() if value is not None})
    return TransferDTO(**values)
