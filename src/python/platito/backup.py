"""Whole-database export, import, reset and sample data."""

from __future__ import annotations

import datetime as dt
from decimal import Decimal
import logging
from typing import TYPE_CHECKING, Any

from platito.currency import Currency, parse_currency
from platito.exceptions import ValidationError
from platito.forex import normalize_rates
from platito.models import (
    AccountDTO,
    AppSettings,
    AutoUpdateInterval,
    TimeWindow,
    TransactionDTO,
    TransactionType,
    TransferDTO,
    ensure_enum,
)
from platito.schema import DATA_TABLES, DEFAULT_ICON

if TYPE_CHECKING:
    from platito.client import PlatitoClient

logger = logging.getLogger(__name__)

EXPORT_SECTIONS = ("accounts", "categories", "tags", "transactions", "transfers")


def _text(value: Any, default: str = "") -> str:
    return default if value is None else str(value)


def export_database(client: PlatitoClient) -> dict[str, Any]:
    """Return every table as JSON-safe arrays keyed by section name."""
    repository = client.repository
    settings = client.settings_store.load()
    return {
        "accounts": [
            {
                "id": account.key,
                "name": account.name,
                "currency": account.currency.value,
                "initialBalance": str(account.initial_balance),
                "color": account.color,
                "icon": account.icon,
                "isArchived": account.is_archived,
            }
            for account in repository.list_accounts(include_archived=True)
        ],
        "categories": [
            {
                "id": category.key,
                "name": category.name,
                "type": category.type.value,
                "color": category.color,
                "icon": category.icon,
                "isDefault": category.is_default,
            }
            for category in repository.list_categories()
        ],
        "tags": [{"id": tag.key, "name": tag.name} for tag in repository.list_tags()],
        "transactions": [
            {
                "id": transaction.key,
                "accountId": transaction.account_key,
                "categoryId": transaction.category_key,
                "type": transaction.type.value,
                "amount": str(transaction.amount),
                "currency": transaction.currency.value,
                "date": transaction.date.isoformat(),
                "description": transaction.description,
                "tagIds": list(transaction.tag_keys),
            }
            for transaction in repository.list_transactions()
        ],
        "transfers": [
            {
                "id": transfer.key,
                "fromAccountId": transfer.from_account_key,
                "toAccountId": transfer.to_account_key,
                "amount": str(transfer.amount),
                "convertedAmount": str(transfer.converted_amount),
                "exchangeRate": str(transfer.exchange_rate),
                "date": transfer.date.isoformat(),
                "description": transfer.description,
                "createdAt": transfer.created_at,
                "updatedAt": transfer.updated_at,
            }
            for transfer in repository.list_transfers()
        ],
        "settings": {
            "defaultAccountId": settings.default_account_key,
            "defaultTimeWindow": settings.default_time_window.value,
            "displayCurrency": settings.display_currency.value,
            "exchangeRates": {
                currency.value: {"toBase": str(rate)}
                for currency, rate in settings.exchange_rates.items()
            },
            "autoUpdateInterval": settings.auto_update_interval.value,
            "lastFxUpdate": settings.last_fx_update.isoformat()
            if settings.last_fx_update
            else None,
            "fxUpdateCount": settings.fx_update_count,
        },
    }


def _import_rows(payload: dict[str, Any]) -> dict[str, list[dict[str, Any]]]:
    """Map exported records onto table rows without re-validating them."""
    rows: dict[str, list[dict[str, Any]]] = {table: [] for table in DATA_TABLES}
    for item in payload.get("accounts") or []:
        rows["Account"].append(
            {
                "key": item.get("id"),
                "name": _text(item.get("name")),
                "currency": _text(item.get("currency")),
                "initialBalance": _text(item.get("initialBalance"), "0"),
                "color": _text(item.get("color")),
                "icon": _text(item.get("icon")),
                "isArchived": bool(item.get("isArchived", False)),
            }
        )
    for item in payload.get("categories") or []:
        rows["Category"].append(
            {
                "key": item.get("id"),
                "name": _text(item.get("name")),
                "type": _text(item.get("type")),
                "color": _text(item.get("color")),
                "icon": _text(item.get("icon")) or DEFAULT_ICON,
                "isDefault": bool(item.get("isDefault", False)),
            }
        )
    for item in payload.get("tags") or []:
        rows["Tag"].append({"key": item.get("id"), "name": _text(item.get("name"))})
    for item in payload.get("transactions") or []:
        rows["Txn"].append(
            {
                "key": item.get("id"),
                "accountKey": item.get("accountId"),
                "categoryKey": item.get("categoryId"),
                "type": _text(item.get("type")),
                "amount": _text(item.get("amount"), "0"),
                "currency": _text(item.get("currency")),
                "date": _text(item.get("date"))[:10],
                "description": _text(item.get("description")),
            }
        )
        for tag_key in item.get("tagIds") or []:
            rows["TransactionTag"].append({"transKey": item.get("id"), "tagKey": tag_key})
    for item in payload.get("transfers") or []:
        rows["Transfer"].append(
            {
                "key": item.get("id"),
                "fromAccountKey": item.get("fromAccountId"),
                "toAccountKey": item.get("toAccountId"),
                "amount": _text(item.get("amount"), "0"),
                "convertedAmount": _text(item.get("convertedAmount"), "0"),
                "exchangeRate": _text(item.get("exchangeRate"), "0"),
                "date": _text(item.get("date"))[:10],
                "description": _text(item.get("description")),
                "createdAt": _text(item.get("createdAt")),
                "updatedAt": _text(item.get("updatedAt")),
            }
        )
    return rows


def _settings_from_payload(client: PlatitoClient, raw: Any) -> AppSettings | None:
    """Build the imported settings record, rejecting values that cannot be stored."""
    if isinstance(raw, list):
        raw = raw[0] if raw else None
    if not isinstance(raw, dict):
        return None
    defaults = client.settings_store.defaults()
    last_update = raw.get("lastFxUpdate")
    try:
        last_fx_update = dt.datetime.fromisoformat(last_update) if last_update else None
        fx_update_count = int(raw.get("fxUpdateCount") or 0)
    except (TypeError, ValueError) as exc:
        raise ValidationError(f"Invalid settings in import document: {exc}") from exc
    return AppSettings(
        default_account_key=raw.get("defaultAccountId"),
        default_time_window=ensure_enum(
            TimeWindow, raw.get("defaultTimeWindow") or defaults.default_time_window, "Time window"
        ),
        display_currency=parse_currency(raw.get("displayCurrency") or defaults.display_currency),
        exchange_rates=normalize_rates(
            raw.get("exchangeRates"), client.settings_store.profile
        ),
        auto_update_interval=ensure_enum(
            AutoUpdateInterval,
            raw.get("autoUpdateInterval") or defaults.auto_update_interval,
            "Auto update interval",
        ),
        last_fx_update=last_fx_update,
        fx_update_count=fx_update_count,
    )


def import_database(client: PlatitoClient, payload: dict[str, Any]) -> dict[str, int]:
    """Replace all ledger data with an exported document.

    The document is parsed before anything is cleared. Data tables and
    settings are then replaced in one transaction, so a rejected row leaves
    the previous data in place. Imported records are trusted as-is.
    """
    if not isinstance(payload, dict):
        raise ValidationError("Import document must be a JSON object")
    if not any(section in payload for section in EXPORT_SECTIONS):
        raise ValidationError("Import document has no data sections")
    rows = _import_rows(payload)
    settings = _settings_from_payload(client, payload.get("settings"))
    repository = client.repository

    def action() -> dict[str, int]:
        repository.clear_tables(DATA_TABLES)
        # Parents first so keys referenced by children already exist.
        counts = {
            table: repository.insert_rows(table, rows[table])
            for table in reversed(DATA_TABLES)
        }
        if settings is not None:
            client.settings_store.save(settings)
        return counts

    counts = client.atomic(action)
    logger.info(
        "Imported %s",
        ", ".join(f"{count} {table}" for table, count in counts.items()),
    )
    return counts


def reset_database(client: PlatitoClient) -> AppSettings:
    """Remove all data and restore default settings and categories."""
    def action() -> AppSettings:
        client.repository.clear_tables([*DATA_TABLES, "Settings"])
        settings = client.settings_store.load()
        client.ensure_default_categories()
        return settings

    return client.atomic(action)


SAMPLE_ACCOUNTS = (
    AccountDTO("Cash", Currency.ARS, Decimal("50000"), color="green", icon="cash"),
    AccountDTO("Bank", Currency.ARS, Decimal("250000"), color="blue", icon="building-bank"),
    AccountDTO("Dollars MEP", Currency.USD_MEP, Decimal("300"), color="teal", icon="currency-dollar"),
    AccountDTO("Crypto", Currency.USDT, Decimal("150"), color="yellow", icon="currency-bitcoin"),
)

# (account name, category name, type, amount, days ago, description)
SAMPLE_TRANSACTIONS = (
    ("Bank", "Salary", TransactionType.INCOME, "900000", 20, "Monthly salary"),
    ("Cash", "Food", TransactionType.EXPENSE, "18500", 1, "Groceries"),
    ("Cash", "Transport", TransactionType.EXPENSE, "4200", 2, "Bus card top-up"),
    ("Bank", "Housing", TransactionType.EXPENSE, "320000", 10, "Rent"),
    ("Bank", "Utilities", TransactionType.EXPENSE, "27000", 8, "Electricity"),
    ("Crypto", "Investments", TransactionType.INCOME, "12", 5, "Staking rewards"),
    ("Dollars MEP", "Entertainment", TransactionType.EXPENSE, "25", 3, "Streaming"),
)


def seed_sample_data(client: PlatitoClient) -> bool:
    """Fill an empty database with illustrative records.

    Returns False without changes when accounts or transactions already exist.
    """
    repository = client.repository
    if repository.list_accounts(include_archived=True) or repository.count_transactions():
        return False

    def action() -> bool:
        client.initialize()
        accounts = {dto.name: client.add_account(dto) for dto in SAMPLE_ACCOUNTS}
        categories = {
            (category.name, category.type): category
            for category in client.list_categories()
        }
        today = client.clock().date()
        for account_name, category_name, kind, amount, days_ago, description in SAMPLE_TRANSACTIONS:
            client.add_transaction(
                TransactionDTO(
                    account_key=accounts[account_name].key,
                    category_key=categories[(category_name, kind)].key,
                    amount=Decimal(amount),
                    date=today - dt.timedelta(days=days_ago),
                    description=description,
                )
            )
        client.add_transfer(
            TransferDTO(
                from_account_key=accounts["Bank"].key,
                to_account_key=accounts["Dollars MEP"].key,
                amount=Decimal("115000"),
                date=today - dt.timedelta(days=4),
                description="Buy MEP dollars",
            )
        )
        return True

    return client.atomic(action)
