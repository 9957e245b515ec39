"""Persistence interfaces for Platito storage backends."""

from __future__ import annotations

from abc import ABC, abstractmethod
import datetime as dt
from decimal import Decimal
from pathlib import Path
from typing import Any, Iterable

from platito.models import (
    AccountDTO,
    AccountRecord,
    AppSettings,
    CategoryDTO,
    CategoryRecord,
    TagDTO,
    TagRecord,
    TransactionDTO,
    TransactionRecord,
    TransferDTO,
    TransferRecord,
)


class PersistenceBackend(ABC):
    """Abstract interface for repository backends.

    Backends store plain records; ledger rules are enforced by the client
    before anything reaches the backend.
    """

    @abstractmethod
    def __init__(self, db_path: str | Path) -> None:
        """Initialize the backend with a storage path."""

    @abstractmethod
    def connect(self) -> None:
        """Establish a backend connection."""

    @abstractmethod
    def close(self) -> None:
        """Close the backend connection."""

    @abstractmethod
    def create_schema(self) -> None:
        """Create missing tables and indexes."""

    @abstractmethod
    def begin_transaction(self) -> None:
        """Start a transaction."""

    @abstractmethod
    def commit(self) -> None:
        """Commit the active transaction."""

    @abstractmethod
    def rollback(self) -> None:
        """Rollback the active transaction."""

    @abstractmethod
    def insert_account(self, account: AccountDTO) -> AccountRecord:
        """Insert an account and return the record."""

    @abstractmethod
    def get_account(self, key: int) -> AccountRecord:
        """Return an account by key or raise NotFoundError."""

    @abstractmethod
    def list_accounts(self, include_archived: bool = True) -> list[AccountRecord]:
        """Return accounts ordered by name."""

    @abstractmethod
    def update_account(self, key: int, fields: dict[str, Any]) -> AccountRecord:
        """Apply column updates to an account and return the record."""

    @abstractmethod
    def delete_account(self, key: int) -> None:
        """Delete an account row."""

    @abstractmethod
    def insert_category(self, category: CategoryDTO) -> CategoryRecord:
        """Insert a category and return the record."""

    @abstractmethod
    def get_category(self, key: int) -> CategoryRecord:
        """Return a category by key or raise NotFoundError."""

    @abstractmethod
    def list_categories(self, category_type: str | None = None) -> list[CategoryRecord]:
        """Return categories, optionally of one type."""

    @abstractmethod
    def update_category(self, key: int, fields: dict[str, Any]) -> CategoryRecord:
        """Apply column updates to a category and return the record."""

    @abstractmethod
    def delete_category(self, key: int) -> None:
        """Delete a category row."""

    @abstractmethod
    def insert_tag(self, tag: TagDTO) -> TagRecord:
        """Insert a tag and return the record."""

    @abstractmethod
    def get_tag(self, key: int) -> TagRecord:
        """Return a tag by key or raise NotFoundError."""

    @abstractmethod
    def list_tags(self) -> list[TagRecord]:
        """Return tags ordered by name."""

    @abstractmethod
    def update_tag(self, key: int, name: str) -> TagRecord:
        """Rename a tag and return the record."""

    @abstractmethod
    def delete_tag(self, key: int) -> None:
        """Delete a tag and detach it from transactions."""

    @abstractmethod
    def insert_transaction(self, transaction: TransactionDTO) -> TransactionRecord:
        """Insert a transaction whose type and currency are already stamped."""

    @abstractmethod
    def get_transaction(self, key: int) -> TransactionRecord:
        """Return a transaction by key or raise NotFoundError."""

    @abstractmethod
    def list_transactions(
        self,
        start_date: dt.date | None = None,
        end_date: dt.date | None = None,
        account_key: int | None = None,
        category_key: int | None = None,
    ) -> list[TransactionRecord]:
        """Return transactions, newest first."""

    @abstractmethod
    def update_transaction(self, key: int, transaction: TransactionDTO) -> TransactionRecord:
        """Replace a transaction with stamped values and return the record."""

    @abstractmethod
    def delete_transaction(self, key: int) -> None:
        """Delete a transaction and its tag links."""

    @abstractmethod
    def count_transactions(
        self,
        account_key: int | None = None,
        category_key: int | None = None,
    ) -> int:
        """Count transactions referencing an account or category."""

    @abstractmethod
    def insert_transfer(
        self,
        transfer: TransferDTO,
        converted_amount: Decimal,
        exchange_rate: Decimal,
        timestamp: str,
    ) -> TransferRecord:
        """Insert a priced transfer and return the record."""

    @abstractmethod
    def get_transfer(self, key: int) -> TransferRecord:
        """Return a transfer by key or raise NotFoundError."""

    @abstractmethod
    def list_transfers(
        self,
        start_date: dt.date | None = None,
        end_date: dt.date | None = None,
        account_key: int | None = None,
        direction: str = "both",
    ) -> list[TransferRecord]:
        """Return transfers, newest first."""

    @abstractmethod
    def update_transfer(
        self,
        key: int,
        transfer: TransferDTO,
        converted_amount: Decimal,
        exchange_rate: Decimal,
        timestamp: str,
    ) -> TransferRecord:
        """Replace a transfer with re-priced values and return the record."""

    @abstractmethod
    def delete_transfer(self, key: int) -> None:
        """Delete a transfer row."""

    @abstractmethod
    def count_transfers(self, account_key: int) -> int:
        """Count transfers touching an account on either end."""

    @abstractmethod
    def load_settings(self) -> AppSettings | None:
        """Return the stored settings, or None when never saved."""

    @abstractmethod
    def save_settings(self, settings: AppSettings) -> None:
        """Replace the stored settings."""

    @abstractmethod
    def clear_tables(self, tables: Iterable[str]) -> None:
        """Delete every row of the given tables."""

    @abstractmethod
    def insert_rows(self, table: str, rows: Iterable[dict[str, Any]]) -> int:
        """Bulk insert raw rows, keys included, and return the row count."""
