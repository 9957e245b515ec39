"""SQLite repository implementation for Platito."""

from __future__ import annotations

from pathlib import Path
import datetime as dt
from decimal import Decimal
import json
import sqlite3
from typing import Any, Iterable

from platito.currency import Currency
from platito.exceptions import NotFoundError, ValidationError
from platito.models import (
    AccountDTO,
    AccountRecord,
    AppSettings,
    AutoUpdateInterval,
    CategoryDTO,
    CategoryRecord,
    TagDTO,
    TagRecord,
    TimeWindow,
    TransactionDTO,
    TransactionRecord,
    TransactionType,
    TransferDTO,
    TransferRecord,
)
from platito.persistence import PersistenceBackend
from platito.schema import (
    ACCOUNT_COLUMNS,
    DATA_TABLES,
    DEFAULT_ICON,
    FLAG_N,
    FLAG_Y,
    SCHEMA_STATEMENTS,
    TRANSFER_COLUMNS,
)

ACCOUNT_FIELDS = {
    "name": "name",
    "initial_balance": "initialBalance",
    "color": "color",
    "icon": "icon",
    "is_archived": "isArchived",
}
CATEGORY_FIELDS = {
    "name": "name",
    "type": "type",
    "color": "color",
    "icon": "icon",
    "is_default": "isDefault",
}
TRANSFER_DIRECTIONS = {"from", "to", "both"}
BULK_TABLES = set(DATA_TABLES)


def _to_db_value(value: Any) -> Any:
    """Convert a domain value into a SQLite parameter."""
    if isinstance(value, bool):
        return FLAG_Y if value else FLAG_N
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, (Currency, TransactionType)):
        return value.value
    return value


class Repository(PersistenceBackend):
    """SQLite-backed persistence implementation."""

    def __init__(self, db_path: str | Path) -> None:
        """Create a repository for the given database path."""
        self.db_path = Path(db_path)
        self.connection: sqlite3.Connection | None = None

    def connect(self) -> None:
        """Open the database connection."""
        if self.connection is None:
            # Autocommit mode; multi-statement writes use explicit BEGIN.
            self.connection = sqlite3.connect(self.db_path, isolation_level=None)
            self.connection.row_factory = sqlite3.Row

    def close(self) -> None:
        """Close the database connection."""
        if self.connection is not None:
            self.connection.close()
            self.connection = None

    def create_schema(self) -> None:
        """Create missing tables and indexes."""
        self._ensure_connection()
        for statement in SCHEMA_STATEMENTS:
            self.connection.execute(statement)

    def begin_transaction(self) -> None:
        """Begin a database transaction."""
        self._ensure_connection()
        self.connection.execute("BEGIN")

    def commit(self) -> None:
        """Commit the current transaction."""
        self._ensure_connection()
        self.connection.commit()

    def rollback(self) -> None:
        """Rollback the current transaction."""
        self._ensure_connection()
        self.connection.rollback()

    # Accounts

    def insert_account(self, account: AccountDTO) -> AccountRecord:
        """Insert a new account row and return the record."""
        self._ensure_connection()
        cursor = self.connection.execute(
            """
            INSERT INTO Account (name, currency, initialBalance, color, icon, isArchived)
            VALUES (?, ?, ?, ?, ?, ?)
            """,
            (
                account.name,
                account.currency.value,
                str(account.initial_balance),
                account.color,
                account.icon,
                FLAG_Y if account.is_archived else FLAG_N,
            ),
        )
        return self.get_account(int(cursor.lastrowid))

    def get_account(self, key: int) -> AccountRecord:
        """Fetch a single account by key."""
        self._ensure_connection()
        row = self.connection.execute(
            f"SELECT {', '.join(ACCOUNT_COLUMNS)} FROM Account WHERE key = ?",
            (key,),
        ).fetchone()
        if row is None:
            raise NotFoundError(f"Account {key} not found")
        return self._account_from_row(row)

    def list_accounts(self, include_archived: bool = True) -> list[AccountRecord]:
        """Return accounts ordered by name."""
        self._ensure_connection()
        where_clause = "" if include_archived else "WHERE isArchived = 0"
        rows = self.connection.execute(
            f"SELECT {', '.join(ACCOUNT_COLUMNS)} FROM Account {where_clause} "
            "ORDER BY name COLLATE NOCASE, key"
        ).fetchall()
        return [self._account_from_row(row) for row in rows]

    def update_account(self, key: int, fields: dict[str, Any]) -> AccountRecord:
        """Update account columns and return the latest record."""
        self._apply_updates("Account", ACCOUNT_FIELDS, key, fields)
        return self.get_account(key)

    def delete_account(self, key: int) -> None:
        """Delete an account row."""
        self._ensure_connection()
        self.connection.execute("DELETE FROM Account WHERE key = ?", (key,))

    # Categories

    def insert_category(self, category: CategoryDTO) -> CategoryRecord:
        """Insert a new category row and return the record."""
        self._ensure_connection()
        cursor = self.connection.execute(
            """
            INSERT INTO Category (name, type, color, icon, isDefault)
            VALUES (?, ?, ?, ?, ?)
            """,
            (
                category.name,
                category.type.value,
                category.color,
                category.icon or DEFAULT_ICON,
                FLAG_Y if category.is_default else FLAG_N,
            ),
        )
        return self.get_category(int(cursor.lastrowid))

    def get_category(self, key: int) -> CategoryRecord:
        """Fetch a single category by key."""
        self._ensure_connection()
        row = self.connection.execute(
            "SELECT key, name, type, color, icon, isDefault FROM Category WHERE key = ?",
            (key,),
        ).fetchone()
        if row is None:
            raise NotFoundError(f"Category {key} not found")
        return self._category_from_row(row)

    def list_categories(self, category_type: str | None = None) -> list[CategoryRecord]:
        """Return categories ordered by type and name."""
        self._ensure_connection()
        query = "SELECT key, name, type, color, icon, isDefault FROM Category"
        params: list[object] = []
        if category_type is not None:
            query += " WHERE type = ?"
            params.append(_to_db_value(category_type))
        query += " ORDER BY type, name COLLATE NOCASE, key"
        rows = self.connection.execute(query, params).fetchall()
        return [self._category_from_row(row) for row in rows]

    def update_category(self, key: int, fields: dict[str, Any]) -> CategoryRecord:
        """Update category columns and return the latest record."""
        self._apply_updates("Category", CATEGORY_FIELDS, key, fields)
        return self.get_category(key)

    def delete_category(self, key: int) -> None:
        """Delete a category row."""
        self._ensure_connection()
        self.connection.execute("DELETE FROM Category WHERE key = ?", (key,))

    # Tags

    def insert_tag(self, tag: TagDTO) -> TagRecord:
        """Insert a new tag row and return the record."""
        self._ensure_connection()
        cursor = self.connection.execute("INSERT INTO Tag (name) VALUES (?)", (tag.name,))
        return TagRecord(key=int(cursor.lastrowid), name=tag.name)

    def get_tag(self, key: int) -> TagRecord:
        """Fetch a single tag by key."""
        self._ensure_connection()
        row = self.connection.execute(
            "SELECT key, name FROM Tag WHERE key = ?", (key,)
        ).fetchone()
        if row is None:
            raise NotFoundError(f"Tag {key} not found")
        return TagRecord(key=row["key"], name=row["name"])

    def list_tags(self) -> list[TagRecord]:
        """Return tags ordered by name."""
        self._ensure_connection()
        rows = self.connection.execute(
            "SELECT key, name FROM Tag ORDER BY name COLLATE NOCASE, key"
        ).fetchall()
        return [TagRecord(key=row["key"], name=row["name"]) for row in rows]

    def update_tag(self, key: int, name: str) -> TagRecord:
        """Rename a tag and return the latest record."""
        self._ensure_connection()
        self.connection.execute("UPDATE Tag SET name = ? WHERE key = ?", (name, key))
        return self.get_tag(key)

    def delete_tag(self, key: int) -> None:
        """Delete a tag and its transaction links."""
        self._ensure_connection()
        self.connection.execute("DELETE FROM TransactionTag WHERE tagKey = ?", (key,))
        self.connection.execute("DELETE FROM Tag WHERE key = ?", (key,))

    # Transactions

    def insert_transaction(self, transaction: TransactionDTO) -> TransactionRecord:
        """Insert a stamped transaction and its tag links."""
        self._ensure_connection()
        self._require_stamped(transaction)
        cursor = self.connection.execute(
            """
            INSERT INTO Txn (
                accountKey,
                categoryKey,
                type,
                amount,
                currency,
                date,
                description
            ) VALUES (?, ?, ?, ?, ?, ?, ?)
            """,
            (
                transaction.account_key,
                transaction.category_key,
                transaction.type.value,
                str(transaction.amount),
                transaction.currency.value,
                transaction.date.isoformat(),
                transaction.description,
            ),
        )
        transaction_key = int(cursor.lastrowid)
        self._write_tag_links(transaction_key, transaction.tag_keys)
        return self.get_transaction(transaction_key)

    def get_transaction(self, key: int) -> TransactionRecord:
        """Fetch a single transaction by key."""
        self._ensure_connection()
        row = self.connection.execute(
            """
            SELECT key, accountKey, categoryKey, type, amount, currency, date, description
            FROM Txn
            WHERE key = ?
            """,
            (key,),
        ).fetchone()
        if row is None:
            raise NotFoundError(f"Transaction {key} not found")
        tag_links = self._load_tag_links([row["key"]])
        return self._transaction_from_row(row, tag_links.get(row["key"], ()))

    def list_transactions(
        self,
        start_date: dt.date | None = None,
        end_date: dt.date | None = None,
        account_key: int | None = None,
        category_key: int | None = None,
    ) -> list[TransactionRecord]:
        """List transactions, optionally filtered by date range, account or category."""
        self._ensure_connection()
        filters = []
        params: list[object] = []
        if start_date is not None:
            filters.append("date >= ?")
            params.append(start_date.isoformat())
        if end_date is not None:
            filters.append("date <= ?")
            params.append(end_date.isoformat())
        if account_key is not None:
            filters.append("accountKey = ?")
            params.append(account_key)
        if category_key is not None:
            filters.append("categoryKey = ?")
            params.append(category_key)
        where_clause = ""
        if filters:
            where_clause = "WHERE " + " AND ".join(filters)

        rows = self.connection.execute(
            f"""
            SELECT key, accountKey, categoryKey, type, amount, currency, date, description
            FROM Txn
            {where_clause}
            ORDER BY date DESC, key DESC
            """,
            params,
        ).fetchall()
        tag_links = self._load_tag_links([row["key"] for row in rows])
        return [
            self._transaction_from_row(row, tag_links.get(row["key"], ()))
            for row in rows
        ]

    def update_transaction(self, key: int, transaction: TransactionDTO) -> TransactionRecord:
        """Replace a transaction row and its tag links."""
        self._ensure_connection()
        self._require_stamped(transaction)
        self.connection.execute(
            """
            UPDATE Txn SET
                accountKey = ?,
                categoryKey = ?,
                type = ?,
                amount = ?,
                currency = ?,
                date = ?,
                description = ?
            WHERE key = ?
            """,
            (
                transaction.account_key,
                transaction.category_key,
                transaction.type.value,
                str(transaction.amount),
                transaction.currency.value,
                transaction.date.isoformat(),
                transaction.description,
                key,
            ),
        )
        self.connection.execute("DELETE FROM TransactionTag WHERE transKey = ?", (key,))
        self._write_tag_links(key, transaction.tag_keys)
        return self.get_transaction(key)

    def delete_transaction(self, key: int) -> None:
        """Delete a transaction and its tag links."""
        self._ensure_connection()
        self.connection.execute("DELETE FROM TransactionTag WHERE transKey = ?", (key,))
        self.connection.execute("DELETE FROM Txn WHERE key = ?", (key,))

    def count_transactions(
        self,
        account_key: int | None = None,
        category_key: int | None = None,
    ) -> int:
        """Count transactions referencing an account or category."""
        self._ensure_connection()
        filters = []
        params: list[object] = []
        if account_key is not None:
            filters.append("accountKey = ?")
            params.append(account_key)
        if category_key is not None:
            filters.append("categoryKey = ?")
            params.append(category_key)
        where_clause = ""
        if filters:
            where_clause = "WHERE " + " AND ".join(filters)
        row = self.connection.execute(
            f"SELECT COUNT(*) FROM Txn {where_clause}", params
        ).fetchone()
        return int(row[0])

    # Transfers

    def insert_transfer(
        self,
        transfer: TransferDTO,
        converted_amount: Decimal,
        exchange_rate: Decimal,
        timestamp: str,
    ) -> TransferRecord:
        """Insert a new transfer row and return the record."""
        self._ensure_connection()
        cursor = self.connection.execute(
            """
            INSERT INTO Transfer (
                fromAccountKey,
                toAccountKey,
                amount,
                convertedAmount,
                exchangeRate,
                date,
                description,
                createdAt,
                updatedAt
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                transfer.from_account_key,
                transfer.to_account_key,
                str(transfer.amount),
                str(converted_amount),
                str(exchange_rate),
                transfer.date.isoformat(),
                transfer.description,
                timestamp,
                timestamp,
            ),
        )
        return self.get_transfer(int(cursor.lastrowid))

    def get_transfer(self, key: int) -> TransferRecord:
        """Fetch a single transfer by key."""
        self._ensure_connection()
        row = self.connection.execute(
            f"SELECT {', '.join(TRANSFER_COLUMNS)} FROM Transfer WHERE key = ?",
            (key,),
        ).fetchone()
        if row is None:
            raise NotFoundError(f"Transfer {key} not found")
        return self._transfer_from_row(row)

    def list_transfers(
        self,
        start_date: dt.date | None = None,
        end_date: dt.date | None = None,
        account_key: int | None = None,
        direction: str = "both",
    ) -> list[TransferRecord]:
        """List transfers, optionally filtered by date range and account."""
        self._ensure_connection()
        if direction not in TRANSFER_DIRECTIONS:
            raise ValidationError(f"direction must be one of {sorted(TRANSFER_DIRECTIONS)}")
        query = f"SELECT {', '.join(TRANSFER_COLUMNS)} FROM Transfer WHERE 1 = 1"
        params: list[object] = []
        if start_date is not None:
            query += " AND date >= ?"
            params.append(start_date.isoformat())
        if end_date is not None:
            query += " AND date <= ?"
            params.append(end_date.isoformat())
        if account_key is not None:
            if direction == "from":
                query += " AND fromAccountKey = ?"
                params.append(account_key)
            elif direction == "to":
                query += " AND toAccountKey = ?"
                params.append(account_key)
            else:
                query += " AND (fromAccountKey = ? OR toAccountKey = ?)"
                params.extend([account_key, account_key])
        query += " ORDER BY date DESC, key DESC"

        rows = self.connection.execute(query, params).fetchall()
        return [self._transfer_from_row(row) for row in rows]

    def update_transfer(
        self,
        key: int,
        transfer: TransferDTO,
        converted_amount: Decimal,
        exchange_rate: Decimal,
        timestamp: str,
    ) -> TransferRecord:
        """Replace a transfer row and return the latest record."""
        self._ensure_connection()
        self.connection.execute(
            """
            UPDATE Transfer SET
                fromAccountKey = ?,
                toAccountKey = ?,
                amount = ?,
                convertedAmount = ?,
                exchangeRate = ?,
                date = ?,
                description = ?,
                updatedAt = ?
            WHERE key = ?
            """,
            (
                transfer.from_account_key,
                transfer.to_account_key,
                str(transfer.amount),
                str(converted_amount),
                str(exchange_rate),
                transfer.date.isoformat(),
                transfer.description,
                timestamp,
                key,
            ),
        )
        return self.get_transfer(key)

    def delete_transfer(self, key: int) -> None:
        """Delete a transfer row."""
        self._ensure_connection()
        self.connection.execute("DELETE FROM Transfer WHERE key = ?", (key,))

    def count_transfers(self, account_key: int) -> int:
        """Count transfers touching an account on either end."""
        self._ensure_connection()
        row = self.connection.execute(
            "SELECT COUNT(*) FROM Transfer WHERE fromAccountKey = ? OR toAccountKey = ?",
            (account_key, account_key),
        ).fetchone()
        return int(row[0])

    # Settings

    def load_settings(self) -> AppSettings | None:
        """Return the stored settings row, or None when absent."""
        self._ensure_connection()
        row = self.connection.execute(
            """
            SELECT
                defaultAccountKey,
                defaultTimeWindow,
                displayCurrency,
                exchangeRates,
                autoUpdateInterval,
                lastFxUpdate,
                fxUpdateCount
            FROM Settings
            LIMIT 1
            """
        ).fetchone()
        if row is None:
            return None
        last_update = row["lastFxUpdate"]
        return AppSettings(
            default_account_key=row["defaultAccountKey"],
            default_time_window=TimeWindow(row["defaultTimeWindow"]),
            display_currency=Currency(row["displayCurrency"]),
            exchange_rates=self._decode_rates(row["exchangeRates"]),
            auto_update_interval=AutoUpdateInterval(row["autoUpdateInterval"]),
            last_fx_update=dt.datetime.fromisoformat(last_update) if last_update else None,
            fx_update_count=int(row["fxUpdateCount"] or 0),
        )

    def save_settings(self, settings: AppSettings) -> None:
        """Replace the single settings row, inserting it when absent."""
        self._ensure_connection()
        params = (
            settings.default_account_key,
            settings.default_time_window.value,
            settings.display_currency.value,
            self._encode_rates(settings.exchange_rates),
            settings.auto_update_interval.value,
            settings.last_fx_update.isoformat() if settings.last_fx_update else None,
            settings.fx_update_count,
        )
        cursor = self.connection.execute(
            """
            UPDATE Settings SET
                defaultAccountKey = ?,
                defaultTimeWindow = ?,
                displayCurrency = ?,
                exchangeRates = ?,
                autoUpdateInterval = ?,
                lastFxUpdate = ?,
                fxUpdateCount = ?
            """,
            params,
        )
        if cursor.rowcount > 0:
            return
        self.connection.execute(
            """
            INSERT INTO Settings (
                defaultAccountKey,
                defaultTimeWindow,
                displayCurrency,
                exchangeRates,
                autoUpdateInterval,
                lastFxUpdate,
                fxUpdateCount
            ) VALUES (?, ?, ?, ?, ?, ?, ?)
            """,
            params,
        )

    # Bulk operations

    def clear_tables(self, tables: Iterable[str]) -> None:
        """Delete every row of the given tables."""
        self._ensure_connection()
        for table in tables:
            if table not in BULK_TABLES and table != "Settings":
                raise ValueError(f"Unknown table: {table}")
            self.connection.execute(f"DELETE FROM {table}")

    def insert_rows(self, table: str, rows: Iterable[dict[str, Any]]) -> int:
        """Bulk insert raw rows with their keys.

        Raises:
            ValidationError: A row breaks a table constraint
        """
        self._ensure_connection()
        if table not in BULK_TABLES:
            raise ValueError(f"Unknown table: {table}")
        count = 0
        for row in rows:
            columns = list(row.keys())
            placeholders = ", ".join("?" for _ in columns)
            try:
                self.connection.execute(
                    f"INSERT INTO {table} ({', '.join(columns)}) VALUES ({placeholders})",
                    [_to_db_value(row[column]) for column in columns],
                )
            except sqlite3.IntegrityError as exc:
                raise ValidationError(f"Invalid {table} row {count + 1}: {exc}") from exc
            count += 1
        return count

    # Helpers

    def _ensure_connection(self) -> None:
        """Ensure the connection is initialized before use."""
        if self.connection is None:
            raise RuntimeError("Repository connection is not initialized")

    def _apply_updates(
        self,
        table: str,
        allowed: dict[str, str],
        key: int,
        fields: dict[str, Any],
    ) -> None:
        """Run an UPDATE for the provided attribute values."""
        self._ensure_connection()
        updates = []
        params: list[object] = []
        for name, value in fields.items():
            if name not in allowed:
                raise ValueError(f"Field {name!r} cannot be updated on {table}")
            updates.append(f"{allowed[name]} = ?")
            params.append(_to_db_value(value))
        if not updates:
            return
        params.append(key)
        self.connection.execute(
            f"UPDATE {table} SET {', '.join(updates)} WHERE key = ?",
            params,
        )

    @staticmethod
    def _require_stamped(transaction: TransactionDTO) -> None:
        if transaction.type is None or transaction.currency is None:
            raise ValueError("Transaction type and currency must be stamped before storage")

    def _write_tag_links(self, transaction_key: int, tag_keys: Iterable[int]) -> None:
        for tag_key in tag_keys:
            self.connection.execute(
                "INSERT OR IGNORE INTO TransactionTag (transKey, tagKey) VALUES (?, ?)",
                (transaction_key, tag_key),
            )

    def _load_tag_links(self, transaction_keys: list[int]) -> dict[int, tuple[int, ...]]:
        if not transaction_keys:
            return {}
        links: dict[int, list[int]] = {}
        # Chunked to stay under the SQLite variable limit.
        for start in range(0, len(transaction_keys), 500):
            chunk = transaction_keys[start:start + 500]
            placeholders = ", ".join("?" for _ in chunk)
            rows = self.connection.execute(
                f"SELECT transKey, tagKey FROM TransactionTag "
                f"WHERE transKey IN ({placeholders}) ORDER BY tagKey",
                chunk,
            ).fetchall()
            for row in rows:
                links.setdefault(row["transKey"], []).append(row["tagKey"])
        return {key: tuple(values) for key, values in links.items()}

    @staticmethod
    def _encode_rates(rates: dict[Currency, Decimal]) -> str:
        return json.dumps(
            {currency.value: {"toBase": str(value)} for currency, value in rates.items()}
        )

    @staticmethod
    def _decode_rates(payload: str | None) -> dict[Currency, Decimal]:
        """Decode stored rates, dropping codes that are no longer supported."""
        if not payload:
            return {}
        try:
            raw = json.loads(payload)
        except json.JSONDecodeError:
            return {}
        if not isinstance(raw, dict):
            return {}
        rates: dict[Currency, Decimal] = {}
        for code, entry in raw.items():
            try:
                currency = Currency(code)
                value = entry.get("toBase") if isinstance(entry, dict) else entry
                rates[currency] = Decimal(str(value))
            except (ValueError, ArithmeticError):
                continue
        return rates

    @staticmethod
    def _account_from_row(row: sqlite3.Row) -> AccountRecord:
        return AccountRecord(
            key=row["key"],
            name=row["name"],
            currency=Currency(row["currency"]),
            initial_balance=Decimal(str(row["initialBalance"])),
            color=row["color"],
            icon=row["icon"],
            is_archived=bool(row["isArchived"]),
        )

    @staticmethod
    def _category_from_row(row: sqlite3.Row) -> CategoryRecord:
        return CategoryRecord(
            key=row["key"],
            name=row["name"],
            type=TransactionType(row["type"]),
            color=row["color"],
            icon=row["icon"] or DEFAULT_ICON,
            is_default=bool(row["isDefault"]),
        )

    @staticmethod
    def _transaction_from_row(
        row: sqlite3.Row,
        tag_keys: tuple[int, ...],
    ) -> TransactionRecord:
        return TransactionRecord(
            key=row["key"],
            account_key=row["accountKey"],
            category_key=row["categoryKey"],
            type=TransactionType(row["type"]),
            amount=Decimal(str(row["amount"])),
            currency=Currency(row["currency"]),
            date=dt.date.fromisoformat(row["date"]),
            description=row["description"] or "",
            tag_keys=tag_keys,
        )

    @staticmethod
    def _transfer_from_row(row: sqlite3.Row) -> TransferRecord:
        return TransferRecord(
            key=row["key"],
            from_account_key=row["fromAccountKey"],
            to_account_key=row["toAccountKey"],
            amount=Decimal(str(row["amount"])),
            converted_amount=Decimal(str(row["convertedAmount"])),
            exchange_rate=Decimal(str(row["exchangeRate"])),
            date=dt.date.fromisoformat(row["date"]),
            description=row["description"] or "",
            created_at=row["createdAt"],
            updated_at=row["updatedAt"],
        )
