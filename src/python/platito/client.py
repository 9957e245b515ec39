"""Client orchestration layer for Platito."""

from __future__ import annotations

from enum import Enum
from pathlib import Path
from typing import Any, Callable, TypeVar
import datetime as dt
from decimal import Decimal
import json
import logging
import os

from platito.balance import (
    PeriodSummary,
    compute_account_balance,
    compute_total_balance,
    summarize_transactions,
)
from platito.classification import (
    DEFAULT_CATEGORIES,
    ensure_unique_category_name,
    ensure_unique_tag_name,
    find_seeded_category,
    merge_category_patch,
    merge_transaction_patch,
    stamp_transaction,
)
from platito.currency import Currency, ExchangeRateTable, parse_currency
from platito.exceptions import InUseError, ProtectedEntityError, ValidationError
from platito.forex import (
    DEFAULT_COOLDOWN_SECONDS,
    CriptoYaQuoteSource,
    ExchangeRateManager,
    RatesProfile,
    utc_now,
)
from platito.ledger import ensure_distinct_accounts, merge_transfer_patch, price_transfer
from platito.models import (
    AccountDTO,
    AccountRecord,
    AppSettings,
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
    ensure_finite,
    ensure_non_empty,
    ensure_positive_amount,
)
from platito.periods import period_bounds
from platito.persistence import PersistenceBackend
from platito.repository import Repository
from platito.settings import SettingsStore

T = TypeVar("T")

# Configure logging
logger = logging.getLogger(__name__)
log_level = os.environ.get('LOGGING_LEVEL', 'INFO').upper()
logger.setLevel(getattr(logging, log_level, logging.INFO))
if not logger.handlers:
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter('%(levelname)s - %(name)s - %(message)s'))
    logger.addHandler(handler)

CONFIG_ENV_VAR = "PLATITO_CONFIG"
DEFAULT_DATA_DIR = Path.home() / ".platito"
ACCOUNT_PATCH_FIELDS = {"name", "currency", "initial_balance", "color", "icon", "is_archived"}


class DatabaseProfile(str, Enum):
    """Which dataset a client works against."""

    MAIN = "main"
    TESTING = "testing"

    @property
    def db_name(self) -> str:
        if self is DatabaseProfile.TESTING:
            return "platito_testing.db"
        return "platito.db"

    @property
    def rates_profile(self) -> RatesProfile:
        if self is DatabaseProfile.TESTING:
            return RatesProfile.SAMPLE
        return RatesProfile.LIVE


class PlatitoClient:
    """Coordinate ledger rules, storage and exchange rates."""

    def __init__(
        self,
        db_path: str | Path | None = None,
        profile: DatabaseProfile | str = DatabaseProfile.MAIN,
        repository: PersistenceBackend | None = None,
        quote_source: CriptoYaQuoteSource | None = None,
        clock: Callable[[], dt.datetime] | None = None,
    ) -> None:
        """Initialize the client with a repository backend.

        Args:
            db_path: Path to the SQLite database; derived from config when omitted
            profile: Dataset handle selecting the database file and default rates
            repository: Optional custom persistence backend
            quote_source: Optional quote source used to refresh rates
            clock: Optional callable returning the current UTC datetime
        """
        self.profile = DatabaseProfile(profile)
        self.config = self._load_config()
        self.db_path = self._resolve_db_path(db_path, repository)
        self.repository = repository or Repository(self.db_path)
        self.clock = clock or utc_now
        self.settings_store = SettingsStore(self.repository, self.profile.rates_profile)
        forex_config = self.config.get("forex", {})
        self.rates = ExchangeRateManager(
            settings_store=self.settings_store,
            quote_source=quote_source or CriptoYaQuoteSource(forex_config),
            cooldown_seconds=int(forex_config.get("cooldown_seconds", DEFAULT_COOLDOWN_SECONDS)),
            clock=self.clock,
        )
        self._transaction_depth = 0

    def __enter__(self) -> "PlatitoClient":
        """Open the repository connection and ensure the schema exists."""
        self.repository.connect()
        self.repository.create_schema()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        """Close the repository connection."""
        self.close()

    def close(self) -> None:
        """Close the repository connection."""
        self.repository.close()

    def _load_config(self) -> dict:
        """Load config file if present, else return empty config."""
        config_path = Path(
            os.environ.get(CONFIG_ENV_VAR, str(DEFAULT_DATA_DIR / "config.json"))
        )
        if not config_path.exists():
            return {}
        with config_path.open("r", encoding="utf-8") as handle:
            payload = json.load(handle)
        if not isinstance(payload, dict):
            return {}
        return payload

    def _resolve_db_path(
        self,
        db_path: str | Path | None,
        repository: PersistenceBackend | None,
    ) -> Path:
        """Resolve the database path from arguments or config."""
        if repository is not None and db_path is None:
            return Path("")
        if db_path is not None:
            return Path(db_path)
        data_dir = Path(self.config.get("data_dir") or DEFAULT_DATA_DIR).expanduser()
        data_dir.mkdir(parents=True, exist_ok=True)
        return data_dir / self.profile.db_name

    def _run_transaction(self, action: Callable[[], T]) -> T:
        """Run repository work inside a transaction.

        Nested calls join the outer transaction, so a composite operation
        commits or rolls back as a whole.
        """
        if self._transaction_depth > 0:
            return action()
        self.repository.begin_transaction()
        self._transaction_depth += 1
        try:
            result = action()
            self.repository.commit()
            return result
        except Exception:
            self.repository.rollback()
            raise
        finally:
            self._transaction_depth -= 1

    def atomic(self, action: Callable[[], T]) -> T:
        """Run a multi-step operation as one storage transaction."""
        return self._run_transaction(action)

    def _timestamp(self) -> str:
        return self.clock().isoformat()

    # Startup and settings

    def initialize(self) -> AppSettings:
        """Create settings and default categories when missing."""
        def action() -> AppSettings:
            settings = self.settings_store.load()
            self.ensure_default_categories()
            return settings

        return self._run_transaction(action)

    def get_settings(self) -> AppSettings:
        """Return the settings, creating them on first read."""
        return self.settings_store.load()

    def update_settings(self, **patch: Any) -> AppSettings:
        """Validate and store a partial settings update."""
        return self._run_transaction(lambda: self.settings_store.update(**patch))

    def get_exchange_rates(self) -> ExchangeRateTable:
        """Return the current rate table."""
        return self.rates.get_rates()

    def update_exchange_rates(self, patch: dict[Any, Any]) -> ExchangeRateTable:
        """Merge edited rates into the stored table."""
        return self._run_transaction(lambda: self.rates.update_rates(patch))

    def fetch_exchange_rates(self, force: bool = False) -> ExchangeRateTable:
        """Refresh rates from the quote source, honoring the cooldown."""
        return self.rates.fetch_and_update(force=force)

    def auto_update_exchange_rates(self) -> ExchangeRateTable | None:
        """Refresh rates when the auto-update interval has elapsed."""
        return self.rates.auto_update_if_due()

    # Accounts

    def add_account(self, account: AccountDTO) -> AccountRecord:
        """Add an account and return the created record."""
        return self._run_transaction(lambda: self.repository.insert_account(account))

    def get_account(self, key: int) -> AccountRecord:
        """Get a single account by key."""
        return self.repository.get_account(key)

    def list_accounts(self, include_archived: bool = False) -> list[AccountRecord]:
        """List accounts; archived ones only when requested."""
        return self.repository.list_accounts(include_archived=include_archived)

    def update_account(self, key: int, **patch: Any) -> AccountRecord:
        """Update account fields and return the latest record.

        The currency of an account cannot change once it is created.
        """
        unknown = set(patch) - ACCOUNT_PATCH_FIELDS
        if unknown:
            raise ValidationError(f"Unknown account fields: {', '.join(sorted(unknown))}")

        def action() -> AccountRecord:
            current = self.repository.get_account(key)
            fields: dict[str, Any] = {}
            if patch.get("currency") is not None:
                if parse_currency(patch["currency"]) != current.currency:
                    raise ValidationError("Account currency cannot be changed")
            if patch.get("name") is not None:
                fields["name"] = ensure_non_empty(patch["name"], "Name")
            if patch.get("initial_balance") is not None:
                fields["initial_balance"] = ensure_finite(
                    patch["initial_balance"], "Initial balance"
                )
            for name in ("color", "icon"):
                if patch.get(name) is not None:
                    fields[name] = patch[name]
            if patch.get("is_archived") is not None:
                fields["is_archived"] = bool(patch["is_archived"])
            return self.repository.update_account(key, fields)

        return self._run_transaction(action)

    def archive_account(self, key: int) -> AccountRecord:
        """Hide an account from active views, keeping its history."""
        return self.update_account(key, is_archived=True)

    def unarchive_account(self, key: int) -> AccountRecord:
        """Return an archived account to active views."""
        return self.update_account(key, is_archived=False)

    def delete_account(self, key: int) -> None:
        """Delete an account that no transaction or transfer references."""
        def action() -> None:
            self.repository.get_account(key)
            transactions = self.repository.count_transactions(account_key=key)
            transfers = self.repository.count_transfers(key)
            if transactions or transfers:
                raise InUseError(
                    f"Account {key} is referenced by {transactions} transaction(s) "
                    f"and {transfers} transfer(s); archive it instead"
                )
            settings = self.settings_store.load()
            if settings.default_account_key == key:
                self.settings_store.update(default_account_key=None)
            self.repository.delete_account(key)

        return self._run_transaction(action)

    # Categories

    def add_category(self, category: CategoryDTO) -> CategoryRecord:
        """Add a category with a name unique within its type."""
        def action() -> CategoryRecord:
            ensure_unique_category_name(
                category.name,
                category.type,
                self.repository.list_categories(category.type),
            )
            return self.repository.insert_category(category)

        return self._run_transaction(action)

    def get_category(self, key: int) -> CategoryRecord:
        """Get a single category by key."""
        return self.repository.get_category(key)

    def list_categories(
        self,
        category_type: TransactionType | str | None = None,
    ) -> list[CategoryRecord]:
        """List categories, optionally of one type."""
        return self.repository.list_categories(category_type)

    def update_category(self, key: int, **patch: Any) -> CategoryRecord:
        """Update a category; its default flag cannot be changed."""
        def action() -> CategoryRecord:
            current = self.repository.get_category(key)
            fields = merge_category_patch(current, patch)
            ensure_unique_category_name(
                fields["name"],
                fields["type"],
                self.repository.list_categories(),
                exclude_key=key,
            )
            return self.repository.update_category(key, fields)

        return self._run_transaction(action)

    def delete_category(self, key: int) -> None:
        """Delete a user category that no transaction references."""
        def action() -> None:
            current = self.repository.get_category(key)
            if current.is_default:
                raise ProtectedEntityError(
                    f"Default category {current.name!r} cannot be deleted"
                )
            in_use = self.repository.count_transactions(category_key=key)
            if in_use:
                raise InUseError(
                    f"Category {current.name!r} is used by {in_use} transaction(s)"
                )
            self.repository.delete_category(key)

        return self._run_transaction(action)

    def ensure_default_categories(self) -> list[CategoryRecord]:
        """Insert or refresh the seeded default categories."""
        def action() -> list[CategoryRecord]:
            existing = self.repository.list_categories()
            seeded = []
            for seed in DEFAULT_CATEGORIES:
                found = find_seeded_category(seed, existing)
                if found is not None:
                    seeded.append(
                        self.repository.update_category(
                            found.key,
                            {"color": seed.color, "icon": seed.icon, "is_default": True},
                        )
                    )
                    continue
                seeded.append(self.repository.insert_category(seed))
            return seeded

        return self._run_transaction(action)

    # Tags

    def add_tag(self, tag: TagDTO) -> TagRecord:
        """Add a tag with a unique name."""
        def action() -> TagRecord:
            ensure_unique_tag_name(tag.name, self.repository.list_tags())
            return self.repository.insert_tag(tag)

        return self._run_transaction(action)

    def list_tags(self) -> list[TagRecord]:
        """List tags ordered by name."""
        return self.repository.list_tags()

    def update_tag(self, key: int, name: str) -> TagRecord:
        """Rename a tag."""
        def action() -> TagRecord:
            self.repository.get_tag(key)
            new_name = ensure_non_empty(name, "Name")
            ensure_unique_tag_name(new_name, self.repository.list_tags(), exclude_key=key)
            return self.repository.update_tag(key, new_name)

        return self._run_transaction(action)

    def delete_tag(self, key: int) -> None:
        """Delete a tag and detach it from transactions."""
        def action() -> None:
            self.repository.get_tag(key)
            self.repository.delete_tag(key)

        return self._run_transaction(action)

    # Transactions

    def _resolve_transaction(self, transaction: TransactionDTO) -> TransactionDTO:
        """Re-read account, category and tags and stamp currency and type."""
        account = self.repository.get_account(transaction.account_key)
        category = self.repository.get_category(transaction.category_key)
        for tag_key in transaction.tag_keys:
            self.repository.get_tag(tag_key)
        stamped = stamp_transaction(transaction, account, category)
        if transaction.currency is not None and transaction.currency != stamped.currency:
            logger.debug(
                "Ignoring transaction currency %s, account %s uses %s",
                transaction.currency,
                account.key,
                account.currency.value,
            )
        return stamped

    def add_transaction(self, transaction: TransactionDTO) -> TransactionRecord:
        """Add a transaction and return the created record."""
        def action() -> TransactionRecord:
            ensure_positive_amount(transaction.amount)
            return self.repository.insert_transaction(self._resolve_transaction(transaction))

        return self._run_transaction(action)

    def get_transaction(self, key: int) -> TransactionRecord:
        """Get a single transaction by key."""
        return self.repository.get_transaction(key)

    def list_transactions(
        self,
        start_date: dt.date | None = None,
        end_date: dt.date | None = None,
        account_key: int | None = None,
    ) -> list[TransactionRecord]:
        """List transactions within an optional date range."""
        return self.repository.list_transactions(
            start_date=start_date,
            end_date=end_date,
            account_key=account_key,
        )

    def update_transaction(self, key: int, **patch: Any) -> TransactionRecord:
        """Update a transaction, re-stamping currency and type."""
        def action() -> TransactionRecord:
            current = self.repository.get_transaction(key)
            merged = merge_transaction_patch(current, patch)
            return self.repository.update_transaction(key, self._resolve_transaction(merged))

        return self._run_transaction(action)

    def delete_transaction(self, key: int) -> None:
        """Delete a transaction."""
        def action() -> None:
            self.repository.get_transaction(key)
            self.repository.delete_transaction(key)

        return self._run_transaction(action)

    # Transfers

    def add_transfer(self, transfer: TransferDTO) -> TransferRecord:
        """Add a transfer priced at the current exchange rates."""
        def action() -> TransferRecord:
            ensure_positive_amount(transfer.amount)
            ensure_distinct_accounts(transfer.from_account_key, transfer.to_account_key)
            from_account = self.repository.get_account(transfer.from_account_key)
            to_account = self.repository.get_account(transfer.to_account_key)
            converted_amount, exchange_rate = price_transfer(
                transfer.amount, from_account, to_account, self.rates.get_rates()
            )
            return self.repository.insert_transfer(
                transfer, converted_amount, exchange_rate, self._timestamp()
            )

        return self._run_transaction(action)

    def get_transfer(self, key: int) -> TransferRecord:
        """Get a single transfer by key."""
        return self.repository.get_transfer(key)

    def list_transfers(
        self,
        start_date: dt.date | None = None,
        end_date: dt.date | None = None,
        account_key: int | None = None,
        direction: str = "both",
    ) -> list[TransferRecord]:
        """List transfers within an optional date range or for one account."""
        return self.repository.list_transfers(
            start_date=start_date,
            end_date=end_date,
            account_key=account_key,
            direction=direction,
        )

    def update_transfer(self, key: int, **patch: Any) -> TransferRecord:
        """Update a transfer and re-price it at the current exchange rates.

        The stored converted amount is recomputed on every edit, even when
        only the description or date changes.
        """
        def action() -> TransferRecord:
            current = self.repository.get_transfer(key)
            merged = merge_transfer_patch(current, patch)
            from_account = self.repository.get_account(merged.from_account_key)
            to_account = self.repository.get_account(merged.to_account_key)
            converted_amount, exchange_rate = price_transfer(
                merged.amount, from_account, to_account, self.rates.get_rates()
            )
            return self.repository.update_transfer(
                key, merged, converted_amount, exchange_rate, self._timestamp()
            )

        return self._run_transaction(action)

    def delete_transfer(self, key: int) -> None:
        """Delete a transfer."""
        def action() -> None:
            self.repository.get_transfer(key)
            self.repository.delete_transfer(key)

        return self._run_transaction(action)

    # Balances

    def get_account_balance(
        self,
        key: int,
        display_currency: Currency | str | None = None,
    ) -> Decimal:
        """Current balance of an account, in its own currency by default."""
        account = self.repository.get_account(key)
        currency = parse_currency(display_currency) if display_currency else account.currency
        return compute_account_balance(
            account,
            self.repository.list_transactions(account_key=key),
            self.repository.list_transfers(account_key=key),
            self.rates.get_rates(),
            currency,
        )

    def get_total_balance(
        self,
        display_currency: Currency | str | None = None,
        include_archived: bool = False,
    ) -> Decimal:
        """Sum of account balances in the display currency."""
        settings = self.settings_store.load()
        currency = parse_currency(display_currency) if display_currency else settings.display_currency
        return compute_total_balance(
            self.repository.list_accounts(include_archived=include_archived),
            self.repository.list_transactions(),
            self.repository.list_transfers(),
            settings.exchange_rates,
            currency,
        )

    def get_period_summary(
        self,
        time_window: TimeWindow | str | None = None,
        offset: int = 0,
        today: dt.date | None = None,
        display_currency: Currency | str | None = None,
    ) -> PeriodSummary:
        """Income and expense totals for a dashboard period."""
        settings = self.settings_store.load()
        start, end = period_bounds(
            time_window or settings.default_time_window, offset, today
        )
        currency = parse_currency(display_currency) if display_currency else settings.display_currency
        return summarize_transactions(
            self.repository.list_transactions(start_date=start, end_date=end),
            settings.exchange_rates,
            currency,
            start=start,
            end=end,
        )
