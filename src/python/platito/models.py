"""Domain models and data transfer objects."""

from __future__ import annotations

from dataclasses import dataclass, field
import datetime as dt
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any, Iterable

from platito.currency import BASE_CURRENCY, Currency, ExchangeRateTable, parse_currency
from platito.exceptions import AmountError, SameAccountError, ValidationError


class TransactionType(str, Enum):
    """Direction of a transaction, shared with its category."""

    EXPENSE = "expense"
    INCOME = "income"


class TimeWindow(str, Enum):
    """Dashboard period granularity."""

    DAY = "day"
    WEEK = "week"
    MONTH = "month"
    YEAR = "year"


class AutoUpdateInterval(str, Enum):
    """How often exchange rates are refreshed automatically."""

    NONE = "none"
    EVERY_6H = "6h"
    EVERY_12H = "12h"
    EVERY_24H = "24h"

    @property
    def interval(self) -> dt.timedelta | None:
        if self is AutoUpdateInterval.NONE:
            return None
        return dt.timedelta(hours=int(self.value[:-1]))


def ensure_date(value: dt.date | dt.datetime | str) -> dt.date:
    """Normalize a date, datetime or ISO string to a date."""
    if isinstance(value, dt.datetime):
        return value.date()
    if isinstance(value, dt.date):
        return value
    if isinstance(value, str):
        try:
            return dt.date.fromisoformat(value.strip()[:10])
        except ValueError as exc:
            raise ValidationError("Date must be YYYY-MM-DD") from exc
    raise ValidationError("Date must be a datetime.date")


def ensure_non_empty(value: str | None, field_name: str) -> str:
    """Validate required text fields."""
    if not value or not value.strip():
        raise ValidationError(f"{field_name} is required")
    return value.strip()


def parse_decimal(value: Decimal | str | int | float, field_name: str) -> Decimal:
    """Parse a numeric value into a Decimal without range checks."""
    if isinstance(value, bool):
        raise ValidationError(f"{field_name} must be a decimal")
    try:
        return value if isinstance(value, Decimal) else Decimal(str(value).strip())
    except (InvalidOperation, ValueError) as exc:
        raise ValidationError(f"{field_name} must be a decimal") from exc


def ensure_finite(value: Decimal | str | int | float, field_name: str) -> Decimal:
    """Parse a signed amount that must still be a finite number."""
    amount = parse_decimal(value, field_name)
    if not amount.is_finite():
        raise ValidationError(f"{field_name} must be a finite number")
    return amount


def ensure_positive_amount(
    value: Decimal | str | int | float | None,
    field_name: str = "Amount",
) -> Decimal:
    """Parse an amount that must be a finite number greater than zero."""
    if value is None:
        raise AmountError(f"{field_name} is required")
    try:
        amount = parse_decimal(value, field_name)
    except ValidationError as exc:
        raise AmountError(str(exc)) from exc
    if not amount.is_finite() or amount <= Decimal("0"):
        raise AmountError(f"{field_name} must be greater than 0")
    return amount


def ensure_enum(enum_type: type[Enum], value: Any, field_name: str) -> Any:
    """Resolve an enum member from a member or its value."""
    if isinstance(value, enum_type):
        return value
    try:
        return enum_type(str(value).strip().lower())
    except ValueError as exc:
        allowed = ", ".join(member.value for member in enum_type)
        raise ValidationError(f"{field_name} must be one of: {allowed}") from exc


def ensure_key(value: Any, field_name: str) -> int:
    """Validate a storage key."""
    if isinstance(value, bool):
        raise ValidationError(f"{field_name} must be an integer key")
    try:
        return int(value)
    except (TypeError, ValueError) as exc:
        raise ValidationError(f"{field_name} must be an integer key") from exc


@dataclass(frozen=True)
class AccountRecord:
    """Persisted account record from storage."""
    key: int
    name: str
    currency: Currency
    initial_balance: Decimal
    color: str
    icon: str
    is_archived: bool


@dataclass(frozen=True)
class CategoryRecord:
    """Persisted category record from storage."""
    key: int
    name: str
    type: TransactionType
    color: str
    icon: str
    is_default: bool


@dataclass(frozen=True)
class TagRecord:
    """Persisted tag record from storage."""
    key: int
    name: str


@dataclass(frozen=True)
class TransactionRecord:
    """Persisted transaction record from storage.

    ``currency`` and ``type`` are copied from the owning account and the
    category whenever the record is written.
    """
    key: int
    account_key: int
    category_key: int
    type: TransactionType
    amount: Decimal
    currency: Currency
    date: dt.date
    description: str
    tag_keys: tuple[int, ...] = ()


@dataclass(frozen=True)
class TransferRecord:
    """Persisted transfer record from storage.

    Attributes:
        amount: Amount debited, in the source account currency
        converted_amount: Amount credited, in the destination account currency,
            priced when the transfer was last written
        exchange_rate: converted_amount / amount at write time
    """
    key: int
    from_account_key: int
    to_account_key: int
    amount: Decimal
    converted_amount: Decimal
    exchange_rate: Decimal
    date: dt.date
    description: str
    created_at: str
    updated_at: str


@dataclass(frozen=True)
class AppSettings:
    """Application settings; exactly one instance is persisted."""
    default_account_key: int | None = None
    default_time_window: TimeWindow = TimeWindow.MONTH
    display_currency: Currency = BASE_CURRENCY
    exchange_rates: ExchangeRateTable = field(default_factory=dict)
    auto_update_interval: AutoUpdateInterval = AutoUpdateInterval.NONE
    last_fx_update: dt.datetime | None = None
    fx_update_count: int = 0


@dataclass(frozen=True)
class AccountDTO:
    """Validated account input for persistence."""
    name: str
    currency: Currency
    initial_balance: Decimal = Decimal("0")
    color: str = "blue"
    icon: str = "wallet"
    is_archived: bool = False

    def __post_init__(self) -> None:
        object.__setattr__(self, "name", ensure_non_empty(self.name, "Name"))
        object.__setattr__(self, "currency", parse_currency(self.currency))
        object.__setattr__(
            self,
            "initial_balance",
            ensure_finite(self.initial_balance, "Initial balance"),
        )
        object.__setattr__(self, "is_archived", bool(self.is_archived))


@dataclass(frozen=True)
class CategoryDTO:
    """Validated category input for persistence."""
    name: str
    type: TransactionType
    color: str = "gray"
    icon: str = ""
    is_default: bool = False

    def __post_init__(self) -> None:
        object.__setattr__(self, "name", ensure_non_empty(self.name, "Name"))
        object.__setattr__(self, "type", ensure_enum(TransactionType, self.type, "Type"))
        object.__setattr__(self, "icon", (self.icon or "").strip())


@dataclass(frozen=True)
class TagDTO:
    """Validated tag input for persistence."""
    name: str

    def __post_init__(self) -> None:
        object.__setattr__(self, "name", ensure_non_empty(self.name, "Name"))


@dataclass(frozen=True)
class TransactionDTO:
    """Validated transaction input for persistence.

    ``type`` and ``currency`` are accepted for convenience but never stored as
    given; the client stamps them from the category and the account.
    """
    account_key: int
    category_key: int
    amount: Decimal
    date: dt.date
    description: str = ""
    tag_keys: Iterable[int] = ()
    type: TransactionType | None = None
    currency: Currency | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "account_key", ensure_key(self.account_key, "Account"))
        object.__setattr__(self, "category_key", ensure_key(self.category_key, "Category"))
        object.__setattr__(self, "amount", ensure_positive_amount(self.amount))
        object.__setattr__(self, "date", ensure_date(self.date))
        object.__setattr__(self, "description", (self.description or "").strip())
        object.__setattr__(
            self,
            "tag_keys",
            tuple(dict.fromkeys(ensure_key(key, "Tag") for key in self.tag_keys)),
        )


@dataclass(frozen=True)
class TransferDTO:
    """Validated transfer input for persistence."""
    from_account_key: int
    to_account_key: int
    amount: Decimal
    date: dt.date
    description: str = ""

    def __post_init__(self) -> None:
        object.__setattr__(self, "amount", ensure_positive_amount(self.amount))
        object.__setattr__(
            self, "from_account_key", ensure_key(self.from_account_key, "From account")
        )
        object.__setattr__(
            self, "to_account_key", ensure_key(self.to_account_key, "To account")
        )
        if self.from_account_key == self.to_account_key:
            raise SameAccountError("Cannot transfer to the same account")
        object.__setattr__(self, "date", ensure_date(self.date))
        object.__setattr__(self, "description", (self.description or "").strip())
