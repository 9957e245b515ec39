"""Public Platito package exports."""

from __future__ import annotations

from platito.__version__ import __version__
from platito.balance import compute_account_balance, compute_total_balance
from platito.client import DatabaseProfile, PlatitoClient
from platito.currency import BASE_CURRENCY, Currency, convert_amount, convert_to_base
from platito.exceptions import (
    AmountError,
    DuplicateError,
    DuplicateNameError,
    ExternalFetchError,
    InUseError,
    NotFoundError,
    PlatitoError,
    ProtectedEntityError,
    RateLimitedError,
    SameAccountError,
    ValidationError,
)
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
    TransactionType,
    TransferDTO,
    TransferRecord,
)
from platito.persistence import PersistenceBackend
from platito.repository import Repository

__all__ = [
    "__version__",
    "PlatitoClient",
    "DatabaseProfile",
    "BASE_CURRENCY",
    "Currency",
    "convert_amount",
    "convert_to_base",
    "compute_account_balance",
    "compute_total_balance",
    "PlatitoError",
    "ValidationError",
    "AmountError",
    "SameAccountError",
    "NotFoundError",
    "DuplicateError",
    "DuplicateNameError",
    "ProtectedEntityError",
    "InUseError",
    "RateLimitedError",
    "ExternalFetchError",
    "AccountDTO",
    "AccountRecord",
    "AppSettings",
    "CategoryDTO",
    "CategoryRecord",
    "TagDTO",
    "TagRecord",
    "TransactionDTO",
    "TransactionRecord",
    "TransactionType",
    "TransferDTO",
    "TransferRecord",
    "PersistenceBackend",
    "Repository",
]
