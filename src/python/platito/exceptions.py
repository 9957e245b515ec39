"""Custom exception types for Platito."""

from __future__ import annotations

from typing import Any


class PlatitoError(Exception):
    """Base class for ledger errors."""


class ValidationError(PlatitoError, ValueError):
    """Raised when input values break a ledger rule."""


class AmountError(ValidationError):
    """Raised when an amount is not a finite number greater than zero."""


class SameAccountError(ValidationError):
    """Raised when a transfer names the same account on both ends."""


class NotFoundError(PlatitoError):
    """Raised when a requested record does not exist."""


class DuplicateError(PlatitoError):
    """Raised when a duplicate record is detected."""

    def __init__(self, message: str, details: dict[str, Any]) -> None:
        super().__init__(message)
        self.details = details


class DuplicateNameError(DuplicateError):
    """Raised when a category or tag name is already taken."""


class ProtectedEntityError(PlatitoError):
    """Raised when deleting a record that is protected from deletion."""


class InUseError(PlatitoError):
    """Raised when deleting a record that other records still reference."""


class RateLimitedError(PlatitoError):
    """Raised when a rate fetch is attempted inside the cooldown window."""

    def __init__(self, remaining_seconds: int) -> None:
        super().__init__(
            f"Exchange rates were updated recently, retry in {remaining_seconds}s"
        )
        self.remaining_seconds = remaining_seconds


class ExternalFetchError(PlatitoError):
    """Raised when the quote source is unreachable or returns unusable data."""
