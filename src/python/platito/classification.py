"""Category, tag and transaction classification rules."""

from __future__ import annotations

from dataclasses import replace
from typing import Any, Iterable

from platito.exceptions import DuplicateNameError, ValidationError
from platito.models import (
    AccountRecord,
    CategoryDTO,
    CategoryRecord,
    TagRecord,
    TransactionDTO,
    TransactionRecord,
    TransactionType,
    ensure_enum,
    ensure_non_empty,
)
from platito.schema import DEFAULT_ICON

CATEGORY_PATCH_FIELDS = {"name", "type", "color", "icon"}
TRANSACTION_PATCH_FIELDS = {
    "account_key",
    "category_key",
    "amount",
    "date",
    "description",
    "tag_keys",
}

DEFAULT_CATEGORIES: tuple[CategoryDTO, ...] = (
    CategoryDTO("Food", TransactionType.EXPENSE, color="orange", icon="shopping-cart", is_default=True),
    CategoryDTO("Transport", TransactionType.EXPENSE, color="blue", icon="bus", is_default=True),
    CategoryDTO("Housing", TransactionType.EXPENSE, color="indigo", icon="home", is_default=True),
    CategoryDTO("Utilities", TransactionType.EXPENSE, color="yellow", icon="bolt", is_default=True),
    CategoryDTO("Health", TransactionType.EXPENSE, color="red", icon="heart", is_default=True),
    CategoryDTO("Entertainment", TransactionType.EXPENSE, color="grape", icon="movie", is_default=True),
    CategoryDTO("Other", TransactionType.EXPENSE, color="gray", icon="tag", is_default=True),
    CategoryDTO("Salary", TransactionType.INCOME, color="green", icon="briefcase", is_default=True),
    CategoryDTO("Investments", TransactionType.INCOME, color="teal", icon="chart-line", is_default=True),
    CategoryDTO("Other", TransactionType.INCOME, color="gray", icon="tag", is_default=True),
)


def normalize_name(name: str) -> str:
    """Key used for case-insensitive name comparisons."""
    return name.strip().lower()


def ensure_unique_category_name(
    name: str,
    category_type: TransactionType,
    existing: Iterable[CategoryRecord],
    exclude_key: int | None = None,
) -> None:
    """Reject a category name already used within the same type."""
    wanted = normalize_name(name)
    for category in existing:
        if category.key == exclude_key or category.type != category_type:
            continue
        if normalize_name(category.name) == wanted:
            raise DuplicateNameError(
                "Category name must be unique within its type",
                {"name": name.strip(), "type": category_type.value, "key": category.key},
            )


def ensure_unique_tag_name(
    name: str,
    existing: Iterable[TagRecord],
    exclude_key: int | None = None,
) -> None:
    """Reject a tag name already in use."""
    wanted = normalize_name(name)
    for tag in existing:
        if tag.key != exclude_key and normalize_name(tag.name) == wanted:
            raise DuplicateNameError(
                "Tag name must be unique",
                {"name": name.strip(), "key": tag.key},
            )


def merge_category_patch(current: CategoryRecord, patch: dict[str, Any]) -> dict[str, Any]:
    """Resolve the column values of a category update.

    ``is_default`` always keeps its stored value.
    """
    unknown = set(patch) - CATEGORY_PATCH_FIELDS - {"is_default"}
    if unknown:
        raise ValidationError(f"Unknown category fields: {', '.join(sorted(unknown))}")
    name = patch.get("name")
    category_type = patch.get("type")
    icon = patch.get("icon")
    return {
        "name": ensure_non_empty(name, "Name") if name is not None else current.name.strip(),
        "type": ensure_enum(TransactionType, category_type, "Type")
        if category_type is not None
        else current.type,
        "color": patch.get("color") if patch.get("color") is not None else current.color,
        "icon": (icon.strip() if icon is not None else current.icon) or DEFAULT_ICON,
        "is_default": current.is_default,
    }


def find_seeded_category(
    seed: CategoryDTO,
    existing: Iterable[CategoryRecord],
) -> CategoryRecord | None:
    """Return the stored category matching a seed entry by name and type."""
    wanted = normalize_name(seed.name)
    for category in existing:
        if category.type == seed.type and normalize_name(category.name) == wanted:
            return category
    return None


def stamp_transaction(
    transaction: TransactionDTO,
    account: AccountRecord,
    category: CategoryRecord,
) -> TransactionDTO:
    """Copy currency from the account and type from the category.

    Caller supplied ``currency`` and ``type`` values are overwritten.
    """
    return replace(
        transaction,
        account_key=account.key,
        category_key=category.key,
        type=category.type,
        currency=account.currency,
    )


def merge_transaction_patch(
    current: TransactionRecord,
    patch: dict[str, Any],
) -> TransactionDTO:
    """Overlay a partial update on a stored transaction and validate the result."""
    unknown = set(patch) - TRANSACTION_PATCH_FIELDS - {"type", "currency"}
    if unknown:
        raise ValidationError(f"Unknown transaction fields: {', '.join(sorted(unknown))}")
    values = {
        "account_key": current.account_key,
        "category_key": current.category_key,
        "amount": current.amount,
        "date": current.date,
        "description": current.description,
        "tag_keys": current.tag_keys,
    }
    values.update(
        {
            name: value
            for name, value in patch.items()
            if value is not None and name in TRANSACTION_PATCH_FIELDS
        }
    )
    return TransactionDTO(**values)
