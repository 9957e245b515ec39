"""Database schema constants."""

from __future__ import annotations

FLAG_Y = 1
FLAG_N = 0

DEFAULT_ICON = "tag"

# Tables cleared by a restore, in dependency order (children first).
DATA_TABLES = [
    "TransactionTag",
    "Transfer",
    "Txn",
    "Tag",
    "Category",
    "Account",
]

SCHEMA_STATEMENTS = [
    """
    CREATE TABLE IF NOT EXISTS Account (
        key INTEGER PRIMARY KEY AUTOINCREMENT,
        name TEXT NOT NULL,
        currency TEXT NOT NULL,
        initialBalance TEXT NOT NULL DEFAULT '0',
        color TEXT NOT NULL DEFAULT '',
        icon TEXT NOT NULL DEFAULT '',
        isArchived INTEGER NOT NULL DEFAULT 0
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS Category (
        key INTEGER PRIMARY KEY AUTOINCREMENT,
        name TEXT NOT NULL,
        type TEXT NOT NULL CHECK (type IN ('expense', 'income')),
        color TEXT NOT NULL DEFAULT '',
        icon TEXT NOT NULL DEFAULT 'tag',
        isDefault INTEGER NOT NULL DEFAULT 0
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS Tag (
        key INTEGER PRIMARY KEY AUTOINCREMENT,
        name TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS Txn (
        key INTEGER PRIMARY KEY AUTOINCREMENT,
        accountKey INTEGER NOT NULL,
        categoryKey INTEGER NOT NULL,
        type TEXT NOT NULL CHECK (type IN ('expense', 'income')),
        amount TEXT NOT NULL,
        currency TEXT NOT NULL,
        date TEXT NOT NULL,
        description TEXT NOT NULL DEFAULT ''
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS TransactionTag (
        transKey INTEGER NOT NULL,
        tagKey INTEGER NOT NULL,
        PRIMARY KEY (transKey, tagKey)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS Transfer (
        key INTEGER PRIMARY KEY AUTOINCREMENT,
        fromAccountKey INTEGER NOT NULL,
        toAccountKey INTEGER NOT NULL,
        amount TEXT NOT NULL,
        convertedAmount TEXT NOT NULL,
        exchangeRate TEXT NOT NULL,
        date TEXT NOT NULL,
        description TEXT NOT NULL DEFAULT '',
        createdAt TEXT NOT NULL,
        updatedAt TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS Settings (
        defaultAccountKey INTEGER,
        defaultTimeWindow TEXT NOT NULL,
        displayCurrency TEXT NOT NULL,
        exchangeRates TEXT NOT NULL,
        autoUpdateInterval TEXT NOT NULL,
        lastFxUpdate TEXT,
        fxUpdateCount INTEGER NOT NULL DEFAULT 0
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_txn_account ON Txn (accountKey)",
    "CREATE INDEX IF NOT EXISTS idx_txn_category ON Txn (categoryKey)",
    "CREATE INDEX IF NOT EXISTS idx_txn_date ON Txn (date)",
    "CREATE INDEX IF NOT EXISTS idx_transfer_from ON Transfer (fromAccountKey)",
    "CREATE INDEX IF NOT EXISTS idx_transfer_to ON Transfer (toAccountKey)",
    "CREATE INDEX IF NOT EXISTS idx_transfer_date ON Transfer (date)",
]

ACCOUNT_COLUMNS = [
    "key",
    "name",
    "currency",
    "initialBalance",
    "color",
    "icon",
    "isArchived",
]

TRANSFER_COLUMNS = [
    "key",
    "fromAccountKey",
    "toAccountKey",
    "amount",
    "convertedAmount",
    "exchangeRate",
    "date",
    "description",
    "createdAt",
    "updatedAt",
]
