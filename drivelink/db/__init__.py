"""Database utilities and session management."""

from drivelink.db.base import Base, BaseModel, String100, String255
from drivelink.db.session import Database, create_engine, get_engine_config
from drivelink.db.transaction import (
    DBTransaction,
    is_foreign_key_violation,
    is_unique_violation,
)

__all__ = [
    # Base classes
    "Base",
    "BaseModel",
    # String types
    "String100",
    "String255",
    # Session management
    "Database",
    "create_engine",
    "get_engine_config",
    # Transactions
    "DBTransaction",
    "is_foreign_key_violation",
    "is_unique_violation",
]
