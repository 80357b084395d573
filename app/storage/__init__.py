"""
Storage Package

This package contains the storage port and its backends:
- base: DocumentStore interface, schema and storage errors
- memory: in-memory backend (default, used by tests)
- sqlite: SQLite backend for persistent deployments
"""

from typing import Optional

from app.config import Settings, get_settings
from app.storage.base import (
    SCHEMA,
    Document,
    DocumentNotFoundError,
    DocumentStore,
    StorageError,
    UniqueConstraintError,
)
from app.storage.memory import InMemoryStore
from app.storage.sqlite import SQLiteStore


def create_store(settings: Optional[Settings] = None) -> DocumentStore:
    """Create the backend selected by DATABASE_PATH (unset means in-memory)."""
    settings = settings or get_settings()
    if settings.database_path:
        return SQLiteStore(settings.database_path)
    return InMemoryStore()


__all__ = [
    "SCHEMA",
    "Document",
    "DocumentNotFoundError",
    "DocumentStore",
    "StorageError",
    "UniqueConstraintError",
    "InMemoryStore",
    "SQLiteStore",
    "create_store",
]
