"""Storage port.

Every service talks to a DocumentStore, never to a concrete database, so
backends are swappable and the services can be tested against the
in-memory store. The capability set is deliberately small: get by id,
query by a declared index, insert, patch and delete.

Documents are plain JSON-compatible dicts. The backend assigns the ``id``
key on insert and includes it in every document it returns.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

Document = Dict[str, Any]


class StorageError(Exception):
    """Base class for storage failures."""


class DocumentNotFoundError(StorageError):
    """Raised when patching or deleting an id that does not exist."""

    def __init__(self, table: str, doc_id: str):
        super().__init__(f"Document {doc_id} not found in {table}")
        self.table = table
        self.doc_id = doc_id


class UniqueConstraintError(StorageError):
    """Raised when a write would duplicate a unique index key."""

    def __init__(self, table: str, index: str, values: Tuple[Any, ...]):
        super().__init__(f"Duplicate key for {table}.{index}: {values!r}")
        self.table = table
        self.index = index
        self.values = values


@dataclass(frozen=True)
class Index:
    fields: Tuple[str, ...]
    unique: bool = False


@dataclass(frozen=True)
class TableSchema:
    name: str
    indexes: Dict[str, Index] = field(default_factory=dict)


SCHEMA: Dict[str, TableSchema] = {
    "users": TableSchema(
        name="users",
        indexes={
            "by_clerk_id": Index(("clerk_id",), unique=True),
            "by_email": Index(("email",)),
        },
    ),
    "reviews": TableSchema(
        name="reviews",
        indexes={
            "by_user": Index(("user_id",)),
            "by_repo": Index(("repo_name",)),
            "by_user_repo": Index(("user_id", "repo_name"), unique=True),
        },
    ),
    "saved_reviews": TableSchema(
        name="saved_reviews",
        indexes={
            "by_user": Index(("user_id",)),
            "by_review": Index(("review_id",)),
            "by_user_review": Index(("user_id", "review_id"), unique=True),
        },
    ),
    "installations": TableSchema(
        name="installations",
        indexes={
            "by_installation_id": Index(("installation_id",), unique=True),
            "by_user": Index(("user_id",)),
        },
    ),
}


class DocumentStore(ABC):
    """Transactional document store with secondary indexes.

    Each method is a single short transaction. Implementations must be safe
    to call from FastAPI's threadpool.
    """

    schema: Dict[str, TableSchema] = SCHEMA

    def _table(self, table: str) -> TableSchema:
        try:
            return self.schema[table]
        except KeyError:
            raise StorageError(f"Unknown table: {table}") from None

    def _index(self, table: str, index: str) -> Index:
        schema = self._table(table)
        try:
            return schema.indexes[index]
        except KeyError:
            raise StorageError(f"Unknown index {index} on {table}") from None

    def _check_values(self, table: str, index: str, values: Tuple[Any, ...]) -> Index:
        idx = self._index(table, index)
        if len(values) != len(idx.fields):
            raise StorageError(
                f"Index {table}.{index} takes {len(idx.fields)} value(s), got {len(values)}"
            )
        return idx

    @abstractmethod
    def get(self, table: str, doc_id: str) -> Optional[Document]:
        """Return the document with *doc_id*, or None."""

    @abstractmethod
    def query(self, table: str, index: str, *values: Any) -> List[Document]:
        """Return documents whose *index* fields equal *values*, in insertion order."""

    @abstractmethod
    def insert(self, table: str, fields: Document) -> str:
        """Insert a new document and return its id."""

    @abstractmethod
    def patch(self, table: str, doc_id: str, fields: Document) -> None:
        """Shallow-merge *fields* into an existing document."""

    @abstractmethod
    def delete(self, table: str, doc_id: str) -> None:
        """Delete an existing document."""

    def first(self, table: str, index: str, *values: Any) -> Optional[Document]:
        docs = self.query(table, index, *values)
        return docs[0] if docs else None

    def close(self) -> None:
        """Release any resources held by the store.

        Default is a no-op so callers can always call close() safely.
        """
