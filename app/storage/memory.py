"""InMemoryStore: dict-backed DocumentStore.

The default backend when no database path is configured, and the fake the
test suite runs every service against. A single re-entrant lock makes each
call atomic, so unique indexes hold under concurrent requests.
"""

from __future__ import annotations

import copy
import threading
import uuid
from typing import Any, Dict, List, Optional, Tuple

from app.storage.base import (
    Document,
    DocumentNotFoundError,
    DocumentStore,
    UniqueConstraintError,
)


class InMemoryStore(DocumentStore):

    def __init__(self):
        self._lock = threading.RLock()
        self._tables: Dict[str, Dict[str, Document]] = {name: {} for name in self.schema}

    def _rows(self, table: str) -> Dict[str, Document]:
        self._table(table)
        return self._tables[table]

    @staticmethod
    def _key(doc: Document, fields: Tuple[str, ...]) -> Tuple[Any, ...]:
        return tuple(doc.get(f) for f in fields)

    def _check_unique(self, table: str, candidate: Document, exclude_id: Optional[str] = None) -> None:
        rows = self._tables[table]
        for name, index in self.schema[table].indexes.items():
            if not index.unique:
                continue
            key = self._key(candidate, index.fields)
            if None in key:
                continue
            for doc_id, doc in rows.items():
                if doc_id != exclude_id and self._key(doc, index.fields) == key:
                    raise UniqueConstraintError(table, name, key)

    def get(self, table: str, doc_id: str) -> Optional[Document]:
        with self._lock:
            doc = self._rows(table).get(doc_id)
            return copy.deepcopy(doc) if doc is not None else None

    def query(self, table: str, index: str, *values: Any) -> List[Document]:
        idx = self._check_values(table, index, values)
        with self._lock:
            return [
                copy.deepcopy(doc)
                for doc in self._rows(table).values()
                if self._key(doc, idx.fields) == tuple(values)
            ]

    def insert(self, table: str, fields: Document) -> str:
        with self._lock:
            rows = self._rows(table)
            doc_id = uuid.uuid4().hex
            doc = copy.deepcopy(fields)
            doc["id"] = doc_id
            self._check_unique(table, doc)
            rows[doc_id] = doc
            return doc_id

    def patch(self, table: str, doc_id: str, fields: Document) -> None:
        with self._lock:
            rows = self._rows(table)
            if doc_id not in rows:
                raise DocumentNotFoundError(table, doc_id)
            updated = {**rows[doc_id], **copy.deepcopy(fields), "id": doc_id}
            self._check_unique(table, updated, exclude_id=doc_id)
            rows[doc_id] = updated

    def delete(self, table: str, doc_id: str) -> None:
        with self._lock:
            rows = self._rows(table)
            if doc_id not in rows:
                raise DocumentNotFoundError(table, doc_id)
            del rows[doc_id]
