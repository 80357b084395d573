"""SQLiteStore: file-backed DocumentStore.

All tables share one ``documents`` table holding JSON bodies. Every index
declared in the schema becomes a partial expression index over
``json_extract``; unique indexes are UNIQUE, so duplicate natural keys are
rejected by SQLite inside the insert itself rather than by a
check-then-insert in the service layer.
"""

from __future__ import annotations

import json
import sqlite3
import threading
import uuid
from typing import Any, List, Optional

from app.logging_config import get_logger
from app.storage.base import (
    Document,
    DocumentNotFoundError,
    DocumentStore,
    UniqueConstraintError,
)

logger = get_logger(__name__)

_SCHEMA = """
CREATE TABLE IF NOT EXISTS documents (
    seq         INTEGER PRIMARY KEY AUTOINCREMENT,
    id          TEXT NOT NULL UNIQUE,
    table_name  TEXT NOT NULL,
    body        TEXT NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_documents_table ON documents (table_name);
"""


def _extract(field_name: str) -> str:
    return f"json_extract(body, '$.{field_name}')"


class SQLiteStore(DocumentStore):
    """Stores documents in a SQLite database file.

    ``":memory:"`` works too and gives a throwaway database per instance.
    """

    def __init__(self, db_path: str = "codecraft.db"):
        self._lock = threading.Lock()
        self._conn = sqlite3.connect(db_path, check_same_thread=False)
        self._conn.row_factory = sqlite3.Row
        self._conn.executescript(_SCHEMA + self._index_ddl())
        self._conn.commit()
        logger.info("Opened SQLite store", db_path=db_path)

    def _index_ddl(self) -> str:
        statements = []
        for table in self.schema.values():
            for name, index in table.indexes.items():
                columns = ", ".join(_extract(f) for f in index.fields)
                unique = "UNIQUE " if index.unique else ""
                statements.append(
                    f"CREATE {unique}INDEX IF NOT EXISTS idx_{table.name}_{name} "
                    f"ON documents ({columns}) WHERE table_name = '{table.name}';"
                )
        return "\n".join(statements)

    def _unique_error(self, table: str, doc: Document, exc: sqlite3.IntegrityError) -> UniqueConstraintError:
        message = str(exc)
        for name, index in self.schema[table].indexes.items():
            if index.unique and f"idx_{table}_{name}" in message:
                return UniqueConstraintError(table, name, tuple(doc.get(f) for f in index.fields))
        # Older SQLite versions report expression indexes as "index '<expr>'"
        for name, index in self.schema[table].indexes.items():
            if index.unique:
                return UniqueConstraintError(table, name, tuple(doc.get(f) for f in index.fields))
        raise exc

    @staticmethod
    def _to_document(row: sqlite3.Row) -> Document:
        doc = json.loads(row["body"])
        doc["id"] = row["id"]
        return doc

    def _load(self, table: str, doc_id: str) -> Optional[Document]:
        row = self._conn.execute(
            "SELECT id, body FROM documents WHERE table_name = ? AND id = ?",
            (table, doc_id),
        ).fetchone()
        return self._to_document(row) if row else None

    def get(self, table: str, doc_id: str) -> Optional[Document]:
        self._table(table)
        with self._lock:
            return self._load(table, doc_id)

    def query(self, table: str, index: str, *values: Any) -> List[Document]:
        idx = self._check_values(table, index, values)
        conditions = " AND ".join(f"{_extract(f)} = ?" for f in idx.fields)
        sql = (
            f"SELECT id, body FROM documents "
            f"WHERE table_name = '{table}' AND {conditions} ORDER BY seq"
        )
        with self._lock:
            rows = self._conn.execute(sql, values).fetchall()
        return [self._to_document(r) for r in rows]

    def insert(self, table: str, fields: Document) -> str:
        self._table(table)
        doc_id = uuid.uuid4().hex
        body = {k: v for k, v in fields.items() if k != "id"}
        with self._lock:
            try:
                self._conn.execute(
                    "INSERT INTO documents (id, table_name, body) VALUES (?, ?, ?)",
                    (doc_id, table, json.dumps(body)),
                )
                self._conn.commit()
            except sqlite3.IntegrityError as e:
                self._conn.rollback()
                raise self._unique_error(table, body, e) from e
        return doc_id

    def patch(self, table: str, doc_id: str, fields: Document) -> None:
        self._table(table)
        with self._lock:
            current = self._load(table, doc_id)
            if current is None:
                raise DocumentNotFoundError(table, doc_id)
            current.pop("id", None)
            current.update({k: v for k, v in fields.items() if k != "id"})
            try:
                self._conn.execute(
                    "UPDATE documents SET body = ? WHERE id = ?",
                    (json.dumps(current), doc_id),
                )
                self._conn.commit()
            except sqlite3.IntegrityError as e:
                self._conn.rollback()
                raise self._unique_error(table, current, e) from e

    def delete(self, table: str, doc_id: str) -> None:
        self._table(table)
        with self._lock:
            cursor = self._conn.execute(
                "DELETE FROM documents WHERE table_name = ? AND id = ?",
                (table, doc_id),
            )
            self._conn.commit()
            if cursor.rowcount == 0:
                raise DocumentNotFoundError(table, doc_id)

    def close(self) -> None:
        self._conn.close()
