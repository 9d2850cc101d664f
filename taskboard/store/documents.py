import re
import sqlite3
import logging
import uuid
from datetime import datetime
from typing import Any, Dict, List, Optional

from store.core import _wrap_sqlite_error
from store.helpers import (
    DocumentNotFoundError,
    PermissionDeniedError,
    _deserialize_document_row,
    _serialize_fields,
)
from store.listeners import DocumentSnapshot

logger = logging.getLogger(__name__)

_COLLECTION_PATH_RE = re.compile(r"^artifacts/[^/]+/[^/]+$")


def _check_path(path: str) -> None:
    """Writes and listeners are only allowed inside an app namespace."""
    if not _COLLECTION_PATH_RE.match(path or ""):
        raise PermissionDeniedError(f"Access to collection path {path!r} is not allowed")


def _new_document_id() -> str:
    return uuid.uuid4().hex[:20]


class DocumentsMixin:
    """Document CRUD operations mixin for the DocumentStore class.

    Each write commits, reads back the full collection on the same
    connection and hands it to the listeners before releasing the lock, so
    notifications go out in commit order.
    """

    async def _fetch_snapshot(self, conn, path: str) -> List[DocumentSnapshot]:
        async with conn.execute(
            "SELECT id, data FROM documents WHERE path=?", (path,)
        ) as cursor:
            rows = await cursor.fetchall()
        return [DocumentSnapshot(*_deserialize_document_row(r)) for r in rows]

    async def add_document(self, path: str, data: Dict[str, Any]) -> str:
        """Create a document with a store-assigned id. Returns the id."""
        _check_path(path)
        doc_id = _new_document_id()
        payload = _serialize_fields(data)
        now = datetime.now().isoformat()
        try:
            async with self._get_connection() as conn:
                await conn.execute(
                    "INSERT INTO documents (path,id,data,created_at,updated_at) "
                    "VALUES (?,?,?,?,?)",
                    (path, doc_id, payload, now, now),
                )
                await conn.commit()
                self._dispatch(path, await self._fetch_snapshot(conn, path))
        except sqlite3.Error as e:
            logger.error(f"Error adding document to {path}: {e}")
            raise _wrap_sqlite_error("add document", e) from e
        return doc_id

    async def update_document(self, path: str, doc_id: str, fields: Dict[str, Any]) -> None:
        """Merge the given fields into an existing document."""
        _check_path(path)
        try:
            async with self._get_connection() as conn:
                async with conn.execute(
                    "SELECT id, data FROM documents WHERE path=? AND id=?",
                    (path, doc_id),
                ) as cursor:
                    row = await cursor.fetchone()
                if row is None:
                    raise DocumentNotFoundError(f"No document {doc_id} in {path}")
                _, current = _deserialize_document_row(row)
                current.update(fields)
                await conn.execute(
                    "UPDATE documents SET data=?, updated_at=? WHERE path=? AND id=?",
                    (_serialize_fields(current), datetime.now().isoformat(), path, doc_id),
                )
                await conn.commit()
                self._dispatch(path, await self._fetch_snapshot(conn, path))
        except sqlite3.Error as e:
            logger.error(f"Error updating document {doc_id} in {path}: {e}")
            raise _wrap_sqlite_error("update document", e) from e

    async def delete_document(self, path: str, doc_id: str) -> None:
        """Remove a document. Deleting a missing id is not an error."""
        _check_path(path)
        try:
            async with self._get_connection() as conn:
                await conn.execute(
                    "DELETE FROM documents WHERE path=? AND id=?", (path, doc_id)
                )
                await conn.commit()
                self._dispatch(path, await self._fetch_snapshot(conn, path))
        except sqlite3.Error as e:
            logger.error(f"Error deleting document {doc_id} in {path}: {e}")
            raise _wrap_sqlite_error("delete document", e) from e

    async def get_document(self, path: str, doc_id: str) -> Optional[Dict[str, Any]]:
        _check_path(path)
        try:
            async with self._get_connection() as conn:
                async with conn.execute(
                    "SELECT id, data FROM documents WHERE path=? AND id=?",
                    (path, doc_id),
                ) as cursor:
                    row = await cursor.fetchone()
        except sqlite3.Error as e:
            logger.error(f"Error loading document {doc_id} in {path}: {e}")
            raise _wrap_sqlite_error("load document", e) from e
        return _deserialize_document_row(row)[1] if row else None

    async def get_documents(self, path: str) -> List[DocumentSnapshot]:
        """Return the current documents of a collection, in no particular order."""
        _check_path(path)
        try:
            async with self._get_connection() as conn:
                return await self._fetch_snapshot(conn, path)
        except sqlite3.Error as e:
            logger.error(f"Error loading documents in {path}: {e}")
            raise _wrap_sqlite_error("load documents", e) from e
