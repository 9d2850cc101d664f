"""Document store package - async SQLite with mixin-based composition.

Stands in for a hosted document store: collections addressed by path,
store-assigned ids, partial updates and snapshot listeners that receive the
full document set after every change.

    from store import DocumentStore, collection_path

    store = DocumentStore(Path("taskboard.db"))
    path = collection_path("my-app", "tasks")
    sub = store.on_snapshot(path, print)
    await store.add_document(path, {"title": "Buy milk"})
"""
from pathlib import Path
from typing import Union

from store.helpers import (
    StoreError,
    StoreUnavailableError,
    DocumentNotFoundError,
    PermissionDeniedError,
    collection_path,
)
from store.core import StoreCore
from store.documents import DocumentsMixin
from store.identity import IdentityMixin
from store.listeners import ListenersMixin, DocumentSnapshot


class DocumentStore(StoreCore, DocumentsMixin, IdentityMixin, ListenersMixin):
    """Composed document store combining all mixins."""

    def __init__(self, db_path: Union[str, Path] = ":memory:") -> None:
        super().__init__(db_path)
        self._listeners = {}
        self._pending_loads = set()

    async def close(self) -> None:
        """Drop all listeners, then close the connection."""
        self._drop_listeners()
        await super().close()


__all__ = [
    "DocumentStore",
    "DocumentSnapshot",
    "StoreError",
    "StoreUnavailableError",
    "DocumentNotFoundError",
    "PermissionDeniedError",
    "collection_path",
]
