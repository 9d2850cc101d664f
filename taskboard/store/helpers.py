import json
import logging
from typing import Any, Dict, Tuple

logger = logging.getLogger(__name__)


class StoreError(Exception):
    """Custom exception for document store operations."""
    pass


class StoreUnavailableError(StoreError):
    """Raised when the store cannot be reached or is busy.

    The only store failure considered transient, so callers may retry it.
    """
    pass


class DocumentNotFoundError(StoreError):
    """Raised when updating or reading a document id that does not exist."""
    pass


class PermissionDeniedError(StoreError):
    """Raised when a write targets a path outside the allowed namespace."""
    pass


def collection_path(app_id: str, name: str) -> str:
    """Logical path of a collection scoped to an application namespace."""
    if not app_id or "/" in app_id:
        raise ValueError(f"Invalid app id: {app_id!r}")
    if not name or "/" in name:
        raise ValueError(f"Invalid collection name: {name!r}")
    return f"artifacts/{app_id}/{name}"


def _serialize_fields(data: Dict[str, Any]) -> str:
    try:
        return json.dumps(data)
    except (TypeError, ValueError) as e:
        raise StoreError(f"Document fields are not serializable: {e}") from e


def _deserialize_document_row(row) -> Tuple[str, Dict[str, Any]]:
    """Convert a raw documents row into (id, fields)."""
    try:
        data = json.loads(row["data"] or "{}")
    except ValueError as e:
        logger.warning(f"Skipping corrupt fields for document {row['id']}: {e}")
        data = {}
    return row["id"], data
