from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Optional

from config import PageType


@dataclass
class Task:
    """A task document as seen by the UI.

    The id is assigned by the document store and is opaque to the app.
    """
    id: str
    title: str
    completed: bool = False
    created_at: Optional[datetime] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to a document body for the store."""
        return {
            "title": self.title,
            "completed": self.completed,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }

    @classmethod
    def from_document(cls, doc_id: str, data: Dict[str, Any]) -> "Task":
        """Create a Task from a snapshot entry, tolerating missing fields."""
        created_at = data.get("created_at")
        if isinstance(created_at, str):
            try:
                created_at = datetime.fromisoformat(created_at)
            except ValueError:
                created_at = None
        elif not isinstance(created_at, datetime):
            created_at = None
        return cls(
            id=doc_id,
            title=str(data.get("title") or ""),
            completed=bool(data.get("completed", False)),
            created_at=created_at,
        )

    def sort_key(self):
        # Tasks without a timestamp sort first, like freshly created local docs
        return (
            self.created_at is not None,
            self.created_at or datetime.min,
            self.title.lower(),
            self.id,
        )


@dataclass(frozen=True)
class Session:
    """Resolved identity of the current client. Read-only once created."""
    user_id: str
    is_anonymous: bool
    id_token: Optional[str] = None

    def __post_init__(self) -> None:
        if not self.user_id:
            raise ValueError("Session user_id must be non-empty")


@dataclass
class Credentials:
    """Transient login form values. Never persisted."""
    email: str = ""
    password: str = ""

    def is_complete(self) -> bool:
        return bool(self.email.strip()) and bool(self.password.strip())


@dataclass
class AppState:
    current_page: PageType = PageType.LOGIN
    signed_in: bool = False
