import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Awaitable, Callable, List, Optional

from config import (
    MUTATION_RETRY_ATTEMPTS,
    MUTATION_RETRY_BACKOFF_SECONDS,
    TASK_TITLE_MAX_LENGTH,
    TASKS_COLLECTION,
)
from events import AppEvent, EventBus, Subscription, event_bus
from models.entities import Session, Task
from services.identity import IdentityError, IdentityProvider
from store import DocumentStore, DocumentSnapshot, StoreError, StoreUnavailableError, collection_path

logger = logging.getLogger(__name__)

TasksCallback = Callable[[List[Task]], None]


class NotReadyError(RuntimeError):
    """Raised when the task list is used before the session is resolved."""
    pass


@dataclass
class MutationResult:
    """Outcome of a submitted mutation.

    ok only says the store accepted the write. The visible effect arrives
    later through the snapshot listener.
    """
    ok: bool
    error: Optional[str] = None
    document_id: Optional[str] = None


class TaskSync:
    """Bridge between the UI and the task collection in the document store.

    The store is the source of truth. tasks is replaced wholesale with every
    snapshot the store delivers and is never edited by the mutation methods.

    Usage:
        sync = TaskSync(store, identity, app_id="my-app")
        if await sync.initialize():
            sync.subscribe(on_change=view.render)
            await sync.add_task("Buy milk")
        ...
        await sync.close()
    """

    def __init__(
        self,
        store: DocumentStore,
        identity: IdentityProvider,
        app_id: str,
        collection: str = TASKS_COLLECTION,
        initial_auth_token: Optional[str] = None,
        bus: Optional[EventBus] = None,
        retry_attempts: int = MUTATION_RETRY_ATTEMPTS,
        retry_backoff_seconds: float = MUTATION_RETRY_BACKOFF_SECONDS,
    ) -> None:
        self.store = store
        self.identity = identity
        self.path = collection_path(app_id, collection)
        self.bus = bus or event_bus
        self.retry_attempts = max(0, retry_attempts)
        self.retry_backoff_seconds = retry_backoff_seconds
        self._initial_auth_token = initial_auth_token
        self.session: Optional[Session] = None
        self.tasks: List[Task] = []
        self.last_error: Optional[str] = None
        self._subscription: Optional[Subscription] = None
        self._on_change: Optional[TasksCallback] = None
        self._init_lock = asyncio.Lock()

    @property
    def is_ready(self) -> bool:
        """True once the session identity has been resolved."""
        return self.session is not None

    @property
    def user_id(self) -> Optional[str]:
        return self.session.user_id if self.session else None

    @property
    def is_subscribed(self) -> bool:
        return self._subscription is not None and self._subscription.active

    async def initialize(self) -> bool:
        """Resolve the session. Safe to call again to retry after a failure."""
        async with self._init_lock:
            if self.session is not None:
                return True
            try:
                session = await self.identity.resolve(self._initial_auth_token)
            except IdentityError as e:
                self.last_error = str(e)
                logger.error(f"Identity resolution failed: {e}")
                self.bus.emit(AppEvent.STORE_ERROR, {"action": "sign_in", "error": str(e)})
                return False
            self.session = session
            self.last_error = None
            logger.info(
                f"Session ready for {session.user_id} "
                f"({'anonymous' if session.is_anonymous else 'token'})"
            )
            self.bus.emit(AppEvent.SESSION_READY, session)
            return True

    def subscribe(self, on_change: Optional[TasksCallback] = None) -> Subscription:
        """Open the standing listener on the task collection.

        Must be called on the running event loop after initialize()
        succeeded. A previous subscription is cancelled first.

        Raises:
            NotReadyError: If the session is not resolved yet
        """
        if not self.is_ready:
            raise NotReadyError("Cannot subscribe before the session is ready")
        self.unsubscribe()
        self._on_change = on_change
        self._subscription = self.store.on_snapshot(
            self.path, self._on_snapshot, on_error=self._on_snapshot_error
        )
        return self._subscription

    def unsubscribe(self) -> None:
        if self._subscription is not None:
            self._subscription.unsubscribe()
            self._subscription = None
        self._on_change = None

    def _on_snapshot(self, snapshot: List[DocumentSnapshot]) -> None:
        tasks = [Task.from_document(doc.id, doc.data) for doc in snapshot]
        # Store order is unspecified; order locally after every notification
        tasks.sort(key=Task.sort_key)
        self.tasks = tasks
        logger.debug(f"Snapshot with {len(tasks)} task(s) from {self.path}")
        if self._on_change is not None:
            try:
                self._on_change(list(tasks))
            except Exception:  # Intentionally broad: view errors must not kill the listener
                logger.exception("Task list change handler raised")
        self.bus.emit(AppEvent.TASKS_SYNCED, list(tasks))

    def _on_snapshot_error(self, error: StoreError) -> None:
        self.last_error = str(error)
        logger.error(f"Task listener error on {self.path}: {error}")
        self.bus.emit(AppEvent.STORE_ERROR, {"action": "listen", "error": str(error)})

    async def add_task(self, title: str) -> MutationResult:
        """Submit a new task with completed = False."""
        title = (title or "").strip()
        if not title:
            return MutationResult(ok=False, error="Title is required")
        if len(title) > TASK_TITLE_MAX_LENGTH:
            return MutationResult(
                ok=False, error=f"Title is longer than {TASK_TITLE_MAX_LENGTH} characters"
            )
        document = Task(id="", title=title, created_at=datetime.now()).to_dict()
        document["created_by"] = self.user_id
        return await self._mutate(
            "add_task", lambda: self.store.add_document(self.path, document)
        )

    async def toggle_task(self, task_id: str, current_status: bool) -> MutationResult:
        """Submit an update flipping the completed flag."""
        return await self._mutate(
            "toggle_task",
            lambda: self.store.update_document(
                self.path, task_id, {"completed": not current_status}
            ),
            task_id,
        )

    async def delete_task(self, task_id: str) -> MutationResult:
        """Submit removal of a task."""
        return await self._mutate(
            "delete_task",
            lambda: self.store.delete_document(self.path, task_id),
            task_id,
        )

    async def _mutate(
        self,
        action: str,
        operation: Callable[[], Awaitable[Optional[str]]],
        document_id: Optional[str] = None,
    ) -> MutationResult:
        """Run a store write with bounded retry of transient failures.

        Failures are logged and emitted as STORE_ERROR, then returned as a
        failed result rather than raised.
        """
        if not self.is_ready:
            logger.warning(f"{action} ignored: session not ready")
            return MutationResult(ok=False, error="not ready", document_id=document_id)

        attempt = 0
        while True:
            try:
                new_id = await operation()
                return MutationResult(ok=True, document_id=new_id or document_id)
            except StoreUnavailableError as e:
                if attempt < self.retry_attempts:
                    attempt += 1
                    logger.warning(f"{action} failed ({e}), retry {attempt}/{self.retry_attempts}")
                    await asyncio.sleep(self.retry_backoff_seconds * attempt)
                    continue
                error = e
            except StoreError as e:
                error = e
            break

        self.last_error = str(error)
        logger.error(f"{action} failed: {error}")
        self.bus.emit(AppEvent.STORE_ERROR, {"action": action, "error": str(error)})
        return MutationResult(ok=False, error=str(error), document_id=document_id)

    async def close(self) -> None:
        """Cancel the listener. In-flight writes are left to finish on their own."""
        self.unsubscribe()
