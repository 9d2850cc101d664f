import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Set

from events import Subscription
from store.helpers import StoreError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DocumentSnapshot:
    """One document as delivered to snapshot listeners."""
    id: str
    data: Dict[str, Any] = field(default_factory=dict)


SnapshotCallback = Callable[[List[DocumentSnapshot]], None]
ErrorCallback = Callable[[StoreError], None]


@dataclass
class _Listener:
    callback: SnapshotCallback
    on_error: Optional[ErrorCallback]
    loop: asyncio.AbstractEventLoop


class ListenersMixin:
    """Change-notification mixin for the DocumentStore class.

    Every committed write on a path delivers the full current document set
    of that path to each of its listeners. Delivery is scheduled on the
    listener's event loop, never run inside the writer's call stack, and the
    order of documents inside a snapshot is unspecified.
    """

    _listeners: Dict[str, Dict[str, _Listener]]
    _pending_loads: Set[asyncio.Task]

    def _listeners_for(self, path: str) -> Dict[str, _Listener]:
        return self._listeners.setdefault(path, {})

    def on_snapshot(
        self,
        path: str,
        callback: SnapshotCallback,
        on_error: Optional[ErrorCallback] = None,
    ) -> Subscription:
        """Register a standing listener on a collection path.

        Must be called from a running event loop. The current document set
        is delivered once right away, then again after every change.
        Returns a Subscription whose unsubscribe() stops delivery.
        """
        loop = asyncio.get_running_loop()
        listeners = self._listeners_for(path)
        holder: Dict[str, Subscription] = {}

        def cancel() -> None:
            listeners.pop(holder["sub"].id, None)

        subscription = Subscription(cancel, strong_ref=callback)
        holder["sub"] = subscription
        listener = _Listener(callback=callback, on_error=on_error, loop=loop)
        listeners[subscription.id] = listener

        task = loop.create_task(self._deliver_initial(path, subscription.id, listener))
        self._pending_loads.add(task)
        task.add_done_callback(self._pending_loads.discard)
        logger.debug(f"Listener {subscription.id} attached to {path}")
        return subscription

    async def _deliver_initial(self, path: str, sub_id: str, listener: _Listener) -> None:
        try:
            snapshot = await self.get_documents(path)
        except StoreError as e:
            logger.error(f"Initial snapshot for {path} failed: {e}")
            self._schedule_error(path, sub_id, listener, e)
            return
        self._schedule(path, sub_id, listener, snapshot)

    def listener_count(self, path: str) -> int:
        return len(self._listeners.get(path, {}))

    def _dispatch(self, path: str, snapshot: List[DocumentSnapshot]) -> None:
        """Schedule delivery of a snapshot to every listener on path."""
        for sub_id, listener in list(self._listeners_for(path).items()):
            self._schedule(path, sub_id, listener, list(snapshot))

    def _schedule(
        self,
        path: str,
        sub_id: str,
        listener: _Listener,
        snapshot: List[DocumentSnapshot],
    ) -> None:
        def deliver() -> None:
            # Skip listeners cancelled after the notification was queued
            if sub_id not in self._listeners_for(path):
                return
            try:
                listener.callback(snapshot)
            except Exception:  # Intentionally broad: a listener bug must not break the store
                logger.exception(f"Snapshot listener on {path} raised")

        self._call_soon(listener.loop, deliver)

    def _schedule_error(
        self,
        path: str,
        sub_id: str,
        listener: _Listener,
        error: StoreError,
    ) -> None:
        if listener.on_error is None:
            return

        def deliver() -> None:
            if sub_id not in self._listeners_for(path):
                return
            try:
                listener.on_error(error)
            except Exception:  # Intentionally broad: a listener bug must not break the store
                logger.exception(f"Snapshot error handler on {path} raised")

        self._call_soon(listener.loop, deliver)

    @staticmethod
    def _call_soon(loop: asyncio.AbstractEventLoop, fn: Callable[[], None]) -> None:
        if loop.is_closed():
            return
        try:
            loop.call_soon_threadsafe(fn)
        except RuntimeError as e:
            # Loop shutting down - the owning view is gone
            logger.debug(f"Dropped snapshot delivery: {e}")

    def _drop_listeners(self) -> None:
        for listeners in self._listeners.values():
            listeners.clear()
        for task in list(self._pending_loads):
            task.cancel()
