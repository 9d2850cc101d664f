from enum import Enum, auto
from typing import Callable, Dict, Any, Optional
import inspect
import logging
import uuid
import weakref

logger = logging.getLogger(__name__)


class AppEvent(Enum):
    """Application-wide events for the observer pattern."""
    LOGGED_IN = auto()
    SESSION_READY = auto()
    TASKS_SYNCED = auto()
    STORE_ERROR = auto()
    NAV_CHANGED = auto()


class Subscription:
    """Handle for an active subscription.

    Calling unsubscribe() is idempotent. When the subscription was made with
    a strong reference, the handle owns the callback: keep it around for as
    long as the callback must stay alive.
    """

    def __init__(
        self,
        cancel: Callable[[], None],
        strong_ref: Optional[Callable[..., Any]] = None,
    ) -> None:
        self._cancel = cancel
        self._active = True
        self._strong_ref = strong_ref
        self.id = str(uuid.uuid4())

    @property
    def active(self) -> bool:
        return self._active

    def unsubscribe(self) -> None:
        if self._active:
            self._active = False
            self._cancel()
            self._strong_ref = None


def _make_ref(callback: Callable[[Any], None], on_dead: Callable[[], None]):
    """Weak reference for bound methods, strong for everything else."""
    if inspect.ismethod(callback):
        return weakref.WeakMethod(callback, lambda _ref: on_dead())
    return lambda: callback


class EventBus:
    """Event bus for decoupled component communication.

    Bound methods are held weakly so views that are thrown away without
    unsubscribing do not leak. Plain functions, lambdas and closures are
    held strongly until their Subscription is cancelled.
    """

    def __init__(self) -> None:
        # Dict[event -> Dict[subscription_id -> callback ref]]
        self._listeners: Dict[AppEvent, Dict[str, Callable[[], Any]]] = {}

    def subscribe(
        self,
        event: AppEvent,
        callback: Callable[[Any], None],
    ) -> Subscription:
        """Subscribe a callback to an event. Returns a Subscription for cleanup.

        Example:
            self._sub = bus.subscribe(AppEvent.STORE_ERROR, self._on_store_error)
            # Later: self._sub.unsubscribe()
        """
        listeners = self._listeners.setdefault(event, {})
        sub_holder: Dict[str, Subscription] = {}

        def cancel() -> None:
            listeners.pop(sub_holder["sub"].id, None)

        strong = None if inspect.ismethod(callback) else callback
        subscription = Subscription(cancel, strong_ref=strong)
        sub_holder["sub"] = subscription
        listeners[subscription.id] = _make_ref(callback, cancel)
        return subscription

    def emit(self, event: AppEvent, data: Any = None) -> None:
        """Emit an event to all live subscribers.

        A failing handler is logged and does not stop delivery to the rest.
        """
        listeners = self._listeners.get(event)
        if not listeners:
            return
        dead = []
        for sub_id, ref in list(listeners.items()):
            callback = ref()
            if callback is None:
                dead.append(sub_id)
                continue
            try:
                callback(data)
            except Exception:  # Intentionally broad: one bad handler must not break the rest
                logger.exception(f"Error in event handler for {event.name}")
        for sub_id in dead:
            listeners.pop(sub_id, None)

    def listener_count(self, event: AppEvent) -> int:
        return len(self._listeners.get(event, {}))

    def clear(self) -> None:
        """Clear all event subscriptions. Used primarily for testing."""
        self._listeners.clear()


event_bus = EventBus()
