"""Shared fixtures for Taskboard tests."""
import asyncio
from typing import Any, Callable, List

import pytest
import pytest_asyncio

from events import AppEvent, EventBus
from i18n import set_language
from services.identity import LocalIdentityProvider
from services.task_sync import TaskSync
from store import DocumentStore

TEST_APP_ID = "test-app"


class FakePage:
    """Stand-in for ft.Page that runs scheduled coroutines on the test loop."""

    def __init__(self) -> None:
        self.overlay: List[Any] = []
        self.controls: List[Any] = []
        self.updates = 0
        self.tasks: List[asyncio.Task] = []
        self.on_close = None
        self.title = ""
        self.theme_mode = None
        self.bgcolor = None

    def update(self, *controls) -> None:
        self.updates += 1

    def add(self, *controls) -> None:
        self.controls.extend(controls)

    def run_task(self, handler, *args, **kwargs) -> asyncio.Task:
        task = asyncio.get_running_loop().create_task(handler(*args, **kwargs))
        self.tasks.append(task)
        return task

    async def drain(self) -> None:
        """Wait until every scheduled task (and those they schedule) is done."""
        while any(not tk.done() for tk in self.tasks):
            await asyncio.gather(*[tk for tk in self.tasks if not tk.done()])


class EventCollector:
    """Subscribe to events and record them for assertions."""

    def __init__(self, bus: EventBus, *events: AppEvent):
        self.received: list[tuple[AppEvent, object]] = []
        self._subs = []
        for ev in events:
            sub = bus.subscribe(ev, lambda data, _ev=ev: self.received.append((_ev, data)))
            self._subs.append(sub)

    def count(self, event: AppEvent) -> int:
        return sum(1 for ev, _ in self.received if ev == event)

    def last(self, event: AppEvent):
        matches = [data for ev, data in self.received if ev == event]
        return matches[-1] if matches else None

    def cleanup(self):
        for sub in self._subs:
            sub.unsubscribe()


@pytest.fixture(autouse=True)
def english():
    set_language("en")
    yield
    set_language("en")


@pytest.fixture
def bus() -> EventBus:
    return EventBus()


@pytest_asyncio.fixture
async def store():
    """Fresh in-memory document store per test."""
    s = DocumentStore(":memory:")
    await s.init_db()
    yield s
    await s.close()


@pytest.fixture
def identity(store: DocumentStore) -> LocalIdentityProvider:
    return LocalIdentityProvider(store)


@pytest.fixture
def sync(store: DocumentStore, identity: LocalIdentityProvider, bus: EventBus) -> TaskSync:
    return TaskSync(
        store,
        identity,
        app_id=TEST_APP_ID,
        bus=bus,
        retry_backoff_seconds=0,
    )


@pytest.fixture
def page() -> FakePage:
    return FakePage()


@pytest.fixture
def eventually() -> Callable:
    """Poll a predicate on the event loop until it holds or time runs out."""

    async def _eventually(predicate: Callable[[], bool], timeout: float = 2.0) -> None:
        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout
        while not predicate():
            if loop.time() > deadline:
                raise AssertionError("condition not met before timeout")
            await asyncio.sleep(0.01)

    return _eventually
