"""Tests for TaskSync, the bridge between views and the task collection."""
import pytest

from conftest import TEST_APP_ID, EventCollector
from events import AppEvent
from services.identity import IdentityError, LocalIdentityProvider
from services.task_sync import NotReadyError, TaskSync
from store import DocumentNotFoundError, StoreUnavailableError, collection_path


class ListRecorder:
    def __init__(self):
        self.calls = []

    def __call__(self, tasks):
        self.calls.append(tasks)

    @property
    def latest(self):
        return self.calls[-1] if self.calls else None


async def _ready(sync: TaskSync, eventually) -> ListRecorder:
    assert await sync.initialize()
    rec = ListRecorder()
    sync.subscribe(rec)
    await eventually(lambda: rec.latest is not None)
    return rec


# ===========================================================================
# Session readiness
# ===========================================================================

class TestReadiness:
    async def test_not_ready_before_initialize(self, sync: TaskSync):
        assert sync.is_ready is False
        assert sync.user_id is None
        assert sync.tasks == []

    async def test_initialize_resolves_anonymous_session(self, sync: TaskSync, bus):
        events = EventCollector(bus, AppEvent.SESSION_READY)
        assert await sync.initialize() is True
        assert sync.is_ready
        assert sync.user_id
        assert events.count(AppEvent.SESSION_READY) == 1
        assert events.last(AppEvent.SESSION_READY).user_id == sync.user_id
        events.cleanup()

    async def test_initialize_is_idempotent(self, sync: TaskSync, bus):
        events = EventCollector(bus, AppEvent.SESSION_READY)
        await sync.initialize()
        first = sync.user_id
        assert await sync.initialize() is True
        assert sync.user_id == first
        assert events.count(AppEvent.SESSION_READY) == 1
        events.cleanup()

    async def test_initial_token_is_used(self, store, identity: LocalIdentityProvider, bus):
        token = await identity.issue_token()
        expected = await store.lookup_token(token)
        sync = TaskSync(store, identity, app_id=TEST_APP_ID, initial_auth_token=token, bus=bus)
        assert await sync.initialize()
        assert sync.user_id == expected
        assert sync.session.is_anonymous is False

    async def test_rejected_token_reports_error_without_fallback(self, store, identity, bus):
        events = EventCollector(bus, AppEvent.STORE_ERROR)
        sync = TaskSync(store, identity, app_id=TEST_APP_ID, initial_auth_token="bogus", bus=bus)
        assert await sync.initialize() is False
        assert sync.is_ready is False
        assert sync.last_error
        assert events.last(AppEvent.STORE_ERROR)["action"] == "sign_in"
        events.cleanup()

    async def test_initialize_can_be_retried(self, store, bus):
        class FlakyIdentity(LocalIdentityProvider):
            failures = 1

            async def sign_in_anonymously(self):
                if self.failures:
                    self.failures -= 1
                    raise IdentityError("identity service down")
                return await super().sign_in_anonymously()

        sync = TaskSync(store, FlakyIdentity(store), app_id=TEST_APP_ID, bus=bus)
        assert await sync.initialize() is False
        assert await sync.initialize() is True
        assert sync.last_error is None

    async def test_subscribe_before_ready_raises(self, sync: TaskSync):
        with pytest.raises(NotReadyError):
            sync.subscribe(ListRecorder())

    async def test_mutations_before_ready_are_not_sent(self, sync: TaskSync, store):
        result = await sync.add_task("Too early")
        assert result.ok is False
        assert result.error == "not ready"
        assert (await sync.toggle_task("x", False)).ok is False
        assert (await sync.delete_task("x")).ok is False
        assert await store.get_documents(sync.path) == []

    def test_path_is_scoped_to_app(self, sync: TaskSync):
        assert sync.path == collection_path(TEST_APP_ID, "tasks")


# ===========================================================================
# Mutations through the listener
# ===========================================================================

class TestTaskFlow:
    async def test_add_toggle_delete(self, sync: TaskSync, eventually):
        rec = await _ready(sync, eventually)
        assert rec.latest == []

        result = await sync.add_task("Buy milk")
        assert result.ok
        await eventually(lambda: len(rec.latest) == 1)
        task = rec.latest[0]
        assert task.title == "Buy milk"
        assert task.completed is False
        assert task.id == result.document_id

        assert (await sync.toggle_task(task.id, task.completed)).ok
        await eventually(lambda: rec.latest[0].completed is True)

        assert (await sync.delete_task(task.id)).ok
        await eventually(lambda: rec.latest == [])
        assert sync.tasks == []

    async def test_toggle_twice_restores_status(self, sync: TaskSync, eventually):
        rec = await _ready(sync, eventually)
        await sync.add_task("Walk dog")
        await eventually(lambda: len(rec.latest) == 1)
        task_id = rec.latest[0].id

        await sync.toggle_task(task_id, False)
        await eventually(lambda: rec.latest[0].completed is True)
        await sync.toggle_task(task_id, True)
        await eventually(lambda: rec.latest[0].completed is False)

    async def test_mutation_does_not_touch_local_list(self, sync: TaskSync, eventually):
        await _ready(sync, eventually)
        before = list(sync.tasks)
        await sync.add_task("Pending")
        # The new task only shows up once the listener delivers it
        assert sync.tasks == before
        await eventually(lambda: len(sync.tasks) == 1)

    async def test_added_document_shape(self, sync: TaskSync, store, eventually):
        await _ready(sync, eventually)
        result = await sync.add_task("  Buy milk  ")
        data = await store.get_document(sync.path, result.document_id)
        assert data["title"] == "Buy milk"
        assert data["completed"] is False
        assert data["created_by"] == sync.user_id
        assert data["created_at"]

    async def test_tasks_ordered_by_creation(self, sync: TaskSync, eventually):
        rec = await _ready(sync, eventually)
        for title in ("first", "second", "third"):
            await sync.add_task(title)
        await eventually(lambda: len(rec.latest) == 3)
        assert [t.title for t in rec.latest] == ["first", "second", "third"]

    @pytest.mark.parametrize("title", ["", "   ", None])
    async def test_blank_title_rejected(self, sync: TaskSync, store, title):
        await sync.initialize()
        result = await sync.add_task(title)
        assert result.ok is False
        assert result.error == "Title is required"
        assert await store.get_documents(sync.path) == []

    async def test_overlong_title_rejected(self, sync: TaskSync):
        await sync.initialize()
        result = await sync.add_task("x" * 500)
        assert result.ok is False

    async def test_two_clients_see_each_other(self, store, identity, bus, eventually):
        a = TaskSync(store, identity, app_id=TEST_APP_ID, bus=bus)
        b = TaskSync(store, identity, app_id=TEST_APP_ID, bus=bus)
        rec_b = await _ready(b, eventually)
        await a.initialize()

        await a.add_task("Shared")
        await eventually(lambda: [t.title for t in rec_b.latest] == ["Shared"])

    async def test_tasks_synced_event(self, sync: TaskSync, bus, eventually):
        events = EventCollector(bus, AppEvent.TASKS_SYNCED)
        await _ready(sync, eventually)
        await sync.add_task("Evented")
        await eventually(lambda: len(events.last(AppEvent.TASKS_SYNCED) or []) == 1)
        events.cleanup()

    async def test_change_handler_error_is_contained(self, sync: TaskSync, eventually):
        def explode(tasks):
            raise RuntimeError("view broke")

        await sync.initialize()
        sync.subscribe(explode)
        await sync.add_task("Still stored")
        await eventually(lambda: len(sync.tasks) == 1)


# ===========================================================================
# Failures and retry
# ===========================================================================

class TestFailures:
    async def test_unknown_task_toggle_reports_error(self, sync: TaskSync, bus):
        events = EventCollector(bus, AppEvent.STORE_ERROR)
        await sync.initialize()
        result = await sync.toggle_task("missing", False)
        assert result.ok is False
        assert result.document_id == "missing"
        assert events.last(AppEvent.STORE_ERROR)["action"] == "toggle_task"
        assert sync.last_error
        events.cleanup()

    async def test_delete_unknown_task_is_ok(self, sync: TaskSync):
        await sync.initialize()
        assert (await sync.delete_task("missing")).ok

    async def test_transient_failure_is_retried(self, sync: TaskSync, store, monkeypatch):
        await sync.initialize()
        real_add = store.add_document
        calls = []

        async def flaky_add(path, data):
            calls.append(path)
            if len(calls) == 1:
                raise StoreUnavailableError("database is locked")
            return await real_add(path, data)

        monkeypatch.setattr(store, "add_document", flaky_add)
        result = await sync.add_task("Retried")
        assert result.ok
        assert len(calls) == 2

    async def test_retries_are_bounded(self, store, identity, bus, monkeypatch):
        events = EventCollector(bus, AppEvent.STORE_ERROR)
        sync = TaskSync(
            store, identity, app_id=TEST_APP_ID, bus=bus,
            retry_attempts=2, retry_backoff_seconds=0,
        )
        await sync.initialize()
        calls = []

        async def always_down(path, data):
            calls.append(path)
            raise StoreUnavailableError("offline")

        monkeypatch.setattr(store, "add_document", always_down)
        result = await sync.add_task("Never")
        assert result.ok is False
        assert "offline" in result.error
        assert len(calls) == 3
        assert events.count(AppEvent.STORE_ERROR) == 1
        events.cleanup()

    async def test_permanent_failure_not_retried(self, sync: TaskSync, store, monkeypatch):
        await sync.initialize()
        calls = []

        async def not_found(path, doc_id, fields):
            calls.append(doc_id)
            raise DocumentNotFoundError(doc_id)

        monkeypatch.setattr(store, "update_document", not_found)
        result = await sync.toggle_task("gone", True)
        assert result.ok is False
        assert calls == ["gone"]


# ===========================================================================
# Teardown
# ===========================================================================

class TestClose:
    async def test_close_cancels_listener(self, sync: TaskSync, store, eventually):
        rec = await _ready(sync, eventually)
        assert sync.is_subscribed
        await sync.close()
        assert sync.is_subscribed is False
        assert store.listener_count(sync.path) == 0

        count = len(rec.calls)
        await store.add_document(sync.path, {"title": "after close"})
        await store.get_documents(sync.path)
        assert len(rec.calls) == count

    async def test_resubscribe_replaces_listener(self, sync: TaskSync, store, eventually):
        await _ready(sync, eventually)
        sync.subscribe(ListRecorder())
        assert store.listener_count(sync.path) == 1
        await sync.close()
