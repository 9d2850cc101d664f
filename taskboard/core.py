"""Headless bootstrap for Taskboard services.

Initializes the service layer without any Flet dependency, suitable for
scripts and testing.

Usage:
    from core import bootstrap, shutdown

    svc = await bootstrap(AppConfig(app_id="demo", db_path=Path(":memory:")))
    await svc.tasks.initialize()
    svc.tasks.subscribe(on_change=print)
    await svc.tasks.add_task("Buy milk")
    await shutdown(svc)
"""
import logging
from dataclasses import dataclass
from typing import Optional

from config import AppConfig
from events import EventBus, event_bus
from services.identity import IdentityProvider, LocalIdentityProvider, RestIdentityProvider
from services.task_sync import TaskSync
from store import DocumentStore, StoreError

logger = logging.getLogger(__name__)


@dataclass
class ServiceContainer:
    """Container holding all initialized services for headless use."""
    config: AppConfig
    store: DocumentStore
    identity: IdentityProvider
    tasks: TaskSync
    bus: EventBus


def create_identity_provider(config: AppConfig, store: DocumentStore) -> IdentityProvider:
    """Pick the hosted identity service when an API key is configured."""
    if config.uses_remote_identity:
        return RestIdentityProvider(
            api_key=config.identity_api_key,
            base_url=config.identity_base_url,
        )
    return LocalIdentityProvider(store)


async def bootstrap(
    config: Optional[AppConfig] = None,
    bus: Optional[EventBus] = None,
) -> ServiceContainer:
    """Initialize the service layer without Flet.

    Args:
        config: Runtime configuration. Read from the environment if None.
        bus: Event bus for application events. Uses the shared one if None.

    Returns:
        ServiceContainer with all services ready to use. The task sync is
        not initialized yet; call tasks.initialize() before mutating.

    Raises:
        ValueError: If the app id or collection name is not a valid path part
        StoreError: If the document store cannot be opened
    """
    config = config or AppConfig.from_env()
    bus = bus or event_bus

    store = DocumentStore(config.db_path)
    try:
        identity = create_identity_provider(config, store)
        # Rejects a bad app id or collection before any connection is opened
        tasks = TaskSync(
            store,
            identity,
            app_id=config.app_id,
            collection=config.collection,
            initial_auth_token=config.initial_auth_token,
            bus=bus,
            retry_attempts=config.retry_attempts,
            retry_backoff_seconds=config.retry_backoff_seconds,
        )
        await store.init_db()
    except (StoreError, ValueError):
        await store.close()
        raise
    logger.info(f"Services ready (app_id={config.app_id}, store={config.db_path})")
    return ServiceContainer(config=config, store=store, identity=identity, tasks=tasks, bus=bus)


async def shutdown(services: ServiceContainer) -> None:
    """Clean up resources (listener, then database connection)."""
    await services.tasks.close()
    await services.store.close()
