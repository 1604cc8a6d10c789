"""Application context assembly."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from inventory_odg.api.client import APIError, OdgClient
from inventory_odg.config import Settings
from inventory_odg.inventory.store import InventoryStore
from inventory_odg.tasks.metrics import MetricsCollector
from inventory_odg.tasks.registry import TaskRegistry, build_registry

logger = logging.getLogger(__name__)


@dataclass
class AppContext:
    """Process-wide dependency container.

    Built once at startup and passed down explicitly; the database store and
    the API client are shared by all reconcilers in the registry.
    """

    settings: Settings
    store: InventoryStore
    client: OdgClient
    metrics: MetricsCollector
    registry: TaskRegistry

    def __enter__(self) -> "AppContext":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def close(self) -> None:
        if self.settings.odg.auth.method == "github":
            try:
                self.client.logout()
            except APIError as exc:
                logger.warning("Logout from %s failed: %s", self.client.endpoint, exc)
        self.client.close()
        self.store.close()


def build_odg_client(settings: Settings) -> OdgClient:
    odg = settings.odg
    github = odg.auth.github
    return OdgClient(
        odg.endpoint,
        user_agent=odg.user_agent,
        timeout=odg.timeout_seconds,
        github_url=github.url or None,
        github_token=github.token or None,
    )


def build_app_context(settings: Settings) -> AppContext:
    logger.info("Configuring database client")
    store = InventoryStore.from_dsn(settings.database.dsn, echo=settings.debug or settings.database.echo)

    logger.info(
        "Configuring open delivery gear api client: endpoint=%s auth=%s",
        settings.odg.endpoint,
        settings.odg.auth.method,
    )
    client = build_odg_client(settings)
    if settings.odg.auth.method == "github":
        try:
            client.authenticate()
        except APIError:
            client.close()
            store.close()
            raise

    metrics = MetricsCollector()
    registry = build_registry(store, client, metrics)
    for name in registry.names():
        logger.info("registered task %s", name)

    return AppContext(
        settings=settings,
        store=store,
        client=client,
        metrics=metrics,
        registry=registry,
    )
