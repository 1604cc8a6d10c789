from __future__ import annotations

from collections.abc import Mapping

import pytest
from sqlalchemy import create_engine, text
from sqlalchemy.pool import StaticPool

from inventory_odg import config
from inventory_odg.api.client import APIError
from inventory_odg.api.types import (
    ArtefactMetadata,
    ComponentArtefactID,
    RuntimeArtefactObjectMeta,
    RuntimeArtefactResultItem,
)
from inventory_odg.inventory.store import InventoryStore
from inventory_odg.tasks.metrics import MetricsCollector


@pytest.fixture(autouse=True)
def _isolate_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    # Keep developer .env files and shell overrides out of the tests.
    monkeypatch.setattr(config, "load_dotenv", lambda **_: None)
    for key in list(config.ENV_KEYS.values()) + [config.CONFIG_PATHS_ENV]:
        monkeypatch.delenv(key, raising=False)


class FakeOdgClient:
    """In-memory stand-in for :class:`OdgClient` recording every call."""

    def __init__(self) -> None:
        self.calls: list[tuple[str, tuple[object, ...]]] = []
        self.metadata: list[ArtefactMetadata] = []
        self.runtime_artefacts: list[RuntimeArtefactResultItem] = []
        self.failures: dict[str, APIError] = {}

    def _record(self, name: str, *args: object) -> None:
        self.calls.append((name, args))
        if name in self.failures:
            raise self.failures[name]

    def call_names(self) -> list[str]:
        return [name for name, _ in self.calls]

    def calls_to(self, name: str) -> list[tuple[object, ...]]:
        return [args for call, args in self.calls if call == name]

    def query_artefact_metadata(
        self, datatype: str, *ids: ComponentArtefactID
    ) -> list[ArtefactMetadata]:
        self._record("query_artefact_metadata", datatype, *ids)
        wanted = ids[0]
        return [
            entry
            for entry in self.metadata
            if entry.meta.type == datatype
            and entry.artefact.component_name == wanted.component_name
            and entry.artefact.component_version == wanted.component_version
            and entry.artefact.artefact.artefact_type == wanted.artefact.artefact_type
        ]

    def delete_artefact_metadata(self, *entries: ArtefactMetadata) -> None:
        self._record("delete_artefact_metadata", *entries)
        doomed = {(entry.meta.type, entry.artefact) for entry in entries}
        self.metadata = [
            entry for entry in self.metadata if (entry.meta.type, entry.artefact) not in doomed
        ]

    def submit_artefact_metadata(self, *entries: ArtefactMetadata) -> None:
        self._record("submit_artefact_metadata", *entries)
        replaced = {(entry.meta.type, entry.artefact) for entry in entries}
        self.metadata = [
            entry for entry in self.metadata if (entry.meta.type, entry.artefact) not in replaced
        ]
        self.metadata.extend(entries)

    def query_runtime_artefacts(self, labels: Mapping[str, str]) -> list[RuntimeArtefactResultItem]:
        self._record("query_runtime_artefacts", dict(labels))
        return list(self.runtime_artefacts)

    def delete_runtime_artefacts(self, *names: str) -> None:
        self._record("delete_runtime_artefacts", *names)
        self.runtime_artefacts = [
            item for item in self.runtime_artefacts if item.metadata.name not in names
        ]

    def submit_runtime_artefacts(
        self, labels: Mapping[str, str], *ids: ComponentArtefactID
    ) -> None:
        self._record("submit_runtime_artefacts", dict(labels), *ids)
        start = len(self.runtime_artefacts)
        for offset, _ in enumerate(ids):
            self.runtime_artefacts.append(
                RuntimeArtefactResultItem(
                    metadata=RuntimeArtefactObjectMeta(
                        name=f"runtime-artefact-{start + offset}", labels=dict(labels)
                    )
                )
            )


@pytest.fixture
def fake_client() -> FakeOdgClient:
    return FakeOdgClient()


@pytest.fixture
def metrics() -> MetricsCollector:
    return MetricsCollector()


@pytest.fixture
def sqlite_store():
    engine = create_engine(
        "sqlite+pysqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    with engine.begin() as conn:
        conn.execute(
            text(
                "CREATE TABLE aws_orphan_instance ("
                "name TEXT, instance_id TEXT, vpc_id TEXT, region_name TEXT, "
                "account_id TEXT, launch_time TEXT)"
            )
        )
        conn.execute(
            text(
                "CREATE TABLE gcp_orphan_public_address ("
                "rule_id INTEGER, project_id TEXT, name TEXT, ip_address TEXT, all_ports BOOLEAN)"
            )
        )
    store = InventoryStore(engine)
    yield store
    store.close()
