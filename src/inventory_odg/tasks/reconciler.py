"""Reconciliation of orphan resources with the Delivery Service.

A run for one kind of orphan resource goes through the following steps.

1. Fetch the orphan resources from Inventory and map them to findings.

2. Wipe out the findings previously reported for the resource kind, scoped by
   component name and version. The Delivery Service has no retention
   mechanism of its own, so stale findings would otherwise stay forever. Kinds
   which track runtime artefacts also drop the runtime artefacts labelled as
   created by Inventory for the kind and component.

3. Submit the findings from step 1.

4. Submit runtime artefacts for the findings, so that the Delivery Service can
   evaluate them and create or update compliance issues.

Nothing is submitted when there are no orphan resources. A run either
completes every step or aborts on the first failure with a classified
:class:`~inventory_odg.errors.ReconcileError`; retrying is left to the
scheduler.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, TypeVar

from inventory_odg.api.client import APIError, OdgClient
from inventory_odg.api.types import ArtefactMetadata, Datatype
from inventory_odg.errors import ReconcileError, RunCancelled, classify_remote_error
from inventory_odg.findings.mapper import (
    ComponentRef,
    MappedFinding,
    ResourceKindSpec,
    existing_entries_filter,
    find_identity_collisions,
    map_rows,
    runtime_artefact_labels,
)
from inventory_odg.inventory.store import InventoryStore
from inventory_odg.tasks.metrics import (
    DISCOVERED_ORPHAN_RESOURCES,
    REPORTED_ORPHAN_RESOURCES,
    MetricsCollector,
)
from inventory_odg.tasks.payload import Payload
from inventory_odg.utils.time import utc_now

logger = logging.getLogger(__name__)

T = TypeVar("T")

DISCOVERED_METRIC_KEY = "discovered_resources"
REPORTED_METRIC_KEY = "reported_resources"


class RunState(str, Enum):
    PENDING = "pending"
    EXTRACTING = "extracting"
    MAPPING = "mapping"
    QUERYING_OLD = "querying_old"
    DELETING_OLD = "deleting_old"
    SUBMITTING_NEW = "submitting_new"
    SUBMITTING_RUNTIME_ARTEFACTS = "submitting_runtime_artefacts"
    DONE = "done"
    ABORTED = "aborted"


@dataclass
class RunReport:
    task_name: str
    state: RunState = RunState.PENDING
    discovered: int = 0
    reported: int = 0
    deleted: int = 0
    deleted_runtime_artefacts: int = 0
    submitted_runtime_artefacts: int = 0
    identity_collisions: int = 0
    errors: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "task_name": self.task_name,
            "state": self.state.value,
            "discovered": self.discovered,
            "reported": self.reported,
            "deleted": self.deleted,
            "deleted_runtime_artefacts": self.deleted_runtime_artefacts,
            "submitted_runtime_artefacts": self.submitted_runtime_artefacts,
            "identity_collisions": self.identity_collisions,
            "errors": list(self.errors),
        }


class Reconciler:
    """Mirror the orphan resources of one kind into the Delivery Service.

    The reconciler only holds its static configuration; every run starts from
    scratch. Runs of the same kind must not overlap.
    """

    def __init__(
        self,
        task_name: str,
        spec: ResourceKindSpec,
        store: InventoryStore,
        client: OdgClient,
        metrics: MetricsCollector,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self.task_name = task_name
        self.spec = spec
        self._store = store
        self._client = client
        self._metrics = metrics
        self._clock = clock

    def run(self, payload: Payload, cancel: threading.Event | None = None) -> RunReport:
        report = RunReport(task_name=self.task_name)
        try:
            self._run(payload, report, cancel)
        except ReconcileError as exc:
            exc.state = report.state.value
            report.errors.append(str(exc))
            logger.error(
                "%s aborted while %s (retryable=%s): %s",
                self.task_name,
                report.state.value,
                exc.retryable,
                exc,
            )
            report.state = RunState.ABORTED
            raise
        return report

    def _run(self, payload: Payload, report: RunReport, cancel: threading.Event | None) -> None:
        spec = self.spec
        payload.validate_required()
        component = ComponentRef(name=payload.component_name, version=payload.component_version)
        if not component.version:
            logger.warning("%s: no component version specified", self.task_name)

        # 1. Fetch orphan resources and create findings out of them
        self._enter(report, RunState.EXTRACTING, cancel)
        rows = self._store.fetch_rows(payload.query, spec.shape)
        logger.info(
            "found orphan resources: provider=%s kind=%s count=%d",
            spec.provider.value,
            spec.resource_kind.value,
            len(rows),
        )

        self._enter(report, RunState.MAPPING, cancel)
        mapped = map_rows(spec, rows, component)
        report.discovered = len(mapped)
        self._set_gauge(DISCOVERED_METRIC_KEY, DISCOVERED_ORPHAN_RESOURCES, len(mapped))

        collisions = find_identity_collisions(mapped)
        report.identity_collisions = len(collisions)
        for artefact_id in collisions:
            logger.warning(
                "%s: several resources map to artefact %s %s, only one will be kept",
                self.task_name,
                artefact_id.artefact.artefact_name,
                artefact_id.artefact.artefact_extra_id,
            )

        # 2. Wipe out old findings for the artefact type
        self._enter(report, RunState.QUERYING_OLD, cancel)
        old_entries = self._remote(
            "query existing findings",
            self._client.query_artefact_metadata,
            Datatype.INVENTORY.value,
            existing_entries_filter(spec, component),
        )

        self._enter(report, RunState.DELETING_OLD, cancel)
        logger.info(
            "deleting old findings: kind=%s count=%d", spec.resource_kind.value, len(old_entries)
        )
        self._remote("delete existing findings", self._client.delete_artefact_metadata, *old_entries)
        report.deleted = len(old_entries)

        labels = runtime_artefact_labels(spec, component)
        if spec.tracks_runtime_artefacts:
            report.deleted_runtime_artefacts = self._delete_runtime_artefacts(labels, cancel)

        if not mapped:
            logger.info("%s: no orphan resources to report", self.task_name)
            self._set_gauge(REPORTED_METRIC_KEY, REPORTED_ORPHAN_RESOURCES, 0)
            report.state = RunState.DONE
            return

        # 3. Submit the orphan resources from step 1
        self._enter(report, RunState.SUBMITTING_NEW, cancel)
        entries = self._build_entries(mapped)
        logger.info(
            "submitting findings: kind=%s count=%d component_name=%s component_version=%s",
            spec.resource_kind.value,
            len(mapped),
            component.name,
            component.version,
        )
        self._remote("submit findings", self._client.submit_artefact_metadata, *entries)
        report.reported = len(mapped)

        # 4. Submit runtime artefacts
        if spec.tracks_runtime_artefacts:
            self._enter(report, RunState.SUBMITTING_RUNTIME_ARTEFACTS, cancel)
            runtime_ids = [item.artefact_id for item in mapped]
            logger.info(
                "submitting runtime artefacts: kind=%s count=%d",
                spec.resource_kind.value,
                len(runtime_ids),
            )
            self._remote(
                "submit runtime artefacts",
                self._client.submit_runtime_artefacts,
                labels,
                *runtime_ids,
            )
            report.submitted_runtime_artefacts = len(runtime_ids)

        self._set_gauge(REPORTED_METRIC_KEY, REPORTED_ORPHAN_RESOURCES, report.reported)
        report.state = RunState.DONE

    def _delete_runtime_artefacts(
        self, labels: dict[str, str], cancel: threading.Event | None
    ) -> int:
        self._check_cancel(cancel)
        found = self._remote(
            "query existing runtime artefacts", self._client.query_runtime_artefacts, labels
        )
        matching = [item for item in found if item.matches_labels(labels)]
        if len(matching) != len(found):
            logger.warning(
                "%s: ignoring %d runtime artefacts whose labels do not match %s",
                self.task_name,
                len(found) - len(matching),
                labels,
            )

        names = [item.metadata.name for item in matching]
        logger.info("deleting old runtime artefacts: count=%d", len(names))
        self._check_cancel(cancel)
        self._remote(
            "delete existing runtime artefacts", self._client.delete_runtime_artefacts, *names
        )
        return len(names)

    def _build_entries(self, mapped: list[MappedFinding]) -> list[ArtefactMetadata]:
        now = self._clock()
        entries: list[ArtefactMetadata] = []
        for item in mapped:
            entries.append(item.to_metadata(now))
            if self.spec.tracks_runtime_artefacts:
                entries.append(item.to_scan_info(now))
        return entries

    def _enter(self, report: RunReport, state: RunState, cancel: threading.Event | None) -> None:
        self._check_cancel(cancel)
        report.state = state
        logger.debug("%s: %s", self.task_name, state.value)

    def _check_cancel(self, cancel: threading.Event | None) -> None:
        if cancel is not None and cancel.is_set():
            raise RunCancelled(f"{self.task_name}: run cancelled")

    def _remote(self, action: str, func: Callable[..., T], *args: Any) -> T:
        try:
            return func(*args)
        except APIError as exc:
            raise classify_remote_error(exc, action) from exc

    def _set_gauge(self, key: str, desc, value: int) -> None:
        self._metrics.set_gauge(
            self.task_name,
            key,
            desc,
            value,
            self.spec.provider.value,
            self.spec.resource_kind.value,
        )
