"""Registry of the tasks reporting orphan resources.

The registry is an explicit table built once at process start and handed to
whatever executes the tasks.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Iterator, Mapping
from typing import Any

from inventory_odg.api.client import OdgClient
from inventory_odg.errors import UnknownTaskError
from inventory_odg.findings import kinds
from inventory_odg.findings.mapper import ResourceKindSpec
from inventory_odg.inventory.store import InventoryStore
from inventory_odg.tasks.metrics import MetricsCollector
from inventory_odg.tasks.payload import decode_payload
from inventory_odg.tasks.reconciler import Reconciler, RunReport

logger = logging.getLogger(__name__)

TASK_REPORT_ORPHAN_VMS_AWS = "odg:task:report-orphan-vms-aws"
TASK_REPORT_ORPHAN_VMS_GCP = "odg:task:report-orphan-vms-gcp"
TASK_REPORT_ORPHAN_VMS_AZURE = "odg:task:report-orphan-vms-az"
TASK_REPORT_ORPHAN_VMS_OPENSTACK = "odg:task:report-orphan-vms-openstack"
TASK_REPORT_ORPHAN_PUBLIC_ADDRESSES_GCP = "odg:task:report-orphan-ip-addresses-gcp"

TASK_KINDS: dict[str, ResourceKindSpec] = {
    TASK_REPORT_ORPHAN_VMS_AWS: kinds.ORPHAN_VMS_AWS,
    TASK_REPORT_ORPHAN_VMS_GCP: kinds.ORPHAN_VMS_GCP,
    TASK_REPORT_ORPHAN_VMS_AZURE: kinds.ORPHAN_VMS_AZURE,
    TASK_REPORT_ORPHAN_VMS_OPENSTACK: kinds.ORPHAN_VMS_OPENSTACK,
    TASK_REPORT_ORPHAN_PUBLIC_ADDRESSES_GCP: kinds.ORPHAN_PUBLIC_ADDRESSES_GCP,
}


def task_names() -> list[str]:
    return sorted(TASK_KINDS)


class TaskRegistry:
    def __init__(self, reconcilers: Mapping[str, Reconciler]) -> None:
        self._reconcilers = dict(reconcilers)

    def __contains__(self, name: object) -> bool:
        return name in self._reconcilers

    def __iter__(self) -> Iterator[str]:
        return iter(self.names())

    def __len__(self) -> int:
        return len(self._reconcilers)

    def names(self) -> list[str]:
        return sorted(self._reconcilers)

    def get(self, name: str) -> Reconciler:
        try:
            return self._reconcilers[name]
        except KeyError:
            raise UnknownTaskError(name) from None

    def handle(
        self,
        name: str,
        raw_payload: bytes | str | Mapping[str, Any] | None,
        cancel: threading.Event | None = None,
    ) -> RunReport:
        """Decode the payload of a task and run the matching reconciler."""
        reconciler = self.get(name)
        payload = decode_payload(raw_payload)
        return reconciler.run(payload, cancel=cancel)


def build_registry(
    store: InventoryStore, client: OdgClient, metrics: MetricsCollector
) -> TaskRegistry:
    reconcilers = {
        name: Reconciler(name, spec, store, client, metrics) for name, spec in TASK_KINDS.items()
    }
    for name in sorted(reconcilers):
        logger.debug("registered task %s", name)
    return TaskRegistry(reconcilers)
