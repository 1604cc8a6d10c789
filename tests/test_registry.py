from __future__ import annotations

import pytest
from sqlalchemy import text

from inventory_odg.errors import PayloadError, UnknownTaskError
from inventory_odg.findings import kinds
from inventory_odg.tasks.reconciler import RunState
from inventory_odg.tasks.registry import (
    TASK_KINDS,
    TASK_REPORT_ORPHAN_PUBLIC_ADDRESSES_GCP,
    TASK_REPORT_ORPHAN_VMS_AWS,
    build_registry,
    task_names,
)


def test_task_names() -> None:
    assert task_names() == [
        "odg:task:report-orphan-ip-addresses-gcp",
        "odg:task:report-orphan-vms-aws",
        "odg:task:report-orphan-vms-az",
        "odg:task:report-orphan-vms-gcp",
        "odg:task:report-orphan-vms-openstack",
    ]


def test_every_kind_has_a_task() -> None:
    assert set(TASK_KINDS.values()) == set(kinds.ALL_KINDS)


def test_build_registry(sqlite_store, fake_client, metrics) -> None:
    registry = build_registry(sqlite_store, fake_client, metrics)

    assert len(registry) == len(TASK_KINDS)
    assert list(registry) == task_names()
    assert TASK_REPORT_ORPHAN_VMS_AWS in registry
    assert "odg:task:unknown" not in registry
    assert registry.get(TASK_REPORT_ORPHAN_PUBLIC_ADDRESSES_GCP).spec is (
        kinds.ORPHAN_PUBLIC_ADDRESSES_GCP
    )


def test_unknown_task(sqlite_store, fake_client, metrics) -> None:
    registry = build_registry(sqlite_store, fake_client, metrics)

    with pytest.raises(UnknownTaskError, match="odg:task:unknown"):
        registry.handle("odg:task:unknown", b"query: SELECT 1\ncomponent_name: c")

    assert fake_client.calls == []


def test_handle_decodes_payload_and_runs(sqlite_store, fake_client, metrics) -> None:
    with sqlite_store.engine.begin() as conn:
        conn.execute(
            text(
                "INSERT INTO aws_orphan_instance (instance_id, vpc_id, region_name, account_id) "
                "VALUES ('i-1', 'vpc-1', 'eu-1', '123')"
            )
        )
    registry = build_registry(sqlite_store, fake_client, metrics)

    report = registry.handle(
        TASK_REPORT_ORPHAN_VMS_AWS,
        b"query: SELECT * FROM aws_orphan_instance\n"
        b"component_name: c\n"
        b"component_version: v1\n",
    )

    assert report.state is RunState.DONE
    assert report.discovered == 1
    assert report.reported == 1
    assert "submit_artefact_metadata" in fake_client.call_names()


def test_handle_rejects_bad_payload(sqlite_store, fake_client, metrics) -> None:
    registry = build_registry(sqlite_store, fake_client, metrics)

    with pytest.raises(PayloadError, match="no payload specified"):
        registry.handle(TASK_REPORT_ORPHAN_VMS_AWS, b"")

    assert fake_client.calls == []
