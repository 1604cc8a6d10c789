from __future__ import annotations

import pytest

from inventory_odg.tasks.metrics import (
    DISCOVERED_ORPHAN_RESOURCES,
    REPORTED_ORPHAN_RESOURCES,
    MetricsCollector,
)


def test_set_gauge_replaces_previous_value(metrics: MetricsCollector) -> None:
    metrics.set_gauge("task-a", "discovered", DISCOVERED_ORPHAN_RESOURCES, 3, "aws", "vm")
    metrics.set_gauge("task-a", "discovered", DISCOVERED_ORPHAN_RESOURCES, 5, "aws", "vm")

    sample = metrics.get("task-a", "discovered")
    assert sample is not None
    assert sample.value == 5.0
    assert sample.labels == ("aws", "vm")
    assert len(metrics.samples()) == 1


def test_set_gauge_checks_label_count(metrics: MetricsCollector) -> None:
    with pytest.raises(ValueError, match="expected 2 label values"):
        metrics.set_gauge("task-a", "discovered", DISCOVERED_ORPHAN_RESOURCES, 1, "aws")


def test_get_unknown_sample(metrics: MetricsCollector) -> None:
    assert metrics.get("task-a", "missing") is None


def test_render(metrics: MetricsCollector) -> None:
    assert metrics.render() == ""

    metrics.set_gauge("task-b", "reported", REPORTED_ORPHAN_RESOURCES, 2, "gcp", "gcp-vm")
    metrics.set_gauge("task-a", "discovered", DISCOVERED_ORPHAN_RESOURCES, 4, "aws", "aws-vm")
    metrics.set_gauge("task-b", "discovered", DISCOVERED_ORPHAN_RESOURCES, 2, "gcp", "gcp-vm")

    assert metrics.render().splitlines() == [
        "# HELP inventory_odg_discovered_orphan_resources "
        "A gauge which tracks the number of discovered orphan resources from Inventory",
        "# TYPE inventory_odg_discovered_orphan_resources gauge",
        'inventory_odg_discovered_orphan_resources{provider_name="aws",resource_kind="aws-vm"} 4',
        'inventory_odg_discovered_orphan_resources{provider_name="gcp",resource_kind="gcp-vm"} 2',
        "# HELP inventory_odg_reported_orphan_resources "
        "A gauge which tracks the number of successfully reported orphan resources to ODG",
        "# TYPE inventory_odg_reported_orphan_resources gauge",
        'inventory_odg_reported_orphan_resources{provider_name="gcp",resource_kind="gcp-vm"} 2',
    ]
