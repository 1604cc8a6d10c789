"""Gauges about discovered and reported orphan resources."""

from __future__ import annotations

import threading
from dataclasses import dataclass

METRICS_NAMESPACE = "inventory"


@dataclass(frozen=True)
class GaugeDesc:
    name: str
    help: str
    label_names: tuple[str, ...]


@dataclass(frozen=True)
class GaugeSample:
    desc: GaugeDesc
    value: float
    labels: tuple[str, ...]


DISCOVERED_ORPHAN_RESOURCES = GaugeDesc(
    name=f"{METRICS_NAMESPACE}_odg_discovered_orphan_resources",
    help="A gauge which tracks the number of discovered orphan resources from Inventory",
    label_names=("provider_name", "resource_kind"),
)

REPORTED_ORPHAN_RESOURCES = GaugeDesc(
    name=f"{METRICS_NAMESPACE}_odg_reported_orphan_resources",
    help="A gauge which tracks the number of successfully reported orphan resources to ODG",
    label_names=("provider_name", "resource_kind"),
)


class MetricsCollector:
    """Thread-safe store of gauge samples keyed by task and metric name.

    Setting a key replaces the previous sample.
    """

    def __init__(self) -> None:
        self._samples: dict[tuple[str, str], GaugeSample] = {}
        self._lock = threading.Lock()

    def set_gauge(
        self, task_name: str, key: str, desc: GaugeDesc, value: float, *labels: str
    ) -> None:
        if len(labels) != len(desc.label_names):
            raise ValueError(
                f"{desc.name}: expected {len(desc.label_names)} label values, got {len(labels)}"
            )
        with self._lock:
            self._samples[(task_name, key)] = GaugeSample(desc=desc, value=float(value), labels=labels)

    def get(self, task_name: str, key: str) -> GaugeSample | None:
        with self._lock:
            return self._samples.get((task_name, key))

    def samples(self) -> list[GaugeSample]:
        with self._lock:
            return [self._samples[key] for key in sorted(self._samples)]

    def render(self) -> str:
        """Render all samples in the Prometheus text exposition format."""
        lines: list[str] = []
        seen: set[str] = set()
        for sample in sorted(self.samples(), key=lambda item: (item.desc.name, item.labels)):
            desc = sample.desc
            if desc.name not in seen:
                seen.add(desc.name)
                lines.append(f"# HELP {desc.name} {desc.help}")
                lines.append(f"# TYPE {desc.name} gauge")
            label_text = ",".join(
                f'{name}="{value}"' for name, value in zip(desc.label_names, sample.labels)
            )
            lines.append(f"{desc.name}{{{label_text}}} {sample.value:g}")
        return "\n".join(lines) + ("\n" if lines else "")
