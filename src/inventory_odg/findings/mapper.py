"""Conversion of orphan resource rows into Delivery Service findings."""

from __future__ import annotations

from collections import Counter
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass
from datetime import datetime

from inventory_odg.api.types import (
    ArtefactKind,
    ArtefactMetadata,
    ComponentArtefactID,
    Datasource,
    Datatype,
    Finding,
    LocalArtefactID,
    Metadata,
    ProviderName,
    ResourceKind,
    SeverityLevel,
)
from inventory_odg.inventory.models import OrphanResource

CREATED_BY_LABEL = "created-by"
RESOURCE_KIND_LABEL = "resource-kind"
COMPONENT_NAME_LABEL = "component-name"


@dataclass(frozen=True)
class ComponentRef:
    """OCM component the findings are associated with."""

    name: str
    version: str = ""


@dataclass(frozen=True)
class ResourceKindSpec:
    """Static field projections for one kind of orphan resource.

    ``extra_id`` pairs an ``artefact_extra_id`` key with the row field it is
    read from.
    """

    provider: ProviderName
    resource_kind: ResourceKind
    shape: type[OrphanResource]
    summary: str
    artefact_name: Callable[[OrphanResource], object]
    resource_name: Callable[[OrphanResource], object]
    extra_id: tuple[tuple[str, str], ...]
    tracks_runtime_artefacts: bool = True

    @property
    def extra_id_keys(self) -> tuple[str, ...]:
        return tuple(key for key, _ in self.extra_id)


@dataclass(frozen=True)
class MappedFinding:
    finding: Finding
    artefact_id: ComponentArtefactID

    def to_metadata(self, now: datetime) -> ArtefactMetadata:
        return ArtefactMetadata(
            artefact=self.artefact_id,
            meta=Metadata(
                datasource=Datasource.INVENTORY.value,
                type=Datatype.INVENTORY.value,
                creation_date=now,
                last_update=now,
            ),
            data=self.finding,
            discovery_date=now.date(),
        )

    def to_scan_info(self, now: datetime) -> ArtefactMetadata:
        return ArtefactMetadata(
            artefact=self.artefact_id,
            meta=Metadata(
                datasource=Datasource.INVENTORY.value,
                type=Datatype.ARTEFACT_SCAN_INFO.value,
                creation_date=now,
                last_update=now,
            ),
            discovery_date=now.date(),
        )


def _local_artefact_id(
    spec: ResourceKindSpec, row: OrphanResource, component: ComponentRef
) -> LocalArtefactID:
    return LocalArtefactID(
        artefact_name=str(spec.artefact_name(row)),
        artefact_type=spec.resource_kind.value,
        artefact_version=component.version,
        artefact_extra_id={key: str(getattr(row, field)) for key, field in spec.extra_id},
    )


def map_row(
    spec: ResourceKindSpec, row: OrphanResource, component: ComponentRef
) -> MappedFinding:
    finding = Finding(
        severity=SeverityLevel.HIGH.value,
        provider_name=spec.provider.value,
        resource_kind=spec.resource_kind.value,
        resource_name=str(spec.resource_name(row)),
        summary=spec.summary,
        attributes=row.model_dump(mode="json"),
    )
    artefact_id = ComponentArtefactID(
        component_name=component.name,
        component_version=component.version,
        artefact=_local_artefact_id(spec, row, component),
        artefact_kind=ArtefactKind.RUNTIME,
    )
    return MappedFinding(finding=finding, artefact_id=artefact_id)


def map_rows(
    spec: ResourceKindSpec, rows: Iterable[OrphanResource], component: ComponentRef
) -> list[MappedFinding]:
    return [map_row(spec, row, component) for row in rows]


def find_identity_collisions(mapped: Sequence[MappedFinding]) -> list[ComponentArtefactID]:
    """Return identities which more than one mapped row produced."""
    counts = Counter(item.artefact_id for item in mapped)
    return [artefact_id for artefact_id, count in counts.items() if count > 1]


def existing_entries_filter(spec: ResourceKindSpec, component: ComponentRef) -> ComponentArtefactID:
    """Identity used to query previously reported findings of a kind."""
    return ComponentArtefactID(
        component_name=component.name,
        component_version=component.version,
        artefact_kind=ArtefactKind.RUNTIME,
        artefact=LocalArtefactID(artefact_type=spec.resource_kind.value),
    )


def runtime_artefact_labels(spec: ResourceKindSpec, component: ComponentRef) -> dict[str, str]:
    return {
        CREATED_BY_LABEL: Datasource.INVENTORY.value,
        RESOURCE_KIND_LABEL: spec.resource_kind.value,
        COMPONENT_NAME_LABEL: component.name,
    }
