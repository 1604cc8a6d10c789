"""API models of the Open Delivery Gear Delivery Service.

Field names follow the upstream ``dso.model`` classes and are part of the wire
contract with the remote service, so they must not be renamed.
"""

from __future__ import annotations

from datetime import date, datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class ArtefactKind(str, Enum):
    ARTEFACT = "artefact"
    RESOURCE = "resource"
    RUNTIME = "runtime"
    SOURCE = "source"


class Datasource(str, Enum):
    INVENTORY = "inventory"


class Datatype(str, Enum):
    INVENTORY = "finding/inventory"
    ARTEFACT_SCAN_INFO = "meta/artefact_scan_info"


class SeverityLevel(str, Enum):
    HIGH = "HIGH"


class ProviderName(str, Enum):
    AWS = "aws"
    GCP = "gcp"
    AZURE = "azure"
    OPENSTACK = "openstack"


class ResourceKind(str, Enum):
    VIRTUAL_MACHINE_AWS = "aws-virtual-machine"
    VIRTUAL_MACHINE_GCP = "gcp-virtual-machine"
    VIRTUAL_MACHINE_AZURE = "azure-virtual-machine"
    VIRTUAL_MACHINE_OPENSTACK = "openstack-virtual-machine"
    IP_ADDRESS_GCP = "gcp-public-ip-address"


class LocalArtefactID(BaseModel):
    model_config = ConfigDict(frozen=True)

    artefact_name: str = ""
    artefact_type: str = ""
    artefact_version: str = ""
    artefact_extra_id: dict[str, str] = Field(default_factory=dict)

    def identity_key(self) -> tuple[object, ...]:
        return (
            self.artefact_name,
            self.artefact_type,
            self.artefact_version,
            frozenset(self.artefact_extra_id.items()),
        )

    def __hash__(self) -> int:
        return hash(self.identity_key())


class ComponentArtefactID(BaseModel):
    """Artefact identity used to correlate a finding across runs.

    Equality compares every field; ``artefact_extra_id`` is compared as an
    unordered key/value set.
    """

    model_config = ConfigDict(frozen=True, use_enum_values=True, validate_default=True)

    component_name: str = ""
    component_version: str = ""
    artefact: LocalArtefactID = Field(default_factory=LocalArtefactID)
    artefact_kind: ArtefactKind = ArtefactKind.ARTEFACT

    def identity_key(self) -> tuple[object, ...]:
        return (
            self.component_name,
            self.component_version,
            self.artefact_kind,
            self.artefact.identity_key(),
        )

    def __hash__(self) -> int:
        return hash(self.identity_key())


class Metadata(BaseModel):
    model_config = ConfigDict(use_enum_values=True)

    datasource: str = Datasource.INVENTORY.value
    type: str = Datatype.INVENTORY.value
    creation_date: datetime | None = None
    last_update: datetime | None = None


class Finding(BaseModel):
    model_config = ConfigDict(use_enum_values=True)

    severity: str = SeverityLevel.HIGH.value
    provider_name: str
    resource_kind: str
    resource_name: str
    summary: str
    attributes: dict[str, Any] = Field(default_factory=dict)


class ArtefactMetadata(BaseModel):
    artefact: ComponentArtefactID
    meta: Metadata = Field(default_factory=Metadata)
    data: Finding | None = None
    discovery_date: date | None = None


class RuntimeArtefactObjectMeta(BaseModel):
    model_config = ConfigDict(extra="allow")

    name: str
    labels: dict[str, str] = Field(default_factory=dict)


class RuntimeArtefactResultItem(BaseModel):
    """Runtime artefact as returned by the runtime-artefacts service extension."""

    model_config = ConfigDict(extra="allow")

    metadata: RuntimeArtefactObjectMeta

    def matches_labels(self, labels: dict[str, str]) -> bool:
        """Exact, order-independent match of every requested label."""
        own = self.metadata.labels
        return all(key in own and own[key] == value for key, value in labels.items())
