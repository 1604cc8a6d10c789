"""Field projections of the supported orphan resource kinds."""

from __future__ import annotations

from operator import attrgetter

from inventory_odg.api.types import ProviderName, ResourceKind
from inventory_odg.findings.mapper import ResourceKindSpec
from inventory_odg.inventory.models import (
    OrphanPublicAddressGCP,
    OrphanServerOpenStack,
    OrphanVirtualMachineAWS,
    OrphanVirtualMachineAzure,
    OrphanVirtualMachineGCP,
)

ORPHAN_VMS_AWS = ResourceKindSpec(
    provider=ProviderName.AWS,
    resource_kind=ResourceKind.VIRTUAL_MACHINE_AWS,
    shape=OrphanVirtualMachineAWS,
    summary="Orphan Virtual Machine",
    artefact_name=attrgetter("instance_id"),
    resource_name=attrgetter("instance_id"),
    extra_id=(
        ("vpc_id", "vpc_id"),
        ("region_name", "region_name"),
        ("account_id", "account_id"),
    ),
)

ORPHAN_VMS_GCP = ResourceKindSpec(
    provider=ProviderName.GCP,
    resource_kind=ResourceKind.VIRTUAL_MACHINE_GCP,
    shape=OrphanVirtualMachineGCP,
    summary="Orphan Virtual Machine",
    artefact_name=attrgetter("name"),
    resource_name=attrgetter("instance_id"),
    extra_id=(
        ("instance_id", "instance_id"),
        ("project_id", "project_id"),
    ),
)

ORPHAN_VMS_AZURE = ResourceKindSpec(
    provider=ProviderName.AZURE,
    resource_kind=ResourceKind.VIRTUAL_MACHINE_AZURE,
    shape=OrphanVirtualMachineAzure,
    summary="Orphan Virtual Machine",
    artefact_name=attrgetter("name"),
    resource_name=attrgetter("name"),
    extra_id=(
        ("subscription_id", "subscription_id"),
        ("resource_group", "resource_group"),
        ("location", "location"),
    ),
)

ORPHAN_VMS_OPENSTACK = ResourceKindSpec(
    provider=ProviderName.OPENSTACK,
    resource_kind=ResourceKind.VIRTUAL_MACHINE_OPENSTACK,
    shape=OrphanServerOpenStack,
    summary="Orphan Server",
    artefact_name=attrgetter("name"),
    resource_name=attrgetter("server_id"),
    extra_id=(
        ("server_id", "server_id"),
        ("project_id", "project_id"),
    ),
)

# Public addresses are reported as findings only, without runtime artefacts.
ORPHAN_PUBLIC_ADDRESSES_GCP = ResourceKindSpec(
    provider=ProviderName.GCP,
    resource_kind=ResourceKind.IP_ADDRESS_GCP,
    shape=OrphanPublicAddressGCP,
    summary="Orphan Public IP Address",
    artefact_name=attrgetter("name"),
    resource_name=lambda row: f"{row.project_id}:{row.name}",
    extra_id=(
        ("project_id", "project_id"),
        ("forwarding_rule", "name"),
    ),
    tracks_runtime_artefacts=False,
)

ALL_KINDS: tuple[ResourceKindSpec, ...] = (
    ORPHAN_VMS_AWS,
    ORPHAN_VMS_GCP,
    ORPHAN_VMS_AZURE,
    ORPHAN_VMS_OPENSTACK,
    ORPHAN_PUBLIC_ADDRESSES_GCP,
)
