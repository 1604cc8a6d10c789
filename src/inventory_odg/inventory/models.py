"""Row shapes of the orphan resources reported by Inventory.

Each model matches the columns projected by the corresponding scheduler query
by name. Columns unknown to the model are rejected, identity columns are
required and everything else is optional.
"""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict


class OrphanResource(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")


class OrphanVirtualMachineAWS(OrphanResource):
    """AWS EC2 instance identified as orphan."""

    name: str | None = None
    arch: str | None = None
    instance_id: str
    instance_type: str | None = None
    state: str | None = None
    vpc_id: str
    vpc_name: str | None = None
    region_name: str
    account_id: str
    subnet_id: str | None = None
    platform: str | None = None
    image_id: str | None = None
    launch_time: datetime | None = None


class OrphanVirtualMachineGCP(OrphanResource):
    """GCP Compute Engine instance identified as orphan."""

    name: str
    hostname: str | None = None
    instance_id: int
    project_id: str
    region: str | None = None
    zone: str | None = None
    cpu_platform: str | None = None
    status: str | None = None
    status_message: str | None = None
    creation_timestamp: datetime | None = None
    description: str | None = None
    last_start_timestamp: datetime | None = None
    last_stop_timestamp: datetime | None = None
    last_suspend_timestamp: datetime | None = None
    machine_type: str | None = None
    gke_cluster_name: str | None = None
    gke_pool_name: str | None = None


class OrphanVirtualMachineAzure(OrphanResource):
    """Azure virtual machine identified as orphan."""

    name: str
    subscription_id: str
    resource_group: str
    location: str
    provisioning_state: str | None = None
    vm_created_at: datetime | None = None
    hyper_v_gen: str | None = None
    vm_size: str | None = None
    power_state: str | None = None
    vm_agent_version: str | None = None


class OrphanServerOpenStack(OrphanResource):
    """OpenStack server identified as orphan."""

    server_id: str
    name: str
    project_id: str
    project_name: str | None = None
    domain: str | None = None
    region: str | None = None
    user_id: str | None = None
    availability_zone: str | None = None
    status: str | None = None
    image_id: str | None = None
    server_created_at: datetime | None = None
    server_updated_at: datetime | None = None


class OrphanPublicAddressGCP(OrphanResource):
    """GCP forwarding rule with a public IP address identified as orphan."""

    rule_id: int | None = None
    project_id: str
    name: str
    ip_address: str | None = None
    ip_protocol: str | None = None
    ip_version: str | None = None
    all_ports: bool | None = None
    allow_global_access: bool | None = None
    backend_service: str | None = None
    creation_timestamp: datetime | None = None
    description: str | None = None
    load_balancing_scheme: str | None = None
    network: str | None = None
    network_tier: str | None = None
    port_range: str | None = None
    region: str | None = None
    service_label: str | None = None
    service_name: str | None = None
    subnetwork: str | None = None
    target: str | None = None
