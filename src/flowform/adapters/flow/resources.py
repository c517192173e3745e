"""Attribute schemas of the Flow resource kinds and the kind registry."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from flowform.config.polling import DEFAULT_POLL_INTERVAL_SECONDS
from flowform.domain.errors import NotSupportedError
from flowform.domain.reconciler import Reconciler
from flowform.domain.schema import Attribute, Mutability, ResourceSchema

from .drivers import (
    CertificateDriver,
    ElasticIpDriver,
    FlowResourceDriver,
    ImageDriver,
    KeyPairDriver,
    KubernetesClusterDriver,
    LoadBalancerDriver,
    LocationDriver,
    NetworkDriver,
    NetworkInterfaceDriver,
    ProductDriver,
    SecurityGroupDriver,
    SecurityGroupRuleDriver,
    ServerDriver,
    SnapshotDriver,
    VolumeDriver,
)

if TYPE_CHECKING:
    from .client import FlowApiClient, OrderService

IMMUTABLE = Mutability.IMMUTABLE
COMPUTED = Mutability.COMPUTED

VOLUME = ResourceSchema(
    kind="compute_volume",
    attributes=(
        Attribute(name="name"),
        Attribute(name="size", group="size", growth_only=True),
        Attribute(name="location", mutability=IMMUTABLE),
        Attribute(name="restore_from_snapshot", mutability=IMMUTABLE, write_only=True),
        Attribute(name="attach_to_server", group="attachment"),
        Attribute(name="serial_number", mutability=COMPUTED),
    ),
)

SNAPSHOT = ResourceSchema(
    kind="compute_snapshot",
    attributes=(
        Attribute(name="name"),
        Attribute(name="volume_id", mutability=IMMUTABLE),
        Attribute(name="size", mutability=COMPUTED),
        Attribute(name="created_at", mutability=COMPUTED),
    ),
)

KEY_PAIR = ResourceSchema(
    kind="compute_key_pair",
    attributes=(
        Attribute(name="name", mutability=IMMUTABLE),
        Attribute(name="public_key", mutability=IMMUTABLE, write_only=True),
        Attribute(name="fingerprint", mutability=COMPUTED),
    ),
)

LOAD_BALANCER = ResourceSchema(
    kind="compute_load_balancer",
    attributes=(
        Attribute(name="name"),
        Attribute(name="location", mutability=IMMUTABLE),
        Attribute(name="network_id", mutability=IMMUTABLE),
        Attribute(name="private_ip", mutability=IMMUTABLE),
        Attribute(name="public_ip", mutability=COMPUTED),
    ),
)

NETWORK_INTERFACE = ResourceSchema(
    kind="compute_network_interface",
    attributes=(
        Attribute(name="server_id", mutability=IMMUTABLE, identity=True),
        Attribute(name="network_id", mutability=IMMUTABLE),
        Attribute(name="private_ip", mutability=IMMUTABLE),
        Attribute(name="security", default=True, group="security", on_create=False),
        Attribute(
            name="security_group_ids", default=[], group="security_groups", on_create=False
        ),
        Attribute(name="mac_address", mutability=COMPUTED),
        Attribute(name="public_ip", mutability=COMPUTED),
    ),
)

ELASTIC_IP = ResourceSchema(
    kind="compute_elastic_ip",
    attributes=(
        Attribute(name="location", mutability=IMMUTABLE),
        Attribute(name="public_ip", mutability=COMPUTED),
        Attribute(name="attached_server_id", mutability=COMPUTED),
        Attribute(name="attached_network_interface_id", mutability=COMPUTED),
    ),
)

KUBERNETES_CLUSTER = ResourceSchema(
    kind="kubernetes_cluster",
    attributes=(
        Attribute(name="name"),
        Attribute(name="location", mutability=IMMUTABLE),
        Attribute(name="network_id", mutability=IMMUTABLE),
        Attribute(name="public", mutability=IMMUTABLE, default=True),
        Attribute(name="version_id", group="configuration", on_create=False),
        Attribute(name="node_count", group="flavor"),
        Attribute(name="node_product_id", group="flavor"),
        Attribute(name="security_group_id", mutability=COMPUTED),
        Attribute(name="public_address", mutability=COMPUTED),
        Attribute(name="dns_name", mutability=COMPUTED),
    ),
)


SERVER = ResourceSchema(
    kind="compute_server",
    attributes=(
        Attribute(name="name"),
        Attribute(name="location", mutability=IMMUTABLE),
        Attribute(name="image_id", mutability=IMMUTABLE),
        Attribute(name="product_id", mutability=IMMUTABLE),
        Attribute(name="network_id", mutability=IMMUTABLE),
        Attribute(name="private_ip", mutability=IMMUTABLE),
        Attribute(name="key_pair_id", mutability=IMMUTABLE),
        Attribute(name="password", mutability=IMMUTABLE, write_only=True),
        Attribute(name="cloud_init", mutability=IMMUTABLE, write_only=True),
    ),
)

NETWORK = ResourceSchema(
    kind="compute_network",
    attributes=(
        Attribute(name="name"),
        Attribute(name="cidr", mutability=IMMUTABLE),
        Attribute(name="location", mutability=IMMUTABLE),
        Attribute(name="domain_name_servers", default=["1.1.1.1", "8.8.8.8"]),
        Attribute(name="allocation_pool_start"),
        Attribute(name="allocation_pool_end"),
        Attribute(name="gateway_ip"),
    ),
)

SECURITY_GROUP = ResourceSchema(
    kind="compute_security_group",
    attributes=(
        Attribute(name="name"),
        Attribute(name="location", mutability=IMMUTABLE),
    ),
)

SECURITY_GROUP_RULE = ResourceSchema(
    kind="compute_security_group_rule",
    attributes=(
        Attribute(name="security_group_id", mutability=IMMUTABLE, identity=True),
        Attribute(name="direction"),
        Attribute(name="protocol"),
        Attribute(name="from_port"),
        Attribute(name="to_port"),
        Attribute(name="icmp_type"),
        Attribute(name="icmp_code"),
        Attribute(name="ip_range"),
        Attribute(name="remote_security_group_id"),
        Attribute(name="protocol_number", mutability=COMPUTED),
    ),
)

CERTIFICATE = ResourceSchema(
    kind="compute_certificate",
    attributes=(
        Attribute(name="name", mutability=IMMUTABLE),
        Attribute(name="location", mutability=IMMUTABLE),
        Attribute(name="certificate", mutability=IMMUTABLE, write_only=True),
        Attribute(name="private_key", mutability=IMMUTABLE, write_only=True),
        Attribute(name="subject", mutability=COMPUTED),
        Attribute(name="issuer", mutability=COMPUTED),
        Attribute(name="not_before", mutability=COMPUTED),
        Attribute(name="not_after", mutability=COMPUTED),
        Attribute(name="serial_number", mutability=COMPUTED),
    ),
)


@dataclass(slots=True, frozen=True)
class ResourceKind:
    schema: ResourceSchema
    driver: type[FlowResourceDriver]

    @property
    def name(self) -> str:
        return self.schema.kind


RESOURCE_KINDS: dict[str, ResourceKind] = {
    kind.name: kind
    for kind in (
        ResourceKind(VOLUME, VolumeDriver),
        ResourceKind(SNAPSHOT, SnapshotDriver),
        ResourceKind(KEY_PAIR, KeyPairDriver),
        ResourceKind(LOAD_BALANCER, LoadBalancerDriver),
        ResourceKind(NETWORK_INTERFACE, NetworkInterfaceDriver),
        ResourceKind(ELASTIC_IP, ElasticIpDriver),
        ResourceKind(KUBERNETES_CLUSTER, KubernetesClusterDriver),
        ResourceKind(SERVER, ServerDriver),
        ResourceKind(NETWORK, NetworkDriver),
        ResourceKind(SECURITY_GROUP, SecurityGroupDriver),
        ResourceKind(SECURITY_GROUP_RULE, SecurityGroupRuleDriver),
        ResourceKind(CERTIFICATE, CertificateDriver),
    )
}

# provider-owned reference data, available to lookups only
CATALOGUE_KINDS: dict[str, type[FlowResourceDriver]] = {
    driver.kind: driver for driver in (LocationDriver, ProductDriver, ImageDriver)
}


def get_resource_kind(name: str) -> ResourceKind:
    try:
        return RESOURCE_KINDS[name]
    except KeyError:
        known = ", ".join(sorted(RESOURCE_KINDS))
        raise NotSupportedError(f"unknown resource kind {name!r} (known: {known})") from None


def build_driver(
    kind: str,
    api: FlowApiClient,
    *,
    orders: OrderService | None = None,
) -> FlowResourceDriver:
    """Driver for a managed kind or for a lookup-only catalogue kind."""

    catalogue = CATALOGUE_KINDS.get(kind)
    if catalogue is not None:
        return catalogue(api, orders)
    return get_resource_kind(kind).driver(api, orders)


def build_reconciler(
    kind: str,
    api: FlowApiClient,
    *,
    poll_interval: float = DEFAULT_POLL_INTERVAL_SECONDS,
    orders: OrderService | None = None,
) -> Reconciler:
    resource_kind = get_resource_kind(kind)
    return Reconciler(
        schema=resource_kind.schema,
        driver=resource_kind.driver(api, orders),
        poll_interval=poll_interval,
    )
