"""Translate Flow API payloads into remote entities."""

from __future__ import annotations

from typing import TYPE_CHECKING

from flowform.domain.model import RemoteEntity

from .schema import (
    CertificatePayload,
    ElasticIpPayload,
    ImagePayload,
    KeyPairPayload,
    KubernetesClusterPayload,
    LoadBalancerPayload,
    LocationPayload,
    NetworkInterfacePayload,
    NetworkPayload,
    ProductPayload,
    SecurityGroupPayload,
    SecurityGroupRulePayload,
    ServerPayload,
    SnapshotPayload,
    VolumePayload,
)

if TYPE_CHECKING:
    from .schema import Reference, StatusPayload

SNAPSHOT_PENDING_STATUSES = frozenset({"creating"})
LOAD_BALANCER_PENDING_STATUSES = frozenset({"creating", "working", "pending"})
CLUSTER_PENDING_STATUSES = frozenset({"creating", "updating", "working", "pending"})
SERVER_PENDING_STATUSES = frozenset({"creating", "building", "working", "pending"})

# IANA protocol numbers, -1 matches every protocol
PROTOCOL_NUMBERS = {"any": -1, "icmp": 1, "tcp": 6, "udp": 17}
PROTOCOL_NAMES = {number: name for name, number in PROTOCOL_NUMBERS.items()}


def _ref_id(reference: Reference | None) -> int | None:
    return reference.id if reference is not None else None


def _slug(status: StatusPayload | None) -> str | None:
    return status.slug if status is not None else None


def parse_volume(payload: object) -> RemoteEntity:
    volume = VolumePayload.model_validate(payload)
    return RemoteEntity(
        id=volume.id,
        attributes={
            "name": volume.name,
            "size": volume.size,
            "serial_number": volume.serial_number,
            "location": volume.location.id,
            "attach_to_server": _ref_id(volume.attached_to),
        },
        status=_slug(volume.status),
    )


def parse_snapshot(payload: object) -> RemoteEntity:
    snapshot = SnapshotPayload.model_validate(payload)
    status = snapshot.status.slug
    return RemoteEntity(
        id=snapshot.id,
        attributes={
            "name": snapshot.name,
            "volume_id": snapshot.volume.id,
            "size": snapshot.size,
            "created_at": snapshot.created_at.isoformat() if snapshot.created_at else None,
        },
        settled=status not in SNAPSHOT_PENDING_STATUSES,
        status=status,
    )


def parse_key_pair(payload: object) -> RemoteEntity:
    key_pair = KeyPairPayload.model_validate(payload)
    return RemoteEntity(
        id=key_pair.id,
        attributes={"name": key_pair.name, "fingerprint": key_pair.fingerprint},
    )


def parse_load_balancer(payload: object) -> RemoteEntity:
    load_balancer = LoadBalancerPayload.model_validate(payload)
    status = load_balancer.status.slug
    return RemoteEntity(
        id=load_balancer.id,
        attributes={
            "name": load_balancer.name,
            "location": load_balancer.location.id,
            "network_id": _ref_id(load_balancer.network),
            "private_ip": load_balancer.private_ip,
            "public_ip": load_balancer.public_ip,
        },
        settled=status not in LOAD_BALANCER_PENDING_STATUSES,
        status=status,
    )


def parse_network_interface(payload: object, *, server_id: int | None = None) -> RemoteEntity:
    iface = NetworkInterfacePayload.model_validate(payload)
    attributes: dict[str, object] = {
        "network_id": iface.network.id,
        "private_ip": iface.private_ip,
        "mac_address": iface.mac_address,
        "public_ip": iface.public_ip,
        "security": iface.security,
        "security_group_ids": [group.id for group in iface.security_groups],
    }
    if server_id is not None:
        attributes["server_id"] = server_id
    return RemoteEntity(id=iface.id, attributes=attributes)


def parse_elastic_ip(payload: object) -> RemoteEntity:
    elastic_ip = ElasticIpPayload.model_validate(payload)
    return RemoteEntity(
        id=elastic_ip.id,
        attributes={
            "public_ip": elastic_ip.public_ip,
            "location": elastic_ip.location.id,
            "attached_server_id": _ref_id(elastic_ip.attached_instance),
            "attached_network_interface_id": _ref_id(elastic_ip.attached_network_interface),
        },
    )


def parse_kubernetes_cluster(payload: object) -> RemoteEntity:
    cluster = KubernetesClusterPayload.model_validate(payload)
    status = _slug(cluster.status)
    return RemoteEntity(
        id=cluster.id,
        attributes={
            "name": cluster.name,
            "location": cluster.location.id,
            "network_id": cluster.network.id,
            "security_group_id": _ref_id(cluster.security_group),
            "public": cluster.public_address is not None,
            "public_address": cluster.public_address,
            "dns_name": cluster.dns_name,
            "version_id": _ref_id(cluster.version),
            "node_count": cluster.worker.count,
            "node_product_id": cluster.worker.product.id,
        },
        settled=status not in CLUSTER_PENDING_STATUSES,
        status=status,
    )


def parse_server(payload: object) -> RemoteEntity:
    server = ServerPayload.model_validate(payload)
    status = _slug(server.status)
    network_id: int | None = None
    private_ip: str | None = None
    # only the initial network is part of the server's own configuration
    if server.networks:
        network = server.networks[0]
        network_id = network.id
        if network.interfaces:
            private_ip = network.interfaces[0].private_ip
    return RemoteEntity(
        id=server.id,
        attributes={
            "name": server.name,
            "location": server.location.id,
            "image_id": server.image.id,
            "product_id": server.product.id,
            "key_pair_id": _ref_id(server.key_pair),
            "network_id": network_id,
            "private_ip": private_ip,
        },
        settled=status not in SERVER_PENDING_STATUSES,
        status=status,
    )


def parse_network(payload: object) -> RemoteEntity:
    network = NetworkPayload.model_validate(payload)
    return RemoteEntity(
        id=network.id,
        attributes={
            "name": network.name,
            "cidr": network.cidr,
            "location": network.location.id,
            "domain_name_servers": list(network.domain_name_servers),
            "allocation_pool_start": network.allocation_pool_start,
            "allocation_pool_end": network.allocation_pool_end,
            "gateway_ip": network.gateway_ip,
        },
    )


def parse_security_group(payload: object) -> RemoteEntity:
    group = SecurityGroupPayload.model_validate(payload)
    return RemoteEntity(
        id=group.id,
        attributes={"name": group.name, "location": group.location.id},
    )


def parse_security_group_rule(
    payload: object, *, security_group_id: int | None = None
) -> RemoteEntity:
    """Protocols with a well-known name are reported by name, others by number."""

    rule = SecurityGroupRulePayload.model_validate(payload)
    has_ports = rule.protocol in {PROTOCOL_NUMBERS["tcp"], PROTOCOL_NUMBERS["udp"]}
    is_icmp = rule.protocol == PROTOCOL_NUMBERS["icmp"]
    remote_group = _ref_id(rule.remote_security_group)
    attributes: dict[str, object] = {
        "direction": rule.direction,
        "protocol": PROTOCOL_NAMES.get(rule.protocol, rule.protocol),
        "protocol_number": rule.protocol,
        "from_port": rule.from_port if has_ports else None,
        "to_port": rule.to_port if has_ports else None,
        "icmp_type": rule.icmp_type if is_icmp else None,
        "icmp_code": rule.icmp_code if is_icmp else None,
        "ip_range": rule.ip_range or None,
        "remote_security_group_id": remote_group or None,
    }
    if security_group_id is not None:
        attributes["security_group_id"] = security_group_id
    return RemoteEntity(id=rule.id, attributes=attributes)


def parse_certificate(payload: object) -> RemoteEntity:
    certificate = CertificatePayload.model_validate(payload)
    details = certificate.details
    return RemoteEntity(
        id=certificate.id,
        attributes={
            "name": certificate.name,
            "location": certificate.location.id,
            "subject": dict(details.subject),
            "issuer": dict(details.issuer),
            "not_before": details.valid_from.isoformat() if details.valid_from else None,
            "not_after": details.valid_to.isoformat() if details.valid_to else None,
            "serial_number": details.serial,
        },
    )


def parse_location(payload: object) -> RemoteEntity:
    location = LocationPayload.model_validate(payload)
    return RemoteEntity(
        id=location.id,
        attributes={
            "name": location.name,
            "key": location.key,
            "modules": [module.name for module in location.modules],
        },
    )


def parse_product(payload: object) -> RemoteEntity:
    product = ProductPayload.model_validate(payload)
    return RemoteEntity(
        id=product.id,
        attributes={"name": product.name, "type": product.type.key},
    )


def parse_image(payload: object) -> RemoteEntity:
    image = ImagePayload.model_validate(payload)
    return RemoteEntity(
        id=image.id,
        attributes={
            "operating_system": image.operating_system,
            "version": image.version,
            "key": image.key,
            "category": image.category,
            "type": image.type,
            "username": image.username,
            "min_root_disk_size": image.min_root_disk_size,
        },
    )
