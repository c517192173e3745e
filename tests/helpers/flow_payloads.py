"""Minimal Flow API payloads as returned by the control plane."""

from __future__ import annotations

from typing import Any


def _status(name: str, status_id: int = 1) -> dict[str, Any]:
    return {"id": status_id, "name": name.title(), "key": name}


def volume_payload(**overrides: Any) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "id": 42,
        "name": "foo",
        "size": 10,
        "serial_number": "abc",
        "status": _status("available"),
        "location": {"id": 1, "name": "ALP1"},
        "attached_to": None,
    }
    payload.update(overrides)
    return payload


def snapshot_payload(**overrides: Any) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "id": 11,
        "name": "nightly",
        "size": 20,
        "status": _status("available"),
        "volume": {"id": 42, "name": "foo"},
        "created_at": "2024-05-01T12:00:00+00:00",
    }
    payload.update(overrides)
    return payload


def key_pair_payload(**overrides: Any) -> dict[str, Any]:
    payload: dict[str, Any] = {"id": 3, "name": "deploy", "fingerprint": "aa:bb:cc"}
    payload.update(overrides)
    return payload


def load_balancer_payload(**overrides: Any) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "id": 5,
        "name": "edge",
        "status": _status("active"),
        "location": {"id": 1, "name": "ALP1"},
        "network": {"id": 8, "name": "backend"},
        "private_ip": "172.31.0.10",
        "public_ip": "185.0.0.1",
    }
    payload.update(overrides)
    return payload


def network_interface_payload(**overrides: Any) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "id": 77,
        "private_ip": "172.31.0.20",
        "mac_address": "fa:16:3e:00:00:01",
        "public_ip": None,
        "network": {"id": 8, "name": "backend"},
        "security": True,
        "security_groups": [],
    }
    payload.update(overrides)
    return payload


def elastic_ip_payload(**overrides: Any) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "id": 9,
        "public_ip": "185.0.0.9",
        "location": {"id": 1, "name": "ALP1"},
        "attached_instance": None,
        "attached_network_interface": None,
    }
    payload.update(overrides)
    return payload


def kubernetes_cluster_payload(**overrides: Any) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "id": 21,
        "name": "prod",
        "status": _status("running"),
        "location": {"id": 1, "name": "ALP1"},
        "network": {"id": 8, "name": "backend"},
        "security_group": {"id": 30, "name": "k8s"},
        "public_address": "185.0.0.21",
        "dns_name": "prod.k8s.example",
        "version": {"id": 4, "name": "1.29"},
        "worker": {"product": {"id": 120, "name": "b1.4x8"}, "count": 3},
    }
    payload.update(overrides)
    return payload


def server_payload(**overrides: Any) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "id": 7,
        "name": "web",
        "status": _status("running"),
        "location": {"id": 1, "name": "ALP1"},
        "image": {"id": 15, "name": "Ubuntu 24.04"},
        "product": {"id": 120, "name": "b1.4x8"},
        "key_pair": {"id": 3, "name": "deploy"},
        "networks": [
            {"id": 8, "name": "backend", "interfaces": [{"id": 77, "private_ip": "172.31.0.7"}]}
        ],
    }
    payload.update(overrides)
    return payload


def network_payload(**overrides: Any) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "id": 8,
        "name": "backend",
        "cidr": "172.31.0.0/24",
        "location": {"id": 1, "name": "ALP1"},
        "domain_name_servers": ["1.1.1.1", "8.8.8.8"],
        "allocation_pool_start": "172.31.0.2",
        "allocation_pool_end": "172.31.0.254",
        "gateway_ip": "172.31.0.1",
    }
    payload.update(overrides)
    return payload


def security_group_payload(**overrides: Any) -> dict[str, Any]:
    payload: dict[str, Any] = {"id": 30, "name": "web", "location": {"id": 1, "name": "ALP1"}}
    payload.update(overrides)
    return payload


def security_group_rule_payload(**overrides: Any) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "id": 31,
        "direction": "ingress",
        "protocol": 6,
        "from_port": 443,
        "to_port": 443,
        "icmp_type": None,
        "icmp_code": None,
        "ip_range": "0.0.0.0/0",
        "remote_security_group": None,
    }
    payload.update(overrides)
    return payload


def certificate_payload(**overrides: Any) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "id": 12,
        "name": "www",
        "location": {"id": 1, "name": "ALP1"},
        "details": {
            "subject": {"CN": "www.example.com"},
            "issuer": {"CN": "Example CA"},
            "valid_from": "2024-05-01T00:00:00+00:00",
            "valid_to": "2025-05-01T00:00:00+00:00",
            "serial": "0a1b",
        },
    }
    payload.update(overrides)
    return payload


def location_payload(**overrides: Any) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "id": 1,
        "name": "ALP1",
        "key": "alp1",
        "modules": [{"id": 1, "name": "Compute"}, {"id": 2, "name": "Kubernetes"}],
    }
    payload.update(overrides)
    return payload


def product_payload(**overrides: Any) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "id": 120,
        "product_name": "b1.4x8",
        "type": {"key": "compute-engine-vm", "name": "Virtual Machine"},
    }
    payload.update(overrides)
    return payload


def image_payload(**overrides: Any) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "id": 15,
        "os": "Ubuntu",
        "version": "24.04",
        "key": "linux-ubuntu-24.04-lts",
        "category": "Linux",
        "type": "ubuntu",
        "username": "ubuntu",
        "min_root_disk_size": 10,
    }
    payload.update(overrides)
    return payload


def order_payload(status_id: int, product_id: int | None = None) -> dict[str, Any]:
    order: dict[str, Any] = {"id": 900, "status": {"id": status_id, "name": "Status"}}
    if product_id is not None:
        order["product_instance"] = {"id": product_id, "name": "product"}
    return order
