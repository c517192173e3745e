"""Per-kind drivers mapping the reconciler contract onto Flow endpoints."""

from __future__ import annotations

from abc import ABC, abstractmethod
from logging import getLogger
from typing import TYPE_CHECKING, Any, ClassVar

from pydantic import ValidationError

from flowform.domain.errors import (
    ClientError,
    NoResultsError,
    NotFoundError,
    NotSupportedError,
)
from flowform.domain.matcher import find_one, identity_filter
from flowform.domain.model import PendingOperation
from flowform.domain.schema import DEFAULT_GROUP

from .client import OrderService
from .schema import OrderingPayload
from .translator import (
    PROTOCOL_NUMBERS,
    parse_certificate,
    parse_elastic_ip,
    parse_image,
    parse_key_pair,
    parse_kubernetes_cluster,
    parse_load_balancer,
    parse_location,
    parse_network,
    parse_network_interface,
    parse_product,
    parse_security_group,
    parse_security_group_rule,
    parse_server,
    parse_snapshot,
    parse_volume,
)

if TYPE_CHECKING:
    from collections.abc import Mapping

    from flowform.domain.model import RemoteEntity, Snapshot

    from .client import FlowApiClient

log = getLogger(__name__)


def _compact(values: Mapping[str, Any]) -> dict[str, Any]:
    return {key: value for key, value in values.items() if value is not None}


class FlowResourceDriver(ABC):
    """Common CRUD plumbing; subclasses declare paths, payload mapping and groups."""

    kind: ClassVar[str]
    supports_update: ClassVar[bool] = True
    # no get-by-id endpoint: read through the collection
    read_by_listing: ClassVar[bool] = False
    # create answers with an order instead of the entity
    ordered: ClassVar[bool] = False

    def __init__(self, api: FlowApiClient, orders: OrderService | None = None) -> None:
        self.api = api
        self.orders = orders or OrderService(api)

    @abstractmethod
    def _collection_path(self, context: Mapping[str, Any] | None) -> str: ...

    @abstractmethod
    def _parse(self, payload: object, context: Mapping[str, Any] | None) -> RemoteEntity: ...

    def _translate(self, payload: object, context: Mapping[str, Any] | None) -> RemoteEntity:
        try:
            return self._parse(payload, context)
        except ValidationError as exc:
            raise ClientError(f"unexpected {self.kind} payload: {exc}") from exc

    def _item_path(self, ref: Snapshot) -> str:
        return f"{self._collection_path(ref.attributes)}/{ref.id}"

    def _create_body(self, payload: Mapping[str, Any]) -> dict[str, Any]:
        return _compact(payload)

    async def list_entities(self, parent: Mapping[str, Any] | None = None) -> list[RemoteEntity]:
        payloads = await self.api.get_all(self._collection_path(parent))
        return [self._translate(payload, parent) for payload in payloads]

    async def get(self, ref: Snapshot) -> RemoteEntity:
        if not self.read_by_listing:
            return self._translate(await self.api.get(self._item_path(ref)), ref.attributes)

        entities = await self.list_entities(ref.attributes)
        try:
            return find_one(identity_filter(ref.id), entities)
        except NoResultsError as exc:
            raise NotFoundError(f"{self.kind} with id {ref.id} not found") from exc

    async def create(self, payload: Mapping[str, Any]) -> RemoteEntity | PendingOperation:
        response = await self.api.post(self._collection_path(payload), self._create_body(payload))
        if self.ordered:
            try:
                ordering = OrderingPayload.model_validate(response)
            except ValidationError as exc:
                raise ClientError(f"unexpected {self.kind} order payload: {exc}") from exc
            return PendingOperation(kind=self.kind, ref=ordering.ref)
        return self._translate(response, payload)

    async def resolve(self, operation: PendingOperation) -> int | None:
        return await self.orders.resolve(operation)

    async def update(self, ref: Snapshot, group: str, changes: Mapping[str, Any]) -> None:
        if not self.supports_update:
            raise NotSupportedError(f"updating a {self.kind} is not supported")
        if group != DEFAULT_GROUP:
            raise NotSupportedError(f"{self.kind} has no update group {group!r}")
        await self.api.patch(self._item_path(ref), dict(changes))

    async def prepare_delete(self, ref: Snapshot) -> None:  # noqa: B027
        """No pre-conditions by default."""

    async def delete(self, ref: Snapshot) -> None:
        await self.api.delete(self._item_path(ref))


class VolumeDriver(FlowResourceDriver):
    kind = "compute_volume"

    def _collection_path(self, context: Mapping[str, Any] | None) -> str:
        return "/v4/compute/volumes"

    def _parse(self, payload: object, context: Mapping[str, Any] | None) -> RemoteEntity:
        return parse_volume(payload)

    def _create_body(self, payload: Mapping[str, Any]) -> dict[str, Any]:
        return _compact(
            {
                "name": payload.get("name"),
                "size": payload.get("size"),
                "location_id": payload.get("location"),
                "snapshot_id": payload.get("restore_from_snapshot"),
                "instance_id": payload.get("attach_to_server"),
            }
        )

    async def update(self, ref: Snapshot, group: str, changes: Mapping[str, Any]) -> None:
        if group == "size":
            await self.api.post(f"{self._item_path(ref)}/expand", {"size": changes["size"]})
        elif group == "attachment":
            previous = ref.get("attach_to_server")
            if previous is not None:
                await self._detach(ref.id, previous)
            server_id = changes["attach_to_server"]
            if server_id is not None:
                await self.api.post(
                    f"/v4/compute/instances/{server_id}/volumes", {"volume_id": ref.id}
                )
        else:
            await super().update(ref, group, changes)

    async def prepare_delete(self, ref: Snapshot) -> None:
        server_id = ref.get("attach_to_server")
        if server_id is not None:
            await self._detach(ref.id, server_id)

    async def _detach(self, volume_id: int, server_id: int) -> None:
        log.debug("Detaching volume %s from server %s", volume_id, server_id)
        await self.api.delete(f"/v4/compute/instances/{server_id}/volumes/{volume_id}")


class SnapshotDriver(FlowResourceDriver):
    kind = "compute_snapshot"

    def _collection_path(self, context: Mapping[str, Any] | None) -> str:
        return "/v4/compute/snapshots"

    def _parse(self, payload: object, context: Mapping[str, Any] | None) -> RemoteEntity:
        return parse_snapshot(payload)


class KeyPairDriver(FlowResourceDriver):
    kind = "compute_key_pair"
    supports_update = False
    read_by_listing = True

    def _collection_path(self, context: Mapping[str, Any] | None) -> str:
        return "/v4/compute/key-pairs"

    def _parse(self, payload: object, context: Mapping[str, Any] | None) -> RemoteEntity:
        return parse_key_pair(payload)


class LoadBalancerDriver(FlowResourceDriver):
    kind = "compute_load_balancer"
    ordered = True

    def _collection_path(self, context: Mapping[str, Any] | None) -> str:
        return "/v4/compute/load-balancers"

    def _parse(self, payload: object, context: Mapping[str, Any] | None) -> RemoteEntity:
        return parse_load_balancer(payload)

    def _create_body(self, payload: Mapping[str, Any]) -> dict[str, Any]:
        return _compact(
            {
                "name": payload.get("name"),
                "location_id": payload.get("location"),
                "network_id": payload.get("network_id"),
                "private_ip": payload.get("private_ip"),
                "attach_external_ip": False,
            }
        )


class NetworkInterfaceDriver(FlowResourceDriver):
    kind = "compute_network_interface"
    read_by_listing = True

    def _collection_path(self, context: Mapping[str, Any] | None) -> str:
        server_id = (context or {}).get("server_id")
        if server_id is None:
            raise NotSupportedError(f"{self.kind} is addressed through its server_id")
        return f"/v4/compute/instances/{server_id}/network-interfaces"

    def _parse(self, payload: object, context: Mapping[str, Any] | None) -> RemoteEntity:
        return parse_network_interface(payload, server_id=(context or {}).get("server_id"))

    def _create_body(self, payload: Mapping[str, Any]) -> dict[str, Any]:
        return _compact(
            {"network_id": payload.get("network_id"), "private_ip": payload.get("private_ip")}
        )

    async def update(self, ref: Snapshot, group: str, changes: Mapping[str, Any]) -> None:
        if group == "security_groups":
            await self.api.put(
                f"{self._item_path(ref)}/security-groups",
                {"security_group_ids": list(changes["security_group_ids"] or [])},
            )
        elif group == "security":
            await self.api.patch(
                f"{self._item_path(ref)}/security", {"security": changes["security"]}
            )
        else:
            await super().update(ref, group, changes)


class ElasticIpDriver(FlowResourceDriver):
    kind = "compute_elastic_ip"
    supports_update = False
    read_by_listing = True

    def _collection_path(self, context: Mapping[str, Any] | None) -> str:
        return "/v4/compute/elastic-ips"

    def _parse(self, payload: object, context: Mapping[str, Any] | None) -> RemoteEntity:
        return parse_elastic_ip(payload)

    def _create_body(self, payload: Mapping[str, Any]) -> dict[str, Any]:
        return _compact({"location_id": payload.get("location")})

    async def prepare_delete(self, ref: Snapshot) -> None:
        # the recorded attachment may be stale, ask the API
        current = await self.get(ref)
        server_id = current.get("attached_server_id")
        if server_id is None:
            return
        log.debug("Detaching elastic ip %s from server %s", ref.id, server_id)
        await self.api.delete(f"/v4/compute/instances/{server_id}/elastic-ips/{ref.id}")


class KubernetesClusterDriver(FlowResourceDriver):
    kind = "kubernetes_cluster"
    ordered = True

    def _collection_path(self, context: Mapping[str, Any] | None) -> str:
        return "/v4/kubernetes/clusters"

    def _parse(self, payload: object, context: Mapping[str, Any] | None) -> RemoteEntity:
        return parse_kubernetes_cluster(payload)

    def _create_body(self, payload: Mapping[str, Any]) -> dict[str, Any]:
        public = payload.get("public")
        return {
            "name": payload.get("name"),
            "location_id": payload.get("location"),
            "network_id": payload.get("network_id"),
            "worker": {
                "product_id": payload.get("node_product_id"),
                "count": payload.get("node_count"),
            },
            "attach_external_ip": True if public is None else bool(public),
        }

    async def update(self, ref: Snapshot, group: str, changes: Mapping[str, Any]) -> None:
        if group == "configuration":
            await self.api.put(
                f"{self._item_path(ref)}/configuration", {"version_id": changes["version_id"]}
            )
        elif group == "flavor":
            worker = {
                "product_id": changes.get("node_product_id", ref.get("node_product_id")),
                "count": changes.get("node_count", ref.get("node_count")),
            }
            await self.api.put(f"{self._item_path(ref)}/flavor", {"worker": worker})
        else:
            await super().update(ref, group, changes)


class ServerDriver(FlowResourceDriver):
    kind = "compute_server"
    ordered = True

    def _collection_path(self, context: Mapping[str, Any] | None) -> str:
        return "/v4/compute/instances"

    def _parse(self, payload: object, context: Mapping[str, Any] | None) -> RemoteEntity:
        return parse_server(payload)

    def _create_body(self, payload: Mapping[str, Any]) -> dict[str, Any]:
        return _compact(
            {
                "name": payload.get("name"),
                "location_id": payload.get("location"),
                "image_id": payload.get("image_id"),
                "product_id": payload.get("product_id"),
                "attach_external_ip": False,
                "network_id": payload.get("network_id"),
                "private_ip": payload.get("private_ip"),
                "key_pair_id": payload.get("key_pair_id"),
                "password": payload.get("password"),
                "cloud_init": payload.get("cloud_init"),
            }
        )


class NetworkDriver(FlowResourceDriver):
    kind = "compute_network"

    def _collection_path(self, context: Mapping[str, Any] | None) -> str:
        return "/v4/compute/networks"

    def _parse(self, payload: object, context: Mapping[str, Any] | None) -> RemoteEntity:
        return parse_network(payload)

    def _create_body(self, payload: Mapping[str, Any]) -> dict[str, Any]:
        return _compact(
            {
                "name": payload.get("name"),
                "location_id": payload.get("location"),
                "cidr": payload.get("cidr"),
                "domain_name_servers": payload.get("domain_name_servers"),
                "allocation_pool_start": payload.get("allocation_pool_start"),
                "allocation_pool_end": payload.get("allocation_pool_end"),
                "gateway_ip": payload.get("gateway_ip"),
            }
        )


class SecurityGroupDriver(FlowResourceDriver):
    kind = "compute_security_group"

    def _collection_path(self, context: Mapping[str, Any] | None) -> str:
        return "/v4/compute/security-groups"

    def _parse(self, payload: object, context: Mapping[str, Any] | None) -> RemoteEntity:
        return parse_security_group(payload)

    def _create_body(self, payload: Mapping[str, Any]) -> dict[str, Any]:
        return _compact({"name": payload.get("name"), "location_id": payload.get("location")})


def _protocol_number(value: object) -> int:
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    if isinstance(value, str) and value.lower() in PROTOCOL_NUMBERS:
        return PROTOCOL_NUMBERS[value.lower()]
    raise NotSupportedError(f"unknown protocol {value!r}")


class SecurityGroupRuleDriver(FlowResourceDriver):
    """Rules live below their security group and are only listed, never fetched by id."""

    kind = "compute_security_group_rule"
    read_by_listing = True

    def _collection_path(self, context: Mapping[str, Any] | None) -> str:
        security_group_id = (context or {}).get("security_group_id")
        if security_group_id is None:
            raise NotSupportedError(f"{self.kind} is addressed through its security_group_id")
        return f"/v4/compute/security-groups/{security_group_id}/rules"

    def _parse(self, payload: object, context: Mapping[str, Any] | None) -> RemoteEntity:
        return parse_security_group_rule(
            payload, security_group_id=(context or {}).get("security_group_id")
        )

    def _create_body(self, payload: Mapping[str, Any]) -> dict[str, Any]:
        if (
            payload.get("ip_range") is not None
            and payload.get("remote_security_group_id") is not None
        ):
            raise NotSupportedError(
                f"{self.kind} takes either ip_range or remote_security_group_id, not both"
            )
        protocol = _protocol_number(payload.get("protocol"))
        has_ports = protocol in {PROTOCOL_NUMBERS["tcp"], PROTOCOL_NUMBERS["udp"]}
        is_icmp = protocol == PROTOCOL_NUMBERS["icmp"]
        return _compact(
            {
                "direction": payload.get("direction"),
                "protocol": protocol,
                "from_port": payload.get("from_port") if has_ports else None,
                "to_port": payload.get("to_port") if has_ports else None,
                "icmp_type": payload.get("icmp_type") if is_icmp else None,
                "icmp_code": payload.get("icmp_code") if is_icmp else None,
                "ip_range": payload.get("ip_range"),
                "remote_security_group_id": payload.get("remote_security_group_id"),
            }
        )

    async def update(self, ref: Snapshot, group: str, changes: Mapping[str, Any]) -> None:
        if group != DEFAULT_GROUP:
            await super().update(ref, group, changes)
            return
        # the API replaces the whole rule
        rule = {**ref.attributes, **changes}
        await self.api.put(self._item_path(ref), self._create_body(rule))


class CertificateDriver(FlowResourceDriver):
    kind = "compute_certificate"
    supports_update = False
    read_by_listing = True

    def _collection_path(self, context: Mapping[str, Any] | None) -> str:
        return "/v4/compute/certificates"

    def _parse(self, payload: object, context: Mapping[str, Any] | None) -> RemoteEntity:
        return parse_certificate(payload)

    def _create_body(self, payload: Mapping[str, Any]) -> dict[str, Any]:
        return _compact(
            {
                "name": payload.get("name"),
                "location_id": payload.get("location"),
                "certificate": payload.get("certificate"),
                "private_key": payload.get("private_key"),
            }
        )


class CatalogueDriver(FlowResourceDriver):
    """Reference data owned by the provider; it can be looked up but not managed."""

    supports_update = False
    read_by_listing = True

    async def create(self, payload: Mapping[str, Any]) -> RemoteEntity | PendingOperation:
        raise NotSupportedError(f"{self.kind} is read-only")

    async def delete(self, ref: Snapshot) -> None:
        raise NotSupportedError(f"{self.kind} is read-only")


class LocationDriver(CatalogueDriver):
    kind = "location"

    def _collection_path(self, context: Mapping[str, Any] | None) -> str:
        return "/v4/entities/locations"

    def _parse(self, payload: object, context: Mapping[str, Any] | None) -> RemoteEntity:
        return parse_location(payload)


class ProductDriver(CatalogueDriver):
    kind = "product"

    def _collection_path(self, context: Mapping[str, Any] | None) -> str:
        return "/v4/entities/products"

    def _parse(self, payload: object, context: Mapping[str, Any] | None) -> RemoteEntity:
        return parse_product(payload)


class ImageDriver(CatalogueDriver):
    kind = "compute_image"

    def _collection_path(self, context: Mapping[str, Any] | None) -> str:
        return "/v4/entities/compute/images"

    def _parse(self, payload: object, context: Mapping[str, Any] | None) -> RemoteEntity:
        return parse_image(payload)
