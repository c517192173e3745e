"""Pydantic models describing the Flow API payloads."""

from __future__ import annotations

from datetime import datetime  # noqa: TC003

from pydantic import BaseModel, ConfigDict, Field, field_validator


class FlowBaseModel(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class Reference(FlowBaseModel):
    id: int
    name: str | None = None


class StatusPayload(FlowBaseModel):
    id: int
    name: str = ""
    key: str | None = None

    @property
    def slug(self) -> str:
        return (self.key or self.name).strip().lower()


class ErrorPayload(FlowBaseModel):
    message: str | dict[str, str] | None = None
    error: str | None = None

    def text(self) -> str | None:
        if isinstance(self.message, dict):
            return self.message.get("en") or next(iter(self.message.values()), None)
        return self.message or self.error


class OrderingPayload(FlowBaseModel):
    """Returned by calls whose work is processed asynchronously."""

    ref: str

    @property
    def order_id(self) -> int:
        return int(self.ref.rstrip("/").rsplit("/", 1)[-1])


class OrderPayload(FlowBaseModel):
    id: int
    status: StatusPayload
    product_instance: Reference | None = None


class VolumePayload(FlowBaseModel):
    id: int
    name: str
    size: int
    serial_number: str = ""
    status: StatusPayload | None = None
    location: Reference
    attached_to: Reference | None = None


class SnapshotPayload(FlowBaseModel):
    id: int
    name: str
    size: int
    status: StatusPayload
    volume: Reference
    created_at: datetime | None = None


class KeyPairPayload(FlowBaseModel):
    id: int
    name: str
    fingerprint: str


class LoadBalancerPayload(FlowBaseModel):
    id: int
    name: str
    status: StatusPayload
    location: Reference
    network: Reference | None = None
    private_ip: str | None = None
    public_ip: str | None = None


class NetworkInterfacePayload(FlowBaseModel):
    id: int
    private_ip: str
    mac_address: str = ""
    public_ip: str | None = None
    network: Reference
    security: bool = True
    security_groups: list[Reference] = Field(default_factory=list)


class ElasticIpPayload(FlowBaseModel):
    id: int
    public_ip: str
    location: Reference
    attached_instance: Reference | None = None
    attached_network_interface: Reference | None = None


class KubernetesWorkerPayload(FlowBaseModel):
    product: Reference
    count: int


class KubernetesClusterPayload(FlowBaseModel):
    id: int
    name: str
    status: StatusPayload | None = None
    location: Reference
    network: Reference
    security_group: Reference | None = None
    public_address: str | None = None
    dns_name: str | None = None
    version: Reference | None = None
    worker: KubernetesWorkerPayload

    @field_validator("public_address", "dns_name", mode="before")
    @classmethod
    def _blank_to_none(cls, value: object) -> object:
        if isinstance(value, str):
            return value.strip() or None
        return value


class ServerInterfacePayload(FlowBaseModel):
    id: int | None = None
    private_ip: str


class ServerNetworkPayload(FlowBaseModel):
    id: int
    name: str | None = None
    interfaces: list[ServerInterfacePayload] = Field(default_factory=list)


class ServerPayload(FlowBaseModel):
    id: int
    name: str
    status: StatusPayload | None = None
    location: Reference
    image: Reference
    product: Reference
    key_pair: Reference | None = None
    networks: list[ServerNetworkPayload] = Field(default_factory=list)


class NetworkPayload(FlowBaseModel):
    id: int
    name: str
    cidr: str
    location: Reference
    domain_name_servers: list[str] = Field(default_factory=list)
    allocation_pool_start: str | None = None
    allocation_pool_end: str | None = None
    gateway_ip: str | None = None


class SecurityGroupPayload(FlowBaseModel):
    id: int
    name: str
    location: Reference


class SecurityGroupRulePayload(FlowBaseModel):
    id: int
    direction: str
    protocol: int
    from_port: int | None = None
    to_port: int | None = None
    icmp_type: int | None = None
    icmp_code: int | None = None
    ip_range: str | None = None
    remote_security_group: Reference | None = None


class CertificateDetailsPayload(FlowBaseModel):
    subject: dict[str, str] = Field(default_factory=dict)
    issuer: dict[str, str] = Field(default_factory=dict)
    valid_from: datetime | None = None
    valid_to: datetime | None = None
    serial: str = ""


class CertificatePayload(FlowBaseModel):
    id: int
    name: str
    location: Reference
    details: CertificateDetailsPayload = Field(default_factory=CertificateDetailsPayload)


class ModulePayload(FlowBaseModel):
    id: int
    name: str


class LocationPayload(FlowBaseModel):
    id: int
    name: str
    key: str
    modules: list[ModulePayload] = Field(default_factory=list)


class ProductTypePayload(FlowBaseModel):
    key: str
    name: str | None = None


class ProductPayload(FlowBaseModel):
    id: int
    name: str = Field(alias="product_name")
    type: ProductTypePayload


class ImagePayload(FlowBaseModel):
    id: int
    operating_system: str = Field(alias="os")
    version: str
    key: str
    category: str
    type: str
    username: str = ""
    min_root_disk_size: int = 0
