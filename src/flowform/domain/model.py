"""Value types shared by the reconciler, its drivers and the host."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any

type DesiredConfiguration = Mapping[str, Any]


def _frozen(values: Mapping[str, Any]) -> Mapping[str, Any]:
    return MappingProxyType(dict(values))


@dataclass(slots=True, frozen=True)
class RemoteEntity:
    """One cloud object as observed through the control-plane API."""

    id: int
    attributes: Mapping[str, Any] = field(default_factory=dict)
    # False while provisioning or inside a non-mutable window
    settled: bool = True
    status: str | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "attributes", _frozen(self.attributes))

    def get(self, name: str, default: Any = None) -> Any:
        if name == "id":
            return self.id
        return self.attributes.get(name, default)


@dataclass(slots=True, frozen=True)
class PendingOperation:
    """Handle for remote work that has been accepted but not yet processed."""

    kind: str
    ref: str


@dataclass(slots=True, frozen=True)
class Snapshot:
    """Last-synchronized observable state of one remote entity."""

    kind: str
    id: int
    attributes: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "attributes", _frozen(self.attributes))

    def __getitem__(self, name: str) -> Any:
        if name == "id":
            return self.id
        return self.attributes[name]

    def get(self, name: str, default: Any = None) -> Any:
        if name == "id":
            return self.id
        return self.attributes.get(name, default)

    def as_dict(self) -> dict[str, Any]:
        return {"id": self.id, **self.attributes}

    def replace(self, **changes: Any) -> Snapshot:
        return Snapshot(kind=self.kind, id=self.id, attributes={**self.attributes, **changes})

    @classmethod
    def from_entity(
        cls,
        kind: str,
        entity: RemoteEntity,
        *,
        carried: Mapping[str, Any] | None = None,
    ) -> Snapshot:
        """Build a snapshot from ``entity``, adding values the API never echoes back."""

        attributes = dict(entity.attributes)
        if carried:
            attributes.update(carried)
        return cls(kind=kind, id=entity.id, attributes=attributes)
