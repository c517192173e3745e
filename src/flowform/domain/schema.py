"""Attribute mutability classes and the diff between desired and recorded state."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import Iterator

    from .model import DesiredConfiguration, Snapshot

DEFAULT_GROUP = ""


class Mutability(StrEnum):
    """How an attribute may change over the lifetime of its entity."""

    IMMUTABLE = "immutable"  # change forces replacement
    MUTABLE = "mutable"  # change is sent as a partial update
    COMPUTED = "computed"  # server-assigned, never sent


_MISSING: Any = object()


@dataclass(slots=True, frozen=True, kw_only=True)
class Attribute:
    name: str
    mutability: Mutability = Mutability.MUTABLE
    default: Any = _MISSING
    # attributes sharing a group are updated together; the default group is batched
    group: str = DEFAULT_GROUP
    growth_only: bool = False
    on_create: bool = True
    write_only: bool = False
    identity: bool = False

    @property
    def has_default(self) -> bool:
        return self.default is not _MISSING

    @property
    def sendable(self) -> bool:
        return self.mutability is not Mutability.COMPUTED


@dataclass(slots=True, frozen=True)
class Shrink:
    """A refused decrease of a growth-only attribute."""

    name: str
    current: Any
    requested: Any


@dataclass(slots=True)
class UpdatePlan:
    """Remote mutations implied by a desired configuration."""

    groups: dict[str, dict[str, Any]] = field(default_factory=dict)
    replacements: list[str] = field(default_factory=list)
    shrinks: list[Shrink] = field(default_factory=list)

    @property
    def requires_replacement(self) -> bool:
        return bool(self.replacements)

    @property
    def is_empty(self) -> bool:
        return not self.groups

    def changed(self) -> dict[str, Any]:
        merged: dict[str, Any] = {}
        for changes in self.groups.values():
            merged.update(changes)
        return merged


@dataclass(slots=True, frozen=True)
class ResourceSchema:
    """Declares which attributes a resource kind has and how each may change."""

    kind: str
    attributes: tuple[Attribute, ...]

    def __iter__(self) -> Iterator[Attribute]:
        return iter(self.attributes)

    def __getitem__(self, name: str) -> Attribute:
        for attribute in self.attributes:
            if attribute.name == name:
                return attribute
        raise KeyError(name)

    def names(self) -> tuple[str, ...]:
        return tuple(attribute.name for attribute in self.attributes)

    @property
    def write_only(self) -> tuple[Attribute, ...]:
        return tuple(attribute for attribute in self.attributes if attribute.write_only)

    @property
    def identity(self) -> tuple[Attribute, ...]:
        return tuple(attribute for attribute in self.attributes if attribute.identity)

    def creation_payload(self, desired: DesiredConfiguration) -> dict[str, Any]:
        """Attributes sent with the create call."""

        payload: dict[str, Any] = {}
        for attribute in self.attributes:
            if not attribute.sendable or not attribute.on_create:
                continue
            if attribute.name in desired:
                payload[attribute.name] = desired[attribute.name]
            elif attribute.has_default:
                payload[attribute.name] = attribute.default
        return payload

    def post_create_groups(self, desired: DesiredConfiguration) -> dict[str, dict[str, Any]]:
        """Mutable attributes the create call does not accept, keyed by update group."""

        groups: dict[str, dict[str, Any]] = {}
        for attribute in self.attributes:
            if attribute.on_create or attribute.mutability is not Mutability.MUTABLE:
                continue
            value = desired.get(attribute.name)
            # the entity already starts out with the default
            if value is None or (attribute.has_default and value == attribute.default):
                continue
            groups.setdefault(attribute.group, {})[attribute.name] = value
        return groups

    def carried(self, desired: DesiredConfiguration) -> dict[str, Any]:
        """Write-only values to keep in the snapshot, since reads never return them."""

        return {
            attribute.name: desired.get(attribute.name)
            for attribute in self.write_only
            if attribute.name in desired
        }

    def plan_update(self, previous: Snapshot, desired: DesiredConfiguration) -> UpdatePlan:
        """Diff ``desired`` against ``previous``.

        Attributes absent from ``desired`` are left unchanged. Computed attributes
        are never planned.
        """

        plan = UpdatePlan()
        for attribute in self.attributes:
            name = attribute.name
            if name not in desired or not attribute.sendable:
                continue
            requested = desired[name]
            current = previous.get(name)
            if requested == current:
                continue
            if attribute.mutability is Mutability.IMMUTABLE:
                plan.replacements.append(name)
                continue
            if (
                attribute.growth_only
                and current is not None
                and (requested is None or requested < current)
            ):
                plan.shrinks.append(Shrink(name=name, current=current, requested=requested))
                continue
            plan.groups.setdefault(attribute.group, {})[name] = requested
        return plan
