"""Ports for persisting snapshots between reconciliation passes."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

from flowform.domain.model import Snapshot

if TYPE_CHECKING:
    from types import TracebackType


def _now() -> datetime:
    return datetime.now(tz=UTC)


@dataclass(eq=False, kw_only=True)
class ResourceState:
    """Host-side record of one managed resource and its last snapshot."""

    kind: str
    name: str
    resource_id: int
    attributes: dict[str, Any] = field(default_factory=dict)
    updated_at: datetime = field(default_factory=_now)

    @classmethod
    def from_snapshot(cls, name: str, snapshot: Snapshot) -> ResourceState:
        return cls(
            kind=snapshot.kind,
            name=name,
            resource_id=snapshot.id,
            attributes=dict(snapshot.attributes),
        )

    def to_snapshot(self) -> Snapshot:
        return Snapshot(kind=self.kind, id=self.resource_id, attributes=self.attributes)

    def refresh(self, snapshot: Snapshot) -> None:
        self.resource_id = snapshot.id
        self.attributes = dict(snapshot.attributes)
        self.updated_at = _now()


@runtime_checkable
class SnapshotRepository(Protocol):
    """Persistence contract for resource states."""

    def get(self, kind: str, name: str) -> ResourceState | None: ...

    def add(self, state: ResourceState) -> None: ...

    def remove(self, state: ResourceState) -> None: ...

    def list_states(self, kind: str | None = None) -> list[ResourceState]: ...


@runtime_checkable
class StateUnitOfWork(Protocol):
    """Transaction boundary around the snapshot repository."""

    @property
    def snapshots(self) -> SnapshotRepository: ...

    def __enter__(self) -> StateUnitOfWork: ...

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: TracebackType | None,
    ) -> bool: ...

    def commit(self) -> None: ...

    def rollback(self) -> None: ...


__all__ = ["ResourceState", "SnapshotRepository", "StateUnitOfWork"]
