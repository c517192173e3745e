"""Port for the per-kind remote-API client used by the reconciler."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import Mapping

    from flowform.domain.model import PendingOperation, RemoteEntity, Snapshot


@runtime_checkable
class ResourceDriver(Protocol):
    """Remote CRUD surface for one resource kind.

    Implementations raise :class:`~flowform.domain.errors.NotFoundError` for absent
    entities and :class:`~flowform.domain.errors.ClientError` for any other remote
    failure. ``ref`` arguments are snapshots: the id plus whatever identity
    attributes (parent ids) the kind needs to address the entity.
    """

    @property
    def supports_update(self) -> bool: ...

    async def list_entities(
        self, parent: Mapping[str, Any] | None = None
    ) -> list[RemoteEntity]: ...

    async def get(self, ref: Snapshot) -> RemoteEntity: ...

    async def create(self, payload: Mapping[str, Any]) -> RemoteEntity | PendingOperation: ...

    async def resolve(self, operation: PendingOperation) -> int | None:
        """Return the entity id once ``operation`` is processed, ``None`` while pending."""
        ...

    async def update(self, ref: Snapshot, group: str, changes: Mapping[str, Any]) -> None: ...

    async def prepare_delete(self, ref: Snapshot) -> None:
        """Run detach/unlink calls that must precede deletion."""
        ...

    async def delete(self, ref: Snapshot) -> None: ...


__all__ = ["ResourceDriver"]
