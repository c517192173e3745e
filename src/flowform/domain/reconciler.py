"""Shared create/read/update/delete contract for every resource kind.

A :class:`Reconciler` pairs the attribute schema of one kind with the driver that
talks to the remote API. It holds no state between calls: everything it knows
about an entity arrives in the snapshot the host passes in.
"""

from __future__ import annotations

from dataclasses import dataclass
from logging import getLogger
from typing import TYPE_CHECKING, Any

from flowform.config.polling import DEFAULT_POLL_INTERVAL_SECONDS

from .errors import NotFoundError, NotSupportedError, ReconcileError
from .model import PendingOperation, Snapshot
from .polling import wait_for_condition

if TYPE_CHECKING:
    from collections.abc import Mapping

    from .model import DesiredConfiguration, RemoteEntity
    from .polling import OperationContext
    from .ports.remote import ResourceDriver
    from .schema import ResourceSchema

log = getLogger(__name__)


@dataclass(slots=True)
class Reconciler:
    schema: ResourceSchema
    driver: ResourceDriver
    poll_interval: float = DEFAULT_POLL_INTERVAL_SECONDS

    @property
    def kind(self) -> str:
        return self.schema.kind

    async def create(self, desired: DesiredConfiguration, ctx: OperationContext) -> Snapshot:
        """Create the entity, wait for it to settle and return the read-back snapshot."""

        payload = self.schema.creation_payload(desired)
        log.info("Creating %s", self.kind)
        created = await self.driver.create(payload)

        if isinstance(created, PendingOperation):
            log.debug("Waiting for %s order %s", self.kind, created.ref)
            entity_id = await self._wait_for_operation(created, ctx)
        else:
            entity_id = created.id

        ref = Snapshot(
            kind=self.kind,
            id=entity_id,
            attributes={**payload, **self.schema.carried(desired)},
        )
        try:
            entity = await self._read_settled(ref, ctx)
        except ReconcileError:
            ctx.diagnostics.add_warning(
                "Untracked Resource",
                f"{self.kind} {entity_id} was created but could not be read back. "
                "It is not recorded and may need to be imported or removed by hand.",
            )
            raise
        snapshot = self._snapshot(entity, ref)
        log.info("Created %s %s", self.kind, snapshot.id)

        follow_up = self.schema.post_create_groups(desired)
        if not follow_up:
            return snapshot

        try:
            return await self._apply_groups(snapshot, follow_up, ctx)
        except ReconcileError as exc:
            await self._cleanup(snapshot, exc)
            raise

    async def read(self, snapshot: Snapshot, ctx: OperationContext) -> Snapshot:  # noqa: ARG002
        """Refresh ``snapshot``; raises :class:`NotFoundError` if the entity is gone."""

        entity = await self.driver.get(snapshot)
        return self._snapshot(entity, snapshot)

    async def update(
        self,
        previous: Snapshot,
        desired: DesiredConfiguration,
        ctx: OperationContext,
    ) -> Snapshot:
        """Send the mutations implied by ``desired`` and return the refreshed snapshot."""

        plan = self.schema.plan_update(previous, desired)
        if plan.requires_replacement:
            names = ", ".join(plan.replacements)
            raise NotSupportedError(
                f"changing {names} of {self.kind} {previous.id} requires replacement",
                attributes=tuple(plan.replacements),
            )
        if not plan.is_empty and not self.driver.supports_update:
            raise NotSupportedError(f"updating a {self.kind} is not supported")

        for shrink in plan.shrinks:
            ctx.diagnostics.add_warning(
                f"{self.kind} {shrink.name} cannot shrink",
                f"The requested {shrink.name} {shrink.requested} is smaller than the current "
                f"{shrink.name} {shrink.current}. The value will not be changed.",
            )

        if plan.is_empty:
            log.debug("No changes for %s %s", self.kind, previous.id)
            return previous

        log.info(
            "Updating %s %s: %s",
            self.kind,
            previous.id,
            ", ".join(sorted(plan.changed())),
        )
        return await self._apply_groups(previous, plan.groups, ctx)

    async def delete(self, snapshot: Snapshot, ctx: OperationContext) -> None:  # noqa: ARG002
        """Delete the entity after its pre-conditions; an absent entity counts as deleted.

        A pre-condition that finds nothing to undo (the attachment or its server is
        already gone) does not skip the delete itself.
        """

        try:
            await self.driver.prepare_delete(snapshot)
        except NotFoundError as exc:
            log.debug("Pre-conditions of %s %s already met: %s", self.kind, snapshot.id, exc)
        try:
            await self.driver.delete(snapshot)
        except NotFoundError:
            log.info("%s %s already absent", self.kind, snapshot.id)
            return
        log.info("Deleted %s %s", self.kind, snapshot.id)

    async def _apply_groups(
        self,
        ref: Snapshot,
        groups: Mapping[str, Mapping[str, Any]],
        ctx: OperationContext,
    ) -> Snapshot:
        for group, changes in groups.items():
            log.debug("Updating %s %s group %r", self.kind, ref.id, group or "default")
            await self.driver.update(ref, group, changes)
        entity = await self._read_settled(ref, ctx)
        return self._snapshot(entity, ref)

    async def _wait_for_operation(self, operation: PendingOperation, ctx: OperationContext) -> int:
        resolved: list[int] = []

        async def check() -> bool:
            entity_id = await self.driver.resolve(operation)
            if entity_id is None:
                return False
            resolved.append(entity_id)
            return True

        await wait_for_condition(ctx, check, interval=self.poll_interval)
        return resolved[-1]

    async def _read_settled(self, ref: Snapshot, ctx: OperationContext) -> RemoteEntity:
        latest = await self.driver.get(ref)
        if latest.settled:
            return latest

        log.debug("Waiting for %s %s to settle (status %s)", self.kind, ref.id, latest.status)

        async def check() -> bool:
            nonlocal latest
            latest = await self.driver.get(ref)
            return latest.settled

        await wait_for_condition(ctx, check, interval=self.poll_interval)
        return latest

    async def _cleanup(self, snapshot: Snapshot, error: ReconcileError) -> None:
        log.warning("Removing partially created %s %s: %s", self.kind, snapshot.id, error)
        try:
            await self.driver.delete(snapshot)
        except NotFoundError:
            return
        except ReconcileError as cleanup_error:
            log.error(f"Cleanup of {self.kind} {snapshot.id} failed: {cleanup_error}")
            error.cleanup_error = cleanup_error
            error.add_note(f"cleanup of {self.kind} {snapshot.id} failed: {cleanup_error}")

    def _snapshot(self, entity: RemoteEntity, ref: Snapshot) -> Snapshot:
        carried: dict[str, Any] = {}
        for attribute in self.schema:
            name = attribute.name
            if name not in ref.attributes:
                continue
            if attribute.write_only or (attribute.identity and name not in entity.attributes):
                carried[name] = ref.attributes[name]
        return Snapshot.from_entity(self.kind, entity, carried=carried)
