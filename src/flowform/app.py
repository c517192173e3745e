"""Application orchestration entry points.

Each entry point runs one host-level operation against the recorded state and
returns an :class:`OperationResult`. Reconciliation failures never escape as
exceptions: they are folded into the result's diagnostics.
"""

from __future__ import annotations

from collections.abc import Callable
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from logging import getLogger
from typing import TYPE_CHECKING, Any

from flowform.adapters.flow import FlowApiClient, build_driver, build_reconciler
from flowform.adapters.sqlalchemy.unit_of_work import (
    SqlAlchemyStateUnitOfWork,
    is_started,
    startup,
)
from flowform.config import get_flow_config, get_polling_config
from flowform.domain.diagnostics import Diagnostics
from flowform.domain.errors import NotFoundError, NotSupportedError, ReconcileError
from flowform.domain.lookup import lookup
from flowform.domain.polling import OperationContext
from flowform.domain.ports.persistence import ResourceState, StateUnitOfWork

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Mapping

    from flowform.domain.model import DesiredConfiguration, Snapshot
    from flowform.domain.reconciler import Reconciler

UnitOfWorkFactory = Callable[[], StateUnitOfWork]

log = getLogger(__name__)


@dataclass(slots=True)
class OperationResult:
    snapshot: Snapshot | None = None
    diagnostics: Diagnostics = field(default_factory=Diagnostics)

    @property
    def ok(self) -> bool:
        return not self.diagnostics.has_error()


def new_operation_context(timeout: float | None = None) -> OperationContext:
    """Context bounded by ``timeout`` or the configured operation timeout."""

    if timeout is None:
        timeout = get_polling_config().operation_timeout_seconds
    return OperationContext(timeout=timeout)


def _unit_of_work_factory(factory: UnitOfWorkFactory | None) -> UnitOfWorkFactory:
    if factory is not None:
        return factory
    if not is_started():
        startup()
    return SqlAlchemyStateUnitOfWork


@asynccontextmanager
async def _api_session(api: FlowApiClient | None) -> AsyncIterator[FlowApiClient]:
    if api is not None:
        yield api
        return
    async with FlowApiClient(get_flow_config()) as client:
        yield client


def _reconciler(kind: str, api: FlowApiClient) -> Reconciler:
    return build_reconciler(kind, api, poll_interval=get_polling_config().interval_seconds)


def _load(factory: UnitOfWorkFactory, kind: str, name: str) -> ResourceState | None:
    with factory() as uow:
        return uow.snapshots.get(kind, name)


def _store(factory: UnitOfWorkFactory, name: str, snapshot: Snapshot) -> None:
    with factory() as uow:
        state = uow.snapshots.get(snapshot.kind, name)
        if state is None:
            uow.snapshots.add(ResourceState.from_snapshot(name, snapshot))
        else:
            state.refresh(snapshot)
        uow.commit()


def _forget(factory: UnitOfWorkFactory, kind: str, name: str) -> None:
    with factory() as uow:
        state = uow.snapshots.get(kind, name)
        if state is not None:
            uow.snapshots.remove(state)
            uow.commit()


def list_resources(
    kind: str | None = None,
    *,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
) -> list[ResourceState]:
    """Return the recorded resource states, optionally restricted to one kind."""

    with _unit_of_work_factory(unit_of_work_factory)() as uow:
        return uow.snapshots.list_states(kind)


async def apply_resource(
    kind: str,
    name: str,
    desired: DesiredConfiguration,
    *,
    ctx: OperationContext | None = None,
    api: FlowApiClient | None = None,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
) -> OperationResult:
    """Converge the resource ``kind``/``name`` onto ``desired``.

    Without recorded state the entity is created. Otherwise it is refreshed
    first; an entity that vanished remotely is created anew, and a change the
    entity cannot absorb in place replaces it.
    """

    ctx = ctx or new_operation_context()
    factory = _unit_of_work_factory(unit_of_work_factory)
    result = OperationResult(diagnostics=ctx.diagnostics)

    try:
        async with _api_session(api) as client:
            reconciler = _reconciler(kind, client)
            result.snapshot = await _apply(reconciler, factory, name, desired, ctx)
    except ReconcileError as exc:
        log.error(f"Applying {kind} {name} failed: {exc}")
        ctx.diagnostics.add_exception(exc)
    return result


async def _apply(
    reconciler: Reconciler,
    factory: UnitOfWorkFactory,
    name: str,
    desired: DesiredConfiguration,
    ctx: OperationContext,
) -> Snapshot:
    kind = reconciler.kind
    state = _load(factory, kind, name)
    if state is None:
        return await _create(reconciler, factory, name, desired, ctx)

    try:
        current = await reconciler.read(state.to_snapshot(), ctx)
    except NotFoundError:
        log.warning("%s %s no longer exists remotely, creating it again", kind, name)
        _forget(factory, kind, name)
        return await _create(reconciler, factory, name, desired, ctx)
    _store(factory, name, current)

    try:
        updated = await reconciler.update(current, desired, ctx)
    except NotSupportedError as exc:
        if not exc.attributes:
            raise
        log.info("Replacing %s %s: %s", kind, name, exc)
        await reconciler.delete(current, ctx)
        _forget(factory, kind, name)
        return await _create(reconciler, factory, name, desired, ctx)

    _store(factory, name, updated)
    return updated


async def _create(
    reconciler: Reconciler,
    factory: UnitOfWorkFactory,
    name: str,
    desired: DesiredConfiguration,
    ctx: OperationContext,
) -> Snapshot:
    snapshot = await reconciler.create(desired, ctx)
    _store(factory, name, snapshot)
    return snapshot


async def refresh_resource(
    kind: str,
    name: str,
    *,
    ctx: OperationContext | None = None,
    api: FlowApiClient | None = None,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
) -> OperationResult:
    """Re-read the recorded resource; a vanished entity drops its record."""

    ctx = ctx or new_operation_context()
    factory = _unit_of_work_factory(unit_of_work_factory)
    result = OperationResult(diagnostics=ctx.diagnostics)

    state = _load(factory, kind, name)
    if state is None:
        ctx.diagnostics.add_error("Unknown Resource", f"no recorded state for {kind} {name}")
        return result

    try:
        async with _api_session(api) as client:
            snapshot = await _reconciler(kind, client).read(state.to_snapshot(), ctx)
    except NotFoundError:
        _forget(factory, kind, name)
        ctx.diagnostics.add_warning(
            "Resource Gone",
            f"{kind} {name} (id {state.resource_id}) no longer exists and was removed "
            "from the recorded state.",
        )
        return result
    except ReconcileError as exc:
        ctx.diagnostics.add_exception(exc)
        return result

    _store(factory, name, snapshot)
    result.snapshot = snapshot
    return result


async def destroy_resource(
    kind: str,
    name: str,
    *,
    ctx: OperationContext | None = None,
    api: FlowApiClient | None = None,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
) -> OperationResult:
    """Delete the recorded resource and drop its record."""

    ctx = ctx or new_operation_context()
    factory = _unit_of_work_factory(unit_of_work_factory)
    result = OperationResult(diagnostics=ctx.diagnostics)

    state = _load(factory, kind, name)
    if state is None:
        ctx.diagnostics.add_warning("Unknown Resource", f"no recorded state for {kind} {name}")
        return result

    try:
        async with _api_session(api) as client:
            await _reconciler(kind, client).delete(state.to_snapshot(), ctx)
    except ReconcileError as exc:
        log.error(f"Destroying {kind} {name} failed: {exc}")
        ctx.diagnostics.add_exception(exc)
        return result

    _forget(factory, kind, name)
    return result


async def lookup_resource(
    kind: str,
    criteria: Mapping[str, Any],
    *,
    parent: Mapping[str, Any] | None = None,
    ctx: OperationContext | None = None,
    api: FlowApiClient | None = None,
) -> OperationResult:
    """Find exactly one remote entity of ``kind`` matching ``criteria``."""

    ctx = ctx or new_operation_context()
    result = OperationResult(diagnostics=ctx.diagnostics)
    try:
        async with _api_session(api) as client:
            driver = build_driver(kind, client)
            result.snapshot = await lookup(kind, driver, criteria, parent=parent)
    except ReconcileError as exc:
        ctx.diagnostics.add_exception(exc)
    return result
