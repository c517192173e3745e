"""Repository implementations backed by SQLAlchemy sessions."""

from __future__ import annotations

from typing import TYPE_CHECKING

from sqlalchemy import select

from flowform.adapters.sqlalchemy.mappings import resource_state_table
from flowform.domain.ports.persistence import ResourceState

if TYPE_CHECKING:
    from sqlalchemy.orm import Session


class SqlAlchemySnapshotRepository:
    def __init__(self, session: Session) -> None:
        self.session = session

    def get(self, kind: str, name: str) -> ResourceState | None:
        return self.session.get(ResourceState, (kind, name))

    def add(self, state: ResourceState) -> None:
        self.session.add(state)

    def remove(self, state: ResourceState) -> None:
        self.session.delete(state)

    def list_states(self, kind: str | None = None) -> list[ResourceState]:
        stmt = select(ResourceState).order_by(
            resource_state_table.c.kind, resource_state_table.c.name
        )
        if kind is not None:
            stmt = stmt.where(resource_state_table.c.kind == kind)
        return list(self.session.execute(stmt).scalars())
