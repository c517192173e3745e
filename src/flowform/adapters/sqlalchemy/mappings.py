"""SQLAlchemy mapping metadata for recorded resource states."""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from functools import cache
from typing import TYPE_CHECKING

from sqlalchemy import JSON, Column, DateTime, Dialect, Integer, String, Table, TypeDecorator, orm
from sqlalchemy.orm import configure_mappers

from flowform.domain.ports.persistence import ResourceState

if TYPE_CHECKING:
    from sqlalchemy.engine import Engine

log = logging.getLogger(__name__)


class UTCDateTime(TypeDecorator[datetime]):
    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        _ = dialect
        if value is None:
            return None
        if value.tzinfo is None:
            value = value.replace(tzinfo=UTC)
        return value.astimezone(UTC)

    def process_result_value(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        _ = dialect
        if value is None:
            return None
        return value if value.tzinfo else value.replace(tzinfo=UTC)


mapper_registry = orm.registry()
mapper_registry.metadata.naming_convention = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_label)s",
    "pk": "pk_%(table_name)s",
}

resource_state_table = Table(
    "resource_state",
    mapper_registry.metadata,
    Column("kind", String, primary_key=True),
    Column("name", String, primary_key=True),
    Column("resource_id", Integer, nullable=False),
    Column("attributes", JSON, nullable=False, default=dict),
    Column("updated_at", UTCDateTime(), nullable=False),
)


@cache
def start_mappers() -> orm.registry:
    """Configure SQLAlchemy mappers for the persistence model."""

    log.info("Starting SQLAlchemy mappers")

    mapper_registry.map_imperatively(ResourceState, resource_state_table)

    configure_mappers()
    return mapper_registry


def create_all_tables(engine: Engine) -> None:
    """Create database tables for the mapped metadata."""

    log.info("Creating all tables")
    mapper_registry.metadata.create_all(engine, checkfirst=True)
