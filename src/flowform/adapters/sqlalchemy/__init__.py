"""SQLAlchemy adapter package for flowform."""

from __future__ import annotations

from .mappings import create_all_tables, mapper_registry, start_mappers
from .repositories import SqlAlchemySnapshotRepository
from .unit_of_work import SqlAlchemyStateUnitOfWork, shutdown, startup

__all__ = [
    "SqlAlchemySnapshotRepository",
    "SqlAlchemyStateUnitOfWork",
    "create_all_tables",
    "mapper_registry",
    "shutdown",
    "start_mappers",
    "startup",
]
