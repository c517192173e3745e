"""Domain port definitions for adapters."""

from __future__ import annotations

from .persistence import ResourceState, SnapshotRepository, StateUnitOfWork
from .remote import ResourceDriver

__all__ = [
    "ResourceDriver",
    "ResourceState",
    "SnapshotRepository",
    "StateUnitOfWork",
]
