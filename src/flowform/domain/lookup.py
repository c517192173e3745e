"""Data lookups: locate one existing remote entity by any subset of its attributes."""

from __future__ import annotations

from logging import getLogger
from typing import TYPE_CHECKING, Any

from .matcher import entity_filter, find_one
from .model import Snapshot

if TYPE_CHECKING:
    from collections.abc import Mapping

    from .ports.remote import ResourceDriver

log = getLogger(__name__)


async def lookup(
    kind: str,
    driver: ResourceDriver,
    criteria: Mapping[str, Any],
    *,
    parent: Mapping[str, Any] | None = None,
) -> Snapshot:
    """List the collection and return the single entity matching ``criteria``.

    Criteria set to ``None`` are wildcards. Raises
    :class:`~flowform.domain.errors.NoResultsError` or
    :class:`~flowform.domain.errors.AmbiguousResultsError`.
    """

    entities = await driver.list_entities(parent)
    log.debug("Matching %s %s against %s candidates", kind, dict(criteria), len(entities))
    entity = find_one(entity_filter(criteria), entities)
    return Snapshot.from_entity(kind, entity, carried=parent)
