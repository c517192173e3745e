"""Predicate-based lookup of remote entities in an in-memory collection.

Lookups by attribute (a certificate by name, a key pair by fingerprint, a network
by CIDR) must be unambiguous to serve as a stable identity, so :func:`find_one`
refuses to pick among several candidates.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping
from typing import TYPE_CHECKING, Any

from .errors import AmbiguousResultsError, NoResultsError

if TYPE_CHECKING:
    from .model import RemoteEntity

type Predicate[T] = Callable[[T], bool]


def find[T](predicate: Predicate[T], items: Iterable[T]) -> list[T]:
    """Return every item matching ``predicate``, preserving input order."""

    return [item for item in items if predicate(item)]


def find_one[T](predicate: Predicate[T], items: Iterable[T]) -> T:
    """Return the single item matching ``predicate``.

    Raises :class:`NoResultsError` when nothing matches and
    :class:`AmbiguousResultsError` when more than one item does.
    """

    matches = find(predicate, items)
    if not matches:
        raise NoResultsError
    if len(matches) > 1:
        raise AmbiguousResultsError(count=len(matches))
    return matches[0]


def attribute_filter[T](
    criteria: Mapping[str, Any],
    getter: Callable[[T, str], Any],
) -> Predicate[T]:
    """Build a predicate comparing each specified criterion via ``getter``.

    Criteria whose value is ``None`` are wildcards and always match.
    """

    specified = {name: value for name, value in criteria.items() if value is not None}

    def predicate(item: T) -> bool:
        return all(getter(item, name) == value for name, value in specified.items())

    return predicate


def entity_filter(criteria: Mapping[str, Any]) -> Predicate[RemoteEntity]:
    return attribute_filter(criteria, lambda entity, name: entity.get(name))


def identity_filter(entity_id: int) -> Predicate[RemoteEntity]:
    return lambda entity: entity.id == entity_id
