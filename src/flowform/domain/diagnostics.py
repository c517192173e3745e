"""Ordered error/warning records returned to the host."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from typing import TYPE_CHECKING

from .errors import ReconcileError

if TYPE_CHECKING:
    from collections.abc import Iterator


class Severity(StrEnum):
    ERROR = "error"
    WARNING = "warning"


@dataclass(slots=True, frozen=True)
class Diagnostic:
    severity: Severity
    summary: str
    detail: str

    def __str__(self) -> str:
        return f"{self.severity.value}: {self.summary}: {self.detail}"


@dataclass(slots=True)
class Diagnostics:
    """Accumulates diagnostics for one host-level operation."""

    items: list[Diagnostic] = field(default_factory=list)

    def __iter__(self) -> Iterator[Diagnostic]:
        return iter(self.items)

    def __len__(self) -> int:
        return len(self.items)

    def add_error(self, summary: str, detail: str) -> None:
        self.items.append(Diagnostic(Severity.ERROR, summary, detail))

    def add_warning(self, summary: str, detail: str) -> None:
        self.items.append(Diagnostic(Severity.WARNING, summary, detail))

    def add_exception(self, exc: BaseException) -> None:
        """Record ``exc`` and, separately, any cleanup failure attached to it."""

        if isinstance(exc, ReconcileError):
            self.add_error(exc.summary, exc.detail)
            if exc.cleanup_error is not None:
                self.add_error("Cleanup Error", str(exc.cleanup_error))
            return
        self.add_error(type(exc).__name__, str(exc))

    def extend(self, other: Diagnostics) -> None:
        self.items.extend(other.items)

    def has_error(self) -> bool:
        return any(item.severity is Severity.ERROR for item in self.items)

    @property
    def errors(self) -> list[Diagnostic]:
        return [item for item in self.items if item.severity is Severity.ERROR]

    @property
    def warnings(self) -> list[Diagnostic]:
        return [item for item in self.items if item.severity is Severity.WARNING]
