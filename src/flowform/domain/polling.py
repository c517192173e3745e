"""Waiting for asynchronous remote work.

The control plane has no push notifications: order processing, snapshot creation
and load-balancer mutability windows are observed by polling. The caller owns the
timeout through :class:`OperationContext`; the poll interval is constant.
"""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass, field
from logging import getLogger
from typing import TYPE_CHECKING

from flowform.config.polling import DEFAULT_POLL_INTERVAL_SECONDS

from .diagnostics import Diagnostics
from .errors import PollTimeoutError

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

log = getLogger(__name__)

type Check = Callable[[], Awaitable[bool]]


@dataclass(slots=True)
class OperationContext:
    """Deadline, cancellation signal and diagnostics for one host-level operation."""

    timeout: float | None = None
    cancelled: asyncio.Event = field(default_factory=asyncio.Event)
    diagnostics: Diagnostics = field(default_factory=Diagnostics)
    deadline: float | None = field(init=False, default=None)

    def __post_init__(self) -> None:
        if self.timeout is not None:
            self.deadline = time.monotonic() + self.timeout

    def cancel(self) -> None:
        self.cancelled.set()

    def remaining(self) -> float | None:
        """Seconds left before the deadline, ``None`` when unbounded."""

        if self.deadline is None:
            return None
        return max(0.0, self.deadline - time.monotonic())

    @property
    def expired(self) -> bool:
        if self.cancelled.is_set():
            return True
        remaining = self.remaining()
        return remaining is not None and remaining <= 0


async def _pause(ctx: OperationContext, interval: float) -> bool:
    """Block for one tick; return True when the context got cancelled instead."""

    if ctx.expired:
        return True
    remaining = ctx.remaining()
    delay = interval if remaining is None else min(interval, remaining)
    try:
        async with asyncio.timeout(delay):
            await ctx.cancelled.wait()
    except TimeoutError:
        return remaining is not None and remaining < interval
    return True


async def wait_for_condition(
    ctx: OperationContext,
    check: Check,
    *,
    interval: float = DEFAULT_POLL_INTERVAL_SECONDS,
) -> None:
    """Poll ``check`` until it returns True.

    ``check`` runs once immediately, then once per ``interval``. Exceptions raised
    by ``check`` propagate unchanged on the tick they occur. Cancellation of
    ``ctx`` (explicit or by deadline) raises :class:`PollTimeoutError`.
    """

    if await check():
        return

    ticks = 0
    while True:
        if await _pause(ctx, interval):
            log.debug("Gave up waiting after %s ticks", ticks)
            raise PollTimeoutError
        ticks += 1
        if await check():
            log.debug("Condition met after %s ticks", ticks)
            return
