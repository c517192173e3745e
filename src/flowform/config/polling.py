"""Defaults for waiting on asynchronous remote work."""

from __future__ import annotations

from dataclasses import dataclass

from .env import env_float
from .errors import ConfigurationError

DEFAULT_POLL_INTERVAL_SECONDS = 1.0
DEFAULT_OPERATION_TIMEOUT_SECONDS = 20 * 60.0


@dataclass(frozen=True, slots=True)
class PollingConfig:
    interval_seconds: float = DEFAULT_POLL_INTERVAL_SECONDS
    # None waits until cancelled
    operation_timeout_seconds: float | None = DEFAULT_OPERATION_TIMEOUT_SECONDS


def get_polling_config() -> PollingConfig:
    interval = env_float("FLOW_POLL_INTERVAL", DEFAULT_POLL_INTERVAL_SECONDS)
    timeout = env_float("FLOW_OPERATION_TIMEOUT", DEFAULT_OPERATION_TIMEOUT_SECONDS)
    if interval is None or interval <= 0:
        raise ConfigurationError("FLOW_POLL_INTERVAL must be positive")
    if timeout is not None and timeout <= 0:
        timeout = None
    return PollingConfig(interval_seconds=interval, operation_timeout_seconds=timeout)
