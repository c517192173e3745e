"""Flow control-plane API configuration values."""

from __future__ import annotations

import os
from dataclasses import dataclass

from .env import require_env_vars
from .http_resilience import RateLimit, ResilienceConfig

FLOW_DEFAULT_ENDPOINT = "https://api.flow.swiss/"
FLOW_TIMEOUT_SECONDS = 30.0


@dataclass(frozen=True)
class FlowConfig:
    """Holds Flow API configuration values."""

    token: str
    endpoint: str
    resilience: ResilienceConfig


def _user_agent() -> str:
    from flowform import __version__  # noqa: PLC0415

    return f"flowform/{__version__}"


def get_flow_config(
    *,
    token: str | None = None,
    endpoint: str | None = None,
    resilience: ResilienceConfig | None = None,
) -> FlowConfig:
    """Build the API configuration, falling back to ``FLOW_TOKEN``/``FLOW_ENDPOINT``."""

    if token is None:
        token = require_env_vars(("FLOW_TOKEN",))["FLOW_TOKEN"]
    if endpoint is None:
        endpoint = os.getenv("FLOW_ENDPOINT") or FLOW_DEFAULT_ENDPOINT

    return FlowConfig(
        token=token,
        endpoint=endpoint,
        resilience=resilience
        or ResilienceConfig(
            name="flow",
            base_url=endpoint,
            timeout_seconds=FLOW_TIMEOUT_SECONDS,
            ratelimit=RateLimit(max_calls=10, per_seconds=1.0),
            default_headers={
                "Authorization": f"Bearer {token}",
                "User-Agent": _user_agent(),
                "Accept": "application/json",
            },
        ),
    )
