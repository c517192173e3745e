"""Application configuration helpers."""

from __future__ import annotations

from .env import env_float, require_env_var, require_env_vars
from .errors import ConfigurationError, MissingConfigurationError
from .flow import FLOW_DEFAULT_ENDPOINT, FlowConfig, get_flow_config
from .http_resilience import RateLimit, ResilienceConfig, RetryPolicy
from .logging import configure_logging
from .polling import PollingConfig, get_polling_config
from .storage import DatabaseConfig, StorageConfig, get_database_config, get_storage_config

__all__ = [
    "FLOW_DEFAULT_ENDPOINT",
    "ConfigurationError",
    "DatabaseConfig",
    "FlowConfig",
    "MissingConfigurationError",
    "PollingConfig",
    "RateLimit",
    "ResilienceConfig",
    "RetryPolicy",
    "StorageConfig",
    "configure_logging",
    "env_float",
    "get_database_config",
    "get_flow_config",
    "get_polling_config",
    "get_storage_config",
    "require_env_var",
    "require_env_vars",
]
