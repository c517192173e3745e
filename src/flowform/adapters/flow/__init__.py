"""Public interface for the Flow adapter."""

from __future__ import annotations

from .client import FlowApiClient, OrderService, log_response
from .drivers import FlowResourceDriver
from .resources import (
    CATALOGUE_KINDS,
    RESOURCE_KINDS,
    ResourceKind,
    build_driver,
    build_reconciler,
    get_resource_kind,
)

__all__ = [
    "CATALOGUE_KINDS",
    "RESOURCE_KINDS",
    "FlowApiClient",
    "FlowResourceDriver",
    "OrderService",
    "ResourceKind",
    "build_driver",
    "build_reconciler",
    "get_resource_kind",
    "log_response",
]
