"""Disconsulate: client-side service discovery against a Consul-style registry.

Resolves a service name (plus near/passing/tag/dc/node-meta options) to a
healthy endpoint, load balanced round-robin, and keeps the endpoint list
fresh with blocking queries:
 - the first lookup for a query is a plain synchronous request
 - every later response carrying an index re-arms a long poll
 - failures are retried on a bounded, jittered backoff
 - changes, errors and terminated watches are published as notifications
"""
from __future__ import annotations

from .backoff import Backoff
from .client import Disconsulate
from .errors import (
    DiscoveryError,
    EmptyEndpointSet,
    EmptyResultError,
    RegistryError,
    RetriesExhausted,
    TransportError,
)
from .events import ChangeEvent, ErrorEvent, EventBus, FailEvent
from .query import ServiceDescriptor
from .selector import Endpoint
from .settings import Settings

__all__ = [
    "Backoff",
    "ChangeEvent",
    "DiscoveryError",
    "Disconsulate",
    "EmptyEndpointSet",
    "EmptyResultError",
    "Endpoint",
    "ErrorEvent",
    "EventBus",
    "FailEvent",
    "RegistryError",
    "RetriesExhausted",
    "ServiceDescriptor",
    "Settings",
    "TransportError",
]
