from __future__ import annotations


class DiscoveryError(Exception):
    """Base class for everything the discovery client raises."""


class TransportError(DiscoveryError):
    """The HTTP request never produced a response (connect, DNS, timeout)."""

    def __init__(self, url: str, reason: str) -> None:
        super().__init__(f"Request to {url} failed: {reason}")
        self.url = url
        self.reason = reason


class RegistryError(DiscoveryError):
    """The registry answered, but not with a usable 200."""

    def __init__(self, path: str, status: int | None = None, body: str = "") -> None:
        prefix = f"HTTP {status} " if status is not None else ""
        super().__init__(f"{prefix}calling /{path}: {body}")
        self.path = path
        self.status = status
        self.body = body


class EmptyResultError(DiscoveryError):
    def __init__(self, service: str, path: str) -> None:
        super().__init__(f"No passing instances of service '{service}' returned by /{path}")
        self.service = service
        self.path = path


class EmptyEndpointSet(DiscoveryError):
    pass


class RetriesExhausted(DiscoveryError):
    pass
