from __future__ import annotations

from dataclasses import dataclass, field
from threading import Lock
from typing import Any, Iterable

from pydantic import TypeAdapter

from .errors import EmptyEndpointSet
from .models import HealthEntry

_entries = TypeAdapter(list[HealthEntry])


@dataclass(frozen=True)
class Endpoint:
    address: str
    port: int
    tags: frozenset[str] = frozenset()
    # Informational only; not part of identity.
    node: str = field(default="", compare=False)
    service_id: str = field(default="", compare=False)

    def to_dict(self) -> dict[str, Any]:
        return {
            "address": self.address,
            "port": self.port,
            "tags": sorted(self.tags),
            "node": self.node,
            "service_id": self.service_id,
        }


def endpoints_from_payload(data: Any) -> list[Endpoint]:
    """Turn a decoded /v1/health/service response into endpoints.

    Raises pydantic.ValidationError when the payload has the wrong shape.
    """
    out: list[Endpoint] = []
    for entry in _entries.validate_python(data):
        svc = entry.service
        address = svc.address
        if not address and entry.node is not None:
            # Registry convention: an empty service address means "use the node's".
            address = entry.node.address
        out.append(
            Endpoint(
                address=address,
                port=svc.port,
                tags=frozenset(svc.tags or ()),
                node=entry.node.node if entry.node is not None else "",
                service_id=svc.id,
            )
        )
    return out


class EndpointSet:
    """Current endpoints of one watched query, handed out round-robin."""

    def __init__(self, endpoints: Iterable[Endpoint] = ()) -> None:
        self._lock = Lock()
        self._endpoints: tuple[Endpoint, ...] = tuple(endpoints)
        self._cursor = 0

    def replace(self, endpoints: Iterable[Endpoint]) -> None:
        new = tuple(endpoints)
        with self._lock:
            if not self._endpoints or not new:
                self._cursor = 0
            else:
                self._cursor %= len(new)
            self._endpoints = new

    def next(self) -> Endpoint:
        with self._lock:
            n = len(self._endpoints)
            if n == 0:
                raise EmptyEndpointSet("No endpoints cached for this query.")
            ep = self._endpoints[self._cursor]
            self._cursor = (self._cursor + 1) % n
            return ep

    def snapshot(self) -> tuple[Endpoint, ...]:
        with self._lock:
            return self._endpoints

    @property
    def cursor(self) -> int:
        with self._lock:
            return self._cursor

    def __len__(self) -> int:
        with self._lock:
            return len(self._endpoints)
