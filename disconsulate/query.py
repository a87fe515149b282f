from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping
from urllib.parse import quote

from .models import QueryOptions

PATH_STEM = "v1/health/service/"


def _flag(value: bool | int) -> str:
    if isinstance(value, bool):
        return "1" if value else "0"
    return str(value)


@dataclass(frozen=True)
class ServiceDescriptor:
    """Canonical identity of a health query against the registry.

    Two descriptors built from the same service and options compare and hash
    equal, so the descriptor doubles as the watch cache key.

    Values are inserted verbatim unless ``strict`` is set; the verbatim form
    is what existing registries and callers expect, not an escaping guarantee.
    """

    service: str
    near: str | None = "agent"
    passing: bool | int = 1
    tags: tuple[str, ...] = ()
    dc: str | None = None
    node_meta: tuple[tuple[str, str], ...] = ()
    strict: bool = False

    @classmethod
    def build(cls, service: str, options: QueryOptions | Mapping[str, Any] | None = None, strict: bool = False) -> "ServiceDescriptor":
        if not service:
            raise ValueError("Service name must be a non-empty string.")
        if options is None:
            opts = QueryOptions()
        elif isinstance(options, QueryOptions):
            opts = options
        else:
            opts = QueryOptions.model_validate(dict(options))
        return cls(
            service=service,
            near=opts.near,
            passing=opts.passing,
            tags=tuple(opts.tags),
            dc=opts.dc,
            node_meta=tuple(opts.node_meta.items()),
            strict=strict,
        )

    @property
    def path(self) -> str:
        return PATH_STEM + self._enc(self.service)

    @property
    def uri(self) -> str:
        return f"{self.path}?{'&'.join(self.query_params())}"

    def query_params(self) -> list[str]:
        enc = self._enc
        query = [f"passing={_flag(self.passing)}"]
        if self.near is not None:
            query.append(f"near={enc(self.near)}")
        if self.dc is not None:
            query.append(f"dc={enc(self.dc)}")
        for t in self.tags:
            query.append(f"tag={enc(t)}")
        for k, v in self.node_meta:
            query.append(f"node-meta={enc(k)}:{enc(v)}")
        return query

    def _enc(self, value: str) -> str:
        if not self.strict:
            return value
        return quote(value, safe="")

    def __str__(self) -> str:
        return self.uri
