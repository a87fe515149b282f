from __future__ import annotations

from dataclasses import asdict
from typing import Any

from fastapi import FastAPI, HTTPException, Query
from pydantic import ValidationError

from .client import Disconsulate
from .db import EventLog
from .errors import DiscoveryError


def _parse_node_meta(pairs: list[str]) -> dict[str, str]:
    out: dict[str, str] = {}
    for p in pairs:
        k, sep, v = p.partition(":")
        if not sep or not k:
            raise ValueError(f"node_meta must look like key:value, got '{p}'.")
        out[k] = v
    return out


def create_app(client: Disconsulate | None = None) -> FastAPI:
    """HTTP front end for a shared discovery client.

    Lets non-Python processes on the host reuse one warm endpoint cache.
    """
    disco = client or Disconsulate()
    app = FastAPI(title="Disconsulate sidecar")
    app.state.client = disco

    @app.on_event("shutdown")
    def shutdown() -> None:
        disco.close()

    @app.get("/health")
    def health() -> dict[str, str]:
        return {"status": "healthy"}

    @app.get("/services/{name}")
    def resolve(
        name: str,
        near: str = "agent",
        passing: int = 1,
        dc: str | None = None,
        tag: list[str] = Query(default=[]),
        node_meta: list[str] = Query(default=[]),
    ) -> dict[str, Any]:
        try:
            opts: dict[str, Any] = {"near": near, "passing": passing, "tags": tag, "node_meta": _parse_node_meta(node_meta)}
            if dc is not None:
                opts["dc"] = dc
            ep = disco.resolve(name, **opts)
        except (ValueError, ValidationError) as e:
            raise HTTPException(status_code=400, detail=str(e))
        except DiscoveryError as e:
            raise HTTPException(status_code=503, detail=str(e))
        return {"service": name, **ep.to_dict()}

    @app.get("/watches")
    def watches() -> list[dict[str, Any]]:
        return [
            {
                "service": w.key.service,
                "uri": w.key.uri,
                "status": w.status.value,
                "index": w.index,
                "retry_count": w.retry_count,
                "endpoints": [e.to_dict() for e in w.endpoints.snapshot()],
            }
            for w in disco.watches()
        ]

    @app.get("/events")
    def events(limit: int = 100, level: str | None = None) -> list[dict[str, Any]]:
        if not isinstance(disco.logger, EventLog):
            raise HTTPException(status_code=404, detail="Event log is not enabled (set DISCONSULATE_EVENTS_DB).")
        return [asdict(r) for r in disco.logger.latest(limit=limit, level=level)]

    return app
