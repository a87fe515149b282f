from __future__ import annotations

from dataclasses import dataclass, field
from typing import Mapping, Protocol

import httpx
import requests

from .errors import TransportError


@dataclass(frozen=True)
class Response:
    status: int
    headers: Mapping[str, str] = field(default_factory=dict)
    body: str = ""

    def header(self, name: str) -> str | None:
        lname = name.lower()
        for k, v in self.headers.items():
            if k.lower() == lname:
                return v
        return None


class Transport(Protocol):
    def get(self, url: str) -> Response: ...

    def close(self) -> None: ...


class HttpxTransport:
    """GET over httpx. Owns the client unless one is passed in."""

    def __init__(self, timeout_s: float = 330.0, client: httpx.Client | None = None) -> None:
        self._owned = client is None
        self.client = client or httpx.Client(timeout=timeout_s, follow_redirects=False)

    def get(self, url: str) -> Response:
        try:
            resp = self.client.get(url)
        except httpx.HTTPError as e:
            raise TransportError(url, f"{type(e).__name__}: {e}") from e
        return Response(status=resp.status_code, headers=dict(resp.headers), body=resp.text)

    def close(self) -> None:
        if self._owned:
            self.client.close()


class RequestsTransport:
    """GET over a requests.Session."""

    def __init__(self, timeout_s: float = 330.0, session: requests.Session | None = None) -> None:
        self._owned = session is None
        self.session = session or requests.Session()
        self.timeout_s = timeout_s

    def get(self, url: str) -> Response:
        try:
            resp = self.session.get(url, timeout=self.timeout_s, allow_redirects=False)
        except requests.RequestException as e:
            raise TransportError(url, f"{type(e).__name__}: {e}") from e
        return Response(status=resp.status_code, headers=dict(resp.headers), body=resp.text)

    def close(self) -> None:
        if self._owned:
            self.session.close()
