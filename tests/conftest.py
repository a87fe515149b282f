import json
import sys
import threading
import time
from collections import deque

import pytest

# Ensure project root is importable (so `import cli` works without installing)
import os as _os
_project_root = _os.path.dirname(_os.path.dirname(__file__))
if _project_root not in sys.path:
    sys.path.insert(0, _project_root)

from disconsulate.errors import TransportError
from disconsulate.events import ChangeEvent, ErrorEvent, FailEvent
from disconsulate.log import Logger
from disconsulate.settings import Settings
from disconsulate.transport import Response

BASE = "http://consul.test:8500"


def body(*instances) -> str:
    """Registry payload for (address, port) or (address, port, tags) tuples."""
    out = []
    for inst in instances:
        address, port = inst[0], inst[1]
        svc = {"Address": address, "Port": port}
        if len(inst) > 2:
            svc["Tags"] = list(inst[2])
        out.append({"Node": {"Node": f"node-{address}", "Address": address}, "Service": svc})
    return json.dumps(out)


class FakeRegistry:
    """Scripted registry: every GET consumes the next queued response.

    With the script empty a GET blocks (like a long poll with no news) until
    ``close`` is called.
    """

    def __init__(self):
        self.responses = deque()
        self.requests = []
        self._lock = threading.Lock()
        self._closed = threading.Event()

    def add_response(self, body="[]", status=200, index=None, error=None, gate=None):
        self.responses.append((body, status, index, error, gate))

    def get(self, url):
        with self._lock:
            self.requests.append(url)
            item = self.responses.popleft() if self.responses else None
        if item is None:
            self._closed.wait()
            raise TransportError(url, "registry closed")
        body_, status, index, error, gate = item
        if gate is not None:
            gate.wait(5)
        if error is not None:
            raise error
        headers = {"Content-Type": "application/json"}
        if index is not None:
            headers["X-Consul-Index"] = str(index)
        return Response(status=status, headers=headers, body=body_)

    def close(self):
        self._closed.set()

    @property
    def paths(self):
        with self._lock:
            return [u[len(BASE):] for u in self.requests]


class Recorder:
    def __init__(self):
        self.events = []
        self._lock = threading.Lock()

    def __call__(self, event):
        with self._lock:
            self.events.append(event)

    def of(self, kind):
        with self._lock:
            return [e for e in self.events if isinstance(e, kind)]

    @property
    def changes(self):
        return self.of(ChangeEvent)

    @property
    def errors(self):
        return self.of(ErrorEvent)

    @property
    def fails(self):
        return self.of(FailEvent)


class RecordingLogger(Logger):
    def __init__(self):
        self.records = []

    def log(self, level, message, service=None):
        self.records.append((level, message, service))

    def levels(self):
        return [r[0] for r in self.records]


def wait_for(predicate, timeout=5.0):
    deadline = time.time() + timeout
    while time.time() < deadline:
        if predicate():
            return True
        time.sleep(0.005)
    return predicate()


@pytest.fixture
def registry():
    reg = FakeRegistry()
    yield reg
    reg.close()


@pytest.fixture
def fast_settings():
    return Settings(consul_addr=BASE, retry_seed_ms=1, retry_max_ms=5, retry_max_tries=3)


@pytest.fixture
def recorder():
    return Recorder()


@pytest.fixture
def make_client(registry, fast_settings):
    from disconsulate import Disconsulate

    clients = []

    def _make(settings=None, **kwargs):
        kwargs.setdefault("transport", registry)
        c = Disconsulate(settings=settings or fast_settings, **kwargs)
        clients.append(c)
        return c

    yield _make
    for c in clients:
        c.close()
