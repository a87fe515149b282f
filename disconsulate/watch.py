from __future__ import annotations

import json
from enum import Enum
from threading import Event, Lock, Thread, current_thread
from typing import Callable

from pydantic import ValidationError

from .backoff import Backoff
from .changes import changed
from .errors import DiscoveryError, EmptyResultError, RegistryError, RetriesExhausted
from .events import ChangeEvent, ErrorEvent, EventBus, FailEvent
from .log import Logger, NullLogger
from .query import ServiceDescriptor
from .selector import Endpoint, EndpointSet, endpoints_from_payload
from .transport import Transport

INDEX_HEADER = "X-Consul-Index"


class WatchStatus(str, Enum):
    IDLE = "idle"
    FETCHING = "fetching"
    WATCHING = "watching"
    BACKOFF = "backoff"
    STOPPED = "stopped"  # registry offered no index, nothing to block on
    TERMINATED = "terminated"  # retries exhausted
    CLOSED = "closed"


class Watch:
    """Long-poll loop for one service query.

    ``prime`` performs the first fetch on the caller's thread and raises on
    failure. ``start`` then keeps the endpoint set fresh from a daemon thread:
    every response carrying an index re-arms a blocking query with that
    index, failures are retried on a jittered backoff until it runs out.
    """

    def __init__(
        self,
        key: ServiceDescriptor,
        base_url: str,
        transport: Transport,
        events: EventBus,
        backoff_factory: Callable[[], Backoff],
        logger: Logger | None = None,
        wait_s: int | None = None,
    ):
        self.key = key
        self.base_url = base_url.rstrip("/")
        self.transport = transport
        self.events = events
        self.logger = logger or NullLogger()
        self.wait_s = wait_s
        self._backoff_factory = backoff_factory
        self._backoff: Backoff | None = None
        self._stop = Event()
        self._thr: Thread | None = None
        self._lifecycle = Lock()

        self.endpoints = EndpointSet()
        self.index: str | None = None
        self.retry_count = 0
        self.status = WatchStatus.IDLE

    # -- selection -------------------------------------------------------

    def next(self) -> Endpoint:
        return self.endpoints.next()

    # -- lifecycle -------------------------------------------------------

    def prime(self) -> bool:
        """First fetch for this key. Returns whether the loop should be armed.

        Publishes nothing: the caller reports the outcome (``announce`` or
        ``report``) once it holds no locks a subscriber could need.
        """
        armed = self.fetch(notify=False)
        self._set_status(WatchStatus.IDLE if armed else WatchStatus.STOPPED)
        return armed

    def announce(self) -> None:
        self.events.publish(ChangeEvent(self.key, self.endpoints.snapshot()))

    def start(self) -> None:
        with self._lifecycle:
            self._spawn()

    def rearm(self) -> None:
        """Restart a terminated watch with a fresh retry budget."""
        with self._lifecycle:
            if self.status is not WatchStatus.TERMINATED:
                return
            # TERMINATED is the loop's last write; let the old thread finish.
            old = self._thr
            if old is not None and old is not current_thread():
                old.join()
            self.logger.info("Re-arming terminated watch", self.key.service)
            self.retry_count = 0
            self._backoff = None
            self.status = WatchStatus.WATCHING
            self._spawn()

    def _spawn(self) -> None:
        if self._thr and self._thr.is_alive():
            return
        self._stop.clear()
        self._thr = Thread(target=self._loop, name=f"watch:{self.key.service}", daemon=True)
        self._thr.start()

    def stop(self) -> None:
        self._stop.set()
        self.status = WatchStatus.CLOSED

    def join(self, timeout: float | None = None) -> None:
        if self._thr is not None:
            self._thr.join(timeout)

    @property
    def alive(self) -> bool:
        return self._thr is not None and self._thr.is_alive()

    # -- polling ---------------------------------------------------------

    def request_path(self) -> str:
        path = self.key.uri
        if self.index is not None:
            path += f"&index={self.index}"
            if self.wait_s:
                path += f"&wait={self.wait_s}s"
        return path

    def fetch(self, notify: bool = True) -> bool:
        """One request against the registry.

        Returns True when the response carried an index to block on next.
        Raises a DiscoveryError subclass on any failure; the endpoint set is
        left untouched in that case.
        """
        self._set_status(WatchStatus.FETCHING)
        path = self.request_path()
        self.logger.debug(f"GET /{path}", self.key.service)
        resp = self.transport.get(f"{self.base_url}/{path}")
        if resp.status != 200:
            raise RegistryError(path, resp.status, resp.body or "")

        try:
            found = endpoints_from_payload(json.loads(resp.body))
        except (ValueError, ValidationError) as e:
            raise RegistryError(path, resp.status, f"Invalid payload: {e}") from e
        if not found:
            raise EmptyResultError(self.key.service, path)

        token = resp.header(INDEX_HEADER)
        if token is not None:
            self.index = token
        self.retry_count = 0
        self._backoff = None

        if changed(self.endpoints.snapshot(), found):
            self.endpoints.replace(found)
            self.logger.info(f"Endpoints changed: {len(found)} instance(s)", self.key.service)
            if notify:
                self.announce()
        return token is not None

    def _loop(self) -> None:
        self._set_status(WatchStatus.WATCHING)
        while not self._stop.is_set():
            try:
                armed = self.fetch()
            except Exception as e:
                if self._stop.is_set():
                    return
                if not isinstance(e, DiscoveryError):
                    e = DiscoveryError(f"Unexpected {type(e).__name__} polling /{self.request_path()}: {e}")
                self.report(e)
                if not self._wait_backoff():
                    return
                continue
            if self._stop.is_set():
                return
            if not armed:
                self.logger.info("Registry returned no index; watch stopped", self.key.service)
                self._set_status(WatchStatus.STOPPED)
                return
            self._set_status(WatchStatus.WATCHING)

    def report(self, err: DiscoveryError) -> None:
        self.retry_count += 1
        self.logger.error(str(err), self.key.service)
        self.events.publish(ErrorEvent(self.key, err))

    def _wait_backoff(self) -> bool:
        if self._backoff is None:
            self._backoff = self._backoff_factory()
        try:
            delay = self._backoff.next_delay()
        except RetriesExhausted as e:
            self.logger.fatal(f"Watch terminated: {e}", self.key.service)
            self.events.publish(FailEvent(self.key))
            # Last write of the loop: rearm() may restart only after this.
            self._set_status(WatchStatus.TERMINATED)
            return False
        self._set_status(WatchStatus.BACKOFF)
        self.logger.debug(f"Retry {self._backoff.tries} in {delay:.3f}s", self.key.service)
        return not self._stop.wait(delay)

    def _set_status(self, status: WatchStatus) -> None:
        if self.status is WatchStatus.CLOSED:
            return
        self.status = status
