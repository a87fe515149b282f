from __future__ import annotations

import random
from threading import Lock
from typing import Any, Callable

from .alerts import EmailAlerter
from .backoff import Backoff
from .db import EventLog
from .errors import DiscoveryError
from .events import EventBus, Subscriber
from .log import Logger, NullLogger
from .query import ServiceDescriptor
from .selector import Endpoint
from .settings import Settings
from .transport import HttpxTransport, Transport
from .watch import Watch, WatchStatus


class Disconsulate:
    """Resolve service names to endpoints through the registry's health API.

    The first ``resolve`` for a query blocks on one request and raises if it
    fails. Later calls are answered from the cached endpoint set, which a
    background long-poll keeps current.
    """

    def __init__(
        self,
        consul: str | None = None,
        *,
        settings: Settings | None = None,
        transport: Transport | None = None,
        logger: Logger | None = None,
        events: EventBus | None = None,
        rng: random.Random | None = None,
    ):
        self.settings = settings or Settings.from_env()
        self._rng = rng
        # Raises ValueError on a bad retry schedule, before any watch runs.
        self._new_backoff()
        self.consul_addr = (consul or self.settings.consul_addr).rstrip("/")
        self.transport = transport or HttpxTransport(timeout_s=self.settings.timeout_s)
        if logger is None:
            logger = EventLog(self.settings.events_db) if self.settings.events_db else NullLogger()
        self.logger = logger
        self.events = events or EventBus(self.logger)
        self._lock = Lock()
        self._watches: dict[ServiceDescriptor, Watch] = {}
        self._pending: dict[ServiceDescriptor, Lock] = {}

        if self.settings.enable_email:
            EmailAlerter(self.settings).attach(self.events)

    def __enter__(self) -> "Disconsulate":
        return self

    def __exit__(self, *exc: Any) -> None:
        self.close()

    def descriptor(self, service: str, **options: Any) -> ServiceDescriptor:
        return ServiceDescriptor.build(service, options, strict=self.settings.strict_query)

    def resolve(self, service: str, **options: Any) -> Endpoint:
        """Return the next endpoint for ``service`` in round-robin order.

        Options: near, passing, tags, dc, node_meta.
        """
        key = self.descriptor(service, **options)
        with self._lock:
            watch = self._watches.get(key)
        if watch is None:
            watch, first = self._create(key)
            if first is not None:
                return first
        ep = watch.next()
        if watch.status is WatchStatus.TERMINATED and self.settings.rewatch_terminated:
            watch.rearm()
        return ep

    def watch_for(self, service: str, **options: Any) -> Watch | None:
        key = self.descriptor(service, **options)
        with self._lock:
            return self._watches.get(key)

    def watches(self) -> list[Watch]:
        with self._lock:
            return list(self._watches.values())

    def subscribe(self, callback: Subscriber, *kinds: type) -> Callable[[], None]:
        return self.events.subscribe(callback, *kinds)

    def close(self) -> None:
        for w in self.watches():
            w.stop()
        self.transport.close()

    def _new_backoff(self) -> Backoff:
        s = self.settings
        return Backoff(
            seed=s.retry_seed_ms / 1000.0,
            max_delay=s.retry_max_ms / 1000.0,
            max_tries=s.retry_max_tries,
            rng=self._rng,
        )

    def _create(self, key: ServiceDescriptor) -> tuple[Watch, Endpoint | None]:
        """Prime a watch for ``key`` and publish it in the cache.

        Returns the watch and, when this call did the priming, the first
        endpoint picked from the primed set.
        """
        # One creation gate per key so concurrent first calls share a single fetch.
        with self._lock:
            gate = self._pending.setdefault(key, Lock())
        failure: DiscoveryError | None = None
        with gate:
            with self._lock:
                existing = self._watches.get(key)
            if existing is not None:
                return existing, None

            watch = Watch(
                key,
                self.consul_addr,
                self.transport,
                self.events,
                backoff_factory=self._new_backoff,
                logger=self.logger,
                wait_s=self.settings.wait_s,
            )
            armed = False
            try:
                armed = watch.prime()
            except DiscoveryError as e:
                failure = e
            except Exception:
                with self._lock:
                    self._pending.pop(key, None)
                raise

            with self._lock:
                if failure is None:
                    self._watches[key] = watch
                self._pending.pop(key, None)

        # Gate released: subscribers may call resolve() for this key again.
        if failure is not None:
            watch.report(failure)
            raise failure
        first = watch.next()
        watch.announce()
        if armed:
            watch.start()
        return watch, first
