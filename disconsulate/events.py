from __future__ import annotations

from dataclasses import dataclass
from threading import Lock
from typing import Any, Callable, Union

from .log import Logger, NullLogger
from .query import ServiceDescriptor
from .selector import Endpoint


@dataclass(frozen=True)
class ChangeEvent:
    key: ServiceDescriptor
    endpoints: tuple[Endpoint, ...]

    kind = "change"

    def to_dict(self) -> dict[str, Any]:
        return {"kind": self.kind, "service": self.key.service, "uri": self.key.uri, "endpoints": [e.to_dict() for e in self.endpoints]}


@dataclass(frozen=True)
class ErrorEvent:
    key: ServiceDescriptor
    error: Exception

    kind = "error"

    def to_dict(self) -> dict[str, Any]:
        return {"kind": self.kind, "service": self.key.service, "uri": self.key.uri, "error": str(self.error)}


@dataclass(frozen=True)
class FailEvent:
    key: ServiceDescriptor

    kind = "fail"

    def to_dict(self) -> dict[str, Any]:
        return {"kind": self.kind, "service": self.key.service, "uri": self.key.uri}


Notification = Union[ChangeEvent, ErrorEvent, FailEvent]
Subscriber = Callable[[Notification], None]


class EventBus:
    """Synchronous publish/subscribe channel for watch notifications.

    Callbacks run on the publishing thread, in publication order. A callback
    that raises is logged and skipped.
    """

    def __init__(self, logger: Logger | None = None) -> None:
        self.logger = logger or NullLogger()
        self._lock = Lock()
        self._subs: list[tuple[Subscriber, tuple[type, ...]]] = []

    def subscribe(self, callback: Subscriber, *kinds: type) -> Callable[[], None]:
        entry = (callback, tuple(kinds))
        with self._lock:
            self._subs.append(entry)

        def unsubscribe() -> None:
            with self._lock:
                if entry in self._subs:
                    self._subs.remove(entry)

        return unsubscribe

    def publish(self, event: Notification) -> None:
        with self._lock:
            subs = list(self._subs)
        for callback, kinds in subs:
            if kinds and not isinstance(event, kinds):
                continue
            try:
                callback(event)
            except Exception as e:
                self.logger.error(f"Subscriber failed on {event.kind}: {type(e).__name__}: {e}", event.key.service)
