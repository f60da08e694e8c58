"""Synchronous in-process event fan-out.

Delivery is best-effort and at-most-once per emission: handlers run on the
emitting thread, in subscription order, and a failing handler is logged and
skipped.  Nothing a handler does can roll back or block the state change
that produced the event.

Mutations wrap their work in :meth:`EventNotifier.deferred`: events emitted
inside the block are held back and delivered once the block (and the twin
lock it encloses) has exited cleanly, or dropped if it raised.  Handlers
therefore never run while a twin lock is held.
"""

from __future__ import annotations

import contextlib
import logging
import threading
from collections.abc import Callable, Iterator

from shiptwin.exceptions import TwinValidationError
from shiptwin.state.events import EngineEvent, EventName, event_name

_logger = logging.getLogger(__name__)

EventHandler = Callable[[EngineEvent], None]


def _channel(name: EventName | str) -> EventName:
    try:
        return EventName(name)
    except ValueError as exc:
        known = ", ".join(member.value for member in EventName)
        raise TwinValidationError(f"Unknown event {name!r}; expected one of: {known}") from exc


class EventNotifier:
    """Typed observer registry with one channel per :class:`EventName`."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._handlers: dict[EventName, list[EventHandler]] = {name: [] for name in EventName}
        self._catch_all: list[EventHandler] = []
        self._local = threading.local()

    def subscribe(self, name: EventName | str, handler: EventHandler) -> Callable[[], None]:
        """Register *handler* on one channel; return a callable that removes it."""
        channel = _channel(name)
        with self._lock:
            self._handlers[channel].append(handler)

        def _unsubscribe() -> None:
            self.unsubscribe(channel, handler)

        return _unsubscribe

    def subscribe_all(self, handler: EventHandler) -> Callable[[], None]:
        """Register *handler* for every channel."""
        with self._lock:
            self._catch_all.append(handler)

        def _unsubscribe() -> None:
            with self._lock:
                if handler in self._catch_all:
                    self._catch_all.remove(handler)

        return _unsubscribe

    def unsubscribe(self, name: EventName | str, handler: EventHandler) -> bool:
        channel = _channel(name)
        with self._lock:
            handlers = self._handlers[channel]
            if handler in handlers:
                handlers.remove(handler)
                return True
        return False

    def handler_count(self, name: EventName | str | None = None) -> int:
        with self._lock:
            if name is None:
                return sum(len(h) for h in self._handlers.values()) + len(self._catch_all)
            return len(self._handlers[_channel(name)]) + len(self._catch_all)

    @contextlib.contextmanager
    def deferred(self) -> Iterator[None]:
        """Hold back events emitted on this thread until the block exits cleanly."""
        local = self._local
        depth: int = getattr(local, "depth", 0)
        if depth == 0:
            local.pending = []
        local.depth = depth + 1
        try:
            yield
        except BaseException:
            local.depth = depth
            if depth == 0:
                dropped = len(local.pending)
                local.pending = []
                if dropped:
                    _logger.debug("Dropped %d event(s) from a failed mutation", dropped)
            raise
        local.depth = depth
        if depth == 0:
            pending, local.pending = local.pending, []
            for event in pending:
                self._deliver(event)

    def emit(self, event: EngineEvent) -> int:
        """Deliver *event* to its channel; return the number of handlers that succeeded.

        Inside :meth:`deferred` the event is queued instead and ``0`` is returned.
        """
        if getattr(self._local, "depth", 0):
            self._local.pending.append(event)
            return 0
        return self._deliver(event)

    def _deliver(self, event: EngineEvent) -> int:
        channel = event_name(event)
        with self._lock:
            # Copy so handlers may (un)subscribe while being called.
            handlers = [*self._handlers[channel], *self._catch_all]

        delivered = 0
        for handler in handlers:
            try:
                handler(event)
            except Exception:
                _logger.warning(
                    "Event handler %r failed for %s shipment=%s",
                    handler,
                    channel.value,
                    event.shipment_id,
                    exc_info=True,
                )
                continue
            delivered += 1
        return delivered
