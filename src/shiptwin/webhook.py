"""Forward engine events to a downstream HTTP endpoint.

Settlement and compliance services consume ``alert`` and
``alert:resolved`` as fire-and-forget webhooks.  The engine is synchronous
and may emit from any thread, so each event is handed to an asyncio loop
via ``call_soon_threadsafe`` and POSTed there with aiohttp.  A failed POST
is logged and dropped; there is no retry.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Collection, Mapping
from typing import Any, Protocol

import aiohttp

from shiptwin.config import EngineConfig
from shiptwin.exceptions import TwinConfigError
from shiptwin.state.events import EngineEvent, EventName, event_name

_logger = logging.getLogger(__name__)

DEFAULT_WEBHOOK_EVENTS: tuple[EventName, ...] = (EventName.ALERT, EventName.ALERT_RESOLVED)


class _Subscribable(Protocol):
    def subscribe(self, event_name: EventName | str, handler: Callable[[EngineEvent], None]) -> Callable[[], None]:
        ...


class WebhookForwarder:
    """Event handler that POSTs each event's JSON to *url*.

    Usage::

        async with aiohttp.ClientSession() as session:
            forwarder = WebhookForwarder(url, loop=asyncio.get_running_loop(), session=session)
            forwarder.attach(engine)
            ...
            await forwarder.close()
    """

    def __init__(
        self,
        url: str,
        *,
        loop: asyncio.AbstractEventLoop,
        session: aiohttp.ClientSession,
        events: Collection[EventName | str] = DEFAULT_WEBHOOK_EVENTS,
        timeout: float = 5.0,
        headers: Mapping[str, str] | None = None,
    ) -> None:
        if not url:
            raise TwinConfigError("Webhook URL must be non-empty")
        self._url = url
        self._loop = loop
        self._session = session
        self._events = tuple(EventName(name) for name in events)
        self._timeout = aiohttp.ClientTimeout(total=timeout)
        self._headers = {"content-type": "application/json", **(headers or {})}
        self._tasks: set[asyncio.Task[None]] = set()
        self._unsubscribers: list[Callable[[], None]] = []
        self._closed = False

    @classmethod
    def from_config(
        cls,
        config: EngineConfig,
        *,
        loop: asyncio.AbstractEventLoop,
        session: aiohttp.ClientSession,
    ) -> WebhookForwarder:
        if not config.webhook_url:
            raise TwinConfigError("webhook_url is not configured (set SHIPTWIN_WEBHOOK_URL)")
        return cls(config.webhook_url, loop=loop, session=session, timeout=config.webhook_timeout)

    @property
    def pending(self) -> int:
        return len(self._tasks)

    def attach(self, target: _Subscribable) -> None:
        """Subscribe to the configured channels of an engine or notifier."""
        for name in self._events:
            self._unsubscribers.append(target.subscribe(name, self))

    def detach(self) -> None:
        for unsubscribe in self._unsubscribers:
            unsubscribe()
        self._unsubscribers.clear()

    def __call__(self, event: EngineEvent) -> None:
        payload = {"event": event_name(event).value, **event.to_json_dict()}
        try:
            running = asyncio.get_running_loop()
        except RuntimeError:
            running = None
        if running is self._loop:
            self._spawn(payload)
        else:
            self._loop.call_soon_threadsafe(self._spawn, payload)

    def _spawn(self, payload: dict[str, Any]) -> None:
        if self._closed:
            _logger.debug("Webhook forwarder closed, dropping event=%s", payload["event"])
            return
        task = self._loop.create_task(self._post(payload))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _post(self, payload: dict[str, Any]) -> None:
        try:
            async with self._session.post(
                self._url,
                json=payload,
                headers=self._headers,
                timeout=self._timeout,
            ) as resp:
                if resp.status >= 400:
                    text = await resp.text()
                    _logger.warning(
                        "Webhook rejected event=%s shipment=%s status=%d body=%s",
                        payload["event"],
                        payload.get("shipmentId"),
                        resp.status,
                        text[:200],
                    )
                    return
        except (aiohttp.ClientError, TimeoutError):
            _logger.warning(
                "Webhook delivery failed event=%s shipment=%s",
                payload["event"],
                payload.get("shipmentId"),
                exc_info=True,
            )
            return
        _logger.debug("Webhook delivered event=%s shipment=%s", payload["event"], payload.get("shipmentId"))

    async def close(self) -> None:
        """Detach and wait for in-flight deliveries.

        Events that reach the forwarder after this point are dropped.
        """
        self.detach()
        # Let callbacks queued by other threads create their tasks first.
        await asyncio.sleep(0)
        self._closed = True
        while True:
            pending = [task for task in self._tasks if not task.done()]
            if not pending:
                break
            await asyncio.gather(*pending, return_exceptions=True)
