from __future__ import annotations

import asyncio
import logging
from typing import Any

import aiohttp
import pytest

from shiptwin.config import EngineConfig
from shiptwin.engine import TrackingEngine
from shiptwin.exceptions import TwinConfigError
from shiptwin.state.events import EngineEvent
from shiptwin.webhook import WebhookForwarder

_URL = "https://hooks.example.com/twin"


class _FakeResponse:
    def __init__(self, status: int, body: str = "") -> None:
        self.status = status
        self._body = body

    async def text(self) -> str:
        return self._body

    async def __aenter__(self) -> _FakeResponse:
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        return None


class _FakeSession:
    def __init__(self, status: int = 200, error: Exception | None = None) -> None:
        self.status = status
        self.error = error
        self.posts: list[dict[str, Any]] = []

    def post(self, url: str, **kwargs: Any) -> _FakeResponse:
        self.posts.append({"url": url, **kwargs})
        if self.error is not None:
            raise self.error
        return _FakeResponse(self.status, body="nope" if self.status >= 400 else "")


def _telemetry(**extra: Any) -> dict[str, Any]:
    return {
        "shipmentId": "S1",
        "deviceId": "D1",
        "timestamp": "2026-01-01T00:00:00Z",
        "location": {"latitude": 0.0, "longitude": 0.0},
        **extra,
    }


@pytest.mark.asyncio
async def test_forwards_alert_events_from_worker_thread() -> None:
    session = _FakeSession()
    engine = TrackingEngine()
    forwarder = WebhookForwarder(_URL, loop=asyncio.get_running_loop(), session=session)  # type: ignore[arg-type]
    forwarder.attach(engine)

    await asyncio.to_thread(engine.ingest_telemetry, _telemetry(battery=5))
    await forwarder.close()

    (post,) = session.posts
    assert post["url"] == _URL
    payload = post["json"]
    assert payload["event"] == "alert"
    assert payload["shipmentId"] == "S1"
    assert payload["deviceId"] == "D1"
    assert payload["alert"]["type"] == "battery"
    assert payload["alert"]["severity"] == "critical"
    assert post["headers"]["content-type"] == "application/json"
    assert forwarder.pending == 0


@pytest.mark.asyncio
async def test_forwards_resolution_when_called_on_loop() -> None:
    session = _FakeSession()
    engine = TrackingEngine()
    forwarder = WebhookForwarder(_URL, loop=asyncio.get_running_loop(), session=session)  # type: ignore[arg-type]
    forwarder.attach(engine)

    engine.ingest_telemetry(_telemetry(sensors={"shock": 50}))
    (alert,) = engine.get_active_alerts("S1")
    engine.resolve_alert("S1", alert.id)
    await forwarder.close()

    assert [post["json"]["event"] for post in session.posts] == ["alert", "alert:resolved"]
    assert session.posts[1]["json"]["alertId"] == alert.id


@pytest.mark.asyncio
async def test_detached_forwarder_ignores_events() -> None:
    session = _FakeSession()
    engine = TrackingEngine()
    forwarder = WebhookForwarder(_URL, loop=asyncio.get_running_loop(), session=session)  # type: ignore[arg-type]
    forwarder.attach(engine)
    await forwarder.close()

    engine.ingest_telemetry(_telemetry(battery=5))
    await asyncio.sleep(0)

    assert session.posts == []
    assert engine.notifier.handler_count() == 0


@pytest.mark.asyncio
async def test_custom_event_selection() -> None:
    session = _FakeSession()
    engine = TrackingEngine()
    forwarder = WebhookForwarder(
        _URL,
        loop=asyncio.get_running_loop(),
        session=session,  # type: ignore[arg-type]
        events=["digital-twin:updated"],
        headers={"authorization": "Bearer t"},
    )
    forwarder.attach(engine)

    engine.ingest_telemetry(_telemetry(battery=5))
    await forwarder.close()

    (post,) = session.posts
    assert post["json"]["event"] == "digital-twin:updated"
    assert post["json"]["twin"]["batteryLevel"] == 5
    assert post["headers"]["authorization"] == "Bearer t"


@pytest.mark.asyncio
async def test_rejected_delivery_is_logged(caplog: pytest.LogCaptureFixture) -> None:
    session = _FakeSession(status=503)
    engine = TrackingEngine()
    forwarder = WebhookForwarder(_URL, loop=asyncio.get_running_loop(), session=session)  # type: ignore[arg-type]
    forwarder.attach(engine)

    with caplog.at_level(logging.WARNING, logger="shiptwin.webhook"):
        engine.ingest_telemetry(_telemetry(battery=5))
        await forwarder.close()

    assert "Webhook rejected event=alert shipment=S1 status=503" in caplog.text


@pytest.mark.asyncio
async def test_client_error_is_logged_and_dropped(caplog: pytest.LogCaptureFixture) -> None:
    session = _FakeSession(error=aiohttp.ClientConnectionError("refused"))
    engine = TrackingEngine()
    forwarder = WebhookForwarder(_URL, loop=asyncio.get_running_loop(), session=session)  # type: ignore[arg-type]
    forwarder.attach(engine)

    with caplog.at_level(logging.WARNING, logger="shiptwin.webhook"):
        twin = engine.ingest_telemetry(_telemetry(battery=5))
        await forwarder.close()

    assert twin.alerts
    assert "Webhook delivery failed event=alert shipment=S1" in caplog.text


@pytest.mark.asyncio
async def test_from_config() -> None:
    loop = asyncio.get_running_loop()
    session = _FakeSession()

    with pytest.raises(TwinConfigError):
        WebhookForwarder.from_config(EngineConfig(), loop=loop, session=session)  # type: ignore[arg-type]

    forwarder = WebhookForwarder.from_config(
        EngineConfig(webhook_url=_URL, webhook_timeout=1.5),
        loop=loop,
        session=session,  # type: ignore[arg-type]
    )
    forwarder.attach(TrackingEngine())
    await forwarder.close()


@pytest.mark.asyncio
async def test_empty_url_rejected() -> None:
    with pytest.raises(TwinConfigError):
        WebhookForwarder("", loop=asyncio.get_running_loop(), session=_FakeSession())  # type: ignore[arg-type]


@pytest.mark.asyncio
async def test_events_after_close_are_dropped() -> None:
    session = _FakeSession()
    engine = TrackingEngine()
    captured: list[EngineEvent] = []
    engine.subscribe("alert", captured.append)
    forwarder = WebhookForwarder(_URL, loop=asyncio.get_running_loop(), session=session)  # type: ignore[arg-type]
    forwarder.attach(engine)

    engine.ingest_telemetry(_telemetry(battery=5))
    await forwarder.close()
    assert len(session.posts) == 1

    # Late deliveries: one on the loop, one handed over from a worker thread.
    (event,) = captured
    forwarder(event)
    await asyncio.to_thread(forwarder, event)
    await asyncio.sleep(0)
    await forwarder.close()

    assert len(session.posts) == 1
    assert forwarder.pending == 0
