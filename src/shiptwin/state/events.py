"""Typed engine events.

Every state change the engine makes is announced as one of these events.
Each event kind has its own channel (:class:`EventName`) and its own
payload model; payloads carry snapshots, never the live twin.
"""

from __future__ import annotations

from enum import StrEnum
from typing import Literal

from pydantic import ConfigDict, Field

from shiptwin.models._base import TwinBaseModel, UtcDatetime, utcnow
from shiptwin.models.alert import Alert
from shiptwin.models.geofence import Geofence
from shiptwin.models.thresholds import AlertThresholds
from shiptwin.models.twin import DigitalTwin


class EventName(StrEnum):
    TWIN_UPDATED = "digital-twin:updated"
    ALERT = "alert"
    GEOFENCE_SET = "geofence:set"
    ALERT_RESOLVED = "alert:resolved"
    THRESHOLDS_UPDATED = "thresholds:updated"


class _EngineEvent(TwinBaseModel):
    model_config = ConfigDict(frozen=True)

    shipment_id: str
    emitted_at: UtcDatetime = Field(default_factory=utcnow)


class TwinUpdated(_EngineEvent):
    kind: Literal["digital-twin:updated"] = "digital-twin:updated"
    twin: DigitalTwin


class AlertRaised(_EngineEvent):
    kind: Literal["alert"] = "alert"
    device_id: str | None = None
    alert: Alert


class GeofenceSet(_EngineEvent):
    kind: Literal["geofence:set"] = "geofence:set"
    geofence: Geofence


class AlertResolved(_EngineEvent):
    """``automatic`` is ``True`` when the engine cleared the alert itself
    (geofence containment regained) rather than an explicit resolve call."""

    kind: Literal["alert:resolved"] = "alert:resolved"
    alert_id: str
    alert: Alert
    automatic: bool = False


class ThresholdsUpdated(_EngineEvent):
    kind: Literal["thresholds:updated"] = "thresholds:updated"
    thresholds: AlertThresholds


EngineEvent = TwinUpdated | AlertRaised | GeofenceSet | AlertResolved | ThresholdsUpdated

EVENT_TYPES: dict[EventName, type[_EngineEvent]] = {
    EventName.TWIN_UPDATED: TwinUpdated,
    EventName.ALERT: AlertRaised,
    EventName.GEOFENCE_SET: GeofenceSet,
    EventName.ALERT_RESOLVED: AlertResolved,
    EventName.THRESHOLDS_UPDATED: ThresholdsUpdated,
}


def event_name(event: EngineEvent) -> EventName:
    return EventName(event.kind)


__all__ = [
    "AlertRaised",
    "AlertResolved",
    "EVENT_TYPES",
    "EngineEvent",
    "EventName",
    "GeofenceSet",
    "ThresholdsUpdated",
    "TwinUpdated",
    "event_name",
]
