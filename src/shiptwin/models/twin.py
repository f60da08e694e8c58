"""Digital twin model."""

from __future__ import annotations

from pydantic import ConfigDict, Field

from shiptwin.models._base import TwinBaseModel, UtcDatetime
from shiptwin.models.alert import Alert, AlertType
from shiptwin.models.geofence import Geofence
from shiptwin.models.telemetry import SensorReadings, SignalInfo
from shiptwin.models.thresholds import AlertThresholds


class LocationFix(TwinBaseModel):
    """A location as recorded by the engine.

    ``observed_at`` is the engine clock at ingestion time, not the device's
    claimed timestamp.
    """

    model_config = ConfigDict(frozen=True)

    latitude: float
    longitude: float
    accuracy: float | None = None
    observed_at: UtcDatetime


class TelemetrySample(TwinBaseModel):
    """One applied telemetry record, kept in the twin's telemetry history.

    Holds only what that record reported; ``sensors`` is not merged with
    earlier readings.  ``timestamp`` is the device's claimed time and
    ``location.observed_at`` the engine clock.
    """

    model_config = ConfigDict(frozen=True)

    device_id: str
    timestamp: UtcDatetime
    location: LocationFix
    sensors: SensorReadings | None = None
    battery: float | None = None
    signal: SignalInfo | None = None


class DigitalTwin(TwinBaseModel):
    """Live state mirroring one physical shipment.

    ``device_id`` and ``current_location`` are ``None`` only for a twin
    created by configuration (geofence/thresholds) before its first
    telemetry arrived.
    """

    shipment_id: str
    device_id: str | None = None
    created_at: UtcDatetime
    last_updated: UtcDatetime
    last_reported_at: UtcDatetime | None = None
    current_location: LocationFix | None = None
    location_history: list[LocationFix] = Field(default_factory=list)
    telemetry_history: list[TelemetrySample] = Field(default_factory=list)
    latest_sensors: SensorReadings = Field(default_factory=SensorReadings)
    battery_level: float | None = None
    signal: SignalInfo | None = None
    geofence: Geofence | None = None
    inside_geofence: bool | None = None
    thresholds: AlertThresholds = Field(default_factory=AlertThresholds)
    alerts: list[Alert] = Field(default_factory=list)

    def snapshot(self) -> DigitalTwin:
        """Detached copy.

        Every nested model except alerts is frozen, so only the lists and the
        alerts are copied; history entries are shared with the live twin.
        """
        return self.model_copy(
            update={
                "location_history": list(self.location_history),
                "telemetry_history": list(self.telemetry_history),
                "alerts": [alert.model_copy() for alert in self.alerts],
            }
        )

    def active_alerts(self) -> list[Alert]:
        """Unresolved alerts in creation order."""
        return [alert for alert in self.alerts if not alert.resolved]

    def active_alert(self, alert_type: AlertType) -> Alert | None:
        for alert in self.alerts:
            if not alert.resolved and alert.type == alert_type:
                return alert
        return None

    def find_alert(self, alert_id: str) -> Alert | None:
        for alert in self.alerts:
            if alert.id == alert_id:
                return alert
        return None
