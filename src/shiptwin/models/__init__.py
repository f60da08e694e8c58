"""Data models for shipment twins, telemetry, geofences and alerts."""

from shiptwin.models._base import TwinBaseModel, UtcDatetime, ensure_utc, utcnow
from shiptwin.models.alert import (
    ALERT_CLASSES,
    Alert,
    AlertSeverity,
    AlertType,
    BaseAlert,
    BatteryAlert,
    GeofenceAlert,
    HumidityAlert,
    ShockAlert,
    TemperatureAlert,
    VibrationAlert,
)
from shiptwin.models.geofence import Geofence, Zone
from shiptwin.models.telemetry import (
    SENSOR_FIELDS,
    Coordinates,
    Location,
    SensorReadings,
    SignalInfo,
    TelemetryRecord,
)
from shiptwin.models.thresholds import AlertThresholds
from shiptwin.models.twin import DigitalTwin, LocationFix, TelemetrySample

__all__ = [
    "ALERT_CLASSES",
    "Alert",
    "AlertSeverity",
    "AlertThresholds",
    "AlertType",
    "BaseAlert",
    "BatteryAlert",
    "Coordinates",
    "DigitalTwin",
    "Geofence",
    "GeofenceAlert",
    "HumidityAlert",
    "Location",
    "LocationFix",
    "SENSOR_FIELDS",
    "SensorReadings",
    "ShockAlert",
    "SignalInfo",
    "TelemetryRecord",
    "TelemetrySample",
    "TemperatureAlert",
    "TwinBaseModel",
    "UtcDatetime",
    "VibrationAlert",
    "Zone",
    "ensure_utc",
    "utcnow",
]
