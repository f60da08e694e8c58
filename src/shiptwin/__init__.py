"""shiptwin - in-memory digital twin and alerting engine for shipment telemetry."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("shiptwin")
except PackageNotFoundError:
    __version__ = "0+local"
from shiptwin.alerts import AlertEngine
from shiptwin.config import EngineConfig
from shiptwin.engine import EngineStats, TrackingEngine
from shiptwin.exceptions import (
    TwinConfigError,
    TwinError,
    TwinNotFoundError,
    TwinValidationError,
)
from shiptwin.geofence import ContainmentResult, GeofenceEvaluator, haversine_m
from shiptwin.ingestion import TelemetryIngestor
from shiptwin.models import (
    Alert,
    AlertSeverity,
    AlertThresholds,
    AlertType,
    Coordinates,
    DigitalTwin,
    Geofence,
    Location,
    LocationFix,
    SensorReadings,
    SignalInfo,
    TelemetryRecord,
    TelemetrySample,
    Zone,
)
from shiptwin.state.events import (
    AlertRaised,
    AlertResolved,
    EngineEvent,
    EventName,
    GeofenceSet,
    ThresholdsUpdated,
    TwinUpdated,
)
from shiptwin.state.notifier import EventNotifier
from shiptwin.state.store import DigitalTwinStore
from shiptwin.webhook import WebhookForwarder

__all__ = [
    "__version__",
    "Alert",
    "AlertEngine",
    "AlertRaised",
    "AlertResolved",
    "AlertSeverity",
    "AlertThresholds",
    "AlertType",
    "ContainmentResult",
    "Coordinates",
    "DigitalTwin",
    "DigitalTwinStore",
    "EngineConfig",
    "EngineEvent",
    "EngineStats",
    "EventName",
    "EventNotifier",
    "Geofence",
    "GeofenceEvaluator",
    "GeofenceSet",
    "Location",
    "LocationFix",
    "SensorReadings",
    "SignalInfo",
    "TelemetryIngestor",
    "TelemetryRecord",
    "TelemetrySample",
    "ThresholdsUpdated",
    "TrackingEngine",
    "TwinConfigError",
    "TwinError",
    "TwinNotFoundError",
    "TwinUpdated",
    "TwinValidationError",
    "WebhookForwarder",
    "Zone",
    "haversine_m",
]
