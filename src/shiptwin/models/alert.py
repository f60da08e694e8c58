"""Alert models.

Alerts form a closed tagged union discriminated by ``type``.  Each variant
is mutable: the alert engine refreshes an open alert in place on repeated
breaches and flips ``resolved`` exactly once.
"""

from __future__ import annotations

from datetime import datetime
from enum import StrEnum
from typing import Annotated, Literal

from pydantic import Field

from shiptwin.models._base import TwinBaseModel, UtcDatetime


class AlertType(StrEnum):
    TEMPERATURE = "temperature"
    HUMIDITY = "humidity"
    VIBRATION = "vibration"
    SHOCK = "shock"
    BATTERY = "battery"
    GEOFENCE = "geofence"


class AlertSeverity(StrEnum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class BaseAlert(TwinBaseModel):
    id: str
    severity: AlertSeverity
    message: str
    value: float | None = None
    threshold: str
    created_at: UtcDatetime
    updated_at: UtcDatetime
    occurrences: int = Field(default=1, ge=1)
    resolved: bool = False
    resolved_at: UtcDatetime | None = None

    def mark_resolved(self, now: datetime) -> bool:
        """Resolve the alert; return ``False`` when it was already resolved."""
        if self.resolved:
            return False
        self.resolved = True
        self.resolved_at = now
        return True


class TemperatureAlert(BaseAlert):
    type: Literal["temperature"] = "temperature"
    value: float


class HumidityAlert(BaseAlert):
    type: Literal["humidity"] = "humidity"
    value: float


class VibrationAlert(BaseAlert):
    type: Literal["vibration"] = "vibration"
    value: float


class ShockAlert(BaseAlert):
    type: Literal["shock"] = "shock"
    value: float


class BatteryAlert(BaseAlert):
    type: Literal["battery"] = "battery"
    value: float


class GeofenceAlert(BaseAlert):
    """Raised when the shipment is outside every configured zone.

    ``value`` is the distance in meters to the nearest zone boundary.
    """

    type: Literal["geofence"] = "geofence"


Alert = Annotated[
    TemperatureAlert | HumidityAlert | VibrationAlert | ShockAlert | BatteryAlert | GeofenceAlert,
    Field(discriminator="type"),
]

ALERT_CLASSES: dict[AlertType, type[BaseAlert]] = {
    AlertType.TEMPERATURE: TemperatureAlert,
    AlertType.HUMIDITY: HumidityAlert,
    AlertType.VIBRATION: VibrationAlert,
    AlertType.SHOCK: ShockAlert,
    AlertType.BATTERY: BatteryAlert,
    AlertType.GEOFENCE: GeofenceAlert,
}
