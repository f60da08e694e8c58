"""Telemetry record model.

A :class:`TelemetryRecord` is a single timestamped reading of location plus
optional sensor/battery/signal values for one device.  Ranges mirror the
validation the HTTP layer applies before calling into the engine.
"""

from __future__ import annotations

from typing import Annotated

from pydantic import BeforeValidator, ConfigDict, Field

from shiptwin.models._base import TwinBaseModel, UtcDatetime, parse_epoch

SENSOR_FIELDS: tuple[str, ...] = ("temperature", "humidity", "vibration", "shock", "tilt")


class Coordinates(TwinBaseModel):
    """A WGS84 point in decimal degrees."""

    model_config = ConfigDict(frozen=True)

    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)


class Location(Coordinates):
    """Reported device position.

    Parameters
    ----------
    latitude : float
        Latitude in degrees, ``[-90, 90]``.
    longitude : float
        Longitude in degrees, ``[-180, 180]``.
    accuracy : float or None
        Horizontal accuracy in meters; must be positive when present.
    """

    accuracy: float | None = Field(default=None, gt=0)


class SensorReadings(TwinBaseModel):
    """Sensor values; every field is optional and independent."""

    model_config = ConfigDict(frozen=True)

    temperature: float | None = None
    humidity: float | None = Field(default=None, ge=0, le=100)
    vibration: float | None = Field(default=None, ge=0)
    shock: float | None = Field(default=None, ge=0)
    tilt: float | None = Field(default=None, ge=0, le=360)

    def reported(self) -> dict[str, float]:
        """Return only the sensors present in this reading."""
        return self.model_dump(exclude_none=True)


class SignalInfo(TwinBaseModel):
    model_config = ConfigDict(frozen=True)

    strength: float | None = Field(default=None, ge=-120, le=0)
    network: str | None = None


class TelemetryRecord(TwinBaseModel):
    """One incoming telemetry reading.

    ``timestamp`` is the device's claimed observation time.  The engine
    records it for reference but orders updates by arrival, never by this
    value.
    """

    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    shipment_id: str = Field(..., min_length=1)
    device_id: str = Field(..., min_length=1)
    timestamp: Annotated[UtcDatetime, BeforeValidator(parse_epoch)]
    location: Location
    sensors: SensorReadings | None = None
    battery: float | None = Field(default=None, ge=0, le=100)
    signal: SignalInfo | None = None
