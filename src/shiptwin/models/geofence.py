"""Geofence models."""

from __future__ import annotations

from typing import Any

from pydantic import ConfigDict, Field, model_validator

from shiptwin.models._base import TwinBaseModel
from shiptwin.models.telemetry import Coordinates


class Zone(TwinBaseModel):
    """A circular zone: ``center`` plus ``radius`` in meters (boundary inclusive)."""

    model_config = ConfigDict(frozen=True)

    center: Coordinates
    radius: float = Field(..., gt=0)

    @model_validator(mode="before")
    @classmethod
    def _accept_flat_center(cls, values: Any) -> Any:
        # Allowed zones are also sent flat: {"latitude", "longitude", "radius"}.
        if not isinstance(values, dict) or "center" in values:
            return values
        if "latitude" in values or "longitude" in values:
            working = dict(values)
            working["center"] = {
                "latitude": working.pop("latitude", None),
                "longitude": working.pop("longitude", None),
            }
            return working
        return values


class Geofence(Zone):
    """Primary zone plus optional additional allowed zones.

    A point is contained when it lies inside the primary circle OR any
    allowed zone.
    """

    allowed_zones: tuple[Zone, ...] = Field(default_factory=tuple)

    def zones(self) -> tuple[Zone, ...]:
        primary = Zone(center=self.center, radius=self.radius)
        return (primary, *self.allowed_zones)
