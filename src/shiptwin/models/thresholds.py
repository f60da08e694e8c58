"""Alert threshold table."""

from __future__ import annotations

from pydantic import ConfigDict, Field, model_validator

from shiptwin.models._base import TwinBaseModel


class AlertThresholds(TwinBaseModel):
    """Threshold values used by the alert rules.

    Defaults are the fixed table the tracking service has always used:
    temperature outside -20..60 °C, humidity above 80 %, vibration above
    5 g, shock above 10 g, battery below 20 % (critical below 10 %).

    ``battery_critical`` only rates the severity of a battery breach and is
    independent of ``battery_min``: with ``battery_min`` at or below it,
    every battery breach is critical.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    temperature_min: float = -20.0
    temperature_max: float = 60.0
    humidity_max: float = Field(default=80.0, ge=0, le=100)
    vibration_max: float = Field(default=5.0, ge=0)
    shock_max: float = Field(default=10.0, ge=0)
    battery_min: float = Field(default=20.0, ge=0, le=100)
    battery_critical: float = Field(default=10.0, ge=0, le=100)

    @model_validator(mode="after")
    def _check_bounds(self) -> AlertThresholds:
        if self.temperature_min >= self.temperature_max:
            raise ValueError("temperature_min must be below temperature_max")
        return self
