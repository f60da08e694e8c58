"""Deterministic alert policy.

Pure functions mapping readings to threshold breaches.  No state, no
deduplication; the alert engine decides what a breach does to a twin.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass

from shiptwin.models.alert import AlertSeverity, AlertType
from shiptwin.models.thresholds import AlertThresholds

GEOFENCE_THRESHOLD_TEXT = "outside geofence boundary"


@dataclass(frozen=True)
class Breach:
    """One rule whose condition currently holds."""

    type: AlertType
    severity: AlertSeverity
    value: float | None
    threshold: str
    message: str


def _num(value: float) -> str:
    return f"{value:g}"


def temperature_breach(value: float, thresholds: AlertThresholds) -> Breach | None:
    low, high = thresholds.temperature_min, thresholds.temperature_max
    if low <= value <= high:
        return None
    below = value < low
    return Breach(
        type=AlertType.TEMPERATURE,
        severity=AlertSeverity.CRITICAL if below else AlertSeverity.HIGH,
        value=value,
        threshold=f"below {_num(low)}°C" if below else f"above {_num(high)}°C",
        message=f"Temperature {_num(value)}°C is outside safe range ({_num(low)}°C to {_num(high)}°C)",
    )


def humidity_breach(value: float, thresholds: AlertThresholds) -> Breach | None:
    limit = thresholds.humidity_max
    if value <= limit:
        return None
    return Breach(
        type=AlertType.HUMIDITY,
        severity=AlertSeverity.MEDIUM,
        value=value,
        threshold=f"above {_num(limit)}%",
        message=f"Humidity {_num(value)}% exceeds maximum threshold of {_num(limit)}%",
    )


def vibration_breach(value: float, thresholds: AlertThresholds) -> Breach | None:
    limit = thresholds.vibration_max
    if value <= limit:
        return None
    return Breach(
        type=AlertType.VIBRATION,
        severity=AlertSeverity.HIGH,
        value=value,
        threshold=f"above {_num(limit)}g",
        message=f"Vibration {_num(value)}g exceeds maximum threshold of {_num(limit)}g",
    )


def shock_breach(value: float, thresholds: AlertThresholds) -> Breach | None:
    limit = thresholds.shock_max
    if value <= limit:
        return None
    return Breach(
        type=AlertType.SHOCK,
        severity=AlertSeverity.CRITICAL,
        value=value,
        threshold=f"above {_num(limit)}g",
        message=f"Shock {_num(value)}g exceeds maximum threshold of {_num(limit)}g",
    )


def battery_breach(value: float, thresholds: AlertThresholds) -> Breach | None:
    limit = thresholds.battery_min
    if value >= limit:
        return None
    return Breach(
        type=AlertType.BATTERY,
        severity=AlertSeverity.CRITICAL if value < thresholds.battery_critical else AlertSeverity.MEDIUM,
        value=value,
        threshold=f"below {_num(limit)}%",
        message=f"Battery level {_num(value)}% is below minimum threshold of {_num(limit)}%",
    )


def geofence_breach(distance_outside_m: float) -> Breach:
    return Breach(
        type=AlertType.GEOFENCE,
        severity=AlertSeverity.HIGH,
        value=round(distance_outside_m, 1),
        threshold=GEOFENCE_THRESHOLD_TEXT,
        message=(
            "Shipment has left the designated geofence area "
            f"({_num(round(distance_outside_m, 1))} m outside the nearest zone)"
        ),
    )


# Rule table keyed by reading name; ``battery`` sits alongside the sensors.
_RULES = {
    "temperature": temperature_breach,
    "humidity": humidity_breach,
    "vibration": vibration_breach,
    "shock": shock_breach,
    "battery": battery_breach,
}


def reading_breaches(readings: Mapping[str, float | None], thresholds: AlertThresholds) -> list[Breach]:
    """Evaluate every rule whose reading is present, in rule-table order.

    ``tilt`` and other readings without a rule are ignored.
    """
    breaches: list[Breach] = []
    for name, rule in _RULES.items():
        value = readings.get(name)
        if value is None:
            continue
        breach = rule(value, thresholds)
        if breach is not None:
            breaches.append(breach)
    return breaches
