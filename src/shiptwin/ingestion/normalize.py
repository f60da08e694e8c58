"""Normalization helpers for incoming telemetry."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from shiptwin.models._base import validate_as
from shiptwin.models.telemetry import SignalInfo, TelemetryRecord


def coerce_record(record: TelemetryRecord | Mapping[str, Any]) -> TelemetryRecord:
    """Validate a record even if the caller already did.

    Raises :class:`shiptwin.exceptions.TwinValidationError` on missing
    fields or out-of-range values.
    """
    return validate_as(TelemetryRecord, record, "telemetry")


def reported_readings(record: TelemetryRecord) -> dict[str, float]:
    """Sensor and battery values actually present in *record*."""
    readings: dict[str, float] = record.sensors.reported() if record.sensors is not None else {}
    if record.battery is not None:
        readings["battery"] = record.battery
    return readings


def merge_signal(current: SignalInfo | None, incoming: SignalInfo | None) -> SignalInfo | None:
    """Field-wise sticky merge: omitted signal fields keep their last value."""
    if incoming is None:
        return current
    if current is None:
        return incoming
    return current.model_copy(update=incoming.model_dump(exclude_none=True))
