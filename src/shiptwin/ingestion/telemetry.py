"""Telemetry ingestion.

One record is applied to its twin as a single atomic unit under the
shipment lock:

1. fetch or create the twin
2. make the reported location current, pushing the old one into history,
   and append the record to the telemetry history
3. merge sensors, battery and signal (omitted values stay as they were)
4. stamp ``last_updated`` with the engine clock
5. evaluate the geofence, then the alert rules
6. emit ``digital-twin:updated``

Records are applied in arrival order.  The record's own ``timestamp`` is
kept as ``last_reported_at`` but never used for ordering.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from datetime import datetime
from typing import Any

from shiptwin.alerts import AlertEngine
from shiptwin.geofence import GeofenceEvaluator
from shiptwin.ingestion.normalize import coerce_record, merge_signal, reported_readings
from shiptwin.models._base import utcnow
from shiptwin.models.telemetry import TelemetryRecord
from shiptwin.models.twin import DigitalTwin, LocationFix, TelemetrySample
from shiptwin.state.events import TwinUpdated
from shiptwin.state.notifier import EventNotifier
from shiptwin.state.store import DigitalTwinStore

_logger = logging.getLogger(__name__)


class TelemetryIngestor:
    """Merge telemetry records into twins and drive evaluation."""

    def __init__(
        self,
        store: DigitalTwinStore,
        evaluator: GeofenceEvaluator,
        alert_engine: AlertEngine,
        notifier: EventNotifier,
        *,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._store = store
        self._evaluator = evaluator
        self._alerts = alert_engine
        self._notifier = notifier
        self._clock = clock

    def ingest(self, record: TelemetryRecord | Mapping[str, Any]) -> DigitalTwin:
        """Apply *record*; return a snapshot of the updated twin.

        Raises
        ------
        TwinValidationError
            The record is invalid.  Raised before the twin is touched.
        """
        validated = coerce_record(record)
        shipment_id = validated.shipment_id

        with self._notifier.deferred(), self._store.edit(shipment_id, validated.device_id) as twin:
            now = self._clock()
            self._merge(twin, validated, now)
            containment = self._evaluator.evaluate(twin)
            self._alerts.evaluate_and_raise(twin, containment, fresh=reported_readings(validated).keys())
            snapshot = twin.snapshot()
            self._notifier.emit(TwinUpdated(shipment_id=shipment_id, twin=snapshot))

        _logger.debug(
            "Telemetry applied shipment=%s device=%s location=(%s, %s) history=%d",
            shipment_id,
            validated.device_id,
            validated.location.latitude,
            validated.location.longitude,
            len(snapshot.location_history),
        )
        return snapshot

    def _merge(self, twin: DigitalTwin, record: TelemetryRecord, now: datetime) -> None:
        if twin.device_id != record.device_id:
            if twin.device_id is not None:
                _logger.info(
                    "Device changed shipment=%s old=%s new=%s",
                    twin.shipment_id,
                    twin.device_id,
                    record.device_id,
                )
            twin.device_id = record.device_id

        location = record.location
        fix = LocationFix(
            latitude=location.latitude,
            longitude=location.longitude,
            accuracy=location.accuracy,
            observed_at=now,
        )
        self._store.push_location(twin, fix)
        self._store.push_sample(
            twin,
            TelemetrySample(
                device_id=record.device_id,
                timestamp=record.timestamp,
                location=fix,
                sensors=record.sensors,
                battery=record.battery,
                signal=record.signal,
            ),
        )

        if record.sensors is not None:
            patch = record.sensors.reported()
            if patch:
                twin.latest_sensors = twin.latest_sensors.model_copy(update=patch)
        if record.battery is not None:
            twin.battery_level = record.battery
        twin.signal = merge_signal(twin.signal, record.signal)

        twin.last_updated = now
        twin.last_reported_at = record.timestamp
