"""Tracking engine facade.

Wires the store, geofence evaluator, alert engine, ingestor and notifier
together and exposes the operations the HTTP layer calls.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from shiptwin.alerts import AlertEngine
from shiptwin.config import EngineConfig
from shiptwin.exceptions import TwinNotFoundError, TwinValidationError
from shiptwin.geofence import GeofenceEvaluator
from shiptwin.ingestion.telemetry import TelemetryIngestor
from shiptwin.models._base import utcnow
from shiptwin.models.alert import Alert
from shiptwin.models.geofence import Geofence
from shiptwin.models.telemetry import TelemetryRecord
from shiptwin.models.thresholds import AlertThresholds
from shiptwin.models.twin import DigitalTwin, LocationFix, TelemetrySample
from shiptwin.state.events import EventName
from shiptwin.state.notifier import EventHandler, EventNotifier
from shiptwin.state.store import DigitalTwinStore

_logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EngineStats:
    digital_twins: int
    active_alerts: int


class TrackingEngine:
    """In-memory digital twin engine for shipments.

    Usage::

        engine = TrackingEngine(EngineConfig.from_env())
        engine.subscribe(EventName.ALERT, forward_to_settlement)
        engine.ingest_telemetry(payload)

    All methods are synchronous and safe to call from many threads.
    """

    def __init__(
        self,
        config: EngineConfig | None = None,
        *,
        clock: Callable[[], datetime] = utcnow,
        notifier: EventNotifier | None = None,
    ) -> None:
        self._config = config or EngineConfig()
        self._notifier = notifier or EventNotifier()
        self._store = DigitalTwinStore(
            clock=clock,
            history_size=self._config.history_size,
            thresholds=self._config.thresholds,
        )
        self._alerts = AlertEngine(self._store, self._notifier, clock=clock)
        self._ingestor = TelemetryIngestor(
            self._store,
            GeofenceEvaluator(),
            self._alerts,
            self._notifier,
            clock=clock,
        )
        _logger.debug("Tracking engine initialised history_size=%d", self._config.history_size)

    @property
    def config(self) -> EngineConfig:
        return self._config

    @property
    def store(self) -> DigitalTwinStore:
        return self._store

    @property
    def notifier(self) -> EventNotifier:
        return self._notifier

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def ingest_telemetry(self, record: TelemetryRecord | Mapping[str, Any]) -> DigitalTwin:
        return self._ingestor.ingest(record)

    def set_geofence(self, shipment_id: str, geofence: Geofence | Mapping[str, Any]) -> Geofence:
        return self._alerts.set_geofence(shipment_id, geofence)

    def set_thresholds(
        self,
        shipment_id: str,
        thresholds: AlertThresholds | Mapping[str, Any] | None = None,
        **overrides: Any,
    ) -> AlertThresholds:
        return self._alerts.set_thresholds(shipment_id, thresholds, **overrides)

    def resolve_alert(self, shipment_id: str, alert_id: str) -> Alert:
        return self._alerts.resolve_alert(shipment_id, alert_id)

    # ------------------------------------------------------------------
    # Reads (snapshots)
    # ------------------------------------------------------------------

    def get_digital_twin(self, shipment_id: str) -> DigitalTwin | None:
        return self._store.get(shipment_id)

    def get_all_digital_twins(self) -> list[DigitalTwin]:
        return self._store.get_all()

    def get_active_alerts(self, shipment_id: str) -> list[Alert]:
        return self._alerts.get_active_alerts(shipment_id)

    def get_alerts(self, shipment_id: str, *, active_only: bool = False) -> list[Alert]:
        return self._alerts.get_alerts(shipment_id, active_only=active_only)

    def _existing(self, shipment_id: str, limit: int | None) -> DigitalTwin:
        if limit is not None and limit < 1:
            raise TwinValidationError(f"limit must be >= 1, got {limit}")
        twin = self._store.get(shipment_id)
        if twin is None:
            raise TwinNotFoundError(
                f"No digital twin found for shipment ID: {shipment_id}",
                shipment_id=shipment_id,
            )
        return twin

    def get_location_history(self, shipment_id: str, limit: int | None = None) -> list[LocationFix]:
        """Past locations, oldest first; *limit* keeps only the most recent ones."""
        history = self._existing(shipment_id, limit).location_history
        return history[-limit:] if limit is not None else history

    def get_telemetry_history(self, shipment_id: str, limit: int | None = None) -> list[TelemetrySample]:
        """Applied records, oldest first, including the latest one.

        Each sample holds only the values its record reported, so sensor and
        battery trends can be read back from it.
        """
        history = self._existing(shipment_id, limit).telemetry_history
        return history[-limit:] if limit is not None else history

    def stats(self) -> EngineStats:
        twins = self._store.get_all()
        return EngineStats(
            digital_twins=len(twins),
            active_alerts=sum(len(twin.active_alerts()) for twin in twins),
        )

    # ------------------------------------------------------------------
    # Observers
    # ------------------------------------------------------------------

    def subscribe(self, event_name: EventName | str, handler: EventHandler) -> Callable[[], None]:
        """Register *handler* for one event channel; return an unsubscribe callable."""
        return self._notifier.subscribe(event_name, handler)

    def subscribe_all(self, handler: EventHandler) -> Callable[[], None]:
        return self._notifier.subscribe_all(handler)
