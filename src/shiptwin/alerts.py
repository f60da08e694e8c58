"""Alert engine: threshold rules, deduplication and the resolution lifecycle.

Lifecycle rules:

* at most one unresolved alert per ``(shipment, type)``; a repeated breach
  refreshes the open alert in place and emits nothing
* sensor and battery alerts stay open until :meth:`AlertEngine.resolve_alert`
* geofence alerts resolve themselves once containment is regained
* ``resolved_at`` is written once, on the first resolution
"""

from __future__ import annotations

import logging
import secrets
from collections.abc import Callable, Collection, Mapping
from datetime import datetime
from typing import Any

from shiptwin.exceptions import TwinNotFoundError
from shiptwin.geofence import ContainmentResult
from shiptwin.models._base import utcnow, validate_as
from shiptwin.models.alert import ALERT_CLASSES, Alert, AlertType
from shiptwin.models.geofence import Geofence
from shiptwin.models.thresholds import AlertThresholds
from shiptwin.models.twin import DigitalTwin
from shiptwin.state.events import AlertRaised, AlertResolved, GeofenceSet, ThresholdsUpdated
from shiptwin.state.notifier import EventNotifier
from shiptwin.state.policy import Breach, geofence_breach, reading_breaches
from shiptwin.state.store import DigitalTwinStore

_logger = logging.getLogger(__name__)


def coerce_geofence(geofence: Geofence | Mapping[str, Any]) -> Geofence:
    """Validate *geofence* (model or JSON mapping) into a :class:`Geofence`."""
    return validate_as(Geofence, geofence, "geofence")


class AlertEngine:
    """Raises, refreshes and resolves alerts on twins held in a store."""

    def __init__(
        self,
        store: DigitalTwinStore,
        notifier: EventNotifier,
        *,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._store = store
        self._notifier = notifier
        self._clock = clock

    # ------------------------------------------------------------------
    # Evaluation (caller holds the twin lock)
    # ------------------------------------------------------------------

    def evaluate_and_raise(
        self,
        twin: DigitalTwin,
        containment: ContainmentResult,
        *,
        fresh: Collection[str] | None = None,
    ) -> list[Alert]:
        """Apply every rule to *twin*; return the alerts created or refreshed.

        *fresh* names the readings reported by the record being ingested.
        Only those are checked, so a sticky value carried over from an
        earlier reading cannot reopen an alert that was resolved explicitly.
        ``None`` checks every known reading.
        """
        readings: dict[str, float | None] = twin.latest_sensors.model_dump()
        readings["battery"] = twin.battery_level
        if fresh is not None:
            readings = {name: value for name, value in readings.items() if name in fresh}

        touched: list[Alert] = []
        for breach in reading_breaches(readings, twin.thresholds):
            touched.append(self._raise(twin, breach))

        if containment.configured:
            twin.inside_geofence = containment.inside
        if containment.violated:
            touched.append(self._raise(twin, geofence_breach(containment.distance_outside_m)))
        elif containment.configured:
            self._auto_resolve_geofence(twin)
        return touched

    def _new_alert_id(self, twin: DigitalTwin, now: datetime) -> str:
        while True:
            alert_id = f"{int(now.timestamp() * 1000)}-{secrets.token_hex(5)}"
            if twin.find_alert(alert_id) is None:
                return alert_id

    def _raise(self, twin: DigitalTwin, breach: Breach) -> Alert:
        now = self._clock()
        existing = twin.active_alert(breach.type)
        if existing is not None:
            existing.value = breach.value
            existing.severity = breach.severity
            existing.message = breach.message
            existing.threshold = breach.threshold
            existing.updated_at = now
            existing.occurrences += 1
            _logger.debug(
                "Alert refreshed shipment=%s type=%s value=%s occurrences=%d",
                twin.shipment_id,
                breach.type,
                breach.value,
                existing.occurrences,
            )
            return existing

        alert = ALERT_CLASSES[breach.type](
            id=self._new_alert_id(twin, now),
            severity=breach.severity,
            message=breach.message,
            value=breach.value,
            threshold=breach.threshold,
            created_at=now,
            updated_at=now,
        )
        twin.alerts.append(alert)
        _logger.warning(
            "Alert raised shipment=%s device=%s type=%s severity=%s value=%s threshold=%s",
            twin.shipment_id,
            twin.device_id,
            breach.type,
            breach.severity,
            breach.value,
            breach.threshold,
        )
        self._notifier.emit(
            AlertRaised(
                shipment_id=twin.shipment_id,
                device_id=twin.device_id,
                alert=alert.model_copy(deep=True),
            )
        )
        return alert

    def _auto_resolve_geofence(self, twin: DigitalTwin) -> None:
        alert = twin.active_alert(AlertType.GEOFENCE)
        if alert is None:
            return
        if alert.mark_resolved(self._clock()):
            _logger.info("Geofence alert auto-resolved shipment=%s alert=%s", twin.shipment_id, alert.id)
            self._emit_resolved(twin, alert, automatic=True)

    def _emit_resolved(self, twin: DigitalTwin, alert: Alert, *, automatic: bool) -> None:
        self._notifier.emit(
            AlertResolved(
                shipment_id=twin.shipment_id,
                alert_id=alert.id,
                alert=alert.model_copy(deep=True),
                automatic=automatic,
            )
        )

    # ------------------------------------------------------------------
    # Operations (take the twin lock themselves)
    # ------------------------------------------------------------------

    def resolve_alert(self, shipment_id: str, alert_id: str) -> Alert:
        """Resolve an alert explicitly.

        Resolving an already-resolved alert is a no-op that still succeeds;
        ``resolved_at`` keeps its first value.

        Raises
        ------
        TwinNotFoundError
            The shipment or the alert does not exist.
        """
        with self._notifier.deferred(), self._store.edit(shipment_id, create=False) as twin:
            alert = twin.find_alert(alert_id)
            if alert is None:
                raise TwinNotFoundError(
                    f"No alert {alert_id} for shipment ID: {shipment_id}",
                    shipment_id=shipment_id,
                    alert_id=alert_id,
                )
            if alert.mark_resolved(self._clock()):
                _logger.info("Alert resolved shipment=%s alert=%s type=%s", shipment_id, alert_id, alert.type)
                self._emit_resolved(twin, alert, automatic=False)
            else:
                _logger.debug("Alert already resolved shipment=%s alert=%s", shipment_id, alert_id)
            return alert.model_copy(deep=True)

    def set_geofence(self, shipment_id: str, geofence: Geofence | Mapping[str, Any]) -> Geofence:
        """Attach *geofence* to the twin, creating the twin if needed.

        Evaluation waits for the next telemetry ingest.
        """
        validated = coerce_geofence(geofence)
        with self._notifier.deferred(), self._store.edit(shipment_id) as twin:
            twin.geofence = validated
            _logger.info(
                "Geofence configured shipment=%s center=(%s, %s) radius=%s zones=%d",
                shipment_id,
                validated.center.latitude,
                validated.center.longitude,
                validated.radius,
                len(validated.allowed_zones),
            )
            self._notifier.emit(GeofenceSet(shipment_id=shipment_id, geofence=validated))
        return validated

    def set_thresholds(
        self,
        shipment_id: str,
        thresholds: AlertThresholds | Mapping[str, Any] | None = None,
        **overrides: Any,
    ) -> AlertThresholds:
        """Override the threshold table of one shipment.

        Unspecified values keep the twin's current thresholds.  New values
        apply from the next telemetry ingest; open alerts are left alone.
        """
        patch: dict[str, Any] = {}
        if isinstance(thresholds, AlertThresholds):
            patch.update(thresholds.model_dump())
        elif thresholds is not None:
            patch.update(thresholds)
        patch.update(overrides)

        # Validate before locking so a rejected patch never creates a twin.
        current = self._store.get(shipment_id)
        base = current.thresholds if current is not None else self._store.default_thresholds
        self._merge_thresholds(base, patch)

        with self._notifier.deferred(), self._store.edit(shipment_id) as twin:
            merged = self._merge_thresholds(twin.thresholds, patch)
            twin.thresholds = merged
            _logger.info("Thresholds updated shipment=%s", shipment_id)
            self._notifier.emit(ThresholdsUpdated(shipment_id=shipment_id, thresholds=merged))
        return merged

    @staticmethod
    def _merge_thresholds(base: AlertThresholds, patch: Mapping[str, Any]) -> AlertThresholds:
        # Accept camelCase keys too; unknown keys are left for validation to reject.
        names = {field.alias or name: name for name, field in AlertThresholds.model_fields.items()}
        normalized = {names.get(key, key): value for key, value in patch.items()}
        return validate_as(AlertThresholds, {**base.model_dump(), **normalized}, "thresholds")

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_alerts(self, shipment_id: str, *, active_only: bool = False) -> list[Alert]:
        twin = self._store.get(shipment_id)
        if twin is None:
            raise TwinNotFoundError(
                f"No digital twin found for shipment ID: {shipment_id}",
                shipment_id=shipment_id,
            )
        return twin.active_alerts() if active_only else list(twin.alerts)

    def get_active_alerts(self, shipment_id: str) -> list[Alert]:
        """Unresolved alerts in creation order."""
        return self.get_alerts(shipment_id, active_only=True)
