"""Concurrency-safe in-memory store of digital twins.

This is the only component that creates twins or hands out mutable access
to them.  Every twin has its own re-entrant lock: operations on different
shipments proceed in parallel, operations on the same shipment are
serialized in the order they acquire the lock.  Readers always receive deep
snapshots taken under that lock.
"""

from __future__ import annotations

import contextlib
import logging
import threading
from collections.abc import Callable, Iterator
from datetime import datetime
from typing import Any

from shiptwin.config import DEFAULT_HISTORY_SIZE
from shiptwin.exceptions import TwinNotFoundError
from shiptwin.models._base import utcnow
from shiptwin.models.thresholds import AlertThresholds
from shiptwin.models.twin import DigitalTwin, LocationFix, TelemetrySample

_logger = logging.getLogger(__name__)


def _restore(target: DigitalTwin, backup: DigitalTwin) -> None:
    """Copy every field of *backup* onto *target* (in place, identity preserved)."""
    for name in type(target).model_fields:
        setattr(target, name, getattr(backup, name))


class DigitalTwinStore:
    """Keyed store of :class:`DigitalTwin` objects.

    Twins are created lazily and never evicted.  Iteration order is
    insertion order.
    """

    def __init__(
        self,
        *,
        clock: Callable[[], datetime] = utcnow,
        history_size: int = DEFAULT_HISTORY_SIZE,
        thresholds: AlertThresholds | None = None,
    ) -> None:
        self._clock = clock
        self._history_size = history_size
        self._default_thresholds = thresholds or AlertThresholds()
        self._table_lock = threading.Lock()
        self._twins: dict[str, DigitalTwin] = {}
        self._locks: dict[str, threading.RLock] = {}

    @property
    def default_thresholds(self) -> AlertThresholds:
        return self._default_thresholds

    @property
    def history_size(self) -> int:
        return self._history_size

    def __len__(self) -> int:
        with self._table_lock:
            return len(self._twins)

    def __contains__(self, shipment_id: object) -> bool:
        with self._table_lock:
            return shipment_id in self._twins

    def shipment_ids(self) -> list[str]:
        with self._table_lock:
            return list(self._twins)

    def _entry(
        self,
        shipment_id: str,
        device_id: str | None,
        *,
        create: bool,
    ) -> tuple[threading.RLock, DigitalTwin] | None:
        with self._table_lock:
            twin = self._twins.get(shipment_id)
            if twin is not None:
                return self._locks[shipment_id], twin
            if not create:
                return None
            now = self._clock()
            twin = DigitalTwin(
                shipment_id=shipment_id,
                device_id=device_id,
                created_at=now,
                last_updated=now,
                thresholds=self._default_thresholds,
            )
            lock = threading.RLock()
            self._twins[shipment_id] = twin
            self._locks[shipment_id] = lock
        _logger.debug("Digital twin created shipment=%s device=%s", shipment_id, device_id)
        return lock, twin

    def lock(self, shipment_id: str) -> threading.RLock | None:
        """Return the lock guarding *shipment_id*, or ``None`` if unknown."""
        with self._table_lock:
            return self._locks.get(shipment_id)

    def get(self, shipment_id: str) -> DigitalTwin | None:
        entry = self._entry(shipment_id, None, create=False)
        if entry is None:
            return None
        lock, twin = entry
        with lock:
            return twin.snapshot()

    def get_all(self) -> list[DigitalTwin]:
        with self._table_lock:
            entries = [(self._locks[key], twin) for key, twin in self._twins.items()]
        snapshots: list[DigitalTwin] = []
        for lock, twin in entries:
            with lock:
                snapshots.append(twin.snapshot())
        return snapshots

    def get_or_create(self, shipment_id: str, device_id: str | None = None) -> DigitalTwin:
        """Return a snapshot of the twin, creating it atomically if needed."""
        entry = self._entry(shipment_id, device_id, create=True)
        assert entry is not None  # noqa: S101
        lock, twin = entry
        with lock:
            return twin.snapshot()

    @contextlib.contextmanager
    def edit(
        self,
        shipment_id: str,
        device_id: str | None = None,
        *,
        create: bool = True,
    ) -> Iterator[DigitalTwin]:
        """Yield the live twin with its lock held.

        The block is one atomic unit: if it raises, every field of the twin
        is put back as it was before the block.
        """
        entry = self._entry(shipment_id, device_id, create=create)
        if entry is None:
            raise TwinNotFoundError(
                f"No digital twin found for shipment ID: {shipment_id}",
                shipment_id=shipment_id,
            )
        lock, twin = entry
        with lock:
            backup = twin.snapshot()
            try:
                yield twin
            except BaseException:
                _restore(twin, backup)
                _logger.debug("Rolled back twin mutation shipment=%s", shipment_id, exc_info=True)
                raise

    def _trim(self, history: list[Any]) -> None:
        overflow = len(history) - self._history_size
        if overflow > 0:
            del history[:overflow]

    def push_location(self, twin: DigitalTwin, fix: LocationFix) -> None:
        """Make *fix* current, moving the previous location into bounded history.

        Callers must hold the twin's lock (i.e. be inside :meth:`edit`).
        """
        previous = twin.current_location
        if previous is not None:
            twin.location_history.append(previous)
            self._trim(twin.location_history)
        twin.current_location = fix

    def push_sample(self, twin: DigitalTwin, sample: TelemetrySample) -> None:
        """Append *sample* to the bounded telemetry history (lock held)."""
        twin.telemetry_history.append(sample)
        self._trim(twin.telemetry_history)
