"""Geofence containment.

Pure geometry: great-circle distance from a point to each zone center,
compared against the zone radius (boundary inclusive).
"""

from __future__ import annotations

import math
from dataclasses import dataclass

from shiptwin.models.geofence import Geofence, Zone
from shiptwin.models.twin import DigitalTwin

#: Mean Earth radius in meters.
EARTH_RADIUS_M: float = 6_371_000.0


def haversine_m(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Great-circle distance between two points in meters."""
    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    d_phi = math.radians(lat2 - lat1)
    d_lambda = math.radians(lon2 - lon1)
    a = math.sin(d_phi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    # Clamp: rounding can push a a hair above 1 for antipodal points.
    a = min(1.0, max(0.0, a))
    return 2 * EARTH_RADIUS_M * math.atan2(math.sqrt(a), math.sqrt(1 - a))


def distance_to_zone_m(zone: Zone, latitude: float, longitude: float) -> float:
    """Signed distance to the zone boundary: ``<= 0`` inside, ``> 0`` outside."""
    center = zone.center
    return haversine_m(latitude, longitude, center.latitude, center.longitude) - zone.radius


def contains(geofence: Geofence, latitude: float, longitude: float) -> bool:
    """Return ``True`` when the point is inside the primary zone or any allowed zone."""
    return any(distance_to_zone_m(zone, latitude, longitude) <= 0 for zone in geofence.zones())


@dataclass(frozen=True)
class ContainmentResult:
    """Outcome of a containment check.

    ``configured`` is ``False`` when the twin has no geofence or no location
    yet; such a twin is reported as inside.  ``distance_outside_m`` is the
    distance to the nearest zone boundary when outside, else ``0.0``.
    """

    configured: bool
    inside: bool
    distance_outside_m: float = 0.0

    @property
    def violated(self) -> bool:
        return self.configured and not self.inside


_UNCONFIGURED = ContainmentResult(configured=False, inside=True)


class GeofenceEvaluator:
    """Classify a twin's current location against its geofence."""

    def evaluate(self, twin: DigitalTwin) -> ContainmentResult:
        geofence = twin.geofence
        location = twin.current_location
        if geofence is None or location is None:
            return _UNCONFIGURED

        nearest = min(
            distance_to_zone_m(zone, location.latitude, location.longitude) for zone in geofence.zones()
        )
        if nearest <= 0:
            return ContainmentResult(configured=True, inside=True)
        return ContainmentResult(configured=True, inside=False, distance_outside_m=nearest)
