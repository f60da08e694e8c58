from __future__ import annotations

from datetime import UTC, datetime

import pytest

from shiptwin.geofence import GeofenceEvaluator, contains, haversine_m
from shiptwin.models.geofence import Geofence
from shiptwin.models.twin import DigitalTwin, LocationFix


def _dt() -> datetime:
    return datetime(2026, 1, 1, tzinfo=UTC)


def _twin(lat: float, lon: float, geofence: Geofence | None) -> DigitalTwin:
    return DigitalTwin(
        shipment_id="S1",
        device_id="D1",
        created_at=_dt(),
        last_updated=_dt(),
        current_location=LocationFix(latitude=lat, longitude=lon, observed_at=_dt()),
        geofence=geofence,
    )


def _fence(radius: float, *zones: dict) -> Geofence:
    return Geofence.model_validate(
        {"center": {"latitude": 0, "longitude": 0}, "radius": radius, "allowedZones": list(zones)}
    )


def test_haversine_one_degree_of_longitude_on_equator() -> None:
    assert haversine_m(0, 0, 0, 1) == pytest.approx(111_195, rel=1e-4)


def test_haversine_is_symmetric_and_zero_for_same_point() -> None:
    assert haversine_m(51.9, 4.4, 40.7, -74.0) == pytest.approx(haversine_m(40.7, -74.0, 51.9, 4.4))
    assert haversine_m(10, 10, 10, 10) == 0


def test_point_exactly_on_boundary_is_inside() -> None:
    radius = haversine_m(0.0, 0.01, 0.0, 0.0)
    geofence = _fence(radius)

    assert contains(geofence, 0.0, 0.01)
    result = GeofenceEvaluator().evaluate(_twin(0.0, 0.01, geofence))
    assert result.configured
    assert result.inside
    assert not result.violated


def test_point_outside_primary_reports_distance_to_boundary() -> None:
    geofence = _fence(1000)
    result = GeofenceEvaluator().evaluate(_twin(0.0, 0.018, geofence))

    assert result.violated
    expected = haversine_m(0.0, 0.018, 0.0, 0.0) - 1000
    assert result.distance_outside_m == pytest.approx(expected)


def test_allowed_zone_satisfies_containment() -> None:
    geofence = _fence(1000, {"latitude": 1.0, "longitude": 1.0, "radius": 500})

    assert contains(geofence, 1.0, 1.001)
    assert not contains(geofence, 2.0, 2.0)


def test_nearest_zone_used_for_distance() -> None:
    geofence = _fence(1000, {"latitude": 0.0, "longitude": 0.05, "radius": 100})
    result = GeofenceEvaluator().evaluate(_twin(0.0, 0.052, geofence))

    expected = haversine_m(0.0, 0.052, 0.0, 0.05) - 100
    assert result.distance_outside_m == pytest.approx(expected)


def test_twin_without_geofence_or_location_is_unconfigured() -> None:
    evaluator = GeofenceEvaluator()
    assert not evaluator.evaluate(_twin(10, 10, None)).configured

    no_location = DigitalTwin(shipment_id="S1", created_at=_dt(), last_updated=_dt(), geofence=_fence(10))
    result = evaluator.evaluate(no_location)
    assert not result.configured
    assert result.inside
