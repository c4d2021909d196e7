from __future__ import annotations

import math

import pytest

from hierplan.core.geodesy import (
    LocalFrame,
    distance_m,
    heading_between,
    meters_per_degree_lat,
    polyline_length,
    sample_polyline,
    squared_distance_m2,
)
from hierplan.core.models import GeoPosition, Orientation


def test_meters_per_degree_latitude_at_equator() -> None:
    assert abs(meters_per_degree_lat(0.0) - 110574.27) < 0.1


def test_local_frame_round_trip() -> None:
    frame = LocalFrame(GeoPosition(-122.01, 37.41))
    p = GeoPosition(-122.0042, 37.4157)
    x, y = frame.to_local(p)
    back = frame.to_geo(x, y)
    assert abs(back.longitude - p.longitude) < 1e-9
    assert abs(back.latitude - p.latitude) < 1e-9
    assert x > 0.0 and y > 0.0


def test_distance_and_heading_along_meridian() -> None:
    a = GeoPosition(10.0, 45.0)
    b = GeoPosition(10.0, 45.001)
    assert abs(distance_m(a, b) - 0.001 * meters_per_degree_lat(45.0005)) < 1e-6
    assert abs(heading_between(a, b).radians - math.pi / 2.0) < 1e-9
    assert abs(heading_between(a, GeoPosition(10.001, 45.0)).radians) < 1e-9


def test_squared_distance_is_symmetric() -> None:
    a = GeoPosition(10.0, 45.0)
    b = GeoPosition(10.01, 45.02)
    assert squared_distance_m2(a, a) == 0.0
    assert squared_distance_m2(a, b) == pytest.approx(squared_distance_m2(b, a))
    assert squared_distance_m2(a, b) > 0.0


def test_orientation_wraps_into_half_open_interval() -> None:
    assert Orientation.of(3.0 * math.pi / 2.0).radians == pytest.approx(-math.pi / 2.0)
    assert Orientation.of(-math.pi).radians == pytest.approx(math.pi)
    assert Orientation.from_degrees(90.0).degrees == pytest.approx(90.0)


def test_sample_polyline_exact_spacing_and_tail_drop() -> None:
    samples = sample_polyline([(0.0, 0.0), (100.0, 0.0)], 30.0)
    assert samples == [(0.0, 0.0), (30.0, 0.0), (60.0, 0.0), (90.0, 0.0)]


def test_sample_polyline_turns_corners() -> None:
    samples = sample_polyline([(0.0, 0.0), (30.0, 0.0), (30.0, 30.0)], 20.0)
    assert len(samples) == 4
    assert samples[2] == pytest.approx((30.0, 10.0))
    assert samples[3] == pytest.approx((30.0, 30.0))
    assert polyline_length([(0.0, 0.0), (30.0, 0.0), (30.0, 30.0)]) == pytest.approx(60.0)


def test_sample_polyline_rejects_bad_interval() -> None:
    with pytest.raises(ValueError):
        sample_polyline([(0.0, 0.0), (1.0, 0.0)], 0.0)
    assert sample_polyline([], 30.0) == []
