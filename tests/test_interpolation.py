from __future__ import annotations

import logging
import math

import pytest

from hierplan.core import InterpolationError, interpolate_path
from hierplan.core.geodesy import degrees_lat_per_meter
from hierplan.core.models import GeoPosition, Orientation

# Waypoints 30 m apart heading north.
STEP_DEG = 30.0 * degrees_lat_per_meter(45.0)
SEGMENT_S = 30.0 / 14.0


def _north_path(n: int = 4) -> list[GeoPosition]:
    return [GeoPosition(10.0, 45.0 + STEP_DEG * i) for i in range(n)]


def _north_offset(position: GeoPosition) -> float:
    return position.latitude - 45.0


def test_time_zero_is_first_waypoint() -> None:
    path = _north_path()
    result = interpolate_path(path, Orientation(0.0), 0.0)
    assert result.position == path[0]
    assert result.orientation.radians == pytest.approx(math.pi / 2.0)
    assert not result.extrapolated


def test_midpoint_of_second_segment() -> None:
    path = _north_path()
    result = interpolate_path(path, Orientation(0.0), 1.5 * SEGMENT_S)
    assert _north_offset(result.position) == pytest.approx(1.5 * STEP_DEG, rel=1e-6)
    assert result.position.longitude == 10.0
    assert not result.extrapolated


def test_exact_waypoint_time_lands_on_waypoint() -> None:
    path = _north_path()
    result = interpolate_path(path, Orientation(0.0), 2.0 * SEGMENT_S)
    assert _north_offset(result.position) == pytest.approx(_north_offset(path[2]), rel=1e-6)


def test_long_segment_is_flown_at_nominal_spacing() -> None:
    # The first segment is 90 m long but still counts as one 30 m interval.
    path = [GeoPosition(10.0, 45.0), GeoPosition(10.0, 45.0 + 3.0 * STEP_DEG), GeoPosition(10.0, 45.0 + 4.0 * STEP_DEG)]
    result = interpolate_path(path, Orientation(0.0), 0.5 * SEGMENT_S)
    assert _north_offset(result.position) == pytest.approx(0.5 * STEP_DEG, rel=1e-6)


def test_zero_length_segment_holds_position_and_heading() -> None:
    path = [GeoPosition(10.0, 45.0), GeoPosition(10.0, 45.0)]
    result = interpolate_path(path, Orientation(0.7), 0.5 * SEGMENT_S)
    assert result.position == path[0]
    assert result.orientation == Orientation(0.7)


def test_heading_follows_segment_direction() -> None:
    path = [GeoPosition(10.0 + STEP_DEG * i, 45.0) for i in range(3)]
    result = interpolate_path(path, Orientation(1.0), 0.5 * SEGMENT_S)
    assert result.orientation.radians == pytest.approx(0.0, abs=1e-9)


def test_past_end_extrapolates_and_logs(caplog: pytest.LogCaptureFixture) -> None:
    caplog.set_level(logging.DEBUG, logger="hierplan.core.interpolation")
    path = _north_path()
    result = interpolate_path(path, Orientation(0.0), 10.0 * SEGMENT_S)
    assert result.extrapolated
    assert _north_offset(result.position) == pytest.approx(10.0 * STEP_DEG, rel=1e-6)
    assert any("past end" in rec.getMessage() for rec in caplog.records)


def test_single_waypoint_keeps_start_orientation() -> None:
    only = GeoPosition(1.0, 2.0)
    result = interpolate_path([only], Orientation(0.5), 0.0)
    assert result.position == only
    assert result.orientation == Orientation(0.5)
    assert not result.extrapolated
    assert interpolate_path([only], Orientation(0.5), 3.0).extrapolated


def test_custom_spacing_and_airspeed() -> None:
    path = _north_path()
    # One 10 m interval per second.
    result = interpolate_path(path, Orientation(0.0), 1.0, spacing_m=10.0, airspeed_mps=10.0)
    assert _north_offset(result.position) == pytest.approx(STEP_DEG / 3.0, rel=1e-6)


@pytest.mark.parametrize("path, elapsed", [(None, 0.0), ([], 0.0), (_north_path(), -1.0), (_north_path(), float("nan"))])
def test_bad_input_raises(path, elapsed) -> None:
    with pytest.raises(InterpolationError):
        interpolate_path(path, Orientation(0.0), elapsed)


def test_interpolation_error_is_value_error() -> None:
    assert issubclass(InterpolationError, ValueError)
