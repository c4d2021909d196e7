from __future__ import annotations

import pytest

from hierplan.aircraft.anchors import select_anchor
from hierplan.aircraft.subflight import (
    CoveragePlanner,
    PerimeterPlanner,
    TaskTypeSubFlightPlanner,
    build_subflight_planner,
)
from hierplan.core import PlanningError
from hierplan.core.geodesy import distance_m
from hierplan.core.models import FlightTask, GeoPosition, TaskArea, VehicleParameters

VEHICLE = VehicleParameters(min_turning_radius_m=0.0)


def _square(task_type: str, **params) -> TaskArea:
    polygon = (
        GeoPosition(10.0, 45.0),
        GeoPosition(10.004, 45.0),
        GeoPosition(10.004, 45.003),
        GeoPosition(10.0, 45.003),
    )
    return TaskArea("sq", polygon, task_type, FlightTask("sq_task", task_type, dict(params)))


def _plan(planner, area: TaskArea):
    anchor = select_anchor(area, GeoPosition(9.9, 44.9))
    return anchor, planner.plan(area.task, area, anchor.entry, anchor.orientation)


def _assert_spacing(waypath) -> None:
    for a, b in zip(waypath, waypath[1:]):
        assert distance_m(a, b) <= VEHICLE.waypoint_interval_m + 0.05


def test_coverage_starts_at_entry_with_bounded_spacing() -> None:
    area = _square("coverage", track_spacing_m=50.0)
    anchor, waypath = _plan(CoveragePlanner(VEHICLE), area)
    assert waypath[0] == anchor.entry
    assert len(waypath) > 20
    _assert_spacing(waypath)


def test_tighter_tracks_mean_longer_coverage() -> None:
    _, wide = _plan(CoveragePlanner(VEHICLE), _square("coverage", track_spacing_m=100.0))
    _, tight = _plan(CoveragePlanner(VEHICLE), _square("coverage", track_spacing_m=40.0))
    assert len(tight) > len(wide)


def test_coverage_rejects_non_positive_spacing() -> None:
    area = _square("coverage", track_spacing_m=0.0)
    with pytest.raises(PlanningError):
        _plan(CoveragePlanner(VEHICLE), area)


def test_perimeter_lap_length() -> None:
    area = _square("perimeter")
    anchor, waypath = _plan(PerimeterPlanner(VEHICLE), area)
    assert waypath[0] == anchor.entry
    _assert_spacing(waypath)
    perimeter = sum(distance_m(a, b) for a, b in zip(area.polygon, area.polygon[1:] + area.polygon[:1]))
    assert len(waypath) == pytest.approx(perimeter / VEHICLE.waypoint_interval_m, abs=2.0)


def test_dispatch_by_task_type() -> None:
    planner = build_subflight_planner(VEHICLE)
    assert isinstance(planner, TaskTypeSubFlightPlanner)
    _, lap = _plan(planner, _square("perimeter"))
    _, direct = _plan(PerimeterPlanner(VEHICLE), _square("perimeter"))
    assert lap == direct
    # Unknown task types fall back to the default planner.
    _, fallback = _plan(planner, _square("photo"))
    _, coverage = _plan(CoveragePlanner(VEHICLE), _square("coverage"))
    assert fallback == coverage


def test_unknown_default_planner() -> None:
    with pytest.raises(KeyError):
        build_subflight_planner(VEHICLE, default="spiral")
