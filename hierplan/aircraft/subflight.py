"""Ideal interior flights for single task areas.

These planners are independent of scheduling: each one turns a task area and
its entry anchor into a fixed-spacing waypath that starts at the entry point.
"""

from __future__ import annotations

import math
from typing import Callable, Dict, List, Tuple

import numpy as np
from shapely.geometry import LineString, Point, Polygon

from ..core.errors import PlanningError
from ..core.geodesy import LocalFrame, sample_polyline
from ..core.models import FlightTask, GeoPosition, Orientation, TaskArea, VehicleParameters, Waypath
from ..logging_utils import get_logger

LOGGER = get_logger(__name__)

DEFAULT_TRACK_SPACING_M = 60.0


class SubFlightPlanner:
    def __init__(self, vehicle: VehicleParameters) -> None:
        self.vehicle = vehicle

    def plan(
        self,
        task: FlightTask,
        area: TaskArea,
        entry: GeoPosition,
        entry_orientation: Orientation,
    ) -> Waypath:
        raise NotImplementedError

    def _to_waypath(self, frame: LocalFrame, points_xy: List[Tuple[float, float]]) -> Waypath:
        samples = sample_polyline(points_xy, self.vehicle.waypoint_interval_m)
        return tuple(frame.to_geo(x, y) for x, y in samples)


def _rotation(angle_rad: float) -> np.ndarray:
    c = math.cos(angle_rad)
    s = math.sin(angle_rad)
    return np.array([[c, -s], [s, c]])


class CoveragePlanner(SubFlightPlanner):
    """Boustrophedon sweep advancing along the entry heading.

    Rows run perpendicular to the entry heading and are spaced by the task's
    ``track_spacing_m`` parameter; the first waypoint is the entry point.
    """

    def plan(
        self,
        task: FlightTask,
        area: TaskArea,
        entry: GeoPosition,
        entry_orientation: Orientation,
    ) -> Waypath:
        spacing = float(task.parameters.get("track_spacing_m", DEFAULT_TRACK_SPACING_M))
        if spacing <= 0.0:
            raise PlanningError(f"Task '{task.task_id}' track_spacing_m must be > 0")

        frame = LocalFrame(entry)
        # (u, v): u along the entry heading, v to its left.
        to_uv = _rotation(-entry_orientation.radians)
        from_uv = _rotation(entry_orientation.radians)
        local = np.asarray(frame.polygon_to_local(area.polygon), dtype=float)
        poly_uv = Polygon(local @ to_uv.T)
        if not poly_uv.is_valid:
            poly_uv = poly_uv.buffer(0)

        min_u, min_v, max_u, max_v = poly_uv.bounds
        points_uv: List[Tuple[float, float]] = [(0.0, 0.0)]
        reverse = False
        u = max(0.0, min_u)
        while u <= max_u + 1e-9:
            row = poly_uv.intersection(LineString([(u, min_v - 1.0), (u, max_v + 1.0)]))
            if not row.is_empty:
                lo, hi = row.bounds[1], row.bounds[3]
                ends = [(u, lo), (u, hi)]
                if reverse:
                    ends.reverse()
                points_uv.extend(ends)
                reverse = not reverse
            u += spacing

        points_xy = [tuple(from_uv @ np.array(p)) for p in points_uv]
        waypath = self._to_waypath(frame, [(float(x), float(y)) for x, y in points_xy])
        LOGGER.debug("Coverage of %s: %d rows, %d waypoints", area.area_id, len(points_uv) // 2, len(waypath))
        return waypath


class PerimeterPlanner(SubFlightPlanner):
    """One lap of the area boundary starting and ending at the entry point."""

    def plan(
        self,
        task: FlightTask,
        area: TaskArea,
        entry: GeoPosition,
        entry_orientation: Orientation,
    ) -> Waypath:
        frame = LocalFrame(entry)
        ring = LineString(frame.polygon_to_local(area.polygon) + [frame.to_local(area.polygon[0])])
        start = ring.project(Point(0.0, 0.0))
        length = ring.length
        steps = max(2, int(math.ceil(length / max(1.0, self.vehicle.waypoint_interval_m))))
        points_xy: List[Tuple[float, float]] = [(0.0, 0.0)]
        for i in range(1, steps + 1):
            p = ring.interpolate((start + length * i / steps) % length)
            points_xy.append((float(p.x), float(p.y)))
        return self._to_waypath(frame, points_xy)


SUBFLIGHT_PLANNERS: Dict[str, Callable[[VehicleParameters], SubFlightPlanner]] = {
    "coverage": CoveragePlanner,
    "perimeter": PerimeterPlanner,
}


class TaskTypeSubFlightPlanner(SubFlightPlanner):
    """Dispatches to a concrete planner by the area's task type."""

    def __init__(self, vehicle: VehicleParameters, default: str = "coverage") -> None:
        super().__init__(vehicle)
        self.default = default
        self._planners: Dict[str, SubFlightPlanner] = {}

    def _planner_for(self, task_type: str) -> SubFlightPlanner:
        key = str(task_type).lower()
        if key not in SUBFLIGHT_PLANNERS:
            key = self.default
        if key not in self._planners:
            self._planners[key] = SUBFLIGHT_PLANNERS[key](self.vehicle)
        return self._planners[key]

    def plan(
        self,
        task: FlightTask,
        area: TaskArea,
        entry: GeoPosition,
        entry_orientation: Orientation,
    ) -> Waypath:
        return self._planner_for(task.task_type).plan(task, area, entry, entry_orientation)


def build_subflight_planner(vehicle: VehicleParameters, default: str = "coverage") -> SubFlightPlanner:
    if default not in SUBFLIGHT_PLANNERS:
        raise KeyError(f"Unknown sub-flight planner '{default}'")
    return TaskTypeSubFlightPlanner(vehicle, default=default)
