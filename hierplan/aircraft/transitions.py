from __future__ import annotations

import heapq
import math
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from shapely.geometry import LineString, Point, Polygon

from ..core.geodesy import LocalFrame, sample_polyline
from ..core.models import GeoPosition, Orientation, TransitionResult, VehicleParameters, Waypath
from ..logging_utils import get_logger
from .dubins import shortest_path

LOGGER = get_logger(__name__)

ObstacleSet = Sequence[Sequence[GeoPosition]]
Point2 = Tuple[float, float]


class TransitionGenerator:
    """Connects two oriented points with a flyable, evenly sampled path.

    Implementations never raise for an infeasible connection; they return
    ``TransitionResult.failed()`` and leave the decision to the caller.
    """

    name = "base"

    def __init__(self, vehicle: VehicleParameters) -> None:
        self.vehicle = vehicle

    def plan(
        self,
        start_pos: GeoPosition,
        start_orientation: Orientation,
        end_pos: GeoPosition,
        end_orientation: Orientation,
        obstacles: ObstacleSet = (),
    ) -> TransitionResult:
        raise NotImplementedError


class StraightTransitionGenerator(TransitionGenerator):
    """Straight line between the endpoints; ignores headings and obstacles."""

    name = "straight"

    def plan(
        self,
        start_pos: GeoPosition,
        start_orientation: Orientation,
        end_pos: GeoPosition,
        end_orientation: Orientation,
        obstacles: ObstacleSet = (),
    ) -> TransitionResult:
        frame = LocalFrame(start_pos)
        end_xy = frame.to_local(end_pos)
        samples = sample_polyline([(0.0, 0.0), end_xy], self.vehicle.waypoint_interval_m)
        return TransitionResult(success=True, waypath=tuple(frame.to_geo(x, y) for x, y in samples))


class DubinsTransitionGenerator(TransitionGenerator):
    """Minimum-length curvature-bounded connection; obstacle-unaware."""

    name = "dubins"

    def plan(
        self,
        start_pos: GeoPosition,
        start_orientation: Orientation,
        end_pos: GeoPosition,
        end_orientation: Orientation,
        obstacles: ObstacleSet = (),
    ) -> TransitionResult:
        avg_lat = 0.5 * (start_pos.latitude + end_pos.latitude)
        frame = LocalFrame(start_pos, reference_latitude=avg_lat)
        end_x, end_y = frame.to_local(end_pos)
        interval = float(self.vehicle.waypoint_interval_m)

        path = shortest_path(
            (0.0, 0.0, start_orientation.radians),
            (end_x, end_y, end_orientation.radians),
            float(self.vehicle.min_turning_radius_m),
        )
        if path is None:
            LOGGER.debug(
                "No Dubins path from %s to %s with radius %.1fm",
                start_pos,
                end_pos,
                self.vehicle.min_turning_radius_m,
            )
            return TransitionResult.failed()

        # Last sample stays within one interval of the goal.
        poses = path.sample_many(interval)
        waypath: Waypath = tuple(frame.to_geo(x, y) for x, y, _ in poses)
        LOGGER.debug("Dubins %s path of %.1fm sampled into %d waypoints", path.word, path.length, len(waypath))
        return TransitionResult(success=True, waypath=waypath)


class ObstacleMap:
    """No-fly polygons projected into one local frame.

    A leg is clear when its interior never enters a polygon interior and it
    keeps ``margin_m`` meters from every polygon. Legs that run along an
    obstacle edge or touch a corner are allowed.
    """

    def __init__(self, frame: LocalFrame, obstacles: ObstacleSet, margin_m: float = 0.0) -> None:
        self.frame = frame
        self.margin_m = float(margin_m)
        self.polygons: List[Polygon] = []
        for vertices in obstacles:
            poly = Polygon(frame.polygon_to_local(vertices))
            if not poly.is_valid:
                poly = poly.buffer(0)
            if not poly.is_empty:
                self.polygons.append(poly)

    def leg_clear(self, a: Point2, b: Point2) -> bool:
        leg = LineString([a, b]) if a != b else Point(a)
        for poly in self.polygons:
            if leg.relate_pattern(poly, "T********"):
                return False
            if self.margin_m > 0.0 and leg.distance(poly) < self.margin_m:
                return False
        return True

    def corners(self) -> List[Point2]:
        # Pushed out past the margin so legs between them stay clear.
        offset = max(1.0, self.margin_m + 5.0)
        nodes: List[Point2] = []
        for poly in self.polygons:
            grown = poly.buffer(offset, join_style="mitre")
            for part in getattr(grown, "geoms", [grown]):
                nodes.extend((float(x), float(y)) for x, y in part.exterior.coords[:-1])
        return nodes

    def route(self, start: Point2, goal: Point2) -> Optional[List[Point2]]:
        """Shortest clear polyline from ``start`` to ``goal`` over obstacle corners."""

        if self.leg_clear(start, goal):
            return [start, goal]

        nodes = [start, goal] + self.corners()
        best = [math.inf] * len(nodes)
        came_from: Dict[int, int] = {}
        best[0] = 0.0
        open_set: List[Tuple[float, int]] = [(0.0, 0)]
        done = set()

        while open_set:
            cost, u = heapq.heappop(open_set)
            if u in done:
                continue
            if u == 1:
                break
            done.add(u)
            for v, node in enumerate(nodes):
                if v in done or v == u:
                    continue
                step = math.dist(nodes[u], node)
                if cost + step < best[v] and self.leg_clear(nodes[u], node):
                    best[v] = cost + step
                    came_from[v] = u
                    heapq.heappush(open_set, (best[v], v))

        if not math.isfinite(best[1]):
            return None
        path = [1]
        while path[-1] != 0:
            path.append(came_from[path[-1]])
        return [nodes[i] for i in reversed(path)]


class VisibilityTransitionGenerator(TransitionGenerator):
    """Obstacle-aware variant routing around no-fly polygons.

    Headings are not enforced; the route is the shortest polyline over the
    grown corners of the no-fly polygons, resampled at the waypoint interval.
    """

    name = "visibility"

    def __init__(self, vehicle: VehicleParameters, margin_m: float = 0.0) -> None:
        super().__init__(vehicle)
        self.margin_m = float(margin_m)

    def plan(
        self,
        start_pos: GeoPosition,
        start_orientation: Orientation,
        end_pos: GeoPosition,
        end_orientation: Orientation,
        obstacles: ObstacleSet = (),
    ) -> TransitionResult:
        frame = LocalFrame(start_pos, reference_latitude=0.5 * (start_pos.latitude + end_pos.latitude))
        route = ObstacleMap(frame, obstacles, self.margin_m).route((0.0, 0.0), frame.to_local(end_pos))
        if route is None:
            LOGGER.debug("No obstacle-free route from %s to %s", start_pos, end_pos)
            return TransitionResult.failed()
        samples = sample_polyline(route, self.vehicle.waypoint_interval_m)
        return TransitionResult(success=True, waypath=tuple(frame.to_geo(x, y) for x, y in samples))


TRANSITION_GENERATORS: Dict[str, Callable[..., TransitionGenerator]] = {
    StraightTransitionGenerator.name: StraightTransitionGenerator,
    DubinsTransitionGenerator.name: DubinsTransitionGenerator,
    VisibilityTransitionGenerator.name: VisibilityTransitionGenerator,
}


def available_transition_generators() -> List[str]:
    return sorted(TRANSITION_GENERATORS.keys())


def build_transition_generator(name: str, vehicle: VehicleParameters, **options) -> TransitionGenerator:
    factory = TRANSITION_GENERATORS.get(str(name).lower())
    if factory is None:
        raise KeyError(f"Unknown transition planner '{name}'")
    return factory(vehicle, **options)
