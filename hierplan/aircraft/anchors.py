from __future__ import annotations

import math
from typing import Dict, List, Optional, Sequence, Tuple

from shapely.geometry import Point, Polygon

from ..core.errors import GeometryError
from ..core.geodesy import heading_between, squared_distance_m2
from ..core.models import AnchorPoint, GeoPosition, TaskArea
from ..logging_utils import get_logger

LOGGER = get_logger(__name__)

ANGLE_STEPS_DEG = 179
RAY_DIVISIONS = 100.0
MAX_RAY_STEPS = 10 * int(RAY_DIVISIONS)
REFINE_ITERATIONS = 30


def _area_polygon(area: TaskArea) -> Polygon:
    poly = Polygon(area.vertices())
    if poly.is_empty or not poly.is_valid or poly.area <= 0.0:
        raise GeometryError(f"Area '{area.area_id}' has a degenerate or self-intersecting polygon")
    return poly


def _march_ray(
    poly: Polygon,
    center: Tuple[float, float],
    direction: Tuple[float, float],
    step: float,
) -> Tuple[float, float]:
    """First sample along the ray that falls outside ``poly``, snapped to the boundary."""

    inside_t = 0.0
    for count in range(MAX_RAY_STEPS + 1):
        t = step * count
        trial = (center[0] + direction[0] * t, center[1] + direction[1] * t)
        if poly.contains(Point(trial)):
            inside_t = t
            continue
        if count == 0:
            return trial
        lo, hi = inside_t, t
        for _ in range(REFINE_ITERATIONS):
            mid = 0.5 * (lo + hi)
            if poly.contains(Point(center[0] + direction[0] * mid, center[1] + direction[1] * mid)):
                lo = mid
            else:
                hi = mid
        return center[0] + direction[0] * hi, center[1] + direction[1] * hi
    raise GeometryError("ray search never left the polygon")


def diameter_endpoints(area: TaskArea) -> Tuple[GeoPosition, GeoPosition]:
    """Approximate the two polygon boundary points that lie farthest apart.

    Rays are cast both ways from the bounding-rectangle center at one-degree
    steps over a half turn; the crossing pair with the largest separation wins.
    When that center falls outside a concave area, an interior point is used.
    """

    poly = _area_polygon(area)
    min_lon, min_lat, max_lon, max_lat = area.bounding_rect()
    center = area.bounding_center().as_tuple()
    if not poly.contains(Point(center)):
        # Concave shapes can put the box center outside the area.
        inner = poly.representative_point()
        center = (inner.x, inner.y)
    step = max(max_lon - min_lon, max_lat - min_lat) / RAY_DIVISIONS
    if step <= 0.0:
        raise GeometryError(f"Area '{area.area_id}' has zero extent")

    most_distance = -1.0
    best: Optional[Tuple[GeoPosition, GeoPosition]] = None
    for angle_deg in range(ANGLE_STEPS_DEG):
        angle = math.radians(angle_deg)
        direction = (math.cos(angle), math.sin(angle))
        try:
            pos = _march_ray(poly, center, direction, step)
            neg = _march_ray(poly, center, (-direction[0], -direction[1]), step)
        except GeometryError as exc:
            raise GeometryError(f"Area '{area.area_id}': {exc}") from exc

        p1 = GeoPosition(*pos)
        p2 = GeoPosition(*neg)
        distance = squared_distance_m2(p1, p2)
        if distance > most_distance:
            most_distance = distance
            best = (p1, p2)

    if best is None or most_distance <= 0.0:
        raise GeometryError(f"Area '{area.area_id}': no distinct boundary crossings found")
    return best


def _manhattan(a: GeoPosition, b: GeoPosition) -> float:
    return abs(a.longitude - b.longitude) + abs(a.latitude - b.latitude)


def areas_center(areas: Sequence[TaskArea]) -> GeoPosition:
    if not areas:
        return GeoPosition(0.0, 0.0)
    centers = [a.bounding_center() for a in areas]
    return GeoPosition(
        sum(c.longitude for c in centers) / len(centers),
        sum(c.latitude for c in centers) / len(centers),
    )


def select_anchor(area: TaskArea, reference: GeoPosition) -> AnchorPoint:
    point1, point2 = diameter_endpoints(area)
    entry, exit_ = point2, point1
    if _manhattan(point1, reference) < _manhattan(point2, reference):
        entry, exit_ = point1, point2
    return AnchorPoint(
        area_id=area.area_id,
        entry=entry,
        exit=exit_,
        orientation=heading_between(entry, exit_),
    )


def select_anchors(areas: Sequence[TaskArea]) -> Dict[str, AnchorPoint]:
    """Entry/exit anchors for every schedulable area, keyed by area id."""

    task_areas: List[TaskArea] = [a for a in areas if not a.is_obstacle]
    reference = areas_center(task_areas)
    anchors: Dict[str, AnchorPoint] = {}
    for area in task_areas:
        anchor = select_anchor(area, reference)
        LOGGER.debug(
            "Anchor for %s: entry %s exit %s heading %.1fdeg",
            area.area_id,
            anchor.entry,
            anchor.exit,
            anchor.orientation.degrees,
        )
        anchors[area.area_id] = anchor
    return anchors
