from __future__ import annotations

import math
from typing import Optional, Sequence

from ..logging_utils import get_logger
from .errors import InterpolationError
from .geodesy import degrees_lat_per_meter, degrees_lon_per_meter
from .models import AIRSPEED, EVERY_X_METERS, GeoPosition, InterpolationResult, Orientation

LOGGER = get_logger(__name__)


def interpolate_path(
    path: Optional[Sequence[GeoPosition]],
    start_orientation: Orientation,
    elapsed_s: float,
    spacing_m: float = EVERY_X_METERS,
    airspeed_mps: float = AIRSPEED,
) -> InterpolationResult:
    """Position and heading of a vehicle flying ``path`` after ``elapsed_s``.

    Every consecutive waypoint pair counts as one segment of ``spacing_m``
    meters flown at ``airspeed_mps``: the vehicle advances that nominal
    distance along the segment's direction whatever its real length. Asking
    for a time past the end of the path extrapolates along the last segment
    and flags the result instead of failing.
    """

    if path is None:
        raise InterpolationError("Can't interpolate: path is None")
    if elapsed_s is None or not math.isfinite(float(elapsed_s)) or float(elapsed_s) < 0.0:
        raise InterpolationError(f"Can't interpolate: bad time {elapsed_s!r}")
    if len(path) == 0:
        raise InterpolationError("Can't interpolate: empty path")
    if len(path) == 1:
        return InterpolationResult(position=path[0], orientation=start_orientation, extrapolated=elapsed_s > 0.0)

    goal_s = float(elapsed_s)
    segment_s = float(spacing_m) / float(airspeed_mps)
    time_so_far = 0.0
    result: InterpolationResult | None = None

    for i in range(1, len(path)):
        pos = path[i]
        last_pos = path[i - 1]
        time_so_far = i * segment_s
        if time_so_far < goal_s and i != len(path) - 1:
            continue

        last_time = time_so_far - segment_s
        ratio = (goal_s - last_time) / segment_s
        lon_per_m = degrees_lon_per_meter(pos.latitude)
        lat_per_m = degrees_lat_per_meter(pos.latitude)
        dx_m = (pos.longitude - last_pos.longitude) / lon_per_m
        dy_m = (pos.latitude - last_pos.latitude) / lat_per_m
        norm = math.hypot(dx_m, dy_m)
        if norm <= 1e-9:
            # Zero-length segment: hold position and heading.
            position = last_pos
            orientation = start_orientation
        else:
            dist_m = float(spacing_m) * ratio
            position = GeoPosition(
                last_pos.longitude + dist_m * dx_m / norm * lon_per_m,
                last_pos.latitude + dist_m * dy_m / norm * lat_per_m,
            )
            orientation = Orientation.of(math.atan2(dy_m, dx_m))
        result = InterpolationResult(position=position, orientation=orientation, extrapolated=time_so_far < goal_s)
        break

    assert result is not None
    if result.extrapolated:
        LOGGER.debug(
            "Interpolating past end of path: goal %.2fs but path only reaches %.2fs",
            goal_s,
            time_so_far,
        )
    return result
