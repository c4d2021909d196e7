from __future__ import annotations

import math
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

import numpy as np

from .models import GeoPosition, Orientation

WGS84_A_M = 6378137.0
WGS84_E2 = 6.69437999014e-3


def meters_per_degree_lat(lat_deg: float) -> float:
    phi = math.radians(lat_deg)
    return 111132.92 - 559.82 * math.cos(2.0 * phi) + 1.175 * math.cos(4.0 * phi) - 0.0023 * math.cos(6.0 * phi)


def meters_per_degree_lon(lat_deg: float) -> float:
    phi = math.radians(lat_deg)
    return 111412.84 * math.cos(phi) - 93.5 * math.cos(3.0 * phi) + 0.118 * math.cos(5.0 * phi)


def degrees_lat_per_meter(lat_deg: float) -> float:
    return 1.0 / meters_per_degree_lat(lat_deg)


def degrees_lon_per_meter(lat_deg: float) -> float:
    # Clamp near the poles where a degree of longitude collapses to nothing.
    return 1.0 / max(1e-6, meters_per_degree_lon(lat_deg))


def lla_to_xyz(position: GeoPosition, alt_m: float = 0.0) -> np.ndarray:
    lat = math.radians(position.latitude)
    lon = math.radians(position.longitude)
    n = WGS84_A_M / math.sqrt(1.0 - WGS84_E2 * math.sin(lat) ** 2)
    x = (n + alt_m) * math.cos(lat) * math.cos(lon)
    y = (n + alt_m) * math.cos(lat) * math.sin(lon)
    z = (n * (1.0 - WGS84_E2) + alt_m) * math.sin(lat)
    return np.array([x, y, z], dtype=float)


def squared_distance_m2(a: GeoPosition, b: GeoPosition) -> float:
    delta = lla_to_xyz(a) - lla_to_xyz(b)
    return float(np.dot(delta, delta))


@dataclass(frozen=True)
class LocalFrame:
    """Flat east/north approximation around ``origin``.

    The degrees-per-meter factors are taken at ``reference_latitude`` (the
    origin's latitude when omitted), which keeps short transitions accurate to
    well under a meter.
    """

    origin: GeoPosition
    reference_latitude: Optional[float] = None

    @property
    def _ref_lat(self) -> float:
        if self.reference_latitude is None:
            return float(self.origin.latitude)
        return float(self.reference_latitude)

    def to_local(self, position: GeoPosition) -> Tuple[float, float]:
        x = (position.longitude - self.origin.longitude) / degrees_lon_per_meter(self._ref_lat)
        y = (position.latitude - self.origin.latitude) / degrees_lat_per_meter(self._ref_lat)
        return float(x), float(y)

    def to_geo(self, x_m: float, y_m: float) -> GeoPosition:
        return GeoPosition(
            self.origin.longitude + float(x_m) * degrees_lon_per_meter(self._ref_lat),
            self.origin.latitude + float(y_m) * degrees_lat_per_meter(self._ref_lat),
        )

    def polygon_to_local(self, vertices: Sequence[GeoPosition]) -> List[Tuple[float, float]]:
        return [self.to_local(v) for v in vertices]


def heading_between(a: GeoPosition, b: GeoPosition) -> Orientation:
    frame = LocalFrame(a, reference_latitude=0.5 * (a.latitude + b.latitude))
    x, y = frame.to_local(b)
    return Orientation.of(math.atan2(y, x))


def distance_m(a: GeoPosition, b: GeoPosition) -> float:
    frame = LocalFrame(a, reference_latitude=0.5 * (a.latitude + b.latitude))
    x, y = frame.to_local(b)
    return math.hypot(x, y)


def polyline_length(points_xy: Sequence[Tuple[float, float]]) -> float:
    if len(points_xy) < 2:
        return 0.0
    pts = np.asarray(points_xy, dtype=float)
    return float(np.sum(np.hypot(np.diff(pts[:, 0]), np.diff(pts[:, 1]))))


def sample_polyline(points_xy: Sequence[Tuple[float, float]], interval_m: float) -> List[Tuple[float, float]]:
    """Resample a polyline at exact arc-length multiples of ``interval_m``.

    The first vertex is always kept; the tail shorter than one interval is
    dropped, matching the fixed-spacing waypoint convention.
    """

    if not points_xy:
        return []
    if interval_m <= 0.0:
        raise ValueError("interval_m must be > 0")
    pts = np.asarray(points_xy, dtype=float)
    if len(pts) == 1:
        return [(float(pts[0, 0]), float(pts[0, 1]))]

    seg_len = np.hypot(np.diff(pts[:, 0]), np.diff(pts[:, 1]))
    cum = np.concatenate([[0.0], np.cumsum(seg_len)])
    total = float(cum[-1])
    count = int(math.floor(total / interval_m + 1e-9)) + 1
    samples: List[Tuple[float, float]] = []
    seg = 0
    for i in range(count):
        s = min(i * interval_m, total)
        while seg < len(seg_len) - 1 and cum[seg + 1] < s:
            seg += 1
        length = float(seg_len[seg])
        frac = 0.0 if length <= 1e-12 else (s - float(cum[seg])) / length
        x = pts[seg, 0] + frac * (pts[seg + 1, 0] - pts[seg, 0])
        y = pts[seg, 1] + frac * (pts[seg + 1, 1] - pts[seg, 1])
        samples.append((float(x), float(y)))
    return samples
