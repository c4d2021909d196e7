"""Shortest curvature-bounded paths between two oriented points.

Implements the six Dubins path families (LSL, LSR, RSL, RSR, RLR, LRL) in a
flat metric frame. Headings use the ``atan2(dy, dx)`` convention. A radius of
zero models a vehicle that can turn on the spot; the path then degenerates to
the straight segment between the two points.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Tuple

Pose = Tuple[float, float, float]

LEFT = "L"
STRAIGHT = "S"
RIGHT = "R"

PATH_WORDS: Dict[str, Tuple[str, str, str]] = {
    "LSL": (LEFT, STRAIGHT, LEFT),
    "LSR": (LEFT, STRAIGHT, RIGHT),
    "RSL": (RIGHT, STRAIGHT, LEFT),
    "RSR": (RIGHT, STRAIGHT, RIGHT),
    "RLR": (RIGHT, LEFT, RIGHT),
    "LRL": (LEFT, RIGHT, LEFT),
}


def mod2pi(theta: float) -> float:
    return theta - 2.0 * math.pi * math.floor(theta / (2.0 * math.pi))


@dataclass(frozen=True)
class _Intermediate:
    alpha: float
    beta: float
    d: float
    sa: float
    sb: float
    ca: float
    cb: float
    c_ab: float
    d_sq: float


Params = Optional[Tuple[float, float, float]]


def _lsl(v: _Intermediate) -> Params:
    tmp0 = v.d + v.sa - v.sb
    p_sq = 2.0 + v.d_sq - 2.0 * v.c_ab + 2.0 * v.d * (v.sa - v.sb)
    if p_sq < 0.0:
        return None
    tmp1 = math.atan2(v.cb - v.ca, tmp0)
    return mod2pi(tmp1 - v.alpha), math.sqrt(p_sq), mod2pi(v.beta - tmp1)


def _rsr(v: _Intermediate) -> Params:
    tmp0 = v.d - v.sa + v.sb
    p_sq = 2.0 + v.d_sq - 2.0 * v.c_ab + 2.0 * v.d * (v.sb - v.sa)
    if p_sq < 0.0:
        return None
    tmp1 = math.atan2(v.ca - v.cb, tmp0)
    return mod2pi(v.alpha - tmp1), math.sqrt(p_sq), mod2pi(tmp1 - v.beta)


def _lsr(v: _Intermediate) -> Params:
    p_sq = -2.0 + v.d_sq + 2.0 * v.c_ab + 2.0 * v.d * (v.sa + v.sb)
    if p_sq < 0.0:
        return None
    p = math.sqrt(p_sq)
    tmp0 = math.atan2(-v.ca - v.cb, v.d + v.sa + v.sb) - math.atan2(-2.0, p)
    return mod2pi(tmp0 - v.alpha), p, mod2pi(tmp0 - mod2pi(v.beta))


def _rsl(v: _Intermediate) -> Params:
    p_sq = -2.0 + v.d_sq + 2.0 * v.c_ab - 2.0 * v.d * (v.sa + v.sb)
    if p_sq < 0.0:
        return None
    p = math.sqrt(p_sq)
    tmp0 = math.atan2(v.ca + v.cb, v.d - v.sa - v.sb) - math.atan2(2.0, p)
    return mod2pi(v.alpha - tmp0), p, mod2pi(v.beta - tmp0)


def _rlr(v: _Intermediate) -> Params:
    tmp0 = (6.0 - v.d_sq + 2.0 * v.c_ab + 2.0 * v.d * (v.sa - v.sb)) / 8.0
    if abs(tmp0) > 1.0:
        return None
    phi = math.atan2(v.ca - v.cb, v.d - v.sa + v.sb)
    p = mod2pi(2.0 * math.pi - math.acos(tmp0))
    t = mod2pi(v.alpha - phi + mod2pi(p / 2.0))
    return t, p, mod2pi(v.alpha - v.beta - t + mod2pi(p))


def _lrl(v: _Intermediate) -> Params:
    tmp0 = (6.0 - v.d_sq + 2.0 * v.c_ab + 2.0 * v.d * (v.sb - v.sa)) / 8.0
    if abs(tmp0) > 1.0:
        return None
    phi = math.atan2(v.ca - v.cb, v.d + v.sa - v.sb)
    p = mod2pi(2.0 * math.pi - math.acos(tmp0))
    t = mod2pi(-v.alpha - phi + p / 2.0)
    return t, p, mod2pi(mod2pi(v.beta) - v.alpha - t + mod2pi(p))


_SOLVERS: Dict[str, Callable[[_Intermediate], Params]] = {
    "LSL": _lsl,
    "LSR": _lsr,
    "RSL": _rsl,
    "RSR": _rsr,
    "RLR": _rlr,
    "LRL": _lrl,
}


def _segment(t: float, qi: Pose, kind: str) -> Pose:
    st = math.sin(qi[2])
    ct = math.cos(qi[2])
    if kind == LEFT:
        return qi[0] + math.sin(qi[2] + t) - st, qi[1] - math.cos(qi[2] + t) + ct, qi[2] + t
    if kind == RIGHT:
        return qi[0] - math.sin(qi[2] - t) + st, qi[1] + math.cos(qi[2] - t) - ct, qi[2] - t
    return qi[0] + ct * t, qi[1] + st * t, qi[2]


@dataclass(frozen=True)
class DubinsPath:
    start: Pose
    radius: float
    word: str
    params: Tuple[float, float, float]

    @property
    def length(self) -> float:
        if self.radius <= 0.0:
            return self.params[1]
        return sum(self.params) * self.radius

    def sample(self, t: float) -> Pose:
        """Pose after flying ``t`` meters along the path."""

        if t < -1e-9 or t > self.length + 1e-9:
            raise ValueError(f"sample distance {t} outside [0, {self.length}]")
        t = min(max(t, 0.0), self.length)
        x0, y0, th0 = self.start

        if self.radius <= 0.0:
            heading = self.params[0]
            return x0 + math.cos(heading) * t, y0 + math.sin(heading) * t, mod2pi(heading)

        types = PATH_WORDS[self.word]
        tprime = t / self.radius
        p1, p2, _ = self.params
        qi: Pose = (0.0, 0.0, th0)
        if tprime < p1:
            q = _segment(tprime, qi, types[0])
        else:
            q1 = _segment(p1, qi, types[0])
            if tprime < p1 + p2:
                q = _segment(tprime - p1, q1, types[1])
            else:
                q2 = _segment(p2, q1, types[1])
                q = _segment(tprime - p1 - p2, q2, types[2])
        return q[0] * self.radius + x0, q[1] * self.radius + y0, mod2pi(q[2])

    def sample_many(self, step: float, count: Optional[int] = None) -> List[Pose]:
        if step <= 0.0:
            raise ValueError("step must be > 0")
        if count is None:
            count = int(math.floor(self.length / step + 1e-9)) + 1
        return [self.sample(min(i * step, self.length)) for i in range(count)]


def _straight_path(q0: Pose, q1: Pose) -> DubinsPath:
    heading = math.atan2(q1[1] - q0[1], q1[0] - q0[0])
    return DubinsPath(start=q0, radius=0.0, word="S", params=(heading, math.hypot(q1[0] - q0[0], q1[1] - q0[1]), 0.0))


def candidate_paths(q0: Pose, q1: Pose, radius: float) -> List[DubinsPath]:
    """Every valid Dubins word between ``q0`` and ``q1``."""

    if not all(math.isfinite(v) for v in (*q0, *q1, radius)) or radius < 0.0:
        return []
    if radius == 0.0:
        return [_straight_path(q0, q1)]

    dx = q1[0] - q0[0]
    dy = q1[1] - q0[1]
    d = math.hypot(dx, dy) / radius
    theta = mod2pi(math.atan2(dy, dx)) if d > 0.0 else 0.0
    alpha = mod2pi(q0[2] - theta)
    beta = mod2pi(q1[2] - theta)
    inter = _Intermediate(
        alpha=alpha,
        beta=beta,
        d=d,
        sa=math.sin(alpha),
        sb=math.sin(beta),
        ca=math.cos(alpha),
        cb=math.cos(beta),
        c_ab=math.cos(alpha - beta),
        d_sq=d * d,
    )

    paths: List[DubinsPath] = []
    for word, solver in _SOLVERS.items():
        params = solver(inter)
        if params is None:
            continue
        paths.append(DubinsPath(start=q0, radius=radius, word=word, params=params))
    return paths


def shortest_path(q0: Pose, q1: Pose, radius: float) -> Optional[DubinsPath]:
    paths = candidate_paths(q0, q1, radius)
    if not paths:
        return None
    # Ties resolve to the first word in PATH_WORDS order.
    return min(paths, key=lambda p: p.length)
