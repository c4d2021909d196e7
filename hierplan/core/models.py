from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Tuple

EVERY_X_METERS = 30.0
AIRSPEED = 14.0
TIMESLICE = 15.0
NO_FLY_ZONE = "No-Fly Zone"


def wrap_angle_rad(angle: float) -> float:
    angle = math.fmod(float(angle), 2.0 * math.pi)
    if angle > math.pi:
        angle -= 2.0 * math.pi
    elif angle <= -math.pi:
        angle += 2.0 * math.pi
    return angle


@dataclass(frozen=True)
class GeoPosition:
    longitude: float
    latitude: float

    def as_tuple(self) -> Tuple[float, float]:
        return float(self.longitude), float(self.latitude)


@dataclass(frozen=True)
class Orientation:
    """Vehicle yaw in radians, 0 = east, counter-clockwise positive."""

    radians: float = 0.0

    @classmethod
    def of(cls, angle_rad: float) -> "Orientation":
        return cls(wrap_angle_rad(angle_rad))

    @classmethod
    def from_degrees(cls, angle_deg: float) -> "Orientation":
        return cls.of(math.radians(float(angle_deg)))

    @property
    def degrees(self) -> float:
        return math.degrees(self.radians)


Waypath = Tuple[GeoPosition, ...]
ScheduleState = Tuple[float, ...]


@dataclass(frozen=True)
class FlightTask:
    task_id: str
    task_type: str
    parameters: Dict[str, Any] = field(default_factory=dict, hash=False, compare=False)


@dataclass(frozen=True)
class TaskArea:
    area_id: str
    polygon: Tuple[GeoPosition, ...]
    task_type: str
    task: Optional[FlightTask] = None

    @property
    def is_obstacle(self) -> bool:
        return self.task_type == NO_FLY_ZONE

    def vertices(self) -> List[Tuple[float, float]]:
        return [p.as_tuple() for p in self.polygon]

    def bounding_rect(self) -> Tuple[float, float, float, float]:
        lons = [p.longitude for p in self.polygon]
        lats = [p.latitude for p in self.polygon]
        return min(lons), min(lats), max(lons), max(lats)

    def bounding_center(self) -> GeoPosition:
        min_lon, min_lat, max_lon, max_lat = self.bounding_rect()
        return GeoPosition(0.5 * (min_lon + max_lon), 0.5 * (min_lat + max_lat))


@dataclass(frozen=True)
class AnchorPoint:
    area_id: str
    entry: GeoPosition
    exit: GeoPosition
    orientation: Orientation


@dataclass(frozen=True)
class VehicleParameters:
    min_turning_radius_m: float
    waypoint_interval_m: float = EVERY_X_METERS
    airspeed_mps: float = AIRSPEED

    def flight_time_s(self, waypoint_count: int) -> float:
        # Every waypoint stands for one interval of flight.
        return float(waypoint_count) * self.waypoint_interval_m / self.airspeed_mps


@dataclass
class PlanningProblem:
    areas: Sequence[TaskArea]
    start_position: GeoPosition
    start_orientation: Orientation
    vehicle: VehicleParameters
    name: str = "mission"

    def task_areas(self) -> List[TaskArea]:
        return [a for a in self.areas if not a.is_obstacle and a.task is not None]

    def obstacle_areas(self) -> List[TaskArea]:
        return [a for a in self.areas if a.is_obstacle]


@dataclass
class SchedulerSettings:
    timeslice_s: float = TIMESLICE
    max_expansions: int = 200000


@dataclass(frozen=True)
class InterpolationResult:
    position: GeoPosition
    orientation: Orientation
    extrapolated: bool = False


@dataclass(frozen=True)
class TransitionResult:
    success: bool
    waypath: Waypath = ()

    @classmethod
    def failed(cls) -> "TransitionResult":
        return cls(success=False, waypath=())


@dataclass
class ScheduleResult:
    states: List[ScheduleState]
    active_tasks: List[int]
    transitions: Dict[Tuple[ScheduleState, ScheduleState], Waypath]
    goal: ScheduleState
    expansions: int = 0

    @property
    def context_switches(self) -> int:
        switches = 0
        for prev, cur in zip(self.active_tasks, self.active_tasks[1:]):
            if prev != cur:
                switches += 1
        return switches

    def intervals(self) -> List[Tuple[int, float, float]]:
        """Collapse the schedule into (task index, start time, end time) runs."""

        runs: List[Tuple[int, float, float]] = []
        for (prev, cur), task_idx in zip(zip(self.states, self.states[1:]), self.active_tasks):
            start_t = float(prev[task_idx])
            end_t = float(cur[task_idx])
            if runs and runs[-1][0] == task_idx and runs[-1][2] == start_t:
                runs[-1] = (task_idx, runs[-1][1], end_t)
            else:
                runs.append((task_idx, start_t, end_t))
        return runs


@dataclass(frozen=True)
class FlightSegment:
    kind: str
    task_id: str
    start_index: int
    count: int
    source_start_index: int = 0


@dataclass
class StitchedFlight:
    waypoints: Waypath
    segments: List[FlightSegment]

    def __len__(self) -> int:
        return len(self.waypoints)


@dataclass
class PlanResult:
    problem_name: str
    flight: StitchedFlight
    schedule: ScheduleResult
    anchors: Dict[str, AnchorPoint]
    task_ids: List[str]
    task_times_s: List[float]
    metadata: Dict[str, Any] = field(default_factory=dict)

    @property
    def context_switches(self) -> int:
        return self.schedule.context_switches

    @property
    def total_time_s(self) -> float:
        return float(self.metadata.get("total_time_s", 0.0))
