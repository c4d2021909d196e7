from __future__ import annotations

import math
from typing import List, Mapping, Sequence

from .models import AIRSPEED, EVERY_X_METERS, FlightSegment, GeoPosition, ScheduleResult, StitchedFlight, Waypath


def time_to_index(time_s: float, spacing_m: float = EVERY_X_METERS, airspeed_mps: float = AIRSPEED) -> int:
    # Small epsilon so that n * spacing / airspeed maps back to exactly n.
    return int(math.floor(float(time_s) * airspeed_mps / spacing_m + 1e-9))


def path_portion(
    path: Sequence[GeoPosition],
    start_time_s: float,
    end_time_s: float,
    spacing_m: float = EVERY_X_METERS,
    airspeed_mps: float = AIRSPEED,
) -> Waypath:
    start_idx = max(0, time_to_index(start_time_s, spacing_m, airspeed_mps))
    end_idx = min(len(path), time_to_index(end_time_s, spacing_m, airspeed_mps))
    return tuple(path[start_idx:end_idx])


def stitch_schedule(
    schedule: ScheduleResult,
    task_ids: Sequence[str],
    subflights: Mapping[str, Waypath],
    start_transitions: Mapping[str, Waypath],
    spacing_m: float = EVERY_X_METERS,
    airspeed_mps: float = AIRSPEED,
) -> StitchedFlight:
    """Concatenate transitions and sub-flight slices in schedule order.

    ``start_transitions`` is keyed by task id. Seams are not deduplicated.
    """

    waypoints: List[GeoPosition] = []
    segments: List[FlightSegment] = []
    states = schedule.states
    if not states:
        return StitchedFlight(waypoints=(), segments=[])

    start_state = states[0]
    prev_task: int | None = None
    for (prev_state, state), task_idx in zip(zip(states, states[1:]), schedule.active_tasks):
        task_id = task_ids[task_idx]

        if prev_state == start_state:
            piece = tuple(start_transitions[task_id])
            segments.append(FlightSegment("start_transition", task_id, len(waypoints), len(piece)))
            waypoints.extend(piece)
        elif prev_task != task_idx:
            piece = tuple(schedule.transitions.get((prev_state, state), ()))
            segments.append(FlightSegment("context_switch", task_id, len(waypoints), len(piece)))
            waypoints.extend(piece)

        subflight = subflights[task_id]
        portion = path_portion(subflight, prev_state[task_idx], state[task_idx], spacing_m, airspeed_mps)
        source_start = min(len(subflight), time_to_index(prev_state[task_idx], spacing_m, airspeed_mps))
        segments.append(FlightSegment("task", task_id, len(waypoints), len(portion), source_start))
        waypoints.extend(portion)
        prev_task = task_idx

    return StitchedFlight(waypoints=tuple(waypoints), segments=segments)
