from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, List, Sequence

from shapely.geometry import Point, Polygon

from ..core.geodesy import distance_m
from ..core.io import read_csv
from ..core.models import NO_FLY_ZONE, GeoPosition

SPACING_TOLERANCE = 1e-3


def _sort_int_rows(rows: Sequence[Dict[str, str]], key: str) -> List[Dict[str, str]]:
    return sorted(rows, key=lambda r: int(float(r.get(key, 0))))


def verify_flight_outputs(
    cfg: Dict[str, Any],
    flight_csv: Path,
    schedule_csv: Path,
) -> Dict[str, Any]:
    """Re-check the written flight and schedule tables without the planner."""

    flight = _sort_int_rows(read_csv(flight_csv), "index")
    schedule = _sort_int_rows(read_csv(schedule_csv), "step")

    vehicle = cfg.get("vehicle") or {}
    interval_m = float(vehicle.get("waypoint_interval_m", 30.0))
    airspeed = float(vehicle.get("airspeed_mps", 14.0))
    obstacle_aware = str((cfg.get("planner") or {}).get("transition_planner", "dubins")).lower() == "visibility"

    violations: List[str] = []
    checks: Dict[str, int] = {
        "empty_flight": 0,
        "schedule_gap_violations": 0,
        "coverage_violations": 0,
        "spacing_violations": 0,
        "geofence_violations": 0,
    }
    info: Dict[str, Any] = {"nofly_waypoints": 0}

    if not flight:
        checks["empty_flight"] += 1
        violations.append("flight: flight CSV is empty")

    # Each task must be worked in contiguous, non-overlapping time slices.
    worked_until: Dict[str, float] = {}
    required: Dict[str, float] = {}
    for idx, row in enumerate(schedule):
        task_id = str(row.get("task_id", ""))
        start_s = float(row.get("task_start_s", 0.0))
        end_s = float(row.get("task_end_s", 0.0))
        required[task_id] = float(row.get("required_s", 0.0))
        if abs(start_s - worked_until.get(task_id, 0.0)) > 1e-6 or end_s < start_s:
            checks["schedule_gap_violations"] += 1
            violations.append(f"schedule: task {task_id} slice at row {idx} does not continue previous work")
        worked_until[task_id] = end_s
    for task_id, total in required.items():
        if abs(worked_until.get(task_id, 0.0) - total) > 1e-6:
            checks["schedule_gap_violations"] += 1
            violations.append(f"schedule: task {task_id} ends at {worked_until.get(task_id)} not {total}")

    # Every sub-flight waypoint must be flown exactly once.
    by_task: Dict[str, List[int]] = {}
    for row in flight:
        if row.get("segment") == "task":
            by_task.setdefault(str(row.get("task_id", "")), []).append(int(float(row["source_index"])))
    for task_id, total in required.items():
        expected = int(round(total * airspeed / interval_m))
        indices = by_task.get(task_id, [])
        if sorted(indices) != list(range(expected)):
            checks["coverage_violations"] += 1
            violations.append(
                f"flight: task {task_id} covers {len(set(indices))} unique of {expected} waypoints ({len(indices)} flown)"
            )

    prev = None
    for row in flight:
        pos = GeoPosition(float(row["lon_deg"]), float(row["lat_deg"]))
        if prev is not None and row.get("segment") == "task" and prev[1].get("segment") == "task":
            same_run = prev[1].get("task_id") == row.get("task_id") and int(float(prev[1]["source_index"])) + 1 == int(
                float(row["source_index"])
            )
            if same_run and distance_m(prev[0], pos) > interval_m * (1.0 + SPACING_TOLERANCE):
                checks["spacing_violations"] += 1
                violations.append(f"flight: waypoint spacing above {interval_m}m at index {row['index']}")
        prev = (pos, row)

    no_fly = [
        Polygon([(float(lon), float(lat)) for lon, lat in area.get("polygon", [])])
        for area in cfg.get("areas") or []
        if str(area.get("task_type", "")) == NO_FLY_ZONE
    ]
    for row in flight:
        point = Point(float(row["lon_deg"]), float(row["lat_deg"]))
        if any(poly.contains(point) for poly in no_fly):
            info["nofly_waypoints"] += 1
    if obstacle_aware and info["nofly_waypoints"]:
        checks["geofence_violations"] = int(info["nofly_waypoints"])
        violations.append(f"flight: {info['nofly_waypoints']} waypoints inside no-fly zones")

    violation_count = sum(checks.values())
    return {
        "passed": violation_count == 0,
        "violation_count": violation_count,
        "checks": checks,
        "info": info,
        "violations": violations[:200],
        "inputs": {
            "flight_csv": str(flight_csv),
            "schedule_csv": str(schedule_csv),
            "flight_rows": len(flight),
            "schedule_rows": len(schedule),
        },
    }


def write_check_report(path: Path, report: Dict[str, Any]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(report, indent=2), encoding="utf-8")
