from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, List, Sequence
from xml.sax.saxutils import escape as xml_escape

import matplotlib.pyplot as plt
import numpy as np

from ..core import (
    NO_FLY_ZONE,
    FlightTask,
    GeoPosition,
    Orientation,
    PlanningProblem,
    PlanResult,
    SchedulerSettings,
    TaskArea,
    VehicleParameters,
    write_csv,
    write_json,
)
from ..logging_utils import get_logger
from .planner import HierarchicalPlanner
from .subflight import build_subflight_planner
from .transitions import build_transition_generator

LOGGER = get_logger(__name__)


def build_areas(areas_cfg: Sequence[Dict[str, Any]]) -> List[TaskArea]:
    areas: List[TaskArea] = []
    for area_cfg in areas_cfg:
        area_id = str(area_cfg["id"])
        task_type = str(area_cfg["task_type"])
        polygon = tuple(GeoPosition(float(lon), float(lat)) for lon, lat in area_cfg["polygon"])
        task = None
        if task_type != NO_FLY_ZONE:
            parameters = {k: v for k, v in area_cfg.items() if k not in {"id", "task_type", "polygon", "task_id"}}
            task = FlightTask(
                task_id=str(area_cfg.get("task_id", area_id)),
                task_type=task_type.lower(),
                parameters=parameters,
            )
        areas.append(TaskArea(area_id=area_id, polygon=polygon, task_type=task_type, task=task))
    return areas


def build_problem(cfg: Dict[str, Any]) -> PlanningProblem:
    vehicle_cfg = cfg["vehicle"]
    vehicle = VehicleParameters(
        min_turning_radius_m=float(vehicle_cfg["min_turning_radius_m"]),
        waypoint_interval_m=float(vehicle_cfg["waypoint_interval_m"]),
        airspeed_mps=float(vehicle_cfg["airspeed_mps"]),
    )
    start = cfg["start"]
    return PlanningProblem(
        areas=build_areas(cfg["areas"]),
        start_position=GeoPosition(float(start["lon_deg"]), float(start["lat_deg"])),
        start_orientation=Orientation.from_degrees(float(start.get("heading_deg", 0.0))),
        vehicle=vehicle,
        name=str(cfg.get("name", "mission")),
    )


def build_planner(cfg: Dict[str, Any], problem: PlanningProblem) -> HierarchicalPlanner:
    planner_cfg = cfg.get("planner", {}) or {}
    settings = SchedulerSettings(
        timeslice_s=float(planner_cfg.get("timeslice_s", SchedulerSettings.timeslice_s)),
        max_expansions=int(planner_cfg.get("max_expansions", SchedulerSettings.max_expansions)),
    )
    name = str(planner_cfg.get("transition_planner", "dubins")).lower()
    options: Dict[str, Any] = {}
    if name == "visibility":
        options["margin_m"] = float(planner_cfg.get("obstacle_margin_m", 0.0))
    return HierarchicalPlanner(
        problem,
        transition_generator=build_transition_generator(name, problem.vehicle, **options),
        subflight_planner=build_subflight_planner(problem.vehicle),
        settings=settings,
    )


def collect_flight_rows(result: PlanResult) -> List[Dict[str, Any]]:
    rows: List[Dict[str, Any]] = []
    waypoints = result.flight.waypoints
    for segment in result.flight.segments:
        for offset in range(segment.count):
            idx = segment.start_index + offset
            pos = waypoints[idx]
            rows.append(
                {
                    "index": idx,
                    "lon_deg": pos.longitude,
                    "lat_deg": pos.latitude,
                    "segment": segment.kind,
                    "task_id": segment.task_id,
                    "source_index": segment.source_start_index + offset if segment.kind == "task" else "",
                }
            )
    return rows


def collect_schedule_rows(result: PlanResult) -> List[Dict[str, Any]]:
    rows: List[Dict[str, Any]] = []
    states = result.schedule.states
    prev_task: int | None = None
    for step, ((prev_state, state), task_idx) in enumerate(zip(zip(states, states[1:]), result.schedule.active_tasks)):
        rows.append(
            {
                "step": step + 1,
                "task_id": result.task_ids[task_idx],
                "task_start_s": prev_state[task_idx],
                "task_end_s": state[task_idx],
                "required_s": result.task_times_s[task_idx],
                "context_switch": prev_task is not None and prev_task != task_idx,
                "state": " ".join(f"{v:.1f}" for v in state),
            }
        )
        prev_task = task_idx
    return rows


def plot_flight_path(
    result: PlanResult,
    problem: PlanningProblem,
    save_path: Path,
) -> None:
    fig, ax = plt.subplots(figsize=(10, 8))

    for area in problem.areas:
        poly = np.asarray(area.vertices())
        if area.is_obstacle:
            ax.fill(poly[:, 0], poly[:, 1], color="tab:red", alpha=0.25, edgecolor="tab:red", linewidth=1.5)
        else:
            ax.fill(poly[:, 0], poly[:, 1], color="tab:green", alpha=0.12, edgecolor="tab:green", linewidth=1.0)
            cx, cy = area.bounding_center().as_tuple()
            ax.text(cx, cy, area.area_id, fontsize=8, ha="center")

    if result.flight.waypoints:
        path = np.asarray([p.as_tuple() for p in result.flight.waypoints])
        ax.plot(path[:, 0], path[:, 1], color="tab:blue", linewidth=1.5, label="planned flight")

    for anchor in result.anchors.values():
        ax.scatter([anchor.entry.longitude], [anchor.entry.latitude], color="tab:green", s=40, marker="^")
        ax.scatter([anchor.exit.longitude], [anchor.exit.latitude], color="tab:gray", s=30, marker="v")

    start = problem.start_position
    ax.scatter([start.longitude], [start.latitude], color="black", s=60, marker="s", label="start")

    ax.set_title(f"Hierarchical flight plan: {problem.name}")
    ax.set_xlabel("longitude [deg]")
    ax.set_ylabel("latitude [deg]")
    ax.axis("equal")
    ax.grid(alpha=0.3)
    ax.legend(loc="upper right")
    fig.tight_layout()
    fig.savefig(save_path, dpi=150)
    plt.close(fig)


def write_flight_kml(
    result: PlanResult,
    problem: PlanningProblem,
    save_path: Path,
    altitude_m: float = 100.0,
) -> None:
    placemarks: List[str] = []

    if result.flight.waypoints:
        path_coords = [f"{p.longitude:.8f},{p.latitude:.8f},{altitude_m:.2f}" for p in result.flight.waypoints]
        placemarks.append(
            (
                "<Placemark><name>Planned Flight</name><styleUrl>#pathStyle</styleUrl>"
                "<LineString><altitudeMode>relativeToGround</altitudeMode><coordinates>"
                + " ".join(path_coords)
                + "</coordinates></LineString></Placemark>"
            )
        )

    for area_id, anchor in result.anchors.items():
        placemarks.append(
            (
                "<Placemark>"
                f"<name>{xml_escape(area_id)} entry</name>"
                f"<description>heading_deg={anchor.orientation.degrees:.1f}</description>"
                "<styleUrl>#anchorStyle</styleUrl>"
                f"<Point><coordinates>{anchor.entry.longitude:.8f},{anchor.entry.latitude:.8f},0.0</coordinates></Point>"
                "</Placemark>"
            )
        )

    for area in problem.areas:
        if not area.polygon:
            continue
        ring = list(area.polygon) + [area.polygon[0]]
        coords = " ".join(f"{p.longitude:.8f},{p.latitude:.8f},0.0" for p in ring)
        style = "#nfzStyle" if area.is_obstacle else "#areaStyle"
        placemarks.append(
            (
                "<Placemark>"
                f"<name>{xml_escape(area.area_id)}</name>"
                f"<description>type={xml_escape(area.task_type)}</description>"
                f"<styleUrl>{style}</styleUrl>"
                "<Polygon><outerBoundaryIs><LinearRing><coordinates>"
                + coords
                + "</coordinates></LinearRing></outerBoundaryIs></Polygon>"
                "</Placemark>"
            )
        )

    kml_text = (
        "<?xml version=\"1.0\" encoding=\"UTF-8\"?>"
        "<kml xmlns=\"http://www.opengis.net/kml/2.2\">"
        f"<Document><name>{xml_escape(problem.name)}</name>"
        "<Style id=\"pathStyle\"><LineStyle><color>ff2a6bff</color><width>3</width></LineStyle></Style>"
        "<Style id=\"anchorStyle\"><IconStyle><color>ff00ff00</color></IconStyle></Style>"
        "<Style id=\"areaStyle\"><LineStyle><color>ff00aa00</color><width>2</width></LineStyle>"
        "<PolyStyle><color>3300aa00</color></PolyStyle></Style>"
        "<Style id=\"nfzStyle\"><LineStyle><color>ff0000ff</color><width>2</width></LineStyle>"
        "<PolyStyle><color>550000ff</color></PolyStyle></Style>"
        + "".join(placemarks)
        + "</Document></kml>"
    )
    save_path.write_text(kml_text, encoding="utf-8")


def run_mission(cfg: Dict[str, Any], output_dir: Path) -> Dict[str, Any]:
    output_dir.mkdir(parents=True, exist_ok=True)

    problem = build_problem(cfg)
    planner = build_planner(cfg, problem)
    result = planner.plan()

    flight_rows = collect_flight_rows(result)
    schedule_rows = collect_schedule_rows(result)
    flight_csv = output_dir / "flight_plan.csv"
    schedule_csv = output_dir / "schedule.csv"
    write_csv(flight_csv, flight_rows)
    write_csv(schedule_csv, schedule_rows)

    plot_path = output_dir / "flight_path.png"
    plot_flight_path(result, problem, plot_path)
    kml_path = output_dir / "flight_path.kml"
    write_flight_kml(result, problem, kml_path)

    segment_counts: Dict[str, int] = {}
    for segment in result.flight.segments:
        segment_counts[segment.kind] = segment_counts.get(segment.kind, 0) + segment.count

    metrics = {
        "name": problem.name,
        "transition_planner": result.metadata.get("transition_planner"),
        "waypoints": len(result.flight),
        "total_time_s": result.total_time_s,
        "context_switches": result.context_switches,
        "schedule_steps": len(result.schedule.states) - 1,
        "expansions": result.schedule.expansions,
        "task_ids": result.task_ids,
        "task_times_s": result.task_times_s,
        "waypoints_by_segment": segment_counts,
        "task_order": [result.task_ids[idx] for idx, _, _ in result.schedule.intervals()],
    }
    metrics_path = output_dir / "metrics.json"
    write_json(metrics_path, metrics)
    LOGGER.info("Mission '%s' written to %s", problem.name, output_dir)

    return {
        "problem": problem,
        "result": result,
        "metrics": metrics,
        "flight_csv": str(flight_csv),
        "schedule_csv": str(schedule_csv),
        "plot_path": str(plot_path),
        "kml_path": str(kml_path),
        "metrics_json": str(metrics_path),
    }
