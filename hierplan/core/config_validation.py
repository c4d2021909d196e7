from __future__ import annotations

from typing import Any, Dict, List

from .models import NO_FLY_ZONE

TRANSITION_PLANNERS = {"dubins", "straight", "visibility"}
SUBFLIGHT_TASK_TYPES = {"coverage", "perimeter"}


class ConfigValidationError(ValueError):
    pass


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _require(cfg: Dict[str, Any], key: str, path: str, errors: List[str]) -> Any:
    if key not in cfg:
        errors.append(f"Missing key: {path}.{key}")
        return None
    return cfg[key]


def _validate_vehicle(cfg: Dict[str, Any], errors: List[str]) -> None:
    for key in ["min_turning_radius_m", "waypoint_interval_m", "airspeed_mps"]:
        _require(cfg, key, "vehicle", errors)

    radius = cfg.get("min_turning_radius_m")
    if not _is_number(radius) or float(radius) < 0.0:
        errors.append("vehicle.min_turning_radius_m must be >= 0")
    for key in ["waypoint_interval_m", "airspeed_mps"]:
        value = cfg.get(key)
        if not _is_number(value) or float(value) <= 0.0:
            errors.append(f"vehicle.{key} must be > 0")


def _validate_planner(cfg: Dict[str, Any], errors: List[str]) -> None:
    if "timeslice_s" in cfg and (not _is_number(cfg.get("timeslice_s")) or float(cfg["timeslice_s"]) <= 0.0):
        errors.append("planner.timeslice_s must be > 0")
    if "max_expansions" in cfg:
        value = cfg.get("max_expansions")
        if not isinstance(value, int) or isinstance(value, bool) or value <= 0:
            errors.append("planner.max_expansions must be a positive integer")
    planner_name = str(cfg.get("transition_planner", "dubins")).lower()
    if planner_name not in TRANSITION_PLANNERS:
        errors.append("planner.transition_planner must be one of: " + ", ".join(sorted(TRANSITION_PLANNERS)))
    if "obstacle_margin_m" in cfg:
        margin = cfg.get("obstacle_margin_m")
        if not _is_number(margin) or float(margin) < 0.0:
            errors.append("planner.obstacle_margin_m must be >= 0")


def _validate_start(cfg: Dict[str, Any], errors: List[str]) -> None:
    for key in ["lon_deg", "lat_deg"]:
        if not _is_number(cfg.get(key)):
            errors.append(f"start.{key} must be numeric")
    if "heading_deg" in cfg and not _is_number(cfg.get("heading_deg")):
        errors.append("start.heading_deg must be numeric")
    lat = cfg.get("lat_deg")
    if _is_number(lat) and not (-90.0 < float(lat) < 90.0):
        errors.append("start.lat_deg must be in (-90,90)")


def _validate_areas(areas: Any, errors: List[str]) -> None:
    if not isinstance(areas, list) or len(areas) == 0:
        errors.append("areas must be a non-empty list")
        return

    seen = set()
    schedulable = 0
    for idx, area in enumerate(areas):
        if not isinstance(area, dict):
            errors.append(f"areas[{idx}] must be a mapping")
            continue
        area_id = area.get("id")
        if area_id is None:
            errors.append(f"areas[{idx}].id is required")
        elif area_id in seen:
            errors.append(f"areas duplicate id: {area_id}")
        seen.add(area_id)

        task_type = str(area.get("task_type", ""))
        if task_type == NO_FLY_ZONE:
            pass
        elif task_type.lower() in SUBFLIGHT_TASK_TYPES:
            schedulable += 1
        else:
            errors.append(
                f"areas[{idx}].task_type must be '{NO_FLY_ZONE}' or one of: "
                + ", ".join(sorted(SUBFLIGHT_TASK_TYPES))
            )

        if "track_spacing_m" in area:
            spacing = area.get("track_spacing_m")
            if not _is_number(spacing) or float(spacing) <= 0.0:
                errors.append(f"areas[{idx}].track_spacing_m must be > 0")

        polygon = area.get("polygon")
        if not isinstance(polygon, list) or len(polygon) < 3:
            errors.append(f"areas[{idx}].polygon must have at least 3 vertices")
            continue
        for j, point in enumerate(polygon):
            if not isinstance(point, list) or len(point) != 2:
                errors.append(f"areas[{idx}].polygon[{j}] must be [lon,lat]")
                continue
            if not _is_number(point[0]) or not _is_number(point[1]):
                errors.append(f"areas[{idx}].polygon[{j}] coordinates must be numeric")

    if schedulable == 0:
        errors.append("areas must contain at least one non-obstacle task area")


def validate_config(cfg: Dict[str, Any]) -> None:
    errors: List[str] = []

    if not isinstance(cfg, dict):
        raise ConfigValidationError("Configuration must be a mapping")

    for key in ["vehicle", "start", "areas"]:
        if key not in cfg:
            errors.append(f"Missing top-level key: {key}")

    vehicle = cfg.get("vehicle")
    if isinstance(vehicle, dict):
        _validate_vehicle(vehicle, errors)
    elif vehicle is not None:
        errors.append("vehicle must be a mapping")

    planner = cfg.get("planner", {})
    if planner and not isinstance(planner, dict):
        errors.append("planner must be a mapping")
    elif isinstance(planner, dict):
        _validate_planner(planner, errors)

    start = cfg.get("start")
    if isinstance(start, dict):
        _validate_start(start, errors)
    elif start is not None:
        errors.append("start must be a mapping")

    if "areas" in cfg:
        _validate_areas(cfg.get("areas"), errors)

    if errors:
        msg = "Configuration validation failed:\n" + "\n".join(f"- {err}" for err in errors)
        raise ConfigValidationError(msg)
