from .config_validation import ConfigValidationError, validate_config
from .errors import GeometryError, InterpolationError, PlanningError, SearchExhaustedError, TransitionError
from .interpolation import interpolate_path
from .io import read_csv, write_csv, write_json
from .models import (
    AIRSPEED,
    EVERY_X_METERS,
    NO_FLY_ZONE,
    TIMESLICE,
    AnchorPoint,
    FlightSegment,
    FlightTask,
    GeoPosition,
    InterpolationResult,
    Orientation,
    PlanningProblem,
    PlanResult,
    ScheduleResult,
    SchedulerSettings,
    StitchedFlight,
    TaskArea,
    TransitionResult,
    VehicleParameters,
    Waypath,
)
from .scheduler import TaskScheduler
from .stitcher import path_portion, stitch_schedule, time_to_index

__all__ = [
    "ConfigValidationError",
    "validate_config",
    "GeometryError",
    "InterpolationError",
    "PlanningError",
    "SearchExhaustedError",
    "TransitionError",
    "interpolate_path",
    "read_csv",
    "write_csv",
    "write_json",
    "AIRSPEED",
    "EVERY_X_METERS",
    "NO_FLY_ZONE",
    "TIMESLICE",
    "AnchorPoint",
    "FlightSegment",
    "FlightTask",
    "GeoPosition",
    "InterpolationResult",
    "Orientation",
    "PlanningProblem",
    "PlanResult",
    "ScheduleResult",
    "SchedulerSettings",
    "StitchedFlight",
    "TaskArea",
    "TransitionResult",
    "VehicleParameters",
    "Waypath",
    "TaskScheduler",
    "path_portion",
    "stitch_schedule",
    "time_to_index",
]
