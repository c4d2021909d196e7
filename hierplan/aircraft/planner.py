from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from ..core.errors import PlanningError, TransitionError
from ..core.interpolation import interpolate_path
from ..core.models import (
    AnchorPoint,
    FlightTask,
    GeoPosition,
    Orientation,
    PlanningProblem,
    PlanResult,
    SchedulerSettings,
    TaskArea,
    Waypath,
)
from ..core.scheduler import TaskScheduler
from ..core.stitcher import stitch_schedule
from ..logging_utils import get_logger
from .anchors import select_anchors
from .subflight import SubFlightPlanner, build_subflight_planner
from .transitions import DubinsTransitionGenerator, TransitionGenerator

LOGGER = get_logger(__name__)


@dataclass
class PlanningContext:
    """Scratch data for one planning pass, rebuilt from the problem each time."""

    tasks: List[FlightTask] = field(default_factory=list)
    task_areas: Dict[str, TaskArea] = field(default_factory=dict)
    obstacles: List[Tuple[GeoPosition, ...]] = field(default_factory=list)
    anchors: Dict[str, AnchorPoint] = field(default_factory=dict)
    start_transitions: Dict[str, Waypath] = field(default_factory=dict)
    subflights: Dict[str, Waypath] = field(default_factory=dict)

    @property
    def task_ids(self) -> List[str]:
        return [t.task_id for t in self.tasks]

    def anchor_for(self, task: FlightTask) -> AnchorPoint:
        return self.anchors[self.task_areas[task.task_id].area_id]


class HierarchicalPlanner:
    """
    Plans one continuous flight that works every task area.

    A pass fixes an entry anchor per area, connects the global start to each
    anchor, plans each task's ideal sub-flight, searches for a time-sliced
    task schedule and finally stitches the pieces into a single waypath.
    """

    def __init__(
        self,
        problem: PlanningProblem,
        transition_generator: Optional[TransitionGenerator] = None,
        subflight_planner: Optional[SubFlightPlanner] = None,
        settings: Optional[SchedulerSettings] = None,
    ) -> None:
        self.problem = problem
        self.transition_generator = transition_generator or DubinsTransitionGenerator(problem.vehicle)
        self.subflight_planner = subflight_planner or build_subflight_planner(problem.vehicle)
        self.settings = settings or SchedulerSettings()
        self._best_flight: Optional[Waypath] = None
        self._last_result: Optional[PlanResult] = None

    @property
    def best_flight(self) -> Optional[Waypath]:
        return self._best_flight

    @property
    def last_result(self) -> Optional[PlanResult]:
        return self._last_result

    def plan(self) -> PlanResult:
        LOGGER.info("Planning pass for '%s' started", self.problem.name)
        ctx = self._reset()
        if not ctx.tasks:
            raise PlanningError("Problem has no schedulable tasks")

        ctx.anchors = select_anchors(list(ctx.task_areas.values()))
        self._build_start_transitions(ctx)
        self._build_subflights(ctx)
        result = self._build_schedule(ctx)

        self._best_flight = result.flight.waypoints
        self._last_result = result
        LOGGER.info(
            "Planning pass for '%s' finished: %d waypoints, %d context switches",
            self.problem.name,
            len(result.flight),
            result.context_switches,
        )
        return result

    def _reset(self) -> PlanningContext:
        ctx = PlanningContext()
        for area in self.problem.areas:
            if area.is_obstacle:
                ctx.obstacles.append(tuple(area.polygon))
            elif area.task is not None:
                ctx.tasks.append(area.task)
                ctx.task_areas[area.task.task_id] = area
        return ctx

    def generate_transition(
        self,
        ctx: PlanningContext,
        start_pos: GeoPosition,
        start_pose: Orientation,
        end_pos: GeoPosition,
        end_pose: Orientation,
    ) -> Waypath:
        LOGGER.debug(
            "Transition from %s %.3frad to %s %.3frad",
            start_pos,
            start_pose.radians,
            end_pos,
            end_pose.radians,
        )
        result = self.transition_generator.plan(start_pos, start_pose, end_pos, end_pose, ctx.obstacles)
        if not result.success or not result.waypath:
            LOGGER.warning("Transition planner '%s' failed", getattr(self.transition_generator, "name", "?"))
            raise TransitionError(f"No transition from {start_pos} to {end_pos}")
        return result.waypath

    def _build_start_transitions(self, ctx: PlanningContext) -> None:
        by_area: Dict[str, Waypath] = {}
        for task in ctx.tasks:
            anchor = ctx.anchor_for(task)
            if anchor.area_id not in by_area:
                by_area[anchor.area_id] = self.generate_transition(
                    ctx,
                    self.problem.start_position,
                    self.problem.start_orientation,
                    anchor.entry,
                    anchor.orientation,
                )
            ctx.start_transitions[task.task_id] = by_area[anchor.area_id]

    def _build_subflights(self, ctx: PlanningContext) -> None:
        for task in ctx.tasks:
            anchor = ctx.anchor_for(task)
            area = ctx.task_areas[task.task_id]
            subflight = tuple(self.subflight_planner.plan(task, area, anchor.entry, anchor.orientation))
            if not subflight:
                raise PlanningError(f"Sub-flight planner returned no waypoints for task '{task.task_id}'")
            ctx.subflights[task.task_id] = subflight

    def _build_schedule(self, ctx: PlanningContext) -> PlanResult:
        vehicle = self.problem.vehicle
        task_ids = ctx.task_ids
        task_times = [vehicle.flight_time_s(len(ctx.subflights[tid])) for tid in task_ids]
        start_costs = [vehicle.flight_time_s(len(ctx.start_transitions[tid])) for tid in task_ids]

        def context_switch(prev_idx: int, prev_time_s: float, next_idx: int, next_time_s: float) -> Waypath:
            prev_task = ctx.tasks[prev_idx]
            next_task = ctx.tasks[next_idx]
            here = interpolate_path(
                ctx.subflights[prev_task.task_id],
                ctx.anchor_for(prev_task).orientation,
                prev_time_s,
                vehicle.waypoint_interval_m,
                vehicle.airspeed_mps,
            )
            there = interpolate_path(
                ctx.subflights[next_task.task_id],
                ctx.anchor_for(next_task).orientation,
                next_time_s,
                vehicle.waypoint_interval_m,
                vehicle.airspeed_mps,
            )
            return self.generate_transition(ctx, here.position, here.orientation, there.position, there.orientation)

        scheduler = TaskScheduler(
            task_times_s=task_times,
            start_costs_s=start_costs,
            context_switch=context_switch,
            settings=self.settings,
            spacing_m=vehicle.waypoint_interval_m,
            airspeed_mps=vehicle.airspeed_mps,
        )
        schedule = scheduler.solve()
        flight = stitch_schedule(
            schedule,
            task_ids,
            ctx.subflights,
            ctx.start_transitions,
            vehicle.waypoint_interval_m,
            vehicle.airspeed_mps,
        )
        if not flight.waypoints:
            raise PlanningError("Stitched flight is empty")

        return PlanResult(
            problem_name=self.problem.name,
            flight=flight,
            schedule=schedule,
            anchors=dict(ctx.anchors),
            task_ids=task_ids,
            task_times_s=task_times,
            metadata={
                "total_time_s": vehicle.flight_time_s(len(flight.waypoints)),
                "expansions": schedule.expansions,
                "subflight_lengths": {tid: len(ctx.subflights[tid]) for tid in task_ids},
                "start_transition_lengths": {tid: len(ctx.start_transitions[tid]) for tid in task_ids},
                "transition_planner": getattr(self.transition_generator, "name", type(self.transition_generator).__name__),
            },
        )
