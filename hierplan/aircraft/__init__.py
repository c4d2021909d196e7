from .anchors import select_anchors
from .mission import build_planner, build_problem, run_mission
from .planner import HierarchicalPlanner, PlanningContext
from .subflight import CoveragePlanner, PerimeterPlanner, SubFlightPlanner, build_subflight_planner
from .transitions import (
    DubinsTransitionGenerator,
    StraightTransitionGenerator,
    TransitionGenerator,
    VisibilityTransitionGenerator,
    available_transition_generators,
    build_transition_generator,
)

__all__ = [
    "select_anchors",
    "build_planner",
    "build_problem",
    "run_mission",
    "HierarchicalPlanner",
    "PlanningContext",
    "CoveragePlanner",
    "PerimeterPlanner",
    "SubFlightPlanner",
    "build_subflight_planner",
    "DubinsTransitionGenerator",
    "StraightTransitionGenerator",
    "TransitionGenerator",
    "VisibilityTransitionGenerator",
    "available_transition_generators",
    "build_transition_generator",
]
