from __future__ import annotations


class PlanningError(RuntimeError):
    """A planning pass could not produce a flight."""


class GeometryError(PlanningError):
    pass


class TransitionError(PlanningError):
    pass


class SearchExhaustedError(PlanningError):
    pass


class InterpolationError(ValueError):
    """Invalid arguments handed to the path interpolator."""
