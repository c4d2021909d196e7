from __future__ import annotations

import heapq
from typing import Callable, Dict, List, Optional, Sequence, Set, Tuple

from ..logging_utils import get_logger
from .errors import SearchExhaustedError
from .models import AIRSPEED, EVERY_X_METERS, ScheduleResult, ScheduleState, SchedulerSettings, Waypath

LOGGER = get_logger(__name__)

# (prev task, prev task elapsed s, next task, next task elapsed s) -> transition
ContextSwitchFn = Callable[[int, float, int, float], Waypath]


def manhattan_distance(a: ScheduleState, b: ScheduleState) -> float:
    return float(sum(abs(x - y) for x, y in zip(a, b)))


class TaskScheduler:
    """
    Greedy best-first search over per-task elapsed work time.

    A state holds how long each task has been worked. Each step advances one
    task by a timeslice. The worklist is ordered by the remaining distance to
    the goal plus the cost of reaching the successor (a start transition, a
    context switch, or nothing when the same task continues). States are closed
    as soon as they are generated, so the first parent to reach a state keeps
    it and no state is ever re-expanded.
    """

    def __init__(
        self,
        task_times_s: Sequence[float],
        start_costs_s: Sequence[float],
        context_switch: ContextSwitchFn,
        settings: Optional[SchedulerSettings] = None,
        spacing_m: float = EVERY_X_METERS,
        airspeed_mps: float = AIRSPEED,
    ) -> None:
        if len(task_times_s) != len(start_costs_s):
            raise ValueError("task_times_s and start_costs_s must have the same length")
        self.task_times_s: Tuple[float, ...] = tuple(float(t) for t in task_times_s)
        self.start_costs_s: Tuple[float, ...] = tuple(float(c) for c in start_costs_s)
        self.context_switch = context_switch
        self.settings = settings or SchedulerSettings()
        self.spacing_m = float(spacing_m)
        self.airspeed_mps = float(airspeed_mps)
        if self.settings.timeslice_s <= 0.0:
            raise ValueError("timeslice_s must be > 0")

    @property
    def dimension(self) -> int:
        return len(self.task_times_s)

    def start_state(self) -> ScheduleState:
        return tuple(0.0 for _ in self.task_times_s)

    def goal_state(self) -> ScheduleState:
        return self.task_times_s

    def advance(self, state: ScheduleState, task_idx: int) -> ScheduleState:
        values = list(state)
        values[task_idx] = min(self.task_times_s[task_idx], values[task_idx] + self.settings.timeslice_s)
        return tuple(values)

    def _path_time_s(self, waypath: Waypath) -> float:
        return len(waypath) * self.spacing_m / self.airspeed_mps

    def solve(self) -> ScheduleResult:
        start = self.start_state()
        goal = self.goal_state()
        LOGGER.debug("Schedule from %s to %s", start, goal)

        parents: Dict[ScheduleState, ScheduleState] = {}
        last_tasks: Dict[ScheduleState, int] = {}
        transitions: Dict[Tuple[ScheduleState, ScheduleState], Waypath] = {}
        closed: Set[ScheduleState] = {start}

        # Entries are (cost, task index, insertion order, state): equal costs
        # pop the lowest task index first, then the earliest inserted.
        worklist: List[Tuple[float, int, int, ScheduleState]] = [(0.0, -1, 0, start)]
        counter = 1
        expansions = 0

        while worklist:
            cost_key, _, _, state = heapq.heappop(worklist)
            closed.add(state)

            if state == goal:
                schedule = self._traceback(state, parents)
                active = [last_tasks[s] for s in schedule[1:]]
                LOGGER.info(
                    "Schedule found after %d expansions: %d steps, final cost key %.2f",
                    expansions,
                    len(schedule) - 1,
                    cost_key,
                )
                used = {(p, c): transitions[(p, c)] for p, c in zip(schedule, schedule[1:]) if (p, c) in transitions}
                return ScheduleResult(
                    states=schedule,
                    active_tasks=active,
                    transitions=used,
                    goal=goal,
                    expansions=expansions,
                )

            expansions += 1
            if expansions > self.settings.max_expansions:
                LOGGER.warning("Schedule search gave up after %d expansions", expansions - 1)
                raise SearchExhaustedError(
                    f"Schedule search exceeded max_expansions={self.settings.max_expansions}"
                )

            for i in range(self.dimension):
                new_state = self.advance(state, i)
                if new_state in closed:
                    continue
                closed.add(new_state)
                parents[new_state] = state
                last_tasks[new_state] = i

                cost = manhattan_distance(goal, new_state)
                if state not in last_tasks:
                    cost += self.start_costs_s[i]
                elif last_tasks[state] == i:
                    cost += 0.0
                else:
                    prev_task = last_tasks[state]
                    intermed = self.context_switch(prev_task, state[prev_task], i, state[i])
                    transitions[(state, new_state)] = intermed
                    cost += self._path_time_s(intermed)

                heapq.heappush(worklist, (cost, i, counter, new_state))
                counter += 1

        LOGGER.warning("Schedule worklist exhausted before reaching %s", goal)
        raise SearchExhaustedError(f"Goal state {goal} is unreachable")

    @staticmethod
    def _traceback(
        state: ScheduleState,
        parents: Dict[ScheduleState, ScheduleState],
    ) -> List[ScheduleState]:
        schedule: List[ScheduleState] = []
        current = state
        while True:
            schedule.append(current)
            if current not in parents:
                break
            current = parents[current]
        schedule.reverse()
        return schedule
