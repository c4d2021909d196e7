from __future__ import annotations

import unittest
from typing import List, Tuple

from hierplan.core import GeoPosition, SchedulerSettings, SearchExhaustedError, TaskScheduler
from hierplan.core.scheduler import manhattan_distance


class _RecordingSwitch:
    def __init__(self, waypoints: int) -> None:
        self.waypath = tuple(GeoPosition(float(i), 0.0) for i in range(waypoints))
        self.calls: List[Tuple[int, float, int, float]] = []

    def __call__(self, prev_idx: int, prev_time_s: float, next_idx: int, next_time_s: float):
        self.calls.append((prev_idx, prev_time_s, next_idx, next_time_s))
        return self.waypath


class TaskSchedulerTests(unittest.TestCase):
    def test_single_task_has_no_context_switch(self) -> None:
        switch = _RecordingSwitch(3)
        result = TaskScheduler([45.0], [5.0], switch).solve()
        self.assertEqual(result.states, [(0.0,), (15.0,), (30.0,), (45.0,)])
        self.assertEqual(result.active_tasks, [0, 0, 0])
        self.assertEqual(result.context_switches, 0)
        self.assertEqual(switch.calls, [])

    def test_last_slice_is_clamped_to_required_time(self) -> None:
        result = TaskScheduler([40.0], [0.0], _RecordingSwitch(1)).solve()
        self.assertEqual(result.states[-1], (40.0,))
        self.assertEqual(result.states[-2], (30.0,))

    def test_finishes_cheaper_start_task_then_switches_once(self) -> None:
        switch = _RecordingSwitch(5)
        scheduler = TaskScheduler([30.0, 30.0], [10.0, 0.0], switch)
        result = scheduler.solve()

        self.assertEqual(result.states, [(0.0, 0.0), (0.0, 15.0), (0.0, 30.0), (15.0, 30.0), (30.0, 30.0)])
        self.assertEqual(result.active_tasks, [1, 1, 0, 0])
        self.assertEqual(result.context_switches, 1)
        self.assertEqual(result.goal, (30.0, 30.0))
        self.assertEqual(list(result.transitions), [((0.0, 30.0), (15.0, 30.0))])
        self.assertIn((1, 30.0, 0, 0.0), switch.calls)
        self.assertEqual(result.intervals(), [(1, 0.0, 30.0), (0, 0.0, 30.0)])

    def test_equal_costs_prefer_lowest_task_index(self) -> None:
        first = TaskScheduler([15.0, 15.0], [0.0, 0.0], _RecordingSwitch(0)).solve()
        second = TaskScheduler([15.0, 15.0], [0.0, 0.0], _RecordingSwitch(0)).solve()
        self.assertEqual(first.active_tasks, [0, 1])
        self.assertEqual(first.states, second.states)

    def test_every_task_reaches_its_required_time(self) -> None:
        times = [50.0, 20.0, 75.0]
        result = TaskScheduler(times, [3.0, 1.0, 2.0], _RecordingSwitch(2)).solve()
        self.assertEqual(result.states[-1], tuple(times))
        for prev, cur in zip(result.states, result.states[1:]):
            self.assertEqual(sum(1 for a, b in zip(prev, cur) if a != b), 1)
        self.assertGreater(result.expansions, 0)

    def test_expansion_guard_raises(self) -> None:
        settings = SchedulerSettings(timeslice_s=15.0, max_expansions=2)
        scheduler = TaskScheduler([150.0, 150.0], [0.0, 0.0], _RecordingSwitch(1), settings=settings)
        with self.assertRaises(SearchExhaustedError):
            scheduler.solve()

    def test_bad_arguments(self) -> None:
        with self.assertRaises(ValueError):
            TaskScheduler([10.0, 20.0], [0.0], _RecordingSwitch(1))
        with self.assertRaises(ValueError):
            TaskScheduler([10.0], [0.0], _RecordingSwitch(1), settings=SchedulerSettings(timeslice_s=0.0))


def test_manhattan_distance() -> None:
    assert manhattan_distance((0.0, 0.0), (3.0, -4.0)) == 7.0
