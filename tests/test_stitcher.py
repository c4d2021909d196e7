from __future__ import annotations

from hierplan.core import GeoPosition, ScheduleResult, path_portion, stitch_schedule, time_to_index

SLICE = 30.0 / 14.0


def _points(prefix: float, n: int) -> tuple[GeoPosition, ...]:
    return tuple(GeoPosition(prefix, float(i)) for i in range(n))


def test_time_to_index_inverts_flight_time() -> None:
    for n in range(500):
        assert time_to_index(n * 30.0 / 14.0) == n


def test_path_portion_slices_and_clamps() -> None:
    path = _points(0.0, 10)
    assert path_portion(path, 0.0, 3 * SLICE) == path[0:3]
    assert path_portion(path, 8 * SLICE, 40 * SLICE) == path[8:10]
    assert path_portion(path, 5 * SLICE, 5 * SLICE) == ()


def test_stitch_counts_and_segment_order() -> None:
    sub_a = _points(1.0, 4)
    sub_b = _points(2.0, 3)
    start_a = _points(3.0, 3)
    start_b = _points(4.0, 6)
    switch_ab = _points(5.0, 2)
    switch_ba = _points(6.0, 1)

    states = [(0.0, 0.0), (2 * SLICE, 0.0), (2 * SLICE, 3 * SLICE), (4 * SLICE, 3 * SLICE)]
    schedule = ScheduleResult(
        states=states,
        active_tasks=[0, 1, 0],
        transitions={(states[1], states[2]): switch_ab, (states[2], states[3]): switch_ba},
        goal=states[-1],
    )
    flight = stitch_schedule(schedule, ["A", "B"], {"A": sub_a, "B": sub_b}, {"A": start_a, "B": start_b})

    assert len(flight) == len(start_a) + len(sub_a) + len(sub_b) + len(switch_ab) + len(switch_ba)
    assert [s.kind for s in flight.segments] == [
        "start_transition",
        "task",
        "context_switch",
        "task",
        "context_switch",
        "task",
    ]
    assert flight.waypoints[:3] == start_a
    assert flight.waypoints[3:5] == sub_a[:2]
    assert flight.waypoints[-2:] == sub_a[2:]
    assert flight.segments[-1].source_start_index == 2
    assert sum(s.count for s in flight.segments) == len(flight)


def test_stitch_empty_schedule() -> None:
    schedule = ScheduleResult(states=[], active_tasks=[], transitions={}, goal=())
    flight = stitch_schedule(schedule, [], {}, {})
    assert len(flight) == 0
    assert flight.segments == []
