from __future__ import annotations

import csv
import json
import tempfile
import unittest
from pathlib import Path

from hierplan.validation.independent_checks import verify_flight_outputs, write_check_report

SLICE = 30.0 / 14.0
FLIGHT_FIELDS = ["index", "lon_deg", "lat_deg", "segment", "task_id", "source_index"]
SCHEDULE_FIELDS = ["step", "task_id", "task_start_s", "task_end_s", "required_s", "context_switch", "state"]


def _cfg(planner: str = "dubins") -> dict:
    return {
        "vehicle": {"min_turning_radius_m": 0.0, "waypoint_interval_m": 30.0, "airspeed_mps": 14.0},
        "planner": {"transition_planner": planner},
        "areas": [
            {"id": "a", "task_type": "coverage", "polygon": [[10.0, 45.0], [10.01, 45.0], [10.01, 45.01]]},
            {
                "id": "nfz",
                "task_type": "No-Fly Zone",
                "polygon": [[10.0, 44.9995], [10.001, 44.9995], [10.001, 45.0005], [10.0, 45.0005]],
            },
        ],
    }


def _flight_rows(count: int = 3, lon0: float = 10.002) -> list[dict]:
    step_deg = 30.0 / 78846.8
    rows = [{"index": 0, "lon_deg": lon0 - step_deg, "lat_deg": 45.0, "segment": "start_transition", "task_id": "a", "source_index": ""}]
    for i in range(count):
        rows.append(
            {
                "index": i + 1,
                "lon_deg": lon0 + i * step_deg,
                "lat_deg": 45.0,
                "segment": "task",
                "task_id": "a",
                "source_index": i,
            }
        )
    return rows


def _schedule_rows(slices: list[tuple[float, float]], required: float) -> list[dict]:
    return [
        {
            "step": i + 1,
            "task_id": "a",
            "task_start_s": start,
            "task_end_s": end,
            "required_s": required,
            "context_switch": False,
            "state": f"{end:.1f}",
        }
        for i, (start, end) in enumerate(slices)
    ]


class IndependentChecksTests(unittest.TestCase):
    def _write_csv(self, path: Path, fieldnames: list[str], rows: list[dict]) -> None:
        with path.open("w", newline="", encoding="utf-8") as f:
            writer = csv.DictWriter(f, fieldnames=fieldnames)
            writer.writeheader()
            writer.writerows(rows)

    def _run(self, cfg: dict, flight: list[dict], schedule: list[dict]) -> dict:
        with tempfile.TemporaryDirectory() as tmp:
            f_csv = Path(tmp) / "flight_plan.csv"
            s_csv = Path(tmp) / "schedule.csv"
            self._write_csv(f_csv, FLIGHT_FIELDS, flight)
            self._write_csv(s_csv, SCHEDULE_FIELDS, schedule)
            return verify_flight_outputs(cfg, f_csv, s_csv)

    def test_consistent_outputs_pass(self) -> None:
        report = self._run(_cfg(), _flight_rows(3), _schedule_rows([(0.0, 2 * SLICE), (2 * SLICE, 3 * SLICE)], 3 * SLICE))
        self.assertTrue(report["passed"], report["violations"])
        self.assertEqual(report["inputs"]["flight_rows"], 4)

    def test_missing_waypoint_is_a_coverage_violation(self) -> None:
        flight = _flight_rows(3)
        del flight[2]
        report = self._run(_cfg(), flight, _schedule_rows([(0.0, 3 * SLICE)], 3 * SLICE))
        self.assertFalse(report["passed"])
        self.assertEqual(report["checks"]["coverage_violations"], 1)

    def test_schedule_gap_is_reported(self) -> None:
        report = self._run(_cfg(), _flight_rows(3), _schedule_rows([(0.0, SLICE), (2 * SLICE, 3 * SLICE)], 3 * SLICE))
        self.assertGreater(report["checks"]["schedule_gap_violations"], 0)

    def test_spacing_jump_is_reported(self) -> None:
        flight = _flight_rows(3)
        flight[3]["lon_deg"] = float(flight[3]["lon_deg"]) + 0.002
        report = self._run(_cfg(), flight, _schedule_rows([(0.0, 3 * SLICE)], 3 * SLICE))
        self.assertEqual(report["checks"]["spacing_violations"], 1)

    def test_no_fly_waypoints_only_fail_obstacle_aware_runs(self) -> None:
        flight = _flight_rows(3, lon0=10.0005)
        schedule = _schedule_rows([(0.0, 3 * SLICE)], 3 * SLICE)
        unaware = self._run(_cfg("dubins"), flight, schedule)
        self.assertTrue(unaware["passed"], unaware["violations"])
        self.assertGreater(unaware["info"]["nofly_waypoints"], 0)

        aware = self._run(_cfg("visibility"), flight, schedule)
        self.assertFalse(aware["passed"])
        self.assertGreater(aware["checks"]["geofence_violations"], 0)

    def test_null_config_sections_fall_back_to_defaults(self) -> None:
        cfg = _cfg()
        cfg["planner"] = None
        cfg["vehicle"] = None
        flight = _flight_rows(3, lon0=10.0005)
        report = self._run(cfg, flight, _schedule_rows([(0.0, 3 * SLICE)], 3 * SLICE))
        self.assertTrue(report["passed"], report["violations"])
        self.assertGreater(report["info"]["nofly_waypoints"], 0)

        cfg["areas"] = None
        report = self._run(cfg, flight, _schedule_rows([(0.0, 3 * SLICE)], 3 * SLICE))
        self.assertEqual(report["info"]["nofly_waypoints"], 0)

    def test_empty_flight_fails(self) -> None:
        report = self._run(_cfg(), [], [])
        self.assertFalse(report["passed"])
        self.assertEqual(report["checks"]["empty_flight"], 1)

    def test_report_written_as_json(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "nested" / "independent_checks.json"
            write_check_report(path, {"passed": True})
            self.assertEqual(json.loads(path.read_text()), {"passed": True})
