from __future__ import annotations

import argparse
import importlib.metadata
import importlib.util
import json
import os
import sys
from pathlib import Path
from typing import Any, Dict, List, Sequence

# Keep matplotlib cache writable in restricted environments.
workspace_root = Path(__file__).resolve().parent
os.environ.setdefault("MPLCONFIGDIR", str(workspace_root / ".mpl_cache"))


RUNTIME_DEPENDENCIES: list[tuple[str, str]] = [
    ("yaml", "PyYAML"),
    ("numpy", "numpy"),
    ("matplotlib", "matplotlib"),
    ("shapely", "shapely"),
]


def _package_version(package_name: str) -> str | None:
    try:
        return importlib.metadata.version(package_name)
    except importlib.metadata.PackageNotFoundError:
        return None


def build_environment_report() -> Dict[str, Any]:
    deps: Dict[str, Any] = {}
    missing: list[str] = []
    for module_name, package_name in RUNTIME_DEPENDENCIES:
        available = importlib.util.find_spec(module_name) is not None
        deps[package_name] = {
            "module": module_name,
            "available": available,
            "version": _package_version(package_name),
        }
        if not available:
            missing.append(package_name)
    return {
        "python_version": sys.version.split()[0],
        "python_executable": sys.executable,
        "runtime_dependencies": deps,
        "missing_dependencies": missing,
    }


def load_config(config_path: Path) -> Dict[str, Any]:
    import yaml

    with config_path.open("r", encoding="utf-8") as f:
        cfg = yaml.safe_load(f)
    if not isinstance(cfg, dict):
        raise ValueError(f"Config at {config_path} must parse to a mapping")
    return cfg


def _collect_pipeline_issues(mission: Dict[str, Any], independent: Dict[str, Any]) -> list[str]:
    issues: list[str] = []
    metrics = mission["metrics"]
    if int(metrics.get("waypoints", 0)) == 0:
        issues.append("Planned flight has no waypoints")
    if not bool(independent.get("passed", False)):
        issues.append(f"Independent checks failed (violations={int(independent.get('violation_count', 0))})")
    return issues


def main(argv: Sequence[str] | None = None) -> Dict[str, Any]:
    parser = argparse.ArgumentParser(description="Hierarchical multi-task UAV flight planner")
    parser.add_argument("--config", type=Path, default=Path("configs/default.yaml"), help="Path to YAML config")
    parser.add_argument("--output-root", type=Path, default=None, help="Override config output_root")
    parser.add_argument("--log-level", default="INFO", help="Root logging level")
    parser.add_argument("--skip-preflight", action="store_true", help="Skip runtime dependency preflight checks")
    parser.add_argument("--strict", action="store_true", help="Fail run if independent checks report violations")
    parser.add_argument("--no-strict", action="store_true", help="Do not fail run on flight-quality issues")
    args = parser.parse_args(argv)

    from hierplan.logging_utils import configure_root_logger, get_logger

    configure_root_logger(str(args.log_level).upper())
    logger = get_logger("hierplan.run_all")

    env_report = build_environment_report()
    if not args.skip_preflight and env_report["missing_dependencies"]:
        raise RuntimeError(
            "Missing runtime dependencies: "
            + ", ".join(env_report["missing_dependencies"])
            + ".\nInstall with the same interpreter used to run this script:\n"
            + "  python3 -m pip install -e ."
        )

    cfg = load_config(args.config)

    from hierplan.core import validate_config

    validate_config(cfg)
    strict_mode = bool(cfg.get("strict", True))
    if args.strict:
        strict_mode = True
    if args.no_strict:
        strict_mode = False

    output_root = args.output_root if args.output_root is not None else Path(cfg.get("output_root", "outputs"))
    output_root.mkdir(parents=True, exist_ok=True)
    (output_root / "environment_report.json").write_text(json.dumps(env_report, indent=2))

    from hierplan.aircraft import run_mission
    from hierplan.validation import verify_flight_outputs, write_check_report

    mission = run_mission(cfg, output_root / "flight")
    independent = verify_flight_outputs(
        cfg,
        flight_csv=Path(mission["flight_csv"]),
        schedule_csv=Path(mission["schedule_csv"]),
    )
    write_check_report(output_root / "flight" / "independent_checks.json", independent)

    issues: List[str] = _collect_pipeline_issues(mission, independent)
    summary = {
        "strict_mode": strict_mode,
        "config": str(args.config),
        "outputs": {
            "flight_csv": mission["flight_csv"],
            "schedule_csv": mission["schedule_csv"],
            "path_plot": mission["plot_path"],
            "path_kml": mission["kml_path"],
            "metrics_json": mission["metrics_json"],
        },
        "metrics": mission["metrics"],
        "independent_checks": independent,
        "pipeline_issues": issues,
    }
    (output_root / "run_summary.json").write_text(json.dumps(summary, indent=2, default=str))

    if strict_mode and issues:
        raise RuntimeError("Strict mode failed: " + "; ".join(issues))
    for issue in issues:
        logger.warning(issue)

    print("Run complete.")
    print(f"Outputs: {output_root.resolve()}")
    return summary


if __name__ == "__main__":
    main()
