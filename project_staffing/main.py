from __future__ import annotations

import argparse
import logging
import sys
from dataclasses import replace
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from . import engine
from .engine import SimulationResult, UnstaffableProjectError
from .io_utils import ensure_directory, load_config, load_instance, write_csv, write_report
from .models import SimulationConfig
from .recommendations import RecommendationEngine


def _parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Day-by-day project staffing simulator (text instance in, report out)."
    )
    parser.add_argument(
        "--instance-dir",
        help="Directory containing input/ and output/ subfolders",
    )
    parser.add_argument("--instance", help="Path to instance text file (overrides instance-dir default)")
    parser.add_argument("--config", help="Path to configuration JSON file (overrides instance-dir default)")
    parser.add_argument(
        "--outdir",
        default=None,
        help="Output directory for generated files (default: <instance-dir>/output or ./out)",
    )
    parser.add_argument(
        "--strict",
        action="store_true",
        help="Fail if any project cannot be staffed",
    )
    parser.add_argument("--max-days", type=int, help="Override config.max_days simulation horizon")
    parser.add_argument(
        "--max-postponements",
        type=int,
        help="Override config.max_postponements before a project is abandoned",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Simulate and print summary without writing output files",
    )
    return parser.parse_args(argv)


def _resolve_io_paths(args: argparse.Namespace) -> Tuple[Path, Optional[Path], Path]:
    instance_dir = Path(args.instance_dir).resolve() if args.instance_dir else None
    if instance_dir and not instance_dir.exists():
        raise ValueError(f"instance directory not found: {instance_dir}")
    input_dir = instance_dir / "input" if instance_dir else None

    if args.instance:
        instance_path = Path(args.instance)
    elif input_dir:
        instance_path = input_dir / "instance.txt"
    else:
        raise ValueError("missing required input path: --instance (or provide --instance-dir)")
    if not instance_path.exists():
        raise ValueError(f"instance file not found at {instance_path}")

    config_path: Optional[Path] = None
    if args.config:
        config_path = Path(args.config)
        if not config_path.exists():
            raise ValueError(f"config file not found at {config_path}")
    elif input_dir and (input_dir / "config.json").exists():
        config_path = input_dir / "config.json"

    if args.outdir:
        outdir = Path(args.outdir)
    elif instance_dir:
        outdir = instance_dir / "output"
    else:
        outdir = Path("out")

    return instance_path, config_path, outdir


def _configure_logging(level_name: str) -> None:
    level = getattr(logging, level_name.upper(), logging.INFO)
    logging.basicConfig(level=level, format="%(levelname)s %(message)s")


def _apply_overrides(cfg: SimulationConfig, args: argparse.Namespace) -> SimulationConfig:
    if args.max_days is not None:
        if args.max_days <= 0:
            raise ValueError("--max-days must be positive")
        cfg = replace(cfg, max_days=args.max_days)
    if args.max_postponements is not None:
        if args.max_postponements < 0:
            raise ValueError("--max-postponements must not be negative")
        cfg = replace(cfg, max_postponements=args.max_postponements)
    return cfg


def _print_dry_run_summary(result: SimulationResult) -> None:
    if not result.completed:
        print("No projects completed.")
    else:
        print("Completed projects:")
        for assignment in result.completed:
            days_label = "day" if assignment.project.duration == 1 else "days"
            print(
                f"- {assignment.project.name}: day {assignment.start_day} → {assignment.end_day} "
                f"({assignment.project.duration} {days_label}) {' '.join(assignment.workers)}"
            )
    print(f"\nTotal score: {result.total_score} over {result.days_elapsed} simulated day(s)")
    if result.unstaffed:
        print("\nUnstaffed projects:")
        for item in result.unstaffed:
            print(f"- {item['name']}: {item['reason']}")
    else:
        print("\nUnstaffed projects: none")


def _write_unstaffed_markdown(
    unstaffed: List[Dict[str, object]], recommendations: Dict[str, object], outdir: Path
) -> None:
    path = outdir / "unstaffed_projects.md"
    lines: List[str] = ["# Unstaffed Projects", ""]
    if not unstaffed:
        lines.append("All projects were staffed.")
    else:
        for item in unstaffed:
            lines.append(f"- **{item['name']}**")
            lines.append(f"  - Reason: {item['reason']}")
            detail = item.get("detail") if isinstance(item.get("detail"), dict) else {}
            if detail.get("skill"):
                lines.append(f"  - Blocking Role: {detail['skill']} level {detail.get('level')}")
            holders = detail.get("holders")
            if isinstance(holders, list) and holders:
                label = ", ".join(f"{entry['name']} ({entry['level']})" for entry in holders)
                lines.append(f"  - Skill Holders: {label}")
            postponements = detail.get("postponements")
            if isinstance(postponements, int) and postponements > 0:
                lines.append(f"  - Postponements: {postponements}")
            lines.append("")
        hiring = recommendations.get("hiring") or []
        training = recommendations.get("training") or []
        if hiring or training:
            lines.append("## Recommendations")
            lines.append("")
            for entry in hiring:
                lines.append(f"- Hire {entry['skill']} level {entry['level']} ({entry['severity']}): {entry['reason']}")
            for entry in training:
                lines.append(
                    f"- Train {entry['worker']} in {entry['skill']} "
                    f"{entry['current_level']} → {entry['target_level']} ({entry['priority']})"
                )
    path.write_text("\n".join(lines).strip() + "\n")


def main(argv: Optional[List[str]] = None) -> None:
    args = _parse_args(argv)
    try:
        instance_path, config_path, outdir = _resolve_io_paths(args)
        workers, projects = load_instance(instance_path)
        cfg = load_config(config_path) if config_path else SimulationConfig()
        cfg = _apply_overrides(cfg, args)
    except ValueError as exc:
        print(str(exc), file=sys.stderr)
        sys.exit(2)

    _configure_logging(cfg.logging_level)
    try:
        result = engine.simulate(workers, projects, cfg, strict=args.strict)
    except UnstaffableProjectError as exc:
        print(str(exc), file=sys.stderr)
        sys.exit(1)

    if args.dry_run:
        _print_dry_run_summary(result)
        return

    recommendations = RecommendationEngine(result.unstaffed, result.workers).analyze()
    outdir_path = ensure_directory(outdir)
    report_path = outdir_path / "submission.txt"
    timeline_path = outdir_path / "assignment_timeline.csv"
    skills_path = outdir_path / "worker_skills.csv"
    write_report(result.completed, report_path)
    write_csv(engine.timeline_frame(result, cfg), timeline_path)
    write_csv(engine.skills_frame(result), skills_path)
    _write_unstaffed_markdown(result.unstaffed, recommendations, outdir_path)
    print(f"Wrote {report_path}")
    print(f"Wrote {timeline_path}")
    print(f"Wrote {skills_path}")
    print(f"Wrote {outdir_path / 'unstaffed_projects.md'}")
    if result.unstaffed:
        print("Unstaffed projects:")
        for item in result.unstaffed:
            print(f"- {item['name']}: {item['reason']}")


if __name__ == "__main__":
    main()
