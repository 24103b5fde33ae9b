import argparse
import logging
import os
import sys
from typing import List, Optional

from .core.orchestrator import run_burndown_generation
from .core.phase1_environment import EnvironmentSetupError, setup_environment
from .core.phase5_store import ChartStore


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="gh-burndown", description="Burndown chart for a GitHub Projects board")
    sub = parser.add_subparsers(dest="command", required=True)

    gen = sub.add_parser("generate", help="Render a burndown chart and print its path")
    gen.add_argument("--project-id", required=True, help="ProjectV2 node id")
    gen.add_argument("--token", default=os.getenv("GITHUB_TOKEN"), help="GitHub token (defaults to $GITHUB_TOKEN)")
    gen.add_argument("--end-date", help="Last day of the window, YYYY-MM-DD (defaults to today)")
    gen.add_argument("--sprint-label", help="Only count items carrying this label")
    gen.add_argument("--tz", help="Timezone used to bucket closing times (defaults to $BURNDOWN_TZ)")

    prune = sub.add_parser("prune", help="Delete stored charts older than the given age")
    prune.add_argument("--older-than-hours", type=float, help="Defaults to $CHART_RETENTION_HOURS")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    logging.basicConfig(
        level=os.getenv("LOG_LEVEL", "INFO").upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    args = build_parser().parse_args(argv)

    if args.command == "generate":
        return run_burndown_generation(
            args.project_id,
            token=args.token,
            end_date=args.end_date,
            sprint_label=args.sprint_label,
            tz_name=args.tz,
        )

    try:
        config = setup_environment()
    except EnvironmentSetupError as e:
        print(str(e), file=sys.stderr)
        return 1
    max_age = args.older_than_hours if args.older_than_hours is not None else config.retention_hours
    if max_age is None:
        print("No retention age given (--older-than-hours or CHART_RETENTION_HOURS)", file=sys.stderr)
        return 2
    store = ChartStore(config.output_dir, image_format=config.image_format, retention_hours=max_age)
    removed = store.prune(max_age)
    print(f"removed {len(removed)} charts")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
