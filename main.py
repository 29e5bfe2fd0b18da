"""Convenience CLI for running lending-rate pipeline stages."""

from __future__ import annotations

import argparse
import subprocess
import sys

STAGE_TO_MODULE = {
    "ingest": "rate_agents.ingest_agent",
    "backfill": "rate_agents.backfill_agent",
    "rollover": "rate_agents.rollover_agent",
    "render": "rate_agents.render_agent",
}

ALL_STAGES = ("ingest", "render")


def build_command(stage: str, extra: list[str] | None = None) -> list[str]:
    return [sys.executable, "-m", STAGE_TO_MODULE[stage], *(extra or [])]


def run_stage(stage: str, extra: list[str] | None = None) -> int:
    return subprocess.run(build_command(stage, extra)).returncode


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(description="Run lending-rate pipeline stages")
    sub = parser.add_subparsers(dest="cmd", required=True)

    run_parser = sub.add_parser("run", help="Run one stage or all stages")
    run_parser.add_argument(
        "stage",
        choices=[*STAGE_TO_MODULE.keys(), "all"],
        help="Stage to run",
    )
    run_parser.add_argument(
        "extra",
        nargs=argparse.REMAINDER,
        help="Arguments passed through to the stage (e.g. --start/--end for backfill)",
    )

    args = parser.parse_args(argv)

    if args.cmd == "run":
        if args.stage == "all":
            for stage in ALL_STAGES:
                code = run_stage(stage)
                if code:
                    sys.exit(code)
            return
        code = run_stage(args.stage, args.extra)
        if code:
            sys.exit(code)


if __name__ == "__main__":
    main()
