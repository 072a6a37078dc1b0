#!/usr/bin/env python3
"""
Distribute a defect (or return) quantity over open production orders.

Reads a JSON request body, validates it, simulates against the candidate
orders and, unless --dry-run is given, commits the allocation and the
defect result rows in one transaction.  The outcome is printed as JSON.

Configuration comes from get_active_config(): packaged defaults, then
--config (or $DEFECT_KERNEL_CONFIG), then $DATABASE_URL.

Usage:
    python3 scripts/run_distribution.py --plant <plant> --request <file> [options]

Examples:
    # Dry run: print the advisory plan, write nothing
    python3 scripts/run_distribution.py --plant P100 --request body.json --dry-run

    # Commit
    python3 scripts/run_distribution.py --plant P100 --request body.json

    # Create the tables first on an empty database
    python3 scripts/run_distribution.py --plant P100 --request body.json --init-db

Exit codes:
    0  distribution applied (or dry run sufficient)
    1  configuration or database error
    2  invalid request
    3  not applied: capacity exceeded, capacity changed, or defect_no conflict
"""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path

# Project root on sys.path
ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(ROOT))

EXIT_OK = 0
EXIT_ERROR = 1
EXIT_INVALID = 2
EXIT_NOT_APPLIED = 3


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Distribute a defect quantity over open production orders.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument("--plant", required=True, help="Plant code.")
    parser.add_argument(
        "--request",
        required=True,
        type=Path,
        help="Path to the JSON request body ('-' reads stdin).",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="YAML override file (default: $DEFECT_KERNEL_CONFIG).",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Simulate only; print the plan and write nothing.",
    )
    parser.add_argument(
        "--init-db",
        action="store_true",
        help="Create missing tables before running.",
    )
    return parser.parse_args(argv)


def _load_body(path: Path) -> object:
    if str(path) == "-":
        return json.load(sys.stdin)
    with open(path) as f:
        return json.load(f)


def main(argv: list[str] | None = None) -> int:
    args = _parse_args(argv)

    from defect_config import get_active_config
    from defect_config.bridges import (
        build_clock,
        build_distribution_settings,
        init_engine,
    )
    from defect_kernel.db.engine import create_tables, get_session
    from defect_kernel.domain.request import build_distribution_request
    from defect_kernel.exceptions import RequestValidationError
    from defect_kernel.services.distribution_orchestrator import (
        DistributionOrchestrator,
    )

    try:
        body = _load_body(args.request)
    except (OSError, json.JSONDecodeError) as e:
        print(f"ERROR: Cannot read request: {e}", file=sys.stderr)
        return EXIT_INVALID

    try:
        request = build_distribution_request(args.plant, body)
    except RequestValidationError as e:
        print(json.dumps(e.to_payload()))
        return EXIT_INVALID

    try:
        config = get_active_config(args.config)
    except (FileNotFoundError, ValueError) as e:
        print(f"ERROR: Failed to load config: {e}", file=sys.stderr)
        return EXIT_ERROR

    try:
        init_engine(config)
        if args.init_db:
            create_tables()
    except Exception as e:
        print(f"ERROR: Database init failed: {e}", file=sys.stderr)
        return EXIT_ERROR

    session = get_session()
    try:
        orchestrator = DistributionOrchestrator(
            session,
            clock=build_clock(config),
            settings=build_distribution_settings(config),
        )
        if args.dry_run:
            plan = orchestrator.simulate(request)
            print(json.dumps(plan.to_payload(), indent=2))
            return EXIT_OK if plan.is_sufficient else EXIT_NOT_APPLIED

        result = orchestrator.distribute(request)
        print(json.dumps(result.to_payload(), indent=2))
        return EXIT_OK if result.is_success else EXIT_NOT_APPLIED
    except Exception as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return EXIT_ERROR
    finally:
        session.close()


if __name__ == "__main__":
    sys.exit(main())
