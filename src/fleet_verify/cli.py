"""Command line interface for fleet-verify.

Commands:
    fleet-verify plan [TYPES...] [--retry]      Show confirmed and to-verify types
    fleet-verify status                         Show every recorded status
    fleet-verify record TYPE --confirmed|--inconclusive [--metric N]
    fleet-verify reset TYPE                     Forget a type's history
    fleet-verify compact                        Rewrite the store, one line per type

Output is JSON on stdout. Exit codes: 0 success, 1 failure, 2 usage or
configuration error.
"""

import argparse
import json
import logging
import sys
from dataclasses import asdict
from pathlib import Path
from typing import List, Optional, Sequence

from .config import VerifyConfig, get_effective_config
from .errors import ConfigError, FleetVerifyError
from .verification.tracker import VerificationTracker

logger = logging.getLogger(__name__)


def _build_parser() -> argparse.ArgumentParser:
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("--config", type=Path, help="Path to fleet_verify.yaml")
    common.add_argument("--store", help="Path to the JSONL status store")

    parser = argparse.ArgumentParser(
        prog="fleet-verify",
        description="Decide which instance types need verification",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    plan = subparsers.add_parser(
        "plan", parents=[common], help="Show confirmed and to-verify instance types"
    )
    plan.add_argument(
        "instance_types",
        nargs="*",
        help="Instance types to request (default: instance_types from config)",
    )
    plan.add_argument(
        "--retry",
        action="store_true",
        default=None,
        help="Re-verify instance types whose last attempt was inconclusive",
    )

    subparsers.add_parser("status", parents=[common], help="Show all recorded statuses")

    record = subparsers.add_parser(
        "record", parents=[common], help="Record the outcome of a verification attempt"
    )
    record.add_argument("instance_type")
    outcome = record.add_mutually_exclusive_group(required=True)
    outcome.add_argument("--confirmed", dest="confirmed", action="store_true")
    outcome.add_argument("--inconclusive", dest="confirmed", action="store_false")
    record.add_argument(
        "--metric",
        type=int,
        default=-1,
        help="Measurement from the attempt (default: %(default)s)",
    )

    reset = subparsers.add_parser(
        "reset", parents=[common], help="Mark an instance type as never attempted"
    )
    reset.add_argument("instance_type")

    subparsers.add_parser(
        "compact", parents=[common], help="Rewrite the store with one record per type"
    )

    return parser


def _load_config(args: argparse.Namespace) -> VerifyConfig:
    config = get_effective_config(args.config, strict=args.config is not None)
    if args.store:
        config = config.model_copy(update={"store_path": args.store})
    return config


def _print_json(data: object) -> None:
    print(json.dumps(data, indent=2))


def _run(args: argparse.Namespace, config: VerifyConfig) -> None:
    tracker = VerificationTracker(store_path=config.store_path, strict=True)

    if args.command == "plan":
        requested: List[str] = args.instance_types or config.instance_types
        retry = config.retry_inconclusive if args.retry is None else args.retry
        result = tracker.plan(requested, retry_inconclusive=retry)
        _print_json({"confirmed": result.confirmed, "to_verify": result.to_verify})

    elif args.command == "status":
        statuses = tracker.get_all_statuses()
        _print_json({t: asdict(statuses[t]) for t in sorted(statuses)})

    elif args.command == "record":
        status = tracker.record_attempt(
            args.instance_type, confirmed=args.confirmed, metric=args.metric
        )
        _print_json({args.instance_type: asdict(status)})

    elif args.command == "reset":
        tracker.reset(args.instance_type)
        _print_json({args.instance_type: asdict(tracker.get_status(args.instance_type))})

    elif args.command == "compact":
        tracker.compact()
        _print_json({"records": len(tracker.get_all_statuses())})


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Entry point for the fleet-verify command."""
    parser = _build_parser()
    args = parser.parse_args(list(argv) if argv is not None else sys.argv[1:])

    try:
        config = _load_config(args)
    except ConfigError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2

    logging.basicConfig(
        level=config.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        _run(args, config)
    except FleetVerifyError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
