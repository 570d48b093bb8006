"""stashkit CLI entry points.

Maintenance commands for a namespace in a persistent backing store:
usage report, cleanup of expired entries, clear, and single-key reads.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from typing import Sequence

from stashkit.config.loader import build_engine, default_profile, load_profile
from stashkit.engine import StorageEngine
from stashkit.errors import StashKitConfigError

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    """Build the top-level CLI parser.

    Returns:
        Configured argument parser.
    """
    parser = argparse.ArgumentParser(prog="stashkit", description="Inspect and maintain a stashkit namespace")
    parser.add_argument("--profile", help="Path to a YAML storage profile (default: in-memory dashboard profile)")
    parser.add_argument(
        "--log-level",
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (default: WARNING)",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)
    subparsers.add_parser("info", help="Print item count, size and purgeable keys as JSON")
    subparsers.add_parser("cleanup", help="Delete expired, stale and corrupt entries")
    subparsers.add_parser("clear", help="Delete every entry under the profile's prefix")

    get_parser = subparsers.add_parser("get", help="Print one payload as JSON")
    get_parser.add_argument("key")
    get_parser.add_argument(
        "--obfuscated",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Override whether the key is stored obfuscated (default: per profile)",
    )

    remove_parser = subparsers.add_parser("remove", help="Delete one entry")
    remove_parser.add_argument("key")
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    """Run the stashkit CLI.

    Args:
        argv: Optional argument vector.

    Returns:
        Process exit code: 0 on success, 1 on a miss, 2 on a bad profile.
    """
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(level=getattr(logging, args.log_level), format="%(levelname)s %(name)s: %(message)s")

    try:
        engine = _build_engine(args.profile)
    except (StashKitConfigError, FileNotFoundError) as e:
        print(f"stashkit: {e}", file=sys.stderr)
        return 2

    if args.command == "info":
        return _run_info_command(engine)
    if args.command == "cleanup":
        print(engine.cleanup())
        return 0
    if args.command == "clear":
        print(engine.clear())
        return 0
    if args.command == "get":
        return _run_get_command(engine, args)
    if args.command == "remove":
        engine.remove(args.key)
        return 0
    parser.error(f"Unsupported command: {args.command}")
    return 2


def _build_engine(profile_path: str | None) -> StorageEngine:
    if profile_path is None:
        return build_engine(default_profile())
    profile, profile_hash = load_profile(profile_path)
    logger.debug("Loaded profile %s (%s)", profile.name, profile_hash)
    return build_engine(profile)


def _run_info_command(engine: StorageEngine) -> int:
    report = engine.diagnostics()
    print(json.dumps({"prefix": engine.prefix, **report.to_dict()}, indent=2))
    return 0


def _run_get_command(engine: StorageEngine, args: argparse.Namespace) -> int:
    value = engine.get(args.key, obfuscated=args.obfuscated)
    if value is None:
        return 1
    print(json.dumps(value, ensure_ascii=False))
    return 0
