"""Main module for the thumbnails pipeline CLI."""

import sys
import json
import asyncio
import argparse
from typing import List, Optional

from . import __version__
from .core import (
    ConfigurationError,
    SizeTarget,
    derive_output_key,
    get_logger,
    load_config,
    log_configuration,
    parse_notifications,
    parse_size_marker,
    parse_sizes,
)
from .core.logging_config import set_debug
from .core.storage import Deadline
from .handler import run_batch


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser for the ``thumbnails-pipeline`` command."""
    parser = argparse.ArgumentParser(
        prog="thumbnails-pipeline",
        description="Thumbnails Pipeline - derive resized JPEG thumbnails from S3 uploads",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Replay a saved S3 event locally (configuration from the environment)
  Sizes=100x100,200x200 thumbnails-pipeline process --event event.json

  # Show which keys a source object would produce
  thumbnails-pipeline derive-key photos/a.jpg --size 100x100 --size 200x200

  # Show version
  thumbnails-pipeline version
        """,
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    process_parser = subparsers.add_parser(
        "process", help="Process a saved S3 event (JSON file, or - for stdin)"
    )
    process_parser.add_argument("--event", required=True, help="Path to the event JSON")
    process_parser.add_argument(
        "--timeout",
        type=float,
        default=None,
        help="Abort network calls after this many seconds",
    )
    process_parser.add_argument(
        "--debug", action="store_true", help="Enable debug logging"
    )

    derive_parser = subparsers.add_parser(
        "derive-key", help="Print the thumbnail keys derived from a source key"
    )
    derive_parser.add_argument("key", help="Source object key")
    derive_parser.add_argument(
        "--size",
        action="append",
        required=True,
        help="Size target as WIDTHxHEIGHT (repeatable)",
    )

    subparsers.add_parser("version", help="Show version information")
    return parser


def _read_event(path: str) -> dict:
    if path == "-":
        return json.load(sys.stdin)
    with open(path, encoding="utf-8") as f:
        return json.load(f)


def _process(args: argparse.Namespace) -> int:
    logger = get_logger("thumbnails-pipeline")
    try:
        config = load_config()
    except ConfigurationError as e:
        logger.error(f"Configuration error: {e}")
        return 2

    if args.debug or config.debug:
        set_debug(logger)
        log_configuration(config)

    notifications = parse_notifications(_read_event(args.event))
    report = asyncio.run(
        run_batch(notifications, config, deadline=Deadline.after(args.timeout))
    )
    print(json.dumps(report.summary(), indent=2))
    return 0


def _derive_key(args: argparse.Namespace) -> int:
    sizes: List[SizeTarget] = []
    try:
        for value in args.size:
            sizes.extend(parse_sizes(value))
    except ConfigurationError as e:
        print(f"error: {e}", file=sys.stderr)
        return 2

    marker = parse_size_marker(args.key)
    if marker is not None:
        print(
            f"warning: {args.key} carries size marker {marker} and is skipped as a thumbnail",
            file=sys.stderr,
        )

    for size in sizes:
        print(derive_output_key(args.key, size))
    return 0


def main(argv: Optional[List[str]] = None) -> None:
    """Entry point for the ``thumbnails-pipeline`` command."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command == "process":
        try:
            sys.exit(_process(args))
        except KeyboardInterrupt:
            get_logger("thumbnails-pipeline").warning("Processing interrupted by user.")
            sys.exit(130)

    elif args.command == "derive-key":
        sys.exit(_derive_key(args))

    elif args.command == "version":
        print("Thumbnails Pipeline CLI")
        print(f"Version {__version__}")
        sys.exit(0)

    else:
        parser.print_help()
        sys.exit(1)


if __name__ == "__main__":
    main()
