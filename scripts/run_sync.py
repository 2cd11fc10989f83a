"""Run one Sprout analytics sync in the foreground and print the summary.

Example usages::

    python -m scripts.run_sync
    python -m scripts.run_sync --no-delay --folder 1AbCdEf
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys

from pydantic import ValidationError

from sprout_sync.core.config import get_settings
from sprout_sync.core.errors import FatalGroupError
from sprout_sync.core.logging import configure_logging
from sprout_sync.dependencies import build_sync_runner

EXIT_OK = 0
EXIT_PARTIAL = 1
EXIT_VALIDATION_ERROR = 2
EXIT_ABORTED = 4

logger = logging.getLogger(__name__)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Sync Sprout Social group analytics into Google Sheets."
    )
    parser.add_argument(
        "--folder",
        action="append",
        dest="folders",
        help="Drive folder id to sync into (repeatable; defaults to configured folders).",
    )
    parser.add_argument(
        "--no-delay",
        action="store_true",
        help="Skip the pause between groups.",
    )
    return parser


def main(argv: list[str] | None = None) -> int:
    args = _build_parser().parse_args(argv)

    try:
        settings = get_settings()
    except ValidationError as exc:
        print(
            "Settings validation failed. Missing or invalid values detected:\n"
            f"{exc.json(indent=2)}",
            file=sys.stderr,
        )
        return EXIT_VALIDATION_ERROR

    configure_logging(settings.log_level)
    runner = build_sync_runner(settings, folder_ids=args.folders, throttle=not args.no_delay)

    try:
        summary = asyncio.run(runner.run())
    except FatalGroupError as exc:
        logger.error("Sync aborted: %s", exc)
        return EXIT_ABORTED

    print(summary.render())
    return EXIT_PARTIAL if summary.failed else EXIT_OK


if __name__ == "__main__":  # pragma: no cover - script entry point
    sys.exit(main())
