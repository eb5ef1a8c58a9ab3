from __future__ import annotations

import argparse
import logging
import sys
from signal import SIGINT, signal
from typing import TYPE_CHECKING

from dotenv import load_dotenv

from bcdc_catalog.app import build_catalogue_provider, schedule_catalogue, sync_catalogue
from bcdc_catalog.config import (
    ConfigurationError,
    ScheduleConfig,
    configure_logging,
    get_schedule_config,
)

if TYPE_CHECKING:
    from collections.abc import Sequence
    from types import FrameType

log = logging.getLogger(__name__)


def _positive_float(value: str) -> float:
    try:
        parsed = float(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"Not a number: {value}") from exc
    if parsed <= 0:
        raise argparse.ArgumentTypeError(f"Must be positive: {value}")
    return parsed


def _positive_int(value: str) -> int:
    try:
        parsed = int(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"Not an integer: {value}") from exc
    if parsed <= 0:
        raise argparse.ArgumentTypeError(f"Must be positive: {value}")
    return parsed


def _add_common_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--database-uri",
        type=str,
        help="SQLAlchemy URI of the entity store (defaults to DATABASE_URI or the data dir)",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Log at DEBUG level",
    )


def _parse_args(argv: Sequence[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Publish BC Data Catalogue API resources as catalog entities"
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    sync = subparsers.add_parser("sync", help="Run one catalogue sync")
    _add_common_arguments(sync)

    schedule = subparsers.add_parser("schedule", help="Run catalogue syncs on an interval")
    _add_common_arguments(schedule)
    schedule.add_argument(
        "--frequency-seconds",
        type=_positive_float,
        help="Seconds between run starts (defaults to BCDC_SYNC_FREQUENCY_SECONDS)",
    )
    schedule.add_argument(
        "--timeout-seconds",
        type=_positive_float,
        help="Seconds after which a run is cancelled (defaults to BCDC_SYNC_TIMEOUT_SECONDS)",
    )
    schedule.add_argument(
        "--max-runs",
        type=_positive_int,
        help="Stop after this many runs",
    )

    return parser.parse_args(list(argv))


def _schedule_config(args: argparse.Namespace) -> ScheduleConfig:
    defaults = get_schedule_config()
    return ScheduleConfig(
        frequency_seconds=args.frequency_seconds or defaults.frequency_seconds,
        timeout_seconds=args.timeout_seconds or defaults.timeout_seconds,
    )


def main(argv: Sequence[str] | None = None) -> None:
    """Main application entry point."""
    args_list = list(argv) if argv is not None else list(sys.argv[1:])
    parsed_args = _parse_args(args_list)
    configure_logging(level=logging.DEBUG if parsed_args.verbose else logging.INFO)

    try:
        provider = build_catalogue_provider(database_uri=parsed_args.database_uri)
        schedule = _schedule_config(parsed_args) if parsed_args.command == "schedule" else None
    except ConfigurationError:
        log.exception("Configuration error")
        sys.exit(2)

    try:
        if parsed_args.command == "sync":
            result = sync_catalogue(provider=provider)
            if not result.applied:
                log.error("Catalogue sync did not complete; the entity store was left unchanged")
                sys.exit(1)
        elif parsed_args.command == "schedule":
            report = schedule_catalogue(
                provider=provider,
                schedule=schedule,
                max_runs=parsed_args.max_runs,
            )
            log.info(
                "Schedule finished: runs=%s, applied=%s, aborted=%s, failed=%s, timed_out=%s",
                report.runs,
                report.applied,
                report.aborted,
                report.failed,
                report.timed_out,
            )
        else:
            raise ValueError(f"Unsupported command: {parsed_args.command}")  # noqa: TRY301

    except Exception:
        log.exception("Fatal error during sync")
        sys.exit(1)


def sigint_handler(_signal_received: int, _frame: FrameType | None) -> None:
    """Handle SIGINT (Ctrl+C) gracefully."""
    log.info("Closed by user (Ctrl+C)")
    sys.exit(0)


def run() -> None:
    load_dotenv()
    signal(SIGINT, sigint_handler)
    main()


if __name__ == "__main__":
    run()
