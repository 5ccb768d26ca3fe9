"""Command-line interface: ``simlog-inspect``.

Subcommands:
    entity <id>             history of one entity
    narrative [--id ID]     narrative timelines, chronicle entries, story beats
    operations [--faction]  faction operations with likely phase actors
    summary                 whole-log counts, milestones and day snapshots
    validate <snapshot>     structural checks on a world snapshot

Every log subcommand reads ``--file`` or, when omitted, the newest event log
in the configured log directory. ``--json`` prints the same payload the HTTP
API returns instead of the text report.

Exit codes: 0 on success, 1 on a usage error or unreadable source, 2 when a
snapshot has validation errors.
"""

from __future__ import annotations

import argparse
import sys
from collections.abc import Sequence
from pathlib import Path
from typing import NoReturn

from pydantic import BaseModel

from simlog_inspector import __version__
from simlog_inspector.api.schemas import (
    EntityHistoryResponse,
    LogSummaryResponse,
    NarrativesResponse,
    OperationsResponse,
    ValidationResponse,
)
from simlog_inspector.core.services import InspectionService
from simlog_inspector.errors import InspectorError, SourceUnreadableError
from simlog_inspector.observability import configure_logging, get_logger
from simlog_inspector.render import (
    render_entity,
    render_narratives,
    render_operations,
    render_summary,
    render_validation,
)
from simlog_inspector.settings import Settings
from simlog_inspector.stream.source import find_latest_log

logger = get_logger(__name__)

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_INVALID_SNAPSHOT = 2


class _ArgumentParser(argparse.ArgumentParser):
    """ArgumentParser that reports usage errors with exit code 1."""

    def error(self, message: str) -> NoReturn:
        self.print_usage(sys.stderr)
        self.exit(EXIT_FAILURE, f"{self.prog}: error: {message}\n")


def build_parser() -> argparse.ArgumentParser:
    """Build the ``simlog-inspect`` argument parser."""
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("--json", action="store_true", help="Print JSON instead of a text report")

    log_source = argparse.ArgumentParser(add_help=False)
    log_source.add_argument(
        "--file",
        type=Path,
        help="Event log to read (default: newest events-*.jsonl in the log directory)",
    )

    parser = _ArgumentParser(
        prog="simlog-inspect",
        description="Inspect simulation event logs and world snapshots.",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("--log-dir", type=Path, help="Directory searched for the newest log")
    subparsers = parser.add_subparsers(dest="command", required=True)

    entity = subparsers.add_parser(
        "entity", parents=[common, log_source], help="Reconstruct one entity's history"
    )
    entity.add_argument("entity_id", help="Entity id")
    entity.add_argument("--limit", type=int, help="Most recent items per section")
    entity.set_defaults(handler=_run_entity)

    narrative = subparsers.add_parser(
        "narrative", parents=[common, log_source], help="Reconstruct narrative timelines"
    )
    narrative.add_argument("--id", dest="narrative_id", help="Only show this narrative")
    narrative.set_defaults(handler=_run_narrative)

    operations = subparsers.add_parser(
        "operations", parents=[common, log_source], help="Reconstruct faction operations"
    )
    operations.add_argument("--faction", dest="faction_id", help="Only consider this faction")
    operations.set_defaults(handler=_run_operations)

    summary = subparsers.add_parser(
        "summary", parents=[common, log_source], help="Summarise a whole event log"
    )
    summary.add_argument(
        "--sample-days",
        type=_int_list,
        help="Comma-separated days to sample (default: 0,7,30,60,90)",
    )
    summary.add_argument(
        "--show-sites",
        type=_str_list,
        help="Comma-separated settlement ids to show in day snapshots",
    )
    summary.set_defaults(handler=_run_summary)

    validate = subparsers.add_parser(
        "validate", parents=[common], help="Validate a world snapshot"
    )
    validate.add_argument("snapshot", type=Path, help="Snapshot JSON file")
    validate.set_defaults(handler=_run_validate)

    return parser


def _str_list(value: str) -> list[str]:
    return [item.strip() for item in value.split(",") if item.strip()]


def _int_list(value: str) -> list[int]:
    try:
        return [int(item) for item in _str_list(value)]
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"expected comma-separated integers: {value}") from exc


def _log_path(settings: Settings, requested: Path | None) -> Path:
    if requested is not None:
        return requested
    latest = find_latest_log(settings.log_dir, settings.log_glob)
    if latest is None:
        raise SourceUnreadableError(
            str(settings.log_dir), f"no {settings.log_glob} logs found; pass --file"
        )
    return latest


def _emit(args: argparse.Namespace, response: BaseModel, text: str) -> None:
    print(response.model_dump_json(indent=2) if args.json else text)


def _run_entity(service: InspectionService, args: argparse.Namespace) -> int:
    if args.limit is not None and args.limit < 0:
        raise InspectorError("--limit must not be negative", limit=args.limit)
    path = _log_path(service.settings, args.file)
    response = EntityHistoryResponse.from_history(
        service.entity_history(path, args.entity_id, limit=args.limit)
    )
    _emit(args, response, render_entity(response, str(path)))
    return EXIT_OK


def _run_narrative(service: InspectionService, args: argparse.Namespace) -> int:
    path = _log_path(service.settings, args.file)
    response = NarrativesResponse.from_report(service.narratives(path), args.narrative_id)
    _emit(args, response, render_narratives(response, str(path)))
    return EXIT_OK


def _run_operations(service: InspectionService, args: argparse.Namespace) -> int:
    path = _log_path(service.settings, args.file)
    response = OperationsResponse.from_report(service.operations(path, args.faction_id))
    _emit(args, response, render_operations(response, str(path)))
    return EXIT_OK


def _run_summary(service: InspectionService, args: argparse.Namespace) -> int:
    path = _log_path(service.settings, args.file)
    response = LogSummaryResponse.from_summary(
        service.summary(path, sample_days=args.sample_days, show_sites=args.show_sites)
    )
    _emit(args, response, render_summary(response, str(path)))
    return EXIT_OK


def _run_validate(service: InspectionService, args: argparse.Namespace) -> int:
    response = ValidationResponse.from_report(service.validate_snapshot_file(args.snapshot))
    _emit(args, response, render_validation(response, str(args.snapshot)))
    return EXIT_OK if response.valid else EXIT_INVALID_SNAPSHOT


def main(argv: Sequence[str] | None = None) -> int:
    """Run ``simlog-inspect``.

    Args:
        argv: Arguments without the program name; ``sys.argv[1:]`` if None.

    Returns:
        The process exit code.
    """
    args = build_parser().parse_args(argv)

    settings = Settings()
    if args.log_dir is not None:
        settings = settings.model_copy(update={"log_dir": args.log_dir})
    configure_logging(settings.log_level, json_logs=settings.json_logs)

    try:
        return args.handler(InspectionService(settings), args)
    except InspectorError as exc:
        logger.debug("Inspection failed", error=type(exc).__name__, **exc.context)
        print(f"error: {exc.message}", file=sys.stderr)
        return EXIT_FAILURE


if __name__ == "__main__":
    sys.exit(main())
