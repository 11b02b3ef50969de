from __future__ import annotations

import argparse
import logging
import sys
from dataclasses import replace
from pathlib import Path
from signal import SIGINT, signal
from typing import TYPE_CHECKING

from dotenv import load_dotenv

from bulkdata.app import (
    LOAD_REGISTRY,
    analyze_file,
    build_classifier,
    load_file,
    load_status,
    recent_loads,
)
from bulkdata.config import ConfigurationError, configure_logging, get_bulk_config
from bulkdata.domain.model import RecordFormat

if TYPE_CHECKING:
    from collections.abc import Sequence
    from types import FrameType

    from bulkdata.domain.model import BulkAnalysis, BulkLoadResult, LoadRun

log = logging.getLogger(__name__)


def _parse_args(argv: Sequence[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Analyze and load bulk entity records")
    subparsers = parser.add_subparsers(dest="command", required=True)

    analyze = subparsers.add_parser("analyze", help="Summarise a bulk file without loading it")
    _add_source_arguments(analyze)
    _add_mapping_arguments(analyze)

    load = subparsers.add_parser("load", help="Load a bulk file into the resolution engine")
    _add_source_arguments(load)
    _add_mapping_arguments(load)
    load.add_argument(
        "--source-id",
        type=str,
        help="Source id stamped on every record that does not carry one",
    )
    load.add_argument(
        "--load-id",
        type=str,
        help="Explicit load id (defaults to one derived from the file)",
    )
    load.add_argument(
        "--max-failures",
        type=int,
        help="Abort the load once this many records failed (0 disables, defaults to config)",
    )

    status = subparsers.add_parser("status", help="Show stored load runs")
    status.add_argument(
        "load_id",
        nargs="?",
        help="Load id to inspect (lists recent loads when omitted)",
    )
    status.add_argument(
        "--limit",
        type=int,
        default=20,
        help="Number of recent loads to list (default: %(default)s)",
    )

    return parser.parse_args(list(argv))


def _add_source_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("path", type=Path, help="Bulk file in JSON, JSON-lines or CSV form")
    parser.add_argument(
        "--format",
        dest="record_format",
        type=str,
        help="Record format name or media type (sniffed from the content when omitted)",
    )
    parser.add_argument(
        "--encoding",
        type=str,
        default="utf-8",
        help="Character encoding of the file (default: %(default)s)",
    )


def _add_mapping_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--default-data-source",
        type=str,
        help="Data source for records that do not name one",
    )
    parser.add_argument(
        "--default-entity-type",
        type=str,
        help="Entity type for records that do not name one",
    )
    parser.add_argument(
        "--data-source-map",
        action="append",
        default=[],
        metavar="FROM=TO",
        help="Remap a data source code; an empty FROM maps every unmapped code",
    )
    parser.add_argument(
        "--entity-type-map",
        action="append",
        default=[],
        metavar="FROM=TO",
        help="Remap an entity type code; an empty FROM maps every unmapped code",
    )


def _parse_record_format(value: str | None) -> RecordFormat | None:
    if value is None:
        return None
    normalized = value.strip().upper().replace("-", "_")
    if normalized in RecordFormat.__members__:
        return RecordFormat[normalized]
    record_format = RecordFormat.from_media_type(value)
    if record_format is None:
        raise ValueError(f"Unsupported record format: {value}")
    return record_format


def _parse_mapping(pairs: Sequence[str]) -> dict[str | None, str]:
    mapping: dict[str | None, str] = {}
    for pair in pairs:
        source, separator, target = pair.partition("=")
        if not separator or not target.strip():
            raise ValueError(f"Invalid mapping (expected FROM=TO): {pair}")
        mapping[source] = target
    return mapping


def _report_analysis(analysis: BulkAnalysis) -> None:
    for stat in analysis.data_source_stats:
        log.info(
            "Data source %s: records=%s, with_record_id=%s, malformed=%s, classes=%s",
            stat.data_source or "<none>",
            stat.record_count,
            stat.records_with_record_id,
            stat.malformed_count,
            dict(stat.attribute_classes),
        )
    for stat in analysis.entity_type_stats:
        log.info(
            "Entity type %s: records=%s, with_data_source=%s, malformed=%s",
            stat.entity_type or "<none>",
            stat.record_count,
            stat.records_with_data_source,
            stat.malformed_count,
        )
    if analysis.incomplete:
        log.warning("Analysis incomplete: %s", analysis.abort_reason)


def _report_load(result: BulkLoadResult) -> None:
    for summary in result.top_errors:
        log.info("Error %s (%s records): %s", summary.code, summary.count, summary.message)
    if result.partial:
        log.warning("Load %s aborted: %s", result.load_id, result.abort_reason)


def _report_run(run: LoadRun) -> None:
    progress = run.progress
    log.info(
        "Load %s: status=%s, submitted=%s, loaded=%s, skipped=%s, failed=%s, reason=%s",
        run.load_id,
        progress.status,
        progress.submitted,
        progress.loaded,
        progress.skipped,
        progress.failed,
        progress.abort_reason,
    )


def main(argv: Sequence[str] | None = None) -> None:
    """Main application entry point."""
    configure_logging()
    parsed_args: argparse.Namespace
    args_list = list(argv) if argv is not None else list(sys.argv[1:])
    try:
        parsed_args = _parse_args(args_list)
        record_format = None
        classifier = None
        if parsed_args.command in {"analyze", "load"}:
            record_format = _parse_record_format(parsed_args.record_format)
            classifier = build_classifier(
                get_bulk_config(),
                default_data_source=parsed_args.default_data_source,
                default_entity_type=parsed_args.default_entity_type,
                data_source_map=_parse_mapping(parsed_args.data_source_map),
                entity_type_map=_parse_mapping(parsed_args.entity_type_map),
            )
        if parsed_args.command == "load" and (parsed_args.max_failures or 0) < 0:
            raise ValueError("--max-failures must be non-negative")  # noqa: TRY301
    except (ValueError, ConfigurationError):
        log.exception("CLI validation error")
        sys.exit(2)

    try:
        if parsed_args.command == "analyze":
            analysis = analyze_file(
                parsed_args.path,
                record_format=record_format,
                character_encoding=parsed_args.encoding,
                classifier=classifier,
            )
            _report_analysis(analysis)
        elif parsed_args.command == "load":
            config = get_bulk_config()
            if parsed_args.max_failures is not None:
                config = replace(config, max_failures=parsed_args.max_failures)
            result = load_file(
                parsed_args.path,
                record_format=record_format,
                character_encoding=parsed_args.encoding,
                source_id=parsed_args.source_id,
                classifier=classifier,
                load_id=parsed_args.load_id,
                config=config,
            )
            _report_load(result)
        elif parsed_args.command == "status":
            if parsed_args.load_id is None:
                for run in recent_loads(limit=parsed_args.limit):
                    _report_run(run)
            else:
                run = load_status(parsed_args.load_id)
                if run is None:
                    raise ValueError(f"Unknown load id: {parsed_args.load_id}")  # noqa: TRY301
                _report_run(run)
        else:
            raise ValueError(f"Unsupported command: {parsed_args.command}")  # noqa: TRY301

    except Exception:
        log.exception("Fatal error during bulk run")
        sys.exit(1)


def sigint_handler(_signal_received: int, _frame: FrameType | None) -> None:
    """Abort running loads on SIGINT (Ctrl+C); exit when nothing is running."""
    aborted = LOAD_REGISTRY.abort_all("interrupted by user")
    if aborted:
        log.warning("Aborting load(s) %s (Ctrl+C)", ", ".join(aborted))
        return
    log.info("Closed by user (Ctrl+C)")
    sys.exit(0)


def run() -> None:
    load_dotenv()
    signal(SIGINT, sigint_handler)
    main()


if __name__ == "__main__":
    run()
