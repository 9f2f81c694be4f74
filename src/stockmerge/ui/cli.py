from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from signal import SIGINT, signal
from typing import TYPE_CHECKING

from dotenv import load_dotenv

from stockmerge.app import (
    build_import_options,
    import_snapshot,
    preview_snapshot,
    validate_snapshot,
)
from stockmerge.config import ConfigurationError, configure_logging
from stockmerge.domain.importing import ALL_DATA, ImportRejectedError
from stockmerge.domain.model import ResolutionAction

if TYPE_CHECKING:
    from collections.abc import Sequence
    from types import FrameType

    from stockmerge.domain.importing import ImportPreview, ImportProgress, ValidationResult

log = logging.getLogger(__name__)

EXIT_REJECTED = 2
EXIT_FATAL = 1


def _parse_args(argv: Sequence[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Merge exported shop data into the local store")
    parser.add_argument(
        "--log-level",
        type=str,
        default=None,
        help="Logging level (defaults to STOCKMERGE_LOG_LEVEL or INFO)",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    validate = subparsers.add_parser("validate", help="Check an export file's structure")
    validate.add_argument("path", type=Path, help="Export file to check")

    preview = subparsers.add_parser("preview", help="Show what an import would do")
    preview.add_argument("path", type=Path, help="Export file to preview")
    _add_run_arguments(preview)

    run = subparsers.add_parser("import", help="Merge an export file into the store")
    run.add_argument("path", type=Path, help="Export file to import")
    _add_run_arguments(run)
    run.add_argument(
        "--resolution",
        type=ResolutionAction,
        choices=list(ResolutionAction),
        default=ResolutionAction.KEEP_EXISTING,
        help="How to resolve records that already exist (default: keep_existing)",
    )
    run.add_argument(
        "--batch-size",
        type=int,
        default=None,
        help="Records per transaction (defaults to STOCKMERGE_BATCH_SIZE or 25)",
    )

    return parser.parse_args(list(argv))


def _add_run_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--scope",
        type=str,
        default=ALL_DATA,
        help="Collection to import, e.g. products or customers (default: all)",
    )
    parser.add_argument(
        "--create-missing-references",
        action="store_true",
        default=None,
        help="Create minimal categories, suppliers, products or customers for unknown references",
    )
    parser.add_argument(
        "--no-validate-references",
        dest="validate_references",
        action="store_false",
        help="Do not flag records whose references cannot be resolved",
    )


def _log_validation(result: ValidationResult) -> None:
    for issue in result.errors:
        log.error("%s: %s", issue.path, issue.message)
    for issue in result.warnings:
        log.warning("%s: %s", issue.path, issue.message)


def _log_preview(preview: ImportPreview) -> None:
    for collection, count in preview.record_counts.items():
        if count:
            log.info("%s: %d record(s) in file", collection, count)
    for entity_type, count in preview.new_records.items():
        if count:
            log.info("%s: %d new record(s)", entity_type, count)
    for entity_type, stats in preview.conflict_summary.statistics.items():
        if stats.total:
            log.info(
                "%s: %d conflict(s) (duplicate=%d, reference_missing=%d, validation_failed=%d)",
                entity_type,
                stats.total,
                stats.duplicate,
                stats.reference_missing,
                stats.validation_failed,
            )
    for conflict in preview.conflicts:
        log.info("  %s", conflict.message)
    for stand_in in preview.stand_ins:
        log.info(
            "Would create %s %r for %d record(s)",
            stand_in.entity_type,
            stand_in.name,
            len(stand_in.requested_by),
        )
    for issue in preview.warnings:
        log.warning("%s: %s", issue.path, issue.message)


def _log_progress(progress: ImportProgress) -> None:
    log.info(
        "%s: %d/%d (%.0f%%)",
        progress.stage,
        progress.current,
        progress.total,
        progress.percentage,
    )


def main(argv: Sequence[str] | None = None) -> None:
    """Main application entry point."""
    args_list = list(argv) if argv is not None else list(sys.argv[1:])
    parsed_args = _parse_args(args_list)
    try:
        configure_logging(level=parsed_args.log_level)
    except ConfigurationError:
        logging.basicConfig()
        log.exception("CLI validation error")
        sys.exit(EXIT_REJECTED)

    try:
        if parsed_args.command == "validate":
            validation = validate_snapshot(parsed_args.path)
            _log_validation(validation)
            if not validation.is_valid:
                sys.exit(EXIT_REJECTED)
            log.info("%s is structurally valid", parsed_args.path)
            return

        options = build_import_options(
            scope=parsed_args.scope,
            default_resolution=getattr(parsed_args, "resolution", ResolutionAction.KEEP_EXISTING),
            batch_size=getattr(parsed_args, "batch_size", None),
            create_missing_references=parsed_args.create_missing_references,
            validate_references=parsed_args.validate_references,
        )
        if parsed_args.command == "preview":
            _log_preview(preview_snapshot(parsed_args.path, options=options))
        elif parsed_args.command == "import":
            result = import_snapshot(parsed_args.path, options=options, observer=_log_progress)
            for line in result.message.splitlines():
                log.info("%s", line)
            for error in result.errors:
                log.warning("%s [%s]: %s", error.record, error.code, error.message)
        else:
            raise ValueError(f"Unsupported command: {parsed_args.command}")  # noqa: TRY301

    except (ImportRejectedError, ConfigurationError, OSError, ValueError) as exc:
        log.error("Import rejected: %s", exc)  # noqa: TRY400
        sys.exit(EXIT_REJECTED)
    except Exception:
        log.exception("Fatal error during import")
        sys.exit(EXIT_FATAL)


def sigint_handler(_signal_received: int, _frame: FrameType | None) -> None:
    """Handle SIGINT (Ctrl+C) gracefully."""
    log.info("Closed by user (Ctrl+C)")
    sys.exit(0)


def run() -> None:
    """Console script entry point."""
    load_dotenv()
    signal(SIGINT, sigint_handler)
    main()


if __name__ == "__main__":
    run()
