# Copyright 2026 Zsolt Kulcsar and Contributors. Licensed under the EUPL-1.2 or later
"""Command line entry point for marker path extraction."""

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import TextIO

from rich.console import Console
from rich.logging import RichHandler
from rich.style import Style
from rich.table import Table

from routescan.errors import InvalidAnnotationArgument, ProjectConfigError
from routescan.extraction import AnnotationMatch, extract
from routescan.settings import DEFAULT_MARKER_NAME, DEFAULT_PATH_FIELD, ExtractionSettings
from routescan.source_model import SourceError, load_program

logger = logging.getLogger(__name__)

TABLE_COLUMN_RATIOS: dict[str, int] = {
    "class_name": 2,
    "path_segments": 3,
    "line": 1,
}


def build_log_handler() -> RichHandler:
    """Build the Rich log handler.

    Log records go to stderr so that stdout carries only command output.

    Returns:
        Handler writing to a stderr console.
    """
    return RichHandler(console=Console(stderr=True), rich_tracebacks=True, show_path=False)


def configure_logging(level: int = logging.INFO) -> None:
    """Configure application logging with Rich handler.

    Args:
        level: Logging severity threshold.
    """
    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[build_log_handler()],
    )


def build_parser() -> argparse.ArgumentParser:
    """Build the top-level CLI parser.

    Returns:
        Configured argument parser instance.
    """
    parser = argparse.ArgumentParser(prog="route-scan")
    subparsers = parser.add_subparsers(dest="command", required=True)
    extract_parser = subparsers.add_parser("extract")
    extract_parser.add_argument(
        "--project",
        default="tsconfig.json",
        help="Path to the project's tsconfig.json.",
    )
    extract_parser.add_argument(
        "--marker",
        default=DEFAULT_MARKER_NAME,
        help="Class decorator name to look for.",
    )
    extract_parser.add_argument(
        "--path-field",
        default=DEFAULT_PATH_FIELD,
        help="Options object field holding the path.",
    )
    extract_parser.add_argument(
        "--format",
        choices=("table", "json"),
        default="table",
        help="Output format.",
    )
    extract_parser.add_argument(
        "--output",
        required=False,
        help="Optional output file path for raw JSON when --format json is used.",
    )
    return parser


def run(argv: list[str], stdout: TextIO, stderr: TextIO) -> int:
    """Run CLI command.

    Args:
        argv: CLI arguments.
        stdout: Standard output stream.
        stderr: Standard error stream.

    Returns:
        Exit code.
    """
    parser = build_parser()
    try:
        args = parser.parse_args(argv)
    except SystemExit:
        logger.warning(f"Argument parsing failed (argv={argv})")
        return 2
    if args.command == "extract":
        return _run_extract(args=args, stdout=stdout, stderr=stderr)

    logger.warning(f"Unsupported command (command={args.command})")
    stderr.write(f"Unsupported command: {args.command}\n")
    return 2


def _run_extract(args: argparse.Namespace, stdout: TextIO, stderr: TextIO) -> int:
    """Run extract command.

    Args:
        args: Parsed CLI arguments.
        stdout: Standard output stream.
        stderr: Standard error stream.

    Returns:
        Exit code.
    """
    config_path = Path(args.project)
    if not config_path.is_file():
        logger.warning(f"Project configuration does not exist (path={config_path})")
        stderr.write(f"Project configuration does not exist: {config_path}\n")
        return 2
    if not args.marker.isidentifier():
        stderr.write(f"Invalid marker name: {args.marker}\n")
        return 2

    settings = ExtractionSettings(marker_name=args.marker, path_field=args.path_field)
    try:
        program = load_program(config_path)
    except ProjectConfigError as exc:
        logger.warning(f"Project configuration rejected (path={config_path} error={exc})")
        stderr.write(f"{exc}\n")
        return 2
    _write_errors(errors=list(program.errors), stderr=stderr)
    try:
        matches = extract(program, settings)
    except InvalidAnnotationArgument as exc:
        stderr.write(f"{exc}\n")
        return 1

    if args.format == "json":
        if args.output:
            try:
                _write_json_file(matches=matches, output_path=Path(args.output))
            except OSError as exc:
                logger.warning(
                    f"Failed to write JSON output file (output_path={args.output} error={exc})"
                )
                stderr.write(f"Failed to write JSON output file: {args.output}\n")
                return 2
        else:
            _write_json(matches=matches, stdout=stdout)
    else:
        _write_table(matches=matches, root_path=program.root_dir, stdout=stdout)
    return 0


def _write_errors(errors: list[SourceError], stderr: TextIO) -> None:
    """Write source load errors to stderr.

    Args:
        errors: Files skipped while loading the program.
        stderr: Standard error stream.
    """
    for error in errors:
        stderr.write(f"source_error: {error.file_path}: {error.message}\n")


def _payload(matches: list[AnnotationMatch]) -> list[dict[str, object]]:
    return [match.as_output() for match in matches]


def _write_json(matches: list[AnnotationMatch], stdout: TextIO) -> None:
    """Write matches in JSON format.

    Args:
        matches: Extracted matches.
        stdout: Standard output stream.
    """
    console = Console(file=stdout, force_terminal=False, color_system="truecolor")
    console.print(
        json.dumps(_payload(matches), indent=2),
        markup=False,
        highlight=False,
        soft_wrap=True,
    )


def _write_json_file(matches: list[AnnotationMatch], output_path: Path) -> None:
    """Write raw JSON payload to an output file.

    Args:
        matches: Extracted matches.
        output_path: Target file path.

    Raises:
        OSError: If directory creation or file writing fails.
    """
    output_path.parent.mkdir(parents=True, exist_ok=True)
    output_path.write_text(json.dumps(_payload(matches), indent=2), encoding="utf-8")


def _write_table(
    matches: list[AnnotationMatch], root_path: Path, stdout: TextIO
) -> None:
    """Write matches as one table per source file.

    Args:
        matches: Extracted matches.
        root_path: Project root the file paths are relative to.
        stdout: Standard output stream.
    """
    console = Console(file=stdout, force_terminal=False, color_system="truecolor")
    matches_by_file: dict[str, list[AnnotationMatch]] = {}
    for match in matches:
        matches_by_file.setdefault(match.file_path, []).append(match)

    for file_path in matches_by_file:
        full_path = str((root_path / file_path).resolve())
        console.rule(f"{full_path}", style=Style(color="cyan"), characters="-")
        table = Table(show_header=True, show_lines=True, expand=True)
        table.add_column(
            "class_name", ratio=TABLE_COLUMN_RATIOS["class_name"], overflow="fold"
        )
        table.add_column(
            "path_segments",
            ratio=TABLE_COLUMN_RATIOS["path_segments"],
            overflow="fold",
        )
        table.add_column(
            "line",
            ratio=TABLE_COLUMN_RATIOS["line"],
            justify="right",
            overflow="fold",
        )
        for match in matches_by_file[file_path]:
            segments = "/".join(match.path_segments) or "(root)"
            table.add_row(match.class_name, segments, str(match.line))
        console.print(table, markup=False)
    console.print(f"{len(matches)} marked classes", markup=False, highlight=False)


def main() -> None:
    """Run the CLI application and exit."""
    configure_logging()
    exit_code = run(sys.argv[1:], stdout=sys.stdout, stderr=sys.stderr)
    raise SystemExit(exit_code)


if __name__ == "__main__":
    main()
