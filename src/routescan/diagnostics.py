# Copyright 2026 Zsolt Kulcsar and Contributors. Licensed under the EUPL-1.2 or later
"""Stateless formatting helpers for analyzer diagnostics."""

from pathlib import Path


def format_location(
    file_path: Path | str, line: int | None = None, column: int | None = None
) -> str:
    """Render a source location as ``path:line:column``.

    Args:
        file_path: Source file path.
        line: 1-based line number, if known.
        column: 1-based column number, if known.

    Returns:
        Location text; missing parts are omitted.
    """
    location = str(file_path)
    if line is not None:
        location = f"{location}:{line}"
        if column is not None:
            location = f"{location}:{column}"
    return location


def format_diagnostic(
    file_path: Path | str,
    message: str,
    line: int | None = None,
    column: int | None = None,
) -> str:
    """Render one diagnostic line.

    Args:
        file_path: File the diagnostic refers to.
        message: Human readable description.
        line: 1-based line number, if known.
        column: 1-based column number, if known.

    Returns:
        ``path:line:column: message`` text.
    """
    return f"{format_location(file_path, line, column)}: {message}"
