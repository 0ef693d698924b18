# Copyright 2026 Zsolt Kulcsar and Contributors. Licensed under the EUPL-1.2 or later
"""Extract marked classes and their path segments from a program."""

import logging
from dataclasses import dataclass
from pathlib import Path

from routescan.annotations import find_match
from routescan.errors import InvalidAnnotationArgument
from routescan.literals import EvaluationContext
from routescan.paths import normalize_path
from routescan.settings import ExtractionSettings
from routescan.source_model import ProgramSnapshot, list_top_level_classes, load_program

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AnnotationMatch:
    """Represent one marked class with its resolved path.

    Attributes:
        class_name: Name of the marked class.
        path_segments: Ordered path segments; empty for the root.
        file_path: Project-relative file declaring the class.
        line: 1-based line of the class declaration.
    """

    class_name: str
    path_segments: tuple[str, ...]
    file_path: str
    line: int

    def as_output(self) -> dict[str, object]:
        """Render the record for downstream generation steps."""
        return {
            "className": self.class_name,
            "pathSegments": list(self.path_segments),
            "filePath": self.file_path,
            "line": self.line,
        }


def extract(
    program: ProgramSnapshot, settings: ExtractionSettings | None = None
) -> list[AnnotationMatch]:
    """Collect every class carrying the configured marker.

    Args:
        program: Program snapshot to scan.
        settings: Marker name and path field; defaults apply when omitted.

    Returns:
        Matches in source order.

    Raises:
        InvalidAnnotationArgument: If any marker argument is not a valid path.
            Extraction stops at the first such class.
    """
    settings = settings or ExtractionSettings()
    classes = list_top_level_classes(program)
    matches: list[AnnotationMatch] = []
    for class_decl in classes:
        annotation = find_match(class_decl, settings.marker_name)
        if annotation is None:
            continue
        context = EvaluationContext(program=program, source=class_decl.source)
        try:
            segments = normalize_path(
                annotation.first_argument, context, path_field=settings.path_field
            )
        except InvalidAnnotationArgument as exc:
            logger.error(
                f"Invalid marker argument (class_name={class_decl.name} location={exc.location} reason={exc.reason})"
            )
            raise InvalidAnnotationArgument(
                reason=exc.reason, location=exc.location, class_name=class_decl.name
            ) from exc
        matches.append(
            AnnotationMatch(
                class_name=class_decl.name,
                path_segments=tuple(segments),
                file_path=program.relative_path(class_decl.source),
                line=class_decl.line,
            )
        )
    logger.info(
        f"Extraction completed (marker={settings.marker_name} classes={len(classes)} matches={len(matches)})"
    )
    return matches


def extract_from_config(
    config_path: Path | str, settings: ExtractionSettings | None = None
) -> list[AnnotationMatch]:
    """Load a project from its configuration file and extract matches.

    Args:
        config_path: Path to ``tsconfig.json``.
        settings: Marker name and path field.

    Returns:
        Matches in source order.
    """
    return extract(load_program(config_path), settings)
