# Copyright 2026 Zsolt Kulcsar and Contributors. Licensed under the EUPL-1.2 or later
"""Public import surface for the route scanner."""

from routescan.errors import InvalidAnnotationArgument, ProjectConfigError, RouteScanError
from routescan.extraction import AnnotationMatch, extract, extract_from_config
from routescan.settings import ExtractionSettings
from routescan.source_model import ProgramSnapshot, load_program

__all__ = [
    "AnnotationMatch",
    "ExtractionSettings",
    "InvalidAnnotationArgument",
    "ProgramSnapshot",
    "ProjectConfigError",
    "RouteScanError",
    "extract",
    "extract_from_config",
    "load_program",
]
