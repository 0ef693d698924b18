# Copyright 2026 Zsolt Kulcsar and Contributors. Licensed under the EUPL-1.2 or later
"""Configuration values for route extraction."""

from dataclasses import dataclass

DEFAULT_MARKER_NAME = "Controller"
DEFAULT_PATH_FIELD = "path"

# Never part of a program snapshot, whatever the project config says.
VENDOR_DIRECTORIES: frozenset[str] = frozenset(
    {"node_modules", "bower_components", "jspm_packages"}
)


@dataclass(frozen=True)
class ExtractionSettings:
    """Describe which marker to look for and how to read its argument.

    Attributes:
        marker_name: Decorator name that marks a class, e.g. ``Controller``.
        path_field: Field holding the path inside an options object argument.
    """

    marker_name: str = DEFAULT_MARKER_NAME
    path_field: str = DEFAULT_PATH_FIELD
