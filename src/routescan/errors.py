# Copyright 2026 Zsolt Kulcsar and Contributors. Licensed under the EUPL-1.2 or later
"""Error families raised by the route scanner."""


class RouteScanError(RuntimeError):
    """Represent a fatal route scanner failure."""


class ProjectConfigError(RouteScanError):
    """Represent an unreadable or unusable project configuration."""


class InvalidAnnotationArgument(RouteScanError):
    """Represent a marker argument that cannot be read as path segments.

    Attributes:
        reason: Why the argument was rejected.
        location: ``path:line:column`` of the offending node.
        class_name: Class carrying the marker, once known.
    """

    def __init__(
        self, reason: str, location: str, class_name: str | None = None
    ) -> None:
        self.reason = reason
        self.location = location
        self.class_name = class_name
        subject = f" on class {class_name}" if class_name else ""
        super().__init__(f"{location}: invalid marker argument{subject}: {reason}")
