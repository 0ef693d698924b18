# Copyright 2026 Zsolt Kulcsar and Contributors. Licensed under the EUPL-1.2 or later
"""Match class decorators against the configured marker name."""

import logging
from dataclasses import dataclass, field

from tree_sitter import Node

from routescan.source_model import ClassDecl, SourceFile, named_children

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AnnotationNode:
    """Represent a decorator written as an invocation.

    Attributes:
        name: Invoked identifier text.
        decorator: Decorator node.
        arguments: Call argument nodes in order.
    """

    name: str
    decorator: Node = field(repr=False)
    arguments: tuple[Node, ...] = field(repr=False)

    @property
    def first_argument(self) -> Node | None:
        return self.arguments[0] if self.arguments else None


def find_match(class_decl: ClassDecl, marker_name: str) -> AnnotationNode | None:
    """Find the first decorator invoking ``marker_name``.

    Only ``@Name(...)`` qualifies: bare ``@Name`` references, member calls
    such as ``@ns.Name()`` and other names are ignored.

    Args:
        class_decl: Class to inspect.
        marker_name: Exact decorator name to look for.

    Returns:
        Matched decorator, or ``None``.
    """
    for decorator in class_decl.decorators:
        annotation = _as_invocation(decorator, class_decl.source)
        if annotation is not None and annotation.name == marker_name:
            logger.debug(
                f"Marker matched (class_name={class_decl.name} location={class_decl.source.location(decorator)})"
            )
            return annotation
    return None


def _as_invocation(decorator: Node, source: SourceFile) -> AnnotationNode | None:
    expression = next(named_children(decorator), None)
    if expression is None or expression.type != "call_expression":
        return None
    function = expression.child_by_field_name("function")
    arguments = expression.child_by_field_name("arguments")
    if function is None or function.type != "identifier":
        return None
    if arguments is None or arguments.type != "arguments":
        return None
    return AnnotationNode(
        name=source.text(function),
        decorator=decorator,
        arguments=tuple(named_children(arguments)),
    )
