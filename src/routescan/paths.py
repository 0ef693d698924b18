# Copyright 2026 Zsolt Kulcsar and Contributors. Licensed under the EUPL-1.2 or later
"""Interpret a marker argument as an ordered list of path segments."""

import logging

from tree_sitter import Node

from routescan.errors import InvalidAnnotationArgument
from routescan.literals import (
    EvaluationContext,
    LiteralValue,
    MappingValue,
    SequenceValue,
    StringValue,
    array_elements,
    evaluate,
    property_key,
    property_value,
    unwrap_expression,
)
from routescan.settings import DEFAULT_PATH_FIELD
from routescan.source_model import named_children, resolve_identifier

logger = logging.getLogger(__name__)

_STRING_TYPES = frozenset({"string", "template_string"})
_REFERENCE_TYPES = frozenset({"identifier", "shorthand_property_identifier"})


def normalize_path(
    argument: Node | None,
    context: EvaluationContext,
    path_field: str = DEFAULT_PATH_FIELD,
) -> list[str]:
    """Turn the first marker argument into path segments.

    Accepted shapes, in order: no argument (root), an options object whose
    ``path_field`` holds one of the remaining shapes, a string, a non-empty
    array of strings or string references, and an identifier resolving to a
    string, an array of strings or an options object.

    Args:
        argument: First call argument, or ``None`` when the call has none.
        context: Evaluation context of the class declaring the marker.
        path_field: Field name read from options objects.

    Returns:
        Path segments; empty for the root.

    Raises:
        InvalidAnnotationArgument: If the argument is not a valid path.
    """
    if argument is None:
        return []
    return _PathNormalizer(context, path_field).normalize(argument)


class _PathNormalizer:
    def __init__(self, context: EvaluationContext, path_field: str) -> None:
        self._context = context
        self._path_field = path_field

    def normalize(self, argument: Node) -> list[str]:
        node = unwrap_expression(argument)
        if node.type == "object":
            return self._from_options_object(node)
        return self._from_node(node, allow_options=True)

    def _from_options_object(self, node: Node) -> list[str]:
        value_node: Node | None = None
        for entry in named_children(node):
            if property_key(entry, self._context) == self._path_field:
                value_node = property_value(entry)
        if value_node is None:
            logger.debug(
                f"Options object has no path field (field={self._path_field} location={self._location(node)})"
            )
            return []
        return self._from_node(value_node, allow_options=False)

    def _from_node(self, node: Node, allow_options: bool) -> list[str]:
        node = unwrap_expression(node)
        if node.type in _STRING_TYPES:
            value = evaluate(node, self._context)
            if not isinstance(value, StringValue):
                raise self._invalid(node, "template literal with substitutions is not constant")
            return [self._segment(value.value, node)]
        if node.type == "array":
            return self._from_array(node)
        if node.type in _REFERENCE_TYPES:
            self._require_declaration(node)
            return self._from_value(evaluate(node, self._context), node, allow_options)
        if node.type == "object":
            raise self._invalid(node, "options object is only allowed as the whole argument")
        raise self._invalid(node, f"unsupported expression '{node.type}'")

    def _from_array(self, node: Node) -> list[str]:
        elements = array_elements(node)
        if not elements:
            raise self._invalid(node, "path array must not be empty")
        segments: list[str] = []
        for element in elements:
            if element is None:
                raise self._invalid(node, "path array must not contain holes")
            element = unwrap_expression(element)
            if element.type in _REFERENCE_TYPES:
                self._require_declaration(element)
            value = evaluate(element, self._context)
            if element.type == "string" and isinstance(value, StringValue):
                segments.append(self._segment(value.value, element))
                continue
            segments.extend(self._from_literal(value, element))
        return segments

    def _from_value(self, value: LiteralValue, node: Node, allow_options: bool) -> list[str]:
        if isinstance(value, MappingValue):
            if not allow_options:
                raise self._invalid(node, "path field resolves to an object")
            field_value = value.get(self._path_field)
            if field_value is None:
                return []
            return self._from_literal(field_value, node)
        return self._from_literal(value, node)

    def _from_literal(self, value: LiteralValue, node: Node) -> list[str]:
        if isinstance(value, StringValue):
            return [self._segment(value.value, node)]
        if isinstance(value, SequenceValue):
            if not value.items:
                raise self._invalid(node, "resolves to an empty array")
            segments: list[str] = []
            for item in value.items:
                if not isinstance(item, StringValue):
                    raise self._invalid(
                        node, f"array element resolves to {item.kind}, expected string"
                    )
                segments.append(self._segment(item.value, node))
            return segments
        raise self._invalid(
            node, f"resolves to {value.kind}, expected string or array of strings"
        )

    def _require_declaration(self, node: Node) -> None:
        ref = resolve_identifier(node, self._context.source, self._context.program)
        if ref is None:
            raise self._invalid(
                node, f"undeclared identifier '{self._context.source.text(node)}'"
            )

    def _segment(self, text: str, node: Node) -> str:
        if not text:
            raise self._invalid(node, "path segment must not be empty")
        return text

    def _invalid(self, node: Node, reason: str) -> InvalidAnnotationArgument:
        return InvalidAnnotationArgument(reason=reason, location=self._location(node))

    def _location(self, node: Node) -> str:
        return self._context.source.location(node)
