# Copyright 2026 Zsolt Kulcsar and Contributors. Licensed under the EUPL-1.2 or later
"""Fold constant expressions into tagged literal values.

``evaluate`` never raises on an expression it does not understand: it returns
``UNRESOLVED`` and leaves the decision to the caller. Identifier references are
followed through the program snapshot to the initializer of the original
declaration.
"""

import logging
import re
from collections.abc import Callable
from dataclasses import dataclass
from typing import ClassVar, Literal

from tree_sitter import Node

from routescan.source_model import (
    DeclarationRef,
    ProgramSnapshot,
    SourceFile,
    get_initializer,
    named_children,
    resolve_identifier,
)

logger = logging.getLogger(__name__)

LiteralKind = Literal[
    "number", "bigint", "string", "pattern", "boolean", "sequence", "mapping", "unresolved"
]


@dataclass(frozen=True)
class NumberValue:
    value: float
    kind: ClassVar[LiteralKind] = "number"


@dataclass(frozen=True)
class BigIntValue:
    value: int
    kind: ClassVar[LiteralKind] = "bigint"


@dataclass(frozen=True)
class StringValue:
    value: str
    kind: ClassVar[LiteralKind] = "string"


@dataclass(frozen=True)
class PatternValue:
    """Regular expression literal; ``source`` excludes the slashes."""

    source: str
    flags: str = ""
    kind: ClassVar[LiteralKind] = "pattern"


@dataclass(frozen=True)
class BooleanValue:
    value: bool
    kind: ClassVar[LiteralKind] = "boolean"


@dataclass(frozen=True)
class SequenceValue:
    items: tuple["LiteralValue", ...]
    kind: ClassVar[LiteralKind] = "sequence"


@dataclass(frozen=True)
class MappingValue:
    """Object literal with string keys, in insertion order."""

    entries: tuple[tuple[str, "LiteralValue"], ...]
    kind: ClassVar[LiteralKind] = "mapping"

    @classmethod
    def from_dict(cls, values: dict[str, "LiteralValue"]) -> "MappingValue":
        return cls(entries=tuple(values.items()))

    def get(self, key: str) -> "LiteralValue | None":
        for entry_key, value in self.entries:
            if entry_key == key:
                return value
        return None


@dataclass(frozen=True)
class Unresolved:
    """Result for an expression that does not fold to a constant."""

    kind: ClassVar[LiteralKind] = "unresolved"


UNRESOLVED = Unresolved()

LiteralValue = (
    NumberValue
    | BigIntValue
    | StringValue
    | PatternValue
    | BooleanValue
    | SequenceValue
    | MappingValue
    | Unresolved
)


@dataclass(frozen=True)
class EvaluationContext:
    """Program snapshot plus the file the evaluated node belongs to."""

    program: ProgramSnapshot
    source: SourceFile


_Expanding = frozenset[DeclarationRef]
_Handler = Callable[[Node, EvaluationContext, _Expanding], LiteralValue]

# Type-only wrappers that carry no runtime value of their own.
TRANSPARENT_WRAPPERS = frozenset(
    {"parenthesized_expression", "as_expression", "satisfies_expression", "non_null_expression"}
)

_SIMPLE_ESCAPES = {"n": "\n", "t": "\t", "r": "\r", "b": "\b", "f": "\f", "v": "\v"}
_LINE_CONTINUATIONS = frozenset({"\n", "\r", "\r\n", "\u2028", "\u2029"})
_ESCAPE = re.compile(
    r"\\(u\{[0-9a-fA-F]+\}|u[0-9a-fA-F]{4}|x[0-9a-fA-F]{2}|[0-3][0-7]{0,2}|[4-7][0-7]?|\r\n|[\s\S])"
)


def evaluate(node: Node, context: EvaluationContext) -> LiteralValue:
    """Evaluate an expression node to a literal value.

    Args:
        node: Expression node.
        context: Program snapshot and the file containing ``node``.

    Returns:
        Folded literal value, or ``UNRESOLVED``.
    """
    return _evaluate(node, context, frozenset())


def unwrap_expression(node: Node) -> Node:
    """Strip parentheses and type-only wrappers around an expression."""
    while node.type in TRANSPARENT_WRAPPERS:
        inner = next(named_children(node), None)
        if inner is None:
            return node
        node = inner
    return node


def property_key(entry: Node, context: EvaluationContext) -> str | None:
    """Compute the string key of an object literal member.

    Args:
        entry: Object member node.
        context: Evaluation context of the object literal.

    Returns:
        Key text, or ``None`` when the member has no string key.
    """
    return _property_key(entry, context, frozenset())


def property_value(entry: Node) -> Node | None:
    """Return the value expression of an object literal member."""
    if entry.type == "shorthand_property_identifier":
        return entry
    if entry.type == "pair":
        return entry.child_by_field_name("value")
    return None


def array_elements(node: Node) -> list[Node | None]:
    """Return the element slots of an array literal.

    Holes such as the middle slot of ``[a, , b]`` are reported as ``None``. A
    single trailing comma does not open a slot.
    """
    elements: list[Node | None] = []
    current: Node | None = None
    for child in node.children:
        if child.type == ",":
            elements.append(current)
            current = None
        elif child.is_named and child.type != "comment":
            current = child
    if current is not None:
        elements.append(current)
    return elements


def decode_string_body(raw: str) -> str:
    """Decode JavaScript escape sequences in a string literal body.

    Args:
        raw: Literal text without its quotes.

    Returns:
        Runtime string value.
    """
    decoded = _ESCAPE.sub(_replace_escape, raw)
    if any("\ud800" <= char <= "\udfff" for char in decoded):
        decoded = decoded.encode("utf-16-le", "surrogatepass").decode(
            "utf-16-le", "surrogatepass"
        )
    return decoded


def parse_number(text: str) -> float:
    """Parse JavaScript numeric literal text.

    Raises:
        ValueError: If the text is not a numeric literal.
    """
    digits = text.replace("_", "").lower()
    if digits.startswith(("0x", "0o", "0b")):
        return _int_to_float(int(digits, 0))
    if len(digits) > 1 and digits[0] == "0" and digits.isdigit():
        if set(digits) <= set("01234567"):
            return _int_to_float(int(digits, 8))
        return float(digits)
    return float(digits)


def _evaluate(node: Node, context: EvaluationContext, expanding: _Expanding) -> LiteralValue:
    handler = _HANDLERS.get(node.type)
    if handler is None:
        return UNRESOLVED
    return handler(node, context, expanding)


def _number(node: Node, context: EvaluationContext, expanding: _Expanding) -> LiteralValue:
    text = context.source.text(node)
    try:
        if text.endswith("n"):
            return BigIntValue(int(text[:-1].replace("_", "").lower(), 0))
        return NumberValue(parse_number(text))
    except ValueError:
        logger.debug(f"Unparseable numeric literal (location={context.source.location(node)})")
        return UNRESOLVED


def _string(node: Node, context: EvaluationContext, expanding: _Expanding) -> LiteralValue:
    return StringValue(decode_string_body(context.source.text(node)[1:-1]))


def _template_string(
    node: Node, context: EvaluationContext, expanding: _Expanding
) -> LiteralValue:
    if any(child.type == "template_substitution" for child in node.children):
        return UNRESOLVED
    body = context.source.text(node)[1:-1].replace("\r\n", "\n").replace("\r", "\n")
    return StringValue(decode_string_body(body))


def _regex(node: Node, context: EvaluationContext, expanding: _Expanding) -> LiteralValue:
    pattern = node.child_by_field_name("pattern")
    flags = node.child_by_field_name("flags")
    return PatternValue(
        source=context.source.text(pattern) if pattern is not None else "",
        flags=context.source.text(flags) if flags is not None else "",
    )


def _true(node: Node, context: EvaluationContext, expanding: _Expanding) -> LiteralValue:
    return BooleanValue(True)


def _false(node: Node, context: EvaluationContext, expanding: _Expanding) -> LiteralValue:
    return BooleanValue(False)


def _unary(node: Node, context: EvaluationContext, expanding: _Expanding) -> LiteralValue:
    operator = node.child_by_field_name("operator")
    argument = node.child_by_field_name("argument")
    if operator is None or argument is None or context.source.text(operator) != "-":
        return UNRESOLVED
    value = _evaluate(argument, context, expanding)
    if isinstance(value, NumberValue):
        return NumberValue(-value.value)
    return UNRESOLVED


def _inner(node: Node, context: EvaluationContext, expanding: _Expanding) -> LiteralValue:
    inner = next(named_children(node), None)
    if inner is None:
        return UNRESOLVED
    return _evaluate(inner, context, expanding)


def _array(node: Node, context: EvaluationContext, expanding: _Expanding) -> LiteralValue:
    return SequenceValue(
        tuple(
            UNRESOLVED if element is None else _evaluate(element, context, expanding)
            for element in array_elements(node)
        )
    )


def _object(node: Node, context: EvaluationContext, expanding: _Expanding) -> LiteralValue:
    values: dict[str, LiteralValue] = {}
    for entry in named_children(node):
        key = _property_key(entry, context, expanding)
        value_node = property_value(entry)
        if key is None or value_node is None:
            logger.debug(
                f"Skipping object member (type={entry.type} location={context.source.location(entry)})"
            )
            continue
        values[key] = _evaluate(value_node, context, expanding)
    return MappingValue.from_dict(values)


def _identifier(
    node: Node, context: EvaluationContext, expanding: _Expanding
) -> LiteralValue:
    ref = resolve_identifier(node, context.source, context.program)
    if ref is None:
        return StringValue(context.source.text(node))
    if ref in expanding:
        logger.warning(
            f"Reference cycle while folding constant (name={ref.name} location={context.source.location(node)})"
        )
        return UNRESOLVED
    initializer = get_initializer(ref)
    if initializer is None:
        return UNRESOLVED
    declaring = EvaluationContext(program=context.program, source=ref.source)
    return _evaluate(initializer, declaring, expanding | {ref})


def _property_key(
    entry: Node, context: EvaluationContext, expanding: _Expanding
) -> str | None:
    if entry.type == "shorthand_property_identifier":
        return context.source.text(entry)
    if entry.type != "pair":
        return None
    key = entry.child_by_field_name("key")
    if key is None:
        return None
    if key.type == "property_identifier":
        return context.source.text(key)
    value = _evaluate(key, context, expanding)
    return value.value if isinstance(value, StringValue) else None


def _replace_escape(match: re.Match[str]) -> str:
    escape = match.group(1)
    if escape in _SIMPLE_ESCAPES:
        return _SIMPLE_ESCAPES[escape]
    if escape in _LINE_CONTINUATIONS:
        return ""
    if escape.startswith("u{"):
        code_point = int(escape[2:-1], 16)
        return chr(code_point) if code_point <= 0x10FFFF else match.group(0)
    if escape[0] in "ux" and len(escape) > 1:
        return chr(int(escape[1:], 16))
    if escape[0] in "01234567":
        return chr(int(escape, 8))
    return escape


def _int_to_float(value: int) -> float:
    try:
        return float(value)
    except OverflowError:
        return float("inf")


_HANDLERS: dict[str, _Handler] = {
    "number": _number,
    "string": _string,
    "template_string": _template_string,
    "regex": _regex,
    "true": _true,
    "false": _false,
    "unary_expression": _unary,
    "parenthesized_expression": _inner,
    "computed_property_name": _inner,
    "as_expression": _inner,
    "satisfies_expression": _inner,
    "non_null_expression": _inner,
    "array": _array,
    "object": _object,
    "identifier": _identifier,
    "shorthand_property_identifier": _identifier,
}
