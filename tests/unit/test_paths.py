# Copyright 2026 Zsolt Kulcsar and Contributors. Licensed under the EUPL-1.2 or later
"""Unit tests for marker argument path normalization."""

from pathlib import Path

import pytest

from routescan.annotations import find_match
from routescan.errors import InvalidAnnotationArgument
from routescan.literals import EvaluationContext
from routescan.paths import normalize_path
from routescan.source_model import ProgramSnapshot, list_top_level_classes

ROOT = Path("/virtual/project")


def _normalize(code: str, extra: dict[str, str] | None = None, path_field: str = "path") -> list[str]:
    program = ProgramSnapshot.from_sources({"main.ts": code, **(extra or {})}, root_dir=ROOT)
    (target,) = [cls for cls in list_top_level_classes(program) if cls.name == "Target"]
    annotation = find_match(target, "Controller")
    assert annotation is not None
    context = EvaluationContext(program=program, source=target.source)
    return normalize_path(annotation.first_argument, context, path_field=path_field)


def test_path_001_no_argument_is_root() -> None:
    assert _normalize("@Controller()\nclass Target {}\n") == []


def test_path_002_string_literal_is_single_segment() -> None:
    assert _normalize("@Controller('users')\nclass Target {}\n") == ["users"]
    assert _normalize("@Controller(`api/v1`)\nclass Target {}\n") == ["api/v1"]


def test_path_003_array_of_literals_keeps_order() -> None:
    assert _normalize("@Controller(['v1', 'v2'])\nclass Target {}\n") == ["v1", "v2"]


def test_path_004_options_object_reads_path_field() -> None:
    assert _normalize(
        "@Controller({ path: 'options', host: 'example.com' })\nclass Target {}\n"
    ) == ["options"]
    assert _normalize(
        "@Controller({ host: 'example.com' })\nclass Target {}\n"
    ) == []
    assert _normalize(
        "@Controller({ path: ['a', 'b'] })\nclass Target {}\n"
    ) == ["a", "b"]


def test_path_005_configured_path_field_name() -> None:
    code = "@Controller({ prefix: 'x', path: 'y' })\nclass Target {}\n"

    assert _normalize(code, path_field="prefix") == ["x"]


def test_path_006_identifier_resolving_to_string_array_or_options() -> None:
    assert _normalize("const P = 'api';\n@Controller(P)\nclass Target {}\n") == ["api"]
    assert _normalize(
        "const PATHS = ['users', 'profiles'] as const;\n@Controller(PATHS)\nclass Target {}\n"
    ) == ["users", "profiles"]
    assert _normalize(
        "const CONFIG = { path: 'config-path' };\n@Controller(CONFIG)\nclass Target {}\n"
    ) == ["config-path"]
    assert _normalize(
        "const CONFIG = { host: 'h' };\n@Controller(CONFIG)\nclass Target {}\n"
    ) == []


def test_path_007_mixed_array_of_literals_and_references() -> None:
    code = (
        "const API_VERSION = 'v2';\n"
        "const NESTED = ['x', 'y'];\n"
        "@Controller(['api', API_VERSION, NESTED])\n"
        "class Target {}\n"
    )

    assert _normalize(code) == ["api", "v2", "x", "y"]


def test_path_008_imported_references_resolve() -> None:
    extra = {
        "constants.ts": (
            "export const API_PREFIX = 'api';\n"
            "export const API_VERSION = 'v3';\n"
        )
    }
    code = (
        "import { API_PREFIX, API_VERSION } from './constants';\n"
        "@Controller([API_PREFIX, API_VERSION])\n"
        "class Target {}\n"
    )

    assert _normalize(code, extra) == ["api", "v3"]


def test_path_009_shorthand_path_field() -> None:
    code = "const path = 'short';\n@Controller({ path })\nclass Target {}\n"

    assert _normalize(code) == ["short"]


@pytest.mark.parametrize(
    ("code", "reason"),
    [
        ("@Controller([])\nclass Target {}\n", "must not be empty"),
        ("@Controller([1, 'v1'])\nclass Target {}\n", "number"),
        ("@Controller({ path: 123 })\nclass Target {}\n", "number"),
        ("const P = 123;\n@Controller(P)\nclass Target {}\n", "number"),
        ("const P = [];\n@Controller(['a', P])\nclass Target {}\n", "empty array"),
        ("const P = [1];\n@Controller(P)\nclass Target {}\n", "array element"),
        ("@Controller(build())\nclass Target {}\n", "call_expression"),
        ("@Controller('a' + 'b')\nclass Target {}\n", "binary_expression"),
        ("@Controller('')\nclass Target {}\n", "must not be empty"),
        ("@Controller({ path: { path: 'x' } })\nclass Target {}\n", "whole argument"),
        (
            "const INNER = { path: 'x' };\n@Controller({ path: INNER })\nclass Target {}\n",
            "object",
        ),
        (
            "import { P } from '@nestjs/common';\n@Controller(P)\nclass Target {}\n",
            "unresolved",
        ),
        ("const name = 'x';\n@Controller(`a${name}`)\nclass Target {}\n", "template"),
    ],
)
def test_path_010_invalid_arguments_raise(code: str, reason: str) -> None:
    with pytest.raises(InvalidAnnotationArgument) as exc_info:
        _normalize(code)

    assert reason in exc_info.value.reason
    assert exc_info.value.location.startswith(str(ROOT / "main.ts"))


def test_path_011_error_location_points_at_offending_element() -> None:
    code = "const P = true;\n@Controller([\n  'ok',\n  P,\n])\nclass Target {}\n"

    with pytest.raises(InvalidAnnotationArgument) as exc_info:
        _normalize(code)

    assert exc_info.value.location == f"{ROOT / 'main.ts'}:4:3"
    assert "boolean" in exc_info.value.reason


@pytest.mark.parametrize(
    "code",
    [
        "@Controller(UNKNOWN)\nclass Target {}\n",
        "@Controller({ path: UNKNOWN })\nclass Target {}\n",
        "@Controller({ path })\nclass Target {}\n",
        "@Controller(['api', UNKNOWN])\nclass Target {}\n",
    ],
)
def test_path_012_undeclared_identifier_is_rejected(code: str) -> None:
    with pytest.raises(InvalidAnnotationArgument) as exc_info:
        _normalize(code)

    assert "undeclared identifier" in exc_info.value.reason


def test_path_013_array_holes_are_rejected() -> None:
    with pytest.raises(InvalidAnnotationArgument) as exc_info:
        _normalize("@Controller(['a', , 'b'])\nclass Target {}\n")
    assert "holes" in exc_info.value.reason

    with pytest.raises(InvalidAnnotationArgument) as exc_info:
        _normalize("const P = ['a', , 'b'];\n@Controller(P)\nclass Target {}\n")
    assert "unresolved" in exc_info.value.reason

    assert _normalize("@Controller(['a', 'b',])\nclass Target {}\n") == ["a", "b"]


def test_path_014_error_column_counts_characters() -> None:
    code = "const P = 1;\n@Controller(['é', P])\nclass Target {}\n"

    with pytest.raises(InvalidAnnotationArgument) as exc_info:
        _normalize(code)

    assert exc_info.value.location == f"{ROOT / 'main.ts'}:2:19"
