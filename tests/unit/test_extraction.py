# Copyright 2026 Zsolt Kulcsar and Contributors. Licensed under the EUPL-1.2 or later
"""Unit tests for end-to-end extraction over a project on disk."""

from collections.abc import Callable
from pathlib import Path

import pytest

from routescan import (
    AnnotationMatch,
    ExtractionSettings,
    InvalidAnnotationArgument,
    extract,
    extract_from_config,
    load_program,
)

API_CONTROLLER = """import { Controller, Get } from '@nestjs/common';

// No argument case
@Controller()
export class RootController {
  @Get()
  findAll() {
    return [];
  }
}

const API_PREFIX = 'api/v1';
@Controller(API_PREFIX)
export class ApiController {}

@Controller(['v1', 'v2'])
export class VersionedController {}

@Controller({ path: 'options', host: 'example.com' })
export class OptionsController {}

@Controller({ host: 'example.com' })
export class NoPathOptionsController {}

const API_VERSION = 'v2';
@Controller(['api', API_VERSION])
export class MixedArrayController {}

export class PlainService {}
"""

CONSTANTS = """export const API_PREFIX = 'api';
export const API_VERSION = 'v3';
export const PATHS = ['users', 'profiles'];
export const CONTROLLER_CONFIG = { path: 'config-path' };
"""

IMPORTED_CONTROLLER = """import { Controller } from '@nestjs/common';
import { API_PREFIX, API_VERSION, PATHS, CONTROLLER_CONFIG } from './constants';

@Controller([API_PREFIX, API_VERSION])
export class ImportedPathArrayController {}

@Controller(API_PREFIX)
export class ImportedPathStringController {}

@Controller(PATHS)
export class ImportedPathsArrayController {}

@Controller(CONTROLLER_CONFIG)
export class ImportedConfigController {}
"""

FIXTURE_FILES = {
    "src/api.controller.ts": API_CONTROLLER,
    "src/constants.ts": CONSTANTS,
    "src/imported-path.controller.ts": IMPORTED_CONTROLLER,
}


def test_ext_001_fixture_project_resolves_every_marker(
    write_project: Callable[..., Path],
) -> None:
    config_path = write_project(FIXTURE_FILES)

    matches = extract_from_config(config_path)

    resolved = sorted((m.class_name, list(m.path_segments)) for m in matches)
    assert resolved == [
        ("ApiController", ["api/v1"]),
        ("ImportedConfigController", ["config-path"]),
        ("ImportedPathArrayController", ["api", "v3"]),
        ("ImportedPathStringController", ["api"]),
        ("ImportedPathsArrayController", ["users", "profiles"]),
        ("MixedArrayController", ["api", "v2"]),
        ("NoPathOptionsController", []),
        ("OptionsController", ["options"]),
        ("RootController", []),
        ("VersionedController", ["v1", "v2"]),
    ]


def test_ext_002_matches_follow_source_order(write_project: Callable[..., Path]) -> None:
    config_path = write_project(FIXTURE_FILES)

    matches = extract(load_program(config_path))

    assert [m.class_name for m in matches] == [
        "RootController",
        "ApiController",
        "VersionedController",
        "OptionsController",
        "NoPathOptionsController",
        "MixedArrayController",
        "ImportedPathArrayController",
        "ImportedPathStringController",
        "ImportedPathsArrayController",
        "ImportedConfigController",
    ]
    assert matches[0].file_path == "src/api.controller.ts"
    assert matches[0].line == 5
    assert matches[-1].file_path == "src/imported-path.controller.ts"


def test_ext_003_output_record_shape() -> None:
    match = AnnotationMatch(
        class_name="UserController",
        path_segments=("users",),
        file_path="src/user.controller.ts",
        line=3,
    )

    assert match.as_output() == {
        "className": "UserController",
        "pathSegments": ["users"],
        "filePath": "src/user.controller.ts",
        "line": 3,
    }


def test_ext_004_invalid_argument_fails_fast_with_class_name(
    write_project: Callable[..., Path],
) -> None:
    config_path = write_project(
        {
            "src/a.controller.ts": "@Controller('ok')\nexport class First {}\n",
            "src/b.controller.ts": (
                "@Controller({ path: 123 })\nexport class Broken {}\n"
                "@Controller([])\nexport class AlsoBroken {}\n"
            ),
        }
    )

    with pytest.raises(InvalidAnnotationArgument) as exc_info:
        extract_from_config(config_path)

    error = exc_info.value
    assert error.class_name == "Broken"
    assert "number" in error.reason
    assert error.location.endswith("b.controller.ts:1:21")
    assert "Broken" in str(error)


def test_ext_005_custom_marker_and_path_field(write_project: Callable[..., Path]) -> None:
    config_path = write_project(
        {
            "src/graph.ts": (
                "@Resolver({ prefix: 'graph' })\nexport class GraphResolver {}\n"
                "@Controller('ignored')\nexport class RestController {}\n"
            )
        }
    )
    settings = ExtractionSettings(marker_name="Resolver", path_field="prefix")

    matches = extract_from_config(config_path, settings)

    assert [(m.class_name, m.path_segments) for m in matches] == [
        ("GraphResolver", ("graph",))
    ]


def test_ext_006_project_without_markers_yields_nothing(
    write_project: Callable[..., Path],
) -> None:
    config_path = write_project({"src/service.ts": "export class Service {}\n"})

    assert extract_from_config(config_path) == []
