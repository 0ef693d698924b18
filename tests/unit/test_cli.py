# Copyright 2026 Zsolt Kulcsar and Contributors. Licensed under the EUPL-1.2 or later
"""Unit tests for the route-scan CLI."""

import io
import json
import logging
import re
import sys
from collections.abc import Callable
from pathlib import Path

import pytest

from cli.route_scan import build_log_handler, run

SOURCES = {
    "src/user.controller.ts": "@Controller('users')\nexport class UserCtl {}\n",
    "src/root.controller.ts": "@Controller()\nexport class RootCtl {}\n",
}


def _strip_ansi(text: str) -> str:
    return re.sub(r"\x1b\[[0-9;]*m", "", text)


def test_cli_001_requires_subcommand() -> None:
    stdout = io.StringIO()
    stderr = io.StringIO()

    exit_code = run([], stdout=stdout, stderr=stderr)

    assert exit_code == 2


def test_cli_002_missing_project_configuration(tmp_path: Path) -> None:
    stdout = io.StringIO()
    stderr = io.StringIO()

    exit_code = run(
        ["extract", "--project", str(tmp_path / "tsconfig.json")],
        stdout=stdout,
        stderr=stderr,
    )

    assert exit_code == 2
    assert "Project configuration does not exist" in stderr.getvalue()


def test_cli_003_json_output_on_stdout(write_project: Callable[..., Path]) -> None:
    config_path = write_project(SOURCES)
    stdout = io.StringIO()
    stderr = io.StringIO()

    exit_code = run(
        ["extract", "--project", str(config_path), "--format", "json"],
        stdout=stdout,
        stderr=stderr,
    )

    assert exit_code == 0
    payload = json.loads(_strip_ansi(stdout.getvalue()))
    assert payload == [
        {
            "className": "RootCtl",
            "pathSegments": [],
            "filePath": "src/root.controller.ts",
            "line": 2,
        },
        {
            "className": "UserCtl",
            "pathSegments": ["users"],
            "filePath": "src/user.controller.ts",
            "line": 2,
        },
    ]


def test_cli_004_json_output_file(write_project: Callable[..., Path], tmp_path: Path) -> None:
    config_path = write_project(SOURCES)
    output_path = tmp_path / "out" / "routes.json"
    stdout = io.StringIO()
    stderr = io.StringIO()

    exit_code = run(
        [
            "extract",
            "--project",
            str(config_path),
            "--format",
            "json",
            "--output",
            str(output_path),
        ],
        stdout=stdout,
        stderr=stderr,
    )

    assert exit_code == 0
    payload = json.loads(output_path.read_text(encoding="utf-8"))
    assert [item["className"] for item in payload] == ["RootCtl", "UserCtl"]
    assert stdout.getvalue() == ""


def test_cli_005_table_output_lists_classes(write_project: Callable[..., Path]) -> None:
    config_path = write_project(SOURCES)
    stdout = io.StringIO()
    stderr = io.StringIO()

    exit_code = run(["extract", "--project", str(config_path)], stdout=stdout, stderr=stderr)

    output = _strip_ansi(stdout.getvalue())
    assert exit_code == 0
    assert "UserCtl" in output
    assert "users" in output
    assert "(root)" in output
    assert "2 marked classes" in output


def test_cli_006_invalid_argument_exits_with_one(write_project: Callable[..., Path]) -> None:
    config_path = write_project(
        {"src/bad.controller.ts": "@Controller([])\nexport class BadCtl {}\n"}
    )
    stdout = io.StringIO()
    stderr = io.StringIO()

    exit_code = run(["extract", "--project", str(config_path)], stdout=stdout, stderr=stderr)

    assert exit_code == 1
    assert "BadCtl" in stderr.getvalue()
    assert "must not be empty" in stderr.getvalue()
    assert stdout.getvalue() == ""


def test_cli_007_custom_marker(write_project: Callable[..., Path]) -> None:
    config_path = write_project(
        {"src/graph.ts": "@Resolver('graph')\nexport class GraphRes {}\n"}
    )
    stdout = io.StringIO()
    stderr = io.StringIO()

    exit_code = run(
        ["extract", "--project", str(config_path), "--marker", "Resolver", "--format", "json"],
        stdout=stdout,
        stderr=stderr,
    )

    assert exit_code == 0
    payload = json.loads(_strip_ansi(stdout.getvalue()))
    assert payload[0]["pathSegments"] == ["graph"]


def test_cli_008_rejects_invalid_marker_name(write_project: Callable[..., Path]) -> None:
    config_path = write_project(SOURCES)
    stdout = io.StringIO()
    stderr = io.StringIO()

    exit_code = run(
        ["extract", "--project", str(config_path), "--marker", "not-a-name"],
        stdout=stdout,
        stderr=stderr,
    )

    assert exit_code == 2
    assert "Invalid marker name" in stderr.getvalue()


def test_cli_009_config_errors_exit_with_two(write_project: Callable[..., Path]) -> None:
    config_path = write_project({"README.md": "docs"})
    stdout = io.StringIO()
    stderr = io.StringIO()

    exit_code = run(["extract", "--project", str(config_path)], stdout=stdout, stderr=stderr)

    assert exit_code == 2
    assert "No inputs were found" in stderr.getvalue()


def test_cli_010_log_records_stay_off_json_stdout(
    write_project: Callable[..., Path],
    capsys: pytest.CaptureFixture[str],
    caplog: pytest.LogCaptureFixture,
) -> None:
    config_path = write_project(SOURCES)
    caplog.set_level(logging.INFO)
    handler = build_log_handler()
    root_logger = logging.getLogger()
    root_logger.addHandler(handler)
    try:
        exit_code = run(
            ["extract", "--project", str(config_path), "--format", "json"],
            stdout=sys.stdout,
            stderr=sys.stderr,
        )
    finally:
        root_logger.removeHandler(handler)

    captured = capsys.readouterr()
    assert exit_code == 0
    assert len(json.loads(_strip_ansi(captured.out))) == 2
    assert "Extraction completed" in captured.err
