import json
import sys
from collections.abc import Callable
from pathlib import Path

import pytest


def _add_src_to_path() -> None:
    root = Path(__file__).resolve().parents[1]
    src_path = root / "src"
    if str(src_path) not in sys.path:
        sys.path.insert(0, str(src_path))


_add_src_to_path()

DEFAULT_COMPILER_OPTIONS: dict[str, object] = {
    "target": "es2016",
    "module": "commonjs",
    "experimentalDecorators": True,
    "skipLibCheck": True,
}


@pytest.fixture
def write_project(tmp_path: Path) -> Callable[..., Path]:
    """Write source files plus a tsconfig.json and return the config path."""

    def _write(
        files: dict[str, str],
        config: dict[str, object] | None = None,
        root: Path | None = None,
    ) -> Path:
        project_root = root or tmp_path / "project"
        for name, content in files.items():
            path = project_root / name
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(content, encoding="utf-8")
        config_path = project_root / "tsconfig.json"
        config_path.parent.mkdir(parents=True, exist_ok=True)
        payload = config if config is not None else {"compilerOptions": DEFAULT_COMPILER_OPTIONS}
        config_path.write_text(json.dumps(payload, indent=2), encoding="utf-8")
        return config_path

    return _write
