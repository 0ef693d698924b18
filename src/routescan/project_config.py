# Copyright 2026 Zsolt Kulcsar and Contributors. Licensed under the EUPL-1.2 or later
"""Load TypeScript project configuration and expand its source file list."""

import json
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path, PurePosixPath

import pathspec

from routescan.diagnostics import format_diagnostic
from routescan.errors import ProjectConfigError
from routescan.settings import VENDOR_DIRECTORIES

logger = logging.getLogger(__name__)

TS_EXTENSIONS: tuple[str, ...] = (".ts", ".tsx", ".d.ts", ".mts", ".cts")
JS_EXTENSIONS: tuple[str, ...] = (".js", ".jsx", ".mjs", ".cjs")

_GLOB_CHARACTERS = frozenset("*?[")


@dataclass(frozen=True)
class ModuleOptions:
    """Describe how non-relative and extensionless module specifiers resolve.

    Attributes:
        extensions: File extensions probed for extensionless specifiers.
        base_url: Directory non-relative specifiers are resolved against.
        paths: ``compilerOptions.paths`` pattern to target list mapping.
        paths_base: Directory ``paths`` targets are relative to.
    """

    extensions: tuple[str, ...] = TS_EXTENSIONS
    base_url: Path | None = None
    paths: dict[str, tuple[str, ...]] = field(default_factory=dict)
    paths_base: Path | None = None

    def path_candidates(self, specifier: str) -> list[Path]:
        """Map a non-relative specifier through ``paths`` and ``baseUrl``.

        Args:
            specifier: Module specifier as written in an import.

        Returns:
            Candidate base paths, most specific first.
        """
        candidates: list[Path] = []
        if self.paths and self.paths_base is not None:
            targets, star = self._match_paths(specifier)
            for target in targets:
                candidates.append(self.paths_base / target.replace("*", star, 1))
        if self.base_url is not None:
            candidates.append(self.base_url / specifier)
        return candidates

    def _match_paths(self, specifier: str) -> tuple[tuple[str, ...], str]:
        if specifier in self.paths:
            return self.paths[specifier], ""
        best_prefix = -1
        best: tuple[tuple[str, ...], str] = ((), "")
        for pattern, targets in self.paths.items():
            if "*" not in pattern:
                continue
            prefix, _, suffix = pattern.partition("*")
            if len(specifier) < len(prefix) + len(suffix):
                continue
            if not (specifier.startswith(prefix) and specifier.endswith(suffix)):
                continue
            if len(prefix) > best_prefix:
                best_prefix = len(prefix)
                best = (targets, specifier[len(prefix) : len(specifier) - len(suffix)])
        return best


@dataclass(frozen=True)
class ProjectConfig:
    """Represent a loaded project configuration.

    Attributes:
        config_path: Path of the configuration file that was loaded.
        root_dir: Directory containing the configuration file.
        files: Ordered source files belonging to the project.
        module_options: Module resolution settings.
    """

    config_path: Path
    root_dir: Path
    files: tuple[Path, ...]
    module_options: ModuleOptions


@dataclass(frozen=True)
class _AnchoredPattern:
    anchor: Path
    pattern: str


@dataclass(frozen=True)
class _ConfigLayer:
    """One configuration file with its relative paths anchored."""

    files: tuple[_AnchoredPattern, ...] | None = None
    include: tuple[_AnchoredPattern, ...] | None = None
    exclude: tuple[_AnchoredPattern, ...] | None = None
    base_url: Path | None = None
    out_dir: Path | None = None
    allow_js: bool | None = None
    paths: dict[str, tuple[str, ...]] | None = None
    paths_origin: Path | None = None

    def merged_over(self, base: "_ConfigLayer") -> "_ConfigLayer":
        return _ConfigLayer(
            files=self.files if self.files is not None else base.files,
            include=self.include if self.include is not None else base.include,
            exclude=self.exclude if self.exclude is not None else base.exclude,
            base_url=self.base_url if self.base_url is not None else base.base_url,
            out_dir=self.out_dir if self.out_dir is not None else base.out_dir,
            allow_js=self.allow_js if self.allow_js is not None else base.allow_js,
            paths=self.paths if self.paths is not None else base.paths,
            paths_origin=(
                self.paths_origin if self.paths is not None else base.paths_origin
            ),
        )


class _GlobMatcher:
    """Match absolute file paths against one anchored tsconfig glob."""

    def __init__(self, base: Path, spec: pathspec.GitIgnoreSpec) -> None:
        self.base = base
        self._spec = spec

    @classmethod
    def from_pattern(cls, anchored: _AnchoredPattern) -> "_GlobMatcher":
        """Split a glob into its literal directory prefix and wildcard rest.

        Args:
            anchored: Pattern with the directory it is relative to.

        Returns:
            Matcher rooted at the literal prefix.
        """
        parts = PurePosixPath(anchored.pattern.replace("\\", "/")).parts
        literal: list[str] = []
        for part in parts:
            if _GLOB_CHARACTERS.intersection(part):
                break
            literal.append(part)
        rest = parts[len(literal) :]
        base = _normalize(anchored.anchor.joinpath(*literal))
        if rest:
            glob = "/" + "/".join(rest)
        elif base.is_file():
            glob = "/" + base.name
            base = base.parent
        else:
            glob = "/**/*"
        return cls(base=base, spec=pathspec.GitIgnoreSpec.from_lines([glob]))

    def matches(self, file_path: Path) -> bool:
        """Check whether an absolute file path matches this glob.

        Args:
            file_path: Normalized absolute file path.

        Returns:
            True when the path lies under the base and matches the glob.
        """
        try:
            relative = file_path.relative_to(self.base)
        except ValueError:
            return False
        return self._spec.match_file(relative.as_posix())


def load_project_config(config_path: Path | str) -> ProjectConfig:
    """Load a ``tsconfig.json`` style configuration.

    Args:
        config_path: Path to the configuration file.

    Returns:
        Project configuration with the expanded file list.

    Raises:
        ProjectConfigError: If the file or one of its bases cannot be read,
            or if no source files match.
    """
    path = _normalize(Path(config_path).absolute())
    layer = _read_layer_chain(path, seen=frozenset())
    root_dir = path.parent
    allow_js = bool(layer.allow_js)
    extensions = TS_EXTENSIONS + JS_EXTENSIONS if allow_js else TS_EXTENSIONS
    files = _expand_files(path, root_dir, layer, extensions)
    paths_base = layer.base_url or layer.paths_origin
    module_options = ModuleOptions(
        extensions=extensions,
        base_url=layer.base_url,
        paths=dict(layer.paths or {}),
        paths_base=paths_base,
    )
    logger.info(f"Project configuration loaded (config={path} files={len(files)})")
    return ProjectConfig(
        config_path=path,
        root_dir=root_dir,
        files=tuple(files),
        module_options=module_options,
    )


def strip_json_comments(text: str) -> str:
    """Turn JSON-with-comments text into plain JSON.

    Comments become whitespace so reported line and column numbers still point
    into the original text; trailing commas before ``}`` or ``]`` are dropped.

    Args:
        text: Raw configuration text.

    Returns:
        Text accepted by :func:`json.loads`.
    """
    return _drop_trailing_commas(_blank_comments(text))


def _blank_comments(text: str) -> str:
    out: list[str] = []
    index = 0
    length = len(text)
    in_string = False
    while index < length:
        char = text[index]
        if in_string:
            out.append(char)
            if char == "\\" and index + 1 < length:
                out.append(text[index + 1])
                index += 2
                continue
            if char == '"':
                in_string = False
            index += 1
            continue
        if char == '"':
            in_string = True
            out.append(char)
            index += 1
            continue
        if text.startswith("//", index):
            end = text.find("\n", index)
            end = length if end == -1 else end
            out.append(" " * (end - index))
            index = end
            continue
        if text.startswith("/*", index):
            end = text.find("*/", index + 2)
            end = length if end == -1 else end + 2
            out.append("".join(c if c == "\n" else " " for c in text[index:end]))
            index = end
            continue
        out.append(char)
        index += 1
    return "".join(out)


def _drop_trailing_commas(text: str) -> str:
    out: list[str] = []
    index = 0
    length = len(text)
    in_string = False
    while index < length:
        char = text[index]
        if in_string:
            out.append(char)
            if char == "\\" and index + 1 < length:
                out.append(text[index + 1])
                index += 2
                continue
            if char == '"':
                in_string = False
            index += 1
            continue
        if char == '"':
            in_string = True
        elif char == ",":
            lookahead = index + 1
            while lookahead < length and text[lookahead].isspace():
                lookahead += 1
            if lookahead < length and text[lookahead] in "}]":
                out.append(" ")
                index += 1
                continue
        out.append(char)
        index += 1
    return "".join(out)


def _read_json_object(path: Path) -> dict[str, object]:
    try:
        text = path.read_text(encoding="utf-8-sig")
    except (OSError, UnicodeDecodeError) as exc:
        raise ProjectConfigError(
            format_diagnostic(path, f"Cannot read file: {exc}")
        ) from exc
    try:
        data = json.loads(strip_json_comments(text))
    except json.JSONDecodeError as exc:
        raise ProjectConfigError(
            format_diagnostic(path, exc.msg, exc.lineno, exc.colno)
        ) from exc
    if not isinstance(data, dict):
        raise ProjectConfigError(
            format_diagnostic(path, "Configuration root must be an object")
        )
    return data


def _read_layer_chain(path: Path, seen: frozenset[Path]) -> _ConfigLayer:
    if path in seen:
        raise ProjectConfigError(
            format_diagnostic(path, "Circularity detected while resolving 'extends'")
        )
    data = _read_json_object(path)
    layer = _ConfigLayer()
    extends = data.get("extends")
    if extends is not None:
        bases = extends if isinstance(extends, list) else [extends]
        for base in bases:
            if not isinstance(base, str):
                raise ProjectConfigError(
                    format_diagnostic(path, "'extends' must be a string or array")
                )
            base_path = _resolve_extends(base, path)
            logger.debug(f"Following configuration base (config={path} base={base_path})")
            layer = _read_layer_chain(base_path, seen | {path}).merged_over(layer)
    return _anchor_layer(path, data).merged_over(layer)


def _resolve_extends(spec: str, config_path: Path) -> Path:
    config_dir = config_path.parent
    if spec.startswith(("./", "../")) or os.path.isabs(spec):
        candidate = _normalize(config_dir / spec)
        if not candidate.is_file() and candidate.suffix != ".json":
            candidate = candidate.with_name(candidate.name + ".json")
        if candidate.is_file():
            return candidate
    else:
        for directory in (config_dir, *config_dir.parents):
            package_path = directory / "node_modules" / spec
            for candidate in (
                package_path,
                package_path.with_name(package_path.name + ".json"),
                package_path / "tsconfig.json",
            ):
                if candidate.is_file():
                    return _normalize(candidate)
    raise ProjectConfigError(
        format_diagnostic(config_path, f"File '{spec}' referenced by 'extends' not found")
    )


def _anchor_layer(path: Path, data: dict[str, object]) -> _ConfigLayer:
    config_dir = path.parent
    options = data.get("compilerOptions") or {}
    if not isinstance(options, dict):
        raise ProjectConfigError(
            format_diagnostic(path, "'compilerOptions' must be an object")
        )
    base_url = options.get("baseUrl")
    out_dir = options.get("outDir")
    allow_js = options.get("allowJs")
    paths = options.get("paths")
    return _ConfigLayer(
        files=_anchor_list(path, data, "files"),
        include=_anchor_list(path, data, "include"),
        exclude=_anchor_list(path, data, "exclude"),
        base_url=_normalize(config_dir / base_url) if isinstance(base_url, str) else None,
        out_dir=_normalize(config_dir / out_dir) if isinstance(out_dir, str) else None,
        allow_js=allow_js if isinstance(allow_js, bool) else None,
        paths=_read_paths(path, paths) if paths is not None else None,
        paths_origin=config_dir if paths is not None else None,
    )


def _anchor_list(
    path: Path, data: dict[str, object], key: str
) -> tuple[_AnchoredPattern, ...] | None:
    values = data.get(key)
    if values is None:
        return None
    if not isinstance(values, list) or not all(isinstance(v, str) for v in values):
        raise ProjectConfigError(
            format_diagnostic(path, f"'{key}' must be an array of strings")
        )
    return tuple(_AnchoredPattern(anchor=path.parent, pattern=v) for v in values)


def _read_paths(path: Path, paths: object) -> dict[str, tuple[str, ...]]:
    if not isinstance(paths, dict):
        raise ProjectConfigError(
            format_diagnostic(path, "'compilerOptions.paths' must be an object")
        )
    result: dict[str, tuple[str, ...]] = {}
    for pattern, targets in paths.items():
        if not isinstance(targets, list) or not all(isinstance(t, str) for t in targets):
            raise ProjectConfigError(
                format_diagnostic(
                    path, f"Substitutions for pattern '{pattern}' must be an array"
                )
            )
        result[pattern] = tuple(targets)
    return result


def _expand_files(
    config_path: Path,
    root_dir: Path,
    layer: _ConfigLayer,
    extensions: tuple[str, ...],
) -> list[Path]:
    explicit: list[Path] = []
    for entry in layer.files or ():
        file_path = _normalize(entry.anchor / entry.pattern)
        if not file_path.is_file():
            raise ProjectConfigError(
                format_diagnostic(config_path, f"File '{entry.pattern}' not found")
            )
        if file_path not in explicit:
            explicit.append(file_path)

    include = layer.include
    if include is None:
        include = () if layer.files is not None else (_AnchoredPattern(root_dir, "**/*"),)
    exclude = layer.exclude
    if exclude is None:
        exclude = tuple(_AnchoredPattern(root_dir, name) for name in sorted(VENDOR_DIRECTORIES))
        if layer.out_dir is not None:
            exclude += (_AnchoredPattern(layer.out_dir, "."),)

    include_matchers = [_GlobMatcher.from_pattern(p) for p in include]
    exclude_matchers = [_GlobMatcher.from_pattern(p) for p in exclude]
    matched: set[Path] = set()
    for matcher in include_matchers:
        for file_path in _walk_source_files(matcher.base, extensions):
            if file_path in matched or not matcher.matches(file_path):
                continue
            if any(excluder.matches(file_path) for excluder in exclude_matchers):
                logger.debug(f"Excluded by configuration (file_path={file_path})")
                continue
            matched.add(file_path)

    files = explicit + sorted(path for path in matched if path not in explicit)
    if not files:
        include_text = json.dumps([p.pattern for p in include])
        exclude_text = json.dumps([p.pattern for p in exclude])
        raise ProjectConfigError(
            format_diagnostic(
                config_path,
                "No inputs were found in config file. "
                f"Specified 'include' paths were '{include_text}' "
                f"and 'exclude' paths were '{exclude_text}'.",
            )
        )
    return files


def _walk_source_files(base: Path, extensions: tuple[str, ...]) -> list[Path]:
    if base.is_file():
        return [base] if base.name.endswith(extensions) else []
    found: list[Path] = []
    for directory, dir_names, file_names in os.walk(base):
        dir_names[:] = sorted(
            name
            for name in dir_names
            if name not in VENDOR_DIRECTORIES and not name.startswith(".")
        )
        for name in sorted(file_names):
            if name.startswith(".") or not name.endswith(extensions):
                continue
            found.append(Path(directory) / name)
    return found


def _normalize(path: Path) -> Path:
    return Path(os.path.normpath(path))
