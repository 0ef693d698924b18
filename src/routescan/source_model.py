# Copyright 2026 Zsolt Kulcsar and Contributors. Licensed under the EUPL-1.2 or later
"""Parse TypeScript sources and index module-level declarations.

The snapshot built here is the only view of the analyzed project the rest of
the package gets: the ordered top-level classes, and a lookup from an
identifier reference to the declaration it names once every import, re-export
and default-export alias has been unwound.
"""

import logging
import os
from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Literal

import tree_sitter_typescript
from tree_sitter import Language, Node, Parser, Tree

from routescan.diagnostics import format_location
from routescan.project_config import JS_EXTENSIONS, ModuleOptions, load_project_config

logger = logging.getLogger(__name__)

DeclarationKind = Literal[
    "variable", "pattern", "class", "function", "enum", "default_export", "unresolved"
]

_TYPESCRIPT = Language(tree_sitter_typescript.language_typescript())
_TSX = Language(tree_sitter_typescript.language_tsx())

_CLASS_TYPES = frozenset({"class_declaration", "abstract_class_declaration"})
# ``export default class Name {}`` may parse as a named class expression.
_EXPORTED_CLASS_TYPES = _CLASS_TYPES | {"class"}
_VARIABLE_STATEMENT_TYPES = frozenset({"lexical_declaration", "variable_declaration"})
_FUNCTION_TYPES = frozenset({"function_declaration", "generator_function_declaration"})
_PATTERN_NAME_TYPES = frozenset({"identifier", "shorthand_property_identifier_pattern"})


@dataclass(frozen=True)
class SourceError:
    """Represent a source file that could not be loaded."""

    file_path: str
    message: str


@dataclass(frozen=True)
class LocalBinding:
    """Name declared directly in a module."""

    name: str
    kind: DeclarationKind
    node: Node


@dataclass(frozen=True)
class ImportBinding:
    """Name brought into a module by an import.

    Attributes:
        name: Local name of the binding.
        specifier: Module specifier the name is imported from.
        imported: Exported name in that module; ``default`` for default
            imports and ``*`` for namespace imports.
        node: Import clause node that declares the binding.
    """

    name: str
    specifier: str
    imported: str
    node: Node


Binding = LocalBinding | ImportBinding


@dataclass(frozen=True)
class LocalExport:
    """Export of a name bound in the same module."""

    local_name: str


@dataclass(frozen=True)
class DefaultExpressionExport:
    """``export default <expression>`` where the expression is not a name."""

    node: Node


@dataclass(frozen=True)
class ReExport:
    """Export forwarded from another module."""

    specifier: str
    imported: str


ExportEntry = LocalExport | DefaultExpressionExport | ReExport


@dataclass
class ModuleScope:
    """Module-level bindings and exports of one source file."""

    bindings: dict[str, Binding] = field(default_factory=dict)
    exports: dict[str, ExportEntry] = field(default_factory=dict)
    star_exports: list[str] = field(default_factory=list)


@dataclass(frozen=True, eq=False)
class SourceFile:
    """Represent one parsed source file.

    Attributes:
        path: Normalized absolute path of the file.
        source: Raw UTF-8 bytes the tree was parsed from.
        tree: tree-sitter syntax tree.
        scope: Module-level declaration index.
    """

    path: Path
    source: bytes
    tree: Tree
    scope: ModuleScope

    @property
    def root(self) -> Node:
        return self.tree.root_node

    def text(self, node: Node) -> str:
        """Return the source text covered by a node."""
        return self.source[node.start_byte : node.end_byte].decode("utf-8")

    def location(self, node: Node) -> str:
        """Return ``path:line:column`` for the start of a node.

        The column counts characters, not the bytes tree-sitter reports.
        """
        line_start = self.source.rfind(b"\n", 0, node.start_byte) + 1
        prefix = self.source[line_start : node.start_byte].decode("utf-8", errors="replace")
        return format_location(self.path, node.start_point[0] + 1, len(prefix) + 1)


@dataclass(frozen=True)
class DeclarationRef:
    """Identify the original declaration an identifier refers to.

    Identity is the declaring file, the declaring node position and the kind;
    the node and file objects ride along for evaluation.

    Attributes:
        file_path: File containing the declaration.
        name: Declared name.
        kind: Declaration category; ``unresolved`` when an alias chain breaks.
        start_byte: Start offset of the declaring node.
        node: Declaring node (declarator, class, import clause, or default
            export expression).
        source: Parsed file containing the declaration.
    """

    file_path: Path
    name: str
    kind: DeclarationKind
    start_byte: int
    node: Node = field(compare=False, hash=False, repr=False)
    source: SourceFile = field(compare=False, hash=False, repr=False)


@dataclass(frozen=True)
class ClassDecl:
    """Represent one named top-level class declaration.

    Attributes:
        name: Class name.
        source: File declaring the class.
        node: Class declaration node.
        decorators: Decorator nodes in source order, including decorators
            written before ``export``.
    """

    name: str
    source: SourceFile
    node: Node = field(repr=False)
    decorators: tuple[Node, ...] = field(repr=False)

    @property
    def line(self) -> int:
        return self.node.start_point[0] + 1


class ProgramSnapshot:
    """Immutable set of parsed project files with declaration lookup."""

    def __init__(
        self,
        files: list[SourceFile],
        root_dir: Path,
        module_options: ModuleOptions | None = None,
        errors: list[SourceError] | None = None,
    ) -> None:
        """Initialize the snapshot.

        Args:
            files: Parsed files in program order.
            root_dir: Project root used for relative paths in output.
            module_options: Module resolution settings.
            errors: Files that could not be loaded.
        """
        self._files = tuple(files)
        self._by_path = {source.path: source for source in files}
        self.root_dir = root_dir
        self.module_options = module_options or ModuleOptions()
        self.errors = tuple(errors or ())

    @classmethod
    def from_sources(
        cls,
        sources: Mapping[str, str],
        root_dir: Path,
        module_options: ModuleOptions | None = None,
    ) -> "ProgramSnapshot":
        """Build a snapshot from in-memory source text.

        Args:
            sources: Project-relative file name to source text, in order.
            root_dir: Directory the file names are relative to.
            module_options: Module resolution settings.

        Returns:
            Snapshot over the given sources.
        """
        files = [
            parse_source(_normalize(root_dir / name), text)
            for name, text in sources.items()
        ]
        return cls(files=files, root_dir=root_dir, module_options=module_options)

    @property
    def files(self) -> tuple[SourceFile, ...]:
        return self._files

    def source_for(self, path: Path) -> SourceFile | None:
        return self._by_path.get(_normalize(path))

    def relative_path(self, source: SourceFile) -> str:
        """Return a file path relative to the project root when possible."""
        try:
            return source.path.relative_to(self.root_dir).as_posix()
        except ValueError:
            return str(source.path)

    def resolve_module(self, source: SourceFile, specifier: str) -> SourceFile | None:
        """Find the snapshot file a module specifier points at.

        Args:
            source: File containing the import.
            specifier: Module specifier text.

        Returns:
            Target file, or ``None`` when the module is outside the snapshot.
        """
        if specifier.startswith((".", "/")):
            return self._probe(source.path.parent / specifier)
        for candidate in self.module_options.path_candidates(specifier):
            target = self._probe(candidate)
            if target is not None:
                return target
        return None

    def lookup(self, source: SourceFile, name: str) -> DeclarationRef | None:
        """Resolve a module-level name to its original declaration.

        Args:
            source: File in whose module scope the name is looked up.
            name: Identifier text.

        Returns:
            Declaration reference, or ``None`` when nothing declares the name.
        """
        binding = source.scope.bindings.get(name)
        if binding is None:
            return None
        return self._resolve_binding(source, binding, visited=frozenset())

    def _probe(self, base: Path) -> SourceFile | None:
        base = _normalize(base)
        extensions = self.module_options.extensions
        candidates: list[Path] = []
        if base.name.endswith(extensions):
            candidates.append(base)
        if base.suffix in JS_EXTENSIONS:
            stem = base.with_suffix("")
            ts_suffix = {".mjs": ".mts", ".cjs": ".cts"}.get(base.suffix, ".ts")
            candidates.extend([stem.with_suffix(ts_suffix), stem.with_suffix(".tsx")])
        candidates.extend(base.with_name(base.name + ext) for ext in extensions)
        candidates.extend(base / f"index{ext}" for ext in extensions)
        for candidate in candidates:
            target = self._by_path.get(candidate)
            if target is not None:
                return target
        return None

    def _resolve_binding(
        self,
        source: SourceFile,
        binding: Binding,
        visited: frozenset[tuple[Path, str]],
    ) -> DeclarationRef:
        if isinstance(binding, LocalBinding):
            return _declaration(source, binding.name, binding.kind, binding.node)
        target = self.resolve_module(source, binding.specifier)
        if target is None:
            logger.debug(
                f"Import target outside snapshot (file_path={source.path} specifier={binding.specifier})"
            )
            return _declaration(source, binding.name, "unresolved", binding.node)
        if binding.imported != "*":
            resolved = self._resolve_export(target, binding.imported, visited)
            if resolved is not None:
                return resolved
        return _declaration(source, binding.name, "unresolved", binding.node)

    def _resolve_export(
        self,
        source: SourceFile,
        export_name: str,
        visited: frozenset[tuple[Path, str]],
    ) -> DeclarationRef | None:
        key = (source.path, export_name)
        if key in visited:
            logger.warning(
                f"Alias cycle detected (file_path={source.path} export={export_name})"
            )
            return None
        visited = visited | {key}
        entry = source.scope.exports.get(export_name)
        if isinstance(entry, LocalExport):
            binding = source.scope.bindings.get(entry.local_name)
            if binding is None:
                return None
            resolved = self._resolve_binding(source, binding, visited)
            return None if resolved.kind == "unresolved" else resolved
        if isinstance(entry, DefaultExpressionExport):
            return _declaration(source, export_name, "default_export", entry.node)
        if isinstance(entry, ReExport):
            target = self.resolve_module(source, entry.specifier)
            if target is None or entry.imported == "*":
                return None
            return self._resolve_export(target, entry.imported, visited)
        if export_name == "default":
            return None
        for specifier in source.scope.star_exports:
            target = self.resolve_module(source, specifier)
            if target is None:
                continue
            resolved = self._resolve_export(target, export_name, visited)
            if resolved is not None:
                return resolved
        return None


def load_program(config_path: Path | str) -> ProgramSnapshot:
    """Load and parse every source file of a project.

    Args:
        config_path: Path to the project's ``tsconfig.json``.

    Returns:
        Program snapshot. Unreadable files are skipped and listed in
        ``errors``.

    Raises:
        ProjectConfigError: If the configuration cannot be loaded.
    """
    config = load_project_config(config_path)
    files: list[SourceFile] = []
    errors: list[SourceError] = []
    for file_path in config.files:
        try:
            text = file_path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            logger.warning(
                f"Skipping file due to read failure (file_path={file_path} error={exc})"
            )
            errors.append(SourceError(file_path=str(file_path), message=str(exc)))
            continue
        source = parse_source(file_path, text)
        if source.root.has_error:
            logger.warning(
                f"Syntax errors found; continuing with recovered tree (file_path={file_path})"
            )
        files.append(source)
    logger.info(
        f"Program loaded (config={config.config_path} files={len(files)} errors={len(errors)})"
    )
    return ProgramSnapshot(
        files=files,
        root_dir=config.root_dir,
        module_options=config.module_options,
        errors=errors,
    )


def parse_source(path: Path, text: str) -> SourceFile:
    """Parse one source file and index its module scope.

    Args:
        path: File path; ``.tsx``/``.jsx`` files use the TSX grammar.
        text: Source text.

    Returns:
        Parsed file.
    """
    language = _TSX if path.suffix in {".tsx", ".jsx"} else _TYPESCRIPT
    source = text.encode("utf-8")
    tree = Parser(language).parse(source)
    parsed = SourceFile(path=_normalize(path), source=source, tree=tree, scope=ModuleScope())
    _ScopeBuilder(parsed).build()
    return parsed


def list_top_level_classes(snapshot: ProgramSnapshot) -> list[ClassDecl]:
    """List named top-level classes in program order.

    Args:
        snapshot: Program snapshot.

    Returns:
        Class declarations, files in snapshot order and classes in source order.
    """
    classes: list[ClassDecl] = []
    for source in snapshot.files:
        for statement in named_children(source.root):
            outer_decorators: list[Node] = []
            node = statement
            class_types = _CLASS_TYPES
            if statement.type == "export_statement":
                outer_decorators = [c for c in statement.children if c.type == "decorator"]
                declaration = statement.child_by_field_name(
                    "declaration"
                ) or statement.child_by_field_name("value")
                if declaration is None:
                    continue
                node = declaration
                class_types = _EXPORTED_CLASS_TYPES
            if node.type not in class_types:
                continue
            name_node = node.child_by_field_name("name")
            if name_node is None:
                continue
            decorators = outer_decorators + [c for c in node.children if c.type == "decorator"]
            classes.append(
                ClassDecl(
                    name=source.text(name_node),
                    source=source,
                    node=node,
                    decorators=tuple(decorators),
                )
            )
    return classes


def resolve_identifier(
    node: Node, source: SourceFile, snapshot: ProgramSnapshot
) -> DeclarationRef | None:
    """Resolve an identifier reference to its original declaration.

    Args:
        node: Identifier (or shorthand property) node.
        source: File containing the node.
        snapshot: Program snapshot.

    Returns:
        Declaration reference, or ``None`` when no declaration exists.
    """
    return snapshot.lookup(source, source.text(node))


def get_initializer(ref: DeclarationRef) -> Node | None:
    """Return the expression that gives a declaration its value.

    Args:
        ref: Declaration reference.

    Returns:
        Initializer expression, or ``None`` for declarations without one.
    """
    if ref.kind == "variable":
        return ref.node.child_by_field_name("value")
    if ref.kind == "default_export":
        return ref.node
    return None


def named_children(node: Node) -> Iterator[Node]:
    """Yield named children, skipping comments."""
    for child in node.named_children:
        if child.type != "comment":
            yield child


class _ScopeBuilder:
    """Populate the module scope of one parsed file."""

    def __init__(self, source: SourceFile) -> None:
        self._source = source
        self._scope = source.scope

    def build(self) -> None:
        for statement in named_children(self._source.root):
            if statement.type == "import_statement":
                self._add_import(statement)
            elif statement.type == "export_statement":
                self._add_export(statement)
            else:
                self._add_declaration(statement)

    def _add_declaration(self, node: Node) -> list[str]:
        """Bind the names a declaration introduces and return them."""
        if node.type == "ambient_declaration":
            names: list[str] = []
            for child in named_children(node):
                names.extend(self._add_declaration(child))
            return names
        if node.type in _VARIABLE_STATEMENT_TYPES:
            return self._add_variables(node)
        kind: DeclarationKind
        if node.type in _CLASS_TYPES:
            kind = "class"
        elif node.type in _FUNCTION_TYPES:
            kind = "function"
        elif node.type == "enum_declaration":
            kind = "enum"
        else:
            return []
        name_node = node.child_by_field_name("name")
        if name_node is None:
            return []
        name = self._source.text(name_node)
        self._scope.bindings[name] = LocalBinding(name=name, kind=kind, node=node)
        return [name]

    def _add_variables(self, statement: Node) -> list[str]:
        names: list[str] = []
        for declarator in named_children(statement):
            if declarator.type != "variable_declarator":
                continue
            name_node = declarator.child_by_field_name("name")
            if name_node is None:
                continue
            if name_node.type == "identifier":
                name = self._source.text(name_node)
                self._scope.bindings[name] = LocalBinding(name, "variable", declarator)
                names.append(name)
                continue
            for pattern_name in self._pattern_names(name_node):
                name = self._source.text(pattern_name)
                self._scope.bindings[name] = LocalBinding(name, "pattern", declarator)
                names.append(name)
        return names

    def _pattern_names(self, pattern: Node) -> Iterator[Node]:
        for child in named_children(pattern):
            if child.type in _PATTERN_NAME_TYPES:
                yield child
            elif child.type == "pair_pattern":
                value = child.child_by_field_name("value")
                if value is not None and value.type in _PATTERN_NAME_TYPES:
                    yield value
                elif value is not None:
                    yield from self._pattern_names(value)
            else:
                yield from self._pattern_names(child)

    def _add_import(self, statement: Node) -> None:
        specifier_node = statement.child_by_field_name("source")
        for child in named_children(statement):
            if child.type == "import_require_clause":
                name_node = next(named_children(child), None)
                require_source = child.child_by_field_name("source")
                if name_node is not None and require_source is not None:
                    self._bind_import(name_node, self._specifier(require_source), "*", child)
            elif child.type == "import_clause" and specifier_node is not None:
                self._add_import_clause(child, self._specifier(specifier_node))

    def _add_import_clause(self, clause: Node, specifier: str) -> None:
        for part in named_children(clause):
            if part.type == "identifier":
                self._bind_import(part, specifier, "default", clause)
            elif part.type == "namespace_import":
                name_node = next(named_children(part), None)
                if name_node is not None:
                    self._bind_import(name_node, specifier, "*", part)
            elif part.type == "named_imports":
                for spec in named_children(part):
                    if spec.type != "import_specifier":
                        continue
                    name_node = spec.child_by_field_name("name")
                    alias_node = spec.child_by_field_name("alias")
                    if name_node is None:
                        continue
                    imported = self._export_name(name_node)
                    self._bind_import(alias_node or name_node, specifier, imported, spec)

    def _bind_import(self, name_node: Node, specifier: str, imported: str, node: Node) -> None:
        name = self._source.text(name_node)
        self._scope.bindings[name] = ImportBinding(
            name=name, specifier=specifier, imported=imported, node=node
        )

    def _add_export(self, statement: Node) -> None:
        is_default = any(child.type == "default" for child in statement.children)
        declaration = statement.child_by_field_name("declaration")
        if declaration is not None:
            names = self._add_declaration(declaration)
            for name in names:
                self._scope.exports["default" if is_default else name] = LocalExport(name)
            return
        value = statement.child_by_field_name("value")
        if value is not None:
            name_node = value.child_by_field_name("name") if value.type == "class" else None
            if value.type == "identifier":
                self._scope.exports["default"] = LocalExport(self._source.text(value))
            elif name_node is not None:
                name = self._source.text(name_node)
                self._scope.bindings[name] = LocalBinding(name, "class", value)
                self._scope.exports["default"] = LocalExport(name)
            else:
                self._scope.exports["default"] = DefaultExpressionExport(value)
            return
        source_node = statement.child_by_field_name("source")
        specifier = self._specifier(source_node) if source_node is not None else None
        for child in named_children(statement):
            if child.type == "export_clause":
                self._add_export_clause(child, specifier)
            elif child.type == "namespace_export" and specifier is not None:
                name_node = next(named_children(child), None)
                if name_node is not None:
                    self._scope.exports[self._export_name(name_node)] = ReExport(specifier, "*")
        if specifier is not None and any(child.type == "*" for child in statement.children):
            if not any(child.type == "namespace_export" for child in statement.children):
                self._scope.star_exports.append(specifier)

    def _add_export_clause(self, clause: Node, specifier: str | None) -> None:
        for spec in named_children(clause):
            if spec.type != "export_specifier":
                continue
            name_node = spec.child_by_field_name("name")
            alias_node = spec.child_by_field_name("alias")
            if name_node is None:
                continue
            name = self._export_name(name_node)
            exported = self._export_name(alias_node) if alias_node is not None else name
            if specifier is None:
                self._scope.exports[exported] = LocalExport(name)
            else:
                self._scope.exports[exported] = ReExport(specifier, name)

    def _export_name(self, node: Node) -> str:
        text = self._source.text(node)
        return text[1:-1] if node.type == "string" else text

    def _specifier(self, node: Node) -> str:
        return self._source.text(node)[1:-1]


def _declaration(
    source: SourceFile, name: str, kind: DeclarationKind, node: Node
) -> DeclarationRef:
    return DeclarationRef(
        file_path=source.path,
        name=name,
        kind=kind,
        start_byte=node.start_byte,
        node=node,
        source=source,
    )


def _normalize(path: Path) -> Path:
    return Path(os.path.normpath(path))
