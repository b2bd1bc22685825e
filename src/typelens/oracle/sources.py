import posixpath
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

import tree_sitter as ts

from typelens.logger import logger
from typelens.oracle.base import DeclarationKind
from typelens.oracle.syntax import (
    child_by_field,
    get_node_text,
    get_parser,
    has_token,
    string_value,
)

_DECLARATION_KINDS = {
    "type_alias_declaration": DeclarationKind.TYPE_ALIAS,
    "interface_declaration": DeclarationKind.INTERFACE,
    "class_declaration": DeclarationKind.CLASS,
    "abstract_class_declaration": DeclarationKind.CLASS,
    "enum_declaration": DeclarationKind.ENUM,
    "function_declaration": DeclarationKind.FUNCTION,
    "generator_function_declaration": DeclarationKind.FUNCTION,
    "function_signature": DeclarationKind.FUNCTION,
}


@dataclass(eq=False)
class Binding:
    """A module-level declaration bound to a name."""

    name: str
    kind: DeclarationKind
    node: ts.Node
    source: "SourceFile"
    exported: bool = False


@dataclass
class ImportBinding:
    local: str
    specifier: str
    imported: Optional[str]  # None for `import * as ns`


@dataclass
class ModuleScope:
    types: Dict[str, List[Binding]] = field(default_factory=dict)
    values: Dict[str, List[Binding]] = field(default_factory=dict)
    imports: Dict[str, ImportBinding] = field(default_factory=dict)
    exports: Dict[str, str] = field(default_factory=dict)  # exported -> local
    # (specifier, {exported: imported}) or (specifier, None) for `export *`
    reexports: List[Tuple[str, Optional[Dict[str, str]]]] = field(
        default_factory=list
    )

    def bind_type(self, binding: Binding) -> None:
        self.types.setdefault(binding.name, []).append(binding)

    def bind_value(self, binding: Binding) -> None:
        self.values.setdefault(binding.name, []).append(binding)


@dataclass(eq=False)
class SourceFile:
    path: str
    text: str
    tree: ts.Tree
    _scope: Optional[ModuleScope] = None

    @property
    def root(self) -> ts.Node:
        return self.tree.root_node

    @property
    def is_in_node_modules(self) -> bool:
        return is_node_modules_path(self.path)

    @property
    def scope(self) -> ModuleScope:
        if self._scope is None:
            self._scope = ModuleBinder(self).bind()
        return self._scope


def is_node_modules_path(path: str) -> bool:
    return "node_modules" in path.replace("\\", "/").split("/")


def normalize_path(path: str) -> str:
    path = path.replace("\\", "/")
    norm = posixpath.normpath(path)
    return norm[2:] if norm.startswith("./") else norm


def parse_source(path: str, text: str, tsx: bool) -> SourceFile:
    tree = get_parser(tsx).parse(text.encode("utf-8"))
    if tree.root_node.has_error:
        logger.warning("Source has syntax errors", path=path)
    return SourceFile(path=path, text=text, tree=tree)


class ModuleBinder:
    """
    Collects module-level type and value bindings, imports and exports of a
    source file.
    """

    def __init__(self, source: SourceFile):
        self.source = source
        self.scope = ModuleScope()

    def bind(self) -> ModuleScope:
        for child in self.source.root.named_children:
            self._bind_statement(child, exported=False)
        return self.scope

    def _bind_statement(self, node: ts.Node, exported: bool) -> None:
        kind = _DECLARATION_KINDS.get(node.type)
        if kind is not None:
            self._bind_declaration(node, kind, exported)
            return

        if node.type == "export_statement":
            self._bind_export(node)
        elif node.type == "ambient_declaration":
            for child in node.named_children:
                self._bind_statement(child, exported)
        elif node.type in ("lexical_declaration", "variable_declaration"):
            self._bind_variables(node, exported)
        elif node.type == "import_statement":
            self._bind_import(node)
        elif node.type in ("internal_module", "module", "expression_statement"):
            # namespaces and global augmentations are not bound
            logger.debug(
                "Skipping module-level statement",
                path=self.source.path,
                node_type=node.type,
                line=node.start_point[0] + 1,
            )

    def _bind_declaration(
        self, node: ts.Node, kind: DeclarationKind, exported: bool
    ) -> Optional[str]:
        name_node = node.child_by_field_name("name")
        if name_node is None:
            return None
        binding = Binding(
            name=get_node_text(name_node),
            kind=kind,
            node=node,
            source=self.source,
            exported=exported,
        )
        if kind in (DeclarationKind.TYPE_ALIAS, DeclarationKind.INTERFACE):
            self.scope.bind_type(binding)
        elif kind in (DeclarationKind.CLASS, DeclarationKind.ENUM):
            self.scope.bind_type(binding)
            self.scope.bind_value(binding)
        else:
            self.scope.bind_value(binding)
        if exported:
            self.scope.exports[binding.name] = binding.name
        return binding.name

    def _bind_variables(self, node: ts.Node, exported: bool) -> None:
        for declarator in node.named_children:
            if declarator.type != "variable_declarator":
                continue
            name_node = declarator.child_by_field_name("name")
            if name_node is None or name_node.type != "identifier":
                continue
            name = get_node_text(name_node)
            self.scope.bind_value(
                Binding(
                    name=name,
                    kind=DeclarationKind.VARIABLE,
                    node=declarator,
                    source=self.source,
                    exported=exported,
                )
            )
            if exported:
                self.scope.exports[name] = name

    def _bind_export(self, node: ts.Node) -> None:
        is_default = has_token(node, "default")
        declaration = node.child_by_field_name("declaration")
        source_node = node.child_by_field_name("source")

        if declaration is not None:
            before = set(self.scope.exports)
            self._bind_statement(declaration, exported=True)
            if is_default:
                name_node = declaration.child_by_field_name("name")
                if name_node is not None:
                    self.scope.exports["default"] = get_node_text(name_node)
            elif not set(self.scope.exports) - before:
                logger.debug(
                    "Export bound no names",
                    path=self.source.path,
                    line=node.start_point[0] + 1,
                )
            return

        value = node.child_by_field_name("value")
        if is_default and value is not None:
            if value.type == "identifier":
                self.scope.exports["default"] = get_node_text(value)
            else:
                self.scope.bind_value(
                    Binding(
                        name="default",
                        kind=DeclarationKind.VARIABLE,
                        node=value,
                        source=self.source,
                        exported=True,
                    )
                )
                self.scope.exports["default"] = "default"
            return

        clause = child_by_field(node, "export_clause", "export_clause")
        if source_node is not None:
            specifier = string_value(source_node)
            if clause is None:
                if not any(c.type == "namespace_export" for c in node.named_children):
                    self.scope.reexports.append((specifier, None))
                return
            self.scope.reexports.append((specifier, self._export_specifiers(clause)))
            return

        if clause is not None:
            for exported, local in self._export_specifiers(clause).items():
                self.scope.exports[exported] = local

    def _export_specifiers(self, clause: ts.Node) -> Dict[str, str]:
        names: Dict[str, str] = {}
        for spec in clause.named_children:
            if spec.type != "export_specifier":
                continue
            name_node = spec.child_by_field_name("name")
            alias_node = spec.child_by_field_name("alias")
            if name_node is None:
                continue
            local = get_node_text(name_node)
            names[get_node_text(alias_node) if alias_node else local] = local
        return names

    def _bind_import(self, node: ts.Node) -> None:
        source_node = node.child_by_field_name("source")
        if source_node is None:
            return
        specifier = string_value(source_node)
        clause = next(
            (c for c in node.named_children if c.type == "import_clause"), None
        )
        if clause is None:
            return
        for child in clause.named_children:
            if child.type == "identifier":
                local = get_node_text(child)
                self.scope.imports[local] = ImportBinding(local, specifier, "default")
            elif child.type == "namespace_import":
                ident = next(
                    (c for c in child.named_children if c.type == "identifier"), None
                )
                if ident is not None:
                    local = get_node_text(ident)
                    self.scope.imports[local] = ImportBinding(local, specifier, None)
            elif child.type == "named_imports":
                for spec in child.named_children:
                    if spec.type != "import_specifier":
                        continue
                    name_node = spec.child_by_field_name("name")
                    alias_node = spec.child_by_field_name("alias")
                    if name_node is None:
                        continue
                    imported = get_node_text(name_node)
                    local = get_node_text(alias_node) if alias_node else imported
                    self.scope.imports[local] = ImportBinding(
                        local, specifier, imported
                    )


def module_candidates(
    from_path: str,
    specifier: str,
    suffixes: Tuple[str, ...],
    node_modules_dirs: List[str],
) -> List[str]:
    """
    Paths an import specifier may refer to, in lookup order.
    """
    if specifier.startswith("."):
        base = posixpath.join(posixpath.dirname(from_path), specifier)
        return _file_candidates(normalize_path(base), suffixes)

    candidates: List[str] = []
    directory = posixpath.dirname(from_path)
    seen = set()
    while directory not in seen:
        seen.add(directory)
        for nm in node_modules_dirs:
            root = posixpath.join(directory, nm) if directory else nm
            candidates.extend(
                _file_candidates(normalize_path(posixpath.join(root, specifier)), suffixes)
            )
            candidates.extend(
                _file_candidates(
                    normalize_path(posixpath.join(root, "@types", specifier)), suffixes
                )
            )
        if not directory:
            break
        parent = posixpath.dirname(directory)
        directory = parent if parent != directory else ""
    return candidates


def _file_candidates(base: str, suffixes: Tuple[str, ...]) -> List[str]:
    stem, ext = posixpath.splitext(base)
    out = [base]
    if ext in (".js", ".jsx", ".mjs", ".cjs"):
        out.extend(stem + s for s in suffixes)
    out.extend(base + s for s in suffixes)
    out.extend(posixpath.join(base, "index" + s) for s in suffixes)
    return out
