import functools
import itertools
import json
import os
import re
import threading
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence, Set, Tuple, Union

import tree_sitter as ts

from typelens.defaults import UNRESOLVED, DefaultValueExtractor
from typelens.logger import logger
from typelens.models import LineColumn, Position, PRIMITIVE_NAMES, SourceLocation
from typelens.oracle.base import (
    OBJECT_SHAPED,
    DeclarationKind,
    DeclarationNotFoundError,
    OracleDeclaration,
    OracleSignature,
    OracleSymbol,
    IndexSignature,
    SourceParseError,
    TupleElement,
    TypeCategory,
    TypeOracle,
)
from typelens.oracle.builtins import (
    ARRAY_TYPES,
    FILTERING_UTILITIES,
    GENERIC_WRAPPERS,
    LIB_FILE,
    LIB_TYPES,
    MAPPED_UTILITIES,
)
from typelens.oracle.sources import (
    Binding,
    SourceFile,
    is_node_modules_path,
    module_candidates,
    normalize_path,
    parse_source,
)
from typelens.oracle.syntax import (
    child_by_field,
    children_of_type,
    find_error,
    first_child_of_type,
    get_node_text,
    has_token,
    iter_ancestors,
    leading_jsdoc,
    node_position,
    number_value,
    string_value,
)
from typelens.oracle.types import AliasRef, Env, SymbolData, TsType, env_key
from typelens.settings import OracleSettings

Category = TypeCategory
DK = DeclarationKind

_LIB_POSITION = Position(
    start=LineColumn(line=1, column=1), end=LineColumn(line=1, column=1)
)

_ANNOTATIONS = (
    "type_annotation",
    "opting_type_annotation",
    "omitting_type_annotation",
    "adding_type_annotation",
)
_PARAMETERS = ("required_parameter", "optional_parameter")
# named tuple members
_TUPLE_MEMBERS = frozenset(
    {"tuple_parameter", "optional_tuple_parameter", *_PARAMETERS}
)
_FUNCTION_EXPRESSIONS = frozenset(
    {"arrow_function", "function_expression", "function", "generator_function"}
)
_FUNCTION_DECLARATIONS = frozenset(
    {"function_declaration", "generator_function_declaration"}
)
_SIGNATURE_MODIFIERS = {
    (True, False): "async",
    (False, True): "generator",
    (True, True): "async-generator",
}
_SCOPE_BOUNDARIES = (
    _FUNCTION_EXPRESSIONS
    | _FUNCTION_DECLARATIONS
    | {"method_definition", "class", "class_declaration", "abstract_class_declaration"}
)
_METHOD_NODES = frozenset(
    {
        "method_signature",
        "method_definition",
        "abstract_method_signature",
        "function_signature",
        "function_declaration",
        "generator_function_declaration",
    }
)
_FIELD_NODES = ("public_field_definition", "field_definition")
_JSX_NODES = frozenset({"jsx_element", "jsx_self_closing_element", "jsx_fragment"})
_NUMERIC_OPERATORS = frozenset(
    {"-", "*", "/", "%", "**", "<<", ">>", ">>>", "&", "|", "^"}
)
_BOOLEAN_OPERATORS = frozenset(
    {"<", ">", "<=", ">=", "==", "!=", "===", "!==", "instanceof", "in"}
)
_MODULE_DECLARATIONS = frozenset(
    {DK.TYPE_ALIAS, DK.INTERFACE, DK.CLASS, DK.ENUM, DK.FUNCTION, DK.VARIABLE}
)
_MAX_SIMPLIFY_STEPS = 16

# mapped type annotation -> optional modifier
_OPTIONAL_MODIFIERS = {
    "opting_type_annotation": True,
    "adding_type_annotation": True,
    "omitting_type_annotation": False,
}


def _locked(method: Callable) -> Callable:
    @functools.wraps(method)
    def wrapper(self, *args, **kwargs):
        with self._lock:
            return method(self, *args, **kwargs)

    return wrapper


def _named(node: ts.Node) -> List[ts.Node]:
    return [c for c in node.named_children if c.type != "comment"]


def _last_named(node: Optional[ts.Node]) -> Optional[ts.Node]:
    if node is None:
        return None
    children = _named(node)
    return children[-1] if children else None


def _unwrap_parens(node: ts.Node) -> ts.Node:
    while node.type == "parenthesized_type" and _named(node):
        node = _named(node)[0]
    return node


def _property_name(node: Optional[ts.Node]) -> Optional[str]:
    if node is None:
        return None
    if node.type == "string" and node.is_named:
        return string_value(node)
    if node.type == "number":
        return str(number_value(get_node_text(node)))
    return get_node_text(node)


def _visibility(node: ts.Node) -> Optional[str]:
    modifier = first_child_of_type(node, "accessibility_modifier")
    if modifier is not None:
        return get_node_text(modifier)
    name = node.child_by_field_name("name")
    if name is not None and name.type == "private_property_identifier":
        return "private"
    return None


def _literal_text(value: Any, primitive: str) -> str:
    if primitive == "string":
        return json.dumps(value, ensure_ascii=False)
    if primitive == "boolean":
        return "true" if value else "false"
    if primitive == "bigint":
        return f"{value}n"
    return str(value)


def _number_literal(text: str) -> Tuple[Any, str]:
    if text.endswith("n"):
        return int(text[:-1].replace("_", ""), 0), "bigint"
    return number_value(text), "number"


def _contains_infer(node: ts.Node) -> bool:
    if node.type == "infer_type":
        return True
    return any(_contains_infer(c) for c in node.named_children)


class TypeScriptOracle(TypeOracle):
    """
    `TypeOracle` over TypeScript sources parsed with tree-sitter.

    Sources are registered in memory (`add_source`) or read from disk
    (`add_file`). Names are bound per module; imports are followed through
    relative paths and node_modules. Types are interned so that the same
    declaration with the same type arguments always yields the same handle.
    Operations are serialized with a re-entrant lock.
    """

    def __init__(self, settings: Optional[OracleSettings] = None):
        self.settings = settings or OracleSettings()
        self._sources: Dict[str, SourceFile] = {}
        self._types: Dict[Tuple[Any, ...], TsType] = {}
        self._ids = itertools.count(1)
        self._lock = threading.RLock()
        self._expanding_aliases: Set[Tuple[Any, ...]] = set()
        self._inferring: Set[Tuple[str, int]] = set()

    # ------------------------------------------------------------------ #
    # Sources
    # ------------------------------------------------------------------ #
    @_locked
    def add_source(self, path: str, text: str) -> SourceFile:
        """Register (or replace) a source file; interned types are dropped."""
        path = normalize_path(path)
        tsx = path.endswith(tuple(self.settings.tsx_suffixes))
        source = parse_source(path, text, tsx=tsx)
        self._sources[path] = source
        self._types.clear()
        logger.debug("Source added", path=path, tsx=tsx)
        return source

    def add_file(self, path: Union[str, Path]) -> SourceFile:
        file_path = Path(path)
        text = file_path.read_text(encoding="utf-8")
        name = str(file_path)
        if self.settings.root_path:
            name = os.path.relpath(
                file_path.resolve(), Path(self.settings.root_path).resolve()
            )
        return self.add_source(name, text)

    def get_source(self, path: str) -> SourceFile:
        source = self._sources.get(normalize_path(path))
        if source is None:
            raise KeyError(f"Source {path!r} is not registered")
        return source

    @property
    def sources(self) -> List[str]:
        return list(self._sources)

    def resolve_module(self, from_path: str, specifier: str) -> Optional[SourceFile]:
        for candidate in module_candidates(
            from_path,
            specifier,
            tuple(self.settings.module_suffixes),
            list(self.settings.node_modules_dirs),
        ):
            source = self._sources.get(candidate)
            if source is not None:
                return source
        logger.warning("Unresolved import", path=from_path, specifier=specifier)
        return None

    # ------------------------------------------------------------------ #
    # Interning
    # ------------------------------------------------------------------ #
    def _make(self, key: Tuple[Any, ...], category: TypeCategory, **fields) -> TsType:
        found = self._types.get(key)
        if found is None:
            found = TsType(
                id=next(self._ids), oracle_id=id(self), category=category, **fields
            )
            self._types[key] = found
        return found

    def _check(self, type: Any) -> TsType:
        if not isinstance(type, TsType) or type.oracle_id != id(self):
            raise ValueError("Type handle was not produced by this oracle")
        return type

    def _primitive(self, name: str) -> TsType:
        return self._make(
            ("prim", name), Category.PRIMITIVE, label=name, name=name, primitive=name
        )

    def _any(self) -> TsType:
        return self._primitive("any")

    def _literal(self, value: Any, primitive: str) -> TsType:
        return self._make(
            ("lit", primitive, repr(value)),
            Category.LITERAL,
            label=_literal_text(value, primitive),
            primitive=primitive,
            value=value,
        )

    def _widen(self, t: TsType) -> TsType:
        if t.category == Category.LITERAL and t.symbol is None:
            return self._primitive(t.primitive)
        return t

    def _keep_literal(self, t: TsType, keep: bool) -> TsType:
        return t if keep else self._widen(t)

    def _array(self, element: TsType, readonly: bool = False) -> TsType:
        return self._make(
            ("array", element.id, readonly),
            Category.ARRAY,
            cache={"element": element, "readonly": readonly},
            loaders={"text": lambda t: f"Array<{element.text}>"},
        )

    def _library_symbol(self, name: str, lib_file: str) -> OracleSymbol:
        return OracleSymbol(
            name=name, declaration=OracleDeclaration(DK.LIBRARY, name, lib_file)
        )

    def _generic(self, name: str, args: Sequence[TsType], lib_file: str) -> TsType:
        args = tuple(args)
        return self._make(
            ("generic", name, lib_file, tuple(a.id for a in args)),
            Category.GENERIC,
            name=name,
            args=args,
            lib_file=lib_file,
            symbol=self._library_symbol(name, lib_file),
            loaders={
                "text": lambda t: f"{name}<{', '.join(a.text for a in args)}>"
            },
        )

    def _opaque(
        self, text: str, lib_file: Optional[str] = None, key: Optional[Tuple] = None
    ) -> TsType:
        return self._make(
            key or ("opaque", text, lib_file),
            Category.OPAQUE,
            label=text,
            name=text,
            lib_file=lib_file,
            symbol=self._library_symbol(text, lib_file) if lib_file else None,
        )

    def _type_parameter(self, name: str, node: ts.Node, source: SourceFile) -> TsType:
        return self._make(
            ("tparam", source.path, node.start_byte),
            Category.OPAQUE,
            label=name,
            name=name,
            node=node,
            source=source,
            symbol=OracleSymbol(
                name=name,
                declaration=OracleDeclaration(DK.TYPE_PARAMETER, name, source.path, node),
            ),
        )

    def _union_of(self, types: Iterable[TsType]) -> TsType:
        members: List[TsType] = []
        seen: Set[int] = set()
        for t in types:
            parts = t.load("members", []) if t.category == Category.UNION else [t]
            for part in parts:
                if part.id not in seen:
                    seen.add(part.id)
                    members.append(part)
        if not members:
            return self._primitive("never")
        if len(members) == 1:
            return members[0]
        return self._make(
            ("union", tuple(m.id for m in members)),
            Category.UNION,
            cache={"members": members},
            loaders={"text": lambda t: " | ".join(m.text for m in members)},
        )

    def _synthetic_object(
        self,
        key: Tuple[Any, ...],
        properties: List[OracleSymbol],
        origin: TsType,
        text: str,
    ) -> TsType:
        return self._make(
            key,
            Category.OBJECT,
            label=text,
            name=origin.name,
            node=origin.node,
            source=origin.source,
            alias=origin.alias,
            symbol=origin.symbol,
            cache={"properties": properties},
        )

    def _node_key(
        self,
        node: ts.Node,
        source: SourceFile,
        env: Env,
        alias: Optional[AliasRef],
        *extra: Any,
    ) -> Tuple[Any, ...]:
        return (
            "node",
            source.path,
            node.start_byte,
            node.end_byte,
            node.type,
            env_key(env),
            alias.key if alias else None,
        ) + extra

    def _declaration_of(self, binding: Binding) -> OracleDeclaration:
        return OracleDeclaration(
            binding.kind, binding.name, binding.source.path, binding.node
        )

    def _type_symbol(
        self,
        alias: Optional[AliasRef],
        node: ts.Node,
        source: SourceFile,
        anonymous: str = "__type",
    ) -> OracleSymbol:
        if alias is not None:
            return OracleSymbol(
                name=alias.binding.name, declaration=self._declaration_of(alias.binding)
            )
        return OracleSymbol(
            name=anonymous,
            declaration=OracleDeclaration(DK.TYPE_LITERAL, None, source.path, node),
        )

    def _check_syntax(self, node: ts.Node, source: SourceFile) -> None:
        error = find_error(node)
        if error is not None:
            line, column = error.start_point
            raise SourceParseError(
                source.path, line + 1, column + 1, get_node_text(error)[:80]
            )

    # ------------------------------------------------------------------ #
    # Name lookup
    # ------------------------------------------------------------------ #
    def _lookup(
        self,
        source: SourceFile,
        name: str,
        space: str,
        seen: Optional[Set[Tuple[str, str, str]]] = None,
    ) -> List[Binding]:
        seen = seen if seen is not None else set()
        key = (source.path, name, space)
        if key in seen:
            return []
        seen.add(key)

        scope = source.scope
        table = scope.types if space == "type" else scope.values
        if name in table:
            return table[name]

        imported = scope.imports.get(name)
        if imported is not None and imported.imported is not None:
            target = self.resolve_module(source.path, imported.specifier)
            if target is not None:
                return self._lookup_export(target, imported.imported, space, seen)
        return []

    def _lookup_export(
        self, source: SourceFile, name: str, space: str, seen: Set[Tuple[str, str, str]]
    ) -> List[Binding]:
        scope = source.scope
        local = scope.exports.get(name)
        if local is not None:
            found = self._lookup(source, local, space, seen)
            if found:
                return found

        for specifier, names in scope.reexports:
            if names is None:
                if name == "default":
                    continue
                imported = name
            elif name in names:
                imported = names[name]
            else:
                continue
            target = self.resolve_module(source.path, specifier)
            if target is None:
                continue
            found = self._lookup_export(target, imported, space, seen)
            if found:
                return found

        # declaration files may rely on implicit exports
        if source.path.endswith(".d.ts") and not scope.exports and not scope.reexports:
            return self._lookup(source, name, space, seen)
        return []

    def _external_file(self, source: SourceFile, name: str) -> Optional[str]:
        imported = source.scope.imports.get(name.split(".")[0])
        if imported is None:
            return None
        specifier = imported.specifier
        if specifier.startswith("."):
            return normalize_path(
                os.path.join(os.path.dirname(source.path), specifier)
            )
        return f"node_modules/{specifier}/index.d.ts"

    # ------------------------------------------------------------------ #
    # Type syntax
    # ------------------------------------------------------------------ #
    def _type_from_node(
        self,
        node: ts.Node,
        source: SourceFile,
        env: Env,
        alias: Optional[AliasRef] = None,
    ) -> TsType:
        kind = node.type

        if kind in _ANNOTATIONS or kind in ("parenthesized_type", "readonly_type"):
            inner = _last_named(node)
            if inner is None:
                return self._any()
            return self._type_from_node(inner, source, env, alias)
        if kind in ("type_predicate_annotation", "type_predicate"):
            return self._primitive("boolean")
        if kind in ("asserts_annotation", "asserts"):
            return self._primitive("void")
        if kind == "predefined_type":
            name = get_node_text(node)
            return self._primitive(name) if name in PRIMITIVE_NAMES else self._opaque(name)
        if kind == "literal_type":
            return self._literal_type(node)
        if kind == "template_literal_type":
            return self._template_literal_type(node, source, env)
        if kind == "this_type":
            return self._opaque("this")
        if kind == "existential_type":
            return self._any()
        if kind == "type_identifier":
            return self._reference(get_node_text(node), (), node, source, env, alias)
        if kind == "nested_type_identifier":
            return self._qualified_reference(node, (), node, source, env, alias)
        if kind == "generic_type":
            name_node = child_by_field(
                node, "name", "type_identifier", "nested_type_identifier"
            )
            args_node = child_by_field(node, "type_arguments", "type_arguments")
            arg_nodes = tuple(_named(args_node)) if args_node is not None else ()
            if name_node is not None and name_node.type == "nested_type_identifier":
                return self._qualified_reference(
                    name_node, arg_nodes, node, source, env, alias
                )
            return self._reference(
                get_node_text(name_node), arg_nodes, node, source, env, alias
            )
        if kind == "object_type":
            return self._object_type(node, source, env, alias)
        if kind == "array_type":
            return self._array_type(node, source, env, alias)
        if kind == "tuple_type":
            return self._structural(
                node,
                source,
                env,
                alias,
                Category.TUPLE,
                elements=lambda t: self._tuple_elements(node, source, env),
            )
        if kind in ("union_type", "intersection_type"):
            return self._structural(
                node,
                source,
                env,
                alias,
                Category.UNION if kind == "union_type" else Category.INTERSECTION,
                members=lambda t: [
                    self._type_from_node(m, source, env)
                    for m in self._flatten(node, kind)
                ],
            )
        if kind == "function_type":
            return self._structural(
                node,
                source,
                env,
                alias,
                Category.FUNCTION,
                symbol=self._type_symbol(alias, node, source),
                call_signatures=lambda t: [self._signature(node, source, env)],
            )
        if kind == "type_query":
            target = _last_named(node)
            if target is None:
                return self._any()
            return self._type_of_value_path(target, source, env)
        if kind in ("index_type_query", "lookup_type", "conditional_type"):
            return self._structural(
                node,
                source,
                env,
                alias,
                Category.COMPUTED,
                simplified=self._simplify_node,
            )
        if kind == "infer_type":
            return self._opaque(get_node_text(node))

        logger.debug(
            "Unsupported type syntax",
            node_type=kind,
            path=source.path,
            line=node.start_point[0] + 1,
        )
        return self._opaque(self._render(node, env))

    def _structural(
        self,
        node: ts.Node,
        source: SourceFile,
        env: Env,
        alias: Optional[AliasRef],
        category: TypeCategory,
        symbol: Optional[OracleSymbol] = None,
        **loaders: Callable[[TsType], Any],
    ) -> TsType:
        if symbol is None and alias is not None:
            symbol = self._type_symbol(alias, node, source)
        return self._make(
            self._node_key(node, source, env, alias),
            category,
            label=alias.text if alias else None,
            name=alias.binding.name if alias else None,
            node=node,
            source=source,
            env=env,
            alias=alias,
            symbol=symbol,
            loaders={"text": lambda t: self._render(node, env), **loaders},
        )

    def _flatten(self, node: ts.Node, kind: str) -> Iterable[ts.Node]:
        for child in _named(node):
            inner = _unwrap_parens(child)
            if inner.type == kind:
                yield from self._flatten(inner, kind)
            else:
                yield child

    def _literal_type(self, node: ts.Node) -> TsType:
        children = _named(node)
        if not children:
            return self._any()
        child = children[0]
        kind = child.type
        if kind == "string":
            return self._literal(string_value(child), "string")
        if kind == "number":
            value, primitive = _number_literal(get_node_text(child))
            return self._literal(value, primitive)
        if kind in ("true", "false"):
            return self._literal(kind == "true", "boolean")
        if kind in ("null", "undefined"):
            return self._primitive(kind)
        if kind == "unary_expression":
            argument = child.child_by_field_name("argument")
            operator = get_node_text(child.child_by_field_name("operator"))
            if argument is not None and argument.type == "number":
                value, primitive = _number_literal(get_node_text(argument))
                return self._literal(-value if operator == "-" else value, primitive)
        return self._opaque(get_node_text(node))

    def _template_literal_type(
        self, node: ts.Node, source: SourceFile, env: Env
    ) -> TsType:
        if not children_of_type(node, "template_type"):
            return self._literal(get_node_text(node)[1:-1], "string")
        return self._make(
            self._node_key(node, source, env, None),
            Category.PRIMITIVE,
            label=self._render(node, env),
            name="string",
            node=node,
            source=source,
            primitive="string",
        )

    def _object_type(
        self, node: ts.Node, source: SourceFile, env: Env, alias: Optional[AliasRef]
    ) -> TsType:
        if self._mapped_signature(node) is not None:
            return self._structural(
                node, source, env, alias, Category.COMPUTED, simplified=self._simplify_mapped
            )
        return self._structural(
            node,
            source,
            env,
            alias,
            Category.OBJECT,
            symbol=self._type_symbol(alias, node, source),
            properties=lambda t: self._object_members(t, node, source, env),
            index_signatures=lambda t: self._index_signatures(node, source, env),
            call_signatures=lambda t: [
                self._signature(m, source, env)
                for m in children_of_type(node, "call_signature")
            ],
        )

    def _array_type(
        self, node: ts.Node, source: SourceFile, env: Env, alias: Optional[AliasRef]
    ) -> TsType:
        element = _named(node)[0]
        if alias is None:
            return self._array(self._type_from_node(element, source, env))
        return self._make(
            self._node_key(node, source, env, alias),
            Category.ARRAY,
            label=alias.text,
            name=alias.binding.name,
            node=node,
            source=source,
            env=env,
            alias=alias,
            symbol=self._type_symbol(alias, node, source),
            loaders={"element": lambda t: self._type_from_node(element, source, env)},
        )

    def _tuple_elements(
        self, node: ts.Node, source: SourceFile, env: Env
    ) -> List[TupleElement]:
        elements = []
        for child in _named(node):
            kind = child.type
            if kind in _TUPLE_MEMBERS:
                name_node = (
                    child.child_by_field_name("name")
                    or child.child_by_field_name("pattern")
                    or first_child_of_type(child, "identifier", "rest_pattern")
                )
                type_node = child_by_field(child, "type", *_ANNOTATIONS)
                is_rest = name_node is not None and name_node.type == "rest_pattern"
                name = get_node_text(_last_named(name_node) if is_rest else name_node)
                elements.append(
                    TupleElement(
                        type=self._type_from_node(type_node, source, env)
                        if type_node is not None
                        else self._any(),
                        name=name or None,
                        is_optional=kind in ("optional_tuple_parameter", "optional_parameter"),
                        is_rest=is_rest,
                    )
                )
            elif kind == "optional_type":
                elements.append(
                    TupleElement(
                        type=self._type_from_node(_last_named(child), source, env),
                        is_optional=True,
                    )
                )
            elif kind == "rest_type":
                elements.append(
                    TupleElement(
                        type=self._type_from_node(_last_named(child), source, env),
                        is_rest=True,
                    )
                )
            else:
                elements.append(TupleElement(type=self._type_from_node(child, source, env)))
        return elements

    # ------------------------------------------------------------------ #
    # Type references
    # ------------------------------------------------------------------ #
    def _reference(
        self,
        name: str,
        arg_nodes: Sequence[ts.Node],
        node: ts.Node,
        source: SourceFile,
        env: Env,
        alias: Optional[AliasRef],
    ) -> TsType:
        if not arg_nodes and name in env:
            return env[name]
        args = tuple(self._type_from_node(a, source, env) for a in arg_nodes)
        bindings = self._lookup(source, name, "type")
        if bindings:
            return self._declared(bindings, args)
        return self._builtin(name, args, node, source, env, alias)

    def _qualified_reference(
        self,
        name_node: ts.Node,
        arg_nodes: Sequence[ts.Node],
        node: ts.Node,
        source: SourceFile,
        env: Env,
        alias: Optional[AliasRef],
    ) -> TsType:
        text = get_node_text(name_node)
        parts = text.split(".")
        args = tuple(self._type_from_node(a, source, env) for a in arg_nodes)

        if len(parts) == 2:
            head, member = parts
            imported = source.scope.imports.get(head)
            if imported is not None and imported.imported in (None, "default"):
                target = self.resolve_module(source.path, imported.specifier)
                if target is not None:
                    bindings = self._lookup_export(target, member, "type", set())
                    if bindings:
                        return self._declared(bindings, args)
            values = self._lookup(source, head, "value")
            if values and values[0].kind == DK.ENUM:
                enum = self._declared(values[:1], ())
                found = self._enum_member_type(enum, member)
                if found is not None:
                    return found
        return self._builtin(text, args, node, source, env, alias)

    def _builtin(
        self,
        name: str,
        args: Tuple[TsType, ...],
        node: ts.Node,
        source: SourceFile,
        env: Env,
        alias: Optional[AliasRef],
    ) -> TsType:
        if name in ARRAY_TYPES and len(args) == 1:
            return self._array(args[0], readonly=name == "ReadonlyArray")

        if (name in MAPPED_UTILITIES or name in FILTERING_UTILITIES) and args:
            return self._make(
                ("utility", name, tuple(a.id for a in args), alias.key if alias else None),
                Category.COMPUTED,
                label=alias.text if alias else None,
                name=alias.binding.name if alias else name,
                node=node,
                source=source,
                env=env,
                alias=alias,
                args=args,
                symbol=self._type_symbol(alias, node, source),
                cache={"utility": name},
                loaders={
                    "text": lambda t: f"{name}<{', '.join(a.text for a in args)}>",
                    "simplified": self._simplify_utility,
                },
            )

        lib_file = GENERIC_WRAPPERS.get(name)
        if lib_file is not None:
            return self._generic(name, args, lib_file) if args else self._opaque(name, lib_file)
        if name in LIB_TYPES:
            return self._opaque(name, LIB_TYPES[name])

        external = self._external_file(source, name)
        if args:
            return self._generic(name, args, external or LIB_FILE)
        if external is None:
            logger.debug("Unresolved type name", name=name, path=source.path)
        return self._opaque(name, external)

    def _declared(self, bindings: Sequence[Binding], args: Tuple[TsType, ...]) -> TsType:
        binding = bindings[0]
        bindings = [b for b in bindings if b.kind == binding.kind]
        self._check_syntax(binding.node, binding.source)

        if binding.kind == DK.TYPE_ALIAS:
            return self._alias(binding, args)
        if binding.kind == DK.FUNCTION:
            return self._function_binding_type(bindings)
        if binding.kind not in (DK.INTERFACE, DK.CLASS, DK.ENUM):
            return self._opaque(binding.name)

        params = self._type_params(binding.node)
        env = self._instantiate(params, args, binding.source)
        type_args = tuple(env[name] for name, _, _ in params)

        def text(t: TsType) -> str:
            if not type_args:
                return binding.name
            return f"{binding.name}<{', '.join(a.text for a in type_args)}>"

        loaders: Dict[str, Callable[[TsType], Any]] = {"text": text}
        if binding.kind == DK.INTERFACE:
            category = Category.OBJECT
            loaders["properties"] = self._interface_properties
            loaders["index_signatures"] = self._interface_index_signatures
            loaders["call_signatures"] = self._interface_call_signatures
        elif binding.kind == DK.CLASS:
            category = Category.CLASS
            loaders["class_members"] = self._class_members
            loaders["construct_signatures"] = self._construct_signatures
        else:
            category = Category.ENUM
            loaders["enum_members"] = self._enum_members

        return self._make(
            (
                "decl",
                binding.source.path,
                binding.node.start_byte,
                tuple(a.id for a in type_args),
            ),
            category,
            name=binding.name,
            node=binding.node,
            source=binding.source,
            env=env,
            bindings=tuple(bindings),
            args=type_args,
            symbol=OracleSymbol(
                name=binding.name, declaration=self._declaration_of(binding)
            ),
            loaders=loaders,
        )

    def _alias(self, binding: Binding, args: Tuple[TsType, ...]) -> TsType:
        params = self._type_params(binding.node)
        env = self._instantiate(params, args, binding.source)
        alias = AliasRef(binding, tuple(env[name] for name, _, _ in params))
        value = binding.node.child_by_field_name("value")
        if value is None:
            return self._opaque(binding.name)

        guard = ("alias",) + alias.key
        if guard in self._expanding_aliases:
            logger.debug(
                "Circular type alias", name=binding.name, path=binding.source.path
            )
            return self._opaque(binding.name)
        self._expanding_aliases.add(guard)
        try:
            return self._type_from_node(value, binding.source, env, alias)
        finally:
            self._expanding_aliases.discard(guard)

    def _type_params(
        self, node: ts.Node
    ) -> List[Tuple[str, Optional[ts.Node], ts.Node]]:
        holder = child_by_field(node, "type_parameters", "type_parameters")
        if holder is None:
            return []
        params = []
        for param in holder.named_children:
            if param.type != "type_parameter":
                continue
            name_node = child_by_field(param, "name", "type_identifier")
            default = child_by_field(param, "value", "default_type")
            if default is not None and default.type == "default_type":
                default = _last_named(default)
            params.append((get_node_text(name_node), default, param))
        return params

    def _instantiate(
        self,
        params: Sequence[Tuple[str, Optional[ts.Node], ts.Node]],
        args: Sequence[TsType],
        source: SourceFile,
        outer: Optional[Env] = None,
    ) -> Dict[str, TsType]:
        env: Dict[str, TsType] = dict(outer or {})
        for index, (name, default, node) in enumerate(params):
            if index < len(args):
                env[name] = args[index]
            elif default is not None:
                env[name] = self._type_from_node(default, source, env)
            else:
                env[name] = self._type_parameter(name, node, source)
        return env

    def _with_type_params(self, node: ts.Node, source: SourceFile, env: Env) -> Env:
        params = self._type_params(node)
        if not params:
            return env
        return self._instantiate(params, (), source, env)

    # ------------------------------------------------------------------ #
    # Rendering
    # ------------------------------------------------------------------ #
    def _render(self, node: ts.Node, env: Env) -> str:
        return re.sub(r"\s+", " ", self._render_node(node, env)).strip()

    def _render_node(self, node: ts.Node, env: Env) -> str:
        kind = node.type
        if kind == "comment":
            return ""
        if kind == "string" and node.is_named:
            return json.dumps(string_value(node), ensure_ascii=False)
        if kind == "type_identifier":
            name = get_node_text(node)
            bound = env.get(name)
            return bound.text if bound is not None else name
        if kind == "array_type":
            return f"Array<{self._render_node(_unwrap_parens(_named(node)[0]), env)}>"
        if kind == "object_type":
            members = [self._render_node(m, env).strip().rstrip(";,") for m in _named(node)]
            return "{ " + "; ".join(members) + "; }" if members else "{}"
        if node.child_count == 0:
            return get_node_text(node)

        raw = node.text
        parts = []
        position = node.start_byte
        for child in node.children:
            parts.append(
                raw[position - node.start_byte : child.start_byte - node.start_byte].decode(
                    "utf-8"
                )
            )
            parts.append(self._render_node(child, env))
            position = child.end_byte
        parts.append(raw[position - node.start_byte :].decode("utf-8"))
        return "".join(parts)

    def _params_text(self, parameters: Sequence[OracleSymbol]) -> str:
        parts = []
        for param in parameters:
            node = param.declaration.node if param.declaration else None
            if param.name is None and node is not None:
                pattern = node.child_by_field_name("pattern") or node
                label = re.sub(r"\s+", " ", get_node_text(pattern))
            else:
                label = ("..." if param.is_rest else "") + (param.name or "")
            if param.is_optional and not param.is_rest:
                label += "?"
            parts.append(f"{label}: {self.get_type_of_symbol(param).text}")
        return ", ".join(parts)

    def _function_text(self, t: TsType) -> str:
        signatures = t.load("call_signatures", [])
        if not signatures:
            return "() => void"
        if len(signatures) == 1:
            return signatures[0].text
        calls = [
            f"({self._params_text(s.parameters)}): {s.return_type.text}" for s in signatures
        ]
        return "{ " + "; ".join(calls) + "; }"

    def _object_text(self, t: TsType) -> str:
        parts = []
        for prop in t.load("properties", []):
            label = ("readonly " if prop.is_readonly else "") + prop.name
            if prop.is_optional:
                label += "?"
            parts.append(f"{label}: {self.get_type_of_symbol(prop).text}")
        return "{ " + "; ".join(parts) + "; }" if parts else "{}"

    # ------------------------------------------------------------------ #
    # Members
    # ------------------------------------------------------------------ #
    def _object_members(
        self, owner: TsType, body: ts.Node, source: SourceFile, env: Env
    ) -> List[OracleSymbol]:
        symbols: List[OracleSymbol] = []
        methods: Dict[str, OracleSymbol] = {}
        for member in body.named_children:
            kind = member.type
            if kind == "property_signature":
                name = _property_name(member.child_by_field_name("name"))
                if name is None:
                    continue
                symbols.append(
                    OracleSymbol(
                        name=name,
                        declaration=OracleDeclaration(DK.PROPERTY, name, source.path, member),
                        is_optional=has_token(member, "?"),
                        is_readonly=has_token(member, "readonly"),
                        member_kind="property",
                        data=SymbolData(source, env, [member], owner=owner),
                    )
                )
            elif kind == "method_signature":
                name = _property_name(member.child_by_field_name("name"))
                if name is None:
                    continue
                if name in methods:
                    methods[name].data.nodes.append(member)
                    continue
                symbol = OracleSymbol(
                    name=name,
                    declaration=OracleDeclaration(DK.METHOD, name, source.path, member),
                    is_optional=has_token(member, "?"),
                    member_kind="method",
                    data=SymbolData(source, env, [member], owner=owner),
                )
                methods[name] = symbol
                symbols.append(symbol)
            elif kind not in (
                "call_signature",
                "construct_signature",
                "index_signature",
                "comment",
            ):
                logger.debug(
                    "Skipping object type member", node_type=kind, path=source.path
                )
        return symbols

    def _interface_bodies(self, t: TsType) -> Iterable[Tuple[Binding, ts.Node]]:
        for binding in t.bindings:
            body = child_by_field(binding.node, "body", "interface_body", "object_type")
            if body is not None:
                yield binding, body

    def _interface_properties(self, t: TsType) -> List[OracleSymbol]:
        own: List[OracleSymbol] = []
        for binding, body in self._interface_bodies(t):
            own.extend(self._object_members(t, body, binding.source, t.env))

        names = {s.name for s in own}
        for binding in t.bindings:
            clause = first_child_of_type(binding.node, "extends_type_clause")
            if clause is None:
                continue
            for base_node in _named(clause):
                base = self._type_from_node(base_node, binding.source, t.env)
                for prop in self.get_apparent_properties(base):
                    if prop.name not in names:
                        names.add(prop.name)
                        own.append(prop)
        return own

    def _index_signatures(
        self, body: ts.Node, source: SourceFile, env: Env
    ) -> List[IndexSignature]:
        signatures = []
        for member in children_of_type(body, "index_signature"):
            name_node = member.child_by_field_name("name")
            key_node = member.child_by_field_name("index_type")
            value_node = child_by_field(member, "type", *_ANNOTATIONS)
            if name_node is None or key_node is None:
                # `[K in Keys]` clauses belong to mapped types
                continue
            signatures.append(
                IndexSignature(
                    key_name=get_node_text(name_node),
                    key_type=self._type_from_node(key_node, source, env),
                    value_type=self._type_from_node(value_node, source, env)
                    if value_node is not None
                    else self._any(),
                    text=self._render(member, env).rstrip(";,"),
                    is_readonly=has_token(member, "readonly"),
                )
            )
        return signatures

    def _interface_index_signatures(self, t: TsType) -> List[IndexSignature]:
        own: List[IndexSignature] = []
        for binding, body in self._interface_bodies(t):
            own.extend(self._index_signatures(body, binding.source, t.env))

        keys = {s.key_type.text for s in own}
        for binding in t.bindings:
            clause = first_child_of_type(binding.node, "extends_type_clause")
            if clause is None:
                continue
            for base_node in _named(clause):
                base = self._type_from_node(base_node, binding.source, t.env)
                for signature in self.get_index_signatures(base):
                    if signature.key_type.text not in keys:
                        keys.add(signature.key_type.text)
                        own.append(signature)
        return own

    def _interface_call_signatures(self, t: TsType) -> List[OracleSignature]:
        return [
            self._signature(member, binding.source, t.env)
            for binding, body in self._interface_bodies(t)
            for member in children_of_type(body, "call_signature")
        ]

    def _class_body(self, t: TsType) -> List[ts.Node]:
        body = child_by_field(t.node, "body", "class_body")
        return body.named_children if body is not None else []

    def _class_members(self, t: TsType) -> List[OracleSymbol]:
        source, env = t.source, t.env
        symbols: List[OracleSymbol] = []
        methods: Dict[Tuple[str, bool, str], OracleSymbol] = {}
        own: Set[Tuple[Optional[str], bool, Optional[str]]] = set()

        for member in self._class_body(t):
            kind = member.type
            if kind in _FIELD_NODES:
                name = _property_name(
                    child_by_field(member, "name", "property_identifier")
                    or member.child_by_field_name("property")
                )
                if name is None:
                    continue
                symbol = OracleSymbol(
                    name=name,
                    declaration=OracleDeclaration(DK.PROPERTY, name, source.path, member),
                    is_optional=has_token(member, "?"),
                    is_readonly=has_token(member, "readonly"),
                    is_static=has_token(member, "static"),
                    visibility=_visibility(member),
                    member_kind="property",
                    data=SymbolData(source, env, [member], owner=t),
                )
            elif kind in ("method_definition", "method_signature", "abstract_method_signature"):
                name = _property_name(member.child_by_field_name("name"))
                if name is None:
                    continue
                if name == "constructor":
                    if kind == "method_definition":
                        for prop in self._parameter_properties(t, member):
                            own.add((prop.name, False, "property"))
                            symbols.append(prop)
                    continue
                member_kind = (
                    "get"
                    if has_token(member, "get")
                    else "set" if has_token(member, "set") else "method"
                )
                key = (name, has_token(member, "static"), member_kind)
                if key in methods:
                    methods[key].data.nodes.append(member)
                    continue
                symbol = OracleSymbol(
                    name=name,
                    declaration=OracleDeclaration(
                        {"get": DK.GET_ACCESSOR, "set": DK.SET_ACCESSOR}.get(
                            member_kind, DK.METHOD
                        ),
                        name,
                        source.path,
                        member,
                    ),
                    is_optional=has_token(member, "?"),
                    is_static=key[1],
                    visibility=_visibility(member),
                    member_kind=member_kind,
                    data=SymbolData(source, env, [member], owner=t),
                )
                methods[key] = symbol
            else:
                continue
            own.add((symbol.name, symbol.is_static, symbol.member_kind))
            symbols.append(symbol)

        for base in self._class_bases(t):
            for symbol in self.get_class_members(base):
                if (symbol.name, symbol.is_static, symbol.member_kind) not in own:
                    symbols.append(symbol)
        return symbols

    def _parameter_properties(self, t: TsType, constructor: ts.Node) -> Iterable[OracleSymbol]:
        params = constructor.child_by_field_name("parameters")
        if params is None:
            return
        for param in params.named_children:
            if param.type not in _PARAMETERS:
                continue
            if first_child_of_type(param, "accessibility_modifier") is None and not has_token(
                param, "readonly"
            ):
                continue
            pattern = param.child_by_field_name("pattern")
            if pattern is None or pattern.type != "identifier":
                continue
            name = get_node_text(pattern)
            yield OracleSymbol(
                name=name,
                declaration=OracleDeclaration(DK.PROPERTY, name, t.source.path, param),
                is_optional=param.type == "optional_parameter",
                is_readonly=has_token(param, "readonly"),
                visibility=_visibility(param),
                member_kind="property",
                data=SymbolData(t.source, t.env, [param], owner=t),
            )

    def _class_bases(self, t: TsType) -> List[TsType]:
        heritage = first_child_of_type(t.node, "class_heritage")
        clause = first_child_of_type(heritage, "extends_clause") if heritage else None
        if clause is None:
            return []
        value = clause.child_by_field_name("value") or _last_named(clause)
        if value is None or value.type != "identifier":
            return []
        type_args = clause.child_by_field_name("type_arguments")
        args = tuple(
            self._type_from_node(a, t.source, t.env) for a in _named(type_args)
        ) if type_args is not None else ()
        bindings = self._lookup(t.source, get_node_text(value), "value")
        if bindings and bindings[0].kind == DK.CLASS:
            return [self._declared(bindings[:1], args)]
        return []

    def _construct_signatures(self, t: TsType) -> List[OracleSignature]:
        constructors = [
            m
            for m in self._class_body(t)
            if m.type in ("method_definition", "method_signature")
            and get_node_text(m.child_by_field_name("name")) == "constructor"
        ]
        if not constructors:
            for base in self._class_bases(t):
                return [
                    OracleSignature(
                        parameters=s.parameters,
                        return_type=t,
                        text=f"({self._params_text(s.parameters)}) => {t.text}",
                        declaration=s.declaration,
                    )
                    for s in self.get_construct_signatures(base)
                ]
            return []
        declared = [c for c in constructors if c.child_by_field_name("body") is None]
        return [
            self._signature(c, t.source, t.env, return_type=t)
            for c in (declared or constructors)
        ]

    def _enum_body(self, t: TsType) -> List[ts.Node]:
        body = child_by_field(t.node, "body", "enum_body")
        return _named(body) if body is not None else []

    def _enum_members(self, t: TsType) -> List[Tuple[str, Any]]:
        members: List[Tuple[str, Any]] = []
        known: Dict[str, Any] = {}
        previous: Any = None
        for member in self._enum_body(t):
            if member.type == "enum_assignment":
                name = _property_name(
                    child_by_field(member, "name", "property_identifier", "string")
                )
                extractor = DefaultValueExtractor(
                    lookup=lambda n: self._const_in_scope(t.source, member, n),
                    constants=known,
                )
                value = extractor.extract_default(member.child_by_field_name("value"))
                if value is UNRESOLVED:
                    value = None
            elif member.type in ("property_identifier", "string", "number"):
                name = _property_name(member)
                if not members:
                    value = 0
                elif isinstance(previous, int) and not isinstance(previous, bool):
                    value = previous + 1
                else:
                    value = None
            else:
                continue
            members.append((name, value))
            known[name] = value
            previous = value
        return members

    def _enum_member_type(self, enum: TsType, name: str) -> Optional[TsType]:
        values = dict(enum.load("enum_members", []))
        if name not in values:
            return None
        value = values[name]
        node = next(
            (
                m
                for m in self._enum_body(enum)
                if _property_name(
                    child_by_field(m, "name", "property_identifier", "string")
                    if m.type == "enum_assignment"
                    else m
                )
                == name
            ),
            None,
        )
        return self._make(
            ("enum-member", enum.id, name),
            Category.LITERAL,
            label=f"{enum.name}.{name}",
            name=name,
            node=node,
            source=enum.source,
            primitive="string" if isinstance(value, str) else "number",
            value=value,
            symbol=OracleSymbol(
                name=name,
                declaration=OracleDeclaration(
                    DK.ENUM_MEMBER, name, enum.source.path, node
                ),
            ),
        )

    # ------------------------------------------------------------------ #
    # Signatures
    # ------------------------------------------------------------------ #
    def _function_of_nodes(
        self,
        nodes: Sequence[ts.Node],
        source: SourceFile,
        env: Env,
        symbol: Optional[OracleSymbol],
    ) -> TsType:
        declared = [n for n in nodes if n.child_by_field_name("body") is None]
        chosen = declared or list(nodes)
        return self._make(
            ("fn", source.path, nodes[0].start_byte, env_key(env)),
            Category.FUNCTION,
            name=symbol.name if symbol else None,
            node=nodes[0],
            source=source,
            env=env,
            symbol=symbol,
            loaders={
                "call_signatures": lambda t: [
                    self._signature(n, source, env) for n in chosen
                ],
                "text": self._function_text,
            },
        )

    def _function_binding_type(self, bindings: Sequence[Binding]) -> TsType:
        binding = bindings[0]
        return self._function_of_nodes(
            [b.node for b in bindings if b.kind == DK.FUNCTION],
            binding.source,
            {},
            OracleSymbol(name=binding.name, declaration=self._declaration_of(binding)),
        )

    def _signature(
        self,
        node: ts.Node,
        source: SourceFile,
        env: Env,
        return_type: Optional[TsType] = None,
    ) -> OracleSignature:
        env = self._with_type_params(node, source, env)
        parameters = self._parameters(node, source, env)

        is_generator = has_token(node, "*") or node.type in (
            "generator_function",
            "generator_function_declaration",
        )
        modifier = _SIGNATURE_MODIFIERS.get((has_token(node, "async"), is_generator))

        if return_type is None:
            annotation = node.child_by_field_name("return_type")
            if annotation is not None:
                return_type = self._type_from_node(annotation, source, env)
            elif node.child_by_field_name("body") is not None:
                return_type = self._infer_return(node, source, env, modifier)
            else:
                return_type = self._any()

        return OracleSignature(
            parameters=parameters,
            return_type=return_type,
            text=f"({self._params_text(parameters)}) => {return_type.text}",
            declaration=OracleDeclaration(DK.FUNCTION, None, source.path, node),
            modifier=modifier,
        )

    def _parameters(
        self, node: ts.Node, source: SourceFile, env: Env
    ) -> List[OracleSymbol]:
        holder = node.child_by_field_name("parameters")
        if holder is not None:
            return [
                symbol
                for symbol in (
                    self._parameter_symbol(p, source, env)
                    for p in holder.named_children
                    if p.type in _PARAMETERS
                )
                if symbol is not None
            ]

        single = node.child_by_field_name("parameter")
        if single is None:
            return []
        name = get_node_text(single)
        return [
            OracleSymbol(
                name=name,
                declaration=OracleDeclaration(DK.PARAMETER, name, source.path, single),
                member_kind="parameter",
                data=SymbolData(source, env, [single], type=self._any()),
            )
        ]

    def _parameter_symbol(
        self, param: ts.Node, source: SourceFile, env: Env
    ) -> Optional[OracleSymbol]:
        pattern = param.child_by_field_name("pattern")
        if pattern is None or pattern.type == "this":
            return None
        is_rest = pattern.type == "rest_pattern"
        if pattern.type == "identifier":
            name = get_node_text(pattern)
        elif is_rest:
            inner = _last_named(pattern)
            name = get_node_text(inner) if inner is not None and inner.type == "identifier" else None
        else:
            name = None
        return OracleSymbol(
            name=name,
            declaration=OracleDeclaration(DK.PARAMETER, name, source.path, param),
            is_optional=(
                param.type == "optional_parameter"
                or param.child_by_field_name("value") is not None
                or is_rest
            ),
            is_readonly=has_token(param, "readonly"),
            is_rest=is_rest,
            member_kind="parameter",
            data=SymbolData(source, env, [param]),
        )

    def _infer_return(
        self, node: ts.Node, source: SourceFile, env: Env, modifier: Optional[str]
    ) -> TsType:
        body = node.child_by_field_name("body")
        if body is None:
            result = self._primitive("void")
        elif body.type != "statement_block":
            result = self._widen(self._type_of_expression(body, source, env))
        else:
            returned = list(self._return_expressions(body))
            if not any(r is not None for r in returned):
                result = self._primitive("void")
            else:
                result = self._union_of(
                    self._primitive("undefined")
                    if r is None
                    else self._widen(self._type_of_expression(r, source, env))
                    for r in returned
                )

        if modifier == "async":
            return self._generic("Promise", (result,), GENERIC_WRAPPERS["Promise"])
        if modifier in ("generator", "async-generator"):
            name = "AsyncGenerator" if modifier == "async-generator" else "Generator"
            yielded = self._union_of(self._yield_types(body, source, env))
            return self._generic(
                name, (yielded, result, self._primitive("unknown")), GENERIC_WRAPPERS[name]
            )
        return result

    def _yield_types(
        self, body: Optional[ts.Node], source: SourceFile, env: Env
    ) -> Iterable[TsType]:
        stack = list(reversed(body.named_children)) if body is not None else []
        while stack:
            node = stack.pop()
            if node.type == "yield_expression":
                values = _named(node)
                if has_token(node, "*"):
                    yield self._any()
                elif values:
                    yield self._widen(self._type_of_expression(values[0], source, env))
                else:
                    yield self._primitive("undefined")
            if node.type not in _SCOPE_BOUNDARIES:
                stack.extend(reversed(node.named_children))

    def _return_expressions(self, body: ts.Node) -> Iterable[Optional[ts.Node]]:
        stack = list(reversed(body.named_children))
        while stack:
            node = stack.pop()
            if node.type == "return_statement":
                values = _named(node)
                yield values[0] if values else None
            elif node.type not in _SCOPE_BOUNDARIES:
                stack.extend(reversed(node.named_children))

    # ------------------------------------------------------------------ #
    # Value declarations and expressions
    # ------------------------------------------------------------------ #
    def _value_declaration_type(
        self, node: ts.Node, source: SourceFile, env: Env, literal: bool = False
    ) -> TsType:
        annotation = child_by_field(node, "type", *_ANNOTATIONS)
        if annotation is not None:
            return self._type_from_node(annotation, source, env)
        value = node.child_by_field_name("value")
        if value is not None:
            return self._type_of_expression(value, source, env, literal=literal)
        return self._any()

    def _parameter_type(self, param: ts.Node, source: SourceFile, env: Env) -> TsType:
        if param.type == "identifier":
            return self._any()
        declared = self._value_declaration_type(param, source, env)
        pattern = param.child_by_field_name("pattern")
        if (
            pattern is not None
            and pattern.type == "rest_pattern"
            and child_by_field(param, "type", *_ANNOTATIONS) is None
        ):
            return self._array(self._any())
        return declared

    def _variable_type(
        self, declarator: ts.Node, source: SourceFile, env: Optional[Env] = None
    ) -> TsType:
        key = (source.path, declarator.start_byte)
        if key in self._inferring:
            return self._any()
        self._inferring.add(key)
        try:
            parent = declarator.parent
            is_const = parent is not None and has_token(parent, "const")
            return self._value_declaration_type(
                declarator, source, env or {}, literal=is_const
            )
        finally:
            self._inferring.discard(key)

    def _type_of_value_binding(self, bindings: Sequence[Binding]) -> TsType:
        binding = bindings[0]
        if binding.kind == DK.FUNCTION:
            return self._function_binding_type(bindings)
        if binding.kind in (DK.CLASS, DK.ENUM):
            return self._declared(bindings[:1], ())
        if binding.node.type == "variable_declarator":
            return self._variable_type(binding.node, binding.source)
        return self._type_of_expression(binding.node, binding.source, {})

    def _type_of_value_path(self, node: ts.Node, source: SourceFile, env: Env) -> TsType:
        parts = get_node_text(node).split(".")
        current = self._type_of_identifier(parts[0], node, source, env, literal=True)
        for part in parts[1:]:
            current = self._member_type(current, part)
        return current

    def _type_of_identifier(
        self, name: str, at: ts.Node, source: SourceFile, env: Env, literal: bool
    ) -> TsType:
        if name == "undefined":
            return self._primitive("undefined")
        if name in ("NaN", "Infinity"):
            return self._primitive("number")

        declaration = self._local_declaration(at, name)
        if declaration is not None:
            kind = declaration.type
            if kind == "variable_declarator":
                found = self._variable_type(declaration, source, env)
            elif kind in _PARAMETERS or kind == "identifier":
                found = self._parameter_type(declaration, source, env)
            elif kind in _FUNCTION_DECLARATIONS:
                found = self._function_of_nodes(
                    [declaration],
                    source,
                    env,
                    OracleSymbol(
                        name=name,
                        declaration=OracleDeclaration(
                            DK.FUNCTION, name, source.path, declaration
                        ),
                    ),
                )
            else:
                found = self._any()
            return self._keep_literal(found, literal)

        bindings = self._lookup(source, name, "value")
        if bindings:
            return self._keep_literal(self._type_of_value_binding(bindings), literal)
        external = self._external_file(source, name)
        if external is not None:
            return self._opaque(name, external)
        return self._any()

    def _local_declaration(self, at: ts.Node, name: str) -> Optional[ts.Node]:
        for ancestor in iter_ancestors(at):
            kind = ancestor.type
            if kind in _FUNCTION_EXPRESSIONS or kind in _FUNCTION_DECLARATIONS or kind == "method_definition":
                holder = ancestor.child_by_field_name("parameters")
                if holder is not None:
                    for param in holder.named_children:
                        pattern = param.child_by_field_name("pattern") if param.type in _PARAMETERS else None
                        if pattern is not None and pattern.type == "identifier" and get_node_text(pattern) == name:
                            return param
                single = ancestor.child_by_field_name("parameter")
                if single is not None and get_node_text(single) == name:
                    return single
            if kind in ("statement_block", "program"):
                found = self._scope_declaration(ancestor, name)
                if found is not None or kind == "program":
                    return found
        return None

    def _scope_declaration(self, block: ts.Node, name: str) -> Optional[ts.Node]:
        for statement in block.named_children:
            if statement.type == "export_statement":
                statement = statement.child_by_field_name("declaration")
                if statement is None:
                    continue
            if statement.type in ("lexical_declaration", "variable_declaration"):
                for declarator in children_of_type(statement, "variable_declarator"):
                    name_node = declarator.child_by_field_name("name")
                    if name_node is not None and get_node_text(name_node) == name:
                        return declarator
            elif statement.type in _FUNCTION_DECLARATIONS:
                if get_node_text(statement.child_by_field_name("name")) == name:
                    return statement
        return None

    def _type_of_expression(
        self,
        expr: ts.Node,
        source: SourceFile,
        env: Env,
        literal: bool = False,
        frozen: bool = False,
    ) -> TsType:
        kind = expr.type
        keep = literal or frozen

        if kind in ("parenthesized_expression", "non_null_expression"):
            inner = _named(expr)
            if not inner:
                return self._any()
            return self._type_of_expression(inner[0], source, env, literal, frozen)
        if kind == "string":
            return self._keep_literal(self._literal(string_value(expr), "string"), keep)
        if kind == "template_string":
            if children_of_type(expr, "template_substitution"):
                return self._primitive("string")
            value = DefaultValueExtractor().extract_default(expr)
            return self._keep_literal(self._literal(value, "string"), keep)
        if kind == "number":
            value, primitive = _number_literal(get_node_text(expr))
            return self._keep_literal(self._literal(value, primitive), keep)
        if kind in ("true", "false"):
            return self._keep_literal(self._literal(kind == "true", "boolean"), keep)
        if kind in ("null", "undefined"):
            return self._primitive(kind)
        if kind == "regex":
            return self._opaque("RegExp", LIB_TYPES["RegExp"])
        if kind == "unary_expression":
            return self._unary_type(expr, source, env, keep)
        if kind == "binary_expression":
            return self._binary_type(expr, source, env)
        if kind == "ternary_expression":
            return self._union_of(
                self._type_of_expression(
                    expr.child_by_field_name(branch), source, env, literal, frozen
                )
                for branch in ("consequence", "alternative")
            )
        if kind == "as_expression":
            children = _named(expr)
            if has_token(expr, "const") or get_node_text(children[-1]) == "const":
                return self._type_of_expression(children[0], source, env, True, True)
            return self._type_from_node(children[-1], source, env)
        if kind == "satisfies_expression":
            return self._type_of_expression(_named(expr)[0], source, env, literal, frozen)
        if kind == "await_expression":
            awaited = self._type_of_expression(_named(expr)[0], source, env)
            if awaited.category == Category.GENERIC and awaited.name in ("Promise", "PromiseLike") and awaited.args:
                return awaited.args[0]
            return awaited
        if kind == "object":
            return self._object_literal(expr, source, env, frozen)
        if kind == "array":
            return self._array_literal(expr, source, env, frozen)
        if kind in _FUNCTION_EXPRESSIONS:
            return self._structural(
                expr,
                source,
                env,
                None,
                Category.FUNCTION,
                symbol=OracleSymbol(
                    name="__function",
                    declaration=OracleDeclaration(DK.FUNCTION, None, source.path, expr),
                ),
                call_signatures=lambda t: [self._signature(expr, source, env)],
                text=self._function_text,
            )
        if kind == "class":
            name_node = expr.child_by_field_name("name")
            return self._make(
                self._node_key(expr, source, env, None),
                Category.CLASS,
                label=get_node_text(name_node) or "(Anonymous class)",
                name=get_node_text(name_node) or None,
                node=expr,
                source=source,
                env=env,
                loaders={
                    "class_members": self._class_members,
                    "construct_signatures": self._construct_signatures,
                },
            )
        if kind == "identifier":
            return self._type_of_identifier(get_node_text(expr), expr, source, env, keep)
        if kind == "member_expression":
            owner = self._type_of_expression(
                expr.child_by_field_name("object"), source, env, literal=True
            )
            member = self._member_type(
                owner, get_node_text(expr.child_by_field_name("property"))
            )
            return self._keep_literal(member, keep)
        if kind == "call_expression":
            return self._call_type(expr, source, env)
        if kind == "new_expression":
            return self._new_type(expr, source, env)
        if kind in _JSX_NODES:
            return self._opaque("JSX.Element")
        return self._any()

    def _unary_type(self, expr: ts.Node, source: SourceFile, env: Env, keep: bool) -> TsType:
        operator = get_node_text(expr.child_by_field_name("operator"))
        argument = expr.child_by_field_name("argument")
        if operator in ("!", "delete"):
            return self._primitive("boolean")
        if operator == "typeof":
            return self._primitive("string")
        if operator == "void":
            return self._primitive("undefined")
        if operator in ("-", "+") and argument is not None and argument.type == "number":
            value, primitive = _number_literal(get_node_text(argument))
            return self._keep_literal(
                self._literal(-value if operator == "-" else value, primitive), keep
            )
        return self._primitive("number")

    def _binary_type(self, expr: ts.Node, source: SourceFile, env: Env) -> TsType:
        operator = get_node_text(expr.child_by_field_name("operator"))
        left = self._widen(
            self._type_of_expression(expr.child_by_field_name("left"), source, env)
        )
        right = self._widen(
            self._type_of_expression(expr.child_by_field_name("right"), source, env)
        )
        if operator in _BOOLEAN_OPERATORS:
            return self._primitive("boolean")
        if operator == "+":
            if "string" in (left.primitive, right.primitive):
                return self._primitive("string")
            if left.primitive == right.primitive == "bigint":
                return left
            if left.primitive == right.primitive == "number":
                return left
            return self._any()
        if operator in _NUMERIC_OPERATORS:
            if left.primitive == right.primitive == "bigint":
                return left
            return self._primitive("number")
        if operator == "&&":
            return right
        if operator in ("||", "??"):
            kept = [
                m
                for m in (left.load("members", []) if left.category == Category.UNION else [left])
                if m.primitive not in ("null", "undefined")
            ]
            return self._union_of(kept + [right])
        return self._any()

    def _call_type(self, expr: ts.Node, source: SourceFile, env: Env) -> TsType:
        function = expr.child_by_field_name("function")
        arguments = expr.child_by_field_name("arguments")
        args = _named(arguments) if arguments is not None else []
        if get_node_text(function) == "Object.freeze" and args:
            return self._type_of_expression(args[0], source, env, True, True)
        callee = self._type_of_expression(function, source, env)
        signatures = (
            self.get_call_signatures(callee)
            if callee.category in (Category.FUNCTION, Category.OBJECT)
            else []
        )
        return signatures[0].return_type if signatures else self._any()

    def _new_type(self, expr: ts.Node, source: SourceFile, env: Env) -> TsType:
        constructor = expr.child_by_field_name("constructor")
        type_args = expr.child_by_field_name("type_arguments")
        args = tuple(
            self._type_from_node(a, source, env) for a in _named(type_args)
        ) if type_args is not None else ()
        if constructor is None or constructor.type != "identifier":
            return self._any()

        name = get_node_text(constructor)
        bindings = self._lookup(source, name, "value")
        if bindings and bindings[0].kind == DK.CLASS:
            return self._declared(bindings[:1], args)
        if name in ARRAY_TYPES:
            return self._array(args[0] if args else self._any())
        if name in GENERIC_WRAPPERS:
            if args:
                return self._generic(name, args, GENERIC_WRAPPERS[name])
            return self._opaque(name, GENERIC_WRAPPERS[name])
        if name in LIB_TYPES:
            return self._opaque(name, LIB_TYPES[name])
        external = self._external_file(source, name)
        return self._opaque(name, external) if external else self._any()

    def _member_type(self, owner: TsType, name: str) -> TsType:
        simplified = self._simplified(owner)
        if simplified is None:
            return self._any()
        if simplified.category == Category.ENUM:
            return self._enum_member_type(simplified, name) or self._any()
        if simplified.category in (Category.ARRAY, Category.TUPLE) and name == "length":
            return self._primitive("number")
        for prop in self.get_apparent_properties(simplified):
            if prop.name == name:
                return self.get_type_of_symbol(prop)
        return self._any()

    def _object_literal(
        self, expr: ts.Node, source: SourceFile, env: Env, frozen: bool
    ) -> TsType:
        return self._make(
            self._node_key(expr, source, env, None, frozen),
            Category.OBJECT,
            node=expr,
            source=source,
            env=env,
            symbol=OracleSymbol(
                name="__object",
                declaration=OracleDeclaration(DK.TYPE_LITERAL, None, source.path, expr),
            ),
            loaders={
                "properties": lambda t: self._object_literal_members(
                    t, expr, source, env, frozen
                ),
                "text": self._object_text,
            },
        )

    def _object_literal_members(
        self, owner: TsType, expr: ts.Node, source: SourceFile, env: Env, frozen: bool
    ) -> List[OracleSymbol]:
        members: Dict[str, OracleSymbol] = {}

        def add(name: Optional[str], node: ts.Node, value_type: TsType) -> None:
            if name is None:
                return
            members[name] = OracleSymbol(
                name=name,
                declaration=OracleDeclaration(DK.PROPERTY, name, source.path, node),
                is_readonly=frozen,
                member_kind="property",
                data=SymbolData(source, env, [node], type=value_type, owner=owner),
            )

        for child in expr.named_children:
            kind = child.type
            if kind == "pair":
                value = child.child_by_field_name("value")
                add(
                    _property_name(child.child_by_field_name("key")),
                    child,
                    self._type_of_expression(value, source, env, frozen, frozen),
                )
            elif kind == "shorthand_property_identifier":
                name = get_node_text(child)
                add(name, child, self._type_of_identifier(name, child, source, env, frozen))
            elif kind == "method_definition":
                name = _property_name(child.child_by_field_name("name"))
                add(
                    name,
                    child,
                    self._function_of_nodes(
                        [child],
                        source,
                        env,
                        OracleSymbol(
                            name=name,
                            declaration=OracleDeclaration(DK.METHOD, name, source.path, child),
                        ),
                    ),
                )
            elif kind == "spread_element":
                inner = _named(child)
                if inner:
                    spread = self._type_of_expression(inner[0], source, env)
                    for prop in self.get_apparent_properties(spread):
                        members[prop.name] = prop
        return list(members.values())

    def _array_literal(
        self, expr: ts.Node, source: SourceFile, env: Env, frozen: bool
    ) -> TsType:
        elements = _named(expr)
        if frozen:
            items = [
                TupleElement(
                    type=self._type_of_expression(e, source, env, True, True)
                )
                for e in elements
                if e.type != "spread_element"
            ]
            return self._make(
                self._node_key(expr, source, env, None, "tuple"),
                Category.TUPLE,
                node=expr,
                source=source,
                env=env,
                cache={"elements": items, "readonly": True},
                loaders={
                    "text": lambda t: "readonly ["
                    + ", ".join(i.type.text for i in items)
                    + "]"
                },
            )

        types = []
        for element in elements:
            if element.type == "spread_element":
                inner = _named(element)
                spread = self._type_of_expression(inner[0], source, env) if inner else self._any()
                types.append(
                    spread.load("element", self._any())
                    if spread.category == Category.ARRAY
                    else self._any()
                )
            else:
                types.append(self._widen(self._type_of_expression(element, source, env)))
        return self._array(self._union_of(types) if types else self._any())

    def _const_in_scope(
        self, source: SourceFile, at: ts.Node, name: str
    ) -> Optional[ts.Node]:
        for ancestor in iter_ancestors(at):
            if ancestor.type not in ("statement_block", "program"):
                continue
            declarator = self._scope_declaration(ancestor, name)
            if (
                declarator is not None
                and declarator.type == "variable_declarator"
                and has_token(declarator.parent, "const")
            ):
                return declarator.child_by_field_name("value")

        bindings = self._lookup(source, name, "value")
        for binding in bindings[:1]:
            node = binding.node
            if node.type == "variable_declarator" and has_token(node.parent, "const"):
                return node.child_by_field_name("value")
        return None

    # ------------------------------------------------------------------ #
    # Simplification
    # ------------------------------------------------------------------ #
    def _simplified(self, t: Optional[TsType]) -> Optional[TsType]:
        for _ in range(_MAX_SIMPLIFY_STEPS):
            if t is None or t.category != Category.COMPUTED:
                return t
            following = t.load("simplified")
            if following is t:
                break
            t = following
        if t is not None and t.category == Category.COMPUTED:
            return self._opaque(t.text, key=("opaque", t.id))
        return t

    def _simplify_node(self, t: TsType) -> Optional[TsType]:
        kind = t.node.type
        if kind == "index_type_query":
            return self._simplify_keyof(t)
        if kind == "lookup_type":
            return self._simplify_lookup(t)
        return self._simplify_conditional(t)

    def _properties_of(self, target: Optional[TsType]) -> Optional[List[OracleSymbol]]:
        target = self._simplified(target)
        if target is None or target.category not in OBJECT_SHAPED:
            return None
        return self.get_apparent_properties(target)

    def _simplify_utility(self, t: TsType) -> Optional[TsType]:
        name = t.cache["utility"]
        args = t.args

        if name in FILTERING_UTILITIES:
            target = self._simplified(args[0])
            if target is None:
                return None
            members = target.load("members", []) if target.category == Category.UNION else [target]
            if name == "NonNullable":
                kept = [m for m in members if m.primitive not in ("null", "undefined")]
            else:
                if len(args) < 2:
                    return target
                excluded = self._simplified(args[1])
                if excluded is None:
                    return target
                matches = [self._assignable(m, excluded) for m in members]
                kept = [
                    m
                    for m, match in zip(members, matches)
                    if match == (name == "Extract")
                ]
            return self._union_of(kept)

        properties = self._properties_of(args[0])
        if not properties:
            return None
        key = ("simplified", t.id)
        if name == "Partial":
            result = [self._copy_symbol(p, is_optional=True) for p in properties]
        elif name == "Required":
            result = [self._copy_symbol(p, is_optional=False) for p in properties]
        elif name == "Readonly":
            result = [self._copy_symbol(p, is_readonly=True) for p in properties]
        else:
            if len(args) < 2:
                return None
            keys = self._literal_keys(args[1])
            if keys is None:
                return None
            if name == "Pick":
                result = [p for p in properties if p.name in keys]
            else:
                result = [p for p in properties if p.name not in keys]
        return self._synthetic_object(key, result, t, t.text)

    def _copy_symbol(self, symbol: OracleSymbol, **changes: Any) -> OracleSymbol:
        data = symbol.data
        return OracleSymbol(
            name=symbol.name,
            declaration=symbol.declaration,
            is_optional=changes.get("is_optional", symbol.is_optional),
            is_readonly=changes.get("is_readonly", symbol.is_readonly),
            is_static=symbol.is_static,
            is_rest=symbol.is_rest,
            visibility=symbol.visibility,
            member_kind=symbol.member_kind,
            data=SymbolData(
                data.source,
                data.env,
                list(data.nodes),
                type=changes.get("type", self.get_type_of_symbol(symbol)),
                owner=data.owner,
            )
            if isinstance(data, SymbolData)
            else data,
        )

    def _mapped_signature(self, node: ts.Node) -> Optional[ts.Node]:
        for member in children_of_type(node, "index_signature"):
            if first_child_of_type(member, "mapped_type_clause") is not None:
                return member
        return None

    def _simplify_mapped(self, t: TsType) -> Optional[TsType]:
        signature = self._mapped_signature(t.node)
        clause = first_child_of_type(signature, "mapped_type_clause")
        clause_children = _named(clause)
        param_name = get_node_text(child_by_field(clause, "name", "type_identifier"))
        constraint_node = clause.child_by_field_name("type") or (
            clause_children[1] if len(clause_children) > 1 else None
        )
        remap_node = clause.child_by_field_name("alias")
        value_node = _last_named(first_child_of_type(signature, *_ANNOTATIONS))
        if constraint_node is None or value_node is None:
            return None

        # `{ [K in keyof T]: ... }` over an object: keys come with its members
        source_props: Dict[str, OracleSymbol] = {}
        constraint = _unwrap_parens(constraint_node)
        if constraint.type == "index_type_query":
            properties = self._properties_of(
                self._type_from_node(_last_named(constraint), t.source, t.env)
            )
            if properties is None:
                return None
            source_props = {p.name: p for p in properties}
            keys = list(source_props)
        else:
            keys = self._literal_keys(self._type_from_node(constraint, t.source, t.env))
            if keys is None:
                return None

        annotation = first_child_of_type(signature, *_ANNOTATIONS)
        optional_mod = _OPTIONAL_MODIFIERS.get(annotation.type if annotation else None)
        readonly_mod = self._readonly_modifier(signature)

        result: List[OracleSymbol] = []
        for key in keys:
            env = dict(t.env)
            env[param_name] = self._literal(key, "string")
            name = key
            if remap_node is not None:
                remapped = self._literal_keys(self._type_from_node(remap_node, t.source, env))
                if not remapped:
                    continue
                name = remapped[0]
            original = source_props.get(key)
            is_optional = original.is_optional if original else False
            is_readonly = original.is_readonly if original else False
            if optional_mod is not None:
                is_optional = optional_mod
            if readonly_mod is not None:
                is_readonly = readonly_mod
            declaration = (
                original.declaration
                if original
                else OracleDeclaration(DK.PROPERTY, name, t.source.path, signature)
            )
            result.append(
                OracleSymbol(
                    name=name,
                    declaration=declaration,
                    is_optional=is_optional,
                    is_readonly=is_readonly,
                    member_kind="property",
                    data=SymbolData(
                        t.source,
                        env,
                        [declaration.node] if declaration.node is not None else [],
                        type=self._type_from_node(value_node, t.source, env),
                        owner=t,
                    ),
                )
            )
        return self._synthetic_object(("simplified", t.id), result, t, t.text)

    def _readonly_modifier(self, signature: ts.Node) -> Optional[bool]:
        """`readonly` modifier of a mapped type: True, False for `-readonly`, None when absent."""
        children = signature.children
        for index, child in enumerate(children):
            if child.type == "readonly":
                return not (index > 0 and children[index - 1].type == "-")
        return None

    def _literal_keys(self, t: Optional[TsType]) -> Optional[List[str]]:
        t = self._simplified(t)
        if t is None:
            return None
        members = t.load("members", []) if t.category == Category.UNION else [t]
        keys = []
        for member in members:
            if member.category == Category.LITERAL and member.primitive in ("string", "number"):
                keys.append(str(member.value))
            elif member.primitive == "never":
                continue
            else:
                return None
        return keys

    def _simplify_keyof(self, t: TsType) -> Optional[TsType]:
        properties = self._properties_of(
            self._type_from_node(_last_named(t.node), t.source, t.env)
        )
        if properties is None:
            return self._opaque(t.text, key=("opaque", t.id))
        return self._union_of(self._literal(p.name, "string") for p in properties)

    def _simplify_lookup(self, t: TsType) -> Optional[TsType]:
        children = _named(t.node)
        if len(children) < 2:
            return None
        target = self._simplified(self._type_from_node(children[0], t.source, t.env))
        index = self._simplified(self._type_from_node(children[1], t.source, t.env))
        if target is None or index is None:
            return None

        if target.category == Category.ARRAY and index.primitive == "number":
            return target.load("element")
        if target.category == Category.TUPLE:
            elements = target.load("elements", [])
            if index.category == Category.LITERAL and isinstance(index.value, int):
                if 0 <= index.value < len(elements):
                    return elements[index.value].type
            elif index.primitive == "number":
                return self._union_of(e.type for e in elements)

        keys = self._literal_keys(index)
        if keys and target.category in OBJECT_SHAPED:
            properties = {p.name: p for p in self.get_apparent_properties(target)}
            found = [self.get_type_of_symbol(properties[k]) for k in keys if k in properties]
            if found:
                return self._union_of(found)
        return self._opaque(t.text, key=("opaque", t.id))

    def _simplify_conditional(self, t: TsType) -> Optional[TsType]:
        node = t.node
        check_node = node.child_by_field_name("left")
        extends_node = node.child_by_field_name("right")
        true_node = node.child_by_field_name("consequence")
        false_node = node.child_by_field_name("alternative")
        if None in (check_node, extends_node, true_node, false_node):
            return None

        checked = self._simplified(self._type_from_node(check_node, t.source, t.env))
        if checked is None:
            return None

        # distribute over a union passed through a naked type parameter
        naked = _unwrap_parens(check_node)
        distributive = (
            naked.type == "type_identifier"
            and get_node_text(naked) in t.env
            and checked.category == Category.UNION
        )
        candidates = checked.load("members", []) if distributive else [checked]

        results = []
        for candidate in candidates:
            if candidate.category == Category.OPAQUE:
                return self._opaque(t.text, key=("opaque", t.id))
            inferred: Dict[str, TsType] = {}
            matched = self._matches(candidate, extends_node, t.source, t.env, inferred)
            env = dict(t.env)
            if distributive:
                env[get_node_text(naked)] = candidate
            env.update(inferred)
            branch = true_node if matched else false_node
            results.append(self._type_from_node(branch, t.source, env))
        return self._union_of(results)

    def _matches(
        self,
        candidate: TsType,
        pattern: ts.Node,
        source: SourceFile,
        env: Env,
        inferred: Dict[str, TsType],
    ) -> bool:
        if not _contains_infer(pattern):
            target = self._simplified(self._type_from_node(pattern, source, env))
            return target is not None and self._assignable(candidate, target)

        kind = pattern.type
        if kind == "infer_type":
            name_node = first_child_of_type(pattern, "type_identifier")
            inferred[get_node_text(name_node)] = candidate
            return True
        if kind == "parenthesized_type":
            return self._matches(candidate, _named(pattern)[0], source, env, inferred)
        if kind == "array_type":
            if candidate.category != Category.ARRAY:
                return False
            return self._matches(
                candidate.load("element"), _named(pattern)[0], source, env, inferred
            )
        if kind == "generic_type":
            name = get_node_text(child_by_field(pattern, "name", "type_identifier"))
            args_node = child_by_field(pattern, "type_arguments", "type_arguments")
            arg_nodes = _named(args_node) if args_node is not None else []
            if name in ARRAY_TYPES and candidate.category == Category.ARRAY and arg_nodes:
                return self._matches(
                    candidate.load("element"), arg_nodes[0], source, env, inferred
                )
            if candidate.name != name or len(candidate.args) != len(arg_nodes):
                return False
            return all(
                self._matches(arg, arg_node, source, env, inferred)
                for arg, arg_node in zip(candidate.args, arg_nodes)
            )
        if kind == "function_type":
            signatures = (
                self.get_call_signatures(candidate)
                if candidate.category in (Category.FUNCTION, Category.OBJECT)
                else []
            )
            if not signatures:
                return False
            return_node = pattern.child_by_field_name("return_type")
            return return_node is None or self._matches(
                signatures[0].return_type, return_node, source, env, inferred
            )
        return False

    def _assignable(self, source: TsType, target: TsType) -> bool:
        if source.id == target.id:
            return True
        if target.primitive in ("any", "unknown"):
            return True
        if source.primitive == "never":
            return True
        if target.category == Category.UNION:
            return any(self._assignable(source, m) for m in target.load("members", []))
        if source.category == Category.UNION:
            return all(self._assignable(m, target) for m in source.load("members", []))
        if target.category == Category.PRIMITIVE:
            if source.category == Category.LITERAL:
                return source.primitive == target.primitive
            if target.primitive == "object":
                return source.category in OBJECT_SHAPED or source.category in (
                    Category.ARRAY,
                    Category.TUPLE,
                    Category.FUNCTION,
                )
            return source.primitive == target.primitive
        if target.category == Category.LITERAL:
            return (
                source.category == Category.LITERAL
                and source.primitive == target.primitive
                and source.value == target.value
            )
        if target.category == Category.ARRAY:
            if source.category == Category.ARRAY:
                return self._assignable(source.load("element"), target.load("element"))
            if source.category == Category.TUPLE:
                element = target.load("element")
                return all(self._assignable(e.type, element) for e in source.load("elements", []))
            return False
        if target.category == Category.FUNCTION:
            return source.category == Category.FUNCTION
        if target.category in OBJECT_SHAPED:
            if source.category not in OBJECT_SHAPED:
                return False
            available = {p.name: p for p in self.get_apparent_properties(source)}
            for prop in self.get_apparent_properties(target):
                if prop.is_optional:
                    continue
                found = available.get(prop.name)
                if found is None or not self._assignable(
                    self.get_type_of_symbol(found), self.get_type_of_symbol(prop)
                ):
                    return False
            return True
        if target.category == Category.GENERIC:
            return source.name == target.name and len(source.args) == len(target.args)
        return False

    # ------------------------------------------------------------------ #
    # TypeOracle: classification and identity
    # ------------------------------------------------------------------ #
    def classify(self, type: Any) -> TypeCategory:
        return self._check(type).category

    def type_id(self, type: Any) -> int:
        return self._check(type).id

    @_locked
    def type_to_text(self, type: Any) -> str:
        return self._check(type).text

    @_locked
    def simplify_computed_type(self, type: Any) -> Optional[TsType]:
        return self._simplified(self._check(type))

    # ------------------------------------------------------------------ #
    # TypeOracle: symbols and declarations
    # ------------------------------------------------------------------ #
    def get_symbol(self, type: Any) -> Optional[OracleSymbol]:
        return self._check(type).symbol

    def get_declaration(self, symbol: OracleSymbol) -> Optional[OracleDeclaration]:
        return symbol.declaration

    @_locked
    def get_type_of_symbol(self, symbol: OracleSymbol) -> TsType:
        data = symbol.data
        if not isinstance(data, SymbolData):
            if symbol.declaration is not None and symbol.declaration.node is not None:
                return self.get_type_of_declaration(symbol.declaration)
            return self._any()
        if data.type is None:
            data.type = self._symbol_type(symbol, data)
        return data.type

    def _symbol_type(self, symbol: OracleSymbol, data: SymbolData) -> TsType:
        if not data.nodes:
            return self._any()
        node = data.nodes[0]
        kind = node.type
        if kind in _METHOD_NODES:
            return self._function_of_nodes(data.nodes, data.source, data.env, symbol)
        if kind in _PARAMETERS or kind == "identifier":
            return self._parameter_type(node, data.source, data.env)
        if kind in _FIELD_NODES or kind == "property_signature":
            return self._value_declaration_type(
                node, data.source, data.env, literal=symbol.is_readonly
            )
        if kind == "variable_declarator":
            return self._variable_type(node, data.source, data.env)
        return self._any()

    @_locked
    def get_declaration_by_name(self, file_path: str, name: str) -> OracleDeclaration:
        source = self._sources.get(normalize_path(file_path))
        if source is None:
            raise DeclarationNotFoundError(file_path, name)
        for space in ("type", "value"):
            bindings = self._lookup(source, name, space) or self._lookup_export(
                source, name, space, set()
            )
            if bindings:
                return self._declaration_of(bindings[0])
        raise DeclarationNotFoundError(file_path, name)

    @_locked
    def get_type_of_declaration(self, declaration: OracleDeclaration) -> TsType:
        source = self.get_source(declaration.file_path)
        node = declaration.node
        if node is None:
            raise ValueError(f"Declaration {declaration.name!r} has no syntax node")
        self._check_syntax(node, source)

        kind = declaration.kind
        if kind in (DK.TYPE_ALIAS, DK.INTERFACE, DK.CLASS, DK.ENUM):
            bindings = [
                b for b in source.scope.types.get(declaration.name, []) if b.kind == kind
            ] or [self._binding_for(declaration, source)]
            return self._declared(bindings, ())
        if kind == DK.FUNCTION:
            bindings = [
                b
                for b in source.scope.values.get(declaration.name, [])
                if b.kind == DK.FUNCTION
            ]
            if bindings:
                return self._function_binding_type(bindings)
            return self._function_of_nodes(
                [node],
                source,
                {},
                OracleSymbol(name=declaration.name, declaration=declaration),
            )
        if kind == DK.VARIABLE:
            if node.type == "variable_declarator":
                return self._variable_type(node, source)
            return self._type_of_expression(node, source, {})
        if kind in (DK.PARAMETER, DK.PROPERTY):
            return self._value_declaration_type(node, source, {})
        raise ValueError(f"Unsupported declaration kind {kind.value}")

    def _binding_for(
        self, declaration: OracleDeclaration, source: SourceFile
    ) -> Optional[Binding]:
        node = declaration.node
        for table in (source.scope.types, source.scope.values):
            for binding in table.get(declaration.name, []):
                if (
                    binding.node.start_byte == node.start_byte
                    and binding.node.type == node.type
                ):
                    return binding
        return None

    @_locked
    def is_exported(self, declaration: OracleDeclaration) -> bool:
        if declaration.kind not in _MODULE_DECLARATIONS or declaration.node is None:
            return False
        source = self._sources.get(declaration.file_path)
        if source is None:
            return False
        binding = self._binding_for(declaration, source)
        if binding is not None and binding.exported:
            return True
        return declaration.name in source.scope.exports.values()

    def is_in_node_modules(self, file_path: str) -> bool:
        return is_node_modules_path(file_path)

    # ------------------------------------------------------------------ #
    # TypeOracle: structure
    # ------------------------------------------------------------------ #
    @_locked
    def get_apparent_properties(self, type: Any) -> List[OracleSymbol]:
        t = self._simplified(self._check(type))
        if t is None:
            return []
        if t.category == Category.OBJECT:
            return list(t.load("properties", []))
        if t.category == Category.CLASS:
            return [
                m
                for m in t.load("class_members", [])
                if not m.is_static and m.member_kind in ("property", "get", "method")
            ]
        if t.category == Category.INTERSECTION:
            merged: Dict[str, OracleSymbol] = {}
            for member in t.load("members", []):
                for prop in self.get_apparent_properties(member):
                    merged.setdefault(prop.name, prop)
            return list(merged.values())
        return []

    @_locked
    def get_call_signatures(self, type: Any) -> List[OracleSignature]:
        t = self._check(type)
        if t.category not in (Category.FUNCTION, Category.OBJECT):
            return []
        return list(t.load("call_signatures", []))

    @_locked
    def get_construct_signatures(self, type: Any) -> List[OracleSignature]:
        t = self._check(type)
        if t.category != Category.CLASS:
            return []
        return list(t.load("construct_signatures", []))

    def get_type_arguments(self, type: Any) -> List[TsType]:
        return list(self._check(type).args)

    def get_type_name(self, type: Any) -> Optional[str]:
        return self._check(type).name

    @_locked
    def get_union_members(self, type: Any) -> List[TsType]:
        t = self._check(type)
        return list(t.load("members", [])) if t.category == Category.UNION else []

    @_locked
    def get_intersection_members(self, type: Any) -> List[TsType]:
        t = self._check(type)
        if t.category != Category.INTERSECTION:
            return []
        return list(t.load("members", []))

    @_locked
    def get_element_type(self, type: Any) -> Optional[TsType]:
        t = self._check(type)
        return t.load("element") if t.category == Category.ARRAY else None

    @_locked
    def get_index_signatures(self, type: Any) -> List[IndexSignature]:
        t = self._simplified(self._check(type))
        if t is None:
            return []
        if t.category == Category.OBJECT:
            return list(t.load("index_signatures", []))
        if t.category == Category.INTERSECTION:
            merged: Dict[str, IndexSignature] = {}
            for member in t.load("members", []):
                for signature in self.get_index_signatures(member):
                    merged.setdefault(signature.key_type.text, signature)
            return list(merged.values())
        return []

    @_locked
    def get_tuple_elements(self, type: Any) -> List[TupleElement]:
        t = self._check(type)
        return list(t.load("elements", [])) if t.category == Category.TUPLE else []

    def get_literal_value(self, type: Any) -> Any:
        return self._check(type).value

    def get_primitive_name(self, type: Any) -> str:
        return self._check(type).primitive or "unknown"

    @_locked
    def get_enum_members(self, type: Any) -> List[Tuple[str, Any]]:
        t = self._check(type)
        return list(t.load("enum_members", [])) if t.category == Category.ENUM else []

    @_locked
    def get_class_members(self, type: Any) -> List[OracleSymbol]:
        t = self._check(type)
        return list(t.load("class_members", [])) if t.category == Category.CLASS else []

    def is_anonymous_object(self, type: Any) -> bool:
        t = self._check(type)
        return (
            t.category == Category.OBJECT
            and t.alias is None
            and not t.bindings
            and t.node is not None
            and t.node.type in ("object_type", "object")
        )

    # ------------------------------------------------------------------ #
    # TypeOracle: locations and documentation
    # ------------------------------------------------------------------ #
    def get_source_position(self, target: Any) -> Optional[SourceLocation]:
        if isinstance(target, OracleDeclaration):
            if target.node is None:
                return SourceLocation(file_path=target.file_path, position=_LIB_POSITION)
            return SourceLocation(
                file_path=target.file_path, position=node_position(target.node)
            )
        t = self._check(target)
        if t.node is not None and t.source is not None:
            return SourceLocation(file_path=t.source.path, position=node_position(t.node))
        return None

    def get_library_location(self, type: Any) -> SourceLocation:
        t = self._check(type)
        return SourceLocation(file_path=t.lib_file or LIB_FILE, position=_LIB_POSITION)

    def get_jsdoc_comments(self, declaration: OracleDeclaration) -> Optional[str]:
        node = declaration.node
        if node is None:
            return None
        if node.type == "variable_declarator" and node.parent is not None:
            node = node.parent
        while node.parent is not None and node.parent.type in (
            "export_statement",
            "ambient_declaration",
        ):
            node = node.parent
        return leading_jsdoc(node)

    # ------------------------------------------------------------------ #
    # TypeOracle: initializers
    # ------------------------------------------------------------------ #
    def get_initializer(self, declaration: OracleDeclaration) -> Optional[ts.Node]:
        node = declaration.node
        if node is None:
            return None
        if node.type in ("variable_declarator", "pair", *_PARAMETERS, *_FIELD_NODES):
            return node.child_by_field_name("value")
        return None

    def get_binding_patterns(self, declaration: OracleDeclaration) -> List[ts.Node]:
        """
        Object patterns destructuring a parameter: the parameter's own pattern,
        plus `const { ... } = param` statements at the top of the function body.
        """
        node = declaration.node
        if node is None or node.type not in _PARAMETERS:
            return []
        patterns = []
        pattern = node.child_by_field_name("pattern")
        if pattern is not None and pattern.type == "object_pattern":
            patterns.append(pattern)
        if pattern is None or pattern.type != "identifier":
            return patterns

        name = get_node_text(pattern)
        function = node.parent.parent if node.parent is not None else None
        body = function.child_by_field_name("body") if function is not None else None
        if body is None or body.type != "statement_block":
            return patterns
        for statement in children_of_type(body, "lexical_declaration", "variable_declaration"):
            for declarator in children_of_type(statement, "variable_declarator"):
                target = declarator.child_by_field_name("name")
                value = declarator.child_by_field_name("value")
                if (
                    target is not None
                    and target.type == "object_pattern"
                    and value is not None
                    and value.type == "identifier"
                    and get_node_text(value) == name
                ):
                    patterns.append(target)
        return patterns

    @_locked
    def lookup_initializer(
        self, declaration: OracleDeclaration, name: str
    ) -> Optional[ts.Node]:
        if declaration.node is None:
            return None
        source = self._sources.get(declaration.file_path)
        if source is None:
            return None
        return self._const_in_scope(source, declaration.node, name)
