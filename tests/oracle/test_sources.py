from textwrap import dedent

from typelens.oracle.base import DeclarationKind
from typelens.oracle.sources import (
    is_node_modules_path,
    module_candidates,
    normalize_path,
    parse_source,
)

SUFFIXES = (".ts", ".tsx", ".d.ts")


def _scope(text, path="src/mod.ts"):
    return parse_source(path, dedent(text), tsx=path.endswith(".tsx")).scope


# --------------------------------------------------------------------------- #
# Paths
# --------------------------------------------------------------------------- #
def test_normalize_path():
    assert normalize_path("./src/a.ts") == "src/a.ts"
    assert normalize_path("src\\components\\..\\a.ts") == "src/a.ts"
    assert normalize_path("src//a.ts") == "src/a.ts"


def test_node_modules_path():
    assert is_node_modules_path("node_modules/react/index.d.ts")
    assert is_node_modules_path("a\\node_modules\\b.ts")
    assert not is_node_modules_path("src/my_node_modules/b.ts")


def test_relative_candidates():
    candidates = module_candidates("src/app/main.ts", "../lib/util", SUFFIXES, ["node_modules"])

    assert candidates[:4] == [
        "src/lib/util",
        "src/lib/util.ts",
        "src/lib/util.tsx",
        "src/lib/util.d.ts",
    ]
    assert "src/lib/util/index.ts" in candidates


def test_js_extension_maps_to_typescript():
    candidates = module_candidates("src/main.ts", "./util.js", SUFFIXES, ["node_modules"])

    assert candidates.index("src/util.ts") < candidates.index("src/util.js.ts")


def test_bare_specifier_walks_up():
    candidates = module_candidates("packages/app/src/main.ts", "react", SUFFIXES, ["node_modules"])

    nearest = candidates.index("packages/app/src/node_modules/react/index.d.ts")
    root = candidates.index("node_modules/react/index.d.ts")
    assert nearest < root
    assert "node_modules/@types/react/index.d.ts" in candidates


# --------------------------------------------------------------------------- #
# Binder
# --------------------------------------------------------------------------- #
def test_declarations_are_bound_by_space():
    scope = _scope(
        """
        interface Props { a: string }
        type Alias = Props;
        class Widget {}
        enum Color { Red }
        function render() {}
        const limit = 1, other = 2;
        let { destructured } = source;
        """
    )

    assert set(scope.types) == {"Props", "Alias", "Widget", "Color"}
    assert set(scope.values) == {"Widget", "Color", "render", "limit", "other"}
    assert scope.types["Props"][0].kind == DeclarationKind.INTERFACE
    assert scope.values["limit"][0].kind == DeclarationKind.VARIABLE
    assert scope.exports == {}


def test_merged_declarations_keep_every_binding():
    scope = _scope(
        """
        export interface Props { a: string }
        export interface Props { b: number }
        export function pick(a: string): string;
        export function pick(a: any) { return a; }
        """
    )

    assert len(scope.types["Props"]) == 2
    assert len(scope.values["pick"]) == 2
    assert all(b.exported for b in scope.values["pick"])


def test_exports():
    scope = _scope(
        """
        interface Local {}
        const value = 1;
        export { Local as Public, value };
        export default function Main() {}
        """
    )

    assert scope.exports == {"Public": "Local", "value": "value", "Main": "Main", "default": "Main"}


def test_default_export_of_expression():
    scope = _scope("export default { size: 1 };")

    assert scope.exports == {"default": "default"}
    assert scope.values["default"][0].node.type == "object"


def test_reexports():
    scope = _scope(
        """
        export * from "./all";
        export { A, B as C } from "./some";
        export * as ns from "./namespaced";
        """
    )

    assert scope.reexports == [("./all", None), ("./some", {"A": "A", "C": "B"})]


def test_imports():
    scope = _scope(
        """
        import React, { useState as useLocalState, type FC } from "react";
        import * as path from "./path";
        import "./side-effect";
        """
    )

    imports = {name: (i.specifier, i.imported) for name, i in scope.imports.items()}
    assert imports == {
        "React": ("react", "default"),
        "useLocalState": ("react", "useState"),
        "FC": ("react", "FC"),
        "path": ("./path", None),
    }


def test_ambient_declarations():
    scope = _scope(
        """
        declare const VERSION: string;
        declare function boot(): void;
        """,
        path="types/env.d.ts",
    )

    assert set(scope.values) == {"VERSION", "boot"}
    assert scope.values["boot"][0].kind == DeclarationKind.FUNCTION
