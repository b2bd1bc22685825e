import math
from textwrap import dedent

import pytest
from devtools import pprint

from typelens.models import (
    ArrayNode,
    ClassNode,
    ComponentNode,
    EnumNode,
    FunctionNode,
    GenericNode,
    IntersectionNode,
    Kind,
    Modifier,
    ObjectNode,
    ReferenceNode,
    Scope,
    TupleNode,
    UnionNode,
    Visibility,
)
from typelens.oracle.base import OracleError
from typelens.oracle.typescript import TypeScriptOracle
from typelens.policies import allow_names
from typelens.resolver import TypeResolver, resolve_type, resolve_type_properties
from typelens.settings import IntersectionPolicy, ResolverSettings


# --------------------------------------------------------------------------- #
# Helpers
# --------------------------------------------------------------------------- #
def _make_oracle(sources):
    oracle = TypeScriptOracle()
    for path, text in sources.items():
        oracle.add_source(path, dedent(text))
    return oracle


def _resolve(text, name, extra=None, settings=None, filter=None):
    oracle = _make_oracle({"test.ts": text, **(extra or {})})
    return TypeResolver(oracle, settings).resolve_declaration("test.ts", name, filter)


def _by_name(nodes):
    return {n.name: n for n in nodes}


# --------------------------------------------------------------------------- #
# Objects, unions, recursion
# --------------------------------------------------------------------------- #
def test_object_literal_type():
    node = _resolve("type Props = { a: string; b: number };", "Props")

    #pprint(node)

    assert isinstance(node, ObjectNode)
    assert node.name == "Props"
    assert node.type == "Props"
    assert node.file_path == "test.ts"
    assert node.position.start.line == 1
    assert [(p.name, p.kind) for p in node.properties] == [
        ("a", Kind.STRING),
        ("b", Kind.NUMBER),
    ]
    assert node.properties[0].type == "string"
    assert node.properties[0].is_optional is False


def test_union_members_keep_order():
    node = _resolve("type U = string | number;", "U")

    assert isinstance(node, UnionNode)
    assert [m.kind for m in node.members] == [Kind.STRING, Kind.NUMBER]


def test_union_of_literals_keeps_values():
    node = _resolve("type Size = 'sm' | 'md' | 'lg';", "Size")

    assert isinstance(node, UnionNode)
    assert [m.value for m in node.members] == ["sm", "md", "lg"]
    assert node.members[0].type == '"sm"'


def test_recursive_type_terminates():
    node = _resolve("type Node = { id: string; children: Node[] };", "Node")

    assert isinstance(node, ObjectNode)
    children = _by_name(node.properties)["children"]
    assert isinstance(children, ArrayNode)
    assert children.type == "Array<Node>"
    assert isinstance(children.element, ReferenceNode)
    assert children.element.type == "Node"


def test_mutually_recursive_interfaces():
    text = """
    interface Author { name: string; posts: Post[] }
    interface Post { title: string; author: Author }
    """
    node = _resolve(text, "Author")

    posts = _by_name(node.properties)["posts"]
    post = posts.element
    assert isinstance(post, ObjectNode)
    author = _by_name(post.properties)["author"]
    assert isinstance(author, ReferenceNode)
    assert author.type == "Author"


def test_resolution_is_idempotent():
    oracle = _make_oracle(
        {"test.ts": "type Node = { id: string; children: Node[]; tags?: string[] };"}
    )
    resolver = TypeResolver(oracle)

    first = resolver.resolve_declaration("test.ts", "Node")
    second = resolver.resolve_declaration("test.ts", "Node")

    assert first == second
    assert first.to_dict() == second.to_dict()


def test_max_depth_degrades_to_reference():
    node = _resolve(
        "type Node = { id: string; children: Node[] };",
        "Node",
        settings=ResolverSettings(max_depth=1),
    )

    props = _by_name(node.properties)
    assert props["id"].kind == Kind.STRING
    assert isinstance(props["children"], ReferenceNode)


# --------------------------------------------------------------------------- #
# Filter predicate
# --------------------------------------------------------------------------- #
UI_KIT = {
    "node_modules/ui-kit/index.d.ts": """
    export interface BaseProps {
      theme: "light" | "dark";
    }
    export interface Theme { color: string }
    """
}


def test_external_property_is_reference_by_default():
    text = """
    import { BaseProps } from "ui-kit";
    export interface ButtonProps extends BaseProps {
      label: string;
    }
    """
    node = _resolve(text, "ButtonProps", extra=UI_KIT)

    props = _by_name(node.properties)
    assert list(props) == ["label", "theme"]
    assert props["label"].kind == Kind.STRING
    assert isinstance(props["theme"], ReferenceNode)
    assert props["theme"].type == '"light" | "dark"'
    assert props["theme"].file_path == "node_modules/ui-kit/index.d.ts"


def test_filter_admitting_property_name_expands_it():
    text = """
    import { BaseProps } from "ui-kit";
    export interface ButtonProps extends BaseProps {
      label: string;
    }
    """
    node = _resolve(text, "ButtonProps", extra=UI_KIT, filter=allow_names("theme"))

    theme = _by_name(node.properties)["theme"]
    assert isinstance(theme, UnionNode)
    assert [m.value for m in theme.members] == ["light", "dark"]


def test_external_type_of_local_property():
    text = """
    import { Theme } from "ui-kit";
    export interface Props { theme: Theme }
    """
    node = _resolve(text, "Props", extra=UI_KIT)
    theme = _by_name(node.properties)["theme"]
    assert isinstance(theme, ReferenceNode)
    assert theme.type == "Theme"

    expanded = _resolve(
        text, "Props", extra=UI_KIT, settings=ResolverSettings(expand_node_modules=True)
    )
    theme = _by_name(expanded.properties)["theme"]
    assert isinstance(theme, ObjectNode)
    assert [p.name for p in theme.properties] == ["color"]


def test_unresolved_module_is_reference():
    text = """
    import { Widget } from "missing-package";
    export interface Props { widget: Widget }
    """
    node = _resolve(text, "Props")

    widget = _by_name(node.properties)["widget"]
    assert isinstance(widget, ReferenceNode)
    assert widget.type == "Widget"


def test_root_from_node_modules_is_filtered():
    oracle = _make_oracle(UI_KIT)
    resolver = TypeResolver(oracle)

    node = resolver.resolve_declaration("node_modules/ui-kit/index.d.ts", "Theme")

    assert isinstance(node, ReferenceNode)
    assert node.name == "Theme"


# --------------------------------------------------------------------------- #
# Defaults
# --------------------------------------------------------------------------- #
def test_parameter_default_value():
    node = _resolve("export function scale(a: number = 5) { return a * 2; }", "scale")

    assert isinstance(node, FunctionNode)
    signature = node.signatures[0]
    assert signature.return_type == "number"
    param = signature.parameters[0]
    assert param.name == "a"
    assert param.kind == Kind.NUMBER
    assert param.is_optional is True
    assert param.default_value == 5


def test_destructured_defaults_are_pushed_down():
    text = """
    export function place({ x = 1, y = 2 }: { x?: number; y?: number } = {}) {}
    """
    node = _resolve(text, "place")

    assert isinstance(node, ComponentNode)
    param = node.signatures[0].parameter
    assert param.name is None
    assert param.default_value == {"x": 1, "y": 2}
    assert {p.name: p.default_value for p in param.properties} == {"x": 1, "y": 2}
    assert "name" not in param.to_dict()


def test_renamed_binding_default_keyed_by_property():
    text = """
    export function Card({ title: heading = "Untitled" }: { title?: string }) {
      return heading;
    }
    """
    node = _resolve(text, "Card")

    param = node.signatures[0].parameter
    assert param.default_value == {"title": "Untitled"}
    assert _by_name(param.properties)["title"].default_value == "Untitled"


def test_body_destructuring_default():
    text = """
    export function Panel(props: { size?: number; label: string }) {
      const { size = 3 } = props;
      return size;
    }
    """
    node = _resolve(text, "Panel")

    param = node.signatures[0].parameter
    assert param.name == "props"
    props = _by_name(param.properties)
    assert props["size"].default_value == 3
    assert not props["label"].has_default_value


def test_default_through_const():
    text = """
    const BASE = 10;
    export function grow(amount: number = BASE * 2, unit: string) { return amount; }
    """
    node = _resolve(text, "grow")

    params = node.signatures[0].parameters
    assert params[0].default_value == 20
    assert not params[1].has_default_value


def test_non_finite_default_does_not_raise():
    node = _resolve("export function limit(bound = 0 ** -1) { return bound; }", "limit")

    assert isinstance(node, FunctionNode)
    param = node.signatures[0].parameters[0]
    assert param.kind == Kind.NUMBER
    assert param.default_value == math.inf


def test_unresolvable_default_is_absent():
    text = """
    export function wait(ms: number = Date.now(), label?: string) {}
    """
    node = _resolve(text, "wait")

    params = node.signatures[0].parameters
    assert not params[0].has_default_value
    assert "defaultValue" not in params[0].to_dict()
    assert params[1].is_optional is True


def test_null_default_is_kept():
    node = _resolve("export function f(a: string | null = null, b = 1) {}", "f")

    first = node.signatures[0].parameters[0]
    assert first.has_default_value
    assert first.default_value is None
    assert first.to_dict()["defaultValue"] is None


# --------------------------------------------------------------------------- #
# Enums, functions, components
# --------------------------------------------------------------------------- #
def test_enum_members_in_order():
    node = _resolve("enum Color { Red = 'red', Blue = 'blue' }", "Color")

    assert isinstance(node, EnumNode)
    assert node.members == {"Red": "red", "Blue": "blue"}
    assert list(node.members) == ["Red", "Blue"]


def test_numeric_enum_auto_increment():
    node = _resolve("export enum Direction { Up, Down, Left = 10, Right }", "Direction")

    assert node.members == {"Up": 0, "Down": 1, "Left": 10, "Right": 11}


def test_component_with_object_parameter():
    node = _resolve("type Button = (props: { color: string }) => string;", "Button")

    assert isinstance(node, ComponentNode)
    signature = node.signatures[0]
    assert signature.parameter.name == "props"
    assert [p.name for p in signature.parameter.properties] == ["color"]
    assert signature.return_type == "string"
    assert signature.type == "(props: { color: string; }) => string"


def test_function_with_two_parameters():
    node = _resolve("type Add = (a: number, b: number) => number;", "Add")

    assert isinstance(node, FunctionNode)
    assert len(node.signatures[0].parameters) == 2
    assert [p.name for p in node.signatures[0].parameters] == ["a", "b"]


def test_parameterless_arrow_component_needs_capital():
    text = """
    export const Spinner = () => "spin";
    export const spin = () => "spin";
    """
    component = _resolve(text, "Spinner")
    function = _resolve(text, "spin")

    assert isinstance(component, ComponentNode)
    assert component.signatures[0].parameter is None
    assert isinstance(function, FunctionNode)


def test_capitalized_name_policy():
    text = "export function render(props: { id: string }) { return props.id; }"

    default = _resolve(text, "render")
    strict = _resolve(
        text, "render", settings=ResolverSettings(component_requires_capitalized_name=True)
    )

    assert isinstance(default, ComponentNode)
    assert isinstance(strict, FunctionNode)


def test_overloads_keep_every_signature():
    text = """
    export function pick(value: string): string;
    export function pick(value: number, fallback: number): number;
    export function pick(value: any, fallback?: any): any { return value; }
    """
    node = _resolve(text, "pick")

    assert isinstance(node, FunctionNode)
    assert [len(s.parameters) for s in node.signatures] == [1, 2]


def test_async_function_signature():
    text = "export async function fetchSlug(id: string) { return { slug: id }; }"
    node = _resolve(text, "fetchSlug")

    signature = node.signatures[0]
    assert signature.modifier == Modifier.ASYNC
    assert signature.return_type == "Promise<{ slug: string; }>"


def test_async_generator_signature():
    node = _resolve("export async function* ticks(a: number) { yield a; }", "ticks")

    assert isinstance(node, FunctionNode)
    signature = node.signatures[0]
    assert signature.modifier == Modifier.ASYNC_GENERATOR
    assert signature.return_type == "AsyncGenerator<number, void, unknown>"
    assert signature.to_dict()["modifier"] == "async-generator"


# --------------------------------------------------------------------------- #
# Generics, classes, tuples, intersections
# --------------------------------------------------------------------------- #
def test_promise_is_generic():
    node = _resolve("type Loader = Promise<{ slug: string }>;", "Loader")

    assert isinstance(node, GenericNode)
    assert node.type_name == "Promise"
    argument = node.arguments[0]
    assert isinstance(argument, ObjectNode)
    assert [(p.name, p.kind) for p in argument.properties] == [("slug", Kind.STRING)]
    assert node.to_dict()["typeName"] == "Promise"


def test_type_text_keeps_keywords():
    text = """
    interface Route {
      path: `prefix-${string}`;
      data: Promise<{ slug: string; tone: 'string' }>;
      sizes: Record<string, { a: string }>;
    }
    """
    node = _resolve(text, "Route")

    props = _by_name(node.properties)
    assert props["path"].type == "`prefix-${string}`"
    assert props["data"].type == 'Promise<{ slug: string; tone: "string"; }>'
    assert props["sizes"].type == "Record<string, { a: string; }>"


INDEXED = """
type Dict = { [key: string]: number };
interface Entry { id: string }
interface Registry { readonly [id: number]: Entry; name: string }
interface Named extends Registry { label: string }
"""


def test_index_signatures_are_documented():
    node = _resolve(INDEXED, "Dict")

    assert isinstance(node, ObjectNode)
    assert node.properties == []
    (signature,) = node.index_signatures
    assert signature.type == "[key: string]: number"
    assert (signature.parameter.name, signature.parameter.kind) == ("key", Kind.STRING)
    assert signature.value.kind == Kind.NUMBER
    assert signature.is_readonly is None

    data = node.to_dict()["indexSignatures"][0]
    assert data["kind"] == "IndexSignature"
    assert data["value"]["kind"] == "Number"
    assert "isReadonly" not in data


def test_index_signatures_are_inherited():
    node = _resolve(INDEXED, "Named")

    assert [p.name for p in node.properties] == ["label", "name"]
    (signature,) = node.index_signatures
    assert signature.is_readonly is True
    assert (signature.parameter.name, signature.parameter.kind) == ("id", Kind.NUMBER)
    assert isinstance(signature.value, ObjectNode)
    assert [p.name for p in signature.value.properties] == ["id"]


def test_objects_without_index_signatures_omit_them():
    node = _resolve("type Props = { a: string };", "Props")

    assert node.index_signatures is None
    assert "indexSignatures" not in node.to_dict()


def test_generic_interface_instantiation():
    text = """
    interface Box<T> { value: T; items: T[] }
    type Boxed = Box<string>;
    """
    node = _resolve(text, "Boxed")

    assert node.type == "Box<string>"
    props = _by_name(node.properties)
    assert props["value"].kind == Kind.STRING
    assert props["items"].element.kind == Kind.STRING


def test_free_type_parameter_is_reference():
    node = _resolve("interface Box<T> { value: T }", "Box")

    value = _by_name(node.properties)["value"]
    assert isinstance(value, ReferenceNode)
    assert value.type == "T"


def test_class_scenario():
    node = _resolve("class Counter { count: number = 0; increment() {} }", "Counter")

    assert isinstance(node, ClassNode)
    assert [(p.name, p.default_value) for p in node.properties] == [("count", 0)]
    method = node.methods[0]
    assert method.name == "increment"
    assert method.signatures[0].parameters == []
    assert method.signatures[0].return_type == "void"
    assert node.constructors is None


STORE = """
export class Store {
  static instances: number = 0;
  private secret = "x";
  constructor(public readonly name: string, size: number) {}
  get label(): string { return this.name; }
  set label(value: string) {}
  load(id: string): Promise<string>;
  load(id: number): Promise<string>;
  load(id: any): Promise<string> { return Promise.resolve(String(id)); }
}
"""


def test_class_members():
    node = _resolve(STORE, "Store")

    props = _by_name(node.properties)
    assert list(props) == ["instances", "secret", "name"]
    assert props["instances"].scope == Scope.STATIC
    assert props["secret"].visibility == Visibility.PRIVATE
    assert props["secret"].kind == Kind.STRING
    assert props["name"].is_readonly is True
    assert props["name"].visibility == Visibility.PUBLIC

    assert [(a.name, a.accessor) for a in node.accessors] == [
        ("label", "get"),
        ("label", "set"),
    ]
    assert node.accessors[0].return_type == "string"
    assert node.accessors[1].parameter.kind == Kind.STRING

    assert [m.name for m in node.methods] == ["load"]
    assert len(node.methods[0].signatures) == 2

    assert len(node.constructors) == 1
    assert [p.name for p in node.constructors[0].parameters] == ["name", "size"]


def test_private_members_can_be_hidden():
    node = _resolve(STORE, "Store", settings=ResolverSettings(include_private_members=False))

    assert "secret" not in _by_name(node.properties)


def test_inherited_class_members():
    text = """
    class Base { id: string = "base"; describe(): string { return this.id; } }
    export class Child extends Base { extra?: number }
    """
    node = _resolve(text, "Child")

    assert [p.name for p in node.properties] == ["extra", "id"]
    assert [m.name for m in node.methods] == ["describe"]


def test_named_tuple_elements():
    node = _resolve("type Row = [name: string, age?: number, ...rest: boolean[]];", "Row")

    assert isinstance(node, TupleNode)
    assert [e.name for e in node.elements] == ["name", "age", "rest"]
    assert [e.kind for e in node.elements] == [Kind.STRING, Kind.NUMBER, Kind.ARRAY]
    assert node.elements[1].is_optional is True
    assert node.elements[2].is_rest is True
    assert [e.type for e in node.elements] == ["string", "number", "Array<boolean>"]


INTERSECTION = """
interface Base { id: string }
type Entity = Base & { name: string };
"""


def test_intersection_flattens_anonymous_constituents():
    node = _resolve(INTERSECTION, "Entity")

    assert isinstance(node, IntersectionNode)
    assert [(p.kind, p.name) for p in node.properties] == [
        (Kind.OBJECT, "Base"),
        (Kind.STRING, "name"),
    ]


def test_intersection_nest_all_policy():
    node = _resolve(
        INTERSECTION,
        "Entity",
        settings=ResolverSettings(intersection_policy=IntersectionPolicy.NEST_ALL),
    )

    assert [p.kind for p in node.properties] == [Kind.OBJECT, Kind.OBJECT]
    assert [p.name for p in node.properties[1].properties] == ["name"]


# --------------------------------------------------------------------------- #
# Simplified types
# --------------------------------------------------------------------------- #
def test_partial_is_simplified():
    text = """
    interface Props { a: string; b: number }
    type Loose = Partial<Props>;
    """
    node = _resolve(text, "Loose")

    assert isinstance(node, ObjectNode)
    assert [(p.name, p.is_optional) for p in node.properties] == [("a", True), ("b", True)]


def test_pick_and_omit():
    text = """
    interface Props { a: string; b: number; c: boolean }
    type Picked = Pick<Props, "a" | "c">;
    type Omitted = Omit<Props, "a">;
    """
    assert [p.name for p in _resolve(text, "Picked").properties] == ["a", "c"]
    assert [p.name for p in _resolve(text, "Omitted").properties] == ["b", "c"]


def test_mapped_type_over_free_parameter_is_nothing():
    assert _resolve("type Mirror<T> = { [K in keyof T]: T[K] };", "Mirror") is None


def test_mapped_type_over_literal_keys():
    node = _resolve('type Flags = { [K in "a" | "b"]?: boolean };', "Flags")

    assert [(p.name, p.kind, p.is_optional) for p in node.properties] == [
        ("a", Kind.BOOLEAN, True),
        ("b", Kind.BOOLEAN, True),
    ]


def test_exclude_filters_union():
    node = _resolve('type Mode = Exclude<"a" | "b" | "c", "b">;', "Mode")

    assert [m.value for m in node.members] == ["a", "c"]


def test_keyof_object():
    text = """
    interface Props { a: string; b: number }
    type Keys = keyof Props;
    """
    node = _resolve(text, "Keys")

    assert isinstance(node, UnionNode)
    assert [m.value for m in node.members] == ["a", "b"]


def test_as_const_object():
    node = _resolve('export const config = { mode: "dark", retries: 3 } as const;', "config")

    assert isinstance(node, ObjectNode)
    assert node.name == "config"
    props = _by_name(node.properties)
    assert props["mode"].value == "dark"
    assert props["mode"].is_readonly is True
    assert props["retries"].value == 3


# --------------------------------------------------------------------------- #
# Documentation
# --------------------------------------------------------------------------- #
def test_jsdoc_description_and_tags():
    text = """
    /**
     * Props of the button.
     * @public
     */
    export interface ButtonProps {
      /** Visible label. */
      label: string;
      /**
       * Click handler.
       * @param event the click event
       */
      onClick?: (event: string) => void;
    }
    """
    node = _resolve(text, "ButtonProps")

    assert node.description == "Props of the button."
    assert [(t.tag_name, t.text) for t in node.tags] == [("public", None)]

    props = _by_name(node.properties)
    assert props["label"].description == "Visible label."
    on_click = props["onClick"]
    assert isinstance(on_click, FunctionNode)
    assert on_click.is_optional is True
    assert on_click.description == "Click handler."
    assert [(t.tag_name, t.text) for t in on_click.tags] == [
        ("param", "event the click event")
    ]


def test_variable_uses_statement_jsdoc():
    text = """
    /** Default settings. */
    export const defaults = { retries: 3 };
    """
    node = _resolve(text, "defaults")

    assert node.description == "Default settings."
    assert _by_name(node.properties)["retries"].kind == Kind.NUMBER


# --------------------------------------------------------------------------- #
# Module functions and errors
# --------------------------------------------------------------------------- #
def test_module_level_helpers():
    oracle = _make_oracle({"test.ts": "interface Props { a: string; b?: number }"})
    declaration = oracle.get_declaration_by_name("test.ts", "Props")
    type = oracle.get_type_of_declaration(declaration)

    node = resolve_type(oracle, type, declaration)
    properties = resolve_type_properties(oracle, type)

    assert node.name == "Props"
    assert [p.name for p in properties] == ["a", "b"]
    assert properties[1].is_optional is True


def test_properties_of_non_object_are_empty():
    oracle = _make_oracle({"test.ts": "type U = string | number;"})
    declaration = oracle.get_declaration_by_name("test.ts", "U")

    assert resolve_type_properties(oracle, oracle.get_type_of_declaration(declaration)) == []


def test_parse_errors_propagate():
    with pytest.raises(OracleError):
        _resolve("export interface Broken { a: string; b: }", "Broken")


def test_imported_declaration():
    node = _resolve(
        'import { Props } from "./types";\nexport type Alias = Props;',
        "Alias",
        extra={"types.ts": "export interface Props { id: number }"},
    )

    assert node.name == "Alias"
    assert node.type == "Props"
    assert _by_name(node.properties)["id"].file_path == "types.ts"
