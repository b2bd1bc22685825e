import math

import pytest

from typelens.defaults import (
    UNRESOLVED,
    DefaultValueExtractor,
    extract_default,
    is_resolved,
)
from typelens.oracle.sources import parse_source


def _declarators(text):
    source = parse_source("test.ts", text, tsx=False)
    found = {}
    stack = [source.root]
    while stack:
        node = stack.pop()
        if node.type == "variable_declarator":
            found[node.child_by_field_name("name").text.decode()] = node
        stack.extend(node.children)
    return found


def _value(expression, **kwargs):
    declarator = _declarators(f"const x = {expression};")["x"]
    return DefaultValueExtractor(**kwargs).extract_default(
        declarator.child_by_field_name("value")
    )


def _pattern(text):
    source = parse_source("test.ts", text, tsx=False)
    stack = [source.root]
    while stack:
        node = stack.pop()
        if node.type == "object_pattern":
            return node
        stack.extend(reversed(node.children))
    raise AssertionError("no object pattern")


# --------------------------------------------------------------------------- #
# Literals
# --------------------------------------------------------------------------- #
@pytest.mark.parametrize(
    "expression, expected",
    [
        ("'hello'", "hello"),
        ('"a\\nb"', "a\nb"),
        ("42", 42),
        ("1.5", 1.5),
        ("0x10", 16),
        ("1_000", 1000),
        ("1e3", 1000),
        ("-3", -3),
        ("true", True),
        ("null", None),
        ("`plain`", "plain"),
        ("[1, 'a', false]", [1, "a", False]),
        ("{ a: 1, 'b-c': [2], nested: { d: null } }", {"a": 1, "b-c": [2], "nested": {"d": None}}),
        ("{ size: 1 } as const", {"size": 1}),
        ("Object.freeze({ mode: 'dark' })", {"mode": "dark"}),
        ("(5)", 5),
    ],
)
def test_literals(expression, expected):
    assert _value(expression) == expected


def test_special_numbers():
    assert math.isnan(_value("NaN"))
    assert _value("Infinity") == math.inf
    assert _value("-Infinity") == -math.inf


def test_null_is_a_value():
    value = _value("null")

    assert value is None
    assert is_resolved(value)


@pytest.mark.parametrize(
    "expression",
    [
        "undefined",
        "fetchValue()",
        "new Date()",
        "someIdentifier",
        "`id-${someIdentifier}`",
        "{ a: 1, b: compute() }",
        "[1, other]",
        "() => 1",
    ],
)
def test_unresolved(expression):
    value = _value(expression)

    assert value is UNRESOLVED
    assert not is_resolved(value)
    assert not value


# --------------------------------------------------------------------------- #
# Operators
# --------------------------------------------------------------------------- #
@pytest.mark.parametrize(
    "expression, expected",
    [
        ("1 + 2 * 3", 7),
        ("'a' + 1", "a1"),
        ("`n=${2 + 2}`", "n=4"),
        ("10 / 4", 2.5),
        ("2 ** 10", 1024),
        ("7 % 3", 1),
        ("!0", True),
        ("-(-4)", 4),
        ("null ?? 'fallback'", "fallback"),
        ("0 || 5", 5),
        ("'' && 'never'", ""),
        ("1 === 1 ? 'yes' : 'no'", "yes"),
        ("1 << 4", 16),
        ("6 & 3", 2),
        ("[1, 2, 3].length", 3),
        ("{ a: { b: 2 } }.a.b", 2),
    ],
)
def test_operators(expression, expected):
    assert _value(expression) == expected


@pytest.mark.parametrize(
    "expression, expected",
    [
        ("0 ** -1", math.inf),
        ("1e300 ** 2", math.inf),
        ("(-1e300) ** 3", -math.inf),
        ("1e300 * 1e300", math.inf),
        ("1 / 0", math.inf),
        ("-1 / 0", -math.inf),
    ],
)
def test_overflowing_arithmetic_is_infinite(expression, expected):
    assert _value(expression) == expected


@pytest.mark.parametrize(
    "expression",
    ["(-8) ** 0.5", "0 / 0", "5 % 0", "Infinity % 2", "1 ** Infinity"],
)
def test_undefined_arithmetic_is_nan(expression):
    value = _value(expression)

    assert isinstance(value, float)
    assert math.isnan(value)


def test_large_numbers_stay_floats():
    assert isinstance(_value("1e300"), float)
    assert isinstance(_value("100000000000000000000"), float)
    assert _value("2 ** 52") == 4503599627370496
    assert isinstance(_value("2 ** 52"), int)
    assert _value("`${1e21}`") == "1e+21"
    assert _value("1 === 1.0") is True


def test_spreads():
    assert _value("{ ...{ a: 1, b: 2 }, b: 3 }") == {"a": 1, "b": 3}
    assert _value("[0, ...[1, 2]]") == [0, 1, 2]


# --------------------------------------------------------------------------- #
# Identifiers
# --------------------------------------------------------------------------- #
def test_lookup_of_constants():
    declarators = _declarators("const BASE = 4;\nconst SCALE = BASE * 2;\nconst x = SCALE + 1;")

    def lookup(name):
        node = declarators.get(name)
        return node.child_by_field_name("value") if node is not None else None

    value = extract_default(declarators["x"].child_by_field_name("value"), lookup)
    assert value == 9


def test_self_reference_is_unresolved():
    declarators = _declarators("const LOOP = LOOP + 1;")

    def lookup(name):
        return declarators[name].child_by_field_name("value")

    assert extract_default(declarators["LOOP"].child_by_field_name("value"), lookup) is UNRESOLVED


def test_known_constants():
    assert _value("Low + 10", constants={"Low": 1}) == 11


# --------------------------------------------------------------------------- #
# Binding patterns
# --------------------------------------------------------------------------- #
def test_pattern_defaults():
    pattern = _pattern(
        "function f({ a = 1, b, c: renamed = 'x', d: { e = true } = {}, f: { g = 2 } }) {}"
    )

    defaults = DefaultValueExtractor().pattern_defaults(pattern)

    assert defaults == {"a": 1, "c": "x", "d": {"e": True}, "f": {"g": 2}}


def test_declaration_default_merges_initializer():
    source = parse_source("test.ts", "const { a = 1, b = 2 } = { b: 5 };", tsx=False)
    (declarator,) = source.root.named_children[0].named_children

    extractor = DefaultValueExtractor()
    value = extractor.extract_declaration_default(
        declarator.child_by_field_name("value"), [declarator.child_by_field_name("name")]
    )

    assert value == {"a": 1, "b": 5}


def test_declaration_default_without_patterns():
    declarator = _declarators("const x = 3;")["x"]
    extractor = DefaultValueExtractor()

    assert extractor.extract_declaration_default(declarator.child_by_field_name("value")) == 3
    assert extractor.extract_declaration_default(None) is UNRESOLVED
