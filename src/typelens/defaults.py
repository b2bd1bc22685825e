import math
from typing import Any, Callable, Dict, Iterable, Mapping, Optional

from typelens.oracle.syntax import (
    MAX_SAFE_INTEGER,
    child_by_field,
    decode_escape,
    get_node_text,
    number_value,
    string_value,
)


class _Unresolved:
    """Marker for initializers that cannot be evaluated statically."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "UNRESOLVED"

    def __bool__(self) -> bool:
        return False


# Distinct from `None`, which stands for a JS `null` default.
UNRESOLVED = _Unresolved()

Lookup = Callable[[str], Optional[Any]]

_WRAPPERS = (
    "parenthesized_expression",
    "as_expression",
    "satisfies_expression",
    "non_null_expression",
)


def is_resolved(value: Any) -> bool:
    return value is not UNRESOLVED


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _js_string(value: Any) -> Any:
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    if value is None:
        return "null"
    if _is_number(value):
        if isinstance(value, float):
            if math.isnan(value):
                return "NaN"
            if math.isinf(value):
                return "Infinity" if value > 0 else "-Infinity"
            if value.is_integer() and abs(value) < 1e21:
                return str(int(value))
        return str(value)
    if isinstance(value, list):
        return ",".join("" if v is None else _js_string(v) for v in value)
    return UNRESOLVED


def _truthy(value: Any) -> bool:
    if value is None or value is False:
        return False
    if _is_number(value):
        return value != 0 and not (isinstance(value, float) and math.isnan(value))
    if isinstance(value, str):
        return value != ""
    return True


def _normalize_number(value: Any) -> Any:
    if isinstance(value, float) and value.is_integer() and abs(value) <= MAX_SAFE_INTEGER:
        return int(value)
    return value


def _strict_equal(left: Any, right: Any) -> bool:
    if _is_number(left) and _is_number(right):
        return left == right
    return left == right and type(left) is type(right)


def _is_odd(value: float) -> bool:
    return value.is_integer() and math.fmod(value, 2) != 0


def _divide(left: float, right: float) -> float:
    if right != 0:
        return left / right
    if left == 0 or math.isnan(left):
        return math.nan
    return math.copysign(math.inf, left) * math.copysign(1.0, right)


def _remainder(left: float, right: float) -> float:
    if right == 0 or math.isinf(left) or math.isnan(left) or math.isnan(right):
        return math.nan
    return math.fmod(left, right)


def _power(base: float, exponent: float) -> float:
    if math.isnan(exponent) or (abs(base) == 1 and math.isinf(exponent)):
        return math.nan
    try:
        return math.pow(base, exponent)
    except OverflowError:
        return -math.inf if base < 0 and _is_odd(exponent) else math.inf
    except ValueError:
        # zero to a negative power, or a negative base to a fractional power
        if base == 0:
            negative = math.copysign(1.0, base) < 0 and _is_odd(exponent)
            return -math.inf if negative else math.inf
        return math.nan


_ARITHMETIC: Dict[str, Callable[[float, float], float]] = {
    "+": lambda a, b: a + b,
    "-": lambda a, b: a - b,
    "*": lambda a, b: a * b,
    "/": _divide,
    "%": _remainder,
    "**": _power,
}


def _int32(value: int) -> int:
    value &= 0xFFFFFFFF
    return value - 0x100000000 if value & 0x80000000 else value


_BITWISE: Dict[str, Callable[[int, int], int]] = {
    "<<": lambda a, b: _int32(a << (b & 31)),
    ">>": lambda a, b: a >> (b & 31),
    "&": lambda a, b: a & b,
    "|": lambda a, b: a | b,
    "^": lambda a, b: a ^ b,
}


class DefaultValueExtractor:
    """
    Evaluates literal initializers into plain Python values.

    Objects, arrays, primitives, template strings, `as const` and
    `Object.freeze` wrappers, simple operators and identifiers bound to
    `const` initializers (through `lookup`) are evaluated. Anything else
    yields `UNRESOLVED`; an object or array with an unresolved part is
    unresolved as a whole.
    """

    max_depth = 32

    def __init__(
        self,
        lookup: Optional[Lookup] = None,
        constants: Optional[Mapping[str, Any]] = None,
    ):
        self.lookup = lookup
        self.constants = dict(constants or {})
        self._resolving: set[str] = set()

    def extract_default(self, expression: Any) -> Any:
        if expression is None:
            return UNRESOLVED
        return self._evaluate(expression, 0)

    def extract_declaration_default(
        self, initializer: Any, patterns: Iterable[Any] = ()
    ) -> Any:
        """
        Default of a parameter or variable: the initializer's value merged with
        the defaults declared by its object binding patterns. Initializer
        entries win over pattern defaults.
        """
        value = self.extract_default(initializer)
        pattern_defaults: Dict[str, Any] = {}
        for pattern in patterns:
            pattern_defaults.update(self.pattern_defaults(pattern))
        if not pattern_defaults:
            return value
        if isinstance(value, dict):
            return {**pattern_defaults, **value}
        if value is UNRESOLVED:
            return pattern_defaults
        return value

    def pattern_defaults(self, pattern: Any) -> Dict[str, Any]:
        """Defaults declared in an object binding pattern, keyed by property name."""
        defaults: Dict[str, Any] = {}
        if pattern is None or pattern.type != "object_pattern":
            return defaults

        for child in pattern.named_children:
            if child.type == "object_assignment_pattern":
                left = child_by_field(child, "left")
                right = child_by_field(child, "right")
                if left is None or left.type != "shorthand_property_identifier_pattern":
                    continue
                value = self.extract_default(right)
                if value is not UNRESOLVED:
                    defaults[get_node_text(left)] = value
            elif child.type == "pair_pattern":
                key = _property_key(child.child_by_field_name("key"))
                target = child.child_by_field_name("value")
                if key is None or target is None:
                    continue
                if target.type == "assignment_pattern":
                    value = self.extract_default(target.child_by_field_name("right"))
                    nested_pattern = target.child_by_field_name("left")
                    nested = self.pattern_defaults(nested_pattern)
                    if isinstance(value, dict) and nested:
                        value = {**nested, **value}
                    elif value is UNRESOLVED and nested:
                        value = nested
                    if value is not UNRESOLVED:
                        defaults[key] = value
                elif target.type == "object_pattern":
                    nested = self.pattern_defaults(target)
                    if nested:
                        defaults[key] = nested
        return defaults

    # Evaluation
    def _evaluate(self, node: Any, depth: int) -> Any:
        if node is None or depth > self.max_depth:
            return UNRESOLVED

        kind = node.type
        if kind == "string":
            return string_value(node)
        if kind == "number":
            return number_value(get_node_text(node))
        if kind == "true":
            return True
        if kind == "false":
            return False
        if kind == "null":
            return None
        if kind == "undefined":
            return UNRESOLVED
        if kind in _WRAPPERS:
            inner = node.named_children[0] if node.named_children else None
            return self._evaluate(inner, depth + 1) if inner is not None else UNRESOLVED
        if kind == "identifier":
            return self._identifier(get_node_text(node), depth)
        if kind == "template_string":
            return self._template(node, depth)
        if kind == "object":
            return self._object(node, depth)
        if kind == "array":
            return self._array(node, depth)
        if kind == "unary_expression":
            return self._unary(node, depth)
        if kind == "binary_expression":
            return self._binary(node, depth)
        if kind == "ternary_expression":
            condition = self._evaluate(node.child_by_field_name("condition"), depth + 1)
            if condition is UNRESOLVED:
                return UNRESOLVED
            branch = "consequence" if _truthy(condition) else "alternative"
            return self._evaluate(node.child_by_field_name(branch), depth + 1)
        if kind == "call_expression":
            return self._call(node, depth)
        if kind == "member_expression":
            target = self._evaluate(node.child_by_field_name("object"), depth + 1)
            prop = get_node_text(node.child_by_field_name("property"))
            if isinstance(target, dict):
                return target.get(prop, UNRESOLVED)
            if isinstance(target, (list, str)) and prop == "length":
                return len(target)
            return UNRESOLVED
        return UNRESOLVED

    def _identifier(self, name: str, depth: int) -> Any:
        if name == "undefined":
            return UNRESOLVED
        if name == "NaN":
            return math.nan
        if name == "Infinity":
            return math.inf
        if name in self.constants:
            return self.constants[name]
        if self.lookup is None or name in self._resolving:
            return UNRESOLVED
        expression = self.lookup(name)
        if expression is None:
            return UNRESOLVED
        self._resolving.add(name)
        try:
            return self._evaluate(expression, depth + 1)
        finally:
            self._resolving.discard(name)

    def _template(self, node: Any, depth: int) -> Any:
        parts = []
        for child in node.named_children:
            if child.type == "template_substitution":
                inner = child.named_children[0] if child.named_children else None
                value = self._evaluate(inner, depth + 1) if inner is not None else UNRESOLVED
                if value is UNRESOLVED or isinstance(value, dict):
                    return UNRESOLVED
                text = _js_string(value)
                if text is UNRESOLVED:
                    return UNRESOLVED
                parts.append(text)
            elif child.type == "escape_sequence":
                parts.append(decode_escape(get_node_text(child)))
            else:
                parts.append(get_node_text(child))
        if not node.named_children:
            return get_node_text(node)[1:-1]
        return "".join(parts)

    def _object(self, node: Any, depth: int) -> Any:
        result: Dict[str, Any] = {}
        for child in node.named_children:
            if child.type == "comment":
                continue
            if child.type == "pair":
                key_node = child.child_by_field_name("key")
                if key_node is not None and key_node.type == "computed_property_name":
                    inner = key_node.named_children[0] if key_node.named_children else None
                    key_value = self._evaluate(inner, depth + 1) if inner is not None else UNRESOLVED
                    key = _js_string(key_value) if key_value is not UNRESOLVED else UNRESOLVED
                else:
                    key = _property_key(key_node)
                if key is None or key is UNRESOLVED:
                    return UNRESOLVED
                value = self._evaluate(child.child_by_field_name("value"), depth + 1)
                if value is UNRESOLVED:
                    return UNRESOLVED
                result[key] = value
            elif child.type == "shorthand_property_identifier":
                name = get_node_text(child)
                value = self._identifier(name, depth)
                if value is UNRESOLVED:
                    return UNRESOLVED
                result[name] = value
            elif child.type == "spread_element":
                inner = child.named_children[0] if child.named_children else None
                value = self._evaluate(inner, depth + 1) if inner is not None else UNRESOLVED
                if not isinstance(value, dict):
                    return UNRESOLVED
                result.update(value)
            else:
                return UNRESOLVED
        return result

    def _array(self, node: Any, depth: int) -> Any:
        items = []
        for child in node.named_children:
            if child.type == "comment":
                continue
            if child.type == "spread_element":
                inner = child.named_children[0] if child.named_children else None
                value = self._evaluate(inner, depth + 1) if inner is not None else UNRESOLVED
                if isinstance(value, str):
                    value = list(value)
                if not isinstance(value, list):
                    return UNRESOLVED
                items.extend(value)
                continue
            value = self._evaluate(child, depth + 1)
            if value is UNRESOLVED:
                return UNRESOLVED
            items.append(value)
        return items

    def _unary(self, node: Any, depth: int) -> Any:
        operator = get_node_text(node.child_by_field_name("operator"))
        value = self._evaluate(node.child_by_field_name("argument"), depth + 1)
        if value is UNRESOLVED:
            return UNRESOLVED
        if operator == "!":
            return not _truthy(value)
        if operator == "-" and _is_number(value):
            return -value
        if operator == "+" and _is_number(value):
            return value
        if operator == "~" and isinstance(value, int) and not isinstance(value, bool):
            return ~value
        return UNRESOLVED

    def _binary(self, node: Any, depth: int) -> Any:
        operator = get_node_text(node.child_by_field_name("operator"))
        left = self._evaluate(node.child_by_field_name("left"), depth + 1)
        if left is UNRESOLVED:
            return UNRESOLVED

        if operator == "??":
            if left is not None:
                return left
            return self._evaluate(node.child_by_field_name("right"), depth + 1)
        if operator == "||":
            if _truthy(left):
                return left
            return self._evaluate(node.child_by_field_name("right"), depth + 1)
        if operator == "&&":
            if not _truthy(left):
                return left
            return self._evaluate(node.child_by_field_name("right"), depth + 1)

        right = self._evaluate(node.child_by_field_name("right"), depth + 1)
        if right is UNRESOLVED:
            return UNRESOLVED

        if operator == "+":
            if _is_number(left) and _is_number(right):
                return _normalize_number(float(left) + float(right))
            if isinstance(left, str) or isinstance(right, str):
                lhs, rhs = _js_string(left), _js_string(right)
                if lhs is UNRESOLVED or rhs is UNRESOLVED:
                    return UNRESOLVED
                return lhs + rhs
            return UNRESOLVED
        if operator in ("===", "=="):
            return _strict_equal(left, right)
        if operator in ("!==", "!="):
            return not _strict_equal(left, right)

        if not (_is_number(left) and _is_number(right)):
            return UNRESOLVED
        if operator in _ARITHMETIC:
            return _normalize_number(_ARITHMETIC[operator](float(left), float(right)))
        if operator == "<":
            return left < right
        if operator == ">":
            return left > right
        if operator == "<=":
            return left <= right
        if operator == ">=":
            return left >= right
        if operator in _BITWISE and all(float(v).is_integer() for v in (left, right)):
            return _int32(_BITWISE[operator](_int32(int(left)), _int32(int(right))))
        return UNRESOLVED

    def _call(self, node: Any, depth: int) -> Any:
        function = node.child_by_field_name("function")
        arguments = node.child_by_field_name("arguments")
        if function is None or arguments is None:
            return UNRESOLVED
        args = [a for a in arguments.named_children if a.type != "comment"]
        if get_node_text(function) == "Object.freeze" and len(args) == 1:
            return self._evaluate(args[0], depth + 1)
        return UNRESOLVED


def _property_key(node: Any) -> Optional[str]:
    if node is None:
        return None
    if node.type == "string":
        return string_value(node)
    if node.type == "number":
        value = number_value(get_node_text(node))
        return str(value)
    if node.type in (
        "property_identifier",
        "shorthand_property_identifier_pattern",
        "private_property_identifier",
        "identifier",
    ):
        return get_node_text(node)
    return None


def extract_default(expression: Any, lookup: Optional[Lookup] = None) -> Any:
    """Evaluate `expression`; returns `UNRESOLVED` when it is not a literal."""
    return DefaultValueExtractor(lookup).extract_default(expression)
