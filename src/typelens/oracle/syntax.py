import math
import re
from typing import Iterable, List, Optional

import tree_sitter as ts
import tree_sitter_typescript as tsts

from typelens.models import LineColumn, Position

TS_LANGUAGE = ts.Language(tsts.language_typescript())
TSX_LANGUAGE = ts.Language(tsts.language_tsx())

_parsers: dict[bool, ts.Parser] = {}


def get_parser(tsx: bool) -> ts.Parser:
    parser = _parsers.get(tsx)
    if parser is None:
        parser = ts.Parser(TSX_LANGUAGE if tsx else TS_LANGUAGE)
        _parsers[tsx] = parser
    return parser


def get_node_text(node) -> str:
    """
    Get text of the tree sitter node
    """
    if not node or not node.text:
        return ""

    return node.text.decode("utf-8")


def child_by_field(node: ts.Node, field: str, *fallback_types: str) -> Optional[ts.Node]:
    """
    Field lookup with a scan over named children for grammars that do not
    expose the field.
    """
    child = node.child_by_field_name(field)
    if child is not None or not fallback_types:
        return child
    return first_child_of_type(node, *fallback_types)


def first_child_of_type(node: ts.Node, *types: str) -> Optional[ts.Node]:
    return next((c for c in node.named_children if c.type in types), None)


def children_of_type(node: ts.Node, *types: str) -> List[ts.Node]:
    return [c for c in node.named_children if c.type in types]


def has_token(node: ts.Node, *tokens: str) -> bool:
    """True if `node` has a direct child token (named or not) with one of the given types."""
    return any(c.type in tokens for c in node.children)


def node_position(node: ts.Node) -> Position:
    """1-based line/column span of a node."""
    return Position(
        start=LineColumn(line=node.start_point[0] + 1, column=node.start_point[1] + 1),
        end=LineColumn(line=node.end_point[0] + 1, column=node.end_point[1] + 1),
    )


def iter_ancestors(node: ts.Node) -> Iterable[ts.Node]:
    parent = node.parent
    while parent is not None:
        yield parent
        parent = parent.parent


def find_error(node: ts.Node) -> Optional[ts.Node]:
    """First ERROR or MISSING node below `node`, if any."""
    if not node.has_error:
        return None
    if node.type == "ERROR" or node.is_missing:
        return node
    for child in node.children:
        found = find_error(child)
        if found is not None:
            return found
    return node


def unquote(text: str) -> str:
    if len(text) >= 2 and text[0] == text[-1] and text[0] in "\"'`":
        return text[1:-1]
    return text


_ESCAPES = {"n": "\n", "t": "\t", "r": "\r", "b": "\b", "f": "\f", "v": "\v", "0": "\0"}


def decode_escape(text: str) -> str:
    ch = text[1:]
    if ch in _ESCAPES:
        return _ESCAPES[ch]
    if ch.startswith("u{") and ch.endswith("}"):
        return chr(int(ch[2:-1], 16))
    if ch.startswith("u") and len(ch) == 5:
        return chr(int(ch[1:], 16))
    if ch.startswith("x") and len(ch) == 3:
        return chr(int(ch[1:], 16))
    return ch


def string_value(node: ts.Node) -> str:
    """Value of a `string` literal node with simple escapes decoded."""
    parts: List[str] = []
    for child in node.named_children:
        text = get_node_text(child)
        parts.append(decode_escape(text) if child.type == "escape_sequence" else text)
    if not node.named_children:
        return unquote(get_node_text(node))
    return "".join(parts)


MAX_SAFE_INTEGER = 2**53 - 1
_RADIX_PREFIXES = {"0x": 16, "0o": 8, "0b": 2}


def number_value(text: str):
    """Numeric value of a JS number literal; safe integers stay ints."""
    raw = text.replace("_", "")
    if raw.endswith("n"):
        raw = raw[:-1]
    lowered = raw.lower()
    radix = _RADIX_PREFIXES.get(lowered[:2])
    if radix is None and any(ch in lowered for ch in ".e"):
        value = float(raw)
        if value.is_integer() and abs(value) <= MAX_SAFE_INTEGER:
            return int(value)
        return value
    integer = int(raw[2:], radix) if radix is not None else int(raw)
    if abs(integer) <= MAX_SAFE_INTEGER:
        return integer
    try:
        return float(integer)
    except OverflowError:
        return math.inf


def dedent_comment(text: str) -> str:
    """
    Dedents a comment string by calculating the minimum indentation
    from all non-empty lines and removing it.
    """
    lines = text.splitlines()
    if not lines:
        return ""

    min_indent: Optional[int] = None

    for line in lines:
        stripped = line.lstrip()
        if stripped:
            indent = len(line) - len(stripped)
            min_indent = indent if min_indent is None else min(min_indent, indent)

    if min_indent is None:
        return "\n".join(lines)

    return "\n".join(line[min_indent:] for line in lines)


_JSDOC_OPEN = re.compile(r"^/\*\*+")
_JSDOC_CLOSE = re.compile(r"\*+/$")
_GUTTER = re.compile(r"^\s*\* ?")


def strip_jsdoc(comment: str) -> str:
    """
    Remove the `/** */` delimiters and leading `*` gutters of a JSDoc block.
    """
    body = _JSDOC_CLOSE.sub("", _JSDOC_OPEN.sub("", comment.strip()))
    lines = [_GUTTER.sub("", line) for line in body.splitlines()]
    return dedent_comment("\n".join(lines)).strip()


def leading_jsdoc(node: ts.Node) -> Optional[str]:
    """
    Nearest `/** ... */` comment directly preceding `node` among its siblings.
    Only comments separate the two; any other statement breaks the search.
    """
    prev = node.prev_sibling
    while prev is not None and prev.type == "comment":
        text = get_node_text(prev)
        if text.startswith("/**"):
            return text
        prev = prev.prev_sibling
    return None
