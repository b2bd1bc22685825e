import re
from typing import List, Optional, Tuple

from pydantic import BaseModel, Field

from typelens.models import JsDocTag, Position
from typelens.oracle.base import (
    DeclarationKind,
    OracleDeclaration,
    OracleSymbol,
    TypeOracle,
)
from typelens.oracle.syntax import strip_jsdoc

_TAG = re.compile(r"^@([A-Za-z][\w-]*)\s*(.*)$")


class SymbolMetadata(BaseModel):
    name: Optional[str] = None
    file_path: Optional[str] = None
    position: Optional[Position] = None
    is_optional: bool = False
    is_readonly: bool = False
    is_in_node_modules: bool = False
    is_exported: bool = False
    is_external: bool = False  # declared in node_modules or a library file
    is_private: bool = False
    description: Optional[str] = None
    tags: List[JsDocTag] = Field(default_factory=list)


def parse_jsdoc(comment: Optional[str]) -> Tuple[Optional[str], List[JsDocTag]]:
    """
    Split a JSDoc block into its description and block tags.

    The description is the text before the first block tag. Each `@name text`
    line opens a tag; following lines belong to it until the next tag.
    Inline tags such as `{@link X}` stay part of the text.
    """
    if not comment:
        return None, []

    description: List[str] = []
    tags: List[Tuple[str, List[str]]] = []
    for line in strip_jsdoc(comment).splitlines():
        match = _TAG.match(line.strip())
        if match:
            tags.append((match.group(1), [match.group(2)] if match.group(2) else []))
        elif tags:
            tags[-1][1].append(line.strip())
        else:
            description.append(line)

    text = "\n".join(description).strip() or None
    return text, [
        JsDocTag(tag_name=name, text="\n".join(lines).strip() or None)
        for name, lines in tags
    ]


class SymbolMetadataProvider:
    """
    Normalizes oracle symbols into `SymbolMetadata`, the input of filter
    predicates and the source of descriptions and tags.
    """

    def __init__(self, oracle: TypeOracle):
        self.oracle = oracle

    def describe_symbol(
        self, symbol: OracleSymbol, enclosing: Optional[OracleDeclaration] = None
    ) -> SymbolMetadata:
        declaration = self.oracle.get_declaration(symbol) or enclosing

        name = symbol.name
        if name is not None and name.startswith("__"):
            name = None

        file_path = None
        position = None
        if declaration is not None:
            location = self.oracle.get_source_position(declaration)
            if location is not None:
                file_path = location.file_path
                position = location.position

        description, tags = parse_jsdoc(self.describe_declaration(declaration))

        in_node_modules = bool(file_path) and self.oracle.is_in_node_modules(file_path)
        is_library = (
            declaration is not None and declaration.kind == DeclarationKind.LIBRARY
        )
        return SymbolMetadata(
            name=name,
            file_path=file_path,
            position=position,
            is_optional=symbol.is_optional,
            is_readonly=symbol.is_readonly,
            is_in_node_modules=in_node_modules,
            is_exported=(
                declaration is not None
                and not is_library
                and self.oracle.is_exported(declaration)
            ),
            is_external=in_node_modules or is_library,
            is_private=(
                symbol.visibility == "private"
                or (name or "").startswith(("_", "#"))
            ),
            description=description,
            tags=tags,
        )

    def describe_declaration(
        self, declaration: Optional[OracleDeclaration]
    ) -> Optional[str]:
        """Raw JSDoc comment attached to `declaration`, if any."""
        if declaration is None or declaration.node is None:
            return None
        return self.oracle.get_jsdoc_comments(declaration)
