from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, List, Optional, Sequence, Tuple

from typelens.models import SourceLocation


class OracleError(Exception):
    """Base class for faults raised by a type oracle."""


class SourceParseError(OracleError):
    """A declaration being resolved contains syntax errors."""

    def __init__(self, file_path: str, line: int, column: int, snippet: str = ""):
        self.file_path = file_path
        self.line = line
        self.column = column
        self.snippet = snippet
        super().__init__(f"Syntax error in {file_path}:{line}:{column} {snippet!r}")


class DeclarationNotFoundError(OracleError):
    """A declaration lookup by file and name failed."""

    def __init__(self, file_path: str, name: str):
        self.file_path = file_path
        self.name = name
        super().__init__(f"Declaration {name!r} was not found in {file_path}")


class TypeCategory(str, Enum):
    PRIMITIVE = "primitive"
    LITERAL = "literal"
    OBJECT = "object"
    UNION = "union"
    INTERSECTION = "intersection"
    TUPLE = "tuple"
    ARRAY = "array"
    FUNCTION = "function"
    CLASS = "class"
    ENUM = "enum"
    GENERIC = "generic"
    OPAQUE = "opaque"  # free type parameter or unresolvable name
    COMPUTED = "computed"  # mapped or utility type awaiting simplification


OBJECT_SHAPED = frozenset(
    {TypeCategory.OBJECT, TypeCategory.INTERSECTION, TypeCategory.CLASS}
)


class DeclarationKind(str, Enum):
    TYPE_ALIAS = "type_alias"
    INTERFACE = "interface"
    CLASS = "class"
    ENUM = "enum"
    ENUM_MEMBER = "enum_member"
    FUNCTION = "function"
    VARIABLE = "variable"
    PARAMETER = "parameter"
    PROPERTY = "property"
    METHOD = "method"
    GET_ACCESSOR = "get_accessor"
    SET_ACCESSOR = "set_accessor"
    CONSTRUCTOR = "constructor"
    TYPE_PARAMETER = "type_parameter"
    TYPE_LITERAL = "type_literal"
    LIBRARY = "library"


@dataclass(frozen=True)
class OracleDeclaration:
    kind: DeclarationKind
    name: Optional[str]
    file_path: str
    node: Any = field(default=None, compare=False, repr=False)


@dataclass(eq=False)
class OracleSymbol:
    name: Optional[str]  # None for destructured parameters
    declaration: Optional[OracleDeclaration] = None
    is_optional: bool = False
    is_readonly: bool = False
    is_static: bool = False
    is_rest: bool = False
    visibility: Optional[str] = None  # public | protected | private
    member_kind: Optional[str] = None  # property | method | get | set
    data: Any = field(default=None, repr=False)  # oracle private


@dataclass(eq=False)
class OracleSignature:
    parameters: List[OracleSymbol]
    return_type: Any
    text: str
    declaration: Optional[OracleDeclaration] = None
    modifier: Optional[str] = None  # async | generator | async-generator


@dataclass(eq=False)
class TupleElement:
    type: Any
    name: Optional[str] = None
    is_optional: bool = False
    is_rest: bool = False


@dataclass(eq=False)
class IndexSignature:
    key_name: str
    key_type: Any
    value_type: Any
    text: str
    is_readonly: bool = False


class TypeOracle(ABC):
    """
    Type checking service consumed by the resolver.

    Type handles are opaque to callers: they are only ever passed back to the
    oracle that produced them. Handles from another oracle instance are a
    caller contract violation.
    """

    # Classification and identity
    @abstractmethod
    def classify(self, type: Any) -> TypeCategory: ...

    @abstractmethod
    def type_id(self, type: Any) -> Any:
        """Stable identity of a type, used by the cycle guard."""
        ...

    @abstractmethod
    def type_to_text(self, type: Any) -> str: ...

    @abstractmethod
    def simplify_computed_type(self, type: Any) -> Optional[Any]:
        """
        Collapse pass-through mapped and utility types. Returns None when the
        result has no concrete members left to document.
        """
        ...

    # Symbols and declarations
    @abstractmethod
    def get_symbol(self, type: Any) -> Optional[OracleSymbol]: ...

    @abstractmethod
    def get_declaration(self, symbol: OracleSymbol) -> Optional[OracleDeclaration]: ...

    @abstractmethod
    def get_type_of_symbol(self, symbol: OracleSymbol) -> Any: ...

    @abstractmethod
    def get_declaration_by_name(self, file_path: str, name: str) -> OracleDeclaration: ...

    @abstractmethod
    def get_type_of_declaration(self, declaration: OracleDeclaration) -> Any: ...

    @abstractmethod
    def is_exported(self, declaration: OracleDeclaration) -> bool: ...

    @abstractmethod
    def is_in_node_modules(self, file_path: str) -> bool: ...

    # Structure
    @abstractmethod
    def get_apparent_properties(self, type: Any) -> List[OracleSymbol]: ...

    @abstractmethod
    def get_call_signatures(self, type: Any) -> List[OracleSignature]: ...

    @abstractmethod
    def get_construct_signatures(self, type: Any) -> List[OracleSignature]: ...

    @abstractmethod
    def get_type_arguments(self, type: Any) -> List[Any]: ...

    @abstractmethod
    def get_type_name(self, type: Any) -> Optional[str]: ...

    @abstractmethod
    def get_union_members(self, type: Any) -> List[Any]: ...

    @abstractmethod
    def get_intersection_members(self, type: Any) -> List[Any]: ...

    @abstractmethod
    def get_element_type(self, type: Any) -> Optional[Any]: ...

    @abstractmethod
    def get_tuple_elements(self, type: Any) -> List[TupleElement]: ...

    @abstractmethod
    def get_index_signatures(self, type: Any) -> List[IndexSignature]: ...

    @abstractmethod
    def get_literal_value(self, type: Any) -> Any: ...

    @abstractmethod
    def get_primitive_name(self, type: Any) -> str: ...

    @abstractmethod
    def get_enum_members(self, type: Any) -> List[Tuple[str, Any]]: ...

    @abstractmethod
    def get_class_members(self, type: Any) -> List[OracleSymbol]: ...

    @abstractmethod
    def is_anonymous_object(self, type: Any) -> bool: ...

    # Locations and documentation
    @abstractmethod
    def get_source_position(self, target: Any) -> Optional[SourceLocation]:
        """Location of a declaration or of the syntax a type was written with."""
        ...

    @abstractmethod
    def get_library_location(self, type: Any) -> SourceLocation: ...

    @abstractmethod
    def get_jsdoc_comments(self, declaration: OracleDeclaration) -> Optional[str]: ...

    # Initializers
    @abstractmethod
    def get_initializer(self, declaration: OracleDeclaration) -> Optional[Any]: ...

    @abstractmethod
    def get_binding_patterns(self, declaration: OracleDeclaration) -> Sequence[Any]: ...

    @abstractmethod
    def lookup_initializer(
        self, declaration: OracleDeclaration, name: str
    ) -> Optional[Any]:
        """Initializer of a `const` named `name` visible from `declaration`."""
        ...
