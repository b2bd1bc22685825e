from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    SerializationInfo,
    SerializerFunctionWrapHandler,
    model_serializer,
)
from pydantic.alias_generators import to_camel
from enum import Enum
from typing import Any, Dict, List, Optional, Union

# ---------------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------------


class Kind(str, Enum):
    # Primitive family
    STRING = "String"
    NUMBER = "Number"
    BOOLEAN = "Boolean"
    BIGINT = "BigInt"
    SYMBOL = "Symbol"
    NULL = "Null"
    UNDEFINED = "Undefined"
    VOID = "Void"
    ANY = "Any"
    UNKNOWN = "Unknown"
    NEVER = "Never"
    OBJECT_KEYWORD = "ObjectKeyword"  # the `object` keyword
    # Structural kinds
    OBJECT = "Object"
    ARRAY = "Array"
    TUPLE = "Tuple"
    UNION = "Union"
    INTERSECTION = "Intersection"
    FUNCTION = "Function"
    COMPONENT = "Component"
    CLASS = "Class"
    ENUM = "Enum"
    GENERIC = "Generic"
    REFERENCE = "Reference"
    # Parts
    FUNCTION_SIGNATURE = "FunctionSignature"
    COMPONENT_SIGNATURE = "ComponentSignature"
    CLASS_METHOD = "ClassMethod"
    CLASS_ACCESSOR = "ClassAccessor"
    INDEX_SIGNATURE = "IndexSignature"


PRIMITIVE_KINDS = frozenset(
    {
        Kind.STRING,
        Kind.NUMBER,
        Kind.BOOLEAN,
        Kind.BIGINT,
        Kind.SYMBOL,
        Kind.NULL,
        Kind.UNDEFINED,
        Kind.VOID,
        Kind.ANY,
        Kind.UNKNOWN,
        Kind.NEVER,
        Kind.OBJECT_KEYWORD,
    }
)

# Keyword spelling -> primitive kind
PRIMITIVE_NAMES: Dict[str, Kind] = {
    "string": Kind.STRING,
    "number": Kind.NUMBER,
    "boolean": Kind.BOOLEAN,
    "bigint": Kind.BIGINT,
    "symbol": Kind.SYMBOL,
    "null": Kind.NULL,
    "undefined": Kind.UNDEFINED,
    "void": Kind.VOID,
    "any": Kind.ANY,
    "unknown": Kind.UNKNOWN,
    "never": Kind.NEVER,
    "object": Kind.OBJECT_KEYWORD,
}


class Scope(str, Enum):
    STATIC = "static"


class Visibility(str, Enum):
    PUBLIC = "public"
    PRIVATE = "private"
    PROTECTED = "protected"


class Modifier(str, Enum):
    ASYNC = "async"
    GENERATOR = "generator"
    ASYNC_GENERATOR = "async-generator"


# ---------------------------------------------------------------------------
# Locations
# ---------------------------------------------------------------------------


class LineColumn(BaseModel):
    model_config = ConfigDict(frozen=True)

    line: int
    column: int


class Position(BaseModel):
    model_config = ConfigDict(frozen=True)

    start: LineColumn
    end: LineColumn


class SourceLocation(BaseModel):
    model_config = ConfigDict(frozen=True)

    file_path: str
    position: Position


# ---------------------------------------------------------------------------
# Documentation tree
# ---------------------------------------------------------------------------


class _Model(BaseModel):
    """
    Base for every serializable documentation model. Fields are exposed with
    camelCase aliases and unset optional fields are omitted on dump, except
    an explicitly assigned ``default_value`` (a ``null`` default is a value).
    """

    model_config = ConfigDict(
        frozen=True, alias_generator=to_camel, populate_by_name=True
    )

    @model_serializer(mode="wrap")
    def _drop_empty(
        self, handler: SerializerFunctionWrapHandler, info: SerializationInfo
    ) -> Dict[str, Any]:
        data = handler(self)
        keep = (
            {"default_value", "defaultValue"}
            if "default_value" in self.model_fields_set
            else set()
        )
        return {k: v for k, v in data.items() if v is not None or k in keep}

    def to_dict(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)

    def to_json(self, indent: Optional[int] = 2) -> str:
        return self.model_dump_json(by_alias=True, indent=indent)


class JsDocTag(_Model):
    tag_name: str
    text: Optional[str] = None


class TypeNodeBase(_Model):
    kind: Kind
    type: str  # canonical type text
    name: Optional[str] = None
    file_path: Optional[str] = None
    position: Optional[Position] = None
    description: Optional[str] = None
    tags: Optional[List[JsDocTag]] = None

    # Member attributes: set when the node describes a property, parameter,
    # tuple element or class member.
    is_optional: Optional[bool] = None
    is_readonly: Optional[bool] = None
    is_rest: Optional[bool] = None
    default_value: Any = None
    scope: Optional[Scope] = None
    visibility: Optional[Visibility] = None

    @property
    def has_default_value(self) -> bool:
        return "default_value" in self.model_fields_set


class PrimitiveNode(TypeNodeBase):
    value: Any = None  # literal value, e.g. "red" for the type `"red"`


class IndexSignatureNode(_Model):
    """`[key: K]: V` member of an object type."""

    kind: Kind = Kind.INDEX_SIGNATURE
    type: str
    parameter: "TypeNode"  # the key, named after the signature parameter
    value: "TypeNode"
    is_readonly: Optional[bool] = None


class ObjectNode(TypeNodeBase):
    kind: Kind = Kind.OBJECT
    properties: List["TypeNode"] = Field(default_factory=list)
    index_signatures: Optional[List[IndexSignatureNode]] = None


class ArrayNode(TypeNodeBase):
    kind: Kind = Kind.ARRAY
    element: "TypeNode"


class TupleNode(TypeNodeBase):
    kind: Kind = Kind.TUPLE
    elements: List["TypeNode"] = Field(default_factory=list)


class UnionNode(TypeNodeBase):
    kind: Kind = Kind.UNION
    members: List["TypeNode"] = Field(default_factory=list)


class IntersectionNode(TypeNodeBase):
    kind: Kind = Kind.INTERSECTION
    properties: List["TypeNode"] = Field(default_factory=list)


class FunctionSignature(_Model):
    kind: Kind = Kind.FUNCTION_SIGNATURE
    type: str
    parameters: List["TypeNode"] = Field(default_factory=list)
    return_type: str
    modifier: Optional[Modifier] = None


class ComponentSignature(_Model):
    kind: Kind = Kind.COMPONENT_SIGNATURE
    type: str
    parameter: Optional["TypeNode"] = None
    return_type: str
    modifier: Optional[Modifier] = None


class FunctionNode(TypeNodeBase):
    kind: Kind = Kind.FUNCTION
    signatures: List[FunctionSignature] = Field(default_factory=list)


class ComponentNode(TypeNodeBase):
    kind: Kind = Kind.COMPONENT
    signatures: List[ComponentSignature] = Field(default_factory=list)


class ClassMethodNode(_Model):
    kind: Kind = Kind.CLASS_METHOD
    name: str
    type: str
    signatures: List[FunctionSignature] = Field(default_factory=list)
    scope: Optional[Scope] = None
    visibility: Optional[Visibility] = None
    file_path: Optional[str] = None
    position: Optional[Position] = None
    description: Optional[str] = None
    tags: Optional[List[JsDocTag]] = None


class ClassAccessorNode(_Model):
    kind: Kind = Kind.CLASS_ACCESSOR
    name: str
    accessor: str  # "get" or "set"
    type: str
    return_type: Optional[str] = None  # getters
    parameter: Optional["TypeNode"] = None  # setters
    scope: Optional[Scope] = None
    visibility: Optional[Visibility] = None
    file_path: Optional[str] = None
    position: Optional[Position] = None
    description: Optional[str] = None
    tags: Optional[List[JsDocTag]] = None


class ClassNode(TypeNodeBase):
    kind: Kind = Kind.CLASS
    properties: List["TypeNode"] = Field(default_factory=list)
    methods: List[ClassMethodNode] = Field(default_factory=list)
    accessors: Optional[List[ClassAccessorNode]] = None
    constructors: Optional[List[FunctionSignature]] = None


class EnumNode(TypeNodeBase):
    kind: Kind = Kind.ENUM
    members: Dict[str, Any] = Field(default_factory=dict)


class GenericNode(TypeNodeBase):
    kind: Kind = Kind.GENERIC
    type_name: str
    arguments: List["TypeNode"] = Field(default_factory=list)


class ReferenceNode(TypeNodeBase):
    kind: Kind = Kind.REFERENCE


TypeNode = Union[
    PrimitiveNode,
    ObjectNode,
    ArrayNode,
    TupleNode,
    UnionNode,
    IntersectionNode,
    FunctionNode,
    ComponentNode,
    ClassNode,
    EnumNode,
    GenericNode,
    ReferenceNode,
]

for _model in (
    IndexSignatureNode,
    ObjectNode,
    ArrayNode,
    TupleNode,
    UnionNode,
    IntersectionNode,
    FunctionSignature,
    ComponentSignature,
    FunctionNode,
    ComponentNode,
    ClassAccessorNode,
    ClassNode,
    GenericNode,
):
    _model.model_rebuild()
