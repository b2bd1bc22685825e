from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

from typelens.cycle import CycleGuard
from typelens.defaults import DefaultValueExtractor, is_resolved
from typelens.logger import logger
from typelens.metadata import SymbolMetadata, SymbolMetadataProvider, parse_jsdoc
from typelens.models import (
    PRIMITIVE_NAMES,
    ArrayNode,
    ClassAccessorNode,
    ClassMethodNode,
    ClassNode,
    ComponentNode,
    ComponentSignature,
    EnumNode,
    FunctionNode,
    FunctionSignature,
    GenericNode,
    IndexSignatureNode,
    IntersectionNode,
    Kind,
    ObjectNode,
    PrimitiveNode,
    ReferenceNode,
    Scope,
    SourceLocation,
    TupleNode,
    TypeNode,
    UnionNode,
    Visibility,
)
from typelens.oracle.base import (
    IndexSignature,
    OracleDeclaration,
    OracleSignature,
    OracleSymbol,
    TypeCategory,
    TypeOracle,
)
from typelens.policies import (
    ComponentPolicy,
    FilterPredicate,
    default_filter,
    expand_all,
)
from typelens.settings import IntersectionPolicy, ResolverSettings


@dataclass
class _Resolution:
    """State of one top-level resolution call."""

    filter: FilterPredicate
    guard: CycleGuard = field(default_factory=CycleGuard)


@dataclass
class _Context:
    """What is known about a type from the place it was reached through."""

    text: str
    location: Optional[SourceLocation]
    metadata: Optional[SymbolMetadata]
    enclosing: Optional[OracleDeclaration] = None


class TypeResolver:
    """
    Converts oracle types into `TypeNode` documentation trees.

    Resolution is synchronous and deterministic for a given oracle, type,
    declaration and filter. Every call owns its cycle guard, so a resolver
    may be shared and called concurrently. Oracle faults propagate.
    """

    def __init__(
        self,
        oracle: TypeOracle,
        settings: Optional[ResolverSettings] = None,
        component_policy: Optional[ComponentPolicy] = None,
    ):
        self.oracle = oracle
        self.settings = settings or ResolverSettings()
        self.component_policy = component_policy or ComponentPolicy(
            requires_capitalized_name=self.settings.component_requires_capitalized_name
        )
        self.metadata = SymbolMetadataProvider(oracle)
        self.default_filter: FilterPredicate = (
            expand_all if self.settings.expand_node_modules else default_filter
        )

    # ------------------------------------------------------------------ #
    # Public API
    # ------------------------------------------------------------------ #
    def resolve_type(
        self,
        type: Any,
        declaration: Optional[OracleDeclaration] = None,
        filter: Optional[FilterPredicate] = None,
    ) -> Optional[TypeNode]:
        """
        Resolve `type` into a documentation tree.

        When `declaration` is given, the root node is named after it and
        carries its location and JSDoc. Returns None when the type has nothing
        to document (for example a pass-through mapped type over a free type
        parameter).
        """
        resolution = _Resolution(filter=filter or self.default_filter)
        node = self._resolve(type, declaration, resolution, depth=0)
        if node is None or declaration is None:
            return node

        update: Dict[str, Any] = {}
        if declaration.name is not None:
            update["name"] = declaration.name
        location = self.oracle.get_source_position(declaration)
        if location is not None:
            update["file_path"] = location.file_path
            update["position"] = location.position
        description, tags = parse_jsdoc(self.metadata.describe_declaration(declaration))
        if description is not None:
            update["description"] = description
        if tags:
            update["tags"] = tags
        return node.model_copy(update=update) if update else node

    def resolve_type_properties(
        self,
        type: Any,
        declaration: Optional[OracleDeclaration] = None,
        filter: Optional[FilterPredicate] = None,
    ) -> List[TypeNode]:
        """Properties of a top-level `Object`; empty for any other kind."""
        node = self.resolve_type(type, declaration, filter)
        if isinstance(node, ObjectNode):
            return list(node.properties)
        return []

    def resolve_declaration(
        self, file_path: str, name: str, filter: Optional[FilterPredicate] = None
    ) -> Optional[TypeNode]:
        """Resolve the declaration named `name` in `file_path`."""
        declaration = self.oracle.get_declaration_by_name(file_path, name)
        type = self.oracle.get_type_of_declaration(declaration)
        return self.resolve_type(type, declaration, filter)

    # ------------------------------------------------------------------ #
    # Dispatch
    # ------------------------------------------------------------------ #
    def _resolve(
        self,
        type: Any,
        enclosing: Optional[OracleDeclaration],
        resolution: _Resolution,
        depth: int,
    ) -> Optional[TypeNode]:
        oracle = self.oracle
        simplified = oracle.simplify_computed_type(type)
        if simplified is None:
            logger.debug(
                "Nothing to document",
                type=oracle.type_to_text(type),
                reason="empty simplification",
            )
            return None
        type = simplified

        category = oracle.classify(type)
        text = oracle.type_to_text(type)
        symbol = oracle.get_symbol(type)
        metadata = (
            self.metadata.describe_symbol(symbol, enclosing) if symbol is not None else None
        )
        context = _Context(
            text=text,
            location=self._location(type, symbol, enclosing),
            metadata=metadata,
            enclosing=enclosing,
        )

        if category in (TypeCategory.PRIMITIVE, TypeCategory.LITERAL):
            return self._primitive(type, category, context)

        if (
            metadata is not None
            and metadata.name is not None
            and not resolution.filter(metadata)
        ):
            logger.debug("Filtered type", type=text, reason="filter predicate")
            return self._reference(context)

        if depth >= self.settings.max_depth:
            logger.debug("Depth bound reached", type=text, reason="max_depth")
            return self._reference(context)

        identity = oracle.type_id(type)
        with resolution.guard.expanding(identity) as entered:
            if not entered:
                logger.debug("Recursive type", type=text, reason="cycle")
                return self._reference(context)
            return self._dispatch(type, category, context, resolution, depth + 1)

    def _dispatch(
        self,
        type: Any,
        category: TypeCategory,
        context: _Context,
        resolution: _Resolution,
        depth: int,
    ) -> TypeNode:
        if category == TypeCategory.OBJECT:
            if not self.oracle.get_apparent_properties(type) and self.oracle.get_call_signatures(type):
                return self._callable(type, context, resolution, depth)
            return self._object(type, context, resolution, depth)
        if category == TypeCategory.UNION:
            return self._union(type, context, resolution, depth)
        if category == TypeCategory.INTERSECTION:
            return self._intersection(type, context, resolution, depth)
        if category == TypeCategory.ARRAY:
            return self._array(type, context, resolution, depth)
        if category == TypeCategory.TUPLE:
            return self._tuple(type, context, resolution, depth)
        if category == TypeCategory.FUNCTION:
            return self._callable(type, context, resolution, depth)
        if category == TypeCategory.CLASS:
            return self._class(type, context, resolution, depth)
        if category == TypeCategory.ENUM:
            return self._enum(type, context)
        if category == TypeCategory.GENERIC:
            return self._generic(type, context, resolution, depth)

        logger.debug("Unexpanded type", type=context.text, reason=category.value)
        return self._reference(context)

    # ------------------------------------------------------------------ #
    # Node builders
    # ------------------------------------------------------------------ #
    def _common(self, context: _Context) -> Dict[str, Any]:
        fields: Dict[str, Any] = {"type": context.text}
        if context.location is not None:
            fields["file_path"] = context.location.file_path
            fields["position"] = context.location.position
        metadata = context.metadata
        if metadata is not None:
            if metadata.name is not None:
                fields["name"] = metadata.name
            if metadata.description is not None:
                fields["description"] = metadata.description
            if metadata.tags:
                fields["tags"] = metadata.tags
        return fields

    def _reference(self, context: _Context) -> ReferenceNode:
        return ReferenceNode(**self._common(context))

    def _primitive(
        self, type: Any, category: TypeCategory, context: _Context
    ) -> PrimitiveNode:
        name = self.oracle.get_primitive_name(type)
        kind = PRIMITIVE_NAMES.get(name, Kind.UNKNOWN)
        fields = self._common(context)
        fields.pop("name", None)
        if category == TypeCategory.LITERAL:
            fields["value"] = self.oracle.get_literal_value(type)
        return PrimitiveNode(kind=kind, **fields)

    def _object(
        self, type: Any, context: _Context, resolution: _Resolution, depth: int
    ) -> ObjectNode:
        index_signatures = [
            self._index_signature(signature, context, resolution, depth)
            for signature in self.oracle.get_index_signatures(type)
        ]
        return ObjectNode(
            properties=self._properties(
                self.oracle.get_apparent_properties(type), resolution, depth
            ),
            index_signatures=index_signatures or None,
            **self._common(context),
        )

    def _index_signature(
        self,
        signature: IndexSignature,
        context: _Context,
        resolution: _Resolution,
        depth: int,
    ) -> IndexSignatureNode:
        key = self._resolve_or_reference(signature.key_type, context, resolution, depth)
        value = self._resolve_or_reference(signature.value_type, context, resolution, depth)
        return IndexSignatureNode(
            type=signature.text,
            parameter=key.model_copy(update={"name": signature.key_name}),
            value=value,
            is_readonly=True if signature.is_readonly else None,
        )

    def _resolve_or_reference(
        self, type: Any, context: _Context, resolution: _Resolution, depth: int
    ) -> TypeNode:
        node = self._resolve(type, None, resolution, depth)
        if node is not None:
            return node
        return ReferenceNode(
            type=self.oracle.type_to_text(type), **self._location_fields(context.location)
        )

    def _union(
        self, type: Any, context: _Context, resolution: _Resolution, depth: int
    ) -> UnionNode:
        members = []
        for member in self.oracle.get_union_members(type):
            node = self._resolve(member, None, resolution, depth)
            if node is not None:
                members.append(node)
        return UnionNode(members=members, **self._common(context))

    def _intersection(
        self, type: Any, context: _Context, resolution: _Resolution, depth: int
    ) -> IntersectionNode:
        flatten = self.settings.intersection_policy == IntersectionPolicy.FLATTEN_ANONYMOUS
        properties: List[TypeNode] = []
        for member in self.oracle.get_intersection_members(type):
            if flatten and self._is_anonymous(member):
                properties.extend(
                    self._properties(
                        self.oracle.get_apparent_properties(member), resolution, depth
                    )
                )
                continue
            node = self._resolve(member, None, resolution, depth)
            if node is not None:
                properties.append(node)
        return IntersectionNode(properties=properties, **self._common(context))

    def _is_anonymous(self, type: Any) -> bool:
        simplified = self.oracle.simplify_computed_type(type)
        return simplified is not None and self.oracle.is_anonymous_object(simplified)

    def _array(
        self, type: Any, context: _Context, resolution: _Resolution, depth: int
    ) -> ArrayNode:
        element_type = self.oracle.get_element_type(type)
        element = None
        if element_type is not None:
            element = self._resolve(element_type, None, resolution, depth)
        if element is None:
            element = ReferenceNode(
                type=(
                    self.oracle.type_to_text(element_type)
                    if element_type is not None
                    else "unknown"
                ),
                **self._location_fields(context.location),
            )
        return ArrayNode(element=element, **self._common(context))

    def _tuple(
        self, type: Any, context: _Context, resolution: _Resolution, depth: int
    ) -> TupleNode:
        elements = []
        for item in self.oracle.get_tuple_elements(type):
            node = self._resolve(item.type, None, resolution, depth)
            if node is None:
                continue
            update: Dict[str, Any] = {}
            if item.name:
                update["name"] = item.name
            if item.is_optional:
                update["is_optional"] = True
            if item.is_rest:
                update["is_rest"] = True
            elements.append(node.model_copy(update=update) if update else node)
        return TupleNode(elements=elements, **self._common(context))

    def _generic(
        self, type: Any, context: _Context, resolution: _Resolution, depth: int
    ) -> GenericNode:
        arguments = [
            self._resolve_or_reference(argument, context, resolution, depth)
            for argument in self.oracle.get_type_arguments(type)
        ]
        return GenericNode(
            type_name=self.oracle.get_type_name(type) or context.text,
            arguments=arguments,
            **self._common(context),
        )

    def _enum(self, type: Any, context: _Context) -> EnumNode:
        return EnumNode(
            members=dict(self.oracle.get_enum_members(type)), **self._common(context)
        )

    def _callable(
        self, type: Any, context: _Context, resolution: _Resolution, depth: int
    ) -> TypeNode:
        signatures = self.oracle.get_call_signatures(type)
        first = signatures[0] if signatures else None
        categories = (
            [
                self.oracle.classify(
                    self.oracle.simplify_computed_type(self.oracle.get_type_of_symbol(p))
                    or self.oracle.get_type_of_symbol(p)
                )
                for p in first.parameters
            ]
            if first is not None
            else []
        )
        name = context.metadata.name if context.metadata is not None else None
        if name is None and context.enclosing is not None:
            name = context.enclosing.name

        if self.component_policy.is_component(name, categories):
            return ComponentNode(
                signatures=[
                    self._component_signature(s, resolution, depth) for s in signatures
                ],
                **self._common(context),
            )
        return FunctionNode(
            signatures=[self._function_signature(s, resolution, depth) for s in signatures],
            **self._common(context),
        )

    def _modifier(self, signature: OracleSignature) -> Dict[str, Any]:
        return {"modifier": signature.modifier} if signature.modifier else {}

    def _function_signature(
        self, signature: OracleSignature, resolution: _Resolution, depth: int
    ) -> FunctionSignature:
        parameters = []
        for param in signature.parameters:
            node = self._parameter(param, resolution, depth)
            if node is not None:
                parameters.append(node)
        return FunctionSignature(
            type=signature.text,
            parameters=parameters,
            return_type=self.oracle.type_to_text(signature.return_type),
            **self._modifier(signature),
        )

    def _component_signature(
        self, signature: OracleSignature, resolution: _Resolution, depth: int
    ) -> ComponentSignature:
        parameter = None
        if signature.parameters:
            parameter = self._parameter(signature.parameters[0], resolution, depth)
        return ComponentSignature(
            type=signature.text,
            parameter=parameter,
            return_type=self.oracle.type_to_text(signature.return_type),
            **self._modifier(signature),
        )

    def _class(
        self, type: Any, context: _Context, resolution: _Resolution, depth: int
    ) -> ClassNode:
        properties: List[TypeNode] = []
        methods: List[ClassMethodNode] = []
        accessors: List[ClassAccessorNode] = []

        for member in self.oracle.get_class_members(type):
            if not self.settings.include_private_members and (
                member.visibility == "private" or (member.name or "").startswith("#")
            ):
                continue
            if member.member_kind == "property":
                node = self._property(member, resolution, depth)
                if node is not None:
                    properties.append(node)
            elif member.member_kind == "method":
                methods.append(self._method(member, resolution, depth))
            elif member.member_kind in ("get", "set"):
                accessors.append(self._accessor(member, resolution, depth))

        constructors = [
            self._function_signature(s, resolution, depth)
            for s in self.oracle.get_construct_signatures(type)
        ]
        return ClassNode(
            properties=properties,
            methods=methods,
            accessors=accessors or None,
            constructors=constructors or None,
            **self._common(context),
        )

    def _member_fields(self, member: OracleSymbol) -> Dict[str, Any]:
        metadata = self.metadata.describe_symbol(member)
        fields: Dict[str, Any] = {}
        if member.is_static:
            fields["scope"] = Scope.STATIC
        if member.visibility:
            fields["visibility"] = Visibility(member.visibility)
        if metadata.file_path is not None:
            fields["file_path"] = metadata.file_path
            fields["position"] = metadata.position
        if metadata.description is not None:
            fields["description"] = metadata.description
        if metadata.tags:
            fields["tags"] = metadata.tags
        return fields

    def _method(
        self, member: OracleSymbol, resolution: _Resolution, depth: int
    ) -> ClassMethodNode:
        method_type = self.oracle.get_type_of_symbol(member)
        return ClassMethodNode(
            name=member.name,
            type=self.oracle.type_to_text(method_type),
            signatures=[
                self._function_signature(s, resolution, depth)
                for s in self.oracle.get_call_signatures(method_type)
            ],
            **self._member_fields(member),
        )

    def _accessor(
        self, member: OracleSymbol, resolution: _Resolution, depth: int
    ) -> ClassAccessorNode:
        accessor_type = self.oracle.get_type_of_symbol(member)
        signatures = self.oracle.get_call_signatures(accessor_type)
        fields = self._member_fields(member)
        if member.member_kind == "get":
            return_type = (
                self.oracle.type_to_text(signatures[0].return_type) if signatures else "any"
            )
            return ClassAccessorNode(
                name=member.name,
                accessor="get",
                type=return_type,
                return_type=return_type,
                **fields,
            )
        parameter = None
        if signatures and signatures[0].parameters:
            parameter = self._parameter(signatures[0].parameters[0], resolution, depth)
        return ClassAccessorNode(
            name=member.name,
            accessor="set",
            type=parameter.type if parameter is not None else "any",
            parameter=parameter,
            **fields,
        )

    # ------------------------------------------------------------------ #
    # Properties and parameters
    # ------------------------------------------------------------------ #
    def _properties(
        self, symbols: Sequence[OracleSymbol], resolution: _Resolution, depth: int
    ) -> List[TypeNode]:
        nodes = []
        for symbol in symbols:
            node = self._property(symbol, resolution, depth)
            if node is not None:
                nodes.append(node)
        return nodes

    def _property(
        self, symbol: OracleSymbol, resolution: _Resolution, depth: int
    ) -> Optional[TypeNode]:
        metadata = self.metadata.describe_symbol(symbol)
        declaration = self.oracle.get_declaration(symbol)
        property_type = self.oracle.get_type_of_symbol(symbol)

        if not resolution.filter(metadata):
            logger.debug("Filtered property", name=symbol.name, reason="filter predicate")
            context = _Context(
                text=self.oracle.type_to_text(property_type),
                location=self._location(property_type, symbol, declaration),
                metadata=metadata,
            )
            return self._reference(context)

        node = self._resolve(property_type, declaration, resolution, depth)
        if node is None:
            return None

        update: Dict[str, Any] = {"name": symbol.name}
        update.update(self._member_update(symbol, metadata))
        if symbol.is_static:
            update["scope"] = Scope.STATIC
        if symbol.visibility:
            update["visibility"] = Visibility(symbol.visibility)
        node = node.model_copy(update=update)
        return self._with_default(node, declaration, patterns=())

    def _parameter(
        self, symbol: OracleSymbol, resolution: _Resolution, depth: int
    ) -> Optional[TypeNode]:
        declaration = self.oracle.get_declaration(symbol)
        parameter_type = self.oracle.get_type_of_symbol(symbol)
        node = self._resolve(parameter_type, declaration, resolution, depth)
        if node is None:
            return None

        update: Dict[str, Any] = {"name": symbol.name, "is_optional": symbol.is_optional}
        if symbol.is_rest:
            update["is_rest"] = True
        if declaration is not None:
            location = self.oracle.get_source_position(declaration)
            if location is not None:
                update["file_path"] = location.file_path
                update["position"] = location.position
        node = node.model_copy(update=update)
        patterns = (
            self.oracle.get_binding_patterns(declaration) if declaration is not None else ()
        )
        return self._with_default(node, declaration, patterns)

    def _member_update(
        self, symbol: OracleSymbol, metadata: SymbolMetadata
    ) -> Dict[str, Any]:
        update: Dict[str, Any] = {
            "is_optional": symbol.is_optional,
            "is_readonly": symbol.is_readonly,
        }
        if metadata.file_path is not None:
            update["file_path"] = metadata.file_path
            update["position"] = metadata.position
        if metadata.description is not None:
            update["description"] = metadata.description
        if metadata.tags:
            update["tags"] = metadata.tags
        return update

    def _with_default(
        self,
        node: TypeNode,
        declaration: Optional[OracleDeclaration],
        patterns: Sequence[Any],
    ) -> TypeNode:
        if declaration is None:
            return node
        initializer = self.oracle.get_initializer(declaration)
        if initializer is None and not patterns:
            return node

        extractor = DefaultValueExtractor(
            lookup=lambda name: self.oracle.lookup_initializer(declaration, name)
        )
        value = extractor.extract_declaration_default(initializer, patterns)
        if not is_resolved(value):
            return node
        node = node.model_copy(update={"default_value": value})
        if isinstance(value, dict):
            node = _push_defaults(node, value)
        return node

    # ------------------------------------------------------------------ #
    # Locations
    # ------------------------------------------------------------------ #
    def _location(
        self,
        type: Any,
        symbol: Optional[OracleSymbol],
        enclosing: Optional[OracleDeclaration],
    ) -> Optional[SourceLocation]:
        declaration = self.oracle.get_declaration(symbol) if symbol is not None else None
        if declaration is not None:
            location = self.oracle.get_source_position(declaration)
            if location is not None:
                return location
        location = self.oracle.get_source_position(type)
        if location is not None:
            return location
        if enclosing is not None:
            location = self.oracle.get_source_position(enclosing)
            if location is not None:
                return location
        return self.oracle.get_library_location(type)

    @staticmethod
    def _location_fields(location: Optional[SourceLocation]) -> Dict[str, Any]:
        if location is None:
            return {}
        return {"file_path": location.file_path, "position": location.position}


def _push_defaults(node: TypeNode, defaults: Dict[str, Any]) -> TypeNode:
    """Attach entries of an object default to the matching nested properties."""
    if not isinstance(node, (ObjectNode, IntersectionNode)):
        return node
    properties = []
    changed = False
    for prop in node.properties:
        if prop.name in defaults and not prop.has_default_value:
            value = defaults[prop.name]
            prop = prop.model_copy(update={"default_value": value})
            if isinstance(value, dict):
                prop = _push_defaults(prop, value)
            changed = True
        properties.append(prop)
    if not changed:
        return node
    return node.model_copy(update={"properties": properties})


def resolve_type(
    oracle: TypeOracle,
    type: Any,
    declaration: Optional[OracleDeclaration] = None,
    filter: Optional[FilterPredicate] = None,
    settings: Optional[ResolverSettings] = None,
) -> Optional[TypeNode]:
    return TypeResolver(oracle, settings).resolve_type(type, declaration, filter)


def resolve_type_properties(
    oracle: TypeOracle,
    type: Any,
    declaration: Optional[OracleDeclaration] = None,
    filter: Optional[FilterPredicate] = None,
    settings: Optional[ResolverSettings] = None,
) -> List[TypeNode]:
    return TypeResolver(oracle, settings).resolve_type_properties(
        type, declaration, filter
    )
