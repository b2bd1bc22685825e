import json

from typelens.models import (
    ComponentNode,
    ComponentSignature,
    EnumNode,
    GenericNode,
    JsDocTag,
    Kind,
    LineColumn,
    ObjectNode,
    Position,
    PrimitiveNode,
    ReferenceNode,
    Scope,
)


def _position(line):
    return Position(
        start=LineColumn(line=line, column=1), end=LineColumn(line=line, column=10)
    )


def test_camel_case_and_omitted_fields():
    node = ObjectNode(
        type="Props",
        name="Props",
        file_path="src/props.ts",
        position=_position(3),
        properties=[
            PrimitiveNode(kind=Kind.STRING, type="string", name="label", is_optional=False),
            ReferenceNode(type="Theme", name="theme", is_optional=True),
        ],
    )

    data = node.to_dict()

    assert data == {
        "kind": "Object",
        "type": "Props",
        "name": "Props",
        "filePath": "src/props.ts",
        "position": {
            "start": {"line": 3, "column": 1},
            "end": {"line": 3, "column": 10},
        },
        "properties": [
            {"kind": "String", "type": "string", "name": "label", "isOptional": False},
            {"kind": "Reference", "type": "Theme", "name": "theme", "isOptional": True},
        ],
    }


def test_default_value_null_is_serialized():
    unset = PrimitiveNode(kind=Kind.NUMBER, type="number", name="a")
    null = unset.model_copy(update={"default_value": None})
    zero = unset.model_copy(update={"default_value": 0})

    assert "defaultValue" not in unset.to_dict()
    assert null.to_dict()["defaultValue"] is None
    assert zero.to_dict()["defaultValue"] == 0
    assert not unset.has_default_value
    assert null.has_default_value


def test_literal_values_and_tags():
    node = PrimitiveNode(
        kind=Kind.STRING,
        type='"red"',
        value="red",
        description="The color.",
        tags=[JsDocTag(tag_name="deprecated")],
    )

    assert node.to_dict() == {
        "kind": "String",
        "type": '"red"',
        "value": "red",
        "description": "The color.",
        "tags": [{"tagName": "deprecated"}],
    }


def test_nested_signature_serialization():
    node = ComponentNode(
        type="(props: { id: string; }) => string",
        name="Card",
        signatures=[
            ComponentSignature(
                type="(props: { id: string; }) => string",
                parameter=ObjectNode(type="{ id: string; }", name="props"),
                return_type="string",
            )
        ],
    )

    data = json.loads(node.to_json())

    (signature,) = data["signatures"]
    assert signature["kind"] == "ComponentSignature"
    assert signature["returnType"] == "string"
    assert signature["parameter"]["kind"] == "Object"
    assert "modifier" not in signature


def test_enum_and_generic():
    enum = EnumNode(type="Color", members={"Red": "red", "Green": 1}, scope=Scope.STATIC)
    generic = GenericNode(
        type="Promise<string>",
        type_name="Promise",
        arguments=[PrimitiveNode(kind=Kind.STRING, type="string")],
    )

    assert enum.to_dict()["members"] == {"Red": "red", "Green": 1}
    assert enum.to_dict()["scope"] == "static"
    assert generic.to_dict()["typeName"] == "Promise"
    assert generic.to_dict()["arguments"] == [{"kind": "String", "type": "string"}]


def test_nodes_compare_by_value():
    first = ReferenceNode(type="Node", name="children")
    second = ReferenceNode(type="Node", name="children")

    assert first == second
    assert first != first.model_copy(update={"name": "parent"})
