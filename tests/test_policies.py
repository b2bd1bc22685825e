import pytest

from typelens.metadata import SymbolMetadata
from typelens.oracle.base import TypeCategory
from typelens.policies import (
    ComponentPolicy,
    allow_names,
    default_filter,
    expand_all,
    local_only_filter,
)


def _meta(**kwargs):
    return SymbolMetadata(**kwargs)


# --------------------------------------------------------------------------- #
# Filters
# --------------------------------------------------------------------------- #
def test_default_filter():
    assert default_filter(_meta(name="Props", file_path="src/props.ts"))
    assert default_filter(_meta(name="Promise", is_external=True))
    assert not default_filter(
        _meta(name="Theme", file_path="node_modules/ui/index.d.ts", is_in_node_modules=True)
    )


def test_expand_all():
    assert expand_all(_meta(is_in_node_modules=True, is_external=True))


def test_local_only_filter():
    assert local_only_filter(_meta(name="Local"))
    assert not local_only_filter(_meta(name="Exported", is_exported=True))
    assert not local_only_filter(_meta(name="Promise", is_external=True))


def test_allow_names():
    predicate = allow_names("theme", "size")

    assert predicate(_meta(name="theme", is_in_node_modules=True))
    assert not predicate(_meta(name="color", is_in_node_modules=True))
    assert predicate(_meta(name="color"))


def test_allow_names_with_base():
    predicate = allow_names("Props", base=local_only_filter)

    assert predicate(_meta(name="Props", is_exported=True))
    assert not predicate(_meta(name="Other", is_exported=True))


# --------------------------------------------------------------------------- #
# Component classification
# --------------------------------------------------------------------------- #
@pytest.mark.parametrize(
    "name, categories, expected",
    [
        ("Button", [TypeCategory.OBJECT], True),
        ("button", [TypeCategory.OBJECT], True),
        ("Layout", [TypeCategory.INTERSECTION], True),
        ("Add", [TypeCategory.PRIMITIVE, TypeCategory.PRIMITIVE], False),
        ("Label", [TypeCategory.PRIMITIVE], False),
        ("Spinner", [], True),
        ("spin", [], False),
        (None, [], False),
        (None, [TypeCategory.OBJECT], True),
    ],
)
def test_component_policy(name, categories, expected):
    assert ComponentPolicy().is_component(name, categories) is expected


def test_capitalized_component_policy():
    policy = ComponentPolicy(requires_capitalized_name=True)

    assert policy.is_component("Button", [TypeCategory.OBJECT])
    assert not policy.is_component("button", [TypeCategory.OBJECT])
    assert not policy.is_component(None, [TypeCategory.OBJECT])
