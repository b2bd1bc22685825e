from typing import Callable, Optional, Sequence

from typelens.metadata import SymbolMetadata
from typelens.oracle.base import OBJECT_SHAPED, TypeCategory

FilterPredicate = Callable[[SymbolMetadata], bool]


def default_filter(metadata: SymbolMetadata) -> bool:
    """Expand types declared in the project; collapse node_modules types."""
    return not metadata.is_in_node_modules


def expand_all(metadata: SymbolMetadata) -> bool:
    return True


def local_only_filter(metadata: SymbolMetadata) -> bool:
    """Collapse external types and exported declarations into references."""
    return not metadata.is_external and not metadata.is_exported


def allow_names(*names: str, base: FilterPredicate = default_filter) -> FilterPredicate:
    """
    Predicate expanding symbols named in `names` and deferring to `base` for
    everything else.
    """
    allowed = frozenset(names)

    def predicate(metadata: SymbolMetadata) -> bool:
        return metadata.name in allowed or base(metadata)

    return predicate


class ComponentPolicy:
    """
    Decides whether a callable is documented as a `Component` or a `Function`.

    A callable is a component when its first signature takes at most one
    parameter and that parameter is object-shaped. A callable without
    parameters is a component only when its name is capitalized.
    """

    def __init__(self, requires_capitalized_name: bool = False):
        self.requires_capitalized_name = requires_capitalized_name

    def is_component(
        self, name: Optional[str], parameter_categories: Sequence[TypeCategory]
    ) -> bool:
        capitalized = bool(name) and name[0].isupper()
        if self.requires_capitalized_name and not capitalized:
            return False
        if len(parameter_categories) > 1:
            return False
        if not parameter_categories:
            return capitalized
        return parameter_categories[0] in OBJECT_SHAPED
