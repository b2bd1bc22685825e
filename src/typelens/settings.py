from typing import List, Optional
from enum import Enum

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class IntersectionPolicy(str, Enum):
    """How intersection constituents are laid out in the resolved tree."""

    # Anonymous object literals contribute their properties directly,
    # named constituents stay nested.
    FLATTEN_ANONYMOUS = "flatten-anonymous"
    # Every constituent stays a nested node.
    NEST_ALL = "nest-all"


class ResolverSettings(BaseSettings):
    """Settings for the type resolution engine."""

    model_config = SettingsConfigDict(env_prefix="TYPELENS_", extra="ignore")

    expand_node_modules: bool = Field(
        default=False,
        description=(
            "If True, the default filter expands types declared under node_modules "
            "instead of collapsing them to references."
        ),
    )
    component_requires_capitalized_name: bool = Field(
        default=False,
        description=(
            "If True, only callables whose name starts with an uppercase letter are "
            "classified as components."
        ),
    )
    intersection_policy: IntersectionPolicy = Field(
        default=IntersectionPolicy.FLATTEN_ANONYMOUS,
        description='Layout of intersection members: "flatten-anonymous" or "nest-all".',
    )
    include_private_members: bool = Field(
        default=True,
        description="If False, private and #-prefixed class members are omitted.",
    )
    max_depth: int = Field(
        default=24,
        description=(
            "Maximum nesting depth of the resolved tree. Deeper types are emitted as "
            "references."
        ),
    )


class OracleSettings(BaseSettings):
    """Settings for the tree-sitter backed TypeScript oracle."""

    model_config = SettingsConfigDict(env_prefix="TYPELENS_ORACLE_", extra="ignore")

    node_modules_dirs: List[str] = Field(
        default_factory=lambda: ["node_modules"],
        description="Directories searched, relative to the project root, for bare module imports.",
    )
    module_suffixes: tuple[str, ...] = Field(
        default=(".ts", ".tsx", ".d.ts"),
        description="Suffixes tried, in order, when resolving an import specifier to a source file.",
    )
    tsx_suffixes: tuple[str, ...] = Field(
        default=(".tsx",),
        description="Suffixes parsed with the TSX grammar instead of the TypeScript grammar.",
    )
    root_path: Optional[str] = Field(
        default=None,
        description="Root directory used to relativize file paths added from disk.",
    )
