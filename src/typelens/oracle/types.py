from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple

import tree_sitter as ts

from typelens.oracle.base import OracleSymbol, TypeCategory
from typelens.oracle.sources import Binding, SourceFile

Env = Mapping[str, "TsType"]
Loader = Callable[["TsType"], Any]


def env_key(env: Env) -> Tuple[Tuple[str, int], ...]:
    return tuple(sorted((name, t.id) for name, t in env.items()))


@dataclass(frozen=True, eq=False)
class AliasRef:
    """A type alias, with its type arguments, through which a type was reached."""

    binding: Binding
    args: Tuple["TsType", ...] = ()

    @property
    def key(self) -> Tuple[Any, ...]:
        return (
            self.binding.source.path,
            self.binding.node.start_byte,
            tuple(a.id for a in self.args),
        )

    @property
    def text(self) -> str:
        if not self.args:
            return self.binding.name
        return f"{self.binding.name}<{', '.join(a.text for a in self.args)}>"


@dataclass(eq=False)
class TsType:
    """
    Interned type handle. Structure is loaded lazily through `loaders` so
    self-referential declarations can be represented without recursion at
    construction time.
    """

    id: int
    oracle_id: int
    category: TypeCategory
    label: Optional[str] = None
    name: Optional[str] = None
    node: Optional[ts.Node] = None
    source: Optional[SourceFile] = None
    env: Env = field(default_factory=dict)
    alias: Optional[AliasRef] = None
    bindings: Tuple[Binding, ...] = ()
    args: Tuple["TsType", ...] = ()
    primitive: Optional[str] = None
    value: Any = None
    lib_file: Optional[str] = None
    symbol: Optional[OracleSymbol] = None
    loaders: Dict[str, Loader] = field(default_factory=dict, repr=False)
    cache: Dict[str, Any] = field(default_factory=dict, repr=False)
    _loading: set = field(default_factory=set, repr=False)

    @property
    def text(self) -> str:
        if self.label is None:
            value = self.load("text")
            if value is None:
                # still being rendered higher up the stack
                return ""
            self.label = value
        return self.label

    def load(self, key: str, default: Any = None) -> Any:
        if key in self.cache:
            return self.cache[key]
        loader = self.loaders.get(key)
        if loader is None or key in self._loading:
            return default
        self._loading.add(key)
        try:
            value = loader(self)
        finally:
            self._loading.discard(key)
        self.cache[key] = value
        return value


@dataclass(eq=False)
class SymbolData:
    """Oracle private part of an `OracleSymbol`."""

    source: Optional[SourceFile]
    env: Env
    nodes: List[ts.Node] = field(default_factory=list)
    type: Optional[TsType] = None
    owner: Optional[TsType] = None
