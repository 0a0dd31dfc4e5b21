"""Syntax tree model.

The tree is an arena: a tuple of ``Node`` records whose children are
referenced by index. Nodes are appended in post-order, so every child
index is lower than its parent's and the root is the last node. Any
bottom-up computation is therefore a plain loop over the arena and any
top-down walk is an explicit stack, with no recursion on pattern depth.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from functools import cached_property
from typing import TYPE_CHECKING, Iterator

from regexscope.syntax.charset import EMPTY, CharSet
from regexscope.types import NamedGroupSyntax

if TYPE_CHECKING:
    from regexscope.profile import FeatureProfile


class NodeKind(str, Enum):
    EMPTY = "empty"
    LITERAL = "literal"
    CHAR_CLASS = "char_class"
    ANY = "any"
    GROUP = "group"
    QUANTIFIER = "quantifier"
    CONCAT = "concat"
    ALTERNATION = "alternation"
    ANCHOR = "anchor"
    LOOKAROUND = "lookaround"
    BACKREFERENCE = "backreference"
    CONDITIONAL = "conditional"
    RECURSION = "recursion"
    FLAGS = "flags"


class GroupKind(str, Enum):
    CAPTURING = "capturing"
    NAMED = "named"
    NON_CAPTURING = "non_capturing"
    ATOMIC = "atomic"


class QuantifierMode(str, Enum):
    GREEDY = "greedy"
    LAZY = "lazy"
    POSSESSIVE = "possessive"


class LookaroundKind(str, Enum):
    AHEAD = "ahead"
    BEHIND = "behind"


@dataclass(frozen=True)
class Node:
    """One syntax tree node.

    Attributes:
        kind: Node type
        start, end: Span in the pattern string
        children: Child node indices, in pattern order
        value: Literal character, anchor text, flag letters or reference target
        chars: Every character this node may consume
        first: Characters a non-empty match of this node may start with
        min_width, max_width: Bounds on match length (max None = unbounded)
    """

    kind: NodeKind
    start: int
    end: int
    children: tuple[int, ...] = ()
    value: str | None = None
    chars: CharSet = EMPTY
    first: CharSet = EMPTY
    min_width: int = 0
    max_width: int | None = 0
    group_kind: GroupKind | None = None
    group_index: int | None = None
    name: str | None = None
    name_syntax: NamedGroupSyntax | None = None
    quant_min: int = 0
    quant_max: int | None = None
    quant_mode: QuantifierMode | None = None
    look_kind: LookaroundKind | None = None
    negated: bool = False
    unicode_property: bool = False
    posix_class: bool = False

    @property
    def is_repeating(self) -> bool:
        """Quantifier that can match its body more than once."""
        return self.kind is NodeKind.QUANTIFIER and (self.quant_max is None or self.quant_max > 1)

    @property
    def is_fixed_width(self) -> bool:
        return self.max_width is not None and self.min_width == self.max_width


@dataclass(frozen=True)
class SyntaxTree:
    """Parsed, read-only pattern structure."""

    pattern: str
    nodes: tuple[Node, ...]
    root: int
    group_count: int = 0
    group_names: dict[str, int] = field(default_factory=dict, hash=False)

    def __len__(self) -> int:
        return len(self.nodes)

    def __getitem__(self, index: int) -> Node:
        return self.nodes[index]

    @cached_property
    def parents(self) -> tuple[int | None, ...]:
        parents: list[int | None] = [None] * len(self.nodes)
        for index, node in enumerate(self.nodes):
            for child in node.children:
                parents[child] = index
        return tuple(parents)

    def walk(self, start: int | None = None) -> Iterator[int]:
        """Pre-order traversal (pattern order) using an explicit stack."""
        stack = [self.root if start is None else start]
        while stack:
            index = stack.pop()
            yield index
            stack.extend(reversed(self.nodes[index].children))

    def find(self, kind: NodeKind, start: int | None = None) -> Iterator[int]:
        return (i for i in self.walk(start) if self.nodes[i].kind is kind)

    def ancestors(self, index: int) -> Iterator[int]:
        parent = self.parents[index]
        while parent is not None:
            yield parent
            parent = self.parents[parent]

    def text(self, index: int) -> str:
        node = self.nodes[index]
        return self.pattern[node.start:node.end]


@dataclass(frozen=True)
class Pattern:
    """A raw pattern together with its parsed tree.

    The tree and profile are built once; components that need them share
    the same instance instead of re-parsing.
    """

    raw: str
    tree: SyntaxTree

    @classmethod
    def parse(cls, raw: str) -> "Pattern":
        from regexscope.syntax.parser import extract

        return cls(raw=raw, tree=extract(raw))

    @cached_property
    def profile(self) -> "FeatureProfile":
        from regexscope.profile import derive_profile

        return derive_profile(self.tree)

    def __str__(self) -> str:
        return self.raw
