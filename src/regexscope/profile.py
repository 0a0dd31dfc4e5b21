"""Feature profile derivation.

A ``FeatureProfile`` is a flat record of what constructs a pattern uses.
It is a pure function of the syntax tree: the selector, the portability
matrix and the backtrack analyzer all read the same profile, computed once
per pattern.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from enum import Enum
from typing import Any

from regexscope.syntax.charset import EMPTY, CharSet
from regexscope.syntax.nodes import (
    GroupKind,
    LookaroundKind,
    NodeKind,
    QuantifierMode,
    SyntaxTree,
)
from regexscope.types import FeatureFlag, NamedGroupSyntax

# Order in which flags are reported; the first unsupported one is the reason.
CHECK_ORDER: tuple[FeatureFlag, ...] = tuple(FeatureFlag)


# =============================================================================
# Profile
# =============================================================================


@dataclass(frozen=True)
class FeatureProfile:
    """Flags derived from a syntax tree.

    ``nested_quantifier_depth`` and ``has_overlapping_alternation`` are risk
    signals for the backtrack analyzer; they do not map onto dialect flags.
    """

    has_lookahead: bool = False
    has_lookbehind: bool = False
    lookbehind_is_variable_length: bool = False
    has_backreference: bool = False
    has_backreference_in_lookaround: bool = False
    has_named_groups: bool = False
    named_group_syntaxes: frozenset[NamedGroupSyntax] = frozenset()
    has_conditional: bool = False
    has_atomic_group: bool = False
    has_possessive_quantifier: bool = False
    has_unicode_property: bool = False
    lookahead_has_nested_quantifier: bool = False
    nested_quantifier_depth: int = 0
    has_overlapping_alternation: bool = False
    has_recursion: bool = False
    has_posix_class: bool = False
    has_inline_flags: bool = False

    def active_flags(self) -> tuple[FeatureFlag, ...]:
        """Dialect-relevant flags this profile sets, in check order."""
        active = {
            FeatureFlag.LOOKBEHIND_VARIABLE_LENGTH: self.lookbehind_is_variable_length,
            FeatureFlag.BACKREFERENCE_IN_LOOKAROUND: self.has_backreference_in_lookaround,
            FeatureFlag.POSSESSIVE_QUANTIFIER: self.has_possessive_quantifier,
            FeatureFlag.ATOMIC_GROUP: self.has_atomic_group,
            FeatureFlag.CONDITIONAL: self.has_conditional,
            FeatureFlag.UNICODE_PROPERTY: self.has_unicode_property,
            FeatureFlag.NAMED_GROUP_SYNTAX: self.has_named_groups,
            FeatureFlag.LOOKAHEAD: self.has_lookahead,
            FeatureFlag.LOOKBEHIND: self.has_lookbehind,
            FeatureFlag.BACKREFERENCE: self.has_backreference,
            FeatureFlag.RECURSION: self.has_recursion,
            FeatureFlag.POSIX_CLASS: self.has_posix_class,
            FeatureFlag.INLINE_FLAGS: self.has_inline_flags,
        }
        return tuple(flag for flag in CHECK_ORDER if active[flag])

    @property
    def is_empty(self) -> bool:
        return not self.active_flags()

    def to_dict(self) -> dict[str, Any]:
        d = asdict(self)
        d["named_group_syntaxes"] = sorted(s.value for s in self.named_group_syntaxes)
        d["active_flags"] = [f.value for f in self.active_flags()]
        return d


# =============================================================================
# Repetition scan
# =============================================================================


class RiskKind(str, Enum):
    NESTED_QUANTIFIER = "nested_quantifier"
    OVERLAPPING_ALTERNATION = "overlapping_alternation"


@dataclass(frozen=True)
class RiskSite:
    """A place where a repeated body can match the same text in several ways.

    Attributes:
        kind: What makes the site ambiguous
        quantifier: The enclosing repeating quantifier whose body is ambiguous
        node: The inner quantifier or the alternation that causes it
        depth: Nesting depth of the site
    """

    kind: RiskKind
    quantifier: int
    node: int
    depth: int


@dataclass(frozen=True)
class RepetitionScan:
    depth: int = 0
    overlapping: bool = False
    sites: tuple[RiskSite, ...] = ()


def scan_repetition(tree: SyntaxTree) -> RepetitionScan:
    """Find nested quantifiers and ambiguous alternations under repetition.

    A repeating quantifier's depth is one more than its nearest repeating
    ancestor's when the characters it consumes intersect what can follow it
    inside that ancestor's body, otherwise 1. Possessive
    quantifiers and atomic groups cannot be re-partitioned on backtrack, so
    they start a new chain.
    """
    depths: dict[int, int] = {}
    sites: list[RiskSite] = []
    overlapping = False

    # (node, nearest repeating ancestor, atomic barrier since that ancestor)
    stack: list[tuple[int, int | None, bool]] = [(tree.root, None, False)]
    while stack:
        index, ancestor, barrier = stack.pop()
        node = tree[index]

        if node.kind is NodeKind.QUANTIFIER and node.is_repeating:
            possessive = node.quant_mode is QuantifierMode.POSSESSIVE
            depth = 1
            if (
                ancestor is not None
                and not barrier
                and not possessive
                and node.chars.intersects(_follow_in_body(tree, index, ancestor))
            ):
                depth = depths[ancestor] + 1
                sites.append(RiskSite(RiskKind.NESTED_QUANTIFIER, ancestor, index, depth))
            depths[index] = depth
            ancestor, barrier = index, possessive
        elif node.kind is NodeKind.GROUP and node.group_kind is GroupKind.ATOMIC:
            barrier = True
        elif node.kind is NodeKind.ALTERNATION and ancestor is not None and not barrier:
            if _branches_overlap(tree, index):
                overlapping = True
                sites.append(
                    RiskSite(RiskKind.OVERLAPPING_ALTERNATION, ancestor, index, depths[ancestor])
                )

        for child in reversed(node.children):
            stack.append((child, ancestor, barrier))

    return RepetitionScan(
        depth=max(depths.values(), default=0),
        overlapping=overlapping,
        sites=tuple(sites),
    )


def _follow_in_body(tree: SyntaxTree, index: int, quantifier: int) -> CharSet:
    """Characters that can come right after ``index`` inside ``quantifier``'s body.

    Walks up to the quantifier collecting the first characters of following
    siblings, stopping at the first one that must consume input. If the rest
    of the body can match empty, the next iteration's first characters follow.
    """
    follow = EMPTY
    child = index
    for ancestor in tree.ancestors(index):
        if ancestor == quantifier:
            return follow | tree[quantifier].first
        node = tree[ancestor]
        if node.kind is NodeKind.CONCAT:
            for sibling in node.children[node.children.index(child) + 1:]:
                follow = follow | tree[sibling].first
                if tree[sibling].min_width > 0:
                    return follow
        child = ancestor
    return follow


def _literal_text(tree: SyntaxTree, index: int) -> str | None:
    """Text of a branch made only of single-character literals, else None."""
    out = []
    for i in tree.walk(index):
        node = tree[i]
        if node.kind is NodeKind.LITERAL and node.chars.is_single():
            out.append(node.value or "")
        elif node.kind is NodeKind.CONCAT or (
            node.kind is NodeKind.GROUP and node.group_kind is not GroupKind.ATOMIC
        ):
            continue
        else:
            return None
    return "".join(out)


def _branches_overlap(tree: SyntaxTree, alternation: int) -> bool:
    branches = tree[alternation].children
    for i, left in enumerate(branches):
        if tree[left].min_width == 0:
            return True
        for right in branches[i + 1:]:
            left_text = _literal_text(tree, left)
            right_text = _literal_text(tree, right)
            if left_text is not None and right_text is not None:
                if left_text.startswith(right_text) or right_text.startswith(left_text):
                    return True
            elif tree[left].first.intersects(tree[right].first):
                return True
    return False


# =============================================================================
# Derivation
# =============================================================================


def _lookahead_has_nested_quantifier(tree: SyntaxTree) -> bool:
    for look in tree.find(NodeKind.LOOKAROUND):
        if tree[look].look_kind is not LookaroundKind.AHEAD:
            continue
        for index in tree.walk(look):
            if not tree[index].is_repeating:
                continue
            for ancestor in tree.ancestors(index):
                if ancestor == look:
                    break
                if tree[ancestor].is_repeating:
                    return True
    return False


def derive_profile(tree: SyntaxTree) -> FeatureProfile:
    """Derive the feature profile of a parsed pattern.

    Total over any tree the parser produces; visits each node a bounded
    number of times without recursion.
    """
    flags: dict[str, Any] = {}
    syntaxes: set[NamedGroupSyntax] = set()

    for index, node in enumerate(tree.nodes):
        kind = node.kind
        if kind is NodeKind.LOOKAROUND:
            if node.look_kind is LookaroundKind.AHEAD:
                flags["has_lookahead"] = True
            else:
                flags["has_lookbehind"] = True
                if not tree[node.children[0]].is_fixed_width:
                    flags["lookbehind_is_variable_length"] = True
        elif kind is NodeKind.BACKREFERENCE:
            flags["has_backreference"] = True
            if any(tree[a].kind is NodeKind.LOOKAROUND for a in tree.ancestors(index)):
                flags["has_backreference_in_lookaround"] = True
        elif kind is NodeKind.GROUP:
            if node.group_kind is GroupKind.NAMED:
                flags["has_named_groups"] = True
                if node.name_syntax is not None:
                    syntaxes.add(node.name_syntax)
            elif node.group_kind is GroupKind.ATOMIC:
                flags["has_atomic_group"] = True
            if node.value is not None:
                flags["has_inline_flags"] = True
        elif kind is NodeKind.QUANTIFIER and node.quant_mode is QuantifierMode.POSSESSIVE:
            flags["has_possessive_quantifier"] = True
        elif kind is NodeKind.CHAR_CLASS:
            if node.unicode_property:
                flags["has_unicode_property"] = True
            if node.posix_class:
                flags["has_posix_class"] = True
        elif kind is NodeKind.CONDITIONAL:
            flags["has_conditional"] = True
        elif kind is NodeKind.RECURSION:
            flags["has_recursion"] = True
        elif kind is NodeKind.FLAGS:
            flags["has_inline_flags"] = True

    scan = scan_repetition(tree)
    return FeatureProfile(
        named_group_syntaxes=frozenset(syntaxes),
        lookahead_has_nested_quantifier=_lookahead_has_nested_quantifier(tree),
        nested_quantifier_depth=scan.depth,
        has_overlapping_alternation=scan.overlapping,
        **flags,
    )
