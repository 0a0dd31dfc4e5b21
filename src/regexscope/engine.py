"""Engine selection.

Routes a pattern to the linear-time engine unless its profile uses a
construct only a backtracking engine can execute. Selection is a pure
classification; ``compile_pattern`` is the separate step that actually
builds a matcher.
"""

from __future__ import annotations

import logging

from regexscope.errors import EngineCompileError, InvariantViolationError
from regexscope.matchers import CompiledPattern, get_matcher
from regexscope.profile import FeatureProfile
from regexscope.syntax.nodes import (
    GroupKind,
    LookaroundKind,
    NodeKind,
    Pattern,
    QuantifierMode,
    SyntaxTree,
)
from regexscope.types import EngineVariant

logger = logging.getLogger(__name__)


# Profile attributes that force a backtracking engine, with the reason shown to users.
BACKTRACKING_TRIGGERS: tuple[tuple[str, str], ...] = (
    ("has_backreference", "backreferences require a backtracking engine"),
    ("has_conditional", "conditional groups require a backtracking engine"),
    ("has_atomic_group", "atomic groups are a backtracking-control construct"),
    ("has_possessive_quantifier", "possessive quantifiers are a backtracking-control construct"),
    ("lookbehind_is_variable_length", "variable-length lookbehind is not supported by linear-time engines"),
    ("lookahead_has_nested_quantifier", "lookahead contains nested quantifiers"),
    ("has_recursion", "recursion and subroutine calls require a backtracking engine"),
)


class EngineSelector:
    """Maps a feature profile onto an engine variant."""

    def __init__(self, triggers: tuple[tuple[str, str], ...] = BACKTRACKING_TRIGGERS):
        self.triggers = triggers

    def select(self, profile: FeatureProfile) -> EngineVariant:
        if any(getattr(profile, attr) for attr, _ in self.triggers):
            return EngineVariant.BACKTRACKING
        return EngineVariant.LINEAR_TIME

    def reasons(self, profile: FeatureProfile) -> list[str]:
        """Human-readable reasons for a backtracking selection (empty for linear)."""
        return [reason for attr, reason in self.triggers if getattr(profile, attr)]


_default_selector = EngineSelector()


def select_engine(profile: FeatureProfile) -> EngineVariant:
    """Select an engine variant using the default rules."""
    return _default_selector.select(profile)


def _backtracking_constructs(tree: SyntaxTree) -> list[str]:
    """Structural re-check of constructs a linear-time engine cannot run.

    Looks at the tree directly rather than at the profile, so a wrong
    profile rule shows up as a disagreement.
    """
    found = []
    for index, node in enumerate(tree.nodes):
        if node.kind in (NodeKind.BACKREFERENCE, NodeKind.CONDITIONAL, NodeKind.RECURSION):
            found.append(f"{node.kind.value} at {node.start}")
        elif node.kind is NodeKind.GROUP and node.group_kind is GroupKind.ATOMIC:
            found.append(f"atomic group at {node.start}")
        elif node.kind is NodeKind.QUANTIFIER and node.quant_mode is QuantifierMode.POSSESSIVE:
            found.append(f"possessive quantifier at {node.start}")
        elif (
            node.kind is NodeKind.LOOKAROUND
            and node.look_kind is LookaroundKind.BEHIND
            and not tree[node.children[0]].is_fixed_width
        ):
            found.append(f"variable-length lookbehind at {node.start}")
    return found


def ensure_consistent(tree: SyntaxTree, variant: EngineVariant) -> None:
    """Fail loudly if a linear-time selection contradicts the tree.

    Raises:
        InvariantViolationError: If LINEAR_TIME was chosen for a tree that
            contains backtracking-only constructs
    """
    if variant is not EngineVariant.LINEAR_TIME:
        return
    constructs = _backtracking_constructs(tree)
    if constructs:
        raise InvariantViolationError(
            "Linear-time engine selected for a pattern with backtracking-only constructs",
            context={"pattern": tree.pattern, "constructs": constructs},
        )


def compile_pattern(pattern: str | Pattern, variant: EngineVariant | None = None) -> CompiledPattern:
    """Compile a pattern with the selected (or given) engine.

    When the linear-time engine rejects syntax the profile did not flag
    (for example an engine-specific escape), compilation falls back to the
    backtracking engine.

    Raises:
        ParseError: If the pattern does not parse
        EngineCompileError: If no engine accepts the pattern
    """
    if not isinstance(pattern, Pattern):
        pattern = Pattern.parse(pattern)
    if variant is None:
        variant = select_engine(pattern.profile)
        ensure_consistent(pattern.tree, variant)

    if variant is EngineVariant.LINEAR_TIME:
        try:
            return get_matcher(EngineVariant.LINEAR_TIME).compile(pattern.raw)
        except EngineCompileError as e:
            logger.warning("Linear-time engine rejected pattern, using backtracking engine: %s", e)
    return get_matcher(EngineVariant.BACKTRACKING).compile(pattern.raw)
