"""Type definitions for regexscope."""

from __future__ import annotations

from enum import Enum


class EngineVariant(str, Enum):
    """Execution engine families a pattern can be routed to."""

    LINEAR_TIME = "linear_time"      # RE2-style automaton, no backtracking
    BACKTRACKING = "backtracking"    # Perl-style backtracking matcher


class BacktrackRisk(str, Enum):
    """Classification produced by the backtrack analyzer."""

    SAFE = "safe"
    SUSPICIOUS = "suspicious"
    CATASTROPHIC = "catastrophic"


class NamedGroupSyntax(str, Enum):
    """Spellings of a named capturing group."""

    PYTHON = "(?P<name>...)"
    ANGLE = "(?<name>...)"
    QUOTE = "(?'name'...)"


class FeatureFlag(str, Enum):
    """Syntactic capabilities that dialects may or may not support."""

    LOOKBEHIND_VARIABLE_LENGTH = "lookbehind_variable_length"
    BACKREFERENCE_IN_LOOKAROUND = "backreference_in_lookaround"
    POSSESSIVE_QUANTIFIER = "possessive_quantifier"
    ATOMIC_GROUP = "atomic_group"
    CONDITIONAL = "conditional"
    UNICODE_PROPERTY = "unicode_property"
    NAMED_GROUP_SYNTAX = "named_group_syntax"
    LOOKAHEAD = "lookahead"
    LOOKBEHIND = "lookbehind"
    BACKREFERENCE = "backreference"
    RECURSION = "recursion"
    POSIX_CLASS = "posix_class"
    INLINE_FLAGS = "inline_flags"

    @property
    def description(self) -> str:
        return _FLAG_DESCRIPTIONS[self]


_FLAG_DESCRIPTIONS = {
    FeatureFlag.LOOKBEHIND_VARIABLE_LENGTH: "variable-length lookbehind assertion",
    FeatureFlag.BACKREFERENCE_IN_LOOKAROUND: "backreference inside a lookaround",
    FeatureFlag.POSSESSIVE_QUANTIFIER: "possessive quantifier (a++, a*+)",
    FeatureFlag.ATOMIC_GROUP: "atomic group (?>...)",
    FeatureFlag.CONDITIONAL: "conditional group (?(1)then|else)",
    FeatureFlag.UNICODE_PROPERTY: "Unicode property escape (\\p{...})",
    FeatureFlag.NAMED_GROUP_SYNTAX: "named group syntax",
    FeatureFlag.LOOKAHEAD: "lookahead assertion (?=...) / (?!...)",
    FeatureFlag.LOOKBEHIND: "lookbehind assertion (?<=...) / (?<!...)",
    FeatureFlag.BACKREFERENCE: "backreference (\\1, \\k<name>)",
    FeatureFlag.RECURSION: "recursion or subroutine call ((?R), \\g<name>)",
    FeatureFlag.POSIX_CLASS: "POSIX bracket class ([:alpha:])",
    FeatureFlag.INLINE_FLAGS: "inline flag group ((?i), (?i:...))",
}
