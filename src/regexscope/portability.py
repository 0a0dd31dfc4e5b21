"""Cross-dialect portability matrix.

Each dialect is a capability record: the set of feature flags it cannot
handle and the named-group spellings it accepts. Checking a profile
against a dialect is a set lookup over those records, so adding a dialect
or a flag is a data change:

    registry = get_dialect_registry().clone()
    registry.register(
        DialectCapabilities(
            id="my_engine",
            name="My Engine",
            unsupported=frozenset({FeatureFlag.RECURSION}),
        )
    )
    report = check_portability(profile, ["my_engine"], registry=registry)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Iterable, Iterator

from regexscope.errors import UnknownDialectError
from regexscope.profile import FeatureProfile
from regexscope.types import FeatureFlag, NamedGroupSyntax

logger = logging.getLogger(__name__)

_ALL_SYNTAXES = frozenset(NamedGroupSyntax)


# =============================================================================
# Capability Records
# =============================================================================


@dataclass(frozen=True)
class DialectCapabilities:
    """Static capability record for one dialect.

    Attributes:
        id: Canonical dialect identifier
        name: Display name
        unsupported: Feature flags the dialect rejects
        named_group_syntaxes: Named-group spellings the dialect accepts
        aliases: Alternative identifiers that resolve to this dialect
        notes: Per-flag explanations shown when a check fails
    """

    id: str
    name: str
    unsupported: frozenset[FeatureFlag] = frozenset()
    named_group_syntaxes: frozenset[NamedGroupSyntax] = _ALL_SYNTAXES
    aliases: tuple[str, ...] = ()
    notes: dict[FeatureFlag, str] = field(default_factory=dict, hash=False, compare=False)

    def rejects(self, flag: FeatureFlag, profile: FeatureProfile) -> bool:
        if flag is FeatureFlag.NAMED_GROUP_SYNTAX:
            return bool(profile.named_group_syntaxes - self.named_group_syntaxes)
        return flag in self.unsupported


@dataclass(frozen=True)
class DialectVerdict:
    """Portability verdict for one dialect."""

    supported: bool
    reason: FeatureFlag | None = None
    detail: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "supported": self.supported,
            "reason": self.reason.value if self.reason else None,
            "detail": self.detail,
        }


@dataclass(frozen=True)
class PortabilityReport:
    """Mapping of dialect id to verdict, in request order."""

    verdicts: dict[str, DialectVerdict]

    def __getitem__(self, dialect: str) -> DialectVerdict:
        return self.verdicts[dialect]

    def __iter__(self) -> Iterator[str]:
        return iter(self.verdicts)

    def __len__(self) -> int:
        return len(self.verdicts)

    def items(self):
        return self.verdicts.items()

    @property
    def supported(self) -> list[str]:
        return [d for d, v in self.verdicts.items() if v.supported]

    @property
    def unsupported(self) -> list[str]:
        return [d for d, v in self.verdicts.items() if not v.supported]

    @property
    def is_fully_portable(self) -> bool:
        return all(v.supported for v in self.verdicts.values())

    def to_dict(self) -> dict[str, Any]:
        return {d: v.to_dict() for d, v in self.verdicts.items()}


# =============================================================================
# Registry
# =============================================================================


class DialectRegistry:
    """Registry of dialect capability records.

    Example:
        registry = DialectRegistry()
        registry.register(pcre2_capabilities)
        registry.resolve("pcre")  # -> "pcre2"
    """

    def __init__(self) -> None:
        self._dialects: dict[str, DialectCapabilities] = {}
        self._aliases: dict[str, str] = {}

    def register(self, dialect: DialectCapabilities) -> None:
        """Register a dialect. Replaces an existing one with the same id."""
        self.unregister(dialect.id)
        self._dialects[dialect.id] = dialect
        for alias in dialect.aliases:
            self._aliases[alias.lower()] = dialect.id

    def unregister(self, dialect_id: str) -> bool:
        """Unregister a dialect by id. Returns True if found."""
        dialect = self._dialects.pop(dialect_id, None)
        if dialect is None:
            return False
        self._aliases = {a: d for a, d in self._aliases.items() if d != dialect_id}
        return True

    def resolve(self, name: str) -> str:
        """Resolve an id or alias to a canonical id.

        Raises:
            UnknownDialectError: If nothing matches
        """
        key = name.strip().lower().replace("-", "_")
        if key in self._dialects:
            return key
        if key in self._aliases:
            return self._aliases[key]
        raise UnknownDialectError(name, self.ids())

    def get(self, name: str) -> DialectCapabilities:
        return self._dialects[self.resolve(name)]

    def has(self, name: str) -> bool:
        try:
            self.resolve(name)
        except UnknownDialectError:
            return False
        return True

    def ids(self) -> list[str]:
        return list(self._dialects)

    def __iter__(self) -> Iterator[DialectCapabilities]:
        return iter(self._dialects.values())

    def __len__(self) -> int:
        return len(self._dialects)

    def clone(self) -> "DialectRegistry":
        new = DialectRegistry()
        new._dialects = dict(self._dialects)
        new._aliases = dict(self._aliases)
        return new


# =============================================================================
# Built-in Dialects
# =============================================================================

_LINEAR_UNSUPPORTED = frozenset({
    FeatureFlag.LOOKAHEAD,
    FeatureFlag.LOOKBEHIND,
    FeatureFlag.LOOKBEHIND_VARIABLE_LENGTH,
    FeatureFlag.BACKREFERENCE,
    FeatureFlag.BACKREFERENCE_IN_LOOKAROUND,
    FeatureFlag.ATOMIC_GROUP,
    FeatureFlag.POSSESSIVE_QUANTIFIER,
    FeatureFlag.CONDITIONAL,
    FeatureFlag.RECURSION,
})

_LINEAR_NOTES = {
    FeatureFlag.LOOKAHEAD: "Lookahead assertions are not supported by automaton-based engines",
    FeatureFlag.LOOKBEHIND: "Lookbehind assertions are not supported by automaton-based engines",
    FeatureFlag.BACKREFERENCE: "Backreferences cannot be matched in linear time",
}


def _create_builtin_dialects() -> DialectRegistry:
    """Create registry with the built-in dialects."""
    registry = DialectRegistry()

    registry.register(
        DialectCapabilities(
            id="rust_regex",
            name="Rust regex crate",
            unsupported=_LINEAR_UNSUPPORTED,
            named_group_syntaxes=frozenset({NamedGroupSyntax.PYTHON, NamedGroupSyntax.ANGLE}),
            aliases=("rust",),
            notes=_LINEAR_NOTES,
        )
    )
    registry.register(
        DialectCapabilities(
            id="go_regexp",
            name="Go regexp",
            unsupported=_LINEAR_UNSUPPORTED,
            named_group_syntaxes=frozenset({NamedGroupSyntax.PYTHON, NamedGroupSyntax.ANGLE}),
            aliases=("go", "golang"),
            notes=_LINEAR_NOTES,
        )
    )
    registry.register(
        DialectCapabilities(
            id="re2",
            name="RE2",
            unsupported=_LINEAR_UNSUPPORTED,
            named_group_syntaxes=frozenset({NamedGroupSyntax.PYTHON, NamedGroupSyntax.ANGLE}),
            aliases=("google_re2",),
            notes=_LINEAR_NOTES,
        )
    )
    registry.register(
        DialectCapabilities(
            id="pcre2",
            name="PCRE2",
            unsupported=frozenset({FeatureFlag.LOOKBEHIND_VARIABLE_LENGTH}),
            aliases=("pcre", "php", "perl"),
            notes={
                FeatureFlag.LOOKBEHIND_VARIABLE_LENGTH: "PCRE2 lookbehind must have a bounded length",
            },
        )
    )
    registry.register(
        DialectCapabilities(
            id="javascript",
            name="JavaScript RegExp",
            unsupported=frozenset({
                FeatureFlag.ATOMIC_GROUP,
                FeatureFlag.POSSESSIVE_QUANTIFIER,
                FeatureFlag.CONDITIONAL,
                FeatureFlag.RECURSION,
                FeatureFlag.POSIX_CLASS,
                FeatureFlag.INLINE_FLAGS,
            }),
            named_group_syntaxes=frozenset({NamedGroupSyntax.ANGLE}),
            aliases=("js", "ecmascript", "typescript", "ts", "node"),
            notes={
                FeatureFlag.INLINE_FLAGS: "JavaScript takes flags on the RegExp object, not inline",
            },
        )
    )
    registry.register(
        DialectCapabilities(
            id="python_re",
            name="Python re",
            unsupported=frozenset({
                FeatureFlag.LOOKBEHIND_VARIABLE_LENGTH,
                FeatureFlag.UNICODE_PROPERTY,
                FeatureFlag.RECURSION,
                FeatureFlag.POSIX_CLASS,
            }),
            named_group_syntaxes=frozenset({NamedGroupSyntax.PYTHON}),
            aliases=("python", "py", "re"),
            notes={
                FeatureFlag.LOOKBEHIND_VARIABLE_LENGTH: "re requires fixed-width lookbehind",
                FeatureFlag.UNICODE_PROPERTY: "re has no \\p{...}; use the regex module",
            },
        )
    )
    registry.register(
        DialectCapabilities(
            id="python_regex",
            name="Python regex module",
            aliases=("regex",),
        )
    )
    registry.register(
        DialectCapabilities(
            id="java",
            name="Java java.util.regex",
            unsupported=frozenset({
                FeatureFlag.LOOKBEHIND_VARIABLE_LENGTH,
                FeatureFlag.CONDITIONAL,
                FeatureFlag.RECURSION,
                FeatureFlag.POSIX_CLASS,
            }),
            named_group_syntaxes=frozenset({NamedGroupSyntax.ANGLE}),
            aliases=("kotlin", "scala"),
            notes={
                FeatureFlag.POSIX_CLASS: "Java spells POSIX classes as \\p{Alpha}",
            },
        )
    )
    registry.register(
        DialectCapabilities(
            id="dotnet",
            name=".NET System.Text.RegularExpressions",
            unsupported=frozenset({
                FeatureFlag.POSSESSIVE_QUANTIFIER,
                FeatureFlag.RECURSION,
                FeatureFlag.POSIX_CLASS,
            }),
            named_group_syntaxes=frozenset({NamedGroupSyntax.ANGLE, NamedGroupSyntax.QUOTE}),
            aliases=("net", ".net", "csharp", "c#", "cs"),
        )
    )
    registry.register(
        DialectCapabilities(
            id="ruby",
            name="Ruby (Onigmo)",
            unsupported=frozenset({
                FeatureFlag.LOOKBEHIND_VARIABLE_LENGTH,
                FeatureFlag.CONDITIONAL,
                FeatureFlag.RECURSION,
            }),
            named_group_syntaxes=frozenset({NamedGroupSyntax.ANGLE, NamedGroupSyntax.QUOTE}),
            aliases=("rb", "onigmo", "oniguruma"),
            notes={
                FeatureFlag.RECURSION: "Onigmo supports \\g<name> subroutines but not (?R)",
            },
        )
    )

    return registry


_default_registry: DialectRegistry | None = None


def get_dialect_registry() -> DialectRegistry:
    """Get the process-wide dialect registry."""
    global _default_registry
    if _default_registry is None:
        _default_registry = _create_builtin_dialects()
    return _default_registry


# =============================================================================
# Checking
# =============================================================================


def _verdict(profile: FeatureProfile, dialect: DialectCapabilities) -> DialectVerdict:
    for flag in profile.active_flags():
        if dialect.rejects(flag, profile):
            detail = dialect.notes.get(flag) or f"{dialect.name} does not support {flag.description}"
            return DialectVerdict(supported=False, reason=flag, detail=detail)
    return DialectVerdict(supported=True)


def check_portability(
    profile: FeatureProfile,
    dialects: Iterable[str] | None = None,
    *,
    registry: DialectRegistry | None = None,
) -> PortabilityReport:
    """Check a profile against the requested dialects.

    Args:
        profile: Feature profile of the pattern
        dialects: Dialect ids or aliases; None checks every registered dialect
        registry: Registry to use (defaults to the built-in one)

    Returns:
        Report keyed by canonical dialect id

    Raises:
        UnknownDialectError: If any requested dialect is not registered.
            Raised before any verdict is computed.
    """
    if registry is None:
        registry = get_dialect_registry()
    if dialects is None:
        targets = registry.ids()
    else:
        targets = list(dict.fromkeys(registry.resolve(d) for d in dialects))

    verdicts = {d: _verdict(profile, registry.get(d)) for d in targets}
    logger.debug(
        "Portability: %d/%d dialects supported",
        sum(v.supported for v in verdicts.values()),
        len(verdicts),
    )
    return PortabilityReport(verdicts)
