"""Library entry points.

Every function takes a raw pattern string (or an already parsed
``Pattern``) and returns a plain dataclass with ``to_dict()``.

Example:
    import regexscope as rs

    result = rs.analyze(r"(\\w+)\\s+\\1", dialects=["python", "go"])
    result.engine                      # EngineVariant.BACKTRACKING
    result.portability["go_regexp"]    # DialectVerdict(supported=False, ...)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import timedelta
from typing import Any, Iterable, Sequence

from regexscope.backtrack import BacktrackAnalyzer, BacktrackVerdict
from regexscope.config import AnalysisConfig, ProbeConfig
from regexscope.engine import EngineSelector, ensure_consistent, select_engine
from regexscope.errors import ParseError
from regexscope.explain import Explanation, explain_tree
from regexscope.inference import ExampleInferencer, InferredPattern
from regexscope.portability import (
    DialectVerdict,
    PortabilityReport,
    check_portability,
    get_dialect_registry,
)
from regexscope.profile import FeatureProfile
from regexscope.syntax.nodes import Pattern
from regexscope.types import EngineVariant

logger = logging.getLogger(__name__)


def _pattern(pattern: str | Pattern) -> Pattern:
    return pattern if isinstance(pattern, Pattern) else Pattern.parse(pattern)


# =============================================================================
# Results
# =============================================================================


@dataclass(frozen=True)
class AnalysisResult:
    """Full analysis of one pattern.

    Attributes:
        pattern: The analyzed pattern
        profile: Derived feature profile
        engine: Selected engine variant
        engine_reasons: Why a backtracking engine was selected
        portability: Per-dialect verdicts
        backtracking: Backtrack verdict, or None when probing was disabled
    """

    pattern: str
    profile: FeatureProfile
    engine: EngineVariant
    engine_reasons: tuple[str, ...]
    portability: PortabilityReport
    backtracking: BacktrackVerdict | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "pattern": self.pattern,
            "profile": self.profile.to_dict(),
            "engine": self.engine.value,
            "engine_reasons": list(self.engine_reasons),
            "portability": self.portability.to_dict(),
            "backtracking": self.backtracking.to_dict() if self.backtracking else None,
        }


@dataclass(frozen=True)
class ValidationResult:
    """Syntax (and optionally dialect) validation of one pattern."""

    pattern: str
    valid: bool
    engine: EngineVariant | None = None
    error: ParseError | None = None
    dialect: str | None = None
    verdict: DialectVerdict | None = None

    @property
    def suggestion(self) -> str | None:
        if self.error is not None:
            return self.error.suggestion
        if self.verdict is not None and not self.verdict.supported:
            return self.verdict.detail
        return None

    def to_dict(self) -> dict[str, Any]:
        return {
            "pattern": self.pattern,
            "valid": self.valid,
            "engine": self.engine.value if self.engine else None,
            "error": self.error.to_dict() if self.error else None,
            "dialect": self.dialect,
            "verdict": self.verdict.to_dict() if self.verdict else None,
            "suggestion": self.suggestion,
        }


# =============================================================================
# Operations
# =============================================================================


def parse(pattern: str) -> Pattern:
    """Parse a pattern.

    Raises:
        ParseError: On malformed syntax
    """
    return Pattern.parse(pattern)


def profile(pattern: str | Pattern) -> FeatureProfile:
    return _pattern(pattern).profile


def select(pattern: str | Pattern) -> EngineVariant:
    """Select the engine for a pattern, verifying the choice against its tree."""
    pattern = _pattern(pattern)
    variant = select_engine(pattern.profile)
    ensure_consistent(pattern.tree, variant)
    return variant


def check(pattern: str | Pattern, dialects: Iterable[str] | None = None) -> PortabilityReport:
    """Check portability of a pattern.

    Raises:
        UnknownDialectError: Before parsing, if any dialect is unknown
    """
    if dialects is not None:
        registry = get_dialect_registry()
        dialects = [registry.resolve(d) for d in dialects]
    return check_portability(_pattern(pattern).profile, dialects)


def analyze_backtracking(
    pattern: str | Pattern,
    seed: str | None = None,
    budget: float | timedelta | None = None,
    config: ProbeConfig | None = None,
) -> BacktrackVerdict:
    return BacktrackAnalyzer(config).analyze(_pattern(pattern), seed=seed, budget=budget)


def analyze(
    pattern: str | Pattern,
    *,
    dialects: Iterable[str] | None = None,
    probe: bool = True,
    seed: str | None = None,
    budget: float | timedelta | None = None,
    config: AnalysisConfig | None = None,
) -> AnalysisResult:
    """Run every analysis on a pattern.

    The pattern is parsed once; the profile is shared by the engine
    selector, the portability matrix and the backtrack analyzer.
    """
    config = config or AnalysisConfig()
    if dialects is None:
        dialects = config.dialects
    portability_targets = None
    if dialects is not None:
        registry = get_dialect_registry()
        portability_targets = [registry.resolve(d) for d in dialects]

    pattern = _pattern(pattern)
    variant = select(pattern)
    verdict = None
    if probe:
        verdict = BacktrackAnalyzer(config.probe).analyze(pattern, seed=seed, budget=budget)

    return AnalysisResult(
        pattern=pattern.raw,
        profile=pattern.profile,
        engine=variant,
        engine_reasons=tuple(EngineSelector().reasons(pattern.profile)),
        portability=check_portability(pattern.profile, portability_targets),
        backtracking=verdict,
    )


def explain(pattern: str | Pattern) -> Explanation:
    """Break a pattern down into plain-language parts with a one-line summary.

    Raises:
        ParseError: On malformed syntax
    """
    return explain_tree(_pattern(pattern).tree)


def validate(pattern: str, dialect: str | None = None) -> ValidationResult:
    """Validate syntax, and support in one dialect when given.

    Parse errors are reported in the result; an unknown dialect raises
    ``UnknownDialectError``.
    """
    target = get_dialect_registry().resolve(dialect) if dialect else None
    try:
        parsed = Pattern.parse(pattern)
    except ParseError as e:
        logger.debug("Pattern failed to parse: %s", e)
        return ValidationResult(pattern=pattern, valid=False, error=e, dialect=target)

    variant = select(parsed)
    if target is None:
        return ValidationResult(pattern=pattern, valid=True, engine=variant)

    verdict = check_portability(parsed.profile, [target])[target]
    return ValidationResult(
        pattern=pattern,
        valid=verdict.supported,
        engine=variant,
        dialect=target,
        verdict=verdict,
    )


def infer(
    examples: Sequence[str],
    negative_examples: Sequence[str] | None = None,
    config: AnalysisConfig | None = None,
) -> list[InferredPattern]:
    """Infer candidate patterns from examples, best first."""
    inference = (config or AnalysisConfig()).inference
    return ExampleInferencer(inference).infer_patterns(examples, negative_examples)
