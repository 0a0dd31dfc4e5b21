"""Catastrophic-backtracking (ReDoS) analysis."""

from regexscope.backtrack.analyzer import (
    BacktrackAnalyzer,
    BacktrackVerdict,
    BenchmarkSample,
    ProbeAbort,
    analyze_backtracking,
    classify_samples,
    growth_exponent,
    growth_ratios,
)
from regexscope.backtrack.inputs import AttackInput, build_attack
from regexscope.backtrack.probe import AttemptResult, AttemptStatus, ProbeRunner
from regexscope.backtrack.static import StaticAssessment, assess, static_score, suggest_fix

__all__ = [
    "BacktrackAnalyzer",
    "BacktrackVerdict",
    "BenchmarkSample",
    "ProbeAbort",
    "analyze_backtracking",
    "classify_samples",
    "growth_exponent",
    "growth_ratios",
    "AttackInput",
    "build_attack",
    "AttemptResult",
    "AttemptStatus",
    "ProbeRunner",
    "StaticAssessment",
    "assess",
    "static_score",
    "suggest_fix",
]
