"""Backtrack analyzer: static scan plus bounded dynamic probe.

Example:
    from regexscope.backtrack import BacktrackAnalyzer

    analyzer = BacktrackAnalyzer()
    verdict = analyzer.analyze(r"(a+)+$", seed="a", budget=1.0)
    verdict.risk          # BacktrackRisk.CATASTROPHIC
    verdict.aborted       # ProbeAbort(input_size=..., ceiling_seconds=...)
"""

from __future__ import annotations

import logging
import math
import time
from dataclasses import dataclass, field
from datetime import timedelta
from typing import Any, Sequence

import numpy as np

from regexscope.backtrack.inputs import AttackInput, build_attack
from regexscope.backtrack.probe import AttemptStatus, ProbeRunner
from regexscope.backtrack.static import StaticAssessment, assess, suggest_fix
from regexscope.config import ProbeConfig
from regexscope.errors import EngineCompileError
from regexscope.matchers import get_matcher
from regexscope.syntax.nodes import Pattern
from regexscope.types import BacktrackRisk, EngineVariant

logger = logging.getLogger(__name__)


# =============================================================================
# Results
# =============================================================================


@dataclass(frozen=True)
class BenchmarkSample:
    """One completed probe attempt."""

    input_size: int
    elapsed_seconds: float


@dataclass(frozen=True)
class ProbeAbort:
    """Where the probe was cut off by a ceiling violation."""

    input_size: int
    ceiling_seconds: float


@dataclass(frozen=True)
class BacktrackVerdict:
    """Classification of a pattern's backtracking behavior.

    Attributes:
        risk: SAFE, SUSPICIOUS or CATASTROPHIC
        samples: Completed (input size, elapsed) measurements in probe order
        aborted: Set when an attempt exceeded its ceiling
        static_score: Score from the static phase
        constructs: Ambiguous constructs found by the static phase
        growth_ratios: Elapsed-time ratio between successive samples
        growth_exponent: Log-log slope of time over input size, when measurable
        suggestion: Rewrite hint for risky patterns
        probe_skipped: The static phase found nothing and no probe ran
        budget_exhausted: The probe stopped because the budget ran out
        note: Extra diagnostic text
        attack_unit: Repeated unit of the attack input
    """

    risk: BacktrackRisk
    samples: tuple[BenchmarkSample, ...] = ()
    aborted: ProbeAbort | None = None
    static_score: int = 0
    constructs: tuple[str, ...] = ()
    growth_ratios: tuple[float, ...] = ()
    growth_exponent: float | None = None
    suggestion: str | None = None
    probe_skipped: bool = False
    budget_exhausted: bool = False
    note: str | None = None
    attack_unit: str | None = None

    @property
    def is_safe(self) -> bool:
        return self.risk is BacktrackRisk.SAFE

    def to_dict(self) -> dict[str, Any]:
        return {
            "risk": self.risk.value,
            "samples": [
                {"input_size": s.input_size, "elapsed_seconds": s.elapsed_seconds}
                for s in self.samples
            ],
            "aborted": (
                {"input_size": self.aborted.input_size, "ceiling_seconds": self.aborted.ceiling_seconds}
                if self.aborted
                else None
            ),
            "static_score": self.static_score,
            "constructs": list(self.constructs),
            "growth_ratios": list(self.growth_ratios),
            "growth_exponent": self.growth_exponent,
            "suggestion": self.suggestion,
            "probe_skipped": self.probe_skipped,
            "budget_exhausted": self.budget_exhausted,
            "note": self.note,
        }


# =============================================================================
# Classification
# =============================================================================


def growth_ratios(samples: Sequence[BenchmarkSample], floor: float) -> list[float]:
    """Ratio of each sample's time to the previous one (denominator floored)."""
    times = np.array([s.elapsed_seconds for s in samples], dtype=float)
    if len(times) < 2:
        return []
    return (times[1:] / np.maximum(times[:-1], floor)).tolist()


def growth_exponent(samples: Sequence[BenchmarkSample], floor: float) -> float | None:
    """Estimate k in time ~ size**k from samples above the noise floor."""
    usable = [s for s in samples if s.elapsed_seconds >= floor]
    if len(usable) < 3:
        return None
    sizes = np.log([s.input_size for s in usable])
    times = np.log([s.elapsed_seconds for s in usable])
    slope, _ = np.polyfit(sizes, times, 1)
    return float(slope)


def classify_samples(
    samples: Sequence[BenchmarkSample],
    aborted: bool,
    threshold: float,
    floor: float,
) -> BacktrackRisk:
    """Classify probe samples.

    A ceiling violation is catastrophic on its own. Otherwise a ratio is
    elevated when it reaches ``threshold`` and the later sample is above the
    noise floor; two consecutive elevated ratios are catastrophic, a single
    one is suspicious.
    """
    if aborted:
        return BacktrackRisk.CATASTROPHIC

    ratios = growth_ratios(samples, floor)
    elevated = [
        ratio >= threshold and samples[i + 1].elapsed_seconds >= floor
        for i, ratio in enumerate(ratios)
    ]
    if any(a and b for a, b in zip(elevated, elevated[1:])):
        return BacktrackRisk.CATASTROPHIC
    if any(elevated):
        return BacktrackRisk.SUSPICIOUS
    return BacktrackRisk.SAFE


def plan_repetitions(attack: AttackInput, base: int, max_input_length: int) -> list[int]:
    """Repetition counts n, 2n, 4n, ... until the input reaches the size limit.

    The last step is the first one whose input is at least
    ``max_input_length`` characters long.
    """
    plan = [base]
    while attack.unit and attack.size(plan[-1]) < max_input_length:
        plan.append(plan[-1] * 2)
    return plan


# =============================================================================
# Analyzer
# =============================================================================


@dataclass
class _ProbeState:
    samples: list[BenchmarkSample] = field(default_factory=list)
    aborted: ProbeAbort | None = None
    exhausted: bool = False
    failure: str | None = None


class BacktrackAnalyzer:
    """Two-phase catastrophic-backtracking detector.

    The static phase scores ambiguous repetition. Only risky patterns are
    probed: the backtracking engine is run on growing attack inputs in a
    worker process, each attempt under a ceiling of (remaining budget /
    remaining steps). The analyzer never waits past the budget, plus the
    bounded time needed to reap a killed worker.
    """

    def __init__(self, config: ProbeConfig | None = None, runner: ProbeRunner | None = None):
        self.config = config or ProbeConfig()
        self.runner = runner or ProbeRunner(
            start_method=self.config.start_method,
            kill_grace_seconds=self.config.kill_grace_seconds,
        )

    def analyze(
        self,
        pattern: str | Pattern,
        seed: str | None = None,
        budget: float | timedelta | None = None,
    ) -> BacktrackVerdict:
        """Analyze a pattern.

        Args:
            pattern: Raw pattern or parsed Pattern
            seed: Substring to repeat instead of the derived attack unit
            budget: Wall-clock budget for the probe (defaults to config)

        Raises:
            ParseError: If a raw pattern does not parse
        """
        if not isinstance(pattern, Pattern):
            pattern = Pattern.parse(pattern)
        config = self.config.with_budget(budget)

        assessment = assess(pattern)
        if assessment.score == 0 and not config.force_dynamic:
            logger.debug("Static score 0, skipping probe for %r", pattern.raw)
            return BacktrackVerdict(risk=BacktrackRisk.SAFE, probe_skipped=True)

        suggestion = suggest_fix(pattern, assessment.riskiest)
        try:
            compiled = get_matcher(EngineVariant.BACKTRACKING).compile(pattern.raw)
        except EngineCompileError as e:
            logger.info("Backtracking engine cannot compile %r: %s", pattern.raw, e)
            return BacktrackVerdict(
                risk=BacktrackRisk.SUSPICIOUS,
                static_score=assessment.score,
                constructs=assessment.constructs,
                suggestion=suggestion,
                note=f"Backtracking engine could not compile the pattern; probe not run ({e.message})",
            )

        attack = build_attack(pattern.tree, assessment.riskiest, seed)
        state = self._probe(compiled.engine, pattern.raw, attack, config)
        return self._verdict(assessment, attack, state, config, suggestion)

    def _probe(self, engine: str, raw: str, attack: AttackInput, config: ProbeConfig) -> _ProbeState:
        state = _ProbeState()
        plan = plan_repetitions(attack, config.base_repetitions, config.max_input_length)
        deadline = time.monotonic() + config.budget_seconds

        for step, repetitions in enumerate(plan):
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                state.exhausted = True
                break
            ceiling = remaining / (len(plan) - step)
            size = attack.size(repetitions)

            result = self.runner.run(
                engine,
                raw,
                attack.prefix,
                attack.unit,
                repetitions,
                attack.terminator,
                ceiling_seconds=ceiling,
                deadline=deadline,
            )

            if result.status is AttemptStatus.COMPLETED:
                logger.debug("Probe size=%d elapsed=%.6fs ceiling=%.4fs", size, result.elapsed_seconds, ceiling)
                state.samples.append(BenchmarkSample(size, result.elapsed_seconds))
            elif result.status is AttemptStatus.CEILING_EXCEEDED:
                logger.info("Probe ceiling %.4fs exceeded at size %d for %r", ceiling, size, raw)
                state.aborted = ProbeAbort(size, ceiling)
                break
            elif result.status is AttemptStatus.BUDGET_EXHAUSTED:
                state.exhausted = True
                break
            else:
                logger.warning("Probe attempt failed at size %d: %s", size, result.error)
                state.failure = result.error
                break
        return state

    def _verdict(
        self,
        assessment: StaticAssessment,
        attack: AttackInput,
        state: _ProbeState,
        config: ProbeConfig,
        suggestion: str | None,
    ) -> BacktrackVerdict:
        floor = config.min_measurable_seconds
        risk = classify_samples(
            state.samples,
            aborted=state.aborted is not None,
            threshold=config.growth_threshold,
            floor=floor,
        )

        note = None
        if state.failure is not None:
            note = f"Probe attempt failed: {state.failure}"
            if risk is BacktrackRisk.SAFE:
                risk = BacktrackRisk.SUSPICIOUS
        elif state.exhausted:
            note = "Budget exhausted before all probe sizes ran"

        ratios = growth_ratios(state.samples, floor)
        return BacktrackVerdict(
            risk=risk,
            samples=tuple(state.samples),
            aborted=state.aborted,
            static_score=assessment.score,
            constructs=assessment.constructs,
            growth_ratios=tuple(r for r in ratios if math.isfinite(r)),
            growth_exponent=growth_exponent(state.samples, floor),
            suggestion=suggestion if risk is not BacktrackRisk.SAFE else None,
            budget_exhausted=state.exhausted,
            note=note,
            attack_unit=attack.unit,
        )


def analyze_backtracking(
    pattern: str | Pattern,
    seed: str | None = None,
    budget: float | timedelta | None = None,
    config: ProbeConfig | None = None,
) -> BacktrackVerdict:
    """Analyze a pattern with a one-off analyzer."""
    return BacktrackAnalyzer(config).analyze(pattern, seed=seed, budget=budget)
