"""Tests for catastrophic-backtracking analysis."""

import re
import time
from types import SimpleNamespace
from datetime import timedelta

import pytest
import regex

from regexscope.backtrack import (
    AttackInput,
    AttemptResult,
    AttemptStatus,
    BacktrackAnalyzer,
    BenchmarkSample,
    ProbeRunner,
    analyze_backtracking,
    assess,
    build_attack,
    classify_samples,
    growth_exponent,
    growth_ratios,
    static_score,
    suggest_fix,
)
from regexscope.backtrack.analyzer import plan_repetitions
from regexscope.config import ProbeConfig
from regexscope.errors import EngineCompileError
from regexscope.profile import FeatureProfile
from regexscope.syntax import Pattern
from regexscope.types import BacktrackRisk

FLOOR = 5e-4


def samples(*times, base=8):
    return [BenchmarkSample(base * 2**i + 1, t) for i, t in enumerate(times)]


class ScriptedRunner:
    """Probe runner that returns scripted results instead of spawning workers."""

    def __init__(self, script):
        self.script = script
        self.calls = []

    def run(self, engine, pattern, prefix, unit, repetitions, terminator, *, ceiling_seconds, deadline):
        self.calls.append(
            {"engine": engine, "repetitions": repetitions, "ceiling": ceiling_seconds, "deadline": deadline}
        )
        return self.script(repetitions)


@pytest.fixture
def small_config():
    """Probe config with a five-step plan for single-character units."""
    return ProbeConfig(budget=timedelta(seconds=1), max_input_length=128)


# =============================================================================
# Static phase
# =============================================================================


class TestStaticPhase:
    """Tests for the static score and rewrite suggestions."""

    @pytest.mark.parametrize(
        "depth,overlap,score",
        [(0, False, 0), (1, False, 0), (2, False, 2), (3, False, 4), (1, True, 2), (3, True, 6)],
    )
    def test_static_score(self, depth, overlap, score):
        """Test the score formula."""
        profile = FeatureProfile(nested_quantifier_depth=depth, has_overlapping_alternation=overlap)

        assert static_score(profile) == score

    def test_assess_nested_quantifier(self):
        """Test sites and construct descriptions."""
        assessment = assess(Pattern.parse("(a+)+$"))

        assert assessment.score == 2
        assert assessment.constructs == ("nested quantifier '(a+)+' at position 0",)
        assert assessment.riskiest is assessment.sites[0]

    def test_assess_safe_pattern(self):
        """Test a pattern without ambiguity has no sites."""
        assessment = assess(Pattern.parse(r"\d{4}-\d{2}-\d{2}"))

        assert assessment.score == 0
        assert assessment.riskiest is None

    def test_deepest_site_first(self):
        """Test sites are ordered deepest first."""
        assessment = assess(Pattern.parse("((a+)+)+"))

        assert [s.depth for s in assessment.sites] == [3, 2]

    def test_suggest_atomic_group(self):
        """Test the nested-quantifier rewrite."""
        pattern = Pattern.parse("(a+)+$")

        suggestion = suggest_fix(pattern, assess(pattern).riskiest)
        assert suggestion == "Use an atomic group or possessive quantifier: (?>a+)+"

    def test_suggest_exclusive_alternatives(self):
        """Test the overlapping-alternation hint."""
        pattern = Pattern.parse("x(a|ab)*c")

        suggestion = suggest_fix(pattern, assess(pattern).riskiest)
        assert "'a|ab'" in suggestion
        assert "mutually exclusive" in suggestion

    def test_no_site_no_suggestion(self):
        """Test no suggestion without a risk site."""
        assert suggest_fix(Pattern.parse("abc"), None) is None


# =============================================================================
# Attack inputs
# =============================================================================


class TestAttackInput:
    """Tests for adversarial input construction."""

    def test_nested_quantifier_attack(self):
        """Test the unit comes from the repeated body."""
        pattern = Pattern.parse("(a+)+$")
        attack = build_attack(pattern.tree, assess(pattern).riskiest)

        assert attack == AttackInput(prefix="", unit="a", terminator="!")
        assert attack.build(3) == "aaa!"
        assert attack.size(3) == 4

    def test_prefix_reaches_repetition(self):
        """Test the prefix matches what precedes the risky quantifier."""
        pattern = Pattern.parse("^x(a|ab)*c")
        attack = build_attack(pattern.tree, assess(pattern).riskiest)

        assert attack.prefix == "x"
        assert attack.unit == "a"

    def test_seed_overrides_unit(self):
        """Test a caller-supplied seed replaces the derived unit."""
        pattern = Pattern.parse("(a+)+$")
        attack = build_attack(pattern.tree, assess(pattern).riskiest, seed="aa")

        assert attack.unit == "aa"

    def test_terminator_outside_body(self):
        """Test the terminator is a character the repeated body rejects."""
        pattern = Pattern.parse("(.+)+x")
        attack = build_attack(pattern.tree, assess(pattern).riskiest)

        assert attack.terminator == "\n"

    def test_plan_doubles_until_limit(self):
        """Test repetition counts double until the input reaches the limit."""
        attack = AttackInput(prefix="", unit="a", terminator="!")

        assert plan_repetitions(attack, 8, 256) == [8, 16, 32, 64, 128, 256]
        assert plan_repetitions(attack, 8, 129) == [8, 16, 32, 64, 128]
        assert plan_repetitions(attack, 8, 8) == [8]

    def test_plan_reaches_default_limit(self):
        """Test the default plan ends on an input of at least a million characters."""
        attack = AttackInput(prefix="", unit="0", terminator="!")
        config = ProbeConfig()

        plan = plan_repetitions(attack, config.base_repetitions, config.max_input_length)

        assert attack.size(plan[-1]) >= 1_000_000
        assert attack.size(plan[-2]) < 1_000_000

    def test_plan_with_empty_unit(self):
        """Test an empty unit yields a single step."""
        assert plan_repetitions(AttackInput(prefix="x", unit="", terminator="!"), 8, 256) == [8]


# =============================================================================
# Classification
# =============================================================================


class TestClassification:
    """Tests for classifying probe samples."""

    def test_abort_is_catastrophic(self):
        """Test a ceiling violation alone is catastrophic."""
        assert classify_samples([], aborted=True, threshold=8.0, floor=FLOOR) is BacktrackRisk.CATASTROPHIC

    def test_linear_growth_is_safe(self):
        """Test doubling times per doubling input."""
        result = classify_samples(samples(0.001, 0.002, 0.004, 0.008), False, 8.0, FLOOR)

        assert result is BacktrackRisk.SAFE

    def test_two_consecutive_elevated_ratios(self):
        """Test two consecutive super-polynomial steps."""
        result = classify_samples(samples(0.001, 0.01, 0.1), False, 8.0, FLOOR)

        assert result is BacktrackRisk.CATASTROPHIC

    def test_single_elevated_ratio(self):
        """Test a single jump is suspicious."""
        result = classify_samples(samples(0.001, 0.002, 0.04, 0.08), False, 8.0, FLOOR)

        assert result is BacktrackRisk.SUSPICIOUS

    def test_non_consecutive_elevated_ratios(self):
        """Test two separated jumps are only suspicious."""
        result = classify_samples(samples(0.001, 0.01, 0.02, 0.2), False, 8.0, FLOOR)

        assert result is BacktrackRisk.SUSPICIOUS

    def test_noise_below_floor_ignored(self):
        """Test large ratios between unmeasurably small timings."""
        result = classify_samples(samples(1e-7, 1e-6, 1e-5, 1e-4), False, 8.0, FLOOR)

        assert result is BacktrackRisk.SAFE

    def test_growth_ratios_floor_denominator(self):
        """Test the previous sample is floored before dividing."""
        ratios = growth_ratios(samples(1e-6, 0.001), FLOOR)

        assert ratios == [pytest.approx(2.0)]

    def test_growth_exponent(self):
        """Test the log-log slope of quadratic growth."""
        quadratic = [BenchmarkSample(n, 1e-6 * n * n) for n in (100, 200, 400, 800)]

        assert growth_exponent(quadratic, FLOOR) == pytest.approx(2.0, abs=0.01)

    def test_growth_exponent_needs_measurable_samples(self):
        """Test too few usable samples give no estimate."""
        assert growth_exponent(samples(1e-6, 1e-6, 0.001), FLOOR) is None


# =============================================================================
# Analyzer with scripted runner
# =============================================================================


class TestAnalyzer:
    """Tests for the analyzer driving a scripted probe runner."""

    def test_static_zero_skips_probe(self, small_config):
        """Test an unambiguous pattern is SAFE without probing."""
        runner = ScriptedRunner(lambda n: pytest.fail("probe should not run"))

        verdict = BacktrackAnalyzer(small_config, runner).analyze(r"\d{4}-\d{2}-\d{2}")

        assert verdict.risk is BacktrackRisk.SAFE
        assert verdict.probe_skipped
        assert runner.calls == []

    def test_force_dynamic_probes_anyway(self):
        """Test force_dynamic runs the probe on a zero score."""
        config = ProbeConfig(max_input_length=256, force_dynamic=True)
        runner = ScriptedRunner(lambda n: AttemptResult.ok(1e-3 * n / 8))

        verdict = BacktrackAnalyzer(config, runner).analyze("abc")

        assert not verdict.probe_skipped
        assert runner.calls

    def test_linear_timing_is_safe(self, small_config):
        """Test linear timings classify as SAFE and omit the suggestion."""
        runner = ScriptedRunner(lambda n: AttemptResult.ok(1e-3 * n / 8))

        verdict = BacktrackAnalyzer(small_config, runner).analyze("(a+)+$")

        assert verdict.risk is BacktrackRisk.SAFE
        assert [s.input_size for s in verdict.samples] == [9, 17, 33, 65, 129]
        assert verdict.static_score == 2
        assert verdict.suggestion is None
        assert verdict.growth_exponent == pytest.approx(1.0, abs=0.1)
        assert [c["repetitions"] for c in runner.calls] == [8, 16, 32, 64, 128]
        assert {c["engine"] for c in runner.calls} == {"re"}

    def test_exponential_timing_is_catastrophic(self, small_config):
        """Test consecutive elevated ratios."""
        runner = ScriptedRunner(lambda n: AttemptResult.ok(1e-3 * 10 ** (n.bit_length() - 4)))

        verdict = BacktrackAnalyzer(small_config, runner).analyze("(a+)+$")

        assert verdict.risk is BacktrackRisk.CATASTROPHIC
        assert verdict.aborted is None
        assert verdict.suggestion == "Use an atomic group or possessive quantifier: (?>a+)+"

    def test_ceiling_violation_stops_probe(self, small_config):
        """Test the first ceiling violation ends the probe with an abort marker."""

        def script(n):
            return AttemptResult.ceiling() if n >= 32 else AttemptResult.ok(1e-3)

        runner = ScriptedRunner(script)
        verdict = BacktrackAnalyzer(small_config, runner).analyze("(a+)+$", seed="a")

        assert verdict.risk is BacktrackRisk.CATASTROPHIC
        assert verdict.aborted.input_size == 33
        assert len(runner.calls) == 3
        assert len(verdict.samples) == 2

    def test_ceiling_is_share_of_remaining_budget(self, small_config):
        """Test each ceiling is at most the remaining budget over remaining steps."""
        runner = ScriptedRunner(lambda n: AttemptResult.ok(1e-3))

        BacktrackAnalyzer(small_config, runner).analyze("(a+)+$")

        first = runner.calls[0]
        assert 0 < first["ceiling"] <= 1.0 / 5
        assert all(c["deadline"] == first["deadline"] for c in runner.calls)

    def test_budget_override(self, small_config):
        """Test a per-call budget replaces the configured one."""
        runner = ScriptedRunner(lambda n: AttemptResult.ok(1e-3))

        BacktrackAnalyzer(small_config, runner).analyze("(a+)+$", budget=0.5)

        assert runner.calls[0]["ceiling"] <= 0.5 / 5

    def test_failed_attempt_is_suspicious(self, small_config):
        """Test a crashed worker upgrades SAFE to SUSPICIOUS with a note."""
        runner = ScriptedRunner(lambda n: AttemptResult.failure("MemoryError: boom"))

        verdict = BacktrackAnalyzer(small_config, runner).analyze("(a+)+$")

        assert verdict.risk is BacktrackRisk.SUSPICIOUS
        assert "MemoryError" in verdict.note

    def test_exhausted_budget(self, small_config):
        """Test a budget-exhausted attempt stops the probe."""

        def script(n):
            return AttemptResult.exhausted() if n >= 32 else AttemptResult.ok(1e-3 * n / 8)

        verdict = BacktrackAnalyzer(small_config, ScriptedRunner(script)).analyze("(a+)+$")

        assert verdict.risk is BacktrackRisk.SAFE
        assert verdict.budget_exhausted
        assert verdict.note

    def test_compile_failure_is_suspicious(self, small_config, monkeypatch):
        """Test an uncompilable pattern is SUSPICIOUS and not probed."""

        class RejectingMatcher:
            def compile(self, pattern):
                raise EngineCompileError("rejected")

        monkeypatch.setattr("regexscope.backtrack.analyzer.get_matcher", lambda variant: RejectingMatcher())
        runner = ScriptedRunner(lambda n: pytest.fail("probe should not run"))

        verdict = BacktrackAnalyzer(small_config, runner).analyze("(a+)+$")

        assert verdict.risk is BacktrackRisk.SUSPICIOUS
        assert "could not compile" in verdict.note
        assert runner.calls == []

    def test_engine_overflow_is_suspicious(self, small_config, monkeypatch):
        """Test a parsed pattern whose repeat bound overflows the engines still gets a verdict."""

        def overflow(pattern):
            raise OverflowError("the repetition number is too large")

        monkeypatch.setattr("regexscope.matchers.re", SimpleNamespace(compile=overflow, error=re.error))
        monkeypatch.setattr("regexscope.matchers.regex", SimpleNamespace(compile=overflow, error=regex.error))
        runner = ScriptedRunner(lambda n: pytest.fail("no attempt should run"))

        verdict = BacktrackAnalyzer(small_config, runner).analyze("(a+){99999999999}")

        assert verdict.risk is BacktrackRisk.SUSPICIOUS
        assert "too large" in verdict.note
        assert runner.calls == []

    def test_verdict_to_dict(self, small_config):
        """Test serialization."""
        runner = ScriptedRunner(lambda n: AttemptResult.ceiling() if n >= 16 else AttemptResult.ok(1e-3))

        data = BacktrackAnalyzer(small_config, runner).analyze("(a+)+$").to_dict()

        assert data["risk"] == "catastrophic"
        assert data["aborted"]["input_size"] == 17
        assert data["samples"] == [{"input_size": 9, "elapsed_seconds": 1e-3}]


# =============================================================================
# Real worker processes
# =============================================================================


@pytest.mark.slow
class TestProbeRunner:
    """Tests that spawn real probe workers."""

    def test_completed_attempt(self):
        """Test a fast search reports its elapsed time."""
        runner = ProbeRunner()
        result = runner.run(
            "re", "a+!", "", "a", 100, "!",
            ceiling_seconds=5.0,
            deadline=time.monotonic() + 5.0,
        )

        assert result.status is AttemptStatus.COMPLETED
        assert result.elapsed_seconds >= 0

    def test_ceiling_kills_worker(self):
        """Test a runaway search is stopped at the ceiling."""
        runner = ProbeRunner(kill_grace_seconds=0.2)
        start = time.monotonic()
        result = runner.run(
            "re", "(a+)+$", "", "a", 40, "!",
            ceiling_seconds=0.2,
            deadline=time.monotonic() + 5.0,
        )

        assert result.status is AttemptStatus.CEILING_EXCEEDED
        assert result.terminated
        assert time.monotonic() - start < 3.0

    def test_worker_error_is_failure(self):
        """Test an exception inside the worker is reported, not raised."""
        runner = ProbeRunner()
        result = runner.run(
            "unknown", "a", "", "a", 1, "!",
            ceiling_seconds=5.0,
            deadline=time.monotonic() + 5.0,
        )

        assert result.status is AttemptStatus.FAILED
        assert "ValueError" in result.error


@pytest.mark.slow
class TestEndToEnd:
    """End-to-end probe classification."""

    def test_nested_quantifier_is_catastrophic(self):
        """Test (a+)+$ with seed 'a' under a one second budget."""
        start = time.monotonic()
        verdict = analyze_backtracking("(a+)+$", seed="a", budget=1.0)
        elapsed = time.monotonic() - start

        assert verdict.risk is BacktrackRisk.CATASTROPHIC
        assert verdict.suggestion is not None
        # Budget plus bounded kill and reap time.
        assert elapsed < 1.0 + 3.0

    def test_date_pattern_is_safe(self):
        """Test a plain date pattern."""
        verdict = analyze_backtracking(r"\d{4}-\d{2}-\d{2}", budget=1.0)

        assert verdict.risk is BacktrackRisk.SAFE

    def test_date_pattern_is_safe_on_large_inputs(self):
        """Test the date pattern stays SAFE on inputs of a million characters."""
        config = ProbeConfig(budget=timedelta(seconds=10), force_dynamic=True)

        verdict = analyze_backtracking(r"\d{4}-\d{2}-\d{2}", config=config)

        assert verdict.risk is BacktrackRisk.SAFE
        assert verdict.samples[-1].input_size >= 1_000_000

    def test_quadratic_nesting_is_not_catastrophic(self):
        """Test a repeated body whose inner run is closed by a disjoint character."""
        verdict = analyze_backtracking("(a+b)+c", budget=1.0)

        assert verdict.risk is BacktrackRisk.SAFE
        assert verdict.static_score == 0
        assert verdict.samples == ()
