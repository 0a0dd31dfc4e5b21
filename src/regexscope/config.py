"""Configuration for pattern analysis.

Configs are plain dataclasses with preset constructors. They can also be
loaded from ``REGEXSCOPE_*`` environment variables or from a YAML file:

    probe:
      budget_seconds: 2.0
      growth_threshold: 8
    inference:
      range_penalty: 0.1
      max_candidates: 5
"""

from __future__ import annotations

import os
import sys
from dataclasses import dataclass, field, fields, replace
from datetime import timedelta
from pathlib import Path
from typing import Any

import yaml

from regexscope.errors import ConfigurationError


def _default_start_method() -> str:
    """Get default process start method for platform."""
    if sys.platform in ("darwin", "win32"):
        return "spawn"
    return "fork"  # Faster on Linux


# =============================================================================
# Probe Configuration
# =============================================================================


@dataclass(frozen=True)
class ProbeConfig:
    """Configuration for the dynamic backtracking probe.

    Attributes:
        budget: Total wall-clock budget for one pattern's probe
        base_repetitions: Repetitions of the adversarial unit at the first step
        max_input_length: Stop doubling once the input reaches this many chars
        growth_threshold: Time ratio per doubling that counts as super-polynomial
        min_measurable_seconds: Timings below this are treated as noise
        start_method: multiprocessing start method for probe workers
        kill_grace_seconds: Time allowed for a killed worker to be reaped
        force_dynamic: Run the probe even when the static score is zero
    """

    budget: timedelta = timedelta(seconds=1)
    base_repetitions: int = 8
    max_input_length: int = 1_000_000
    growth_threshold: float = 8.0
    min_measurable_seconds: float = 5e-4
    start_method: str = field(default_factory=_default_start_method)
    kill_grace_seconds: float = 0.2
    force_dynamic: bool = False

    def __post_init__(self) -> None:
        if self.budget.total_seconds() <= 0:
            raise ConfigurationError("Probe budget must be positive")
        if self.base_repetitions < 1:
            raise ConfigurationError("base_repetitions must be at least 1")
        if self.max_input_length < self.base_repetitions:
            raise ConfigurationError("max_input_length must be >= base_repetitions")
        if self.growth_threshold <= 2.0:
            # Linear growth doubles per step; anything at or below 2 flags everything.
            raise ConfigurationError("growth_threshold must be greater than 2.0")
        if self.start_method not in ("fork", "spawn", "forkserver"):
            raise ConfigurationError(f"Unknown start method: {self.start_method}")

    @property
    def budget_seconds(self) -> float:
        return self.budget.total_seconds()

    def with_budget(self, budget: float | timedelta | None) -> "ProbeConfig":
        """Return a copy with a different budget (None keeps the current one)."""
        if budget is None:
            return self
        if not isinstance(budget, timedelta):
            budget = timedelta(seconds=float(budget))
        return replace(self, budget=budget)

    @classmethod
    def strict(cls) -> "ProbeConfig":
        """Longer budget and a lower threshold: more findings, slower."""
        return cls(budget=timedelta(seconds=5), growth_threshold=4.5, force_dynamic=True)

    @classmethod
    def fast(cls) -> "ProbeConfig":
        """Short budget for interactive use and batch runs."""
        return cls(budget=timedelta(milliseconds=300), max_input_length=100_000)


# =============================================================================
# Inference Configuration
# =============================================================================


@dataclass(frozen=True)
class InferenceConfig:
    """Configuration for example-based pattern inference.

    Attributes:
        range_penalty: Confidence lost per position needing a {min,max} range
        max_candidates: Upper bound on candidates returned by infer_patterns()
        use_templates: Also offer curated known-format patterns
        template_confidence_cap: Ceiling for template candidates
        anchored: Wrap synthesized patterns in ^...$
    """

    range_penalty: float = 0.1
    max_candidates: int = 5
    use_templates: bool = True
    template_confidence_cap: float = 0.95
    anchored: bool = False

    def __post_init__(self) -> None:
        if not 0.0 <= self.range_penalty <= 1.0:
            raise ConfigurationError("range_penalty must be within [0, 1]")
        if self.max_candidates < 1:
            raise ConfigurationError("max_candidates must be at least 1")


# =============================================================================
# Combined Configuration
# =============================================================================


@dataclass(frozen=True)
class AnalysisConfig:
    """Top-level configuration bundle."""

    probe: ProbeConfig = field(default_factory=ProbeConfig)
    inference: InferenceConfig = field(default_factory=InferenceConfig)
    dialects: tuple[str, ...] | None = None  # None = every registered dialect

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "AnalysisConfig":
        """Build a config from a nested mapping (e.g. parsed YAML)."""
        probe_data = dict(data.get("probe") or {})
        if "budget_seconds" in probe_data:
            probe_data["budget"] = timedelta(seconds=float(probe_data.pop("budget_seconds")))
        inference_data = dict(data.get("inference") or {})
        _reject_unknown(ProbeConfig, probe_data, "probe")
        _reject_unknown(InferenceConfig, inference_data, "inference")

        dialects = data.get("dialects")
        return cls(
            probe=ProbeConfig(**probe_data),
            inference=InferenceConfig(**inference_data),
            dialects=tuple(dialects) if dialects else None,
        )

    @classmethod
    def from_yaml(cls, path: str | Path) -> "AnalysisConfig":
        """Load configuration from a YAML file."""
        path = Path(path)
        try:
            data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
        except (OSError, yaml.YAMLError) as e:
            raise ConfigurationError(f"Cannot load config from {path}", cause=e)
        if not isinstance(data, dict):
            raise ConfigurationError(f"Config file {path} must contain a mapping")
        return cls.from_dict(data)

    @classmethod
    def from_env(cls, environ: dict[str, str] | None = None) -> "AnalysisConfig":
        """Create configuration from REGEXSCOPE_* environment variables."""
        env = os.environ if environ is None else environ

        def get_float(key: str, default: float) -> float:
            try:
                return float(env.get(key, default))
            except ValueError:
                return default

        def get_int(key: str, default: int) -> int:
            try:
                return int(env.get(key, default))
            except ValueError:
                return default

        def get_bool(key: str, default: bool) -> bool:
            value = env.get(key)
            if value is None:
                return default
            return value.lower() in ("1", "true", "yes", "on")

        base = ProbeConfig()
        probe = ProbeConfig(
            budget=timedelta(seconds=get_float("REGEXSCOPE_PROBE_BUDGET", base.budget_seconds)),
            base_repetitions=get_int("REGEXSCOPE_PROBE_BASE_REPETITIONS", base.base_repetitions),
            max_input_length=get_int("REGEXSCOPE_PROBE_MAX_INPUT", base.max_input_length),
            growth_threshold=get_float("REGEXSCOPE_PROBE_GROWTH_THRESHOLD", base.growth_threshold),
            start_method=env.get("REGEXSCOPE_PROBE_START_METHOD", base.start_method),
            force_dynamic=get_bool("REGEXSCOPE_PROBE_FORCE_DYNAMIC", base.force_dynamic),
        )
        inference = InferenceConfig(
            range_penalty=get_float("REGEXSCOPE_INFER_RANGE_PENALTY", 0.1),
            max_candidates=get_int("REGEXSCOPE_INFER_MAX_CANDIDATES", 5),
            use_templates=get_bool("REGEXSCOPE_INFER_TEMPLATES", True),
        )
        dialects = env.get("REGEXSCOPE_DIALECTS")
        return cls(
            probe=probe,
            inference=inference,
            dialects=tuple(d.strip() for d in dialects.split(",") if d.strip()) if dialects else None,
        )


def _reject_unknown(config_cls: type, data: dict[str, Any], section: str) -> None:
    known = {f.name for f in fields(config_cls)}
    unknown = sorted(set(data) - known)
    if unknown:
        raise ConfigurationError(f"Unknown {section} option(s): {', '.join(unknown)}")
