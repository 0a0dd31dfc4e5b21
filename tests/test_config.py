"""Tests for configuration loading."""

from datetime import timedelta

import pytest

from regexscope.config import AnalysisConfig, InferenceConfig, ProbeConfig
from regexscope.errors import ConfigurationError


class TestProbeConfig:
    """Tests for probe configuration."""

    def test_defaults(self):
        """Test default values."""
        config = ProbeConfig()

        assert config.budget_seconds == 1.0
        assert config.base_repetitions == 8
        assert config.max_input_length == 1_000_000
        assert config.growth_threshold == 8.0
        assert not config.force_dynamic

    def test_presets(self):
        """Test preset constructors."""
        strict = ProbeConfig.strict()
        fast = ProbeConfig.fast()

        assert strict.budget_seconds > ProbeConfig().budget_seconds
        assert strict.force_dynamic
        assert fast.budget_seconds < ProbeConfig().budget_seconds
        assert fast.max_input_length < ProbeConfig().max_input_length

    def test_with_budget(self):
        """Test budget overrides accept seconds or timedelta."""
        config = ProbeConfig()

        assert config.with_budget(2.5).budget == timedelta(seconds=2.5)
        assert config.with_budget(timedelta(milliseconds=100)).budget_seconds == 0.1
        assert config.with_budget(None) is config

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"budget": timedelta(0)},
            {"base_repetitions": 0},
            {"max_input_length": 4},
            {"growth_threshold": 2.0},
            {"start_method": "thread"},
        ],
    )
    def test_invalid_values(self, kwargs):
        """Test invalid values raise ConfigurationError."""
        with pytest.raises(ConfigurationError):
            ProbeConfig(**kwargs)


class TestInferenceConfig:
    """Tests for inference configuration."""

    def test_invalid_values(self):
        """Test range checks."""
        with pytest.raises(ConfigurationError):
            InferenceConfig(range_penalty=1.5)
        with pytest.raises(ConfigurationError):
            InferenceConfig(max_candidates=0)


class TestAnalysisConfig:
    """Tests for loading combined configuration."""

    def test_from_dict(self):
        """Test nested mapping with budget in seconds."""
        config = AnalysisConfig.from_dict(
            {
                "probe": {"budget_seconds": 2, "growth_threshold": 6},
                "inference": {"max_candidates": 3},
                "dialects": ["python", "go"],
            }
        )

        assert config.probe.budget_seconds == 2.0
        assert config.probe.growth_threshold == 6
        assert config.inference.max_candidates == 3
        assert config.dialects == ("python", "go")

    def test_from_dict_rejects_unknown_keys(self):
        """Test misspelled options are reported."""
        with pytest.raises(ConfigurationError) as exc_info:
            AnalysisConfig.from_dict({"probe": {"budjet": 1}})

        assert "budjet" in str(exc_info.value)

    def test_from_yaml(self, tmp_path):
        """Test loading a YAML file."""
        path = tmp_path / "regexscope.yaml"
        path.write_text(
            "probe:\n"
            "  budget_seconds: 0.5\n"
            "inference:\n"
            "  range_penalty: 0.2\n"
            "dialects:\n"
            "  - javascript\n"
        )

        config = AnalysisConfig.from_yaml(path)

        assert config.probe.budget_seconds == 0.5
        assert config.inference.range_penalty == 0.2
        assert config.dialects == ("javascript",)

    def test_from_yaml_empty_file(self, tmp_path):
        """Test an empty file yields defaults."""
        path = tmp_path / "empty.yaml"
        path.write_text("")

        assert AnalysisConfig.from_yaml(path) == AnalysisConfig()

    def test_from_yaml_missing_file(self, tmp_path):
        """Test a missing file raises ConfigurationError."""
        with pytest.raises(ConfigurationError):
            AnalysisConfig.from_yaml(tmp_path / "missing.yaml")

    def test_from_yaml_not_a_mapping(self, tmp_path):
        """Test a list document is rejected."""
        path = tmp_path / "list.yaml"
        path.write_text("- a\n- b\n")

        with pytest.raises(ConfigurationError):
            AnalysisConfig.from_yaml(path)

    def test_from_env(self):
        """Test REGEXSCOPE_* overrides."""
        config = AnalysisConfig.from_env(
            {
                "REGEXSCOPE_PROBE_BUDGET": "3",
                "REGEXSCOPE_PROBE_FORCE_DYNAMIC": "true",
                "REGEXSCOPE_INFER_MAX_CANDIDATES": "2",
                "REGEXSCOPE_DIALECTS": "js, go ,",
            }
        )

        assert config.probe.budget_seconds == 3.0
        assert config.probe.force_dynamic
        assert config.inference.max_candidates == 2
        assert config.dialects == ("js", "go")

    def test_from_env_ignores_malformed_numbers(self):
        """Test unparsable numbers fall back to defaults."""
        config = AnalysisConfig.from_env({"REGEXSCOPE_PROBE_BUDGET": "soon"})

        assert config.probe.budget_seconds == 1.0

    def test_from_env_defaults(self):
        """Test an empty environment yields defaults."""
        assert AnalysisConfig.from_env({}) == AnalysisConfig()
