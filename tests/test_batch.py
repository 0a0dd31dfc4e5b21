"""Tests for batch analysis."""

import json

import polars as pl
from rich.text import Text

from regexscope.batch import BATCH_SCHEMA, _thread_safe_config, analyze_batch, analyze_column
from regexscope.config import AnalysisConfig, ProbeConfig
from regexscope.report import BatchReport


class TestAnalyzeBatch:
    """Tests for analyze_batch()."""

    def test_rows_follow_input_order(self):
        """Test one row per pattern, in input order."""
        patterns = [r"\d+", r"(\w+)\s+\1", "abc"]

        df = analyze_batch(patterns, probe=False, max_workers=3)

        assert df["pattern"].to_list() == patterns
        assert df["engine"].to_list() == ["linear_time", "backtracking", "linear_time"]

    def test_schema(self):
        """Test the frame carries the documented columns and types."""
        df = analyze_batch(["abc"], probe=False)

        assert dict(df.schema) == BATCH_SCHEMA

    def test_empty_batch(self):
        """Test an empty batch yields an empty frame with the schema."""
        df = analyze_batch([], probe=False)

        assert df.height == 0
        assert df.columns == list(BATCH_SCHEMA)

    def test_invalid_pattern_does_not_fail_batch(self):
        """Test malformed patterns become rows with valid=False."""
        df = analyze_batch(["ab)", r"\d"], probe=False)

        bad = df.row(0, named=True)
        assert not bad["valid"]
        assert bad["error"] == "unbalanced parenthesis"
        assert bad["error_position"] == 2
        assert bad["engine"] is None
        assert df.row(1, named=True)["valid"]

    def test_portability_columns(self):
        """Test dialect lists reflect the configured dialects."""
        config = AnalysisConfig(dialects=("python", "go"))

        row = analyze_batch([r"(\w)\1"], config, probe=False).row(0, named=True)

        assert row["supported_dialects"] == ["python_re"]
        assert row["unsupported_dialects"] == ["go_regexp"]

    def test_safe_pattern_with_probe(self):
        """Test probing a zero-score pattern reports SAFE without a worker."""
        row = analyze_batch([r"\d{4}"]).row(0, named=True)

        assert row["risk"] == "safe"
        assert row["static_score"] == 0

    def test_without_probe_risk_is_null(self):
        """Test risk columns stay empty when probing is disabled."""
        row = analyze_batch([r"(a+)+"], probe=False).row(0, named=True)

        assert row["risk"] is None
        assert row["nested_quantifier_depth"] == 2


class TestWorkerStartMethod:
    """Tests for the start method of batch worker processes."""

    def test_threaded_batch_avoids_fork(self):
        """Test a batch on several threads starts workers from a fork server."""
        config = AnalysisConfig(probe=ProbeConfig(start_method="fork"))

        result = _thread_safe_config(config, True, 4)

        assert result.probe.start_method == "forkserver"
        assert result.probe.budget == config.probe.budget
        assert config.probe.start_method == "fork"

    def test_single_thread_keeps_fork(self):
        """Test a single-threaded batch keeps the configured start method."""
        config = AnalysisConfig(probe=ProbeConfig(start_method="fork"))

        assert _thread_safe_config(config, True, 1) is config

    def test_without_workers_config_unchanged(self):
        """Test nothing changes when no workers are started."""
        config = AnalysisConfig(probe=ProbeConfig(start_method="fork"))

        assert _thread_safe_config(config, False, 4) is config

    def test_spawn_is_kept(self):
        """Test an explicit spawn start method is left alone."""
        config = AnalysisConfig(probe=ProbeConfig(start_method="spawn"))

        assert _thread_safe_config(config, True, 4) is config


class TestAnalyzeColumn:
    """Tests for analyze_column()."""

    def test_distinct_non_null_values(self):
        """Test duplicates and nulls are skipped, first-seen order kept."""
        df = pl.DataFrame({"rule": ["b+", "a+", None, "b+"]})

        result = analyze_column(df, "rule", probe=False)

        assert result["pattern"].to_list() == ["b+", "a+"]


class TestBatchReport:
    """Tests for BatchReport."""

    def _frame(self, risks):
        rows = [
            {
                "pattern": f"p{i}",
                "valid": True,
                "error": None,
                "error_position": None,
                "engine": "backtracking",
                "risk": risk,
                "static_score": 1,
                "nested_quantifier_depth": 1,
                "supported_dialects": ["python_re"],
                "unsupported_dialects": [],
                "suggestion": None,
            }
            for i, risk in enumerate(risks)
        ]
        return pl.DataFrame(rows, schema=BATCH_SCHEMA)

    def test_has_catastrophic(self):
        """Test catastrophic rows are detected."""
        assert BatchReport(self._frame(["safe", "catastrophic"])).has_catastrophic
        assert not BatchReport(self._frame(["safe", "suspicious", None])).has_catastrophic

    def test_to_json(self):
        """Test every row is serialized."""
        data = json.loads(BatchReport(self._frame(["safe", None])).to_json())

        assert [row["risk"] for row in data["patterns"]] == ["safe", None]

    def test_summary_line(self):
        """Test the console rendering ends with a summary."""
        df = analyze_batch(["ab)", "abc"], probe=False)

        assert "2 patterns, 1 invalid" in Text.from_ansi(str(BatchReport(df))).plain
