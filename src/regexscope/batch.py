"""Batch analysis into polars DataFrames.

Patterns are independent, so they are analyzed concurrently on a thread
pool. Each backtracking probe still runs in its own worker process; the
threads only wait on those processes. Forking from a process that runs
several threads can copy a lock held by another thread into the child, so
concurrent batches start workers from a fork server instead.
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import replace
from typing import Any, Sequence

import polars as pl

from regexscope.api import analyze
from regexscope.config import AnalysisConfig
from regexscope.errors import ParseError

logger = logging.getLogger(__name__)

BATCH_SCHEMA = {
    "pattern": pl.Utf8,
    "valid": pl.Boolean,
    "error": pl.Utf8,
    "error_position": pl.Int64,
    "engine": pl.Utf8,
    "risk": pl.Utf8,
    "static_score": pl.Int64,
    "nested_quantifier_depth": pl.Int64,
    "supported_dialects": pl.List(pl.Utf8),
    "unsupported_dialects": pl.List(pl.Utf8),
    "suggestion": pl.Utf8,
}


def _analyze_row(pattern: str, config: AnalysisConfig, probe: bool) -> dict[str, Any]:
    try:
        result = analyze(pattern, probe=probe, config=config)
    except ParseError as e:
        return {
            "pattern": pattern,
            "valid": False,
            "error": e.message,
            "error_position": e.position,
            "engine": None,
            "risk": None,
            "static_score": None,
            "nested_quantifier_depth": None,
            "supported_dialects": [],
            "unsupported_dialects": [],
            "suggestion": e.suggestion,
        }

    verdict = result.backtracking
    return {
        "pattern": pattern,
        "valid": True,
        "error": None,
        "error_position": None,
        "engine": result.engine.value,
        "risk": verdict.risk.value if verdict else None,
        "static_score": verdict.static_score if verdict else None,
        "nested_quantifier_depth": result.profile.nested_quantifier_depth,
        "supported_dialects": result.portability.supported,
        "unsupported_dialects": result.portability.unsupported,
        "suggestion": verdict.suggestion if verdict else None,
    }


def _thread_safe_config(config: AnalysisConfig, probe: bool, max_workers: int) -> AnalysisConfig:
    """Swap the fork start method for forkserver when probes run on several threads."""
    if not probe or max_workers <= 1 or config.probe.start_method != "fork":
        return config
    logger.debug("Using forkserver for probe workers in a %d-thread batch", max_workers)
    return replace(config, probe=replace(config.probe, start_method="forkserver"))


def analyze_batch(
    patterns: Sequence[str],
    config: AnalysisConfig | None = None,
    *,
    probe: bool = True,
    max_workers: int = 4,
) -> pl.DataFrame:
    """Analyze many patterns; one row per pattern, in input order.

    Malformed patterns produce a row with ``valid=False`` instead of
    failing the batch.
    """
    max_workers = max(1, max_workers)
    config = _thread_safe_config(config or AnalysisConfig(), probe, max_workers)
    with ThreadPoolExecutor(max_workers=max_workers) as executor:
        rows = list(executor.map(lambda p: _analyze_row(p, config, probe), patterns))
    logger.debug("Analyzed batch of %d patterns", len(rows))
    return pl.DataFrame(rows, schema=BATCH_SCHEMA)


def analyze_column(
    df: pl.DataFrame,
    column: str,
    config: AnalysisConfig | None = None,
    *,
    probe: bool = True,
    max_workers: int = 4,
) -> pl.DataFrame:
    """Analyze the distinct non-null patterns stored in a DataFrame column."""
    patterns = df.get_column(column).drop_nulls().unique(maintain_order=True).to_list()
    return analyze_batch(patterns, config, probe=probe, max_workers=max_workers)
