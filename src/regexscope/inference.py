"""Example-based pattern inference.

Examples are tokenized into runs (digits, letters, single punctuation,
other) and grouped by shape. Each shape group yields one candidate:
positions whose text is identical across the group become literals, the
rest become a character class with a fixed or ranged length.

Example:
    inferencer = ExampleInferencer()
    best = next(inferencer.infer(["2024-01-15", "2025-12-31"]))
    best.pattern      # '\\d{4}-\\d{2}-\\d{2}'
    best.confidence   # 1.0
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Any, Iterator, Sequence

import polars as pl

from regexscope.config import InferenceConfig
from regexscope.errors import InsufficientExamplesError
from regexscope.syntax.chars import CharKind, Run, escape_literal, split_runs
from regexscope.templates import BUILTIN_TEMPLATES, FormatTemplate, detect_known_formats

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class InferredPattern:
    """A candidate pattern synthesized from examples.

    Attributes:
        pattern: Pattern text
        confidence: Score in [0, 1]
        description: How the candidate was produced
        support: Number of positive examples the candidate was built from
        source: "shape" or "template"
        coverage: Fraction of a column's values matched (column inference only)
    """

    pattern: str
    confidence: float
    description: str = ""
    support: int = 0
    source: str = "shape"
    coverage: float | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "pattern": self.pattern,
            "confidence": round(self.confidence, 4),
            "description": self.description,
            "support": self.support,
            "source": self.source,
            "coverage": self.coverage,
        }


# =============================================================================
# Shape Synthesis
# =============================================================================


def _class_for(kind: CharKind, values: list[str]) -> str:
    if kind is CharKind.DIGIT:
        return r"\d"
    if kind is CharKind.LETTER:
        if all(v.islower() for v in values):
            return "[a-z]"
        if all(v.isupper() for v in values):
            return "[A-Z]"
        return "[a-zA-Z]"
    if all(v.isspace() for v in values):
        return r"\s"
    if not any(c.isspace() for v in values for c in v):
        return r"\S"
    return r"[\s\S]"


def _quantifier(lengths: list[int]) -> tuple[str, bool]:
    """Return (quantifier text, whether it is a range)."""
    low, high = min(lengths), max(lengths)
    if low != high:
        return f"{{{low},{high}}}", True
    return ("" if low == 1 else f"{{{low}}}"), False


def synthesize(group: Sequence[Sequence[Run]]) -> tuple[str, int]:
    """Build a pattern for runs sharing one shape.

    Returns:
        (pattern, number of positions that needed a ranged quantifier)
    """
    parts = []
    ranged = 0
    for position in zip(*group):
        values = [run.text for run in position]
        if all(v == values[0] for v in values):
            parts.append(escape_literal(values[0]))
            continue
        quantifier, is_range = _quantifier([len(v) for v in values])
        ranged += is_range
        parts.append(_class_for(position[0].kind, values) + quantifier)
    return "".join(parts), ranged


def _false_positive_rate(pattern: str, negatives: Sequence[str]) -> float:
    if not negatives:
        return 0.0
    compiled = re.compile(pattern)
    return sum(compiled.fullmatch(n) is not None for n in negatives) / len(negatives)


# =============================================================================
# Inferencer
# =============================================================================


class ExampleInferencer:
    """Synthesizes candidate patterns from example strings."""

    def __init__(
        self,
        config: InferenceConfig | None = None,
        templates: Sequence[FormatTemplate] = BUILTIN_TEMPLATES,
    ):
        self.config = config or InferenceConfig()
        self.templates = templates

    def infer(
        self,
        examples: Sequence[str],
        negative_examples: Sequence[str] | None = None,
    ) -> Iterator[InferredPattern]:
        """Yield candidates in descending confidence.

        Shape groups are never merged: each yields its own candidate, with
        confidence (group size / total) * (1 - range_penalty * ranged
        positions), scaled by (1 - false-positive rate) on negatives.

        Raises:
            InsufficientExamplesError: If ``examples`` is empty
        """
        examples = list(examples)
        if not examples:
            raise InsufficientExamplesError()
        negatives = list(negative_examples or [])

        candidates = self._shape_candidates(examples, negatives)
        if self.config.use_templates:
            candidates.extend(self._template_candidates(examples, negatives))

        # Stable sort keeps shape groups in first-seen order on ties.
        candidates.sort(key=lambda c: -c.confidence)
        seen: set[str] = set()
        for candidate in candidates:
            if candidate.pattern in seen:
                continue
            seen.add(candidate.pattern)
            yield candidate

    def infer_patterns(
        self,
        examples: Sequence[str],
        negative_examples: Sequence[str] | None = None,
    ) -> list[InferredPattern]:
        """Top ``max_candidates`` candidates as a list."""
        out = []
        for candidate in self.infer(examples, negative_examples):
            out.append(candidate)
            if len(out) >= self.config.max_candidates:
                break
        return out

    def infer_from_column(
        self,
        data: pl.DataFrame | pl.Series,
        column: str | None = None,
        sample_size: int = 1000,
        negative_examples: Sequence[str] | None = None,
    ) -> list[InferredPattern]:
        """Infer patterns from distinct values of a string column.

        Candidates are built from up to ``sample_size`` distinct non-null
        values; each candidate's coverage over the full column is reported.
        """
        if isinstance(data, pl.DataFrame):
            if column is None:
                raise ValueError("column is required when passing a DataFrame")
            series = data.get_column(column)
        else:
            series = data
        series = series.drop_nulls().cast(pl.Utf8)

        sample = series.unique(maintain_order=True).head(sample_size).to_list()
        if not sample:
            raise InsufficientExamplesError(f"Column '{series.name}' has no non-null values")

        frame = series.to_frame("value")
        results = []
        for candidate in self.infer_patterns(sample, negative_examples):
            coverage = frame.select(
                pl.col("value").str.contains(f"^(?:{candidate.pattern})$").mean()
            ).item()
            results.append(
                InferredPattern(
                    pattern=candidate.pattern,
                    confidence=candidate.confidence,
                    description=candidate.description,
                    support=candidate.support,
                    source=candidate.source,
                    coverage=float(coverage),
                )
            )
        logger.debug("Inferred %d candidates from %d distinct values", len(results), len(sample))
        return results

    def _shape_candidates(self, examples: list[str], negatives: list[str]) -> list[InferredPattern]:
        groups: dict[tuple, list[list[Run]]] = {}
        for example in examples:
            runs = split_runs(example)
            groups.setdefault(tuple(run.key for run in runs), []).append(runs)

        total = len(examples)
        out = []
        for group in groups.values():
            pattern, ranged = synthesize(group)
            confidence = (len(group) / total) * (1.0 - self.config.range_penalty * ranged)
            confidence *= 1.0 - _false_positive_rate(pattern, negatives)
            out.append(
                InferredPattern(
                    pattern=self._finish(pattern),
                    confidence=min(1.0, max(0.0, confidence)),
                    description=f"Shape shared by {len(group)} of {total} example(s)",
                    support=len(group),
                )
            )
        return out

    def _template_candidates(self, examples: list[str], negatives: list[str]) -> list[InferredPattern]:
        out = []
        for template in detect_known_formats(examples, self.templates):
            confidence = 1.0 - _false_positive_rate(template.pattern, negatives)
            out.append(
                InferredPattern(
                    pattern=self._finish(template.pattern),
                    confidence=min(self.config.template_confidence_cap, confidence),
                    description=template.description,
                    support=len(examples),
                    source="template",
                )
            )
        return out

    def _finish(self, pattern: str) -> str:
        return f"^{pattern}$" if self.config.anchored else pattern


def infer(
    examples: Sequence[str],
    negative_examples: Sequence[str] | None = None,
    config: InferenceConfig | None = None,
) -> list[InferredPattern]:
    """Infer the top candidates for a set of examples."""
    return ExampleInferencer(config).infer_patterns(examples, negative_examples)
