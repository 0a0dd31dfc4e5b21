"""Console and JSON rendering of analysis results."""

import json
from dataclasses import dataclass, field

import polars as pl
from rich.console import Console
from rich.markup import escape
from rich.table import Table
from rich.tree import Tree

from regexscope.api import AnalysisResult, ValidationResult
from regexscope.explain import Explanation
from regexscope.inference import InferredPattern
from regexscope.portability import PortabilityReport
from regexscope.types import BacktrackRisk, EngineVariant


def _risk_style(risk: BacktrackRisk) -> str:
    """Get Rich style for a backtracking risk level."""
    return {
        BacktrackRisk.SAFE: "green",
        BacktrackRisk.SUSPICIOUS: "yellow",
        BacktrackRisk.CATASTROPHIC: "bold red",
    }[risk]


def _dialect_table(portability: PortabilityReport) -> Table:
    table = Table(show_header=True, header_style="bold")
    table.add_column("Dialect", style="cyan")
    table.add_column("Supported", justify="center")
    table.add_column("Reason", style="white")
    for dialect, verdict in portability.items():
        mark = "[green]✓[/green]" if verdict.supported else "[red]✗[/red]"
        table.add_row(dialect, mark, escape(verdict.detail or ""))
    return table


class _RichReport:
    """Shared rendering helpers; subclasses implement _print_to_console and to_dict."""

    def __str__(self) -> str:
        """Return a formatted string representation using Rich."""
        console = Console(force_terminal=True, width=100)
        with console.capture() as capture:
            self._print_to_console(console)
        return capture.get()

    def _print_to_console(self, console: Console) -> None:
        raise NotImplementedError

    def to_dict(self) -> dict:
        raise NotImplementedError

    def print(self) -> None:
        """Print the report to stdout."""
        console = Console()
        self._print_to_console(console)

    def to_json(self, indent: int = 2) -> str:
        """Convert report to JSON string."""
        return json.dumps(self.to_dict(), indent=indent)


@dataclass
class AnalysisReport(_RichReport):
    """Report for a single-pattern analysis."""

    result: AnalysisResult

    def _print_to_console(self, console: Console) -> None:
        result = self.result
        console.print()
        console.print(f"[bold]Pattern[/bold] {escape(result.pattern)}")
        console.print("━" * 52)

        engine_style = "green" if result.engine is EngineVariant.LINEAR_TIME else "yellow"
        console.print(f"Engine: [{engine_style}]{result.engine.value}[/{engine_style}]")
        for reason in result.engine_reasons:
            console.print(f"  • {escape(reason)}")

        flags = result.profile.active_flags()
        if flags:
            console.print("Features: " + ", ".join(f.value for f in flags))
        else:
            console.print("Features: [dim]none[/dim]")

        verdict = result.backtracking
        if verdict is not None:
            style = _risk_style(verdict.risk)
            console.print(f"Backtracking: [{style}]{verdict.risk.value}[/{style}]")
            for construct in verdict.constructs:
                console.print(f"  • {escape(construct)}")
            if verdict.aborted:
                console.print(
                    f"  Probe aborted at {verdict.aborted.input_size:,} chars "
                    f"(ceiling {verdict.aborted.ceiling_seconds:.3f}s)"
                )
            if verdict.suggestion:
                console.print(f"  [cyan]Suggestion:[/cyan] {escape(verdict.suggestion)}")
            if verdict.note:
                console.print(f"  [dim]{escape(verdict.note)}[/dim]")

        console.print(_dialect_table(result.portability))
        console.print()

    def to_dict(self) -> dict:
        return self.result.to_dict()


@dataclass
class ValidationReport(_RichReport):
    """Report for pattern validation."""

    result: ValidationResult

    def _print_to_console(self, console: Console) -> None:
        result = self.result
        if result.error is not None:
            console.print(f"[red]✗ Invalid pattern:[/red] {escape(result.error.message)}")
            console.print(f"  {escape(result.pattern)}")
            console.print("  " + " " * result.error.position + "^")
        elif not result.valid:
            console.print(f"[red]✗ Not supported by {result.dialect}[/red]")
        else:
            target = f" for {result.dialect}" if result.dialect else ""
            console.print(f"[green]✓ Valid{target}[/green] (engine: {result.engine.value})")
        if result.suggestion:
            console.print(f"  [cyan]Suggestion:[/cyan] {escape(result.suggestion)}")

    def to_dict(self) -> dict:
        return self.result.to_dict()


@dataclass
class PortabilitySummary(_RichReport):
    """Report for a portability-only check."""

    pattern: str
    portability: PortabilityReport

    def _print_to_console(self, console: Console) -> None:
        console.print()
        console.print(f"[bold]Pattern[/bold] {escape(self.pattern)}")
        console.print(_dialect_table(self.portability))
        supported = len(self.portability.supported)
        console.print(f"Supported by {supported} of {len(self.portability)} dialects")
        console.print()

    def to_dict(self) -> dict:
        return {"pattern": self.pattern, "portability": self.portability.to_dict()}


@dataclass
class ExplanationReport(_RichReport):
    """Report for a pattern breakdown."""

    explanation: Explanation

    def _print_to_console(self, console: Console) -> None:
        explanation = self.explanation
        console.print()
        console.print(f"[bold]Pattern[/bold] {escape(explanation.pattern)}")

        root = Tree("[bold]Parts[/bold]")
        branches = [root]
        for depth, part in explanation.walk():
            del branches[depth + 1:]
            label = f"[cyan]{escape(part.token)}[/cyan] [dim]{part.kind}[/dim]  {escape(part.description)}"
            branches.append(branches[depth].add(label))
        console.print(root)
        console.print(f"Summary: {escape(explanation.summary)}")
        console.print()

    def to_dict(self) -> dict:
        return self.explanation.to_dict()


@dataclass
class InferenceReport(_RichReport):
    """Report for inferred pattern candidates."""

    candidates: list[InferredPattern] = field(default_factory=list)

    def _print_to_console(self, console: Console) -> None:
        if not self.candidates:
            console.print("[yellow]No candidates inferred[/yellow]")
            return

        table = Table(show_header=True, header_style="bold")
        table.add_column("#", justify="right")
        table.add_column("Pattern", style="cyan")
        table.add_column("Confidence", justify="right")
        table.add_column("Description", style="white")
        for rank, candidate in enumerate(self.candidates, 1):
            table.add_row(
                str(rank),
                escape(candidate.pattern),
                f"{candidate.confidence:.2f}",
                escape(candidate.description),
            )
        console.print(table)

    def to_dict(self) -> dict:
        return {"candidates": [c.to_dict() for c in self.candidates]}


@dataclass
class BatchReport(_RichReport):
    """Report for a batch analysis frame."""

    frame: pl.DataFrame

    def _print_to_console(self, console: Console) -> None:
        table = Table(show_header=True, header_style="bold")
        table.add_column("Pattern", style="cyan")
        table.add_column("Engine")
        table.add_column("Risk", justify="center")
        table.add_column("Unsupported in", style="white")

        for row in self.frame.iter_rows(named=True):
            if not row["valid"]:
                table.add_row(escape(row["pattern"]), "[red]invalid[/red]", "", escape(row["error"] or ""))
                continue
            risk = row["risk"] or ""
            if risk:
                style = _risk_style(BacktrackRisk(risk))
                risk = f"[{style}]{risk}[/{style}]"
            table.add_row(escape(row["pattern"]), row["engine"], risk, ", ".join(row["unsupported_dialects"]))
        console.print(table)

        invalid = self.frame.filter(~pl.col("valid")).height
        catastrophic = self.frame.filter(pl.col("risk") == BacktrackRisk.CATASTROPHIC.value).height
        console.print(
            f"Summary: {self.frame.height} patterns, {invalid} invalid, {catastrophic} catastrophic"
        )

    def to_dict(self) -> dict:
        return {"patterns": self.frame.to_dicts()}

    @property
    def has_catastrophic(self) -> bool:
        return self.frame.filter(pl.col("risk") == BacktrackRisk.CATASTROPHIC.value).height > 0
