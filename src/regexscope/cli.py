"""Command-line interface for regexscope."""

import logging
from dataclasses import replace
from pathlib import Path
from typing import Annotated, Optional

import typer

from regexscope.api import analyze, check, explain, infer, validate
from regexscope.batch import analyze_batch
from regexscope.config import AnalysisConfig, ProbeConfig
from regexscope.errors import RegexScopeError
from regexscope.report import (
    AnalysisReport,
    BatchReport,
    ExplanationReport,
    InferenceReport,
    PortabilitySummary,
    ValidationReport,
)
from regexscope.types import BacktrackRisk

app = typer.Typer(
    name="regexscope",
    help="Static and dynamic regular expression analysis",
    add_completion=False,
)


@app.callback()
def _main(
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Enable debug logging"),
    ] = False,
) -> None:
    """Analyze regular expressions for engine fit, portability and ReDoS risk."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _load_config(config_file: Optional[Path]) -> AnalysisConfig:
    if config_file is None:
        return AnalysisConfig.from_env()
    if not config_file.exists():
        typer.echo(f"Error: Config file not found: {config_file}", err=True)
        raise typer.Exit(1)
    try:
        return AnalysisConfig.from_yaml(config_file)
    except RegexScopeError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)


def _split_dialects(dialects: Optional[list[str]]) -> Optional[list[str]]:
    if not dialects:
        return None
    return [d.strip() for d in ",".join(dialects).split(",") if d.strip()]


def _emit(report, format: str) -> None:
    if format == "json":
        typer.echo(report.to_json())
    elif format == "console":
        report.print()
    else:
        typer.echo(f"Error: Unknown format '{format}' (use console or json)", err=True)
        raise typer.Exit(1)


@app.command(name="analyze")
def analyze_cmd(
    pattern: Annotated[str, typer.Argument(help="Pattern to analyze")],
    dialects: Annotated[
        Optional[list[str]],
        typer.Option("--dialect", "-d", help="Dialects to check (comma-separated or repeated)"),
    ] = None,
    seed: Annotated[
        Optional[str],
        typer.Option("--seed", help="Adversarial unit to repeat in probe inputs"),
    ] = None,
    budget: Annotated[
        Optional[float],
        typer.Option("--budget", "-b", help="Probe budget in seconds"),
    ] = None,
    no_probe: Annotated[
        bool,
        typer.Option("--no-probe", help="Skip the backtracking analysis"),
    ] = False,
    strict_probe: Annotated[
        bool,
        typer.Option("--thorough", help="Use the longer, always-probing configuration"),
    ] = False,
    config_file: Annotated[
        Optional[Path],
        typer.Option("--config", "-c", help="YAML configuration file"),
    ] = None,
    format: Annotated[
        str,
        typer.Option("--format", "-f", help="Output format (console, json)"),
    ] = "console",
    strict: Annotated[
        bool,
        typer.Option("--strict", help="Exit with code 1 if backtracking is catastrophic"),
    ] = False,
) -> None:
    """Analyze a pattern: features, engine, portability and backtracking risk."""
    config = _load_config(config_file)
    if strict_probe:
        config = AnalysisConfig(
            probe=ProbeConfig.strict(),
            inference=config.inference,
            dialects=config.dialects,
        )

    try:
        result = analyze(
            pattern,
            dialects=_split_dialects(dialects),
            probe=not no_probe,
            seed=seed,
            budget=budget,
            config=config,
        )
    except RegexScopeError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)

    _emit(AnalysisReport(result), format)

    verdict = result.backtracking
    if strict and verdict is not None and verdict.risk is BacktrackRisk.CATASTROPHIC:
        raise typer.Exit(1)


@app.command(name="validate")
def validate_cmd(
    pattern: Annotated[str, typer.Argument(help="Pattern to validate")],
    dialect: Annotated[
        Optional[str],
        typer.Option("--dialect", "-d", help="Also require support in this dialect"),
    ] = None,
    format: Annotated[
        str,
        typer.Option("--format", "-f", help="Output format (console, json)"),
    ] = "console",
) -> None:
    """Validate pattern syntax, optionally for a target dialect.

    Exits with code 1 when the pattern is invalid or unsupported.
    """
    try:
        result = validate(pattern, dialect)
    except RegexScopeError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)

    _emit(ValidationReport(result), format)

    if not result.valid:
        raise typer.Exit(1)


@app.command(name="portability")
def portability_cmd(
    pattern: Annotated[str, typer.Argument(help="Pattern to check")],
    dialects: Annotated[
        Optional[list[str]],
        typer.Option("--dialect", "-d", help="Dialects to check (comma-separated or repeated)"),
    ] = None,
    format: Annotated[
        str,
        typer.Option("--format", "-f", help="Output format (console, json)"),
    ] = "console",
) -> None:
    """Show which dialects support a pattern."""
    try:
        report = check(pattern, _split_dialects(dialects))
    except RegexScopeError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)

    _emit(PortabilitySummary(pattern, report), format)


@app.command(name="explain")
def explain_cmd(
    pattern: Annotated[str, typer.Argument(help="Pattern to explain")],
    format: Annotated[
        str,
        typer.Option("--format", "-f", help="Output format (console, json)"),
    ] = "console",
) -> None:
    """Break a pattern down into its parts in plain language."""
    try:
        explanation = explain(pattern)
    except RegexScopeError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)

    _emit(ExplanationReport(explanation), format)


@app.command(name="infer")
def infer_cmd(
    examples: Annotated[
        Optional[list[str]],
        typer.Argument(help="Example strings"),
    ] = None,
    file: Annotated[
        Optional[Path],
        typer.Option("--file", help="Read examples from a file, one per line"),
    ] = None,
    negatives: Annotated[
        Optional[list[str]],
        typer.Option("--negative", "-n", help="String the pattern must not match (repeatable)"),
    ] = None,
    max_candidates: Annotated[
        Optional[int],
        typer.Option("--max", "-m", help="Maximum number of candidates"),
    ] = None,
    config_file: Annotated[
        Optional[Path],
        typer.Option("--config", "-c", help="YAML configuration file"),
    ] = None,
    format: Annotated[
        str,
        typer.Option("--format", "-f", help="Output format (console, json)"),
    ] = "console",
) -> None:
    """Infer candidate patterns from example strings."""
    values = list(examples or [])
    if file is not None:
        if not file.exists():
            typer.echo(f"Error: File not found: {file}", err=True)
            raise typer.Exit(1)
        values.extend(line for line in file.read_text(encoding="utf-8").splitlines() if line)

    config = _load_config(config_file)
    if max_candidates is not None:
        try:
            config = replace(config, inference=replace(config.inference, max_candidates=max_candidates))
        except RegexScopeError as e:
            typer.echo(f"Error: {e}", err=True)
            raise typer.Exit(1)

    try:
        candidates = infer(values, negatives, config=config)
    except RegexScopeError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)

    _emit(InferenceReport(candidates), format)


@app.command(name="batch")
def batch_cmd(
    file: Annotated[Path, typer.Argument(help="File with one pattern per line")],
    output: Annotated[
        Optional[Path],
        typer.Option("--output", "-o", help="Write results to a file (.csv, .parquet or .json)"),
    ] = None,
    no_probe: Annotated[
        bool,
        typer.Option("--no-probe", help="Skip the backtracking analysis"),
    ] = False,
    workers: Annotated[
        int,
        typer.Option("--workers", "-w", help="Patterns analyzed concurrently"),
    ] = 4,
    config_file: Annotated[
        Optional[Path],
        typer.Option("--config", "-c", help="YAML configuration file"),
    ] = None,
    format: Annotated[
        str,
        typer.Option("--format", "-f", help="Output format (console, json)"),
    ] = "console",
    strict: Annotated[
        bool,
        typer.Option("--strict", help="Exit with code 1 if any pattern is catastrophic"),
    ] = False,
) -> None:
    """Analyze every pattern in a file."""
    if not file.exists():
        typer.echo(f"Error: File not found: {file}", err=True)
        raise typer.Exit(1)

    patterns = [line for line in file.read_text(encoding="utf-8").splitlines() if line]
    config = _load_config(config_file)
    try:
        frame = analyze_batch(patterns, config, probe=not no_probe, max_workers=workers)
    except RegexScopeError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)

    report = BatchReport(frame)
    if output is not None:
        suffix = output.suffix.lower()
        if suffix == ".csv":
            frame.with_columns(
                frame["supported_dialects"].list.join(","),
                frame["unsupported_dialects"].list.join(","),
            ).write_csv(output)
        elif suffix == ".parquet":
            frame.write_parquet(output)
        elif suffix == ".json":
            output.write_text(report.to_json())
        else:
            typer.echo(f"Error: Unsupported output format: {suffix}", err=True)
            raise typer.Exit(1)
        typer.echo(f"Results written to {output}")
    else:
        _emit(report, format)

    if strict and report.has_catastrophic:
        raise typer.Exit(1)


def main() -> None:
    """Main entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
