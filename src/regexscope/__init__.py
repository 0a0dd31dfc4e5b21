"""regexscope - Regular expression analysis powered by a real parse tree."""

from regexscope.api import (
    AnalysisResult,
    ValidationResult,
    analyze,
    analyze_backtracking,
    check,
    explain,
    infer,
    parse,
    profile,
    select,
    validate,
)
from regexscope.backtrack import BacktrackAnalyzer, BacktrackVerdict
from regexscope.batch import analyze_batch, analyze_column
from regexscope.config import AnalysisConfig, InferenceConfig, ProbeConfig
from regexscope.engine import EngineSelector, compile_pattern, select_engine
from regexscope.explain import ExplainPart, Explanation
from regexscope.errors import (
    ConfigurationError,
    EngineCompileError,
    InsufficientExamplesError,
    InvariantViolationError,
    ParseError,
    RegexScopeError,
    UnknownDialectError,
)
from regexscope.inference import ExampleInferencer, InferredPattern
from regexscope.portability import (
    DialectCapabilities,
    DialectRegistry,
    DialectVerdict,
    PortabilityReport,
    check_portability,
    get_dialect_registry,
)
from regexscope.profile import FeatureProfile, derive_profile
from regexscope.report import (
    AnalysisReport,
    BatchReport,
    ExplanationReport,
    InferenceReport,
    ValidationReport,
)
from regexscope.syntax import Pattern, SyntaxTree, extract
from regexscope.types import BacktrackRisk, EngineVariant, FeatureFlag, NamedGroupSyntax

__version__ = "0.1.0"

__all__ = [
    # Core API
    "analyze",
    "analyze_backtracking",
    "check",
    "explain",
    "infer",
    "parse",
    "profile",
    "select",
    "validate",
    "analyze_batch",
    "analyze_column",
    # Results
    "AnalysisResult",
    "ValidationResult",
    "Explanation",
    "ExplainPart",
    "BacktrackVerdict",
    "DialectVerdict",
    "PortabilityReport",
    "InferredPattern",
    "FeatureProfile",
    # Components
    "BacktrackAnalyzer",
    "DialectCapabilities",
    "DialectRegistry",
    "EngineSelector",
    "ExampleInferencer",
    "Pattern",
    "SyntaxTree",
    "check_portability",
    "compile_pattern",
    "derive_profile",
    "extract",
    "get_dialect_registry",
    "select_engine",
    # Configuration
    "AnalysisConfig",
    "InferenceConfig",
    "ProbeConfig",
    # Types
    "BacktrackRisk",
    "EngineVariant",
    "FeatureFlag",
    "NamedGroupSyntax",
    # Reports
    "AnalysisReport",
    "BatchReport",
    "ExplanationReport",
    "InferenceReport",
    "ValidationReport",
    # Errors
    "RegexScopeError",
    "ParseError",
    "UnknownDialectError",
    "InsufficientExamplesError",
    "InvariantViolationError",
    "EngineCompileError",
    "ConfigurationError",
]
