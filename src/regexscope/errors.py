"""Structured error handling for regexscope.

This module provides:
- Typed exception hierarchy
- Error context preservation
- Serialization for the CLI/JSON layer

Probe ceiling violations are deliberately absent: a timed-out probe is a
classification outcome, not an error.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any


# =============================================================================
# Error Severity and Categories
# =============================================================================


class ErrorSeverity(str, Enum):
    """Severity levels for analysis errors."""

    WARNING = "warning"   # Non-fatal, analysis continues
    ERROR = "error"       # Request failed, caller may recover
    CRITICAL = "critical" # Internal bug, must not be downgraded


class ErrorCategory(str, Enum):
    """Categories of analysis errors."""

    PARSE = "parse"             # Malformed pattern syntax
    DIALECT = "dialect"         # Unknown portability target
    INFERENCE = "inference"     # Example-set problems
    ENGINE = "engine"           # Matcher compile failures
    CONFIGURATION = "configuration"
    INTERNAL = "internal"       # Invariant violations


# =============================================================================
# Exception Hierarchy
# =============================================================================


class RegexScopeError(Exception):
    """Base exception for all regexscope errors."""

    def __init__(
        self,
        message: str,
        *,
        category: ErrorCategory = ErrorCategory.INTERNAL,
        severity: ErrorSeverity = ErrorSeverity.ERROR,
        cause: Exception | None = None,
        context: dict[str, Any] | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.category = category
        self.severity = severity
        self.cause = cause
        self.context = context or {}
        self.timestamp = datetime.now()

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "type": type(self).__name__,
            "message": self.message,
            "category": self.category.value,
            "severity": self.severity.value,
            "cause": str(self.cause) if self.cause else None,
            "context": self.context,
        }

    def __str__(self) -> str:
        parts = [self.message]
        if self.cause:
            parts.append(f"cause={self.cause}")
        return " | ".join(parts)


class ParseError(RegexScopeError):
    """Malformed pattern syntax.

    Attributes:
        position: Zero-based offset into the pattern where parsing failed
        suggestion: Human-readable hint for fixing the pattern
    """

    def __init__(
        self,
        message: str,
        *,
        position: int,
        suggestion: str | None = None,
        pattern: str | None = None,
    ):
        super().__init__(
            message,
            category=ErrorCategory.PARSE,
            context={"position": position, "pattern": pattern},
        )
        self.position = position
        self.suggestion = suggestion
        self.pattern = pattern

    def to_dict(self) -> dict[str, Any]:
        d = super().to_dict()
        d["position"] = self.position
        d["suggestion"] = self.suggestion
        return d

    def __str__(self) -> str:
        text = f"{self.message} at position {self.position}"
        if self.suggestion:
            text += f" ({self.suggestion})"
        return text


class UnknownDialectError(RegexScopeError):
    """A portability check named a dialect that is not registered."""

    def __init__(self, dialect: str, available: list[str]):
        super().__init__(
            f"Unknown dialect '{dialect}'. Available: {', '.join(available)}",
            category=ErrorCategory.DIALECT,
            context={"dialect": dialect, "available": available},
        )
        self.dialect = dialect
        self.available = available


class InsufficientExamplesError(RegexScopeError):
    """The example inferencer was given nothing to learn from."""

    def __init__(self, message: str = "At least one example is required"):
        super().__init__(message, category=ErrorCategory.INFERENCE)


class InvariantViolationError(RegexScopeError):
    """The rule tables disagree with the syntax tree.

    Always fatal: raising this means an engine or portability rule is wrong,
    and returning a result anyway would hand the caller a wrong answer.
    """

    def __init__(self, message: str, **kwargs: Any):
        super().__init__(
            message,
            category=ErrorCategory.INTERNAL,
            severity=ErrorSeverity.CRITICAL,
            **kwargs,
        )


class EngineCompileError(RegexScopeError):
    """A matcher rejected a pattern at compile time."""

    def __init__(self, message: str, **kwargs: Any):
        super().__init__(message, category=ErrorCategory.ENGINE, **kwargs)


class ConfigurationError(RegexScopeError):
    """Invalid configuration value."""

    def __init__(self, message: str, **kwargs: Any):
        super().__init__(message, category=ErrorCategory.CONFIGURATION, **kwargs)
