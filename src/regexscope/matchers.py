"""Matching engines.

regexscope never matches text itself; it routes patterns to one of two
external engines:

- Linear-time: google-re2 (``import re2``). Guaranteed linear matching,
  no backreferences or lookaround.
- Backtracking: the standard library ``re`` module, falling back to the
  third-party ``regex`` module for syntax ``re`` rejects (``\\p{..}``,
  variable-length lookbehind, recursion, ...).

Both expose compile and search only.
"""

from __future__ import annotations

import logging
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any

import regex

from regexscope.errors import EngineCompileError
from regexscope.types import EngineVariant

logger = logging.getLogger(__name__)

# Besides their own error types, the engines raise OverflowError for repeat
# bounds past their limit and RecursionError for very deep nesting.
_LIMIT_ERRORS = (OverflowError, RecursionError)


@dataclass(frozen=True)
class CompiledPattern:
    """A pattern compiled by one concrete engine.

    Attributes:
        pattern: Source pattern
        variant: Engine family that compiled it
        engine: Module name of the engine ("re2", "re" or "regex")
        compiled: The engine's compiled object
    """

    pattern: str
    variant: EngineVariant
    engine: str
    compiled: Any

    def search(self, text: str) -> Any:
        return self.compiled.search(text)


class Matcher(ABC):
    """Compile-only facade over a regex engine."""

    variant: EngineVariant

    @abstractmethod
    def compile(self, pattern: str) -> CompiledPattern:
        """Compile a pattern.

        Raises:
            EngineCompileError: If the engine rejects the pattern
        """
        pass


class LinearTimeMatcher(Matcher):
    """google-re2 backed matcher."""

    variant = EngineVariant.LINEAR_TIME

    def compile(self, pattern: str) -> CompiledPattern:
        import re2

        try:
            compiled = re2.compile(pattern)
        except (re2.error, *_LIMIT_ERRORS) as e:
            raise EngineCompileError(
                f"re2 rejected pattern: {e}",
                cause=e,
                context={"pattern": pattern},
            )
        return CompiledPattern(pattern, self.variant, "re2", compiled)


class BacktrackingMatcher(Matcher):
    """Standard library ``re`` with ``regex`` as the syntax fallback."""

    variant = EngineVariant.BACKTRACKING

    def compile(self, pattern: str) -> CompiledPattern:
        try:
            return CompiledPattern(pattern, self.variant, "re", re.compile(pattern))
        except (re.error, *_LIMIT_ERRORS) as e:
            logger.debug("re rejected pattern (%s), trying regex", e)
        try:
            compiled = regex.compile(pattern)
        except (regex.error, *_LIMIT_ERRORS) as e:
            raise EngineCompileError(
                f"No backtracking engine accepts pattern: {e}",
                cause=e,
                context={"pattern": pattern},
            )
        return CompiledPattern(pattern, self.variant, "regex", compiled)


def compile_with(engine: str, pattern: str) -> Any:
    """Compile with a named engine module; used inside probe workers."""
    if engine == "re":
        return re.compile(pattern)
    if engine == "regex":
        return regex.compile(pattern)
    if engine == "re2":
        import re2

        return re2.compile(pattern)
    raise ValueError(f"Unknown engine: {engine}")


_MATCHERS: dict[EngineVariant, Matcher] = {
    EngineVariant.LINEAR_TIME: LinearTimeMatcher(),
    EngineVariant.BACKTRACKING: BacktrackingMatcher(),
}


def get_matcher(variant: EngineVariant) -> Matcher:
    return _MATCHERS[variant]
