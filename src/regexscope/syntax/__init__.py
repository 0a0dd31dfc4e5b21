"""Pattern syntax: parser, tree model and tokenizer primitives."""

from regexscope.syntax.charset import CharSet
from regexscope.syntax.chars import CharKind, Run, escape_literal, split_runs
from regexscope.syntax.nodes import (
    GroupKind,
    LookaroundKind,
    Node,
    NodeKind,
    Pattern,
    QuantifierMode,
    SyntaxTree,
)
from regexscope.syntax.parser import Parser, extract

__all__ = [
    "CharSet",
    "CharKind",
    "Run",
    "escape_literal",
    "split_runs",
    "GroupKind",
    "LookaroundKind",
    "Node",
    "NodeKind",
    "Pattern",
    "QuantifierMode",
    "SyntaxTree",
    "Parser",
    "extract",
]
