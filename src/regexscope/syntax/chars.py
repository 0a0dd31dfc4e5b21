"""Tokenizer primitives shared by the parser and the example inferencer."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

# Characters with syntactic meaning outside a character class.
SPECIAL_CHARS = frozenset(".^$*+?{}[]\\|()")

# Escapes that stand for a single literal character.
CONTROL_ESCAPES = {
    "n": "\n",
    "t": "\t",
    "r": "\r",
    "f": "\f",
    "v": "\v",
    "a": "\a",
    "e": "\x1b",
}

# Inline flag letters accepted across the supported dialects.
FLAG_CHARS = frozenset("aiLmsuxnU")


class CharKind(str, Enum):
    """Atomic character classes used for example tokenization."""

    DIGIT = "digit"
    LETTER = "letter"
    PUNCT = "punct"
    OTHER = "other"


def char_kind(char: str) -> CharKind:
    """Classify a single character (ASCII semantics for digits and letters)."""
    if "0" <= char <= "9":
        return CharKind.DIGIT
    if ("a" <= char <= "z") or ("A" <= char <= "Z"):
        return CharKind.LETTER
    if char.isascii() and 0x21 <= ord(char) <= 0x7E:
        return CharKind.PUNCT
    return CharKind.OTHER


@dataclass(frozen=True)
class Run:
    """A maximal run of one character kind.

    Punctuation never forms runs: every punctuation character is its own token.
    """

    kind: CharKind
    text: str

    @property
    def key(self) -> tuple[str, str]:
        """Shape key: punctuation is identified by the character itself."""
        return (self.kind.value, self.text if self.kind is CharKind.PUNCT else "")


def split_runs(text: str) -> list[Run]:
    """Split text into digit runs, letter runs, single punctuation and other runs."""
    runs: list[Run] = []
    start = 0
    while start < len(text):
        kind = char_kind(text[start])
        end = start + 1
        if kind is not CharKind.PUNCT:
            while end < len(text) and char_kind(text[end]) is kind:
                end += 1
        runs.append(Run(kind, text[start:end]))
        start = end
    return runs


def escape_literal(text: str) -> str:
    """Escape text so the parser reads it back as the same literal."""
    out = []
    for char in text:
        if char in SPECIAL_CHARS:
            out.append("\\" + char)
        elif char == "\n":
            out.append("\\n")
        elif char == "\t":
            out.append("\\t")
        elif char == "\r":
            out.append("\\r")
        else:
            out.append(char)
    return "".join(out)


def is_group_name(name: str) -> bool:
    return bool(name) and (name[0].isalpha() or name[0] == "_") and all(
        c.isalnum() or c == "_" for c in name
    )
