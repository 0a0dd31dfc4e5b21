"""Character sets as sorted, disjoint code point intervals.

The feature extractor only needs set algebra (union, complement, overlap)
and a representative member, so sets are kept as interval tuples rather
than materialized characters. Predefined classes use ASCII semantics;
Unicode property escapes are approximated conservatively (they overlap
with letters, digits and everything outside ASCII).
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable

MAX_CODEPOINT = 0x10FFFF

# Preferred representatives, in order, when a set has to produce a sample.
_PREFERRED_SAMPLES = "a0A_ -.!"


@dataclass(frozen=True)
class CharSet:
    """Immutable set of code points."""

    ranges: tuple[tuple[int, int], ...] = ()

    @classmethod
    def from_ranges(cls, ranges: Iterable[tuple[int, int]]) -> "CharSet":
        merged: list[list[int]] = []
        for lo, hi in sorted(ranges):
            if lo > hi:
                continue
            if merged and lo <= merged[-1][1] + 1:
                merged[-1][1] = max(merged[-1][1], hi)
            else:
                merged.append([lo, hi])
        return cls(tuple((lo, hi) for lo, hi in merged))

    @classmethod
    def of(cls, chars: str) -> "CharSet":
        return cls.from_ranges((ord(c), ord(c)) for c in chars)

    @classmethod
    def span(cls, first: str, last: str) -> "CharSet":
        return cls.from_ranges([(ord(first), ord(last))])

    def __bool__(self) -> bool:
        return bool(self.ranges)

    def __contains__(self, char: str) -> bool:
        cp = ord(char)
        return any(lo <= cp <= hi for lo, hi in self.ranges)

    def __or__(self, other: "CharSet") -> "CharSet":
        return self.union(other)

    def union(self, *others: "CharSet") -> "CharSet":
        ranges = list(self.ranges)
        for other in others:
            ranges.extend(other.ranges)
        return CharSet.from_ranges(ranges)

    def complement(self) -> "CharSet":
        result = []
        start = 0
        for lo, hi in self.ranges:
            if lo > start:
                result.append((start, lo - 1))
            start = hi + 1
        if start <= MAX_CODEPOINT:
            result.append((start, MAX_CODEPOINT))
        return CharSet(tuple(result))

    def intersects(self, other: "CharSet") -> bool:
        i = j = 0
        a, b = self.ranges, other.ranges
        while i < len(a) and j < len(b):
            if a[i][1] < b[j][0]:
                i += 1
            elif b[j][1] < a[i][0]:
                j += 1
            else:
                return True
        return False

    def is_single(self) -> bool:
        return len(self.ranges) == 1 and self.ranges[0][0] == self.ranges[0][1]

    def casefold(self) -> "CharSet":
        """Add the other-case counterpart of every ASCII letter in the set."""
        extra = []
        for lo, hi in self.ranges:
            for base, other in ((ord("a"), ord("A")), (ord("A"), ord("a"))):
                l, h = max(lo, base), min(hi, base + 25)
                if l <= h:
                    extra.append((l - base + other, h - base + other))
        return self.union(CharSet(tuple(extra))) if extra else self

    def sample(self, avoid: str = "") -> str | None:
        """Return a representative member, preferring readable ASCII."""
        for char in _PREFERRED_SAMPLES:
            if char in self and char not in avoid:
                return char
        for lo, hi in self.ranges:
            for cp in range(lo, min(hi, lo + 64) + 1):
                if 0xD800 <= cp <= 0xDFFF:
                    continue
                if chr(cp) not in avoid:
                    return chr(cp)
        return None


EMPTY = CharSet()
EVERYTHING = CharSet(((0, MAX_CODEPOINT),))
DIGITS = CharSet.span("0", "9")
LOWER = CharSet.span("a", "z")
UPPER = CharSet.span("A", "Z")
LETTERS = LOWER | UPPER
WORD = LETTERS | DIGITS | CharSet.of("_")
SPACE = CharSet.of(" \t\n\r\f\v")
NEWLINE = CharSet.of("\n")
ANY_BUT_NEWLINE = NEWLINE.complement()
NON_ASCII = CharSet(((0x80, MAX_CODEPOINT),))
UNICODE_PROPERTY = LETTERS | DIGITS | NON_ASCII

POSIX_CLASSES = {
    "alpha": LETTERS,
    "digit": DIGITS,
    "alnum": LETTERS | DIGITS,
    "upper": UPPER,
    "lower": LOWER,
    "space": SPACE,
    "blank": CharSet.of(" \t"),
    "punct": CharSet.from_ranges([(0x21, 0x2F), (0x3A, 0x40), (0x5B, 0x60), (0x7B, 0x7E)]),
    "xdigit": DIGITS | CharSet.span("a", "f") | CharSet.span("A", "F"),
    "word": WORD,
    "cntrl": CharSet.from_ranges([(0x00, 0x1F), (0x7F, 0x7F)]),
    "print": CharSet.from_ranges([(0x20, 0x7E)]),
    "graph": CharSet.from_ranges([(0x21, 0x7E)]),
    "ascii": CharSet.from_ranges([(0x00, 0x7F)]),
}

SHORTHAND_CLASSES = {
    "d": DIGITS,
    "D": DIGITS.complement(),
    "w": WORD,
    "W": WORD.complement(),
    "s": SPACE,
    "S": SPACE.complement(),
}
