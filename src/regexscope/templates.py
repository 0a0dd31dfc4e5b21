"""Known-format templates offered alongside shape-based inference."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum
from functools import cached_property
from typing import Iterable, Sequence

import polars as pl


class TemplatePriority(int, Enum):
    """Priority levels for templates (higher = offered first on ties)."""

    HIGH = 80       # Tightly specified formats (UUID, MAC)
    MEDIUM = 60     # Common formats (dates, IPv4, URL)
    LOW = 40        # Loose formats (phone)


@dataclass(frozen=True)
class FormatTemplate:
    """A curated pattern for a well-known string format.

    Attributes:
        name: Unique identifier
        pattern: Pattern offered to the user (unanchored)
        description: Human-readable description
        priority: Tie-break order between templates
        examples: Canonical values the pattern must accept
    """

    name: str
    pattern: str
    description: str
    priority: int = TemplatePriority.MEDIUM
    examples: tuple[str, ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        """Validate pattern is compilable."""
        try:
            re.compile(self.pattern)
        except re.error as e:
            raise ValueError(f"Invalid pattern for template '{self.name}': {e}")

    @cached_property
    def compiled_regex(self) -> re.Pattern:
        return re.compile(self.pattern)

    def matches(self, value: str) -> bool:
        return self.compiled_regex.fullmatch(value) is not None

    def to_polars_expr(self, column: str) -> pl.Expr:
        """Expression that is True where the whole value matches."""
        return pl.col(column).str.contains(f"^(?:{self.pattern})$")


BUILTIN_TEMPLATES: tuple[FormatTemplate, ...] = (
    FormatTemplate(
        "uuid",
        r"[0-9a-fA-F]{8}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{12}",
        "UUID",
        TemplatePriority.HIGH,
        ("550e8400-e29b-41d4-a716-446655440000",),
    ),
    FormatTemplate(
        "mac_address",
        r"[0-9a-fA-F]{2}[:-][0-9a-fA-F]{2}(?:[:-][0-9a-fA-F]{2}){4}",
        "MAC address",
        TemplatePriority.HIGH,
        ("00:1A:2B:3C:4D:5E", "00-1a-2b-3c-4d-5e"),
    ),
    FormatTemplate(
        "hex_color",
        r"#(?:[0-9a-fA-F]{3}|[0-9a-fA-F]{6})",
        "Hex color",
        TemplatePriority.HIGH,
        ("#fff", "#1A2B3C"),
    ),
    FormatTemplate("iso_date", r"\d{4}-\d{2}-\d{2}", "ISO date (YYYY-MM-DD)", examples=("2024-01-15",)),
    FormatTemplate("us_date", r"\d{2}/\d{2}/\d{4}", "US date (MM/DD/YYYY)", examples=("01/15/2024",)),
    FormatTemplate("time_long", r"\d{2}:\d{2}:\d{2}", "Time (HH:MM:SS)", examples=("13:45:00",)),
    FormatTemplate("time_short", r"\d{2}:\d{2}", "Time (HH:MM)", examples=("13:45",)),
    FormatTemplate(
        "email",
        r"[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}",
        "Email address",
        examples=("user@example.com",),
    ),
    FormatTemplate(
        "ipv4",
        r"\d{1,3}\.\d{1,3}\.\d{1,3}\.\d{1,3}",
        "IPv4 address",
        examples=("192.168.0.1",),
    ),
    FormatTemplate("url", r"https?://\S+", "HTTP(S) URL", examples=("https://example.com/a?b=c",)),
    FormatTemplate(
        "semver",
        r"\d+\.\d+\.\d+(?:-[a-zA-Z0-9.]+)?(?:\+[a-zA-Z0-9.]+)?",
        "Semantic version",
        examples=("1.2.3", "2.0.0-rc.1+build.5"),
    ),
    FormatTemplate(
        "phone",
        r"\+?\d[\d\-\s().]{6,}\d",
        "Phone number",
        TemplatePriority.LOW,
        ("+1 (555) 123-4567",),
    ),
)


def recognize_format(
    pattern: str,
    templates: Iterable[FormatTemplate] = BUILTIN_TEMPLATES,
) -> FormatTemplate | None:
    """Template whose pattern text the given pattern is, ignoring outer anchors.

    Recognition is by text only; the pattern is never run against the
    template examples.
    """
    body = pattern
    for prefix in ("^", "\\A"):
        if body.startswith(prefix):
            body = body[len(prefix):]
            break
    for suffix in ("$", "\\z", "\\Z"):
        if body.endswith(suffix) and not body.endswith("\\" + suffix):
            body = body[: -len(suffix)]
            break
    for template in templates:
        if template.pattern in (pattern, body):
            return template
    return None


def detect_known_formats(
    examples: Sequence[str],
    templates: Iterable[FormatTemplate] = BUILTIN_TEMPLATES,
) -> list[FormatTemplate]:
    """Templates that fully match every example, highest priority first."""
    found = [t for t in templates if all(t.matches(e) for e in examples)]
    return sorted(found, key=lambda t: -t.priority)
