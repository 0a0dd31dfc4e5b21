"""Plain-language breakdown of a pattern.

Every syntax tree node becomes zero or more ``ExplainPart`` records. A
quantifier on a single simple element is folded into that element's part
(``\\d+`` is one part, "Digit character (one or more)"), concatenations are
flattened, and everything else keeps its children.

Example:
    from regexscope.explain import explain_tree
    from regexscope.syntax import extract

    explanation = explain_tree(extract(r"^\\d{4}-\\d{2}-\\d{2}$"))
    explanation.summary   # "Matches an ISO date (YYYY-MM-DD)"
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from regexscope.syntax.nodes import (
    GroupKind,
    LookaroundKind,
    Node,
    NodeKind,
    QuantifierMode,
    SyntaxTree,
)
from regexscope.templates import recognize_format

ANCHOR_DESCRIPTIONS = {
    "^": "Start of line/string",
    "$": "End of line/string",
    "\\A": "Start of text (absolute)",
    "\\Z": "End of text",
    "\\z": "End of text (absolute)",
    "\\b": "Word boundary",
    "\\B": "Non-word boundary",
    "\\G": "Position where the previous match ended",
}

SHORTHAND_DESCRIPTIONS = {
    "\\d": "Digit character [0-9]",
    "\\D": "Non-digit character",
    "\\w": "Word character [a-zA-Z0-9_]",
    "\\W": "Non-word character",
    "\\s": "Whitespace character",
    "\\S": "Non-whitespace character",
}

# (singular, plural) nouns used in summaries
SHORTHAND_NOUNS = {
    "\\d": ("digit", "digits"),
    "\\D": ("non-digit", "non-digits"),
    "\\w": ("word character", "word characters"),
    "\\W": ("non-word character", "non-word characters"),
    "\\s": ("whitespace character", "whitespace"),
    "\\S": ("non-whitespace character", "non-whitespace characters"),
}

FLAG_DESCRIPTIONS = {
    "a": "ASCII-only matching",
    "i": "case-insensitive",
    "L": "locale-dependent matching",
    "m": "multi-line mode",
    "s": "dot matches newline",
    "u": "unicode mode",
    "x": "ignore whitespace",
    "n": "explicit capture",
    "U": "swap greedy/non-greedy",
}

START_ANCHORS = frozenset({"^", "\\A"})
END_ANCHORS = frozenset({"$", "\\z", "\\Z"})


# =============================================================================
# Results
# =============================================================================


@dataclass(frozen=True)
class ExplainPart:
    """One explained element of a pattern.

    Attributes:
        token: Pattern text of the element, including a folded quantifier
        kind: Element type (literal, shorthand_class, capturing_group, ...)
        description: Plain-language description
        quantifier: Folded or applied quantifier text
        group: Capture group number, for groups and numbered backreferences
        children: Parts of the element's body
    """

    token: str
    kind: str
    description: str
    quantifier: str | None = None
    group: int | None = None
    children: tuple["ExplainPart", ...] = ()

    def _fields(self) -> dict[str, Any]:
        return {
            "token": self.token,
            "type": self.kind,
            "description": self.description,
            "quantifier": self.quantifier,
            "group": self.group,
            "children": [],
        }

    def to_dict(self) -> dict[str, Any]:
        out = self._fields()
        stack = [(self, out)]
        while stack:
            part, part_out = stack.pop()
            for child in part.children:
                child_out = child._fields()
                part_out["children"].append(child_out)
                stack.append((child, child_out))
        return out


@dataclass(frozen=True)
class Explanation:
    """Breakdown of a whole pattern."""

    pattern: str
    parts: tuple[ExplainPart, ...]
    summary: str

    def walk(self):
        """Yield (depth, part) in pattern order."""
        stack = [(0, part) for part in reversed(self.parts)]
        while stack:
            depth, part = stack.pop()
            yield depth, part
            stack.extend((depth + 1, child) for child in reversed(part.children))

    def to_dict(self) -> dict[str, Any]:
        return {
            "pattern": self.pattern,
            "parts": [part.to_dict() for part in self.parts],
            "summary": self.summary,
        }


# =============================================================================
# Descriptions
# =============================================================================


def describe_flags(text: str) -> str:
    """Describe inline flag letters such as ``i`` or ``i-m``."""
    on, _, off = text.partition("-")
    clauses = []
    if on:
        clauses.append("Enable " + ", ".join(FLAG_DESCRIPTIONS.get(c, c) for c in on))
    if off:
        verb = "disable " if clauses else "Disable "
        clauses.append(verb + ", ".join(FLAG_DESCRIPTIONS.get(c, c) for c in off))
    return "; ".join(clauses) or "No flag changes"


def describe_quantifier(node: Node) -> str:
    low, high = node.quant_min, node.quant_max
    if (low, high) == (0, 1):
        text = "Zero or one"
    elif (low, high) == (0, None):
        text = "Zero or more"
    elif (low, high) == (1, None):
        text = "One or more"
    elif high is None:
        text = f"{low} or more"
    elif low == high:
        text = f"Exactly {low}"
    else:
        text = f"Between {low} and {high}"
    if node.quant_mode is QuantifierMode.LAZY:
        text += " (lazy)"
    elif node.quant_mode is QuantifierMode.POSSESSIVE:
        text += " (possessive)"
    return text


def _with_article(text: str) -> str:
    return ("an " if text[:1].lower() in "aeiou" else "a ") + text


def _describe_literal(char: str, token: str) -> str:
    if char.isascii() and char.isalnum():
        return f"Literal '{char}'"
    shown = char if char.isprintable() else token
    return f"Literal '{shown}' (U+{ord(char):04X})"


def _describe_class(node: Node, token: str) -> ExplainPart:
    value = node.value or token
    if value.startswith("["):
        negated = "not " if node.negated else ""
        return ExplainPart(
            token, "character_class", f"Character class: matches {negated}one of the specified characters"
        )
    if node.unicode_property:
        name = value[3:-1] if value[2:3] == "{" else value[2:]
        prefix = "Not in Unicode property" if value[1] == "P" else "Unicode property"
        return ExplainPart(token, "unicode_class", f"{prefix}: {name}")
    description = SHORTHAND_DESCRIPTIONS.get(value, f"Character class {value}")
    return ExplainPart(token, "shorthand_class", description)


# =============================================================================
# Builder
# =============================================================================


def _explain_node(
    tree: SyntaxTree,
    index: int,
    parts: list[list[ExplainPart] | None],
) -> list[ExplainPart]:
    node = tree[index]
    token = tree.text(index)
    kind = node.kind

    def body(child: int) -> tuple[ExplainPart, ...]:
        found = parts[child] or []
        parts[child] = None
        return tuple(found)

    if kind is NodeKind.EMPTY:
        return []
    if kind is NodeKind.CONCAT:
        out: list[ExplainPart] = []
        for child in node.children:
            out.extend(body(child))
        return out
    if kind is NodeKind.LITERAL:
        return [ExplainPart(token, "literal", _describe_literal(node.value or token, token))]
    if kind is NodeKind.ANY:
        return [ExplainPart(token, "any_char", "Matches any character (except newline by default)")]
    if kind is NodeKind.ANCHOR:
        return [ExplainPart(token, "anchor", ANCHOR_DESCRIPTIONS.get(node.value or token, "Anchor"))]
    if kind is NodeKind.CHAR_CLASS:
        return [_describe_class(node, token)]
    if kind is NodeKind.FLAGS:
        return [ExplainPart(token, "flags", describe_flags(node.value or ""))]

    if kind is NodeKind.QUANTIFIER:
        child = node.children[0]
        inner = body(child)
        suffix = tree.pattern[tree[child].end:node.end]
        described = describe_quantifier(node)
        if len(inner) == 1 and inner[0].quantifier is None:
            part = inner[0]
            return [
                ExplainPart(
                    part.token + suffix,
                    part.kind,
                    f"{part.description} ({described[0].lower()}{described[1:]})",
                    quantifier=suffix,
                    group=part.group,
                    children=part.children,
                )
            ]
        return [
            ExplainPart(token, "repetition", f"{described} of the preceding element", suffix, children=inner)
        ]

    if kind is NodeKind.GROUP:
        inner = body(node.children[0])
        if node.group_kind is GroupKind.NAMED:
            description = f"Named capture: {node.name}"
            return [ExplainPart(token, "named_group", description, group=node.group_index, children=inner)]
        if node.group_kind is GroupKind.CAPTURING:
            return [
                ExplainPart(token, "capturing_group", "Capturing group", group=node.group_index, children=inner)
            ]
        if node.group_kind is GroupKind.ATOMIC:
            description = "Atomic group: no backtracking into the group once matched"
            return [ExplainPart(token, "atomic_group", description, children=inner)]
        description = "Non-capturing group"
        if node.value:
            description += f" ({describe_flags(node.value).lower()})"
        return [ExplainPart(token, "non_capturing_group", description, children=inner)]

    if kind is NodeKind.ALTERNATION:
        branches = tuple(
            ExplainPart(tree.text(child), "branch", "Alternative branch", children=body(child))
            for child in node.children
        )
        description = f"Match one of {len(branches)} alternatives"
        return [ExplainPart(token, "alternation", description, children=branches)]

    if kind is NodeKind.LOOKAROUND:
        ahead = node.look_kind is LookaroundKind.AHEAD
        sense = "Negative" if node.negated else "Positive"
        what = "follows" if ahead else "precedes"
        name = "lookahead" if ahead else "lookbehind"
        return [
            ExplainPart(
                token,
                name,
                f"{sense} {name}: checks what {what} without consuming characters",
                children=body(node.children[0]),
            )
        ]

    if kind is NodeKind.BACKREFERENCE:
        target = node.value or ""
        group = int(target) if target.isdigit() else tree.group_names.get(target)
        return [ExplainPart(token, "backreference", f"Same text as group {target} matched", group=group)]

    if kind is NodeKind.RECURSION:
        target = node.value or ""
        if target in ("", "R", "0"):
            description = "Recursion into the whole pattern"
        else:
            description = f"Recursion into group {target}"
        return [ExplainPart(token, "recursion", description)]

    if kind is NodeKind.CONDITIONAL:
        labels = ("Branch if the condition holds", "Branch otherwise")
        branches = tuple(
            ExplainPart(tree.text(child), "branch", labels[min(i, 1)], children=body(child))
            for i, child in enumerate(node.children)
        )
        return [ExplainPart(token, "conditional", f"Conditional on group {node.value}", children=branches)]

    raise ValueError(f"Unexpected node kind: {kind}")


def explain_parts(tree: SyntaxTree) -> tuple[ExplainPart, ...]:
    """Explain every node bottom-up; children come before parents in the arena."""
    parts: list[list[ExplainPart] | None] = [None] * len(tree)
    for index in range(len(tree)):
        parts[index] = _explain_node(tree, index, parts)
    return tuple(parts[tree.root] or ())


# =============================================================================
# Summary
# =============================================================================


def _child_summary(children: tuple[ExplainPart, ...]) -> str:
    words = []
    for child in children:
        if child.kind == "shorthand_class":
            words.append(SHORTHAND_NOUNS.get(child.token[:2], ("", "characters"))[1])
        elif child.kind == "literal":
            words.append("literal")
        elif child.kind == "any_char":
            words.append("any char")
        elif child.kind == "character_class":
            words.append("char class")
    return " + ".join(words) or "group"


def _shorthand_fragment(part: ExplainPart) -> str:
    singular, plural = SHORTHAND_NOUNS.get(part.token[:2], ("character", "characters"))
    quantifier = part.quantifier or ""
    base = quantifier.rstrip("?+") or quantifier[:1]
    if base == "+":
        return f"one or more {plural}"
    if base == "*":
        return f"zero or more {plural}"
    if base == "?":
        return f"an optional {singular}"
    if quantifier:
        return f"{plural} ({quantifier})"
    return _with_article(singular)


def summarize(pattern: str, parts: tuple[ExplainPart, ...]) -> str:
    """One-sentence summary: a known format by name, else a structural reading."""
    if not parts:
        return "Empty pattern"

    template = recognize_format(pattern)
    if template is not None:
        return f"Matches {_with_article(template.description)}"

    fragments: list[str] = []
    literal_run: list[str] = []
    starts = ends = False

    def flush() -> None:
        if literal_run:
            fragments.append("'" + "".join(literal_run) + "'")
            literal_run.clear()

    for part in parts:
        if part.kind == "literal" and part.quantifier is None:
            literal_run.append(part.token)
            continue
        flush()
        if part.kind == "anchor":
            starts = starts or part.token in START_ANCHORS
            ends = ends or part.token in END_ANCHORS
        elif part.kind in ("capturing_group", "named_group"):
            fragments.append(f"a captured {_child_summary(part.children)}")
        elif part.kind == "alternation":
            branches = [_child_summary(b.children) if b.children else b.token for b in part.children]
            if len(branches) <= 3:
                fragments.append("either " + " or ".join(branches))
            else:
                fragments.append(f"one of {len(branches)} alternatives")
        elif part.kind == "shorthand_class":
            fragments.append(_shorthand_fragment(part))
        elif part.kind == "literal":
            fragments.append(f"'{part.token}'")
        elif part.kind == "any_char":
            if (part.quantifier or "")[:1] == "*":
                fragments.append("any text")
            elif (part.quantifier or "")[:1] == "+":
                fragments.append("some text")
            else:
                fragments.append("any character")
        elif part.kind == "character_class":
            fragments.append(f"characters matching {part.token}")
        elif part.kind == "repetition":
            fragments.append(part.description.lower())
    flush()

    if not fragments:
        return "Matches the specified pattern"

    summary = "Matches " + ", then ".join(fragments)
    if starts and ends:
        summary += " (full line match)"
    elif starts:
        summary += " (at start of line)"
    elif ends:
        summary += " (at end of line)"
    return summary


def explain_tree(tree: SyntaxTree) -> Explanation:
    parts = explain_parts(tree)
    return Explanation(pattern=tree.pattern, parts=parts, summary=summarize(tree.pattern, parts))
