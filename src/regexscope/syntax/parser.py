"""Pattern parser.

Parses a superset of common regex syntax into a ``SyntaxTree``. The
accepted language is the union of what the supported dialects understand
(lookaround, backreferences, all named-group spellings, possessive
quantifiers, atomic groups, conditionals, Unicode properties, POSIX
classes, recursion), so a successful parse describes the pattern; it does
not promise that any single engine can execute it.

Open groups are tracked on an explicit frame stack, so nesting depth is
bounded by memory rather than by the interpreter's recursion limit.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from enum import Enum

from regexscope.errors import ParseError
from regexscope.syntax.charset import (
    ANY_BUT_NEWLINE,
    EMPTY,
    EVERYTHING,
    MAX_CODEPOINT,
    POSIX_CLASSES,
    SHORTHAND_CLASSES,
    UNICODE_PROPERTY,
    CharSet,
)
from regexscope.syntax.chars import CONTROL_ESCAPES, FLAG_CHARS, is_group_name
from regexscope.syntax.nodes import (
    GroupKind,
    LookaroundKind,
    Node,
    NodeKind,
    QuantifierMode,
    SyntaxTree,
)
from regexscope.types import NamedGroupSyntax

logger = logging.getLogger(__name__)

_BOUND_RE = re.compile(r"\{(\d*)(,?)(\d*)\}")
_OCTAL = frozenset("01234567")
_HEX = frozenset("0123456789abcdefABCDEF")
_UNQUANTIFIABLE = (NodeKind.FLAGS, NodeKind.ANCHOR)


class _FrameKind(str, Enum):
    ROOT = "root"
    GROUP = "group"
    LOOKAROUND = "lookaround"
    CONDITIONAL = "conditional"


@dataclass
class _Frame:
    """An open group on the parser stack."""

    kind: _FrameKind
    start: int
    flags: frozenset[str]
    branches: list[list[int]] = field(default_factory=lambda: [[]])
    group_kind: GroupKind | None = None
    group_index: int | None = None
    name: str | None = None
    name_syntax: NamedGroupSyntax | None = None
    look_kind: LookaroundKind | None = None
    negated: bool = False
    condition: str | None = None
    scoped_flags: str | None = None
    last_was_quantifier: bool = False

    @property
    def current(self) -> list[int]:
        return self.branches[-1]


class Parser:
    """Single-use parser for one pattern string."""

    def __init__(self, pattern: str):
        self.pattern = pattern
        self.pos = 0
        self._nodes: list[Node] = []
        self._group_count = 0
        self._group_names: dict[str, int] = {}
        self._references: list[tuple[str, int]] = []

    # -------------------------------------------------------------------------
    # Driver
    # -------------------------------------------------------------------------

    def parse(self) -> SyntaxTree:
        p = self.pattern
        stack = [_Frame(_FrameKind.ROOT, 0, frozenset())]

        while self.pos < len(p):
            frame = stack[-1]
            char = p[self.pos]

            if "x" in frame.flags and self._skip_verbose(char):
                continue

            if char == "(":
                opened = self._open_group(frame)
                if opened is not None:
                    stack.append(opened)
            elif char == ")":
                if len(stack) == 1:
                    raise self._error(
                        "unbalanced parenthesis",
                        self.pos,
                        "remove the extra ')' or add a matching '('",
                    )
                self.pos += 1
                closed = stack.pop()
                self._push(stack[-1], self._close(closed, self.pos))
            elif char == "|":
                frame.branches.append([])
                frame.last_was_quantifier = False
                self.pos += 1
            elif char in "*+?" or (char == "{" and self._bound_at(self.pos) is not None):
                self._quantify(frame)
            elif char == "[":
                self._push(frame, self._parse_class(frame.flags))
            elif char == "\\":
                for node in self._parse_escape(frame.flags):
                    self._push(frame, node)
            elif char == ".":
                chars = EVERYTHING if "s" in frame.flags else ANY_BUT_NEWLINE
                self._push(frame, self._add(NodeKind.ANY, self.pos, self.pos + 1, chars=chars, value="."))
                self.pos += 1
            elif char in "^$":
                self._push(frame, self._add(NodeKind.ANCHOR, self.pos, self.pos + 1, value=char))
                self.pos += 1
            else:
                self._push(frame, self._literal(self.pos, self.pos + 1, char, frame.flags))
                self.pos += 1

        if len(stack) > 1:
            raise self._error(
                "missing ), unterminated subpattern",
                stack[-1].start,
                "add a closing ')' to complete the group",
            )

        root = self._close(stack[0], len(p))
        self._check_references()
        return SyntaxTree(
            pattern=p,
            nodes=tuple(self._nodes),
            root=root,
            group_count=self._group_count,
            group_names=dict(self._group_names),
        )

    # -------------------------------------------------------------------------
    # Node construction
    # -------------------------------------------------------------------------

    def _add(self, kind: NodeKind, start: int, end: int, children: tuple[int, ...] = (), **attrs) -> int:
        kids = [self._nodes[c] for c in children]
        min_width, max_width, chars, first = _measure(kind, kids, attrs)
        attrs.pop("chars", None)
        self._nodes.append(
            Node(
                kind=kind,
                start=start,
                end=end,
                children=children,
                chars=chars,
                first=first,
                min_width=min_width,
                max_width=max_width,
                **attrs,
            )
        )
        return len(self._nodes) - 1

    def _literal(self, start: int, end: int, char: str, flags: frozenset[str]) -> int:
        chars = CharSet.of(char)
        if "i" in flags:
            chars = chars.casefold()
        return self._add(NodeKind.LITERAL, start, end, chars=chars, value=char)

    def _push(self, frame: _Frame, node: int) -> None:
        frame.current.append(node)
        frame.last_was_quantifier = False

    def _sequence(self, ids: list[int], fallback: int) -> int:
        if not ids:
            return self._add(NodeKind.EMPTY, fallback, fallback)
        if len(ids) == 1:
            return ids[0]
        return self._add(
            NodeKind.CONCAT,
            self._nodes[ids[0]].start,
            self._nodes[ids[-1]].end,
            tuple(ids),
        )

    def _close(self, frame: _Frame, end: int) -> int:
        bodies = [self._sequence(branch, end) for branch in frame.branches]

        if frame.kind is _FrameKind.CONDITIONAL:
            if len(bodies) > 2:
                raise self._error(
                    "conditional group with more than two branches",
                    frame.start,
                    "use at most one '|' inside (?(...)...)",
                )
            return self._add(NodeKind.CONDITIONAL, frame.start, end, tuple(bodies), value=frame.condition)

        if len(bodies) == 1:
            body = bodies[0]
        else:
            body = self._add(
                NodeKind.ALTERNATION,
                min(self._nodes[b].start for b in bodies),
                max(self._nodes[b].end for b in bodies),
                tuple(bodies),
            )

        if frame.kind is _FrameKind.ROOT:
            return body
        if frame.kind is _FrameKind.LOOKAROUND:
            return self._add(
                NodeKind.LOOKAROUND,
                frame.start,
                end,
                (body,),
                look_kind=frame.look_kind,
                negated=frame.negated,
            )
        return self._add(
            NodeKind.GROUP,
            frame.start,
            end,
            (body,),
            group_kind=frame.group_kind,
            group_index=frame.group_index,
            name=frame.name,
            name_syntax=frame.name_syntax,
            value=frame.scoped_flags,
        )

    # -------------------------------------------------------------------------
    # Groups
    # -------------------------------------------------------------------------

    def _open_group(self, frame: _Frame) -> _Frame | None:
        p = self.pattern
        start = self.pos

        if not p.startswith("(?", start):
            self.pos += 1
            return self._capturing(start, frame.flags)

        self.pos = start + 2
        if self.pos >= len(p):
            raise self._error("unexpected end of pattern after '(?'", start, "complete or remove the group")
        char = p[self.pos]
        nxt = p[self.pos + 1] if self.pos + 1 < len(p) else ""

        if char == "#":
            close = p.find(")", self.pos)
            if close == -1:
                raise self._error("missing ), unterminated comment", start, "close the comment with ')'")
            self.pos = close + 1
            return None
        if char in ":|":
            self.pos += 1
            return _Frame(_FrameKind.GROUP, start, frame.flags, group_kind=GroupKind.NON_CAPTURING)
        if char == ">":
            self.pos += 1
            return _Frame(_FrameKind.GROUP, start, frame.flags, group_kind=GroupKind.ATOMIC)
        if char in "=!":
            self.pos += 1
            return _Frame(
                _FrameKind.LOOKAROUND, start, frame.flags,
                look_kind=LookaroundKind.AHEAD, negated=char == "!",
            )
        if char == "<" and nxt in ("=", "!"):
            self.pos += 2
            return _Frame(
                _FrameKind.LOOKAROUND, start, frame.flags,
                look_kind=LookaroundKind.BEHIND, negated=nxt == "!",
            )
        if char == "<":
            self.pos += 1
            return self._capturing(start, frame.flags, self._read_name(">"), NamedGroupSyntax.ANGLE)
        if char == "'":
            self.pos += 1
            return self._capturing(start, frame.flags, self._read_name("'"), NamedGroupSyntax.QUOTE)
        if char == "P" and nxt == "<":
            self.pos += 2
            return self._capturing(start, frame.flags, self._read_name(">"), NamedGroupSyntax.PYTHON)
        if char == "P" and nxt == "=":
            self.pos += 2
            name = self._read_name(")")
            self._references.append((name, start))
            self._push(frame, self._add(NodeKind.BACKREFERENCE, start, self.pos, value=name))
            return None
        if char == "P" and nxt == ">":
            self.pos += 2
            name = self._read_name(")")
            self._references.append((name, start))
            self._push(frame, self._add(NodeKind.RECURSION, start, self.pos, value=name))
            return None
        if char == "&":
            self.pos += 1
            name = self._read_name(")")
            self._references.append((name, start))
            self._push(frame, self._add(NodeKind.RECURSION, start, self.pos, value=name))
            return None
        if char == "R" or char.isdigit() or (char in "+-" and nxt.isdigit()):
            return self._recursion(frame, start)
        if char == "(":
            return self._conditional(frame, start)
        if char in FLAG_CHARS or char == "-":
            return self._flags(frame, start)

        raise self._error(
            f"unknown extension ?{char}",
            start,
            "use (?:...) for a plain group or escape the '(' as '\\('",
        )

    def _capturing(
        self,
        start: int,
        flags: frozenset[str],
        name: str | None = None,
        syntax: NamedGroupSyntax | None = None,
    ) -> _Frame:
        self._group_count += 1
        if name is not None:
            if name in self._group_names:
                raise self._error(
                    f"redefinition of group name '{name}'",
                    start,
                    "give each named group a unique name",
                )
            self._group_names[name] = self._group_count
        return _Frame(
            _FrameKind.GROUP,
            start,
            flags,
            group_kind=GroupKind.NAMED if name else GroupKind.CAPTURING,
            group_index=self._group_count,
            name=name,
            name_syntax=syntax,
        )

    def _read_name(self, terminator: str) -> str:
        p = self.pattern
        close = p.find(terminator, self.pos)
        if close == -1:
            raise self._error(
                f"missing {terminator}, unterminated name",
                self.pos,
                f"close the group name with '{terminator}'",
            )
        name = p[self.pos:close]
        if not is_group_name(name):
            raise self._error(
                f"bad character in group name '{name}'",
                self.pos,
                "group names must start with a letter or '_' and contain only word characters",
            )
        self.pos = close + 1
        return name

    def _recursion(self, frame: _Frame, start: int) -> None:
        p = self.pattern
        close = p.find(")", self.pos)
        target = p[self.pos:close] if close != -1 else ""
        if not (target == "R" or re.fullmatch(r"[+-]?\d+", target)):
            raise self._error("invalid recursion syntax", start, "use (?R), (?1), (?-1) or (?&name)")
        self.pos = close + 1
        if target != "R":
            self._references.append((self._absolute_reference(target, start), start))
        self._push(frame, self._add(NodeKind.RECURSION, start, self.pos, value=target))
        return None

    def _conditional(self, frame: _Frame, start: int) -> _Frame:
        p = self.pattern
        self.pos += 1
        close = p.find(")", self.pos)
        condition = p[self.pos:close] if close != -1 else ""
        if not (condition.isdigit() or is_group_name(condition)):
            raise self._error(
                "unsupported condition in conditional group",
                start,
                "condition must be a group number or name, e.g. (?(1)a|b)",
            )
        self._references.append((condition, start))
        self.pos = close + 1
        return _Frame(_FrameKind.CONDITIONAL, start, frame.flags, condition=condition)

    def _flags(self, frame: _Frame, start: int) -> _Frame | None:
        p = self.pattern
        end = self.pos
        while end < len(p) and (p[end] in FLAG_CHARS or p[end] == "-"):
            end += 1
        if end >= len(p) or p[end] not in ":)":
            raise self._error(
                f"unknown flag in '{p[start:end + 1]}'",
                end,
                f"inline flags are limited to {''.join(sorted(FLAG_CHARS))}",
            )
        text = p[self.pos:end]
        on, _, off = text.partition("-")
        flags = (frame.flags | set(on)) - set(off)
        self.pos = end + 1

        if p[end] == ")":
            frame.flags = frozenset(flags)
            self._push(frame, self._add(NodeKind.FLAGS, start, self.pos, value=text))
            return None
        return _Frame(
            _FrameKind.GROUP,
            start,
            frozenset(flags),
            group_kind=GroupKind.NON_CAPTURING,
            scoped_flags=text,
        )

    # -------------------------------------------------------------------------
    # Quantifiers
    # -------------------------------------------------------------------------

    def _bound_at(self, pos: int) -> tuple[int, int | None, int] | None:
        """Return (min, max, end) if a valid {n,m} quantifier starts at pos."""
        match = _BOUND_RE.match(self.pattern, pos)
        if not match:
            return None
        lo, comma, hi = match.groups()
        if not lo and not hi:
            return None
        low = int(lo) if lo else 0
        if comma:
            high = int(hi) if hi else None
        else:
            high = low
        return low, high, match.end()

    def _quantify(self, frame: _Frame) -> None:
        p = self.pattern
        start = self.pos
        char = p[start]

        if char == "*":
            low, high, self.pos = 0, None, start + 1
        elif char == "+":
            low, high, self.pos = 1, None, start + 1
        elif char == "?":
            low, high, self.pos = 0, 1, start + 1
        else:
            low, high, self.pos = self._bound_at(start)
            if high is not None and low > high:
                raise self._error(
                    f"invalid quantifier bounds {{{low},{high}}}: min is greater than max",
                    start,
                    f"swap the bounds: {{{high},{low}}}",
                )

        if frame.last_was_quantifier:
            raise self._error(
                "multiple repeat",
                start,
                "remove one quantifier or wrap the quantified expression in (?:...)",
            )
        sequence = frame.current
        if not sequence or self._nodes[sequence[-1]].kind in _UNQUANTIFIABLE:
            raise self._error(
                "nothing to repeat",
                start,
                "add a character or group before the quantifier, or escape it",
            )

        mode = QuantifierMode.GREEDY
        if self.pos < len(p) and p[self.pos] == "?":
            mode = QuantifierMode.LAZY
            self.pos += 1
        elif self.pos < len(p) and p[self.pos] == "+":
            mode = QuantifierMode.POSSESSIVE
            self.pos += 1

        child = sequence.pop()
        node = self._add(
            NodeKind.QUANTIFIER,
            self._nodes[child].start,
            self.pos,
            (child,),
            quant_min=low,
            quant_max=high,
            quant_mode=mode,
        )
        sequence.append(node)
        frame.last_was_quantifier = True

    # -------------------------------------------------------------------------
    # Escapes
    # -------------------------------------------------------------------------

    def _parse_escape(self, flags: frozenset[str]) -> list[int]:
        p = self.pattern
        start = self.pos
        if start + 1 >= len(p):
            raise self._error("trailing backslash", start, "escape it as '\\\\'")
        char = p[start + 1]
        self.pos = start + 2

        if char in SHORTHAND_CLASSES:
            chars = SHORTHAND_CLASSES[char]
            return [self._add(NodeKind.CHAR_CLASS, start, self.pos, chars=chars, value="\\" + char)]
        if char in "bBAZzG":
            return [self._add(NodeKind.ANCHOR, start, self.pos, value="\\" + char)]
        if char in CONTROL_ESCAPES:
            return [self._literal(start, self.pos, CONTROL_ESCAPES[char], flags)]
        if char in "pP":
            chars = self._read_property(start, negated=char == "P")
            return [
                self._add(
                    NodeKind.CHAR_CLASS, start, self.pos,
                    chars=chars, value=p[start:self.pos], unicode_property=True,
                )
            ]
        if char in "xuU":
            return [self._literal(start, self.pos, self._read_hex(start, char), flags)]
        if char == "0":
            return [self._literal(start, self.pos, self._read_octal(start, "0"), flags)]
        if char.isdigit():
            return [self._numbered_escape(start, char, flags)]
        if char == "k":
            return [self._named_reference(start)]
        if char == "g":
            return [self._g_reference(start)]
        if char == "Q":
            close = p.find("\\E", self.pos)
            end = len(p) if close == -1 else close
            nodes = [self._literal(i, i + 1, p[i], flags) for i in range(self.pos, end)]
            self.pos = end if close == -1 else close + 2
            return nodes
        if char.isalnum() or char == "_":
            raise self._error(
                f"unknown escape \\{char}",
                start,
                f"remove the backslash or write '\\\\{char}' for a literal backslash",
            )
        return [self._literal(start, self.pos, char, flags)]

    def _numbered_escape(self, start: int, first: str, flags: frozenset[str]) -> int:
        p = self.pattern
        digits = first
        while len(digits) < 3 and self.pos < len(p) and p[self.pos].isdigit():
            digits += p[self.pos]
            self.pos += 1
        if len(digits) == 3 and set(digits) <= _OCTAL:
            return self._literal(start, self.pos, self._octal_char(digits, start), flags)
        if len(digits) == 3:
            self.pos -= 1
            digits = digits[:2]
        self._references.append((digits, start))
        return self._add(NodeKind.BACKREFERENCE, start, self.pos, value=digits)

    def _named_reference(self, start: int) -> int:
        p = self.pattern
        if self.pos >= len(p) or p[self.pos] not in "<'{":
            raise self._error("incomplete \\k escape", start, "use \\k<name>")
        terminator = {"<": ">", "'": "'", "{": "}"}[p[self.pos]]
        self.pos += 1
        name = self._read_name(terminator)
        self._references.append((name, start))
        return self._add(NodeKind.BACKREFERENCE, start, self.pos, value=name)

    def _g_reference(self, start: int) -> int:
        p = self.pattern
        if self.pos < len(p) and p[self.pos] in "<'":
            terminator = ">" if p[self.pos] == "<" else "'"
            close = p.find(terminator, self.pos + 1)
            if close == -1:
                raise self._error("missing terminator in \\g", start, f"close with '{terminator}'")
            target = p[self.pos + 1:close]
            self.pos = close + 1
            if target != "0":
                self._references.append((self._absolute_reference(target, start), start))
            return self._add(NodeKind.RECURSION, start, self.pos, value=target)

        if self.pos < len(p) and p[self.pos] == "{":
            close = p.find("}", self.pos)
            if close == -1:
                raise self._error("missing } in \\g{...}", start, "close with '}'")
            target = p[self.pos + 1:close]
            self.pos = close + 1
        else:
            match = re.compile(r"-?\d+").match(p, self.pos)
            if not match:
                raise self._error("incomplete \\g escape", start, "use \\g{1} or \\g<name>")
            target = match.group()
            self.pos = match.end()

        target = self._absolute_reference(target, start)
        self._references.append((target, start))
        return self._add(NodeKind.BACKREFERENCE, start, self.pos, value=target)

    def _absolute_reference(self, target: str, start: int) -> str:
        if re.fullmatch(r"[+-]\d+", target):
            offset = int(target)
            absolute = self._group_count + offset + (1 if offset < 0 else 0)
            if absolute <= 0:
                raise self._error(
                    f"relative reference {target} points before the first group",
                    start,
                    "use an absolute group number",
                )
            return str(absolute)
        if target.isdigit() or is_group_name(target):
            return target
        raise self._error(f"bad group reference '{target}'", start, "use a group number or name")

    def _read_hex(self, start: int, kind: str) -> str:
        p = self.pattern
        if kind == "x" and self.pos < len(p) and p[self.pos] == "{":
            close = p.find("}", self.pos)
            digits = p[self.pos + 1:close] if close != -1 else ""
            end = close + 1
        else:
            width = {"x": 2, "u": 4, "U": 8}[kind]
            digits = p[self.pos:self.pos + width]
            if len(digits) != width:
                digits = ""
            end = self.pos + width
        if not digits or not set(digits) <= _HEX:
            raise self._error(
                f"incomplete escape \\{kind}",
                start,
                "use the full hex form, e.g. \\x41, \\x{263A} or \\u00e9",
            )
        codepoint = int(digits, 16)
        if codepoint > MAX_CODEPOINT:
            raise self._error(f"code point out of range \\{kind}{digits}", start, "use a value up to 10FFFF")
        self.pos = end
        return chr(codepoint)

    def _read_octal(self, start: int, digits: str) -> str:
        p = self.pattern
        while len(digits) < 3 and self.pos < len(p) and p[self.pos] in _OCTAL:
            digits += p[self.pos]
            self.pos += 1
        return self._octal_char(digits, start)

    def _octal_char(self, digits: str, start: int) -> str:
        value = int(digits, 8)
        if value > 0o377:
            raise self._error(f"octal escape value \\{digits} outside of range 0-0o377", start, "use \\x for larger values")
        return chr(value)

    def _read_property(self, start: int, negated: bool) -> CharSet:
        p = self.pattern
        if self.pos < len(p) and p[self.pos] == "{":
            close = p.find("}", self.pos)
            if close == -1:
                raise self._error("missing } in Unicode property escape", start, "use \\p{Name}")
            name = p[self.pos + 1:close]
            self.pos = close + 1
        elif self.pos < len(p) and p[self.pos].isalpha():
            name = p[self.pos]
            self.pos += 1
        else:
            raise self._error("incomplete Unicode property escape", start, "use \\p{L} or \\pL")
        if name.startswith("^"):
            negated = not negated
            name = name[1:]
        if not name:
            raise self._error("empty Unicode property name", start, "name a property, e.g. \\p{L}")
        return EVERYTHING if negated else UNICODE_PROPERTY

    # -------------------------------------------------------------------------
    # Character classes
    # -------------------------------------------------------------------------

    def _parse_class(self, flags: frozenset[str]) -> int:
        p = self.pattern
        start = self.pos
        self.pos += 1
        negated = False
        if self.pos < len(p) and p[self.pos] == "^":
            negated = True
            self.pos += 1

        items: list[CharSet] = []
        unicode_property = posix_class = False
        first = True
        while True:
            if self.pos >= len(p):
                raise self._error("unterminated character set", start, "add a closing ']'")
            char = p[self.pos]
            if char == "]" and not first:
                self.pos += 1
                break
            first = False

            if p.startswith("[:", self.pos):
                close = p.find(":]", self.pos + 2)
                if close != -1:
                    name = p[self.pos + 2:close]
                    posix_negated = name.startswith("^")
                    name = name.lstrip("^")
                    if name not in POSIX_CLASSES:
                        raise self._error(
                            f"unknown POSIX class [:{name}:]",
                            self.pos,
                            f"use one of {', '.join(sorted(POSIX_CLASSES))}",
                        )
                    chars = POSIX_CLASSES[name]
                    items.append(chars.complement() if posix_negated else chars)
                    posix_class = True
                    self.pos = close + 2
                    continue

            range_start = self.pos
            low_set, low_char, is_property = self._class_atom()
            unicode_property = unicode_property or is_property
            if (
                low_char is not None
                and self.pos + 1 < len(p)
                and p[self.pos] == "-"
                and p[self.pos + 1] != "]"
            ):
                self.pos += 1
                _, high_char, _ = self._class_atom()
                if high_char is None:
                    raise self._error("bad character range", range_start, "ranges need a single character at each end")
                if ord(high_char) < ord(low_char):
                    raise self._error(
                        f"bad character range {low_char}-{high_char}",
                        range_start,
                        f"put the lower bound first: {high_char}-{low_char}",
                    )
                items.append(CharSet.span(low_char, high_char))
            else:
                items.append(low_set)

        chars = EMPTY.union(*items)
        if "i" in flags:
            chars = chars.casefold()
        if negated:
            chars = chars.complement()
        return self._add(
            NodeKind.CHAR_CLASS,
            start,
            self.pos,
            chars=chars,
            value=p[start:self.pos],
            negated=negated,
            unicode_property=unicode_property,
            posix_class=posix_class,
        )

    def _class_atom(self) -> tuple[CharSet, str | None, bool]:
        """Read one class member: (set, single char or None, is Unicode property)."""
        p = self.pattern
        start = self.pos
        char = p[start]
        if char != "\\":
            self.pos += 1
            return CharSet.of(char), char, False

        if start + 1 >= len(p):
            raise self._error("unterminated character set", start, "add a closing ']'")
        esc = p[start + 1]
        self.pos = start + 2
        if esc in SHORTHAND_CLASSES:
            return SHORTHAND_CLASSES[esc], None, False
        if esc in "pP":
            return self._read_property(start, negated=esc == "P"), None, True
        if esc == "b":
            return CharSet.of("\b"), "\b", False
        if esc in CONTROL_ESCAPES:
            literal = CONTROL_ESCAPES[esc]
            return CharSet.of(literal), literal, False
        if esc in "xuU":
            literal = self._read_hex(start, esc)
            return CharSet.of(literal), literal, False
        if esc in _OCTAL:
            literal = self._read_octal(start, esc)
            return CharSet.of(literal), literal, False
        if esc.isalnum() or esc == "_":
            raise self._error(
                f"unknown escape \\{esc} in character class",
                start,
                f"remove the backslash or write '\\\\{esc}'",
            )
        return CharSet.of(esc), esc, False

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    def _skip_verbose(self, char: str) -> bool:
        if char.isspace():
            self.pos += 1
            return True
        if char == "#":
            newline = self.pattern.find("\n", self.pos)
            self.pos = len(self.pattern) if newline == -1 else newline + 1
            return True
        return False

    def _check_references(self) -> None:
        for target, position in self._references:
            if target.isdigit():
                number = int(target)
                if number == 0 or number > self._group_count:
                    raise self._error(
                        f"invalid group reference {number}",
                        position,
                        f"the pattern defines {self._group_count} group(s)",
                    )
            elif target not in self._group_names:
                raise self._error(
                    f"unknown group name '{target}'",
                    position,
                    "define the named group before referencing it",
                )

    def _error(self, message: str, position: int, suggestion: str | None = None) -> ParseError:
        return ParseError(message, position=position, suggestion=suggestion, pattern=self.pattern)


# =============================================================================
# Width and character-set bookkeeping
# =============================================================================


def _measure(kind: NodeKind, kids: list[Node], attrs: dict) -> tuple[int, int | None, CharSet, CharSet]:
    """Compute (min width, max width, consumed chars, first chars) for a new node."""
    if kind in (NodeKind.LITERAL, NodeKind.CHAR_CLASS, NodeKind.ANY):
        chars = attrs["chars"]
        return 1, 1, chars, chars
    if kind in (NodeKind.EMPTY, NodeKind.ANCHOR, NodeKind.LOOKAROUND, NodeKind.FLAGS):
        return 0, 0, EMPTY, EMPTY
    if kind in (NodeKind.BACKREFERENCE, NodeKind.RECURSION):
        return 0, None, EVERYTHING, EVERYTHING
    if kind is NodeKind.GROUP:
        kid = kids[0]
        return kid.min_width, kid.max_width, kid.chars, kid.first
    if kind is NodeKind.QUANTIFIER:
        kid = kids[0]
        low, high = attrs["quant_min"], attrs["quant_max"]
        if high == 0:
            return 0, 0, EMPTY, EMPTY
        if kid.max_width == 0:
            max_width: int | None = 0
        elif high is None or kid.max_width is None:
            max_width = None
        else:
            max_width = kid.max_width * high
        return kid.min_width * low, max_width, kid.chars, kid.first
    if kind is NodeKind.CONCAT:
        first = EMPTY
        for kid in kids:
            first = first | kid.first
            if kid.min_width > 0:
                break
        max_widths = [k.max_width for k in kids]
        return (
            sum(k.min_width for k in kids),
            None if None in max_widths else sum(max_widths),
            EMPTY.union(*(k.chars for k in kids)),
            first,
        )
    # ALTERNATION and CONDITIONAL; a conditional without "else" may match empty.
    widths = [(k.min_width, k.max_width) for k in kids]
    if kind is NodeKind.CONDITIONAL and len(kids) == 1:
        widths.append((0, 0))
    max_widths = [w[1] for w in widths]
    return (
        min(w[0] for w in widths),
        None if None in max_widths else max(max_widths),
        EMPTY.union(*(k.chars for k in kids)),
        EMPTY.union(*(k.first for k in kids)),
    )


def extract(pattern: str) -> SyntaxTree:
    """Parse a pattern string into a syntax tree.

    Raises:
        ParseError: On malformed syntax, with position and suggestion
    """
    if not isinstance(pattern, str):
        raise TypeError(f"pattern must be str, not {type(pattern).__name__}")
    tree = Parser(pattern).parse()
    logger.debug("Parsed pattern of length %d into %d nodes", len(pattern), len(tree))
    return tree
