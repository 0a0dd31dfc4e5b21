"""Adversarial input construction for the dynamic probe.

An attack input is ``prefix + unit * n + terminator``: the prefix reaches
the ambiguous repetition, the unit is something its body matches, and the
terminator makes the overall match fail so the engine explores every way
of splitting the repeated run.
"""

from __future__ import annotations

from dataclasses import dataclass

from regexscope.profile import RiskSite
from regexscope.syntax.charset import CharSet
from regexscope.syntax.nodes import NodeKind, SyntaxTree

# Tried in order; the first one outside the repeated body's character set wins.
TERMINATOR_CANDIDATES = ("!", "#", "\n", "\x00", "~", "\uffff")


@dataclass(frozen=True)
class AttackInput:
    prefix: str
    unit: str
    terminator: str

    def size(self, repetitions: int) -> int:
        return len(self.prefix) + len(self.unit) * repetitions + len(self.terminator)

    def build(self, repetitions: int) -> str:
        return self.prefix + self.unit * repetitions + self.terminator


def shortest_witnesses(tree: SyntaxTree, at_least_once: bool = False) -> list[str]:
    """Shortest string each node can match, computed bottom-up over the arena.

    With ``at_least_once`` every quantifier takes at least one repetition,
    which turns empty witnesses of optional bodies into non-empty ones.
    """
    out: list[str] = []
    for node in tree.nodes:
        kind = node.kind
        if kind is NodeKind.LITERAL:
            text = node.value or ""
        elif kind in (NodeKind.CHAR_CLASS, NodeKind.ANY):
            text = node.chars.sample() or ""
        elif kind is NodeKind.GROUP:
            text = out[node.children[0]]
        elif kind is NodeKind.QUANTIFIER:
            if node.quant_max == 0:
                text = ""
            else:
                reps = max(1, node.quant_min) if at_least_once else node.quant_min
                text = out[node.children[0]] * reps
        elif kind is NodeKind.CONCAT:
            text = "".join(out[c] for c in node.children)
        elif kind is NodeKind.ALTERNATION:
            branches = [out[c] for c in node.children]
            if at_least_once:
                branches = [b for b in branches if b] or [""]
            text = min(branches, key=len)
        elif kind is NodeKind.CONDITIONAL:
            text = out[node.children[0]]
        else:
            # Zero-width assertions, flags, backreferences, recursion.
            text = ""
        out.append(text)
    return out


def _prefix(tree: SyntaxTree, index: int, witnesses: list[str]) -> str:
    """Shortest text that precedes ``index`` along its ancestor chain."""
    parts: list[str] = []
    child = index
    for ancestor in tree.ancestors(index):
        node = tree[ancestor]
        if node.kind is NodeKind.CONCAT:
            before = node.children[:node.children.index(child)]
            parts.append("".join(witnesses[c] for c in before))
        child = ancestor
    return "".join(reversed(parts))


def _terminator(avoid: CharSet, unit: str) -> str:
    for candidate in TERMINATOR_CANDIDATES:
        if candidate not in avoid and candidate not in unit:
            return candidate
    return TERMINATOR_CANDIDATES[0]


def build_attack(tree: SyntaxTree, site: RiskSite | None, seed: str | None = None) -> AttackInput:
    """Build the attack input for a risk site (or for the whole pattern).

    A caller-supplied seed replaces the derived unit; the prefix and
    terminator are still derived from the tree.
    """
    if site is None:
        repeating = [i for i in tree.walk() if tree[i].is_repeating]
        quantifier = repeating[0] if repeating else None
    else:
        quantifier = site.quantifier

    if quantifier is None:
        unit = seed or tree[tree.root].first.sample() or "a"
        return AttackInput(prefix="", unit=unit, terminator=_terminator(tree[tree.root].chars, unit))

    shortest = shortest_witnesses(tree)
    body = tree[quantifier].children[0]
    unit = seed or shortest[body] or shortest_witnesses(tree, at_least_once=True)[body] or "a"
    return AttackInput(
        prefix=_prefix(tree, quantifier, shortest),
        unit=unit,
        terminator=_terminator(tree[quantifier].chars, unit),
    )
