"""Static phase of backtracking analysis."""

from __future__ import annotations

from dataclasses import dataclass

from regexscope.profile import FeatureProfile, RiskKind, RiskSite, scan_repetition
from regexscope.syntax.nodes import GroupKind, NodeKind, Pattern

NESTED_QUANTIFIER_WEIGHT = 2
OVERLAPPING_ALTERNATION_WEIGHT = 2


def static_score(profile: FeatureProfile) -> int:
    """Risk score from the profile; 0 means the dynamic probe can be skipped."""
    score = 0
    if profile.nested_quantifier_depth >= 2:
        score += NESTED_QUANTIFIER_WEIGHT * (profile.nested_quantifier_depth - 1)
    if profile.has_overlapping_alternation:
        score += OVERLAPPING_ALTERNATION_WEIGHT
    return score


@dataclass(frozen=True)
class StaticAssessment:
    """Result of the static scan.

    Attributes:
        score: Risk score (0 = no ambiguous repetition found)
        sites: Ambiguous repetition sites, riskiest first
        constructs: Human-readable description of each site
    """

    score: int
    sites: tuple[RiskSite, ...] = ()
    constructs: tuple[str, ...] = ()

    @property
    def riskiest(self) -> RiskSite | None:
        return self.sites[0] if self.sites else None


def assess(pattern: Pattern) -> StaticAssessment:
    tree = pattern.tree
    scan = scan_repetition(tree)
    sites = sorted(
        scan.sites,
        key=lambda s: (-s.depth, s.kind is not RiskKind.NESTED_QUANTIFIER, tree[s.quantifier].start),
    )
    constructs = []
    for site in sites:
        label = "nested quantifier" if site.kind is RiskKind.NESTED_QUANTIFIER else "overlapping alternation"
        constructs.append(f"{label} {tree.text(site.quantifier)!r} at position {tree[site.quantifier].start}")
    return StaticAssessment(
        score=static_score(pattern.profile),
        sites=tuple(sites),
        constructs=tuple(constructs),
    )


def suggest_fix(pattern: Pattern, site: RiskSite | None) -> str | None:
    """Suggest a rewrite that removes the ambiguity at a risk site."""
    if site is None:
        return None
    tree = pattern.tree
    raw = pattern.raw

    if site.kind is RiskKind.OVERLAPPING_ALTERNATION:
        return (
            f"Make the alternatives in {tree.text(site.node)!r} mutually exclusive, "
            "or wrap the repeated group in an atomic group (?>...)"
        )

    inner = tree[site.node]
    target = inner
    parent = tree.parents[site.node]
    if parent is not None:
        group = tree[parent]
        if group.kind is NodeKind.GROUP and group.group_kind in (
            GroupKind.CAPTURING,
            GroupKind.NON_CAPTURING,
        ):
            target = group
    outer = tree[site.quantifier]
    rewritten = (
        raw[outer.start:target.start]
        + "(?>"
        + raw[inner.start:inner.end]
        + ")"
        + raw[target.end:outer.end]
    )
    return f"Use an atomic group or possessive quantifier: {rewritten}"
