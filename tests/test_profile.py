"""Tests for feature profile derivation."""

import pytest

from regexscope.profile import RiskKind, derive_profile, scan_repetition
from regexscope.syntax import Pattern, extract
from regexscope.types import FeatureFlag, NamedGroupSyntax


def profile_of(pattern):
    return derive_profile(extract(pattern))


class TestFeatureFlags:
    """Tests for individual feature flags."""

    def test_plain_pattern_has_empty_profile(self):
        """Test a pattern without special constructs."""
        profile = profile_of(r"\d{4}-\d{2}-\d{2}")

        assert profile.is_empty
        assert profile.active_flags() == ()
        assert profile.nested_quantifier_depth == 1

    def test_lookahead(self):
        """Test lookahead detection."""
        profile = profile_of("foo(?=bar)")

        assert profile.has_lookahead
        assert not profile.has_lookbehind

    def test_fixed_lookbehind(self):
        """Test fixed-width lookbehind is not variable-length."""
        profile = profile_of("(?<=ab)c")

        assert profile.has_lookbehind
        assert not profile.lookbehind_is_variable_length

    @pytest.mark.parametrize("pattern", ["(?<=a+)b", "(?<=a{2,3})b", "(?<!x*)y"])
    def test_variable_lookbehind(self, pattern):
        """Test unbounded or ranged lookbehind bodies."""
        assert profile_of(pattern).lookbehind_is_variable_length

    def test_backreference(self):
        """Test backreference detection."""
        profile = profile_of(r"(\w+)\s+\1")

        assert profile.has_backreference
        assert not profile.has_backreference_in_lookaround

    def test_backreference_in_lookaround(self):
        """Test a backreference nested inside a lookaround."""
        profile = profile_of(r"(a)(?=\1)")

        assert profile.has_backreference_in_lookaround

    def test_named_group_syntaxes_collected(self):
        """Test every named-group spelling used is recorded."""
        profile = profile_of(r"(?P<a>x)(?<b>y)")

        assert profile.has_named_groups
        assert profile.named_group_syntaxes == frozenset(
            {NamedGroupSyntax.PYTHON, NamedGroupSyntax.ANGLE}
        )

    def test_atomic_and_possessive(self):
        """Test backtracking-control constructs."""
        assert profile_of("(?>ab)c").has_atomic_group
        assert profile_of("a*+b").has_possessive_quantifier

    def test_conditional_and_recursion(self):
        """Test conditional and recursion flags."""
        assert profile_of("(a)?(?(1)b|c)").has_conditional
        assert profile_of(r"\((?:[^()]|(?R))*\)").has_recursion

    def test_unicode_property_and_posix(self):
        """Test property escapes and POSIX classes."""
        assert profile_of(r"\p{L}+").has_unicode_property
        assert profile_of("[[:digit:]]+").has_posix_class

    def test_inline_flags(self):
        """Test global and scoped inline flags."""
        assert profile_of("(?i)abc").has_inline_flags
        assert profile_of("(?i:abc)d").has_inline_flags
        assert not profile_of("(?:abc)d").has_inline_flags

    def test_lookahead_nested_quantifier(self):
        """Test nested repetition inside lookahead."""
        assert profile_of("(?=(a+)+)").lookahead_has_nested_quantifier
        assert not profile_of("(?=a+)").lookahead_has_nested_quantifier

    def test_active_flags_order(self):
        """Test active flags follow the fixed check order."""
        profile = profile_of(r"(?<name>a)(?<=b+)\1")
        flags = profile.active_flags()

        assert flags[0] is FeatureFlag.LOOKBEHIND_VARIABLE_LENGTH
        assert flags.index(FeatureFlag.NAMED_GROUP_SYNTAX) < flags.index(FeatureFlag.BACKREFERENCE)

    def test_to_dict(self):
        """Test serialization."""
        data = profile_of(r"(?P<x>a)+").to_dict()

        assert data["has_named_groups"] is True
        assert data["named_group_syntaxes"] == ["(?P<name>...)"]
        assert "named_group_syntax" in data["active_flags"]


class TestRepetition:
    """Tests for nested quantifier depth and overlapping alternation."""

    @pytest.mark.parametrize(
        "pattern,depth",
        [
            ("abc", 0),
            ("a+", 1),
            ("[a-z]+[0-9]+", 1),
            ("(a+)+", 2),
            ("(a*)*b", 2),
            ("((a+)+)+", 3),
            ("(?:[a-z]+[0-9])+", 1),
            ("([a-z]+[0-9]+)*", 1),
            ("(a+b)+", 1),
            (r"(\d+-)+x", 1),
            (r"(\w+\s?)*", 2),
            ("(a+b?)+", 2),
            ("(a+|b)+", 2),
        ],
    )
    def test_nested_quantifier_depth(self, pattern, depth):
        """Test depth grows only when an inner run can continue into what follows it."""
        assert profile_of(pattern).nested_quantifier_depth == depth

    def test_sibling_quantifiers_do_not_nest(self):
        """Test quantifiers side by side each stay at depth 1."""
        assert profile_of("a+b+c*").nested_quantifier_depth == 1
        assert profile_of("(a+)(b+)").nested_quantifier_depth == 1

    def test_bounded_inner_quantifier_is_not_repeating(self):
        """Test a{1} or a? inside repetition does not add depth."""
        assert profile_of("(a?)+").nested_quantifier_depth == 1
        assert profile_of("(ab{1})+").nested_quantifier_depth == 1

    def test_atomic_group_is_barrier(self):
        """Test atomic groups stop the nesting chain."""
        assert profile_of("(?>a+)+").nested_quantifier_depth == 1

    def test_possessive_is_barrier(self):
        """Test possessive quantifiers stop the nesting chain."""
        assert profile_of("(a++)+").nested_quantifier_depth == 1

    @pytest.mark.parametrize("pattern", ["(a|ab)*", "(a|a)+", r"(\w|\d)+", "(a|)*c", "(?:foo|foobar)+"])
    def test_overlapping_alternation(self, pattern):
        """Test alternatives that can match the same input under repetition."""
        assert profile_of(pattern).has_overlapping_alternation

    @pytest.mark.parametrize("pattern", ["(a|b)*", "(foo|bar)+", "a|ab", r"(\d|[a-z])+"])
    def test_disjoint_alternation(self, pattern):
        """Test alternatives that cannot overlap, or are not repeated."""
        assert not profile_of(pattern).has_overlapping_alternation

    def test_sites_point_at_quantifiers(self):
        """Test risk sites reference the outer and inner nodes."""
        tree = extract("(a+)+$")
        scan = scan_repetition(tree)

        assert scan.depth == 2
        (site,) = scan.sites
        assert site.kind is RiskKind.NESTED_QUANTIFIER
        assert tree.text(site.quantifier) == "(a+)+"
        assert tree.text(site.node) == "a+"


class TestDeterminism:
    """Tests for profile purity."""

    @pytest.mark.parametrize(
        "pattern",
        [r"(\w+)\s+\1", r"(?<=a+)(?P<x>b)\p{L}", "((a|ab)+)+c", r"\d{4}-\d{2}-\d{2}"],
    )
    def test_profile_is_deterministic(self, pattern):
        """Test recomputing a profile yields identical results."""
        tree = extract(pattern)

        assert derive_profile(tree) == derive_profile(tree)
        assert derive_profile(tree) == derive_profile(extract(pattern))

    def test_pattern_profile_matches_derivation(self):
        """Test the cached Pattern profile equals a fresh derivation."""
        pattern = Pattern.parse("(a+)+$")

        assert pattern.profile == derive_profile(pattern.tree)
