"""Tests for plain-language pattern breakdowns."""

import pytest
from rich.text import Text

import regexscope as rs
from regexscope.errors import ParseError
from regexscope.explain import describe_flags
from regexscope.report import ExplanationReport
from regexscope.templates import recognize_format


class TestParts:
    """Tests for the parts of an explanation."""

    def test_quantifier_folds_into_element(self):
        """Test a quantified shorthand class is one part."""
        (part,) = rs.explain(r"\d+").parts

        assert part.token == r"\d+"
        assert part.kind == "shorthand_class"
        assert part.quantifier == "+"
        assert part.description == "Digit character [0-9] (one or more)"

    def test_groups_are_numbered(self):
        """Test capturing groups carry their group number and body."""
        parts = rs.explain(r"(\d+)-(\d+)").parts

        assert [p.kind for p in parts] == ["capturing_group", "literal", "capturing_group"]
        assert [p.group for p in parts] == [1, None, 2]
        assert parts[0].children[0].token == r"\d+"

    def test_named_group(self):
        """Test named groups show their name and counted bounds."""
        (part,) = rs.explain(r"(?P<year>\d{4})").parts

        assert part.kind == "named_group"
        assert part.description == "Named capture: year"
        assert part.group == 1
        (inner,) = part.children
        assert inner.quantifier == "{4}"
        assert inner.description == "Digit character [0-9] (exactly 4)"

    def test_alternation_branches(self):
        """Test alternation becomes one part with a branch per alternative."""
        (part,) = rs.explain("cat|dog").parts

        assert part.kind == "alternation"
        assert part.description == "Match one of 2 alternatives"
        assert [b.token for b in part.children] == ["cat", "dog"]
        assert {b.kind for b in part.children} == {"branch"}
        assert len(part.children[0].children) == 3

    def test_quantified_group(self):
        """Test a quantifier on a group folds into the group part."""
        (part,) = rs.explain("(?:ab)+").parts

        assert part.kind == "non_capturing_group"
        assert part.token == "(?:ab)+"
        assert part.quantifier == "+"
        assert [c.token for c in part.children] == ["a", "b"]

    def test_lazy_quantifier(self):
        """Test lazy quantifiers keep their suffix and say so."""
        (part,) = rs.explain(".*?").parts

        assert part.kind == "any_char"
        assert part.quantifier == "*?"
        assert "zero or more (lazy)" in part.description

    def test_lookaround(self):
        """Test lookahead and lookbehind parts."""
        ahead = rs.explain("a(?!b)").parts[1]
        behind = rs.explain("(?<=x)y").parts[0]

        assert ahead.kind == "lookahead"
        assert ahead.description.startswith("Negative lookahead")
        assert behind.kind == "lookbehind"
        assert behind.description.startswith("Positive lookbehind")

    def test_backreference(self):
        """Test backreferences point at their group."""
        part = rs.explain(r"(\w)\1").parts[1]

        assert part.kind == "backreference"
        assert part.group == 1

    def test_character_classes(self):
        """Test bracket classes and Unicode properties."""
        (bracket,) = rs.explain("[^a-z]").parts
        (unicode,) = rs.explain(r"\p{L}").parts

        assert bracket.kind == "character_class"
        assert bracket.description == "Character class: matches not one of the specified characters"
        assert unicode.kind == "unicode_class"
        assert unicode.description == "Unicode property: L"

    def test_escaped_literal(self):
        """Test punctuation literals show their code point."""
        (part,) = rs.explain(r"\.").parts

        assert part.token == r"\."
        assert part.description == "Literal '.' (U+002E)"

    def test_inline_flags(self):
        """Test inline flag groups are described."""
        part = rs.explain("(?i)abc").parts[0]

        assert part.kind == "flags"
        assert part.description == "Enable case-insensitive"

    def test_describe_flags(self):
        """Test enabled and disabled flags."""
        assert describe_flags("i-m") == "Enable case-insensitive; disable multi-line mode"
        assert describe_flags("-s") == "Disable dot matches newline"

    def test_deeply_nested_pattern(self):
        """Test very deep nesting is explained without recursion."""
        pattern = "(" * 5000 + "a" + ")" * 5000

        explanation = rs.explain(pattern)
        data = explanation.to_dict()

        assert explanation.parts[0].group == 1
        assert data["parts"][0]["type"] == "capturing_group"
        assert sum(1 for _ in explanation.walk()) == 5001

    def test_invalid_pattern(self):
        """Test a malformed pattern raises ParseError."""
        with pytest.raises(ParseError):
            rs.explain("(abc")


class TestSummary:
    """Tests for the one-line summary."""

    @pytest.mark.parametrize(
        "pattern,summary",
        [
            ("", "Empty pattern"),
            (r"\d+", "Matches one or more digits"),
            (r"(\d+)-(\d+)", "Matches a captured digits, then '-', then a captured digits"),
            ("^abc$", "Matches 'abc' (full line match)"),
            ("^a", "Matches 'a' (at start of line)"),
            (r"\s?x$", "Matches an optional whitespace character, then 'x' (at end of line)"),
            ("a.*b", "Matches 'a', then any text, then 'b'"),
            (r"\b", "Matches the specified pattern"),
        ],
    )
    def test_structural_summary(self, pattern, summary):
        """Test summaries built from the parts."""
        assert rs.explain(pattern).summary == summary

    def test_known_format(self):
        """Test a known format is named, with or without anchors."""
        assert rs.explain(r"\d{1,3}\.\d{1,3}\.\d{1,3}\.\d{1,3}").summary == "Matches an IPv4 address"
        assert rs.explain(r"^\d{4}-\d{2}-\d{2}$").summary == "Matches an ISO date (YYYY-MM-DD)"

    def test_recognize_format(self):
        """Test recognition strips only outer anchors."""
        assert recognize_format(r"\A\d{2}:\d{2}\z").name == "time_short"
        assert recognize_format(r"\d{2}:\d{2}\$") is None
        assert recognize_format(r"\d+") is None


class TestExplanationOutput:
    """Tests for explanation serialization and rendering."""

    def test_to_dict(self):
        """Test nested parts serialize with their children."""
        data = rs.explain("(a(b))").to_dict()

        assert data["pattern"] == "(a(b))"
        outer = data["parts"][0]
        assert outer["type"] == "capturing_group"
        assert outer["group"] == 1
        assert outer["children"][1]["children"][0]["token"] == "b"
        assert outer["children"][1]["group"] == 2

    def test_report_rendering(self):
        """Test the console rendering lists parts and the summary."""
        text = Text.from_ansi(str(ExplanationReport(rs.explain(r"\d+")))).plain

        assert r"\d+" in text
        assert "shorthand_class" in text
        assert "Summary: Matches one or more digits" in text
