"""Tests for collision detection and name suggestions."""

import unittest

from symbinder_pkg.collision import (
    check_call_ambiguity,
    check_name,
    collision_error,
    reserved_error,
    suggest_alternatives,
)
from symbinder_pkg.types import NameKind


class TestSuggestAlternatives(unittest.TestCase):
    """Suggestions follow a fixed order and never repeat the candidate."""

    def test_plain_name(self):
        self.assertEqual(
            suggest_alternatives("k", max_suggestions=4),
            ("k_{1}", "k_{2}", "k_{new}", "k'"),
        )

    def test_numeric_subscript(self):
        self.assertEqual(
            suggest_alternatives("k_{1}", max_suggestions=4),
            ("k_{2}", "k_{3}", "k_{new}", "k_{1}'"),
        )

    def test_mixed_subscript(self):
        self.assertEqual(suggest_alternatives("k_{v3}", max_suggestions=2), ("k_{v4}", "k_{v5}"))
        self.assertEqual(
            suggest_alternatives("x_{mode}", max_suggestions=2), ("x_{mode1}", "x_{mode2}")
        )

    def test_new_tag_becomes_alt(self):
        self.assertEqual(
            suggest_alternatives("k_{new}", max_suggestions=4),
            ("k_{new1}", "k_{new2}", "k_{alt}", "k_{new}'"),
        )

    def test_prime_limit(self):
        self.assertEqual(
            suggest_alternatives("k'''", max_suggestions=4),
            ("k_{1}'''", "k_{2}'''", "k_{new}'''"),
        )

    def test_limit(self):
        self.assertEqual(suggest_alternatives("k", max_suggestions=1), ("k_{1}",))

    def test_suggestions_exclude_candidate(self):
        for candidate in ["k", "k_{1}", "θ", "x_{mode}", "k'''", "k_{new}", "k_{alt}"]:
            suggestions = suggest_alternatives(candidate, max_suggestions=4)
            self.assertGreaterEqual(len(suggestions), 1)
            self.assertNotIn(candidate, suggestions)
            self.assertEqual(len(set(suggestions)), len(suggestions))


class TestCheckName:
    """Test check_name against sets and kind mappings."""

    def test_free_name(self):
        check = check_name("m", {"k"})
        assert check.ok
        assert check.suggestions == ()

    def test_taken_name_in_set(self):
        check = check_name("k", {"k"})
        assert not check.ok
        assert len(check.suggestions) >= 1
        assert "k" not in check.suggestions
        assert check.conflicting_kind is None

    def test_taken_name_in_mapping(self):
        check = check_name("k", {"k": NameKind.FUNCTION})
        assert check.conflicting_kind == NameKind.FUNCTION

    def test_collision_error(self):
        assert collision_error("m", {"k"}) is None
        error = collision_error("k", {"k": NameKind.PARAMETER})
        assert error.code == "NAME_COLLISION"
        assert "parameter named 'k'" in error.message
        assert error.suggestions[0] == "k_{1}"


class TestReservedNames(unittest.TestCase):
    def test_constants(self):
        error = reserved_error("e")
        self.assertEqual(error.code, "RESERVED_NAME")
        self.assertIn("e_{1}", error.suggestions)
        self.assertIsNotNone(reserved_error("π"))

    def test_imaginary_unit(self):
        self.assertIsNone(reserved_error("i"))
        self.assertIsNotNone(reserved_error("i", complex_mode=True))

    def test_free(self):
        self.assertIsNone(reserved_error("k"))
        self.assertIsNone(reserved_error("e_{1}"))


class TestCallAmbiguity:
    """A call argument that names both a parameter and a function is flagged."""

    def test_ambiguous_argument(self):
        warnings = check_call_ambiguity("f(g) + 1", {"g", "k"}, {"f", "g"})
        assert len(warnings) == 1
        assert "'f(g)'" in warnings[0]
        assert "f(g(x))" in warnings[0]

    def test_builtin_call(self):
        warnings = check_call_ambiguity("sin(g)", {"g"}, {"g"})
        assert len(warnings) == 1
        assert "'sin(g)'" in warnings[0]

    def test_unambiguous(self):
        assert check_call_ambiguity("f(k)", {"k"}, {"f"}) == []
        assert check_call_ambiguity("f(g(x))", {"g"}, {"f", "g"}) == []
        assert check_call_ambiguity("f(2g)", {"g"}, {"f", "g"}) == []

    def test_unclosed_call(self):
        assert check_call_ambiguity("f(g", {"g"}, {"f", "g"}) == []
