"""Unit tests for the symbol table and normalizer."""

import json
import unittest

import pytest

from symbinder_pkg import symbols
from symbinder_pkg.symbols import (
    DEFAULT_SYMBOL_TABLE,
    SymbolTable,
    find_assignment,
    is_greek,
    is_letter,
    lhs_name_span,
    normalize,
    reserved_names,
)


class TestNormalize(unittest.TestCase):
    """Test backslash and bare-word substitution."""

    def test_backslash_alias(self):
        self.assertEqual(normalize("\\pi"), "π")
        self.assertEqual(normalize("\\alpha"), "α")
        self.assertEqual(normalize("\\Gamma"), "Γ")

    def test_bare_word(self):
        self.assertEqual(normalize("pi"), "π")
        self.assertEqual(normalize("2pi"), "2π")

    def test_backslash_consumed_before_bare_words(self):
        self.assertEqual(normalize("\\pi r"), "π r")

    def test_bare_words_need_word_boundaries(self):
        self.assertEqual(normalize("spin"), "spin")
        self.assertEqual(normalize("alphabet"), "alphabet")

    def test_two_letter_names_are_not_whitelisted(self):
        self.assertEqual(normalize("mu + nu"), "mu + nu")

    def test_subscript_contents_untouched(self):
        self.assertEqual(normalize("s_{pin} = 2pi"), "s_{pin} = 2π")
        self.assertEqual(normalize("k_{pi}"), "k_{pi}")

    def test_lhs_name_position_untouched(self):
        self.assertEqual(normalize("alpha = 1"), "alpha = 1")
        self.assertEqual(normalize("a = alpha"), "a = α")

    def test_commands(self):
        self.assertEqual(normalize("\\sin(x)"), "sin(x)")
        self.assertEqual(normalize("2\\cdot x"), "2* x")
        self.assertEqual(normalize("\\arctan(x)"), "atan(x)")

    def test_command_needs_boundary(self):
        self.assertEqual(normalize("\\left("), "\\left(")

    def test_escaped_backslash(self):
        self.assertEqual(normalize("\\\\sin(x)"), "\\\\sin(x)")
        self.assertEqual(normalize("\\\\pi"), "\\\\pi")

    def test_typographic_operators(self):
        self.assertEqual(normalize("a − b"), "a - b")
        self.assertEqual(normalize("a × b"), "a * b")

    def test_empty(self):
        self.assertEqual(normalize(""), "")

    def test_idempotent(self):
        samples = [
            "f(x) = \\alpha x + pi",
            "y = sin(theta x)",
            "k_{1} = 3",
            "\\\\pi",
            "s_{pin} = 2pi",
            "g = \\tau r^2 + \\sqrt(2)",
            "alpha = beta",
        ]
        for text in samples:
            once = normalize(text)
            self.assertEqual(normalize(once), once, text)


class TestSymbolTable:
    """Test the immutable symbol table."""

    def test_builtins(self):
        table = DEFAULT_SYMBOL_TABLE
        assert table.is_builtin("sin")
        assert table.is_builtin("π")
        assert table.is_builtin("e")
        assert not table.is_builtin("k")

    def test_imaginary_unit_only_in_complex_mode(self):
        table = DEFAULT_SYMBOL_TABLE
        assert not table.is_builtin("i")
        assert table.is_builtin("i", complex_mode=True)
        assert table.reserved_constants() == frozenset({"π", "τ", "e"})

    def test_constant_value(self):
        assert DEFAULT_SYMBOL_TABLE.constant_value("π") == pytest.approx(3.141592653589793)
        assert DEFAULT_SYMBOL_TABLE.constant_value("k") is None

    def test_tables_are_read_only(self):
        with pytest.raises(TypeError):
            DEFAULT_SYMBOL_TABLE.aliases["\\foo"] = "φ"

    def test_alias_must_target_a_letter(self):
        with pytest.raises(ValueError):
            SymbolTable(aliases={"\\foo": "ab"}, bare_words={}, constants={}, functions=frozenset())

    def test_reserved_names(self):
        names = reserved_names()
        assert "sin" in names
        assert "π" in names
        assert "i" not in names

    def test_from_json(self, tmp_path):
        path = tmp_path / "tokens.json"
        path.write_text(json.dumps({"aliases": {"\\foo": "φ"}}), encoding="utf-8")
        table = SymbolTable.from_json(str(path))
        assert table.normalize("\\foo") == "φ"
        assert table.normalize("\\alpha") == "\\alpha"
        assert table.is_function("sin")
        assert table.normalize("pi") == "π"

    @pytest.mark.parametrize(
        "data",
        [
            {"constants": {"φ": 1.618}},
            {"constants": {"φ": {"kind": "weird"}}},
            {"constants": ["φ"]},
            {"aliases": ["\\foo", "φ"]},
            {"functions": "sin"},
            ["aliases"],
        ],
    )
    def test_from_json_rejects_malformed_sections(self, tmp_path, data):
        path = tmp_path / "tokens.json"
        path.write_text(json.dumps(data), encoding="utf-8")
        with pytest.raises(ValueError):
            SymbolTable.from_json(str(path))

    def test_malformed_token_map_falls_back_to_default(self, tmp_path, monkeypatch):
        path = tmp_path / "tokens.json"
        path.write_text(json.dumps({"constants": {"φ": 1.618}}), encoding="utf-8")
        monkeypatch.setattr(symbols, "TOKEN_MAP_PATH", str(path))
        table = symbols._load_default_table()
        assert table.normalize("\\alpha") == "α"
        assert "φ" not in table.constants


class TestHelpers(unittest.TestCase):
    def test_letters(self):
        self.assertTrue(is_letter("k"))
        self.assertTrue(is_letter("α"))
        self.assertTrue(is_greek("Ω"))
        self.assertFalse(is_letter("1"))
        self.assertFalse(is_letter("_"))

    def test_find_assignment(self):
        self.assertEqual(find_assignment("k = 5"), 2)
        self.assertIsNone(find_assignment("a <= b"))
        self.assertIsNone(find_assignment("a == b"))
        self.assertIsNone(find_assignment("f(x=1)"))

    def test_lhs_name_span(self):
        self.assertEqual(lhs_name_span("alpha = 1"), (0, 5))
        self.assertEqual(lhs_name_span("  k = 1"), (2, 3))
        self.assertIsNone(lhs_name_span("alpha"))
