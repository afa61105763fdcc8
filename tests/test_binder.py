"""Tests for the binder: classification, rewriting, dependencies and auto-creation."""

import unittest

import pytest

from symbinder_pkg.binder import Binder, bind, is_numeric_literal
from symbinder_pkg.types import (
    AnonymousPlotLHS,
    BindSyntaxError,
    EmptyExpressionError,
    FunctionLHS,
    MultiLetterNameError,
    NameCollisionError,
    NameKind,
    ParameterLHS,
    ParsedExpression,
    UnresolvedDependencyError,
)


class Recorder:
    """Auto-creation callback that records every name it is asked for."""

    def __init__(self, decline=()):
        self.calls = []
        self.decline = set(decline)

    def __call__(self, name):
        self.calls.append(name)
        if name in self.decline:
            return None
        return f"id-{name}"


class TestEndToEnd(unittest.TestCase):
    """Full bind calls against an empty workspace."""

    def test_function_with_subscripted_dependency(self):
        callback = Recorder()
        result = bind("f(x) = ax_{mode}", {}, callback)
        self.assertIsInstance(result, ParsedExpression)
        self.assertIsInstance(result.lhs, FunctionLHS)
        self.assertEqual(result.lhs.formal_params, ("x",))
        self.assertEqual(result.rhs, "a*x_{mode}")
        self.assertEqual(result.dependencies, ("a", "x_{mode}"))
        self.assertEqual(result.created, ("a", "x_{mode}"))
        self.assertEqual(callback.calls, ["a", "x_{mode}"])
        self.assertEqual(dict(result.resolved), {"a": "id-a", "x_{mode}": "id-x_{mode}"})

    def test_anonymous_plot(self):
        result = bind("y = sin(x)", {}, Recorder())
        self.assertIsInstance(result.lhs, AnonymousPlotLHS)
        self.assertIn("x", result.dependencies)
        self.assertEqual(result.created, ("x",))

    def test_anonymous_plot_with_live_variable(self):
        callback = Recorder()
        result = bind("y = x", {"x"}, callback)
        self.assertEqual(result.created, ())
        self.assertEqual(result.existing, ("x",))
        self.assertEqual(callback.calls, [])

    def test_parameter(self):
        result = bind("k = 5", {})
        self.assertIsInstance(result.lhs, ParameterLHS)
        self.assertEqual(result.rhs, "5")
        self.assertEqual(result.dependencies, ())

    def test_parameter_keeps_literal(self):
        self.assertEqual(bind("k = -2.5e3", {}).rhs, "-2.5e3")

    def test_bare_function(self):
        result = bind("g = 2a", {}, Recorder())
        self.assertIsInstance(result.lhs, FunctionLHS)
        self.assertEqual(result.lhs.arity, 0)
        self.assertEqual(result.rhs, "2*a")

    def test_builtin_call_and_implicit_product(self):
        result = bind("f(x) = sin(kx)", {}, Recorder())
        self.assertEqual(result.rhs, "sin(k*x)")
        self.assertEqual(result.dependencies, ("k",))

    def test_greek_normalized(self):
        result = bind("f(x) = \\alpha x + 2pi", {}, Recorder())
        self.assertEqual(result.rhs, "α*x + 2*π")
        self.assertEqual(result.dependencies, ("α",))

    def test_greek_name(self):
        result = bind("\\theta = 1", {})
        self.assertEqual(result.name, "θ")

    def test_to_dict(self):
        data = bind("f(x) = ax", {}, Recorder()).to_dict()
        self.assertEqual(data["kind"], "function")
        self.assertEqual(data["formal_params"], ["x"])
        self.assertEqual(data["created"], ["a"])


class TestCollisions(unittest.TestCase):
    """Collisions and the promote/demote transitions."""

    def test_collision(self):
        result = bind("k = 3", {"k"})
        self.assertIsInstance(result, NameCollisionError)
        self.assertIn("k_{1}", result.suggestions)

    def test_promote(self):
        result = bind("k = 2a", {"k": NameKind.PARAMETER}, Recorder())
        self.assertIsInstance(result, ParsedExpression)
        self.assertEqual(result.transition, "promote")

    def test_demote(self):
        result = bind("f = 3", {"f": NameKind.FUNCTION})
        self.assertIsInstance(result, ParsedExpression)
        self.assertEqual(result.transition, "demote")

    def test_same_kind_is_a_collision(self):
        result = bind("f(x) = x", {"f": NameKind.FUNCTION})
        self.assertIsInstance(result, NameCollisionError)
        self.assertEqual(result.conflicting_kind, NameKind.FUNCTION)

    def test_set_cannot_promote(self):
        self.assertIsInstance(bind("k = 2a", {"k"}, Recorder()), NameCollisionError)

    def test_reserved_constant(self):
        result = bind("e = 3", {})
        self.assertEqual(result.code, "RESERVED_NAME")
        self.assertEqual(bind("f(e) = 1", {}).code, "RESERVED_NAME")

    def test_imaginary_unit_in_complex_mode(self):
        self.assertIsInstance(bind("i = 2", {}), ParsedExpression)
        self.assertEqual(Binder(complex_mode=True).bind("i = 2").code, "RESERVED_NAME")


class TestNameValidation(unittest.TestCase):
    """Multi-letter names are rejected before bare-word substitution."""

    def test_spin(self):
        result = bind("spin = 5", {})
        self.assertIsInstance(result, MultiLetterNameError)
        self.assertEqual(result.suggestions[0], "s_{spin}")

    def test_alpha(self):
        result = bind("alpha = 1", {})
        self.assertIsInstance(result, MultiLetterNameError)
        self.assertEqual(result.suggestions, ("a_{alpha}", "α"))

    def test_index(self):
        self.assertIsInstance(bind("index = 1", {}), MultiLetterNameError)
        self.assertIsInstance(bind("index(x) = x", {}), MultiLetterNameError)
        self.assertEqual(bind("i_{index} = 1", {}).name, "i_{index}")


class TestFailures(unittest.TestCase):
    """Every failure comes back as a value."""

    def test_empty_input(self):
        self.assertEqual(bind("", {}).code, "EMPTY_INPUT")
        self.assertEqual(bind("   ", {}).code, "EMPTY_INPUT")

    def test_empty_expression(self):
        self.assertIsInstance(bind("k = ", {}), EmptyExpressionError)

    def test_missing_equals(self):
        self.assertEqual(bind("k 5", {}).code, "MISSING_EQUALS")

    def test_unbalanced(self):
        self.assertEqual(bind("f(x)) = 1", {}).code, "UNBALANCED_PARENS")
        self.assertEqual(bind("f(x) = (x + 1", {}).code, "UNBALANCED_PARENS")

    def test_too_long(self):
        result = Binder(max_input_length=10).bind("k = 12345678901")
        self.assertIsInstance(result, BindSyntaxError)
        self.assertEqual(result.code, "INPUT_TOO_LONG")

    def test_self_reference(self):
        self.assertEqual(bind("f(x) = f(x) + 1", {}).code, "SELF_REFERENCE")
        self.assertEqual(bind("g = g + 1", {}).code, "SELF_REFERENCE")
        self.assertEqual(bind("y = y + 1", {}).code, "SELF_REFERENCE")

    def test_wrong_argument_count(self):
        result = bind(
            "h(x) = g(x, 1)", {"g": NameKind.FUNCTION}, Recorder(), function_arities={"g": 1}
        )
        self.assertEqual(result.code, "WRONG_ARGUMENT_COUNT")

    def test_known_call_kept(self):
        result = bind("h(x) = g(x)k", {"g": NameKind.FUNCTION}, Recorder(), function_arities={"g": 1})
        self.assertEqual(result.rhs, "g(x)*k")
        self.assertEqual(result.dependencies, ("k",))


class TestAutoCreation(unittest.TestCase):
    """The on_missing_symbol protocol."""

    def test_without_callback(self):
        result = bind("f(x) = ab", {})
        self.assertIsInstance(result, UnresolvedDependencyError)
        self.assertEqual(result.names, ("a", "b"))
        self.assertEqual(result.created, ())

    def test_declined(self):
        callback = Recorder(decline={"b"})
        result = bind("f(x) = ab", {}, callback)
        self.assertIsInstance(result, UnresolvedDependencyError)
        self.assertEqual(result.names, ("b",))
        self.assertEqual(result.created, ("a",))

    def test_callback_raises(self):
        def explode(name):
            raise RuntimeError("store is full")

        result = bind("f(x) = a", {}, explode)
        self.assertIsInstance(result, UnresolvedDependencyError)
        self.assertIn("store is full", result.message)

    def test_existing_names_are_not_created(self):
        callback = Recorder()
        result = bind("f(x) = ab", {"a"}, callback)
        self.assertEqual(callback.calls, ["b"])
        self.assertEqual(result.existing, ("a",))
        self.assertEqual(result.created, ("b",))

    def test_unresolved_error_carries_fixes(self):
        result = bind("f(x) = ab", {}, Recorder(decline={"b"}))
        self.assertEqual(result.fixes[0], "Did you mean to call 'b(x)'?")
        self.assertIn("Auto-create parameter 'b'.", result.fixes)


class TestSuggestFixes:
    def test_parameter_context(self):
        fixes = Binder().suggest_fixes("k", NameKind.PARAMETER)
        assert fixes == ("Did you mean to call 'k(x)'?", "Auto-create parameter 'k'.")

    def test_function_context(self):
        fixes = Binder().suggest_fixes("k", NameKind.FUNCTION)
        assert len(fixes) == 2
        assert "'k' is a parameter" in fixes[0]
        assert fixes[1] == "Define a function 'k(x) = ...'."


class TestPlan:
    """Binder.plan is pure and reports what bind would create."""

    def test_missing_and_existing(self):
        plan = Binder().plan("f(x) = ab + c", {"a"})
        assert plan.rhs == "a*b + c"
        assert plan.missing == ("b", "c")
        assert plan.existing == ("a",)

    def test_plan_raises(self):
        with pytest.raises(MultiLetterNameError):
            Binder().plan("spin = 5")

    def test_repeatable(self):
        binder = Binder()
        first = binder.bind("f(x) = ax_{mode}", {}, Recorder())
        second = binder.bind("f(x) = ax_{mode}", {}, Recorder())
        assert first.rhs == second.rhs
        assert first.dependencies == second.dependencies


def test_is_numeric_literal():
    assert is_numeric_literal("5")
    assert is_numeric_literal("-2.5e3")
    assert is_numeric_literal(".5")
    assert not is_numeric_literal("2a")
    assert not is_numeric_literal("e")
