"""Test that API functions return typed dataclasses."""

from symbinder_pkg.api import (
    bind_expression,
    check_name_available,
    classify_lhs,
    normalize_text,
)
from symbinder_pkg.types import BindResult, FunctionLHS, NameCheck, NameKind, ParameterLHS


class TestAPITypedReturns:
    """Test that all API functions return typed values."""

    def test_bind_expression_returns_bind_result(self):
        """Test that bind_expression() returns BindResult."""
        result = bind_expression("f(x) = ax_{mode}")
        assert isinstance(result, BindResult)
        assert result.ok is True
        assert result.kind == "function"
        assert result.name == "f"
        assert result.formal_params == ["x"]
        assert result.rhs == "a*x_{mode}"
        assert result.created == ["a", "x_{mode}"]

    def test_bind_expression_error_returns_bind_result(self):
        """Test that bind_expression() errors return BindResult."""
        result = bind_expression("spin = 5")
        assert isinstance(result, BindResult)
        assert result.ok is False
        assert result.code == "MULTI_LETTER_NAME"
        assert result.suggestions[0] == "s_{spin}"

    def test_bind_expression_collision(self):
        result = bind_expression("k = 1", live_names={"k"})
        assert result.ok is False
        assert result.code == "NAME_COLLISION"
        assert "k_{1}" in result.suggestions

    def test_bind_expression_parameter(self):
        result = bind_expression("k_{1} = 3")
        assert result.ok is True
        assert result.kind == "parameter"
        assert result.formal_params is None

    def test_to_dict(self):
        data = bind_expression("y = x^2").to_dict()
        assert data["ok"] is True
        assert data["kind"] == "anonymous"
        assert "error" not in data
        error = bind_expression("k = ").to_dict()
        assert error == {
            "ok": False,
            "error": "Right-hand side of 'k' is empty.",
            "code": "EMPTY_EXPRESSION",
        }

    def test_normalize_text_returns_str(self):
        """Test that normalize_text() returns the normalized string."""
        assert normalize_text("\\alpha + beta") == "α + β"

    def test_classify_lhs_returns_tuple(self):
        """Test that classify_lhs() returns (lhs, error)."""
        lhs, error = classify_lhs("f(x, t)")
        assert isinstance(lhs, FunctionLHS)
        assert lhs.arity == 2
        assert error is None

        lhs, error = classify_lhs("\\theta")
        assert isinstance(lhs, ParameterLHS)
        assert lhs.name == "θ"

        lhs, error = classify_lhs("index")
        assert lhs is None
        assert "i_{index}" in error

    def test_classify_lhs_keeps_bare_words(self):
        lhs, error = classify_lhs("alpha")
        assert lhs is None
        assert "a_{alpha}" in error

    def test_check_name_available_returns_name_check(self):
        """Test that check_name_available() returns NameCheck."""
        check = check_name_available("k", {"k": NameKind.PARAMETER})
        assert isinstance(check, NameCheck)
        assert check.ok is False
        assert check.conflicting_kind == NameKind.PARAMETER
        assert check_name_available("m", {"k": NameKind.PARAMETER}).ok is True
