"""Numeric evaluation of bound formulas with SymPy and NumPy.

The binder never does arithmetic. This adapter takes a rewritten
right-hand side (``a*x_{mode}``, ``2*π*r``, ``sin(x)^2``), maps canonical
names to safe SymPy identifiers, and either evaluates it against a scope of
values or samples it over a range for plotting.

Failures are reported as EvaluationError, which is separate from the
binding errors in types.py.
"""

from __future__ import annotations

import re
from tokenize import TokenError
from typing import Any, Mapping, Sequence

import numpy as np
import sympy as sp
from sympy.parsing.sympy_parser import parse_expr, standard_transformations

from .config import COMPLEX_MODE, SAMPLE_POINTS, SAMPLE_X_MAX, SAMPLE_X_MIN
from .logging_config import get_logger
from .rewriter import ATOM, CLOSE, FUNC, OPEN, OTHER, tokenize_rhs
from .symbols import DEFAULT_SYMBOL_TABLE, SymbolTable

logger = get_logger("evaluator")

# name -> (formal parameters, rewritten right-hand side)
FunctionTable = Mapping[str, tuple[Sequence[str], str]]

SYMPY_FUNCTIONS = {
    "sin": sp.sin,
    "cos": sp.cos,
    "tan": sp.tan,
    "sec": sp.sec,
    "csc": sp.csc,
    "cot": sp.cot,
    "asin": sp.asin,
    "acos": sp.acos,
    "atan": sp.atan,
    "atan2": sp.atan2,
    "sinh": sp.sinh,
    "cosh": sp.cosh,
    "tanh": sp.tanh,
    "asinh": sp.asinh,
    "acosh": sp.acosh,
    "atanh": sp.atanh,
    "sqrt": sp.sqrt,
    "cbrt": sp.cbrt,
    "abs": sp.Abs,
    "sign": sp.sign,
    "floor": sp.floor,
    "ceil": sp.ceiling,
    "round": lambda value: sp.floor(value + sp.Rational(1, 2)),
    "exp": sp.exp,
    "log": sp.log,
    "ln": sp.log,
    "log10": lambda value: sp.log(value, 10),
    "log2": lambda value: sp.log(value, 2),
    "pow": sp.Pow,
    "mod": sp.Mod,
    "min": sp.Min,
    "max": sp.Max,
}

SYMPY_CONSTANTS = {"pi": sp.pi, "E": sp.E, "I": sp.I}

TRANSFORMATIONS = standard_transformations

MAX_FUNCTION_DEPTH = 32


class EvaluationError(Exception):
    """Raised when a formula cannot be evaluated (undefined symbol, division by zero, ...)."""

    def __init__(self, message: str, code: str = "EVALUATION_ERROR"):
        self.message = message
        self.code = code
        super().__init__(self.message)

    def __str__(self) -> str:
        return self.message


def safe_identifier(name: str) -> str:
    """Map a canonical name (``k_{1}``, ``θ``, ``f'``) to a Python identifier.

    ASCII letters and digits are kept; every other character is spelled as
    its code point, so distinct names never share an identifier.
    """
    parts = ["s_"]
    for char in name:
        if char.isascii() and char.isalnum():
            parts.append(char)
        else:
            parts.append(f"_u{ord(char):x}_")
    return "".join(parts)


_CODE_POINT_RE = re.compile(r"_u([0-9a-f]+)_")


def canonical_name(identifier: str) -> str:
    """Inverse of safe_identifier."""
    if identifier.startswith("s_"):
        identifier = identifier[2:]
    return _CODE_POINT_RE.sub(lambda match: chr(int(match.group(1), 16)), identifier)


class _Translator:
    """Turns rewritten formulas into SymPy expressions."""

    def __init__(
        self,
        functions: FunctionTable | None,
        table: SymbolTable,
        complex_mode: bool,
    ):
        self.functions = dict(functions or {})
        self.table = table
        self.complex_mode = complex_mode
        self.local_dict: dict[str, Any] = {**SYMPY_FUNCTIONS, **SYMPY_CONSTANTS}
        self.active: list[str] = []

    def _enter(self, name: str) -> None:
        if name in self.active:
            raise EvaluationError(
                "Circular function reference: " + " -> ".join(self.active + [name]),
                "CIRCULAR_DEPENDENCY",
            )
        if len(self.active) >= MAX_FUNCTION_DEPTH:
            raise EvaluationError("Function nesting is too deep.", "RECURSION_LIMIT")
        self.active.append(name)

    def text(self, formula: str) -> str:
        """Python source for ``formula`` with names replaced by identifiers."""
        reserved = self.table.reserved_constants(self.complex_mode)
        out: list[str] = []
        for token in tokenize_rhs(formula, self.functions.keys(), self.table):
            if token.kind == ATOM:
                name = token.text
                if name in reserved:
                    out.append(f"({self.table.constants[name].sympy_name})")
                elif name in self.functions and not self.functions[name][0]:
                    self._enter(name)
                    out.append(f"({self.text(self.functions[name][1])})")
                    self.active.pop()
                else:
                    identifier = safe_identifier(name)
                    self.local_dict[identifier] = sp.Symbol(identifier)
                    out.append(identifier)
            elif token.kind == FUNC:
                if token.text in self.functions:
                    out.append(self.user_function(token.text))
                elif token.text in SYMPY_FUNCTIONS:
                    out.append(token.text)
                else:
                    raise EvaluationError(
                        f"Function '{token.text}' has no numeric implementation.",
                        "UNKNOWN_FUNCTION",
                    )
            elif token.kind == OPEN:
                out.append("(")
            elif token.kind == CLOSE:
                out.append(")")
            elif token.kind == OTHER and token.text == "^":
                out.append("**")
            else:
                out.append(token.text)
        return "".join(out)

    def user_function(self, name: str) -> str:
        identifier = "f_" + safe_identifier(name)
        if identifier not in self.local_dict:
            params, body = self.functions[name]
            self._enter(name)
            symbols = tuple(sp.Symbol(safe_identifier(param)) for param in params)
            body_expr = self.expression(body)
            self.active.pop()
            self.local_dict[identifier] = sp.Lambda(symbols, body_expr)
        return identifier

    def expression(self, formula: str) -> sp.Basic:
        source = self.text(formula)
        try:
            result = parse_expr(
                source,
                local_dict=self.local_dict,
                transformations=TRANSFORMATIONS,
                evaluate=True,
            )
        except (SyntaxError, TokenError, TypeError, ValueError, AttributeError) as exc:
            raise EvaluationError(
                f"Failed to parse '{formula}': {exc}", "PARSE_ERROR"
            ) from exc
        if not isinstance(result, sp.Basic):
            raise EvaluationError(f"'{formula}' is not a single expression.", "NOT_A_NUMBER")
        return result


def to_sympy(
    formula: str,
    functions: FunctionTable | None = None,
    table: SymbolTable | None = None,
    complex_mode: bool | None = None,
) -> sp.Basic:
    """Parse a rewritten formula into a SymPy expression."""
    complex_mode = COMPLEX_MODE if complex_mode is None else complex_mode
    translator = _Translator(functions, table or DEFAULT_SYMBOL_TABLE, complex_mode)
    return translator.expression(formula)


def _substitutions(scope: Mapping[str, Any]) -> dict[sp.Symbol, Any]:
    return {sp.Symbol(safe_identifier(name)): value for name, value in scope.items()}


def _undefined_names(expr: sp.Basic, scope: Mapping[str, Any], exclude: Sequence[str] = ()) -> list[str]:
    known = {safe_identifier(name) for name in scope} | {safe_identifier(name) for name in exclude}
    return sorted(
        canonical_name(str(symbol)) for symbol in expr.free_symbols if str(symbol) not in known
    )


def evaluate(
    formula: str,
    scope: Mapping[str, Any],
    functions: FunctionTable | None = None,
    table: SymbolTable | None = None,
    complex_mode: bool | None = None,
) -> float | complex:
    """Evaluate ``formula`` with the values in ``scope``.

    Args:
        formula: Rewritten right-hand side, e.g. ``"a*x_{mode}"``
        scope: Canonical name to number
        functions: User functions the formula may call
        table: Symbol table for constants
        complex_mode: Allow complex results (and ``i`` as the imaginary unit)

    Returns:
        A float, or a complex number in complex mode

    Raises:
        EvaluationError: Undefined symbols, division by zero, non-real
            results outside complex mode, or unparsable text

    Examples:
        >>> evaluate("a*x_{mode}", {"a": 2, "x_{mode}": 3})
        6.0
    """
    complex_mode = COMPLEX_MODE if complex_mode is None else complex_mode
    expr = to_sympy(formula, functions, table, complex_mode)
    undefined = _undefined_names(expr, scope)
    if undefined:
        raise EvaluationError(
            f"Undefined symbol(s) in '{formula}': {', '.join(undefined)}", "UNDEFINED_SYMBOL"
        )
    value = expr.subs(_substitutions(scope)).evalf()
    if value.has(sp.zoo) or value is sp.nan or value.has(sp.oo, -sp.oo):
        raise EvaluationError(f"'{formula}' is undefined for these values.", "DIVISION_BY_ZERO")
    try:
        number = complex(value)
    except TypeError as exc:
        raise EvaluationError(f"'{formula}' did not evaluate to a number.", "NOT_A_NUMBER") from exc
    if abs(number.imag) > 1e-12:
        if complex_mode:
            return number
        raise EvaluationError(f"'{formula}' has a non-real value.", "NON_REAL_RESULT")
    return number.real


def sample(
    formula: str,
    variable: str,
    scope: Mapping[str, Any],
    x_min: float = SAMPLE_X_MIN,
    x_max: float = SAMPLE_X_MAX,
    points: int = SAMPLE_POINTS,
    functions: FunctionTable | None = None,
    table: SymbolTable | None = None,
) -> tuple[np.ndarray, np.ndarray]:
    """Sample ``formula`` over ``variable`` in ``[x_min, x_max]``.

    Values of ``variable`` in ``scope`` are ignored. Points where the
    formula is undefined or non-real come back as NaN.

    Returns:
        ``(xs, ys)`` NumPy arrays of length ``points``
    """
    if points < 2:
        raise EvaluationError("Need at least two sample points.", "INVALID_RANGE")
    if not x_min < x_max:
        raise EvaluationError(f"Empty sampling range [{x_min}, {x_max}].", "INVALID_RANGE")
    expr = to_sympy(formula, functions, table, complex_mode=False)
    fixed = {name: value for name, value in scope.items() if name != variable}
    undefined = _undefined_names(expr, fixed, exclude=(variable,))
    if undefined:
        raise EvaluationError(
            f"Undefined symbol(s) in '{formula}': {', '.join(undefined)}", "UNDEFINED_SYMBOL"
        )
    expr = expr.subs(_substitutions(fixed))
    var_sym = sp.Symbol(safe_identifier(variable))
    x_vals = np.linspace(x_min, x_max, points)

    f = sp.lambdify(var_sym, expr, "numpy")
    try:
        with np.errstate(all="ignore"):
            y_vals = np.asarray(f(x_vals), dtype=complex)
    except (ValueError, TypeError, ZeroDivisionError, OverflowError):
        # Evaluate point by point when the vectorized form fails
        values = []
        for x in x_vals:
            try:
                values.append(complex(sp.N(expr.subs(var_sym, x))))
            except (ValueError, TypeError, ZeroDivisionError, OverflowError):
                values.append(complex(np.nan))
        y_vals = np.array(values, dtype=complex)
    if y_vals.shape != x_vals.shape:
        y_vals = np.full(x_vals.shape, complex(y_vals.reshape(-1)[0]) if y_vals.size else np.nan)
    real = np.where(np.abs(y_vals.imag) > 1e-12, np.nan, y_vals.real)
    logger.debug("Sampled %r over %s in [%s, %s] (%d points)", formula, variable, x_min, x_max, points)
    return x_vals, real.astype(float)
