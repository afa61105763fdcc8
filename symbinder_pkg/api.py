"""Public API for symbinder - returns structured objects without side effects."""

from __future__ import annotations

from typing import Collection, Mapping

from .binder import Binder
from .collision import check_name
from .parser import parse_lhs
from .symbols import DEFAULT_SYMBOL_TABLE, normalize
from .types import (
    BindError,
    BindResult,
    LHSKind,
    NameCheck,
    NameKind,
    ParsedExpression,
    ParsedLHS,
)


def _to_result(outcome: ParsedExpression | BindError) -> BindResult:
    if isinstance(outcome, BindError):
        return BindResult(
            ok=False,
            error=outcome.message,
            code=outcome.code,
            suggestions=list(outcome.suggestions) or None,
            fixes=list(getattr(outcome, "fixes", ())) or None,
        )
    return BindResult(
        ok=True,
        kind=outcome.kind.value,
        name=outcome.name,
        rhs=outcome.rhs,
        formal_params=(
            list(outcome.lhs.formal_params) if outcome.kind is LHSKind.FUNCTION else None
        ),
        dependencies=list(outcome.dependencies),
        created=list(outcome.created),
        transition=outcome.transition,
    )


def bind_expression(
    text: str,
    live_names: Collection[str] | Mapping[str, NameKind] = (),
    function_arities: Mapping[str, int] | None = None,
    complex_mode: bool | None = None,
) -> BindResult:
    """Classify and bind one definition without touching any store.

    Every missing dependency is reported in ``created`` as if an
    auto-creation callback had accepted it.

    Args:
        text: Definition such as ``"f(x) = ax_{mode}"``
        live_names: Names that already exist (set, or mapping to NameKind)
        function_arities: Arity of each live user function
        complex_mode: Treat ``i`` as the imaginary unit

    Returns:
        BindResult with kind, name, rewritten RHS and dependencies

    Example:
        >>> from symbinder_pkg.api import bind_expression
        >>> result = bind_expression("f(x) = ax_{mode}")
        >>> print(result.rhs)
        a*x_{mode}
        >>> print(result.created)
        ['a', 'x_{mode}']
    """
    binder = Binder(complex_mode=complex_mode)
    return _to_result(binder.bind(text, live_names, lambda name: name, function_arities))


def normalize_text(text: str) -> str:
    """Replace backslash aliases and whitelisted bare words with glyphs.

    Example:
        >>> from symbinder_pkg.api import normalize_text
        >>> normalize_text("\\\\alpha + beta")
        'α + β'
    """
    return normalize(text)


def classify_lhs(text: str) -> tuple[ParsedLHS | None, str | None]:
    """Classify a left-hand side on its own.

    Returns:
        Tuple of (parsed_lhs, error_message); exactly one is None

    Example:
        >>> from symbinder_pkg.api import classify_lhs
        >>> lhs, error = classify_lhs("f(x, t)")
        >>> lhs.arity
        2
        >>> lhs, error = classify_lhs("index")
        >>> print(error)
        Name 'index' uses more than one letter. Names are a single letter with an optional subscript; try 'i_{index}'.
    """
    try:
        # Bare words are not substituted in the name position.
        return parse_lhs(DEFAULT_SYMBOL_TABLE.replace_backslash(text).strip()), None
    except BindError as exc:
        return None, exc.message


def check_name_available(
    candidate: str,
    live_names: Collection[str] | Mapping[str, NameKind],
) -> NameCheck:
    """Check whether ``candidate`` is free; suggests alternatives when it is not."""
    return check_name(candidate, live_names)
