"""Name collision detection and alternative-name suggestions."""

from __future__ import annotations

from typing import Collection, Mapping

from . import config
from .config import MAX_PRIMES, SUGGESTION_TAGS, TRAILING_DIGITS_RE
from .logging_config import get_logger
from .parser import parse_symbol_name
from .rewriter import FUNC, tokenize_rhs
from .symbols import DEFAULT_SYMBOL_TABLE, SymbolTable
from .types import CollisionSuggestion, NameCheck, NameCollisionError, NameKind, SymbolName

logger = get_logger("collision")


def _numeric_subscripts(subscript: str | None) -> tuple[str, str]:
    if subscript is None:
        return "1", "2"
    match = TRAILING_DIGITS_RE.match(subscript)
    if match:
        prefix, digits = match.group(1), int(match.group(2))
        return f"{prefix}{digits + 1}", f"{prefix}{digits + 2}"
    return f"{subscript}1", f"{subscript}2"


def suggest_alternatives(candidate: str, max_suggestions: int | None = None) -> tuple[str, ...]:
    """Propose names close to ``candidate``.

    Order: next numeric subscript, the one after it, a tag subscript
    (``new``, or ``alt`` when the name already is ``new``), then one more
    prime mark. The result never contains ``candidate`` itself.

    Examples:
        >>> suggest_alternatives("k")
        ('k_{1}', 'k_{2}', 'k_{new}', "k'")
        >>> suggest_alternatives("k_{1}")
        ('k_{2}', 'k_{3}', 'k_{new}', "k_{1}'")
    """
    symbol = parse_symbol_name(candidate)
    if symbol is None:
        options = [f"{candidate}_{{1}}", f"{candidate}_{{2}}", f"{candidate}_{{new}}", f"{candidate}'"]
    else:
        first, second = _numeric_subscripts(symbol.subscript)
        tag = SUGGESTION_TAGS[1] if symbol.subscript == SUGGESTION_TAGS[0] else SUGGESTION_TAGS[0]
        variants: list[SymbolName] = [
            symbol.with_subscript(first),
            symbol.with_subscript(second),
            symbol.with_subscript(tag),
        ]
        if symbol.primes < MAX_PRIMES:
            variants.append(symbol.with_primes(symbol.primes + 1))
        options = [str(variant) for variant in variants]

    suggestions: list[str] = []
    for option in options:
        if option != candidate and option not in suggestions:
            suggestions.append(option)
    limit = config.MAX_SUGGESTIONS if max_suggestions is None else max_suggestions
    return tuple(suggestions[:limit])


def check_name(
    candidate: str,
    live_names: Collection[str] | Mapping[str, NameKind],
    max_suggestions: int | None = None,
) -> NameCheck:
    """Check ``candidate`` against the live parameter and function names.

    Args:
        candidate: Canonical name, e.g. ``k_{1}``
        live_names: Set of names, or a mapping of name to NameKind
        max_suggestions: Cap on the number of alternatives

    Returns:
        NameCheck; on conflict ``suggestions`` is non-empty and
        ``conflicting_kind`` is set when ``live_names`` is a mapping
    """
    if candidate not in live_names:
        return NameCheck(ok=True)
    kind = live_names.get(candidate) if isinstance(live_names, Mapping) else None
    suggestions = suggest_alternatives(candidate, max_suggestions)
    logger.debug("Name %r collides (kind=%s)", candidate, kind)
    return NameCheck(ok=False, suggestions=suggestions, conflicting_kind=kind)


def collision_error(
    candidate: str,
    live_names: Collection[str] | Mapping[str, NameKind],
) -> NameCollisionError | None:
    """Return the NameCollisionError for ``candidate``, or None when it is free."""
    check = check_name(candidate, live_names)
    if check.ok:
        return None
    return NameCollisionError(
        CollisionSuggestion(candidate, check.suggestions), check.conflicting_kind
    )


def reserved_error(
    candidate: str,
    table: SymbolTable | None = None,
    complex_mode: bool = False,
) -> NameCollisionError | None:
    """Return an error when ``candidate`` is a reserved constant or built-in function."""
    table = table or DEFAULT_SYMBOL_TABLE
    if not table.is_builtin(candidate, complex_mode):
        return None
    logger.info("Rejected reserved name", extra={"symbol": candidate})
    return NameCollisionError(
        CollisionSuggestion(candidate, suggest_alternatives(candidate)),
        code="RESERVED_NAME",
    )


def _closing_paren(text: str, opening: int) -> int:
    depth = 0
    for index in range(opening, len(text)):
        if text[index] in "([":
            depth += 1
        elif text[index] in ")]":
            depth -= 1
            if depth == 0:
                return index
    return -1


def check_call_ambiguity(
    rhs: str,
    parameter_names: Collection[str],
    function_names: Collection[str],
    table: SymbolTable | None = None,
) -> list[str]:
    """Warn about calls like ``f(g)`` where ``g`` is both a parameter and a function.

    The argument is read as the parameter's value; calling the function
    needs ``f(g(x))``.

    Returns:
        One warning per ambiguous call, in order of appearance
    """
    ambiguous = set(parameter_names) & set(function_names)
    if not ambiguous:
        return []
    warnings: list[str] = []
    for token in tokenize_rhs(rhs, function_names, table):
        if token.kind != FUNC:
            continue
        opening = rhs.find("(", token.position + len(token.text))
        closing = _closing_paren(rhs, opening) if opening != -1 else -1
        if closing == -1:
            continue
        argument = rhs[opening + 1 : closing].strip()
        if argument in ambiguous:
            warnings.append(
                f"Ambiguous call '{token.text}({argument})': '{argument}' is both a "
                f"parameter and a function. The parameter value is used; write "
                f"'{token.text}({argument}(x))' to call the function."
            )
    if warnings:
        logger.info("Ambiguous function call", extra={"rhs": rhs, "count": len(warnings)})
    return warnings
