"""Implicit-multiplication insertion for right-hand sides.

Juxtaposition is ambiguous: ``2x`` means ``2*x`` but ``sin(x)`` is a call,
not ``s*i*n*(x)``. The rewrite runs in two steps:

1. every ``(`` is inspected and the name directly before it is protected
   when it is a known function (built-in, or one the caller passes in)
2. the text is tokenized into numbers, atoms (a letter with its optional
   ``_{...}`` subscript and primes), function names, brackets and
   everything else, and ``*`` is inserted between juxtaposed operands

Subscript groups are copied verbatim; ``*`` goes around a subscripted atom,
never inside its braces. Explicit operators are token boundaries, so the
rewrite never duplicates an existing ``*``.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable

from .symbols import DEFAULT_SYMBOL_TABLE, SymbolTable, is_letter

NUMBER = "NUMBER"
ATOM = "ATOM"
FUNC = "FUNC"
OPEN = "OPEN"
CLOSE = "CLOSE"
SPACE = "SPACE"
OTHER = "OTHER"

# left/right token kinds that multiply when juxtaposed
_MULTIPLY_AFTER = {NUMBER, ATOM, CLOSE}
_MULTIPLY_BEFORE = {NUMBER, ATOM, FUNC, OPEN}


@dataclass(frozen=True)
class RhsToken:
    kind: str
    text: str
    position: int


def _is_digit(char: str) -> bool:
    return "0" <= char <= "9"


def _is_name_char(char: str) -> bool:
    return is_letter(char) or _is_digit(char)


def _name_start_before(rhs: str, end: int, known: frozenset) -> int | None:
    """Start index of the known function name ending at ``end``, or None.

    Plain names must match the whole letter run before ``(`` exactly
    (``sin``, ``log10``; ``ksin`` is not protected). Leading digits belong
    to a number, so ``2sin`` protects ``sin``. Subscripted and primed user
    functions (``g_{1}``, ``f'``) are matched as one name.
    """
    stop = end
    while stop > 0 and rhs[stop - 1] == "'":
        stop -= 1
    if stop > 0 and rhs[stop - 1] == "}":
        opening = rhs.rfind("_{", 0, stop)
        if opening < 1 or "}" in rhs[opening + 2 : stop - 1]:
            return None
        start = opening - 1
        if is_letter(rhs[start]) and rhs[start:end] in known:
            return start
        return None
    if stop != end:
        start = stop - 1
        if start >= 0 and is_letter(rhs[start]) and rhs[start:end] in known:
            return start
        return None
    start = end
    while start > 0 and _is_name_char(rhs[start - 1]):
        start -= 1
    while start < end and _is_digit(rhs[start]):
        start += 1
    if start < end and rhs[start:end] in known:
        return start
    return None


def protected_spans(
    rhs: str,
    function_names: Iterable[str] = (),
    table: SymbolTable | None = None,
) -> list[tuple[int, int]]:
    """Return ``(start, end)`` spans of function names used in call position."""
    table = table or DEFAULT_SYMBOL_TABLE
    known = frozenset(table.functions) | frozenset(function_names)
    spans: list[tuple[int, int]] = []
    for index, char in enumerate(rhs):
        if char != "(":
            continue
        end = index
        while end > 0 and rhs[end - 1] in " \t":
            end -= 1
        start = _name_start_before(rhs, end, known)
        if start is not None:
            spans.append((start, end))
    return spans


def tokenize_rhs(
    rhs: str,
    function_names: Iterable[str] = (),
    table: SymbolTable | None = None,
) -> list[RhsToken]:
    """Split a right-hand side into rewrite tokens. Total: never raises."""
    starts = {start: end for start, end in protected_spans(rhs, function_names, table)}
    tokens: list[RhsToken] = []
    index = 0
    length = len(rhs)
    while index < length:
        char = rhs[index]
        if index in starts:
            end = starts[index]
            tokens.append(RhsToken(FUNC, rhs[index:end], index))
            index = end
        elif char.isspace():
            end = index
            while end < length and rhs[end].isspace():
                end += 1
            tokens.append(RhsToken(SPACE, rhs[index:end], index))
            index = end
        elif _is_digit(char) or (char == "." and index + 1 < length and _is_digit(rhs[index + 1])):
            end = index
            seen_dot = False
            while end < length and (_is_digit(rhs[end]) or (rhs[end] == "." and not seen_dot)):
                seen_dot = seen_dot or rhs[end] == "."
                end += 1
            tokens.append(RhsToken(NUMBER, rhs[index:end], index))
            index = end
        elif is_letter(char):
            end = index + 1
            if rhs.startswith("_{", end):
                close = rhs.find("}", end + 2)
                if close == -1:
                    # Unterminated subscript: keep the rest verbatim.
                    tokens.append(RhsToken(ATOM, char, index))
                    tokens.append(RhsToken(OTHER, rhs[end:], end))
                    break
                end = close + 1
            while end < length and rhs[end] == "'":
                end += 1
            tokens.append(RhsToken(ATOM, rhs[index:end], index))
            index = end
        elif char in "([":
            tokens.append(RhsToken(OPEN, char, index))
            index += 1
        elif char in ")]":
            tokens.append(RhsToken(CLOSE, char, index))
            index += 1
        else:
            tokens.append(RhsToken(OTHER, char, index))
            index += 1
    return tokens


def _needs_multiplication(left: RhsToken, right: RhsToken) -> bool:
    if left.kind == FUNC:
        return False
    return left.kind in _MULTIPLY_AFTER and right.kind in _MULTIPLY_BEFORE


def insert_implicit_multiplication(
    rhs: str,
    function_names: Iterable[str] = (),
    table: SymbolTable | None = None,
) -> str:
    """Make juxtaposed products explicit.

    Args:
        rhs: Normalized right-hand side
        function_names: Extra callable names (live user functions) whose
            calls must stay calls
        table: Symbol table providing the built-in function names

    Returns:
        The rewritten text

    Examples:
        >>> insert_implicit_multiplication("2πx")
        '2*π*x'
        >>> insert_implicit_multiplication("sin(x)")
        'sin(x)'
        >>> insert_implicit_multiplication("k_{1}k_{2}")
        'k_{1}*k_{2}'
    """
    tokens = tokenize_rhs(rhs, function_names, table)
    out: list[str] = []
    previous: RhsToken | None = None
    pending_space: RhsToken | None = None
    for token in tokens:
        if token.kind == SPACE:
            pending_space = token
            continue
        if previous is not None and _needs_multiplication(previous, token):
            out.append("*")
        elif pending_space is not None:
            out.append(pending_space.text)
        out.append(token.text)
        previous = token
        pending_space = None
    if pending_space is not None:
        out.append(pending_space.text)
    return "".join(out)
