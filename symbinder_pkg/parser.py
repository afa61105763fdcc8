"""Left-hand-side parsing and structural checks.

This module handles:
- Splitting a normalized line on its first top-level ``=``
- Balancing checks for parentheses, brackets and subscript braces
- Tokenizing a left-hand side
- Classifying it with a small recursive-descent parser:
  ``y`` (anonymous plot), ``Name(ArgList)`` (function), ``Name`` (parameter)

Grammar::

    LHS       := "y" | Name | Name "(" ArgList? ")"
    Name      := Letter Subscript? "'"*
    Subscript := "_{" [^}]+ "}"
    ArgList   := Name ("," Name)*
"""

from __future__ import annotations

from dataclasses import dataclass

from .config import ANONYMOUS_PLOT_NAME
from .logging_config import get_logger
from .symbols import DEFAULT_SYMBOL_TABLE, SymbolTable, find_assignment, is_letter
from .types import (
    AnonymousPlotLHS,
    BindSyntaxError,
    FunctionLHS,
    MultiLetterNameError,
    ParameterLHS,
    ParsedLHS,
    SymbolName,
)

logger = get_logger("parser")

LETTER = "LETTER"
SUBSCRIPT = "SUBSCRIPT"
PRIME = "PRIME"
LPAREN = "LPAREN"
RPAREN = "RPAREN"
COMMA = "COMMA"
OTHER = "OTHER"

_PUNCTUATION = {"(": LPAREN, ")": RPAREN, ",": COMMA, "'": PRIME}


@dataclass(frozen=True)
class Token:
    kind: str
    text: str
    position: int

    @property
    def end(self) -> int:
        if self.kind == SUBSCRIPT:
            return self.position + len(self.text) + 3  # "_{" + text + "}"
        return self.position + len(self.text)


def is_balanced(input_str: str) -> tuple[bool, int | None]:
    """Check if parentheses/brackets/braces are balanced. Returns (is_balanced, error_position)."""
    pairs = {"(": ")", "[": "]", "{": "}"}
    stack: list[tuple[str, int]] = []  # (char, position)
    for i, char in enumerate(input_str):
        if char in pairs:
            stack.append((char, i))
        elif char in pairs.values():
            if not stack:
                return False, i
            opening, pos = stack.pop()
            if pairs[opening] != char:
                return False, i
    if stack:
        return False, stack[0][1]  # Return position of first unmatched
    return True, None


def require_balanced(text: str, side: str = "expression") -> None:
    """Raise BindSyntaxError pointing at the first unbalanced bracket."""
    balanced, error_pos = is_balanced(text)
    if balanced:
        return
    start = max(0, (error_pos or 0) - 10)
    context = text[start : (error_pos or 0) + 10]
    code = "UNBALANCED_BRACES" if text[error_pos or 0] in "{}" else "UNBALANCED_PARENS"
    raise BindSyntaxError(
        f"Mismatched or unbalanced brackets in {side} at position {error_pos}: ...{context}...",
        code,
        position=error_pos,
    )


def split_assignment(text: str) -> tuple[str, str]:
    """Split ``lhs = rhs`` on the first top-level ``=``.

    Raises:
        BindSyntaxError: MISSING_EQUALS when there is no assignment,
            MULTIPLE_EQUALS when the right-hand side holds another one.
    """
    index = find_assignment(text)
    if index is None:
        raise BindSyntaxError(
            "Expected a definition of the form 'name = expression'.", "MISSING_EQUALS"
        )
    lhs, rhs = text[:index].strip(), text[index + 1 :].strip()
    if not lhs:
        raise BindSyntaxError("Missing name before '='.", "MISSING_NAME", position=index)
    if find_assignment(rhs) is not None:
        raise BindSyntaxError(
            "Expression must contain exactly one '=' sign.", "MULTIPLE_EQUALS"
        )
    return lhs, rhs


def split_top_level_commas(input_str: str) -> list[str]:
    """Split string by commas that are not inside (), [], or {}."""
    parts: list[str] = []
    current = []
    depth = 0
    for char in input_str:
        if char == "," and depth == 0:
            parts.append("".join(current).strip())
            current = []
            continue
        if char in "([{":
            depth += 1
        elif char in ")]}":
            depth = max(0, depth - 1)
        current.append(char)
    last = "".join(current).strip()
    if last or parts:
        parts.append(last)
    return parts


def tokenize_lhs(text: str) -> list[Token]:
    """Tokenize a normalized left-hand side. Whitespace is dropped."""
    tokens: list[Token] = []
    index = 0
    length = len(text)
    while index < length:
        char = text[index]
        if char.isspace():
            index += 1
        elif is_letter(char):
            tokens.append(Token(LETTER, char, index))
            index += 1
        elif char == "_":
            if index + 1 >= length or text[index + 1] != "{":
                raise BindSyntaxError(
                    "Subscripts must be written with braces, e.g. k_{1}.",
                    "INVALID_SUBSCRIPT",
                    position=index,
                )
            close = text.find("}", index + 2)
            if close == -1:
                raise BindSyntaxError(
                    "Unterminated subscript: missing '}'.",
                    "UNBALANCED_BRACES",
                    position=index,
                )
            content = text[index + 2 : close]
            if not content.strip():
                raise BindSyntaxError(
                    "Subscript cannot be empty.", "EMPTY_SUBSCRIPT", position=index
                )
            tokens.append(Token(SUBSCRIPT, content, index))
            index = close + 1
        elif char in _PUNCTUATION:
            tokens.append(Token(_PUNCTUATION[char], char, index))
            index += 1
        else:
            tokens.append(Token(OTHER, char, index))
            index += 1
    return tokens


class _LHSParser:
    """Recursive-descent matcher over LHS tokens."""

    def __init__(self, text: str, table: SymbolTable):
        self.text = text
        self.table = table
        self.tokens = tokenize_lhs(text)
        self.index = 0

    def peek(self) -> Token | None:
        if self.index < len(self.tokens):
            return self.tokens[self.index]
        return None

    def advance(self) -> Token:
        token = self.tokens[self.index]
        self.index += 1
        return token

    def expect(self, kind: str, what: str) -> Token:
        token = self.peek()
        if token is None or token.kind != kind:
            found = f"'{token.text}'" if token is not None else "end of input"
            position = token.position if token is not None else len(self.text)
            raise BindSyntaxError(
                f"Expected {what} in '{self.text}', found {found}.",
                "INVALID_LHS",
                position=position,
            )
        return self.advance()

    def parse(self) -> ParsedLHS:
        if self.text.strip() == ANONYMOUS_PLOT_NAME:
            return AnonymousPlotLHS()
        symbol = self.parse_name("name")
        token = self.peek()
        if token is None:
            return ParameterLHS(symbol)
        if token.kind == LPAREN:
            self.advance()
            formals = self.parse_arg_list()
            self.expect(RPAREN, "')'")
            self.expect_end()
            return FunctionLHS(symbol, tuple(str(formal) for formal in formals))
        self.expect_end()
        return ParameterLHS(symbol)

    def expect_end(self) -> None:
        token = self.peek()
        if token is not None:
            raise BindSyntaxError(
                f"Unexpected '{token.text}' in '{self.text}'.",
                "INVALID_LHS",
                position=token.position,
            )

    def parse_arg_list(self) -> list[SymbolName]:
        formals: list[SymbolName] = []
        token = self.peek()
        if token is not None and token.kind == RPAREN:
            return formals
        while True:
            token = self.peek()
            if token is not None and token.kind in (COMMA, RPAREN):
                raise BindSyntaxError(
                    f"Empty argument in '{self.text}'.",
                    "EMPTY_ARGUMENT",
                    position=token.position,
                )
            formals.append(self.parse_name("formal parameter"))
            token = self.peek()
            if token is None or token.kind != COMMA:
                return formals
            self.advance()

    def parse_name(self, role: str) -> SymbolName:
        first = self.expect(LETTER, f"a single-letter {role}")
        run = [first]
        while True:
            token = self.peek()
            if token is None or token.kind != LETTER or token.position != run[-1].end:
                break
            run.append(self.advance())
        if len(run) > 1:
            raise self.multi_letter(run, role)
        token = self.peek()
        if token is not None and token.kind == OTHER and token.text.isdigit() and token.position == first.end:
            end = token.position
            while end < len(self.text) and self.text[end].isdigit():
                end += 1
            digits = self.text[token.position : end]
            raise BindSyntaxError(
                f"{role.capitalize()} '{first.text}{digits}' mixes a letter and digits; "
                f"write '{first.text}_{{{digits}}}'.",
                "INVALID_NAME",
                position=first.position,
            )
        subscript = None
        if token is not None and token.kind == SUBSCRIPT:
            subscript = self.advance().text
        primes = 0
        while True:
            token = self.peek()
            if token is None or token.kind != PRIME:
                break
            self.advance()
            primes += 1
        return SymbolName(first.text, subscript, primes)

    def multi_letter(self, run: list[Token], role: str) -> MultiLetterNameError:
        word = "".join(token.text for token in run)
        suggestion = f"{word[0]}_{{{word}}}"
        alternatives = []
        glyph = self.table.glyph_for(word)
        if glyph is not None:
            alternatives.append(glyph)
        logger.info(
            "Rejected multi-letter %s",
            role,
            extra={"word": word, "suggestion": suggestion},
        )
        return MultiLetterNameError(word, suggestion, tuple(alternatives), role=role)


def parse_lhs(text: str, table: SymbolTable | None = None) -> ParsedLHS:
    """Classify a normalized left-hand side.

    Args:
        text: Normalized LHS text (e.g. ``"f(x)"``, ``"k_{1}"``, ``"y"``)
        table: Symbol table used for alias-aware suggestions

    Returns:
        ParameterLHS, FunctionLHS or AnonymousPlotLHS

    Raises:
        MultiLetterNameError: the name or a formal parameter has several letters
        BindSyntaxError: anything else that does not match the grammar,
            duplicate formal parameters, or a formal named like the function
    """
    table = table or DEFAULT_SYMBOL_TABLE
    lhs = _LHSParser(text, table).parse()
    if isinstance(lhs, FunctionLHS):
        seen: set[str] = set()
        for formal in lhs.formal_params:
            if formal in seen:
                raise BindSyntaxError(
                    f"Duplicate parameter '{formal}' in function signature.",
                    "DUPLICATE_PARAMETER",
                )
            if formal == lhs.name:
                raise BindSyntaxError(
                    f"Formal parameter '{formal}' has the same name as the function.",
                    "PARAMETER_SHADOWS_FUNCTION",
                )
            seen.add(formal)
    logger.debug("Classified LHS %r as %s", text, lhs.kind.value)
    return lhs


def parse_symbol_name(text: str) -> SymbolName | None:
    """Parse a canonical name such as ``k``, ``k_{1}`` or ``k'``; None if invalid."""
    text = text.strip()
    if not text or not is_letter(text[0]):
        return None
    letter, rest = text[0], text[1:]
    subscript = None
    if rest.startswith("_{"):
        close = rest.find("}")
        if close == -1 or close == 2:
            return None
        subscript = rest[2:close]
        rest = rest[close + 1 :]
    primes = len(rest)
    if rest != "'" * primes:
        return None
    return SymbolName(letter, subscript, primes)
