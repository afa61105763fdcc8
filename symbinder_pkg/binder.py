"""Binding orchestration: one input line to one classified definition.

The binder runs in two phases:

1. ``plan``: pure. Normalize, split on ``=``, classify and validate the
   left-hand side, check collisions, rewrite the right-hand side, check
   call arities, extract dependencies and list the names that are missing.
2. ``bind``: runs the plan, asks ``on_missing_symbol`` to create each
   missing name, re-validates and assembles a ParsedExpression.

The binder holds no state between calls. ``live_names`` and whatever the
callback mutates belong to the caller; concurrent callers must serialize
their calls to ``bind``.
"""

from __future__ import annotations

from dataclasses import dataclass
from types import MappingProxyType
from typing import Callable, Collection, Hashable, Mapping, Union

from .collision import collision_error, reserved_error
from .config import (
    COMPLEX_MODE,
    DEFAULT_INDEPENDENT_VARIABLE,
    MAX_INPUT_LENGTH,
    NUMERIC_LITERAL_RE,
)
from .dependencies import (
    FunctionCall,
    detect_function_calls,
    extract_free_symbols,
    validate_function_calls,
)
from .logging_config import get_logger
from .parser import parse_lhs, require_balanced, split_assignment
from .rewriter import FUNC, insert_implicit_multiplication, tokenize_rhs
from .symbols import DEFAULT_SYMBOL_TABLE, SymbolTable, normalize
from .types import (
    AnonymousPlotLHS,
    BindError,
    BindSyntaxError,
    EmptyExpressionError,
    FunctionLHS,
    LHSKind,
    NameKind,
    ParameterLHS,
    ParsedExpression,
    ParsedLHS,
    UnresolvedDependencyError,
)

logger = get_logger("binder")

LiveNames = Union[Collection[str], Mapping[str, NameKind]]
OnMissingSymbol = Callable[[str], Hashable]


@dataclass(frozen=True)
class BindPlan:
    """Everything ``bind`` needs before it calls out to the caller."""

    lhs: ParsedLHS
    rhs: str
    dependencies: tuple[str, ...]
    missing: tuple[str, ...]
    existing: tuple[str, ...]
    calls: tuple[FunctionCall, ...] = ()
    transition: str | None = None


def is_numeric_literal(text: str) -> bool:
    return bool(NUMERIC_LITERAL_RE.match(text.strip()))


def _live_kind(name: str, live_names: LiveNames) -> NameKind | None:
    if isinstance(live_names, Mapping):
        return live_names.get(name)
    return None


def _live_functions(live_names: LiveNames) -> set[str]:
    if not isinstance(live_names, Mapping):
        return set()
    return {name for name, kind in live_names.items() if kind == NameKind.FUNCTION}


class Binder:
    """Turns raw definitions into ParsedExpression values.

    Args:
        table: Symbol table (default: the process-wide table)
        complex_mode: Treat ``i`` as the imaginary unit
        max_input_length: Longest accepted input, in characters
    """

    def __init__(
        self,
        table: SymbolTable | None = None,
        complex_mode: bool | None = None,
        max_input_length: int = MAX_INPUT_LENGTH,
    ):
        self.table = table or DEFAULT_SYMBOL_TABLE
        self.complex_mode = COMPLEX_MODE if complex_mode is None else complex_mode
        self.max_input_length = max_input_length

    def _classify(self, lhs: ParsedLHS, rhs: str) -> ParsedLHS:
        # A bare name is a parameter only when it holds a plain number.
        if isinstance(lhs, ParameterLHS) and not is_numeric_literal(rhs):
            return FunctionLHS(lhs.symbol, ())
        return lhs

    def _check_reserved(self, lhs: ParsedLHS) -> None:
        if isinstance(lhs, AnonymousPlotLHS):
            return
        for name in (lhs.name,) + tuple(lhs.formal_params):
            error = reserved_error(name, self.table, self.complex_mode)
            if error is not None:
                raise error

    def _check_collision(self, lhs: ParsedLHS, live_names: LiveNames) -> str | None:
        """Return the promote/demote transition, or raise on a real collision."""
        if isinstance(lhs, AnonymousPlotLHS) or lhs.name not in live_names:
            return None
        kind = _live_kind(lhs.name, live_names)
        if kind == NameKind.PARAMETER and lhs.kind is LHSKind.FUNCTION:
            return "promote"
        if kind == NameKind.FUNCTION and lhs.kind is LHSKind.PARAMETER:
            return "demote"
        error = collision_error(lhs.name, live_names)
        logger.info(
            "Name collision",
            extra={"symbol": lhs.name, "conflicting_kind": kind.value if kind else None},
        )
        raise error

    def suggest_fixes(self, symbol: str, context: NameKind) -> tuple[str, ...]:
        """Human-readable ways out when ``symbol`` cannot be used as written.

        ``context`` is the kind the input expected: PARAMETER for a free
        symbol that could not be created, FUNCTION for a parameter used
        with arguments.
        """
        variable = DEFAULT_INDEPENDENT_VARIABLE
        if context == NameKind.PARAMETER:
            return (
                f"Did you mean to call '{symbol}({variable})'?",
                f"Auto-create parameter '{symbol}'.",
            )
        return (
            f"'{symbol}' is a parameter; use its value directly or call a function.",
            f"Define a function '{symbol}({variable}) = ...'.",
        )

    def plan(
        self,
        raw: str,
        live_names: LiveNames = (),
        function_arities: Mapping[str, int] | None = None,
    ) -> BindPlan:
        """Run every check and compute the names that must be auto-created.

        Args:
            raw: User input such as ``"f(x) = ax_{mode}"``
            live_names: Live parameter/function names, optionally with kinds
            function_arities: Arity of each live user function, used to keep
                their calls intact and to check argument counts

        Returns:
            BindPlan

        Raises:
            BindError: Any binding failure (syntax, multi-letter name,
                collision, empty expression)
        """
        if len(raw) > self.max_input_length:
            raise BindSyntaxError(
                f"Input is too long ({len(raw)} characters, limit {self.max_input_length}).",
                "INPUT_TOO_LONG",
            )
        text = normalize(raw, self.table).strip()
        if not text:
            raise BindSyntaxError("Input is empty.", "EMPTY_INPUT")

        lhs_text, rhs_text = split_assignment(text)
        require_balanced(lhs_text, "left-hand side")
        lhs = parse_lhs(lhs_text, self.table)
        if not rhs_text:
            raise EmptyExpressionError(f"Right-hand side of '{lhs.name}' is empty.")
        require_balanced(rhs_text, "right-hand side")

        lhs = self._classify(lhs, rhs_text)
        self._check_reserved(lhs)
        transition = self._check_collision(lhs, live_names)

        arities = dict(function_arities or {})
        function_names = set(arities) | _live_functions(live_names)
        if lhs.kind is LHSKind.FUNCTION:
            function_names.add(lhs.name)
        if lhs.kind is LHSKind.PARAMETER:
            rhs = rhs_text
        else:
            rhs = insert_implicit_multiplication(rhs_text, function_names, self.table)

        calls = tuple(detect_function_calls(rhs, arities, self.table))
        errors = validate_function_calls(call for call in calls if call.name != lhs.name)
        if errors:
            raise BindSyntaxError(" ".join(errors), "WRONG_ARGUMENT_COUNT")

        dependencies = extract_free_symbols(
            rhs, lhs.formal_params, function_names, self.table, self.complex_mode
        )
        if lhs.kind is not LHSKind.PARAMETER:
            called = {
                token.text
                for token in tokenize_rhs(rhs, function_names, self.table)
                if token.kind == FUNC
            }
            if lhs.name in dependencies or lhs.name in called:
                raise BindSyntaxError(
                    f"'{lhs.name}' cannot be defined in terms of itself.", "SELF_REFERENCE"
                )

        missing = tuple(name for name in dependencies if name not in live_names)
        existing = tuple(name for name in dependencies if name in live_names)
        logger.debug(
            "Planned %s %r: rhs=%r dependencies=%s missing=%s",
            lhs.kind.value,
            lhs.name,
            rhs,
            dependencies,
            missing,
        )
        return BindPlan(
            lhs=lhs,
            rhs=rhs,
            dependencies=dependencies,
            missing=missing,
            existing=existing,
            calls=calls,
            transition=transition,
        )

    def bind(
        self,
        raw: str,
        live_names: LiveNames = (),
        on_missing_symbol: OnMissingSymbol | None = None,
        function_arities: Mapping[str, int] | None = None,
    ) -> ParsedExpression | BindError:
        """Bind one input line.

        Binding failures are returned, not raised. When the result is an
        UnresolvedDependencyError, its ``created`` field lists the symbols
        the callback created before the failure; rolling them back is the
        caller's job.
        """
        try:
            plan = self.plan(raw, live_names, function_arities)
        except BindError as exc:
            logger.info("Binding rejected", extra={"input": raw, "code": exc.code})
            return exc

        created: list[str] = []
        resolved: dict[str, Hashable] = {}
        for name in plan.missing:
            if on_missing_symbol is None:
                return UnresolvedDependencyError(
                    plan.missing,
                    (),
                    reason="no auto-creation callback",
                    fixes=self.suggest_fixes(name, NameKind.PARAMETER),
                )
            try:
                symbol_id = on_missing_symbol(name)
            except Exception as exc:
                logger.warning(
                    "Auto-creation callback failed",
                    extra={"symbol": name, "error": str(exc)},
                )
                return UnresolvedDependencyError(
                    (name,),
                    tuple(created),
                    reason=str(exc),
                    fixes=self.suggest_fixes(name, NameKind.PARAMETER),
                )
            if symbol_id is None:
                return UnresolvedDependencyError(
                    (name,),
                    tuple(created),
                    reason="declined",
                    fixes=self.suggest_fixes(name, NameKind.PARAMETER),
                )
            created.append(name)
            resolved[name] = symbol_id

        unresolved = tuple(
            name
            for name in plan.dependencies
            if name not in resolved and name not in live_names
        )
        if unresolved:
            return UnresolvedDependencyError(
                unresolved,
                tuple(created),
                fixes=self.suggest_fixes(unresolved[0], NameKind.PARAMETER),
            )

        result = ParsedExpression(
            lhs=plan.lhs,
            rhs=plan.rhs,
            dependencies=plan.dependencies,
            created=tuple(created),
            existing=plan.existing,
            resolved=MappingProxyType(resolved),
            transition=plan.transition,
        )
        logger.debug("Bound %s %r", result.kind.value, result.name)
        return result


def bind(
    raw: str,
    live_names: LiveNames = (),
    on_missing_symbol: OnMissingSymbol | None = None,
    function_arities: Mapping[str, int] | None = None,
    complex_mode: bool | None = None,
    table: SymbolTable | None = None,
) -> ParsedExpression | BindError:
    """Bind ``raw`` with a one-off Binder. See Binder.bind."""
    return Binder(table=table, complex_mode=complex_mode).bind(
        raw, live_names, on_missing_symbol, function_arities
    )