"""Type definitions, result dataclasses and binding errors."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Hashable, Mapping, Union


class LHSKind(str, Enum):
    """Shape of a classified left-hand side."""

    PARAMETER = "parameter"
    FUNCTION = "function"
    ANONYMOUS = "anonymous"


class NameKind(str, Enum):
    """Kind of a live name owned by the parameter or function store."""

    PARAMETER = "parameter"
    FUNCTION = "function"


@dataclass(frozen=True)
class SymbolName:
    """A single-letter name with optional subscript and prime marks.

    ``str()`` gives the canonical spelling used everywhere as a key,
    e.g. ``k``, ``k_{1}``, ``x_{mode}``, ``k'``.
    """

    letter: str
    subscript: str | None = None
    primes: int = 0

    def __str__(self) -> str:
        text = self.letter
        if self.subscript is not None:
            text += "_{" + self.subscript + "}"
        return text + "'" * self.primes

    @property
    def full_name(self) -> str:
        return str(self)

    def with_subscript(self, subscript: str | None) -> SymbolName:
        return SymbolName(self.letter, subscript, self.primes)

    def with_primes(self, primes: int) -> SymbolName:
        return SymbolName(self.letter, self.subscript, primes)


@dataclass(frozen=True)
class ParameterLHS:
    """``k = 5``: a named numeric parameter."""

    symbol: SymbolName

    @property
    def kind(self) -> LHSKind:
        return LHSKind.PARAMETER

    @property
    def name(self) -> str:
        return str(self.symbol)

    @property
    def arity(self) -> int:
        return 0

    @property
    def formal_params(self) -> tuple[str, ...]:
        return ()


@dataclass(frozen=True)
class FunctionLHS:
    """``f(x, t) = ...`` or a bare function ``g = 2a`` (arity 0)."""

    symbol: SymbolName
    formal_params: tuple[str, ...] = ()

    @property
    def kind(self) -> LHSKind:
        return LHSKind.FUNCTION

    @property
    def name(self) -> str:
        return str(self.symbol)

    @property
    def subscript(self) -> str | None:
        return self.symbol.subscript

    @property
    def arity(self) -> int:
        return len(self.formal_params)


@dataclass(frozen=True)
class AnonymousPlotLHS:
    """The ``y = ...`` plotting shorthand."""

    @property
    def kind(self) -> LHSKind:
        return LHSKind.ANONYMOUS

    @property
    def name(self) -> str:
        return "y"

    @property
    def arity(self) -> int:
        return 0

    @property
    def formal_params(self) -> tuple[str, ...]:
        return ()


ParsedLHS = Union[ParameterLHS, FunctionLHS, AnonymousPlotLHS]


@dataclass(frozen=True)
class CollisionSuggestion:
    """Alternatives offered for a name that is already taken."""

    conflicting_name: str
    alternatives: tuple[str, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            "conflicting_name": self.conflicting_name,
            "alternatives": list(self.alternatives),
        }


@dataclass(frozen=True)
class NameCheck:
    """Outcome of checking a candidate name against the live names."""

    ok: bool
    suggestions: tuple[str, ...] = ()
    conflicting_kind: NameKind | None = None


@dataclass(frozen=True)
class ParsedExpression:
    """A classified, dependency-resolved definition produced by the binder."""

    lhs: ParsedLHS
    rhs: str
    dependencies: tuple[str, ...] = ()
    created: tuple[str, ...] = ()
    existing: tuple[str, ...] = ()
    resolved: Mapping[str, Hashable] = field(
        default_factory=lambda: MappingProxyType({})
    )
    transition: str | None = None  # "promote" or "demote"

    @property
    def kind(self) -> LHSKind:
        return self.lhs.kind

    @property
    def name(self) -> str:
        return self.lhs.name

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        result_dict: dict[str, Any] = {
            "kind": self.lhs.kind.value,
            "name": self.lhs.name,
            "rhs": self.rhs,
            "dependencies": list(self.dependencies),
            "created": list(self.created),
        }
        if self.lhs.kind is LHSKind.FUNCTION:
            result_dict["formal_params"] = list(self.lhs.formal_params)
        if self.transition is not None:
            result_dict["transition"] = self.transition
        return result_dict


@dataclass
class BindResult:
    """Result of binding one input line, as returned by the public API."""

    ok: bool
    kind: str | None = None
    name: str | None = None
    rhs: str | None = None
    formal_params: list[str] | None = None
    dependencies: list[str] | None = None
    created: list[str] | None = None
    transition: str | None = None
    error: str | None = None
    code: str | None = None
    suggestions: list[str] | None = None
    fixes: list[str] | None = None
    warnings: list[str] | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        result_dict: dict[str, Any] = {"ok": self.ok}
        for key in (
            "kind",
            "name",
            "rhs",
            "formal_params",
            "dependencies",
            "created",
            "transition",
            "error",
            "code",
            "suggestions",
            "fixes",
            "warnings",
        ):
            value = getattr(self, key)
            if value is not None:
                result_dict[key] = value
        return result_dict

    def __repr__(self) -> str:
        """Return string representation of the result."""
        if not self.ok:
            return f"BindResult(ok=False, code={self.code!r}, error={self.error!r})"
        parts = [f"ok={self.ok}", f"kind={self.kind!r}", f"name={self.name!r}"]
        if self.rhs is not None:
            parts.append(f"rhs={self.rhs!r}")
        if self.dependencies:
            parts.append(f"dependencies={self.dependencies!r}")
        return f"BindResult({', '.join(parts)})"


class BindError(Exception):
    """Base class for every failure the binder reports."""

    default_code = "BIND_ERROR"

    def __init__(self, message: str, code: str | None = None):
        self.message = message
        self.code = code or self.default_code
        super().__init__(self.message)

    def __str__(self) -> str:
        return self.message

    @property
    def suggestions(self) -> tuple[str, ...]:
        return ()

    def to_dict(self) -> dict[str, Any]:
        result_dict: dict[str, Any] = {
            "ok": False,
            "error": self.message,
            "code": self.code,
        }
        if self.suggestions:
            result_dict["suggestions"] = list(self.suggestions)
        return result_dict


class BindSyntaxError(BindError):
    """Raised when text matches no LHS or RHS grammar production."""

    default_code = "SYNTAX_ERROR"

    def __init__(self, message: str, code: str | None = None, position: int | None = None):
        self.position = position
        super().__init__(message, code)


class MultiLetterNameError(BindError):
    """Raised when a name or formal parameter uses more than one base letter."""

    default_code = "MULTI_LETTER_NAME"

    def __init__(
        self,
        word: str,
        suggestion: str,
        alternatives: tuple[str, ...] = (),
        role: str = "name",
    ):
        self.word = word
        self.suggestion = suggestion
        self.alternatives = alternatives
        self.role = role
        message = (
            f"{role.capitalize()} '{word}' uses more than one letter. "
            f"Names are a single letter with an optional subscript; try '{suggestion}'."
        )
        super().__init__(message)

    @property
    def suggestions(self) -> tuple[str, ...]:
        return (self.suggestion,) + tuple(
            alt for alt in self.alternatives if alt != self.suggestion
        )


class NameCollisionError(BindError):
    """Raised when a name is already bound, or reserved by the symbol table."""

    default_code = "NAME_COLLISION"

    def __init__(
        self,
        collision: CollisionSuggestion,
        conflicting_kind: NameKind | None = None,
        code: str | None = None,
    ):
        self.collision = collision
        self.conflicting_kind = conflicting_kind
        name = collision.conflicting_name
        if code == "RESERVED_NAME":
            message = f"'{name}' is a reserved constant and cannot be redefined."
        elif conflicting_kind is not None:
            message = f"A {conflicting_kind.value} named '{name}' already exists."
        else:
            message = f"The name '{name}' is already in use."
        if collision.alternatives:
            message += " Try " + ", ".join(f"'{alt}'" for alt in collision.alternatives) + "."
        super().__init__(message, code)

    @property
    def suggestions(self) -> tuple[str, ...]:
        return self.collision.alternatives


class EmptyExpressionError(BindError):
    """Raised when the right-hand side is empty after normalization."""

    default_code = "EMPTY_EXPRESSION"


class UnresolvedDependencyError(BindError):
    """Raised when the auto-creation callback declines to create a symbol.

    ``created`` lists the symbols the callback did create during the same
    call, so the caller can roll them back.
    """

    default_code = "UNRESOLVED_DEPENDENCY"

    def __init__(
        self,
        names: tuple[str, ...],
        created: tuple[str, ...] = (),
        reason: str | None = None,
        fixes: tuple[str, ...] = (),
    ):
        self.names = names
        self.created = created
        self.fixes = fixes
        message = "Could not create parameter(s): " + ", ".join(names)
        if reason:
            message += f" ({reason})"
        super().__init__(message)


class CircularDependencyError(BindError):
    """Raised when committing a definition would create a dependency cycle."""

    default_code = "CIRCULAR_DEPENDENCY"

    def __init__(self, cycle: tuple[str, ...]):
        self.cycle = cycle
        super().__init__("Circular dependency: " + " -> ".join(cycle))


class ValidationError(Exception):
    """Raised when a store rejects a value (domain, unknown id, ...)."""

    def __init__(self, message: str, code: str = "VALIDATION_ERROR"):
        self.message = message
        self.code = code
        super().__init__(self.message)

    def __str__(self) -> str:
        return self.message
