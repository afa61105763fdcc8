"""Free-symbol extraction, call detection and the dependency graph.

This module handles:
- Extracting the free symbols of a rewritten right-hand side
- Detecting calls of user functions and checking their argument counts
- Tracking name-to-name dependencies and computing an evaluation order
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Mapping

from .logging_config import get_logger
from .parser import split_top_level_commas
from .rewriter import ATOM, FUNC, tokenize_rhs
from .symbols import DEFAULT_SYMBOL_TABLE, SymbolTable
from .types import CircularDependencyError

logger = get_logger("dependencies")


@dataclass(frozen=True)
class FunctionCall:
    """A call of a user function found in a right-hand side."""

    name: str
    args_provided: int
    arity_expected: int | None
    position: int


def extract_free_symbols(
    rhs: str,
    bound_names: Iterable[str] = (),
    function_names: Iterable[str] = (),
    table: SymbolTable | None = None,
    complex_mode: bool = False,
) -> tuple[str, ...]:
    """Return the free symbols of ``rhs`` in first-occurrence order.

    Args:
        rhs: Right-hand side after implicit-multiplication insertion
        bound_names: Formal parameters of the definition being bound
        function_names: Live user function names; their calls are not symbols
        table: Symbol table supplying reserved constants and built-ins
        complex_mode: Whether ``i`` is the imaginary unit

    Returns:
        Tuple of canonical names such as ``("a", "x_{mode}")``

    Examples:
        >>> extract_free_symbols("a*x_{mode}", {"x"})
        ('a', 'x_{mode}')
        >>> extract_free_symbols("2*π*r", ())
        ('r',)
    """
    table = table or DEFAULT_SYMBOL_TABLE
    bound = frozenset(bound_names)
    reserved = table.reserved_constants(complex_mode)
    seen: dict[str, None] = {}
    for token in tokenize_rhs(rhs, function_names, table):
        if token.kind != ATOM:
            continue
        name = token.text
        if name in bound or name in reserved or name in seen:
            continue
        seen[name] = None
    return tuple(seen)


def _argument_count(rhs: str, start: int) -> tuple[int, int]:
    """Count top-level arguments of the call whose ``(`` is at ``start``.

    Returns ``(count, end)`` where ``end`` is the index after the matching
    ``)``; an unclosed call runs to the end of the text.
    """
    depth = 0
    for index in range(start, len(rhs)):
        char = rhs[index]
        if char in "([":
            depth += 1
        elif char in ")]":
            depth -= 1
            if depth == 0:
                inner = rhs[start + 1 : index]
                if not inner.strip():
                    return 0, index + 1
                return len(split_top_level_commas(inner)), index + 1
    inner = rhs[start + 1 :]
    return (len(split_top_level_commas(inner)) if inner.strip() else 0), len(rhs)


def detect_function_calls(
    rhs: str,
    known_functions: Mapping[str, int],
    table: SymbolTable | None = None,
) -> list[FunctionCall]:
    """Find every call of a non-built-in function in ``rhs``.

    ``known_functions`` maps user function names to their arity. Built-in
    calls (``sin(x)``) are skipped.
    """
    table = table or DEFAULT_SYMBOL_TABLE
    calls: list[FunctionCall] = []
    for token in tokenize_rhs(rhs, known_functions.keys(), table):
        if token.kind != FUNC or table.is_function(token.text):
            continue
        opening = rhs.find("(", token.position + len(token.text))
        if opening == -1:
            continue
        count, _ = _argument_count(rhs, opening)
        calls.append(
            FunctionCall(
                name=token.text,
                args_provided=count,
                arity_expected=known_functions.get(token.text),
                position=token.position,
            )
        )
    return calls


def validate_function_calls(calls: Iterable[FunctionCall]) -> list[str]:
    """Return one message per call whose argument count does not match."""
    errors: list[str] = []
    for call in calls:
        if call.arity_expected is None:
            errors.append(f"Unknown function '{call.name}' (not defined).")
            continue
        if call.args_provided != call.arity_expected:
            errors.append(
                f"Function '{call.name}' expects {call.arity_expected} argument(s), "
                f"but got {call.args_provided} argument(s)."
            )
    return errors


class DependencyGraph:
    """Name-keyed graph of definitions and the names they depend on.

    Edges to names that are not nodes (plain parameters, for example) are
    kept but ignored when ordering.
    """

    def __init__(self):
        self._dependencies: dict[str, tuple[str, ...]] = {}

    def __contains__(self, name: str) -> bool:
        return name in self._dependencies

    def __len__(self) -> int:
        return len(self._dependencies)

    def add_node(self, name: str, dependencies: Iterable[str] = ()) -> None:
        """Add ``name`` or replace its dependency list."""
        self._dependencies[name] = tuple(dependencies)

    def remove_node(self, name: str) -> None:
        self._dependencies.pop(name, None)

    def dependencies_of(self, name: str) -> tuple[str, ...]:
        return self._dependencies.get(name, ())

    def direct_dependents(self, name: str) -> list[str]:
        return [node for node, deps in self._dependencies.items() if name in deps]

    def dependents_of(self, name: str) -> set[str]:
        """All nodes that depend on ``name``, directly or transitively."""
        result: set[str] = set()
        pending = [name]
        while pending:
            current = pending.pop()
            for node in self.direct_dependents(current):
                if node not in result:
                    result.add(node)
                    pending.append(node)
        return result

    def find_cycle(self) -> tuple[str, ...] | None:
        """Return one cycle as ``(a, b, ..., a)``, or None if the graph is acyclic."""
        visited: set[str] = set()
        path: list[str] = []
        on_path: set[str] = set()

        def visit(node: str) -> tuple[str, ...] | None:
            if node in on_path:
                return tuple(path[path.index(node) :]) + (node,)
            if node in visited or node not in self._dependencies:
                return None
            on_path.add(node)
            path.append(node)
            for dep in self._dependencies[node]:
                cycle = visit(dep)
                if cycle:
                    return cycle
            path.pop()
            on_path.discard(node)
            visited.add(node)
            return None

        for node in list(self._dependencies):
            cycle = visit(node)
            if cycle:
                return cycle
        return None

    def would_create_cycle(self, name: str, dependencies: Iterable[str]) -> tuple[str, ...] | None:
        """Check adding ``name -> dependencies`` without changing the graph."""
        previous = self._dependencies.get(name)
        self._dependencies[name] = tuple(dependencies)
        try:
            return self.find_cycle()
        finally:
            if previous is None:
                del self._dependencies[name]
            else:
                self._dependencies[name] = previous

    def evaluation_order(self) -> list[str]:
        """Topological order: every node after the nodes it depends on.

        Raises:
            CircularDependencyError: If the graph has a cycle
        """
        cycle = self.find_cycle()
        if cycle:
            logger.warning("Dependency cycle detected", extra={"cycle": " -> ".join(cycle)})
            raise CircularDependencyError(cycle)
        order: list[str] = []
        done: set[str] = set()

        def visit(node: str) -> None:
            if node in done or node not in self._dependencies:
                return
            done.add(node)
            for dep in self._dependencies[node]:
                visit(dep)
            order.append(node)

        for node in list(self._dependencies):
            visit(node)
        return order
