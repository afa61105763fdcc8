"""Function store and the workspace that wires the binder to both stores.

This module handles:
- Storing named functions and anonymous ``y = ...`` plots
- Submitting raw definitions: binding, auto-parameterization, rollback
- Promotion (parameter re-bound as a function) and demotion
- Rejecting definitions that would create a dependency cycle
- Evaluating and sampling stored definitions
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from typing import Any

import numpy as np

from .binder import Binder
from .collision import check_call_ambiguity
from .config import DEFAULT_INDEPENDENT_VARIABLE, SAMPLE_POINTS, SAMPLE_X_MAX, SAMPLE_X_MIN
from .dependencies import DependencyGraph, detect_function_calls
from .evaluator import evaluate, sample
from .logging_config import get_logger
from .parameter_manager import ROLE_INDEPENDENT, SOURCE_AUTO, SOURCE_USER, ParameterStore
from .symbols import SymbolTable
from .types import (
    BindError,
    BindResult,
    LHSKind,
    NameKind,
    ParsedExpression,
    ValidationError,
)

logger = get_logger("functions")


@dataclass
class FunctionDefinition:
    """A stored function or anonymous plot."""

    id: str
    name: str
    kind: str
    formal_params: tuple[str, ...]
    rhs: str
    source: str = ""
    dependencies: tuple[str, ...] = ()
    calls: tuple[str, ...] = ()
    independent_variable: str | None = None
    visible: bool = True
    created: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())

    @property
    def arity(self) -> int:
        return len(self.formal_params)

    @property
    def is_anonymous(self) -> bool:
        return self.kind == LHSKind.ANONYMOUS.value

    @property
    def variables(self) -> tuple[str, ...]:
        """Names bound by arguments: the formals, else the independent variable."""
        if self.formal_params:
            return self.formal_params
        if self.independent_variable:
            return (self.independent_variable,)
        return ()

    def signature(self) -> str:
        if self.is_anonymous:
            return "y"
        if not self.formal_params:
            return self.name
        return f"{self.name}({', '.join(self.formal_params)})"

    def to_dict(self) -> dict[str, Any]:
        result = asdict(self)
        result["formal_params"] = list(self.formal_params)
        result["dependencies"] = list(self.dependencies)
        result["calls"] = list(self.calls)
        return result


class FunctionStore:
    """Owns function definitions. Named functions have unique names."""

    def __init__(self):
        self._functions: dict[str, FunctionDefinition] = {}
        self._next_id = 1

    def __len__(self) -> int:
        return len(self._functions)

    def __iter__(self):
        return iter(list(self._functions.values()))

    def __contains__(self, name: str) -> bool:
        return self.find_by_name(name) is not None

    def new_id(self, anonymous: bool = False) -> str:
        prefix = "plot" if anonymous else "func"
        func_id = f"{prefix}-{self._next_id}"
        self._next_id += 1
        return func_id

    def add(self, definition: FunctionDefinition) -> FunctionDefinition:
        if not definition.is_anonymous and definition.name in self:
            raise ValidationError(
                f"A function named '{definition.name}' already exists.", "DUPLICATE_FUNCTION"
            )
        self._functions[definition.id] = definition
        return definition

    def get(self, func_id: str) -> FunctionDefinition | None:
        return self._functions.get(func_id)

    def find_by_name(self, name: str) -> FunctionDefinition | None:
        for definition in self._functions.values():
            if not definition.is_anonymous and definition.name == name:
                return definition
        return None

    def lookup(self, key: str) -> FunctionDefinition | None:
        """Find by name, falling back to id (anonymous plots only have ids)."""
        return self.find_by_name(key) or self.get(key)

    def remove(self, func_id: str) -> bool:
        return self._functions.pop(func_id, None) is not None

    def names(self) -> list[str]:
        return [d.name for d in self._functions.values() if not d.is_anonymous]

    def arities(self) -> dict[str, int]:
        return {d.name: d.arity for d in self._functions.values() if not d.is_anonymous}

    def function_table(self) -> dict[str, tuple[tuple[str, ...], str]]:
        """Definitions in the shape the evaluator expects."""
        return {
            d.name: (d.formal_params, d.rhs)
            for d in self._functions.values()
            if not d.is_anonymous
        }

    def clear(self) -> None:
        self._functions.clear()

    def to_dict(self) -> dict[str, Any]:
        return {"functions": [d.to_dict() for d in self._functions.values()]}

    def from_dict(self, data: dict[str, Any]) -> None:
        self.clear()
        for item in data.get("functions", []):
            item = dict(item)
            for key in ("formal_params", "dependencies", "calls"):
                item[key] = tuple(item.get(key, ()))
            definition = FunctionDefinition(**item)
            self._functions[definition.id] = definition
            suffix = definition.id.rsplit("-", 1)[-1]
            if suffix.isdigit():
                self._next_id = max(self._next_id, int(suffix) + 1)


def _error_result(error: BindError | ValidationError) -> BindResult:
    suggestions = getattr(error, "suggestions", ())
    fixes = getattr(error, "fixes", ())
    return BindResult(
        ok=False,
        error=error.message,
        code=error.code,
        suggestions=list(suggestions) if suggestions else None,
        fixes=list(fixes) if fixes else None,
    )


class Workspace:
    """Parameters, functions and their dependency graph behind one ``submit``.

    Example:
        >>> ws = Workspace()
        >>> ws.submit("f(x) = ax").created
        ['a']
        >>> ws.evaluate("f", 2)
        2.0
    """

    def __init__(
        self,
        table: SymbolTable | None = None,
        complex_mode: bool | None = None,
        binder: Binder | None = None,
    ):
        self.binder = binder or Binder(table=table, complex_mode=complex_mode)
        self.parameters = ParameterStore()
        self.functions = FunctionStore()
        self.graph = DependencyGraph()

    @property
    def complex_mode(self) -> bool:
        return self.binder.complex_mode

    def live_names(self) -> dict[str, NameKind]:
        names = {name: NameKind.PARAMETER for name in self.parameters.names()}
        names.update({name: NameKind.FUNCTION for name in self.functions.names()})
        return names

    def _replaced_name(self, text: str, live: dict[str, NameKind]) -> str | None:
        try:
            lhs = self.binder.plan(text, {}).lhs
        except BindError:
            return None
        if lhs.kind is LHSKind.ANONYMOUS:
            return None
        return lhs.name if lhs.name in live else None

    def submit(self, text: str, replace: bool = False) -> BindResult:
        """Bind ``text`` and commit it to the stores.

        Args:
            text: Raw definition, e.g. ``"k = 5"`` or ``"f(x) = sin(kx)"``
            replace: Redefine an existing name of the same kind instead of
                reporting a collision

        Returns:
            BindResult; on failure nothing is committed and any parameters
            auto-created during the call are removed again
        """
        live = self.live_names()
        arities = self.functions.arities()
        replaced = self._replaced_name(text, live) if replace else None
        if replaced is not None:
            live.pop(replaced)
            arities.pop(replaced, None)

        created: list[str] = []

        def on_missing(name: str) -> str:
            param = self.parameters.create_default(name)
            created.append(name)
            return param.id

        result = self.binder.bind(text, live, on_missing, arities)
        if isinstance(result, BindError):
            self._rollback(created)
            return _error_result(result)
        try:
            self._commit(result, text, replaced)
        except (ValidationError, BindError) as exc:
            self._rollback(created)
            logger.info("Definition rejected", extra={"input": text, "code": exc.code})
            return _error_result(exc)
        return BindResult(
            ok=True,
            kind=result.kind.value,
            name=result.name,
            rhs=result.rhs,
            formal_params=list(result.lhs.formal_params) if result.kind is LHSKind.FUNCTION else None,
            dependencies=list(result.dependencies),
            created=list(result.created),
            transition=result.transition,
            warnings=check_call_ambiguity(
                result.rhs, self.parameters.names(), self.functions.names(), self.binder.table
            )
            or None,
        )

    def _rollback(self, created: list[str]) -> None:
        for name in created:
            self.parameters.delete(name)
        if created:
            logger.debug("Rolled back auto-created parameters: %s", ", ".join(created))

    def _commit(self, parsed: ParsedExpression, text: str, replaced: str | None) -> None:
        if parsed.kind is LHSKind.PARAMETER:
            self._commit_parameter(parsed, replaced)
        else:
            self._commit_function(parsed, text, replaced)

    def _commit_parameter(self, parsed: ParsedExpression, replaced: str | None) -> None:
        name = parsed.name
        if parsed.transition == "demote" or self.functions.find_by_name(name):
            self._remove_function(name)
        if replaced is not None and self.parameters.find_by_name(name):
            existing = self.parameters.require(name)
            value = float(parsed.rhs)
            existing.min = min(existing.min, value)
            existing.max = max(existing.max, value)
            existing.value = value
            existing.source = SOURCE_USER
            return
        self.parameters.create(name, float(parsed.rhs))

    def _commit_function(self, parsed: ParsedExpression, text: str, replaced: str | None) -> None:
        anonymous = parsed.kind is LHSKind.ANONYMOUS
        arities = self.functions.arities()
        calls = tuple(
            dict.fromkeys(call.name for call in detect_function_calls(parsed.rhs, arities, self.binder.table))
        )
        func_id = self.functions.new_id(anonymous)
        node = func_id if anonymous else parsed.name
        edges = parsed.dependencies + calls
        cycle = self.graph.would_create_cycle(node, edges)
        if cycle:
            raise ValidationError(
                "Circular dependency: " + " -> ".join(cycle), "CIRCULAR_DEPENDENCY"
            )
        if not anonymous:
            self._check_users_keep_working(parsed.name, node, parsed.lhs.arity)

        if parsed.transition == "promote" or (replaced is not None and parsed.name in self.parameters):
            self.parameters.delete(parsed.name)
        if replaced is not None:
            self._remove_function(parsed.name, check_callers=False)

        formals = tuple(parsed.lhs.formal_params)
        if formals:
            variable = formals[0]
        elif anonymous or DEFAULT_INDEPENDENT_VARIABLE in parsed.dependencies:
            variable = DEFAULT_INDEPENDENT_VARIABLE
        else:
            variable = None
        if variable and variable not in formals:
            param = self.parameters.find_by_name(variable)
            if param is not None and param.source == SOURCE_AUTO:
                param.role = ROLE_INDEPENDENT

        definition = FunctionDefinition(
            id=func_id,
            name=parsed.name,
            kind=parsed.kind.value,
            formal_params=formals,
            rhs=parsed.rhs,
            source=text.strip(),
            dependencies=parsed.dependencies,
            calls=calls,
            independent_variable=variable,
        )
        self.functions.add(definition)
        self.graph.add_node(node, edges)
        logger.debug("Stored %s %s", definition.kind, definition.signature())

    def _check_users_keep_working(self, name: str, node: str, arity: int) -> None:
        """Reject a redefinition of ``name`` that changes how its users call it.

        A parameter is used like a function of no arguments, so promoting it
        to ``a = ...`` is fine but ``a(t) = ...`` is not while others use it.
        """
        existing = self.functions.find_by_name(name)
        if existing is None and name not in self.parameters:
            return
        old_arity = existing.arity if existing is not None else 0
        if arity == old_arity:
            return
        users = sorted(d for d in self.graph.direct_dependents(name) if d != node)
        if not users:
            return
        if existing is None:
            raise ValidationError(
                f"Cannot turn parameter '{name}' into a function of {arity} argument(s): "
                f"used by {', '.join(users)}.",
                "IN_USE",
            )
        raise ValidationError(
            f"'{name}' takes {old_arity} argument(s) in {', '.join(users)}; "
            f"it cannot be redefined with {arity}.",
            "WRONG_ARGUMENT_COUNT",
        )

    def _remove_function(self, name: str, check_callers: bool = True) -> None:
        definition = self.functions.find_by_name(name)
        if definition is None:
            return
        callers = check_callers and [
            other.signature()
            for other in self.functions
            if name in other.calls and other.id != definition.id
        ]
        if callers:
            raise ValidationError(
                f"'{name}' is called by {', '.join(callers)}.", "IN_USE"
            )
        self.functions.remove(definition.id)
        self.graph.remove_node(name)

    def delete(self, name: str) -> bool:
        """Delete a parameter, function or plot (by name or plot id).

        Raises:
            ValidationError: IN_USE when a stored function depends on it
        """
        definition = self.functions.lookup(name)
        node = None
        if definition is not None:
            node = definition.id if definition.is_anonymous else definition.name
        elif name not in self.parameters:
            return False
        dependents = [d for d in self.graph.direct_dependents(node or name) if d != node]
        if dependents:
            raise ValidationError(
                f"Cannot delete '{name}': used by {', '.join(sorted(dependents))}.", "IN_USE"
            )
        if definition is not None:
            self.functions.remove(definition.id)
            self.graph.remove_node(node)
            return True
        return self.parameters.delete(name)

    def toggle_visibility(self, key: str) -> bool:
        """Show or hide a function or plot. Returns False when ``key`` is unknown."""
        definition = self.functions.lookup(key)
        if definition is None:
            return False
        definition.visible = not definition.visible
        return True

    def change_independent_variable(self, key: str, variable: str) -> bool:
        """Sample and evaluate ``key`` over ``variable`` instead.

        A function with formal parameters can switch between its formals;
        plots and bare functions can switch to any existing parameter.

        Returns:
            False when the definition or the variable does not exist
        """
        definition = self.functions.lookup(key)
        if definition is None:
            return False
        if definition.formal_params:
            if variable not in definition.formal_params:
                return False
        else:
            param = self.parameters.find_by_name(variable)
            if param is None:
                return False
            param.role = ROLE_INDEPENDENT
        previous = definition.independent_variable
        definition.independent_variable = variable
        if previous and previous != variable:
            self._release_independent(previous)
        logger.debug(
            "Changed independent variable",
            extra={"function": definition.id, "variable": variable, "previous": previous},
        )
        return True

    def _release_independent(self, name: str) -> None:
        param = self.parameters.find_by_name(name)
        if param is None or not param.is_independent:
            return
        still_used = any(
            d.independent_variable == name and not d.formal_params for d in self.functions
        )
        if not still_used:
            param.role = None

    def set_value(self, name: str, value: float) -> None:
        self.parameters.update_value(name, value)

    def evaluation_order(self) -> list[str]:
        return self.graph.evaluation_order()

    def _scope_for(self, definition: FunctionDefinition, args: tuple[float, ...]) -> dict[str, Any]:
        variables = definition.variables
        if args and len(args) != len(variables):
            raise ValidationError(
                f"'{definition.signature()}' expects {len(variables)} argument(s), "
                f"but got {len(args)} argument(s).",
                "WRONG_ARGUMENT_COUNT",
            )
        scope: dict[str, Any] = self.parameters.scope()
        scope.update(zip(variables, args))
        return scope

    def evaluate(self, name: str, *args: float) -> float | complex:
        """Evaluate a parameter, function or plot.

        Arguments bind the formal parameters (or the independent variable of
        an anonymous plot); without arguments their current values are used.
        """
        definition = self.functions.lookup(name)
        if definition is None:
            param = self.parameters.find_by_name(name)
            if param is None:
                raise ValidationError(f"'{name}' is not defined.", "NOT_FOUND")
            if args:
                raise ValidationError(
                    " ".join(self.binder.suggest_fixes(name, NameKind.FUNCTION)),
                    "NOT_A_FUNCTION",
                )
            return param.value
        return evaluate(
            definition.rhs,
            self._scope_for(definition, args),
            functions=self.functions.function_table(),
            table=self.binder.table,
            complex_mode=self.complex_mode,
        )

    def sample(
        self,
        name: str,
        x_min: float = SAMPLE_X_MIN,
        x_max: float = SAMPLE_X_MAX,
        points: int = SAMPLE_POINTS,
    ) -> tuple[np.ndarray, np.ndarray]:
        """Sample a function over its independent variable."""
        definition = self.functions.lookup(name)
        if definition is None:
            raise ValidationError(f"Function '{name}' is not defined.", "NOT_FOUND")
        variable = definition.independent_variable or (
            definition.variables or (DEFAULT_INDEPENDENT_VARIABLE,)
        )[0]
        return sample(
            definition.rhs,
            variable,
            self.parameters.scope(),
            x_min=x_min,
            x_max=x_max,
            points=points,
            functions=self.functions.function_table(),
            table=self.binder.table,
        )

    def to_dict(self) -> dict[str, Any]:
        return {**self.parameters.to_dict(), **self.functions.to_dict()}
