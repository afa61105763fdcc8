"""Parameter store: named numeric values with slider domains.

Parameters are created explicitly (``k = 5``) or automatically when a
function refers to a name nobody has defined yet. Auto-created parameters
get the configured defaults.
"""

from __future__ import annotations

import math
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from typing import Any

from .config import AUTO_PARAM_MAX, AUTO_PARAM_MIN, AUTO_PARAM_STEP, AUTO_PARAM_VALUE
from .logging_config import get_logger
from .types import ValidationError

logger = get_logger("parameters")

ROLE_INDEPENDENT = "independent"
SOURCE_USER = "user"
SOURCE_AUTO = "auto"


@dataclass
class Parameter:
    """A named scalar with a domain used for sliders and sampling."""

    id: str
    name: str
    value: float
    min: float = AUTO_PARAM_MIN
    max: float = AUTO_PARAM_MAX
    step: float = AUTO_PARAM_STEP
    role: str | None = None
    source: str = SOURCE_USER
    created: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())

    @property
    def is_independent(self) -> bool:
        return self.role == ROLE_INDEPENDENT

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


class ParameterStore:
    """Owns every Parameter, keyed by id, with unique names."""

    def __init__(self):
        self._parameters: dict[str, Parameter] = {}
        self._next_id = 1

    def __contains__(self, name: str) -> bool:
        return self.find_by_name(name) is not None

    def __len__(self) -> int:
        return len(self._parameters)

    def __iter__(self):
        return iter(list(self._parameters.values()))

    def _new_id(self) -> str:
        param_id = f"param-{self._next_id}"
        self._next_id += 1
        return param_id

    def names(self) -> list[str]:
        return [param.name for param in self._parameters.values()]

    def create(
        self,
        name: str,
        value: float,
        min_value: float = AUTO_PARAM_MIN,
        max_value: float = AUTO_PARAM_MAX,
        step: float = AUTO_PARAM_STEP,
        role: str | None = None,
        source: str = SOURCE_USER,
    ) -> Parameter:
        """Create a parameter.

        Raises:
            ValidationError: If the name is taken, the value is not finite
                or the domain is empty
        """
        if name in self:
            raise ValidationError(f"A parameter named '{name}' already exists.", "DUPLICATE_PARAMETER")
        if not math.isfinite(value):
            raise ValidationError(f"Value of '{name}' must be a finite number.", "INVALID_VALUE")
        if min_value > max_value:
            raise ValidationError(
                f"Domain of '{name}' is empty: min {min_value} > max {max_value}.",
                "INVALID_DOMAIN",
            )
        if step <= 0:
            raise ValidationError(f"Step of '{name}' must be positive.", "INVALID_DOMAIN")
        # Widen the domain so an explicit value always fits its slider.
        min_value = min(min_value, value)
        max_value = max(max_value, value)
        param = Parameter(
            id=self._new_id(),
            name=name,
            value=float(value),
            min=float(min_value),
            max=float(max_value),
            step=float(step),
            role=role,
            source=source,
        )
        self._parameters[param.id] = param
        logger.debug("Created parameter %s (%s) = %s", name, source, value)
        return param

    def create_default(self, name: str) -> Parameter:
        """Create an auto-parameter with the configured default value and domain."""
        return self.create(
            name,
            AUTO_PARAM_VALUE,
            AUTO_PARAM_MIN,
            AUTO_PARAM_MAX,
            AUTO_PARAM_STEP,
            source=SOURCE_AUTO,
        )

    def get(self, param_id: str) -> Parameter | None:
        return self._parameters.get(param_id)

    def find_by_name(self, name: str) -> Parameter | None:
        for param in self._parameters.values():
            if param.name == name:
                return param
        return None

    def require(self, name: str) -> Parameter:
        param = self.find_by_name(name)
        if param is None:
            raise ValidationError(f"Parameter '{name}' is not defined.", "PARAMETER_NOT_FOUND")
        return param

    def update_value(self, name: str, value: float) -> Parameter:
        """Set a new value; it must lie inside the parameter's domain."""
        param = self.require(name)
        if not math.isfinite(value):
            raise ValidationError(f"Value of '{name}' must be a finite number.", "INVALID_VALUE")
        if not param.min <= value <= param.max:
            raise ValidationError(
                f"Value {value} is outside the domain [{param.min}, {param.max}] of '{name}'.",
                "OUT_OF_DOMAIN",
            )
        param.value = float(value)
        return param

    def set_role(self, name: str, role: str | None) -> Parameter:
        param = self.require(name)
        param.role = role
        return param

    def delete(self, name: str) -> bool:
        param = self.find_by_name(name)
        if param is None:
            return False
        del self._parameters[param.id]
        logger.debug("Deleted parameter %s", name)
        return True

    def clear(self) -> None:
        self._parameters.clear()

    def scope(self) -> dict[str, float]:
        """Name-to-value mapping for the evaluator."""
        return {param.name: param.value for param in self._parameters.values()}

    def to_dict(self) -> dict[str, Any]:
        return {"parameters": [param.to_dict() for param in self._parameters.values()]}

    def from_dict(self, data: dict[str, Any]) -> None:
        """Replace the store's contents with serialized parameters."""
        self.clear()
        for item in data.get("parameters", []):
            param = Parameter(**item)
            self._parameters[param.id] = param
            suffix = param.id.rsplit("-", 1)[-1]
            if suffix.isdigit():
                self._next_id = max(self._next_id, int(suffix) + 1)
