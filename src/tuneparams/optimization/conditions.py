"""Dependency predicates deciding when a parameter is active."""

from __future__ import annotations

import operator
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Callable, Mapping

from ..errors import ConfigurationError

_COMPARATORS: dict[str, Callable[[Any, Any], bool]] = {
    "<": operator.lt,
    "<=": operator.le,
    ">": operator.gt,
    ">=": operator.ge,
    "!=": operator.ne,
    "==": operator.eq,
}


class Condition(ABC):
    """Predicate over the raw values of previously declared parameters."""

    @abstractmethod
    def evaluate(self, values: Mapping[str, Any]) -> bool:
        """Return True when the condition holds for ``values``."""

    @abstractmethod
    def references(self) -> frozenset[str]:
        """Names of every parameter the condition reads."""

    @abstractmethod
    def to_config(self) -> dict[str, Any]:
        """Serialise the condition back into its mapping form."""


@dataclass(frozen=True)
class Equals(Condition):
    param: str
    value: Any

    def evaluate(self, values: Mapping[str, Any]) -> bool:
        return self.param in values and values[self.param] == self.value

    def references(self) -> frozenset[str]:
        return frozenset({self.param})

    def to_config(self) -> dict[str, Any]:
        return {"param": self.param, "eq": self.value}


@dataclass(frozen=True)
class In(Condition):
    param: str
    values: tuple[Any, ...]

    def __post_init__(self) -> None:
        object.__setattr__(self, "values", tuple(self.values))
        if not self.values:
            raise ConfigurationError(f"Membership condition on '{self.param}' needs at least one value")

    def evaluate(self, values: Mapping[str, Any]) -> bool:
        return self.param in values and values[self.param] in self.values

    def references(self) -> frozenset[str]:
        return frozenset({self.param})

    def to_config(self) -> dict[str, Any]:
        return {"param": self.param, "in": list(self.values)}


@dataclass(frozen=True)
class Compare(Condition):
    param: str
    op: str
    value: Any

    def __post_init__(self) -> None:
        if self.op not in _COMPARATORS:
            raise ConfigurationError(
                f"Unsupported comparison '{self.op}'. Allowed: {', '.join(sorted(_COMPARATORS))}"
            )

    def evaluate(self, values: Mapping[str, Any]) -> bool:
        if self.param not in values:
            return False
        try:
            return bool(_COMPARATORS[self.op](values[self.param], self.value))
        except TypeError:
            return False

    def references(self) -> frozenset[str]:
        return frozenset({self.param})

    def to_config(self) -> dict[str, Any]:
        return {"param": self.param, "op": self.op, "value": self.value}


@dataclass(frozen=True, init=False)
class AllOf(Condition):
    conditions: tuple[Condition, ...]

    def __init__(self, *conditions: Condition) -> None:
        if not conditions:
            raise ConfigurationError("AllOf needs at least one condition")
        object.__setattr__(self, "conditions", tuple(conditions))

    def evaluate(self, values: Mapping[str, Any]) -> bool:
        return all(condition.evaluate(values) for condition in self.conditions)

    def references(self) -> frozenset[str]:
        return frozenset().union(*(condition.references() for condition in self.conditions))

    def to_config(self) -> dict[str, Any]:
        return {"all": [condition.to_config() for condition in self.conditions]}


@dataclass(frozen=True, init=False)
class AnyOf(Condition):
    conditions: tuple[Condition, ...]

    def __init__(self, *conditions: Condition) -> None:
        if not conditions:
            raise ConfigurationError("AnyOf needs at least one condition")
        object.__setattr__(self, "conditions", tuple(conditions))

    def evaluate(self, values: Mapping[str, Any]) -> bool:
        return any(condition.evaluate(values) for condition in self.conditions)

    def references(self) -> frozenset[str]:
        return frozenset().union(*(condition.references() for condition in self.conditions))

    def to_config(self) -> dict[str, Any]:
        return {"any": [condition.to_config() for condition in self.conditions]}


@dataclass(frozen=True)
class Not(Condition):
    condition: Condition

    def evaluate(self, values: Mapping[str, Any]) -> bool:
        return not self.condition.evaluate(values)

    def references(self) -> frozenset[str]:
        return self.condition.references()

    def to_config(self) -> dict[str, Any]:
        return {"not": self.condition.to_config()}


def condition_from_config(config: Mapping[str, Any] | Condition) -> Condition:
    """
    Parse the mapping form of a condition.

    Accepted shapes::

        {"param": "kernel", "eq": "rbfdot"}
        {"param": "kernel", "in": ["polydot", "rbfdot"]}
        {"param": "C", "op": ">=", "value": 0}
        {"all": [...]}, {"any": [...]}, {"not": {...}}
    """
    if isinstance(config, Condition):
        return config
    if not isinstance(config, Mapping):
        raise ConfigurationError(f"Condition must be a mapping, got {type(config).__name__}")

    if "all" in config:
        return AllOf(*(condition_from_config(item) for item in config["all"]))
    if "any" in config:
        return AnyOf(*(condition_from_config(item) for item in config["any"]))
    if "not" in config:
        return Not(condition_from_config(config["not"]))

    param = config.get("param")
    if not param:
        raise ConfigurationError(f"Condition {dict(config)!r} does not name a parameter")
    if "eq" in config:
        return Equals(param, config["eq"])
    if "in" in config:
        return In(param, tuple(config["in"]))
    if "op" in config:
        if "value" not in config:
            raise ConfigurationError(f"Comparison on '{param}' is missing 'value'")
        return Compare(param, config["op"], config["value"])
    raise ConfigurationError(f"Condition on '{param}' must define one of 'eq', 'in' or 'op'")
