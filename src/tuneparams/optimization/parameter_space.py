"""Parameter space definitions and helpers for tuning searches."""

from __future__ import annotations

import math
import random
from dataclasses import dataclass, field
from decimal import Decimal
from itertools import product
from typing import Any, Callable, Dict, Iterator, Mapping, Sequence

import numpy as np

from ..errors import ConfigurationError
from .conditions import Condition, condition_from_config

Transform = Callable[[Any], Any]
_DECIMAL_TOLERANCE = Decimal("1e-12")

NUMERIC = "numeric"
INTEGER = "integer"
DISCRETE = "discrete"
LOGICAL = "logical"
PARAMETER_TYPES = (NUMERIC, INTEGER, DISCRETE, LOGICAL)

TRANSFORMS: dict[str, Transform] = {
    "exp2": lambda x: 2**x,
    "exp10": lambda x: 10**x,
    "exp": math.exp,
    "square": lambda x: x**2,
    "sqrt": math.sqrt,
    "log": math.log,
}


@dataclass(frozen=True)
class ParameterDefinition:
    """Immutable description of a single tunable parameter."""

    name: str
    type: str = NUMERIC
    lower_bound: float | None = None
    upper_bound: float | None = None
    values: Sequence[Any] | None = None
    step: float | None = None
    transform: Transform | None = field(default=None, compare=False)
    requires: Condition | None = None
    description: str = ""

    def __post_init__(self) -> None:
        if self.type not in PARAMETER_TYPES:
            raise ConfigurationError(
                f"Parameter {self.name} has unknown type '{self.type}'. Allowed: {', '.join(PARAMETER_TYPES)}"
            )
        if self.type == LOGICAL:
            object.__setattr__(self, "values", (True, False))
        elif self.type == DISCRETE:
            if not self.values:
                raise ConfigurationError(f"Parameter {self.name} must define at least one value")
            object.__setattr__(self, "values", tuple(self.values))
        else:
            lower, upper = self.lower_bound, self.upper_bound
            if lower is None or upper is None or not math.isfinite(lower) or not math.isfinite(upper):
                raise ConfigurationError(f"Parameter {self.name} needs finite lower and upper bounds")
            if upper < lower:
                raise ConfigurationError(f"Parameter {self.name} has upper_bound < lower_bound")
            if self.step is not None and self.step <= 0:
                raise ConfigurationError(f"Parameter {self.name} requires a positive step size")
            if self.type == INTEGER and not (float(lower).is_integer() and float(upper).is_integer()):
                raise ConfigurationError(f"Parameter {self.name} is an integer and needs integral bounds")

    def is_discrete(self) -> bool:
        """Return True for parameters with a finite value set."""
        return self.type in (DISCRETE, LOGICAL)

    def is_numeric(self) -> bool:
        return self.type in (NUMERIC, INTEGER)

    def apply_transform(self, value: Any) -> Any:
        if self.transform is None:
            return value
        return self.transform(value)

    def generate_candidates(self, resolution: int) -> tuple[Any, ...]:
        """
        Produce the candidate values used by grid search.

        Discrete and logical parameters take every value. Numeric parameters use the
        explicit step when one is configured, otherwise ``resolution`` evenly spaced
        points between the bounds. Integer candidates are rounded and deduplicated.
        """
        if self.is_discrete():
            assert self.values is not None  # for type checkers
            return tuple(self.values)

        if self.step is not None:
            candidates = self._stepped_candidates()
        else:
            if resolution < 1:
                raise ConfigurationError("Grid resolution must be a positive integer")
            if resolution == 1:
                points = [(self.lower_bound + self.upper_bound) / 2]
            else:
                points = np.linspace(self.lower_bound, self.upper_bound, resolution).tolist()
            candidates = tuple(float(point) for point in points)

        if self.type == INTEGER:
            return tuple(dict.fromkeys(int(round(value)) for value in candidates))
        return candidates

    def _stepped_candidates(self) -> tuple[Any, ...]:
        step_decimal = Decimal(str(self.step))
        lower = Decimal(str(self.lower_bound))
        upper = Decimal(str(self.upper_bound))

        values: list[Decimal] = []
        current = lower
        # Guard against pathological configurations that could loop forever.
        max_iterations = 1_000_000
        while current <= upper + _DECIMAL_TOLERANCE:
            values.append(current)
            current += step_decimal
            if len(values) > max_iterations:
                raise ConfigurationError(
                    f"Parameter {self.name} produced more than {max_iterations} grid values. "
                    "Check range and step configuration."
                )
        return tuple(_coerce_decimal(value) for value in values)

    def sample_value(self, rng: random.Random) -> Any:
        """Draw one value uniformly from the parameter's domain."""
        if self.is_discrete():
            assert self.values is not None
            return rng.choice(tuple(self.values))
        if self.step is not None:
            return self._step_value(rng.randint(0, self._step_count()))
        if self.type == INTEGER:
            return rng.randint(int(self.lower_bound), int(self.upper_bound))
        return rng.uniform(self.lower_bound, self.upper_bound)

    def snap(self, value: float) -> Any:
        """Clip a numeric value to the bounds and move it onto the nearest step or integer."""
        clipped = min(max(float(value), self.lower_bound), self.upper_bound)
        if self.step is not None:
            offset = (Decimal(str(clipped)) - Decimal(str(self.lower_bound))) / Decimal(str(self.step))
            return self._step_value(min(max(round(offset), 0), self._step_count()))
        if self.type == INTEGER:
            return int(round(clipped))
        return clipped

    def _step_count(self) -> int:
        span = (Decimal(str(self.upper_bound)) - Decimal(str(self.lower_bound))) / Decimal(str(self.step))
        return int(span + _DECIMAL_TOLERANCE)

    def _step_value(self, index: int) -> Any:
        value = Decimal(str(self.lower_bound)) + index * Decimal(str(self.step))
        if self.type == INTEGER:
            return int(round(value))
        return float(value)


@dataclass
class ParameterSpace:
    """Ordered container of parameter definitions explored by a tuning strategy."""

    parameters: Dict[str, ParameterDefinition] = field(default_factory=dict)

    def __post_init__(self) -> None:
        declared: set[str] = set()
        for name, definition in self.parameters.items():
            if definition.requires is not None:
                undeclared = sorted(definition.requires.references() - declared)
                if undeclared:
                    raise ConfigurationError(
                        f"Parameter {name} depends on {', '.join(undeclared)}, which must be declared before it"
                    )
            declared.add(name)

    @classmethod
    def from_definitions(cls, definitions: Sequence[ParameterDefinition]) -> "ParameterSpace":
        """Construct a parameter space from an ordered sequence of definitions."""
        parameters: Dict[str, ParameterDefinition] = {}
        for definition in definitions:
            if definition.name in parameters:
                raise ConfigurationError(f"Duplicate parameter definition: {definition.name}")
            parameters[definition.name] = definition
        return cls(parameters=parameters)

    @classmethod
    def from_config(cls, config: Mapping[str, Any]) -> "ParameterSpace":
        """
        Load a parameter space from a YAML/JSON style mapping.

        Example::

            {"parameters": {
                "C": {"type": "numeric", "lower_bound": -12, "upper_bound": 12, "transform": "exp2"},
                "kernel": {"type": "discrete", "values": ["polydot", "rbfdot"]},
                "sigma": {"type": "numeric", "lower_bound": -12, "upper_bound": 12,
                          "requires": {"param": "kernel", "eq": "rbfdot"}},
            }}
        """
        parameters_config = config.get("parameters", {}) if config else {}
        definitions: list[ParameterDefinition] = []
        for name, raw_definition in parameters_config.items():
            transform_name = raw_definition.get("transform")
            if transform_name is not None and transform_name not in TRANSFORMS:
                raise ConfigurationError(
                    f"Unknown transform '{transform_name}' for parameter {name}. "
                    f"Available: {', '.join(sorted(TRANSFORMS))}"
                )
            requires = raw_definition.get("requires")
            definitions.append(
                ParameterDefinition(
                    name=name,
                    type=raw_definition.get("type", NUMERIC),
                    lower_bound=raw_definition.get("lower_bound"),
                    upper_bound=raw_definition.get("upper_bound"),
                    values=_as_tuple(raw_definition.get("values")),
                    step=raw_definition.get("step"),
                    transform=TRANSFORMS[transform_name] if transform_name else None,
                    requires=condition_from_config(requires) if requires is not None else None,
                    description=raw_definition.get("description", ""),
                )
            )
        return cls.from_definitions(definitions)

    def to_config(self) -> dict[str, Any]:
        """Serialise the parameter space back into a configuration mapping."""
        names_by_transform = {id(function): name for name, function in TRANSFORMS.items()}
        config: dict[str, Any] = {"parameters": {}}
        for name, definition in self.parameters.items():
            item: dict[str, Any] = {"type": definition.type}
            if definition.type == DISCRETE:
                item["values"] = list(definition.values or ())
            elif definition.is_numeric():
                item["lower_bound"] = definition.lower_bound
                item["upper_bound"] = definition.upper_bound
            if definition.step is not None:
                item["step"] = definition.step
            if definition.transform is not None:
                transform_name = names_by_transform.get(id(definition.transform))
                if transform_name is None:
                    raise ConfigurationError(f"Transform of parameter {name} is not a named transform")
                item["transform"] = transform_name
            if definition.requires is not None:
                item["requires"] = definition.requires.to_config()
            if definition.description:
                item["description"] = definition.description
            config["parameters"][name] = item
        return config

    @property
    def names(self) -> list[str]:
        return list(self.parameters)

    def __len__(self) -> int:
        return len(self.parameters)

    def __iter__(self) -> Iterator[ParameterDefinition]:
        return iter(self.parameters.values())

    def is_numeric(self) -> bool:
        """Return True when every parameter is numeric or integer."""
        return all(definition.is_numeric() for definition in self)

    def has_dependencies(self) -> bool:
        return any(definition.requires is not None for definition in self)

    def is_active(self, name: str, values: Mapping[str, Any]) -> bool:
        """Return True when parameter ``name`` is meaningful given ``values``."""
        definition = self.parameters[name]
        return definition.requires is None or definition.requires.evaluate(values)

    def validate(self, parameters: Mapping[str, Any]) -> Dict[str, Any]:
        """
        Validate and normalise a configuration.

        Values of inactive parameters are dropped. Missing values (absent, None or NaN)
        are an error only for active parameters.

        Args:
            parameters: Arbitrary mapping with candidate parameter values.

        Returns:
            A cleaned dictionary containing the values of every active parameter, in
            declaration order.

        Raises:
            ValueError: When active parameters are missing, values fall outside the
                allowed domain, or unknown parameters are supplied.
        """
        extra_keys = sorted(set(parameters) - set(self.parameters))
        if extra_keys:
            raise ValueError(f"Unknown parameter(s): {', '.join(extra_keys)}")

        validated: dict[str, Any] = {}
        for name, definition in self.parameters.items():
            if not self.is_active(name, validated):
                continue
            value = parameters.get(name)
            if _is_missing(value):
                raise ValueError(f"Missing required parameter: {name}")
            validated[name] = self._validate_value(definition, value)
        return validated

    def transform(self, parameters: Mapping[str, Any]) -> Dict[str, Any]:
        """Apply transforms to active parameters, omitting inactive ones entirely."""
        active: dict[str, Any] = {}
        transformed: dict[str, Any] = {}
        for name, definition in self.parameters.items():
            if not self.is_active(name, active) or _is_missing(parameters.get(name)):
                continue
            active[name] = parameters[name]
            transformed[name] = definition.apply_transform(parameters[name])
        return transformed

    def grid(self, resolution: int = 10, overrides: Mapping[str, Sequence[Any]] | None = None) -> Dict[str, tuple[Any, ...]]:
        """
        Build a dictionary of parameter -> candidate values for grid search.

        Args:
            resolution: Number of points for numeric parameters without an explicit step.
            overrides: Optional mapping with explicit candidate lists for selected parameters.
        """
        candidates: Dict[str, tuple[Any, ...]] = {}
        overrides = overrides or {}

        unexpected_overrides = set(overrides) - set(self.parameters)
        if unexpected_overrides:
            unexpected = ", ".join(sorted(unexpected_overrides))
            raise ConfigurationError(f"Overrides provided for unknown parameters: {unexpected}")

        for name, definition in self.parameters.items():
            if name in overrides:
                override_values = tuple(overrides[name])
                if not override_values:
                    raise ConfigurationError(f"Override for parameter {name} must contain at least one value")
                candidates[name] = override_values
                continue
            candidates[name] = definition.generate_candidates(resolution)
        return candidates

    def iter_grid(
        self,
        resolution: int = 10,
        overrides: Mapping[str, Sequence[Any]] | None = None,
    ) -> Iterator[dict[str, Any]]:
        """
        Iterate over the dependency-aware cartesian product of the grid.

        Combinations that only differ in the values of inactive parameters collapse into
        one configuration; the first occurrence wins.
        """
        grid_definition = self.grid(resolution, overrides)
        if not grid_definition:
            return

        keys = list(grid_definition.keys())
        seen: set[tuple[tuple[str, Any], ...]] = set()
        for combination in product(*(grid_definition[key] for key in keys)):
            candidate = self.validate(dict(zip(keys, combination)))
            signature = tuple(candidate.items())
            if signature in seen:
                continue
            seen.add(signature)
            yield candidate

    def grid_size(self, resolution: int = 10, overrides: Mapping[str, Sequence[Any]] | None = None) -> int:
        return sum(1 for _ in self.iter_grid(resolution, overrides))

    def sample(self, rng: random.Random) -> dict[str, Any]:
        """Draw one valid configuration, sampling only parameters that are active."""
        configuration: dict[str, Any] = {}
        for name, definition in self.parameters.items():
            if self.is_active(name, configuration):
                configuration[name] = definition.sample_value(rng)
        return configuration

    def bounds(self) -> tuple[np.ndarray, np.ndarray]:
        """Lower and upper bound vectors of a numeric space, in declaration order."""
        if not self.is_numeric():
            raise ConfigurationError("Bounds are only defined for numeric parameter spaces")
        lower = np.array([definition.lower_bound for definition in self], dtype=float)
        upper = np.array([definition.upper_bound for definition in self], dtype=float)
        return lower, upper

    def from_vector(self, vector: Sequence[float]) -> dict[str, Any]:
        """Map a numeric vector onto a configuration, clipping to bounds and snapping to steps and integers."""
        if len(vector) != len(self):
            raise ValueError(f"Expected a vector of length {len(self)}, got {len(vector)}")
        configuration: dict[str, Any] = {}
        for definition, value in zip(self, vector):
            configuration[definition.name] = definition.snap(value)
        return configuration

    def to_vector(self, configuration: Mapping[str, Any]) -> np.ndarray:
        return np.array([float(configuration[name]) for name in self.parameters], dtype=float)

    def _validate_value(self, definition: ParameterDefinition, value: Any) -> Any:
        """Validate a single parameter value against its definition."""
        if definition.type == LOGICAL:
            if isinstance(value, (bool, np.bool_)):
                return bool(value)
            raise TypeError(f"Parameter {definition.name} expects a boolean, got {type(value).__name__}")

        if definition.type == DISCRETE:
            assert definition.values is not None  # for type checkers
            if value not in definition.values:
                allowed = ", ".join(map(repr, definition.values))
                raise ValueError(f"Value {value!r} is not permitted for parameter {definition.name}. Allowed: {allowed}")
            return value

        if isinstance(value, (bool, np.bool_)) or not isinstance(value, (int, float, np.integer, np.floating)):
            raise TypeError(f"Parameter {definition.name} expects numeric values, got {type(value).__name__}")

        lower = definition.lower_bound
        upper = definition.upper_bound
        if value < lower:
            raise ValueError(f"Value {value!r} is below lower bound {lower!r} for parameter {definition.name}")
        if value > upper:
            raise ValueError(f"Value {value!r} is above upper bound {upper!r} for parameter {definition.name}")

        if definition.type == INTEGER:
            if float(value) != int(value):
                raise ValueError(f"Parameter {definition.name} expects an integer, got {value!r}")
            return int(value)

        if definition.step is not None:
            offset = (Decimal(str(value)) - Decimal(str(lower))) / Decimal(str(definition.step))
            if offset % 1 and not _is_close_to_integer(offset):
                raise ValueError(
                    f"Value {value!r} for parameter {definition.name} does not align with step {definition.step}"
                )
        return float(value)


def numeric_param(name: str, lower: float, upper: float, **kwargs: Any) -> ParameterDefinition:
    return ParameterDefinition(name=name, type=NUMERIC, lower_bound=lower, upper_bound=upper, **kwargs)


def integer_param(name: str, lower: int, upper: int, **kwargs: Any) -> ParameterDefinition:
    return ParameterDefinition(name=name, type=INTEGER, lower_bound=lower, upper_bound=upper, **kwargs)


def discrete_param(name: str, values: Sequence[Any], **kwargs: Any) -> ParameterDefinition:
    return ParameterDefinition(name=name, type=DISCRETE, values=tuple(values), **kwargs)


def logical_param(name: str, **kwargs: Any) -> ParameterDefinition:
    return ParameterDefinition(name=name, type=LOGICAL, **kwargs)


def _is_missing(value: Any) -> bool:
    if value is None:
        return True
    return isinstance(value, float) and math.isnan(value)


def _is_close_to_integer(value: Decimal) -> bool:
    """Return True when the decimal value is effectively an integer."""
    nearest = value.to_integral_value()
    return abs(value - nearest) <= _DECIMAL_TOLERANCE


def _coerce_decimal(value: Decimal) -> Any:
    """Convert Decimal back to int or float, preserving integer representations."""
    if value == value.to_integral_value():
        return int(value)
    return float(value)


def _as_tuple(values: Sequence[Any] | None) -> tuple[Any, ...] | None:
    if values is None:
        return None
    return tuple(values)
