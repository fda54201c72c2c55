"""Measure declarations consumed by the tuner."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any, Callable, Iterable, Sequence

import numpy as np

from ..errors import ConfigurationError

ScoreFunction = Callable[[Any, Any], float]


@dataclass(frozen=True)
class Measure:
    """
    Description of a performance measure.

    Attributes:
        id: Unique identifier, used as the score key in resample results and the OptPath.
        minimize: True when lower values are better.
        best: Best attainable value.
        worst: Worst attainable value; may be infinite for unbounded measures.
        impute_value: Optional fallback recorded for failed evaluations.
        fun: Optional scoring function ``fun(truth, response) -> float``; needed for threshold tuning.
        task_types: Task types the measure applies to. Empty means any.
    """

    id: str
    minimize: bool = True
    best: float = 0.0
    worst: float = math.inf
    impute_value: float | None = None
    fun: ScoreFunction | None = field(default=None, compare=False, repr=False)
    task_types: frozenset[str] = frozenset()

    def __post_init__(self) -> None:
        if not self.id:
            raise ConfigurationError("Measure id must be a non-empty string")
        object.__setattr__(self, "task_types", frozenset(self.task_types))

    def is_better(self, candidate: float, incumbent: float) -> bool:
        """Return True when ``candidate`` strictly beats ``incumbent``."""
        if self.minimize:
            return candidate < incumbent
        return candidate > incumbent

    def to_minimize(self, value: float) -> float:
        """Orient ``value`` so that smaller is always better."""
        return value if self.minimize else -value

    def score(self, truth: Any, response: Any) -> float:
        if self.fun is None:
            raise ConfigurationError(f"Measure '{self.id}' has no scoring function")
        return float(self.fun(truth, response))


def check_measures(measures: Measure | Iterable[Measure] | None, task: Any = None) -> list[Measure]:
    """
    Normalise ``measures`` to a non-empty list and validate it against ``task``.

    The first measure is the primary one: it alone decides which configuration wins.
    """
    if measures is None:
        raise ConfigurationError("At least one measure is required")
    items = [measures] if isinstance(measures, Measure) else list(measures)
    if not items:
        raise ConfigurationError("At least one measure is required")

    seen: set[str] = set()
    task_type = getattr(task, "task_type", None)
    for item in items:
        if not isinstance(item, Measure):
            raise ConfigurationError(f"Expected Measure instances, got {type(item).__name__}")
        if item.id in seen:
            raise ConfigurationError(f"Duplicate measure id: {item.id}")
        seen.add(item.id)
        if task_type is not None and item.task_types and task_type not in item.task_types:
            raise ConfigurationError(
                f"Measure '{item.id}' does not support task type '{task_type}'. "
                f"Supported: {', '.join(sorted(item.task_types))}"
            )
    return items


def _mean_misclassification(truth: Sequence[Any], response: Sequence[Any]) -> float:
    return float(np.mean(np.asarray(truth) != np.asarray(response)))


def _accuracy(truth: Sequence[Any], response: Sequence[Any]) -> float:
    return float(np.mean(np.asarray(truth) == np.asarray(response)))


def _mean_squared_error(truth: Sequence[float], response: Sequence[float]) -> float:
    diff = np.asarray(truth, dtype=float) - np.asarray(response, dtype=float)
    return float(np.mean(diff**2))


def _mean_absolute_error(truth: Sequence[float], response: Sequence[float]) -> float:
    diff = np.asarray(truth, dtype=float) - np.asarray(response, dtype=float)
    return float(np.mean(np.abs(diff)))


mmce = Measure("mmce", minimize=True, best=0.0, worst=1.0, fun=_mean_misclassification, task_types={"classif"})
acc = Measure("acc", minimize=False, best=1.0, worst=0.0, fun=_accuracy, task_types={"classif"})
mse = Measure("mse", minimize=True, best=0.0, worst=math.inf, fun=_mean_squared_error, task_types={"regr"})
mae = Measure("mae", minimize=True, best=0.0, worst=math.inf, fun=_mean_absolute_error, task_types={"regr"})
