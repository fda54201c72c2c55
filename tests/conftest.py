"""Shared stubs for the tuning test-suite."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any, Callable, Mapping

import pytest

from tuneparams import Holdout, Measure, ParameterSpace, ResampleDescription, discrete_param, numeric_param
from tuneparams.optimization.conditions import Equals


@dataclass(frozen=True)
class StubLearner:
    id: str = "stub.learner"
    params: Mapping[str, Any] = field(default_factory=dict)
    param_names: tuple[str, ...] | None = None
    predict_type: str = "response"

    def with_hyperparameters(self, params: Mapping[str, Any]) -> "StubLearner":
        return replace(self, params=dict(params))


class StubTask:
    task_type = "classif"

    def __len__(self) -> int:
        return 30


class CountingDescription(ResampleDescription):
    """Holdout description that counts how often it was instantiated."""

    def __init__(self) -> None:
        self.instantiations = 0

    def instantiate(self, task: Any):
        self.instantiations += 1
        return Holdout(seed=self.instantiations).instantiate(task)


class RecordingResample:
    """Deterministic resample collaborator remembering every call."""

    def __init__(self, score: Callable[[Mapping[str, Any]], float]) -> None:
        self.score = score
        self.params: list[dict[str, Any]] = []
        self.plans: list[Any] = []

    def __call__(self, learner, task, plan, measures):
        self.params.append(dict(learner.params))
        self.plans.append(plan)
        value = self.score(learner.params)
        return {"aggregated_scores": {measure.id: value for measure in measures}}


def failing_resample(learner, task, plan, measures):
    raise RuntimeError("training diverged")


@pytest.fixture
def learner() -> StubLearner:
    return StubLearner()


@pytest.fixture
def task() -> StubTask:
    return StubTask()


@pytest.fixture
def loss() -> Measure:
    return Measure("loss", minimize=True, best=0.0, worst=1000.0)


@pytest.fixture
def plan(task):
    return Holdout(seed=0).instantiate(task)


@pytest.fixture
def numeric_space() -> ParameterSpace:
    return ParameterSpace.from_definitions(
        [
            numeric_param("x", -5, 5),
            numeric_param("y", -5, 5),
        ]
    )


@pytest.fixture
def dependent_space() -> ParameterSpace:
    return ParameterSpace.from_definitions(
        [
            discrete_param("A", ["x", "y"]),
            numeric_param("B", 0, 1, requires=Equals("A", "x")),
        ]
    )


def quadratic(params: Mapping[str, Any]) -> float:
    return (params["x"] - 1) ** 2 + (params["y"] + 2) ** 2
