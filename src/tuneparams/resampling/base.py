"""Resampling descriptions and the concrete plans they instantiate."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any

import numpy as np

from ..errors import ConfigurationError


@dataclass(frozen=True, eq=False)
class ResamplePlan:
    """Concrete, reusable train/test splits."""

    train_indices: tuple[np.ndarray, ...]
    test_indices: tuple[np.ndarray, ...]
    description: "ResampleDescription | None" = None
    size: int = 0

    def __post_init__(self) -> None:
        if len(self.train_indices) != len(self.test_indices):
            raise ConfigurationError("A resample plan needs one test split per train split")

    @property
    def iterations(self) -> int:
        return len(self.train_indices)


class ResampleDescription(ABC):
    """Recipe for a resampling strategy, turned into a plan per task."""

    @abstractmethod
    def instantiate(self, task: Any) -> ResamplePlan:
        """Draw concrete splits for ``task``."""


@dataclass(frozen=True)
class Holdout(ResampleDescription):
    """Single random train/test split."""

    split: float = 2 / 3
    seed: int | None = None

    def __post_init__(self) -> None:
        if not 0.0 < self.split < 1.0:
            raise ConfigurationError("Holdout split must lie strictly between 0 and 1")

    def instantiate(self, task: Any) -> ResamplePlan:
        size = task_size(task)
        order = np.random.default_rng(self.seed).permutation(size)
        cut = int(round(size * self.split))
        if cut == 0 or cut == size:
            raise ConfigurationError(f"Holdout split {self.split} leaves an empty partition for {size} observations")
        return ResamplePlan(
            train_indices=(np.sort(order[:cut]),),
            test_indices=(np.sort(order[cut:]),),
            description=self,
            size=size,
        )


@dataclass(frozen=True)
class CrossValidation(ResampleDescription):
    """k-fold cross-validation."""

    folds: int = 10
    seed: int | None = None

    def __post_init__(self) -> None:
        if self.folds < 2:
            raise ConfigurationError("CrossValidation requires at least 2 folds")

    def instantiate(self, task: Any) -> ResamplePlan:
        size = task_size(task)
        if size < self.folds:
            raise ConfigurationError(f"Cannot split {size} observations into {self.folds} folds")
        order = np.random.default_rng(self.seed).permutation(size)
        chunks = np.array_split(order, self.folds)
        train = []
        test = []
        for position, chunk in enumerate(chunks):
            rest = np.concatenate([other for index, other in enumerate(chunks) if index != position])
            train.append(np.sort(rest))
            test.append(np.sort(chunk))
        return ResamplePlan(train_indices=tuple(train), test_indices=tuple(test), description=self, size=size)


def task_size(task: Any) -> int:
    """Return the number of observations of ``task``."""
    size = getattr(task, "size", None)
    if size is None:
        try:
            size = len(task)
        except TypeError as exc:
            raise ConfigurationError("Task must expose its size via len(task) or a 'size' attribute") from exc
    return int(size)
