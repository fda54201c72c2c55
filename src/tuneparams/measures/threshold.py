"""Post-hoc decision threshold search on retained predictions."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

import numpy as np

from ..errors import ConfigurationError
from .base import Measure


@dataclass(frozen=True)
class ThresholdResult:
    """Best decision threshold and the measure value it achieves."""

    threshold: float
    performance: float


def tune_threshold(predictions: Any, measure: Measure, nsub: int = 20) -> ThresholdResult:
    """
    Search the decision threshold that optimises ``measure`` without re-training.

    Args:
        predictions: Object exposing ``truth`` (0/1 labels) and ``prob`` (probability of the
            positive class), either as DataFrame columns, mapping keys or attributes.
        measure: Measure to optimise; must provide a scoring function.
        nsub: Number of equally sized sub-intervals of [0, 1] to scan.

    Returns:
        ThresholdResult with the first threshold reaching the best value.
    """
    if nsub < 1:
        raise ConfigurationError("nsub must be a positive integer")
    truth = np.asarray(_field(predictions, "truth"))
    prob = np.asarray(_field(predictions, "prob"), dtype=float)
    if truth.shape != prob.shape:
        raise ValueError("Prediction truth and prob must have the same length")

    thresholds = np.linspace(0.0, 1.0, nsub + 1)
    scores = [measure.score(truth, (prob >= threshold).astype(int)) for threshold in thresholds]
    best = 0
    for position in range(1, len(scores)):
        if measure.is_better(scores[position], scores[best]):
            best = position
    return ThresholdResult(threshold=float(thresholds[best]), performance=scores[best])


def _field(predictions: Any, name: str) -> Any:
    if hasattr(predictions, "columns") and name in predictions.columns:
        return predictions[name].to_numpy()
    if isinstance(predictions, dict) and name in predictions:
        return predictions[name]
    if hasattr(predictions, name):
        return getattr(predictions, name)
    raise ValueError(f"Predictions do not expose a '{name}' field")
