"""Performance measures and decision-threshold search."""

from .base import Measure, acc, check_measures, mae, mmce, mse
from .threshold import ThresholdResult, tune_threshold

__all__ = [
    "Measure",
    "ThresholdResult",
    "acc",
    "check_measures",
    "mae",
    "mmce",
    "mse",
    "tune_threshold",
]
