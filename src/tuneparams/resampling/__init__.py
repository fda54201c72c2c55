"""Resampling descriptions, plans and the resample result contract."""

from .base import CrossValidation, Holdout, ResampleDescription, ResamplePlan
from .result import ResampleFunction, ResampleResult

__all__ = [
    "CrossValidation",
    "Holdout",
    "ResampleDescription",
    "ResampleFunction",
    "ResamplePlan",
    "ResampleResult",
]
