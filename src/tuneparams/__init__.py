"""Hyperparameter tuning orchestrator."""

from .errors import (
    ConfigurationError,
    ResampleResultError,
    StrategyError,
    TuningError,
    TuningInterrupted,
    UnknownStrategyError,
)
from .measures import Measure, acc, mae, mmce, mse, tune_threshold
from .optimization import (
    OptPath,
    ParameterSpace,
    TrialRecord,
    TuneResult,
    TuningReporter,
    control_from_config,
    discrete_param,
    integer_param,
    logical_param,
    make_tune_control,
    numeric_param,
    tune_params,
)
from .resampling import CrossValidation, Holdout, ResampleDescription, ResamplePlan, ResampleResult

__version__ = "0.1.0"

__all__ = [
    "ConfigurationError",
    "CrossValidation",
    "Holdout",
    "Measure",
    "OptPath",
    "ParameterSpace",
    "ResampleDescription",
    "ResamplePlan",
    "ResampleResult",
    "ResampleResultError",
    "StrategyError",
    "TrialRecord",
    "TuneResult",
    "TuningError",
    "TuningInterrupted",
    "TuningReporter",
    "UnknownStrategyError",
    "acc",
    "control_from_config",
    "discrete_param",
    "integer_param",
    "logical_param",
    "mae",
    "make_tune_control",
    "mmce",
    "mse",
    "numeric_param",
    "tune_params",
    "tune_threshold",
]
