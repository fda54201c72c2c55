"""Tuning orchestration: parameter spaces, the optimisation path, evaluation and strategies."""

from .conditions import AllOf, AnyOf, Compare, Condition, Equals, In, Not, condition_from_config
from .control import (
    StrategyKind,
    TuneControl,
    TuneControlCMAES,
    TuneControlDesign,
    TuneControlGenSA,
    TuneControlGrid,
    TuneControlIrace,
    TuneControlMBO,
    TuneControlRandom,
    control_from_config,
    make_tune_control,
)
from .evaluation import EvaluationOutcome, TuneEvaluator
from .executor import TuningExecutor, tune_params
from .imputation import ImputationPolicy
from .opt_path import OptPath, TrialRecord
from .parameter_space import (
    ParameterDefinition,
    ParameterSpace,
    discrete_param,
    integer_param,
    logical_param,
    numeric_param,
)
from .reporting import TuningReporter
from .result import TuneResult
from .strategies import SearchStrategy, StrategyOutcome, StrategyRegistry

__all__ = [
    "AllOf",
    "AnyOf",
    "Compare",
    "Condition",
    "Equals",
    "EvaluationOutcome",
    "ImputationPolicy",
    "In",
    "Not",
    "OptPath",
    "ParameterDefinition",
    "ParameterSpace",
    "SearchStrategy",
    "StrategyKind",
    "StrategyOutcome",
    "StrategyRegistry",
    "TrialRecord",
    "TuneControl",
    "TuneControlCMAES",
    "TuneControlDesign",
    "TuneControlGenSA",
    "TuneControlGrid",
    "TuneControlIrace",
    "TuneControlMBO",
    "TuneControlRandom",
    "TuneEvaluator",
    "TuneResult",
    "TuningExecutor",
    "TuningReporter",
    "condition_from_config",
    "control_from_config",
    "discrete_param",
    "integer_param",
    "logical_param",
    "make_tune_control",
    "numeric_param",
    "tune_params",
]
