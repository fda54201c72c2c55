"""Model-based optimisation through optuna's tree-structured Parzen estimator."""

from __future__ import annotations

from typing import Any, Sequence

import optuna
from optuna.samplers import TPESampler
from optuna.trial import Trial

from ...errors import StrategyError
from ...logging_utils import get_logger
from ...measures.base import Measure
from ..control import StrategyKind, TuneControl, TuneControlMBO
from ..evaluation import TuneEvaluator
from ..opt_path import OptPath
from ..parameter_space import DISCRETE, INTEGER, LOGICAL, ParameterSpace
from .base import SearchStrategy, StrategyOutcome, StrategyRegistry

logger = get_logger(__name__)


@StrategyRegistry.register
class ModelBasedStrategy(SearchStrategy):
    """
    Sequential model-based optimisation.

    The surrogate proposes ``max_workers`` points per round through optuna's ask/tell
    interface; each round is evaluated as one batch and told back before the next
    proposal. Dependent parameters are only asked for when their condition holds.
    """

    kind = StrategyKind.MBO

    def search(
        self,
        learner: Any,
        task: Any,
        resampling: Any,
        measures: Sequence[Measure],
        par_set: ParameterSpace,
        control: TuneControl,
        opt_path: OptPath,
        evaluate: TuneEvaluator,
    ) -> StrategyOutcome:
        assert isinstance(control, TuneControlMBO)
        verbosity = optuna.logging.get_verbosity()
        optuna.logging.set_verbosity(optuna.logging.WARNING)
        try:
            return self._optimize(measures, par_set, control, opt_path, evaluate)
        finally:
            optuna.logging.set_verbosity(verbosity)

    def _optimize(
        self,
        measures: Sequence[Measure],
        par_set: ParameterSpace,
        control: TuneControlMBO,
        opt_path: OptPath,
        evaluate: TuneEvaluator,
    ) -> StrategyOutcome:
        primary = measures[0]
        study = optuna.create_study(
            direction="minimize" if primary.minimize else "maximize",
            sampler=TPESampler(seed=control.random_seed, n_startup_trials=control.n_initial),
        )

        limit = self.evaluation_budget(control, control.iterations)
        self.state.max_iterations = limit
        while self.state.iterations < limit and not self.budget_exhausted(evaluate, control):
            batch_size = min(control.max_workers, limit - self.state.iterations)
            try:
                trials = [study.ask() for _ in range(batch_size)]
                configurations = [suggest_configuration(trial, par_set) for trial in trials]
            except Exception as exc:
                raise StrategyError(f"Surrogate proposal failed: {exc}") from exc

            outcomes = evaluate.evaluate_many(configurations)
            for trial, outcome in zip(trials, outcomes):
                study.tell(trial, outcome.scores[primary.id])
            self.state.iterations += batch_size

        logger.debug("MBO finished after %d proposals", len(study.trials))
        return self.best_outcome(
            opt_path,
            measures,
            {"proposals": len(study.trials), "sampler": type(study.sampler).__name__},
        )


def suggest_configuration(trial: Trial, par_set: ParameterSpace) -> dict[str, Any]:
    """Ask ``trial`` for a value of every parameter that is active so far."""
    configuration: dict[str, Any] = {}
    for definition in par_set:
        if not par_set.is_active(definition.name, configuration):
            continue
        if definition.type == LOGICAL:
            value: Any = trial.suggest_categorical(definition.name, [True, False])
        elif definition.type == DISCRETE:
            values = tuple(definition.values or ())
            position = trial.suggest_categorical(definition.name, list(range(len(values))))
            value = values[position]
        elif definition.type == INTEGER:
            step = max(int(definition.step or 1), 1)
            value = definition.snap(
                trial.suggest_int(definition.name, int(definition.lower_bound), int(definition.upper_bound), step=step)
            )
        else:
            value = definition.snap(
                trial.suggest_float(definition.name, definition.lower_bound, definition.upper_bound, step=definition.step)
            )
        configuration[definition.name] = value
    return configuration
