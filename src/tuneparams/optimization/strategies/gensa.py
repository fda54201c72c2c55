"""Simulated annealing over numeric parameter spaces."""

from __future__ import annotations

import math
from typing import Any, Sequence

import numpy as np

from ...measures.base import Measure
from ..control import StrategyKind, TuneControl, TuneControlGenSA
from ..evaluation import TuneEvaluator
from ..opt_path import OptPath
from ..parameter_space import ParameterSpace
from .base import SearchStrategy, StrategyOutcome, StrategyRegistry, require_numeric_space


@StrategyRegistry.register
class SimulatedAnnealingStrategy(SearchStrategy):
    """
    Single-chain simulated annealing.

    Each step perturbs the current point with uniform noise of width ``step_size``
    (relative to the parameter ranges), accepts it by the Metropolis rule and cools the
    temperature geometrically. Steps depend on the previous outcome, so evaluation is
    strictly sequential.
    """

    kind = StrategyKind.GENSA

    @classmethod
    def check_parameter_space(cls, par_set: ParameterSpace, control: TuneControl) -> None:
        assert isinstance(control, TuneControlGenSA)
        require_numeric_space("Simulated annealing", par_set)
        if control.start is not None:
            par_set.validate(control.start)

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
        assert isinstance(control, TuneControlGenSA)
        rng = np.random.default_rng(control.random_seed)
        primary = measures[0]
        lower, upper = par_set.bounds()
        span = upper - lower

        if control.start is not None:
            current = (par_set.to_vector(par_set.validate(control.start)) - lower) / np.where(span > 0, span, 1.0)
        else:
            current = rng.random(len(par_set))
        current_loss = evaluate(par_set.from_vector(lower + current * span)).objective(primary)

        limit = self.evaluation_budget(control, control.max_calls)
        self.state.max_iterations = limit
        temperature = control.temperature
        accepted = 0

        while evaluate.n_evaluations < limit and not self.budget_exhausted(evaluate, control):
            noise = rng.random(len(par_set)) - 0.5
            candidate = np.clip(current + 2 * control.step_size * noise, 0.0, 1.0)
            candidate_loss = evaluate(par_set.from_vector(lower + candidate * span)).objective(primary)
            self.state.iterations += 1

            delta = candidate_loss - current_loss
            if delta <= 0 or rng.random() < math.exp(-delta / max(temperature, 1e-9)):
                current, current_loss = candidate, candidate_loss
                accepted += 1
            temperature = max(temperature * control.cooling, control.min_temperature)

        return self.best_outcome(
            opt_path,
            measures,
            {"accepted_moves": accepted, "final_temperature": temperature},
        )
