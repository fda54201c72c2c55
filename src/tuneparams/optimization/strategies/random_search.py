"""Random search strategy with reproducible sampling via seed."""

from __future__ import annotations

import random
from typing import Any, Sequence

from ...measures.base import Measure
from ..control import StrategyKind, TuneControl, TuneControlRandom
from ..evaluation import TuneEvaluator
from ..opt_path import OptPath
from ..parameter_space import ParameterSpace
from .base import SearchStrategy, StrategyOutcome, StrategyRegistry


@StrategyRegistry.register
class RandomSearchStrategy(SearchStrategy):
    """Sample configurations uniformly at random, respecting parameter dependencies."""

    kind = StrategyKind.RANDOM

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
        assert isinstance(control, TuneControlRandom)
        rng = random.Random(control.random_seed)
        limit = self.evaluation_budget(control, control.max_iterations)
        self.state.max_iterations = limit

        while self.state.iterations < limit and not self.budget_exhausted(evaluate, control):
            batch_size = min(control.max_workers, limit - self.state.iterations)
            batch = [par_set.sample(rng) for _ in range(batch_size)]
            evaluate.evaluate_many(batch)
            self.state.iterations += batch_size
        return self.best_outcome(opt_path, measures)
