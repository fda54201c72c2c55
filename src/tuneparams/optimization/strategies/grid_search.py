"""Deterministic grid-search strategy."""

from __future__ import annotations

from typing import Any, Sequence

from ...errors import ConfigurationError
from ...measures.base import Measure
from ..control import StrategyKind, TuneControl, TuneControlGrid
from ..evaluation import TuneEvaluator
from ..opt_path import OptPath
from ..parameter_space import ParameterSpace
from .base import SearchStrategy, StrategyOutcome, StrategyRegistry


@StrategyRegistry.register
class GridSearchStrategy(SearchStrategy):
    """Systematically traverse the dependency-aware grid of the parameter space."""

    kind = StrategyKind.GRID

    @classmethod
    def check_parameter_space(cls, par_set: ParameterSpace, control: TuneControl) -> None:
        assert isinstance(control, TuneControlGrid)
        try:
            size = par_set.grid_size(control.resolution, control.values)
        except (TypeError, ValueError) as exc:
            raise ConfigurationError(f"Invalid grid values: {exc}") from exc
        if control.budget is not None and size > control.budget:
            raise ConfigurationError(f"Grid of size {size} exceeds the budget of {control.budget} evaluations")

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
        assert isinstance(control, TuneControlGrid)
        candidates = list(par_set.iter_grid(control.resolution, control.values))
        if not candidates:
            raise ConfigurationError("GridSearchStrategy requires at least one parameter to explore")
        self.state.max_iterations = len(candidates)

        batch_size = control.max_workers
        for start in range(0, len(candidates), batch_size):
            if self.budget_exhausted(evaluate, control):
                break
            batch = candidates[start : start + batch_size]
            evaluate.evaluate_many(batch)
            self.state.iterations += len(batch)
        return self.best_outcome(opt_path, measures, {"grid_size": len(candidates)})
