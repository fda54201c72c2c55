"""Iterated racing: sample around elite configurations and eliminate the rest."""

from __future__ import annotations

import math
import random
from typing import Any, Mapping, Sequence

from ...errors import ConfigurationError
from ...measures.base import Measure
from ..control import StrategyKind, TuneControl, TuneControlIrace
from ..evaluation import EvaluationOutcome, TuneEvaluator
from ..opt_path import OptPath
from ..parameter_space import INTEGER, NUMERIC, ParameterDefinition, ParameterSpace
from .base import SearchStrategy, StrategyOutcome, StrategyRegistry


@StrategyRegistry.register
class IteratedRacingStrategy(SearchStrategy):
    """
    Iterated racing with rank-based elimination.

    Every iteration draws a batch of new candidates (uniformly in the first iteration,
    afterwards from the neighbourhood of rank-weighted elites with a spread that
    shrinks over iterations), evaluates the batch, and races it together with the
    surviving elites: all but the ``min_survival`` best configurations are eliminated.
    Racing relies on every candidate being measured on the same resampling splits.
    """

    kind = StrategyKind.IRACE

    @classmethod
    def check_parameter_space(cls, par_set: ParameterSpace, control: TuneControl) -> None:
        assert isinstance(control, TuneControlIrace)
        if not control.same_resampling_instance:
            raise ConfigurationError("Iterated racing needs same_resampling_instance=True to compare candidates")
        n_iterations = control.n_iterations or default_iterations(len(par_set))
        if control.max_experiments < n_iterations:
            raise ConfigurationError(
                f"max_experiments ({control.max_experiments}) must be at least n_iterations ({n_iterations})"
            )

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
        assert isinstance(control, TuneControlIrace)
        rng = random.Random(control.random_seed)
        primary = measures[0]
        dimension = max(len(par_set), 1)
        n_iterations = control.n_iterations or default_iterations(len(par_set))
        min_survival = control.min_survival or 2 + int(math.log2(dimension))
        limit = self.evaluation_budget(control, control.max_experiments)
        self.state.max_iterations = n_iterations

        elites: list[tuple[dict[str, Any], EvaluationOutcome]] = []
        survivors: list[int] = []
        eliminated: list[int] = []

        for iteration in range(1, n_iterations + 1):
            remaining = limit - evaluate.n_evaluations
            if remaining <= 0 or self.budget_exhausted(evaluate, control):
                break
            per_iteration = remaining // (n_iterations - iteration + 1)
            n_new = min(control.n_candidates or per_iteration, remaining)
            n_new = max(n_new, 1)

            spread = (1.0 / iteration) ** (1.0 / dimension)
            candidates = [
                self._sample(par_set, rng, elites, spread) if elites else par_set.sample(rng)
                for _ in range(n_new)
            ]
            outcomes = evaluate.evaluate_many(candidates)
            self.state.iterations += 1

            race = elites + list(zip(candidates, outcomes))
            race.sort(key=lambda item: (item[1].objective(primary), item[1].record.index))
            keep = min(min_survival, len(race))
            elites = race[:keep]
            survivors.append(keep)
            eliminated.append(len(race) - keep)

        return self.best_outcome(
            opt_path,
            measures,
            {"survivors": survivors, "eliminated": eliminated, "min_survival": min_survival},
        )

    def _sample(
        self,
        par_set: ParameterSpace,
        rng: random.Random,
        elites: Sequence[tuple[dict[str, Any], EvaluationOutcome]],
        spread: float,
    ) -> dict[str, Any]:
        weights = [len(elites) - rank for rank in range(len(elites))]
        parent = rng.choices([configuration for configuration, _ in elites], weights=weights)[0]
        configuration: dict[str, Any] = {}
        for definition in par_set:
            if not par_set.is_active(definition.name, configuration):
                continue
            if definition.name in parent:
                configuration[definition.name] = _perturb(definition, parent, rng, spread)
            else:
                configuration[definition.name] = definition.sample_value(rng)
        return configuration


def _perturb(definition: ParameterDefinition, parent: Mapping[str, Any], rng: random.Random, spread: float) -> Any:
    value = parent[definition.name]
    if definition.type in (NUMERIC, INTEGER):
        sd = (definition.upper_bound - definition.lower_bound) * spread / 2
        return definition.snap(rng.gauss(value, sd))
    if rng.random() < spread / 2:
        return definition.sample_value(rng)
    return value


def default_iterations(dimension: int) -> int:
    return 2 + int(math.log2(max(dimension, 1)))
